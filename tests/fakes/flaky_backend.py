# SPDX-License-Identifier: LGPL-3.0-or-later
from winregkit.registry.backend import MemoryBackend


class FlakyBackend(MemoryBackend):
    """MemoryBackend whose writes to the listed key paths raise PermissionError."""

    name = "flaky"

    def __init__(self, fail_paths=(), entries=(), logger=None):
        self.fail_paths = set()
        self.closed_handles = 0
        self.opened_handles = 0
        super().__init__(entries, logger=logger)
        self.fail_paths = {p.lower() for p in fail_paths}
        self.opened_handles = 0

    def _check(self, path):
        if path.lower() in self.fail_paths:
            raise PermissionError(f"Access is denied: {path}")

    def open_key(self, hive, path, *, write=False):
        if write:
            self._check(path)
        h = super().open_key(hive, path, write=write)
        if h is not None:
            self.opened_handles += 1
        return h

    def create_key(self, hive, path):
        self._check(path)
        self.opened_handles += 1
        return super().create_key(hive, path)

    def close_key(self, handle):
        self.closed_handles += 1
