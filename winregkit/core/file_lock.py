# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/core/file_lock.py
"""
Cross-process advisory file lock.

Used to serialize writers that share one log file across toolkit processes.
POSIX uses fcntl.flock, Windows uses msvcrt.locking on the first byte of the
lock file. The lock file is a sidecar (``<target>.lock``) so the locked file
itself can be rotated or truncated freely.
"""
from __future__ import annotations

import os
import time
from pathlib import Path
from typing import IO, Optional, Union

try:
    import fcntl  # POSIX only
except ImportError:  # pragma: no cover
    fcntl = None  # type: ignore

try:
    import msvcrt  # Windows only
except ImportError:  # pragma: no cover
    msvcrt = None  # type: ignore


class FileLockTimeout(TimeoutError):
    pass


def lock_path_for(target: Union[str, Path]) -> Path:
    p = Path(target)
    return p.with_name(p.name + ".lock")


class FileLock:
    """
    Re-entrant (per instance) exclusive lock on a sidecar file.

        with FileLock(lock_path_for(log_file)):
            fh.write(line)
    """

    def __init__(self, path: Union[str, Path], *, timeout: Optional[float] = None, poll_s: float = 0.05):
        self.path = Path(path)
        self.timeout = timeout
        self.poll_s = poll_s
        self._fp: Optional[IO[str]] = None
        self._depth = 0

    @property
    def is_locked(self) -> bool:
        return self._fp is not None

    def _try_lock(self, fp: IO[str]) -> bool:
        if fcntl is not None:
            try:
                fcntl.flock(fp.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return True
            except (BlockingIOError, PermissionError):
                return False
        if msvcrt is not None:
            try:
                fp.seek(0)
                msvcrt.locking(fp.fileno(), msvcrt.LK_NBLCK, 1)
                return True
            except OSError:
                return False
        # No locking primitive on this platform; single-writer semantics only.
        return True

    def _unlock(self, fp: IO[str]) -> None:
        if fcntl is not None:
            fcntl.flock(fp.fileno(), fcntl.LOCK_UN)
        elif msvcrt is not None:
            fp.seek(0)
            msvcrt.locking(fp.fileno(), msvcrt.LK_UNLCK, 1)

    def acquire(self) -> "FileLock":
        if self._fp is not None:
            self._depth += 1
            return self

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fp = open(self.path, "a+", encoding="utf-8")
        deadline = None if self.timeout is None else time.monotonic() + float(self.timeout)
        try:
            while not self._try_lock(fp):
                if deadline is not None and time.monotonic() >= deadline:
                    raise FileLockTimeout(f"timed out waiting for lock: {self.path} (pid={os.getpid()})")
                time.sleep(self.poll_s)
        except BaseException:
            fp.close()
            raise

        self._fp = fp
        self._depth = 1
        return self

    def release(self) -> None:
        if self._fp is None:
            return
        self._depth -= 1
        if self._depth > 0:
            return
        fp, self._fp = self._fp, None
        try:
            self._unlock(fp)
        finally:
            fp.close()

    def __enter__(self) -> "FileLock":
        return self.acquire()

    def __exit__(self, *exc: object) -> None:
        self.release()
