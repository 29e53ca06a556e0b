# SPDX-License-Identifier: LGPL-3.0-or-later
import logging


class RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=1)
        self.records = []

    def emit(self, record):
        self.records.append((record.levelname.lower(), record.getMessage()))


class FakeLogger(logging.Logger):
    """A real Logger that keeps (level, message) pairs in `records`."""

    def __init__(self, name="fake.winregkit"):
        super().__init__(name, level=1)
        self.propagate = False
        self._recorder = RecordingHandler()
        self.addHandler(self._recorder)

    @property
    def records(self):
        return self._recorder.records

    def messages(self, level=None):
        return [m for lvl, m in self.records if level is None or lvl == level]
