# SPDX-License-Identifier: LGPL-3.0-or-later
import logging
import os
import sys
from pathlib import Path

import pytest

_THIS_DIR = Path(__file__).resolve().parent
_REPO_ROOT = _THIS_DIR.parent

if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

os.environ.setdefault("PYTHONPATH", str(_REPO_ROOT))

from winregkit.registry.backend import MemoryBackend  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external resources")
    config.addinivalue_line("markers", "security: redaction and permission handling")
    config.addinivalue_line("markers", "integration: end-to-end CLI runs against fake registries")


@pytest.fixture
def logger():
    # Outside the "winregkit" tree so caplog still sees records after Log.setup().
    lg = logging.getLogger("tests.winregkit")
    lg.setLevel(logging.DEBUG)
    return lg


@pytest.fixture
def memory_backend(logger):
    return MemoryBackend(logger=logger)


@pytest.fixture
def fake_hive_file(tmp_path):
    p = tmp_path / "SOFTWARE"
    p.write_bytes(b"regf" + b"\0" * 508)
    return p
