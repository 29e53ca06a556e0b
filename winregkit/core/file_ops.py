# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/core/file_ops.py
"""
Atomic file writes for reports and .reg exports.

A half-written backup .reg is worse than none, so everything the toolkit
writes goes through a temp file in the destination directory followed by
os.replace.
"""
from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union


@contextmanager
def atomic_write(target_path: Union[str, Path], *, suffix: str = ".part") -> Generator[Path, None, None]:
    """
    Yield a temp path next to `target_path`; rename it over the target when
    the block succeeds, delete it when the block raises.

        with atomic_write(Path("backup.reg")) as tmp:
            tmp.write_bytes(data)
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(
        suffix=suffix,
        prefix=f".{target_path.name}.",
        dir=str(target_path.parent),
    )
    os.close(fd)
    temp_path = Path(temp_name)

    try:
        yield temp_path
        os.replace(temp_path, target_path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> Path:
    path = Path(path)
    with atomic_write(path) as tmp:
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
    return path


def atomic_write_text(path: Union[str, Path], content: str, *, encoding: str = "utf-8") -> Path:
    return atomic_write_bytes(path, content.encode(encoding))
