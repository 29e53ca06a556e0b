# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Shared logging helpers for winregkit.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Generator, Optional, Union

LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def safe_logger(logger: Optional[Any] = None, default_name: str = "winregkit") -> LoggerLike:
    """
    Return `logger` if it is usable, otherwise the named default logger.

    Accepts a Logger, a LoggerAdapter, or any object carrying a `logger`
    attribute (reconcilers, backends).
    """
    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        return logger
    lg = getattr(logger, "logger", None)
    if isinstance(lg, (logging.Logger, logging.LoggerAdapter)):
        return lg
    return logging.getLogger(default_name)


@contextmanager
def log_step(logger: LoggerLike, description: str) -> Generator[None, None, None]:
    """
    Log the start of an operation, run the block, then log completion with
    elapsed time. Logs the error and re-raises on exception.

        with log_step(logger, "Parsing policy.reg"):
            entries = import_reg_keys_from_file(path)
    """
    t0 = time.time()
    logger.info("%s ...", description)
    try:
        yield
        logger.info("%s done (%.2fs)", description, time.time() - t0)
    except Exception as e:
        logger.error("%s failed (%.2fs): %s", description, time.time() - t0, e)
        raise
