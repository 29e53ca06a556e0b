# SPDX-License-Identifier: LGPL-3.0-or-later
from .exceptions import ErrorKind, Fatal, WinRegKitError
from .logger import Log

__all__ = ["ErrorKind", "Fatal", "Log", "WinRegKitError"]
