# SPDX-License-Identifier: LGPL-3.0-or-later
# winregkit/core/exceptions.py
"""
Error types and process exit codes.

Fatal errors stop a run and map to the exit code main() returns.
RegistryEntryError never leaves the reconciler: it is recorded in the
Failed bucket of the result and the run continues with the next entry.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

EXIT_ERROR = 1
EXIT_REG_FILE_NOT_FOUND = 3
EXIT_BACKEND_UNAVAILABLE = 4
EXIT_CONFIG = 5
EXIT_INVALID_ENTRY = 6


class ErrorKind(str, Enum):
    FILE_NOT_FOUND = "FileNotFound"
    PARSE_WARNING = "ParseWarning"
    ENTRY_FAILURE = "PerEntryFailure"
    INVALID_ENTRY = "InvalidEntry"
    BACKEND_UNAVAILABLE = "BackendUnavailable"
    CONFIG = "Config"
    GENERIC = "Generic"


REDACTED = "***REDACTED***"

# Context keys whose values never reach logs or reports (config files may
# carry credentials for remote hives or scripted uninstallers).
_SECRET_MARKERS = ("pass", "secret", "token", "apikey", "api_key", "auth", "cookie", "private")


def _exit_code(x: Any) -> int:
    try:
        code = int(x)
    except (TypeError, ValueError):
        return EXIT_ERROR
    if code < 0:
        return EXIT_ERROR
    return min(code, 255)


def _one_line(s: str, limit: int = 600) -> str:
    s = " ".join((s or "").split())
    return s if len(s) <= limit else s[: limit - 3] + "..."


def _redact(ctx: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in ctx.items():
        if any(m in str(k).lower() for m in _SECRET_MARKERS):
            out[k] = REDACTED
        else:
            out[k] = _redact(v) if isinstance(v, dict) else v
    return out


@dataclass(eq=False)
class WinRegKitError(Exception):
    """
    Base error. `msg` is what the user sees; `context` (redacted on output)
    and `cause` are appended at higher CLI verbosity and go into reports.
    """
    code: int = EXIT_ERROR
    msg: str = "error"
    cause: Optional[BaseException] = None
    context: Optional[Dict[str, Any]] = None
    kind: ErrorKind = ErrorKind.GENERIC

    def __post_init__(self) -> None:
        self.code = _exit_code(self.code)
        self.msg = _one_line(self.msg) or type(self).__name__
        self.context = dict(self.context or {})
        super().__init__(self.msg)

    def with_context(self, **ctx: Any) -> "WinRegKitError":
        self.context.update(ctx)
        return self

    def user_message(self, *, include_context: bool = False, include_cause: bool = False) -> str:
        out = self.msg
        if include_context and self.context:
            pairs = sorted(_redact(self.context).items(), key=lambda kv: str(kv[0]))
            rendered = ", ".join(f"{k}={v}" if v == REDACTED else f"{k}={v!r}" for k, v in pairs)
            out += f" [{_one_line(rendered)}]"
        if include_cause and self.cause is not None:
            out += f" (cause: {type(self.cause).__name__}: {_one_line(str(self.cause))})"
        return out

    def __str__(self) -> str:
        return self.msg

    def to_dict(self, *, include_cause: bool = False) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "type": type(self).__name__,
            "kind": self.kind.value,
            "code": self.code,
            "message": self.msg,
            "context": _redact(self.context),
        }
        if include_cause and self.cause is not None:
            d["cause"] = {"type": type(self.cause).__name__, "message": _one_line(str(self.cause))}
        return d


class Fatal(WinRegKitError):
    """Stops the run; main() exits with `code`."""


@dataclass(eq=False)
class RegFileNotFoundError(Fatal):
    """The .reg input file does not exist. Raised before any parsing happens."""
    code: int = EXIT_REG_FILE_NOT_FOUND
    kind: ErrorKind = ErrorKind.FILE_NOT_FOUND


@dataclass(eq=False)
class InvalidEntryError(Fatal):
    """A Path/Name/Value/Type mapping that cannot become a RegistryEntry."""
    code: int = EXIT_INVALID_ENTRY
    kind: ErrorKind = ErrorKind.INVALID_ENTRY


@dataclass(eq=False)
class BackendUnavailableError(Fatal):
    code: int = EXIT_BACKEND_UNAVAILABLE
    kind: ErrorKind = ErrorKind.BACKEND_UNAVAILABLE


@dataclass(eq=False)
class ConfigError(Fatal):
    code: int = EXIT_CONFIG
    kind: ErrorKind = ErrorKind.CONFIG


@dataclass(eq=False)
class RegistryEntryError(WinRegKitError):
    """A registry call failed for one entry."""
    kind: ErrorKind = ErrorKind.ENTRY_FAILURE


def wrap_fatal(msg: str, exc: Optional[BaseException] = None, code: int = EXIT_ERROR, **context: Any) -> Fatal:
    return Fatal(code=code, msg=msg, cause=exc, context=context)


def wrap_entry_error(msg: str, exc: Optional[BaseException] = None, **context: Any) -> RegistryEntryError:
    return RegistryEntryError(msg=msg, cause=exc, context=context)


def format_exception_for_cli(e: BaseException, *, verbose: int = 0) -> str:
    """
    verbose=0: message; 1: + redacted context; >=2: + cause.
    Non-project exceptions get their type name at verbose>=2.
    """
    if isinstance(e, WinRegKitError):
        return e.user_message(include_context=verbose >= 1, include_cause=verbose >= 2)
    if verbose >= 2:
        return f"{type(e).__name__}: {_one_line(str(e))}"
    return _one_line(str(e)) or type(e).__name__
