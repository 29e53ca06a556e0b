# SPDX-License-Identifier: LGPL-3.0-or-later
# winregkit/core/logger.py
"""
Console / NDJSON logging for winregkit.

Records may carry a `ctx` dict (see Log.bind). The hive/path/name keys of
that dict are rendered as one registry label, e.g. `HKCU\\Software\\Test\\Enabled`,
the remaining keys as `k=v` pairs.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from termcolor import colored as _colored

from .file_lock import FileLock, lock_path_for

TRACE = 5
if logging.getLevelName(TRACE) != "TRACE":
    logging.addLevelName(TRACE, "TRACE")

_LEVELS: Dict[str, Tuple[str, str]] = {
    # levelname: (emoji, color)
    "TRACE": ("🧬", "cyan"),
    "DEBUG": ("🔍", "blue"),
    "INFO": ("✅", "green"),
    "WARNING": ("⚠️", "yellow"),
    "ERROR": ("💥", "red"),
    "CRITICAL": ("🧨", "red"),
}

_HIVE_SHORT = {"LocalMachine": "HKLM", "CurrentUser": "HKCU"}
_KEY_FIELDS = ("hive", "path", "name")


def c(
    text: str,
    color: Optional[str] = None,
    attrs: Optional[List[str]] = None,
    *,
    enable: bool = True,
) -> str:
    """Colorize text with termcolor when enabled."""
    if not enable or not color:
        return text
    return _colored(text, color=color, attrs=attrs or [])


def _stderr_is_tty() -> bool:
    isatty = getattr(sys.stderr, "isatty", None)
    return bool(isatty and isatty())


def _stderr_takes_emoji() -> bool:
    # Legacy cmd.exe code pages cannot encode the level markers.
    enc = getattr(sys.stderr, "encoding", None) or "utf-8"
    try:
        "✅".encode(enc)
    except (UnicodeEncodeError, LookupError):
        return False
    return True


def _clip(v: Any, max_len: int = 240) -> str:
    s = str(v).replace("\r", "\\r").replace("\n", "\\n")
    return s if len(s) <= max_len else s[: max_len - 1] + "…"


def _registry_label(ctx: Mapping[str, Any]) -> str:
    hive = ctx.get("hive")
    parts = [_HIVE_SHORT.get(str(hive), str(hive))] if hive else []
    if ctx.get("path"):
        parts.append(str(ctx["path"]))
    if "name" in ctx:
        parts.append(str(ctx["name"]) or "(Default)")
    return "\\".join(parts)


def format_ctx(ctx: Optional[Mapping[str, Any]]) -> str:
    """Render a context dict as ` [HKLM\\Key\\Value] k=v k2=v2` (empty when no context)."""
    if not ctx:
        return ""
    out = ""
    label = _registry_label(ctx)
    if label:
        out += f" [{label}]"
    rest = sorted((str(k), v) for k, v in ctx.items() if k not in _KEY_FIELDS)
    if rest:
        out += " " + " ".join(f"{k}={_clip(v)}" for k, v in rest)
    return out


class ContextLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter with a persistent context dict. A call-site
    `extra={"ctx": {...}}` merges on top of it.

        log = Log.bind(logger, op="set", hive="LocalMachine")
        log.bind(path=r"SOFTWARE\\Contoso", name="Enabled").info("Updated")
    """

    def __init__(self, logger: logging.Logger, ctx: Optional[Mapping[str, Any]] = None):
        super().__init__(logger, extra={"ctx": dict(ctx or {})})

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        extra["ctx"] = {**self.extra["ctx"], **(extra.get("ctx") or {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def bind(self, **ctx: Any) -> "ContextLoggerAdapter":
        return ContextLoggerAdapter(self.logger, {**self.extra["ctx"], **ctx})


@dataclass(frozen=True)
class LogStyle:
    color: bool = True
    emoji: bool = True
    show_ms: bool = False
    show_src: bool = False
    show_pid: bool = False
    utc: bool = False


def _timestamp(created: float, utc: bool) -> _dt.datetime:
    return _dt.datetime.fromtimestamp(created, tz=_dt.timezone.utc if utc else None)


class ConsoleFormatter(logging.Formatter):
    """`12:00:01 ✅ INFO     message [HKCU\\Software\\Test\\Enabled] op=set`"""

    def __init__(self, style: LogStyle):
        super().__init__()
        self.style = style

    def format(self, record: logging.LogRecord) -> str:
        st = self.style
        emoji, color = _LEVELS.get(record.levelname, ("•", None))
        colored_ok = st.color and _stderr_is_tty()

        ts = _timestamp(record.created, st.utc).strftime("%H:%M:%S.%f")
        ts = ts[:-3] if st.show_ms else ts[:8]

        where = []
        if st.show_pid:
            where.append(f"pid={os.getpid()}")
        if st.show_src:
            where.append(f"{record.module}:{record.lineno}")
        where_s = f" [{' '.join(where)}]" if where else ""

        msg = record.getMessage()
        if record.levelno >= logging.WARNING:
            msg = c(msg, color, ["bold"], enable=colored_ok)
        level = c(f"{record.levelname:<8}", color, enable=colored_ok)

        line = f"{ts} {emoji if st.emoji else '·'} {level}{where_s} {msg}{format_ctx(getattr(record, 'ctx', None))}"

        tail = [t for t in (self.formatException(record.exc_info) if record.exc_info else "", record.stack_info or "") if t]
        if tail:
            block = "\n".join("  " + ln for ln in "\n".join(tail).splitlines())
            line += "\n" + c(block, "red", enable=colored_ok and bool(record.exc_info))
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for CI and log shipping."""

    def __init__(self, *, utc: bool = True):
        super().__init__()
        self.utc = utc

    def format(self, record: logging.LogRecord) -> str:
        obj: Dict[str, Any] = {
            "ts": _timestamp(record.created, self.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
            "module": record.module,
            "lineno": record.lineno,
        }
        ctx = getattr(record, "ctx", None)
        if ctx:
            obj["ctx"] = {str(k): _clip(v) for k, v in ctx.items()}
        if record.exc_info and record.exc_info[0] is not None:
            obj["exc_type"] = record.exc_info[0].__name__
            obj["traceback"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False, default=str)


class LockedFileHandler(logging.FileHandler):
    """
    Appends under an advisory lock on `<file>.lock`, so concurrent winregkit
    runs (e.g. several scheduled tasks) can share one log file.
    """

    def __init__(self, filename: Union[str, Path], *, encoding: str = "utf-8", lock_timeout: Optional[float] = 10.0):
        super().__init__(str(filename), mode="a", encoding=encoding, delay=True)
        self._file_lock = FileLock(lock_path_for(filename), timeout=lock_timeout)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            with self._file_lock:
                super().emit(record)
                self.flush()
        except Exception:
            self.handleError(record)


class Log:
    @staticmethod
    def _level_from_flags(verbose: int, quiet: int) -> int:
        """-q WARNING, -qq ERROR, -vv DEBUG, -vvv TRACE; quiet wins."""
        if quiet:
            return logging.ERROR if quiet >= 2 else logging.WARNING
        if verbose >= 3:
            return TRACE
        return logging.DEBUG if verbose >= 2 else logging.INFO

    @staticmethod
    def bind(logger: Union[logging.Logger, logging.LoggerAdapter], **ctx: Any) -> ContextLoggerAdapter:
        if isinstance(logger, ContextLoggerAdapter):
            return logger.bind(**ctx)
        if isinstance(logger, logging.LoggerAdapter):
            logger = logger.logger
        return ContextLoggerAdapter(logger, ctx)

    @staticmethod
    def banner(logger: Any, title: str, *, width: int = 72) -> None:
        logger.info(f" {title.strip()} ".center(width, "─"))

    @staticmethod
    def step(logger: Any, msg: str) -> None:
        logger.info("➡️  %s", msg)

    @staticmethod
    def ok(logger: Any, msg: str) -> None:
        logger.info("✅ %s", msg)

    @staticmethod
    def warn(logger: Any, msg: str) -> None:
        logger.warning("⚠️  %s", msg)

    @staticmethod
    def setup(
        verbose: int = 0,
        log_file: Optional[str] = None,
        *,
        quiet: int = 0,
        color: Optional[bool] = None,
        show_ms: bool = False,
        utc: bool = False,
        logger_name: str = "winregkit",
        json_logs: bool = False,
    ) -> logging.Logger:
        """
        Configure and return the winregkit logger: stderr handler plus an
        optional locked log file. Calling it again replaces the handlers.
        """
        logger = logging.getLogger(logger_name)
        logger.propagate = False
        level = Log._level_from_flags(verbose, quiet)
        logger.setLevel(level)

        for h in list(logger.handlers):
            logger.removeHandler(h)
            h.close()

        emoji = _stderr_takes_emoji()
        handlers: List[Tuple[logging.Handler, logging.Formatter]] = [
            (
                logging.StreamHandler(stream=sys.stderr),
                JsonFormatter(utc=utc)
                if json_logs
                else ConsoleFormatter(
                    LogStyle(
                        color=True if color is None else color,
                        emoji=emoji,
                        show_ms=show_ms or verbose >= 3,
                        show_src=verbose >= 3,
                        show_pid=verbose >= 2,
                        utc=utc,
                    )
                ),
            )
        ]
        if log_file:
            fp = Path(log_file).expanduser().resolve()
            fp.parent.mkdir(parents=True, exist_ok=True)
            file_fmt = (
                JsonFormatter(utc=utc)
                if json_logs
                else ConsoleFormatter(LogStyle(color=False, emoji=emoji, show_ms=True, show_src=True, show_pid=True, utc=utc))
            )
            handlers.append((LockedFileHandler(fp), file_fmt))

        for handler, fmt in handlers:
            handler.setLevel(level)
            handler.setFormatter(fmt)
            logger.addHandler(handler)

        logger.debug("Logger initialized (level=%s)", logging.getLevelName(level))
        return logger
