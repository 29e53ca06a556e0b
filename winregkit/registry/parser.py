# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/parser.py
"""
.reg file parser.

Turns regedit export text into an ordered list of RegistryEntry records.
Supported subset:

  [HKEY_LOCAL_MACHINE\\...] / [HKEY_CURRENT_USER\\...] (and HKLM / HKCU)
  "name"="string"            String
  @="string"                 default value
  "name"=dword:0000002a      DWord
  "name"=hex:01,02           Binary
  "name"=hex(2):...          ExpandString (UTF-16LE)
  "name"=hex(7):...          MultiString  (UTF-16LE, NUL separated)
  "name"=hex(b):...          QWord        (8 little-endian bytes)

hex lists may span several lines with a trailing backslash. Anything the
parser does not understand is logged as a warning and skipped.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple, Union

from ..core.exceptions import ErrorKind, RegFileNotFoundError
from ..core.logger import TRACE
from ..core.logging_utils import LoggerLike, safe_logger
from ..core.utils import U
from .encoding import _decode_reg_multi_sz, _decode_reg_sz, parse_hex_list, unescape_reg_string
from .model import Hive, RegistryEntry, ValueType, split_hive_path

_HEADERS = ("windows registry editor version", "regedit4")

_SECTION_RE = re.compile(r"^\[(?P<key>.*)\]\s*$")
_NAME_RE = re.compile(r'^(?:"(?P<name>(?:[^"\\]|\\.)*)"|(?P<default>@))\s*=\s*(?P<data>.*)$')
_HEX_RE = re.compile(r"^hex(?:\((?P<code>[0-9a-fA-F]+)\))?:(?P<body>.*)$", re.DOTALL)
_DWORD_RE = re.compile(r"^dword:(?P<hex>[0-9a-fA-F]{1,8})$")

_HEX_CODE_TYPES = {
    1: ValueType.STRING,
    2: ValueType.EXPAND_STRING,
    3: ValueType.BINARY,
    4: ValueType.DWORD,
    7: ValueType.MULTI_STRING,
    11: ValueType.QWORD,
}


@dataclass(frozen=True)
class ParseWarning:
    """An input line that was skipped. Never fatal."""
    line_no: int
    line: str
    reason: str
    source: str = "<string>"
    kind: ErrorKind = ErrorKind.PARSE_WARNING

    def __str__(self) -> str:
        return f"{self.source}:{self.line_no}: {self.reason}: {U.short(self.line)}"


def _is_hex_value_line(line: str) -> bool:
    m = _NAME_RE.match(line.strip())
    return bool(m) and m.group("data").lstrip().lower().startswith("hex")


def _logical_lines(text: str) -> Iterator[Tuple[int, str, bool]]:
    """
    Yield (first_line_no, line, complete). Only a `hex...:` value line ending
    in `\\` continues, and only onto the indented lines that follow it.
    `complete` is False when such a value stops before its last continuation.
    """
    buf: Optional[str] = None
    start = 0
    for no, raw in enumerate(text.splitlines(), 1):
        line = raw.rstrip()
        if buf is not None:
            if raw[:1] in (" ", "\t") and line.strip():
                buf += line.strip()
                if buf.endswith("\\"):
                    buf = buf[:-1]
                    continue
                yield start, buf, True
                buf = None
                continue
            yield start, buf, False
            buf = None
        if line.endswith("\\") and _is_hex_value_line(line):
            buf, start = line[:-1], no
            continue
        yield no, line, True
    if buf is not None:
        yield start, buf, False


def _quoted_body(data: str) -> str:
    """Return the raw inside of `"..."`; the closing quote must end the data."""
    i = 1
    while i < len(data):
        ch = data[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            if data[i + 1:].strip():
                raise ValueError("trailing data after string")
            return data[1:i]
        i += 1
    raise ValueError("unterminated string")


class RegParser:
    """
    Stateful single-pass parser. `warnings` collects every skipped line of the
    last parse() call.
    """

    def __init__(self, logger: Optional[LoggerLike] = None, *, source: str = "<string>"):
        self.logger = safe_logger(logger)
        self.source = source
        self.warnings: List[ParseWarning] = []

    def _warn(self, line_no: int, line: str, reason: str) -> None:
        w = ParseWarning(line_no=line_no, line=line, reason=reason, source=self.source)
        self.warnings.append(w)
        self.logger.warning("Skipping .reg line: %s", w)

    # -- sections ----------------------------------------------------------

    def _section(self, line_no: int, line: str, key: str) -> Optional[Tuple[Hive, str]]:
        key = key.strip()
        if key.startswith("-"):
            self._warn(line_no, line, "key deletion sections are not supported")
            return None
        hive, path = split_hive_path(key)
        if hive is None:
            self._warn(line_no, line, "unsupported hive")
            return None
        if not path:
            self._warn(line_no, line, "section addresses a hive root")
            return None
        return hive, path

    # -- values ------------------------------------------------------------

    def decode_data(self, data: str) -> Tuple[Any, ValueType]:
        """Decode the right-hand side of a value line. Raises ValueError."""
        data = data.strip()

        if data.startswith('"'):
            return unescape_reg_string(_quoted_body(data)), ValueType.STRING

        low = data.lower()
        m = _DWORD_RE.match(low)
        if m:
            return int(m.group("hex"), 16), ValueType.DWORD
        if low.startswith("dword:"):
            raise ValueError("bad dword data")

        m = _HEX_RE.match(low)
        if m:
            code = int(m.group("code"), 16) if m.group("code") else 3
            vtype = _HEX_CODE_TYPES.get(code)
            if vtype is None:
                raise ValueError(f"unsupported hex({code:x}) value type")
            raw = parse_hex_list(m.group("body"))
            if vtype in (ValueType.STRING, ValueType.EXPAND_STRING):
                return _decode_reg_sz(raw), vtype
            if vtype is ValueType.MULTI_STRING:
                return _decode_reg_multi_sz(raw), vtype
            if vtype is ValueType.DWORD:
                if len(raw) != 4:
                    raise ValueError("hex(4) needs exactly 4 bytes")
                return int.from_bytes(raw, "little"), vtype
            if vtype is ValueType.QWORD:
                if len(raw) != 8:
                    raise ValueError("hex(b) needs exactly 8 bytes")
                return int.from_bytes(raw, "little"), vtype
            return raw, vtype

        if data == "-":
            raise ValueError("value deletion is not supported")
        raise ValueError("unrecognised value data")

    def parse(self, text: str) -> List[RegistryEntry]:
        self.warnings = []
        entries: List[RegistryEntry] = []
        ctx: Optional[Tuple[Hive, str]] = None
        in_section = False

        for line_no, line, complete in _logical_lines(text.lstrip("\ufeff")):
            s = line.strip()
            if not s or s.startswith(";") or s.startswith("#"):
                continue
            if not complete:
                self._warn(line_no, line, "hex data ends before its continuation line")
                continue
            if s.lower().startswith(_HEADERS):
                continue

            m = _SECTION_RE.match(s)
            if m:
                ctx = self._section(line_no, line, m.group("key"))
                in_section = True
                continue

            m = _NAME_RE.match(s)
            if not m:
                self._warn(line_no, line, "unparseable line")
                continue
            if ctx is None:
                # Values of a skipped section were already reported with it.
                if not in_section:
                    self._warn(line_no, line, "value outside of a key section")
                continue

            name = "" if m.group("default") else unescape_reg_string(m.group("name"))
            try:
                value, vtype = self.decode_data(m.group("data"))
            except ValueError as e:
                self._warn(line_no, line, str(e))
                continue

            hive, path = ctx
            entries.append(RegistryEntry(path=path, name=name, value=value, type=vtype, hive=hive))
            self.logger.log(TRACE, "Parsed %s\\%s\\%s (%s)", hive.short_name, path, name or "@", vtype.value)

        self.logger.debug("Parsed %d registry entries from %s (%d skipped lines)", len(entries), self.source, len(self.warnings))
        return entries


def parse_reg_text(text: str, *, logger: Optional[LoggerLike] = None, source: str = "<string>") -> List[RegistryEntry]:
    return RegParser(logger, source=source).parse(text)


def import_reg_keys_from_file(path: Union[str, Path], *, logger: Optional[LoggerLike] = None) -> List[RegistryEntry]:
    """
    Read a .reg file (UTF-16 or UTF-8, BOM optional) and parse it.
    Raises RegFileNotFoundError before reading when the file is missing.
    """
    p = Path(path)
    if not p.is_file():
        raise RegFileNotFoundError(msg=f"Registry file not found: {p}", context={"path": str(p)})
    log = safe_logger(logger)
    log.info("Importing registry entries from %s", p)
    return RegParser(log, source=str(p)).parse(U.decode_text_file(p.read_bytes()))
