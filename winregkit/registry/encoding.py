# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Registry value encoding/decoding.

Provides:
- REG_* raw byte encoding/decoding (REG_SZ, REG_EXPAND_SZ, REG_MULTI_SZ, ...)
- .reg text helpers (hex lists, string escaping)
- Desired-vs-current value comparison
"""
from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from .model import ValueType, coerce_value

# ---------------------------------------------------------------------------
# Raw REG_* bytes
# ---------------------------------------------------------------------------


def _reg_sz(s: str) -> bytes:
    """Encode string as REG_SZ (UTF-16LE with null terminator)."""
    return (s + "\0").encode("utf-16le", errors="surrogatepass")


def _decode_reg_sz(raw: bytes) -> str:
    """Decode REG_SZ, dropping the terminator and anything after it."""
    if len(raw) % 2:
        raw = raw[:-1]
    s = raw.decode("utf-16le", errors="replace")
    nul = s.find("\0")
    return s if nul < 0 else s[:nul]


def _reg_multi_sz(items: Sequence[str]) -> bytes:
    body = "".join(str(x) + "\0" for x in items) + "\0"
    return body.encode("utf-16le", errors="surrogatepass")


def _decode_reg_multi_sz(raw: bytes) -> Tuple[str, ...]:
    if len(raw) % 2:
        raw = raw[:-1]
    s = raw.decode("utf-16le", errors="replace")
    parts = s.split("\0")
    # A well-formed REG_MULTI_SZ ends with two NULs; drop the empty tail.
    while parts and parts[-1] == "":
        parts.pop()
    return tuple(parts)


def encode_value(vtype: ValueType, value: Any) -> bytes:
    """Encode a canonical value into the raw bytes stored in a hive."""
    v = coerce_value(vtype, value)
    if v is None:
        raise ValueError(f"cannot encode empty {vtype.value} value")
    if vtype in (ValueType.STRING, ValueType.EXPAND_STRING):
        return _reg_sz(v)
    if vtype is ValueType.MULTI_STRING:
        return _reg_multi_sz(v)
    if vtype is ValueType.DWORD:
        return int(v).to_bytes(4, "little", signed=False)
    if vtype is ValueType.QWORD:
        return int(v).to_bytes(8, "little", signed=False)
    return bytes(v)


def decode_value(reg_type: int, raw: bytes) -> Tuple[Any, ValueType]:
    """Decode raw hive bytes for a REG_* code into (value, ValueType)."""
    vtype = ValueType.from_reg_type(reg_type)
    raw = bytes(raw or b"")
    if vtype in (ValueType.STRING, ValueType.EXPAND_STRING):
        return _decode_reg_sz(raw), vtype
    if vtype is ValueType.MULTI_STRING:
        return _decode_reg_multi_sz(raw), vtype
    if vtype is ValueType.DWORD:
        return int.from_bytes(raw[:4].ljust(4, b"\0"), "little", signed=False), vtype
    if vtype is ValueType.QWORD:
        return int.from_bytes(raw[:8].ljust(8, b"\0"), "little", signed=False), vtype
    return raw, vtype


# ---------------------------------------------------------------------------
# .reg text helpers
# ---------------------------------------------------------------------------


def parse_hex_list(text: str) -> bytes:
    """
    Parse the comma separated byte list of a `hex:` value.
    Whitespace and stray continuation backslashes are ignored; an empty list
    is a zero-length value.
    """
    cleaned = text.replace("\\", "").replace("\r", "").replace("\n", "")
    parts = [p.strip() for p in cleaned.split(",")]
    parts = [p for p in parts if p]
    out = bytearray()
    for p in parts:
        if len(p) > 2:
            raise ValueError(f"bad hex byte {p!r}")
        out.append(int(p, 16))
    return bytes(out)


def format_hex_list(data: bytes) -> List[str]:
    return [f"{b:02x}" for b in data]


def unescape_reg_string(s: str) -> str:
    r"""Undo .reg string escaping: `\\` -> `\`, `\"` -> `"`."""
    out: List[str] = []
    i = 0
    while i < len(s):
        ch = s[i]
        if ch == "\\" and i + 1 < len(s) and s[i + 1] in ('\\', '"'):
            out.append(s[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def escape_reg_string(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------


def value_exists(current: Any) -> bool:
    """A value counts as present only when it is non-null and not ""."""
    if current is None:
        return False
    if isinstance(current, str) and current == "":
        return False
    return True


def values_equal(vtype: ValueType, current: Any, desired: Any) -> bool:
    """
    Compare a live value with the desired one.

    Binary compares bytes, MultiString compares element-wise, numbers compare
    as ints. Values whose shapes cannot be reconciled with `vtype` are unequal.
    """
    try:
        cur = coerce_value(vtype, current)
        want = coerce_value(vtype, desired)
    except (TypeError, ValueError):
        return False
    if vtype is ValueType.MULTI_STRING:
        if isinstance(current, str):
            return False
        return list(cur) == list(want)
    if vtype is ValueType.BINARY:
        if isinstance(current, str):
            return False
        return bytes(cur) == bytes(want)
    return cur == want
