# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/writer.py
"""
.reg export.

Produces regedit-compatible text for a list of entries. Used for pre-change
backups and for the `export` command.
"""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from ..core.file_ops import atomic_write_bytes
from .encoding import encode_value, escape_reg_string, format_hex_list
from .model import Hive, RegistryEntry, ValueType

REG_HEADER = "Windows Registry Editor Version 5.00"

_LINE_WIDTH = 80

_HEX_PREFIX = {
    ValueType.BINARY: "hex:",
    ValueType.EXPAND_STRING: "hex(2):",
    ValueType.MULTI_STRING: "hex(7):",
    ValueType.QWORD: "hex(b):",
}


def _wrap_hex(lead: str, hex_bytes: List[str]) -> str:
    """
    Lay out a hex list the way regedit does: lines of at most 80 columns,
    continued with a trailing backslash and a two-space indent.
    """
    lines: List[str] = []
    cur = lead
    for i, b in enumerate(hex_bytes):
        piece = b + ("," if i < len(hex_bytes) - 1 else "")
        if len(cur) + len(piece) > _LINE_WIDTH - 1 and cur.strip():
            lines.append(cur + "\\")
            cur = "  "
        cur += piece
    lines.append(cur)
    return "\n".join(lines)


def format_value_line(entry: RegistryEntry) -> str:
    name = "@" if entry.is_default else f'"{escape_reg_string(entry.name)}"'
    if entry.type is ValueType.STRING:
        return f'{name}="{escape_reg_string(entry.value)}"'
    if entry.type is ValueType.DWORD:
        return f"{name}=dword:{int(entry.value):08x}"
    lead = f"{name}={_HEX_PREFIX[entry.type]}"
    return _wrap_hex(lead, format_hex_list(encode_value(entry.type, entry.value)))


def format_reg_entries(entries: Iterable[RegistryEntry]) -> str:
    """Group entries by key (first-seen order) and render a .reg document."""
    groups: Dict[Tuple[Hive, str], List[RegistryEntry]] = {}
    titles: Dict[Tuple[Hive, str], str] = {}
    for e in entries:
        k = (e.hive, e.path.lower())
        groups.setdefault(k, []).append(e)
        titles.setdefault(k, e.key_path)

    out: List[str] = [REG_HEADER, ""]
    for k, items in groups.items():
        out.append(f"[{titles[k]}]")
        for e in items:
            if e.value is None:
                continue
            out.append(format_value_line(e))
        out.append("")
    return "\r\n".join("\n".join(out).split("\n")) + "\r\n"


def write_reg_file(path: Union[str, Path], entries: Iterable[RegistryEntry]) -> Path:
    """Write UTF-16LE with BOM, like regedit's own exports."""
    text = format_reg_entries(entries)
    return atomic_write_bytes(Path(path), b"\xff\xfe" + text.encode("utf-16le"))
