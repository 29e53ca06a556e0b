# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/core/utils.py
from __future__ import annotations

import json
from typing import Any, Optional


class U:
    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return repr(obj)

    @staticmethod
    def decode_text_file(raw: bytes) -> str:
        """
        Decode text exported by Windows tools.

        regedit writes UTF-16LE with a BOM; reg.exe and hand-written files are
        usually UTF-8 (with or without BOM) or the ANSI code page.
        """
        if raw.startswith(b"\xff\xfe") or raw.startswith(b"\xfe\xff"):
            return raw.decode("utf-16")
        if raw.startswith(b"\xef\xbb\xbf"):
            return raw.decode("utf-8-sig")
        # BOM-less UTF-16LE: ASCII text with every odd byte NUL.
        head = raw[:64]
        if len(head) >= 4 and head[1::2].count(0) >= len(head[1::2]) * 3 // 4:
            return raw.decode("utf-16-le")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw.decode("cp1252", errors="replace")

    @staticmethod
    def short(s: Optional[str], limit: int = 80) -> str:
        s = s or ""
        return s if len(s) <= limit else s[: limit - 1] + "…"
