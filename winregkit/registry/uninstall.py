# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/uninstall.py
"""
Uninstall discovery.

Walks the Add/Remove Programs keys and returns the uninstall commands of
every product whose DisplayName matches a pattern.
"""
from __future__ import annotations

import fnmatch
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..core.logging_utils import LoggerLike, safe_logger
from .backend import RegistryBackend
from .model import Hive

UNINSTALL_ROOTS: Tuple[Tuple[Hive, str], ...] = (
    (Hive.LOCAL_MACHINE, r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"),
    (Hive.LOCAL_MACHINE, r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"),
    (Hive.CURRENT_USER, r"Software\Microsoft\Windows\CurrentVersion\Uninstall"),
)

_MSI_RE = re.compile(r"msiexec(?:\.exe)?\s+/[ix]\s*(?P<guid>\{[0-9a-f\-]{36}\})", re.IGNORECASE)


@dataclass(frozen=True)
class UninstallInfo:
    display_name: str
    key: str
    display_version: str = ""
    publisher: str = ""
    uninstall_string: str = ""
    quiet_uninstall_string: str = ""

    @property
    def product_code(self) -> Optional[str]:
        m = _MSI_RE.search(self.uninstall_string)
        return m.group("guid").upper() if m else None

    @property
    def quiet_command(self) -> str:
        """
        Best silent uninstall command:
        QuietUninstallString, then MSI /X with /qn, then the plain string.
        """
        if self.quiet_uninstall_string:
            return self.quiet_uninstall_string
        code = self.product_code
        if code:
            return f"MsiExec.exe /X{code} /qn"
        return self.uninstall_string

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["quiet_command"] = self.quiet_command
        return d


def _matches(name: str, pattern: str) -> bool:
    n, p = name.lower(), pattern.lower()
    if any(ch in p for ch in "*?["):
        return fnmatch.fnmatchcase(n, p)
    return p in n


def _str_value(backend: RegistryBackend, handle: Any, name: str) -> str:
    hit = backend.get_value(handle, name)
    if hit is None or hit[0] is None:
        return ""
    return str(hit[0])


def find_uninstall_commands(
    backend: RegistryBackend,
    pattern: str,
    *,
    logger: Optional[LoggerLike] = None,
) -> List[UninstallInfo]:
    log = safe_logger(logger)
    found: List[UninstallInfo] = []
    seen = set()

    for hive, root in UNINSTALL_ROOTS:
        try:
            with backend.key(hive, root) as h:
                if h is None:
                    log.debug("Uninstall root not present: %s\\%s", hive.short_name, root)
                    continue
                subkeys = backend.list_subkeys(h)
        except (OSError, ValueError) as e:
            # Hive backends only serve one hive; the others are simply not there.
            log.debug("Cannot enumerate %s\\%s: %s", hive.short_name, root, e)
            continue

        for sub in subkeys:
            path = f"{root}\\{sub}"
            try:
                with backend.key(hive, path) as sh:
                    if sh is None:
                        continue
                    name = _str_value(backend, sh, "DisplayName")
                    if not name or not _matches(name, pattern):
                        continue
                    info = UninstallInfo(
                        display_name=name,
                        key=f"{hive.long_name}\\{path}",
                        display_version=_str_value(backend, sh, "DisplayVersion"),
                        publisher=_str_value(backend, sh, "Publisher"),
                        uninstall_string=_str_value(backend, sh, "UninstallString"),
                        quiet_uninstall_string=_str_value(backend, sh, "QuietUninstallString"),
                    )
            except OSError as e:
                log.warning("Skipping uninstall key %s\\%s: %s", hive.short_name, path, e)
                continue

            dedup = (info.display_name.lower(), info.display_version, info.uninstall_string.lower())
            if dedup in seen:
                continue
            seen.add(dedup)
            found.append(info)
            log.debug("Matched %s (%s) at %s", info.display_name, info.display_version or "?", info.key)

    log.info("Found %d uninstall entries matching %r", len(found), pattern)
    return found


__all__ = ["UNINSTALL_ROOTS", "UninstallInfo", "find_uninstall_commands"]
