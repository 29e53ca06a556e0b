# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/hive.py
"""
Offline hive backend (python-hivex).

Lets the reconciler work on a registry hive *file* (SOFTWARE, SYSTEM,
NTUSER.DAT, ...) from a mounted Windows disk or a backup, with the same
entries it would apply to a live machine.

A hive file is one subtree of a logical hive, so the backend is "mounted" at
a hive + key prefix:

    HivexBackend("SOFTWARE", hive=Hive.LOCAL_MACHINE, mount="SOFTWARE")
      HKLM\\SOFTWARE\\Policies\\X  ->  <root>\\Policies\\X

    HivexBackend("NTUSER.DAT", hive=Hive.CURRENT_USER, mount="")
      HKCU\\Software\\X            ->  <root>\\Software\\X
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..core.exceptions import BackendUnavailableError
from ..core.logging_utils import LoggerLike
from .backend import CurrentValue, RegistryBackend
from .encoding import decode_value, encode_value
from .model import Hive, ValueType, normalize_path, normalize_value_name

try:
    import hivex  # type: ignore
except ImportError:  # pragma: no cover - python-hivex is a distro package
    hivex = None  # type: ignore

NodeLike = Union[int, None]


def _node_id(n: NodeLike) -> int:
    """Convert node to int, treating None as 0 (python-hivex versions differ)."""
    if n is None:
        return 0
    try:
        return int(n)
    except (TypeError, ValueError):
        return 0


def _is_probably_regf(path: Path) -> bool:
    """Windows registry hives start with ASCII 'regf'."""
    try:
        with open(path, "rb") as f:
            return f.read(4) == b"regf"
    except OSError:
        return False


def _mk_reg_value(name: str, t: int, value: bytes) -> Dict[str, Any]:
    return {"key": name, "t": int(t), "value": value}


def _commit(h: Any) -> None:
    """Commit hive changes (handles python-hivex signature differences)."""
    try:
        h.commit(None)
    except TypeError:
        h.commit()


def _close_best_effort(h: Any) -> None:
    close = getattr(h, "close", None)
    if callable(close):
        close()


class HivexBackend(RegistryBackend):
    name = "hive"

    def __init__(
        self,
        hive_file: Union[str, Path],
        *,
        hive: Hive = Hive.LOCAL_MACHINE,
        mount: str = "",
        write: bool = False,
        logger: Optional[LoggerLike] = None,
        hivex_module: Any = None,
    ):
        super().__init__(logger)
        mod = hivex_module if hivex_module is not None else hivex
        if mod is None:
            raise BackendUnavailableError(msg="python-hivex is not installed; offline hive editing is unavailable")

        self.path = Path(hive_file)
        if not self.path.is_file():
            raise BackendUnavailableError(msg=f"hive file missing: {self.path}", context={"path": str(self.path)})
        if not _is_probably_regf(self.path):
            raise BackendUnavailableError(msg=f"file does not look like a regf hive: {self.path}", context={"path": str(self.path)})

        self.hive = Hive.parse(hive)
        self.mount = normalize_path(mount)
        self.write = bool(write)
        self._dirty = False
        self._h = mod.Hivex(str(self.path), write=(1 if self.write else 0))
        self.logger.info(
            "Opened hive %s (%s) mounted at %s\\%s",
            self.path,
            "rw" if self.write else "ro",
            self.hive.short_name,
            self.mount or "",
        )

    # -- path resolution ---------------------------------------------------

    def _relative(self, hive: Hive, path: str) -> List[str]:
        if Hive.parse(hive) is not self.hive:
            raise ValueError(f"{hive} is not served by hive file {self.path.name} ({self.hive.value})")
        p = normalize_path(path)
        if self.mount:
            low, mlow = p.lower(), self.mount.lower()
            if low == mlow:
                return []
            if not low.startswith(mlow + "\\"):
                raise ValueError(f"{p} is outside the mounted prefix {self.mount}")
            p = p[len(self.mount) + 1:]
        return [c for c in p.split("\\") if c]

    def _walk(self, parts: List[str], *, create: bool) -> int:
        node = _node_id(self._h.root())
        if node == 0:
            raise RuntimeError(f"invalid hivex root() for {self.path}")
        for name in parts:
            child = _node_id(self._h.node_get_child(node, name))
            if child == 0:
                if not create:
                    return 0
                child = _node_id(self._h.node_add_child(node, name))
                if child == 0:
                    raise RuntimeError(f"failed to create child key {name}")
                self._dirty = True
            node = child
        return node

    # -- RegistryBackend ---------------------------------------------------

    def open_key(self, hive: Hive, path: str, *, write: bool = False) -> Optional[int]:
        node = self._walk(self._relative(hive, path), create=False)
        return node or None

    def create_key(self, hive: Hive, path: str) -> int:
        self._require_write()
        return self._walk(self._relative(hive, path), create=True)

    def close_key(self, handle: Any) -> None:
        return None

    def _raw_values(self, node: int) -> List[Tuple[str, int, bytes]]:
        out: List[Tuple[str, int, bytes]] = []
        for vh in self._h.node_values(node) or []:
            key = self._h.value_key(vh)
            t, raw = self._h.value_value(vh)
            out.append((key, int(t), bytes(raw)))
        return out

    def get_value(self, handle: int, name: str) -> Optional[CurrentValue]:
        want = normalize_value_name(name).lower()
        for key, t, raw in self._raw_values(handle):
            if key.lower() == want:
                try:
                    return decode_value(t, raw)
                except ValueError:
                    return raw, ValueType.BINARY
        return None

    def set_value(self, handle: int, name: str, value: Any, vtype: ValueType) -> None:
        self._require_write()
        self._h.node_set_value(handle, _mk_reg_value(normalize_value_name(name), vtype.reg_type, encode_value(vtype, value)))
        self._dirty = True

    def delete_value(self, handle: int, name: str) -> None:
        self._require_write()
        want = normalize_value_name(name).lower()
        current = self._raw_values(handle)
        keep = [_mk_reg_value(k, t, raw) for k, t, raw in current if k.lower() != want]
        if len(keep) == len(current):
            raise FileNotFoundError(f"value not found: {name!r}")
        # hivex has no single-value delete; rewrite the node's value list.
        self._h.node_set_values(handle, keep)
        self._dirty = True

    def list_subkeys(self, handle: int) -> List[str]:
        return [self._h.node_name(ch) for ch in (self._h.node_children(handle) or [])]

    def list_values(self, handle: int) -> List[Tuple[str, Any, ValueType]]:
        out: List[Tuple[str, Any, ValueType]] = []
        for key, t, raw in self._raw_values(handle):
            try:
                value, vtype = decode_value(t, raw)
            except ValueError:
                continue
            out.append((key, value, vtype))
        return out

    def _require_write(self) -> None:
        if not self.write:
            raise PermissionError(f"hive {self.path} is opened read-only")

    def close(self) -> None:
        if self._h is None:
            return
        try:
            if self.write and self._dirty:
                _commit(self._h)
                self.logger.info("Committed changes to hive %s", self.path)
        finally:
            _close_best_effort(self._h)
            self._h = None
