# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/backend.py
"""
Registry backends.

The reconciler never talks to a registry API directly; it goes through a
RegistryBackend:

- WinRegBackend: the live registry of the current machine (stdlib winreg)
- MemoryBackend: an in-process, case-insensitive registry (dry runs, tests)
- HivexBackend (hive.py): an offline hive file through python-hivex

Handles are opaque to callers. Every handle returned by open_key/create_key
must be released with close_key; `key()` does that in a finally block.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, Iterable, List, Optional, Tuple

from ..core.exceptions import BackendUnavailableError
from ..core.logging_utils import LoggerLike, safe_logger
from .model import Hive, RegistryEntry, ValueType, coerce_value, normalize_path, normalize_value_name

try:  # pragma: no cover - exercised through fakes on non-Windows platforms.
    import winreg
except ImportError:  # pragma: no cover
    winreg = None  # type: ignore[assignment]

CurrentValue = Tuple[Any, ValueType]


class RegistryBackend(ABC):
    name = "abstract"

    def __init__(self, logger: Optional[LoggerLike] = None):
        self.logger = safe_logger(logger)

    @abstractmethod
    def open_key(self, hive: Hive, path: str, *, write: bool = False) -> Optional[Any]:
        """Open an existing key; None when it does not exist."""

    @abstractmethod
    def create_key(self, hive: Hive, path: str) -> Any:
        """Open a key for writing, creating it (and its parents) if needed."""

    @abstractmethod
    def close_key(self, handle: Any) -> None:
        ...

    @abstractmethod
    def get_value(self, handle: Any, name: str) -> Optional[CurrentValue]:
        """(value, type) of a value, None when the value is absent."""

    @abstractmethod
    def set_value(self, handle: Any, name: str, value: Any, vtype: ValueType) -> None:
        ...

    @abstractmethod
    def delete_value(self, handle: Any, name: str) -> None:
        ...

    @abstractmethod
    def list_subkeys(self, handle: Any) -> List[str]:
        ...

    @abstractmethod
    def list_values(self, handle: Any) -> List[Tuple[str, Any, ValueType]]:
        ...

    def close(self) -> None:
        """Flush and release backend-wide resources."""

    @contextmanager
    def key(self, hive: Hive, path: str, *, write: bool = False, create: bool = False) -> Generator[Optional[Any], None, None]:
        """
        Scoped key handle:

            with backend.key(Hive.CURRENT_USER, r"Software\\Test") as h:
                if h is not None:
                    backend.get_value(h, "Enabled")
        """
        handle = self.create_key(hive, path) if create else self.open_key(hive, path, write=write)
        try:
            yield handle
        finally:
            if handle is not None:
                self.close_key(handle)

    def __enter__(self) -> "RegistryBackend":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


@dataclass
class _MemKey:
    hive: Hive
    path: str
    values: Dict[str, Tuple[str, Any, ValueType]] = field(default_factory=dict)


class MemoryBackend(RegistryBackend):
    """
    Case-insensitive registry held in a dict, keyed by (hive, lower(path)).
    Preserves the case a key or value was first created with, like Windows.
    """

    name = "memory"

    def __init__(self, entries: Iterable[RegistryEntry] = (), logger: Optional[LoggerLike] = None):
        super().__init__(logger)
        self._keys: Dict[Tuple[Hive, str], _MemKey] = {}
        for e in entries:
            self.seed(e)

    @staticmethod
    def _k(hive: Hive, path: str) -> Tuple[Hive, str]:
        return Hive.parse(hive), normalize_path(path).lower()

    def seed(self, entry: RegistryEntry) -> None:
        h = self.create_key(entry.hive, entry.path)
        if entry.value is not None:
            self.set_value(h, entry.name, entry.value, entry.type)

    def open_key(self, hive: Hive, path: str, *, write: bool = False) -> Optional[_MemKey]:
        return self._keys.get(self._k(hive, path))

    def create_key(self, hive: Hive, path: str) -> _MemKey:
        hive = Hive.parse(hive)
        parts = normalize_path(path).split("\\")
        node: Optional[_MemKey] = None
        for i in range(1, len(parts) + 1):
            sub = "\\".join(parts[:i])
            node = self._keys.setdefault(self._k(hive, sub), _MemKey(hive=hive, path=sub))
        assert node is not None
        return node

    def close_key(self, handle: Any) -> None:
        return None

    def get_value(self, handle: _MemKey, name: str) -> Optional[CurrentValue]:
        hit = handle.values.get(normalize_value_name(name).lower())
        if hit is None:
            return None
        return hit[1], hit[2]

    def set_value(self, handle: _MemKey, name: str, value: Any, vtype: ValueType) -> None:
        name = normalize_value_name(name)
        prev = handle.values.get(name.lower())
        stored_name = prev[0] if prev else name
        handle.values[name.lower()] = (stored_name, coerce_value(vtype, value), vtype)

    def delete_value(self, handle: _MemKey, name: str) -> None:
        try:
            del handle.values[normalize_value_name(name).lower()]
        except KeyError:
            raise FileNotFoundError(f"value not found: {name!r}") from None

    def list_subkeys(self, handle: _MemKey) -> List[str]:
        prefix = handle.path.lower() + "\\"
        out: List[str] = []
        for (_hive, low), key in self._keys.items():
            if key is handle or not low.startswith(prefix):
                continue
            rest = key.path[len(prefix):]
            if "\\" not in rest and _hive is handle.hive:
                out.append(rest)
        return sorted(out, key=str.lower)

    def list_values(self, handle: _MemKey) -> List[Tuple[str, Any, ValueType]]:
        return [handle.values[k] for k in sorted(handle.values)]


# ---------------------------------------------------------------------------
# Live registry (Windows)
# ---------------------------------------------------------------------------


class WinRegBackend(RegistryBackend):
    """
    Live registry through winreg.

    `view` selects the WOW64 view: "64", "32" or None for the process default.
    """

    name = "winreg"

    def __init__(self, logger: Optional[LoggerLike] = None, *, view: Optional[str] = None, winreg_module: Any = None):
        super().__init__(logger)
        self._wr = winreg_module if winreg_module is not None else winreg
        if self._wr is None:
            raise BackendUnavailableError(msg="Windows registry APIs are unavailable on this platform")
        self._view_flag = 0
        if view == "64":
            self._view_flag = self._wr.KEY_WOW64_64KEY
        elif view == "32":
            self._view_flag = self._wr.KEY_WOW64_32KEY
        elif view is not None:
            raise ValueError(f"registry view must be '32' or '64', got {view!r}")

    def _root(self, hive: Hive) -> Any:
        return self._wr.HKEY_LOCAL_MACHINE if Hive.parse(hive) is Hive.LOCAL_MACHINE else self._wr.HKEY_CURRENT_USER

    def open_key(self, hive: Hive, path: str, *, write: bool = False) -> Optional[Any]:
        access = self._wr.KEY_READ | (self._wr.KEY_SET_VALUE if write else 0) | self._view_flag
        try:
            return self._wr.OpenKey(self._root(hive), normalize_path(path), 0, access)
        except FileNotFoundError:
            return None

    def create_key(self, hive: Hive, path: str) -> Any:
        access = self._wr.KEY_READ | self._wr.KEY_WRITE | self._view_flag
        return self._wr.CreateKeyEx(self._root(hive), normalize_path(path), 0, access)

    def close_key(self, handle: Any) -> None:
        self._wr.CloseKey(handle)

    def get_value(self, handle: Any, name: str) -> Optional[CurrentValue]:
        try:
            value, code = self._wr.QueryValueEx(handle, normalize_value_name(name))
        except FileNotFoundError:
            return None
        try:
            vtype = ValueType.from_reg_type(code)
        except ValueError:
            self.logger.debug("Value %r has unsupported type code %s; reporting as Binary", name, code)
            return (bytes(value) if isinstance(value, (bytes, bytearray)) else value), ValueType.BINARY
        return coerce_value(vtype, value), vtype

    def set_value(self, handle: Any, name: str, value: Any, vtype: ValueType) -> None:
        v = coerce_value(vtype, value)
        if vtype is ValueType.MULTI_STRING:
            v = list(v)
        self._wr.SetValueEx(handle, normalize_value_name(name), 0, vtype.reg_type, v)

    def delete_value(self, handle: Any, name: str) -> None:
        self._wr.DeleteValue(handle, normalize_value_name(name))

    def list_subkeys(self, handle: Any) -> List[str]:
        count, _values, _mtime = self._wr.QueryInfoKey(handle)
        return [self._wr.EnumKey(handle, i) for i in range(count)]

    def list_values(self, handle: Any) -> List[Tuple[str, Any, ValueType]]:
        _subkeys, count, _mtime = self._wr.QueryInfoKey(handle)
        out: List[Tuple[str, Any, ValueType]] = []
        for i in range(count):
            name, value, code = self._wr.EnumValue(handle, i)
            try:
                vtype = ValueType.from_reg_type(code)
            except ValueError:
                continue
            out.append((name, coerce_value(vtype, value), vtype))
        return out


def get_backend(kind: str = "winreg", *, logger: Optional[LoggerLike] = None, **kwargs: Any) -> RegistryBackend:
    """
    Backend factory used by the CLI.
    kind: winreg | hive | memory
    """
    log = safe_logger(logger)
    k = (kind or "winreg").strip().lower()
    if k == "winreg":
        return WinRegBackend(log, view=kwargs.get("view"))
    if k == "memory":
        return MemoryBackend(kwargs.get("entries") or (), logger=log)
    if k == "hive":
        from .hive import HivexBackend  # local import: python-hivex is optional

        return HivexBackend(
            kwargs["hive_file"],
            hive=kwargs.get("hive") or Hive.LOCAL_MACHINE,
            mount=kwargs.get("mount") or "",
            write=bool(kwargs.get("write", False)),
            logger=log,
        )
    raise ValueError(f"unknown registry backend: {kind!r}")


__all__ = [
    "CurrentValue",
    "MemoryBackend",
    "RegistryBackend",
    "WinRegBackend",
    "get_backend",
]
