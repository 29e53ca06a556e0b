# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/model.py
"""
Registry data model.

RegistryEntry is the one data contract shared by the parser, the reconciler
and callers: a desired (hive, key path, value name, type, value) tuple that
is immutable once built. Callers that speak in mappings use
RegistryEntry.from_mapping / to_dict with the keys Path, Name, Value, Type
and Hive.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ValueType(str, Enum):
    STRING = "String"
    EXPAND_STRING = "ExpandString"
    BINARY = "Binary"
    DWORD = "DWord"
    MULTI_STRING = "MultiString"
    QWORD = "QWord"

    @property
    def reg_type(self) -> int:
        """Native REG_* code (REG_SZ=1 ... REG_QWORD=11)."""
        return _REG_CODES[self]

    @classmethod
    def from_reg_type(cls, code: int) -> "ValueType":
        for vt, c in _REG_CODES.items():
            if c == int(code):
                return vt
        raise ValueError(f"unsupported registry value type code: {code}")

    @classmethod
    def parse(cls, v: Any) -> "ValueType":
        if isinstance(v, ValueType):
            return v
        if isinstance(v, int):
            return cls.from_reg_type(v)
        key = str(v or "").strip().lower().replace("_", "")
        if key.startswith("reg"):
            key = key[3:]
        try:
            return _TYPE_ALIASES[key]
        except KeyError:
            raise ValueError(f"unknown registry value type: {v!r}") from None


_REG_CODES: Dict[ValueType, int] = {
    ValueType.STRING: 1,
    ValueType.EXPAND_STRING: 2,
    ValueType.BINARY: 3,
    ValueType.DWORD: 4,
    ValueType.MULTI_STRING: 7,
    ValueType.QWORD: 11,
}

_TYPE_ALIASES: Dict[str, ValueType] = {
    "string": ValueType.STRING,
    "sz": ValueType.STRING,
    "expandstring": ValueType.EXPAND_STRING,
    "expandsz": ValueType.EXPAND_STRING,
    "binary": ValueType.BINARY,
    "dword": ValueType.DWORD,
    "multistring": ValueType.MULTI_STRING,
    "multisz": ValueType.MULTI_STRING,
    "qword": ValueType.QWORD,
}


class Hive(str, Enum):
    LOCAL_MACHINE = "LocalMachine"
    CURRENT_USER = "CurrentUser"

    @property
    def long_name(self) -> str:
        return "HKEY_LOCAL_MACHINE" if self is Hive.LOCAL_MACHINE else "HKEY_CURRENT_USER"

    @property
    def short_name(self) -> str:
        return "HKLM" if self is Hive.LOCAL_MACHINE else "HKCU"

    @classmethod
    def parse(cls, v: Any) -> "Hive":
        if isinstance(v, Hive):
            return v
        key = str(v or "").strip().rstrip(":").lower()
        try:
            return _HIVE_ALIASES[key]
        except KeyError:
            raise ValueError(f"unsupported registry hive: {v!r}") from None


_HIVE_ALIASES: Dict[str, Hive] = {
    "hkey_local_machine": Hive.LOCAL_MACHINE,
    "hklm": Hive.LOCAL_MACHINE,
    "localmachine": Hive.LOCAL_MACHINE,
    "hkey_current_user": Hive.CURRENT_USER,
    "hkcu": Hive.CURRENT_USER,
    "currentuser": Hive.CURRENT_USER,
}


class Action(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    REMOVED = "removed"
    SKIPPED = "skipped"
    FAILED = "failed"
    PRESENT = "present"
    MISSING = "missing"
    MISMATCHED = "mismatched"


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

DEFAULT_VALUE_NAMES = ("(default)", "@")

_DWORD_MAX = 0xFFFFFFFF
_QWORD_MAX = 0xFFFFFFFFFFFFFFFF


def normalize_value_name(name: Optional[str]) -> str:
    """`(Default)` and `@` both address the unnamed value, stored as ""."""
    if name is None:
        return ""
    s = str(name)
    if s.strip().lower() in DEFAULT_VALUE_NAMES:
        return ""
    return s


def normalize_path(path: Optional[str]) -> str:
    s = str(path or "").replace("/", "\\").strip().strip("\\")
    while "\\\\" in s:
        s = s.replace("\\\\", "\\")
    return s


def split_hive_path(path: str) -> Tuple[Optional[Hive], str]:
    """
    Split a fully qualified key path into (hive, subkey).
    Accepts `HKEY_CURRENT_USER\\Software\\X`, `HKCU:\\Software\\X` and
    `HKCU\\Software\\X`; a path without a recognised hive returns (None, path).
    """
    p = normalize_path(path)
    head, sep, rest = p.partition("\\")
    try:
        return Hive.parse(head), (rest if sep else "")
    except ValueError:
        return None, p


def _to_int(value: Any, limit: int, label: str) -> int:
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, str):
        value = int(value.strip(), 0)
    n = int(value)
    if n < 0 and n >= -(limit + 1) // 2:
        n &= limit  # signed input, stored as the unsigned two's complement
    if n < 0 or n > limit:
        raise ValueError(f"{label} out of range: {value!r}")
    return n


def coerce_value(vtype: ValueType, value: Any) -> Any:
    """
    Convert a loosely typed desired value into the canonical Python shape for
    `vtype`: str, int, bytes or a tuple of str. None passes through (removal
    entries only address a value by name).
    """
    if value is None:
        return None
    if vtype in (ValueType.STRING, ValueType.EXPAND_STRING):
        return str(value)
    if vtype is ValueType.DWORD:
        return _to_int(value, _DWORD_MAX, "DWord")
    if vtype is ValueType.QWORD:
        return _to_int(value, _QWORD_MAX, "QWord")
    if vtype is ValueType.BINARY:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if isinstance(value, str):
            return bytes.fromhex(value.replace(",", " "))
        return bytes(int(b) for b in value)
    if vtype is ValueType.MULTI_STRING:
        if isinstance(value, str):
            return (value,)
        return tuple(str(x) for x in value)
    raise ValueError(f"unsupported value type: {vtype!r}")


def infer_value_type(value: Any) -> ValueType:
    if isinstance(value, (bytes, bytearray)):
        return ValueType.BINARY
    if isinstance(value, (list, tuple)):
        return ValueType.MULTI_STRING
    if isinstance(value, int) and not isinstance(value, bool):
        return ValueType.DWORD if 0 <= value <= _DWORD_MAX else ValueType.QWORD
    return ValueType.STRING


# ---------------------------------------------------------------------------
# RegistryEntry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryEntry:
    path: str
    name: str
    value: Any
    type: ValueType
    hive: Hive = Hive.LOCAL_MACHINE

    def __post_init__(self) -> None:
        vtype = ValueType.parse(self.type)
        object.__setattr__(self, "type", vtype)
        object.__setattr__(self, "hive", Hive.parse(self.hive))
        object.__setattr__(self, "path", normalize_path(self.path))
        object.__setattr__(self, "name", normalize_value_name(self.name))
        object.__setattr__(self, "value", coerce_value(vtype, self.value))
        if not self.path:
            raise ValueError("registry entry needs a non-empty key path")

    @property
    def is_default(self) -> bool:
        return self.name == ""

    @property
    def display_name(self) -> str:
        return "(Default)" if self.is_default else self.name

    @property
    def key_path(self) -> str:
        return f"{self.hive.long_name}\\{self.path}"

    @property
    def label(self) -> str:
        return f"{self.key_path}\\{self.display_name}"

    def to_dict(self) -> Dict[str, Any]:
        value: Any = self.value
        if isinstance(value, tuple):
            value = list(value)
        return {
            "Path": self.path,
            "Name": self.name,
            "Value": value,
            "Type": self.type.value,
            "Hive": self.hive.value,
        }

    @classmethod
    def from_mapping(cls, m: Mapping[str, Any]) -> "RegistryEntry":
        """
        Build from a loosely typed mapping. Keys are case-insensitive; Type is
        inferred from Value when missing; Hive defaults to LocalMachine unless
        Path carries a hive prefix.
        """
        low = {str(k).lower(): v for k, v in m.items()}
        path = str(low.get("path") or "")
        hive_hint, subpath = split_hive_path(path)
        hive = low.get("hive") or hive_hint or Hive.LOCAL_MACHINE
        value = low.get("value")
        vtype = low.get("type") or infer_value_type(value)
        return cls(path=subpath, name=low.get("name") or "", value=value, type=vtype, hive=hive)


# ---------------------------------------------------------------------------
# Outcomes and aggregate results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EntryOutcome:
    """
    Result of one entry. `entry` is None only for caller input that never
    became a RegistryEntry; `source` then holds that input.
    """
    entry: Optional[RegistryEntry]
    action: Action
    applied: bool = False
    previous: Any = None
    error: Optional[str] = None
    message: str = ""
    source: Any = None

    def _entry_dict(self) -> Dict[str, Any]:
        if self.entry is not None:
            return self.entry.to_dict()
        if isinstance(self.source, Mapping):
            return {str(k): v for k, v in self.source.items()}
        return {"Source": repr(self.source)}

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "entry": self._entry_dict(),
            "action": self.action.value,
            "applied": self.applied,
            "message": self.message,
        }
        if self.previous is not None:
            d["previous"] = list(self.previous) if isinstance(self.previous, tuple) else self.previous
        if self.error is not None:
            d["error"] = self.error
        return d


@dataclass
class _ResultBase:
    check_only: bool = False
    messages: List[str] = field(default_factory=list)

    BUCKETS: ClassVar[Tuple[str, ...]] = ()
    BUCKET_FOR: ClassVar[Dict[Action, str]] = {}

    def record(self, outcome: EntryOutcome) -> EntryOutcome:
        bucket = self.BUCKET_FOR.get(outcome.action)
        if bucket is None:
            raise ValueError(f"{type(self).__name__} cannot hold a {outcome.action.value!r} outcome")
        getattr(self, bucket).append(outcome)
        if outcome.message:
            self.messages.append(outcome.message)
        return outcome

    def outcomes(self) -> Iterable[EntryOutcome]:
        for b in self.BUCKETS:
            yield from getattr(self, b)

    def count(self, bucket: str) -> int:
        return len(getattr(self, bucket))

    @property
    def total_entries(self) -> int:
        return sum(self.count(b) for b in self.BUCKETS)

    @property
    def entries_failed(self) -> int:
        return self.count("failed")

    @property
    def all_entries_processed(self) -> bool:
        return self.entries_failed == 0

    def _summary(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "kind": type(self).__name__,
            "check_only": self.check_only,
            "total_entries": self.total_entries,
            "all_entries_processed": self.all_entries_processed,
        }
        d.update(self._summary())
        d["counts"] = {b: self.count(b) for b in self.BUCKETS}
        for b in self.BUCKETS:
            d[b] = [o.to_dict() for o in getattr(self, b)]
        d["messages"] = list(self.messages)
        return d


@dataclass
class ReconciliationResult(_ResultBase):
    """Outcome of one set pass (apply or check-only)."""
    created: List[EntryOutcome] = field(default_factory=list)
    updated: List[EntryOutcome] = field(default_factory=list)
    unchanged: List[EntryOutcome] = field(default_factory=list)
    failed: List[EntryOutcome] = field(default_factory=list)

    BUCKETS: ClassVar[Tuple[str, ...]] = ("created", "updated", "unchanged", "failed")
    BUCKET_FOR: ClassVar[Dict[Action, str]] = {
        Action.CREATED: "created",
        Action.UPDATED: "updated",
        Action.UNCHANGED: "unchanged",
        Action.FAILED: "failed",
    }

    @property
    def entries_created(self) -> int:
        return self.count("created")

    @property
    def entries_updated(self) -> int:
        return self.count("updated")

    @property
    def entries_unchanged(self) -> int:
        return self.count("unchanged")

    @property
    def created_entries(self) -> List[RegistryEntry]:
        return [o.entry for o in self.created]

    @property
    def updated_entries(self) -> List[RegistryEntry]:
        return [o.entry for o in self.updated]

    @property
    def unchanged_entries(self) -> List[RegistryEntry]:
        return [o.entry for o in self.unchanged]

    @property
    def failed_entries(self) -> List[RegistryEntry]:
        return [o.entry for o in self.failed if o.entry is not None]

    @property
    def has_correct_values(self) -> bool:
        # Check-only: nothing would change. Apply: every entry now holds its
        # desired value. A failed entry is unverified in both modes.
        if self.failed:
            return False
        if self.check_only:
            return not self.created and not self.updated
        return True

    def _summary(self) -> Dict[str, Any]:
        return {"has_correct_values": self.has_correct_values}


@dataclass
class RemovalResult(_ResultBase):
    removed: List[EntryOutcome] = field(default_factory=list)
    unchanged: List[EntryOutcome] = field(default_factory=list)
    skipped: List[EntryOutcome] = field(default_factory=list)
    failed: List[EntryOutcome] = field(default_factory=list)

    BUCKETS: ClassVar[Tuple[str, ...]] = ("removed", "unchanged", "skipped", "failed")
    BUCKET_FOR: ClassVar[Dict[Action, str]] = {
        Action.REMOVED: "removed",
        Action.UNCHANGED: "unchanged",
        Action.SKIPPED: "skipped",
        Action.FAILED: "failed",
    }

    @property
    def entries_removed(self) -> int:
        return self.count("removed")

    @property
    def entries_unchanged(self) -> int:
        return self.count("unchanged")

    @property
    def entries_skipped(self) -> int:
        return self.count("skipped")


@dataclass
class ExistenceResult(_ResultBase):
    present: List[EntryOutcome] = field(default_factory=list)
    missing: List[EntryOutcome] = field(default_factory=list)
    mismatched: List[EntryOutcome] = field(default_factory=list)
    failed: List[EntryOutcome] = field(default_factory=list)

    BUCKETS: ClassVar[Tuple[str, ...]] = ("present", "missing", "mismatched", "failed")
    BUCKET_FOR: ClassVar[Dict[Action, str]] = {
        Action.PRESENT: "present",
        Action.MISSING: "missing",
        Action.MISMATCHED: "mismatched",
        Action.FAILED: "failed",
    }

    @property
    def all_present(self) -> bool:
        return not self.missing and not self.mismatched and not self.failed

    def _summary(self) -> Dict[str, Any]:
        return {"all_present": self.all_present}
