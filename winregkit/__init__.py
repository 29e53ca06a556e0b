# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/__init__.py
"""
winregkit - desired-state Windows registry reconciliation

Parse regedit `.reg` exports and converge a registry (live, or an offline
hive file) to them.

Usage as a library:

    from winregkit import import_reg_keys_from_file, set_reg_keys

    entries = import_reg_keys_from_file("baseline.reg")
    result = set_reg_keys(entries, check_only=True)
    if not result.has_correct_values:
        set_reg_keys(entries)
"""

__version__ = "0.1.0"

from .core import ErrorKind, Fatal, Log, WinRegKitError
from .registry import (
    Hive,
    MemoryBackend,
    ReconciliationResult,
    RegistryBackend,
    RegistryEntry,
    RegistryReconciler,
    RemovalResult,
    ValueType,
    WinRegBackend,
    import_reg_keys_from_file,
    remove_reg_keys,
    set_reg_keys,
    test_reg_key_exists,
)

__all__ = [
    "__version__",
    "ErrorKind",
    "Fatal",
    "Hive",
    "Log",
    "MemoryBackend",
    "ReconciliationResult",
    "RegistryBackend",
    "RegistryEntry",
    "RegistryReconciler",
    "RemovalResult",
    "ValueType",
    "WinRegBackend",
    "WinRegKitError",
    "import_reg_keys_from_file",
    "remove_reg_keys",
    "set_reg_keys",
    "test_reg_key_exists",
]
