# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# winregkit/registry/__init__.py
from .backend import MemoryBackend, RegistryBackend, WinRegBackend, get_backend
from .model import (
    Action,
    EntryOutcome,
    ExistenceResult,
    Hive,
    ReconciliationResult,
    RegistryEntry,
    RemovalResult,
    ValueType,
)
from .parser import ParseWarning, RegParser, import_reg_keys_from_file, parse_reg_text
from .reconcile import RegistryReconciler, remove_reg_keys, set_reg_keys, test_reg_key_exists
from .uninstall import UninstallInfo, find_uninstall_commands
from .writer import format_reg_entries, write_reg_file

__all__ = [
    "Action",
    "EntryOutcome",
    "ExistenceResult",
    "Hive",
    "MemoryBackend",
    "ParseWarning",
    "ReconciliationResult",
    "RegParser",
    "RegistryBackend",
    "RegistryEntry",
    "RegistryReconciler",
    "RemovalResult",
    "UninstallInfo",
    "ValueType",
    "WinRegBackend",
    "find_uninstall_commands",
    "format_reg_entries",
    "get_backend",
    "import_reg_keys_from_file",
    "parse_reg_text",
    "remove_reg_keys",
    "set_reg_keys",
    "test_reg_key_exists",
    "write_reg_file",
]
