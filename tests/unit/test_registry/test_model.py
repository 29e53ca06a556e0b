# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for RegistryEntry, enums and result buckets."""
from __future__ import annotations

import pytest

from winregkit.registry.model import (
    Action,
    EntryOutcome,
    ExistenceResult,
    Hive,
    ReconciliationResult,
    RegistryEntry,
    RemovalResult,
    ValueType,
    coerce_value,
    split_hive_path,
)


@pytest.mark.unit
class TestEnums:
    def test_reg_type_codes(self):
        """Test REG_* type codes."""
        assert [t.reg_type for t in ValueType] == [1, 2, 3, 4, 7, 11]
        assert ValueType.from_reg_type(11) is ValueType.QWORD

    def test_unknown_reg_type_code(self):
        """Test unknown type codes are rejected."""
        with pytest.raises(ValueError):
            ValueType.from_reg_type(8)

    @pytest.mark.parametrize(
        "alias,expected",
        [
            ("DWord", ValueType.DWORD),
            ("REG_DWORD", ValueType.DWORD),
            ("reg_multi_sz", ValueType.MULTI_STRING),
            ("sz", ValueType.STRING),
            ("ExpandString", ValueType.EXPAND_STRING),
            (3, ValueType.BINARY),
        ],
    )
    def test_value_type_aliases(self, alias, expected):
        """Test value type aliases."""
        assert ValueType.parse(alias) is expected

    @pytest.mark.parametrize("alias", ["HKLM", "HKLM:", "hkey_local_machine", "LocalMachine"])
    def test_hive_aliases(self, alias):
        """Test hive aliases."""
        assert Hive.parse(alias) is Hive.LOCAL_MACHINE

    def test_unsupported_hive(self):
        """Test unsupported hives are rejected."""
        with pytest.raises(ValueError):
            Hive.parse("HKEY_USERS")


@pytest.mark.unit
class TestRegistryEntry:
    def test_default_value_names_collapse_to_empty(self):
        """Test default value names collapse to the empty name."""
        a = RegistryEntry(path=r"Software\Test", name="(Default)", value="x", type="String")
        b = RegistryEntry(path=r"Software\Test", name="@", value="x", type="String")
        assert a.name == b.name == ""
        assert a.is_default
        assert a.display_name == "(Default)"
        assert a == b

    def test_path_normalization(self):
        """Test key path normalization."""
        e = RegistryEntry(path="\\Software//Test\\\\Sub\\", name="A", value=1, type=ValueType.DWORD)
        assert e.path == r"Software\Test\Sub"
        assert e.key_path == r"HKEY_LOCAL_MACHINE\Software\Test\Sub"

    def test_empty_path_rejected(self):
        """Test an empty key path is rejected."""
        with pytest.raises(ValueError):
            RegistryEntry(path="", name="A", value=1, type=ValueType.DWORD)

    def test_frozen(self):
        """Test entries are immutable."""
        e = RegistryEntry(path="Software", name="A", value=1, type=ValueType.DWORD)
        with pytest.raises(AttributeError):
            e.value = 2  # type: ignore[misc]

    def test_from_mapping_with_hive_prefix(self):
        """Test from_mapping reads the hive from the path prefix."""
        e = RegistryEntry.from_mapping({"path": r"HKCU:\Software\Test", "name": "Enabled", "value": 1})
        assert e.hive is Hive.CURRENT_USER
        assert e.path == r"Software\Test"
        assert e.type is ValueType.DWORD
        assert e.to_dict() == {
            "Path": r"Software\Test",
            "Name": "Enabled",
            "Value": 1,
            "Type": "DWord",
            "Hive": "CurrentUser",
        }

    def test_multistring_to_dict_is_a_list(self):
        """Test multi-strings serialize as lists."""
        e = RegistryEntry(path="Software", name="M", value=["a", "b"], type=ValueType.MULTI_STRING)
        assert e.value == ("a", "b")
        assert e.to_dict()["Value"] == ["a", "b"]


@pytest.mark.unit
class TestCoercion:
    def test_negative_dword_is_masked(self):
        """Test a negative DWORD is stored as two's complement."""
        assert coerce_value(ValueType.DWORD, -1) == 0xFFFFFFFF

    def test_dword_out_of_range(self):
        """Test an out-of-range DWORD is rejected."""
        with pytest.raises(ValueError):
            coerce_value(ValueType.DWORD, 0x1_0000_0000)

    def test_dword_from_hex_string(self):
        """Test a DWORD from a hex string."""
        assert coerce_value(ValueType.DWORD, "0x2a") == 42

    def test_binary_from_hex_string(self):
        """Test binary from a hex string."""
        assert coerce_value(ValueType.BINARY, "01,02 ff") == b"\x01\x02\xff"

    def test_split_hive_path_without_hive(self):
        """Test splitting a path without a hive prefix."""
        assert split_hive_path(r"Software\X") == (None, r"Software\X")
        assert split_hive_path(r"HKEY_CURRENT_USER\Software\X") == (Hive.CURRENT_USER, r"Software\X")


def _entry(name="A"):
    return RegistryEntry(path=r"Software\Test", name=name, value=1, type=ValueType.DWORD)


@pytest.mark.unit
class TestResults:
    def test_reconciliation_counts(self):
        """Test reconciliation bucket counts."""
        r = ReconciliationResult()
        r.record(EntryOutcome(_entry("a"), Action.CREATED, applied=True, message="made a"))
        r.record(EntryOutcome(_entry("b"), Action.UNCHANGED))
        r.record(EntryOutcome(_entry("c"), Action.FAILED, error="boom"))
        assert (r.entries_created, r.entries_updated, r.entries_unchanged, r.entries_failed) == (1, 0, 1, 1)
        assert r.total_entries == 3
        assert not r.all_entries_processed
        assert not r.has_correct_values
        assert r.messages == ["made a"]

    def test_check_only_drift_is_not_correct(self):
        """Test check-only drift is not correct."""
        r = ReconciliationResult(check_only=True)
        r.record(EntryOutcome(_entry(), Action.UPDATED))
        assert not r.has_correct_values

    def test_check_only_clean_is_correct(self):
        """Test a clean check-only run is correct."""
        r = ReconciliationResult(check_only=True)
        r.record(EntryOutcome(_entry(), Action.UNCHANGED))
        assert r.has_correct_values

    def test_apply_without_failures_is_correct(self):
        """Test an apply without failures is correct."""
        r = ReconciliationResult()
        r.record(EntryOutcome(_entry(), Action.UPDATED, applied=True))
        assert r.has_correct_values

    def test_bucket_mismatch_rejected(self):
        """Test an outcome for the wrong result type is rejected."""
        with pytest.raises(ValueError):
            ReconciliationResult().record(EntryOutcome(_entry(), Action.REMOVED))

    def test_removal_and_existence_buckets(self):
        """Test removal and existence buckets."""
        rm = RemovalResult()
        rm.record(EntryOutcome(_entry(), Action.SKIPPED))
        assert rm.entries_skipped == 1 and rm.all_entries_processed

        ex = ExistenceResult()
        ex.record(EntryOutcome(_entry(), Action.PRESENT))
        assert ex.all_present
        ex.record(EntryOutcome(_entry("b"), Action.MISSING))
        assert not ex.all_present

    def test_to_dict_shape(self):
        """Test the result dict shape."""
        r = ReconciliationResult(check_only=True)
        r.record(EntryOutcome(_entry(), Action.CREATED, message="would create"))
        d = r.to_dict()
        assert d["kind"] == "ReconciliationResult"
        assert d["counts"] == {"created": 1, "updated": 0, "unchanged": 0, "failed": 0}
        assert d["created"][0]["entry"]["Name"] == "A"
        assert d["has_correct_values"] is False
