# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for test_reg_key_exists."""
from __future__ import annotations

import pytest

from winregkit.registry.backend import MemoryBackend
from winregkit.registry.model import RegistryEntry, ValueType
from winregkit.registry.reconcile import test_reg_key_exists as check_exists


def _e(name, value, vtype=ValueType.STRING, path=r"Software\Test"):
    return RegistryEntry(path=path, name=name, value=value, type=vtype, hive="HKCU")


@pytest.mark.unit
class TestExists:
    def test_buckets(self, logger):
        """Test present, missing and mismatched buckets."""
        backend = MemoryBackend([_e("A", "x"), _e("B", "old"), _e("Empty", "")], logger=logger)
        r = check_exists(
            [_e("A", "x"), _e("B", "new"), _e("Empty", "v"), _e("Z", "z"), _e("K", "k", path=r"Software\Missing")],
            backend=backend,
            logger=logger,
        )
        assert [o.entry.name for o in r.present] == ["A"]
        assert [o.entry.name for o in r.mismatched] == ["B"]
        assert sorted(o.entry.name for o in r.missing) == ["Empty", "K", "Z"]
        assert not r.all_present

    def test_presence_only(self, logger):
        """Test presence-only checks ignore values."""
        backend = MemoryBackend([_e("B", "old")], logger=logger)
        r = check_exists([_e("B", "new")], compare_values=False, backend=backend)
        assert r.all_present

    def test_multistring_compared_elementwise(self, logger):
        """Test multi-strings are compared element-wise."""
        backend = MemoryBackend([_e("M", ["a", "b"], ValueType.MULTI_STRING)], logger=logger)
        same = check_exists([_e("M", ("a", "b"), ValueType.MULTI_STRING)], backend=backend)
        other = check_exists([_e("M", ["b", "a"], ValueType.MULTI_STRING)], backend=backend)
        assert same.all_present
        assert other.count("mismatched") == 1
