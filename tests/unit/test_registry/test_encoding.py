# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for REG_* byte encoding and value comparison."""
from __future__ import annotations

import pytest

from winregkit.registry.encoding import (
    decode_value,
    encode_value,
    escape_reg_string,
    parse_hex_list,
    unescape_reg_string,
    value_exists,
    values_equal,
)
from winregkit.registry.model import ValueType


@pytest.mark.unit
class TestRawEncoding:
    def test_reg_sz_is_nul_terminated_utf16(self):
        """Test REG_SZ encodes as NUL-terminated UTF-16LE."""
        assert encode_value(ValueType.STRING, "ab") == b"a\x00b\x00\x00\x00"

    def test_reg_multi_sz_double_terminator(self):
        """Test REG_MULTI_SZ ends with a double NUL."""
        raw = encode_value(ValueType.MULTI_STRING, ["a", "b"])
        assert raw == "a\0b\0\0".encode("utf-16le")
        assert decode_value(7, raw) == (("a", "b"), ValueType.MULTI_STRING)

    def test_dword_and_qword_little_endian(self):
        """Test DWORD and QWORD are little-endian."""
        assert encode_value(ValueType.DWORD, 1) == b"\x01\x00\x00\x00"
        assert encode_value(ValueType.QWORD, 0x0102) == b"\x02\x01" + b"\x00" * 6

    def test_decode_sz_stops_at_first_nul(self):
        """Test REG_SZ decoding stops at the first NUL."""
        raw = "abc\0junk".encode("utf-16le")
        assert decode_value(1, raw) == ("abc", ValueType.STRING)

    def test_decode_unknown_type(self):
        """Test unknown type codes are rejected."""
        with pytest.raises(ValueError):
            decode_value(5, b"\x00\x00\x00\x01")

    def test_encode_none_rejected(self):
        """Test encoding None is rejected."""
        with pytest.raises(ValueError):
            encode_value(ValueType.STRING, None)


@pytest.mark.unit
class TestRegText:
    def test_parse_hex_list_ignores_continuations(self):
        """Test hex lists ignore continuation markers."""
        assert parse_hex_list("01,02,\\\n  ff") == b"\x01\x02\xff"

    def test_parse_hex_list_empty(self):
        """Test an empty hex list."""
        assert parse_hex_list("") == b""

    def test_parse_hex_list_bad_byte(self):
        """Test a bad hex byte is rejected."""
        with pytest.raises(ValueError):
            parse_hex_list("01,zz")

    def test_escaping(self):
        """Test .reg string escaping."""
        raw = r'C:\Program Files\"App"'
        assert unescape_reg_string(escape_reg_string(raw)) == raw
        assert escape_reg_string('a\\b"c') == 'a\\\\b\\"c'


@pytest.mark.unit
class TestComparison:
    def test_empty_string_does_not_exist(self):
        """Test the empty string counts as absent."""
        assert not value_exists("")
        assert not value_exists(None)
        assert value_exists(0)
        assert value_exists(b"")

    def test_multistring_elementwise(self):
        """Test multi-strings compare element-wise."""
        assert values_equal(ValueType.MULTI_STRING, ["a", "b"], ("a", "b"))
        assert not values_equal(ValueType.MULTI_STRING, ["a", "b"], ["b", "a"])

    def test_multistring_against_plain_string_is_unequal(self):
        """Test a multi-string never equals a plain string."""
        assert not values_equal(ValueType.MULTI_STRING, "a", ["a"])

    def test_binary_bytes(self):
        """Test binary values compare as bytes."""
        assert values_equal(ValueType.BINARY, bytearray(b"\x01\x02"), b"\x01\x02")
        assert not values_equal(ValueType.BINARY, "0102", b"\x01\x02")

    def test_numbers(self):
        """Test numeric comparison coerces strings."""
        assert values_equal(ValueType.DWORD, 1, "1")
        assert not values_equal(ValueType.DWORD, 0, 1)

    def test_uncoercible_current_is_unequal(self):
        """Test an uncoercible current value is unequal."""
        assert not values_equal(ValueType.DWORD, "not-a-number", 1)
