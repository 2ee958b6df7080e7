"""Tests for the bytecode risk scanner."""

import pytest

from auditor.errors import DataIntegrityError
from scanner.bytecode import BytecodeRiskVerdict, normalize_bytecode, scan


class TestScan:

    def test_push_data_is_skipped_then_selfdestruct_is_reachable(self):
        assert scan(bytes.fromhex("6000ff")) == BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE

    def test_selfdestruct_after_stop_is_dead_code(self):
        assert scan(bytes.fromhex("00ff")) == BytecodeRiskVerdict.SAFE

    def test_jumpdest_makes_following_code_reachable(self):
        assert scan(bytes.fromhex("005bff")) == BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE

    def test_selfdestruct_byte_inside_push32_is_data(self):
        code = bytes([0x7F]) + bytes([0xFF] * 32) + bytes([0x00])
        assert scan(code) == BytecodeRiskVerdict.SAFE

    def test_truncated_trailing_push32_is_bounds_safe(self):
        code = bytes.fromhex("6001") + bytes([0x7F]) + bytes([0xFF] * 5)
        assert scan(code) == BytecodeRiskVerdict.SAFE

    def test_delegatecall_is_reported_when_no_selfdestruct(self):
        assert scan(bytes.fromhex("6000f400")) == BytecodeRiskVerdict.DELEGATECALL_PRESENT

    def test_delegatecall_in_dead_code_is_ignored(self):
        assert scan(bytes.fromhex("00f4")) == BytecodeRiskVerdict.SAFE

    def test_selfdestruct_wins_over_delegatecall(self):
        assert scan(bytes.fromhex("f4ff")) == BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE

    @pytest.mark.parametrize("halting", ["f3", "fd", "fe"])
    def test_other_halting_opcodes_hide_selfdestruct(self, halting):
        assert scan(bytes.fromhex(halting + "ff")) == BytecodeRiskVerdict.SAFE

    def test_empty_code_is_safe(self):
        assert scan(b"") == BytecodeRiskVerdict.SAFE

    def test_accepts_hex_string(self):
        assert scan("0x6000ff") == BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE


class TestNormalizeBytecode:

    def test_none_is_empty(self):
        assert normalize_bytecode(None) == b""

    def test_bare_prefix_is_empty(self):
        assert normalize_bytecode("0x") == b""

    def test_bytes_pass_through(self):
        assert normalize_bytecode(bytearray(b"\x60\x00")) == b"\x60\x00"

    def test_odd_length_hex_drops_dangling_nibble(self):
        assert normalize_bytecode("0x6000ff0") == b"\x60\x00\xff"
        assert scan("0x6000ff0") == BytecodeRiskVerdict.SELFDESTRUCT_REACHABLE

    def test_single_nibble_is_empty(self):
        assert scan("0x6") == BytecodeRiskVerdict.SAFE

    def test_non_hex_is_data_integrity_error(self):
        with pytest.raises(DataIntegrityError):
            normalize_bytecode("0xzz")
