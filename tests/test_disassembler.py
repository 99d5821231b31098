"""
Disassembler Unit Tests
=======================

Tests for the opcode table, mnemonic rendering and buffer disassembly.

Copyright (c) 2025 Hugo José Pinto & Contributors
"""

import pytest
from chip8_emu.emulator import Chip8CPU, OPCODE_TABLE, disassemble, disassemble_bytes, match_opcode
from chip8_emu.emulator.cpu import VARIANT_HANDLERS
from chip8_emu.emulator.decode import DisassembledInstruction


# =============================================================================
# Opcode Table Tests
# =============================================================================

class TestOpcodeTable:
    """Consistency checks over the decode table."""

    def test_patterns_fit_masks(self):
        for spec in OPCODE_TABLE:
            assert spec.pattern & spec.mask == spec.pattern, spec.handler

    def test_each_pattern_matches_its_own_entry(self):
        """First-match lookup finds every entry from its own pattern."""
        for spec in OPCODE_TABLE:
            assert match_opcode(spec.pattern) is spec

    def test_handlers_exist(self):
        for spec in OPCODE_TABLE:
            assert callable(getattr(Chip8CPU, spec.handler))
        for overrides in VARIANT_HANDLERS.values():
            for base, replacement in overrides.items():
                assert hasattr(Chip8CPU, base)
                assert hasattr(Chip8CPU, replacement)

    def test_high_nibble_in_mask(self):
        for spec in OPCODE_TABLE:
            assert spec.mask & 0xF000 == 0xF000


# =============================================================================
# Mnemonic Tests
# =============================================================================

class TestDisassemble:
    """Test single-word rendering."""

    @pytest.mark.parametrize("word,text", [
        (0x0000, "NOP"),
        (0x00E0, "CLS"),
        (0x00EE, "RET"),
        (0x1234, "JP $234"),
        (0x2ABC, "CALL $ABC"),
        (0x3A0F, "SE VA, $0F"),
        (0x4B10, "SNE VB, $10"),
        (0x5120, "SE V1, V2"),
        (0x6008, "LD V0, $08"),
        (0x7FFF, "ADD VF, $FF"),
        (0x8120, "LD V1, V2"),
        (0x8124, "ADD V1, V2"),
        (0x8125, "SUB V1, V2"),
        (0x8126, "SHR V1, V2"),
        (0x8127, "SUBN V1, V2"),
        (0x812E, "SHL V1, V2"),
        (0x9340, "SNE V3, V4"),
        (0xA123, "LD I, $123"),
        (0xB300, "JP V0, $300"),
        (0xC5FF, "RND V5, $FF"),
        (0xD015, "DRW V0, V1, 5"),
        (0xE29E, "SKP V2"),
        (0xE3A1, "SKNP V3"),
        (0xF107, "LD V1, DT"),
        (0xF40A, "LD V4, K"),
        (0xF015, "LD DT, V0"),
        (0xF618, "LD ST, V6"),
        (0xF11E, "ADD I, V1"),
        (0xF129, "LD F, V1"),
        (0xF733, "LD B, V7"),
        (0xF955, "LD [I], V9"),
        (0xF265, "LD V2, [I]"),
    ])
    def test_mnemonics(self, word, text):
        assert disassemble(word) == text

    @pytest.mark.parametrize("word", [
        0x0123,  # machine-code call
        0x00FF,
        0x5121,  # 5xy0 requires a zero low nibble
        0x8128,
        0x9341,
        0xE200,
        0xF0FF,
        0xFFFF,
    ])
    def test_invalid_words(self, word):
        assert disassemble(word) == f"DW ${word:04X}"
        assert match_opcode(word) is None


# =============================================================================
# Buffer Disassembly Tests
# =============================================================================

class TestDisassembleBytes:
    """Test disassembly of byte buffers."""

    def test_addresses_and_validity(self):
        data = bytes([0x60, 0x08, 0xD0, 0x15, 0xFF, 0xFF])
        result = disassemble_bytes(data)
        assert [instr.address for instr in result] == [0x200, 0x202, 0x204]
        assert [instr.valid for instr in result] == [True, True, False]
        assert result[1].opcode == 0xD015

    def test_start_address(self):
        result = disassemble_bytes(bytes([0x00, 0xE0]), start_address=0x300)
        assert result[0].address == 0x300

    def test_count(self):
        data = bytes([0x00, 0xE0] * 10)
        assert len(disassemble_bytes(data, count=3)) == 3
        assert disassemble_bytes(data, count=0) == []

    def test_trailing_odd_byte(self):
        result = disassemble_bytes(bytes([0x00, 0xE0, 0xAB]))
        assert len(result) == 2
        last = result[1]
        assert last.address == 0x202
        assert last.size == 1
        assert last.valid is False
        assert last.text == "DB $AB"
        assert str(last).startswith("$0202: AB ")
        assert str(last).endswith("DB $AB")

    def test_empty(self):
        assert disassemble_bytes(b"") == []

    def test_listing_line(self):
        instr = DisassembledInstruction(0x200, 0x6008, "LD V0, $08")
        assert str(instr) == "$0200: 60 08  LD V0, $08"
