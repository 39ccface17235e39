"""
Bitzzy Target Tests
===================

Tests for Bitzzy instruction encoding, operand rewriting and the
register restrictions of the conditional jumps.
"""

import pytest

from lbpasm.assembler.memory import build_memory_image


def _bytes(spec, source: str) -> list[int]:
    result = spec.assemble(source)
    assert result.ok, [str(e) for e in result.errors]
    image = build_memory_image(result.lines, spec.word_size)
    return [image[address] for address in sorted(image)]


# =============================================================================
# Encoding Tests
# =============================================================================

class TestBitzzyEncoding:
    """Test instruction lengths and operand layout."""

    @pytest.mark.parametrize("source,expected", [
        ("HLT", [0x00]),
        ("NOP", [0x05]),
        ("REM Z", [0x0A]),
        ("JMP $1234", [0x10, 0x12, 0x34]),
        ("JMP $1234, X", [0x11, 0x12, 0x34]),
        ("JSR $0010, Z", [0x17, 0x00, 0x10]),
        ("LOD X, #$10", [0x7C, 0x10]),
        ("LOD Y, X", [0x28]),
        ("LOD Z, $0100", [0xC0, 0x01, 0x00]),
        ("LOD X, $0100, Y", [0xA1, 0x01, 0x00]),
        ("LOD Z, $0100, YX", [0xC3, 0x01, 0x00]),
        ("STR Y, $0200, X", [0xB5, 0x02, 0x00]),
        ("STR #1, $0200", [0xD3, 0x02, 0x00, 0x01]),
        ("STR #1, $0200, X", [0xD0, 0x02, 0x00, 0x01]),
        ("STR #1, $0200, YX", [0xD4, 0x02, 0x00, 0x01]),
        ("ADD X, Y", [0x44]),
        ("ADD Y, X", [0x44]),
        ("SUB Y, X", [0x56]),
        ("ADD X, #1", [0x40, 0x01]),
        ("ADD X, #-1", [0x40, 0xFF]),
        ("INC $0300", [0x33, 0x03, 0x00]),
        ("DEC Z", [0x36]),
        ("DJNZ Y, $0000", [0xE1, 0x00, 0x00]),
        ("lsl x", [0x70]),
    ])
    def test_instruction(self, bitzzy, source, expected):
        assert _bytes(bitzzy, source) == expected

    def test_label_operand(self, bitzzy):
        """Labels are encoded as 16-bit big-endian addresses."""
        source = "start:\nNOP\nJMP start\nJMP (start+2)"
        assert _bytes(bitzzy, source) == [0x05, 0x10, 0x00, 0x00, 0x10, 0x00, 0x02]

    def test_program_layout(self, bitzzy):
        """Instruction addresses advance by each instruction's length."""
        source = "LOD X, #$10\nloop:\nDEC X\nJMPEZ X, done\nJMP loop\ndone:\nHLT"
        result = bitzzy.assemble(source)
        assert [line.address for line in result.instructions] == [0, 2, 3, 6, 9]
        assert result.instructions[2].bits == "00100000" + "0000000000001001"
        assert result.instructions[3].bits == "00010000" + "0000000000000010"


# =============================================================================
# Operand Rewriting Tests
# =============================================================================

class TestBitzzyRewriting:
    """Operands in the non-canonical order are rewritten."""

    def test_swap_order(self, bitzzy):
        """SWP Y, X assembles as SWP X, Y."""
        result = bitzzy.assemble("SWP Y, X")
        line = result.instructions[0]
        assert line.bits == "00011000"
        assert line.source.real_instruction == "SWP X, Y"
        assert line.source.instruction_text == "SWP Y, X"

    def test_jump_if_equal_order(self, bitzzy):
        assert _bytes(bitzzy, "JMPEQ Y, X, $0005") == [0x23, 0x00, 0x05]

    def test_jsreq_order(self, bitzzy):
        assert _bytes(bitzzy, "JSREQ Y, X, $0005") == [0x27, 0x00, 0x05]


# =============================================================================
# Restriction Tests
# =============================================================================

class TestBitzzyRestrictions:
    """Conditional jumps only exist for some registers."""

    @pytest.mark.parametrize("source,message", [
        ("JMPEZ Y, $0000", "JMPEZ can only be used with registers X and Z"),
        ("JSREZ Y, $0000", "JSREZ can only be used with registers X and Z"),
        ("JMPGT Y, X, $0000", "JMPGT can only be used with registers X and Y"),
        ("JSRGT X, Z, $0000", "JSRGT can only be used with registers X and Y"),
        ("JSREQ X, Z, $0000", "JSREQ can only be used with registers X and Y"),
    ])
    def test_rejected(self, bitzzy, source, message):
        result = bitzzy.assemble(source)
        assert [e.message for e in result.errors] == [message]

    def test_immediate_out_of_range(self, bitzzy):
        result = bitzzy.assemble("LOD X, #256")
        assert result.errors[0].message == "Value 256 out of range for 8-bit unsigned integer"


# =============================================================================
# Data Tests
# =============================================================================

class TestBitzzyData:
    """Literal data items are bytes, labels are 16-bit addresses."""

    def test_literal_bytes(self, bitzzy):
        assert _bytes(bitzzy, ".data 1, $FF") == [0x01, 0xFF]

    def test_label_words(self, bitzzy):
        source = ".address $1230\ntable:\n.data 5, table"
        assert _bytes(bitzzy, source) == [0x05, 0x12, 0x30]

    def test_label_data_length(self, bitzzy):
        """A label item occupies two words."""
        result = bitzzy.assemble(".data here\nhere:")
        assert result.labels == ["here"]
        assert result.instructions[0].bits == "0000000000000010"
