"""
V8 Target Tests
===============

Assembles complete V8 programs and checks every encoded word, plus
the individual addressing modes.
"""

import pytest


PIXELS_SOURCE = """
\t\t.address $80
\t\treset:
\t\tLDB #$80
\t\tLDX #$00
\t\tJMP idle
\t\t
\t\tint:
\t\tLDD $00
\t\tLDC #$08
\t\tdrawLoop:
\t\tLDA D
\t\tAND B,A
\t\tJZ noPixel
\t\tSTX $00
\t\tnoPixel:
\t\tROR B
\t\tINC X
\t\tDEC C
\t\tJNZ drawLoop
\t\tRTI
\t\t
\t\tidle:
\t\tHLT
\t\tJMP idle
\t\t
\t\t.address $FE
\t\t.data int
\t\t.data reset
"""

PIXELS_EXPECTED = [
    0x7980, 0x7e00, 0x0296, 0x8b00, 0x7a08, 0xc3, 0x41, 0x0490, 0x8600,
    0x69, 0x1e, 0x2a, 0x058a, 0x0b, 0x00, 0x0296, 0x86, 0x80,
]

MEMORY_COPY_SOURCE = """
\t\t; Bank switch: destroys A, B
\t\t; ROM: bank number is stored in D's high nibble, push return address, clear carry, use jmp instead of jsr
\t\t; RAM: bank number is stored in D's low nibble, set carry

\t\tLDB #$F0
\t\tJNC bankNoCarry
\t\tNOT B
\t\tbankNoCarry:
\t\tLDA $00
\t\tAND B,A
\t\tOR D,A
\t\tSTA $00
\t\tRET

\t\t; Memory copy: A=start, B=offset, length=C, destroys D
\t\tcopyLoop:
\t\tLDD $00,A
\t\tADC B,A
\t\tSTD $00,A
\t\tDEC C
\t\tJNZ copyLoop
\t\tRET

\t\t; Memory copy to screen: A=start, destroys C, D, screen address register
\t\tLDD #$80
\t\tLDC D
\t\tSTD $03
\t\tscreenCopyLoop:

\t\tLDD $00,A
\t\tSTD $02
\t\tDEC C
\t\tJNZ screenCopyLoop
\t\tRET
"""

MEMORY_COPY_EXPECTED = [
    0x79f0, 0x0705, 0x31, 0x8800, 0x41, 0x4b, 0x8000, 0x0a, 0x9b00, 0x11, 0x9300,
    0x2a, 0x050c, 0x0a, 0x7b80, 0xd3, 0x8303, 0x9b00, 0x8302, 0x2a, 0x051a, 0x0a,
]


# =============================================================================
# Program Tests
# =============================================================================

class TestV8Programs:
    """Whole programs assemble to known machine code."""

    def test_pixels(self, v8, assemble_words):
        """Interrupt-driven pixel drawing with vectors at $FE/$FF."""
        assert assemble_words(v8, PIXELS_SOURCE) == PIXELS_EXPECTED

    def test_pixels_addresses(self, v8):
        """The vectors land at the top of memory."""
        result = v8.assemble(PIXELS_SOURCE)
        assert [line.address for line in result.instructions[-2:]] == [0xFE, 0xFF]
        assert result.instructions[0].address == 0x80

    def test_memory_copy(self, v8, assemble_words):
        """Bank switching and copy loops."""
        assert assemble_words(v8, MEMORY_COPY_SOURCE) == MEMORY_COPY_EXPECTED


# =============================================================================
# Addressing Mode Tests
# =============================================================================

class TestV8Encoding:
    """Test each addressing mode."""

    @pytest.mark.parametrize("source,expected", [
        ("LDA B", [0xC1]),
        ("LDA #1", [0x7801]),
        ("lda #1", [0x7801]),
        ("LDA $10", [0x8810]),
        ("LDA $10,A", [0x9810]),
        ("LDA ($10)", [0xA810]),
        ("STB ($10)", [0xA110]),
        ("ADC C,A", [0x12]),
        ("INC Y", [0x1F]),
        ("PUSH X", [0xB6]),
        ("PULL A", [0xB8]),
        ("JMP ($20)", [0x0320]),
        ("JSR $20", [0x0820]),
        ("SEC", [0x0C]),
        ("LDA #-1", [0x78FF]),
    ])
    def test_instruction(self, v8, assemble_words, source, expected):
        assert assemble_words(v8, source) == expected

    def test_invalid_register(self, v8):
        """PUSH and PULL reject non-register operands."""
        result = v8.assemble("PUSH label")
        assert result.errors[0].message == "'label' is not a valid register"

    def test_no_immediate_store(self, v8):
        result = v8.assemble("STA #1")
        assert result.errors[0].message == "Unknown instruction: STA #1"

    def test_target_geometry(self, v8):
        assert v8.word_size == 8
        assert v8.max_words_per_instruction == 2
        assert v8.has_emulator
