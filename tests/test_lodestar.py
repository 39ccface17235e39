"""
Lodestar Target Tests
=====================

Tests for the Lodestar syntax: case folding, the '#' rules for
immediates and the reduced directive set.
"""

import pytest


class TestLodestarEncoding:
    """Lodestar shares the V8 encoding."""

    @pytest.mark.parametrize("source,expected", [
        ("lda #$10", [0x7810]),
        ("LDB #5", [0x7905]),
        ("lda b", [0xC1]),
        ("lda (10)", [0xA80A]),
        ("lda 10, a", [0x980A]),
        ("sta 10, a", [0x900A]),
        ("adc c, a", [0x12]),
        ("ror b", [0x69]),
        ("push x", [0xB6]),
        ("jmp #$20", [0x0220]),
        ("lda #-128", [0x7880]),
        ("hlt", [0x00]),
    ])
    def test_instruction(self, lodestar, assemble_words, source, expected):
        assert assemble_words(lodestar, source) == expected

    def test_bare_jump_is_indirect(self, lodestar, assemble_words):
        """jmp with a bare operand jumps through a vector."""
        assert assemble_words(lodestar, "vector:\njmp vector") == [0x0300]

    def test_label_immediate(self, lodestar, assemble_words):
        """Conditional jumps take labels without '#'."""
        assert assemble_words(lodestar, "nop\nloop:\njz loop") == [0x01, 0x0401]

    def test_labels_case_folded(self, lodestar):
        """Labels are folded to lower case with the rest of the line."""
        result = lodestar.assemble("Start:\njz START")
        assert result.ok
        assert result.labels == ["start"]


class TestLodestarRestrictions:
    """Stricter syntax than the V8."""

    def test_label_with_hash_rejected(self, lodestar):
        """Labels used as immediates must not carry '#'."""
        result = lodestar.assemble("loop:\nlda #loop")
        assert result.errors[0].message == "Unknown instruction: lda #loop"

    def test_value_range(self, lodestar):
        result = lodestar.assemble("lda #256")
        assert result.errors[0].message == "Value 256 out of range for 8-bit unsigned integer"

    def test_no_constants(self, lodestar):
        """.eq is not a Lodestar directive."""
        result = lodestar.assemble(".eq size 4")
        assert result.errors[0].message == "Unknown instruction: .eq size 4"

    def test_data_and_address(self, lodestar):
        result = lodestar.assemble(".address $10\n.data 1, 2")
        assert [(line.address, int(line.bits, 2)) for line in result.instructions] == [
            (16, 1),
            (17, 2),
        ]

    def test_no_emulator(self, lodestar):
        assert not lodestar.has_emulator
