"""
Parva 0.1 Target Tests
======================

Assembles a complete Parva program and checks every word, then covers
the pseudo-instructions, register classes and string directives.
"""

import pytest


BINARY_TO_DECIMAL_SOURCE = r"""
lw x0, value
li x1, 0

dec_to_bin_loop:
	lw x4, ten_powers(x1)
	beqz x4, end_dec_to_bin_loop
	lw x3, ten_divisors(x1)
	mulhu x3, x0, x3
	srli x3, x3, 1 # x3 = digit of result
	sw x3, result_string(x1)
	mulu x3, x3, x4
	sub x0, x0, x3
	addi x1, x1, 1
	b dec_to_bin_loop
end_dec_to_bin_loop:

sw x0, result_string(x1)
li x0, -1
li x6, 1 # cursor x
li x7, 1 # cursor y
sw x0, 0b01_0100_000000(upper) # gpu clear screen

skip_zeroes:
	addi x0, x0, 1
	lw x1, result_string(x0)
	beqz x1, skip_zeroes
print_loop:
	sd x67, 0b01_0000_000000(upper) # gpu move cursor
	lw x1, result_string(x0)
	bltz x1, end_print_loop
	slli x1, x1, 1
	lw x2, char_pixels_upper(x1)
	lw x3, char_pixels_lower(x1)
	sd x23, 0b01_0010_000000(upper) # gpu print char
	addi x6, x6, 4
	addi x0, x0, 1
	b print_loop
end_print_loop:

sd x01, 0b01_0011_000000(upper) # gpu show buffer
wfi

ten_powers:
.data 10000000
.data 1000000
.data 100000
.data 10000
.data 1000
.data 100
.data 10
.data 0

ten_divisors:
.data 0x000004 # 10000000
.data 0x000022 # 1000000
.data 0x000150 # 100000
.data 0x000d1c # 10000
.data 0x008313 # 1000
.data 0x051eb9 # 100
.data 0x333334 # 10

char_pixels_upper:
.data 0b111000_101000_101000_101000 # 0
char_pixels_lower:
.data 0b111000_000000_000000_000000

.data 0b001000_001000_001000_001000 # 1
.data 0b001000_000000_000000_000000

.data 0b111000_001000_111000_100000 # 2
.data 0b111000_000000_000000_000000

.data 0b111000_001000_111000_001000 # 3
.data 0b111000_000000_000000_000000

.data 0b101000_101000_111000_001000 # 4
.data 0b001000_000000_000000_000000

.data 0b111000_100000_111000_001000 # 5
.data 0b111000_000000_000000_000000

.data 0b111000_100000_111000_101000 # 6
.data 0b111000_000000_000000_000000

.data 0b111000_001000_001000_010000 # 7
.data 0b010000_000000_000000_000000

.data 0b111000_101000_111000_101000 # 8
.data 0b111000_000000_000000_000000

.data 0b111000_101000_111000_001000 # 9
.data 0b001000_000000_000000_000000
result_string:
.repeat 0 8
.data -1

value:
.data 69420
"""

BINARY_TO_DECIMAL_EXPECTED = [
    0x84004c, 0x041000, 0x80c020, 0xc44009, 0x80b028, 0x2e3600, 0x31b001, 0x90b043,
    0x0fb800, 0x180600, 0x009001, 0xc00ff7, 0x908043, 0x040fff, 0x046001, 0x047001,
    0x958500, 0x000001, 0x801043, 0xc41ffe, 0xb5e400, 0x801043, 0xf08008, 0x209001,
    0x80a02f, 0x80b030, 0xb5a480, 0x036004, 0x000001, 0xc00ff7, 0xb584c0, 0xc00000,
    0x989680, 0x0f4240, 0x0186a0, 0x002710, 0x0003e8, 0x000064, 0x00000a, 0x000000,
    0x000004, 0x000022, 0x000150, 0x000d1c, 0x008313, 0x051eb9, 0x333334, 0xe28a28,
    0xe00000, 0x208208, 0x200000, 0xe08e20, 0xe00000, 0xe08e08, 0xe00000, 0xa28e08,
    0x200000, 0xe20e08, 0xe00000, 0xe20e28, 0xe00000, 0xe08210, 0x400000, 0xe28e28,
    0xe00000, 0xe28e08, 0x200000, 0x000000, 0x000000, 0x000000, 0x000000, 0x000000,
    0x000000, 0x000000, 0x000000, 0xffffff, 0x010f2c,
]


# =============================================================================
# Program Tests
# =============================================================================

class TestParvaPrograms:
    """A whole program assembles to known machine code."""

    def test_binary_to_decimal(self, parva, assemble_words):
        """Number printing routine with GPU output and lookup tables."""
        assert assemble_words(parva, BINARY_TO_DECIMAL_SOURCE) == BINARY_TO_DECIMAL_EXPECTED

    def test_every_instruction_is_one_word(self, parva):
        result = parva.assemble(BINARY_TO_DECIMAL_SOURCE)
        addresses = [line.address for line in result.instructions]
        assert addresses == list(range(len(BINARY_TO_DECIMAL_EXPECTED)))


# =============================================================================
# Pseudo-Instruction Tests
# =============================================================================

class TestParvaPseudoInstructions:
    """li, j, b and friends rewrite into real instructions."""

    @pytest.mark.parametrize("source,expected", [
        ("li t0, 5", [0x044005]),
        ("li t0, -1", [0x044FFF]),
        ("li t0, 'A'", [0x044041]),
        ("li a1, 0x123456", [0x147123, 0x63F456]),
        ("nop", [0x000000]),
        ("wfi", [0xC00000]),
    ])
    def test_expansion(self, parva, assemble_words, source, expected):
        assert assemble_words(parva, source) == expected

    def test_li_upper_half_of_immediate_range(self, parva, assemble_words):
        """Values that do not fit addi's signed immediate use lui + ori."""
        assert len(assemble_words(parva, "li t0, 2048")) == 2
        assert len(assemble_words(parva, "li t0, 2047")) == 1

    def test_li_out_of_range(self, parva):
        result = parva.assemble("li t0, 0x1000000")
        assert result.errors[0].message == (
            "Value 16777216 out of range for 24-bit unsigned integer"
        )

    def test_li_records_expansion(self, parva):
        """Both halves of a long li point back at the original line."""
        result = parva.assemble("li a1, 0x123456")
        sources = [line.source for line in result.instructions]
        assert [s.instruction_text for s in sources] == ["li a1, 0x123456"] * 2
        assert [s.real_instruction for s in sources] == ["lui a1, 291", "ori a1, a1, 1110"]

    def test_relative_branch(self, parva, assemble_words):
        """Branches encode the signed distance to their target."""
        assert assemble_words(parva, "loop:\nnop\nbne t0, t1, loop") == [0x000000, 0xCA5FFF]

    def test_jump_to_label_offset(self, parva, assemble_words):
        """Jumps are absolute and accept (label-n)."""
        assert assemble_words(parva, "nop\nnop\nhere:\nj (here-1)") == [0, 0, 0xF44001]


# =============================================================================
# Symbolic Immediate Tests
# =============================================================================

class TestParvaSymbolicImmediates:
    """Constants and labels get the same range checks as literals."""

    @pytest.mark.parametrize("value", [2047, -2048, -5])
    def test_constant_matches_literal(self, parva, assemble_words, value):
        constant = assemble_words(parva, f".eq N, {value}\naddi t0, t0, N")
        assert constant == assemble_words(parva, f"addi t0, t0, {value}")

    @pytest.mark.parametrize("source", [
        "addi t0, t0, 4000",
        ".eq BIG, 4000\naddi t0, t0, BIG",
        ".eq BIG, 4000\nlw t0, BIG(zero)",
    ])
    def test_signed_field_out_of_range(self, parva, source):
        """4000 does not fit a signed 12-bit immediate, however it is written."""
        result = parva.assemble(source)
        assert [e.message for e in result.errors] == [
            "Value 4000 out of range for 12-bit signed integer"
        ]
        assert result.instructions == []


# =============================================================================
# I/O Tests
# =============================================================================

class TestParvaIo:
    """The GPU commands from the reference text."""

    def test_documented_gpu_commands_assemble(self, parva):
        commands = [
            line.strip().split("  ")[0].replace("xAB", "x45")
            for line in parva.documentation.splitlines()
            if line.strip().startswith(("sd ", "sw "))
        ]
        assert len(commands) == 4
        result = parva.assemble("\n".join(commands))
        assert result.errors == []
        assert len(result.instructions) == 4

    def test_zero_is_not_a_data_source(self, parva):
        result = parva.assemble("sw zero, 0b010011_000000(upper)")
        assert result.errors[0].message == (
            "Expected basic register, got special register 'zero'"
        )


# =============================================================================
# Register Tests
# =============================================================================

class TestParvaRegisters:
    """Each operand position accepts one register class."""

    @pytest.mark.parametrize("source,message", [
        ("add t0, x01, t1", "Expected word register, got double register 'x01'"),
        ("ld x1, 0(sp)", "Expected double register, got word register 'x1'"),
        ("addi pc, t0, 1", "Expected basic register, got special register 'pc'"),
        ("add t0, t1, q9", "'q9' is not a valid register"),
    ])
    def test_rejected(self, parva, source, message):
        result = parva.assemble(source)
        assert [e.message for e in result.errors] == [message]

    def test_aliases(self, parva, assemble_words):
        """Register aliases encode like their numbered names."""
        assert assemble_words(parva, "add a0, sp, t1") == assemble_words(parva, "add x6, x1, x5")


# =============================================================================
# String Tests
# =============================================================================

class TestParvaStrings:
    """Strings and character encodings."""

    def test_ascii_string(self, parva):
        """Each character takes one word."""
        result = parva.assemble('.string "Hi"')
        assert [int(line.bits, 2) for line in result.instructions] == [72, 105]
        assert result.instructions[0].source.real_instruction == "(string)"

    def test_terminal_encoding(self, parva, assemble_words):
        source = '.string_encoding terminal\n.string "12+"'
        assert assemble_words(parva, source) == [2, 3, 11]

    def test_missing_character(self, parva):
        result = parva.assemble('.string_encoding terminal\n.string "A"')
        assert result.errors[0].message == (
            "The character 'A' does not exist in the encoding 'Terminal'"
        )

    def test_unknown_encoding(self, parva):
        result = parva.assemble(".string_encoding ebcdic")
        assert result.errors[0].message == "Unknown string encoding 'ebcdic'"
