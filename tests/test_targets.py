"""
Target Registry Tests
=====================

Tests for the architecture registry, memory images and listings.
"""

import pytest

import lbpasm
from lbpasm.assembler.listing import (
    ListingOptions,
    OutputFormat,
    SourceFormat,
    format_errors,
    format_listing,
)
from lbpasm.assembler.memory import build_memory_image, memory_words
from lbpasm.emulator import BitzzyEmulator, ParvaEmulator, V8Emulator
from lbpasm.errors import EmulatorError, UnknownTargetError
from lbpasm.targets import DEFAULT_TARGET, TARGETS, get_target, list_targets


# =============================================================================
# Registry Tests
# =============================================================================

class TestRegistry:
    """Test target lookup."""

    def test_all_targets_registered(self):
        assert list_targets() == ["bitzzy", "v8", "lodestar", "parva_0_1"]

    def test_default_target(self):
        assert DEFAULT_TARGET == "parva_0_1"
        assert get_target(DEFAULT_TARGET).word_size == 24

    def test_unknown_target(self):
        with pytest.raises(UnknownTargetError) as exc_info:
            get_target("z80")
        assert str(exc_info.value) == "Unknown architecture 'z80'"

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            TARGETS["z80"] = TARGETS["v8"]

    def test_package_exports(self):
        """The top-level package re-exports the registry."""
        assert lbpasm.get_target("v8") is TARGETS["v8"]

    @pytest.mark.parametrize("name", ["bitzzy", "v8", "lodestar", "parva_0_1"])
    def test_documentation(self, name):
        """Every target ships reference documentation."""
        assert get_target(name).documentation.strip()

    @pytest.mark.parametrize("name,emulator_type", [
        ("v8", V8Emulator),
        ("bitzzy", BitzzyEmulator),
        ("parva_0_1", ParvaEmulator),
    ])
    def test_create_emulator(self, name, emulator_type):
        """Each call creates a fresh emulator."""
        spec = get_target(name)
        first = spec.create_emulator()
        assert isinstance(first, emulator_type)
        assert spec.create_emulator() is not first

    def test_no_emulator(self):
        with pytest.raises(EmulatorError) as exc_info:
            get_target("lodestar").create_emulator()
        assert str(exc_info.value) == "Architecture 'lodestar' has no emulator"


# =============================================================================
# Memory Image Tests
# =============================================================================

class TestMemoryImage:
    """Test flattening assembled lines into memory."""

    def test_multi_word_instructions(self, bitzzy):
        result = bitzzy.assemble("jmp $1234")
        assert build_memory_image(result.lines, 8) == {0: 0x10, 1: 0x12, 2: 0x34}

    def test_later_write_wins(self, v8):
        """Overlapping instructions keep the last one written."""
        result = v8.assemble("NOP\n.address 0\nHLT")
        assert build_memory_image(result.lines, 8) == {0: 0x00}

    def test_sparse(self, v8):
        result = v8.assemble("NOP\n.address $F0\nRET")
        assert build_memory_image(result.lines, 8) == {0: 0x01, 0xF0: 0x0A}

    def test_memory_words(self):
        """Pairs come out in address order, filtered by start."""
        memory = {5: 50, 1: 10, 3: 30}
        assert memory_words(memory) == [(1, 10), (3, 30), (5, 50)]
        assert memory_words(memory, start=3) == [(3, 30), (5, 50)]


# =============================================================================
# Listing Tests
# =============================================================================

class TestListing:
    """Test listing formats."""

    def test_default_listing(self, v8):
        result = v8.assemble("start:\nLDA #1")
        assert format_listing(result, v8) == "start:\n  0: 01111000 00000001    ; LDA #1"

    def test_hex(self, v8):
        result = v8.assemble("LDA #1")
        options = ListingOptions(machine_code=OutputFormat.HEX, address=OutputFormat.HEX)
        assert format_listing(result, v8, options) == "  00: 78 01    ; LDA #1"

    def test_hide_labels(self, v8):
        result = v8.assemble("start:\nHLT")
        options = ListingOptions(show_labels=False, source=SourceFormat.NONE)
        assert format_listing(result, v8, options) == "  0: 00000000"

    def test_source_formats(self, v8):
        """The inline source can show the line with or without comments."""
        result = v8.assemble("LDA #1 ; load")
        source = ListingOptions(source=SourceFormat.SOURCE)
        comments = ListingOptions(source=SourceFormat.COMMENTS)
        assert format_listing(result, v8, source).endswith("; LDA #1")
        assert format_listing(result, v8, comments).endswith("; LDA #1 ; load")

    def test_instruction_shows_expansion(self, parva):
        """The default shows the instruction actually encoded."""
        result = parva.assemble("li t0, 5")
        options = ListingOptions(machine_code=OutputFormat.DECIMAL)
        assert format_listing(result, parva, options) == "  0:   278533 ; addi t0, zero, 5"

    def test_note_format(self, parva):
        result = parva.assemble("li t0, 5")
        options = ListingOptions(machine_code=OutputFormat.NOTE, address=OutputFormat.NONE,
                                 source=SourceFormat.NONE)
        assert format_listing(result, parva, options) == "  8704.15625 x32"

    def test_format_errors(self, v8):
        result = v8.assemble("FOO\nNOP\nBAR")
        assert format_errors(result.errors) == (
            "Line 1: Unknown instruction: FOO\nLine 3: Unknown instruction: BAR"
        )


# =============================================================================
# Whole-Program Properties
# =============================================================================

SAMPLE_PROGRAMS = {
    "bitzzy": (
        "LOD X, #3\nLOD Z, #0\nloop:\nADD Z, #2\nDJNZ X, loop\n"
        "STR Z, result\nJSR sub\nHLT\nsub:\nRET\nresult:\n.data 0, result"
    ),
    "v8": (
        "LDC #3\nloop:\nINC A\nDEC C\nJNZ loop\nJSR sub\nHLT\n"
        "sub:\nLDB ($20)\nRET\n.address $20\n.data $30, 42"
    ),
    "lodestar": "lda #$10\nloop:\nadc c, a\njz loop\njmp #$20\n.data 1, 2",
    "parva_0_1": (
        "li t0, 0x123456\nloop:\naddi t0, t0, -1\nbeqz t0, loop\ncall sub\nwfi\n"
        'sub:\nret\n.data 1 2 3\n.string "Hi"'
    ),
}


class TestProgramProperties:
    """Properties every target's output holds for a whole program."""

    @pytest.mark.parametrize("name", sorted(SAMPLE_PROGRAMS))
    def test_sample_assembles(self, name):
        result = get_target(name).assemble(SAMPLE_PROGRAMS[name])
        assert result.errors == []
        assert result.instructions

    @pytest.mark.parametrize("name", sorted(SAMPLE_PROGRAMS))
    def test_deterministic(self, name):
        """The same source always gives the same lines and errors."""
        spec = get_target(name)
        source = SAMPLE_PROGRAMS[name] + "\nfrobnicate\nlater:"
        first = spec.assemble(source)
        second = spec.assemble(source)
        assert first.lines == second.lines
        assert first.errors == second.errors
        assert len(first.errors) == 1

    @pytest.mark.parametrize("name", sorted(SAMPLE_PROGRAMS))
    def test_width_invariant(self, name):
        """Instructions are whole words, never longer than the target allows."""
        spec = get_target(name)
        result = spec.assemble(SAMPLE_PROGRAMS[name])
        for line in result.instructions:
            assert len(line.bits) % spec.word_size == 0
            assert 0 < len(line.bits) <= spec.max_words_per_instruction * spec.word_size
            assert line.address >= 0

    def test_parva_fixed_width(self, parva):
        result = parva.assemble(SAMPLE_PROGRAMS["parva_0_1"])
        assert {len(line.bits) for line in result.instructions} == {24}
