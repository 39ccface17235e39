"""
Memory Images
=============

Turns assembled output into a flat memory image: every instruction's bit
string is split into word-size chunks (most significant first) and
written from the instruction's address upwards.

The image is what the emulators load and what the transfer tools send.
"""

import logging
from collections.abc import Iterable

from lbpasm.assembler.assembler import InstructionLine, OutputLine
from lbpasm.assembler.bits import split_words

logger = logging.getLogger(__name__)


def build_memory_image(lines: Iterable[OutputLine], word_size: int) -> dict[int, int]:
    """
    Build an address -> word mapping from assembled lines.

    Labels are skipped. When instructions overlap (after ``.address``)
    the later one wins.

    Args:
        lines: Assembled output lines
        word_size: Bits per memory word

    Returns:
        Sparse memory image

    Example:
        >>> from lbpasm.targets import get_target
        >>> result = get_target("bitzzy").assemble("jmp $1234")
        >>> build_memory_image(result.lines, 8)
        {0: 16, 1: 18, 2: 52}
    """
    memory: dict[int, int] = {}
    for line in lines:
        if not isinstance(line, InstructionLine):
            continue
        for offset, word in enumerate(split_words(line.bits, word_size)):
            address = line.address + offset
            if address in memory:
                logger.debug("address %#x written twice", address)
            memory[address] = word
    return memory


def memory_words(memory: dict[int, int], start: int = 0) -> list[tuple[int, int]]:
    """Return the (address, value) pairs at or above ``start``, in address order."""
    return [(address, memory[address]) for address in sorted(memory) if address >= start]
