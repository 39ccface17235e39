"""
Parva 0.1 CPU Definitions
=========================

Register encodings and I/O geometry of the Parva, a 24-bit CPU with a
64x48 pixel display.

Registers
---------
Basic registers have a 4-bit code starting with 0 and may be named by
number or alias (``x1``/``sp``). Special registers are read-only and
only valid where an instruction takes a 4-bit register. Double
registers name an aligned pair of basic registers.
"""

from typing import Final

WORD_SIZE: Final = 24
WORD_MASK: Final = 0xFFFFFF

BASIC_REGISTERS: Final[dict[str, str]] = {
    "x0": "0000", "ra": "0000",
    "x1": "0001", "sp": "0001",
    "x2": "0010", "bp": "0010",
    "x3": "0011", "s0": "0011",
    "x4": "0100", "t0": "0100",
    "x5": "0101", "t1": "0101",
    "x6": "0110", "a0": "0110",
    "x7": "0111", "a1": "0111",
}

SPECIAL_REGISTERS: Final[dict[str, str]] = {
    "zero": "1000",
    "pc": "1001",
    "cycle": "1010",
    "upper": "1011",
}

WORD_REGISTERS: Final[dict[str, str]] = {**BASIC_REGISTERS, **SPECIAL_REGISTERS}

DOUBLE_REGISTERS: Final[dict[str, str]] = {
    "x01": "0000",
    "x23": "0010",
    "x45": "0100",
    "x67": "0110",
}

ALL_REGISTERS: Final[dict[str, str]] = {**WORD_REGISTERS, **DOUBLE_REGISTERS}

# Value of the "upper" special register
UPPER: Final = 0xFFF000

# Memory-mapped I/O starts at UPPER; plain RAM ends well before it
IO_BASE: Final = UPPER
RAM_SIZE: Final = 512

SCREEN_WIDTH: Final = 64
SCREEN_HEIGHT: Final = 48

GPU_DEVICE: Final = 1
GPU_MOVE_CURSOR: Final = 0
GPU_DRAW: Final = 2
GPU_SHOW_BUFFER: Final = 3
GPU_CLEAR: Final = 4
