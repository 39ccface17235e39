"""
V8 CPU Definitions
==================

Register encodings and memory-mapped locations of the V8.
"""

from typing import Final

# Register name -> 3-bit operand field
REGISTERS: Final[dict[str, int]] = {
    "A": 0b000,
    "B": 0b001,
    "C": 0b010,
    "D": 0b011,
    "E": 0b100,
    "F": 0b101,
    "X": 0b110,
    "Y": 0b111,
}

REGISTER_NAMES: Final[tuple[str, ...]] = tuple(REGISTERS)

STACK_POINTER_ADDRESS: Final[int] = 0x7F
INTERRUPT_VECTOR_ADDRESS: Final[int] = 0xFE
RESET_VECTOR_ADDRESS: Final[int] = 0xFF
