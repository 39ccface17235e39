"""
Bitzzy CPU Definitions
======================

Opcode tables for the Bitzzy, an 8-bit CPU with 16-bit addressing and
three registers (X, Y and Z, with Z as the accumulator).

Tables keyed by a register name map ``"x"``, ``"y"`` or ``"z"`` to the
opcode. Tables keyed by a register pair map ``(a, b)`` in operand order
as written in source, e.g. ``LOD Y, X`` is ``LOD_REGISTER[("y", "x")]``.

Instruction Lengths
-------------------
- 1 byte: no operand
- 2 bytes: opcode, 8-bit immediate
- 3 bytes: opcode, 16-bit address (big-endian)
- 4 bytes: opcode, 16-bit address, 8-bit immediate (STR #imm forms)
"""

from typing import Final

Pair = tuple[str, str]

REGISTERS: Final[tuple[str, ...]] = ("x", "y", "z")

# =============================================================================
# Control
# =============================================================================

HLT: Final = 0x00
RET: Final = 0x01
RTI: Final = 0x02
ENI: Final = 0x03
DSI: Final = 0x04
NOP: Final = 0x05
CLR: Final = 0x0B
REM: Final[dict[str, int]] = {"x": 0x08, "y": 0x09, "z": 0x0A}

# =============================================================================
# Jumps and Subroutines
# =============================================================================

JMP: Final = 0x10
JMP_INDEXED: Final[dict[str, int]] = {"x": 0x11, "y": 0x12, "z": 0x13}
JSR: Final = 0x14
JSR_INDEXED: Final[dict[str, int]] = {"x": 0x15, "y": 0x16, "z": 0x17}

JMPEZ: Final[dict[str, int]] = {"x": 0x20, "z": 0x21}
JMPGT: Final = 0x22
JMPEQ: Final[dict[Pair, int]] = {("x", "y"): 0x23, ("x", "z"): 0xF2, ("y", "z"): 0xF3}
JMPREZ: Final = 0xF0
JMPRNZ: Final = 0xF1

JSREZ: Final[dict[str, int]] = {"x": 0x24, "z": 0x25}
JSRGT: Final = 0x26
JSREQ: Final = 0x27

RETREZ: Final = 0xF4
RETRNZ: Final = 0xF5

DJNZ: Final[dict[str, int]] = {"x": 0xE0, "y": 0xE1, "z": 0xE2}

# =============================================================================
# Loads, Stores, Swaps
# =============================================================================

SWP: Final[dict[Pair, int]] = {("x", "y"): 0x18, ("x", "z"): 0x19, ("y", "z"): 0x1B}

LOD_IMMEDIATE: Final[dict[str, int]] = {"x": 0x7C, "y": 0x7D, "z": 0x7E}
# (destination, source)
LOD_REGISTER: Final[dict[Pair, int]] = {
    ("y", "x"): 0x28,
    ("z", "x"): 0x29,
    ("x", "y"): 0x2A,
    ("z", "y"): 0x2B,
    ("x", "z"): 0x2C,
    ("y", "z"): 0x2D,
}
LOD_ABSOLUTE: Final[dict[str, int]] = {"x": 0xA0, "y": 0xB0, "z": 0xC0}
# (destination, index register)
LOD_INDEXED: Final[dict[Pair, int]] = {
    ("x", "y"): 0xA1,
    ("x", "z"): 0xA2,
    ("y", "x"): 0xB1,
    ("y", "z"): 0xB2,
    ("z", "x"): 0xC1,
    ("z", "y"): 0xC2,
}
LOD_Z_YX: Final = 0xC3

STR_ABSOLUTE: Final[dict[str, int]] = {"x": 0xA4, "y": 0xB4, "z": 0xC4}
# (source, index register)
STR_INDEXED: Final[dict[Pair, int]] = {
    ("x", "y"): 0xA5,
    ("x", "z"): 0xA6,
    ("y", "x"): 0xB5,
    ("y", "z"): 0xB6,
    ("z", "x"): 0xC5,
    ("z", "y"): 0xC6,
}
STR_Z_YX: Final = 0xC7
STR_IMMEDIATE: Final = 0xD3
STR_IMMEDIATE_INDEXED: Final[dict[str, int]] = {"x": 0xD0, "y": 0xD1, "z": 0xD2}
STR_IMMEDIATE_YX: Final = 0xD4

# =============================================================================
# Arithmetic and Logic
# =============================================================================

INC: Final[dict[str, int]] = {"x": 0x30, "y": 0x31, "z": 0x32}
INC_ABSOLUTE: Final = 0x33
DEC: Final[dict[str, int]] = {"x": 0x34, "y": 0x35, "z": 0x36}
DEC_ABSOLUTE: Final = 0x37

LSL: Final[dict[str, int]] = {"x": 0x70, "y": 0x71, "z": 0x72}
LSR: Final[dict[str, int]] = {"x": 0x74, "y": 0x75, "z": 0x76}
NOT: Final[dict[str, int]] = {"x": 0x78, "y": 0x79, "z": 0x7A}

# OP reg, #imm: result stored back in reg
IMMEDIATE_OPS: Final[dict[str, dict[str, int]]] = {
    "add": {"x": 0x40, "y": 0x50, "z": 0x60},
    "sub": {"x": 0x41, "y": 0x51, "z": 0x61},
    "mul": {"x": 0x42, "y": 0x52, "z": 0x62},
    "div": {"x": 0x43, "y": 0x53, "z": 0x63},
    "mod": {"x": 0x9C, "y": 0x9D, "z": 0x9E},
    "and": {"x": 0x90, "y": 0x91, "z": 0x92},
    "or": {"x": 0x94, "y": 0x95, "z": 0x96},
    "xor": {"x": 0x98, "y": 0x99, "z": 0x9A},
}


def _commutative(xy: int, xz: int, yz: int) -> dict[Pair, int]:
    return {
        ("x", "y"): xy, ("y", "x"): xy,
        ("x", "z"): xz, ("z", "x"): xz,
        ("y", "z"): yz, ("z", "y"): yz,
    }


# OP a, b: result stored in Z
REGISTER_OPS: Final[dict[str, dict[Pair, int]]] = {
    "add": _commutative(0x44, 0x45, 0x55),
    "sub": {
        ("x", "y"): 0x46, ("x", "z"): 0x47,
        ("y", "x"): 0x56, ("y", "z"): 0x57,
        ("z", "x"): 0x66, ("z", "y"): 0x67,
    },
    "mul": _commutative(0x48, 0x49, 0x59),
    "div": {
        ("x", "y"): 0x4A, ("x", "z"): 0x4B,
        ("y", "x"): 0x5A, ("y", "z"): 0x5B,
        ("z", "x"): 0x6A, ("z", "y"): 0x6B,
    },
    "mod": {
        ("x", "y"): 0x4C, ("x", "z"): 0x4D,
        ("y", "x"): 0x5C, ("y", "z"): 0x5D,
        ("z", "x"): 0x6C, ("z", "y"): 0x6D,
    },
    "and": _commutative(0x80, 0x81, 0x82),
    "xor": _commutative(0x84, 0x85, 0x86),
    "or": _commutative(0x88, 0x89, 0x8A),
}


def opcode_bits(opcode: int) -> str:
    """Format an opcode as its 8-bit string."""
    return format(opcode, "08b")
