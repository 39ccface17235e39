"""
Bitzzy CPU Emulator
===================

Instruction-level emulator for the Bitzzy: 8-bit registers X, Y and Z,
a 16-bit address space and a one-bit remainder R.

- R is the carry/borrow flag. ADD, SUB, INC, DEC, LSL and LSR set it
  from the bit carried or borrowed out; MUL sets it on overflow; DIV and
  MOD set it on division by zero (the result is then 0).
- The stack pointer is internal, starts at $FFFF and grows downwards.
  Return addresses are pushed as two bytes, high byte first.
- Execution starts at address 0.
- Register-pair ALU operations leave their result in Z, immediate forms
  write back into the named register.
- YX is the 16-bit value (Y << 8) | X.
"""

import logging
from typing import Any

from lbpasm.cpu import bitzzy as op
from lbpasm.emulator.base import MemoryInput, load_memory
from lbpasm.errors import EmulatorError

logger = logging.getLogger(__name__)

STACK_TOP = 0xFFFF

Decoded = tuple[Any, ...]


def _decode_table() -> dict[int, Decoded]:
    """Map every opcode to an (operation, operands...) tuple."""
    table: dict[int, Decoded] = {
        op.HLT: ("hlt",),
        op.RET: ("ret",),
        op.RTI: ("rti",),
        op.ENI: ("eni",),
        op.DSI: ("dsi",),
        op.NOP: ("nop",),
        op.CLR: ("clr",),
        op.JMP: ("jmp", None),
        op.JSR: ("jsr", None),
        op.JMPGT: ("jmpgt", False),
        op.JSRGT: ("jmpgt", True),
        op.JSREQ: ("jmpeq", ("x", "y"), True),
        op.JMPREZ: ("jmpr", True),
        op.JMPRNZ: ("jmpr", False),
        op.RETREZ: ("retr", True),
        op.RETRNZ: ("retr", False),
        op.LOD_Z_YX: ("lod_yx",),
        op.STR_Z_YX: ("str_yx",),
        op.STR_IMMEDIATE: ("str_imm", None),
        op.STR_IMMEDIATE_YX: ("str_imm", "yx"),
        op.INC_ABSOLUTE: ("inc_abs", 1),
        op.DEC_ABSOLUTE: ("inc_abs", -1),
    }
    for r, code in op.REM.items():
        table[code] = ("rem", r)
    for r, code in op.JMP_INDEXED.items():
        table[code] = ("jmp", r)
    for r, code in op.JSR_INDEXED.items():
        table[code] = ("jsr", r)
    for r, code in op.JMPEZ.items():
        table[code] = ("jmpez", r, False)
    for r, code in op.JSREZ.items():
        table[code] = ("jmpez", r, True)
    for pair, code in op.JMPEQ.items():
        table[code] = ("jmpeq", pair, False)
    for r, code in op.DJNZ.items():
        table[code] = ("djnz", r)
    for pair, code in op.SWP.items():
        table[code] = ("swp", pair)
    for r, code in op.LOD_IMMEDIATE.items():
        table[code] = ("lod_imm", r)
    for pair, code in op.LOD_REGISTER.items():
        table[code] = ("lod_reg", pair)
    for r, code in op.LOD_ABSOLUTE.items():
        table[code] = ("lod", r, None)
    for (r, index), code in op.LOD_INDEXED.items():
        table[code] = ("lod", r, index)
    for r, code in op.STR_ABSOLUTE.items():
        table[code] = ("str", r, None)
    for (r, index), code in op.STR_INDEXED.items():
        table[code] = ("str", r, index)
    for index, code in op.STR_IMMEDIATE_INDEXED.items():
        table[code] = ("str_imm", index)
    for r, code in op.INC.items():
        table[code] = ("inc", r, 1)
    for r, code in op.DEC.items():
        table[code] = ("inc", r, -1)
    for r, code in op.LSL.items():
        table[code] = ("lsl", r)
    for r, code in op.LSR.items():
        table[code] = ("lsr", r)
    for r, code in op.NOT.items():
        table[code] = ("not", r)
    for mnemonic, by_register in op.IMMEDIATE_OPS.items():
        for r, code in by_register.items():
            table[code] = ("alu_imm", mnemonic, r)
    for mnemonic, by_pair in op.REGISTER_OPS.items():
        for pair, code in by_pair.items():
            # Commutative operations list both orders under one opcode
            table.setdefault(code, ("alu_reg", mnemonic, pair))
    return table


DECODE: dict[int, Decoded] = _decode_table()


class BitzzyEmulator:
    """
    Instruction-level Bitzzy emulator.

    Memory is a sparse dict of byte values; unset addresses read as 0.
    """

    def __init__(self) -> None:
        self.init([])

    def init(self, memory: MemoryInput) -> None:
        """Load a memory image and perform a reset."""
        self.memory: dict[int, int] = {
            address & 0xFFFF: value & 0xFF for address, value in load_memory(memory).items()
        }
        self.registers: dict[str, int] = {"x": 0, "y": 0, "z": 0}
        self.remainder = 0
        self.sp = STACK_TOP
        self.pc = 0
        self.cycle = 0
        self.interrupts_enabled = True

    # ========================================
    # Memory Access
    # ========================================

    def read(self, address: int) -> int:
        return self.memory.get(address & 0xFFFF, 0)

    def write(self, address: int, value: int) -> None:
        self.memory[address & 0xFFFF] = value & 0xFF

    def read_word(self, address: int) -> int:
        """Read a big-endian 16-bit value."""
        return (self.read(address) << 8) | self.read(address + 1)

    def push(self, value: int) -> None:
        self.write(self.sp, value >> 8)
        self.write(self.sp - 1, value)
        self.sp = (self.sp - 2) & 0xFFFF

    def pop(self) -> int:
        self.sp = (self.sp + 2) & 0xFFFF
        return (self.read(self.sp) << 8) | self.read(self.sp - 1)

    @property
    def yx(self) -> int:
        return (self.registers["y"] << 8) | self.registers["x"]

    @property
    def halted(self) -> bool:
        return self.read(self.pc) == op.HLT

    # ========================================
    # Execution
    # ========================================

    def step(self) -> None:
        """
        Execute the instruction at PC.

        Raises:
            EmulatorError: If the byte at PC is not an opcode
        """
        opcode = self.read(self.pc)
        decoded = DECODE.get(opcode)
        if decoded is None:
            raise EmulatorError(f"Unknown opcode {opcode:#04x} at {self.pc:#06x}")
        address = self.read_word(self.pc + 1)
        immediate = self.read(self.pc + 1)
        regs = self.registers
        self.cycle += 1
        next_pc = self.pc + 1

        match decoded:
            case ("hlt",):
                next_pc = self.pc
            case ("nop",):
                pass
            case ("ret",):
                next_pc = self.pop()
            case ("rti",):
                next_pc = self.pop()
                self.interrupts_enabled = True
            case ("eni",):
                self.interrupts_enabled = True
            case ("dsi",):
                self.interrupts_enabled = False
            case ("rem", r):
                regs[r] = self.remainder
            case ("clr",):
                self.remainder = 0
            case ("jmp", index):
                next_pc = address + (regs[index] if index else 0)
            case ("jsr", index):
                self.push(self.pc + 3)
                next_pc = address + (regs[index] if index else 0)
            case ("jmpez", r, call):
                next_pc = self._branch(regs[r] == 0, address, call)
            case ("jmpgt", call):
                next_pc = self._branch(regs["x"] > regs["y"], address, call)
            case ("jmpeq", (a, b), call):
                next_pc = self._branch(regs[a] == regs[b], address, call)
            case ("jmpr", when_zero):
                next_pc = self._branch((self.remainder == 0) == when_zero, address, False)
            case ("retr", when_zero):
                if (self.remainder == 0) == when_zero:
                    next_pc = self.pop()
            case ("djnz", r):
                regs[r] = (regs[r] - 1) & 0xFF
                next_pc = self._branch(regs[r] != 0, address, False)
            case ("swp", (a, b)):
                regs[a], regs[b] = regs[b], regs[a]
            case ("lod_imm", r):
                regs[r] = immediate
                next_pc = self.pc + 2
            case ("lod_reg", (dest, src)):
                regs[dest] = regs[src]
            case ("lod", r, index):
                regs[r] = self.read(address + (regs[index] if index else 0))
                next_pc = self.pc + 3
            case ("lod_yx",):
                regs["z"] = self.read(address + self.yx)
                next_pc = self.pc + 3
            case ("str", r, index):
                self.write(address + (regs[index] if index else 0), regs[r])
                next_pc = self.pc + 3
            case ("str_yx",):
                self.write(address + self.yx, regs["z"])
                next_pc = self.pc + 3
            case ("str_imm", index):
                offset = self.yx if index == "yx" else regs[index] if index else 0
                self.write(address + offset, self.read(self.pc + 3))
                next_pc = self.pc + 4
            case ("inc", r, delta):
                regs[r] = self._carry(regs[r] + delta)
            case ("inc_abs", delta):
                self.write(address, self._carry(self.read(address) + delta))
                next_pc = self.pc + 3
            case ("lsl", r):
                regs[r] = self._carry(regs[r] << 1)
            case ("lsr", r):
                self.remainder = regs[r] & 1
                regs[r] >>= 1
            case ("not", r):
                regs[r] = ~regs[r] & 0xFF
            case ("alu_imm", mnemonic, r):
                regs[r] = self._alu(mnemonic, regs[r], immediate)
                next_pc = self.pc + 2
            case ("alu_reg", mnemonic, (a, b)):
                regs["z"] = self._alu(mnemonic, regs[a], regs[b])

        self.pc = next_pc & 0xFFFF

    def _branch(self, taken: bool, address: int, call: bool) -> int:
        """Return the next PC of a conditional jump or call."""
        if not taken:
            return self.pc + 3
        if call:
            self.push(self.pc + 3)
        return address

    def _carry(self, result: int) -> int:
        """Set R from a result that left the byte range, return the byte."""
        self.remainder = int(not 0 <= result <= 0xFF)
        return result & 0xFF

    def _alu(self, mnemonic: str, a: int, b: int) -> int:
        match mnemonic:
            case "add":
                return self._carry(a + b)
            case "sub":
                return self._carry(a - b)
            case "mul":
                return self._carry(a * b)
            case "div" | "mod":
                if b == 0:
                    self.remainder = 1
                    return 0
                self.remainder = 0
                return a // b if mnemonic == "div" else a % b
            case "and":
                return a & b
            case "or":
                return a | b
            case "xor":
                return a ^ b
        raise EmulatorError(f"Unknown ALU operation '{mnemonic}'")

    # ========================================
    # State Display
    # ========================================

    def print_state(self) -> str:
        """Plain-text dump of PC, registers, R and the memory around PC."""
        regs = self.registers
        base = self.pc & 0xFFF0
        rows = []
        for row in range(4):
            start = (base + row * 16) & 0xFFFF
            cells = " ".join(
                f"{'>' if (start + i) & 0xFFFF == self.pc else ' '}{self.read(start + i):02x}"
                for i in range(16)
            )
            rows.append(f"{start:04x}: {cells}")
        return "\n".join([
            f"pc: {self.pc:04x}, stack pointer: {self.sp:04x}, cycle: {self.cycle}",
            f"X={regs['x']:02x} Y={regs['y']:02x} Z={regs['z']:02x} "
            f"YX={self.yx:04x} R={self.remainder}",
            "memory:",
            *rows,
        ])
