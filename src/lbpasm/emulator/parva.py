"""
Parva 0.1 CPU Emulator
======================

Instruction-level emulator for the 24-bit Parva with its memory-mapped
GPU.

Decoding
--------
The top two bits select the instruction class:

- ``0x``: ALU. When bits 5-6 are ``11`` the instruction is one of the
  multiply/divide operations, whose A register is split around them.
- ``10``: load/store of a word or a double register pair.
- ``11``: conditional branch or jump.

Branch targets are PC-relative, jumps are absolute. The PC and the cycle
counter both wrap at 24 bits.

I/O
---
Addresses from $FFF000 up are routed to a device instead of memory:
bits 10-11 select the device and bits 0-9 carry the command. Device 1 is
the GPU (see ``lbpasm.emulator.display``).
"""

import logging

from lbpasm.assembler.bits import sign_extend, to_note
from lbpasm.cpu.parva import GPU_DEVICE, IO_BASE, RAM_SIZE, UPPER, WORD_MASK, WORD_SIZE
from lbpasm.emulator.base import MemoryInput, load_memory
from lbpasm.emulator.display import Gpu

logger = logging.getLogger(__name__)

# "b 0" (beq x0, x0, 0) branches to itself forever
WAIT_FOR_INTERRUPT = 0xC00000


class ParvaEmulator:
    """
    Instruction-level Parva emulator.

    Memory is a sparse dict of 24-bit words; unset addresses read as 0.
    """

    def __init__(self) -> None:
        self.init([])

    def init(self, memory: MemoryInput) -> None:
        """Load a memory image and perform a reset."""
        self.memory: dict[int, int] = {
            address: value & WORD_MASK for address, value in load_memory(memory).items()
        }
        self.registers = [0] * 8
        self.pc = 0
        self.cycle = 0
        self.gpu = Gpu()

    @property
    def halted(self) -> bool:
        return self.memory.get(self.pc, 0) == WAIT_FOR_INTERRUPT

    def register(self, code: int) -> int:
        """Read a register by its 4-bit code (special registers included)."""
        if code < 8:
            return self.registers[code]
        match code:
            case 0b1001:
                return self.pc
            case 0b1010:
                return self.cycle
            case 0b1011:
                return UPPER
        return 0

    # ========================================
    # Execution
    # ========================================

    def step(self) -> None:
        """Execute the instruction at PC."""
        instruction = self.memory.get(self.pc, 0)

        immediate = instruction & 0xFFF
        signed_immediate = sign_extend(immediate, 12)
        register_a = (instruction >> 15) & 0b1111
        register_d = (instruction >> 12) & 0b111
        register_b = (instruction >> 9) & 0b111
        use_immediate = not (instruction >> 19) & 1

        next_pc = self.pc + 1
        if not instruction >> 23:
            if register_a >> 2 == 0b11:
                self._special_alu(instruction, register_d, register_b, immediate, use_immediate)
            else:
                if use_immediate:
                    signed_b, unsigned_b = signed_immediate, immediate
                else:
                    signed_b = unsigned_b = self.registers[register_b]
                self._alu((instruction >> 20) & 0b111, use_immediate, register_a,
                          register_d, signed_b, unsigned_b)
        elif instruction >> 22 == 0b10:
            value_b = signed_immediate if use_immediate else self.registers[register_b]
            self._data(instruction, register_a, register_d, value_b)
        else:
            target = self._branch((instruction >> 19) & 0b111, register_a, register_d,
                                  register_b, signed_immediate)
            if target is not None:
                next_pc = target

        self.pc = next_pc & WORD_MASK
        self.cycle = (self.cycle + 1) & WORD_MASK

    def _special_alu(self, instruction: int, d: int, b: int, immediate: int,
                     use_immediate: bool) -> None:
        a = (((instruction >> 20) & 1) << 2) | ((instruction >> 15) & 0b11)
        value_a = self.registers[a]
        value_b = immediate if use_immediate else self.registers[b]
        match (instruction >> 21) & 0b11:
            case 0b00:  # mulu
                result = value_a * value_b
            case 0b01:  # mulhu
                result = (value_a * value_b) >> WORD_SIZE
            case 0b10:  # divu
                result = value_a // value_b if value_b else -1
            case _:  # remu
                result = value_a % value_b if value_b else 0
        self.registers[d] = result & WORD_MASK

    def _alu(self, operation: int, use_immediate: bool, a: int, d: int,
             signed_b: int, unsigned_b: int) -> None:
        value_a = self.register(a)
        match operation:
            case 0b000:  # add
                result = value_a + signed_b
            case 0b001:  # lui / sub
                result = signed_b << 12 if use_immediate else value_a - signed_b
            case 0b010:  # sll
                result = value_a << unsigned_b
            case 0b011:  # srl
                result = value_a >> unsigned_b
            case 0b100:  # sra
                result = sign_extend(value_a, WORD_SIZE) >> unsigned_b
            case 0b101:  # xor
                result = value_a ^ unsigned_b
            case 0b110:  # or
                result = value_a | unsigned_b
            case _:  # and
                result = value_a & unsigned_b
        self.registers[d] = result & WORD_MASK

    def _data(self, instruction: int, a: int, d: int, value_b: int) -> None:
        address = (self.register(a) + value_b) & WORD_MASK
        double = (instruction >> 21) & 1
        store = (instruction >> 20) & 1
        value_d0 = self.registers[d]
        value_d1 = self.registers[d | 1]

        if RAM_SIZE <= address < IO_BASE:
            logger.warning("memory access out of bounds: instruction %x, address %x",
                           self.pc, address)

        if address >= IO_BASE:
            self.io_out((address & 0xC00) >> 10, address & 0x3FF, value_d0, value_d1)
        elif store:
            self.memory[address] = value_d0
            if double:
                self.memory[address + 1] = value_d1
        else:
            self.registers[d] = self.memory.get(address, 0)
            if double:
                self.registers[(d + 1) & 0b111] = self.memory.get(address + 1, 0)

    def _branch(self, condition: int, a: int, d: int, b: int, offset: int):
        """Return the branch target, or None when the branch is not taken."""
        value_a = self.register(a)
        value_d = self.registers[d]
        invert = condition & 1
        target = self.pc + offset

        if condition >> 1 == 0b11 and d == 0b000:
            taken = sign_extend(value_a, WORD_SIZE) < 0
        elif condition == 0b110 and d == 0b100:
            # j I(xA)
            taken, target = True, value_a + offset
        elif condition == 0b111 and d == 0b100:
            # j xB(xA)
            taken, invert, target = True, 0, value_a + self.registers[b]
        elif condition >> 1 == 0b00:
            taken = value_a == value_d
        elif condition >> 1 == 0b01:
            taken = value_a < value_d
        elif condition >> 1 == 0b10:
            taken = sign_extend(value_a, WORD_SIZE) < sign_extend(value_d, WORD_SIZE)
        else:
            taken = False

        if invert:
            taken = not taken
        return target if taken else None

    def io_out(self, device: int, command: int, value_a: int, value_b: int) -> None:
        """Send a command with up to two arguments to an I/O device."""
        if device == GPU_DEVICE:
            self.gpu.command((command & 0x3C0) >> 6, value_a, value_b)
        else:
            logger.debug("write to unconnected I/O device %d: command %#x", device, command)

    # ========================================
    # State Display
    # ========================================

    def print_state(self) -> str:
        """PC, cycle, registers (decimal and note form) and the screen."""
        decimal = ", ".join(f"x{i}: {value}" for i, value in enumerate(self.registers))
        notes = [f"x{i}: {to_note(value, WORD_SIZE)}" for i, value in enumerate(self.registers)]
        return "\n".join([
            f"pc: {self.pc}, cycle: {self.cycle}",
            decimal,
            ", ".join(notes[:4]),
            ", ".join(notes[4:]),
            self.gpu.render_text(),
        ])
