"""
V8 CPU Emulator
===============

The V8 is an 8-bit CPU with an 8-bit address bus (256 bytes of memory),
eight 8-bit registers and two flags.

- Registers: A (accumulator), B, C, D, E, F, X, Y
- Flags: Z (zero), C (carry)
- Stack pointer: kept in memory at $7F, initially $7E, grows downwards
- Reset vector at $FF, interrupt vector at $FE

Opcode Layout
-------------
$00-$0F are single-byte control instructions (HLT, NOP, jumps, RET,
RTI, flag operations). From $10 to $BF the top five bits select the
operation and the low three bits the register operand. $C0-$FF copy one
register into another (``11 ddd sss``).

ALU operations with a ``R,A`` form (ADC, SBC, XOR, AND, OR) leave their
result in A; single-register operations (INC, DEC, NOT, SLC, SRC, ROL,
ROR) write back into the register itself.
"""

import logging

from lbpasm.cpu.v8 import REGISTER_NAMES, RESET_VECTOR_ADDRESS, STACK_POINTER_ADDRESS
from lbpasm.emulator.base import MemoryInput, load_memory

logger = logging.getLogger(__name__)

HLT = 0x00


class V8Emulator:
    """
    Instruction-level V8 emulator.

    Memory is a sparse dict of byte values; unset addresses read as 0.
    """

    def __init__(self) -> None:
        self.init([])

    def init(self, memory: MemoryInput) -> None:
        """Load a memory image and perform a reset."""
        self.memory: dict[int, int] = {
            address & 0xFF: value & 0xFF for address, value in load_memory(memory).items()
        }
        self.memory[STACK_POINTER_ADDRESS] = STACK_POINTER_ADDRESS - 1
        self.registers = [0] * 8
        self.pc = self.read(RESET_VECTOR_ADDRESS)
        self.cycle = 0
        self.carry = False
        self.zero = False
        self.interrupts_enabled = True
        logger.debug("v8 reset: pc=%#04x", self.pc)

    # ========================================
    # Memory Access
    # ========================================

    def read(self, address: int) -> int:
        return self.memory.get(address & 0xFF, 0)

    def write(self, address: int, value: int) -> None:
        self.memory[address & 0xFF] = value & 0xFF

    @property
    def sp(self) -> int:
        return self.read(STACK_POINTER_ADDRESS)

    def push(self, value: int) -> None:
        sp = self.sp
        self.write(sp, value)
        self.write(STACK_POINTER_ADDRESS, sp - 1)

    def pop(self) -> int:
        sp = (self.sp + 1) & 0xFF
        self.write(STACK_POINTER_ADDRESS, sp)
        return self.read(sp)

    @property
    def a(self) -> int:
        return self.registers[0]

    @property
    def halted(self) -> bool:
        return self.read(self.pc) == HLT

    # ========================================
    # Execution
    # ========================================

    def step(self) -> None:
        """Execute the instruction at PC."""
        opcode = self.read(self.pc)
        immediate = self.read(self.pc + 1)
        self.cycle += 1

        if opcode < 0x10:
            self._control(opcode, immediate)
        elif opcode >= 0xC0:
            # LDr r
            self._load((opcode >> 3) & 0b111, self.registers[opcode & 0b111])
            self.pc = (self.pc + 1) & 0xFF
        else:
            self._register_op(opcode >> 3, opcode & 0b111, immediate)

    def _control(self, opcode: int, immediate: int) -> None:
        next_pc = (self.pc + 1) & 0xFF
        skip_pc = (self.pc + 2) & 0xFF
        match opcode:
            case 0x00:  # HLT
                pass
            case 0x01:  # NOP
                self.pc = next_pc
            case 0x02:  # JMP imm
                self.pc = immediate
            case 0x03:  # JMP abs
                self.pc = self.read(immediate)
            case 0x04:  # JZ
                self.pc = immediate if self.zero else skip_pc
            case 0x05:  # JNZ
                self.pc = immediate if not self.zero else skip_pc
            case 0x06:  # JC
                self.pc = immediate if self.carry else skip_pc
            case 0x07:  # JNC
                self.pc = immediate if not self.carry else skip_pc
            case 0x08:  # JSR imm
                self.push(skip_pc)
                self.pc = immediate
            case 0x09:  # JSR abs
                self.push(skip_pc)
                self.pc = self.read(immediate)
            case 0x0A:  # RET
                self.pc = self.pop()
            case 0x0B:  # RTI
                self.pc = self.pop()
                self.interrupts_enabled = True
            case 0x0C:  # SEC
                self.carry = True
                self.pc = next_pc
            case 0x0D:  # CLC
                self.carry = False
                self.pc = next_pc
            case 0x0E:  # ENI
                self.interrupts_enabled = True
                self.pc = next_pc
            case 0x0F:  # DSI
                self.interrupts_enabled = False
                self.pc = next_pc

    def _register_op(self, group: int, r: int, immediate: int) -> None:
        value = self.registers[r]
        carry_in = 1 if self.carry else 0
        size = 1
        match group:
            case 0b00010:  # ADC r,A
                self._alu(0, value + self.a + carry_in)
            case 0b00011:  # INC r
                self._alu(r, value + 1)
            case 0b00100:  # SBC r,A
                self._alu(0, value - self.a - carry_in)
            case 0b00101:  # DEC r
                self._alu(r, value - 1)
            case 0b00110:  # NOT r
                self._alu(r, ~value & 0xFF)
            case 0b00111:  # XOR r,A
                self._alu(0, value ^ self.a)
            case 0b01000:  # AND r,A
                self._alu(0, value & self.a)
            case 0b01001:  # OR r,A
                self._alu(0, value | self.a)
            case 0b01010:  # SLC r
                self._alu(r, (value << 1) | carry_in)
            case 0b01011:  # SRC r
                self.registers[r] = (value >> 1) | (carry_in << 7)
                self.zero = self.registers[r] == 0
                self.carry = bool(value & 1)
            case 0b01100:  # ROL r
                self._alu(r, (value << 1) | (value >> 7))
            case 0b01101:  # ROR r
                self._alu(r, (value >> 1) | ((value & 1) << 7))
                self.carry = bool(value & 1)
            case 0b01110:  # CMP r,A
                result = self.a - value
                self.zero = result == 0
                self.carry = result > 0
            case 0b01111:  # LDr imm
                self._load(r, immediate)
                size = 2
            case 0b10000:  # STr abs
                self.write(immediate, value)
                size = 2
            case 0b10001:  # LDr abs
                self._load(r, self.read(immediate))
                size = 2
            case 0b10010:  # STr aai
                self.write(immediate + self.a, value)
                size = 2
            case 0b10011:  # LDr aai
                self._load(r, self.read(immediate + self.a))
                size = 2
            case 0b10100:  # STr ind
                self.write(self.read(immediate), value)
                size = 2
            case 0b10101:  # LDr ind
                self._load(r, self.read(self.read(immediate)))
                size = 2
            case 0b10110:  # PUSH r
                self.push(value)
            case 0b10111:  # PULL r
                self.registers[r] = self.pop()
        self.pc = (self.pc + size) & 0xFF

    def _alu(self, target: int, result: int) -> None:
        """Store an ALU result, setting Z and C (carry or borrow out)."""
        self.zero = (result & 0xFF) == 0
        self.carry = not 0 <= result <= 0xFF
        self.registers[target] = result & 0xFF

    def _load(self, target: int, value: int) -> None:
        self.registers[target] = value & 0xFF
        self.zero = self.registers[target] == 0

    # ========================================
    # State Display
    # ========================================

    def print_state(self) -> str:
        """
        Plain-text dump of PC, stack pointer, registers, flags and memory.

        The memory grid marks the PC with ``>`` and the stack pointer
        with ``*``.
        """
        registers = " ".join(
            f"{name}={value:02x}" for name, value in zip(REGISTER_NAMES, self.registers)
        )
        flags = f"Z={int(self.zero)} C={int(self.carry)} I={int(self.interrupts_enabled)}"
        rows = ["    " + " ".join(f"x{i:x} " for i in range(16))]
        for row in range(16):
            cells = []
            for column in range(16):
                address = row * 16 + column
                marker = ">" if address == self.pc else "*" if address == self.sp else " "
                cells.append(f"{marker}{self.read(address):02x} ")
            rows.append(f"{row:x}x " + "".join(cells).rstrip())
        return "\n".join([
            f"pc: {self.pc:02x}, stack pointer: {self.sp:02x}",
            registers,
            flags,
            "memory:",
            *rows,
        ])
