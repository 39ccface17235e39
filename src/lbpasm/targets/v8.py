"""
V8 Target
=========

Assembler definition for the V8, an 8-bit CPU with eight registers and
an 8-bit address space. Instructions are one or two bytes: an opcode
byte, optionally followed by an immediate or address byte.

Syntax
------
    LDA #$10        ; immediate
    LDA $10         ; absolute
    LDA $10,A       ; absolute, A-indexed
    LDA ($10)       ; indirect
    LDA B           ; register to register
    ADC B,A         ; ALU operation with A
    JMP label       ; jump (JMP (vector) for indirect)

Numbers: $hex, %binary, @octal, decimal. Labels may be offset with
``(label+1)``.
"""

from lbpasm.assembler.assembler import TargetAssembler
from lbpasm.assembler.directives import add_directives
from lbpasm.assembler.literals import DOLLAR_SYNTAX
from lbpasm.assembler.matcher import OPT_SPACE, SEP, SPACE, RuleTable, slot
from lbpasm.cpu.v8 import REGISTERS
from lbpasm.emulator.v8 import V8Emulator
from lbpasm.errors import OperandError
from lbpasm.targets.base import ArchitectureSpec

VALUE_ATOM = rf"(?:{DOLLAR_SYNTAX.pattern}|[a-z0-9_-]+)"
VALUE_PAIR = rf"\({VALUE_ATOM}\s*[+-]\s*{VALUE_ATOM}\)"
VALUE = rf"{VALUE_ATOM}|{VALUE_PAIR}"

token = slot(VALUE)
reg = slot("|".join(REGISTERS))


def immediate(name: str) -> str:
    return "#" + token(name)


def indirect(name: str) -> str:
    return r"\(" + token(name) + r"\)"


def register_and_a(name: str) -> str:
    return reg(name) + rf"{OPT_SPACE},{OPT_SPACE}A"


def value_and_a(name: str) -> str:
    return token(name) + rf"{OPT_SPACE},{OPT_SPACE}A"


def register(name: str) -> str:
    """Encode a register name (case-insensitive) as 3 bits."""
    try:
        return format(REGISTERS[name.upper()], "03b")
    except KeyError:
        raise OperandError(f"'{name}' is not a valid register") from None


# =============================================================================
# Actions
# =============================================================================

def _fixed(opcode: str):
    return lambda ctx, b: ctx.emit(opcode)


def _jump(opcode: str):
    return lambda ctx, b: ctx.emit(opcode, ctx.value(b.a, 8), words=2)


def _register_op(prefix: str):
    return lambda ctx, b: ctx.emit(prefix, register(b.r))


def _memory_op(prefix: str):
    return lambda ctx, b: ctx.emit(prefix, register(b.a), ctx.value(b.b, 8), words=2)


def _load_register(ctx, b) -> None:
    ctx.emit("11", register(b.a), register(b.b))


# =============================================================================
# Rule Table
# =============================================================================

FIXED = {
    "hlt": "00000000",
    "nop": "00000001",
    "ret": "00001010",
    "rti": "00001011",
    "sec": "00001100",
    "clc": "00001101",
    "eni": "00001110",
    "dsi": "00001111",
}

JUMPS = {
    "jmp": "00000010",
    "jz": "00000100",
    "jnz": "00000101",
    "jc": "00000110",
    "jnc": "00000111",
    "jsr": "00001000",
}

# Operate on a register and A, result in A
WITH_A = {
    "adc": "00010",
    "sbc": "00100",
    "xor": "00111",
    "and": "01000",
    "or": "01001",
    "cmp": "01110",
}

SINGLE_REGISTER = {
    "inc": "00011",
    "dec": "00101",
    "not": "00110",
    "slc": "01010",
    "src": "01011",
    "rol": "01100",
    "ror": "01101",
}


def build_rules() -> RuleTable:
    table = RuleTable("v8")

    for mnemonic, opcode in FIXED.items():
        table.add(mnemonic, action=_fixed(opcode))

    table.add("jmp", SPACE, indirect("a"), action=_jump("00000011"))
    table.add("jsr", SPACE, indirect("a"), action=_jump("00001001"))
    for mnemonic, opcode in JUMPS.items():
        table.add(mnemonic, SPACE, token("a"), action=_jump(opcode))

    for mnemonic, prefix in WITH_A.items():
        table.add(mnemonic, SPACE, register_and_a("r"), action=_register_op(prefix))
    for mnemonic, prefix in SINGLE_REGISTER.items():
        table.add(mnemonic, SPACE, reg("r"), action=_register_op(prefix))

    # LDr/STr: register, aai, ind, imm, abs (in that order)
    table.add("ld", reg("a"), SEP, reg("b"), action=_load_register)
    table.add("ld", reg("a"), SEP, value_and_a("b"), action=_memory_op("10011"))
    table.add("st", reg("a"), SEP, value_and_a("b"), action=_memory_op("10010"))
    table.add("ld", reg("a"), SEP, indirect("b"), action=_memory_op("10101"))
    table.add("st", reg("a"), SEP, indirect("b"), action=_memory_op("10100"))
    table.add("ld", reg("a"), SEP, immediate("b"), action=_memory_op("01111"))
    table.add("ld", reg("a"), SEP, token("b"), action=_memory_op("10001"))
    table.add("st", reg("a"), SEP, token("b"), action=_memory_op("10000"))

    table.add("push", SPACE, token("r"), action=_register_op("10110"))
    table.add("pull", SPACE, token("r"), action=_register_op("10111"))

    add_directives(table, token)
    return table


ASSEMBLER = TargetAssembler("v8", build_rules(), word_size=8, syntax=DOLLAR_SYNTAX)

DOCUMENTATION = """\
V8
==

8-bit CPU: 8-bit address bus, eight registers (A B C D E F X Y) and two
flags (Z zero, C carry). A is the accumulator: ALU operations of the
form "OP R,A" leave their result in A.

Addressing modes ("*" is the byte after the opcode):
  LDA B       register
  LDA #*      immediate
  LDA *       absolute
  LDA *,A     absolute, A-indexed (address * + A)
  LDA (*)     indirect (address stored at *)

Opcodes:
  $00 HLT   $01 NOP   $02 JMP imm  $03 JMP ind  $04 JZ   $05 JNZ
  $06 JC    $07 JNC   $08 JSR imm  $09 JSR ind  $0A RET  $0B RTI
  $0C SEC   $0D CLC   $0E ENI      $0F DSI
  00010rrr ADC r,A    00011rrr INC r    00100rrr SBC r,A   00101rrr DEC r
  00110rrr NOT r      00111rrr XOR r,A  01000rrr AND r,A   01001rrr OR r,A
  01010rrr SLC r      01011rrr SRC r    01100rrr ROL r     01101rrr ROR r
  01110rrr CMP r,A    01111rrr LDr imm  10000rrr STr abs   10001rrr LDr abs
  10010rrr STr aai    10011rrr LDr aai  10100rrr STr ind   10101rrr LDr ind
  10110rrr PUSH r     10111rrr PULL r   11dddsss LDd s

Registers: A=000 B=001 C=010 D=011 E=100 F=101 X=110 Y=111

Stack: the stack pointer lives at $7F, starts at $7E and grows down.
Vectors: reset at $FF, interrupt at $FE.

Directives: label:, .data, .repeat, .eq, .address, .align, .start, .end
"""

SPEC = ArchitectureSpec(
    name="v8",
    assembler=ASSEMBLER,
    max_words_per_instruction=2,
    documentation=DOCUMENTATION,
    emulator=V8Emulator,
)
