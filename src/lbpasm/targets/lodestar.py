"""
Lodestar Target
===============

Assembler definition for the Lodestar, which shares the V8 instruction
encoding but has its own, stricter syntax:

- The whole line is folded to lower case, labels included
- Immediate numbers take a ``#`` prefix; labels used as immediates do not
- Values are 8-bit; an operand may be anything from -128 to 255
- Only labels, ``.data`` and ``.address`` are supported as directives

Syntax
------
    lda #$10        ; immediate
    lda table       ; absolute
    lda (vector)    ; indirect
    lda $10, a      ; absolute, A-indexed (numbers only)
    lda b           ; register to register
    adc b, a
    jmp #$20        ; jump to $20
    jmp vector      ; jump through the address stored at vector
"""

from lbpasm.assembler.assembler import TargetAssembler
from lbpasm.assembler.directives import data, define_label, set_address
from lbpasm.assembler.literals import LODESTAR_SYNTAX
from lbpasm.assembler.matcher import HARD_SEP, SPACE, RuleTable, slot
from lbpasm.cpu.v8 import REGISTERS
from lbpasm.errors import OperandError
from lbpasm.targets.base import ArchitectureSpec
from lbpasm.targets.v8 import FIXED, SINGLE_REGISTER, WITH_A

LABEL = r"[a-z_][a-z0-9_]+"
NUMBER = r"[%$]?-?[0-9a-f_]+"
OPT_SPACE = r"\s*?"

reg = slot("[a-fxy]")
label = slot(LABEL)
number = slot(NUMBER)
absolute = slot(rf"(?:{NUMBER})|(?:{LABEL})")


def immediate(name: str) -> str:
    """Numbers need a '#', labels must not have one."""
    return rf"#?(?P<{name}>(?:(?<=#){NUMBER})|(?:(?<!#){LABEL}))"


def indirect(name: str) -> str:
    return r"\(" + absolute(name) + r"\)"


def indexed(name: str) -> str:
    return number(name) + OPT_SPACE + "," + OPT_SPACE + "a"


def with_a(name: str) -> str:
    return reg(name) + OPT_SPACE + "," + OPT_SPACE + "a"


def register(name: str) -> str:
    try:
        return format(REGISTERS[name.upper()], "03b")
    except KeyError:
        raise OperandError(f"Unknown register: {name}") from None


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
    return lambda ctx, b: ctx.emit(prefix, register(b.r), ctx.value(b.a, 8), words=2)


def _load_register(ctx, b) -> None:
    ctx.emit("11", register(b.r), register(b.s))


# =============================================================================
# Rule Table
# =============================================================================

def build_rules() -> RuleTable:
    table = RuleTable("lodestar")

    table.add("hlt", action=_fixed(FIXED["hlt"]))
    table.add("nop", action=_fixed(FIXED["nop"]))
    # A bare operand is a vector; '#' jumps directly
    table.add("jmp", SPACE, absolute("a"), action=_jump("00000011"))
    for mnemonic, opcode in (("jmp", "00000010"), ("jz", "00000100"), ("jnz", "00000101"),
                             ("jc", "00000110"), ("jnc", "00000111"), ("jsr", "00001000")):
        table.add(mnemonic, SPACE, immediate("a"), action=_jump(opcode))
    for mnemonic in ("ret", "rti", "sec", "clc", "eni", "dsi"):
        table.add(mnemonic, action=_fixed(FIXED[mnemonic]))

    for mnemonic, prefix in WITH_A.items():
        table.add(mnemonic, SPACE, with_a("r"), action=_register_op(prefix))
    for mnemonic, prefix in SINGLE_REGISTER.items():
        table.add(mnemonic, SPACE, reg("r"), action=_register_op(prefix))

    table.add("ld", reg("r"), SPACE, reg("s"), action=_load_register)
    table.add("ld", reg("r"), SPACE, absolute("a"), action=_memory_op("10001"))
    table.add("ld", reg("r"), SPACE, indirect("a"), action=_memory_op("10101"))
    table.add("ld", reg("r"), SPACE, immediate("a"), action=_memory_op("01111"))
    table.add("ld", reg("r"), SPACE, indexed("a"), action=_memory_op("10011"))
    table.add("st", reg("r"), SPACE, indexed("a"), action=_memory_op("10010"))
    table.add("st", reg("r"), SPACE, indirect("a"), action=_memory_op("10100"))
    table.add("st", reg("r"), SPACE, absolute("a"), action=_memory_op("10000"))
    table.add("push", SPACE, reg("r"), action=_register_op("10110"))
    table.add("pull", SPACE, reg("r"), action=_register_op("10111"))

    table.add(r"\.data", SPACE, r"(?P<a>.*)", action=data(HARD_SEP))
    table.add(r"\.address", SPACE, number("a"), action=set_address)
    table.add(label("a"), ":", action=define_label)
    return table


ASSEMBLER = TargetAssembler(
    "lodestar",
    build_rules(),
    word_size=8,
    syntax=LODESTAR_SYNTAX,
    case_fold=True,
)

DOCUMENTATION = """\
Lodestar
========

8-bit CPU using the V8 instruction encoding. Registers A B C D E F X Y,
A is the accumulator.

Source is case-insensitive throughout: labels are folded to lower case.
Numbers: $hex, %binary, decimal. Values must fit in 8 bits (-128..255).

Operands:
  #n          immediate number
  label       immediate label (jumps) or absolute address (loads/stores)
  (addr)      indirect
  n, a        absolute + A (numbers only)

Instructions:
  hlt nop ret rti sec clc eni dsi
  jmp addr (through vector) / jmp #n
  jz jnz jc jnc jsr    #n or label
  adc sbc xor and or cmp   r, a
  inc dec not slc src rol ror   r
  ldR r / ldR addr / ldR (addr) / ldR #n / ldR n, a
  stR n, a / stR (addr) / stR addr
  push r / pull r

Directives: label:, .data v, ..., .address n
"""

SPEC = ArchitectureSpec(
    name="lodestar",
    assembler=ASSEMBLER,
    max_words_per_instruction=2,
    documentation=DOCUMENTATION,
)
