"""
Parva 0.1 Target
================

Assembler definition for the Parva, a 24-bit RISC-V flavoured CPU.
Every instruction is exactly one 24-bit word.

Syntax
------
    addi t0, zero, 5        ; ALU immediate
    add t0, t0, t1          ; ALU register
    lw a0, 4(sp)            ; load word at sp + 4
    beq t0, t1, loop        ; PC-relative branch
    j 0x10(upper)           ; absolute jump
    .string "Hi"            ; one word per character

Numbers: 0x hex, 0b binary, 0o octal, decimal. Character literals
(``'A'``) use the active string encoding, set with ``.string_encoding``.
Comments start with ``;``, ``//`` or ``#``.
"""

from lbpasm.assembler.assembler import TargetAssembler
from lbpasm.assembler.bits import encode, encode_field
from lbpasm.assembler.directives import add_directives
from lbpasm.assembler.literals import ASCII, C_SYNTAX, STRING_ENCODINGS, split_string_literal
from lbpasm.assembler.matcher import OPT_SPACE, SEP, SPACE, RuleTable, slot
from lbpasm.cpu.parva import (
    ALL_REGISTERS,
    BASIC_REGISTERS,
    DOUBLE_REGISTERS,
    WORD_REGISTERS,
    WORD_SIZE,
)
from lbpasm.emulator.parva import ParvaEmulator
from lbpasm.errors import DirectiveError, OperandError
from lbpasm.targets.base import ArchitectureSpec

TOKEN = r"[a-z0-9_-]+|\([a-z0-9_-]+\s*[+-]\s*[a-z0-9_-]+\)|-?'\\?.'"

token = slot(TOKEN)
register = slot("|".join(ALL_REGISTERS))
string = slot('".*"')

PADDING = "0" * 9


# =============================================================================
# Register Encoding
# =============================================================================

def reg3(name: str) -> str:
    """Encode a basic register as 3 bits."""
    name = name.lower()
    if name in BASIC_REGISTERS:
        return BASIC_REGISTERS[name][1:]
    if name in WORD_REGISTERS:
        raise OperandError(f"Expected basic register, got special register '{name}'")
    if name in DOUBLE_REGISTERS:
        raise OperandError(f"Expected word register, got double register '{name}'")
    raise OperandError(f"'{name}' is not a valid register")


def reg4(name: str) -> str:
    """Encode a basic or special register as 4 bits."""
    name = name.lower()
    if name in WORD_REGISTERS:
        return WORD_REGISTERS[name]
    if name in DOUBLE_REGISTERS:
        raise OperandError(f"Expected word register, got double register '{name}'")
    raise OperandError(f"'{name}' is not a valid register")


def reg3d(name: str) -> str:
    """Encode a double register as 3 bits."""
    name = name.lower()
    if name in DOUBLE_REGISTERS:
        return DOUBLE_REGISTERS[name][1:]
    if name in WORD_REGISTERS:
        raise OperandError(f"Expected double register, got word register '{name}'")
    raise OperandError(f"'{name}' is not a valid register")


def is_register(name: str) -> bool:
    return name.lower() in ALL_REGISTERS


# =============================================================================
# ALU
# =============================================================================

def _three(mnemonic: str) -> tuple[str, ...]:
    return (mnemonic, SPACE, token("d"), SEP, token("a"), SEP, token("b"))


def add_alu_op(table: RuleTable, mnemonic: str, bits: str, signed_immediate: bool) -> None:
    table.add(*_three(mnemonic), action=lambda ctx, b: ctx.emit(
        "0", bits, "1", reg4(b.a), reg3(b.d), reg3(b.b), PADDING))
    table.add(*_three(mnemonic + "i"), action=lambda ctx, b: ctx.emit(
        "0", bits, "0", reg4(b.a), reg3(b.d), ctx.value(b.b, 12, signed_immediate)))


def add_special_alu_op(table: RuleTable, mnemonic: str, bits: str) -> None:
    """Multiply/divide: the A register is split around the 11 marker."""
    table.add(*_three(mnemonic), action=lambda ctx, b: ctx.emit(
        "0", bits, reg3(b.a)[0], "111", reg3(b.a)[1:], reg3(b.d), reg3(b.b), PADDING))
    table.add(*_three(mnemonic + "i"), action=lambda ctx, b: ctx.emit(
        "0", bits, reg3(b.a)[0], "011", reg3(b.a)[1:], reg3(b.d), ctx.value(b.b, 12)))


def load_immediate(ctx, b) -> None:
    """li: a single addi when the value fits, otherwise lui + ori."""
    value = ctx.syntax.parse(b.a)
    if value is None:
        ctx.pseudo(f"addi {b.d}, zero, {b.a}")
        return
    encode_field(value, WORD_SIZE)
    # addi takes a signed 12-bit immediate
    if not -(1 << 11) <= value < 1 << 11:
        ctx.pseudo(f"lui {b.d}, {(value >> 12) & 0xFFF}")
        ctx.pseudo(f"ori {b.d}, {b.d}, {value & 0xFFF}")
    else:
        ctx.pseudo(f"addi {b.d}, zero, {b.a}")


# =============================================================================
# Data
# =============================================================================

def _offset(name: str, base: str) -> str:
    return token(name) + OPT_SPACE + r"\(" + OPT_SPACE + token(base) + OPT_SPACE + r"\)"


def add_data_op(table: RuleTable, mnemonic: str, bits: str, double: bool) -> None:
    dest = reg3d if double else reg3
    table.add(mnemonic, SPACE, token("d"), SEP, register("b"), OPT_SPACE, r"\(",
              OPT_SPACE, token("a"), OPT_SPACE, r"\)",
              action=lambda ctx, b: ctx.emit(
                  "10", bits, "1", reg4(b.a), dest(b.d), reg3(b.b), PADDING))
    table.add(mnemonic, SPACE, token("d"), SEP, _offset("b", "a"),
              action=lambda ctx, b: ctx.emit(
                  "10", bits, "0", reg4(b.a), dest(b.d), ctx.value(b.b, 12, signed=True)))


# =============================================================================
# Branching
# =============================================================================

def add_branch(table: RuleTable, mnemonic: str, bits: str, swap: bool) -> None:
    def action(ctx, b) -> None:
        first, second = (b.d, b.a) if swap else (b.a, b.d)
        ctx.emit("11", bits, reg4(first), reg3(second),
                 ctx.value(b.b, 12, signed=True, relative=True))
    table.add(mnemonic, SPACE, token("a"), SEP, token("d"), SEP, token("b"), action=action)


def jump(ctx, b) -> None:
    if is_register(b.b):
        ctx.emit("1111", "1", reg4(b.a), "100", reg3(b.b), PADDING)
    else:
        ctx.emit("1111", "0", reg4(b.a), "100", ctx.value(b.b, 12))


def branch_always(ctx, b) -> None:
    if is_register(b.a):
        ctx.pseudo(f"j {b.a}(pc)")
    else:
        ctx.pseudo(f"beq x0, x0, {b.a}")


# =============================================================================
# Directives
# =============================================================================

def emit_string(ctx, b) -> None:
    """
    Encode a string literal, least significant character first.

    Unpacked encodings put each character in its own word; packed ones
    fill a word before starting the next.
    """
    encoding = ctx.state.string_encoding
    per_word = encoding.characters_per_word(ctx.word_size)
    characters = split_string_literal(b.a)
    word = ""
    count = 0
    for i, character in enumerate(characters):
        word = encode(encoding.code(character), encoding.bits_per_character) + word
        count += 1
        if not encoding.pack or count >= per_word or i == len(characters) - 1:
            ctx.emit(word.rjust(ctx.word_size, "0"), marker="(string)")
            word = ""
            count = 0


def set_string_encoding(ctx, b) -> None:
    try:
        ctx.state.string_encoding = STRING_ENCODINGS[b.a.lower()]
    except KeyError:
        raise DirectiveError(f"Unknown string encoding '{b.a}'") from None


def _rewrite(template: str):
    return lambda ctx, b: ctx.pseudo(template.format(**b))


def _rewrite_all(*templates: str):
    def action(ctx, b) -> None:
        for template in templates:
            ctx.pseudo(template.format(**b))
    return action


# =============================================================================
# Rule Table
# =============================================================================

def build_rules() -> RuleTable:
    table = RuleTable("parva_0_1")

    add_alu_op(table, "add", "000", True)
    table.add(*_three("sub"), action=lambda ctx, b: ctx.emit(
        "00011", reg4(b.a), reg3(b.d), reg3(b.b), PADDING))
    table.add("lui", SPACE, token("d"), SEP, token("a"), action=lambda ctx, b: ctx.emit(
        "00010", "1000", reg3(b.d), ctx.value(b.a, 12)))
    for mnemonic, bits in (("sll", "010"), ("srl", "011"), ("sra", "100"),
                           ("xor", "101"), ("or", "110"), ("and", "111")):
        add_alu_op(table, mnemonic, bits, False)

    for mnemonic, bits in (("mulu", "00"), ("mulhu", "01"), ("divu", "10"), ("remu", "11")):
        add_special_alu_op(table, mnemonic, bits)

    table.add("nop", action=_rewrite("addi x0, x0, 0"))
    table.add("mv", SPACE, token("d"), SEP, token("a"), action=_rewrite("add {d}, zero, {a}"))
    table.add("li", SPACE, token("d"), SEP, token("a"), action=load_immediate)

    for mnemonic, bits, double in (("lw", "00", False), ("sw", "01", False),
                                   ("ld", "10", True), ("sd", "11", True)):
        add_data_op(table, mnemonic, bits, double)
    for mnemonic in ("lw", "sw", "ld", "sd"):
        table.add(mnemonic, SPACE, token("d"), SEP, token("b"),
                  action=_rewrite(mnemonic + " {d}, {b}(zero)"))

    table.add("push", SPACE, token("a"), action=_rewrite_all("sw {a}, 0(sp)", "addi sp, sp, 1"))
    table.add("pop", SPACE, token("a"), action=_rewrite_all("addi sp, sp, -1", "lw {a}, 0(sp)"))

    for mnemonic, bits in (("beq", "000"), ("bltu", "010"), ("blt", "100"),
                           ("bne", "001"), ("bgeu", "011"), ("bge", "101")):
        add_branch(table, mnemonic, bits, False)
    for mnemonic, bits in (("bgt", "100"), ("bgtu", "010"), ("ble", "101"), ("bleu", "011")):
        add_branch(table, mnemonic, bits, True)

    for mnemonic, real in (("beqz", "beq"), ("bnez", "bne"), ("bgtz", "blt"), ("blez", "bge")):
        table.add(mnemonic, SPACE, token("a"), SEP, token("b"),
                  action=_rewrite(real + " zero, {a}, {b}"))
    for mnemonic, bits in (("bltz", "110"), ("bgez", "111")):
        table.add(mnemonic, SPACE, token("a"), SEP, token("b"),
                  action=lambda ctx, b, bits=bits: ctx.emit(
                      "11", bits, reg4(b.a), "000",
                      ctx.value(b.b, 12, signed=True, relative=True)))

    table.add("j", SPACE, _offset("b", "a"), action=jump)
    table.add("j", SPACE, token("b"), action=_rewrite("j {b}(zero)"))
    table.add("b", SPACE, token("a"), action=branch_always)
    table.add("wfi", action=_rewrite("b 0"))
    table.add("call", SPACE, token("a"), action=_rewrite_all("addi ra, pc, 2", "j {a}"))
    table.add("ret", action=_rewrite("j ra"))

    add_directives(table, token, separator=SEP)
    table.add(r"\.string", SPACE, string("a"), action=emit_string)
    table.add(r"\.string_encoding", SPACE, token("a"), action=set_string_encoding)
    return table


ASSEMBLER = TargetAssembler(
    "parva_0_1",
    build_rules(),
    word_size=WORD_SIZE,
    syntax=C_SYNTAX,
    comment_markers=(";", "//", "#"),
    fixed_width=WORD_SIZE,
    string_encoding=ASCII,
)

DOCUMENTATION = """\
Parva 0.1
=========

24-bit CPU with a 64x48 pixel display and 4 I/O device ports. The
syntax follows RISC-V.

Registers:
  x0/ra  return address      x4/t0, x5/t1  temporaries
  x1/sp  stack pointer       x6/a0, x7/a1  arguments
  x2/bp  base pointer        x3/s0         saved
  zero, pc, cycle, upper (0xFFF000): read-only special registers
  x01, x23, x45, x67: double registers

ALU (immediate variants end in 'i'; add immediates are signed):
  add, sub, sll, srl, sra, xor, or, and    xD, xS, xB
  mulu, mulhu, divu, remu                  xD, xA, xB
  lui xD, I        xD = I << 12
  li xD, I         load any 24-bit value (addi or lui + ori)
  mv xD, xS / nop

Data (immediates are signed):
  lw / sw xD, I(xS)     word at xS + I
  ld / sd xDD, I(xS)    double at xS + I (align to 2)
  lw / sw / ld / sd xD, I    address I
  push xA / pop xA

Branching (branches are PC-relative, jumps absolute):
  beq, bne, blt, bltu, bge, bgeu, bgt, bgtu, ble, bleu  xA, xB, I
  beqz, bnez, bltz, bgez, bgtz, blez                    xA, I
  b I / b xB, j I / j I(xS) / j xB(xS)
  call I, ret, wfi

Directives:
  name:                  define a label
  .data I I ...          one word per value
  .string "text"         one word per character (active encoding)
  .string_encoding name  ascii or terminal
  .repeat I, n / .address I / .align n / .eq name, I / .start / .end

I/O:
  Addresses from 0xFFF000 are I/O; bits 10-11 select the device.
  GPU (device 1):
    sd xAB, 0b010000_000000(upper)   move cursor to (A, B)
    sd xAB, 0b010010_000000(upper)   draw 6x8 pixels AB into the buffer
    sw x0, 0b010011_000000(upper)    show the buffer
    sw x0, 0b010100_000000(upper)    clear the screen
"""

SPEC = ArchitectureSpec(
    name="parva_0_1",
    assembler=ASSEMBLER,
    max_words_per_instruction=1,
    documentation=DOCUMENTATION,
    emulator=ParvaEmulator,
)
