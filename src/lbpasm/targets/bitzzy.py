"""
Bitzzy Target
=============

Assembler definition for the Bitzzy, an 8-bit CPU with 16-bit
addressing and three registers: X, Y and Z (the accumulator). X and Y
together form the 16-bit register YX (Y is the high byte).

Syntax
------
    LOD X, #$10         ; immediate
    LOD X, Y            ; register to register
    LOD X, table        ; absolute
    LOD X, table, Y     ; absolute + register
    LOD Z, table, YX    ; absolute + YX
    STR #1, table, X    ; store immediate
    ADD X, Y            ; register pair, result in Z
    ADD X, #1           ; immediate, result in X
    JMPEQ X, Y, done

Instructions and registers are case-insensitive; labels are not.
Operands written in the "wrong" order (``SWP Y, X``) are rewritten to
the canonical form.
"""

from lbpasm.assembler.assembler import TargetAssembler
from lbpasm.assembler.directives import add_directives
from lbpasm.assembler.literals import DOLLAR_SYNTAX
from lbpasm.assembler.matcher import SEP, SPACE, RuleTable, slot
from lbpasm.cpu import bitzzy as op
from lbpasm.cpu.bitzzy import opcode_bits
from lbpasm.emulator.bitzzy import BitzzyEmulator
from lbpasm.errors import OperandError
from lbpasm.targets.base import ArchitectureSpec

VALUE_ATOM = rf"(?:{DOLLAR_SYNTAX.pattern}|[a-z0-9_-]+)"
VALUE_PAIR = rf"\({VALUE_ATOM}\s*[+-]\s*{VALUE_ATOM}\)"
VALUE = rf"{VALUE_ATOM}|{VALUE_PAIR}"
REGISTER = "x|y|z|yx"

token = slot(VALUE)
addr = slot(VALUE)
reg = slot(REGISTER)


def immediate(name: str) -> str:
    return "#" + token(name)


# =============================================================================
# Actions
# =============================================================================

def _op(opcode: int):
    return lambda ctx, b: ctx.emit(opcode_bits(opcode))


def _immediate(opcode: int):
    return lambda ctx, b: ctx.emit(opcode_bits(opcode), ctx.value(b.a, 8), words=2)


def _address(opcode: int):
    return lambda ctx, b: ctx.emit(opcode_bits(opcode), ctx.value(b.a, 16), words=3)


def _store_immediate(opcode: int):
    return lambda ctx, b: ctx.emit(
        opcode_bits(opcode), ctx.value(b.b, 16), ctx.value(b.a, 8), words=4
    )


def _rewrite(template: str):
    return lambda ctx, b: ctx.pseudo(template.format(**b))


def _reject(message: str):
    def action(ctx, b) -> None:
        raise OperandError(message)
    return action


def data_item(ctx, text: str, instruction_text: str) -> None:
    """Literals are stored as bytes, symbols as 16-bit addresses."""
    if ctx.is_literal(text):
        ctx.emit(ctx.value(text, 8), marker="(data)", instruction_text=instruction_text)
    else:
        ctx.emit(ctx.value(text, 16), words=2, marker="(data)",
                 instruction_text=instruction_text)


# =============================================================================
# Rule Table
# =============================================================================

def _pair(a: str, b: str) -> tuple[str, ...]:
    return (SPACE, a, SEP, b)


def build_rules() -> RuleTable:
    table = RuleTable("bitzzy")

    for mnemonic, opcode in (("hlt", op.HLT), ("rti", op.RTI), ("eni", op.ENI),
                             ("dsi", op.DSI), ("nop", op.NOP)):
        table.add(mnemonic, action=_op(opcode))
    for r, opcode in op.REM.items():
        table.add("rem", SPACE, r, action=_op(opcode))
    table.add("clr", action=_op(op.CLR))

    # Jumps
    table.add("jmp", SPACE, addr("a"), action=_address(op.JMP))
    for r, opcode in op.JMP_INDEXED.items():
        table.add("jmp", SPACE, addr("a"), SEP, r, action=_address(opcode))
    table.add("jsr", SPACE, addr("a"), action=_address(op.JSR))
    for r, opcode in op.JSR_INDEXED.items():
        table.add("jsr", SPACE, addr("a"), SEP, r, action=_address(opcode))

    for (a, b), opcode in op.SWP.items():
        table.add("swp", *_pair(a, b), action=_op(opcode))
        table.add("swp", *_pair(b, a), action=_rewrite(f"SWP {a.upper()}, {b.upper()}"))

    for r, opcode in op.JMPEZ.items():
        table.add("jmpez", SPACE, r, SEP, addr("a"), action=_address(opcode))
    table.add("jmpez", SPACE, reg("r"), SEP, addr("a"),
              action=_reject("JMPEZ can only be used with registers X and Z"))
    table.add("jmpgt", *_pair("x", "y"), SEP, addr("a"), action=_address(op.JMPGT))
    table.add("jmpgt", *_pair(reg("r"), reg("s")), SEP, addr("a"),
              action=_reject("JMPGT can only be used with registers X and Y"))
    for (a, b), opcode in op.JMPEQ.items():
        table.add("jmpeq", *_pair(a, b), SEP, addr("a"), action=_address(opcode))
        table.add("jmpeq", *_pair(b, a), SEP, addr("a"),
                  action=_rewrite(f"JMPEQ {a.upper()}, {b.upper()}, {{a}}"))
    table.add("jmprez", SPACE, addr("a"), action=_address(op.JMPREZ))
    table.add("jmprnz", SPACE, addr("a"), action=_address(op.JMPRNZ))

    for r, opcode in op.JSREZ.items():
        table.add("jsrez", SPACE, r, SEP, addr("a"), action=_address(opcode))
    table.add("jsrez", SPACE, reg("r"), SEP, addr("a"),
              action=_reject("JSREZ can only be used with registers X and Z"))
    table.add("jsrgt", *_pair("x", "y"), SEP, addr("a"), action=_address(op.JSRGT))
    table.add("jsrgt", *_pair(reg("r"), reg("s")), SEP, addr("a"),
              action=_reject("JSRGT can only be used with registers X and Y"))
    table.add("jsreq", *_pair("x", "y"), SEP, addr("a"), action=_address(op.JSREQ))
    table.add("jsreq", *_pair("y", "x"), SEP, addr("a"), action=_rewrite("JSREQ X, Y, {a}"))
    table.add("jsreq", *_pair(reg("r"), reg("s")), SEP, addr("a"),
              action=_reject("JSREQ can only be used with registers X and Y"))

    table.add("ret", action=_op(op.RET))
    table.add("retrez", action=_op(op.RETREZ))
    table.add("retrnz", action=_op(op.RETRNZ))

    for r, opcode in op.DJNZ.items():
        table.add("djnz", SPACE, r, SEP, addr("a"), action=_address(opcode))

    # Loads: immediate and register forms before absolute, since an
    # address operand would also match a register name
    for r, opcode in op.LOD_IMMEDIATE.items():
        table.add("lod", SPACE, r, SEP, immediate("a"), action=_immediate(opcode))
    for (dest, src), opcode in op.LOD_REGISTER.items():
        table.add("lod", *_pair(dest, src), action=_op(opcode))
    for r, opcode in op.LOD_ABSOLUTE.items():
        table.add("lod", SPACE, r, SEP, addr("a"), action=_address(opcode))
    for (dest, index), opcode in op.LOD_INDEXED.items():
        table.add("lod", SPACE, dest, SEP, addr("a"), SEP, index, action=_address(opcode))

    for r, opcode in op.STR_ABSOLUTE.items():
        table.add("str", SPACE, r, SEP, addr("a"), action=_address(opcode))
    for (src, index), opcode in op.STR_INDEXED.items():
        table.add("str", SPACE, src, SEP, addr("a"), SEP, index, action=_address(opcode))

    for index, opcode in op.STR_IMMEDIATE_INDEXED.items():
        table.add("str", SPACE, immediate("a"), SEP, addr("b"), SEP, index,
                  action=_store_immediate(opcode))
    table.add("str", SPACE, immediate("a"), SEP, addr("b"),
              action=_store_immediate(op.STR_IMMEDIATE))
    table.add("str", SPACE, immediate("a"), SEP, addr("b"), SEP, "yx",
              action=_store_immediate(op.STR_IMMEDIATE_YX))

    table.add("lod", SPACE, "z", SEP, addr("a"), SEP, "yx", action=_address(op.LOD_Z_YX))
    table.add("str", SPACE, "z", SEP, addr("a"), SEP, "yx", action=_address(op.STR_Z_YX))

    # Arithmetic and logic
    for r, opcode in op.INC.items():
        table.add("inc", SPACE, r, action=_op(opcode))
    table.add("inc", SPACE, addr("a"), action=_address(op.INC_ABSOLUTE))
    for r, opcode in op.DEC.items():
        table.add("dec", SPACE, r, action=_op(opcode))
    table.add("dec", SPACE, addr("a"), action=_address(op.DEC_ABSOLUTE))

    for mnemonic, by_register in op.IMMEDIATE_OPS.items():
        for r, opcode in by_register.items():
            table.add(mnemonic, SPACE, r, SEP, immediate("a"), action=_immediate(opcode))
        for (a, b), opcode in op.REGISTER_OPS[mnemonic].items():
            table.add(mnemonic, *_pair(a, b), action=_op(opcode))

    for mnemonic, by_register in (("lsl", op.LSL), ("lsr", op.LSR), ("not", op.NOT)):
        for r, opcode in by_register.items():
            table.add(mnemonic, SPACE, r, action=_op(opcode))

    add_directives(table, token, data_item=data_item)
    return table


ASSEMBLER = TargetAssembler("bitzzy", build_rules(), word_size=8, syntax=DOLLAR_SYNTAX)

DOCUMENTATION = """\
Bitzzy
======

8-bit CPU with 16-bit addressing. Three registers: X, Y and Z (Z is the
accumulator). YX is X and Y combined, Y being the high byte.

Operands:
  <reg>   X, Y or Z; two-register instructions need different registers
  <imm>   8-bit immediate, prefixed with '#', signed or unsigned
  <addr>  16-bit address; labels may be offset: (label + 2)

Instructions:
  HLT, NOP, RTI, ENI, DSI
  REM <reg>              reg = remainder (carry/borrow flag)
  CLR                    clear the remainder
  JMP <addr>[, <reg>]    jump to addr (+ reg)
  JSR <addr>[, <reg>]    call addr (+ reg)
  JMPEZ X|Z, <addr>      jump if the register is zero
  JMPGT X, Y, <addr>     jump if X > Y
  JMPEQ <a>, <b>, <addr> jump if the registers are equal
  JMPREZ / JMPRNZ <addr> jump if the remainder is zero / not zero
  JSREZ, JSRGT, JSREQ    subroutine forms of the conditional jumps
  RET, RETREZ, RETRNZ    return (conditionally on the remainder)
  DJNZ <reg>, <addr>     decrement reg, jump if not zero
  INC / DEC <reg>|<addr>
  ADD, SUB, MUL, DIV, MOD, AND, OR, XOR
      <a>, <b>           result in Z
      <reg>, <imm>       result in reg
  LSL, LSR, NOT <reg>
  LOD <reg>, <imm>|<reg>|<addr>[, <reg>]
  LOD Z, <addr>, YX
  STR <reg>, <addr>[, <reg>]
  STR Z, <addr>, YX
  STR <imm>, <addr>[, <reg>|YX]
  SWP <a>, <b>

Directives:
  name:            define a label
  .data v, ...     bytes; a label stores its 16-bit address
  .repeat v, n     repeat v n times
  .address addr    set the current address
  .align n         pad to a multiple of n
  .start / .end    resume / stop emitting
  .eq name, v      define a constant
"""

SPEC = ArchitectureSpec(
    name="bitzzy",
    assembler=ASSEMBLER,
    max_words_per_instruction=4,
    documentation=DOCUMENTATION,
    emulator=BitzzyEmulator,
)
