"""
Common Directives
=================

Directives shared by the targets. Each action is a plain function taking
(context, bindings), so targets can register the whole set through
``add_directives`` or pick individual actions for their own patterns.

Directive Summary
-----------------
name:                       Define a label at the current address
.data v1, v2, ...           Emit one data item per value
.repeat value, count        Emit ``value`` ``count`` times
.eq name, value             Define a constant (value must be a literal)
.address value              Move the current address
.align n                    Pad with zero words to a multiple of n
.start / .end               Enable / disable emission
"""

import re
from collections.abc import Callable
from typing import Final

from lbpasm.assembler.matcher import Bindings, HARD_SEP, REMAINDER, RuleTable, SEP, SPACE, slot
from lbpasm.errors import DirectiveError

# (context, item text, displayed source) -> None
DataItem = Callable[..., None]

# Largest .repeat count: the 16-bit address space of bitzzy
MAX_REPEAT_COUNT: Final[int] = 1 << 16

_remainder = slot(REMAINDER)


def word_item(ctx, text: str, instruction_text: str) -> None:
    """Emit a single one-word data item."""
    ctx.emit(ctx.value(text, ctx.word_size), marker="(data)",
             instruction_text=instruction_text)


def define_label(ctx, b: Bindings) -> None:
    ctx.state.label(b.a, ctx.source)


def set_address(ctx, b: Bindings) -> None:
    ctx.state.set_address(ctx.literal(b.a))


def define_constant(ctx, b: Bindings) -> None:
    ctx.state.constant(b.a, ctx.literal(b.b))


def align(ctx, b: Bindings) -> None:
    ctx.state.align(ctx.literal(b.a), ctx.word_size, ctx.source)


def start(ctx, b: Bindings) -> None:
    ctx.state.enable()


def end(ctx, b: Bindings) -> None:
    ctx.state.disable()


def data(separator: str, item: DataItem = word_item):
    """Build a .data action splitting its operand on ``separator``."""
    splitter = re.compile(separator)

    def action(ctx, b: Bindings) -> None:
        for text in splitter.split(b.a):
            item(ctx, text, ".data")
    return action


def repeat(item: DataItem = word_item):
    def action(ctx, b: Bindings) -> None:
        count = ctx.literal(b.b)
        if not 0 <= count <= MAX_REPEAT_COUNT:
            raise DirectiveError(
                f"Repeat count must be between 0 and {MAX_REPEAT_COUNT}, got {count}"
            )
        for _ in range(count):
            item(ctx, b.a, ".repeat")
    return action


def add_directives(
    table: RuleTable,
    token: Callable[[str], str],
    *,
    separator: str = HARD_SEP,
    data_item: DataItem = word_item,
) -> None:
    """
    Register the common directive set.

    Args:
        table: Rule table to extend
        token: Capture factory for a single operand
        separator: Splits .data operands
        data_item: Emits one .data/.repeat item
    """
    table.add(token("a"), ":", action=define_label)
    table.add(r"\.data", SPACE, _remainder("a"), action=data(separator, data_item))
    table.add(r"\.repeat", SPACE, token("a"), SEP, token("b"), action=repeat(data_item))
    table.add(r"\.eq", SPACE, token("a"), SEP, token("b"), action=define_constant)
    table.add(r"\.address", SPACE, token("a"), action=set_address)
    table.add(r"\.align", SPACE, token("a"), action=align)
    table.add(r"\.start", action=start)
    table.add(r"\.end", action=end)
