"""
Second-Pass Resolution
======================

After the first pass every label address is known. The resolver turns
each ``Reference`` into an integer and encodes it into its field.

Resolution order for a reference's text:

1. numeric literal
2. label (relative references subtract the instruction's address)
3. ``(base+offset)`` / ``(base-offset)``: the base keeps the reference's
   relative flag, the offset is always absolute
4. constant defined with ``.eq`` (never relative)

Anything else raises UndefinedSymbolError, with close matches offered
as a hint.
"""

import difflib
import logging
import re

from lbpasm.assembler.bits import encode_field
from lbpasm.assembler.literals import NumberSyntax
from lbpasm.assembler.program import Part, ProgramState, Reference
from lbpasm.errors import UndefinedSymbolError

logger = logging.getLogger(__name__)

PAIR_RE = re.compile(r"\(\s*([\w$%@-]+?)\s*([+-])\s*([\w$%@-]+)\s*\)")


class Resolver:
    """
    Resolves references against the symbol tables of one program.

    Args:
        state: The finished first-pass state
        syntax: Number syntax of the target
    """

    def __init__(self, state: ProgramState, syntax: NumberSyntax):
        self.labels = state.labels
        self.constants = state.constants
        self.syntax = syntax

    def value(self, text: str, source_address: int, relative: bool = False) -> int:
        """
        Resolve a symbol, literal or pair to an integer.

        Raises:
            UndefinedSymbolError: If nothing by that name exists
        """
        number = self.syntax.parse(text)
        if number is not None:
            return number

        if text in self.labels:
            address = self.labels[text]
            return address - source_address if relative else address

        pair = PAIR_RE.fullmatch(text)
        if pair:
            base_text, operator, offset_text = pair.groups()
            base = self.value(base_text, source_address, relative)
            offset = self.value(offset_text, source_address, False)
            return base + offset if operator == "+" else base - offset

        if text in self.constants:
            return self.constants[text]

        similar = difflib.get_close_matches(text, [*self.labels, *self.constants], n=3)
        raise UndefinedSymbolError(text, similar_symbols=similar)

    def part(self, part: Part) -> str:
        """Return the bit string of one instruction part."""
        if isinstance(part, Reference):
            value = self.value(part.text, part.source_address, part.relative)
            logger.debug("resolved %s -> %d", part.text, value)
            return encode_field(value, part.width, part.signed or part.relative)
        return part

    def bits(self, parts: tuple[Part, ...]) -> str:
        return "".join(self.part(p) for p in parts)
