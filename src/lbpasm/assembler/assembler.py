"""
Two-Pass Assembler Pipeline
===========================

``TargetAssembler`` runs a target's rule table over source text:

First pass
    Strip the comment from each line, match it against the rule table
    and run the winning action. Actions emit instructions (made of
    literal bit strings and unresolved references), define labels,
    expand pseudo-instructions, or change assembler state through
    directives. Every instruction gets its address here.

Second pass
    Resolve each reference through the label and constant tables,
    concatenate the parts and check the width against the target's
    word size.

Errors raised while handling one line are caught at the line boundary
and collected, so a single run reports every problem in the file.
``assemble()`` itself never raises for bad source.

Example:
    >>> from lbpasm.targets import get_target
    >>> result = get_target("v8").assemble("hlt")
    >>> result.instructions[0].bits
    '00000000'
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Optional, Union

from lbpasm.assembler.bits import encode_field
from lbpasm.assembler.literals import CharacterEncoding, NumberSyntax, parse_char_literal
from lbpasm.assembler.matcher import RuleTable
from lbpasm.assembler.program import (
    LineSource,
    ParsedLabel,
    Part,
    ProgramState,
    Reference,
)
from lbpasm.assembler.resolver import Resolver
from lbpasm.errors import (
    AssemblerError,
    AssemblySyntaxError,
    DirectiveError,
    ErrorCollector,
    ExpansionDepthError,
    InputError,
    InstructionWidthError,
)

logger = logging.getLogger(__name__)

# Pseudo-instructions may rewrite into other pseudo-instructions, up to here
MAX_EXPANSION_DEPTH: int = 8


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class LabelLine:
    name: str


@dataclass(frozen=True)
class InstructionLine:
    """
    One encoded instruction.

    Attributes:
        address: Address of the first word
        bits: The encoded bit string (a whole number of words)
        source: Where the instruction came from
    """
    address: int
    bits: str
    source: LineSource


OutputLine = Union[LabelLine, InstructionLine]


@dataclass
class AssemblyResult:
    """
    Outcome of one assembly run.

    Attributes:
        lines: Labels and instructions in source order
        errors: Per-line errors, in the order they were found
        message: Free-form status text (empty on a normal run)
    """
    lines: list[OutputLine] = field(default_factory=list)
    errors: list[InputError] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def instructions(self) -> list[InstructionLine]:
        return [line for line in self.lines if isinstance(line, InstructionLine)]

    @property
    def labels(self) -> list[str]:
        return [line.name for line in self.lines if isinstance(line, LabelLine)]


# =============================================================================
# Line Context
# =============================================================================

class LineContext:
    """
    What a rule action gets to work with.

    A context is bound to one source line (and one expansion depth) and
    forwards emissions to the program state with the right source
    attribution.
    """

    def __init__(
        self,
        assembler: "TargetAssembler",
        state: ProgramState,
        source: LineSource,
        depth: int = 0,
    ):
        self.assembler = assembler
        self.state = state
        self.source = source
        self.depth = depth

    @property
    def syntax(self) -> NumberSyntax:
        return self.assembler.syntax

    @property
    def word_size(self) -> int:
        return self.assembler.word_size

    def emit(self, *parts: Part, words: int = 1, marker: Optional[str] = None,
             instruction_text: Optional[str] = None) -> None:
        """
        Emit one instruction at the current address.

        Args:
            *parts: Bit strings and references, most significant first
            words: How many words the instruction occupies
            marker: Replaces the real instruction text, e.g. "(data)"
            instruction_text: Replaces the displayed source text
        """
        source = self.source
        if marker is not None:
            source = source.rewrite(marker)
        if instruction_text is not None:
            source = LineSource(source.line_number, source.raw_text,
                                instruction_text, source.real_instruction)
        self.state.instruction(tuple(parts), words, source)

    def value(self, text: str, width: int, signed: bool = False,
              relative: bool = False) -> Part:
        """
        Encode an operand now if it is a literal, else defer it.

        Numbers and character literals are encoded immediately; anything
        else becomes a Reference resolved in the second pass.
        """
        number = self.literal_or_none(text)
        if number is not None:
            return encode_field(number, width, signed)
        return Reference(text, width, self.state.current_address, relative, signed)

    def literal_or_none(self, text: str) -> Optional[int]:
        number = self.syntax.parse(text)
        if number is None and self.state.string_encoding is not None:
            number = parse_char_literal(text, self.state.string_encoding)
        return number

    def literal(self, text: str) -> int:
        """
        Parse a value that must be known in the first pass.

        Raises:
            DirectiveError: If the text is not a number
        """
        number = self.literal_or_none(text)
        if number is None:
            raise DirectiveError(f"Expected number, got {text}")
        return number

    def is_literal(self, text: str) -> bool:
        return self.literal_or_none(text) is not None

    def pseudo(self, text: str) -> None:
        """Rewrite the line as ``text`` and match it again."""
        if self.depth >= MAX_EXPANSION_DEPTH:
            raise ExpansionDepthError(text, MAX_EXPANSION_DEPTH)
        logger.debug("line %d: expanding to '%s'", self.source.line_number, text)
        self.assembler.parse_line(self.state, self.source.rewrite(text), self.depth + 1)


# =============================================================================
# Target Assembler
# =============================================================================

class TargetAssembler:
    """
    Assembler for one target, driven by its rule table.

    Args:
        name: Target name (for logging)
        rules: Ordered rule table
        word_size: Bits per memory word
        syntax: Number syntax for literals
        comment_markers: Strings that start a comment
        fixed_width: Required instruction width in bits, if any
        case_fold: Lower-case every line before matching
        string_encoding: Initial character encoding, if the target has one
    """

    def __init__(
        self,
        name: str,
        rules: RuleTable,
        *,
        word_size: int,
        syntax: NumberSyntax,
        comment_markers: Sequence[str] = (";", "//"),
        fixed_width: Optional[int] = None,
        case_fold: bool = False,
        string_encoding: Optional[CharacterEncoding] = None,
    ):
        self.name = name
        self.rules = rules
        self.word_size = word_size
        self.syntax = syntax
        self.comment_markers = tuple(comment_markers)
        self.fixed_width = fixed_width
        self.case_fold = case_fold
        self.string_encoding = string_encoding

    def new_state(self) -> ProgramState:
        return ProgramState(string_encoding=self.string_encoding)

    def strip_comment(self, text: str) -> str:
        """Cut the line at the first comment marker and trim it."""
        cut = min((i for i in (text.find(m) for m in self.comment_markers) if i != -1),
                  default=len(text))
        return text[:cut].strip()

    # =========================================================================
    # First Pass
    # =========================================================================

    def parse_line(self, state: ProgramState, source: LineSource, depth: int = 0) -> None:
        """
        Match one line (or pseudo expansion) and run its action.

        Raises:
            AssemblerError: If nothing matches or the action fails
        """
        text = source.real_instruction
        if text == "":
            return
        found = self.rules.find(text)
        if found is None:
            raise AssemblySyntaxError(text)
        rule, bindings = found
        rule.action(LineContext(self, state, source, depth), bindings)

    def first_pass(self, text: str, collector: Optional[ErrorCollector] = None) -> ProgramState:
        """
        Run the first pass over source text.

        Args:
            text: The complete source
            collector: Receives per-line errors (a throwaway one if None)

        Returns:
            The populated program state
        """
        collector = collector if collector is not None else ErrorCollector()
        state = self.new_state()
        for number, raw in enumerate(text.split("\n")):
            instruction = self.strip_comment(raw)
            if self.case_fold:
                instruction = instruction.lower()
            source = LineSource(number, raw, instruction, instruction)
            checkpoint = state.checkpoint()
            try:
                self.parse_line(state, source)
            except AssemblerError as e:
                state.rollback(checkpoint)
                collector.add(number, e)
        logger.debug("%s: first pass placed %d lines, %d labels",
                     self.name, len(state.lines), len(state.labels))
        return state

    # =========================================================================
    # Second Pass
    # =========================================================================

    def check_width(self, bits: str, source: LineSource) -> None:
        if self.fixed_width is not None:
            if len(bits) != self.fixed_width:
                raise InstructionWidthError(source.real_instruction, len(bits),
                                            str(self.fixed_width))
        elif len(bits) % self.word_size:
            raise InstructionWidthError(source.real_instruction, len(bits),
                                        f"a multiple of {self.word_size}")

    def resolve(self, state: ProgramState, collector: ErrorCollector) -> list[OutputLine]:
        """Resolve every parsed line; failing lines produce no output."""
        resolver = Resolver(state, self.syntax)
        output: list[OutputLine] = []
        for parsed in state.lines:
            if isinstance(parsed, ParsedLabel):
                output.append(LabelLine(parsed.name))
                continue
            try:
                bits = resolver.bits(parsed.parts)
                self.check_width(bits, parsed.source)
            except AssemblerError as e:
                collector.add(parsed.source.line_number, e)
                continue
            output.append(InstructionLine(parsed.address, bits, parsed.source))
        return output

    def assemble(self, text: str) -> AssemblyResult:
        """
        Assemble source text.

        Returns:
            AssemblyResult with every line that encoded successfully and
            every per-line error
        """
        collector = ErrorCollector()
        state = self.first_pass(text, collector)
        lines = self.resolve(state, collector)
        logger.debug("%s: assembled %d lines with %d errors",
                     self.name, len(lines), collector.error_count())
        return AssemblyResult(lines=lines, errors=list(collector.errors))


Assemble = Callable[[str], AssemblyResult]

__all__ = [
    "MAX_EXPANSION_DEPTH",
    "Assemble",
    "AssemblyResult",
    "InstructionLine",
    "LabelLine",
    "LineContext",
    "OutputLine",
    "TargetAssembler",
]
