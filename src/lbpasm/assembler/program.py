"""
First-Pass Program State
========================

The first pass walks the source once, assigning an address to every
instruction and recording label and constant definitions. Operands that
name symbols cannot be encoded yet, so instructions are stored as a list
of *parts*: literal bit strings, or ``Reference`` placeholders that the
second pass resolves.

A fresh ``ProgramState`` is created for every assembly run and handed
explicitly to each line's rule action. Nothing is shared between runs.

Line Atomicity
--------------
``checkpoint()`` / ``rollback()`` let the pipeline undo everything a line
did when one of its actions fails halfway (for example the second half of
a two-instruction pseudo expansion), so a failing line never leaves a
partial instruction or a stray label behind.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Union

from lbpasm.assembler.literals import CharacterEncoding
from lbpasm.errors import DirectiveError, DuplicateSymbolError


@dataclass(frozen=True)
class LineSource:
    """
    Where an instruction came from.

    Attributes:
        line_number: 0-based line number in the source text
        raw_text: The full original line, comments included
        instruction_text: The comment-stripped, trimmed line
        real_instruction: The text actually matched; differs from
            instruction_text after pseudo expansion, or is a marker
            such as "(data)"
    """
    line_number: int
    raw_text: str
    instruction_text: str
    real_instruction: str

    def rewrite(self, real_instruction: str) -> LineSource:
        return replace(self, real_instruction=real_instruction)


@dataclass(frozen=True)
class Reference:
    """
    An operand that is resolved in the second pass.

    Attributes:
        text: The symbol (or ``(base+offset)`` pair) as written
        width: Width of the encoded field in bits
        source_address: Address of the instruction holding the reference
        relative: Encode as a signed offset from source_address
        signed: Check the resolved value against the signed range
    """
    text: str
    width: int
    source_address: int
    relative: bool = False
    signed: bool = False


Part = Union[str, Reference]


@dataclass(frozen=True)
class ParsedLabel:
    name: str
    source: LineSource


@dataclass(frozen=True)
class ParsedInstruction:
    address: int
    source: LineSource
    parts: tuple[Part, ...]

    @property
    def width(self) -> int:
        """Total width in bits once every reference is resolved."""
        return sum(p.width if isinstance(p, Reference) else len(p) for p in self.parts)


ParsedLine = Union[ParsedLabel, ParsedInstruction]


@dataclass(frozen=True)
class _Checkpoint:
    line_count: int
    address: int
    label_count: int
    constant_count: int
    output_enabled: Optional[bool]
    string_encoding: Optional[CharacterEncoding]


@dataclass
class ProgramState:
    """
    Mutable state of one first pass.

    Attributes:
        current_address: Address the next instruction is placed at
        output_enabled: None until the first .start/.end, then True/False
        lines: Parsed labels and instructions in source order
        labels: Label name -> address
        constants: Constant name -> value (from .eq)
        string_encoding: Active character encoding (targets with strings)
    """
    current_address: int = 0
    output_enabled: Optional[bool] = None
    lines: list[ParsedLine] = field(default_factory=list)
    labels: dict[str, int] = field(default_factory=dict)
    constants: dict[str, int] = field(default_factory=dict)
    string_encoding: Optional[CharacterEncoding] = None

    # =========================================================================
    # Emission
    # =========================================================================

    def instruction(self, parts: tuple[Part, ...], words: int, source: LineSource) -> None:
        """
        Place an instruction at the current address.

        Inside a .end region the instruction is dropped, but the address
        still advances so later labels keep their positions.
        """
        if self.output_enabled is None or self.output_enabled:
            self.lines.append(ParsedInstruction(self.current_address, source, parts))
        self.current_address += words

    def label(self, name: str, source: LineSource) -> None:
        if name in self.labels:
            raise DuplicateSymbolError(name)
        self.labels[name] = self.current_address
        self.lines.append(ParsedLabel(name, source))

    def constant(self, name: str, value: int) -> None:
        if name in self.constants:
            raise DuplicateSymbolError(name, kind="Constant")
        self.constants[name] = value

    def set_address(self, value: int) -> None:
        if value < 0:
            raise DirectiveError(f"Address must not be negative, got {value}")
        self.current_address = value

    def align(self, boundary: int, word_size: int, source: LineSource) -> None:
        """Pad with zero words up to the next multiple of ``boundary``."""
        if boundary <= 0:
            raise DirectiveError(f"Alignment must be a positive number, got {boundary}")
        padding = source.rewrite("(align)")
        while self.current_address % boundary:
            self.instruction(("0" * word_size,), 1, padding)

    def enable(self) -> None:
        # The first .start discards everything emitted before it
        if self.output_enabled is None:
            self.lines.clear()
        self.output_enabled = True

    def disable(self) -> None:
        self.output_enabled = False

    # =========================================================================
    # Line Atomicity
    # =========================================================================

    def checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            line_count=len(self.lines),
            address=self.current_address,
            label_count=len(self.labels),
            constant_count=len(self.constants),
            output_enabled=self.output_enabled,
            string_encoding=self.string_encoding,
        )

    def rollback(self, checkpoint: _Checkpoint) -> None:
        """Undo every change made since ``checkpoint`` was taken."""
        del self.lines[checkpoint.line_count:]
        for name in list(self.labels)[checkpoint.label_count:]:
            del self.labels[name]
        for name in list(self.constants)[checkpoint.constant_count:]:
            del self.constants[name]
        self.current_address = checkpoint.address
        self.output_enabled = checkpoint.output_enabled
        self.string_encoding = checkpoint.string_encoding
