"""
Listing Formatter
=================

Renders an ``AssemblyResult`` as a text listing: one line per
instruction with its address, its machine code and optionally its
source, plus optional label lines.

Machine Code Formats
--------------------
- binary:  bytes as 8-digit groups, ``00000010 10010110``
- hex:     bytes as 2-digit groups, ``02 96``
- note:    the whole instruction as an in-game note value
- decimal: each word as a decimal number
- none:    omitted

Address Formats
---------------
binary (16 digits), hex, note, decimal or none.

Inline Source
-------------
- instruction: the text that was encoded (pseudo expansions, markers)
- source:      the line as written, without its comment
- comments:    the full original line
- none

Example:
    >>> from lbpasm.targets import get_target
    >>> result = get_target("v8").assemble("start:\\nLDA #1")
    >>> print(format_listing(result, get_target("v8"), ListingOptions()))
    start:
      0: 01111000 00000001    ; LDA #1
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lbpasm.assembler.assembler import AssemblyResult, InstructionLine, LabelLine
from lbpasm.assembler.bits import to_note
from lbpasm.errors import InputError
from lbpasm.targets.base import ArchitectureSpec


class OutputFormat(str, Enum):
    BINARY = "binary"
    HEX = "hex"
    NOTE = "note"
    DECIMAL = "decimal"
    NONE = "none"


class SourceFormat(str, Enum):
    NONE = "none"
    INSTRUCTION = "instruction"
    SOURCE = "source"
    COMMENTS = "comments"


@dataclass
class ListingOptions:
    """
    How a listing is rendered.

    Attributes:
        machine_code: Format of the encoded instruction
        address: Format of the address column
        source: Which source text to append
        show_labels: Emit a ``name:`` line for every label
    """
    machine_code: OutputFormat = OutputFormat.BINARY
    address: OutputFormat = OutputFormat.DECIMAL
    source: SourceFormat = SourceFormat.INSTRUCTION
    show_labels: bool = True


def _chunks(bits: str, size: int) -> list[str]:
    return [bits[i:i + size] for i in range(0, len(bits), size)]


def format_machine_code(bits: str, fmt: OutputFormat, word_size: int, max_bits: int) -> str:
    """Render an instruction's bit string, padded to the widest instruction."""
    match fmt:
        case OutputFormat.BINARY:
            text = " ".join(_chunks(bits, 8))
            return text.ljust(max_bits // 8 * 9 + 2)
        case OutputFormat.HEX:
            text = " ".join(f"{int(chunk, 2):02x}" for chunk in _chunks(bits, 8))
            return text.ljust(max_bits // 8 * 3 + 2)
        case OutputFormat.NOTE:
            return to_note(int(bits, 2), word_size).rjust(16)
        case OutputFormat.DECIMAL:
            text = " ".join(f"{int(chunk, 2):>8}" for chunk in _chunks(bits, word_size))
            return text.ljust(max_bits // 3)
    return ""


def format_address(address: int, fmt: OutputFormat, word_size: int) -> str:
    match fmt:
        case OutputFormat.BINARY:
            text = format(address, "016b")
        case OutputFormat.HEX:
            text = f"{address:02x}".rjust(4)
        case OutputFormat.NOTE:
            text = to_note(address, word_size).rjust(14)
        case OutputFormat.DECIMAL:
            text = f"{address:>3}"
        case _:
            return ""
    return text + ": "


def format_source(line: InstructionLine, fmt: SourceFormat) -> str:
    match fmt:
        case SourceFormat.INSTRUCTION:
            return "; " + line.source.real_instruction
        case SourceFormat.SOURCE:
            return "; " + line.source.instruction_text
        case SourceFormat.COMMENTS:
            return "; " + line.source.raw_text
    return ""


def format_line(line: InstructionLine, spec: ArchitectureSpec, options: ListingOptions) -> str:
    max_bits = spec.max_words_per_instruction * spec.word_size
    address = format_address(line.address, options.address, spec.word_size)
    code = format_machine_code(line.bits, options.machine_code, spec.word_size, max_bits)
    source = format_source(line, options.source)
    return f"{address}{code} {source}".rstrip()


def format_listing(
    result: AssemblyResult,
    spec: ArchitectureSpec,
    options: Optional[ListingOptions] = None,
) -> str:
    """
    Render every output line of an assembly run.

    Args:
        result: The assembly result
        spec: Target the result was assembled for
        options: Rendering options (defaults if None)

    Returns:
        The listing, one line per label/instruction
    """
    options = options or ListingOptions()
    rendered = []
    for line in result.lines:
        if isinstance(line, LabelLine):
            if options.show_labels:
                rendered.append(f"{line.name}:")
        else:
            rendered.append(format_line(line, spec, options))
    return "\n".join(rendered)


def format_errors(errors: list[InputError]) -> str:
    """One ``Line n: message`` entry per error, 1-based."""
    return "\n".join(str(error) for error in errors)
