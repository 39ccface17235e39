"""
Rule-Driven Assembler
=====================

The target-independent part of the toolchain. A target supplies an
ordered rule table; ``TargetAssembler`` runs it over the source in two
passes (place and encode, then resolve references).

Modules
-------
- `literals.py`: number syntaxes, character encodings
- `bits.py`: fixed-width bit-string codec
- `matcher.py`: pattern fragments, rules and rule tables
- `program.py`: first-pass state (addresses, labels, constants)
- `directives.py`: directives shared by the targets
- `resolver.py`: second-pass symbol resolution
- `assembler.py`: the pipeline and its results
- `memory.py`: memory images from assembled output
- `listing.py`: text listings
"""

from lbpasm.assembler.assembler import (
    MAX_EXPANSION_DEPTH,
    AssemblyResult,
    InstructionLine,
    LabelLine,
    LineContext,
    OutputLine,
    TargetAssembler,
)
from lbpasm.assembler.bits import decode, encode, encode_field, to_note
from lbpasm.assembler.matcher import Bindings, Rule, RuleTable
from lbpasm.assembler.memory import build_memory_image
from lbpasm.assembler.program import LineSource, ProgramState, Reference

__all__ = [
    "MAX_EXPANSION_DEPTH",
    "AssemblyResult",
    "Bindings",
    "InstructionLine",
    "LabelLine",
    "LineContext",
    "LineSource",
    "OutputLine",
    "ProgramState",
    "Reference",
    "Rule",
    "RuleTable",
    "TargetAssembler",
    "build_memory_image",
    "decode",
    "encode",
    "encode_field",
    "to_note",
]
