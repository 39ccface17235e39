"""
Architecture Specification
==========================

An ``ArchitectureSpec`` bundles everything the toolchain knows about one
target: its assembler, word geometry, reference documentation and an
optional emulator factory.

Specs are immutable. The emulator is stored as a factory so every caller
gets its own CPU state.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from lbpasm.assembler.assembler import AssemblyResult, TargetAssembler
from lbpasm.emulator.base import Emulator
from lbpasm.errors import EmulatorError


@dataclass(frozen=True)
class ArchitectureSpec:
    """
    Static description of one target architecture.

    Attributes:
        name: Registry key, e.g. "v8"
        assembler: The target's rule-driven assembler
        max_words_per_instruction: Longest instruction, in words
        documentation: Reference text (instruction set, encodings)
        emulator: Factory for a fresh emulator, or None
    """
    name: str
    assembler: TargetAssembler
    max_words_per_instruction: int
    documentation: str
    emulator: Optional[Callable[[], Emulator]] = None

    @property
    def word_size(self) -> int:
        return self.assembler.word_size

    @property
    def has_emulator(self) -> bool:
        return self.emulator is not None

    def assemble(self, source: str) -> AssemblyResult:
        """Assemble source text for this target."""
        return self.assembler.assemble(source)

    def create_emulator(self) -> Emulator:
        """
        Create a fresh emulator.

        Raises:
            EmulatorError: If the target has no emulator
        """
        if self.emulator is None:
            raise EmulatorError(f"Architecture '{self.name}' has no emulator")
        return self.emulator()
