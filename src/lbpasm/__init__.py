"""
lbpasm - Assembler Toolchain for LittleBigPlanet Computers
==========================================================

A multi-target assembler for the small CPUs built inside LittleBigPlanet:
bitzzy, v8, lodestar and parva 0.1. Source text is assembled into
addressed machine-code words with per-line diagnostics; the words can be
run in an emulator or streamed into the game through a transfer bridge.

Main Components
---------------
- **assembler**: the rule-driven two-pass assembler, memory images and
  listings
- **targets**: one definition per CPU and the target registry
- **emulator**: instruction-level emulators (bitzzy, v8, parva)
- **transfer**: the protocol and bridge server that send words to the game
- **config**: persisted settings

Quick Start
-----------
Assemble a program:
    >>> from lbpasm import get_target
    >>> result = get_target("v8").assemble("loop:\\nJMP loop")
    >>> result.ok
    True
    >>> [line.bits for line in result.instructions]
    ['0000001000000000']

Or use the command-line tools:
    $ lbpasm program.asm --target parva_0_1 --format hex
    $ lbpemu program.asm --target v8 --steps 1000
    $ lbpsend push program.asm
"""

__version__ = "0.1.0"

from lbpasm.assembler import AssemblyResult, InstructionLine, LabelLine
from lbpasm.errors import (
    AssemblerError,
    ConfigurationError,
    EmulatorError,
    InputError,
    LbpAsmError,
    TransferError,
    UnknownTargetError,
)
from lbpasm.targets import TARGETS, ArchitectureSpec, get_target, list_targets

__all__ = [
    "__version__",
    # Registry
    "TARGETS",
    "ArchitectureSpec",
    "get_target",
    "list_targets",
    # Results
    "AssemblyResult",
    "InstructionLine",
    "LabelLine",
    # Exception hierarchy
    "LbpAsmError",
    "AssemblerError",
    "ConfigurationError",
    "UnknownTargetError",
    "EmulatorError",
    "TransferError",
    "InputError",
]
