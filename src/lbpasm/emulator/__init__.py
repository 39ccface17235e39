"""
Emulators
=========

Instruction-level emulators used to check programs before sending them
into the game. They follow each CPU's documentation rather than timing.

- `base.py`: the Emulator protocol and EmulatorRunner (breakpoints,
  step budgets, paced runs)
- `v8.py`: V8
- `bitzzy.py`: Bitzzy
- `parva.py`: Parva 0.1, with the GPU from `display.py`
"""

from lbpasm.emulator.base import (
    EMULATOR_SPEED,
    BreakEvent,
    BreakReason,
    Emulator,
    EmulatorRunner,
)
from lbpasm.emulator.bitzzy import BitzzyEmulator
from lbpasm.emulator.display import Gpu
from lbpasm.emulator.parva import ParvaEmulator
from lbpasm.emulator.v8 import V8Emulator

__all__ = [
    "EMULATOR_SPEED",
    "BitzzyEmulator",
    "BreakEvent",
    "BreakReason",
    "Emulator",
    "EmulatorRunner",
    "Gpu",
    "ParvaEmulator",
    "V8Emulator",
]
