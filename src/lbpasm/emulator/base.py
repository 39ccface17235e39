"""
Emulator Protocol and Runner
============================

Every target emulator exposes the same small surface:

- ``init(memory)``: load a memory image and reset the CPU
- ``step()``: execute one instruction
- ``print_state()``: a plain-text dump of registers, flags and memory
- ``pc``: the program counter
- ``halted``: True when the CPU sits on a halt instruction

``EmulatorRunner`` drives any such emulator: single steps, bounded runs
that stop on PC breakpoints or halts, and paced runs at a fixed number
of steps per second (the speed the web front end used).

Usage:
    runner = EmulatorRunner(get_target("v8").create_emulator())
    runner.load(image)
    runner.add_breakpoint(0x96)
    event = runner.run(10_000)
    print(event)  # Breakpoint at 0x96
"""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

# Steps per second when running in real time
EMULATOR_SPEED: int = 70

MemoryInput = Union[Mapping[int, int], Sequence[int]]


def load_memory(memory: MemoryInput) -> dict[int, int]:
    """Normalise a memory image (mapping or flat list) into a dict."""
    if isinstance(memory, Mapping):
        return dict(memory)
    return dict(enumerate(memory))


@runtime_checkable
class Emulator(Protocol):
    """Interface implemented by every target emulator."""

    pc: int

    def init(self, memory: MemoryInput) -> None: ...

    def step(self) -> None: ...

    def print_state(self) -> str: ...

    @property
    def halted(self) -> bool: ...


class BreakReason(Enum):
    """Why a run stopped."""
    NONE = auto()           # Normal termination
    PC_BREAKPOINT = auto()  # PC reached a breakpoint address
    HALT = auto()           # CPU executed a halt instruction
    STEP = auto()           # Single-step
    USER_INTERRUPT = auto() # Stopped from outside (Ctrl-C)
    MAX_STEPS = auto()      # Step budget exhausted


@dataclass
class BreakEvent:
    """
    Information about why execution stopped.

    Attributes:
        reason: Why execution stopped
        address: PC when execution stopped
        steps: Instructions executed by the run
        message: Human-readable description
    """
    reason: BreakReason
    address: Optional[int] = None
    steps: int = 0
    message: str = ""

    def __str__(self) -> str:
        if self.message:
            return self.message
        match self.reason:
            case BreakReason.PC_BREAKPOINT:
                return f"Breakpoint at {self.address:#x}"
            case BreakReason.HALT:
                return f"Halted at {self.address:#x}"
            case BreakReason.STEP:
                return "Single step"
            case BreakReason.USER_INTERRUPT:
                return "Interrupted"
            case BreakReason.MAX_STEPS:
                return f"Stopped after {self.steps} steps"
            case _:
                return "Stopped"


class EmulatorRunner:
    """
    Runs an emulator with breakpoints and a step budget.

    Args:
        emulator: The target emulator to drive
    """

    def __init__(self, emulator: Emulator):
        self.emulator = emulator
        self._breakpoints: set[int] = set()
        self.total_steps = 0

    # =========================================================================
    # Breakpoints
    # =========================================================================

    def add_breakpoint(self, address: int) -> None:
        self._breakpoints.add(address)

    def remove_breakpoint(self, address: int) -> None:
        self._breakpoints.discard(address)

    def clear_breakpoints(self) -> None:
        self._breakpoints.clear()

    def list_breakpoints(self) -> list[int]:
        return sorted(self._breakpoints)

    # =========================================================================
    # Execution
    # =========================================================================

    def load(self, memory: MemoryInput) -> None:
        self.emulator.init(memory)
        self.total_steps = 0

    def step(self) -> BreakEvent:
        """Execute exactly one instruction, ignoring breakpoints."""
        self.emulator.step()
        self.total_steps += 1
        return BreakEvent(BreakReason.STEP, address=self.emulator.pc, steps=1)

    def run(
        self,
        max_steps: int = 100_000,
        speed: Optional[float] = None,
        on_step: Optional[Callable[[Emulator], None]] = None,
    ) -> BreakEvent:
        """
        Run until a breakpoint, a halt, or the step budget.

        The instruction at the starting PC always executes, so a run can
        resume from the breakpoint it last stopped on.

        Args:
            max_steps: Maximum instructions to execute
            speed: Steps per second, or None to run unpaced
            on_step: Called after every instruction

        Returns:
            BreakEvent describing why execution stopped
        """
        delay = 1.0 / speed if speed else 0.0
        steps = 0
        try:
            while steps < max_steps:
                if self.emulator.halted:
                    return BreakEvent(BreakReason.HALT, address=self.emulator.pc, steps=steps)
                self.emulator.step()
                steps += 1
                self.total_steps += 1
                if on_step is not None:
                    on_step(self.emulator)
                if self.emulator.pc in self._breakpoints:
                    return BreakEvent(BreakReason.PC_BREAKPOINT,
                                      address=self.emulator.pc, steps=steps)
                if delay:
                    time.sleep(delay)
        except KeyboardInterrupt:
            logger.info("run interrupted at pc=%#x", self.emulator.pc)
            return BreakEvent(BreakReason.USER_INTERRUPT, address=self.emulator.pc, steps=steps)

        return BreakEvent(BreakReason.MAX_STEPS, address=self.emulator.pc, steps=steps)
