"""
lbpasm Error Hierarchy
======================

This module defines the exception hierarchy for the whole toolchain.
All exceptions inherit from LbpAsmError, so callers can catch every
toolchain error with a single except clause if desired.

Exception Hierarchy
-------------------
LbpAsmError (base)
├── AssemblerError (per-line assembly errors)
│   ├── AssemblySyntaxError - no rule matches the line
│   ├── OperandError - invalid register or operand combination
│   ├── ValueRangeError - value does not fit its bit field
│   ├── UndefinedSymbolError - reference to an unknown label
│   ├── DuplicateSymbolError - label or constant defined twice
│   ├── DirectiveError - malformed directive argument
│   ├── InstructionWidthError - encoded width violates the target's word size
│   └── ExpansionDepthError - runaway pseudo-instruction rewriting
├── ConfigurationError (raised immediately, never collected)
│   ├── UnknownTargetError - architecture name not in the registry
│   └── SettingsError - unusable persisted settings
├── EmulatorError
└── TransferError (transport bridge)
    ├── ProtocolError - malformed bridge request
    └── ConnectionError - cannot open the output device

Two Tiers
---------
Configuration errors abort the operation. Assembler errors are raised by
the rule actions of a single line, caught at the line boundary and turned
into ``InputError`` records, so one bad line never stops the run.

The ``str()`` of an AssemblerError is the bare message (for example
``Unknown label: loop``). ``format()`` renders the full report with the
line number and an optional hint.
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class LbpAsmError(Exception):
    """
    Base exception for all toolchain errors.

        try:
            spec = get_target("v9")
        except LbpAsmError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(LbpAsmError):
    """
    Base exception for all errors that belong to one source line.

    Attributes:
        message: The error description, exactly as reported to the user
        line: 0-based source line number (filled in at the line boundary)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        return self.message

    def format(self) -> str:
        """
        Format the error with its (1-based) line number and hint.

        Example output:
            Line 12: Unknown label: lopo
            hint: did you mean 'loop'?
        """
        parts = []
        if self.line is not None:
            parts.append(f"Line {self.line + 1}: {self.message}")
        else:
            parts.append(self.message)
        if self.hint:
            parts.append(f"hint: {self.hint}")
        return "\n".join(parts)


class AssemblySyntaxError(AssemblerError):
    """
    No instruction or directive rule matches a line.

    Example:
        frob x, y   ; Unknown instruction: frob x, y
    """

    def __init__(self, text: str, line: Optional[int] = None):
        self.text = text
        super().__init__(f"Unknown instruction: {text}", line=line)


class OperandError(AssemblerError):
    """
    Invalid register name or unsupported operand combination.

    Examples:
        - 'Q' is not a valid register
        - JMPEZ can only be used with registers X and Z
        - Expected double register, got word register 'x1'
    """
    pass


class ValueRangeError(AssemblerError):
    """
    A value does not fit the bit field it is encoded into.

    The message names the value, the width and the signedness, e.g.
    ``Value 300 out of range for 8-bit unsigned integer``.
    """

    def __init__(self, value: int, width: int, signed: bool):
        self.value = value
        self.width = width
        self.signed = signed
        kind = "signed" if signed else "unsigned"
        super().__init__(f"Value {value} out of range for {width}-bit {kind} integer")


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a symbol that is neither a label nor a constant.

    Raised during the second pass. When similarly-named symbols exist,
    they are offered as a hint to catch typos.
    """

    def __init__(
        self,
        symbol: str,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        hint = None
        if self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(f"Unknown label: {symbol}", hint=hint)


class DuplicateSymbolError(AssemblerError):
    """
    Label or constant defined more than once.

    Attributes:
        symbol: The offending name
        kind: "Label" or "Constant"
    """

    def __init__(self, symbol: str, kind: str = "Label"):
        self.symbol = symbol
        self.kind = kind
        super().__init__(f"{kind} '{symbol}' already defined")


class DirectiveError(AssemblerError):
    """
    Error in an assembler directive.

    Examples:
        - .eq with a non-literal value (Expected number, got SIZE)
        - .align 0
        - .string_encoding with an unknown encoding name
    """
    pass


class InstructionWidthError(AssemblerError):
    """
    The resolved bit string of an instruction has an illegal width.
    """

    def __init__(self, instruction: str, width: int, expected: str):
        self.instruction = instruction
        self.width = width
        super().__init__(
            f"Instruction {instruction} is {width} bits long, but should be {expected}"
        )


class ExpansionDepthError(AssemblerError):
    """
    Pseudo-instruction rewriting nested deeper than the allowed limit.
    """

    def __init__(self, text: str, limit: int):
        self.text = text
        self.limit = limit
        super().__init__(
            f"Pseudo-instruction expansion of '{text}' exceeds {limit} levels"
        )


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(LbpAsmError):
    """Base exception for errors raised before any source is processed."""
    pass


class UnknownTargetError(ConfigurationError):
    """Architecture name not present in the target registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown architecture '{name}'")


class SettingsError(ConfigurationError):
    """Persisted settings contain an unusable value."""
    pass


# =============================================================================
# Emulator Exceptions
# =============================================================================

class EmulatorError(LbpAsmError):
    """
    Error raised by an emulator.

    Raised when:
    - The target has no emulator
    - An opcode has no defined behaviour
    """
    pass


# =============================================================================
# Transfer Exceptions
# =============================================================================

class TransferError(LbpAsmError):
    """Base exception for the transport bridge."""
    pass


class ProtocolError(TransferError):
    """
    Malformed bridge request.

    Raised when a client sends something that is not a JSON object with
    a known ``type``, or a data payload that is not a list of
    ``[address, value]`` pairs.
    """
    pass


class ConnectionError(TransferError):
    """
    Cannot open the output device.

    Raised when:
    - Serial port not found
    - Permission denied
    """
    pass


# =============================================================================
# Error Collection
# =============================================================================

@dataclass(frozen=True)
class InputError:
    """
    A per-line assembly error as reported in an AssemblyResult.

    Attributes:
        line: 0-based line number of the source line
        message: The error message
        hint: Optional suggestion carried over from the exception
    """
    line: int
    message: str
    hint: Optional[str] = None

    def __str__(self) -> str:
        return f"Line {self.line + 1}: {self.message}"


class ErrorCollector:
    """
    Collects the per-line errors of one assembly run.

    Each pass catches AssemblerError at the line boundary and hands it
    here, so every error of the run is reported together.

    Example:
        collector = ErrorCollector()
        try:
            parse(line)
        except AssemblerError as e:
            collector.add(line_number, e)
        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self) -> None:
        self.errors: list[InputError] = []

    def add(self, line: int, error: AssemblerError) -> None:
        """Record an error against a 0-based line number."""
        error.line = line
        self.errors.append(InputError(line, error.message, error.hint))

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def report(self) -> str:
        """
        Format all errors for display, one per line, plus a summary.
        """
        lines = [str(error) for error in self.errors]
        error_word = "error" if len(self.errors) == 1 else "errors"
        lines.append(f"{len(self.errors)} {error_word}")
        return "\n".join(lines)
