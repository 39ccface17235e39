"""
In-Game Transfer Protocol
=========================

Assembled words reach a LittleBigPlanet computer through a receiver
circuit that counts letters. Each message carries one 4-bit command and
one 12-bit value, so a word is sent as two 12-bit halves and an address
as two more.

Message Encoding
----------------
The 16 bits ``command:value`` are cut into four 4-bit counts ``a, b, c,
d``. The message is the letter ``a`` repeated ``a`` times, then ``b``,
``c`` and ``d`` the same way, then ``e`` repeated ``64 - (a+b+c+d)``
times, separated by spaces. Every message therefore has exactly 64
letters.

Commands
--------
0. reset checksum
1. address low half
2. address high half
3. value low half (writes the word and advances the address)
4. value high half
5. checksum low half (the receiver compares)
6. checksum high half
7. unlock address

Streaming
---------
``write_words`` sends (address, value) pairs in order. The address is
only sent when it does not follow the previous one, the value high half
only when it changed, and a running 24-bit checksum of
``address + value`` is sent every 8 pairs and once at the end.
"""

import asyncio
import json
import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from enum import Enum, IntEnum
from typing import Final, Optional, Protocol

from lbpasm.assembler.assembler import InstructionLine, OutputLine
from lbpasm.assembler.bits import split_words
from lbpasm.errors import ProtocolError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

HALF_BITS: Final[int] = 12
HALF_MASK: Final[int] = (1 << HALF_BITS) - 1
CHECKSUM_MASK: Final[int] = 0xFFFFFF

# Checksum is sent after every this many pairs
CHECKSUM_INTERVAL: Final[int] = 8

# Letters per message
MESSAGE_LENGTH: Final[int] = 64

DEFAULT_SEND_DELAY: Final[int] = 1500  # milliseconds

Word = tuple[int, int]


class Command(IntEnum):
    """Receiver commands."""
    RESET_CHECKSUM = 0
    ADDRESS_LOW = 1
    ADDRESS_HIGH = 2
    VALUE_LOW = 3
    VALUE_HIGH = 4
    CHECKSUM_LOW = 5
    CHECKSUM_HIGH = 6
    UNLOCK_ADDRESS = 7


# =============================================================================
# Encoding
# =============================================================================

def split_half(value: int) -> tuple[int, int]:
    """Split a value into its (low, high) 12-bit halves."""
    return value & HALF_MASK, value >> HALF_BITS


def encode_message(value: int, command: int) -> str:
    """
    Encode one command as a letter-count message.

    Args:
        value: 12-bit payload
        command: Command number (0-15)

    Returns:
        Space-separated letters

    Raises:
        ProtocolError: If value or command do not fit their fields

    Example:
        >>> encode_message(0, Command.RESET_CHECKSUM) == " ".join("e" * 64)
        True
        >>> encode_message(0x001, Command.ADDRESS_LOW).split().count("a")
        1
    """
    if not 0 <= value <= HALF_MASK:
        raise ProtocolError(f"Value {value} does not fit in {HALF_BITS} bits")
    if not 0 <= command <= 0xF:
        raise ProtocolError(f"Command {command} does not fit in 4 bits")

    bits = (command << HALF_BITS) | value
    counts = [(bits >> shift) & 0xF for shift in (12, 8, 4, 0)]
    counts.append(MESSAGE_LENGTH - sum(counts))
    return " ".join(
        letter for letter, count in zip("abcde", counts) for _ in range(count)
    )


def decode_message(message: str) -> tuple[int, int]:
    """
    Decode a letter-count message back into (value, command).

    Raises:
        ProtocolError: If the message is not made of a..e letters in order
    """
    letters = message.split()
    if (len(letters) != MESSAGE_LENGTH or letters != sorted(letters)
            or not set(letters) <= set("abcde")):
        raise ProtocolError(f"Malformed message: {message[:40]}")
    a, b, c, d = (letters.count(letter) for letter in "abcd")
    if max(a, b, c, d) > 0xF:
        raise ProtocolError("Letter count exceeds 4 bits")
    bits = (a << 12) | (b << 8) | (c << 4) | d
    return bits & HALF_MASK, bits >> HALF_BITS


def format_duration(seconds: float) -> str:
    """
    Format a duration for progress text.

    Example:
        >>> format_duration(59.2)
        '1m0s'
        >>> format_duration(42)
        '42s'
    """
    seconds = math.ceil(seconds)
    minutes, remaining = divmod(seconds, 60)
    if minutes == 0:
        return f"{remaining}s"
    return f"{minutes}m{remaining}s"


# =============================================================================
# Payloads
# =============================================================================

def build_payload(lines: Iterable[OutputLine], word_size: int,
                  start_address: int = 0) -> list[Word]:
    """
    Turn assembled lines into (address, value) pairs to send.

    Instructions placed below ``start_address`` are skipped whole; the
    rest are split into words, most significant first.

    Args:
        lines: Assembled output
        word_size: Bits per word of the target
        start_address: First address to send

    Returns:
        Pairs in source order
    """
    words: list[Word] = []
    for line in lines:
        if not isinstance(line, InstructionLine) or line.address < start_address:
            continue
        for offset, value in enumerate(split_words(line.bits, word_size)):
            words.append((line.address + offset, value))
    return words


# =============================================================================
# Status Reports
# =============================================================================

class StatusKind(str, Enum):
    SENDING = "sending"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass(frozen=True)
class TransferStatus:
    """
    Progress report of one transfer.

    Attributes:
        status: Where the transfer is
        message: Human-readable progress text
        checksum: Checksum of the pairs sent so far
    """
    status: StatusKind
    message: str
    checksum: int = 0

    @property
    def finished(self) -> bool:
        return self.status is not StatusKind.SENDING

    def to_json(self) -> str:
        data = asdict(self)
        data["status"] = self.status.value
        return json.dumps(data)

    @classmethod
    def from_json(cls, text: str) -> "TransferStatus":
        """
        Parse a status line.

        Raises:
            ProtocolError: If the line is not a status object
        """
        try:
            data = json.loads(text)
            return cls(StatusKind(data["status"]), str(data["message"]),
                       int(data.get("checksum", 0)))
        except (ValueError, KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed status: {e}") from e


def progress_message(index: int, total: int, interval_ms: float) -> str:
    """
    Progress text before sending pair ``index``.

    The estimate counts two messages per remaining pair plus the
    checksums still to come.
    """
    remaining = (total - index) + total / CHECKSUM_INTERVAL
    eta = remaining * (interval_ms * 2) / 1000
    percent = index / total * 100
    return f"{index}/{total} ({percent:.1f}%) ETA: {format_duration(eta)}"


# =============================================================================
# Streaming
# =============================================================================

class MessageSink(Protocol):
    """Where encoded messages go (a chat, a serial port, a log)."""

    def send(self, message: str) -> None:
        ...


StatusCallback = Callable[[TransferStatus], None]


class Transmitter:
    """
    Sends commands to a sink with a fixed delay after each one.

    Args:
        sink: Message destination
        interval_ms: Delay after each message, in milliseconds
    """

    def __init__(self, sink: MessageSink, interval_ms: float = DEFAULT_SEND_DELAY):
        self.sink = sink
        self.interval_ms = interval_ms
        self.sent = 0

    async def send(self, value: int, command: Command) -> None:
        logger.debug("send %s %#05x", command.name, value)
        self.sink.send(encode_message(value, command))
        self.sent += 1
        await asyncio.sleep(self.interval_ms / 1000)

    async def send_checksum(self, checksum: int) -> None:
        low, high = split_half(checksum)
        await self.send(high, Command.CHECKSUM_HIGH)
        await self.send(low, Command.CHECKSUM_LOW)


async def write_words(
    words: Sequence[Word],
    sink: MessageSink,
    interval_ms: float = DEFAULT_SEND_DELAY,
    on_status: Optional[StatusCallback] = None,
    cancel: Optional[asyncio.Event] = None,
) -> TransferStatus:
    """
    Stream (address, value) pairs to a sink.

    Args:
        words: Pairs to send, in order
        sink: Message destination
        interval_ms: Delay after each message
        on_status: Receives a status before each pair and the final one
        cancel: Checked after each pair; when set the transfer stops

    Returns:
        The final status (complete or cancelled)
    """
    def report(status: TransferStatus) -> TransferStatus:
        if on_status is not None:
            on_status(status)
        return status

    transmitter = Transmitter(sink, interval_ms)
    total = len(words)
    previous_address: Optional[int] = None
    previous_high: Optional[int] = None
    checksum = 0

    logger.info("sending %d values with interval %sms", total, interval_ms)
    await transmitter.send(0, Command.RESET_CHECKSUM)

    for index, (address, value) in enumerate(words):
        report(TransferStatus(StatusKind.SENDING,
                              progress_message(index, total, interval_ms), checksum))

        if index % CHECKSUM_INTERVAL == 0 and index != 0:
            await transmitter.send_checksum(checksum)

        checksum = (checksum + address + value) & CHECKSUM_MASK
        address_low, address_high = split_half(address)
        value_low, value_high = split_half(value)

        if previous_address is None or address != previous_address + 1:
            await transmitter.send(0, Command.UNLOCK_ADDRESS)
            await transmitter.send(address_low, Command.ADDRESS_LOW)
            await transmitter.send(address_high, Command.ADDRESS_HIGH)
        previous_address = address

        if value_high != previous_high:
            await transmitter.send(value_high, Command.VALUE_HIGH)
        previous_high = value_high
        await transmitter.send(value_low, Command.VALUE_LOW)

        if cancel is not None and cancel.is_set():
            logger.info("transfer cancelled after %d values", index + 1)
            return report(TransferStatus(StatusKind.CANCELLED, "Cancelled", checksum))

    await transmitter.send_checksum(checksum)
    logger.info("sent %d values in %d messages", total, transmitter.sent)
    return report(TransferStatus(StatusKind.COMPLETE, f"Sent {total} values", checksum))
