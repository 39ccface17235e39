"""
Message Sinks
=============

Destinations for encoded transfer messages.

- ``LoggingSink`` keeps every message in memory and logs it. Used for
  dry runs and tests, or with ``echo`` to print messages for a human
  (or a chat bot) to relay.
- ``SerialSink`` writes each message as one line to a serial port, for
  a USB keyboard emulator or chat relay board that types it into the
  game.

Serial Port Settings
--------------------
- Baud Rate: 9600 by default (any of VALID_BAUD_RATES)
- Data Bits: 8, Parity: None, Stop Bits: 1
- Flow Control: None
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Final, Optional

import serial
import serial.tools.list_ports

from lbpasm.errors import ConnectionError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

VALID_BAUD_RATES: Final[tuple[int, ...]] = (9600, 19200, 38400, 57600, 115200)
DEFAULT_BAUD_RATE: Final[int] = 9600
DEFAULT_TIMEOUT: Final[float] = 1.0

# USB Vendor IDs of common USB-serial adapters and boards
USB_VENDOR_IDS: Final[dict[int, str]] = {
    0x0403: "FTDI",
    0x10C4: "Silicon Labs",
    0x1A86: "QinHeng",
    0x2341: "Arduino",
    0x2E8A: "Raspberry Pi",
}


# =============================================================================
# Logging Sink
# =============================================================================

class LoggingSink:
    """
    Records messages instead of delivering them.

    Args:
        echo: Optional callable that also receives every message
    """

    def __init__(self, echo: Optional[Callable[[str], None]] = None):
        self.messages: list[str] = []
        self.echo = echo

    def send(self, message: str) -> None:
        self.messages.append(message)
        logger.info("message %d: %s", len(self.messages), message)
        if self.echo is not None:
            self.echo(message)


# =============================================================================
# Serial Ports
# =============================================================================

@dataclass(frozen=True)
class PortInfo:
    """
    An available serial port.

    Attributes:
        device: System device path (e.g., '/dev/ttyUSB0', 'COM3')
        description: Description from the driver
        vid: USB Vendor ID (None for non-USB ports)
    """

    device: str
    description: str
    vid: Optional[int]

    @property
    def vendor_name(self) -> Optional[str]:
        if self.vid is not None:
            return USB_VENDOR_IDS.get(self.vid)
        return None

    def __str__(self) -> str:
        parts = [self.device]
        if self.description:
            parts.append(f"- {self.description}")
        if self.vendor_name:
            parts.append(f"({self.vendor_name})")
        return " ".join(parts)


def list_serial_ports() -> list[PortInfo]:
    """List the serial ports on this system."""
    ports = []
    for port in serial.tools.list_ports.comports():
        ports.append(PortInfo(port.device, port.description or "", port.vid))
        logger.debug("Found port: %s (vid=%s)", port.device,
                     f"{port.vid:04X}" if port.vid else "N/A")
    return ports


def format_port_list(ports: list[PortInfo]) -> str:
    if not ports:
        return "No serial ports found."
    return "\n".join(f"  {port}" for port in ports)


def open_serial_port(
    device: str,
    baud_rate: int = DEFAULT_BAUD_RATE,
    timeout: float = DEFAULT_TIMEOUT,
) -> serial.Serial:
    """
    Open a serial port with 8N1 settings and no flow control.

    Args:
        device: Serial port device path
        baud_rate: One of VALID_BAUD_RATES
        timeout: Read/write timeout in seconds

    Returns:
        The opened port; the caller closes it

    Raises:
        ConnectionError: If the port cannot be opened
        ValueError: If baud_rate is not a valid value
    """
    if baud_rate not in VALID_BAUD_RATES:
        valid_str = ", ".join(str(b) for b in VALID_BAUD_RATES)
        raise ValueError(f"Invalid baud rate: {baud_rate}. Valid rates: {valid_str}")

    logger.info("Opening serial port: %s at %d baud", device, baud_rate)
    try:
        port = serial.Serial(
            port=device,
            baudrate=baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=timeout,
            write_timeout=timeout,
            xonxoff=False,
            rtscts=False,
            dsrdtr=False,
        )
    except serial.SerialException as e:
        error_msg = str(e)
        if "Permission denied" in error_msg:
            raise ConnectionError(
                f"Permission denied accessing {device}. "
                "You may need to add your user to the 'dialout' group."
            ) from e
        if "No such file" in error_msg or "not found" in error_msg.lower():
            raise ConnectionError(
                f"Serial port not found: {device}. "
                "Use 'lbpsend ports' to list available ports."
            ) from e
        raise ConnectionError(f"Cannot open {device}: {e}") from e

    port.reset_output_buffer()
    return port


# =============================================================================
# Serial Sink
# =============================================================================

class SerialSink:
    """
    Writes each message as a line to a serial port.

    Usable as a context manager; the port is closed on exit.

    Args:
        port: An open serial port (see open_serial_port)
        line_ending: Appended to every message
    """

    def __init__(self, port: serial.Serial, line_ending: str = "\n"):
        self.port = port
        self.line_ending = line_ending

    @classmethod
    def open(cls, device: str, baud_rate: int = DEFAULT_BAUD_RATE) -> "SerialSink":
        return cls(open_serial_port(device, baud_rate))

    def send(self, message: str) -> None:
        try:
            self.port.write((message + self.line_ending).encode("ascii"))
            self.port.flush()
        except serial.SerialException as e:
            raise ConnectionError(f"Write to {self.port.port} failed: {e}") from e

    def close(self) -> None:
        if self.port.is_open:
            self.port.close()
            logger.debug("Serial port closed")

    def __enter__(self) -> "SerialSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
