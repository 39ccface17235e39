"""
Program Transfer
================

Sends assembled words into a running LittleBigPlanet computer.

- `protocol.py`: message encoding and the streaming algorithm
- `sinks.py`: message destinations (log, serial port)
- `server.py`: the TCP bridge server and its client
"""

from lbpasm.transfer.protocol import (
    CHECKSUM_INTERVAL,
    DEFAULT_SEND_DELAY,
    Command,
    StatusKind,
    TransferStatus,
    build_payload,
    decode_message,
    encode_message,
    format_duration,
    write_words,
)
from lbpasm.transfer.server import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    BridgeServer,
    parse_request,
    send_payload,
)
from lbpasm.transfer.sinks import LoggingSink, SerialSink

__all__ = [
    "CHECKSUM_INTERVAL",
    "DEFAULT_HOST",
    "DEFAULT_PORT",
    "DEFAULT_SEND_DELAY",
    "BridgeServer",
    "Command",
    "LoggingSink",
    "SerialSink",
    "StatusKind",
    "TransferStatus",
    "build_payload",
    "decode_message",
    "encode_message",
    "format_duration",
    "parse_request",
    "send_payload",
    "write_words",
]
