"""
Transfer Bridge
===============

A small TCP server that owns the message sink and streams programs for
any client that connects. Requests and status reports are JSON objects,
one per line.

Requests
--------
``{"type": "data", "data": "[[address, value], ...]", "speed": 1500}``
    Start a transfer. ``data`` is the JSON text of the pair list (a
    plain list is accepted too); ``speed`` is the delay after each
    message in milliseconds.
``{"type": "cancel"}``
    Stop the running transfer after the current pair.

Status Reports
--------------
``{"status": "sending" | "complete" | "cancelled" | "error",
"message": "...", "checksum": n}``

Only one transfer reaches the sink at a time; a second client waits for
the first to finish.

Usage:
    server = BridgeServer(LoggingSink())
    await server.serve_forever()
"""

import asyncio
import contextlib
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Final, Optional, Union

from lbpasm.errors import ConnectionError, ProtocolError, TransferError
from lbpasm.transfer.protocol import (
    DEFAULT_SEND_DELAY,
    MessageSink,
    StatusCallback,
    StatusKind,
    TransferStatus,
    Word,
    write_words,
)

logger = logging.getLogger(__name__)

DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 8090


# =============================================================================
# Requests
# =============================================================================

@dataclass(frozen=True)
class DataRequest:
    words: list[Word]
    speed: float = DEFAULT_SEND_DELAY


@dataclass(frozen=True)
class CancelRequest:
    pass


Request = Union[DataRequest, CancelRequest]


def _parse_words(data: Any) -> list[Word]:
    if not isinstance(data, list):
        raise ProtocolError("Data must be a list of [address, value] pairs")
    words = []
    for item in data:
        if (not isinstance(item, (list, tuple)) or len(item) != 2
                or not all(isinstance(n, int) and n >= 0 for n in item)):
            raise ProtocolError(f"Invalid pair: {item!r}")
        words.append((item[0], item[1]))
    return words


def parse_request(line: Union[str, bytes]) -> Request:
    """
    Parse one request line.

    Raises:
        ProtocolError: If the line is not a valid request
    """
    try:
        payload = json.loads(line)
    except ValueError as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ProtocolError("Request must be a JSON object")

    kind = payload.get("type")
    if kind == "cancel":
        return CancelRequest()
    if kind != "data":
        raise ProtocolError(f"Unknown request type: {kind!r}")

    data = payload.get("data")
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise ProtocolError(f"Invalid data: {e}") from e
    speed = payload.get("speed", DEFAULT_SEND_DELAY)
    if isinstance(speed, bool) or not isinstance(speed, (int, float)) or speed < 0:
        raise ProtocolError(f"Invalid speed: {speed!r}")
    return DataRequest(_parse_words(data), speed)


def data_request(words: Sequence[Word], speed: float = DEFAULT_SEND_DELAY) -> str:
    """Build a data request line (without the newline)."""
    return json.dumps({
        "type": "data",
        "data": json.dumps([list(word) for word in words]),
        "speed": speed,
    })


CANCEL_REQUEST: Final[str] = json.dumps({"type": "cancel"})


# =============================================================================
# Server
# =============================================================================

class BridgeServer:
    """
    Serves transfer requests and writes the messages to one sink.

    Args:
        sink: Where encoded messages go
        host: Interface to listen on
        port: TCP port (0 picks a free one)
    """

    def __init__(self, sink: MessageSink, host: str = DEFAULT_HOST,
                 port: int = DEFAULT_PORT):
        self.sink = sink
        self.host = host
        self.port = port
        self._server: Optional[asyncio.AbstractServer] = None
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        self._server = await asyncio.start_server(self.handle_client, self.host, self.port)
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("bridge listening on %s:%d", self.host, self.port)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def __aenter__(self) -> "BridgeServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # =========================================================================
    # Connections
    # =========================================================================

    async def handle_client(self, reader: asyncio.StreamReader,
                            writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        logger.debug("client connected: %s", peer)
        cancel = asyncio.Event()
        transfer: Optional[asyncio.Task] = None
        try:
            while line := await reader.readline():
                try:
                    request = parse_request(line)
                except ProtocolError as e:
                    self._report(writer, TransferStatus(StatusKind.ERROR, str(e)))
                    continue

                if isinstance(request, CancelRequest):
                    logger.info("cancel requested by %s", peer)
                    cancel.set()
                elif transfer is not None and not transfer.done():
                    self._report(writer, TransferStatus(
                        StatusKind.ERROR, "Transfer already in progress"))
                else:
                    cancel.clear()
                    transfer = asyncio.create_task(self._transfer(request, writer, cancel))

            if transfer is not None and not transfer.done():
                logger.info("client %s left, cancelling its transfer", peer)
                cancel.set()
                await transfer
        finally:
            writer.close()
            with contextlib.suppress(ConnectionResetError, BrokenPipeError):
                await writer.wait_closed()
            logger.debug("client disconnected: %s", peer)

    async def _transfer(self, request: DataRequest, writer: asyncio.StreamWriter,
                        cancel: asyncio.Event) -> None:
        async with self._lock:
            try:
                await write_words(request.words, self.sink, request.speed,
                                  on_status=lambda status: self._report(writer, status),
                                  cancel=cancel)
            except TransferError as e:
                logger.error("transfer failed: %s", e)
                self._report(writer, TransferStatus(StatusKind.ERROR, str(e)))

    @staticmethod
    def _report(writer: asyncio.StreamWriter, status: TransferStatus) -> None:
        if not writer.is_closing():
            writer.write((status.to_json() + "\n").encode())


# =============================================================================
# Client
# =============================================================================

async def _forward_cancel(cancel: asyncio.Event, writer: asyncio.StreamWriter) -> None:
    await cancel.wait()
    writer.write((CANCEL_REQUEST + "\n").encode())
    await writer.drain()


async def send_payload(
    words: Sequence[Word],
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    speed: float = DEFAULT_SEND_DELAY,
    on_status: Optional[StatusCallback] = None,
    cancel: Optional[asyncio.Event] = None,
) -> TransferStatus:
    """
    Ask a running bridge to send words and wait for the outcome.

    Args:
        words: (address, value) pairs
        host: Bridge host
        port: Bridge port
        speed: Delay after each message in milliseconds
        on_status: Receives every status report
        cancel: When set, a cancel request is sent

    Returns:
        The final status

    Raises:
        ConnectionError: If the bridge is unreachable or hangs up early
        ProtocolError: If the bridge answers with something unreadable
    """
    try:
        reader, writer = await asyncio.open_connection(host, port)
    except OSError as e:
        raise ConnectionError(f"Cannot connect to bridge at {host}:{port}: {e}") from e

    forwarder: Optional[asyncio.Task] = None
    try:
        writer.write((data_request(words, speed) + "\n").encode())
        await writer.drain()
        if cancel is not None:
            forwarder = asyncio.create_task(_forward_cancel(cancel, writer))

        while line := await reader.readline():
            status = TransferStatus.from_json(line.decode())
            if on_status is not None:
                on_status(status)
            if status.finished:
                return status
        raise ConnectionError("Bridge closed the connection before the transfer finished")
    finally:
        if forwarder is not None:
            forwarder.cancel()
        writer.close()
        with contextlib.suppress(ConnectionResetError, BrokenPipeError):
            await writer.wait_closed()
