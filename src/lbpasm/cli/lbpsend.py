"""
lbpsend - Transfer Command-Line Interface
=========================================

Streams assembled programs into a LittleBigPlanet computer.

The bridge server owns the message sink (a serial port, or the terminal
for a human relay) and sends one program at a time; ``push`` assembles
a source file and hands the words to a running bridge.

Usage Examples
--------------
Start a bridge that prints messages:
    $ lbpsend serve --echo

Start a bridge that writes to a serial port:
    $ lbpsend serve --serial /dev/ttyUSB0

Send a program (Ctrl-C cancels):
    $ lbpsend push program.asm -t parva_0_1 --start 0x100

Send a memory image written by ``lbpasm -m``:
    $ lbpsend push program.json

Encode one command by hand:
    $ lbpsend encode 1 0x123

Exit Codes
----------
0 - Success
1 - Assembly, connection or transfer error
2 - Invalid arguments
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click

from lbpasm import __version__
from lbpasm.cli.common import (
    ADDRESS,
    assemble_file,
    resolve_target,
    setup_logging,
    target_option,
)
from lbpasm.cli.errors import handle_cli_exception
from lbpasm.config import Settings
from lbpasm.errors import ProtocolError
from lbpasm.transfer.protocol import (
    StatusKind,
    TransferStatus,
    Word,
    build_payload,
    encode_message,
)
from lbpasm.transfer.server import DEFAULT_HOST, DEFAULT_PORT, BridgeServer, send_payload
from lbpasm.transfer.sinks import (
    DEFAULT_BAUD_RATE,
    VALID_BAUD_RATES,
    LoggingSink,
    SerialSink,
    format_port_list,
    list_serial_ports,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """Shared options of all subcommands."""

    def __init__(self) -> None:
        self.host: str = DEFAULT_HOST
        self.port: int = DEFAULT_PORT
        self.verbose: bool = False


pass_context = click.make_pass_decorator(Context, ensure=True)


def load_words(path: Path, target: Optional[str], start: int) -> list[Word]:
    """
    Read the words to send from a memory image or a source file.

    ``.json`` files hold ``[[address, value], ...]`` as written by
    ``lbpasm --memory``; anything else is assembled.
    """
    if path.suffix.lower() == ".json":
        try:
            pairs = json.loads(path.read_text(encoding="utf-8"))
            return [(int(address), int(value)) for address, value in pairs
                    if int(address) >= start]
        except (ValueError, TypeError) as e:
            raise ProtocolError(f"{path} is not a memory image: {e}") from e

    spec = resolve_target(target, Settings.from_env())
    result = assemble_file(path, spec)
    return build_payload(result.lines, spec.word_size, start)


def show_status(status: TransferStatus) -> None:
    if status.status is StatusKind.SENDING:
        click.echo(f"\r{status.message}", nl=False)
    else:
        click.echo(f"\r{status.message}\nChecksum: {status.checksum:#08x}")


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "--host",
    default=DEFAULT_HOST,
    show_default=True,
    help="Bridge host",
)
@click.option(
    "--port",
    type=click.IntRange(0, 65535),
    default=DEFAULT_PORT,
    show_default=True,
    help="Bridge TCP port",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(version=__version__, prog_name="lbpsend")
@pass_context
def main(ctx: Context, host: str, port: int, verbose: bool) -> None:
    """
    Send assembled programs into a LittleBigPlanet computer.

    \b
    1. Start a bridge:   lbpsend serve --serial /dev/ttyUSB0
    2. Send a program:   lbpsend push program.asm
    """
    ctx.host = host
    ctx.port = port
    ctx.verbose = verbose
    setup_logging(verbose)


# =============================================================================
# Serve Command
# =============================================================================

@main.command()
@click.option(
    "--serial", "device",
    default=None,
    help="Write messages to this serial port",
)
@click.option(
    "-b", "--baud",
    type=click.Choice([str(b) for b in VALID_BAUD_RATES]),
    default=str(DEFAULT_BAUD_RATE),
    help=f"Baud rate (default: {DEFAULT_BAUD_RATE})",
)
@click.option(
    "--echo",
    is_flag=True,
    help="Print every message (when not using a serial port)",
)
@pass_context
def serve(ctx: Context, device: Optional[str], baud: str, echo: bool) -> None:
    """
    Run the bridge server until interrupted.
    """
    try:
        if device is not None:
            sink = SerialSink.open(device, int(baud))
        else:
            sink = LoggingSink(click.echo if echo else None)

        server = BridgeServer(sink, ctx.host, ctx.port)
        click.echo(f"Bridge listening on {ctx.host}:{ctx.port} (Ctrl-C to stop)")
        try:
            asyncio.run(server.serve_forever())
        except KeyboardInterrupt:
            click.echo("\nBridge stopped")
        finally:
            if isinstance(sink, SerialSink):
                sink.close()

    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose, error_type="Bridge")


# =============================================================================
# Push Command
# =============================================================================

async def _push(words: list[Word], ctx: Context, delay: int) -> TransferStatus:
    cancel = asyncio.Event()
    task = asyncio.create_task(
        send_payload(words, ctx.host, ctx.port, delay, on_status=show_status, cancel=cancel)
    )
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        # Ctrl-C: ask the bridge to stop, then wait for its answer
        cancel.set()
        return await task


@main.command()
@click.argument(
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@target_option
@click.option(
    "--start",
    type=ADDRESS,
    default=0,
    help="Skip instructions placed below this address",
)
@click.option(
    "-d", "--delay",
    type=click.IntRange(min=0),
    default=None,
    help="Milliseconds between messages (default: from settings)",
)
@pass_context
def push(ctx: Context, source: Path, target: Optional[str], start: int,
         delay: Optional[int]) -> None:
    """
    Send SOURCE (assembly or memory image JSON) through a running bridge.
    """
    try:
        words = load_words(source, target, start)
        delay = delay if delay is not None else Settings.from_env().send_delay
        click.echo(f"Sending {len(words)} values to {ctx.host}:{ctx.port}...")
        status = asyncio.run(_push(words, ctx, delay))
        if status.status is StatusKind.ERROR:
            raise ProtocolError(status.message)

    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose, error_type="Transfer")


# =============================================================================
# Encode Command
# =============================================================================

@main.command()
@click.argument("command", type=click.IntRange(0, 15))
@click.argument("value", type=ADDRESS)
def encode(command: int, value: int) -> None:
    """
    Print the message for one COMMAND and 12-bit VALUE.

    \b
    Commands:
      0: reset checksum
      1: address low      2: address high
      3: value low        4: value high
      5: checksum low     6: checksum high
      7: unlock address
    """
    try:
        click.echo(encode_message(value, command))
    except ProtocolError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e


# =============================================================================
# Ports Command
# =============================================================================

@main.command()
def ports() -> None:
    """List available serial ports."""
    click.echo(format_port_list(list_serial_ports()))


if __name__ == "__main__":
    main()
