"""
lbpemu - Emulator Command-Line Interface
========================================

Assembles a source file and runs it in the target's emulator, then
prints why it stopped and the final CPU state.

Usage Examples
--------------
Run until halt (or 10000 steps):
    $ lbpemu program.asm -t v8

Stop at breakpoints:
    $ lbpemu program.asm -t bitzzy -b '$0010' -b 0x20

Run at the in-game speed of 70 steps per second, tracing each step:
    $ lbpemu program.asm --realtime --trace

Save the Parva screen as a PNG:
    $ lbpemu demo.asm -t parva_0_1 --screenshot screen.png

Exit Codes
----------
0 - Program ran (halted, breakpoint or step budget)
1 - Assembly or emulator error
2 - Invalid arguments
3 - Internal error
"""

from pathlib import Path
from typing import Optional

import click

from lbpasm import __version__
from lbpasm.assembler.memory import build_memory_image
from lbpasm.cli.common import (
    ADDRESS,
    assemble_file,
    resolve_target,
    setup_logging,
    target_option,
)
from lbpasm.cli.errors import handle_cli_exception
from lbpasm.config import Settings
from lbpasm.emulator.base import EMULATOR_SPEED, Emulator, EmulatorRunner


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@target_option
@click.option(
    "-n", "--steps",
    type=click.IntRange(min=1),
    default=10_000,
    show_default=True,
    help="Maximum instructions to execute",
)
@click.option(
    "-b", "--break", "breakpoints",
    multiple=True,
    type=ADDRESS,
    help="Stop when the PC reaches this address (can be repeated)",
)
@click.option(
    "--realtime",
    is_flag=True,
    help=f"Run at {EMULATOR_SPEED} steps per second",
)
@click.option(
    "--speed",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Steps per second (implies paced execution)",
)
@click.option(
    "--trace",
    is_flag=True,
    help="Print the PC after every instruction",
)
@click.option(
    "--screenshot",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Save the screen as PNG after the run (targets with a display)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="lbpemu")
def main(
    source: Path,
    target: Optional[str],
    steps: int,
    breakpoints: tuple[int, ...],
    realtime: bool,
    speed: Optional[float],
    trace: bool,
    screenshot: Optional[Path],
    verbose: bool,
) -> None:
    """
    Assemble SOURCE and run it in the emulator.

    \b
    Examples:
        lbpemu prog.asm -t v8              # Run until halt
        lbpemu prog.asm -b 0x10 -n 500     # Breakpoint, 500-step budget
        lbpemu prog.asm --screenshot s.png # Parva screen capture
    """
    setup_logging(verbose)

    try:
        spec = resolve_target(target, Settings.from_env())
        emulator = spec.create_emulator()
        result = assemble_file(source, spec)

        runner = EmulatorRunner(emulator)
        runner.load(build_memory_image(result.lines, spec.word_size))
        for address in breakpoints:
            runner.add_breakpoint(address)

        def show_step(emu: Emulator) -> None:
            click.echo(f"pc={emu.pc:#x}")

        pace = speed if speed is not None else (EMULATOR_SPEED if realtime else None)
        if verbose:
            click.echo(f"Running {source} on {spec.name} for up to {steps} steps...", err=True)
        event = runner.run(steps, speed=pace, on_step=show_step if trace else None)

        click.echo(str(event))
        click.echo(f"Steps: {event.steps}")
        click.echo(emulator.print_state())

        if screenshot is not None:
            gpu = getattr(emulator, "gpu", None)
            if gpu is None:
                raise click.BadParameter(f"{spec.name} has no display", param_hint="--screenshot")
            screenshot.write_bytes(gpu.render_image())
            if verbose:
                click.echo(f"Wrote screenshot to {screenshot}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Emulator")


if __name__ == "__main__":
    main()
