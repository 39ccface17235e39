"""
lbpasm - Multi-Target Assembler Command-Line Interface
======================================================

Assembles a source file for one of the LittleBigPlanet CPUs and prints a
listing of every line that assembled, then the per-line errors.

Usage Examples
--------------
Basic assembly (target from settings, parva_0_1 by default):
    $ lbpasm program.asm

Pick the target and listing format:
    $ lbpasm program.asm -t v8 -f hex -a hex

Write the listing and a memory image:
    $ lbpasm program.asm -o program.lst -m program.json

Show a target's reference documentation:
    $ lbpasm --docs -t bitzzy

Remember the options given as the new defaults:
    $ lbpasm -t lodestar -f hex --save-settings

Exit Codes
----------
0 - Success
1 - Assembly errors
2 - Invalid arguments or settings
3 - Internal error
"""

import json
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from lbpasm import __version__
from lbpasm.assembler.assembler import AssemblyResult, LabelLine
from lbpasm.assembler.listing import (
    ListingOptions,
    OutputFormat,
    SourceFormat,
    format_address,
    format_listing,
    format_machine_code,
    format_source,
)
from lbpasm.assembler.memory import build_memory_image, memory_words
from lbpasm.cli.common import (
    assemble_source,
    exit_on_errors,
    resolve_target,
    setup_logging,
    target_option,
)
from lbpasm.cli.errors import handle_cli_exception
from lbpasm.config import Settings, save_settings
from lbpasm.targets import ArchitectureSpec, get_target, list_targets

FORMATS = [fmt.value for fmt in OutputFormat]
SOURCES = [fmt.value for fmt in SourceFormat]


def render_listing(result: AssemblyResult, spec: ArchitectureSpec,
                   options: ListingOptions, raw: bool) -> str:
    """
    Render a listing, styled for a terminal unless ``raw``.

    Styling only adds colour; the text is the same as the raw listing.
    """
    if raw:
        return format_listing(result, spec, options)

    max_bits = spec.max_words_per_instruction * spec.word_size
    rendered = []
    for line in result.lines:
        if isinstance(line, LabelLine):
            if options.show_labels:
                rendered.append(click.style(f"{line.name}:", bold=True))
            continue
        address = format_address(line.address, options.address, spec.word_size)
        code = format_machine_code(line.bits, options.machine_code, spec.word_size, max_bits)
        source = format_source(line, options.source)
        text = f"{click.style(address, fg='cyan')}{code}"
        if source:
            text += " " + click.style(source, fg="green")
        rendered.append(text.rstrip())
    return "\n".join(rendered)


def describe_targets() -> str:
    rows = []
    for name in list_targets():
        spec = get_target(name)
        emulator = "emulator" if spec.has_emulator else "no emulator"
        rows.append(f"{name:<10} {spec.word_size:>2}-bit words, "
                    f"up to {spec.max_words_per_instruction} per instruction, {emulator}")
    return "\n".join(rows)


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "source",
    required=False,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@target_option
@click.option(
    "-f", "--format", "machine_code",
    type=click.Choice(FORMATS),
    default=None,
    help="Machine code format (default: from settings)",
)
@click.option(
    "-a", "--address-format",
    type=click.Choice(FORMATS),
    default=None,
    help="Address column format (default: from settings)",
)
@click.option(
    "-s", "--source", "inline_source",
    type=click.Choice(SOURCES),
    default=None,
    help="Source text shown next to each instruction",
)
@click.option(
    "--labels/--no-labels",
    default=None,
    help="Show label lines",
)
@click.option(
    "--raw/--styled",
    default=None,
    help="Plain text output without colour",
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the listing to a file instead of stdout",
)
@click.option(
    "-m", "--memory",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the memory image as JSON [[address, value], ...]",
)
@click.option(
    "--list-targets", "show_targets",
    is_flag=True,
    help="List the supported architectures and exit",
)
@click.option(
    "--docs",
    is_flag=True,
    help="Print the target's reference documentation and exit",
)
@click.option(
    "--save-settings", "save",
    is_flag=True,
    help="Store the given target and format options as defaults",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="lbpasm")
def main(
    source: Optional[Path],
    target: Optional[str],
    machine_code: Optional[str],
    address_format: Optional[str],
    inline_source: Optional[str],
    labels: Optional[bool],
    raw: Optional[bool],
    output: Optional[Path],
    memory: Optional[Path],
    show_targets: bool,
    docs: bool,
    save: bool,
    verbose: bool,
) -> None:
    """
    Assemble SOURCE for a LittleBigPlanet computer.

    Prints a listing with each instruction's address, machine code and
    source. When any line fails, the lines that did assemble are still
    listed, every error is printed as "Line n: message" and the exit
    code is 1.

    \b
    Examples:
        lbpasm prog.asm                 # Listing with default settings
        lbpasm prog.asm -t v8 -f hex    # V8, hex machine code
        lbpasm prog.asm -m prog.json    # Also write the memory image
        lbpasm --list-targets           # Supported architectures
    """
    setup_logging(verbose)

    if source is None and not (show_targets or docs or save):
        raise click.UsageError("Missing argument 'SOURCE'.")

    try:
        if show_targets:
            click.echo(describe_targets())
            return

        settings = Settings.from_env()
        spec = resolve_target(target, settings)

        if docs:
            click.echo(spec.documentation)
            return

        overrides = {
            "target_arch": spec.name,
            "machine_code_format": OutputFormat(machine_code) if machine_code else None,
            "address_format": OutputFormat(address_format) if address_format else None,
            "inline_source": SourceFormat(inline_source) if inline_source else None,
            "show_labels": labels,
            "raw_output": raw,
        }
        settings = replace(settings, **{k: v for k, v in overrides.items() if v is not None})

        if save:
            path = save_settings(settings)
            click.echo(f"Settings saved to {path}", err=True)
            if source is None:
                return

        if verbose:
            click.echo(f"Assembling {source} for {spec.name}...", err=True)
        result = assemble_source(source, spec)

        options = settings.listing_options()
        if output is not None:
            output.write_text(format_listing(result, spec, options) + "\n", encoding="utf-8")
            if verbose:
                click.echo(f"Wrote listing to {output}", err=True)
        else:
            click.echo(render_listing(result, spec, options, settings.raw_output))

        if memory is not None:
            image = build_memory_image(result.lines, spec.word_size)
            words = [list(word) for word in memory_words(image)]
            memory.write_text(json.dumps(words) + "\n", encoding="utf-8")
            if verbose:
                click.echo(f"Wrote {len(words)} words to {memory}", err=True)

        if verbose:
            click.echo(f"Assembly complete: {len(result.instructions)} instructions, "
                       f"{len(result.labels)} labels", err=True)
        # Lines that resolved are listed even when others failed
        exit_on_errors(result, source)

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
