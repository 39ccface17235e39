"""
Shared CLI Helpers
==================

Logging setup, settings lookup and source assembly used by every tool.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from lbpasm.assembler.assembler import AssemblyResult
from lbpasm.assembler.listing import format_errors
from lbpasm.cli.errors import ExitCode
from lbpasm.config import Settings
from lbpasm.targets import ArchitectureSpec, get_target, list_targets


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s" if verbose else "%(levelname)s: %(message)s",
    )


def target_option(function):
    """``--target`` option accepting any registered architecture."""
    return click.option(
        "-t", "--target",
        type=click.Choice(list_targets()),
        default=None,
        help="Target architecture (default: from settings)",
    )(function)


def resolve_target(name: Optional[str], settings: Settings) -> ArchitectureSpec:
    return get_target(name if name is not None else settings.target_arch)


def assemble_source(path: Path, spec: ArchitectureSpec) -> AssemblyResult:
    return spec.assemble(path.read_text(encoding="utf-8"))


def exit_on_errors(result: AssemblyResult, path: Path) -> None:
    """
    Exit with BUILD_ERROR if assembly reported errors.

    Every error is printed as ``Line n: message`` on stderr.
    """
    if not result.ok:
        click.echo(format_errors(result.errors), err=True)
        click.echo(f"{len(result.errors)} error(s) in {path}", err=True)
        sys.exit(ExitCode.BUILD_ERROR)


def assemble_file(path: Path, spec: ArchitectureSpec) -> AssemblyResult:
    """Assemble a source file, exiting with BUILD_ERROR on assembly errors."""
    result = assemble_source(path, spec)
    exit_on_errors(result, path)
    return result


class AddressType(click.ParamType):
    """An address written in decimal, ``0x``/``$`` hex or ``0b`` binary."""

    name = "address"

    def convert(self, value, param, ctx) -> int:
        if isinstance(value, int):
            return value
        text = value.strip().lower()
        if text.startswith("$"):
            text = "0x" + text[1:]
        try:
            address = int(text, 0)
        except ValueError:
            self.fail(f"'{value}' is not an address", param, ctx)
        if address < 0:
            self.fail(f"address {value} is negative", param, ctx)
        return address


ADDRESS = AddressType()
