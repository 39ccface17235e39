"""
Target Registry
===============

The supported architectures, keyed by name:

- **bitzzy**: 8-bit data, 16-bit addresses, X/Y/Z registers
- **v8**: 8-bit CPU with eight registers and 256 bytes of memory
- **lodestar**: V8 encoding with a stricter, case-folded syntax
- **parva_0_1**: 24-bit RISC-V flavoured CPU with a 64x48 display

The registry is built once at import time and cannot be modified.

Example:
    >>> from lbpasm.targets import get_target
    >>> spec = get_target("parva_0_1")
    >>> spec.word_size
    24
"""

from collections.abc import Mapping
from types import MappingProxyType

from lbpasm.errors import UnknownTargetError
from lbpasm.targets import bitzzy, lodestar, parva, v8
from lbpasm.targets.base import ArchitectureSpec

DEFAULT_TARGET = "parva_0_1"

TARGETS: Mapping[str, ArchitectureSpec] = MappingProxyType({
    spec.name: spec for spec in (bitzzy.SPEC, v8.SPEC, lodestar.SPEC, parva.SPEC)
})


def get_target(name: str) -> ArchitectureSpec:
    """
    Look up a target by name.

    Raises:
        UnknownTargetError: If no target has that name
    """
    try:
        return TARGETS[name]
    except KeyError:
        raise UnknownTargetError(name) from None


def list_targets() -> list[str]:
    return list(TARGETS)


__all__ = [
    "DEFAULT_TARGET",
    "TARGETS",
    "ArchitectureSpec",
    "get_target",
    "list_targets",
]
