"""
Instruction Matcher
===================

Every target describes its syntax as an ordered table of rules. A rule is
a regular expression assembled from fragments plus an action; the first
rule whose pattern matches the whole (comment-stripped) line wins, and
its action is invoked with the captured operands.

Pattern Fragments
-----------------
Patterns are written as a sequence of strings:

    table.add("ld", reg("a"), SEP, reg("b"), action=load_register)

- Literal text such as ``"ld"`` or ``r"\\("`` is used as-is
- Separators: SPACE (one or more blanks), OPT_SPACE, SEP (comma or
  blanks), HARD_SEP (a comma)
- ``slot(regex)`` builds a capture factory; ``reg("a")`` then yields a
  named group ``(?P<a>...)``

Patterns are anchored at both ends and matched case-insensitively.

Bindings
--------
The captured operands reach the action as a ``Bindings`` object: a
read-only mapping restricted to the names the rule declared, also
readable as attributes (``b.a``).
"""

import logging
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


# =============================================================================
# Pattern Fragments
# =============================================================================

SPACE: str = r"\s+"
OPT_SPACE: str = r"\s*"
SEP: str = r"\s*[,\s]\s*"
HARD_SEP: str = r"\s*,\s*"
REMAINDER: str = r".*"


def slot(regex: str) -> Callable[[str], str]:
    """
    Make a capture factory for a regex.

    Example:
        >>> reg = slot("x|y|z")
        >>> reg("a")
        '(?P<a>x|y|z)'
    """
    def capture(name: str) -> str:
        return f"(?P<{name}>{regex})"
    return capture


# =============================================================================
# Bindings
# =============================================================================

class Bindings(Mapping[str, str]):
    """Operands captured by one rule match."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, Optional[str]]):
        self._values = {name: value or "" for name, value in values.items()}

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __getattr__(self, name: str) -> str:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"no operand named '{name}' in this rule") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Bindings({self._values!r})"


# =============================================================================
# Rules
# =============================================================================

# Actions receive a LineContext (see lbpasm.assembler.assembler)
Action = Callable[[Any, Bindings], None]


@dataclass(frozen=True)
class Rule:
    """
    One pattern/action pair.

    Attributes:
        regex: Compiled, case-insensitive pattern
        action: Called with (context, bindings) on a match
    """
    regex: re.Pattern
    action: Action

    @property
    def slots(self) -> tuple[str, ...]:
        return tuple(self.regex.groupindex)

    def match(self, text: str) -> Optional[Bindings]:
        match = self.regex.fullmatch(text)
        if match is None:
            return None
        return Bindings(match.groupdict())


class RuleTable:
    """
    Ordered rule table of one target.

    Order matters: more specific forms must be added before general ones
    that would also match (``ld a, (addr)`` before ``ld a, addr``).
    """

    def __init__(self, name: str):
        self.name = name
        self.rules: list[Rule] = []

    def add(self, *parts: str, action: Action) -> Rule:
        """
        Append a rule built from pattern fragments.

        Args:
            *parts: Pattern fragments, concatenated in order
            action: Called with (context, bindings) when the rule wins

        Returns:
            The new rule
        """
        pattern = "".join(parts)
        rule = Rule(re.compile(pattern, re.IGNORECASE), action)
        self.rules.append(rule)
        return rule

    def find(self, text: str) -> Optional[tuple[Rule, Bindings]]:
        """Return the first matching rule and its bindings, or None."""
        return next(
            ((rule, bindings) for rule in self.rules
             if (bindings := rule.match(text)) is not None),
            None,
        )

    def __len__(self) -> int:
        return len(self.rules)
