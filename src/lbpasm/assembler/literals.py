"""
Numeric and Character Literals
==============================

Each target spells numbers its own way. A ``NumberSyntax`` lists the
radix prefixes a target accepts and parses a token into an integer, or
returns ``None`` when the token is not a number at all (so the caller can
fall through to symbol lookup).

Supported Syntaxes
------------------
- DOLLAR_SYNTAX (bitzzy, v8):  $FF (hex), %1010 (binary), @17 (octal), 42
- LODESTAR_SYNTAX:             $FF (hex), %1010 (binary), 42
- C_SYNTAX (parva):            0xff, 0b1010, 0o17, 42

Underscores may be used as digit separators (``%1010_0101``). A leading
``-`` negates the value; the prefixed syntaxes also accept the sign after
the prefix (``$-10``).

Character Literals
------------------
Targets that define a character encoding accept ``'A'``, ``'\\0'`` and
``-'A'``. The character is looked up in the active ``CharacterEncoding``
table and its index is the value.
"""

import re
from dataclasses import dataclass
from typing import Optional

from lbpasm.errors import AssemblerError

# Digit classes by radix
_DIGITS = {
    2: "[01]",
    8: "[0-7]",
    10: "[0-9]",
    16: "[0-9a-f]",
}


@dataclass(frozen=True)
class NumberSyntax:
    """
    The number spelling accepted by one target.

    Attributes:
        name: Display name for the syntax
        prefixes: (prefix, radix) pairs; the empty prefix is decimal
        sign_after_prefix: Whether ``$-10`` style negation is accepted
    """
    name: str
    prefixes: tuple[tuple[str, int], ...]
    sign_after_prefix: bool = False

    def __post_init__(self) -> None:
        compiled = []
        for prefix, radix in self.prefixes:
            digits = _DIGITS[radix]
            inner_sign = "(-?)" if self.sign_after_prefix and prefix else "()"
            pattern = rf"(-?){re.escape(prefix)}{inner_sign}({digits}[{digits[1:-1]}_]*)"
            compiled.append((re.compile(pattern, re.IGNORECASE), radix))
        object.__setattr__(self, "_compiled", tuple(compiled))

    @property
    def pattern(self) -> str:
        """Regex source matching any number in this syntax (unanchored)."""
        return "|".join(regex.pattern for regex, _ in self._compiled)

    def parse(self, text: str) -> Optional[int]:
        """
        Parse a number token.

        Args:
            text: The token, without surrounding whitespace

        Returns:
            The integer value, or None if the token is not a number
        """
        for regex, radix in self._compiled:
            match = regex.fullmatch(text)
            if match is None:
                continue
            outer, inner, digits = match.groups()
            value = int(digits.replace("_", ""), radix)
            return -value if (outer == "-") != (inner == "-") else value
        return None

    def is_number(self, text: str) -> bool:
        return self.parse(text) is not None


DOLLAR_SYNTAX = NumberSyntax(
    "dollar",
    (("$", 16), ("%", 2), ("@", 8), ("", 10)),
    sign_after_prefix=True,
)

LODESTAR_SYNTAX = NumberSyntax(
    "lodestar",
    (("$", 16), ("%", 2), ("", 10)),
    sign_after_prefix=True,
)

C_SYNTAX = NumberSyntax(
    "c",
    (("0x", 16), ("0b", 2), ("0o", 8), ("", 10)),
)


# =============================================================================
# Character Encodings
# =============================================================================

CHAR_LITERAL_RE = re.compile(r"-?'\\?.'")

# Splits string literal contents into characters, keeping escapes whole
STRING_CHARACTER_RE = re.compile(r"\\.|.")


@dataclass(frozen=True)
class CharacterEncoding:
    """
    A table mapping characters to code values.

    Attributes:
        name: Display name used in error messages
        bits_per_character: Width of one encoded character
        pack: Whether several characters share one machine word
        values: Character at each code; None marks an unused code
    """
    name: str
    bits_per_character: int
    pack: bool
    values: tuple[Optional[str], ...]

    def characters_per_word(self, word_size: int) -> int:
        return word_size // self.bits_per_character

    def code(self, character: str) -> int:
        """
        Look up the code of a single (possibly escaped) character.

        Raises:
            AssemblerError: If the character is not in the table
        """
        try:
            return self.values.index(character)
        except ValueError:
            raise AssemblerError(
                f"The character '{character}' does not exist in the encoding '{self.name}'"
            ) from None


ASCII = CharacterEncoding(
    name="ASCII",
    bits_per_character=8,
    pack=False,
    values=("\\0",) + (None,) * 31 + tuple(chr(c) for c in range(32, 127)) + (None,),
)

TERMINAL = CharacterEncoding(
    name="Terminal",
    bits_per_character=7,
    pack=False,
    values=("\\0", "0", "1", "2", "3", "4", "5", "6", "7", "8", "9",
            "+", "-", "*", "/", "(", ")"),
)

STRING_ENCODINGS: dict[str, CharacterEncoding] = {
    "ascii": ASCII,
    "terminal": TERMINAL,
}


def is_char_literal(text: str) -> bool:
    return CHAR_LITERAL_RE.fullmatch(text) is not None


def parse_char_literal(text: str, encoding: CharacterEncoding) -> Optional[int]:
    """
    Parse a character literal such as ``'A'``, ``'\\0'`` or ``-'A'``.

    Returns:
        The (possibly negated) code, or None if the text is not a
        character literal

    Raises:
        AssemblerError: If the character is missing from the encoding
    """
    if not is_char_literal(text):
        return None
    negative = text.startswith("-")
    character = text[2:-1] if negative else text[1:-1]
    value = encoding.code(character)
    return -value if negative else value


def split_string_literal(text: str) -> list[str]:
    """Split the body of a quoted string literal into characters."""
    return STRING_CHARACTER_RE.findall(text[1:-1])
