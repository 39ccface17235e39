"""
Bit-String Codec
================

Machine code is built as strings of '0'/'1' characters, most significant
bit first, and concatenated field by field. This module converts between
integers and such fixed-width bit strings.

Ranges
------
- unsigned, width w: 0 .. 2**w - 1
- signed, width w:   -2**(w-1) .. 2**(w-1) - 1 (two's complement)

``encode`` is strict. Operand fields go through ``encode_field``, which
lets a negative value into an unsigned field by switching to the signed
range, so ``#-1`` and ``#$FF`` both assemble into an 8-bit immediate.
"""

from lbpasm.errors import ValueRangeError


def value_range(width: int, signed: bool) -> tuple[int, int]:
    """Return the inclusive (min, max) range of a bit field."""
    if signed:
        return -(1 << (width - 1)), (1 << (width - 1)) - 1
    return 0, (1 << width) - 1


def encode(value: int, width: int, signed: bool = False) -> str:
    """
    Encode an integer as a bit string of exactly ``width`` characters.

    Args:
        value: The integer to encode
        width: Field width in bits
        signed: Use the two's complement range

    Returns:
        The bit string, most significant bit first

    Raises:
        ValueRangeError: If the value does not fit

    Example:
        >>> encode(5, 4)
        '0101'
        >>> encode(-1, 4, signed=True)
        '1111'
    """
    low, high = value_range(width, signed)
    if not low <= value <= high:
        raise ValueRangeError(value, width, signed)
    if value < 0:
        value += 1 << width
    return format(value, f"0{width}b") if width else ""


def encode_field(value: int, width: int, signed: bool = False) -> str:
    """Encode an operand field, accepting negatives in unsigned fields."""
    return encode(value, width, signed or value < 0)


def decode(bits: str, signed: bool = False) -> int:
    """
    Decode a bit string back into an integer.

    Example:
        >>> decode('1111', signed=True)
        -1
    """
    value = int(bits, 2)
    if signed and bits[0] == "1":
        value -= 1 << len(bits)
    return value


def sign_extend(value: int, width: int) -> int:
    """Interpret the low ``width`` bits of ``value`` as a signed number."""
    value &= (1 << width) - 1
    if value & (1 << (width - 1)):
        value -= 1 << width
    return value


def split_words(bits: str, word_size: int) -> list[int]:
    """
    Split an instruction's bit string into word values, big-endian.

    Example:
        >>> split_words('0000001010010110', 8)
        [2, 150]
    """
    return [
        int(bits[i:i + word_size], 2)
        for i in range(0, len(bits), word_size)
    ]


# In-game note blocks show at most this many bits exactly
NOTE_PRECISION_BITS = 19


def to_note(value: int, bits: int) -> str:
    """
    Format a value as shown by in-game note blocks.

    Values wider than 19 bits are scaled down and suffixed with the
    multiplier.

    Example:
        >>> to_note(200, 8)
        '200'
        >>> to_note(0xFFFFFF, 24)
        '524287.96875 x32'
    """
    if bits <= NOTE_PRECISION_BITS:
        return str(value)
    scale = 2 ** (bits - NOTE_PRECISION_BITS)
    return f"{value / scale:.5f} x{scale}"
