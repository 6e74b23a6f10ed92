"""Core type definitions for the container wire formats.

The sixteen type tags and their numeric domains are shared by the binary
record codec and the text wire codec. Tag values are part of the wire
contract with the C++, .NET, Go and Rust implementations and must never be
renumbered.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Final


class TypeTag(IntEnum):
    """One-byte discriminator written at the start of every binary record."""

    NULL = 0
    BOOL = 1
    SHORT = 2
    USHORT = 3
    INT = 4
    UINT = 5
    LONG = 6      # 32-bit signed, not platform long
    ULONG = 7     # 32-bit unsigned, not platform unsigned long
    LLONG = 8
    ULLONG = 9
    FLOAT = 10
    DOUBLE = 11
    STRING = 12
    BYTES = 13
    CONTAINER = 14
    ARRAY = 15

    @property
    def is_composite(self) -> bool:
        """True for tags whose payload is a sequence of nested records."""
        return self in (TypeTag.CONTAINER, TypeTag.ARRAY)


@dataclass(frozen=True, slots=True)
class NumericRange:
    """Closed integer interval accepted by a range-checked numeric type."""

    minimum: int
    maximum: int

    def __contains__(self, value: object) -> bool:
        return isinstance(value, int) and self.minimum <= value <= self.maximum

    def __str__(self) -> str:
        return f"[{self.minimum}, {self.maximum}]"


SHORT_RANGE: Final[NumericRange] = NumericRange(-(2**15), 2**15 - 1)
USHORT_RANGE: Final[NumericRange] = NumericRange(0, 2**16 - 1)
INT_RANGE: Final[NumericRange] = NumericRange(-(2**31), 2**31 - 1)
UINT_RANGE: Final[NumericRange] = NumericRange(0, 2**32 - 1)

# Long/ULong are capped at 32 bits so every platform agrees on the width.
# 64-bit magnitudes belong in LLong/ULLong.
LONG_RANGE: Final[NumericRange] = INT_RANGE
ULONG_RANGE: Final[NumericRange] = UINT_RANGE

LLONG_RANGE: Final[NumericRange] = NumericRange(-(2**63), 2**63 - 1)
ULLONG_RANGE: Final[NumericRange] = NumericRange(0, 2**64 - 1)

NUMERIC_RANGES: Final[dict[TypeTag, NumericRange]] = {
    TypeTag.SHORT: SHORT_RANGE,
    TypeTag.USHORT: USHORT_RANGE,
    TypeTag.INT: INT_RANGE,
    TypeTag.UINT: UINT_RANGE,
    TypeTag.LONG: LONG_RANGE,
    TypeTag.ULONG: ULONG_RANGE,
    TypeTag.LLONG: LLONG_RANGE,
    TypeTag.ULLONG: ULLONG_RANGE,
}

# Fixed payload widths in bytes; variable-width tags are absent.
FIXED_WIDTHS: Final[dict[TypeTag, int]] = {
    TypeTag.NULL: 0,
    TypeTag.BOOL: 1,
    TypeTag.SHORT: 2,
    TypeTag.USHORT: 2,
    TypeTag.INT: 4,
    TypeTag.UINT: 4,
    TypeTag.LONG: 4,
    TypeTag.ULONG: 4,
    TypeTag.LLONG: 8,
    TypeTag.ULLONG: 8,
    TypeTag.FLOAT: 4,
    TypeTag.DOUBLE: 8,
}

# Identifiers used by the text wire format in place of the numeric tag.
TYPE_NAMES: Final[dict[TypeTag, str]] = {
    TypeTag.NULL: "null_value",
    TypeTag.BOOL: "bool_value",
    TypeTag.SHORT: "short_value",
    TypeTag.USHORT: "ushort_value",
    TypeTag.INT: "int_value",
    TypeTag.UINT: "uint_value",
    TypeTag.LONG: "long_value",
    TypeTag.ULONG: "ulong_value",
    TypeTag.LLONG: "llong_value",
    TypeTag.ULLONG: "ullong_value",
    TypeTag.FLOAT: "float_value",
    TypeTag.DOUBLE: "double_value",
    TypeTag.STRING: "string_value",
    TypeTag.BYTES: "bytes_value",
    TypeTag.CONTAINER: "container_value",
    TypeTag.ARRAY: "array_value",
}

TYPE_NAME_TO_TAG: Final[dict[str, TypeTag]] = {
    name: tag for tag, name in TYPE_NAMES.items()
}

# type(1) + name_len(4) + value_size(4)
RECORD_HEADER_SIZE: Final[int] = 9
