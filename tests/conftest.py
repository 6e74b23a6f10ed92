"""Pytest configuration for all tests."""

import pytest

from containerwire.config import SafetyLimits
from containerwire.values import (
    ArrayValue,
    BoolValue,
    BytesValue,
    Container,
    DoubleValue,
    FloatValue,
    IntValue,
    LLongValue,
    LongValue,
    NullValue,
    ShortValue,
    StringValue,
    UIntValue,
    ULLongValue,
    ULongValue,
    UShortValue,
)


# Every bounded integer variant with its inclusive range.
BOUNDS = [
    (ShortValue, -(2**15), 2**15 - 1),
    (UShortValue, 0, 2**16 - 1),
    (IntValue, -(2**31), 2**31 - 1),
    (UIntValue, 0, 2**32 - 1),
    (LongValue, -(2**31), 2**31 - 1),
    (ULongValue, 0, 2**32 - 1),
    (LLongValue, -(2**63), 2**63 - 1),
    (ULLongValue, 0, 2**64 - 1),
]

def build_chain(levels: int) -> Container:
    """Build ``levels`` nested containers, the innermost holding one Int.

    The root is at depth 0, so the Int leaf sits at depth ``levels``.
    """
    inner = Container(f"level{levels - 1}", [IntValue("leaf", 1)])
    for level in range(levels - 2, -1, -1):
        inner = Container(f"level{level}", [inner])
    return inner


@pytest.fixture
def tight_limits() -> SafetyLimits:
    """Small limits so tests can hit every bound cheaply."""
    return SafetyLimits(
        max_name_length=16,
        max_value_size=128,
        max_buffer_size=256,
        max_nesting_depth=4,
    )


@pytest.fixture
def scenario_root() -> Container:
    """Container "root" with flag/count/name."""
    return Container(
        "root",
        [
            BoolValue("flag", True),
            IntValue("count", 42),
            StringValue("name", "test"),
        ],
    )


@pytest.fixture
def every_variant() -> Container:
    """One value of each of the sixteen variants."""
    return Container(
        "all",
        [
            NullValue("null"),
            BoolValue("bool", False),
            ShortValue("short", -32768),
            UShortValue("ushort", 65535),
            IntValue("int", -(2**31)),
            UIntValue("uint", 2**32 - 1),
            LongValue("long", 2**31 - 1),
            ULongValue("ulong", 0),
            LLongValue("llong", -(2**63)),
            ULLongValue("ullong", 2**64 - 1),
            FloatValue("float", 1.5),
            DoubleValue("double", 3.141592653589793),
            StringValue("string", "héllo, [world]; {x}\\"),
            BytesValue("bytes", b"\x00\xffraw"),
            Container("child", [IntValue("inner", 7)]),
            ArrayValue("array", [IntValue("", 1), StringValue("", "two"), NullValue("")]),
        ],
    )
