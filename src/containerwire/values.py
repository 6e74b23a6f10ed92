"""Typed values - the sixteen variants of the container value model.

Every value has an immutable ``name``, an immutable ``type_tag`` and a
native ``value``, and supports ``serialize()`` (binary record) and
``clone()``. Scalars are frozen dataclasses; ``Container`` and
``ArrayValue`` are the only mutable variants, and only their membership
changes after construction.

The union is closed: ``Value`` lists every variant, and the dispatch
functions below (``clone_value``, ``to_native``) match on all of them.

Range-checked numerics (Short through ULLong) validate at construction.
``create()`` is the non-raising path and returns ``Ok``/``Err``:

    >>> IntValue.create("count", 42).unwrap()
    IntValue(name='count', value=42)
    >>> LongValue.create("big", 5_000_000_000).ok
    False
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, ClassVar, Union

from containerwire.config import DEFAULT_LIMITS, SafetyLimits
from containerwire.error import (
    InvalidTypeConversionError,
    TypeMismatchError,
    ValueNotFoundError,
)
from containerwire.types import NUMERIC_RANGES, TYPE_NAMES, TypeTag

_SINGLE = struct.Struct("<f")

# =============================================================================
# Construction results
# =============================================================================


@dataclass(frozen=True, slots=True)
class Ok:
    """Successful ``create()`` result."""

    value: Any
    ok: ClassVar[bool] = True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class Err:
    """Failed ``create()`` result carrying the validation error."""

    error: InvalidTypeConversionError
    ok: ClassVar[bool] = False

    def unwrap(self) -> Any:
        raise self.error


Result = Union[Ok, Err]


def _integral(value: Any, tag: TypeTag) -> int:
    """Validate that value is a mathematical integer inside tag's range."""
    bounds = NUMERIC_RANGES[tag]
    type_name = TYPE_NAMES[tag]
    # bool is an int subclass; True must not silently become 1
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidTypeConversionError(
            value, type_name, bounds.minimum, bounds.maximum, reason="not an integer"
        )
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidTypeConversionError(
                value, type_name, bounds.minimum, bounds.maximum, reason="not an integer"
            )
        value = int(value)
    if value not in bounds:
        raise InvalidTypeConversionError(
            value, type_name, bounds.minimum, bounds.maximum,
            reason=f"out of range {bounds}",
        )
    return value


# =============================================================================
# Scalar variants
# =============================================================================


class _Record:
    """Behaviour shared by every scalar variant."""

    __slots__ = ()

    TAG: ClassVar[TypeTag]

    @property
    def type_tag(self) -> TypeTag:
        return self.TAG

    def serialize(self) -> bytes:
        """Encode this value as one binary record."""
        from containerwire.record_codec import encode_value

        return encode_value(self)  # type: ignore[arg-type]

    def clone(self) -> Value:
        return clone_value(self)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class NullValue(_Record):
    """Explicit null, distinct from a name that is absent from a container."""

    TAG: ClassVar[TypeTag] = TypeTag.NULL

    name: str

    @property
    def value(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class BoolValue(_Record):
    TAG: ClassVar[TypeTag] = TypeTag.BOOL

    name: str
    value: bool

    def __post_init__(self) -> None:
        if not isinstance(self.value, int):
            raise InvalidTypeConversionError(self.value, TYPE_NAMES[self.TAG], reason="not a bool")
        object.__setattr__(self, "value", bool(self.value))


@dataclass(frozen=True, slots=True)
class _RangedInteger(_Record):
    """Integer variant whose value must lie in ``NUMERIC_RANGES[TAG]``."""

    name: str
    value: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", _integral(self.value, self.TAG))

    @classmethod
    def create(cls, name: str, value: Any) -> Result:
        """Validate and construct without raising."""
        try:
            return Ok(cls(name, value))
        except InvalidTypeConversionError as e:
            return Err(e)


@dataclass(frozen=True, slots=True)
class ShortValue(_RangedInteger):
    """Signed 16-bit integer."""

    TAG: ClassVar[TypeTag] = TypeTag.SHORT


@dataclass(frozen=True, slots=True)
class UShortValue(_RangedInteger):
    """Unsigned 16-bit integer."""

    TAG: ClassVar[TypeTag] = TypeTag.USHORT


@dataclass(frozen=True, slots=True)
class IntValue(_RangedInteger):
    """Signed 32-bit integer."""

    TAG: ClassVar[TypeTag] = TypeTag.INT


@dataclass(frozen=True, slots=True)
class UIntValue(_RangedInteger):
    """Unsigned 32-bit integer."""

    TAG: ClassVar[TypeTag] = TypeTag.UINT


@dataclass(frozen=True, slots=True)
class LongValue(_RangedInteger):
    """Signed integer restricted to 32 bits on every platform.

    For 64-bit magnitudes use ``LLongValue``.
    """

    TAG: ClassVar[TypeTag] = TypeTag.LONG


@dataclass(frozen=True, slots=True)
class ULongValue(_RangedInteger):
    """Unsigned integer restricted to 32 bits on every platform.

    For 64-bit magnitudes use ``ULLongValue``.
    """

    TAG: ClassVar[TypeTag] = TypeTag.ULONG


@dataclass(frozen=True, slots=True)
class LLongValue(_RangedInteger):
    """Signed 64-bit integer.

    Direct construction raises ``InvalidTypeConversionError`` when out of
    range; ``create()`` returns ``Err`` instead.
    """

    TAG: ClassVar[TypeTag] = TypeTag.LLONG


@dataclass(frozen=True, slots=True)
class ULLongValue(_RangedInteger):
    """Unsigned 64-bit integer (see ``LLongValue`` for error behaviour)."""

    TAG: ClassVar[TypeTag] = TypeTag.ULLONG


@dataclass(frozen=True, slots=True)
class _FloatingPoint(_Record):
    name: str
    value: float

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise InvalidTypeConversionError(
                self.value, TYPE_NAMES[self.TAG], reason="not a number"
            )
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True, slots=True)
class FloatValue(_FloatingPoint):
    """IEEE-754 single precision; the native value is a Python float.

    The value is rounded to the nearest single-precision float on
    construction, so it survives a binary round trip unchanged. Finite
    values beyond single-precision range are rejected.
    """

    TAG: ClassVar[TypeTag] = TypeTag.FLOAT

    def __post_init__(self) -> None:
        _FloatingPoint.__post_init__(self)
        try:
            (single,) = _SINGLE.unpack(_SINGLE.pack(self.value))
        except (OverflowError, struct.error):
            raise InvalidTypeConversionError(
                self.value, TYPE_NAMES[self.TAG], reason="out of single precision range"
            ) from None
        object.__setattr__(self, "value", single)


@dataclass(frozen=True, slots=True)
class DoubleValue(_FloatingPoint):
    """IEEE-754 double precision."""

    TAG: ClassVar[TypeTag] = TypeTag.DOUBLE


@dataclass(frozen=True, slots=True)
class StringValue(_Record):
    """UTF-8 text. The payload size is the encoded byte length."""

    TAG: ClassVar[TypeTag] = TypeTag.STRING

    name: str
    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise InvalidTypeConversionError(
                self.value, TYPE_NAMES[self.TAG], reason="not a string"
            )


@dataclass(frozen=True, slots=True)
class BytesValue(_Record):
    """Opaque byte sequence."""

    TAG: ClassVar[TypeTag] = TypeTag.BYTES

    name: str
    value: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bytes, bytearray, memoryview)):
            raise InvalidTypeConversionError(
                self.value, TYPE_NAMES[self.TAG], reason="not bytes-like"
            )
        object.__setattr__(self, "value", bytes(self.value))


# =============================================================================
# Composite variants
# =============================================================================


class Container:
    """Named mapping of unique value names to values.

    Adding a value under an existing name replaces it in place; iteration
    follows insertion order. A container exclusively owns its children.
    Instances are not synchronized; guard shared mutation externally.
    """

    __slots__ = ("_name", "_values")

    TAG: ClassVar[TypeTag] = TypeTag.CONTAINER

    def __init__(self, name: str = "", values: Iterable[Value] = ()) -> None:
        self._name = name
        self._values: dict[str, Value] = {}
        for value in values:
            self.add(value)

    @property
    def name(self) -> str:
        return self._name

    @property
    def type_tag(self) -> TypeTag:
        return TypeTag.CONTAINER

    @property
    def value(self) -> MappingProxyType[str, Value]:
        """Read-only view of the children; mutate through add/remove/clear."""
        return MappingProxyType(self._values)

    # ---------- Membership ----------

    def add(self, value: Value) -> None:
        self._values[value.name] = value

    def get(self, name: str) -> Value:
        try:
            return self._values[name]
        except KeyError:
            raise ValueNotFoundError(name) from None

    def try_get(self, name: str) -> Value | None:
        return self._values.get(name)

    def has(self, name: str) -> bool:
        return name in self._values

    def get_as(self, name: str, tag: TypeTag) -> Value:
        """Get a value and check its type tag.

        Raises:
            ValueNotFoundError: If no value has this name.
            TypeMismatchError: If the value's tag is not ``tag``.
        """
        value = self.get(name)
        if value.type_tag != tag:
            raise TypeMismatchError(name, TypeTag(tag), value.type_tag)
        return value

    def remove(self, name: str) -> bool:
        return self._values.pop(name, None) is not None

    def clear(self) -> None:
        self._values.clear()

    def size(self) -> int:
        return len(self._values)

    def keys(self) -> list[str]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Value]:
        return iter(self._values.values())

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Container):
            return NotImplemented
        return self._name == other._name and self._values == other._values

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Container(name={self._name!r}, keys={self.keys()!r})"

    # ---------- Encoding ----------

    def serialize(self) -> bytes:
        from containerwire.record_codec import encode_value

        return encode_value(self)

    def clone(self) -> Container:
        return clone_value(self)  # type: ignore[return-value]

    @classmethod
    def deserialize(
        cls,
        buffer: bytes,
        offset: int = 0,
        depth: int = 0,
        *,
        limits: SafetyLimits = DEFAULT_LIMITS,
    ) -> tuple[Container, int]:
        """Decode a container record; returns the container and bytes read."""
        from containerwire.record_codec import decode_container

        return decode_container(buffer, offset, depth, limits=limits)


class ArrayValue:
    """Named ordered sequence of values.

    Element types are not required to match each other.
    """

    __slots__ = ("_name", "_elements")

    TAG: ClassVar[TypeTag] = TypeTag.ARRAY

    def __init__(self, name: str = "", values: Iterable[Value] = ()) -> None:
        self._name = name
        self._elements: list[Value] = list(values)

    @property
    def name(self) -> str:
        return self._name

    @property
    def type_tag(self) -> TypeTag:
        return TypeTag.ARRAY

    @property
    def value(self) -> tuple[Value, ...]:
        return tuple(self._elements)

    def push(self, value: Value) -> None:
        self._elements.append(value)

    def at(self, index: int) -> Value:
        if index < 0 or index >= len(self._elements):
            raise IndexError(
                f"Array index {index} out of bounds [0, {len(self._elements)})"
            )
        return self._elements[index]

    def length(self) -> int:
        return len(self._elements)

    def __len__(self) -> int:
        return len(self._elements)

    def __getitem__(self, index: int) -> Value:
        return self._elements[index]

    def __iter__(self) -> Iterator[Value]:
        return iter(self._elements)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArrayValue):
            return NotImplemented
        return self._name == other._name and self._elements == other._elements

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ArrayValue(name={self._name!r}, length={len(self._elements)})"

    def serialize(self) -> bytes:
        from containerwire.record_codec import encode_value

        return encode_value(self)

    def clone(self) -> ArrayValue:
        return clone_value(self)  # type: ignore[return-value]

    @classmethod
    def deserialize(
        cls,
        buffer: bytes,
        offset: int = 0,
        depth: int = 0,
        *,
        limits: SafetyLimits = DEFAULT_LIMITS,
    ) -> tuple[ArrayValue, int]:
        """Decode an array record; returns the array and bytes read."""
        from containerwire.record_codec import decode_array

        return decode_array(buffer, offset, depth, limits=limits)


Value = Union[
    NullValue, BoolValue,
    ShortValue, UShortValue, IntValue, UIntValue,
    LongValue, ULongValue, LLongValue, ULLongValue,
    FloatValue, DoubleValue,
    StringValue, BytesValue,
    Container, ArrayValue,
]

VALUE_CLASSES: dict[TypeTag, type] = {
    TypeTag.NULL: NullValue,
    TypeTag.BOOL: BoolValue,
    TypeTag.SHORT: ShortValue,
    TypeTag.USHORT: UShortValue,
    TypeTag.INT: IntValue,
    TypeTag.UINT: UIntValue,
    TypeTag.LONG: LongValue,
    TypeTag.ULONG: ULongValue,
    TypeTag.LLONG: LLongValue,
    TypeTag.ULLONG: ULLongValue,
    TypeTag.FLOAT: FloatValue,
    TypeTag.DOUBLE: DoubleValue,
    TypeTag.STRING: StringValue,
    TypeTag.BYTES: BytesValue,
    TypeTag.CONTAINER: Container,
    TypeTag.ARRAY: ArrayValue,
}


# =============================================================================
# Dispatch
# =============================================================================


def make_scalar(tag: TypeTag, name: str, native: Any) -> Value:
    """Construct the scalar variant for ``tag``.

    Raises:
        InvalidTypeConversionError: If ``native`` is not valid for the type.
        ValueError: If ``tag`` is a composite tag.
    """
    if tag == TypeTag.NULL:
        return NullValue(name)
    if TypeTag(tag).is_composite:
        raise ValueError(f"{TypeTag(tag).name} is not a scalar type")
    return VALUE_CLASSES[tag](name, native)


def clone_value(value: Value) -> Value:
    """Deep copy a value tree; composites get fresh membership."""
    match value:
        case Container():
            return Container(value.name, (clone_value(child) for child in value))
        case ArrayValue():
            return ArrayValue(value.name, [clone_value(element) for element in value])
        case NullValue():
            return NullValue(value.name)
        case (
            BoolValue() | ShortValue() | UShortValue() | IntValue() | UIntValue()
            | LongValue() | ULongValue() | LLongValue() | ULLongValue()
            | FloatValue() | DoubleValue() | StringValue() | BytesValue()
        ):
            return replace(value)
        case _:
            raise TypeError(f"Unsupported value type: {type(value).__name__}")


def to_native(value: Value) -> Any:
    """Convert a value tree into plain dicts, lists and scalars."""
    match value:
        case Container():
            return {child.name: to_native(child) for child in value}
        case ArrayValue():
            return [to_native(element) for element in value]
        case _:
            return value.value
