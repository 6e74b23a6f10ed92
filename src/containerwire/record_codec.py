"""RecordCodec - binary record encoding for container values.

Every value is written as one self-describing record, all integers
little-endian:

    [type:1][name_len:4][name:utf8][value_size:4][payload:value_size]

Composite payloads (Container, Array) are the concatenation of their
members' full records, so ``value_size`` is the total length of the nested
records.

Decoding checks every length field against the ``SafetyLimits`` and
against the bytes actually present before slicing. Nesting depth is
bounded and each child decode must make progress. A nested record can
never read past its parent's payload. Any violation raises ``DecodeError``
and discards the whole decode.
"""

from __future__ import annotations

import logging
import struct
from typing import Final, NamedTuple, cast

from containerwire.config import DEFAULT_LIMITS, SafetyLimits
from containerwire.error import DecodeError, SerializationError
from containerwire.types import FIXED_WIDTHS, RECORD_HEADER_SIZE, TypeTag
from containerwire.values import (
    VALUE_CLASSES,
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
    Value,
)

logger = logging.getLogger(__name__)

_TAG_AND_NAME_LEN: Final = struct.Struct("<BI")
_U32: Final = struct.Struct("<I")
_U32_MAX: Final[int] = 0xFFFFFFFF

_NUMERIC_FORMATS: Final[dict[TypeTag, struct.Struct]] = {
    TypeTag.SHORT: struct.Struct("<h"),
    TypeTag.USHORT: struct.Struct("<H"),
    TypeTag.INT: struct.Struct("<i"),
    TypeTag.UINT: struct.Struct("<I"),
    TypeTag.LONG: struct.Struct("<i"),
    TypeTag.ULONG: struct.Struct("<I"),
    TypeTag.LLONG: struct.Struct("<q"),
    TypeTag.ULLONG: struct.Struct("<Q"),
    TypeTag.FLOAT: struct.Struct("<f"),
    TypeTag.DOUBLE: struct.Struct("<d"),
}


class _RecordHeader(NamedTuple):
    tag: int
    name: str
    payload_start: int
    payload_size: int


# =============================================================================
# Encoding
# =============================================================================


def _frame(tag: TypeTag, name: str, payload: bytes) -> bytes:
    """Prepend the shared record header and payload size."""
    try:
        name_bytes = name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise SerializationError(f"Name {name!r} is not valid UTF-8: {e}") from e
    if len(name_bytes) > _U32_MAX:
        raise SerializationError(f"Name of {len(name_bytes)} bytes does not fit a u32 length")
    if len(payload) > _U32_MAX:
        raise SerializationError(f"Payload of {len(payload)} bytes does not fit a u32 size")
    return b"".join((
        _TAG_AND_NAME_LEN.pack(tag, len(name_bytes)),
        name_bytes,
        _U32.pack(len(payload)),
        payload,
    ))


def encode_payload(value: Value) -> bytes:
    """Encode only the type-specific payload of ``value``."""
    match value:
        case NullValue():
            return b""
        case BoolValue():
            return b"\x01" if value.value else b"\x00"
        case (
            ShortValue() | UShortValue() | IntValue() | UIntValue()
            | LongValue() | ULongValue() | LLongValue() | ULLongValue()
            | FloatValue() | DoubleValue()
        ):
            try:
                return _NUMERIC_FORMATS[value.type_tag].pack(value.value)
            except (struct.error, OverflowError) as e:
                raise SerializationError(
                    f"Cannot pack {value.value!r} as {value.type_tag.name}: {e}"
                ) from e
        case StringValue():
            try:
                return value.value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise SerializationError(
                    f"String '{value.name}' is not valid UTF-8: {e}"
                ) from e
        case BytesValue():
            return value.value
        case Container() | ArrayValue():
            return b"".join(encode_value(member) for member in value)
        case _:
            raise TypeError(f"Unsupported value type: {type(value).__name__}")


def encode_value(value: Value) -> bytes:
    """Encode ``value`` (recursively for composites) as one binary record."""
    return _frame(value.type_tag, value.name, encode_payload(value))


# =============================================================================
# Decoding
# =============================================================================


class RecordCodec:
    """Decodes binary records under a fixed set of safety limits.

    Example:
        >>> codec = RecordCodec(SafetyLimits(max_nesting_depth=8))
        >>> root, consumed = codec.decode_value(Container("root").serialize())
        >>> root.name, consumed
        ('root', 13)
    """

    __slots__ = ("limits",)

    def __init__(self, limits: SafetyLimits = DEFAULT_LIMITS) -> None:
        self.limits = limits

    # ---------- Public API ----------

    def decode_value(self, buffer: bytes, offset: int = 0, depth: int = 0) -> tuple[Value, int]:
        """Decode the record at ``offset``; returns the value and bytes consumed."""
        buf = _as_bytes(buffer)
        return self._decode_value(buf, offset, depth, len(buf))

    def decode_composite(
        self,
        buffer: bytes,
        offset: int,
        depth: int,
        expected: TypeTag,
    ) -> tuple[Container | ArrayValue, int]:
        """Decode a record that must carry the composite tag ``expected``."""
        buf = _as_bytes(buffer)
        header = self._read_header(buf, offset, depth, len(buf), expected=expected)
        return self._decode_members(buf, offset, depth, header)

    def deserialize(self, buffer: bytes) -> Value:
        """Decode a buffer holding exactly one root record.

        Raises:
            DecodeError: If the buffer is oversized, malformed, or has
                bytes left over after the root record.
        """
        buf = _as_bytes(buffer)
        try:
            if len(buf) > self.limits.max_buffer_size:
                raise DecodeError.input_too_large(len(buf), self.limits.max_buffer_size)
            value, consumed = self._decode_value(buf, 0, 0, len(buf))
            if consumed != len(buf):
                raise DecodeError.trailing_bytes(consumed, len(buf))
        except DecodeError as e:
            logger.debug("Rejected %d-byte record buffer: [%s] %s", len(buf), e.code.value, e)
            raise
        logger.debug("Decoded %s record %r (%d bytes)", value.type_tag.name, value.name, consumed)
        return value

    # ---------- Decoding internals ----------

    def _read_header(
        self,
        buf: bytes,
        offset: int,
        depth: int,
        end: int,
        expected: TypeTag | None = None,
    ) -> _RecordHeader:
        """Validate and read everything up to the payload of one record."""
        limits = self.limits
        if depth > limits.max_nesting_depth:
            raise DecodeError.nesting_too_deep(depth, limits.max_nesting_depth)

        available = end - offset
        if available < RECORD_HEADER_SIZE:
            raise DecodeError.buffer_too_short(
                "record header", offset, RECORD_HEADER_SIZE, max(available, 0)
            )

        tag, name_len = _TAG_AND_NAME_LEN.unpack_from(buf, offset)
        if expected is not None and tag != expected:
            raise DecodeError.type_tag_mismatch(expected, tag, offset)
        if name_len > limits.max_name_length:
            raise DecodeError.name_too_long(name_len, limits.max_name_length)

        pos = offset + 5
        if pos + name_len + 4 > end:
            raise DecodeError.buffer_too_short(
                "record name and value size", offset,
                RECORD_HEADER_SIZE + name_len, available,
            )
        try:
            name = buf[pos:pos + name_len].decode("utf-8")
        except UnicodeDecodeError:
            raise DecodeError.invalid_utf8("record name", pos) from None
        pos += name_len

        (size,) = _U32.unpack_from(buf, pos)
        pos += 4
        if size > limits.max_value_size:
            raise DecodeError.value_too_large(size, limits.max_value_size)
        if pos + size > end:
            raise DecodeError.buffer_underflow(pos, size, end - pos)

        return _RecordHeader(tag, name, pos, size)

    def _decode_value(self, buf: bytes, offset: int, depth: int, end: int) -> tuple[Value, int]:
        header = self._read_header(buf, offset, depth, end)
        try:
            tag = TypeTag(header.tag)
        except ValueError:
            raise DecodeError.unknown_type_tag(header.tag, offset) from None

        if tag.is_composite:
            return self._decode_members(buf, offset, depth, header)

        start, size = header.payload_start, header.payload_size
        width = FIXED_WIDTHS.get(tag)
        if width is not None and size != width:
            raise DecodeError.invalid_payload(
                header.name, f"{tag.name} payload must be {width} bytes, got {size}"
            )
        payload = buf[start:start + size]

        value: Value
        match tag:
            case TypeTag.NULL:
                value = NullValue(header.name)
            case TypeTag.BOOL:
                value = BoolValue(header.name, payload[0] != 0)
            case TypeTag.STRING:
                try:
                    text = payload.decode("utf-8")
                except UnicodeDecodeError:
                    raise DecodeError.invalid_utf8(f"string '{header.name}'", start) from None
                value = StringValue(header.name, text)
            case TypeTag.BYTES:
                value = BytesValue(header.name, payload)
            case _:
                (native,) = _NUMERIC_FORMATS[tag].unpack(payload)
                value = VALUE_CLASSES[tag](header.name, native)

        return value, start + size - offset

    def _decode_members(
        self,
        buf: bytes,
        offset: int,
        depth: int,
        header: _RecordHeader,
    ) -> tuple[Container | ArrayValue, int]:
        """Decode the nested records filling a composite's payload region."""
        pos = header.payload_start
        region_end = pos + header.payload_size
        members: list[Value] = []

        while pos < region_end:
            member, consumed = self._decode_value(buf, pos, depth + 1, region_end)
            if consumed < self.limits.min_bytes_read:
                raise DecodeError.zero_progress(pos, consumed, self.limits.min_bytes_read)
            members.append(member)
            pos += consumed

        composite: Container | ArrayValue
        if header.tag == TypeTag.CONTAINER:
            composite = Container(header.name, members)
        else:
            composite = ArrayValue(header.name, members)
        return composite, region_end - offset


def _as_bytes(buffer: bytes | bytearray | memoryview) -> bytes:
    return buffer if isinstance(buffer, bytes) else bytes(buffer)


# =============================================================================
# Convenience Functions
# =============================================================================


def decode_value(
    buffer: bytes,
    offset: int = 0,
    depth: int = 0,
    *,
    limits: SafetyLimits = DEFAULT_LIMITS,
) -> tuple[Value, int]:
    """Decode one record of any type. Returns ``(value, bytes_consumed)``."""
    return RecordCodec(limits).decode_value(buffer, offset, depth)


def decode_container(
    buffer: bytes,
    offset: int = 0,
    depth: int = 0,
    *,
    limits: SafetyLimits = DEFAULT_LIMITS,
) -> tuple[Container, int]:
    """Decode a record that must be a Container."""
    value, consumed = RecordCodec(limits).decode_composite(
        buffer, offset, depth, TypeTag.CONTAINER
    )
    return cast(Container, value), consumed


def decode_array(
    buffer: bytes,
    offset: int = 0,
    depth: int = 0,
    *,
    limits: SafetyLimits = DEFAULT_LIMITS,
) -> tuple[ArrayValue, int]:
    """Decode a record that must be an Array."""
    value, consumed = RecordCodec(limits).decode_composite(
        buffer, offset, depth, TypeTag.ARRAY
    )
    return cast(ArrayValue, value), consumed


def deserialize(buffer: bytes, *, limits: SafetyLimits = DEFAULT_LIMITS) -> Value:
    """Decode a buffer that holds exactly one root record."""
    return RecordCodec(limits).deserialize(buffer)
