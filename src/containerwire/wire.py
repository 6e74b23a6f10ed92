"""Text wire format shared with the C++, .NET, Go and Rust implementations.

A message is a header section followed by a data section:

    @header{{[5,data_container];[6,1.0];}};@data{{[name,string_value,Alice];[age,int_value,30];}};

## Records

Each data record is ``[name,type_name,payload];``. Names and string
payloads escape ``\\ [ ] ; , { }`` with a backslash. Composite payloads
nest further records:

- Container: ``@<escaped-name>{{<records>}}``
- Array: the concatenation of the element records, each with an empty name

The data section always decodes into a Container named after the header's
message type.

## Depth

The data container is the root at depth 0, so its records are parsed at
depth 1 and every nested composite's records one level deeper. This
matches the binary record codec, so one value tree passes or fails the
``max_nesting_depth`` check the same way in both formats.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum
from typing import Final

from containerwire.config import DEFAULT_LIMITS, SafetyLimits
from containerwire.error import (
    DecodeError,
    ErrorCode,
    InvalidTypeConversionError,
    SerializationError,
)
from containerwire.types import TYPE_NAME_TO_TAG, TYPE_NAMES, TypeTag
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
    Value,
    make_scalar,
)

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_TYPE: Final[str] = "data_container"
DEFAULT_VERSION: Final[str] = "1.0"

_ESCAPE_RE: Final = re.compile(r"([\\\[\];,{}])")
_UNESCAPE_RE: Final = re.compile(r"\\([\\\[\];,{}])")
_SECTION_RE: Final = re.compile(r"\s*=?\s*\{\{")
_NESTED_CONTAINER_RE: Final = re.compile(r"@((?:\\.|[^\\{])*)\{\{(.*)\}\}", re.DOTALL)
_INTEGER_RE: Final = re.compile(r"[+-]?[0-9]+")
_HEX_RE: Final = re.compile(r"(?:[0-9a-fA-F]{2})*")

_FLOAT_WORDS: Final[dict[str, float]] = {
    "Infinity": math.inf,
    "-Infinity": -math.inf,
    "NaN": math.nan,
}


class HeaderFieldId(IntEnum):
    """Numeric ids of the header fields."""

    TARGET_ID = 1
    TARGET_SUB_ID = 2
    SOURCE_ID = 3
    SOURCE_SUB_ID = 4
    MESSAGE_TYPE = 5
    MESSAGE_VERSION = 6


@dataclass(frozen=True, slots=True)
class WireHeader:
    """Routing and type information carried in the ``@header`` section.

    The four routing fields are only written for messages whose type is
    not ``data_container``.
    """

    target_id: str | None = None
    target_sub_id: str | None = None
    source_id: str | None = None
    source_sub_id: str | None = None
    message_type: str = DEFAULT_MESSAGE_TYPE
    version: str = DEFAULT_VERSION

    def to_fields(self) -> list[tuple[HeaderFieldId, str]]:
        """Return the ``(id, text)`` pairs to emit, in id order."""
        fields: list[tuple[HeaderFieldId, str]] = []
        if self.message_type != DEFAULT_MESSAGE_TYPE:
            routing = (
                (HeaderFieldId.TARGET_ID, self.target_id),
                (HeaderFieldId.TARGET_SUB_ID, self.target_sub_id),
                (HeaderFieldId.SOURCE_ID, self.source_id),
                (HeaderFieldId.SOURCE_SUB_ID, self.source_sub_id),
            )
            fields.extend((field_id, text) for field_id, text in routing if text)
        fields.append((HeaderFieldId.MESSAGE_TYPE, self.message_type))
        fields.append((HeaderFieldId.MESSAGE_VERSION, self.version))
        return fields


@dataclass(frozen=True, slots=True)
class WireMessage:
    """A decoded text message: its header and the data container."""

    header: WireHeader
    data: Container


# =============================================================================
# Escaping and type names
# =============================================================================


def escape(text: str) -> str:
    """Backslash-escape the seven characters that delimit wire fields."""
    return _ESCAPE_RE.sub(r"\\\1", text)


def unescape(text: str) -> str:
    """Reverse ``escape`` in a single left-to-right pass."""
    return _UNESCAPE_RE.sub(r"\1", text)


def type_name_for(tag: TypeTag) -> str:
    return TYPE_NAMES[TypeTag(tag)]


def tag_for_type_name(type_name: str) -> TypeTag:
    try:
        return TYPE_NAME_TO_TAG[type_name]
    except KeyError:
        raise DecodeError.unknown_type_name(type_name) from None


def is_wire_format(text: str) -> bool:
    """Cheap sniff test: does ``text`` look like a wire message?"""
    return "@header" in text and "@data" in text


# =============================================================================
# Serialization
# =============================================================================


def format_float(number: float) -> str:
    """Shortest round-trip decimal, in the notation the other implementations print.

    Integral values carry no ``.0``; magnitudes in [1e-7, 1e21) are written
    positionally and the rest in exponent form without zero padding
    (``1e-8``, ``1.5e+300``).
    """
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    if number == 0:
        return "0"
    magnitude = abs(number)
    if number.is_integer() and magnitude < 1e21:
        return str(int(number))
    text = repr(number)
    if 1e-7 <= magnitude < 1e21:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{exponent.lstrip('+-').lstrip('0') or '0'}"


def _render_payload(value: Value) -> str:
    match value:
        case NullValue():
            return ""
        case BoolValue():
            return "true" if value.value else "false"
        case (
            ShortValue() | UShortValue() | IntValue() | UIntValue()
            | LongValue() | ULongValue() | LLongValue() | ULLongValue()
        ):
            return str(value.value)
        case FloatValue() | DoubleValue():
            return format_float(value.value)
        case StringValue():
            return escape(value.value)
        case BytesValue():
            return value.value.hex()
        case Container():
            return f"@{escape(value.name)}{{{{{serialize_container_data(value)}}}}}"
        case ArrayValue():
            return "".join(_render_record(element, name="") for element in value)
        case _:
            raise SerializationError(f"Unsupported value type: {type(value).__name__}")


def _render_record(value: Value, name: str | None = None) -> str:
    record_name = value.name if name is None else name
    return f"[{escape(record_name)},{type_name_for(value.type_tag)},{_render_payload(value)}];"


def serialize_container_data(container: Container) -> str:
    """Render a container's records without the ``@data`` wrapper."""
    return "".join(_render_record(value) for value in container)


def serialize_wire(container: Container, header: WireHeader | None = None) -> str:
    """Serialize ``container`` as a complete text message.

    Example:
        >>> data = Container("data", [StringValue("name", "Alice")])
        >>> serialize_wire(data)
        '@header{{[5,data_container];[6,1.0];}};@data{{[name,string_value,Alice];}};'
    """
    header = header if header is not None else WireHeader()
    fields = "".join(f"[{int(field_id)},{escape(text)}];" for field_id, text in header.to_fields())
    return f"@header{{{{{fields}}}}};@data{{{{{serialize_container_data(container)}}}}};"


# =============================================================================
# Tokenizing
# =============================================================================


class _Scanner:
    """Single-pass cursor over wire text.

    Escape pairs are copied through unchanged; unescaping happens once a
    field is complete.
    """

    __slots__ = ("text", "pos", "end")

    def __init__(self, text: str, pos: int = 0, end: int | None = None) -> None:
        self.text = text
        self.pos = pos
        self.end = len(text) if end is None else end

    def skip_whitespace(self) -> None:
        while self.pos < self.end and self.text[self.pos].isspace():
            self.pos += 1

    def at_end(self) -> bool:
        return self.pos >= self.end

    def startswith(self, literal: str) -> bool:
        return self.text.startswith(literal, self.pos, self.end)

    def expect(self, literal: str, code: ErrorCode) -> None:
        """Step past ``literal``, allowing whitespace before it."""
        self.skip_whitespace()
        if not self.startswith(literal):
            raise DecodeError.malformed(code, f"expected {literal!r}", self.pos)
        self.pos += len(literal)

    def read_field(self, code: ErrorCode) -> str:
        """Read up to the next unescaped comma and step past it."""
        text, start = self.text, self.pos
        pos = start
        while pos < self.end:
            char = text[pos]
            if char == "\\" and pos + 1 < self.end:
                pos += 2
            elif char == ",":
                self.pos = pos + 1
                return text[start:pos]
            else:
                pos += 1
        raise DecodeError.malformed(code, "unterminated field, expected ','", start)

    def read_payload(self, code: ErrorCode) -> str:
        """Read up to the unescaped ``];`` that closes the current record.

        ``{{``/``}}`` and ``[``/``]`` inside the payload are balanced so
        nested records do not end the outer one.
        """
        text, start = self.text, self.pos
        pos = start
        braces = brackets = 0
        while pos < self.end:
            char = text[pos]
            if char == "\\" and pos + 1 < self.end:
                pos += 2
            elif text.startswith("{{", pos, self.end):
                braces += 1
                pos += 2
            elif text.startswith("}}", pos, self.end):
                braces -= 1
                pos += 2
            elif char == "[":
                brackets += 1
                pos += 1
            elif char == "]":
                if brackets > 0:
                    brackets -= 1
                elif braces == 0 and text.startswith(";", pos + 1, self.end):
                    self.pos = pos + 2
                    return text[start:pos]
                pos += 1
            else:
                pos += 1
        raise DecodeError.malformed(code, "unterminated record, expected '];'", start)

    def records(self, code: ErrorCode, closer: str | None = None) -> Iterator[tuple[str, str, str]]:
        """Yield raw ``(name, type_name, payload)`` triples.

        Stops at ``closer`` (consuming it) or, when ``closer`` is None, at
        the end of the text.
        """
        while True:
            self.skip_whitespace()
            if closer is not None and self.startswith(closer):
                self.pos += len(closer)
                return
            if self.at_end():
                if closer is None:
                    return
                raise DecodeError.malformed(code, f"missing closing {closer!r}", self.pos)
            if self.text[self.pos] != "[":
                raise DecodeError.malformed(code, "expected '['", self.pos)
            self.pos += 1
            name = self.read_field(code)
            type_name = self.read_field(code)
            yield name, type_name, self.read_payload(code)


# =============================================================================
# Deserialization
# =============================================================================


class WireParser:
    """Decodes text messages under a fixed set of safety limits."""

    __slots__ = ("limits",)

    def __init__(self, limits: SafetyLimits = DEFAULT_LIMITS) -> None:
        self.limits = limits

    def parse(self, text: str) -> WireMessage:
        if len(text) > self.limits.max_buffer_size:
            raise DecodeError.input_too_large(len(text), self.limits.max_buffer_size)

        header_scanner = self._open_section(text, "header", 0)
        header = self._parse_header(header_scanner)
        header_scanner.expect(";", ErrorCode.MALFORMED_HEADER)
        data_scanner = self._open_section(text, "data", header_scanner.pos)

        container = Container(header.message_type)
        for record in data_scanner.records(ErrorCode.MALFORMED_RECORD, closer="}}"):
            container.add(self._parse_record(*record, depth=1))
        data_scanner.expect(";", ErrorCode.MALFORMED_RECORD)
        data_scanner.skip_whitespace()
        if not data_scanner.at_end():
            raise DecodeError.malformed(
                ErrorCode.MALFORMED_RECORD, "unexpected text after @data section", data_scanner.pos
            )
        return WireMessage(header, container)

    # ---------- Sections ----------

    def _open_section(self, text: str, section: str, start: int) -> _Scanner:
        """Position a scanner just inside ``@<section>{{``."""
        marker = f"@{section}"
        found = text.find(marker, start)
        if found < 0:
            raise DecodeError.missing_section(section)
        opener = _SECTION_RE.match(text, found + len(marker))
        if opener is None:
            code = ErrorCode.MALFORMED_HEADER if section == "header" else ErrorCode.MALFORMED_RECORD
            raise DecodeError.malformed(code, f"expected '{{{{' after {marker}", found)
        return _Scanner(text, opener.end())

    def _parse_header(self, scanner: _Scanner) -> WireHeader:
        values: dict[HeaderFieldId, str] = {}
        while True:
            scanner.skip_whitespace()
            if scanner.startswith("}}"):
                scanner.pos += 2
                break
            if scanner.at_end() or scanner.text[scanner.pos] != "[":
                raise DecodeError.malformed(
                    ErrorCode.MALFORMED_HEADER, "expected '[' or '}}'", scanner.pos
                )
            scanner.pos += 1
            field_id = scanner.read_field(ErrorCode.MALFORMED_HEADER).strip()
            field_text = unescape(scanner.read_payload(ErrorCode.MALFORMED_HEADER))
            if not field_id.isdigit():
                raise DecodeError.malformed(
                    ErrorCode.MALFORMED_HEADER, f"field id {field_id!r} is not numeric"
                )
            try:
                values[HeaderFieldId(int(field_id))] = field_text
            except ValueError:
                logger.debug("Ignoring unknown header field %s", field_id)

        return WireHeader(
            target_id=values.get(HeaderFieldId.TARGET_ID),
            target_sub_id=values.get(HeaderFieldId.TARGET_SUB_ID),
            source_id=values.get(HeaderFieldId.SOURCE_ID),
            source_sub_id=values.get(HeaderFieldId.SOURCE_SUB_ID),
            message_type=values.get(HeaderFieldId.MESSAGE_TYPE, DEFAULT_MESSAGE_TYPE),
            version=values.get(HeaderFieldId.MESSAGE_VERSION, DEFAULT_VERSION),
        )

    # ---------- Records ----------

    def _parse_record(self, raw_name: str, raw_type: str, payload: str, depth: int) -> Value:
        limits = self.limits
        if depth > limits.max_nesting_depth:
            raise DecodeError.nesting_too_deep(depth, limits.max_nesting_depth)

        tag = tag_for_type_name(raw_type.strip())
        name = self._checked_name(unescape(raw_name))

        match tag:
            case TypeTag.CONTAINER:
                wrapper = _NESTED_CONTAINER_RE.fullmatch(payload)
                if wrapper is None:
                    raise DecodeError.malformed(
                        ErrorCode.MALFORMED_CONTAINER,
                        f"nested container for '{name}' must be @name{{{{...}}}}",
                    )
                container = Container(self._checked_name(unescape(wrapper.group(1))))
                for record in _Scanner(payload, wrapper.start(2), wrapper.end(2)).records(
                    ErrorCode.MALFORMED_RECORD
                ):
                    container.add(self._parse_record(*record, depth=depth + 1))
                return container
            case TypeTag.ARRAY:
                elements = [
                    self._parse_record(*record, depth=depth + 1)
                    for record in _Scanner(payload).records(ErrorCode.MALFORMED_RECORD)
                ]
                return ArrayValue(name, elements)
            case _:
                return self._parse_scalar(tag, name, payload)

    def _parse_scalar(self, tag: TypeTag, name: str, payload: str) -> Value:
        type_name = TYPE_NAMES[tag]
        native: object
        match tag:
            case TypeTag.NULL:
                native = None
            case TypeTag.BOOL:
                if payload not in ("true", "1", "false", "0"):
                    raise DecodeError.invalid_value(name, type_name, payload)
                native = payload in ("true", "1")
            case TypeTag.FLOAT | TypeTag.DOUBLE:
                native = self._parse_float(name, type_name, payload.strip())
            case TypeTag.STRING:
                text = unescape(payload)
                self._check_size(len(text.encode("utf-8")))
                native = text
            case TypeTag.BYTES:
                if _HEX_RE.fullmatch(payload) is None:
                    raise DecodeError.invalid_value(name, type_name, payload)
                self._check_size(len(payload) // 2)
                native = bytes.fromhex(payload)
            case _:
                text = payload.strip()
                if _INTEGER_RE.fullmatch(text) is None:
                    raise DecodeError.invalid_value(name, type_name, payload)
                try:
                    native = int(text)
                except ValueError:
                    raise DecodeError.invalid_value(name, type_name, payload) from None

        try:
            return make_scalar(tag, name, native)
        except InvalidTypeConversionError as e:
            raise DecodeError.invalid_value(name, type_name, payload) from e

    @staticmethod
    def _parse_float(name: str, type_name: str, text: str) -> float:
        if text in _FLOAT_WORDS:
            return _FLOAT_WORDS[text]
        try:
            number = float(text)
        except ValueError:
            raise DecodeError.invalid_value(name, type_name, text) from None
        # float() also accepts "inf"/"nan"; only the spelled-out words are wire syntax
        if not math.isfinite(number):
            raise DecodeError.invalid_value(name, type_name, text)
        return number

    def _checked_name(self, name: str) -> str:
        length = len(name.encode("utf-8"))
        if length > self.limits.max_name_length:
            raise DecodeError.name_too_long(length, self.limits.max_name_length)
        return name

    def _check_size(self, size: int) -> None:
        if size > self.limits.max_value_size:
            raise DecodeError.value_too_large(size, self.limits.max_value_size)


def deserialize_wire(text: str, *, limits: SafetyLimits = DEFAULT_LIMITS) -> WireMessage:
    """Decode a complete text message into its header and data container.

    Raises:
        DecodeError: On any malformed section, record, or value, or when a
            safety limit is exceeded.
    """
    try:
        message = WireParser(limits).parse(text)
    except DecodeError as e:
        logger.debug(
            "Rejected %d-char wire message: [%s] %s (position %s)",
            len(text), e.code.value, e, e.data.get("position"),
        )
        raise
    logger.debug(
        "Decoded %s message with %d values (%d chars)",
        message.header.message_type, len(message.data), len(text),
    )
    return message
