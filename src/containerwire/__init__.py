"""containerwire - typed value containers and their wire formats.

This package provides the sixteen-variant typed value model, a bounded
binary record codec, and the escaped text wire format shared with the
C++, .NET, Go and Rust implementations.
"""

from containerwire.config import DEFAULT_LIMITS, SafetyLimits
from containerwire.error import (
    ContainerError,
    DecodeError,
    ErrorCode,
    InvalidTypeConversionError,
    SerializationError,
    TypeMismatchError,
    ValueNotFoundError,
)
from containerwire.types import NumericRange, TypeTag
from containerwire.values import (
    ArrayValue,
    BoolValue,
    BytesValue,
    Container,
    DoubleValue,
    Err,
    FloatValue,
    IntValue,
    LLongValue,
    LongValue,
    NullValue,
    Ok,
    ShortValue,
    StringValue,
    UIntValue,
    ULLongValue,
    ULongValue,
    UShortValue,
    Value,
    clone_value,
    make_scalar,
    to_native,
)
from containerwire.record_codec import (
    RecordCodec,
    decode_array,
    decode_container,
    decode_value,
    deserialize,
    encode_value,
)
from containerwire.wire import (
    HeaderFieldId,
    WireHeader,
    WireMessage,
    WireParser,
    deserialize_wire,
    escape,
    is_wire_format,
    serialize_container_data,
    serialize_wire,
    tag_for_type_name,
    type_name_for,
    unescape,
)

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "SafetyLimits",
    "DEFAULT_LIMITS",
    # Errors
    "ContainerError",
    "DecodeError",
    "ErrorCode",
    "InvalidTypeConversionError",
    "SerializationError",
    "TypeMismatchError",
    "ValueNotFoundError",
    # Types
    "TypeTag",
    "NumericRange",
    # Values
    "Value",
    "NullValue",
    "BoolValue",
    "ShortValue",
    "UShortValue",
    "IntValue",
    "UIntValue",
    "LongValue",
    "ULongValue",
    "LLongValue",
    "ULLongValue",
    "FloatValue",
    "DoubleValue",
    "StringValue",
    "BytesValue",
    "Container",
    "ArrayValue",
    "Ok",
    "Err",
    "clone_value",
    "make_scalar",
    "to_native",
    # Binary records
    "RecordCodec",
    "encode_value",
    "decode_value",
    "decode_container",
    "decode_array",
    "deserialize",
    # Text wire format
    "HeaderFieldId",
    "WireHeader",
    "WireMessage",
    "WireParser",
    "serialize_wire",
    "deserialize_wire",
    "serialize_container_data",
    "is_wire_format",
    "escape",
    "unescape",
    "type_name_for",
    "tag_for_type_name",
]
