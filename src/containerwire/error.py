"""Error types for containerwire.

Every exception raised by the package derives from ``ContainerError`` and
carries a machine-readable ``code`` plus a ``data`` dict with the context
needed to act on it (field name, offending value, expected limit). The
concrete classes also derive from the closest builtin so callers can catch
``ValueError``/``KeyError``/``TypeError`` where that reads better.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Construction
    INVALID_CONVERSION = "invalid_conversion"

    # Lookup
    VALUE_NOT_FOUND = "value_not_found"
    TYPE_MISMATCH = "type_mismatch"

    # Encode
    SERIALIZATION = "serialization"

    # Binary decode
    BUFFER_TOO_SHORT = "buffer_too_short"
    NAME_TOO_LONG = "name_too_long"
    VALUE_TOO_LARGE = "value_too_large"
    BUFFER_UNDERFLOW = "buffer_underflow"
    NESTING_TOO_DEEP = "nesting_too_deep"
    ZERO_PROGRESS = "zero_progress"
    UNKNOWN_TYPE_TAG = "unknown_type_tag"
    TYPE_TAG_MISMATCH = "type_tag_mismatch"
    INVALID_PAYLOAD = "invalid_payload"
    INVALID_UTF8 = "invalid_utf8"
    INPUT_TOO_LARGE = "input_too_large"
    TRAILING_BYTES = "trailing_bytes"

    # Text decode
    MISSING_HEADER = "missing_header"
    MISSING_DATA = "missing_data"
    MALFORMED_HEADER = "malformed_header"
    MALFORMED_RECORD = "malformed_record"
    MALFORMED_CONTAINER = "malformed_container"
    UNKNOWN_TYPE_NAME = "unknown_type_name"
    INVALID_VALUE = "invalid_value"


class ContainerError(Exception):
    """Base class for all containerwire errors."""

    default_code = ErrorCode.SERIALIZATION

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code
        self.data = data if data is not None else {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value}: {self.message})"


class InvalidTypeConversionError(ContainerError, ValueError):
    """A native value cannot be stored in the requested numeric type."""

    default_code = ErrorCode.INVALID_CONVERSION

    def __init__(
        self,
        value: Any,
        type_name: str,
        minimum: int | None = None,
        maximum: int | None = None,
        reason: str | None = None,
    ) -> None:
        if reason is None:
            reason = f"range [{minimum}, {maximum}]"
        super().__init__(
            f"Cannot convert {value!r} to {type_name} ({reason})",
            data={
                "value": value,
                "type_name": type_name,
                "minimum": minimum,
                "maximum": maximum,
            },
        )
        self.value = value
        self.type_name = type_name
        self.minimum = minimum
        self.maximum = maximum


class ValueNotFoundError(ContainerError, KeyError):
    """A container has no value under the requested name."""

    default_code = ErrorCode.VALUE_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Value '{name}' not found in container", data={"name": name}
        )
        self.name = name


class TypeMismatchError(ContainerError, TypeError):
    """A value was found but carries a different type tag than requested."""

    default_code = ErrorCode.TYPE_MISMATCH

    def __init__(self, name: str, expected: Any, actual: Any) -> None:
        super().__init__(
            f"Value '{name}' is not of expected type {expected.name}, "
            f"got {actual.name}",
            data={"name": name, "expected": expected, "actual": actual},
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class SerializationError(ContainerError, ValueError):
    """A value tree cannot be written in the requested wire format."""

    default_code = ErrorCode.SERIALIZATION


class DecodeError(ContainerError, ValueError):
    """Input is malformed, truncated, or violates a safety limit.

    Decoding is all-or-nothing: when this is raised, nothing of the
    in-progress value tree is returned.
    """

    default_code = ErrorCode.INVALID_PAYLOAD

    # ---------- Binary record failures ----------

    @classmethod
    def buffer_too_short(cls, what: str, offset: int, needed: int, available: int) -> DecodeError:
        return cls(
            f"Buffer too short for {what} at offset {offset}: "
            f"need {needed} bytes, {available} available",
            ErrorCode.BUFFER_TOO_SHORT,
            {"offset": offset, "needed": needed, "available": available},
        )

    @classmethod
    def name_too_long(cls, length: int, limit: int) -> DecodeError:
        return cls(
            f"Name length {length} exceeds maximum {limit}",
            ErrorCode.NAME_TOO_LONG,
            {"length": length, "limit": limit},
        )

    @classmethod
    def value_too_large(cls, size: int, limit: int) -> DecodeError:
        return cls(
            f"Value size {size} exceeds maximum {limit}",
            ErrorCode.VALUE_TOO_LARGE,
            {"size": size, "limit": limit},
        )

    @classmethod
    def buffer_underflow(cls, offset: int, needed: int, available: int) -> DecodeError:
        return cls(
            f"Buffer underflow at offset {offset}: need {needed} bytes "
            f"but only {available} available",
            ErrorCode.BUFFER_UNDERFLOW,
            {"offset": offset, "needed": needed, "available": available},
        )

    @classmethod
    def nesting_too_deep(cls, depth: int, limit: int) -> DecodeError:
        return cls(
            f"Nesting depth {depth} exceeds maximum {limit}",
            ErrorCode.NESTING_TOO_DEEP,
            {"depth": depth, "limit": limit},
        )

    @classmethod
    def zero_progress(cls, offset: int, consumed: int, minimum: int) -> DecodeError:
        return cls(
            f"Invalid record at offset {offset}: read {consumed} bytes "
            f"(minimum {minimum})",
            ErrorCode.ZERO_PROGRESS,
            {"offset": offset, "consumed": consumed, "minimum": minimum},
        )

    @classmethod
    def unknown_type_tag(cls, tag: int, offset: int) -> DecodeError:
        return cls(
            f"Unknown value type {tag} at offset {offset}",
            ErrorCode.UNKNOWN_TYPE_TAG,
            {"tag": tag, "offset": offset},
        )

    @classmethod
    def type_tag_mismatch(cls, expected: Any, actual: int, offset: int) -> DecodeError:
        return cls(
            f"Expected {expected.name} type ({int(expected)}), got {actual} "
            f"at offset {offset}",
            ErrorCode.TYPE_TAG_MISMATCH,
            {"expected": expected, "actual": actual, "offset": offset},
        )

    @classmethod
    def invalid_payload(cls, name: str, reason: str) -> DecodeError:
        return cls(
            f"Invalid payload for '{name}': {reason}",
            ErrorCode.INVALID_PAYLOAD,
            {"name": name},
        )

    @classmethod
    def invalid_utf8(cls, what: str, offset: int) -> DecodeError:
        return cls(
            f"Invalid UTF-8 in {what} at offset {offset}",
            ErrorCode.INVALID_UTF8,
            {"offset": offset},
        )

    @classmethod
    def input_too_large(cls, size: int, limit: int) -> DecodeError:
        return cls(
            f"Input size {size} exceeds maximum {limit}",
            ErrorCode.INPUT_TOO_LARGE,
            {"size": size, "limit": limit},
        )

    @classmethod
    def trailing_bytes(cls, consumed: int, total: int) -> DecodeError:
        return cls(
            f"{total - consumed} trailing bytes after root record",
            ErrorCode.TRAILING_BYTES,
            {"consumed": consumed, "total": total},
        )

    # ---------- Text wire failures ----------

    @classmethod
    def missing_section(cls, section: str) -> DecodeError:
        code = ErrorCode.MISSING_HEADER if section == "header" else ErrorCode.MISSING_DATA
        return cls(
            f"Invalid wire format: missing @{section} section",
            code,
            {"section": section},
        )

    @classmethod
    def malformed(cls, code: ErrorCode, reason: str, position: int | None = None) -> DecodeError:
        where = f" at position {position}" if position is not None else ""
        return cls(f"Malformed wire text{where}: {reason}", code, {"position": position})

    @classmethod
    def unknown_type_name(cls, type_name: str) -> DecodeError:
        return cls(
            f"Unknown type name: {type_name!r}",
            ErrorCode.UNKNOWN_TYPE_NAME,
            {"type_name": type_name},
        )

    @classmethod
    def invalid_value(cls, name: str, type_name: str, text: str) -> DecodeError:
        return cls(
            f"Invalid {type_name} data for '{name}': {text!r}",
            ErrorCode.INVALID_VALUE,
            {"name": name, "type_name": type_name, "text": text},
        )
