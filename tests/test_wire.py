"""Tests for the text wire format.

These tests verify:
1. Escaping of the seven delimiter characters
2. Header emission rules and parsing
3. Payload rendering per type (floats, bytes, nested composites)
4. Round-trip through serialize_wire/deserialize_wire
5. Decode failures and safety limits, including nesting depth
"""

import logging
import math

import pytest

from conftest import BOUNDS, build_chain
from containerwire.config import SafetyLimits
from containerwire.error import DecodeError, ErrorCode, InvalidTypeConversionError
from containerwire.types import TypeTag
from containerwire.values import (
    ArrayValue,
    BoolValue,
    BytesValue,
    Container,
    DoubleValue,
    FloatValue,
    IntValue,
    LLongValue,
    NullValue,
    StringValue,
    ULLongValue,
)
from containerwire.wire import (
    HeaderFieldId,
    WireHeader,
    deserialize_wire,
    escape,
    format_float,
    is_wire_format,
    serialize_container_data,
    serialize_wire,
    tag_for_type_name,
    type_name_for,
    unescape,
)

EMPTY_HEADER = "@header{{[5,data_container];[6,1.0];}};"


def message(records: str, header: str = EMPTY_HEADER) -> str:
    return f"{header}@data{{{{{records}}}}};"


class TestEscaping:
    """Delimiter escaping."""

    def test_escape_all_delimiters(self) -> None:
        assert escape("\\[];,{}") == "\\\\\\[\\]\\;\\,\\{\\}"

    def test_plain_text_unchanged(self) -> None:
        assert escape("hello world @ 1.0") == "hello world @ 1.0"

    @pytest.mark.parametrize("text", ["a,b;c", "\\,", "\\\\;", "{{}}", "[x]", "", "trailing\\"])
    def test_unescape_reverses_escape(self, text: str) -> None:
        assert unescape(escape(text)) == text

    def test_unescape_is_single_pass(self) -> None:
        """An escaped backslash followed by a comma stays a backslash and comma."""
        assert unescape("\\\\,") == "\\,"


class TestTypeNames:
    def test_lookup_both_ways(self) -> None:
        assert type_name_for(TypeTag.INT) == "int_value"
        assert tag_for_type_name("bytes_value") is TypeTag.BYTES
        for tag in TypeTag:
            assert tag_for_type_name(type_name_for(tag)) is tag

    def test_unknown_type_name(self) -> None:
        with pytest.raises(DecodeError, match="Unknown type name") as exc_info:
            tag_for_type_name("huge_value")
        assert exc_info.value.code is ErrorCode.UNKNOWN_TYPE_NAME


class TestSerialize:
    """Text rendering."""

    def test_default_header(self) -> None:
        data = Container("data", [StringValue("name", "Alice"), IntValue("age", 30)])
        assert serialize_wire(data) == (
            "@header{{[5,data_container];[6,1.0];}};"
            "@data{{[name,string_value,Alice];[age,int_value,30];}};"
        )

    def test_routing_fields_for_non_data_messages(self) -> None:
        header = WireHeader(target_id="t", source_id="s", message_type="request")
        assert serialize_wire(Container(), header) == (
            "@header{{[1,t];[3,s];[5,request];[6,1.0];}};@data{{}};"
        )

    def test_routing_fields_omitted_for_data_container(self) -> None:
        header = WireHeader(target_id="t", source_sub_id="x")
        assert serialize_wire(Container(), header) == message("")

    def test_header_text_is_escaped(self) -> None:
        header = WireHeader(message_type="a;b", version="2,0")
        assert serialize_wire(Container(), header).startswith(
            "@header{{[5,a\\;b];[6,2\\,0];}};"
        )

    def test_scalar_payloads(self) -> None:
        data = Container(
            "d",
            [
                NullValue("n"),
                BoolValue("t", True),
                BoolValue("f", False),
                LLongValue("ll", -(2**63)),
                ULLongValue("ull", 2**64 - 1),
                BytesValue("b", b"\x00\xab\xff"),
            ],
        )
        assert serialize_container_data(data) == (
            "[n,null_value,];"
            "[t,bool_value,true];"
            "[f,bool_value,false];"
            "[ll,llong_value,-9223372036854775808];"
            "[ull,ullong_value,18446744073709551615];"
            "[b,bytes_value,00abff];"
        )

    def test_string_and_name_escaped(self) -> None:
        data = Container("d", [StringValue("a,b", "x]y")])
        assert serialize_container_data(data) == "[a\\,b,string_value,x\\]y];"

    def test_nested_container(self) -> None:
        data = Container("d", [Container("in{ner", [IntValue("x", 1)])])
        assert serialize_container_data(data) == (
            "[in\\{ner,container_value,@in\\{ner{{[x,int_value,1];}}];"
        )

    def test_array_elements_have_empty_names(self) -> None:
        data = Container("d", [ArrayValue("arr", [IntValue("ignored", 1), StringValue("", "s")])])
        assert serialize_container_data(data) == (
            "[arr,array_value,[,int_value,1];[,string_value,s];];"
        )

    def test_float_payload(self) -> None:
        data = Container("d", [DoubleValue("x", 2.0), FloatValue("y", 0.25)])
        assert serialize_container_data(data) == "[x,double_value,2];[y,float_value,0.25];"


class TestFormatFloat:
    @pytest.mark.parametrize(
        ("number", "text"),
        [
            (1.0, "1"),
            (-2.5, "-2.5"),
            (0.0, "0"),
            (-0.0, "0"),
            (0.1, "0.1"),
            (1e-5, "0.00001"),
            (1e-8, "1e-8"),
            (1.5e300, "1.5e+300"),
            (1e21, "1e+21"),
            (1e20, "100000000000000000000"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
        ],
    )
    def test_notation(self, number: float, text: str) -> None:
        assert format_float(number) == text

    @pytest.mark.parametrize("number", [0.1, 1 / 3, 1e-8, 6.02214076e23, 5e-324, 2.5])
    def test_round_trips(self, number: float) -> None:
        assert float(format_float(number)) == number


class TestDeserialize:
    """Parsing complete messages."""

    def test_scenario_escaped_string(self) -> None:
        """Commas and semicolons survive the trip unescaped."""
        original = Container("data", [StringValue("msg", "a,b;c")])
        text = serialize_wire(original)
        assert "a\\,b\\;c" in text
        decoded = deserialize_wire(text)
        assert decoded.data.get("msg").value == "a,b;c"

    def test_every_variant(self, every_variant: Container) -> None:
        decoded = deserialize_wire(serialize_wire(every_variant))
        assert list(decoded.data) == list(every_variant)

    def test_data_container_named_after_message_type(self) -> None:
        header = WireHeader(message_type="telemetry")
        decoded = deserialize_wire(serialize_wire(Container("x"), header))
        assert decoded.data.name == "telemetry"
        assert decoded.header.message_type == "telemetry"

    def test_header_round_trip(self) -> None:
        header = WireHeader(
            target_id="server;1",
            target_sub_id="a",
            source_id="client",
            source_sub_id="b",
            message_type="request",
            version="2.0",
        )
        decoded = deserialize_wire(serialize_wire(Container(), header))
        assert decoded.header == header

    def test_header_defaults(self) -> None:
        decoded = deserialize_wire("@header{{}};@data{{}};")
        assert decoded.header == WireHeader()
        assert decoded.data.size() == 0

    def test_unknown_header_field_ignored(self) -> None:
        decoded = deserialize_wire(message("", "@header{{[9,zzz];[5,ping];}};"))
        assert decoded.header.message_type == "ping"

    def test_whitespace_and_equals_tolerated(self) -> None:
        text = "@header = {{ [5,data_container]; }};\n@data={{ [a,int_value,1];\n }};"
        assert deserialize_wire(text).data.get("a") == IntValue("a", 1)

    def test_nested_container_takes_wrapper_name(self) -> None:
        decoded = deserialize_wire(message("[rec,container_value,@inner{{[x,int_value,1];}}];"))
        nested = decoded.data.get("inner")
        assert isinstance(nested, Container)
        assert nested.get("x").value == 1

    def test_nested_array_and_container(self) -> None:
        tree = Container(
            "data",
            [
                ArrayValue(
                    "rows",
                    [
                        Container("row", [StringValue("k", "v;]"), ArrayValue("", [])]),
                        ArrayValue("", [IntValue("", 1), IntValue("", 2)]),
                    ],
                ),
            ],
        )
        decoded = deserialize_wire(serialize_wire(tree))
        assert list(decoded.data) == list(tree)

    @pytest.mark.parametrize(("text", "expected"), [("true", True), ("1", True), ("false", False), ("0", False)])
    def test_bool_spellings(self, text: str, expected: bool) -> None:
        decoded = deserialize_wire(message(f"[b,bool_value,{text}];"))
        assert decoded.data.get("b").value is expected

    @pytest.mark.parametrize(("cls", "low", "high"), BOUNDS)
    def test_integer_bounds_round_trip(self, cls: type, low: int, high: int) -> None:
        data = Container("d", [cls("low", low), cls("high", high)])
        decoded = deserialize_wire(serialize_wire(data)).data
        assert decoded.get("low") == cls("low", low)
        assert decoded.get("high") == cls("high", high)

    def test_float_text_matches_binary(self) -> None:
        value = FloatValue("f", 0.1)
        decoded = deserialize_wire(serialize_wire(Container("d", [value]))).data.get("f")
        assert decoded == value
        assert decoded.serialize() == value.serialize()

    def test_non_finite_floats(self) -> None:
        decoded = deserialize_wire(
            message("[a,double_value,Infinity];[b,double_value,-Infinity];[c,float_value,NaN];")
        )
        assert decoded.data.get("a").value == math.inf
        assert decoded.data.get("b").value == -math.inf
        assert math.isnan(decoded.data.get("c").value)

    def test_is_wire_format(self) -> None:
        assert is_wire_format(message(""))
        assert not is_wire_format("@data{{}};")
        assert not is_wire_format("plain text")


class TestDeserializeErrors:
    """Malformed messages."""

    def test_missing_header(self) -> None:
        with pytest.raises(DecodeError, match="missing @header") as exc_info:
            deserialize_wire("@data{{}};")
        assert exc_info.value.code is ErrorCode.MISSING_HEADER

    def test_missing_data(self) -> None:
        with pytest.raises(DecodeError, match="missing @data") as exc_info:
            deserialize_wire(EMPTY_HEADER)
        assert exc_info.value.code is ErrorCode.MISSING_DATA

    def test_non_numeric_header_id(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("", "@header{{[x,1];}};"))
        assert exc_info.value.code is ErrorCode.MALFORMED_HEADER

    def test_unterminated_header(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire("@header{{[5,data_container")
        assert exc_info.value.code is ErrorCode.MALFORMED_HEADER

    def test_unknown_type_name(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[a,huge_value,1];"))
        assert exc_info.value.code is ErrorCode.UNKNOWN_TYPE_NAME

    def test_unterminated_record(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(EMPTY_HEADER + "@data{{[a,int_value,1")
        assert exc_info.value.code is ErrorCode.MALFORMED_RECORD

    def test_garbage_between_records(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[a,int_value,1];oops[b,int_value,2];"))
        assert exc_info.value.code is ErrorCode.MALFORMED_RECORD

    def test_header_requires_semicolon(self) -> None:
        with pytest.raises(DecodeError, match="expected ';'") as exc_info:
            deserialize_wire("@header{{}}@data{{[a,int_value,1];}};")
        assert exc_info.value.code is ErrorCode.MALFORMED_HEADER

    def test_data_requires_semicolon(self) -> None:
        with pytest.raises(DecodeError, match="expected ';'") as exc_info:
            deserialize_wire(EMPTY_HEADER + "@data{{[a,int_value,1];}}")
        assert exc_info.value.code is ErrorCode.MALFORMED_RECORD

    @pytest.mark.parametrize(
        "text",
        [
            "@header{{}}@data{{[a,int_value,1];}}GARBAGE",
            "@header{{}};@data{{[a,int_value,1];}}GARBAGE",
            "@header{{}};@data{{[a,int_value,1];}};GARBAGE",
            "@header{{}};@data{{}};@data{{[a,int_value,1];}};",
        ],
    )
    def test_text_after_data_section(self, text: str) -> None:
        with pytest.raises(DecodeError):
            deserialize_wire(text)

    def test_trailing_whitespace_accepted(self) -> None:
        decoded = deserialize_wire(message("[a,int_value,1];") + "\n  \n")
        assert decoded.data.get("a") == IntValue("a", 1)

    def test_unwrapped_nested_container(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[c,container_value,notwrapped];"))
        assert exc_info.value.code is ErrorCode.MALFORMED_CONTAINER

    @pytest.mark.parametrize(
        "record",
        [
            "[i,int_value,abc];",
            "[i,int_value,1.5];",
            "[i,int_value,];",
            "[b,bool_value,yes];",
            "[d,double_value,inf];",
            "[d,double_value,one];",
            "[x,bytes_value,abc];",
            "[x,bytes_value,zz];",
            "[f,float_value,1e39];",
            "[i,int_value,\u0663];",
            "[i,int_value,\uff11];",
        ],
    )
    def test_invalid_payload_text(self, record: str) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message(record))
        assert exc_info.value.code is ErrorCode.INVALID_VALUE

    def test_out_of_range_chains_conversion_error(self) -> None:
        with pytest.raises(DecodeError, match="Invalid short_value data") as exc_info:
            deserialize_wire(message("[s,short_value,40000];"))
        assert exc_info.value.code is ErrorCode.INVALID_VALUE
        assert isinstance(exc_info.value.__cause__, InvalidTypeConversionError)

    def test_rejection_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger="containerwire.wire"):
            with pytest.raises(DecodeError):
                deserialize_wire("nothing here")
        assert "missing_header" in caplog.text


class TestLimits:
    """SafetyLimits applied to text input."""

    def test_input_too_large(self, tight_limits: SafetyLimits) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[s,string_value," + "x" * 300 + "];"), limits=tight_limits)
        assert exc_info.value.code is ErrorCode.INPUT_TOO_LARGE

    def test_name_too_long(self, tight_limits: SafetyLimits) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message(f"[{'n' * 17},null_value,];"), limits=tight_limits)
        assert exc_info.value.code is ErrorCode.NAME_TOO_LONG

    def test_string_too_large(self, tight_limits: SafetyLimits) -> None:
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[s,string_value," + "x" * 129 + "];"), limits=tight_limits)
        assert exc_info.value.code is ErrorCode.VALUE_TOO_LARGE

    def test_bytes_too_large(self) -> None:
        limits = SafetyLimits(max_value_size=128, max_buffer_size=1024)
        with pytest.raises(DecodeError) as exc_info:
            deserialize_wire(message("[b,bytes_value," + "ab" * 129 + "];"), limits=limits)
        assert exc_info.value.code is ErrorCode.VALUE_TOO_LARGE

    def test_chain_at_limit_decodes(self) -> None:
        limits = SafetyLimits(max_nesting_depth=4)
        chain = build_chain(4)
        decoded = deserialize_wire(serialize_wire(chain), limits=limits)
        assert list(decoded.data) == list(chain)

    def test_chain_past_limit_rejected(self) -> None:
        limits = SafetyLimits(max_nesting_depth=4)
        with pytest.raises(DecodeError, match="Nesting depth 5 exceeds maximum 4") as exc_info:
            deserialize_wire(serialize_wire(build_chain(5)), limits=limits)
        assert exc_info.value.code is ErrorCode.NESTING_TOO_DEEP

    def test_depth_matches_binary_codec(self) -> None:
        """A tree passes or fails the depth check identically in both formats."""
        from containerwire.record_codec import deserialize

        limits = SafetyLimits(max_nesting_depth=3)
        for levels, accepted in [(3, True), (4, False)]:
            chain = build_chain(levels)
            outcomes = []
            for decode in (
                lambda: deserialize(chain.serialize(), limits=limits),
                lambda: deserialize_wire(serialize_wire(chain), limits=limits),
            ):
                try:
                    decode()
                    outcomes.append(True)
                except DecodeError as e:
                    assert e.code is ErrorCode.NESTING_TOO_DEEP
                    outcomes.append(False)
            assert outcomes == [accepted, accepted]


def test_header_field_ids() -> None:
    assert [int(f) for f in HeaderFieldId] == [1, 2, 3, 4, 5, 6]
