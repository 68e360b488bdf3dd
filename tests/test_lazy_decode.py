"""Tests for decoding into the lazy representation."""

import pytest

from lazymerge.codes import ErrorCode
from lazymerge.kernel.errors import MalformedInputError
from lazymerge.kernel.lazy import LazyMessage, RawSpan, decode
from lazymerge.kernel.options import CodecOptions
from lazymerge.kernel.wire import WIRE_I32, WIRE_LEN, WIRE_SGROUP, WIRE_VARINT, frame


def test_singular_scalars_are_decoded(catalog):
    data = (
        frame(1, WIRE_LEN, b"shop")
        + frame(7, WIRE_VARINT, b"\x96\x01")
        + frame(9, WIRE_VARINT, b"\x01")
        + frame(10, WIRE_VARINT, b"\x03")
    )
    message = decode(data, catalog)
    assert message.get_scalar("name") == "shop"
    assert message.get_scalar(7) == 150
    assert message.get_scalar("flag") is True
    assert message.get_scalar("delta") == -2
    assert message.spans == {}


def test_last_singular_scalar_wins(catalog):
    data = frame(1, WIRE_LEN, b"first") + frame(1, WIRE_LEN, b"second")
    assert decode(data, catalog).get_scalar("name") == "second"


def test_repeated_fields_kept_as_spans_in_wire_order(catalog):
    data = (
        frame(5, WIRE_LEN, b"a")
        + frame(2, WIRE_LEN, b"\x08\x01")
        + frame(5, WIRE_LEN, b"b")
        + frame(2, WIRE_LEN, b"\x08\x02")
    )
    message = decode(data, catalog)
    assert message.get_spans("tags") == (RawSpan(WIRE_LEN, b"a"), RawSpan(WIRE_LEN, b"b"))
    assert [span.tobytes() for span in message.get_spans("items")] == [b"\x08\x01", b"\x08\x02"]
    assert message.scalars == {}


def test_singular_message_kept_as_span(catalog):
    data = frame(6, WIRE_LEN, b"\x12\x01x") + frame(6, WIRE_LEN, b"\x1a\x01y")
    message = decode(data, catalog)
    assert message.span_count("header") == 2
    assert message.get_scalar("header") is None


def test_map_entries_kept_as_spans(catalog):
    entry = frame(1, WIRE_LEN, b"k") + frame(2, WIRE_LEN, b"\x08\x05")
    message = decode(frame(3, WIRE_LEN, entry) * 2, catalog)
    assert message.get_spans("pairs") == (RawSpan(WIRE_LEN, entry), RawSpan(WIRE_LEN, entry))


def test_packed_and_unpacked_occurrences_mix(catalog):
    data = frame(4, WIRE_LEN, b"\x01\x02") + frame(4, WIRE_VARINT, b"\x03")
    spans = decode(data, catalog).get_spans("counts")
    assert spans == (RawSpan(WIRE_LEN, b"\x01\x02"), RawSpan(WIRE_VARINT, b"\x03"))


def test_unknown_fields_preserved(catalog):
    data = (
        frame(99, WIRE_VARINT, b"\x07")
        + frame(1, WIRE_LEN, b"n")
        + frame(98, WIRE_SGROUP, b"\x08\x01")
        + frame(99, WIRE_I32, b"\x00\x00\x80\x3f")
    )
    message = decode(data, catalog)
    assert message.unknown_field_numbers() == (98, 99)
    assert message.get_spans(99) == (RawSpan(WIRE_VARINT, b"\x07"), RawSpan(WIRE_I32, b"\x00\x00\x80\x3f"))
    assert message.get_spans(98) == (RawSpan(WIRE_SGROUP, b"\x08\x01"),)
    assert message.field_numbers() == (1, 98, 99)


def test_empty_input(catalog):
    message = decode(b"", catalog)
    assert message.scalars == {}
    assert message.spans == {}
    assert message.span_count() == 0


def test_wire_type_mismatch_on_known_field(catalog):
    with pytest.raises(MalformedInputError) as exc_info:
        decode(frame(1, WIRE_LEN, b"ok") + frame(7, WIRE_LEN, b"x"), catalog)
    assert exc_info.value.code == ErrorCode.WIRE_TYPE_MISMATCH
    assert exc_info.value.offset == 4


def test_truncated_input_fails_whole_decode(catalog):
    data = frame(5, WIRE_LEN, b"a") + b"\x2a\x05ab"
    with pytest.raises(MalformedInputError) as exc_info:
        decode(data, catalog)
    assert exc_info.value.code == ErrorCode.TRUNCATED_PAYLOAD


def test_invalid_utf8_in_scalar_string(catalog):
    data = frame(9, WIRE_VARINT, b"\x01") + frame(1, WIRE_LEN, b"\xc3")
    with pytest.raises(MalformedInputError) as exc_info:
        decode(data, catalog)
    assert exc_info.value.code == ErrorCode.INVALID_UTF8
    assert exc_info.value.offset == 2


def test_invalid_utf8_allowed_when_disabled(catalog):
    options = CodecOptions(validate_utf8=False)
    message = decode(frame(1, WIRE_LEN, b"\xc3"), catalog, options)
    assert message.has_field("name")


def test_repeated_strings_are_not_validated(catalog):
    """Span payloads are never interpreted at decode time."""
    message = decode(frame(5, WIRE_LEN, b"\xff"), catalog)
    assert message.get_spans("tags") == (RawSpan(WIRE_LEN, b"\xff"),)


class TestOneof:
    """Tests for oneof handling while decoding."""

    def test_last_member_wins(self, catalog):
        data = frame(12, WIRE_LEN, b"text") + frame(13, WIRE_LEN, b"\x00\x01")
        message = decode(data, catalog)
        assert not message.has_field("text_body")
        assert message.get_scalar("blob_body") == b"\x00\x01"

    def test_message_member_replaces_scalar_member(self, catalog):
        data = frame(12, WIRE_LEN, b"text") + frame(14, WIRE_LEN, b"\x08\x01")
        message = decode(data, catalog)
        assert message.field_numbers() == (14,)

    def test_scalar_member_replaces_message_member(self, catalog):
        data = frame(14, WIRE_LEN, b"\x08\x01") + frame(12, WIRE_LEN, b"text")
        message = decode(data, catalog)
        assert message.field_numbers() == (12,)
        assert message.span_count() == 0


class TestBorrowedSpans:
    """Tests for CodecOptions.borrow_spans."""

    def test_spans_are_memoryviews(self, catalog):
        data = frame(5, WIRE_LEN, b"abc")
        (span,) = decode(data, catalog, CodecOptions(borrow_spans=True)).get_spans("tags")
        assert isinstance(span.payload, memoryview)
        assert span.payload.readonly
        assert span.tobytes() == b"abc"

    def test_mutable_source_is_snapshotted(self, catalog):
        data = bytearray(frame(5, WIRE_LEN, b"abc"))
        message = decode(data, catalog, CodecOptions(borrow_spans=True))
        data[2:5] = b"xyz"
        assert message.get_spans("tags")[0].tobytes() == b"abc"

    def test_spans_outlive_caller_reference(self, catalog):
        message = decode(bytes(frame(5, WIRE_LEN, b"kept")), catalog, CodecOptions(borrow_spans=True))
        assert message.get_spans("tags")[0].tobytes() == b"kept"

    def test_copied_spans_are_bytes(self, catalog):
        (span,) = decode(memoryview(frame(5, WIRE_LEN, b"abc")), catalog).get_spans("tags")
        assert type(span.payload) is bytes


class TestLazyMessage:
    """Tests for the LazyMessage container."""

    def test_immutable(self, catalog):
        message = decode(frame(1, WIRE_LEN, b"n"), catalog)
        with pytest.raises(AttributeError):
            message.extra = 1
        with pytest.raises(TypeError):
            message.scalars[1] = "other"
        with pytest.raises(TypeError):
            message.spans[5] = ()

    def test_unknown_field_name(self, catalog):
        message = decode(b"", catalog)
        with pytest.raises(KeyError):
            message.get_spans("nope")

    def test_equality(self, catalog):
        data = frame(1, WIRE_LEN, b"n") + frame(5, WIRE_LEN, b"t")
        assert decode(data, catalog) == decode(data, catalog)
        assert decode(data, catalog) != decode(frame(1, WIRE_LEN, b"n"), catalog)

    def test_empty_sequences_are_dropped(self, catalog):
        message = LazyMessage(catalog, {}, {5: []})
        assert not message.has_field(5)
        assert message.spans == {}

    def test_not_hashable(self, catalog):
        with pytest.raises(TypeError):
            hash(decode(b"", catalog))

    def test_repr_mentions_schema(self, catalog):
        assert "Catalog" in repr(decode(frame(5, WIRE_LEN, b"t"), catalog))
