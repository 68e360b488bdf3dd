"""Tag/length/value wire framing.

Splits a serialized message into records without interpreting field values,
and frames records back into bytes. Payloads are returned as memoryview
slices of the input; callers decide whether to copy them.

Payload conventions per wire type:
- VARINT: the varint bytes exactly as they appeared
- I64 / I32: the 8 / 4 fixed bytes
- LEN: the bytes after the length prefix
- SGROUP: the group body, without the start and end tags
"""

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

from lazymerge.codes import ErrorCode
from .errors import MalformedInputError


WIRE_VARINT = 0  # int32, int64, uint32, uint64, sint32, sint64, bool, enum
WIRE_I64 = 1     # fixed64, sfixed64, double
WIRE_LEN = 2     # string, bytes, messages, map entries, packed repeated
WIRE_SGROUP = 3  # group start (deprecated)
WIRE_EGROUP = 4  # group end (deprecated)
WIRE_I32 = 5     # fixed32, sfixed32, float

WIRE_TYPES = (WIRE_VARINT, WIRE_I64, WIRE_LEN, WIRE_SGROUP, WIRE_EGROUP, WIRE_I32)

MAX_FIELD_NUMBER = (1 << 29) - 1
MAX_VARINT_BYTES = 10
DEFAULT_MAX_DEPTH = 64

_FIXED_SIZES = {WIRE_I64: 8, WIRE_I32: 4}
_UINT64_MASK = (1 << 64) - 1

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class WireRecord:
    """One field occurrence as it appears on the wire."""
    field_number: int
    wire_type: int
    payload: memoryview
    offset: int  # Offset of the tag within the decoded buffer


def _as_view(data: BytesLike) -> memoryview:
    view = data if isinstance(data, memoryview) else memoryview(data)
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view


def encode_varint(value: int) -> bytes:
    """Encode an integer as a base-128 varint.

    Negative values are encoded as their 64-bit two's complement, which
    always takes ten bytes.
    """
    if value < 0:
        value &= _UINT64_MASK
    out = bytearray()
    while value > 0x7F:
        out.append(0x80 | (value & 0x7F))
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: BytesLike, offset: int = 0) -> Tuple[int, int]:
    """Decode a varint starting at offset.

    Returns:
        Tuple of (value, offset just past the varint). Values wider than
        64 bits are truncated to 64 bits, as protobuf decoders do.

    Raises:
        MalformedInputError: If the varint is truncated or longer than ten bytes.
    """
    result = 0
    shift = 0
    position = offset
    end = len(data)
    while True:
        if position - offset >= MAX_VARINT_BYTES:
            raise MalformedInputError(
                ErrorCode.VARINT_TOO_LONG, "varint longer than 10 bytes", offset
            )
        if position >= end:
            raise MalformedInputError(
                ErrorCode.TRUNCATED_VARINT, "varint runs past end of buffer", offset
            )
        byte = data[position]
        result |= (byte & 0x7F) << shift
        position += 1
        if not byte & 0x80:
            return result & _UINT64_MASK, position
        shift += 7


def encode_tag(field_number: int, wire_type: int) -> bytes:
    """Encode a field tag (field number + wire type) as a varint."""
    if not 1 <= field_number <= MAX_FIELD_NUMBER:
        raise ValueError(f"Field number out of range: {field_number}")
    if wire_type not in WIRE_TYPES:
        raise ValueError(f"Unsupported wire type: {wire_type}")
    return encode_varint((field_number << 3) | wire_type)


def decode_tag(data: BytesLike, offset: int = 0) -> Tuple[int, int, int]:
    """Decode a tag.

    Returns:
        Tuple of (field_number, wire_type, offset just past the tag)
    """
    tag, position = decode_varint(data, offset)
    wire_type = tag & 0x07
    field_number = tag >> 3
    if wire_type not in WIRE_TYPES:
        raise MalformedInputError(
            ErrorCode.INVALID_WIRE_TYPE, f"invalid wire type {wire_type}", offset
        )
    if not 1 <= field_number <= MAX_FIELD_NUMBER:
        raise MalformedInputError(
            ErrorCode.INVALID_FIELD_NUMBER, f"invalid field number {field_number}", offset
        )
    return field_number, wire_type, position


def _take(view: memoryview, offset: int, size: int, tag_offset: int) -> int:
    end = offset + size
    if end > len(view):
        raise MalformedInputError(
            ErrorCode.TRUNCATED_PAYLOAD,
            f"payload declares {size} bytes but only {len(view) - offset} remain",
            tag_offset,
        )
    return end


def _read_record(view: memoryview, offset: int, depth: int, max_depth: int) -> Tuple[WireRecord, int]:
    """Read one record (a whole group counts as one record)."""
    field_number, wire_type, position = decode_tag(view, offset)

    if wire_type == WIRE_VARINT:
        _, end = decode_varint(view, position)
        return WireRecord(field_number, wire_type, view[position:end], offset), end

    if wire_type in _FIXED_SIZES:
        end = _take(view, position, _FIXED_SIZES[wire_type], offset)
        return WireRecord(field_number, wire_type, view[position:end], offset), end

    if wire_type == WIRE_LEN:
        length, position = decode_varint(view, position)
        end = _take(view, position, length, offset)
        return WireRecord(field_number, wire_type, view[position:end], offset), end

    if wire_type == WIRE_EGROUP:
        return WireRecord(field_number, wire_type, view[position:position], offset), position

    # WIRE_SGROUP: scan nested records until the matching end tag
    if depth >= max_depth:
        raise MalformedInputError(
            ErrorCode.NESTING_TOO_DEEP, f"groups nested deeper than {max_depth}", offset
        )
    body_start = position
    while True:
        if position >= len(view):
            raise MalformedInputError(
                ErrorCode.UNTERMINATED_GROUP, f"group {field_number} has no end tag", offset
            )
        inner, next_position = _read_record(view, position, depth + 1, max_depth)
        if inner.wire_type == WIRE_EGROUP:
            if inner.field_number != field_number:
                raise MalformedInputError(
                    ErrorCode.UNMATCHED_GROUP_END,
                    f"group {field_number} closed by end tag for field {inner.field_number}",
                    position,
                )
            return WireRecord(field_number, wire_type, view[body_start:position], offset), next_position
        position = next_position


def iter_records(data: BytesLike, max_depth: int = DEFAULT_MAX_DEPTH) -> Iterator[WireRecord]:
    """Iterate the top-level records of a serialized message in wire order.

    Raises:
        MalformedInputError: On the first framing violation.
    """
    view = _as_view(data)
    position = 0
    end = len(view)
    while position < end:
        record, position = _read_record(view, position, 0, max_depth)
        if record.wire_type == WIRE_EGROUP:
            raise MalformedInputError(
                ErrorCode.UNMATCHED_GROUP_END,
                f"end tag for group {record.field_number} outside any group",
                record.offset,
            )
        yield record


def write_record(out: bytearray, field_number: int, wire_type: int, payload: BytesLike) -> None:
    """Append a framed record to out.

    The payload is copied verbatim; LEN records get a minimal length prefix,
    groups get their end tag.
    """
    out += encode_tag(field_number, wire_type)
    if wire_type == WIRE_LEN:
        out += encode_varint(len(payload))
        out += payload
    elif wire_type == WIRE_SGROUP:
        out += payload
        out += encode_tag(field_number, WIRE_EGROUP)
    elif wire_type in _FIXED_SIZES:
        if len(payload) != _FIXED_SIZES[wire_type]:
            raise ValueError(
                f"wire type {wire_type} needs {_FIXED_SIZES[wire_type]} payload bytes, got {len(payload)}"
            )
        out += payload
    elif wire_type == WIRE_VARINT:
        out += payload
    else:
        raise ValueError(f"Cannot frame a record of wire type {wire_type}")


def frame(field_number: int, wire_type: int, payload: BytesLike) -> bytes:
    """Frame a single record and return its bytes."""
    out = bytearray()
    write_record(out, field_number, wire_type, payload)
    return bytes(out)
