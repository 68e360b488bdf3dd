"""Re-encoder: emit a LazyMessage back to wire bytes."""

import logging
from typing import Optional

from .lazy import LazyMessage, RawSpan
from .options import DEFAULT_OPTIONS, CodecOptions
from .scalars import VARINT_TYPES, encode_scalar, wire_type_for
from .wire import WIRE_I32, WIRE_LEN, write_record

log = logging.getLogger(__name__)


def _ends_on_element_boundary(type_name: str, span: RawSpan) -> bool:
    """True when a packed span holds only whole elements."""
    if span.wire_type != WIRE_LEN:
        return True
    payload = span.payload
    if type_name in VARINT_TYPES:
        return not payload or payload[-1] < 0x80
    size = 4 if wire_type_for(type_name) == WIRE_I32 else 8
    return len(payload) % size == 0


def encode(message: LazyMessage, options: Optional[CodecOptions] = None) -> bytes:
    """Serialize a LazyMessage.

    Known fields are written in ascending field number: scalars through the
    scalar codec, span fields by re-framing every span with its field number
    and the span's own wire type. Unknown fields follow, ascending, unchanged.

    With options.coalesce_packed, all spans of a packed repeated field are
    joined into one packed record; packed and unpacked element encodings are
    identical, so only the framing changes. A packed span that stops
    partway through an element is never joined with its neighbours; the
    spans are then written one by one.
    """
    options = options or DEFAULT_OPTIONS
    schema = message.schema
    scalars = message.scalars
    spans = message.spans
    out = bytearray()

    unknown = []
    for number in message.field_numbers():
        descriptor = schema.field(number)
        if descriptor is None:
            unknown.append(number)
            continue

        if number in scalars:
            write_record(out, number, descriptor.wire_type, encode_scalar(descriptor.type, scalars[number]))
            continue

        sequence = spans[number]
        if (
            options.coalesce_packed
            and descriptor.is_packed
            and all(_ends_on_element_boundary(descriptor.type, span) for span in sequence)
        ):
            packed = b"".join(span.payload for span in sequence)
            if packed:
                write_record(out, number, WIRE_LEN, packed)
            continue

        for span in sequence:
            write_record(out, number, span.wire_type, span.payload)

    for number in unknown:
        for span in spans[number]:
            write_record(out, number, span.wire_type, span.payload)

    log.debug("encoded %s: %d bytes", schema.name, len(out))
    return bytes(out)
