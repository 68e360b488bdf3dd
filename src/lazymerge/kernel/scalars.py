"""Scalar value codec: field payload <-> native Python value."""

import struct
from typing import Any, Iterator

from lazymerge.codes import ErrorCode
from .errors import MalformedInputError
from .wire import (
    BytesLike,
    WIRE_I32,
    WIRE_I64,
    WIRE_LEN,
    WIRE_VARINT,
    decode_varint,
    encode_varint,
)


VARINT_TYPES = frozenset({"int32", "int64", "uint32", "uint64", "sint32", "sint64", "bool", "enum"})
I32_TYPES = frozenset({"fixed32", "sfixed32", "float"})
I64_TYPES = frozenset({"fixed64", "sfixed64", "double"})
LEN_SCALAR_TYPES = frozenset({"string", "bytes"})

SCALAR_TYPES = VARINT_TYPES | I32_TYPES | I64_TYPES | LEN_SCALAR_TYPES
PACKABLE_TYPES = VARINT_TYPES | I32_TYPES | I64_TYPES
MAP_KEY_TYPES = frozenset({
    "int32", "int64", "uint32", "uint64", "sint32", "sint64",
    "fixed32", "fixed64", "sfixed32", "sfixed64", "bool", "string",
})

_STRUCT_FORMATS = {
    "fixed32": "<I",
    "sfixed32": "<i",
    "float": "<f",
    "fixed64": "<Q",
    "sfixed64": "<q",
    "double": "<d",
}

_MASK32 = (1 << 32) - 1
_MASK64 = (1 << 64) - 1


def wire_type_for(type_name: str) -> int:
    """Wire type of a single element of the given type ("message" is LEN)."""
    if type_name in VARINT_TYPES:
        return WIRE_VARINT
    if type_name in I32_TYPES:
        return WIRE_I32
    if type_name in I64_TYPES:
        return WIRE_I64
    if type_name in LEN_SCALAR_TYPES or type_name == "message":
        return WIRE_LEN
    raise ValueError(f"Unknown field type: {type_name}")


def _to_signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


def _from_varint(type_name: str, raw: int) -> Any:
    if type_name in ("int32", "enum"):
        return _to_signed(raw, 32)
    if type_name == "int64":
        return _to_signed(raw, 64)
    if type_name == "uint32":
        return raw & _MASK32
    if type_name == "uint64":
        return raw
    if type_name == "sint32":
        return _zigzag_decode(raw & _MASK32)
    if type_name == "sint64":
        return _zigzag_decode(raw)
    return raw != 0  # bool


def _to_varint(type_name: str, value: Any) -> int:
    if type_name == "bool":
        return 1 if value else 0
    value = int(value)
    if type_name == "uint32":
        return value & _MASK32
    if type_name == "sint32":
        return ((value << 1) ^ (value >> 31)) & _MASK32
    if type_name == "sint64":
        return ((value << 1) ^ (value >> 63)) & _MASK64
    return value & _MASK64


def decode_scalar(type_name: str, payload: BytesLike, validate_utf8: bool = True) -> Any:
    """Decode one scalar payload into its native value.

    Strings that are not valid UTF-8 raise MalformedInputError unless
    validate_utf8 is False, in which case the invalid bytes are kept as
    surrogate escapes so re-encoding reproduces them.
    """
    if type_name in VARINT_TYPES:
        raw, _ = decode_varint(payload, 0)
        return _from_varint(type_name, raw)
    if type_name in _STRUCT_FORMATS:
        return struct.unpack(_STRUCT_FORMATS[type_name], payload)[0]
    if type_name == "bytes":
        return bytes(payload)
    if type_name == "string":
        try:
            return bytes(payload).decode("utf-8", "strict" if validate_utf8 else "surrogateescape")
        except UnicodeDecodeError as e:
            raise MalformedInputError(ErrorCode.INVALID_UTF8, f"string field is not valid UTF-8: {e.reason}")
    raise ValueError(f"Not a scalar type: {type_name}")


def encode_scalar(type_name: str, value: Any) -> bytes:
    """Encode a native value into its payload bytes (no tag, no length prefix)."""
    if type_name in VARINT_TYPES:
        return encode_varint(_to_varint(type_name, value))
    if type_name in _STRUCT_FORMATS:
        return struct.pack(_STRUCT_FORMATS[type_name], value)
    if type_name == "bytes":
        return bytes(value)
    if type_name == "string":
        return value.encode("utf-8", "surrogateescape")
    raise ValueError(f"Not a scalar type: {type_name}")


def iter_packed(type_name: str, payload: BytesLike) -> Iterator[Any]:
    """Iterate the elements of a packed repeated payload."""
    if type_name in VARINT_TYPES:
        position = 0
        while position < len(payload):
            raw, position = decode_varint(payload, position)
            yield _from_varint(type_name, raw)
        return

    fmt = _STRUCT_FORMATS[type_name]
    size = struct.calcsize(fmt)
    if len(payload) % size:
        raise MalformedInputError(
            ErrorCode.TRUNCATED_PAYLOAD,
            f"packed {type_name} payload of {len(payload)} bytes is not a multiple of {size}",
        )
    for (value,) in struct.iter_unpack(fmt, payload):
        yield value


def default_value(type_name: str) -> Any:
    """Zero value of a scalar type, as a decoder reports an absent field."""
    if type_name == "bool":
        return False
    if type_name in ("float", "double"):
        return 0.0
    if type_name == "string":
        return ""
    if type_name == "bytes":
        return b""
    if type_name in SCALAR_TYPES:
        return 0
    raise ValueError(f"Not a scalar type: {type_name}")


def element_wire_types(type_name: str, repeated: bool) -> frozenset:
    """Wire types a decoder accepts for one occurrence of a field."""
    element = wire_type_for(type_name)
    if repeated and type_name in PACKABLE_TYPES:
        return frozenset({element, WIRE_LEN})
    return frozenset({element})
