"""Conventional decode-merge-encode path.

Fully decodes messages (including nested submessages and map entries) into
plain Python values, merges them field by field, and encodes the result.
Lazy merge output is checked against this path: decoding a lazily merged
message must give the same value as merge_full over the decoded operands.

Decoded form: dict keyed by field name.
- singular scalar -> value; singular message -> dict
- repeated -> list; map -> dict (last key wins)
- unknown fields -> list of (number, wire_type, payload) under UNKNOWN_FIELDS
"""

import copy
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple

from lazymerge.codes import ErrorCode
from .errors import MalformedInputError, SchemaDefinitionError
from .options import DEFAULT_OPTIONS, CodecOptions
from .scalars import PACKABLE_TYPES, decode_scalar, default_value, encode_scalar, iter_packed
from .schema import FieldDescriptor, MessageSchema, SchemaRegistry
from .wire import WIRE_LEN, BytesLike, WireRecord, iter_records, write_record


UNKNOWN_FIELDS = "__unknown__"


@lru_cache(maxsize=None)
def _entry_schema(descriptor: FieldDescriptor) -> MessageSchema:
    value_field: Dict[str, Any] = {"number": 2, "name": "value", "type": descriptor.value_type}
    if descriptor.value_type == "message":
        value_field["message_type"] = descriptor.value_message_type
    return MessageSchema(
        name=f"{descriptor.name}.Entry",
        fields=(
            {"number": 1, "name": "key", "type": descriptor.key_type},
            value_field,
        ),
    )


def _nested(registry: Optional[SchemaRegistry], name: str) -> MessageSchema:
    if registry is None:
        raise SchemaDefinitionError(f"A schema registry is required to resolve message type {name}")
    return registry.get(name)


def _scalar(descriptor_type: str, record: WireRecord, options: CodecOptions) -> Any:
    try:
        return decode_scalar(descriptor_type, record.payload, validate_utf8=options.validate_utf8)
    except MalformedInputError as e:
        raise MalformedInputError(e.code, e.detail, record.offset) from e


def _decode_map_entry(
    record: WireRecord,
    descriptor: FieldDescriptor,
    registry: Optional[SchemaRegistry],
    options: CodecOptions,
    depth: int,
) -> Tuple[Any, Any]:
    entry = decode_full(record.payload, _entry_schema(descriptor), registry, options, _depth=depth + 1)
    key = entry.get("key", default_value(descriptor.key_type))
    if "value" in entry:
        value = entry["value"]
    elif descriptor.value_type == "message":
        value = {}
    else:
        value = default_value(descriptor.value_type)
    return key, value


def decode_full(
    data: BytesLike,
    schema: MessageSchema,
    registry: Optional[SchemaRegistry] = None,
    options: Optional[CodecOptions] = None,
    _depth: int = 0,
) -> Dict[str, Any]:
    """Fully decode a serialized message, recursing into submessages.

    Raises:
        MalformedInputError: On framing or wire type errors at any depth
        SchemaDefinitionError: If a nested message type cannot be resolved
    """
    options = options or DEFAULT_OPTIONS
    if _depth > options.max_depth:
        raise MalformedInputError(
            ErrorCode.NESTING_TOO_DEEP, f"messages nested deeper than {options.max_depth}"
        )

    value: Dict[str, Any] = {}
    for record in iter_records(data, max_depth=options.max_depth):
        descriptor = schema.field(record.field_number)
        if descriptor is None:
            value.setdefault(UNKNOWN_FIELDS, []).append(
                (record.field_number, record.wire_type, bytes(record.payload))
            )
            continue

        if not descriptor.accepts_wire_type(record.wire_type):
            raise MalformedInputError(
                ErrorCode.WIRE_TYPE_MISMATCH,
                f"field {descriptor.name} ({descriptor.number}) cannot use wire type {record.wire_type}",
                record.offset,
            )

        name = descriptor.name
        if descriptor.oneof is not None:
            for member in schema.oneof_members(descriptor.oneof):
                if member != descriptor.number:
                    value.pop(schema.field(member).name, None)

        if descriptor.cardinality == "map":
            key, item = _decode_map_entry(record, descriptor, registry, options, _depth)
            value.setdefault(name, {})[key] = item
        elif descriptor.cardinality == "repeated":
            items = value.setdefault(name, [])
            if descriptor.type == "message":
                nested = _nested(registry, descriptor.message_type)
                items.append(decode_full(record.payload, nested, registry, options, _depth + 1))
            elif record.wire_type == WIRE_LEN and descriptor.type in PACKABLE_TYPES:
                try:
                    items.extend(iter_packed(descriptor.type, record.payload))
                except MalformedInputError as e:
                    raise MalformedInputError(e.code, e.detail, record.offset) from e
            else:
                items.append(_scalar(descriptor.type, record, options))
        elif descriptor.type == "message":
            nested = _nested(registry, descriptor.message_type)
            sub = decode_full(record.payload, nested, registry, options, _depth + 1)
            # Repeated occurrences of a singular submessage merge.
            value[name] = merge_full(value[name], sub, nested, registry) if name in value else sub
        else:
            value[name] = _scalar(descriptor.type, record, options)
    return value


def merge_full(
    a: Dict[str, Any],
    b: Dict[str, Any],
    schema: MessageSchema,
    registry: Optional[SchemaRegistry] = None,
) -> Dict[str, Any]:
    """Conventional field-by-field merge of two decoded messages.

    Scalars overwrite, singular messages merge recursively, repeated fields
    append, maps update (b's keys win), unknown fields append. Neither
    input is mutated.
    """
    result = copy.deepcopy(a)
    for name, item in b.items():
        item = copy.deepcopy(item)
        if name == UNKNOWN_FIELDS:
            result.setdefault(name, []).extend(item)
            continue

        descriptor = schema.field_by_name(name)
        if descriptor is None:
            raise SchemaDefinitionError(f"Field {name!r} is not defined in {schema.name}")

        if descriptor.oneof is not None:
            for member in schema.oneof_members(descriptor.oneof):
                if member != descriptor.number:
                    result.pop(schema.field(member).name, None)

        if descriptor.cardinality == "map":
            result.setdefault(name, {}).update(item)
        elif descriptor.cardinality == "repeated":
            result.setdefault(name, []).extend(item)
        elif descriptor.type == "message" and name in result:
            nested = _nested(registry, descriptor.message_type)
            result[name] = merge_full(result[name], item, nested, registry)
        else:
            result[name] = item
    return result


def _encode_element(out: bytearray, descriptor: FieldDescriptor, item: Any,
                    registry: Optional[SchemaRegistry], options: CodecOptions) -> None:
    if descriptor.type == "message":
        nested = _nested(registry, descriptor.message_type)
        write_record(out, descriptor.number, WIRE_LEN, encode_full(item, nested, registry, options))
    else:
        write_record(out, descriptor.number, descriptor.wire_type, encode_scalar(descriptor.type, item))


def encode_full(
    value: Dict[str, Any],
    schema: MessageSchema,
    registry: Optional[SchemaRegistry] = None,
    options: Optional[CodecOptions] = None,
) -> bytes:
    """Encode a decoded message.

    Fields are written in ascending field number, packed repeated scalars as
    one packed record, map entries in dict order, unknown fields last
    (ascending number, original order within a number).
    """
    options = options or DEFAULT_OPTIONS
    present = []
    for name, item in value.items():
        if name == UNKNOWN_FIELDS:
            continue
        descriptor = schema.field_by_name(name)
        if descriptor is None:
            raise SchemaDefinitionError(f"Field {name!r} is not defined in {schema.name}")
        present.append(descriptor)

    out = bytearray()
    for descriptor in sorted(present, key=lambda d: d.number):
        item = value[descriptor.name]
        number = descriptor.number
        if descriptor.cardinality == "map":
            entry_schema = _entry_schema(descriptor)
            for key, entry_value in item.items():
                entry = encode_full({"key": key, "value": entry_value}, entry_schema, registry, options)
                write_record(out, number, WIRE_LEN, entry)
        elif descriptor.cardinality == "repeated":
            if descriptor.is_packed:
                packed = b"".join(encode_scalar(descriptor.type, element) for element in item)
                if packed:
                    write_record(out, number, WIRE_LEN, packed)
            else:
                for element in item:
                    _encode_element(out, descriptor, element, registry, options)
        else:
            _encode_element(out, descriptor, item, registry, options)

    for number, wire_type, payload in sorted(value.get(UNKNOWN_FIELDS, ()), key=lambda r: r[0]):
        write_record(out, number, wire_type, payload)
    return bytes(out)


def merge_serialized_full(
    a: BytesLike,
    b: BytesLike,
    schema: MessageSchema,
    registry: Optional[SchemaRegistry] = None,
    options: Optional[CodecOptions] = None,
) -> bytes:
    """Naive merge of two serialized messages: decode both, merge, encode."""
    merged = merge_full(
        decode_full(a, schema, registry, options),
        decode_full(b, schema, registry, options),
        schema,
        registry,
    )
    return encode_full(merged, schema, registry, options)
