"""Lazy message representation.

Singular scalar fields are decoded eagerly. Every other field occurrence
(repeated, map entry, singular submessage, unknown field number) is kept as
an opaque RawSpan in wire order, so it can be relocated by merge and
re-emitted by encode without being interpreted.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from lazymerge.codes import ErrorCode
from .errors import MalformedInputError
from .options import DEFAULT_OPTIONS, CodecOptions
from .scalars import decode_scalar
from .schema import FieldDescriptor, MessageSchema
from .wire import BytesLike, iter_records

log = logging.getLogger(__name__)

FieldRef = Union[int, str]


@dataclass(frozen=True)
class RawSpan:
    """Value payload of one field occurrence, left undecoded.

    payload is bytes when copied at decode time, or a read-only memoryview
    borrowed from the decoded buffer when CodecOptions.borrow_spans is set.
    """
    wire_type: int
    payload: Union[bytes, memoryview]

    def __len__(self) -> int:
        return len(self.payload)

    def tobytes(self) -> bytes:
        return bytes(self.payload)


class LazyMessage:
    """Decoded message whose collection fields are raw span sequences.

    Instances are immutable: there is no field-level mutation API, and merge
    always builds a new instance.
    """

    __slots__ = ("_schema", "_scalars", "_spans")

    def __init__(
        self,
        schema: MessageSchema,
        scalars: Optional[Mapping[int, Any]] = None,
        spans: Optional[Mapping[int, Iterable[RawSpan]]] = None,
    ):
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_scalars", MappingProxyType(dict(scalars or {})))
        sequences = {}
        for number, sequence in (spans or {}).items():
            sequence = tuple(sequence)
            if sequence:
                sequences[number] = sequence
        object.__setattr__(self, "_spans", MappingProxyType(sequences))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def schema(self) -> MessageSchema:
        return self._schema

    @property
    def scalars(self) -> Mapping[int, Any]:
        """Read-only view: field number -> decoded value."""
        return self._scalars

    @property
    def spans(self) -> Mapping[int, Tuple[RawSpan, ...]]:
        """Read-only view: field number -> spans in wire order."""
        return self._spans

    def _number(self, field: FieldRef) -> Optional[int]:
        if isinstance(field, str):
            descriptor = self._schema.field_by_name(field)
            if descriptor is None:
                raise KeyError(f"Unknown field name: {field}")
            return descriptor.number
        return field

    def get_scalar(self, field: FieldRef) -> Optional[Any]:
        """Decoded value of a singular scalar field, or None if absent."""
        return self._scalars.get(self._number(field))

    def get_spans(self, field: FieldRef) -> Tuple[RawSpan, ...]:
        """Spans of a lazily kept field in wire order (empty if absent)."""
        return self._spans.get(self._number(field), ())

    def has_field(self, field: FieldRef) -> bool:
        number = self._number(field)
        return number in self._scalars or number in self._spans

    def field_numbers(self) -> Tuple[int, ...]:
        """Numbers of all fields present, ascending."""
        return tuple(sorted(set(self._scalars) | set(self._spans)))

    def unknown_field_numbers(self) -> Tuple[int, ...]:
        """Present field numbers the schema does not know, ascending."""
        return tuple(sorted(n for n in self._spans if self._schema.field(n) is None))

    def span_count(self, field: Optional[FieldRef] = None) -> int:
        """Number of spans for one field, or across all fields."""
        if field is None:
            return sum(len(sequence) for sequence in self._spans.values())
        return len(self.get_spans(field))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LazyMessage):
            return NotImplemented
        return (
            self._schema.fingerprint() == other._schema.fingerprint()
            and dict(self._scalars) == dict(other._scalars)
            and dict(self._spans) == dict(other._spans)
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"LazyMessage({self._schema.name}, scalars={sorted(self._scalars)}, "
            f"spans={ {n: len(s) for n, s in sorted(self._spans.items())} })"
        )


def _clear_other_oneof_members(
    schema: MessageSchema,
    descriptor: FieldDescriptor,
    scalars: Dict[int, Any],
    spans: Dict[int, list],
) -> None:
    for member in schema.oneof_members(descriptor.oneof):
        if member != descriptor.number:
            scalars.pop(member, None)
            spans.pop(member, None)


def decode(data: BytesLike, schema: MessageSchema, options: Optional[CodecOptions] = None) -> LazyMessage:
    """Decode a serialized message into a LazyMessage.

    Singular scalar fields are decoded (last occurrence wins). Repeated,
    map, singular message and unknown fields are appended as RawSpans
    without interpreting their payloads.

    Raises:
        MalformedInputError: On framing errors, or when a known field arrives
            with a wire type its declaration does not allow.
    """
    options = options or DEFAULT_OPTIONS
    if options.borrow_spans:
        # Read-only snapshot; spans keep it alive through their memoryviews.
        source = data if isinstance(data, bytes) else bytes(data)
    else:
        source = data

    scalars: Dict[int, Any] = {}
    spans: Dict[int, list] = defaultdict(list)

    for record in iter_records(source, max_depth=options.max_depth):
        descriptor = schema.field(record.field_number)
        payload = record.payload if options.borrow_spans else bytes(record.payload)

        if descriptor is None:
            spans[record.field_number].append(RawSpan(record.wire_type, payload))
            continue

        if not descriptor.accepts_wire_type(record.wire_type):
            raise MalformedInputError(
                ErrorCode.WIRE_TYPE_MISMATCH,
                f"field {descriptor.name} ({descriptor.number}) cannot use wire type {record.wire_type}",
                record.offset,
            )

        if descriptor.oneof is not None:
            _clear_other_oneof_members(schema, descriptor, scalars, spans)

        if descriptor.is_lazy:
            spans[record.field_number].append(RawSpan(record.wire_type, payload))
        else:
            try:
                scalars[record.field_number] = decode_scalar(
                    descriptor.type, record.payload, validate_utf8=options.validate_utf8
                )
            except MalformedInputError as e:
                raise MalformedInputError(e.code, f"field {descriptor.name}: {e.detail}", record.offset) from e

    message = LazyMessage(schema, scalars, spans)
    log.debug(
        "decoded %s: %d scalar fields, %d span fields, %d spans",
        schema.name, len(message.scalars), len(message.spans), message.span_count(),
    )
    return message
