"""Public API for lazymerge.

High-level functions over the kernel: load schemas, merge serialized
messages in one call, and summarize a message's span layout.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from lazymerge._internal.config import options_from_env
from lazymerge._internal.io.schema import load_registry_from_path
from lazymerge.contracts import FieldSummary, MessageSummary
from lazymerge.kernel.encode import encode
from lazymerge.kernel.errors import SchemaDefinitionError
from lazymerge.kernel.lazy import decode
from lazymerge.kernel.merge import merge_all
from lazymerge.kernel.options import CodecOptions
from lazymerge.kernel.schema import MessageSchema, SchemaRegistry
from lazymerge.kernel.wire import BytesLike

SchemaSource = Union[str, os.PathLike, bytes, Dict[str, Any]]


def load_registry(source: SchemaSource) -> SchemaRegistry:
    """Load a schema registry from a JSON path, JSON bytes, or a dict.

    A single message definition (an object with "name" and "fields") is
    accepted and wrapped into a one-message registry.

    Raises:
        SchemaDefinitionError: If the source is not a valid schema definition
    """
    try:
        if isinstance(source, dict):
            payload = source
        elif isinstance(source, bytes):
            payload = json.loads(source)
        else:
            return load_registry_from_path(Path(source))
        if "messages" not in payload:
            payload = {"messages": [payload]}
        return SchemaRegistry(**payload)
    except (ValidationError, json.JSONDecodeError, TypeError) as e:
        raise SchemaDefinitionError(f"Invalid schema definition: {e}") from e


def load_schema(source: SchemaSource, message: Optional[str] = None) -> MessageSchema:
    """Load one message schema.

    Args:
        source: Path, JSON bytes, or dict (registry or single message)
        message: Message name; may be omitted when the source defines exactly one

    Raises:
        SchemaDefinitionError: If the definition is invalid or the message is ambiguous/missing
    """
    registry = load_registry(source)
    if message is None:
        names = registry.names()
        if len(names) != 1:
            raise SchemaDefinitionError(f"Source defines {len(names)} messages; pass message= one of {list(names)}")
        message = names[0]
    return registry.get(message)


def load_options_from_env() -> CodecOptions:
    """CodecOptions from LAZYMERGE_* environment variables."""
    return options_from_env()


def merge_serialized(schema: MessageSchema, *payloads: BytesLike, options: Optional[CodecOptions] = None) -> bytes:
    """Decode, lazily merge (left to right) and re-encode serialized messages.

    Raises:
        MalformedInputError: If any payload is malformed
        ValueError: If no payloads are given
    """
    if not payloads:
        raise ValueError("merge_serialized requires at least one payload")
    merged = merge_all(decode(payload, schema, options) for payload in payloads)
    return encode(merged, options)


def summarize(schema: MessageSchema, data: BytesLike, options: Optional[CodecOptions] = None) -> MessageSummary:
    """Describe a serialized message's fields and spans without decoding spans."""
    message = decode(data, schema, options)
    span_fields = []
    for number in sorted(message.spans):
        descriptor = schema.field(number)
        spans = message.spans[number]
        span_fields.append(FieldSummary(
            number=number,
            name=descriptor.name if descriptor else None,
            cardinality=descriptor.cardinality if descriptor else "unknown",
            span_count=len(spans),
            payload_bytes=sum(len(span) for span in spans),
        ))
    return MessageSummary(
        message=schema.name,
        schema_fingerprint=schema.fingerprint(),
        total_bytes=memoryview(data).nbytes,
        scalar_fields=sorted(message.scalars),
        span_fields=span_fields,
        unknown_fields=list(message.unknown_field_numbers()),
    )
