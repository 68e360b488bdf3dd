"""Merge engine: combine two lazy messages without decoding their spans."""

import logging
from functools import reduce
from typing import Iterable

from .errors import SchemaMismatchError
from .lazy import LazyMessage

log = logging.getLogger(__name__)


def _check_same_schema(a: LazyMessage, b: LazyMessage) -> None:
    if a.schema is b.schema:
        return
    left = a.schema.fingerprint()
    right = b.schema.fingerprint()
    if left != right:
        raise SchemaMismatchError(f"{a.schema.name} {left}", f"{b.schema.name} {right}")


def merge(a: LazyMessage, b: LazyMessage) -> LazyMessage:
    """Merge b into a, returning a new LazyMessage.

    - Singular scalars: b's value where b has one, else a's.
    - Span fields (repeated, map, singular message, unknown): a's spans
      followed by b's spans. No reordering, deduplication or decoding.
    - Oneofs: if b sets a member, a's other members of that oneof are dropped.

    The result shares span objects with the inputs; neither input is mutated.

    Raises:
        SchemaMismatchError: If a and b were decoded with different schemas
    """
    _check_same_schema(a, b)
    schema = a.schema

    scalars = dict(a.scalars)
    spans = dict(a.spans)

    present_in_b = set(b.scalars) | set(b.spans)
    for oneof, members in schema.oneof_groups().items():
        if present_in_b.intersection(members):
            for member in members:
                if member not in present_in_b and (member in scalars or member in spans):
                    scalars.pop(member, None)
                    spans.pop(member, None)
                    log.debug("oneof %s: dropped field %d from left operand", oneof, member)

    scalars.update(b.scalars)
    for number, sequence in b.spans.items():
        existing = spans.get(number)
        spans[number] = existing + sequence if existing else sequence

    log.debug(
        "merged %s: %d span fields, %d + %d spans",
        schema.name, len(spans), a.span_count(), b.span_count(),
    )
    return LazyMessage(schema, scalars, spans)


def merge_all(messages: Iterable[LazyMessage]) -> LazyMessage:
    """Left fold of merge over a non-empty sequence of messages."""
    iterator = iter(messages)
    try:
        first = next(iterator)
    except StopIteration:
        raise ValueError("merge_all requires at least one message") from None
    return reduce(merge, iterator, first)
