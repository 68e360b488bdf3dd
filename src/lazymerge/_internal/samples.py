"""Deterministic sample messages for benchmarks and tests (internal)."""

from __future__ import annotations

import random
from functools import lru_cache
from typing import Any, Dict, Tuple

from lazymerge.kernel.conventional import encode_full
from lazymerge.kernel.schema import MessageSchema, SchemaRegistry


OUTER_REGISTRY_DEFINITION = {
    "messages": [
        {
            "name": "InnerMessage",
            "fields": [
                {"number": 1, "name": "val", "type": "int32"},
            ],
        },
        {
            "name": "OuterMessage",
            "fields": [
                {"number": 1, "name": "name", "type": "string"},
                {
                    "number": 2,
                    "name": "inner",
                    "type": "message",
                    "cardinality": "repeated",
                    "message_type": "InnerMessage",
                },
                {
                    "number": 3,
                    "name": "map",
                    "cardinality": "map",
                    "key_type": "string",
                    "value_type": "message",
                    "value_message_type": "InnerMessage",
                },
            ],
        },
    ]
}


@lru_cache(maxsize=None)
def outer_registry() -> SchemaRegistry:
    return SchemaRegistry(**OUTER_REGISTRY_DEFINITION)


def outer_schema() -> MessageSchema:
    return outer_registry().get("OuterMessage")


def random_outer(rng: random.Random, name: str, size: int, with_map: bool) -> Tuple[Dict[str, Any], bytes]:
    """Build a random OuterMessage and its serialized form.

    Every inner value is mirrored into the map under "key-<val>" when
    with_map is set, so map keys collide only when values do.
    """
    inner = []
    entries: Dict[str, Any] = {}
    for _ in range(size):
        val = rng.randint(1, 2**31 - 1)
        inner.append({"val": val})
        if with_map:
            entries[f"key-{val}"] = {"val": val}

    message: Dict[str, Any] = {"name": name}
    if inner:
        message["inner"] = inner
    if entries:
        message["map"] = entries
    return message, encode_full(message, outer_schema(), outer_registry())


def sample_pair(size: int, with_map: bool = True, seed: int = 0) -> Tuple[bytes, bytes]:
    """Two serialized OuterMessages of the given size from a seeded generator."""
    rng = random.Random(seed)
    _, first = random_outer(rng, "Hello, world.", size, with_map)
    _, second = random_outer(rng, "Don't panic", size, with_map)
    return first, second
