"""Naive vs lazy merge benchmarks (internal)."""

from __future__ import annotations

import os
from time import perf_counter
from typing import Tuple

from lazymerge.kernel.conventional import merge_serialized_full
from lazymerge.kernel.encode import encode
from lazymerge.kernel.lazy import decode
from lazymerge.kernel.merge import merge

from .samples import outer_registry, outer_schema, sample_pair


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_LAZY_MERGE_MS = _budget_from_env("LAZYMERGE_MAX_LAZY_MERGE_MS", 1000.0)
MAX_NAIVE_MERGE_MS = _budget_from_env("LAZYMERGE_MAX_NAIVE_MERGE_MS", 5000.0)

DEFAULT_SIZE = 10000


def lazy_merge_bytes(a: bytes, b: bytes) -> bytes:
    schema = outer_schema()
    return encode(merge(decode(a, schema), decode(b, schema)))


def naive_merge_bytes(a: bytes, b: bytes) -> bytes:
    return merge_serialized_full(a, b, outer_schema(), outer_registry())


def _timed(fn, a: bytes, b: bytes) -> Tuple[float, bytes]:
    start = perf_counter()
    result = fn(a, b)
    elapsed_ms = (perf_counter() - start) * 1000.0
    return elapsed_ms, result


def benchmark_lazy_merge(size: int = DEFAULT_SIZE) -> float:
    a, b = sample_pair(size)
    elapsed_ms, _ = _timed(lazy_merge_bytes, a, b)
    return elapsed_ms


def benchmark_naive_merge(size: int = DEFAULT_SIZE) -> float:
    a, b = sample_pair(size)
    elapsed_ms, _ = _timed(naive_merge_bytes, a, b)
    return elapsed_ms
