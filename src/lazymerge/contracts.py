"""Public result models for lazymerge package."""

from typing import List, Optional
from pydantic import BaseModel, Field


class FieldSummary(BaseModel):
    """Span statistics for one lazily kept field."""
    number: int
    name: Optional[str] = None  # None for unknown fields
    cardinality: str  # "singular" | "repeated" | "map" | "unknown"
    span_count: int
    payload_bytes: int  # Sum of span payload sizes (framing excluded)


class MessageSummary(BaseModel):
    """Shape of a decoded message without decoding its spans."""
    message: str
    schema_fingerprint: str
    total_bytes: int
    scalar_fields: List[int]  # sorted
    span_fields: List[FieldSummary]  # sorted by number
    unknown_fields: List[int] = Field(default_factory=list)  # sorted
