"""Codec options shared by decode, encode and the conventional path."""

from pydantic import BaseModel, ConfigDict, Field


class CodecOptions(BaseModel):
    """Behavior switches for decoding and re-encoding."""
    borrow_spans: bool = Field(
        False,
        description="Keep spans as memoryview slices of a read-only snapshot of the input instead of copying",
    )
    coalesce_packed: bool = Field(
        True,
        description="Emit all spans of a packed repeated field as a single packed record",
    )
    validate_utf8: bool = Field(True, description="Reject string fields that are not valid UTF-8")
    max_depth: int = Field(64, ge=1, description="Nesting limit for groups and full decode")

    model_config = ConfigDict(frozen=True, extra="forbid")


DEFAULT_OPTIONS = CodecOptions()
