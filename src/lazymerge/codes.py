"""Error code constants for lazymerge decode failures.

These constants prevent stringly-typed error codes and let callers
branch on the kind of framing violation without parsing messages.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Malformed input error codes."""

    # Framing
    TRUNCATED_VARINT = "TRUNCATED_VARINT"
    VARINT_TOO_LONG = "VARINT_TOO_LONG"
    TRUNCATED_PAYLOAD = "TRUNCATED_PAYLOAD"
    INVALID_WIRE_TYPE = "INVALID_WIRE_TYPE"
    INVALID_FIELD_NUMBER = "INVALID_FIELD_NUMBER"

    # Groups
    UNMATCHED_GROUP_END = "UNMATCHED_GROUP_END"
    UNTERMINATED_GROUP = "UNTERMINATED_GROUP"
    NESTING_TOO_DEEP = "NESTING_TOO_DEEP"

    # Schema-aware checks on known fields
    WIRE_TYPE_MISMATCH = "WIRE_TYPE_MISMATCH"
    INVALID_UTF8 = "INVALID_UTF8"
