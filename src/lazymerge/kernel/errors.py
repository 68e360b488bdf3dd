"""Exception hierarchy for the lazy merge kernel."""

from typing import Optional

from lazymerge.codes import ErrorCode


class LazyMergeError(Exception):
    """Base exception for lazymerge kernel errors."""
    pass


class MalformedInputError(LazyMergeError, ValueError):
    """Raised when input bytes violate wire framing rules.

    Decoding aborts on the first violation; no partial representation
    is ever returned to the caller.
    """
    def __init__(self, code: ErrorCode, message: str, offset: Optional[int] = None):
        self.code = code
        self.offset = offset
        self.detail = message
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(f"{code.value}: {message}")


class SchemaMismatchError(LazyMergeError):
    """Raised when merging representations decoded with different schemas."""
    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot merge messages of different schemas:\n"
            f"  left:  {left}\n"
            f"  right: {right}"
        )


class SchemaDefinitionError(LazyMergeError, ValueError):
    """Raised when a schema definition is invalid or cannot be resolved."""
    pass
