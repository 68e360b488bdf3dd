"""lazymerge: merge serialized protobuf-style messages without decoding their collections."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("lazymerge")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from lazymerge.api import load_schema, load_registry, merge_serialized, summarize
from lazymerge.codes import ErrorCode
from lazymerge.contracts import FieldSummary, MessageSummary
from lazymerge.kernel.encode import encode
from lazymerge.kernel.errors import (
    LazyMergeError,
    MalformedInputError,
    SchemaDefinitionError,
    SchemaMismatchError,
)
from lazymerge.kernel.lazy import LazyMessage, RawSpan, decode
from lazymerge.kernel.merge import merge, merge_all
from lazymerge.kernel.options import CodecOptions
from lazymerge.kernel.schema import FieldDescriptor, MessageSchema, SchemaRegistry

__all__ = [
    "__version__",
    "load_schema",
    "load_registry",
    "merge_serialized",
    "summarize",
    "decode",
    "merge",
    "merge_all",
    "encode",
    "LazyMessage",
    "RawSpan",
    "CodecOptions",
    "FieldDescriptor",
    "MessageSchema",
    "SchemaRegistry",
    "FieldSummary",
    "MessageSummary",
    "ErrorCode",
    "LazyMergeError",
    "MalformedInputError",
    "SchemaMismatchError",
    "SchemaDefinitionError",
]
