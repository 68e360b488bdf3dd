"""Pydantic models describing message schemas for the lazy merge kernel."""

import json
from typing import Any, Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .errors import SchemaDefinitionError
from .hash_utils import hash_canonical
from .scalars import MAP_KEY_TYPES, PACKABLE_TYPES, element_wire_types, wire_type_for
from .wire import MAX_FIELD_NUMBER, WIRE_LEN


FieldType = Literal[
    "int32", "int64", "uint32", "uint64", "sint32", "sint64", "bool", "enum",
    "fixed32", "sfixed32", "float", "fixed64", "sfixed64", "double",
    "string", "bytes", "message",
]
Cardinality = Literal["singular", "repeated", "map"]

RESERVED_FIELD_NUMBERS = range(19000, 20000)


class FieldDescriptor(BaseModel):
    """A single field of a message schema.

    Map fields declare key_type/value_type instead of type; on the wire they
    are repeated entry messages (key = field 1, value = field 2).
    """
    number: int
    name: str
    type: Optional[FieldType] = None
    cardinality: Cardinality = "singular"
    message_type: Optional[str] = None  # For type == "message"
    key_type: Optional[FieldType] = None  # Map only
    value_type: Optional[FieldType] = None  # Map only
    value_message_type: Optional[str] = None  # Map only, value_type == "message"
    packed: Optional[bool] = Field(
        None,
        description="Packed encoding for repeated scalar numeric fields; defaults to True when packable",
    )
    oneof: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("number")
    @classmethod
    def validate_number(cls, v: int) -> int:
        if not 1 <= v <= MAX_FIELD_NUMBER:
            raise ValueError(f"Field number {v} outside 1..{MAX_FIELD_NUMBER}")
        if v in RESERVED_FIELD_NUMBERS:
            raise ValueError(f"Field number {v} is in the reserved range 19000-19999")
        return v

    @model_validator(mode="after")
    def validate_shape(self) -> "FieldDescriptor":
        if self.cardinality == "map":
            if self.type is not None or self.message_type is not None:
                raise ValueError(f"Map field '{self.name}' must use key_type/value_type, not type")
            if self.key_type not in MAP_KEY_TYPES:
                raise ValueError(f"Map field '{self.name}' has invalid key_type {self.key_type!r}")
            if self.value_type is None:
                raise ValueError(f"Map field '{self.name}' requires value_type")
            if (self.value_type == "message") != (self.value_message_type is not None):
                raise ValueError(
                    f"Map field '{self.name}': value_message_type is required exactly when value_type is 'message'"
                )
        else:
            if self.type is None:
                raise ValueError(f"Field '{self.name}' requires a type")
            if self.key_type or self.value_type or self.value_message_type:
                raise ValueError(f"Only map fields may declare key_type/value_type ('{self.name}')")
            if (self.type == "message") != (self.message_type is not None):
                raise ValueError(
                    f"Field '{self.name}': message_type is required exactly when type is 'message'"
                )

        if self.packed and not (self.cardinality == "repeated" and self.type in PACKABLE_TYPES):
            raise ValueError(f"Field '{self.name}': packed is only valid on repeated numeric scalar fields")
        if self.oneof is not None and self.cardinality != "singular":
            raise ValueError(f"Field '{self.name}': only singular fields can belong to a oneof")
        return self

    @property
    def wire_type(self) -> int:
        """Wire type of one element occurrence."""
        if self.cardinality == "map":
            return WIRE_LEN
        return wire_type_for(self.type)

    @property
    def is_packed(self) -> bool:
        if self.cardinality != "repeated" or self.type not in PACKABLE_TYPES:
            return False
        return self.packed is not False

    @property
    def is_lazy(self) -> bool:
        """True when occurrences are kept as raw spans rather than decoded."""
        return self.cardinality != "singular" or self.type == "message"

    def accepts_wire_type(self, wire_type: int) -> bool:
        if self.cardinality == "map":
            return wire_type == WIRE_LEN
        return wire_type in element_wire_types(self.type, self.cardinality == "repeated")


class MessageSchema(BaseModel):
    """Fixed set of field descriptors for one message type."""
    name: str
    fields: Tuple[FieldDescriptor, ...] = ()

    model_config = ConfigDict(frozen=True, extra="forbid")

    _by_number: Dict[int, FieldDescriptor] = PrivateAttr(default_factory=dict)
    _by_name: Dict[str, FieldDescriptor] = PrivateAttr(default_factory=dict)
    _oneofs: Dict[str, Tuple[int, ...]] = PrivateAttr(default_factory=dict)
    _fingerprint: str = PrivateAttr(default="")

    @model_validator(mode="after")
    def validate_unique(self) -> "MessageSchema":
        numbers = [f.number for f in self.fields]
        names = [f.name for f in self.fields]
        duplicate_numbers = sorted({n for n in numbers if numbers.count(n) > 1})
        duplicate_names = sorted({n for n in names if names.count(n) > 1})
        if duplicate_numbers:
            raise ValueError(f"Duplicate field numbers in '{self.name}': {duplicate_numbers}")
        if duplicate_names:
            raise ValueError(f"Duplicate field names in '{self.name}': {duplicate_names}")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._by_number = {f.number: f for f in self.fields}
        self._by_name = {f.name: f for f in self.fields}
        oneofs: Dict[str, list] = {}
        for f in sorted(self.fields, key=lambda f: f.number):
            if f.oneof is not None:
                oneofs.setdefault(f.oneof, []).append(f.number)
        self._oneofs = {name: tuple(members) for name, members in oneofs.items()}
        self._fingerprint = hash_canonical({
            "fields": [
                {
                    **f.model_dump(mode="json", exclude={"name", "packed"}, exclude_none=True),
                    "packed": f.is_packed,
                }
                for f in sorted(self.fields, key=lambda f: f.number)
            ]
        })

    def field(self, number: int) -> Optional[FieldDescriptor]:
        """Get field descriptor by number (None for unknown fields)."""
        return self._by_number.get(number)

    def field_by_name(self, name: str) -> Optional[FieldDescriptor]:
        """Get field descriptor by name."""
        return self._by_name.get(name)

    def resolve(self, field: "int | str") -> Optional[FieldDescriptor]:
        """Get field descriptor by number or name."""
        if isinstance(field, str):
            return self._by_name.get(field)
        return self._by_number.get(field)

    def field_numbers(self) -> Tuple[int, ...]:
        """All known field numbers, ascending."""
        return tuple(sorted(self._by_number))

    def oneof_members(self, oneof: str) -> Tuple[int, ...]:
        """Field numbers belonging to a oneof group, ascending."""
        return self._oneofs.get(oneof, ())

    def oneof_groups(self) -> Dict[str, Tuple[int, ...]]:
        return dict(self._oneofs)

    def fingerprint(self) -> str:
        """Stable digest of the wire-relevant shape of this schema.

        Message and field names are excluded: two schemas with the same
        numbers, types and cardinalities produce identical wire data.

        Only this message's own fields are covered. Nested message types
        enter by name, not by layout, so two registries whose same-named
        nested messages differ still give equal fingerprints here.
        """
        return self._fingerprint


class SchemaRegistry(BaseModel):
    """Set of message schemas that can reference each other by name."""
    messages: Tuple[MessageSchema, ...]

    model_config = ConfigDict(frozen=True, extra="forbid")

    _by_name: Dict[str, MessageSchema] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def validate_references(self) -> "SchemaRegistry":
        names = [m.name for m in self.messages]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate message names: {duplicates}")
        known = set(names)
        missing = set()
        for message in self.messages:
            for f in message.fields:
                for ref in (f.message_type, f.value_message_type):
                    if ref is not None and ref not in known:
                        missing.add(f"{message.name}.{f.name} -> {ref}")
        if missing:
            raise ValueError(f"Unresolved message types: {sorted(missing)}")
        return self

    def model_post_init(self, __context: Any) -> None:
        self._by_name = {m.name: m for m in self.messages}

    def get(self, name: str) -> MessageSchema:
        """Get message schema by name.

        Raises:
            SchemaDefinitionError: If no message with that name is registered
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise SchemaDefinitionError(f"Unknown message type: {name}") from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._by_name))

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "SchemaRegistry":
        """Load a schema registry from JSON bytes (pure, no I/O)."""
        payload = json.loads(data)
        return cls(**payload)
