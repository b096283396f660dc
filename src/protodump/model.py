from __future__ import annotations

"""Dataclasses representing a resolved protobuf schema file."""

from dataclasses import dataclass, field
from enum import Enum as _Enum
from typing import List, Optional


class Syntax(str, _Enum):
    """Schema dialect declared by the ``syntax`` statement."""

    PROTO2 = "proto2"
    PROTO3 = "proto3"


class FieldCardinality(str, _Enum):
    """Cardinality for message fields."""

    SINGULAR = "singular"
    REQUIRED = "required"
    REPEATED = "repeated"


class FieldKind(str, _Enum):
    """Different underlying kinds for a field."""

    SCALAR = "scalar"
    ENUM = "enum"
    MESSAGE = "message"
    MAP = "map"


class OneofContext(str, _Enum):
    """Structural position a field is rendered from."""

    NOT_IN_ONEOF = "not_in_oneof"
    IN_ONEOF = "in_oneof"
    IN_SYNTHETIC_ONEOF = "in_synthetic_oneof"


@dataclass(slots=True)
class MapEntry:
    """Normalized representation for protobuf map fields."""

    key_kind: FieldKind
    key_scalar: Optional[str] = None
    key_type_name: Optional[str] = None
    value_kind: FieldKind = FieldKind.SCALAR
    value_scalar: Optional[str] = None
    value_type_name: Optional[str] = None


@dataclass(slots=True)
class Field:
    """Represents a message field.

    ``type_name`` is the fully-qualified name without the leading dot and is
    only set for message and enum fields. ``default_value`` keeps the
    descriptor's string form: enum defaults hold the member name.
    """

    name: str
    number: int
    cardinality: FieldCardinality
    kind: FieldKind
    scalar: Optional[str] = None
    type_name: Optional[str] = None
    map_entry: Optional[MapEntry] = None
    default_value: Optional[str] = None
    json_name: Optional[str] = None
    oneof_index: Optional[int] = None
    proto3_optional: bool = False
    has_optional_keyword: bool = False
    containing_oneof: Optional[Oneof] = field(default=None, repr=False, compare=False)


@dataclass(slots=True)
class EnumValue:
    """Represents a value within an enum."""

    name: str
    number: int


@dataclass(slots=True)
class Enum:
    """Represents an enum type.

    Reserved ranges are inclusive on both ends, as stored by protoc.
    """

    name: str
    full_name: str
    values: List[EnumValue] = field(default_factory=list)
    reserved_ranges: List[tuple[int, int]] = field(default_factory=list)
    reserved_names: List[str] = field(default_factory=list)
    allow_alias: bool = False


@dataclass(slots=True)
class Oneof:
    """Represents a oneof declaration."""

    name: str
    fields: List[Field] = field(default_factory=list)
    synthetic: bool = False


@dataclass(slots=True)
class Message:
    """Represents a message type.

    Reserved ranges are ``(start, end)`` pairs with an exclusive end.
    """

    name: str
    full_name: str
    fields: List[Field] = field(default_factory=list)
    nested_messages: List[Message] = field(default_factory=list)
    nested_enums: List[Enum] = field(default_factory=list)
    oneofs: List[Oneof] = field(default_factory=list)
    reserved_names: List[str] = field(default_factory=list)
    reserved_ranges: List[tuple[int, int]] = field(default_factory=list)


@dataclass(slots=True)
class Method:
    """Represents an RPC method."""

    name: str
    input_type: str
    output_type: str
    client_streaming: bool = False
    server_streaming: bool = False


@dataclass(slots=True)
class Service:
    """Represents a service declaration."""

    name: str
    methods: List[Method] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Import:
    """A dependency of the file."""

    path: str
    public: bool = False
    weak: bool = False


@dataclass(slots=True)
class FileOptions:
    """Scalar file-level options. ``None`` means the option is not set."""

    java_package: Optional[str] = None
    java_outer_classname: Optional[str] = None
    java_multiple_files: Optional[bool] = None
    java_generate_equals_and_hash: Optional[bool] = None
    java_string_check_utf8: Optional[bool] = None
    optimize_for: Optional[str] = None
    go_package: Optional[str] = None
    cc_generic_services: Optional[bool] = None
    java_generic_services: Optional[bool] = None
    py_generic_services: Optional[bool] = None
    deprecated: Optional[bool] = None
    cc_enable_arenas: Optional[bool] = None
    objc_class_prefix: Optional[str] = None
    csharp_namespace: Optional[str] = None
    swift_prefix: Optional[str] = None
    php_class_prefix: Optional[str] = None
    php_namespace: Optional[str] = None
    php_metadata_namespace: Optional[str] = None
    ruby_package: Optional[str] = None


@dataclass(slots=True)
class ProtoFile:
    """Represents a protobuf file and its declarations."""

    name: str
    package: str = ""
    syntax: Syntax = Syntax.PROTO2
    imports: List[Import] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    enums: List[Enum] = field(default_factory=list)
    services: List[Service] = field(default_factory=list)
    options: FileOptions = field(default_factory=FileOptions)
