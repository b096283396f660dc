from __future__ import annotations

"""Utilities to convert FileDescriptorProto payloads into model dataclasses."""

import logging
from dataclasses import fields as dataclass_fields
from typing import Dict, List, Optional, Tuple

from google.protobuf import descriptor_pb2
from google.protobuf import json_format
from google.protobuf import message as protobuf_message

from . import model
from .errors import DecodeError, ResolutionError
from .naming import qualify_name, strip_leading_dot

logger = logging.getLogger(__name__)

OptionDict = Dict[str, object]

_FieldProto = descriptor_pb2.FieldDescriptorProto

_FILE_OPTION_NAMES = frozenset(option.name for option in dataclass_fields(model.FileOptions))


def parse_file_descriptor(payload: bytes) -> descriptor_pb2.FileDescriptorProto:
    """Decode *payload* as a serialized ``FileDescriptorProto``.

    Raises :class:`~protodump.errors.DecodeError` chained from the protobuf
    runtime error when the bytes do not form a valid record.
    """

    if isinstance(payload, (bytearray, memoryview)):
        payload = bytes(payload)

    file_proto = descriptor_pb2.FileDescriptorProto()
    try:
        file_proto.ParseFromString(payload)
    except (protobuf_message.DecodeError, TypeError) as exc:
        raise DecodeError(f"Couldn't decode FileDescriptorProto: {exc}") from exc
    return file_proto


class DescriptorLoader:
    """Load a FileDescriptorProto message into higher level dataclasses."""

    def __init__(self, file_proto: descriptor_pb2.FileDescriptorProto) -> None:
        self._file_proto = file_proto
        self._syntax = model.Syntax.PROTO2
        self._type_kinds: Dict[str, model.FieldKind] = {}
        self._map_entry_descriptors: Dict[str, descriptor_pb2.DescriptorProto] = {}
        self._loaded: Optional[model.ProtoFile] = None

    @classmethod
    def from_bytes(cls, payload: bytes) -> "DescriptorLoader":
        """Create a loader for a serialized ``FileDescriptorProto``."""

        return cls(parse_file_descriptor(payload))

    @property
    def file_proto(self) -> descriptor_pb2.FileDescriptorProto:
        return self._file_proto

    def load(self) -> model.ProtoFile:
        """Resolve the descriptor into a :class:`~protodump.model.ProtoFile`.

        Subsequent calls return the cached result.
        """

        if self._loaded is None:
            self._loaded = self._convert_file(self._file_proto)
        return self._loaded

    def _convert_file(self, file_proto: descriptor_pb2.FileDescriptorProto) -> model.ProtoFile:
        self._syntax = self._resolve_syntax(file_proto)
        package = file_proto.package
        self._index_types(file_proto.message_type, file_proto.enum_type, package, [])

        proto_file = model.ProtoFile(
            name=file_proto.name,
            package=package,
            syntax=self._syntax,
            imports=self._convert_imports(file_proto),
            options=self._convert_file_options(file_proto),
        )

        for message_proto in file_proto.message_type:
            proto_file.messages.append(self._convert_message(message_proto, package, []))

        for enum_proto in file_proto.enum_type:
            proto_file.enums.append(self._convert_enum(enum_proto, package, []))

        for service_proto in file_proto.service:
            proto_file.services.append(self._convert_service(service_proto))

        return proto_file

    def _resolve_syntax(self, file_proto: descriptor_pb2.FileDescriptorProto) -> model.Syntax:
        declared = file_proto.syntax or model.Syntax.PROTO2.value
        try:
            return model.Syntax(declared)
        except ValueError as exc:
            raise ResolutionError(
                f"Unsupported syntax '{declared}' in {file_proto.name or '<unnamed>'}"
            ) from exc

    def _index_types(
        self,
        message_protos,
        enum_protos,
        package: str,
        parents: List[str],
    ) -> None:
        for enum_proto in enum_protos:
            full_name = qualify_name(package, parents, enum_proto.name)
            self._type_kinds[full_name] = model.FieldKind.ENUM

        for message_proto in message_protos:
            full_name = qualify_name(package, parents, message_proto.name)
            self._type_kinds[full_name] = model.FieldKind.MESSAGE
            if message_proto.options.map_entry:
                self._map_entry_descriptors[full_name] = message_proto
            self._index_types(
                message_proto.nested_type,
                message_proto.enum_type,
                package,
                parents + [message_proto.name],
            )

    def _convert_imports(self, file_proto: descriptor_pb2.FileDescriptorProto) -> List[model.Import]:
        dependencies = list(file_proto.dependency)
        public = set(file_proto.public_dependency)
        weak = set(file_proto.weak_dependency)

        for index in sorted(public | weak):
            if not 0 <= index < len(dependencies):
                raise ResolutionError(
                    f"Dependency index {index} is out of range in {file_proto.name}"
                )

        return [
            model.Import(path=path, public=index in public, weak=index in weak)
            for index, path in enumerate(dependencies)
        ]

    def _convert_file_options(
        self, file_proto: descriptor_pb2.FileDescriptorProto
    ) -> model.FileOptions:
        if not file_proto.HasField("options"):
            return model.FileOptions()

        normalized = self._message_to_dict(file_proto.options)
        supported = {}
        for key, value in normalized.items():
            if key in _FILE_OPTION_NAMES:
                supported[key] = value
            else:
                logger.debug("Ignoring unsupported file option '%s' in %s", key, file_proto.name)
        return model.FileOptions(**supported)

    def _convert_enum(
        self,
        enum_proto: descriptor_pb2.EnumDescriptorProto,
        package: str,
        parents: List[str],
    ) -> model.Enum:
        enum = model.Enum(
            name=enum_proto.name,
            full_name=qualify_name(package, parents, enum_proto.name),
            reserved_ranges=[(r.start, r.end) for r in enum_proto.reserved_range],
            reserved_names=list(enum_proto.reserved_name),
            allow_alias=enum_proto.options.allow_alias,
        )
        for value_proto in enum_proto.value:
            enum.values.append(model.EnumValue(name=value_proto.name, number=value_proto.number))
        return enum

    def _convert_message(
        self,
        message_proto: descriptor_pb2.DescriptorProto,
        package: str,
        parents: List[str],
    ) -> model.Message:
        full_name = qualify_name(package, parents, message_proto.name)
        message = model.Message(
            name=message_proto.name,
            full_name=full_name,
            reserved_names=list(message_proto.reserved_name),
            reserved_ranges=[(r.start, r.end) for r in message_proto.reserved_range],
        )

        for oneof_proto in message_proto.oneof_decl:
            message.oneofs.append(model.Oneof(name=oneof_proto.name))

        parents_chain = parents + [message_proto.name]

        for nested_proto in message_proto.nested_type:
            if nested_proto.options.map_entry:
                continue
            message.nested_messages.append(
                self._convert_message(nested_proto, package, parents_chain)
            )

        for enum_proto in message_proto.enum_type:
            message.nested_enums.append(self._convert_enum(enum_proto, package, parents_chain))

        seen_numbers: Dict[int, str] = {}
        for field_proto in message_proto.field:
            field = self._convert_field(field_proto, message)
            previous = seen_numbers.get(field.number)
            if previous is not None:
                raise ResolutionError(
                    f"Fields '{previous}' and '{field.name}' in {full_name} "
                    f"share number {field.number}"
                )
            seen_numbers[field.number] = field.name
            message.fields.append(field)

        for field in message.fields:
            if field.oneof_index is not None:
                oneof = message.oneofs[field.oneof_index]
                oneof.fields.append(field)
                field.containing_oneof = oneof

        for oneof in message.oneofs:
            oneof.synthetic = (
                self._syntax is model.Syntax.PROTO3
                and len(oneof.fields) == 1
                and oneof.fields[0].proto3_optional
            )

        return message

    def _convert_field(
        self,
        field_proto: descriptor_pb2.FieldDescriptorProto,
        message: model.Message,
    ) -> model.Field:
        cardinality = _CARDINALITIES.get(field_proto.label)
        if cardinality is None:
            raise ResolutionError(
                f"Field '{field_proto.name}' in {message.full_name} has unknown label {field_proto.label}"
            )

        oneof_index = field_proto.oneof_index if field_proto.HasField("oneof_index") else None
        if oneof_index is not None and not 0 <= oneof_index < len(message.oneofs):
            raise ResolutionError(
                f"Field '{field_proto.name}' in {message.full_name} "
                f"references missing oneof #{oneof_index}"
            )

        has_optional_keyword = field_proto.proto3_optional or (
            self._syntax is model.Syntax.PROTO2
            and cardinality is model.FieldCardinality.SINGULAR
            and oneof_index is None
        )

        kind, scalar, type_name = self._classify_field_type(field_proto, message)

        map_entry = None
        if (
            kind is model.FieldKind.MESSAGE
            and cardinality is model.FieldCardinality.REPEATED
            and type_name in self._map_entry_descriptors
        ):
            map_entry = self._build_map_entry(type_name, message)
            kind = model.FieldKind.MAP
            scalar = None
            type_name = None
            cardinality = model.FieldCardinality.SINGULAR

        return model.Field(
            name=field_proto.name,
            number=field_proto.number,
            cardinality=cardinality,
            kind=kind,
            scalar=scalar,
            type_name=type_name,
            map_entry=map_entry,
            default_value=(
                field_proto.default_value if field_proto.HasField("default_value") else None
            ),
            json_name=field_proto.json_name if field_proto.HasField("json_name") else None,
            oneof_index=oneof_index,
            proto3_optional=field_proto.proto3_optional,
            has_optional_keyword=has_optional_keyword,
        )

    def _build_map_entry(self, type_name: str, message: model.Message) -> model.MapEntry:
        descriptor = self._map_entry_descriptors[type_name]
        by_number = {field_proto.number: field_proto for field_proto in descriptor.field}
        if len(descriptor.field) != 2 or set(by_number) != {1, 2}:
            raise ResolutionError(
                f"Map entry '{type_name}' must declare exactly a key (1) and a value (2) field"
            )

        key_kind, key_scalar, key_type_name = self._classify_field_type(by_number[1], message)
        if key_kind is not model.FieldKind.SCALAR:
            raise ResolutionError(f"Map entry '{type_name}' has a non-scalar key")
        value_kind, value_scalar, value_type_name = self._classify_field_type(
            by_number[2], message
        )

        return model.MapEntry(
            key_kind=key_kind,
            key_scalar=key_scalar,
            key_type_name=key_type_name,
            value_kind=value_kind,
            value_scalar=value_scalar,
            value_type_name=value_type_name,
        )

    def _classify_field_type(
        self,
        field_proto: descriptor_pb2.FieldDescriptorProto,
        message: model.Message,
    ) -> Tuple[model.FieldKind, Optional[str], Optional[str]]:
        type_name = strip_leading_dot(field_proto.type_name)

        if not field_proto.HasField("type"):
            if not type_name:
                raise ResolutionError(
                    f"Field '{field_proto.name}' in {message.full_name} has no type"
                )
            return self._lookup_kind(type_name), None, type_name

        field_type = field_proto.type
        if field_type in _SCALAR_TYPE_NAMES:
            return model.FieldKind.SCALAR, _SCALAR_TYPE_NAMES[field_type], None
        if field_type == _FieldProto.TYPE_ENUM:
            return model.FieldKind.ENUM, None, type_name
        if field_type == _FieldProto.TYPE_MESSAGE:
            return model.FieldKind.MESSAGE, None, type_name
        if field_type == _FieldProto.TYPE_GROUP:
            logger.warning(
                "Group field '%s' in %s is rendered as a plain message field",
                field_proto.name,
                message.full_name,
            )
            return model.FieldKind.MESSAGE, None, type_name
        raise ResolutionError(
            f"Unsupported type {field_type} for field '{field_proto.name}' in {message.full_name}"
        )

    def _lookup_kind(self, type_name: str) -> model.FieldKind:
        kind = self._type_kinds.get(type_name)
        if kind is None:
            logger.debug("Type '%s' is not declared locally; assuming a message", type_name)
            return model.FieldKind.MESSAGE
        return kind

    def _convert_service(self, service_proto: descriptor_pb2.ServiceDescriptorProto) -> model.Service:
        service = model.Service(name=service_proto.name)
        for method_proto in service_proto.method:
            service.methods.append(
                model.Method(
                    name=method_proto.name,
                    input_type=strip_leading_dot(method_proto.input_type),
                    output_type=strip_leading_dot(method_proto.output_type),
                    client_streaming=method_proto.client_streaming,
                    server_streaming=method_proto.server_streaming,
                )
            )
        return service

    def _message_to_dict(self, message: protobuf_message.Message) -> OptionDict:
        """Convert a protobuf message to a dictionary handling protobuf version differences."""

        kwargs = {
            "preserving_proto_field_name": True,
            "including_default_value_fields": False,
        }
        try:
            return json_format.MessageToDict(message, **kwargs)
        except TypeError:
            kwargs.pop("including_default_value_fields")
            return json_format.MessageToDict(message, **kwargs)


_CARDINALITIES: Dict[int, model.FieldCardinality] = {
    _FieldProto.LABEL_OPTIONAL: model.FieldCardinality.SINGULAR,
    _FieldProto.LABEL_REQUIRED: model.FieldCardinality.REQUIRED,
    _FieldProto.LABEL_REPEATED: model.FieldCardinality.REPEATED,
}


_SCALAR_TYPE_NAMES: Dict[int, str] = {
    _FieldProto.TYPE_DOUBLE: "double",
    _FieldProto.TYPE_FLOAT: "float",
    _FieldProto.TYPE_INT64: "int64",
    _FieldProto.TYPE_UINT64: "uint64",
    _FieldProto.TYPE_INT32: "int32",
    _FieldProto.TYPE_FIXED64: "fixed64",
    _FieldProto.TYPE_FIXED32: "fixed32",
    _FieldProto.TYPE_BOOL: "bool",
    _FieldProto.TYPE_STRING: "string",
    _FieldProto.TYPE_BYTES: "bytes",
    _FieldProto.TYPE_UINT32: "uint32",
    _FieldProto.TYPE_SFIXED32: "sfixed32",
    _FieldProto.TYPE_SFIXED64: "sfixed64",
    _FieldProto.TYPE_SINT32: "sint32",
    _FieldProto.TYPE_SINT64: "sint64",
}
