from __future__ import annotations

import pytest

pytest.importorskip("google.protobuf")

from google.protobuf import descriptor_pb2
from google.protobuf import message as protobuf_message

from protodump import model
from protodump.descriptor_loader import DescriptorLoader, parse_file_descriptor
from protodump.errors import DecodeError, ResolutionError


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "example.proto"
    file_proto.package = "example.pkg"
    file_proto.syntax = "proto3"
    file_proto.options.java_multiple_files = True
    file_proto.options.go_package = "example.com/pkg;pkg"
    file_proto.dependency.extend(["a.proto", "b.proto"])
    file_proto.public_dependency.append(0)

    color_enum = file_proto.enum_type.add()
    color_enum.name = "Color"
    red_value = color_enum.value.add()
    red_value.name = "COLOR_RED"
    red_value.number = 1

    thing_msg = file_proto.message_type.add()
    thing_msg.name = "Thing"
    thing_msg.reserved_range.add(start=10, end=20)
    thing_msg.reserved_name.append("legacy")

    map_entry = thing_msg.nested_type.add()
    map_entry.name = "LabelsEntry"
    map_entry.options.map_entry = True
    map_key = map_entry.field.add()
    map_key.name = "key"
    map_key.number = 1
    map_key.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    map_key.type = descriptor_pb2.FieldDescriptorProto.TYPE_STRING
    map_value = map_entry.field.add()
    map_value.name = "value"
    map_value.number = 2
    map_value.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    map_value.type = descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE
    map_value.type_name = ".example.pkg.Meta"

    labels_field = thing_msg.field.add()
    labels_field.name = "labels"
    labels_field.number = 1
    labels_field.label = descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED
    labels_field.type = descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE
    labels_field.type_name = ".example.pkg.Thing.LabelsEntry"

    color_field = thing_msg.field.add()
    color_field.name = "color"
    color_field.number = 2
    color_field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    color_field.type = descriptor_pb2.FieldDescriptorProto.TYPE_ENUM
    color_field.type_name = ".example.pkg.Color"
    color_field.json_name = "colour"

    thing_msg.oneof_decl.add(name="_name")
    thing_msg.oneof_decl.add(name="selection")

    name_field = thing_msg.field.add()
    name_field.name = "name"
    name_field.number = 3
    name_field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    name_field.type = descriptor_pb2.FieldDescriptorProto.TYPE_STRING
    name_field.oneof_index = 0
    name_field.proto3_optional = True

    meta_message = file_proto.message_type.add()
    meta_message.name = "Meta"

    meta_field = thing_msg.field.add()
    meta_field.name = "meta"
    meta_field.number = 4
    meta_field.label = descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL
    meta_field.type = descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE
    meta_field.type_name = ".example.pkg.Meta"
    meta_field.oneof_index = 1

    service = file_proto.service.add()
    service.name = "Things"
    service.method.add(
        name="Watch",
        input_type=".example.pkg.Meta",
        output_type=".example.pkg.Thing",
        server_streaming=True,
    )

    return file_proto


def test_descriptor_loader_builds_intermediate_model() -> None:
    proto_file = DescriptorLoader(_build_file()).load()

    assert proto_file.name == "example.proto"
    assert proto_file.package == "example.pkg"
    assert proto_file.syntax is model.Syntax.PROTO3
    assert proto_file.options.java_multiple_files is True
    assert proto_file.options.go_package == "example.com/pkg;pkg"
    assert proto_file.options.java_package is None
    assert proto_file.imports == [
        model.Import(path="a.proto", public=True),
        model.Import(path="b.proto"),
    ]

    assert [message.full_name for message in proto_file.messages] == [
        "example.pkg.Thing",
        "example.pkg.Meta",
    ]
    thing = proto_file.messages[0]
    assert thing.nested_messages == []
    assert thing.reserved_ranges == [(10, 20)]
    assert thing.reserved_names == ["legacy"]

    labels_field = thing.fields[0]
    assert labels_field.kind is model.FieldKind.MAP
    assert labels_field.cardinality is model.FieldCardinality.SINGULAR
    assert labels_field.type_name is None
    assert labels_field.map_entry == model.MapEntry(
        key_kind=model.FieldKind.SCALAR,
        key_scalar="string",
        value_kind=model.FieldKind.MESSAGE,
        value_type_name="example.pkg.Meta",
    )

    color_field = thing.fields[1]
    assert color_field.kind is model.FieldKind.ENUM
    assert color_field.type_name == "example.pkg.Color"
    assert color_field.json_name == "colour"
    assert color_field.has_optional_keyword is False
    assert color_field.containing_oneof is None

    name_field = thing.fields[2]
    assert name_field.proto3_optional is True
    assert name_field.has_optional_keyword is True

    synthetic, selection = thing.oneofs
    assert synthetic.synthetic is True
    assert synthetic.fields == [name_field]
    assert name_field.containing_oneof is synthetic
    assert selection.synthetic is False
    assert selection.name == "selection"
    assert thing.fields[3].containing_oneof is selection

    assert proto_file.enums[0].full_name == "example.pkg.Color"
    assert proto_file.enums[0].values == [model.EnumValue(name="COLOR_RED", number=1)]

    method = proto_file.services[0].methods[0]
    assert method.input_type == "example.pkg.Meta"
    assert method.output_type == "example.pkg.Thing"
    assert method.client_streaming is False
    assert method.server_streaming is True


def test_load_is_cached() -> None:
    loader = DescriptorLoader(_build_file())

    assert loader.load() is loader.load()


def test_proto2_singular_fields_get_optional_keyword() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "legacy.proto"
    message = file_proto.message_type.add()
    message.name = "Legacy"
    message.oneof_decl.add(name="choice")
    message.field.add(
        name="plain",
        number=1,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32,
    )
    message.field.add(
        name="member",
        number=2,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32,
        oneof_index=0,
    )
    message.field.add(
        name="needed",
        number=3,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_REQUIRED,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32,
    )

    proto_file = DescriptorLoader(file_proto).load()
    plain, member, needed = proto_file.messages[0].fields

    assert proto_file.syntax is model.Syntax.PROTO2
    assert plain.has_optional_keyword is True
    assert member.has_optional_keyword is False
    assert needed.has_optional_keyword is False
    assert needed.cardinality is model.FieldCardinality.REQUIRED
    assert proto_file.messages[0].oneofs[0].synthetic is False


def test_untyped_references_resolve_against_local_types() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "untyped.proto"
    file_proto.package = "pkg"
    holder = file_proto.message_type.add()
    holder.name = "Holder"
    holder.field.add(name="state", number=1, type_name=".pkg.State")
    holder.field.add(name="remote", number=2, type_name=".other.Remote")
    state = file_proto.enum_type.add()
    state.name = "State"
    state.value.add(name="IDLE", number=0)

    state_field, remote_field = DescriptorLoader(file_proto).load().messages[0].fields

    assert state_field.kind is model.FieldKind.ENUM
    assert state_field.type_name == "pkg.State"
    assert remote_field.kind is model.FieldKind.MESSAGE
    assert remote_field.type_name == "other.Remote"


def test_group_fields_are_loaded_as_message_references(caplog) -> None:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "group.proto"
    outer = file_proto.message_type.add()
    outer.name = "Outer"
    inner = outer.nested_type.add()
    inner.name = "Result"
    outer.field.add(
        name="result",
        number=1,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_GROUP,
        type_name=".Outer.Result",
    )

    with caplog.at_level("WARNING", logger="protodump.descriptor_loader"):
        field = DescriptorLoader(file_proto).load().messages[0].fields[0]

    assert field.kind is model.FieldKind.MESSAGE
    assert field.type_name == "Outer.Result"
    assert "Group field 'result'" in caplog.text


def test_parse_file_descriptor_wraps_decode_errors() -> None:
    with pytest.raises(DecodeError) as excinfo:
        parse_file_descriptor(b"\x0a\x05ab")

    assert isinstance(excinfo.value.__cause__, protobuf_message.DecodeError)


def test_from_bytes_round_trips_serialized_descriptor() -> None:
    file_proto = _build_file()
    loader = DescriptorLoader.from_bytes(file_proto.SerializeToString())

    assert loader.file_proto == file_proto


def test_unsupported_syntax_raises_resolution_error() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="new.proto", syntax="editions")

    with pytest.raises(ResolutionError, match="editions"):
        DescriptorLoader(file_proto).load()


def test_public_dependency_out_of_range() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="deps.proto", dependency=["a.proto"])
    file_proto.public_dependency.append(3)

    with pytest.raises(ResolutionError, match="out of range"):
        DescriptorLoader(file_proto).load()


def test_missing_oneof_raises_resolution_error() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="oneof.proto")
    message = file_proto.message_type.add(name="Broken")
    message.field.add(
        name="orphan",
        number=1,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32,
        oneof_index=2,
    )

    with pytest.raises(ResolutionError, match="missing oneof"):
        DescriptorLoader(file_proto).load()


def test_duplicate_field_numbers_raise_resolution_error() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="dupes.proto")
    message = file_proto.message_type.add(name="Dupes")
    message.field.add(name="a", number=1, type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32)
    message.field.add(name="b", number=1, type=descriptor_pb2.FieldDescriptorProto.TYPE_INT32)

    with pytest.raises(ResolutionError, match="share number 1"):
        DescriptorLoader(file_proto).load()


def test_malformed_map_entry_raises_resolution_error() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="map.proto")
    message = file_proto.message_type.add(name="Holder")
    entry = message.nested_type.add(name="ItemsEntry")
    entry.options.map_entry = True
    entry.field.add(name="key", number=1, type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING)
    message.field.add(
        name="items",
        number=1,
        label=descriptor_pb2.FieldDescriptorProto.LABEL_REPEATED,
        type=descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE,
        type_name=".Holder.ItemsEntry",
    )

    with pytest.raises(ResolutionError, match="ItemsEntry"):
        DescriptorLoader(file_proto).load()


def test_field_without_type_information_raises_resolution_error() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto(name="empty.proto")
    message = file_proto.message_type.add(name="Empty")
    message.field.add(name="mystery", number=1)

    with pytest.raises(ResolutionError, match="has no type"):
        DescriptorLoader(file_proto).load()
