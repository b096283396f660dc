"""Entry points that turn descriptor payloads into ``.proto`` source text."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from google.protobuf import descriptor_pb2

from . import model
from .config import PrinterConfig
from .descriptor_loader import DescriptorLoader, parse_file_descriptor
from .naming import suggested_filename
from .printer import SchemaPrinter

DescriptorInput = Union[bytes, bytearray, descriptor_pb2.FileDescriptorProto, model.ProtoFile]


@dataclass(frozen=True, slots=True)
class ProtoDefinition:
    """Reconstructed source for a single schema file."""

    proto_file: model.ProtoFile
    text: str

    @property
    def filename(self) -> str:
        """Suggested output path, derived from the ``go_package`` option when present."""

        return suggested_filename(self.proto_file)

    def __str__(self) -> str:
        return self.text


def from_descriptor(
    file_proto: descriptor_pb2.FileDescriptorProto,
    config: Optional[PrinterConfig] = None,
) -> ProtoDefinition:
    """Resolve *file_proto* and render it.

    Raises :class:`~protodump.errors.ResolutionError` before any text is
    produced when the descriptor is structurally inconsistent.
    """

    proto_file = DescriptorLoader(file_proto).load()
    return ProtoDefinition(proto_file=proto_file, text=SchemaPrinter(proto_file, config).render())


def from_bytes(payload: bytes, config: Optional[PrinterConfig] = None) -> ProtoDefinition:
    """Decode a serialized ``FileDescriptorProto`` and render it."""

    return from_descriptor(parse_file_descriptor(payload), config)


def render(descriptor: DescriptorInput, config: Optional[PrinterConfig] = None) -> str:
    """Return the ``.proto`` source text for *descriptor*.

    *descriptor* may be serialized bytes, a ``FileDescriptorProto`` or an
    already resolved :class:`~protodump.model.ProtoFile`.
    """

    if isinstance(descriptor, model.ProtoFile):
        return SchemaPrinter(descriptor, config).render()
    if isinstance(descriptor, descriptor_pb2.FileDescriptorProto):
        return from_descriptor(descriptor, config).text
    return from_bytes(descriptor, config).text


__all__ = ["DescriptorInput", "ProtoDefinition", "from_bytes", "from_descriptor", "render"]
