"""protodump package initialization."""

from __future__ import annotations

from . import model
from .errors import DecodeError, ProtodumpError, ResolutionError

__all__ = [
    "DecodeError",
    "DescriptorLoader",
    "PrinterConfig",
    "ProtoDefinition",
    "ProtodumpError",
    "ResolutionError",
    "SchemaPrinter",
    "from_bytes",
    "from_descriptor",
    "model",
    "render",
]


def __getattr__(name: str):
    if name == "DescriptorLoader":
        from .descriptor_loader import DescriptorLoader

        return DescriptorLoader

    if name == "PrinterConfig":
        from .config import PrinterConfig

        return PrinterConfig

    if name == "SchemaPrinter":
        from .printer import SchemaPrinter

        return SchemaPrinter

    if name in {"ProtoDefinition", "from_bytes", "from_descriptor", "render"}:
        from .dump import ProtoDefinition, from_bytes, from_descriptor, render

        mapping = {
            "ProtoDefinition": ProtoDefinition,
            "from_bytes": from_bytes,
            "from_descriptor": from_descriptor,
            "render": render,
        }
        return mapping[name]

    raise AttributeError(name)
