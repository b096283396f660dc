"""Exceptions raised while turning descriptor payloads into a schema tree."""

from __future__ import annotations


class ProtodumpError(ValueError):
    """Base class for all protodump failures."""


class DecodeError(ProtodumpError):
    """The payload is not a valid serialized ``FileDescriptorProto``."""


class ResolutionError(ProtodumpError):
    """The decoded descriptor cannot be resolved into a navigable tree."""


__all__ = ["ProtodumpError", "DecodeError", "ResolutionError"]
