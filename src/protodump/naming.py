"""Name helpers shared by the loader and the printer."""

from __future__ import annotations

import posixpath
from typing import Iterable, Optional

from . import model


def qualify_name(package: Optional[str], parents: Iterable[str], name: str) -> str:
    """Join *package*, the enclosing type names and *name* with dots."""

    segments = [package or "", *parents, name]
    return ".".join(segment for segment in segments if segment)


def strip_leading_dot(type_name: str) -> str:
    if not type_name:
        return type_name
    return type_name[1:] if type_name.startswith(".") else type_name


def absolute_type_name(full_name: str) -> str:
    """Return *full_name* with a leading dot so it resolves from the root scope."""

    return "." + strip_leading_dot(full_name)


def default_json_name(field_name: str) -> str:
    """Compute the JSON name protoc derives for *field_name*.

    Underscores are dropped and the character following each one is upper-cased.
    """

    result = []
    capitalize_next = False
    for char in field_name:
        if char == "_":
            capitalize_next = True
        elif capitalize_next:
            result.append(char.upper())
            capitalize_next = False
        else:
            result.append(char)
    return "".join(result)


def suggested_filename(proto_file: model.ProtoFile) -> str:
    """Suggest an output path for *proto_file* based on its ``go_package`` hint.

    ``go_package = "example.com/foo;foo"`` places ``bar.proto`` at
    ``example.com/foo/bar.proto``. Without an explicit package name after the
    ``;`` the declared path is returned unchanged.
    """

    go_package = proto_file.options.go_package or ""
    import_path, separator, _ = go_package.partition(";")
    if not separator:
        return proto_file.name
    joined = posixpath.join(import_path, posixpath.basename(proto_file.name))
    return posixpath.normpath(joined)


__all__ = [
    "absolute_type_name",
    "default_json_name",
    "qualify_name",
    "strip_leading_dot",
    "suggested_filename",
]
