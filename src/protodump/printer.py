"""Render a resolved :class:`~protodump.model.ProtoFile` as ``.proto`` source text."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from . import model
from .config import PrinterConfig
from .naming import absolute_type_name, default_json_name
from .writer import IndentedWriter

MAX_FIELD_NUMBER = 536_870_911
MAX_ENUM_NUMBER = 2_147_483_647


class _OptionKind(str, Enum):
    STRING = "string"
    BOOL = "bool"
    IDENTIFIER = "identifier"


# (option name, literal kind, only printed with extended_file_options)
_FILE_OPTIONS: Tuple[Tuple[str, _OptionKind, bool], ...] = (
    ("java_package", _OptionKind.STRING, False),
    ("java_outer_classname", _OptionKind.STRING, False),
    ("java_multiple_files", _OptionKind.BOOL, False),
    ("java_generate_equals_and_hash", _OptionKind.BOOL, True),
    ("java_string_check_utf8", _OptionKind.BOOL, False),
    ("optimize_for", _OptionKind.IDENTIFIER, True),
    ("go_package", _OptionKind.STRING, False),
    ("cc_generic_services", _OptionKind.BOOL, True),
    ("java_generic_services", _OptionKind.BOOL, True),
    ("py_generic_services", _OptionKind.BOOL, True),
    ("deprecated", _OptionKind.BOOL, True),
    ("cc_enable_arenas", _OptionKind.BOOL, False),
    ("objc_class_prefix", _OptionKind.STRING, False),
    ("csharp_namespace", _OptionKind.STRING, False),
    ("swift_prefix", _OptionKind.STRING, False),
    ("php_class_prefix", _OptionKind.STRING, False),
    ("php_namespace", _OptionKind.STRING, False),
    ("php_metadata_namespace", _OptionKind.STRING, False),
    ("ruby_package", _OptionKind.STRING, False),
)

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def quote_string(value: str) -> str:
    """Return *value* as a double-quoted proto string literal."""

    escaped = []
    for char in value:
        replacement = _ESCAPES.get(char)
        if replacement is not None:
            escaped.append(replacement)
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            escaped.append(f"\\{ord(char):03o}")
        else:
            escaped.append(char)
    return '"' + "".join(escaped) + '"'


def format_reserved_range(start: int, end: int, *, max_number: int) -> str:
    """Format an inclusive reserved range the way it is written in source."""

    if start == end:
        return str(start)
    if end == max_number:
        return f"{start} to max"
    return f"{start} to {end}"


class SchemaPrinter:
    """Deterministically render one :class:`~protodump.model.ProtoFile`.

    A printer owns its output buffer and is meant to be used for a single file.
    Calling :meth:`render` more than once returns the same text.
    """

    def __init__(
        self,
        proto_file: model.ProtoFile,
        config: Optional[PrinterConfig] = None,
    ) -> None:
        self._proto_file = proto_file
        self._config = config or PrinterConfig()
        self._writer = IndentedWriter(self._config.indent)
        self._rendered: Optional[str] = None

    def render(self) -> str:
        if self._rendered is None:
            self._write_file()
            self._rendered = self._writer.getvalue()
        return self._rendered

    # File level ----------------------------------------------------------
    def _write_file(self) -> None:
        proto_file = self._proto_file
        self._writer.line(f'syntax = "{proto_file.syntax.value}";')
        self._writer.blank()

        if proto_file.package:
            self._writer.line(f"package {proto_file.package};")
            self._writer.blank()

        self._write_file_options(proto_file.options)

        for file_import in proto_file.imports:
            self._write_import(file_import)
        if proto_file.imports:
            self._writer.blank()

        for service in proto_file.services:
            self._write_service(service)

        for message in proto_file.messages:
            self._write_message(message)

        for enum in proto_file.enums:
            self._write_enum(enum)

    def _write_file_options(self, options: model.FileOptions) -> None:
        printed = False
        for name, kind, extended in _FILE_OPTIONS:
            if extended and not self._config.extended_file_options:
                continue
            value = getattr(options, name)
            if value is None:
                continue
            self._writer.line(f"option {name} = {self._option_literal(value, kind)};")
            printed = True

        if printed:
            self._writer.blank()

    def _option_literal(self, value: object, kind: _OptionKind) -> str:
        if kind is _OptionKind.BOOL:
            return "true" if value else "false"
        if kind is _OptionKind.STRING:
            return quote_string(str(value))
        return str(value)

    def _write_import(self, file_import: model.Import) -> None:
        modifier = ""
        if file_import.public:
            modifier = "public "
        elif file_import.weak:
            modifier = "weak "
        self._writer.line(f"import {modifier}{quote_string(file_import.path)};")

    # Services ------------------------------------------------------------
    def _write_service(self, service: model.Service) -> None:
        self._writer.line(f"service {service.name} {{")
        with self._writer.indented():
            for method in service.methods:
                self._write_method(method)
        self._writer.line("}")
        self._writer.blank()

    def _write_method(self, method: model.Method) -> None:
        input_stream = "stream " if method.client_streaming else ""
        output_stream = "stream " if method.server_streaming else ""
        self._writer.line(
            f"rpc {method.name} ({input_stream}{absolute_type_name(method.input_type)}) "
            f"returns ({output_stream}{absolute_type_name(method.output_type)}) {{}}"
        )

    # Messages ------------------------------------------------------------
    def _write_message(self, message: model.Message) -> None:
        self._writer.line(f"message {message.name} {{")
        with self._writer.indented():
            for name in message.reserved_names:
                self._writer.line(f"reserved {quote_string(name)};")

            for start, end in message.reserved_ranges:
                # Message ranges are stored with an exclusive end.
                if start > end:
                    start, end = end, start
                formatted = format_reserved_range(start, end - 1, max_number=MAX_FIELD_NUMBER)
                self._writer.line(f"reserved {formatted};")

            for nested in message.nested_messages:
                self._write_message(nested)

            for enum in message.nested_enums:
                self._write_enum(enum)

            # Synthetic oneof members stay at their declaration position, where
            # the recompiled plain field will also sit.
            for field in message.fields:
                oneof = field.containing_oneof
                if oneof is None:
                    self._write_field(field, model.OneofContext.NOT_IN_ONEOF)
                elif oneof.synthetic:
                    self._write_field(field, model.OneofContext.IN_SYNTHETIC_ONEOF)

            for oneof in message.oneofs:
                if not oneof.synthetic:
                    self._write_oneof(oneof)
        self._writer.line("}")
        self._writer.blank()

    def _write_oneof(self, oneof: model.Oneof) -> None:
        self._writer.line(f"oneof {oneof.name} {{")
        with self._writer.indented():
            for field in oneof.fields:
                self._write_field(field, model.OneofContext.IN_ONEOF)
        self._writer.line("}")

    # Fields --------------------------------------------------------------
    def _write_field(self, field: model.Field, context: model.OneofContext) -> None:
        self._writer.line(
            f"{self._modifier(field, context)}{self._field_type(field)} "
            f"{field.name} = {field.number}{self._field_options(field)};"
        )

    def _modifier(self, field: model.Field, context: model.OneofContext) -> str:
        if context is not model.OneofContext.NOT_IN_ONEOF:
            return ""
        if field.has_optional_keyword:
            return "optional "
        if field.cardinality is model.FieldCardinality.REPEATED:
            return "repeated "
        if (
            field.cardinality is model.FieldCardinality.REQUIRED
            and self._proto_file.syntax is model.Syntax.PROTO2
        ):
            return "required "
        return ""

    def _field_type(self, field: model.Field) -> str:
        # The loader guarantees map fields carry their entry.
        if field.kind is model.FieldKind.MAP:
            entry = field.map_entry
            key = self._type_reference(entry.key_kind, entry.key_scalar, entry.key_type_name)
            value = self._type_reference(
                entry.value_kind, entry.value_scalar, entry.value_type_name
            )
            return f"map<{key}, {value}>"
        return self._type_reference(field.kind, field.scalar, field.type_name)

    def _type_reference(
        self,
        kind: model.FieldKind,
        scalar: Optional[str],
        type_name: Optional[str],
    ) -> str:
        if kind in (model.FieldKind.MESSAGE, model.FieldKind.ENUM):
            return absolute_type_name(type_name or "")
        return scalar or ""

    def _field_options(self, field: model.Field) -> str:
        clauses = []
        if field.default_value is not None:
            clauses.append(f"default = {self._default_literal(field)}")
        json_name = self._json_name(field)
        if json_name is not None:
            clauses.append(f"json_name={quote_string(json_name)}")
        if not clauses:
            return ""
        return f" [{', '.join(clauses)}]"

    def _default_literal(self, field: model.Field) -> str:
        value = field.default_value or ""
        if field.kind is model.FieldKind.ENUM:
            return value
        if field.scalar == "string":
            return quote_string(value)
        if field.scalar == "bytes":
            # protoc stores bytes defaults already C-escaped.
            return f'"{value}"'
        return value

    def _json_name(self, field: model.Field) -> Optional[str]:
        if field.json_name is None:
            return None
        if (
            self._config.omit_default_json_names
            and field.json_name == default_json_name(field.name)
        ):
            return None
        return field.json_name

    # Enums ---------------------------------------------------------------
    def _write_enum(self, enum: model.Enum) -> None:
        self._writer.line(f"enum {enum.name} {{")
        with self._writer.indented():
            if enum.allow_alias:
                self._writer.line("option allow_alias = true;")

            for name in enum.reserved_names:
                self._writer.line(f"reserved {quote_string(name)};")

            for start, end in enum.reserved_ranges:
                # Enum ranges are stored with an inclusive end.
                if start > end:
                    start, end = end, start
                formatted = format_reserved_range(start, end, max_number=MAX_ENUM_NUMBER)
                self._writer.line(f"reserved {formatted};")

            for value in enum.values:
                self._writer.line(f"{value.name} = {value.number};")
        self._writer.line("}")
        self._writer.blank()


__all__ = [
    "MAX_ENUM_NUMBER",
    "MAX_FIELD_NUMBER",
    "SchemaPrinter",
    "format_reserved_range",
    "quote_string",
]
