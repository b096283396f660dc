"""Configuration helpers for protodump rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

DEFAULT_INDENT_WIDTH = 2


def _parse_parameter_string(parameter: str | None) -> Dict[str, str]:
    if not parameter:
        return {}

    entries = parameter.replace(";", ",").split(",")
    result: Dict[str, str] = {}
    for entry in entries:
        piece = entry.strip()
        if not piece:
            continue
        if "=" in piece:
            key, value = piece.split("=", 1)
            result[key.strip().lower()] = value.strip()
        else:
            result[piece.lower()] = "true"
    return result


def _to_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _require_bool(key: str, value: str | None, default: bool) -> bool:
    if value is None:
        return default
    converted = _to_bool(value)
    if converted is None:
        raise ValueError(f"Option '{key}' expects a boolean, got '{value}'")
    return converted


def _parse_indent_width(value: str | None) -> int:
    if value is None:
        return DEFAULT_INDENT_WIDTH
    try:
        width = int(value)
    except ValueError as exc:
        raise ValueError(f"Option 'indent_width' expects an integer, got '{value}'") from exc
    if width <= 0:
        raise ValueError("Option 'indent_width' must be a positive integer")
    return width


@dataclass(slots=True)
class PrinterConfig:
    """Runtime configuration for :class:`~protodump.printer.SchemaPrinter`."""

    indent_width: int = DEFAULT_INDENT_WIDTH
    extended_file_options: bool = False
    omit_default_json_names: bool = False

    @classmethod
    def from_parameter_string(cls, parameter: str | None) -> "PrinterConfig":
        overrides = _parse_parameter_string(parameter)

        unknown = sorted(set(overrides) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unknown printer option(s): {', '.join(unknown)}")

        return cls(
            indent_width=_parse_indent_width(overrides.get("indent_width")),
            extended_file_options=_require_bool(
                "extended_file_options", overrides.get("extended_file_options"), False
            ),
            omit_default_json_names=_require_bool(
                "omit_default_json_names", overrides.get("omit_default_json_names"), False
            ),
        )

    @property
    def indent(self) -> str:
        return " " * self.indent_width


_KNOWN_KEYS = frozenset({"indent_width", "extended_file_options", "omit_default_json_names"})


__all__ = ["PrinterConfig", "DEFAULT_INDENT_WIDTH"]
