"""Indentation-aware text accumulator used by the schema printer."""

from __future__ import annotations

from contextlib import contextmanager
from io import StringIO
from typing import Iterator


class IndentedWriter:
    """Accumulates lines of text, prefixing each with the current nesting depth."""

    def __init__(self, indent: str = "  ") -> None:
        self._buffer = StringIO()
        self._indent = indent
        self._depth = 0

    @property
    def depth(self) -> int:
        return self._depth

    def line(self, text: str) -> None:
        self._buffer.write(self._indent * self._depth)
        self._buffer.write(text)
        self._buffer.write("\n")

    def blank(self) -> None:
        self._buffer.write("\n")

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def getvalue(self) -> str:
        return self._buffer.getvalue()
