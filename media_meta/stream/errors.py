from __future__ import annotations

from typing import Any


class StreamError(Exception):
    """Base class for errors raised while evaluating value streams."""


class OutOfBounds(StreamError):
    def __init__(self, index: int) -> None:
        super().__init__(f"index out of bounds: {index}")
        self.index = index


class ItemNotFound(StreamError):
    def __init__(self) -> None:
        super().__init__("no item matched the predicate")


class EmptyIterable(StreamError):
    def __init__(self, op: str) -> None:
        super().__init__(f"{op} requires at least one item")
        self.op = op


class NotNumeric(StreamError):
    def __init__(self, value: Any = None) -> None:
        super().__init__(f"value is not numeric: {value!r}")
        self.value = value


class NotBoolean(StreamError):
    def __init__(self, value: Any = None) -> None:
        super().__init__(f"value is not a boolean: {value!r}")
        self.value = value


class NotIterable(StreamError):
    def __init__(self, value: Any = None) -> None:
        super().__init__(f"value is not iterable: {value!r}")
        self.value = value


class ValueStreamError(StreamError):
    """Wraps an error raised by the block stream feeding a ``Source`` producer."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"value stream error: {cause}")
        self.cause = cause
