"""Exceptions raised by the typed_values library."""

from __future__ import annotations


class TypedValueError(Exception):
    """Base class for all typed_values errors."""


class MalformedEncoding(TypedValueError, ValueError):
    """A type-encoding string does not match the encoding grammar."""

    def __init__(self, message: str, encoding: str | None = None) -> None:
        super().__init__(message)
        self.encoding = encoding


class SizeMismatch(TypedValueError, ValueError):
    """Supplied bytes are too short for the descriptor they are paired with."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected at least {expected} bytes, got {actual}")
        self.expected = expected
        self.actual = actual


class TypeMismatch(TypedValueError, TypeError):
    """A caller's expected type is not compatible with the stored type."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Type '{expected}' is not compatible with '{actual}'")
        self.expected = expected
        self.actual = actual


class IndexOutOfRange(TypedValueError, IndexError):
    """Indexed access beyond the bounds of an array or record."""


class KeyNotFound(TypedValueError, KeyError):
    """Keyed access with no matching field name, or against a non-record."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class PackingError(TypedValueError, ValueError):
    """A Python value cannot be packed into the bytes of a descriptor."""


class DecodingError(TypedValueError, ValueError):
    """An archived value failed validation while being decoded."""
