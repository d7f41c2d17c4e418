"""Typed values: raw bytes boxed together with their type descriptor."""

from __future__ import annotations

import logging
from typing import Any, Union

from typed_values.errors import IndexOutOfRange, KeyNotFound, SizeMismatch, TypeMismatch
from typed_values.packing import pack_value, unpack_value
from typed_values.parsing import as_descriptor, parse_encoding
from typed_values.types import TypeDescriptor

logger = logging.getLogger(__name__)

TypeLike = Union[TypeDescriptor, str]

# Encodings used by box() when no type is given
_INFERRED_ENCODINGS: list[tuple[type, str]] = [
    (bool, "B"),
    (int, "q"),
    (float, "d"),
]


def _describe(type_desc: TypeLike) -> str:
    return type_desc.encoding if isinstance(type_desc, TypeDescriptor) else str(type_desc)


def _infer_descriptor(obj: Any) -> TypeDescriptor:
    for py_type, encoding in _INFERRED_ENCODINGS:
        if isinstance(obj, py_type):
            return parse_encoding(encoding)
    raise TypeError(
        f"Cannot infer an encoding for {type(obj).__name__}; pass one explicitly"
    )


class _ValueBase:
    """Read-side behaviour shared by TypedValue and MutableTypedValue.

    The storage holds exactly type.size bytes and is owned by this value
    alone. Every sub-value handed out is a copy of the addressed bytes.
    """

    def __init__(self, data: Any, type_desc: TypeLike) -> None:
        """Copy the leading bytes of data into a new value.

        Args:
            data: Any bytes-like object with at least type_desc.size bytes.
            type_desc: The descriptor, or an encoding string to parse.

        Raises:
            MalformedEncoding: If type_desc is an invalid encoding string.
            SizeMismatch: If data is shorter than the descriptor's size.
        """
        type_desc = as_descriptor(type_desc)
        view = memoryview(data)
        if view.nbytes < type_desc.size:
            raise SizeMismatch(type_desc.size, view.nbytes)
        self._type = type_desc
        self._storage = self._own(view.tobytes()[: type_desc.size])

    @staticmethod
    def _own(data: bytes) -> bytes | bytearray:
        raise NotImplementedError

    @classmethod
    def _from_storage(cls, type_desc: TypeDescriptor, storage: bytes | bytearray) -> Any:
        """Wrap bytes that already have the right size without copying again."""
        value = cls.__new__(cls)
        value._type = type_desc
        value._storage = cls._own(storage)
        return value

    @classmethod
    def from_bytes(cls, data: Any, type_desc: TypeLike) -> Any:
        """Create a value from raw bytes and a descriptor or encoding string."""
        return cls(data, type_desc)

    @classmethod
    def box(cls, obj: Any, type_desc: TypeLike | None = None) -> Any:
        """Pack a Python value into a new value.

        Without a type, bool boxes as "B", int as "q" and float as "d".
        """
        if type_desc is None:
            type_desc = _infer_descriptor(obj)
        else:
            type_desc = as_descriptor(type_desc)
        return cls._from_storage(type_desc, pack_value(obj, type_desc))

    @classmethod
    def zeros(cls, type_desc: TypeLike) -> Any:
        """Create a zero-filled value of the given type."""
        type_desc = as_descriptor(type_desc)
        return cls._from_storage(type_desc, bytes(type_desc.size))

    @property
    def type(self) -> TypeDescriptor:
        """Return the stored type descriptor."""
        return self._type

    @property
    def encoding(self) -> str:
        """Return the encoding string of the stored type."""
        return self._type.encoding

    @property
    def size(self) -> int:
        return len(self._storage)

    def to_bytes(self) -> bytes:
        """Return a copy of the raw bytes."""
        return bytes(self._storage)

    def _locate(self, index: int | None, key: str | None) -> tuple[int, TypeDescriptor]:
        if index is not None and key is not None:
            raise ValueError("Pass either index or key, not both")
        if index is not None:
            return self._type.locate(index)
        if key is not None:
            return self._type.locate_key(key)
        return 0, self._type

    def get_value(
        self,
        out: Any,
        expected: TypeLike,
        *,
        index: int | None = None,
        key: str | None = None,
    ) -> bool:
        """Copy the value, or the sub-value at index/key, into a writable buffer.

        Returns False without touching out when the address is invalid,
        expected is not compatible with the addressed type, or out is
        read-only or too small.
        """
        try:
            offset, target = self._locate(index, key)
        except (IndexOutOfRange, KeyNotFound) as e:
            logger.debug("Rejected read: %s", e)
            return False
        if not target.is_compatible(expected):
            logger.debug("Rejected read of '%s' as '%s'", target.encoding, _describe(expected))
            return False
        view = memoryview(out)
        if view.readonly or view.nbytes < target.size:
            return False
        view.cast("B")[: target.size] = self._storage[offset : offset + target.size]
        return True

    def unpack(
        self,
        expected: TypeLike | None = None,
        *,
        index: int | None = None,
        key: str | None = None,
    ) -> Any:
        """Decode the value, or the sub-value at index/key, into a Python value.

        Raises:
            TypeMismatch: If expected is given and not compatible.
            IndexOutOfRange: If index is outside the array or record.
            KeyNotFound: If key names no field.
        """
        offset, target = self._locate(index, key)
        if expected is not None and not target.is_compatible(expected):
            raise TypeMismatch(_describe(expected), target.encoding)
        return unpack_value(memoryview(self._storage)[offset : offset + target.size], target)

    def at(self, index: int) -> Any:
        """Return a new value holding a copy of the element or field at index."""
        offset, target = self._type.locate(index)
        return self._from_storage(target, self._storage[offset : offset + target.size])

    def for_key(self, key: str) -> Any:
        """Return a new value holding a copy of the first field named key."""
        offset, target = self._type.locate_key(key)
        return self._from_storage(target, self._storage[offset : offset + target.size])

    def copy(self) -> TypedValue:
        """Return an immutable value with its own copy of the bytes."""
        return TypedValue._from_storage(self._type, bytes(self._storage))

    def mutable_copy(self) -> MutableTypedValue:
        """Return a mutable value with its own copy of the bytes."""
        return MutableTypedValue._from_storage(self._type, bytearray(self._storage))

    def __copy__(self) -> Any:
        return self._from_storage(self._type, self._storage[:])

    def __deepcopy__(self, memo: dict[int, Any]) -> Any:
        return self.__copy__()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _ValueBase):
            return NotImplemented
        return (
            self._type.normalized_encoding == other._type.normalized_encoding
            and self._storage == other._storage
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.encoding!r}, {self.unpack()!r})"


class TypedValue(_ValueBase):
    """An immutable typed value.

    Example:
        >>> point = TypedValue.box((1.0, 2.0), "{point=ff}")
        >>> point.at(1).unpack("f")
        2.0
    """

    @staticmethod
    def _own(data: bytes) -> bytes:
        return bytes(data)

    def __hash__(self) -> int:
        return hash((self._type.normalized_encoding, self._storage))


class MutableTypedValue(_ValueBase):
    """A typed value whose bytes can be overwritten in place.

    Writes are checked the same way reads are: the caller's type must be
    compatible with the addressed region, otherwise nothing is written.
    Sub-values returned by at() and for_key() are independent copies.
    """

    __hash__ = None  # type: ignore[assignment]

    @staticmethod
    def _own(data: bytes) -> bytearray:
        return bytearray(data)

    def set_value(
        self,
        data: Any,
        expected: TypeLike,
        *,
        index: int | None = None,
        key: str | None = None,
    ) -> bool:
        """Overwrite the value, or the sub-value at index/key, with raw bytes.

        Returns False and leaves the storage unchanged when the address is
        invalid, expected is not compatible with the addressed type, or data
        holds fewer bytes than the addressed type.
        """
        try:
            offset, target = self._locate(index, key)
        except (IndexOutOfRange, KeyNotFound) as e:
            logger.debug("Rejected write: %s", e)
            return False
        if not target.is_compatible(expected):
            logger.debug("Rejected write of '%s' into '%s'", _describe(expected), target.encoding)
            return False
        chunk = memoryview(data).tobytes()
        if len(chunk) < target.size:
            return False
        self._storage[offset : offset + target.size] = chunk[: target.size]
        return True

    def pack(
        self,
        obj: Any,
        expected: TypeLike | None = None,
        *,
        index: int | None = None,
        key: str | None = None,
    ) -> bool:
        """Pack a Python value into the value, or the sub-value at index/key.

        The addressed type is used for packing. If expected is given it must
        be compatible with it.

        Raises:
            PackingError: If obj does not fit the addressed type; nothing is written.
        """
        try:
            offset, target = self._locate(index, key)
        except (IndexOutOfRange, KeyNotFound) as e:
            logger.debug("Rejected write: %s", e)
            return False
        if expected is not None and not target.is_compatible(expected):
            logger.debug("Rejected write of '%s' into '%s'", _describe(expected), target.encoding)
            return False
        self._storage[offset : offset + target.size] = pack_value(obj, target)
        return True

    def set_at(self, index: int, value: _ValueBase) -> bool:
        """Assign another value to the element or field at index."""
        return self.set_value(value._storage, value.type, index=index)

    def set_for_key(self, key: str, value: _ValueBase) -> bool:
        """Assign another value to the first field named key."""
        return self.set_value(value._storage, value.type, key=key)

    def freeze(self) -> TypedValue:
        """Return an immutable copy of the current bytes."""
        return self.copy()


def from_bytes(data: Any, type_desc: TypeLike) -> TypedValue:
    """Create an immutable value from raw bytes and a descriptor or encoding string."""
    return TypedValue(data, type_desc)


def box(obj: Any, type_desc: TypeLike | None = None) -> TypedValue:
    """Pack a Python value into an immutable value."""
    return TypedValue.box(obj, type_desc)
