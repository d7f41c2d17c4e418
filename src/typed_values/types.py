"""Type descriptors for the typed_values library.

A descriptor is the parsed, structural form of a type-encoding string. It
is one of three shapes:

  ScalarDescriptor  a primitive leaf (integer, float, bool, char, pointer)
  ArrayDescriptor   a fixed number of elements of one descriptor
  RecordDescriptor  an ordered sequence of optionally named fields

Sizes, alignments and field offsets follow C struct layout rules on an
LP64 target, so raw bytes produced by C code can be addressed directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import cached_property

from typed_values.errors import IndexOutOfRange, KeyNotFound, MalformedEncoding

# Size of every pointer-like scalar (char*, object, class, selector, ^type)
POINTER_SIZE = 8


class ScalarKind(Enum):
    """Primitive codes of the encoding grammar."""

    CHAR = "c"
    UCHAR = "C"
    SHORT = "s"
    USHORT = "S"
    INT = "i"
    UINT = "I"
    LONG = "l"  # always a 32-bit quantity in the encoding
    ULONG = "L"
    LONGLONG = "q"
    ULONGLONG = "Q"
    FLOAT = "f"
    DOUBLE = "d"
    BOOL = "B"
    CSTRING = "*"
    OBJECT = "@"
    CLASS = "#"
    SELECTOR = ":"
    POINTER = "^"

    @property
    def size_bytes(self) -> int:
        """Return the size in bytes for this primitive."""
        return _SCALAR_SIZES.get(self, POINTER_SIZE)

    @property
    def struct_code(self) -> str:
        """Return the struct format character used to pack this primitive."""
        return _STRUCT_CODES.get(self, "Q")

    @property
    def is_pointer(self) -> bool:
        """Return whether values of this kind are opaque addresses."""
        return self not in _SCALAR_SIZES


_SCALAR_SIZES: dict[ScalarKind, int] = {
    ScalarKind.CHAR: 1,
    ScalarKind.UCHAR: 1,
    ScalarKind.SHORT: 2,
    ScalarKind.USHORT: 2,
    ScalarKind.INT: 4,
    ScalarKind.UINT: 4,
    ScalarKind.LONG: 4,
    ScalarKind.ULONG: 4,
    ScalarKind.LONGLONG: 8,
    ScalarKind.ULONGLONG: 8,
    ScalarKind.FLOAT: 4,
    ScalarKind.DOUBLE: 8,
    ScalarKind.BOOL: 1,
}

_STRUCT_CODES: dict[ScalarKind, str] = {
    ScalarKind.CHAR: "b",
    ScalarKind.UCHAR: "B",
    ScalarKind.SHORT: "h",
    ScalarKind.USHORT: "H",
    ScalarKind.INT: "i",
    ScalarKind.UINT: "I",
    ScalarKind.LONG: "i",
    ScalarKind.ULONG: "I",
    ScalarKind.LONGLONG: "q",
    ScalarKind.ULONGLONG: "Q",
    ScalarKind.FLOAT: "f",
    ScalarKind.DOUBLE: "d",
    ScalarKind.BOOL: "?",
}

# Mapping from encoding codes to ScalarKind values (pointers are parsed separately)
SCALAR_CODES: dict[str, ScalarKind] = {
    kind.value: kind for kind in ScalarKind if kind is not ScalarKind.POINTER
}


def align_up(offset: int, alignment: int) -> int:
    """Round offset up to the next multiple of alignment."""
    return (offset + alignment - 1) // alignment * alignment


class TypeDescriptor:
    """Base class for all type descriptors.

    Descriptors are immutable once built and may be shared between any
    number of values.
    """

    @property
    def size(self) -> int:
        """Return the size in bytes of a value of this type."""
        raise NotImplementedError

    @property
    def alignment(self) -> int:
        """Return the required alignment in bytes."""
        raise NotImplementedError

    @property
    def encoding(self) -> str:
        """Return the encoding string, including field names."""
        raise NotImplementedError

    @property
    def normalized_encoding(self) -> str:
        """Return the encoding string used to decide access compatibility.

        Field names are metadata and do not take part in it.
        """
        raise NotImplementedError

    @property
    def element_count(self) -> int:
        """Return the number of indexable sub-values."""
        return 0

    @property
    def is_scalar(self) -> bool:
        return False

    @property
    def is_array(self) -> bool:
        return False

    @property
    def is_record(self) -> bool:
        return False

    def locate(self, index: int) -> tuple[int, TypeDescriptor]:
        """Return (byte offset, descriptor) of the sub-value at index."""
        raise IndexOutOfRange(f"Type '{self.encoding}' cannot be indexed")

    def locate_key(self, key: str) -> tuple[int, TypeDescriptor]:
        """Return (byte offset, descriptor) of the field named key."""
        raise KeyNotFound(f"Type '{self.encoding}' has no named fields")

    def is_compatible(self, other: TypeDescriptor | str) -> bool:
        """Check whether other may be used to read or write this type."""
        if isinstance(other, str):
            from typed_values.parsing import parse_encoding

            try:
                other = parse_encoding(other)
            except MalformedEncoding:
                return False
        if not isinstance(other, TypeDescriptor):
            return False
        return self.normalized_encoding == other.normalized_encoding

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.element_count:
            raise IndexOutOfRange(
                f"Index {index} out of range [0, {self.element_count}) "
                f"for type '{self.encoding}'"
            )

    def __str__(self) -> str:
        return self.encoding


@dataclass(frozen=True)
class ScalarDescriptor(TypeDescriptor):
    """Descriptor for a primitive leaf value.

    For pointers, target holds the normalized encoding of the pointee
    ("v" for void, "{name}" for an opaque record).
    """

    kind: ScalarKind
    target: str | None = None

    @property
    def size(self) -> int:
        return self.kind.size_bytes

    @property
    def alignment(self) -> int:
        return self.kind.size_bytes

    @cached_property
    def encoding(self) -> str:
        if self.kind is ScalarKind.POINTER:
            return "^" + (self.target or "v")
        return self.kind.value

    @property
    def normalized_encoding(self) -> str:
        return self.encoding

    @property
    def is_scalar(self) -> bool:
        return True


@dataclass(frozen=True)
class ArrayDescriptor(TypeDescriptor):
    """Descriptor for a fixed-length homogeneous array (e.g. [3i])."""

    element: TypeDescriptor
    count: int

    def __post_init__(self) -> None:
        if self.count < 1:
            raise MalformedEncoding(f"Array count must be at least 1, got {self.count}")

    @cached_property
    def size(self) -> int:
        return self.element.size * self.count

    @property
    def alignment(self) -> int:
        return self.element.alignment

    @cached_property
    def encoding(self) -> str:
        return f"[{self.count}{self.element.encoding}]"

    @cached_property
    def normalized_encoding(self) -> str:
        return f"[{self.count}{self.element.normalized_encoding}]"

    @property
    def element_count(self) -> int:
        return self.count

    @property
    def is_array(self) -> bool:
        return True

    def locate(self, index: int) -> tuple[int, TypeDescriptor]:
        self._check_index(index)
        return index * self.element.size, self.element


@dataclass(frozen=True)
class FieldDescriptor:
    """A field within a record. The name is optional metadata."""

    name: str | None
    type_desc: TypeDescriptor

    @property
    def encoding(self) -> str:
        if self.name is None:
            return self.type_desc.encoding
        return f'"{self.name}"{self.type_desc.encoding}'


@dataclass(frozen=True)
class RecordDescriptor(TypeDescriptor):
    """Descriptor for a record (C struct), e.g. {point="x"f"y"f}.

    Each field is placed at the end of the previous one rounded up to its
    own alignment. The record is aligned to its most aligned field and its
    size is padded to a multiple of that alignment.
    """

    name: str | None
    fields: tuple[FieldDescriptor, ...] = ()

    @cached_property
    def _layout(self) -> tuple[tuple[int, ...], int, int]:
        offsets = []
        offset = 0
        alignment = 1
        for f in self.fields:
            field_align = f.type_desc.alignment
            offset = align_up(offset, field_align)
            offsets.append(offset)
            offset += f.type_desc.size
            alignment = max(alignment, field_align)
        return tuple(offsets), align_up(offset, alignment), alignment

    @property
    def field_offsets(self) -> tuple[int, ...]:
        """Return the byte offset of every field, in declaration order."""
        return self._layout[0]

    @property
    def size(self) -> int:
        return self._layout[1]

    @property
    def alignment(self) -> int:
        return self._layout[2]

    @cached_property
    def encoding(self) -> str:
        body = "".join(f.encoding for f in self.fields)
        return f"{{{self.name or ''}={body}}}"

    @cached_property
    def normalized_encoding(self) -> str:
        body = "".join(f.type_desc.normalized_encoding for f in self.fields)
        return f"{{{self.name or ''}={body}}}"

    @property
    def element_count(self) -> int:
        return len(self.fields)

    @property
    def is_record(self) -> bool:
        return True

    @property
    def has_field_names(self) -> bool:
        """Return whether every field carries a name."""
        return all(f.name is not None for f in self.fields)

    def get_field(self, name: str) -> FieldDescriptor | None:
        """Get the first field with the given name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def locate(self, index: int) -> tuple[int, TypeDescriptor]:
        self._check_index(index)
        return self.field_offsets[index], self.fields[index].type_desc

    def locate_key(self, key: str) -> tuple[int, TypeDescriptor]:
        # First match wins when names repeat
        for i, f in enumerate(self.fields):
            if f.name is not None and f.name == key:
                return self.field_offsets[i], f.type_desc
        raise KeyNotFound(f"Field '{key}' not found in type '{self.encoding}'")
