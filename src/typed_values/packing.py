"""Conversion between Python values and the raw bytes of a descriptor.

Scalars use native byte order with standard sizes. Padding between record
fields is written as zero bytes and skipped on the way back.
"""

from __future__ import annotations

import struct
from collections.abc import Mapping, Sequence
from typing import Any

from typed_values.errors import PackingError, SizeMismatch
from typed_values.parsing import as_descriptor
from typed_values.types import (
    ArrayDescriptor,
    RecordDescriptor,
    ScalarDescriptor,
    ScalarKind,
    TypeDescriptor,
)


def pack_value(value: Any, type_desc: TypeDescriptor | str) -> bytes:
    """Pack a Python value into exactly type_desc.size bytes.

    Args:
        value: A number or bool for scalars, a sequence of `count` items for
            arrays, a sequence or a mapping of field names for records.
        type_desc: The descriptor (or encoding string) to pack with.

    Raises:
        PackingError: If the value does not fit the descriptor.
    """
    type_desc = as_descriptor(type_desc)
    buffer = bytearray(type_desc.size)
    _pack_into(buffer, 0, value, type_desc)
    return bytes(buffer)


def unpack_value(data: bytes | bytearray | memoryview, type_desc: TypeDescriptor | str) -> Any:
    """Unpack the leading type_desc.size bytes of data into a Python value.

    Scalars become int, float or bool (pointers are plain integers), arrays
    become lists, and records become a dict when every field has a distinct
    name, otherwise a tuple.
    """
    type_desc = as_descriptor(type_desc)
    if len(data) < type_desc.size:
        raise SizeMismatch(type_desc.size, len(data))
    return _unpack_from(data, 0, type_desc)


def _pack_into(buffer: bytearray, offset: int, value: Any, type_desc: TypeDescriptor) -> None:
    if isinstance(type_desc, ScalarDescriptor):
        # struct packs any object as "?", so check bools here
        if type_desc.kind is ScalarKind.BOOL and not isinstance(value, int):
            raise PackingError(
                f"Cannot pack {value!r} as '{type_desc.encoding}': expected bool or int"
            )
        try:
            struct.pack_into("=" + type_desc.kind.struct_code, buffer, offset, value)
        except (struct.error, OverflowError) as e:
            raise PackingError(f"Cannot pack {value!r} as '{type_desc.encoding}': {e}") from e
    elif isinstance(type_desc, ArrayDescriptor):
        items = _as_items(value, type_desc.count, type_desc)
        element = type_desc.element
        for i, item in enumerate(items):
            _pack_into(buffer, offset + i * element.size, item, element)
    elif isinstance(type_desc, RecordDescriptor):
        if isinstance(value, Mapping):
            items = _record_items_from_mapping(value, type_desc)
        else:
            items = _as_items(value, len(type_desc.fields), type_desc)
        for item, f, field_offset in zip(items, type_desc.fields, type_desc.field_offsets):
            _pack_into(buffer, offset + field_offset, item, f.type_desc)
    else:
        raise PackingError(f"Cannot pack values of type '{type_desc}'")


def _as_items(value: Any, count: int, type_desc: TypeDescriptor) -> Sequence[Any]:
    """Check that value is a sequence of exactly count items."""
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise PackingError(
            f"Expected a sequence of {count} items for '{type_desc.encoding}', "
            f"got {type(value).__name__}"
        )
    if len(value) != count:
        raise PackingError(
            f"Expected {count} items for '{type_desc.encoding}', got {len(value)}"
        )
    return value


def _record_items_from_mapping(value: Mapping[str, Any], type_desc: RecordDescriptor) -> list[Any]:
    """Order the entries of a mapping by the record's field names."""
    if not type_desc.has_field_names:
        raise PackingError(
            f"Record '{type_desc.encoding}' has unnamed fields; pack it from a sequence"
        )
    names = {f.name for f in type_desc.fields}
    unknown = [k for k in value if k not in names]
    if unknown:
        raise PackingError(f"Unknown fields for '{type_desc.encoding}': {unknown}")
    missing = [f.name for f in type_desc.fields if f.name not in value]
    if missing:
        raise PackingError(f"Missing fields for '{type_desc.encoding}': {missing}")
    return [value[f.name] for f in type_desc.fields]


def _unpack_from(data: Any, offset: int, type_desc: TypeDescriptor) -> Any:
    if isinstance(type_desc, ScalarDescriptor):
        return struct.unpack_from("=" + type_desc.kind.struct_code, data, offset)[0]
    elif isinstance(type_desc, ArrayDescriptor):
        element = type_desc.element
        return [
            _unpack_from(data, offset + i * element.size, element)
            for i in range(type_desc.count)
        ]
    elif isinstance(type_desc, RecordDescriptor):
        values = [
            _unpack_from(data, offset + field_offset, f.type_desc)
            for f, field_offset in zip(type_desc.fields, type_desc.field_offsets)
        ]
        names = [f.name for f in type_desc.fields]
        if type_desc.has_field_names and len(set(names)) == len(names):
            return dict(zip(names, values))
        return tuple(values)
    raise PackingError(f"Cannot unpack values of type '{type_desc}'")
