"""Typed Values - raw bytes boxed with a parsed description of their layout."""

from typed_values.archive import (
    decode_value,
    encode_value,
    load_value,
    save_value,
    value_from_dict,
    value_to_dict,
)
from typed_values.errors import (
    DecodingError,
    IndexOutOfRange,
    KeyNotFound,
    MalformedEncoding,
    PackingError,
    SizeMismatch,
    TypedValueError,
    TypeMismatch,
)
from typed_values.packing import pack_value, unpack_value
from typed_values.parsing import EncodingParser, parse_encoding
from typed_values.types import (
    ArrayDescriptor,
    FieldDescriptor,
    RecordDescriptor,
    ScalarDescriptor,
    ScalarKind,
    TypeDescriptor,
)
from typed_values.values import MutableTypedValue, TypedValue, box, from_bytes

__all__ = [
    # Main API
    "TypedValue",
    "MutableTypedValue",
    "box",
    "from_bytes",
    "parse_encoding",
    "EncodingParser",
    # Type descriptors
    "TypeDescriptor",
    "ScalarKind",
    "ScalarDescriptor",
    "ArrayDescriptor",
    "RecordDescriptor",
    "FieldDescriptor",
    # Packing
    "pack_value",
    "unpack_value",
    # Archives
    "encode_value",
    "decode_value",
    "save_value",
    "load_value",
    "value_to_dict",
    "value_from_dict",
    # Errors
    "TypedValueError",
    "MalformedEncoding",
    "SizeMismatch",
    "TypeMismatch",
    "IndexOutOfRange",
    "KeyNotFound",
    "PackingError",
    "DecodingError",
]

__version__ = "0.1.0"
