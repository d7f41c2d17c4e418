"""Archive format for typed values.

An archived value keeps the encoding string next to the raw bytes so the
value can be rebuilt exactly:

  [magic "TVAL"] [uint16 version] [uint8 flags]
  [uint16 encoding length] [encoding (UTF-8)]
  [uint32 data length] [data]

All integers are little-endian. Flag bit 0 marks a mutable value.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import logging
import struct
import zlib
from pathlib import Path
from typing import Any, NoReturn, Union

from typed_values.errors import DecodingError, MalformedEncoding
from typed_values.parsing import parse_encoding
from typed_values.values import MutableTypedValue, TypedValue

logger = logging.getLogger(__name__)

MAGIC = b"TVAL"
VERSION = 1
FLAG_MUTABLE = 0x01

_HEADER = struct.Struct("<4sHBH")
_DATA_LENGTH = struct.Struct("<I")

AnyValue = Union[TypedValue, MutableTypedValue]


def encode_value(value: AnyValue) -> bytes:
    """Encode a value (mutable or not) into its archived representation."""
    encoding = value.encoding.encode("utf-8")
    data = value.to_bytes()
    flags = FLAG_MUTABLE if isinstance(value, MutableTypedValue) else 0
    return b"".join([
        _HEADER.pack(MAGIC, VERSION, flags, len(encoding)),
        encoding,
        _DATA_LENGTH.pack(len(data)),
        data,
    ])


def decode_value(blob: bytes) -> AnyValue:
    """Rebuild a value from its archived representation.

    Raises:
        DecodingError: If the header, the encoding string, or the data
            length does not validate. No value is produced in that case.
    """
    blob = bytes(blob)
    if len(blob) < _HEADER.size:
        _reject("Archive is truncated (incomplete header)")

    magic, version, flags, encoding_len = _HEADER.unpack_from(blob, 0)
    if magic != MAGIC:
        _reject(f"Invalid archive (bad magic bytes {magic!r})")
    if version != VERSION:
        _reject(f"Unsupported archive version: {version}")
    if flags & ~FLAG_MUTABLE:
        _reject(f"Unknown archive flags: {flags:#04x}")

    pos = _HEADER.size
    encoding_bytes = blob[pos : pos + encoding_len]
    if len(encoding_bytes) != encoding_len:
        _reject("Archive is truncated (incomplete encoding)")
    pos += encoding_len

    if len(blob) < pos + _DATA_LENGTH.size:
        _reject("Archive is truncated (missing data length)")
    (data_len,) = _DATA_LENGTH.unpack_from(blob, pos)
    pos += _DATA_LENGTH.size

    data = blob[pos : pos + data_len]
    if len(data) != data_len:
        _reject("Archive is truncated (incomplete data)")
    if pos + data_len != len(blob):
        _reject(f"Archive has {len(blob) - pos - data_len} trailing bytes")

    try:
        encoding = encoding_bytes.decode("utf-8")
    except UnicodeDecodeError as e:
        raise _rejection(f"Encoding is not valid UTF-8: {e}") from e
    return _build(encoding, data, bool(flags & FLAG_MUTABLE))


def save_value(value: AnyValue, path: str | Path) -> int:
    """Write an archived value to a file. Returns total bytes written.

    A ".gz" suffix writes a gzip-compressed archive.
    """
    path = Path(path)
    blob = encode_value(value)
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "wb") as f:
        f.write(blob)
    return len(blob)


def load_value(path: str | Path) -> AnyValue:
    """Read an archived value from a file written by save_value()."""
    path = Path(path)
    opener = gzip.open if path.suffix == ".gz" else open
    try:
        with opener(path, "rb") as f:
            blob = f.read()
    except (gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise _rejection(f"Cannot read archive {path}: {e}") from e
    return decode_value(blob)


def value_to_dict(value: AnyValue) -> dict[str, Any]:
    """Return a JSON-compatible keyed form of a value."""
    return {
        "encoding": value.encoding,
        "data": base64.b64encode(value.to_bytes()).decode("ascii"),
        "mutable": isinstance(value, MutableTypedValue),
    }


def value_from_dict(entry: dict[str, Any]) -> AnyValue:
    """Rebuild a value from the keyed form produced by value_to_dict()."""
    if not isinstance(entry, dict):
        _reject(f"Expected a dict, got {type(entry).__name__}")
    encoding = entry.get("encoding")
    raw = entry.get("data")
    if not isinstance(encoding, str) or not isinstance(raw, str):
        _reject("Keyed archive needs string 'encoding' and 'data' entries")
    try:
        data = base64.b64decode(raw, validate=True)
    except binascii.Error as e:
        raise _rejection(f"Data is not valid base64: {e}") from e
    mutable = entry.get("mutable", False)
    if not isinstance(mutable, bool):
        _reject(f"Keyed archive entry 'mutable' must be a bool, got {type(mutable).__name__}")
    return _build(encoding, data, mutable)


def _build(encoding: str, data: bytes, mutable: bool) -> AnyValue:
    try:
        type_desc = parse_encoding(encoding)
    except MalformedEncoding as e:
        raise _rejection(f"Archived encoding {encoding!r} is malformed: {e}") from e
    if len(data) != type_desc.size:
        _reject(
            f"Archived data is {len(data)} bytes but '{encoding}' needs {type_desc.size}"
        )
    cls = MutableTypedValue if mutable else TypedValue
    return cls(data, type_desc)


def _rejection(message: str) -> DecodingError:
    logger.debug("Rejected archive: %s", message)
    return DecodingError(message)


def _reject(message: str) -> NoReturn:
    raise _rejection(message)
