"""Parsing module for type-encoding strings."""

from typed_values.parsing.encoding_lexer import EncodingLexer
from typed_values.parsing.encoding_parser import (
    EncodingParser,
    as_descriptor,
    parse_encoding,
)

__all__ = [
    "as_descriptor",
    "EncodingLexer",
    "EncodingParser",
    "parse_encoding",
]
