"""Parser for type-encoding strings."""

from __future__ import annotations

import logging
import threading
from functools import lru_cache
from typing import Any

import ply.yacc as yacc

from typed_values.errors import MalformedEncoding
from typed_values.parsing.encoding_lexer import EncodingLexer
from typed_values.types import (
    SCALAR_CODES,
    ArrayDescriptor,
    FieldDescriptor,
    RecordDescriptor,
    ScalarDescriptor,
    ScalarKind,
    TypeDescriptor,
)

logger = logging.getLogger(__name__)


class EncodingParser:
    """Parser turning one type-encoding string into a TypeDescriptor.

    Grammar:

        type     := qualifier* (scalar | pointer | array | record)
        pointer  := '^' type | '^v' | '^{' name? '}'
        array    := '[' count type ']'
        record   := '{' name? '=' field* '}'
        field    := ('"' name '"')? type

    Qualifiers (const, in, out, ...) are accepted and dropped.
    """

    tokens = EncodingLexer.tokens
    start = "encoding"

    def __init__(self) -> None:
        self.lexer = EncodingLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._text = ""

    def p_encoding(self, p: yacc.YaccProduction) -> None:
        """encoding : type"""
        p[0] = p[1]

    def p_type_qualified(self, p: yacc.YaccProduction) -> None:
        """type : QUALIFIER type"""
        p[0] = p[2]

    def p_type(self, p: yacc.YaccProduction) -> None:
        """type : scalar
                | pointer
                | array
                | record"""
        p[0] = p[1]

    def p_scalar(self, p: yacc.YaccProduction) -> None:
        """scalar : CODE"""
        p[0] = ScalarDescriptor(kind=SCALAR_CODES[p[1]])

    def p_pointer(self, p: yacc.YaccProduction) -> None:
        """pointer : CARET type"""
        p[0] = ScalarDescriptor(kind=ScalarKind.POINTER, target=p[2].normalized_encoding)

    def p_pointer_void(self, p: yacc.YaccProduction) -> None:
        """pointer : CARET VOID"""
        p[0] = ScalarDescriptor(kind=ScalarKind.POINTER, target="v")

    def p_pointer_opaque(self, p: yacc.YaccProduction) -> None:
        """pointer : CARET LBRACE opt_name RBRACE"""
        p[0] = ScalarDescriptor(kind=ScalarKind.POINTER, target=f"{{{p[3] or ''}}}")

    def p_array(self, p: yacc.YaccProduction) -> None:
        """array : LBRACKET INTEGER type RBRACKET"""
        if p[2] == 0:
            raise MalformedEncoding(
                f"Zero-length array at position {p.lexpos(1)}", self._text
            )
        p[0] = ArrayDescriptor(element=p[3], count=p[2])

    def p_record(self, p: yacc.YaccProduction) -> None:
        """record : LBRACE opt_name EQUALS field_list RBRACE"""
        p[0] = RecordDescriptor(name=p[2], fields=tuple(p[4]))

    def p_opt_name(self, p: yacc.YaccProduction) -> None:
        """opt_name : NAME"""
        p[0] = p[1]

    def p_opt_name_empty(self, p: yacc.YaccProduction) -> None:
        """opt_name : empty"""
        p[0] = None

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list field"""
        p[0] = p[1]
        p[0].append(p[2])

    def p_field_list_empty(self, p: yacc.YaccProduction) -> None:
        """field_list : empty"""
        p[0] = []

    def p_field_named(self, p: yacc.YaccProduction) -> None:
        """field : FIELDNAME type"""
        p[0] = FieldDescriptor(name=p[1], type_desc=p[2])

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : type"""
        p[0] = FieldDescriptor(name=None, type_desc=p[1])

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        pass

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise MalformedEncoding(
                f"Unexpected '{p.value}' at position {p.lexpos}", self._text
            )
        else:
            raise MalformedEncoding("Unexpected end of encoding", self._text)

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> TypeDescriptor:
        """Parse one complete encoding string and return its descriptor."""
        if not isinstance(data, str):
            raise MalformedEncoding(f"Encoding must be a string, got {type(data).__name__}")
        if not data:
            raise MalformedEncoding("Empty encoding", data)
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._text = data
        self.lexer.input(data)
        try:
            return self.parser.parse(data, lexer=self.lexer.lexer)
        except MalformedEncoding as e:
            logger.debug("Rejected encoding %r: %s", data, e)
            raise


_parser = EncodingParser()
_parser_lock = threading.Lock()


def parse_encoding(data: str) -> TypeDescriptor:
    """Parse an encoding string with a shared parser.

    Descriptors are immutable, so repeated encodings share one instance.
    """
    if not isinstance(data, str):
        raise MalformedEncoding(f"Encoding must be a string, got {type(data).__name__}")
    return _parse_cached(data)


@lru_cache(maxsize=512)
def _parse_cached(data: str) -> TypeDescriptor:
    with _parser_lock:
        return _parser.parse(data)


def as_descriptor(type_desc: TypeDescriptor | str) -> TypeDescriptor:
    """Return type_desc itself, or the descriptor parsed from an encoding string."""
    if isinstance(type_desc, TypeDescriptor):
        return type_desc
    return parse_encoding(type_desc)
