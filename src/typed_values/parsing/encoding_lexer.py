"""Lexer for type-encoding strings."""

import ply.lex as lex

from typed_values.errors import MalformedEncoding


class EncodingLexer:
    """Lexer for tokenizing type-encoding strings such as {point="x"f"y"f}."""

    tokens = [
        "CODE",
        "VOID",
        "QUALIFIER",
        "INTEGER",
        "FIELDNAME",
        "NAME",
        "CARET",
        "EQUALS",
        "LBRACE",
        "RBRACE",
        "LBRACKET",
        "RBRACKET",
    ]

    # Lexer states: record name between '{' and '=' (or '}' for opaque records)
    states = (("recname", "exclusive"),)

    # Simple tokens (INITIAL state)
    t_CARET = r"\^"
    t_RBRACE = r"\}"
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"

    # Encodings never contain whitespace
    t_ignore = ""

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_LBRACE(self, t: lex.LexToken) -> lex.LexToken:
        r"\{"
        t.lexer.begin("recname")
        return t

    def t_CODE(self, t: lex.LexToken) -> lex.LexToken:
        r"[cCsSiIlLqQfdB*@\#:]"
        return t

    def t_VOID(self, t: lex.LexToken) -> lex.LexToken:
        r"v"
        return t

    def t_QUALIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[rnNoORV]"
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_FIELDNAME(self, t: lex.LexToken) -> lex.LexToken:
        r'"[^"]*"'
        t.value = t.value[1:-1]
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise MalformedEncoding(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}",
            t.lexer.lexdata,
        )

    # --- Exclusive record name state tokens ---

    t_recname_ignore = ""

    def t_recname_NAME(self, t: lex.LexToken) -> lex.LexToken:
        r"[^=\{\}\[\]\"\^]+"
        return t

    def t_recname_EQUALS(self, t: lex.LexToken) -> lex.LexToken:
        r"="
        t.lexer.begin("INITIAL")
        return t

    def t_recname_RBRACE(self, t: lex.LexToken) -> lex.LexToken:
        r"\}"
        t.lexer.begin("INITIAL")
        return t

    def t_recname_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise MalformedEncoding(
            f"Illegal character '{t.value[0]}' in record name at position {t.lexpos}",
            t.lexer.lexdata,
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize, starting from the initial state."""
        self.lexer.begin("INITIAL")
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
