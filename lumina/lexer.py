"""Lumina Lexer — Tokenizer with line/column tracking.

Produces a flat stream of tokens from Lumina source code. Line feeds are
significant (they terminate statements) and are emitted as NEWLINE tokens,
then pruned by a normalization pass so the parser never has to special-case
line continuations after an opening bracket, a comma or a semicolon.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lumina.errors import LexError, SourceLocation, lex_error

logger = logging.getLogger(__name__)


class TokenType(Enum):
    # Literals
    NUMBER = "Number"
    STRING = "String"
    IDENTIFIER = "Identifier"

    # Keywords
    LET = "let"
    VAR = "var"
    FN = "fn"
    RETURN = "return"
    IF = "if"
    ELSE = "else"
    FOR = "for"
    IN = "in"
    COMPONENT = "component"
    STATE = "state"
    EFFECT = "effect"
    STYLE = "style"
    IMPORT = "import"
    EXPORT = "export"
    FROM = "from"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"

    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    ASSIGN = "="
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="
    AND = "&&"
    OR = "||"
    NOT = "!"
    ARROW = "=>"
    DOT = "."
    DOT_DOT = ".."
    PIPE = "|>"
    QUESTION = "?"

    # Delimiters
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    COLON = ":"
    SEMICOLON = ";"
    AT = "@"
    HASH = "#"

    # Special
    NEWLINE = "Newline"
    EOF = "EOF"


KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "var": TokenType.VAR,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "component": TokenType.COMPONENT,
    "state": TokenType.STATE,
    "effect": TokenType.EFFECT,
    "style": TokenType.STYLE,
    "import": TokenType.IMPORT,
    "export": TokenType.EXPORT,
    "from": TokenType.FROM,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

# Longest match first: every two-character operator is tried before its prefix.
TWO_CHAR_OPERATORS: dict[str, TokenType] = {
    "|>": TokenType.PIPE,
    "=>": TokenType.ARROW,
    "==": TokenType.EQ,
    "!=": TokenType.NEQ,
    "<=": TokenType.LTE,
    ">=": TokenType.GTE,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "..": TokenType.DOT_DOT,
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "=": TokenType.ASSIGN,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "!": TokenType.NOT,
    "?": TokenType.QUESTION,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    ".": TokenType.DOT,
    "@": TokenType.AT,
    "#": TokenType.HASH,
}

ESCAPES: dict[str, str] = {"n": "\n", "t": "\t", "\\": "\\", '"': '"'}

# A NEWLINE right after one of these carries no statement boundary.
_OPENERS = (
    TokenType.LBRACE,
    TokenType.LPAREN,
    TokenType.LBRACKET,
    TokenType.COMMA,
    TokenType.SEMICOLON,
    TokenType.NEWLINE,
)

# A NEWLINE right before one of these is dropped as well.
_CLOSERS = (
    TokenType.RBRACE,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.ELSE,
)


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    location: SourceLocation
    template: bool = False

    @property
    def line(self) -> int:
        return self.location.line

    @property
    def column(self) -> int:
        return self.location.column

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "value": self.value,
            "line": self.line,
            "column": self.column,
        }

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.location})"


class Lexer:
    """Tokenizer for Lumina source code."""

    def __init__(self, source: str, filename: str = "<stdin>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.filename)

    def _peek(self) -> Optional[str]:
        if self.pos < len(self.source):
            return self.source[self.pos]
        return None

    def _peek_ahead(self, offset: int = 1) -> Optional[str]:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return None

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] in (" ", "\t", "\r"):
            self._advance()

    def _skip_line_comment(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] != "\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        loc = self._loc()
        self._advance()
        self._advance()
        while self.pos < len(self.source):
            if self.source[self.pos] == "*" and self._peek_ahead() == "/":
                self._advance()
                self._advance()
                return
            self._advance()
        raise LexError(lex_error("Unterminated block comment", loc))

    def _read_string(self) -> Token:
        loc = self._loc()
        self._advance()  # opening quote
        chars: list[str] = []
        while self.pos < len(self.source):
            ch = self._advance()
            if ch == '"':
                return Token(TokenType.STRING, "".join(chars), loc)
            if ch == "\\":
                if self.pos >= len(self.source):
                    break
                next_ch = self._advance()
                chars.append(ESCAPES.get(next_ch, next_ch))
            else:
                chars.append(ch)
        raise LexError(lex_error("Unterminated string literal", loc))

    def _read_template_string(self) -> Token:
        loc = self._loc()
        self._advance()  # opening backquote
        start = self.pos
        while self.pos < len(self.source):
            if self.source[self.pos] == "`":
                value = self.source[start:self.pos]
                self._advance()
                return Token(TokenType.STRING, value, loc, template=True)
            self._advance()
        raise LexError(lex_error("Unterminated template string", loc))

    def _read_number(self) -> Token:
        loc = self._loc()
        start = self.pos
        while self.pos < len(self.source) and _is_digit(self.source[self.pos]):
            self._advance()
        if self._peek() == "." and _is_digit(self._peek_ahead() or ""):
            self._advance()
            while self.pos < len(self.source) and _is_digit(self.source[self.pos]):
                self._advance()
        return Token(TokenType.NUMBER, self.source[start:self.pos], loc)

    def _read_identifier(self) -> Token:
        loc = self._loc()
        start = self.pos
        while self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
            self._advance()
        value = self.source[start:self.pos]
        return Token(KEYWORDS.get(value, TokenType.IDENTIFIER), value, loc)

    def _read_raw_tokens(self) -> list[Token]:
        tokens: list[Token] = []
        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self.source[self.pos]
            loc = self._loc()

            if ch == "\n":
                tokens.append(Token(TokenType.NEWLINE, "\\n", loc))
                self._advance()
            elif ch == "/" and self._peek_ahead() == "/":
                self._skip_line_comment()
            elif ch == "/" and self._peek_ahead() == "*":
                self._skip_block_comment()
            elif _is_digit(ch):
                tokens.append(self._read_number())
            elif ch == '"':
                tokens.append(self._read_string())
            elif ch == "`":
                tokens.append(self._read_template_string())
            elif _is_ident_start(ch):
                tokens.append(self._read_identifier())
            elif self.source[self.pos:self.pos + 2] in TWO_CHAR_OPERATORS:
                op = self.source[self.pos:self.pos + 2]
                self._advance()
                self._advance()
                tokens.append(Token(TWO_CHAR_OPERATORS[op], op, loc))
            elif ch in SINGLE_CHAR_TOKENS:
                self._advance()
                tokens.append(Token(SINGLE_CHAR_TOKENS[ch], ch, loc))
            else:
                raise LexError(lex_error(f"Unexpected character '{ch}'", loc))

        tokens.append(Token(TokenType.EOF, "", self._loc()))
        return tokens

    def tokenize(self) -> list[Token]:
        tokens = normalize_newlines(self._read_raw_tokens())
        logger.debug("lexed %d tokens from %s", len(tokens), self.filename)
        return tokens


def normalize_newlines(tokens: list[Token]) -> list[Token]:
    """Drop NEWLINE tokens that cannot end a statement.

    A NEWLINE is removed when the previous kept token opens a group, is a
    separator or is itself a NEWLINE, and a kept NEWLINE is retracted when
    the next token closes a group or is ``else``.
    """
    result: list[Token] = []
    for tok in tokens:
        if tok.type == TokenType.NEWLINE:
            if result and result[-1].type in _OPENERS:
                continue
            result.append(tok)
            continue
        if tok.type in _CLOSERS and result and result[-1].type == TokenType.NEWLINE:
            result.pop()
        result.append(tok)
    return result


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return _is_ident_start(ch) or _is_digit(ch)


def tokenize(source: str, filename: str = "<stdin>") -> list[Token]:
    """Convenience function to tokenize Lumina source code."""
    return Lexer(source, filename).tokenize()
