"""Lumina Lexer Tests.

Token kinds, literal decoding, newline pruning and error reporting.
"""

import pytest

from lumina.lexer import Token, TokenType, tokenize
from lumina.errors import ErrorKind, LexError


def types(source):
    return [t.type for t in tokenize(source)]


class TestTokenKinds:
    """Keywords, identifiers, numbers and operators."""

    def test_variable_declaration(self):
        tokens = tokenize("let x = 42")
        assert [t.type for t in tokens] == [
            TokenType.LET, TokenType.IDENTIFIER, TokenType.ASSIGN, TokenType.NUMBER, TokenType.EOF,
        ]
        assert tokens[1].value == "x"
        assert tokens[3].value == "42"

    def test_all_keywords_recognized(self):
        source = "let var fn return if else for in component state effect style import export from true false null"
        kinds = types(source)[:-1]
        assert TokenType.IDENTIFIER not in kinds
        assert len(kinds) == 18

    def test_identifier_with_digits_and_underscores(self):
        tokens = tokenize("_item2 fooBar")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "_item2"
        assert tokens[1].value == "fooBar"

    def test_decimal_number(self):
        tokens = tokenize("3.25")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == "3.25"

    def test_range_is_not_a_decimal(self):
        assert types("1..2") == [TokenType.NUMBER, TokenType.DOT_DOT, TokenType.NUMBER, TokenType.EOF]

    def test_two_char_operators_win(self):
        assert types("a |> b") == [TokenType.IDENTIFIER, TokenType.PIPE, TokenType.IDENTIFIER, TokenType.EOF]
        assert types("== != <= >= && || =>")[:-1] == [
            TokenType.EQ, TokenType.NEQ, TokenType.LTE, TokenType.GTE,
            TokenType.AND, TokenType.OR, TokenType.ARROW,
        ]

    def test_question_mark_is_a_token(self):
        assert types("a ? b : c")[1] == TokenType.QUESTION

    def test_event_attribute_sigil(self):
        assert types("@click")[:2] == [TokenType.AT, TokenType.IDENTIFIER]


class TestStrings:
    """String and template literals."""

    def test_escape_sequences(self):
        tokens = tokenize(r'"a\nb\t\"q\"\\"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == 'a\nb\t"q"\\'

    def test_unknown_escape_keeps_character(self):
        assert tokenize(r'"\q"')[0].value == "q"

    def test_template_string_is_raw(self):
        tok = tokenize("`Hello ${name}\\n`")[0]
        assert tok.type == TokenType.STRING
        assert tok.template is True
        assert tok.value == "Hello ${name}\\n"

    def test_quoted_string_is_not_template(self):
        assert tokenize('"x"')[0].template is False

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc:
            tokenize('let s = "oops')
        assert exc.value.errors[0].kind == ErrorKind.LEX_ERROR
        assert "Unterminated string" in str(exc.value)

    def test_unterminated_template(self):
        with pytest.raises(LexError):
            tokenize("`never closed")


class TestNewlines:
    """NEWLINE tokens are pruned where they cannot end a statement."""

    def test_newline_separates_statements(self):
        assert types("a\nb") == [TokenType.IDENTIFIER, TokenType.NEWLINE, TokenType.IDENTIFIER, TokenType.EOF]

    def test_blank_lines_collapse(self):
        assert types("a\n\n\nb").count(TokenType.NEWLINE) == 1

    def test_newline_after_opener_dropped(self):
        assert types("{\na\n}") == [TokenType.LBRACE, TokenType.IDENTIFIER, TokenType.RBRACE, TokenType.EOF]

    def test_newline_after_comma_dropped(self):
        assert TokenType.NEWLINE not in types("f(a,\nb)")

    def test_newline_before_else_dropped(self):
        assert TokenType.NEWLINE not in types("if x {\n}\nelse {\n}")


class TestComments:

    def test_line_comment(self):
        assert types("x // comment") == [TokenType.IDENTIFIER, TokenType.EOF]

    def test_block_comment(self):
        assert types("x /* a\nb */ y") == [TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF]

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError) as exc:
            tokenize("x /* never")
        assert "block comment" in str(exc.value)


class TestLocations:
    """1-based line and column tracking."""

    def test_line_and_column(self):
        tokens = tokenize("let\n  x")
        x = [t for t in tokens if t.type == TokenType.IDENTIFIER][0]
        assert x.line == 2
        assert x.column == 3

    def test_filename_is_recorded(self):
        tok = tokenize("x", filename="app.lum")[0]
        assert tok.location.file == "app.lum"

    def test_unexpected_character_location(self):
        with pytest.raises(LexError) as exc:
            tokenize("let a = 1\nlet b = $")
        loc = exc.value.location
        assert (loc.line, loc.column) == (2, 9)
        assert "line 2, column 9" in str(exc.value)

    def test_token_to_dict(self):
        d = tokenize("foo")[0].to_dict()
        assert d == {"type": "Identifier", "value": "foo", "line": 1, "column": 1}

    def test_stream_always_ends_with_eof(self):
        tokens = tokenize("")
        assert len(tokens) == 1
        assert isinstance(tokens[0], Token)
        assert tokens[0].type == TokenType.EOF
