"""Lumina Parser — recursive-descent parser with precedence climbing.

Parses a token stream into an AST. The grammar is LL(1) apart from two
explicit lookaheads: ``_is_arrow_function`` scans to the matching ``)`` to
tell an arrow-function parameter list from a parenthesized expression, and
``_is_object_literal`` peeks for ``identifier :`` after a ``{`` to tell an
object literal from a block.

``<`` starts a UI element (rather than a comparison) exactly when the next
token is an identifier beginning with a letter. An element whose tag starts
upper-case is a component instance; that is decided here, once, and never
revisited by later passes.
"""

from __future__ import annotations

import logging
from typing import Optional

from lumina.lexer import KEYWORDS, Token, TokenType, tokenize
from lumina.ast_nodes import (
    Program, Node, Expr, Param, TypeAnnotation,
    ComponentDecl, FunctionDecl, VariableDecl, StateDecl, EffectDecl,
    StyleDecl, StyleProperty, ImportDecl, ExportDecl,
    ReturnStatement, IfStatement, ForStatement, ExpressionStatement, BlockStatement,
    UIElement, UIAttribute, UIText, UIExpression, ComponentInstance, Prop,
    BinaryExpr, UnaryExpr, CallExpr, MemberExpr, AssignExpr, ArrowFunction,
    ArrayLiteral, ObjectLiteral, Property, Identifier, NumberLiteral,
    StringLiteral, BooleanLiteral, NullLiteral, TemplateLiteral,
    ConditionalExpr, PipeExpr,
)
from lumina.errors import ParseError, SourceLocation, syntax_error

logger = logging.getLogger(__name__)

_KEYWORD_TYPES = frozenset(KEYWORDS.values())

# Tokens that may continue a run of bare text between UI tags.
_TEXT_TOKENS = (
    TokenType.IDENTIFIER,
    TokenType.NUMBER,
    TokenType.DOT,
    TokenType.COMMA,
    TokenType.COLON,
    TokenType.NOT,
    TokenType.QUESTION,
)


class Parser:
    """Recursive-descent parser for Lumina."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>"):
        self.tokens = tokens
        self.pos = 0
        self.filename = filename

    # -------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]  # EOF

    def _peek(self) -> TokenType:
        return self._current().type

    def _peek_at(self, offset: int) -> Optional[Token]:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return None

    def _loc(self) -> SourceLocation:
        return self._current().location

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _check(self, tt: TokenType) -> bool:
        return self._peek() == tt

    def _match(self, tt: TokenType) -> Optional[Token]:
        if self._peek() == tt:
            return self._advance()
        return None

    def _expect(self, tt: TokenType) -> Token:
        tok = self._current()
        if tok.type != tt:
            raise self._error(
                f"Expected {tt.value}, got {tok.type.value} ('{tok.value}')",
                tok,
            )
        return self._advance()

    def _expect_name(self) -> str:
        """An identifier, or a keyword used as a name (attributes, members, keys)."""
        tok = self._current()
        if tok.type == TokenType.IDENTIFIER or tok.type in _KEYWORD_TYPES:
            return self._advance().value
        raise self._error(
            f"Expected identifier, got {tok.type.value} ('{tok.value}')",
            tok,
        )

    def _is_at_end(self) -> bool:
        return self._peek() == TokenType.EOF

    def _skip_newlines(self) -> None:
        while self._peek() in (TokenType.NEWLINE, TokenType.SEMICOLON):
            self._advance()

    def _skip_terminator(self) -> None:
        if not self._match(TokenType.NEWLINE):
            self._match(TokenType.SEMICOLON)

    def _error(self, message: str, tok: Optional[Token] = None, **details) -> ParseError:
        tok = tok or self._current()
        return ParseError(syntax_error(message, tok.location, **details))

    # -------------------------------------------------------------------
    # Top-level
    # -------------------------------------------------------------------

    def parse(self) -> Program:
        body: list[Node] = []
        while True:
            self._skip_newlines()
            if self._is_at_end():
                break
            body.append(self._parse_statement())
        logger.debug("parsed %d top-level nodes from %s", len(body), self.filename)
        return Program(body=tuple(body), filename=self.filename, location=SourceLocation(1, 1, self.filename))

    def _parse_statement(self) -> Node:
        tt = self._peek()
        if tt == TokenType.IMPORT:
            return self._parse_import()
        elif tt == TokenType.EXPORT:
            return self._parse_export()
        elif tt == TokenType.COMPONENT:
            return self._parse_component()
        elif tt == TokenType.FN:
            return self._parse_function()
        elif tt in (TokenType.LET, TokenType.VAR):
            return self._parse_variable()
        elif tt == TokenType.STATE:
            return self._parse_state()
        elif tt == TokenType.EFFECT:
            return self._parse_effect()
        elif tt == TokenType.STYLE:
            return self._parse_style()
        elif tt == TokenType.RETURN:
            return self._parse_return()
        elif tt == TokenType.IF:
            return self._parse_if()
        elif tt == TokenType.FOR:
            return self._parse_for()
        elif tt == TokenType.LBRACE and not self._is_object_literal():
            return self._parse_block_statement()
        elif self._is_ui_element():
            return self._parse_ui_element()
        return self._parse_expression_statement()

    # -------------------------------------------------------------------
    # Module system
    # -------------------------------------------------------------------

    def _parse_import(self) -> ImportDecl:
        loc = self._loc()
        self._expect(TokenType.IMPORT)
        self._expect(TokenType.LBRACE)
        specifiers: list[str] = []
        while not self._check(TokenType.RBRACE):
            specifiers.append(self._expect(TokenType.IDENTIFIER).value)
            if not self._match(TokenType.COMMA):
                break
            self._skip_newlines()
        self._expect(TokenType.RBRACE)
        self._expect(TokenType.FROM)
        source = self._expect(TokenType.STRING).value
        self._skip_terminator()
        return ImportDecl(specifiers=tuple(specifiers), source=source, location=loc)

    def _parse_export(self) -> ExportDecl:
        loc = self._loc()
        self._expect(TokenType.EXPORT)
        if self._match(TokenType.LBRACE):
            specifiers: list[str] = []
            while not self._check(TokenType.RBRACE):
                specifiers.append(self._expect(TokenType.IDENTIFIER).value)
                if not self._match(TokenType.COMMA):
                    break
                self._skip_newlines()
            self._expect(TokenType.RBRACE)
            self._skip_terminator()
            return ExportDecl(specifiers=tuple(specifiers), location=loc)

        declaration = self._parse_statement()
        # Only these declarations bind a JavaScript name that can be published.
        specifiers_t: tuple[str, ...] = ()
        if isinstance(declaration, (ComponentDecl, FunctionDecl, VariableDecl)):
            specifiers_t = (declaration.name,)
        return ExportDecl(specifiers=specifiers_t, declaration=declaration, location=loc)

    # -------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------

    def _parse_component(self) -> ComponentDecl:
        loc = self._loc()
        self._expect(TokenType.COMPONENT)
        name = self._expect(TokenType.IDENTIFIER).value
        params: tuple[Param, ...] = ()
        if self._match(TokenType.LPAREN):
            params = self._parse_params()
            self._expect(TokenType.RPAREN)
        self._expect(TokenType.LBRACE)
        body = self._parse_block()
        self._expect(TokenType.RBRACE)
        return ComponentDecl(name=name, params=params, body=body, location=loc)

    def _parse_function(self) -> FunctionDecl:
        loc = self._loc()
        self._expect(TokenType.FN)
        name = self._expect(TokenType.IDENTIFIER).value
        self._expect(TokenType.LPAREN)
        params = self._parse_params()
        self._expect(TokenType.RPAREN)

        # `->` is lexed as `-` followed by `>`
        return_type: Optional[TypeAnnotation] = None
        if self._check(TokenType.MINUS):
            nxt = self._peek_at(1)
            if nxt is not None and nxt.type == TokenType.GT:
                self._advance()
                self._advance()
                return_type = self._parse_type_annotation()

        self._expect(TokenType.LBRACE)
        body = self._parse_block()
        self._expect(TokenType.RBRACE)
        return FunctionDecl(name=name, params=params, return_type=return_type, body=body, location=loc)

    def _parse_variable(self) -> VariableDecl:
        loc = self._loc()
        mutable = self._advance().type == TokenType.VAR
        name = self._expect(TokenType.IDENTIFIER).value
        type_ann: Optional[TypeAnnotation] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type_annotation()
        self._expect(TokenType.ASSIGN)
        value = self._parse_expression()
        self._skip_terminator()
        return VariableDecl(name=name, mutable=mutable, type_annotation=type_ann, value=value, location=loc)

    def _parse_state(self) -> StateDecl:
        loc = self._loc()
        self._expect(TokenType.STATE)
        name = self._expect(TokenType.IDENTIFIER).value
        type_ann: Optional[TypeAnnotation] = None
        if self._match(TokenType.COLON):
            type_ann = self._parse_type_annotation()
        self._expect(TokenType.ASSIGN)
        value = self._parse_expression()
        self._skip_terminator()
        return StateDecl(name=name, type_annotation=type_ann, value=value, location=loc)

    def _parse_effect(self) -> EffectDecl:
        loc = self._loc()
        self._expect(TokenType.EFFECT)
        dependencies: list[str] = []
        if self._match(TokenType.LPAREN):
            while not self._check(TokenType.RPAREN):
                dependencies.append(self._expect(TokenType.IDENTIFIER).value)
                if not self._match(TokenType.COMMA):
                    break
            self._expect(TokenType.RPAREN)
        self._expect(TokenType.LBRACE)
        body = self._parse_block()
        self._expect(TokenType.RBRACE)
        return EffectDecl(dependencies=tuple(dependencies), body=body, location=loc)

    def _parse_style(self) -> StyleDecl:
        loc = self._loc()
        self._expect(TokenType.STYLE)
        name: Optional[str] = None
        if self._check(TokenType.IDENTIFIER):
            name = self._advance().value
        self._expect(TokenType.LBRACE)
        self._skip_newlines()
        properties: list[StyleProperty] = []
        while not self._check(TokenType.RBRACE):
            key = self._parse_property_key()
            self._expect(TokenType.COLON)
            value = self._parse_expression()
            properties.append(StyleProperty(key=key, value=value))
            if not self._match(TokenType.COMMA):
                self._match(TokenType.SEMICOLON)
            self._skip_newlines()
        self._expect(TokenType.RBRACE)
        return StyleDecl(name=name, properties=tuple(properties), location=loc)

    def _parse_property_key(self) -> str:
        if self._check(TokenType.STRING):
            return self._advance().value
        return self._expect_name()

    # -------------------------------------------------------------------
    # Type annotations and parameters
    # -------------------------------------------------------------------

    def _parse_type_annotation(self) -> TypeAnnotation:
        name = self._expect(TokenType.IDENTIFIER).value
        generic_args: list[TypeAnnotation] = []
        if self._match(TokenType.LT):
            generic_args.append(self._parse_type_annotation())
            while self._match(TokenType.COMMA):
                generic_args.append(self._parse_type_annotation())
            self._expect(TokenType.GT)
        return TypeAnnotation(name=name, generic_args=tuple(generic_args))

    def _parse_params(self) -> tuple[Param, ...]:
        params: list[Param] = []
        self._skip_newlines()
        while not self._check(TokenType.RPAREN):
            name = self._expect(TokenType.IDENTIFIER).value
            type_ann: Optional[TypeAnnotation] = None
            default: Optional[Expr] = None
            if self._match(TokenType.COLON):
                type_ann = self._parse_type_annotation()
            if self._match(TokenType.ASSIGN):
                default = self._parse_expression()
            params.append(Param(name=name, type_annotation=type_ann, default_value=default))
            if not self._match(TokenType.COMMA):
                break
            self._skip_newlines()
        return tuple(params)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _parse_block(self) -> tuple[Node, ...]:
        stmts: list[Node] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            stmts.append(self._parse_statement())
            self._skip_newlines()
        return tuple(stmts)

    def _parse_block_statement(self) -> BlockStatement:
        loc = self._loc()
        self._expect(TokenType.LBRACE)
        body = self._parse_block()
        self._expect(TokenType.RBRACE)
        return BlockStatement(body=body, location=loc)

    def _parse_return(self) -> ReturnStatement:
        loc = self._loc()
        self._expect(TokenType.RETURN)
        value: Optional[Expr] = None
        if self._peek() not in (TokenType.NEWLINE, TokenType.RBRACE, TokenType.SEMICOLON, TokenType.EOF):
            value = self._parse_expression()
        self._skip_terminator()
        return ReturnStatement(value=value, location=loc)

    def _parse_if(self) -> IfStatement:
        loc = self._loc()
        self._expect(TokenType.IF)
        condition = self._parse_expression()
        self._expect(TokenType.LBRACE)
        consequent = self._parse_block()
        self._expect(TokenType.RBRACE)
        alternate: Optional[tuple[Node, ...]] = None
        self._skip_newlines()
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                alternate = (self._parse_if(),)
            else:
                self._expect(TokenType.LBRACE)
                alternate = self._parse_block()
                self._expect(TokenType.RBRACE)
        return IfStatement(condition=condition, consequent=consequent, alternate=alternate, location=loc)

    def _parse_for(self) -> ForStatement:
        loc = self._loc()
        self._expect(TokenType.FOR)
        variable = self._expect(TokenType.IDENTIFIER).value
        self._expect(TokenType.IN)
        iterable = self._parse_expression()
        self._expect(TokenType.LBRACE)
        body = self._parse_block()
        self._expect(TokenType.RBRACE)
        return ForStatement(variable=variable, iterable=iterable, body=body, location=loc)

    def _parse_expression_statement(self) -> ExpressionStatement:
        loc = self._loc()
        expr = self._parse_expression()
        self._skip_terminator()
        return ExpressionStatement(expression=expr, location=loc)

    # -------------------------------------------------------------------
    # UI markup
    # -------------------------------------------------------------------

    def _is_ui_element(self) -> bool:
        if not self._check(TokenType.LT):
            return False
        nxt = self._peek_at(1)
        if nxt is None or nxt.type != TokenType.IDENTIFIER:
            return False
        return nxt.value[:1].isascii() and nxt.value[:1].isalpha()

    def _is_closing_tag(self) -> bool:
        nxt = self._peek_at(1)
        return self._check(TokenType.LT) and nxt is not None and nxt.type == TokenType.SLASH

    def _parse_ui_element(self) -> Expr:
        loc = self._loc()
        self._expect(TokenType.LT)
        tag = self._expect(TokenType.IDENTIFIER).value
        is_component = tag[0].isupper()

        attributes: list[UIAttribute] = []
        props: list[Prop] = []
        self._skip_newlines()

        while self._peek() not in (TokenType.GT, TokenType.SLASH, TokenType.EOF):
            attr_name, attr_value = self._parse_attribute()
            if is_component:
                # bare attributes carry no value and are dropped for components
                if attr_value is not None:
                    props.append(Prop(name=attr_name, value=attr_value))
            else:
                attributes.append(UIAttribute(name=attr_name, value=attr_value))
            self._skip_newlines()

        if self._match(TokenType.SLASH):
            self._expect(TokenType.GT)
            if is_component:
                return ComponentInstance(name=tag, props=tuple(props), self_closing=True, location=loc)
            return UIElement(tag=tag, attributes=tuple(attributes), self_closing=True, location=loc)

        self._expect(TokenType.GT)
        children = self._parse_ui_children()

        self._expect(TokenType.LT)
        self._expect(TokenType.SLASH)
        closing_tok = self._current()
        closing = self._expect(TokenType.IDENTIFIER).value
        if closing != tag:
            raise self._error(
                f"Expected closing tag </{tag}>, got </{closing}>",
                closing_tok,
                opening_tag=tag,
                closing_tag=closing,
            )
        self._expect(TokenType.GT)

        if is_component:
            return ComponentInstance(name=tag, props=tuple(props), children=children, location=loc)
        return UIElement(tag=tag, attributes=tuple(attributes), children=children, location=loc)

    def _parse_attribute(self) -> tuple[str, Optional[Expr]]:
        if self._match(TokenType.AT):
            name = "@" + self._expect_name()
        else:
            name = self._expect_name()
            while self._match(TokenType.MINUS):
                name += "-" + self._expect_name()

        value: Optional[Expr] = None
        if self._match(TokenType.ASSIGN):
            if self._match(TokenType.LBRACE):
                value = self._parse_expression()
                self._expect(TokenType.RBRACE)
            elif self._check(TokenType.STRING):
                tok = self._advance()
                value = StringLiteral(value=tok.value, location=tok.location)
            else:
                # unbraced values stop short of comparisons so the closing `>` survives
                value = self._parse_unary()
        return name, value

    def _parse_ui_children(self) -> tuple[Node, ...]:
        children: list[Node] = []
        while not self._is_closing_tag():
            self._skip_newlines()
            if self._is_closing_tag():
                break

            if self._check(TokenType.LBRACE):
                loc = self._loc()
                self._advance()
                self._skip_newlines()
                if self._check(TokenType.IF):
                    children.append(self._parse_if())
                elif self._check(TokenType.FOR):
                    children.append(self._parse_for())
                else:
                    expr = self._parse_expression()
                    children.append(UIExpression(expression=expr, location=loc))
                self._skip_newlines()
                self._expect(TokenType.RBRACE)
            elif self._is_ui_element():
                children.append(self._parse_ui_element())
            elif self._check(TokenType.STRING):
                tok = self._advance()
                children.append(UIText(value=tok.value, location=tok.location))
            elif self._peek() in (TokenType.IDENTIFIER, TokenType.NUMBER):
                children.append(self._parse_ui_text_run())
            else:
                break
        return tuple(children)

    def _parse_ui_text_run(self) -> UIText:
        first = self._advance()
        words = [first.value]
        while self._peek() in _TEXT_TOKENS and not self._is_closing_tag():
            words.append(self._advance().value)
        return UIText(value=" ".join(words), location=first.location)

    # -------------------------------------------------------------------
    # Expressions (precedence climbing)
    # -------------------------------------------------------------------

    def _parse_expression(self) -> Expr:
        return self._parse_pipe()

    def _parse_pipe(self) -> Expr:
        left = self._parse_assignment()
        while self._check(TokenType.PIPE):
            loc = self._loc()
            self._advance()
            right = self._parse_assignment()
            left = PipeExpr(left=left, right=right, location=loc)
        return left

    def _parse_assignment(self) -> Expr:
        left = self._parse_ternary()
        if self._check(TokenType.ASSIGN):
            loc = self._loc()
            self._advance()
            value = self._parse_assignment()
            return AssignExpr(target=left, value=value, location=loc)
        return left

    def _parse_ternary(self) -> Expr:
        condition = self._parse_or()
        if self._check(TokenType.QUESTION):
            loc = self._loc()
            self._advance()
            consequent = self._parse_assignment()
            self._expect(TokenType.COLON)
            alternate = self._parse_assignment()
            return ConditionalExpr(condition=condition, consequent=consequent, alternate=alternate, location=loc)
        return condition

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._check(TokenType.OR):
            loc = self._loc()
            self._advance()
            right = self._parse_and()
            left = BinaryExpr(operator="||", left=left, right=right, location=loc)
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_equality()
        while self._check(TokenType.AND):
            loc = self._loc()
            self._advance()
            right = self._parse_equality()
            left = BinaryExpr(operator="&&", left=left, right=right, location=loc)
        return left

    def _parse_equality(self) -> Expr:
        left = self._parse_comparison()
        while self._peek() in (TokenType.EQ, TokenType.NEQ):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_comparison()
            left = BinaryExpr(operator=op, left=left, right=right, location=loc)
        return left

    def _parse_comparison(self) -> Expr:
        left = self._parse_additive()
        while (
            (self._check(TokenType.LT) and not self._is_ui_element())
            or self._peek() in (TokenType.GT, TokenType.LTE, TokenType.GTE)
        ):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_additive()
            left = BinaryExpr(operator=op, left=left, right=right, location=loc)
        return left

    def _parse_additive(self) -> Expr:
        left = self._parse_multiplicative()
        while self._peek() in (TokenType.PLUS, TokenType.MINUS):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_multiplicative()
            left = BinaryExpr(operator=op, left=left, right=right, location=loc)
        return left

    def _parse_multiplicative(self) -> Expr:
        left = self._parse_unary()
        while self._peek() in (TokenType.STAR, TokenType.SLASH, TokenType.PERCENT):
            loc = self._loc()
            op = self._advance().value
            right = self._parse_unary()
            left = BinaryExpr(operator=op, left=left, right=right, location=loc)
        return left

    def _parse_unary(self) -> Expr:
        if self._peek() in (TokenType.NOT, TokenType.MINUS):
            loc = self._loc()
            op = self._advance().value
            operand = self._parse_unary()
            return UnaryExpr(operator=op, operand=operand, location=loc)
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while True:
            if self._check(TokenType.LPAREN):
                loc = self._loc()
                self._advance()
                args: list[Expr] = []
                self._skip_newlines()
                while not self._check(TokenType.RPAREN):
                    args.append(self._parse_expression())
                    if not self._match(TokenType.COMMA):
                        break
                    self._skip_newlines()
                self._expect(TokenType.RPAREN)
                expr = CallExpr(callee=expr, arguments=tuple(args), location=loc)
            elif self._check(TokenType.DOT):
                loc = self._loc()
                self._advance()
                prop = self._expect_name()
                expr = MemberExpr(object=expr, property=prop, location=loc)
            elif self._check(TokenType.LBRACKET):
                loc = self._loc()
                self._advance()
                index = self._parse_expression()
                self._expect(TokenType.RBRACKET)
                expr = MemberExpr(object=expr, computed=True, index=index, location=loc)
            else:
                break
        return expr

    def _parse_primary(self) -> Expr:
        tt = self._peek()
        loc = self._loc()

        if tt == TokenType.LPAREN and self._is_arrow_function():
            return self._parse_arrow_function()

        if tt == TokenType.LPAREN:
            self._advance()
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN)
            return expr

        if tt == TokenType.LBRACKET:
            self._advance()
            elements: list[Expr] = []
            self._skip_newlines()
            while not self._check(TokenType.RBRACKET):
                elements.append(self._parse_expression())
                self._match(TokenType.COMMA)
                self._skip_newlines()
            self._expect(TokenType.RBRACKET)
            return ArrayLiteral(elements=tuple(elements), location=loc)

        if tt == TokenType.LBRACE and self._is_object_literal():
            return self._parse_object_literal()

        if tt == TokenType.NUMBER:
            text = self._advance().value
            value = float(text) if "." in text else int(text)
            return NumberLiteral(value=value, location=loc)

        if tt == TokenType.STRING:
            tok = self._advance()
            if tok.template and "${" in tok.value:
                return self._parse_template(tok)
            return StringLiteral(value=tok.value, location=loc)

        if tt == TokenType.TRUE:
            self._advance()
            return BooleanLiteral(value=True, location=loc)

        if tt == TokenType.FALSE:
            self._advance()
            return BooleanLiteral(value=False, location=loc)

        if tt == TokenType.NULL:
            self._advance()
            return NullLiteral(location=loc)

        if tt == TokenType.IDENTIFIER:
            name = self._advance().value
            if self._match(TokenType.ARROW):
                body = self._parse_arrow_body()
                return ArrowFunction(params=(Param(name=name),), body=body, location=loc)
            return Identifier(name=name, location=loc)

        if self._is_ui_element():
            return self._parse_ui_element()

        tok = self._current()
        raise self._error(f"Unexpected token: {tok.type.value} ('{tok.value}')", tok)

    def _parse_object_literal(self) -> ObjectLiteral:
        loc = self._loc()
        self._expect(TokenType.LBRACE)
        properties: list[Property] = []
        self._skip_newlines()
        while not self._check(TokenType.RBRACE):
            key = self._parse_property_key()
            self._expect(TokenType.COLON)
            value = self._parse_expression()
            properties.append(Property(key=key, value=value))
            self._match(TokenType.COMMA)
            self._skip_newlines()
        self._expect(TokenType.RBRACE)
        return ObjectLiteral(properties=tuple(properties), location=loc)

    # -------------------------------------------------------------------
    # Arrow functions, object literals and templates
    # -------------------------------------------------------------------

    def _is_arrow_function(self) -> bool:
        depth = 0
        i = self.pos
        while i < len(self.tokens):
            tt = self.tokens[i].type
            if tt == TokenType.LPAREN:
                depth += 1
            elif tt == TokenType.RPAREN:
                depth -= 1
            elif tt == TokenType.EOF:
                return False
            if depth == 0:
                return i + 1 < len(self.tokens) and self.tokens[i + 1].type == TokenType.ARROW
            i += 1
        return False

    def _parse_arrow_function(self) -> ArrowFunction:
        loc = self._loc()
        self._expect(TokenType.LPAREN)
        params = self._parse_params()
        self._expect(TokenType.RPAREN)
        self._expect(TokenType.ARROW)
        body = self._parse_arrow_body()
        return ArrowFunction(params=params, body=body, location=loc)

    def _parse_arrow_body(self):
        if self._check(TokenType.LBRACE) and not self._is_object_literal():
            self._advance()
            body = self._parse_block()
            self._expect(TokenType.RBRACE)
            return body
        return self._parse_expression()

    def _is_object_literal(self) -> bool:
        i = self.pos + 1
        while i < len(self.tokens) and self.tokens[i].type == TokenType.NEWLINE:
            i += 1
        if i >= len(self.tokens):
            return False
        first = self.tokens[i]
        if first.type == TokenType.RBRACE:
            return True  # `{}` is an empty object
        if i + 1 < len(self.tokens) and first.type in (TokenType.IDENTIFIER, TokenType.STRING):
            return self.tokens[i + 1].type == TokenType.COLON
        return False

    def _parse_template(self, tok: Token) -> TemplateLiteral:
        """Split a back-quoted string on ``${...}`` and parse each embedded expression."""
        text = tok.value
        parts: list = []
        literal_start = 0
        i = 0
        while i < len(text):
            if text.startswith("${", i):
                if i > literal_start:
                    parts.append(text[literal_start:i])
                depth = 1
                j = i + 2
                while j < len(text) and depth:
                    if text[j] == "{":
                        depth += 1
                    elif text[j] == "}":
                        depth -= 1
                    j += 1
                if depth:
                    raise self._error("Unterminated ${ in template string", tok)
                parts.append(self._parse_embedded(text[i + 2:j - 1], tok))
                i = literal_start = j
            else:
                i += 1
        if literal_start < len(text):
            parts.append(text[literal_start:])
        return TemplateLiteral(parts=tuple(parts), location=tok.location)

    def _parse_embedded(self, source: str, tok: Token) -> Expr:
        sub = Parser(tokenize(source, self.filename), self.filename)
        sub._skip_newlines()
        expr = sub._parse_expression()
        sub._skip_newlines()
        if not sub._is_at_end():
            raise self._error(f"Unexpected '{sub._current().value}' in template expression", tok)
        return expr


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_tokens(tokens: list[Token], filename: str = "<stdin>") -> Program:
    """Parse an already tokenized Lumina program."""
    return Parser(tokens, filename).parse()


def parse(source: str, filename: str = "<stdin>") -> Program:
    """Parse Lumina source code into an AST."""
    return parse_tokens(tokenize(source, filename), filename)
