"""Lumina AST Node definitions.

Top-level constructs: component, fn, let/var, state, effect, style,
import, export. UI markup (elements, text, embedded expressions and
component instances) lives in the same tree as ordinary expressions.

Every node is a frozen dataclass. ``node.type`` is the variant tag (the class
name) and is what the checker and the code generator dispatch on. Source
locations ride along on every node but never take part in equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Optional, Union

from lumina.errors import SourceLocation


@dataclass(frozen=True)
class Node:
    location: Optional[SourceLocation] = field(default=None, compare=False, repr=False)

    @property
    def type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type}
        for f in fields(self):
            if f.name == "location":
                continue
            d[f.name] = _to_plain(getattr(self, f.name))
        return d


def _to_plain(value: Any) -> Any:
    if isinstance(value, (Node, _Part)):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class _Part:
    """Base for the small records nested inside nodes (params, props, ...)."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _to_plain(getattr(self, f.name)) for f in fields(self)}


# ---------------------------------------------------------------------------
# Nested records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeAnnotation(_Part):
    name: str = ""
    generic_args: tuple[TypeAnnotation, ...] = ()

    def __str__(self) -> str:
        if self.generic_args:
            args = ", ".join(str(a) for a in self.generic_args)
            return f"{self.name}<{args}>"
        return self.name


@dataclass(frozen=True)
class Param(_Part):
    name: str = ""
    type_annotation: Optional[TypeAnnotation] = None
    default_value: Optional[Expr] = None


@dataclass(frozen=True)
class StyleProperty(_Part):
    key: str = ""
    value: Optional[Expr] = None


@dataclass(frozen=True)
class Property(_Part):
    """A ``key: value`` entry of an object literal."""
    key: str = ""
    value: Optional[Expr] = None


@dataclass(frozen=True)
class UIAttribute(_Part):
    """An element attribute; ``value`` is None for bare attributes like ``disabled``."""
    name: str = ""
    value: Optional[Expr] = None


@dataclass(frozen=True)
class Prop(_Part):
    name: str = ""
    value: Optional[Expr] = None


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Expr(Node):
    pass


@dataclass(frozen=True)
class Identifier(Expr):
    name: str = ""


@dataclass(frozen=True)
class NumberLiteral(Expr):
    value: Union[int, float] = 0


@dataclass(frozen=True)
class StringLiteral(Expr):
    value: str = ""


@dataclass(frozen=True)
class BooleanLiteral(Expr):
    value: bool = False


@dataclass(frozen=True)
class NullLiteral(Expr):
    pass


@dataclass(frozen=True)
class TemplateLiteral(Expr):
    """Back-quoted string: literal fragments interleaved with expressions."""
    parts: tuple[Union[str, Expr], ...] = ()


@dataclass(frozen=True)
class BinaryExpr(Expr):
    operator: str = ""
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class UnaryExpr(Expr):
    operator: str = ""
    operand: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class CallExpr(Expr):
    callee: Expr = field(default_factory=Expr)
    arguments: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class MemberExpr(Expr):
    """``obj.prop`` or, when computed, ``obj[index]``."""
    object: Expr = field(default_factory=Expr)
    property: str = ""
    computed: bool = False
    index: Optional[Expr] = None


@dataclass(frozen=True)
class AssignExpr(Expr):
    target: Expr = field(default_factory=Expr)
    value: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class ArrowFunction(Expr):
    """``(a, b) => expr`` or ``x => { ... }``; body is a statement tuple or an Expr."""
    params: tuple[Param, ...] = ()
    body: Union[tuple[Node, ...], Expr] = ()


@dataclass(frozen=True)
class ArrayLiteral(Expr):
    elements: tuple[Expr, ...] = ()


@dataclass(frozen=True)
class ObjectLiteral(Expr):
    properties: tuple[Property, ...] = ()


@dataclass(frozen=True)
class ConditionalExpr(Expr):
    condition: Expr = field(default_factory=Expr)
    consequent: Expr = field(default_factory=Expr)
    alternate: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class PipeExpr(Expr):
    """Pipeline expression:  value |> fn"""
    left: Expr = field(default_factory=Expr)
    right: Expr = field(default_factory=Expr)


# ---------------------------------------------------------------------------
# UI nodes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UIElement(Expr):
    tag: str = ""
    attributes: tuple[UIAttribute, ...] = ()
    children: tuple[Node, ...] = ()
    self_closing: bool = False


@dataclass(frozen=True)
class UIText(Node):
    value: str = ""


@dataclass(frozen=True)
class UIExpression(Node):
    expression: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class ComponentInstance(Expr):
    """A tag whose name starts upper-case:  <Button text="Go" @click={go} />"""
    name: str = ""
    props: tuple[Prop, ...] = ()
    children: tuple[Node, ...] = ()
    self_closing: bool = False


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Statement(Node):
    pass


@dataclass(frozen=True)
class ReturnStatement(Statement):
    value: Optional[Expr] = None


@dataclass(frozen=True)
class IfStatement(Statement):
    condition: Expr = field(default_factory=Expr)
    consequent: tuple[Node, ...] = ()
    alternate: Optional[tuple[Node, ...]] = None


@dataclass(frozen=True)
class ForStatement(Statement):
    """for item in items { ... }"""
    variable: str = ""
    iterable: Expr = field(default_factory=Expr)
    body: tuple[Node, ...] = ()


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expression: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class BlockStatement(Statement):
    body: tuple[Node, ...] = ()


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Declaration(Node):
    pass


@dataclass(frozen=True)
class ComponentDecl(Declaration):
    """component Counter(initial: Int = 0) { ... }"""
    name: str = ""
    params: tuple[Param, ...] = ()
    body: tuple[Node, ...] = ()


@dataclass(frozen=True)
class FunctionDecl(Declaration):
    """fn add(a: Int, b: Int) -> Int { ... }"""
    name: str = ""
    params: tuple[Param, ...] = ()
    return_type: Optional[TypeAnnotation] = None
    body: tuple[Node, ...] = ()


@dataclass(frozen=True)
class VariableDecl(Declaration):
    """let x = 10  (immutable)  or  var y = "hello"  (mutable)"""
    name: str = ""
    mutable: bool = False
    type_annotation: Optional[TypeAnnotation] = None
    value: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class StateDecl(Declaration):
    """state count = 0"""
    name: str = ""
    type_annotation: Optional[TypeAnnotation] = None
    value: Expr = field(default_factory=Expr)


@dataclass(frozen=True)
class EffectDecl(Declaration):
    """effect { ... }  or  effect(a, b) { ... }; no dependencies means run once."""
    dependencies: tuple[str, ...] = ()
    body: tuple[Node, ...] = ()


@dataclass(frozen=True)
class StyleDecl(Declaration):
    """style card { padding: 16, backgroundColor: "white" }"""
    name: Optional[str] = None
    properties: tuple[StyleProperty, ...] = ()


@dataclass(frozen=True)
class ImportDecl(Declaration):
    """import { Button, Card } from "./components.lum"  (recorded, never resolved)"""
    specifiers: tuple[str, ...] = ()
    source: str = ""


@dataclass(frozen=True)
class ExportDecl(Declaration):
    """export { Button }  or  export component Button() { ... }"""
    specifiers: tuple[str, ...] = ()
    declaration: Optional[Node] = None


# ---------------------------------------------------------------------------
# Program (root node)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Program(Node):
    body: tuple[Node, ...] = ()
    filename: str = field(default="<stdin>", compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "Program", "body": _to_plain(self.body)}
