"""Server-side rendering of Lumina components to static HTML.

Interprets the AST directly instead of going through the code generator:
the component's first UI root is walked with a small expression evaluator
whose scope holds the props, parameter defaults and the initial values of
the component's ``state``/``let`` bindings. Event handlers are dropped and
everything rendered is HTML-escaped.
"""

from __future__ import annotations

import html
import logging
import math
from typing import Any, Optional

from lumina.ast_nodes import (
    Program, Node, ComponentDecl, ExportDecl, StateDecl, VariableDecl,
    UIElement, UIText, UIExpression, ComponentInstance, IfStatement, ForStatement,
    Identifier, NumberLiteral, StringLiteral, BooleanLiteral, NullLiteral,
    ArrayLiteral, ObjectLiteral, BinaryExpr, UnaryExpr, MemberExpr, ConditionalExpr,
)
from lumina.codegen import camel_to_kebab

logger = logging.getLogger(__name__)


class SSRError(Exception):
    """Raised when a component cannot be rendered (missing, or recursive)."""


def to_js_string(value: Any) -> str:
    """Stringify a value the way JavaScript's ``String()`` would."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, list):
        return ",".join("" if v is None else to_js_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


def is_truthy(value: Any) -> bool:
    if isinstance(value, (list, dict)):
        return True
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def _to_number(value: Any) -> float:
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value) if value.strip() else 0
        except ValueError:
            return math.nan
    return math.nan


class SSRRenderer:
    """Renders components of one program to HTML strings."""

    def __init__(self, program: Program):
        self.program = program
        self.components: dict[str, ComponentDecl] = {}
        for node in program.body:
            decl = node.declaration if isinstance(node, ExportDecl) else node
            if isinstance(decl, ComponentDecl):
                self.components.setdefault(decl.name, decl)
        self._rendering: list[str] = []

    def render(self, component_name: str, props: Optional[dict[str, Any]] = None) -> str:
        comp = self.components.get(component_name)
        if comp is None:
            raise SSRError(f"Component not found: {component_name}")
        if component_name in self._rendering:
            raise SSRError(f"Recursive component: {component_name}")

        self._rendering.append(component_name)
        try:
            scope = self._component_scope(comp, props or {})
            root = next((c for c in comp.body if isinstance(c, (UIElement, ComponentInstance))), None)
            if root is None:
                return ""
            return self._render_node(root, scope)
        finally:
            self._rendering.pop()

    def _component_scope(self, comp: ComponentDecl, props: dict[str, Any]) -> dict[str, Any]:
        scope = dict(props)
        for param in comp.params:
            if param.name not in scope and param.default_value is not None:
                scope[param.name] = self.evaluate(param.default_value, scope)
        for child in comp.body:
            if isinstance(child, (StateDecl, VariableDecl)):
                scope[child.name] = self.evaluate(child.value, scope)
        return scope

    # -------------------------------------------------------------------
    # Markup
    # -------------------------------------------------------------------

    def _render_element(self, node: UIElement, scope: dict[str, Any]) -> str:
        attributes: list[str] = []
        for attr in node.attributes:
            if attr.name.startswith("@"):
                continue  # event handlers only exist client-side
            if attr.value is None:
                attributes.append(attr.name)
                continue
            value = self.evaluate(attr.value, scope)
            if attr.name == "style" and isinstance(value, dict):
                style = ";".join(f"{camel_to_kebab(k)}:{to_js_string(v)}" for k, v in value.items())
                attributes.append(f'style="{html.escape(style)}"')
            else:
                attributes.append(f'{attr.name}="{html.escape(to_js_string(value))}"')

        attrs = " " + " ".join(attributes) if attributes else ""
        if node.self_closing:
            return f"<{node.tag}{attrs} />"
        children = "".join(self._render_node(c, scope) for c in node.children)
        return f"<{node.tag}{attrs}>{children}</{node.tag}>"

    def _render_node(self, node: Node, scope: dict[str, Any]) -> str:
        if isinstance(node, UIText):
            return html.escape(node.value)
        if isinstance(node, UIExpression):
            return html.escape(to_js_string(self.evaluate(node.expression, scope)))
        if isinstance(node, UIElement):
            return self._render_element(node, scope)
        if isinstance(node, ComponentInstance):
            props = {
                p.name: self.evaluate(p.value, scope)
                for p in node.props
                if not p.name.startswith("@") and p.value is not None
            }
            return self.render(node.name, props)
        if isinstance(node, IfStatement):
            branch = node.consequent if is_truthy(self.evaluate(node.condition, scope)) else node.alternate
            return "".join(self._render_node(c, scope) for c in branch or ())
        if isinstance(node, ForStatement):
            iterable = self.evaluate(node.iterable, scope)
            if not isinstance(iterable, list):
                return ""
            parts = []
            for item in iterable:
                inner = {**scope, node.variable: item}
                parts.extend(self._render_node(c, inner) for c in node.body)
            return "".join(parts)
        return ""

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def evaluate(self, expr: Node, scope: dict[str, Any]) -> Any:
        if isinstance(expr, Identifier):
            return scope.get(expr.name, expr.name)
        if isinstance(expr, (NumberLiteral, StringLiteral, BooleanLiteral)):
            return expr.value
        if isinstance(expr, NullLiteral):
            return None
        if isinstance(expr, ArrayLiteral):
            return [self.evaluate(e, scope) for e in expr.elements]
        if isinstance(expr, ObjectLiteral):
            return {p.key: self.evaluate(p.value, scope) for p in expr.properties}
        if isinstance(expr, BinaryExpr):
            if expr.operator == "&&":
                left = self.evaluate(expr.left, scope)
                return self.evaluate(expr.right, scope) if is_truthy(left) else left
            if expr.operator == "||":
                left = self.evaluate(expr.left, scope)
                return left if is_truthy(left) else self.evaluate(expr.right, scope)
            return binary_op(self.evaluate(expr.left, scope), expr.operator, self.evaluate(expr.right, scope))
        if isinstance(expr, UnaryExpr):
            operand = self.evaluate(expr.operand, scope)
            if expr.operator == "!":
                return not is_truthy(operand)
            return -_to_number(operand)
        if isinstance(expr, MemberExpr):
            obj = self.evaluate(expr.object, scope)
            if expr.computed:
                key = self.evaluate(expr.index, scope) if expr.index is not None else None
            else:
                key = expr.property
            return _member(obj, key)
        if isinstance(expr, ConditionalExpr):
            if is_truthy(self.evaluate(expr.condition, scope)):
                return self.evaluate(expr.consequent, scope)
            return self.evaluate(expr.alternate, scope)
        return ""


def _member(obj: Any, key: Any) -> Any:
    if isinstance(obj, dict):
        return obj.get(key if isinstance(key, str) else to_js_string(key))
    if isinstance(obj, (list, str)):
        if key == "length":
            return len(obj)
        if isinstance(key, (int, float)) and not isinstance(key, bool) and float(key).is_integer():
            idx = int(key)
            return obj[idx] if 0 <= idx < len(obj) else None
    return None


def binary_op(left: Any, op: str, right: Any) -> Any:
    """Apply a non-short-circuit binary operator with JavaScript semantics."""
    if op == "+":
        if isinstance(left, str) or isinstance(right, str):
            return to_js_string(left) + to_js_string(right)
        return _to_number(left) + _to_number(right)
    if op in ("-", "*", "/", "%"):
        a, b = _to_number(left), _to_number(right)
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if b == 0:
            if op == "%" or a == 0 or math.isnan(a):
                return math.nan
            return math.copysign(math.inf, a)
        if op == "/":
            return a / b
        return math.fmod(a, b)
    if op == "==":
        return left == right
    if op == "!=":
        return left != right
    if op in ("<", ">", "<=", ">="):
        if not (isinstance(left, str) and isinstance(right, str)):
            left, right = _to_number(left), _to_number(right)
        if op == "<":
            return left < right
        if op == ">":
            return left > right
        if op == "<=":
            return left <= right
        return left >= right
    return None


def render_to_string(program: Program, component_name: str, props: Optional[dict[str, Any]] = None) -> str:
    """Render ``component_name`` from ``program`` to an HTML string."""
    output = SSRRenderer(program).render(component_name, props)
    logger.debug("rendered %s (%d chars)", component_name, len(output))
    return output
