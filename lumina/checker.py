"""Lumina type checker.

Two passes over a parsed program: first every top-level component and
function signature (including exported ones) and every imported name is
registered in the global scope, so declarations may refer to each other in
any order; then every node is typed recursively.

The checker is advisory. It never mutates the AST and never raises:
mismatches are collected as ``LuminaError`` diagnostics and traversal always
runs to the end. A lookup miss reports ``Undefined variable`` and continues
with ``Any``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from lumina.ast_nodes import (
    Program, Node, Expr, Param,
    ComponentDecl, FunctionDecl, VariableDecl, StateDecl, EffectDecl,
    StyleDecl, ImportDecl, ExportDecl,
    ReturnStatement, IfStatement, ForStatement, ExpressionStatement, BlockStatement,
    UIElement, UIText, UIExpression, ComponentInstance,
    BinaryExpr, UnaryExpr, CallExpr, MemberExpr, AssignExpr, ArrowFunction,
    ArrayLiteral, ObjectLiteral, Identifier, NumberLiteral, StringLiteral,
    BooleanLiteral, NullLiteral, TemplateLiteral, ConditionalExpr, PipeExpr,
)
from lumina.types import (
    LuminaType, ArrayType, ObjectType, FunctionType, ComponentType,
    INT, STRING, BOOL, NULL, ANY,
    TypeEnvironment, is_compatible, make_array_type, resolve_type_annotation,
)
from lumina.errors import LuminaError, SourceLocation, type_error, name_error

logger = logging.getLogger(__name__)

# Host objects a compiled program may touch without declaring them.
BROWSER_GLOBALS = (
    "console", "document", "window", "globalThis", "navigator", "location",
    "localStorage", "sessionStorage", "Math", "JSON", "Date", "Promise",
    "Array", "Object", "String", "Number", "Boolean", "setTimeout",
    "clearTimeout", "setInterval", "clearInterval", "requestAnimationFrame",
    "fetch", "alert", "parseInt", "parseFloat", "isNaN", "undefined", "NaN",
    "Infinity",
)

ARITHMETIC_OPERATORS = ("-", "*", "/", "%")
COMPARISON_OPERATORS = ("==", "!=", "<", ">", "<=", ">=")
LOGICAL_OPERATORS = ("&&", "||")


@dataclass
class CheckResult:
    success: bool
    diagnostics: list[LuminaError] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Diagnostics as display strings, in the order they were found."""
        return [f"[Type Error] {d.message}" for d in self.diagnostics]


class TypeChecker:
    """Type checks a Lumina program."""

    def __init__(self):
        self.env = TypeEnvironment()
        self.errors: list[LuminaError] = []
        self.components: dict[str, ComponentType] = {}
        self.imported: set[str] = set()
        self._current_return_type: Optional[LuminaType] = None
        self._current_function: Optional[str] = None

    def check_program(self, program: Program) -> list[LuminaError]:
        """Type check an entire program. Returns the list of diagnostics."""
        self.errors = []
        self._register_builtins()
        self._register_declarations(program)
        for node in program.body:
            self._check_node(node)
        logger.debug("type check of %s produced %d diagnostics", program.filename, len(self.errors))
        return self.errors

    # -------------------------------------------------------------------
    # Registration (first pass)
    # -------------------------------------------------------------------

    def _register_builtins(self) -> None:
        for name in BROWSER_GLOBALS:
            self.env.define(name, ANY)

    def _register_declarations(self, program: Program) -> None:
        for node in program.body:
            if isinstance(node, ExportDecl) and node.declaration is not None:
                node = node.declaration
            if isinstance(node, ComponentDecl):
                self._register_component(node)
            elif isinstance(node, FunctionDecl):
                self._register_function(node)
            elif isinstance(node, ImportDecl):
                for name in node.specifiers:
                    self.imported.add(name)
                    self.env.define(name, ANY)

    def _register_component(self, comp: ComponentDecl) -> None:
        props = tuple((p.name, resolve_type_annotation(p.type_annotation)) for p in comp.params)
        ct = ComponentType(name=comp.name, props=props)
        self.components[comp.name] = ct
        self.env.define(comp.name, ct)

    def _register_function(self, func: FunctionDecl) -> None:
        self.env.define(func.name, self._function_type(func.params, func.return_type))

    @staticmethod
    def _function_type(params: tuple[Param, ...], return_type=None) -> FunctionType:
        return FunctionType(
            param_types=tuple(resolve_type_annotation(p.type_annotation) for p in params),
            return_type=resolve_type_annotation(return_type),
        )

    # -------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------

    def _check_block(self, stmts: tuple[Node, ...], scope: Optional[TypeEnvironment] = None) -> None:
        """Check a statement list in ``scope`` (a fresh child scope by default).

        Function declarations are hoisted so calls may precede them.
        """
        saved = self.env
        self.env = scope if scope is not None else self.env.child_scope()
        for stmt in stmts:
            if isinstance(stmt, FunctionDecl):
                self._register_function(stmt)
        for stmt in stmts:
            self._check_node(stmt)
        self.env = saved

    def _bind_params(self, params: tuple[Param, ...]) -> TypeEnvironment:
        scope = self.env.child_scope()
        for p in params:
            if p.default_value is not None:
                self._infer_type(p.default_value)
            scope.define(p.name, resolve_type_annotation(p.type_annotation))
        return scope

    # -------------------------------------------------------------------
    # Declarations and statements
    # -------------------------------------------------------------------

    def _check_node(self, node: Node) -> None:
        if isinstance(node, ComponentDecl):
            self._check_component(node)
        elif isinstance(node, FunctionDecl):
            self._check_function(node)
        elif isinstance(node, VariableDecl):
            self._check_binding("Variable", node.name, node.type_annotation, node.value, node.location)
        elif isinstance(node, StateDecl):
            self._check_binding("State", node.name, node.type_annotation, node.value, node.location)
        elif isinstance(node, EffectDecl):
            for dep in node.dependencies:
                self._lookup(dep, node.location)
            self._check_with_return_type(node.body, ANY)
        elif isinstance(node, StyleDecl):
            for prop in node.properties:
                if prop.value is not None:
                    self._infer_type(prop.value)
        elif isinstance(node, ExportDecl):
            if node.declaration is not None:
                self._check_node(node.declaration)
            else:
                for name in node.specifiers:
                    self._lookup(name, node.location)
        elif isinstance(node, ImportDecl):
            pass  # registered in the first pass
        elif isinstance(node, ReturnStatement):
            self._check_return(node)
        elif isinstance(node, IfStatement):
            self._check_if(node)
        elif isinstance(node, ForStatement):
            self._check_for(node)
        elif isinstance(node, BlockStatement):
            self._check_block(node.body)
        elif isinstance(node, ExpressionStatement):
            self._infer_type(node.expression)
        elif isinstance(node, UIText):
            pass
        elif isinstance(node, UIExpression):
            self._infer_type(node.expression)
        elif isinstance(node, Expr):
            self._infer_type(node)

    def _check_component(self, comp: ComponentDecl) -> None:
        scope = self._bind_params(comp.params)
        self._check_with_return_type(comp.body, ANY, scope)

    def _check_function(self, func: FunctionDecl) -> None:
        scope = self._bind_params(func.params)
        ret_type = resolve_type_annotation(func.return_type)
        saved = (self._current_return_type, self._current_function)
        self._current_return_type = ret_type
        self._current_function = func.name
        self._check_block(func.body, scope)
        self._current_return_type, self._current_function = saved

    def _check_with_return_type(
        self,
        body: tuple[Node, ...],
        ret_type: LuminaType,
        scope: Optional[TypeEnvironment] = None,
    ) -> None:
        saved = self._current_return_type
        self._current_return_type = ret_type
        self._check_block(body, scope)
        self._current_return_type = saved

    def _check_binding(self, what: str, name: str, annotation, value: Expr, location) -> None:
        value_type = self._infer_type(value)
        declared = resolve_type_annotation(annotation)
        if not is_compatible(value_type, declared):
            self._report(type_error(
                f"{what} {name} declared as {declared} but initialized with {value_type}",
                location,
                expected_type=str(declared),
                actual_type=str(value_type),
            ))
        self.env.define(name, value_type if declared == ANY else declared)

    def _check_return(self, stmt: ReturnStatement) -> None:
        if stmt.value is None:
            return
        actual = self._infer_type(stmt.value)
        expected = self._current_return_type
        if expected is not None and not is_compatible(actual, expected):
            fn_name = self._current_function or "<anonymous>"
            self._report(type_error(
                f"Function {fn_name} returns {actual} but expected {expected}",
                stmt.location,
                expected_type=str(expected),
                actual_type=str(actual),
            ))

    def _check_if(self, stmt: IfStatement) -> None:
        cond_type = self._infer_type(stmt.condition)
        if not is_compatible(cond_type, BOOL):
            self._report(type_error(
                f"If condition must be Bool but got {cond_type}",
                stmt.location,
                expected_type="Bool",
                actual_type=str(cond_type),
            ))
        self._check_block(stmt.consequent)
        if stmt.alternate is not None:
            self._check_block(stmt.alternate)

    def _check_for(self, stmt: ForStatement) -> None:
        iter_type = self._infer_type(stmt.iterable)
        elem_type = iter_type.element_type if isinstance(iter_type, ArrayType) else ANY
        scope = self.env.child_scope()
        scope.define(stmt.variable, elem_type)
        self._check_block(stmt.body, scope)

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _infer_type(self, expr: Node) -> LuminaType:
        if isinstance(expr, NumberLiteral):
            return INT
        if isinstance(expr, StringLiteral):
            return STRING
        if isinstance(expr, BooleanLiteral):
            return BOOL
        if isinstance(expr, NullLiteral):
            return NULL
        if isinstance(expr, TemplateLiteral):
            for part in expr.parts:
                if isinstance(part, Node):
                    self._infer_type(part)
            return STRING
        if isinstance(expr, Identifier):
            return self._lookup(expr.name, expr.location)
        if isinstance(expr, ArrayLiteral):
            if not expr.elements:
                return make_array_type(ANY)
            first = self._infer_type(expr.elements[0])
            for elem in expr.elements[1:]:
                self._infer_type(elem)
            return make_array_type(first)
        if isinstance(expr, ObjectLiteral):
            return ObjectType(fields=tuple((p.key, self._infer_type(p.value)) for p in expr.properties))
        if isinstance(expr, BinaryExpr):
            return self._infer_binary(expr)
        if isinstance(expr, UnaryExpr):
            return self._infer_unary(expr)
        if isinstance(expr, AssignExpr):
            return self._infer_assign(expr)
        if isinstance(expr, CallExpr):
            return self._infer_call(expr)
        if isinstance(expr, MemberExpr):
            obj_type = self._infer_type(expr.object)
            if expr.computed:
                if expr.index is not None:
                    self._infer_type(expr.index)
                if isinstance(obj_type, ArrayType):
                    return obj_type.element_type
                return ANY
            if isinstance(obj_type, ObjectType):
                return obj_type.get_field_type(expr.property) or ANY
            return ANY
        if isinstance(expr, ConditionalExpr):
            self._infer_type(expr.condition)
            cons = self._infer_type(expr.consequent)
            alt = self._infer_type(expr.alternate)
            return cons if cons == alt else ANY
        if isinstance(expr, PipeExpr):
            self._infer_type(expr.left)
            fn_type = self._infer_type(expr.right)
            if isinstance(fn_type, FunctionType):
                return fn_type.return_type
            return ANY
        if isinstance(expr, ArrowFunction):
            return self._infer_arrow(expr)
        if isinstance(expr, UIElement):
            for attr in expr.attributes:
                if attr.value is not None:
                    self._infer_type(attr.value)
            self._check_children(expr.children)
            return ANY
        if isinstance(expr, ComponentInstance):
            self._check_instance(expr)
            return ANY
        return ANY

    def _infer_binary(self, expr: BinaryExpr) -> LuminaType:
        left = self._infer_type(expr.left)
        right = self._infer_type(expr.right)
        op = expr.operator

        if op == "+":
            if left == STRING or right == STRING:
                return STRING
            if left == INT and right == INT:
                return INT
            return ANY
        if op in ARITHMETIC_OPERATORS:
            if left != INT or right != INT:
                self._report(type_error(
                    f"Operator {op} requires Int operands",
                    expr.location,
                    expected_type="Int",
                    actual_type=str(right if left == INT else left),
                ))
            return INT
        if op in COMPARISON_OPERATORS:
            return BOOL
        if op in LOGICAL_OPERATORS:
            if left != BOOL or right != BOOL:
                self._report(type_error(
                    f"Operator {op} requires Bool operands",
                    expr.location,
                    expected_type="Bool",
                    actual_type=str(right if left == BOOL else left),
                ))
            return BOOL
        return ANY

    def _infer_unary(self, expr: UnaryExpr) -> LuminaType:
        operand = self._infer_type(expr.operand)
        if expr.operator == "!":
            if operand != BOOL:
                self._report(type_error(
                    "Operator ! requires Bool operand",
                    expr.location,
                    expected_type="Bool",
                    actual_type=str(operand),
                ))
            return BOOL
        if expr.operator == "-":
            if operand != INT:
                self._report(type_error(
                    "Operator - requires Int operand",
                    expr.location,
                    expected_type="Int",
                    actual_type=str(operand),
                ))
            return INT
        return ANY

    def _infer_assign(self, expr: AssignExpr) -> LuminaType:
        if not isinstance(expr.target, (Identifier, MemberExpr)):
            self._report(type_error("Invalid assignment target", expr.location))
            return self._infer_type(expr.value)
        target = self._infer_type(expr.target)
        value = self._infer_type(expr.value)
        if not is_compatible(value, target):
            self._report(type_error(
                f"Cannot assign {value} to {target}",
                expr.location,
                expected_type=str(target),
                actual_type=str(value),
            ))
        return value

    def _infer_call(self, expr: CallExpr) -> LuminaType:
        callee = self._infer_type(expr.callee)
        if not isinstance(callee, FunctionType):
            for arg in expr.arguments:
                self._infer_type(arg)
            return ANY

        expected_count = len(callee.param_types)
        if len(expr.arguments) != expected_count:
            self._report(type_error(
                f"Function expects {expected_count} arguments but got {len(expr.arguments)}",
                expr.location,
                expected_type=str(expected_count),
                actual_type=str(len(expr.arguments)),
            ))
        for i, arg in enumerate(expr.arguments):
            actual = self._infer_type(arg)
            if i >= expected_count:
                continue
            expected = callee.param_types[i]
            if not is_compatible(actual, expected):
                self._report(type_error(
                    f"Argument {i + 1} expects {expected} but got {actual}",
                    arg.location or expr.location,
                    expected_type=str(expected),
                    actual_type=str(actual),
                ))
        return callee.return_type

    def _infer_arrow(self, expr: ArrowFunction) -> FunctionType:
        scope = self._bind_params(expr.params)
        if isinstance(expr.body, tuple):
            self._check_with_return_type(expr.body, ANY, scope)
            ret_type = ANY
        else:
            saved = self.env
            self.env = scope
            ret_type = self._infer_type(expr.body)
            self.env = saved
        return FunctionType(
            param_types=tuple(resolve_type_annotation(p.type_annotation) for p in expr.params),
            return_type=ret_type,
        )

    # -------------------------------------------------------------------
    # UI
    # -------------------------------------------------------------------

    def _check_children(self, children: tuple[Node, ...]) -> None:
        for child in children:
            self._check_node(child)

    def _check_instance(self, inst: ComponentInstance) -> None:
        comp = self.components.get(inst.name)
        if comp is None and inst.name not in self.imported:
            self._report(name_error(f"Unknown component: {inst.name}", inst.name, inst.location))

        for prop in inst.props:
            if prop.value is None:
                continue
            actual = self._infer_type(prop.value)
            expected = comp.get_prop_type(prop.name) if comp is not None else None
            if expected is not None and not is_compatible(actual, expected):
                self._report(type_error(
                    f"Component {inst.name} prop {prop.name} expects {expected} but got {actual}",
                    prop.value.location or inst.location,
                    expected_type=str(expected),
                    actual_type=str(actual),
                ))
        self._check_children(inst.children)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _lookup(self, name: str, location: Optional[SourceLocation]) -> LuminaType:
        typ = self.env.lookup(name)
        if typ is None:
            self._report(name_error(f"Undefined variable: {name}", name, location))
            return ANY
        return typ

    def _report(self, error: LuminaError) -> None:
        self.errors.append(error)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def check(program: Program) -> CheckResult:
    """Type check a parsed program; never raises for type mismatches."""
    diagnostics = TypeChecker().check_program(program)
    return CheckResult(success=not diagnostics, diagnostics=list(diagnostics))
