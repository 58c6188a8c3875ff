"""Lumina code generator — lowers the AST to JavaScript, CSS and HTML.

Each component becomes a plain factory function ``Name(props)`` that builds a
DOM subtree, keeps its state in closure variables exposed through accessor
properties on ``__state`` and rebuilds its children from scratch whenever a
state setter runs. Style blocks become ``.lumina-<name>`` CSS rules. The HTML
document inlines both and mounts the first declared component into ``#app``.

Generation is deterministic: element variables are numbered from a counter
owned by the generator instance, so compiling the same program twice yields
byte-identical output. Node types the generator does not know degrade to a
``/* unknown: Type */`` placeholder instead of failing.
"""

from __future__ import annotations

import html
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional

from lumina.ast_nodes import (
    Program, Node, Param, Prop,
    ComponentDecl, FunctionDecl, VariableDecl, StateDecl, EffectDecl,
    StyleDecl, ImportDecl, ExportDecl,
    ReturnStatement, IfStatement, ForStatement, ExpressionStatement, BlockStatement,
    UIElement, UIText, UIExpression, ComponentInstance,
    BinaryExpr, UnaryExpr, CallExpr, MemberExpr, AssignExpr, ArrowFunction,
    ArrayLiteral, ObjectLiteral, Identifier, NumberLiteral, StringLiteral,
    BooleanLiteral, NullLiteral, TemplateLiteral, ConditionalExpr, PipeExpr,
)

logger = logging.getLogger(__name__)

RUNTIME_BANNER = "// Lumina Runtime v0.1\n// Generated by Lumina Transpiler\n\n"
EXPORTS_NAMESPACE = "globalThis.__lumina_exports"

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_UPPER = re.compile(r"([A-Z])")

# Operands that bind looser than the operator applied to them and so need
# parentheses. A template literal in callee position would become a tagged
# template.
_LOOSE_OPERAND = (AssignExpr, ArrowFunction)
_LOOSE_PREFIX = _LOOSE_OPERAND + (UnaryExpr,)
_LOOSE_CALLEE = _LOOSE_PREFIX + (TemplateLiteral,)
_LOOSE_OBJECT = _LOOSE_PREFIX + (NumberLiteral,)


@dataclass
class GeneratedOutput:
    html: str
    js: str
    css: str


def camel_to_kebab(name: str) -> str:
    """``backgroundColor`` -> ``background-color``."""
    return _UPPER.sub(r"-\1", name).lower()


def js_string(value: str) -> str:
    """JSON-quoted string that is also safe inside an inline <script> block."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def format_number(value) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def _indent(text: str, level: int = 1) -> str:
    pad = "  " * level
    return "\n".join(pad + line if line else line for line in text.split("\n"))


def _object_key(key: str) -> str:
    return key if _JS_IDENTIFIER.match(key) else js_string(key)


class CodeGenerator:
    """Lowers one Program to JS/CSS/HTML. Use a fresh instance per program."""

    def __init__(self, title: str = "Lumina App"):
        self.title = title
        self.components: list[str] = []
        self.styles: dict[str, str] = {}
        self._css: list[str] = []
        self._exports: list[str] = []
        self._state_names: frozenset[str] = frozenset()
        self._next_element = 0

    def _new_element(self) -> str:
        name = f"__e{self._next_element}"
        self._next_element += 1
        return name

    def _shadow(self, names) -> frozenset[str]:
        """Hide state names rebound by an inner scope; returns the set to restore."""
        saved = self._state_names
        self._state_names = saved - frozenset(names)
        return saved

    # -------------------------------------------------------------------
    # Program
    # -------------------------------------------------------------------

    def generate(self, program: Program) -> GeneratedOutput:
        # Components are known up front so calls may precede declarations.
        for node in program.body:
            decl = node.declaration if isinstance(node, ExportDecl) else node
            if isinstance(decl, ComponentDecl):
                self.components.append(decl.name)

        chunks: list[str] = []
        for node in program.body:
            code = self._gen_top_level(node)
            if code:
                chunks.append(code)

        if self._exports:
            publish = [f"{EXPORTS_NAMESPACE} = {EXPORTS_NAMESPACE} || {{}};"]
            publish += [f"{EXPORTS_NAMESPACE}.{name} = {name};" for name in self._exports]
            chunks.append("\n".join(publish))

        js = RUNTIME_BANNER + "\n\n".join(chunks)
        css = "\n\n".join(self._css)
        logger.debug(
            "generated %d components, %d style rules for %s",
            len(self.components), len(self._css), program.filename,
        )
        return GeneratedOutput(html=self._generate_html(js, css), js=js, css=css)

    def _gen_top_level(self, node: Node) -> str:
        if isinstance(node, ExportDecl):
            self._exports.extend(n for n in node.specifiers if n not in self._exports)
            if node.declaration is None:
                return ""
            return self._gen_top_level(node.declaration)
        if isinstance(node, StyleDecl):
            self._gen_style(node)
            return ""
        if isinstance(node, ImportDecl):
            if not node.specifiers:
                return ""
            names = ", ".join(node.specifiers)
            return f"const {{ {names} }} = ({EXPORTS_NAMESPACE} || {{}});"
        return self._gen_statement(node)

    # -------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------

    def _gen_component(self, comp: ComponentDecl) -> str:
        saved_states = self._state_names
        self._state_names = frozenset(s.name for s in comp.body if isinstance(s, StateDecl))

        states: list[str] = []
        effects: list[str] = []
        body: list[str] = []
        root: Optional[Node] = None
        for child in comp.body:
            if isinstance(child, StateDecl):
                states.append(self._gen_state(child))
            elif isinstance(child, EffectDecl):
                effects.append(self._gen_effect(child))
            elif isinstance(child, StyleDecl):
                self._gen_style(child)
            elif isinstance(child, (UIElement, ComponentInstance)):
                if root is None:
                    root = child
                else:
                    logger.debug("component %s: ignoring extra UI root at %s", comp.name, child.location)
            else:
                body.append(self._gen_statement(child))

        render = ["__el.innerHTML = '';", "const __fragment = document.createDocumentFragment();"]
        if root is not None:
            render += self._gen_ui_node(root, "__fragment")
        render.append("__el.appendChild(__fragment);")
        render.append("if (!__mounted) {")
        render.append("  __mounted = true;")
        render += [_indent(e) for e in effects]
        render.append("}")

        sections = [
            "\n".join([
                "const __el = document.createElement('div');",
                f"__el.setAttribute('data-component', '{comp.name}');",
                "const __state = {};",
                "let __mounted = false;",
            ]),
        ]
        if comp.params:
            sections.append("\n".join(self._gen_prop_bindings(comp.params)))
        sections += states
        sections += body
        sections.append("function __render() {\n" + _indent("\n".join(render)) + "\n}")
        sections.append("__render();\nreturn __el;")

        self._state_names = saved_states
        return f"function {comp.name}(props) {{\n" + _indent("\n\n".join(sections)) + "\n}"

    def _gen_prop_bindings(self, params: tuple[Param, ...]) -> list[str]:
        lines = [f"let {p.name} = props.{p.name};" for p in params]
        for p in params:
            if p.default_value is not None:
                default = self._gen_expr(p.default_value)
                lines.append(f"{p.name} = {p.name} !== undefined ? {p.name} : {default};")
        return lines

    def _gen_state(self, state: StateDecl) -> str:
        name = state.name
        return "\n".join([
            f"let {name} = {self._gen_expr(state.value)};",
            f"Object.defineProperty(__state, '{name}', {{",
            f"  get() {{ return {name}; }},",
            f"  set(v) {{ {name} = v; __render(); }}",
            "});",
        ])

    def _gen_effect(self, effect: EffectDecl) -> str:
        return f"(function() {self._gen_block(effect.body)})();"

    # -------------------------------------------------------------------
    # UI
    # -------------------------------------------------------------------

    def _gen_ui_node(self, node: Node, parent: str) -> list[str]:
        if isinstance(node, UIElement):
            return self._gen_ui_element(node, parent)
        if isinstance(node, ComponentInstance):
            return [f"{parent}.appendChild({self._gen_instance(node)});"]
        if isinstance(node, UIText):
            return [f"{parent}.appendChild(document.createTextNode({js_string(node.value)}));"]
        if isinstance(node, UIExpression):
            expr = self._gen_expr(node.expression)
            return [f"{parent}.appendChild(document.createTextNode(String({expr})));"]
        if isinstance(node, IfStatement):
            return self._gen_ui_conditional(node, parent)
        if isinstance(node, ForStatement):
            lines = [f"for (const {node.variable} of {self._gen_expr(node.iterable)}) {{"]
            saved = self._shadow([node.variable])
            for child in node.body:
                lines += ["  " + line for line in self._gen_ui_node(child, parent)]
            self._state_names = saved
            lines.append("}")
            return lines
        return self._gen_statement(node).split("\n")

    def _gen_ui_conditional(self, node: IfStatement, parent: str) -> list[str]:
        lines = [f"if ({self._gen_expr(node.condition)}) {{"]
        for child in node.consequent:
            lines += ["  " + line for line in self._gen_ui_node(child, parent)]
        if node.alternate is None:
            lines.append("}")
            return lines
        if len(node.alternate) == 1 and isinstance(node.alternate[0], IfStatement):
            nested = self._gen_ui_conditional(node.alternate[0], parent)
            lines.append("} else " + nested[0])
            lines += nested[1:]
            return lines
        lines.append("} else {")
        for child in node.alternate:
            lines += ["  " + line for line in self._gen_ui_node(child, parent)]
        lines.append("}")
        return lines

    def _gen_ui_element(self, node: UIElement, parent: str) -> list[str]:
        var = self._new_element()
        lines = [f"const {var} = document.createElement('{node.tag}');"]

        for attr in node.attributes:
            if attr.name.startswith("@"):
                event = attr.name[1:]
                handler = self._gen_expr(attr.value) if attr.value is not None else "function() {}"
                lines.append(
                    f"{var}.addEventListener('{event}', function(e) {{ ({handler})(e); __render(); }});"
                )
            elif attr.value is None:
                lines.append(f"{var}.setAttribute('{attr.name}', '');")
            elif attr.name == "class":
                lines.append(f"{var}.className = {self._gen_expr(attr.value)};")
            elif attr.name == "style" and isinstance(attr.value, ObjectLiteral):
                lines.append(f"Object.assign({var}.style, {self._gen_expr(attr.value)});")
            else:
                lines.append(f"{var}.setAttribute('{attr.name}', {self._gen_expr(attr.value)});")

        for child in node.children:
            lines += self._gen_ui_node(child, var)

        lines.append(f"{parent}.appendChild({var});")
        return lines

    def _gen_instance(self, node: ComponentInstance) -> str:
        return f"{node.name}({self._gen_props(node.props)})"

    def _gen_props(self, props: tuple[Prop, ...]) -> str:
        entries = []
        for prop in props:
            key = prop.name[1:] if prop.name.startswith("@") else prop.name
            value = self._gen_expr(prop.value) if prop.value is not None else "true"
            entries.append(f"{_object_key(key)}: {value}")
        return "{" + ", ".join(entries) + "}"

    # -------------------------------------------------------------------
    # Styles
    # -------------------------------------------------------------------

    def _gen_style(self, node: StyleDecl) -> None:
        name = node.name or "default"
        class_name = "lumina-" + name
        self.styles[name] = class_name
        props = "\n".join(
            f"  {camel_to_kebab(p.key)}: {self._gen_style_value(p.value)};"
            for p in node.properties
        )
        self._css.append(f".{class_name} {{\n{props}\n}}")

    def _gen_style_value(self, value) -> str:
        if isinstance(value, NumberLiteral):
            return format_number(value.value) + "px"
        if isinstance(value, StringLiteral):
            return value.value
        return self._gen_expr(value)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _gen_block(self, stmts: tuple[Node, ...]) -> str:
        saved = self._shadow(s.name for s in stmts if isinstance(s, (VariableDecl, FunctionDecl)))
        lines = [self._gen_statement(s) for s in stmts]
        self._state_names = saved
        lines = [line for line in lines if line]
        if not lines:
            return "{}"
        return "{\n" + _indent("\n".join(lines)) + "\n}"

    def _gen_statement(self, node: Node) -> str:
        if isinstance(node, ComponentDecl):
            return self._gen_component(node)
        if isinstance(node, FunctionDecl):
            saved = self._shadow(p.name for p in node.params)
            code = f"function {node.name}({self._gen_params(node.params)}) {self._gen_block(node.body)}"
            self._state_names = saved
            return code
        if isinstance(node, VariableDecl):
            keyword = "let" if node.mutable else "const"
            return f"{keyword} {node.name} = {self._gen_expr(node.value)};"
        if isinstance(node, StateDecl):
            return f"let {node.name} = {self._gen_expr(node.value)};"
        if isinstance(node, EffectDecl):
            return self._gen_effect(node)
        if isinstance(node, StyleDecl):
            self._gen_style(node)
            return ""
        if isinstance(node, (ImportDecl, ExportDecl)):
            return self._gen_top_level(node)
        if isinstance(node, ReturnStatement):
            if node.value is None:
                return "return;"
            return f"return {self._gen_expr(node.value)};"
        if isinstance(node, IfStatement):
            return self._gen_if(node)
        if isinstance(node, ForStatement):
            head = f"for (const {node.variable} of {self._gen_expr(node.iterable)})"
            saved = self._shadow([node.variable])
            body = self._gen_block(node.body)
            self._state_names = saved
            return f"{head} {body}"
        if isinstance(node, BlockStatement):
            return self._gen_block(node.body)
        if isinstance(node, ExpressionStatement):
            return self._gen_expr(node.expression) + ";"
        return self._gen_expr(node) + ";"

    def _gen_if(self, node: IfStatement) -> str:
        code = f"if ({self._gen_expr(node.condition)}) {self._gen_block(node.consequent)}"
        if node.alternate is None:
            return code
        if len(node.alternate) == 1 and isinstance(node.alternate[0], IfStatement):
            return code + " else " + self._gen_if(node.alternate[0])
        return code + " else " + self._gen_block(node.alternate)

    def _gen_params(self, params: tuple[Param, ...]) -> str:
        parts = []
        for p in params:
            if p.default_value is not None:
                parts.append(f"{p.name} = {self._gen_expr(p.default_value)}")
            else:
                parts.append(p.name)
        return ", ".join(parts)

    # -------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------

    def _gen_expr(self, node: Node) -> str:
        if isinstance(node, NumberLiteral):
            return format_number(node.value)
        if isinstance(node, StringLiteral):
            return js_string(node.value)
        if isinstance(node, BooleanLiteral):
            return "true" if node.value else "false"
        if isinstance(node, NullLiteral):
            return "null"
        if isinstance(node, Identifier):
            return node.name
        if isinstance(node, BinaryExpr):
            left = self._gen_operand(node.left, _LOOSE_OPERAND)
            right = self._gen_operand(node.right, _LOOSE_OPERAND)
            return f"({left} {node.operator} {right})"
        if isinstance(node, UnaryExpr):
            return f"{node.operator}{self._gen_operand(node.operand, _LOOSE_PREFIX)}"
        if isinstance(node, CallExpr):
            return self._gen_call(node)
        if isinstance(node, MemberExpr):
            obj = self._gen_operand(node.object, _LOOSE_OBJECT)
            if node.computed:
                return f"{obj}[{self._gen_expr(node.index)}]"
            return f"{obj}.{node.property}"
        if isinstance(node, AssignExpr):
            value = self._gen_expr(node.value)
            target = node.target
            if isinstance(target, Identifier) and target.name in self._state_names:
                return f"__state.{target.name} = {value}"
            return f"{self._gen_expr(target)} = {value}"
        if isinstance(node, ArrowFunction):
            return self._gen_arrow(node)
        if isinstance(node, ArrayLiteral):
            return "[" + ", ".join(self._gen_expr(e) for e in node.elements) + "]"
        if isinstance(node, ObjectLiteral):
            entries = (f"{_object_key(p.key)}: {self._gen_expr(p.value)}" for p in node.properties)
            return "{" + ", ".join(entries) + "}"
        if isinstance(node, ConditionalExpr):
            return (
                f"({self._gen_operand(node.condition, _LOOSE_OPERAND)} ? {self._gen_expr(node.consequent)}"
                f" : {self._gen_expr(node.alternate)})"
            )
        if isinstance(node, PipeExpr):
            return f"{self._gen_operand(node.right, _LOOSE_CALLEE)}({self._gen_expr(node.left)})"
        if isinstance(node, TemplateLiteral):
            parts = (
                p.replace("</", "<\\/") if isinstance(p, str) else "${" + self._gen_expr(p) + "}"
                for p in node.parts
            )
            return "`" + "".join(parts) + "`"
        if isinstance(node, ComponentInstance):
            return self._gen_instance(node)
        if isinstance(node, UIElement):
            lines = ["const __root = document.createDocumentFragment();"]
            lines += self._gen_ui_element(node, "__root")
            lines.append("return __root.firstChild;")
            return "(() => {\n" + _indent("\n".join(lines)) + "\n})()"
        return f"/* unknown: {node.type} */"

    def _gen_operand(self, node: Node, loose: tuple[type, ...]) -> str:
        code = self._gen_expr(node)
        return f"({code})" if isinstance(node, loose) else code

    def _gen_arrow(self, node: ArrowFunction) -> str:
        params = self._gen_params(node.params)
        saved = self._shadow(p.name for p in node.params)
        if isinstance(node.body, tuple):
            body = self._gen_block(node.body)
        elif isinstance(node.body, ObjectLiteral):
            body = f"({self._gen_expr(node.body)})"
        else:
            body = self._gen_expr(node.body)
        self._state_names = saved
        return f"({params}) => {body}"

    def _gen_call(self, node: CallExpr) -> str:
        callee = self._gen_operand(node.callee, _LOOSE_CALLEE)
        if isinstance(node.callee, Identifier) and node.callee.name in self.components:
            entries = []
            for arg in node.arguments:
                if isinstance(arg, Identifier):
                    entries.append(arg.name)
                else:
                    entries.append("..." + self._gen_expr(arg))
            return f"{callee}({{{', '.join(entries)}}})"
        args = ", ".join(self._gen_expr(a) for a in node.arguments)
        return f"{callee}({args})"

    # -------------------------------------------------------------------
    # HTML document
    # -------------------------------------------------------------------

    def _generate_html(self, js: str, css: str) -> str:
        mount = ""
        if self.components:
            mount = f"document.getElementById('app').appendChild({self.components[0]}({{}}));"
        css_block = "\n".join("    " + line if line else line for line in css.split("\n")) if css else ""
        return "\n".join([
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '  <meta charset="UTF-8">',
            '  <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"  <title>{html.escape(self.title)}</title>",
            "  <style>",
            "    * { margin: 0; padding: 0; box-sizing: border-box; }",
            "    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; }",
            css_block,
            "  </style>",
            "</head>",
            "<body>",
            '  <div id="app"></div>',
            "  <script>",
            js,
            "",
            "// Auto-mount",
            mount,
            "  </script>",
            "</body>",
            "</html>",
        ])


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate(program: Program, title: str = "Lumina App") -> GeneratedOutput:
    """Lower a parsed program to HTML, JS and CSS."""
    return CodeGenerator(title=title).generate(program)
