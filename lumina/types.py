"""Lumina Type System.

Built-in types: Int, String, Bool, Null, Void, Any
Compound types: Array<T>, Object{fields}, Function(params) -> T, Component{props}
Type environment with scoping.

The system is structural and deliberately unsound: Any and Void are
compatible with everything in both directions, and unannotated
declarations default to Any.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from lumina.ast_nodes import TypeAnnotation


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LuminaType:
    """Base type."""

    @property
    def kind(self) -> str:
        return "Unknown"

    def __str__(self) -> str:
        return self.kind


@dataclass(frozen=True)
class PrimitiveType(LuminaType):
    name: str = ""

    @property
    def kind(self) -> str:
        return self.name


@dataclass(frozen=True)
class ArrayType(LuminaType):
    element_type: LuminaType = field(default_factory=lambda: ANY)

    @property
    def kind(self) -> str:
        return "Array"

    def __str__(self) -> str:
        return f"Array<{self.element_type}>"


@dataclass(frozen=True)
class ObjectType(LuminaType):
    fields: tuple[tuple[str, LuminaType], ...] = ()

    @property
    def kind(self) -> str:
        return "Object"

    def get_field_type(self, field_name: str) -> Optional[LuminaType]:
        for name, typ in self.fields:
            if name == field_name:
                return typ
        return None


@dataclass(frozen=True)
class FunctionType(LuminaType):
    param_types: tuple[LuminaType, ...] = ()
    return_type: LuminaType = field(default_factory=lambda: ANY)

    @property
    def kind(self) -> str:
        return "Function"

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.param_types)
        return f"Function({params}) -> {self.return_type}"


@dataclass(frozen=True)
class ComponentType(LuminaType):
    name: str = ""
    props: tuple[tuple[str, LuminaType], ...] = ()

    @property
    def kind(self) -> str:
        return "Component"

    def get_prop_type(self, prop_name: str) -> Optional[LuminaType]:
        for name, typ in self.props:
            if name == prop_name:
                return typ
        return None


# ---------------------------------------------------------------------------
# Built-in Types
# ---------------------------------------------------------------------------

INT = PrimitiveType("Int")
STRING = PrimitiveType("String")
BOOL = PrimitiveType("Bool")
NULL = PrimitiveType("Null")
VOID = PrimitiveType("Void")
ANY = PrimitiveType("Any")

BUILTIN_TYPES: dict[str, LuminaType] = {
    "Int": INT,
    "String": STRING,
    "Bool": BOOL,
    "Null": NULL,
    "Void": VOID,
    "Any": ANY,
}

UNIVERSAL_KINDS = ("Any", "Void")


def is_compatible(actual: LuminaType, expected: LuminaType) -> bool:
    """True when a value of type ``actual`` may flow where ``expected`` is required.

    Top-level kinds must match exactly (no widening, no structural subtyping
    on objects); arrays additionally compare their element types.
    """
    if actual.kind in UNIVERSAL_KINDS or expected.kind in UNIVERSAL_KINDS:
        return True
    if actual.kind != expected.kind:
        return False
    if isinstance(actual, ArrayType) and isinstance(expected, ArrayType):
        return is_compatible(actual.element_type, expected.element_type)
    return True


def make_array_type(element: LuminaType) -> ArrayType:
    return ArrayType(element)


# ---------------------------------------------------------------------------
# Type Environment
# ---------------------------------------------------------------------------

class TypeEnvironment:
    """Scoped type environment: a singly linked chain of binding tables."""

    def __init__(self, parent: Optional[TypeEnvironment] = None):
        self.parent = parent
        self._bindings: dict[str, LuminaType] = {}

    def define(self, name: str, typ: LuminaType) -> None:
        self._bindings[name] = typ

    def lookup(self, name: str) -> Optional[LuminaType]:
        env: Optional[TypeEnvironment] = self
        while env is not None:
            if name in env._bindings:
                return env._bindings[name]
            env = env.parent
        return None

    def child_scope(self) -> TypeEnvironment:
        return TypeEnvironment(parent=self)


def resolve_type_annotation(annotation: Optional[TypeAnnotation]) -> LuminaType:
    """Resolve a TypeAnnotation AST node to a LuminaType; unknown names are Any."""
    if annotation is None:
        return ANY

    if annotation.name == "Array":
        if annotation.generic_args:
            return make_array_type(resolve_type_annotation(annotation.generic_args[0]))
        return make_array_type(ANY)
    if annotation.name == "Object":
        return ObjectType()
    if annotation.name == "Function":
        return FunctionType()

    return BUILTIN_TYPES.get(annotation.name, ANY)
