"""Lumina Type Checker Tests.

The checker is advisory: every case below runs to completion and the
diagnostics come back as a list rather than an exception.
"""

from lumina.parser import parse
from lumina.checker import check, BROWSER_GLOBALS
from lumina.errors import ErrorKind


def messages(source):
    return [d.message for d in check(parse(source)).diagnostics]


class TestDeclarations:
    """Annotated bindings and return types."""

    def test_variable_mismatch(self):
        assert messages('let x: Int = "hi"') == ["Variable x declared as Int but initialized with String"]

    def test_state_mismatch(self):
        source = "component A() {\n  state on: Bool = 1\n  <div></div>\n}"
        assert messages(source) == ["State on declared as Bool but initialized with Int"]

    def test_return_mismatch(self):
        assert messages('fn f() -> Int { return "a" }') == ["Function f returns String but expected Int"]

    def test_generic_array_annotation(self):
        assert messages("let xs: Array<Int> = [1, 2]") == []
        assert messages('let ys: Array<Int> = ["a"]') == [
            "Variable ys declared as Array<Int> but initialized with Array<String>",
        ]

    def test_unannotated_is_any(self):
        assert messages('fn f(a) { return a }\nlet r: Int = f("x")') == []

    def test_details_carry_types(self):
        diag = check(parse('let x: Int = "hi"')).diagnostics[0]
        assert diag.kind == ErrorKind.TYPE_ERROR
        assert diag.details == {"expected_type": "Int", "actual_type": "String"}

    def test_location_reported(self):
        diag = check(parse('let a = 1\nlet b: Int = "x"')).diagnostics[0]
        assert diag.location.line == 2


class TestStatements:

    def test_if_condition_must_be_bool(self):
        assert messages("if 1 { }") == ["If condition must be Bool but got Int"]

    def test_comparison_condition_ok(self):
        assert messages("let n = 3\nif n > 2 { }") == []

    def test_for_binds_element_type(self):
        source = "let xs: Array<Int> = [1, 2]\nfor x in xs {\n  let y: String = x\n}"
        assert messages(source) == ["Variable y declared as String but initialized with Int"]

    def test_loop_variable_is_scoped(self):
        assert messages("for x in [1] { }\nlet z = x") == ["Undefined variable: x"]

    def test_nested_function_is_hoisted(self):
        assert messages("fn outer() {\n  inner()\n  fn inner() { }\n}") == []


class TestOperators:

    def test_arithmetic_needs_ints(self):
        result = check(parse('let a = 1 - "x"'))
        assert [d.message for d in result.diagnostics] == ["Operator - requires Int operands"]
        assert result.diagnostics[0].details["actual_type"] == "String"

    def test_plus_with_string_is_concatenation(self):
        assert messages('let s: String = "n=" + 1') == []

    def test_logical_needs_bools(self):
        assert messages("let b = true && 1") == ["Operator && requires Bool operands"]

    def test_unary_operators(self):
        assert messages("let c = !1") == ["Operator ! requires Bool operand"]
        assert messages('let d = -"x"') == ["Operator - requires Int operand"]

    def test_pipe_result_type(self):
        source = "fn double(n: Int) -> Int { return n * 2 }\nlet s: String = 2 |> double"
        assert messages(source) == ["Variable s declared as String but initialized with Int"]

    def test_ternary_with_mixed_branches_is_any(self):
        assert messages('let t: Int = true ? 1 : "a"') == []

    def test_object_member_type(self):
        assert messages("let o = {a: 1}\nlet s: String = o.a") == [
            "Variable s declared as String but initialized with Int",
        ]


class TestAssignmentsAndCalls:

    def test_assignment_mismatch(self):
        assert messages('let x: Int = 1\nx = "s"') == ["Cannot assign String to Int"]

    def test_invalid_assignment_target(self):
        assert messages("1 = 2") == ["Invalid assignment target"]

    def test_arity(self):
        source = "fn f(a: Int) -> Int { return a }\nlet r = f(1, 2)"
        assert messages(source) == ["Function expects 1 arguments but got 2"]

    def test_argument_type(self):
        source = 'fn f(a: Int) -> Int { return a }\nlet r = f("x")'
        assert messages(source) == ["Argument 1 expects Int but got String"]

    def test_calling_any_is_unchecked(self):
        assert messages("let r = Math.max(1, 2, 3)") == []


class TestNames:

    def test_undefined_variable(self):
        result = check(parse("let y = missing"))
        diag = result.diagnostics[0]
        assert diag.kind == ErrorKind.NAME_ERROR
        assert diag.message == "Undefined variable: missing"
        assert diag.details == {"name": "missing"}
        assert result.errors == ["[Type Error] Undefined variable: missing"]

    def test_undefined_in_template(self):
        assert messages("let g = `hi ${nobody}`") == ["Undefined variable: nobody"]

    def test_browser_globals_are_known(self):
        assert "console" in BROWSER_GLOBALS
        source = "component A() {\n  effect { console.log(document.title) }\n  <div></div>\n}"
        assert messages(source) == []

    def test_effect_dependencies_are_looked_up(self):
        source = "component A() {\n  effect(nothing) { }\n  <div></div>\n}"
        assert messages(source) == ["Undefined variable: nothing"]

    def test_export_list_names_are_looked_up(self):
        assert messages("export { Ghost }") == ["Undefined variable: Ghost"]

    def test_keeps_going_after_errors(self):
        assert messages('let a: Int = "x"\nlet b: Bool = 1\nlet c = gone') == [
            "Variable a declared as Int but initialized with String",
            "Variable b declared as Bool but initialized with Int",
            "Undefined variable: gone",
        ]


class TestComponents:

    def test_counter_component_passes(self):
        source = """
component Counter(initial: Int = 0) {
  state count: Int = initial
  fn increment() {
    count = count + 1
  }
  <div>
    <p>{count}</p>
    <button @click={increment}>Add</button>
  </div>
}
"""
        result = check(parse(source))
        assert result.success
        assert result.diagnostics == []

    def test_unknown_component(self):
        result = check(parse("component App() { <Nope/> }"))
        assert not result.success
        assert result.diagnostics[0].kind == ErrorKind.NAME_ERROR
        assert result.diagnostics[0].message == "Unknown component: Nope"

    def test_forward_reference(self):
        source = 'component App() { <Card title="x"/> }\ncomponent Card(title: String) { <h1>{title}</h1> }'
        assert messages(source) == []

    def test_exported_component_is_registered(self):
        source = 'export component Card(title: String) { <h1>{title}</h1> }\ncomponent App() { <Card title="x"/> }'
        assert messages(source) == []

    def test_prop_type_mismatch(self):
        source = 'component Card(title: String) { <h1>{title}</h1> }\ncomponent App() { <Card title={1} /> }'
        assert messages(source) == ["Component Card prop title expects String but got Int"]

    def test_imported_component_is_unchecked(self):
        source = 'import { Button } from "./ui.lum"\ncomponent App() { <Button label={1} /> }'
        assert messages(source) == []

    def test_attribute_values_are_checked(self):
        assert messages("component A() { <div class={nope}></div> }") == ["Undefined variable: nope"]
