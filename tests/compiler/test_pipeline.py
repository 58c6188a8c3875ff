"""End-to-end tests for compile_source: source text in, HTML/JS/CSS out."""

import glob
import os

import pytest

from lumina import compile_source, CompileError, LexError, ParseError
from lumina.compiler import CompileResult


EXAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "examples")

TODO_APP = """
style app { padding: 20, fontFamily: "sans-serif" }

component TodoApp() {
  state todos: Array<String> = []
  state inputValue: String = ""

  fn addTodo() {
    if inputValue != "" {
      todos = todos.concat([inputValue])
      inputValue = ""
    }
  }

  <div class="lumina-app">
    <h1>Todo List</h1>
    <input value={inputValue} @input={(e) => inputValue = e.target.value} />
    <button @click={addTodo}>Add</button>
    <ul>
      {for todo in todos {
        <li>{todo}</li>
      }}
    </ul>
    <p>{todos.length} items</p>
  </div>
}
"""


class TestCompileSource:

    def test_todo_app(self):
        result = compile_source(TODO_APP, typecheck=True)
        assert isinstance(result, CompileResult)
        assert result.diagnostics == []

        js = result.js
        assert "function TodoApp(props) {" in js
        assert "__state.todos = todos.concat([inputValue]);" in js
        assert '__state.inputValue = "";' in js
        assert "__e0.className = \"lumina-app\";" in js
        assert (
            "__e2.addEventListener('input', function(e) "
            "{ ((e) => __state.inputValue = e.target.value)(e); __render(); });"
        ) in js
        assert "for (const todo of todos) {" in js
        assert "const __e5 = document.createElement('li');" in js
        assert "__e6.appendChild(document.createTextNode(String(todos.length)));" in js
        assert '__e6.appendChild(document.createTextNode("items"));' in js

        assert result.css == ".lumina-app {\n  padding: 20px;\n  font-family: sans-serif;\n}"
        assert "document.getElementById('app').appendChild(TodoApp({}));" in result.html
        assert js in result.html

    def test_type_errors_ignored_without_typecheck(self):
        result = compile_source('let x: Int = "no"')
        assert result.diagnostics == []
        assert 'const x = "no";' in result.js

    def test_typecheck_reports_but_generates(self):
        result = compile_source('let x: Int = "no"', typecheck=True)
        assert [d.message for d in result.diagnostics] == [
            "Variable x declared as Int but initialized with String",
        ]
        assert 'const x = "no";' in result.js

    def test_strict_refuses_to_generate(self):
        with pytest.raises(CompileError) as exc:
            compile_source('let x: Int = "no"', strict=True)
        assert exc.value.errors[0].message == "Variable x declared as Int but initialized with String"

    def test_strict_passes_clean_program(self):
        result = compile_source("let x: Int = 1", strict=True)
        assert "const x = 1;" in result.js

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError):
            compile_source("component {")

    def test_lex_error_propagates(self):
        with pytest.raises(LexError):
            compile_source('let s = "open')

    def test_filename_in_error_location(self):
        with pytest.raises(ParseError) as exc:
            compile_source("let = 1", filename="app.lum")
        assert exc.value.location.file == "app.lum"

    def test_title(self):
        assert "<title>Docs</title>" in compile_source("", title="Docs").html

    def test_deterministic(self):
        assert compile_source(TODO_APP) == compile_source(TODO_APP)


class TestExamples:
    """Every sample program under examples/ compiles cleanly in strict mode."""

    @pytest.mark.parametrize("path", sorted(glob.glob(os.path.join(EXAMPLES_DIR, "*.lum"))))
    def test_example_compiles(self, path):
        with open(path, "r", encoding="utf-8") as f:
            source = f.read()
        result = compile_source(source, filename=path, strict=True)
        assert "document.getElementById('app').appendChild(" in result.html
