"""Lumina CLI and configuration tests.

Every test runs inside its own temporary directory so config discovery
never sees a stray .luminarc from the surrounding checkout.
"""

import json
import os
import urllib.request

import pytest

from lumina import cli
from lumina.cli import main
from lumina.config import LuminaConfig, find_config, load_config
from lumina.errors import CompileError, ErrorKind


HELLO = "component Hello(name = \"World\") {\n  <p>{\"Hi \" + name}</p>\n}\n"
BAD_TYPES = 'let x: Int = "no"\n'


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


class TestCompile:

    def test_stdout(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("<!DOCTYPE html>")
        assert "function Hello(props) {" in out

    def test_output_file(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        target = os.path.join("out", "app.html")
        assert run(["compile", "app.lum", "-o", target]) == 0
        assert f"Compiled: app.lum -> {target}" in capsys.readouterr().out
        assert (workdir / "out" / "app.html").read_text(encoding="utf-8").startswith("<!DOCTYPE html>")

    def test_js_only(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum", "--js-only"]) == 0
        assert capsys.readouterr().out.startswith("// Lumina Runtime v0.1")

    def test_css_only(self, workdir, capsys):
        write(workdir / "app.lum", "style card { margin: 8 }\n")
        assert run(["compile", "app.lum", "--css-only"]) == 0
        assert capsys.readouterr().out == ".lumina-card {\n  margin: 8px;\n}"

    def test_title_flag(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum", "--title", "Hello Page"]) == 0
        assert "<title>Hello Page</title>" in capsys.readouterr().out

    def test_parse_error_is_json(self, workdir, capsys):
        write(workdir / "bad.lum", "let = 1\n")
        assert run(["compile", "bad.lum"]) == 1
        errors = json.loads(capsys.readouterr().out)
        assert errors[0]["kind"] == "syntax_error"
        assert errors[0]["location"]["file"] == "bad.lum"

    def test_missing_file(self, workdir, capsys):
        assert run(["compile", "nope.lum"]) == 1
        assert json.loads(capsys.readouterr().out) == {"error": "File not found: nope.lum"}

    def test_undecodable_file(self, workdir, capsys):
        (workdir / "bin.lum").write_bytes(b"let x = \xff\xfe\n")
        assert run(["compile", "bin.lum"]) == 1
        assert json.loads(capsys.readouterr().out)["error"].startswith("Cannot read bin.lum:")

    def test_typecheck_warnings_go_to_stderr(self, workdir, capsys):
        write(workdir / "app.lum", BAD_TYPES)
        assert run(["compile", "app.lum", "--typecheck"]) == 0
        captured = capsys.readouterr()
        assert "warning:" in captured.err
        assert "Variable x declared as Int" in captured.err
        assert captured.out.startswith("<!DOCTYPE html>")

    def test_strict_fails(self, workdir, capsys):
        write(workdir / "app.lum", BAD_TYPES)
        assert run(["compile", "app.lum", "--strict"]) == 1
        assert json.loads(capsys.readouterr().out)[0]["kind"] == "type_error"


class TestCheck:

    def test_passes(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["check", "app.lum"]) == 0
        assert "Type checking passed" in capsys.readouterr().out

    def test_fails(self, workdir, capsys):
        write(workdir / "app.lum", BAD_TYPES)
        assert run(["check", "app.lum"]) == 1
        out = capsys.readouterr().out
        assert "Type checking failed:" in out
        assert "Variable x declared as Int but initialized with String" in out

    def test_json_format(self, workdir, capsys):
        write(workdir / "app.lum", BAD_TYPES)
        assert run(["check", "app.lum", "--format", "json"]) == 1
        diagnostics = json.loads(capsys.readouterr().out)
        assert diagnostics[0]["kind"] == "type_error"
        assert diagnostics[0]["details"] == {"expected_type": "Int", "actual_type": "String"}


class TestDumps:

    def test_tokens(self, workdir, capsys):
        write(workdir / "app.lum", "let x = 1")
        assert run(["tokens", "app.lum"]) == 0
        tokens = json.loads(capsys.readouterr().out)
        assert [t["type"] for t in tokens] == ["let", "Identifier", "=", "Number", "EOF"]

    def test_ast(self, workdir, capsys):
        write(workdir / "app.lum", "let x = 1")
        assert run(["ast", "app.lum"]) == 0
        tree = json.loads(capsys.readouterr().out)
        assert tree["type"] == "Program"
        assert tree["body"][0]["type"] == "VariableDecl"
        assert tree["body"][0]["value"] == {"type": "NumberLiteral", "value": 1}


class TestRender:

    def test_render_with_props(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["render", "app.lum", "-c", "Hello", "--props", '{"name": "Ada"}']) == 0
        assert capsys.readouterr().out.strip() == "<p>Hi Ada</p>"

    def test_render_defaults(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["render", "app.lum", "-c", "Hello"]) == 0
        assert capsys.readouterr().out.strip() == "<p>Hi World</p>"

    def test_props_must_be_object(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["render", "app.lum", "-c", "Hello", "--props", "[1]"]) == 1
        assert json.loads(capsys.readouterr().out) == {"error": "--props must be a JSON object"}

    def test_unknown_component(self, workdir, capsys):
        write(workdir / "app.lum", HELLO)
        assert run(["render", "app.lum", "-c", "Nope"]) == 1
        assert json.loads(capsys.readouterr().out) == {"error": "Component not found: Nope"}


class TestBuild:

    def test_build_directory(self, workdir, capsys):
        write(workdir / "src" / "a.lum", HELLO)
        write(workdir / "src" / "pages" / "b.lum", HELLO)
        write(workdir / "src" / "notes.txt", "not lumina")
        assert run(["build", "src", "-o", "dist"]) == 0
        assert "2 file(s) built, 0 failed" in capsys.readouterr().out
        assert (workdir / "dist" / "a.html").exists()
        assert (workdir / "dist" / "pages" / "b.html").exists()
        assert not (workdir / "dist" / "notes.html").exists()

    def test_build_reports_failures(self, workdir, capsys):
        write(workdir / "src" / "a.lum", HELLO)
        write(workdir / "src" / "broken.lum", "component {")
        assert run(["build", "src", "-o", "dist"]) == 1
        assert "1 file(s) built, 1 failed" in capsys.readouterr().out

    def test_build_uses_config_output_dir(self, workdir, capsys):
        write(workdir / ".luminarc.yml", "output_dir: public\nexclude:\n  - \"drafts/*\"\n")
        write(workdir / "src" / "a.lum", HELLO)
        write(workdir / "src" / "drafts" / "wip.lum", HELLO)
        assert run(["build", "src"]) == 0
        assert (workdir / "public" / "a.html").exists()
        assert not (workdir / "public" / "drafts" / "wip.html").exists()

    def test_unreadable_file_fails_only_itself(self, workdir, capsys):
        write(workdir / "src" / "a.lum", HELLO)
        (workdir / "src" / "bin.lum").write_bytes(b"\xff\xfe")
        assert run(["build", "src", "-o", "dist"]) == 1
        out = capsys.readouterr().out
        assert "Cannot read" in out
        assert "1 file(s) built, 1 failed" in out
        assert (workdir / "dist" / "a.html").exists()

    def test_file_vanishing_before_read(self, workdir, capsys):
        write(workdir / "src" / "a.lum", HELLO)
        settings = LuminaConfig()
        args = cli.build_parser().parse_args(["build", "src"])
        path = os.path.join("src", "gone.lum")
        assert cli.build_file(path, "src", "dist", settings, args) is False
        assert json.loads(capsys.readouterr().out) == {"error": f"File not found: {path}"}

    def test_not_a_directory(self, workdir, capsys):
        assert run(["build", "missing"]) == 1
        assert json.loads(capsys.readouterr().out) == {"error": "Not a directory: missing"}

    def test_watch_builds_then_stops(self, workdir, capsys, monkeypatch):
        write(workdir / "src" / "a.lum", HELLO)

        def interrupt(seconds):
            raise KeyboardInterrupt

        monkeypatch.setattr("lumina.cli.time.sleep", interrupt)
        assert run(["watch", "src", "-o", "dist"]) == 0
        out = capsys.readouterr().out
        assert "Watching src for changes" in out
        assert "Watch stopped." in out
        assert (workdir / "dist" / "a.html").exists()

    def test_watch_serves_output(self, workdir, capsys, monkeypatch):
        write(workdir / "src" / "a.lum", HELLO)
        servers = []
        pages = []
        start_server = cli.start_server

        def recording_start(*args, **kwargs):
            server = start_server(*args, **kwargs)
            servers.append(server)
            return server

        def fetch_then_interrupt(seconds):
            port = servers[0].server_address[1]
            with urllib.request.urlopen(f"http://127.0.0.1:{port}/a.html", timeout=5) as resp:
                pages.append(resp.read().decode("utf-8"))
            raise KeyboardInterrupt

        monkeypatch.setattr(cli, "start_server", recording_start)
        monkeypatch.setattr("lumina.cli.time.sleep", fetch_then_interrupt)
        assert run(["watch", "src", "-o", "dist", "--port", "0"]) == 0
        out = capsys.readouterr().out
        assert "Serving dist at http://127.0.0.1:" in out
        assert "function Hello(props) {" in pages[0]
        assert "Lumina live reload" in pages[0]


class TestCliConfig:

    def test_config_title(self, workdir, capsys):
        write(workdir / ".luminarc.yml", "title: From Config\n")
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum"]) == 0
        assert "<title>From Config</title>" in capsys.readouterr().out

    def test_flag_overrides_config(self, workdir, capsys):
        write(workdir / ".luminarc.yml", "title: From Config\n")
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum", "--title", "From Flag"]) == 0
        assert "<title>From Flag</title>" in capsys.readouterr().out

    def test_config_strict(self, workdir, capsys):
        write(workdir / ".luminarc.yml", "strict: true\n")
        write(workdir / "app.lum", BAD_TYPES)
        assert run(["compile", "app.lum"]) == 1

    def test_explicit_json_config(self, workdir, capsys):
        write(workdir / "settings" / "lumina.json", '{"title": "Json Title"}')
        write(workdir / "app.lum", HELLO)
        assert run(["--config", "settings/lumina.json", "compile", "app.lum"]) == 0
        assert "<title>Json Title</title>" in capsys.readouterr().out

    def test_malformed_config(self, workdir, capsys):
        write(workdir / ".luminarc.yml", "title: [unclosed\n")
        write(workdir / "app.lum", HELLO)
        assert run(["compile", "app.lum"]) == 1
        errors = json.loads(capsys.readouterr().out)
        assert errors[0]["kind"] == "config_error"
        assert errors[0]["details"]["path"].endswith(".luminarc.yml")

    def test_no_command_prints_help(self, workdir, capsys):
        assert run([]) == 1
        assert "usage:" in capsys.readouterr().out


class TestLoadConfig:

    def test_defaults_without_file(self, workdir):
        config = load_config(start_dir=str(workdir))
        assert config == LuminaConfig()

    def test_found_walking_up(self, workdir):
        write(workdir / ".luminarc.yaml", "typecheck: true\nlog_level: debug\nwatch_interval: 0.25\n")
        nested = workdir / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config(str(nested)) == str(workdir / ".luminarc.yaml")
        config = load_config(start_dir=str(nested))
        assert config.typecheck is True
        assert config.log_level == "DEBUG"
        assert config.watch_interval == 0.25
        assert config.source == str(workdir / ".luminarc.yaml")

    def test_yml_wins_over_json(self, workdir):
        write(workdir / ".luminarc.json", '{"title": "json"}')
        write(workdir / ".luminarc.yml", "title: yml\n")
        assert load_config(start_dir=str(workdir)).title == "yml"

    def test_top_level_must_be_mapping(self, workdir):
        path = write(workdir / ".luminarc.yml", "- a\n- b\n")
        with pytest.raises(CompileError) as exc:
            load_config(str(path))
        assert exc.value.errors[0].kind == ErrorKind.CONFIG_ERROR

    def test_invalid_value(self, workdir):
        path = write(workdir / ".luminarc.yml", "watch_interval: fast\n")
        with pytest.raises(CompileError) as exc:
            load_config(str(path))
        assert "Invalid config value" in exc.value.errors[0].message

    def test_malformed_json(self, workdir):
        path = write(workdir / ".luminarc.json", "{not json")
        with pytest.raises(CompileError):
            load_config(str(path))

    def test_empty_file_is_defaults(self, workdir):
        path = write(workdir / ".luminarc.yml", "")
        config = load_config(str(path))
        assert config.title == "Lumina App"
        assert config.source == str(path)

    def test_should_include(self):
        config = LuminaConfig(include=["src/*.lum"], exclude=["src/draft*"])
        assert config.should_include("src/app.lum")
        assert not config.should_include("src/draft.lum")
        assert not config.should_include("other/app.lum")
        assert LuminaConfig().should_include("anything.lum")
