"""Lumina CLI — Command-line interface for the Lumina compiler.

Commands:
  lumina compile <file.lum>          — Compile to HTML (or --js-only / --css-only)
  lumina check <file.lum>            — Run the type checker
  lumina tokens <file.lum>           — Dump the token stream (JSON)
  lumina ast <file.lum>              — Dump the AST (JSON)
  lumina render <file.lum> -c Name   — Server-side render one component
  lumina build <dir>                 — Compile every .lum file under a directory
  lumina watch <dir> [--port N]      — Build, rebuild on changes, optionally serve
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from typing import Optional

from lumina import __version__
from lumina.checker import check
from lumina.compiler import compile_source
from lumina.config import LuminaConfig, load_config
from lumina.devserver import DEFAULT_HOST, start_server, stop_server
from lumina.errors import CompileError
from lumina.lexer import tokenize
from lumina.parser import parse
from lumina.ssr import SSRError, render_to_string

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".lum"


def _read_source(path: str) -> Optional[str]:
    """File contents, or None after printing a JSON error."""
    if not os.path.isfile(path):
        print(json.dumps({"error": f"File not found: {path}"}))
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(json.dumps({"error": f"Cannot read {path}: {e}"}))
        return None


def _write_output(path: str, content: str) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def cmd_compile(args: argparse.Namespace) -> int:
    """Compile a Lumina source file to HTML, JS or CSS."""
    source = _read_source(args.file)
    if source is None:
        return 1

    settings: LuminaConfig = args.settings
    try:
        result = compile_source(
            source,
            filename=args.file,
            typecheck=args.typecheck or settings.typecheck,
            strict=args.strict or settings.strict,
            title=args.title or settings.title,
        )
    except CompileError as e:
        print(e.to_json())
        return 1

    for diag in result.diagnostics:
        print(f"warning: {diag}", file=sys.stderr)

    output = result.html
    if args.js_only:
        output = result.js
    elif args.css_only:
        output = result.css

    if args.output:
        _write_output(args.output, output)
        print(f"Compiled: {args.file} -> {args.output}")
    else:
        sys.stdout.write(output)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Type check a Lumina source file."""
    source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(source, filename=args.file)
    except CompileError as e:
        print(e.to_json())
        return 1

    result = check(program)
    if args.format == "json":
        print(json.dumps([d.to_dict() for d in result.diagnostics], indent=2))
    elif result.success:
        print("Type checking passed")
    else:
        print("Type checking failed:")
        for diag in result.diagnostics:
            print(f"  {diag}")
    return 0 if result.success else 1


def cmd_tokens(args: argparse.Namespace) -> int:
    """Print the token stream as JSON."""
    source = _read_source(args.file)
    if source is None:
        return 1
    try:
        tokens = tokenize(source, filename=args.file)
    except CompileError as e:
        print(e.to_json())
        return 1
    print(json.dumps([t.to_dict() for t in tokens], indent=2))
    return 0


def cmd_ast(args: argparse.Namespace) -> int:
    """Print the AST as JSON."""
    source = _read_source(args.file)
    if source is None:
        return 1
    try:
        program = parse(source, filename=args.file)
    except CompileError as e:
        print(e.to_json())
        return 1
    print(json.dumps(program.to_dict(), indent=2))
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Server-side render one component to static HTML."""
    source = _read_source(args.file)
    if source is None:
        return 1

    props = {}
    if args.props:
        try:
            props = json.loads(args.props)
        except json.JSONDecodeError as e:
            print(json.dumps({"error": f"Invalid --props JSON: {e}"}))
            return 1
        if not isinstance(props, dict):
            print(json.dumps({"error": "--props must be a JSON object"}))
            return 1

    try:
        program = parse(source, filename=args.file)
        output = render_to_string(program, args.component, props)
    except CompileError as e:
        print(e.to_json())
        return 1
    except SSRError as e:
        print(json.dumps({"error": str(e)}))
        return 1

    print(output)
    return 0


# ---------------------------------------------------------------------------
# Directory builds
# ---------------------------------------------------------------------------

def discover_sources(directory: str, settings: LuminaConfig) -> list[str]:
    """All ``.lum`` files under ``directory`` that the config lets through, sorted."""
    found = []
    for root, dirs, files in os.walk(directory):
        dirs.sort()
        for name in sorted(files):
            if not name.endswith(SOURCE_SUFFIX):
                continue
            path = os.path.join(root, name)
            rel = os.path.relpath(path, directory).replace(os.sep, "/")
            if settings.should_include(rel):
                found.append(path)
    return found


def build_file(path: str, directory: str, out_dir: str, settings: LuminaConfig, args: argparse.Namespace) -> bool:
    """Compile one file into ``out_dir``; returns False (after reporting) on failure."""
    rel = os.path.relpath(path, directory)
    target = os.path.join(out_dir, os.path.splitext(rel)[0] + ".html")
    source = _read_source(path)
    if source is None:
        return False
    try:
        result = compile_source(
            source,
            filename=path,
            typecheck=args.typecheck or settings.typecheck,
            strict=args.strict or settings.strict,
            title=settings.title,
        )
    except CompileError as e:
        print(e.to_json())
        return False
    _write_output(target, result.html)
    print(f"Compiled: {path} -> {target}")
    logger.debug("rebuilt %s", target)
    return True


def _build_all(args: argparse.Namespace) -> tuple[int, int]:
    settings: LuminaConfig = args.settings
    out_dir = args.output or settings.output_dir
    built = failed = 0
    for path in discover_sources(args.directory, settings):
        if build_file(path, args.directory, out_dir, settings, args):
            built += 1
        else:
            failed += 1
    return built, failed


def cmd_build(args: argparse.Namespace) -> int:
    """Compile every Lumina file under a directory to HTML."""
    if not os.path.isdir(args.directory):
        print(json.dumps({"error": f"Not a directory: {args.directory}"}))
        return 1
    built, failed = _build_all(args)
    print(f"{built} file(s) built, {failed} failed")
    return 1 if failed else 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Build a directory, then poll for changes and rebuild changed files; optionally serve the output."""
    if not os.path.isdir(args.directory):
        print(json.dumps({"error": f"Not a directory: {args.directory}"}))
        return 1

    settings: LuminaConfig = args.settings
    out_dir = args.output or settings.output_dir
    interval = args.interval if args.interval is not None else settings.watch_interval

    print(f"Watching {args.directory} for changes... (Ctrl+C to stop)")
    _build_all(args)

    server = None
    if args.port is not None:
        try:
            server = start_server(out_dir, args.host, args.port)
        except OSError as e:
            print(json.dumps({"error": f"Cannot serve on port {args.port}: {e}"}))
            return 1
        print(f"Serving {out_dir} at http://{args.host}:{server.server_address[1]}")

    mtimes: dict[str, float] = {}
    for path in discover_sources(args.directory, settings):
        try:
            mtimes[path] = os.path.getmtime(path)
        except OSError:
            continue

    try:
        while True:
            time.sleep(interval)
            changed = []
            for path in discover_sources(args.directory, settings):
                try:
                    mtime = os.path.getmtime(path)
                except OSError:
                    continue
                if mtimes.get(path) != mtime:
                    mtimes[path] = mtime
                    changed.append(path)

            if changed:
                print(f"\n{len(changed)} file(s) changed, rebuilding...")
                for path in changed:
                    build_file(path, args.directory, out_dir, settings, args)
    except KeyboardInterrupt:
        print("\nWatch stopped.")
        return 0
    finally:
        if server is not None:
            stop_server(server)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lumina",
        description="Lumina — compile .lum UI programs to HTML, JavaScript and CSS",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to a .luminarc file (default: search upwards)")
    parser.add_argument("--log-level", dest="log_level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # compile
    p_compile = subparsers.add_parser("compile", help="Compile a Lumina file")
    p_compile.add_argument("file", help="Lumina source file (.lum)")
    p_compile.add_argument("-o", "--output", help="Output file path (default: stdout)")
    fmt = p_compile.add_mutually_exclusive_group()
    fmt.add_argument("--js-only", action="store_true", dest="js_only", help="Output only JavaScript")
    fmt.add_argument("--css-only", action="store_true", dest="css_only", help="Output only CSS")
    p_compile.add_argument("--typecheck", action="store_true",
                           help="Run the type checker and print diagnostics as warnings (use --strict to fail on them)")
    p_compile.add_argument("--strict", action="store_true", help="Refuse to generate code when the type checker reports errors")
    p_compile.add_argument("--title", help="Title of the generated HTML document")
    p_compile.set_defaults(func=cmd_compile)

    # check
    p_check = subparsers.add_parser("check", help="Type check a Lumina file")
    p_check.add_argument("file", help="Lumina source file (.lum)")
    p_check.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    p_check.set_defaults(func=cmd_check)

    # tokens
    p_tokens = subparsers.add_parser("tokens", help="Print tokens as JSON")
    p_tokens.add_argument("file", help="Lumina source file (.lum)")
    p_tokens.set_defaults(func=cmd_tokens)

    # ast
    p_ast = subparsers.add_parser("ast", help="Print the AST as JSON")
    p_ast.add_argument("file", help="Lumina source file (.lum)")
    p_ast.set_defaults(func=cmd_ast)

    # render
    p_render = subparsers.add_parser("render", help="Render a component to static HTML")
    p_render.add_argument("file", help="Lumina source file (.lum)")
    p_render.add_argument("-c", "--component", required=True, help="Component name")
    p_render.add_argument("--props", help="Props as a JSON object")
    p_render.set_defaults(func=cmd_render)

    # build / watch share their options
    for name, func, help_text in (
        ("build", cmd_build, "Compile every .lum file under a directory"),
        ("watch", cmd_watch, "Build a directory and rebuild on changes"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("directory", help="Directory containing .lum files")
        p.add_argument("-o", "--output", help="Output directory (default: config output_dir)")
        p.add_argument("--typecheck", action="store_true",
                       help="Run the type checker and print diagnostics as warnings (use --strict to fail on them)")
        p.add_argument("--strict", action="store_true", help="Fail files with type errors")
        if name == "watch":
            p.add_argument("--interval", type=float, help="Polling interval in seconds")
            p.add_argument("--port", type=int, help="Also serve the output directory over HTTP on this port")
            p.add_argument("--host", default=DEFAULT_HOST, help="Host to bind the HTTP server to")
        p.set_defaults(func=func)

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.settings = load_config(args.config)
    except CompileError as e:
        print(e.to_json())
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level or args.settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
