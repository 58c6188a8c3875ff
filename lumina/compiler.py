"""Lumina compilation pipeline: tokenize -> parse -> (check) -> generate."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from lumina.checker import check
from lumina.codegen import generate
from lumina.errors import CompileError, LuminaError
from lumina.parser import parse

logger = logging.getLogger(__name__)


@dataclass
class CompileResult:
    html: str
    js: str
    css: str
    diagnostics: list[LuminaError] = field(default_factory=list)


def compile_source(
    source: str,
    filename: str = "<stdin>",
    typecheck: bool = False,
    strict: bool = False,
    title: str = "Lumina App",
) -> CompileResult:
    """Compile Lumina source text to HTML, JS and CSS.

    Lex and parse errors propagate as ``CompileError``. Type diagnostics are
    returned on the result; with ``strict`` a non-empty list raises instead,
    before any code is generated. ``strict`` implies ``typecheck``.
    """
    program = parse(source, filename=filename)

    diagnostics: list[LuminaError] = []
    if typecheck or strict:
        diagnostics = check(program).diagnostics
        if diagnostics:
            logger.info("%s: %d type diagnostics", filename, len(diagnostics))
        if strict and diagnostics:
            raise CompileError(diagnostics)

    output = generate(program, title=title)
    return CompileResult(html=output.html, js=output.js, css=output.css, diagnostics=diagnostics)
