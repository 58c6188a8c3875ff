"""Lumina — a declarative UI language that compiles to HTML, JavaScript and CSS"""

__version__ = "0.1.0"

from lumina.compiler import CompileResult, compile_source
from lumina.errors import CompileError, LexError, ParseError
from lumina.lexer import tokenize
from lumina.parser import parse
from lumina.checker import check
from lumina.codegen import generate
from lumina.ssr import render_to_string
