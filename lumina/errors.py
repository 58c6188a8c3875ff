"""Structured error objects for the Lumina compiler.

Every error carries a kind, a message and (where known) a source location,
and serializes to JSON so tooling can consume it. Lexing and parsing failures
are raised as ``CompileError`` subclasses; type-checker diagnostics are plain
``LuminaError`` values collected in a list and never raised.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    LEX_ERROR = "lex_error"
    SYNTAX_ERROR = "syntax_error"
    TYPE_ERROR = "type_error"
    NAME_ERROR = "name_error"
    CONFIG_ERROR = "config_error"


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class LuminaError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def lex_error(message: str, location: Optional[SourceLocation] = None) -> LuminaError:
    return LuminaError(kind=ErrorKind.LEX_ERROR, message=message, location=location)


def syntax_error(
    message: str,
    location: Optional[SourceLocation] = None,
    **details: Any,
) -> LuminaError:
    return LuminaError(
        kind=ErrorKind.SYNTAX_ERROR,
        message=message,
        location=location,
        details=details,
    )


def type_error(
    message: str,
    location: Optional[SourceLocation] = None,
    expected_type: Optional[str] = None,
    actual_type: Optional[str] = None,
) -> LuminaError:
    details: dict[str, Any] = {}
    if expected_type is not None:
        details["expected_type"] = expected_type
    if actual_type is not None:
        details["actual_type"] = actual_type
    return LuminaError(
        kind=ErrorKind.TYPE_ERROR,
        message=message,
        location=location,
        details=details,
    )


def name_error(
    message: str,
    name: str,
    location: Optional[SourceLocation] = None,
) -> LuminaError:
    return LuminaError(
        kind=ErrorKind.NAME_ERROR,
        message=message,
        location=location,
        details={"name": name},
    )


class CompileError(Exception):
    """Exception wrapping one or more LuminaErrors."""

    def __init__(self, errors: list[LuminaError] | LuminaError):
        if isinstance(errors, LuminaError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    def _format(self) -> str:
        return "\n".join(self._describe(e) for e in self.errors)

    @staticmethod
    def _describe(error: LuminaError) -> str:
        if error.location is None:
            return str(error)
        loc = error.location
        return f"[{error.kind.value}] {error.message} at line {loc.line}, column {loc.column}"

    @property
    def location(self) -> Optional[SourceLocation]:
        return self.errors[0].location if self.errors else None

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)


class LexError(CompileError):
    """Raised by the lexer on unterminated literals or unknown characters."""


class ParseError(CompileError):
    """Raised by the parser when the token stream does not fit the grammar."""
