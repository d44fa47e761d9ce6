"""Exception hierarchy for the tierline engine."""

from __future__ import annotations


class TransformError(Exception):
    """Base class for semantic errors raised while rewriting a module."""


class DirectiveConflictError(TransformError):
    """Raised when client and server markers are mixed in one module."""

    def __init__(self, message=None):
        super().__init__(
            message or 'Cannot have both "use client" and "use server" in the same module'
        )


class DefaultExportError(TransformError):
    """Raised when a module-scope server module exports ``default``."""

    def __init__(self, message=None):
        super().__init__(
            message or "Cannot use default export with 'use server' at module scope."
        )


class ExportResolutionError(TransformError):
    """Raised when an export's local binding cannot be named."""

    def __init__(self, public_name: str):
        self.public_name = public_name
        if public_name == "default":
            message = "Local name does not exist for default export"
        else:
            message = f"Local name does not exist for export {public_name}"
        super().__init__(message)


class InvariantError(TransformError):
    """Raised when the tree is not in a shape the rewriter relies on."""


class ParseError(Exception):
    """Raised by the parser for syntactically invalid input."""

    def __init__(self, file_id: str, line: int, column: int, snippet: str = ""):
        self.file_id = file_id
        self.line = line
        self.column = column
        self.snippet = snippet
        message = f"{file_id}:{line}:{column}: syntax error"
        if snippet:
            message += f" near {snippet!r}"
        super().__init__(message)


class ConfigError(ValueError):
    """Raised for missing or mistyped configuration values."""


__all__ = [
    "TransformError",
    "DirectiveConflictError",
    "DefaultExportError",
    "ExportResolutionError",
    "InvariantError",
    "ParseError",
    "ConfigError",
]
