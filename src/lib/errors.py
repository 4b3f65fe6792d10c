"""
Error taxonomy for the rendering pipeline

Every failure the core reports is a GastroError subclass, so the calling
layer can map it to a transport-specific response with a single except.

    ParseError    malformed frontmatter code
    EvalError     undefined variable, type mismatch, division by zero,
                  unsupported construct, bad redirect arguments
    ResolveError  component tag not found / import path missing
    RenderError   template edge cases (contained by the engine, never raised to callers)
    CompileError  wraps any of the above for a component file
"""

from typing import Optional


class GastroError(Exception):
    """Base class of all pipeline errors"""
    pass


class ParseError(GastroError):
    """Raised when frontmatter code cannot be tokenized or parsed"""

    def __init__(self, message: str, line: int = 0, column: int = 0):
        self.line = line
        self.column = column
        if line:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class EvalError(GastroError):
    """Raised when a frontmatter statement or expression cannot be evaluated"""

    def __init__(self, message: str, line: int = 0):
        self.line = line
        if line:
            message = f"{message} (line {line})"
        super().__init__(message)


class ResolveError(GastroError):
    """Raised when a component name cannot be mapped to a file"""
    pass


class RenderError(GastroError):
    """Raised internally for directive/slot edge cases; the engine falls back to the original text"""
    pass


class CompileError(GastroError):
    """
    Raised when a component file cannot be compiled

    Attributes:
        path: Component file that failed
        cause: Underlying GastroError (or OSError for unreadable files)
    """

    def __init__(self, message: str, path: str = "", cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(message)
