"""
gastro - Component rendering pipeline

Renders component files made of a frontmatter script block, an HTML-like
template with if/for directives, slots and {expressions}, and nested
references to other components.
"""

__version__ = "1.0.0"

from .lib import (
    Compiler,
    CompileError,
    EvalError,
    GastroError,
    ParseError,
    RenderError,
    ResolveError,
    parse,
    render,
)
from .models import (
    Component,
    Environment,
    FunctionRegistry,
    HostObject,
    Redirect,
    RenderResult,
    RequestContext,
)

__all__ = [
    "parse",
    "render",
    "Compiler",
    "Component",
    "Environment",
    "FunctionRegistry",
    "HostObject",
    "Redirect",
    "RenderResult",
    "RequestContext",
    "GastroError",
    "ParseError",
    "EvalError",
    "ResolveError",
    "RenderError",
    "CompileError",
    "__version__",
]
