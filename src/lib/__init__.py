"""
gastro - Component rendering pipeline

Document parser, frontmatter interpreter, template engine, component
resolver and compiler.
"""

from .parser import Parser, parse
from .interpreter import Interpreter
from .template import TemplateEngine
from .resolver import ComponentIndex, ComponentResolver
from .compiler import Compiler, render
from .errors import CompileError, EvalError, GastroError, ParseError, RenderError, ResolveError
from .log import LOG, state_connectToLogger

__all__ = [
    "Parser",
    "parse",
    "Interpreter",
    "TemplateEngine",
    "ComponentIndex",
    "ComponentResolver",
    "Compiler",
    "render",
    "GastroError",
    "ParseError",
    "EvalError",
    "ResolveError",
    "RenderError",
    "CompileError",
    "LOG",
    "state_connectToLogger",
]
