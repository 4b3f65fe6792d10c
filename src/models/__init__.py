"""
Models package for gastro

Contains data structures for components, values, environments and the
compilation pipeline.
"""

from .component import Component, Import, Position, Range, Script, Style
from .environment import Environment, FunctionRegistry, GalaxyAPI, Redirect
from .host import HostObject, RequestContext
from .state import CompileState, RenderResult, pipeline

__all__ = [
    "Component",
    "Import",
    "Position",
    "Range",
    "Script",
    "Style",
    "Environment",
    "FunctionRegistry",
    "GalaxyAPI",
    "Redirect",
    "HostObject",
    "RequestContext",
    "CompileState",
    "RenderResult",
    "pipeline",
]
