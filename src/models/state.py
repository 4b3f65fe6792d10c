"""
Compile state model and pipeline helper

Defines the CompileState dataclass carried through the functional
compile pipeline, the RenderResult handed back to callers, and the
pipeline() helper for composing transformation stages.
"""

from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from .component import Component, Script, Style
from .environment import Environment, Redirect


CS = TypeVar("CS", bound="CompileState")


@dataclass(frozen=True)
class RenderResult:
    """
    Outcome of rendering one top-level component

    Attributes:
        html: Rendered markup ("" when a redirect was requested)
        styles: Styles of the component and all descendants, de-duplicated, in first-use order
        scripts: Scripts collected the same way
        redirect: Redirect requested by the top-level frontmatter, if any
    """
    html: str = ""
    styles: Tuple[Style, ...] = ()
    scripts: Tuple[Script, ...] = ()
    redirect: Optional[Redirect] = None

    @property
    def shouldRedirect(self) -> bool:
        return self.redirect is not None


@dataclass
class CompileState:
    """
    Central state container for compiling one component instance (state bus pattern).

    Pipeline stages and their state additions:
        - Initial: path, props, slots, env, depth, verbosity
        - component_load: component (parsed, cached)
        - frontmatter_execute: env bindings, possibly env.redirect
        - components_expand: template (nested component tags replaced), fragments, styles, scripts
        - template_render: html

    Attributes:
        path: Component file (None for in-memory components)
        props: Invocation props
        slots: Slot name -> pre-rendered markup
        component: Parsed Component
        env: Environment for this instance
        template: Template text after nested component expansion
        html: Final rendered markup
        styles: Styles collected from this component and its descendants
        scripts: Scripts collected from this component and its descendants
        fragments: Placeholder -> rendered child markup
        depth: Nesting depth (0 for the top-level component)
        verbosity: Logging verbosity level (1-3)
    """

    path: Optional[Path] = field(default=None)
    props: Dict[str, Any] = field(default_factory=dict)
    slots: Dict[str, str] = field(default_factory=dict)
    component: Optional[Component] = field(default=None)
    env: Environment = field(default_factory=Environment)
    template: str = field(default="")
    html: str = field(default="")
    styles: List[Style] = field(default_factory=list)
    scripts: List[Script] = field(default_factory=list)
    fragments: Dict[str, str] = field(default_factory=dict)
    depth: int = field(default=0)
    verbosity: int = field(default=1)

    def copy(self: CS) -> CS:
        """
        Creates a shallow copy of the CompileState instance.

        Returns:
            A new CompileState instance.
        """
        return type(self)(**self.__dict__)

    def result_make(self) -> RenderResult:
        return RenderResult(
            html=self.html,
            styles=tuple(self.styles),
            scripts=tuple(self.scripts),
            redirect=self.env.redirect,
        )


def pipeline(
    initial_state: CompileState, *stages: Callable[[CompileState], CompileState]
) -> CompileState:
    """
    Execute a functional pipeline of state transformations.

    Each stage is a function (CompileState) -> CompileState that receives
    the output of the previous stage and returns a new state.

    Args:
        initial_state: Starting CompileState
        *stages: Variable number of stage functions to execute in order

    Returns:
        Final CompileState after all transformations

    Example:
        final_state = pipeline(
            initial_state,
            component_load,
            frontmatter_execute,
            components_expand,
            template_render,
        )

    This is equivalent to:
        template_render(components_expand(frontmatter_execute(component_load(initial_state))))

    But reads left-to-right instead of inside-out.
    """
    return reduce(lambda state, stage: stage(state), stages, initial_state)
