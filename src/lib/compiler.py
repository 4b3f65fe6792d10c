"""
Component compiler

Renders one component instance, recursively rendering the components it
references:

    component_load        parse (cached by path), collect own styles/scripts
    frontmatter_execute   seed props, run frontmatter into a fresh Environment
    components_expand     replace <Capitalized ...> tags with child renders
    template_render       directives, slots, interpolation

Child failures are contained: the child is replaced by an HTML comment
describing the error (or, in strict mode, the failure propagates as a
CompileError). Frontmatter errors always abort the component.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config import appsettings, AppSettings
from ..models.component import Component
from ..models.environment import Environment, FunctionRegistry
from ..models.state import CompileState, RenderResult, pipeline
from .cache import ComponentCache
from .errors import CompileError, EvalError, GastroError, ParseError
from .interpreter import Interpreter
from .log import LOG, state_connectToLogger, state_disconnectFromLogger
from .markup import Tag, attributes_parse, element_match, tags_scan
from .parser import parse
from .resolver import ComponentIndex, ComponentResolver, componentRefs_extract
from .template import TemplateEngine


def unique_extend(target: List[Any], items: Sequence[Any]) -> None:
    """Append items not already present, keeping first-use order"""
    for item in items:
        if item not in target:
            target.append(item)


class Compiler:
    """
    Compiles component files to markup

    Responsibilities:
    - Parse component files (cached, thread-safe)
    - Execute frontmatter into a per-instance Environment
    - Resolve and render nested component tags with props and slots
    - Collect styles and scripts of every rendered component

    A Compiler holds no per-render mutable state: concurrent compile()
    calls on one instance share only the parse cache and the component
    index, both guarded by locks.
    """

    def __init__(
        self,
        base_dir: Union[str, Path] = ".",
        settings: AppSettings = appsettings,
        registry: Optional[FunctionRegistry] = None,
        verbosity: Optional[int] = None,
    ) -> None:
        """
        Initialize compiler

        Args:
            base_dir: Project directory components are resolved against
            settings: Application settings
            registry: Host functions made available to every frontmatter
            verbosity: Output verbosity level (0-3), defaults to settings.verbosity
        """
        self.base_dir = Path(base_dir)
        self.settings = settings
        self.registry = registry if registry is not None else FunctionRegistry()
        self.verbosity = settings.verbosity if verbosity is None else verbosity
        self.cache = ComponentCache()
        self.index = ComponentIndex(self.base_dir, settings)

    def compile(
        self,
        path: Union[str, Path],
        props: Optional[Dict[str, Any]] = None,
        slots: Optional[Dict[str, str]] = None,
        env: Optional[Environment] = None,
    ) -> RenderResult:
        """
        Compile a component file

        Args:
            path: Component file
            props: Invocation props
            slots: Slot name -> markup
            env: Pre-seeded Environment (request, locals, registry); a fresh
                one is created when omitted

        Returns:
            RenderResult with markup, collected styles/scripts and redirect

        Raises:
            CompileError: Unreadable file, frontmatter failure, or (strict
                mode) a nested component failure
        """
        state = CompileState(
            path=Path(path),
            props=dict(props or {}),
            slots=dict(slots or {}),
            env=env if env is not None else self.env_make(),
            verbosity=self.verbosity,
        )
        return self.state_compile(state).result_make()

    def component_render(
        self,
        component: Component,
        props: Optional[Dict[str, Any]] = None,
        slots: Optional[Dict[str, str]] = None,
        env: Optional[Environment] = None,
        current_file: Optional[Union[str, Path]] = None,
    ) -> RenderResult:
        """
        Render an already parsed Component

        current_file, when given, anchors relative imports and sibling
        lookup; it is never read.
        """
        state = CompileState(
            path=Path(current_file) if current_file else None,
            props=dict(props or {}),
            slots=dict(slots or {}),
            component=component,
            env=env if env is not None else self.env_make(),
            verbosity=self.verbosity,
        )
        return self.state_compile(state).result_make()

    def env_make(self) -> Environment:
        return Environment(registry=self.registry, apiName=self.settings.api_name)

    def cache_clear(self, path: Optional[Union[str, Path]] = None) -> None:
        """
        Invalidate parsed components

        Args:
            path: One component file, or None to drop every cached file and
                the component index
        """
        self.cache.invalidate(path)
        if path is None:
            self.index.invalidate()
        LOG(f"Cache cleared: {path or 'all'}", level=2)

    def state_compile(self, state: CompileState) -> CompileState:
        token = state_connectToLogger(state)
        try:
            final = pipeline(
                state,
                self.component_load,
                self.frontmatter_execute,
                self.components_expand,
                self.template_render,
            )
            LOG(f"Compiled {self.name_get(state)} at depth {state.depth}", level=2)
            return final
        finally:
            state_disconnectFromLogger(token)

    @staticmethod
    def name_get(state: CompileState) -> str:
        return str(state.path) if state.path else "<component>"

    def redirect_pending(self, state: CompileState) -> bool:
        """Only the top-level component's redirect stops its render"""
        return state.depth == 0 and state.env.shouldRedirect

    # -- pipeline stages --------------------------------------------------

    def component_load(self, state: CompileState) -> CompileState:
        new = state.copy()
        if new.component is None:
            try:
                new.component = self.cache.get_or_parse(state.path)
            except (OSError, UnicodeDecodeError) as exc:
                raise CompileError(
                    f"cannot read component {state.path}: {exc}",
                    path=str(state.path),
                    cause=exc,
                ) from exc

        new.styles = list(state.styles)
        new.scripts = list(state.scripts)
        unique_extend(new.styles, new.component.styles)
        unique_extend(new.scripts, new.component.scripts)
        return new

    def frontmatter_execute(self, state: CompileState) -> CompileState:
        new = state.copy()
        new.env.props_merge(state.props)
        if not state.component.frontmatter:
            return new

        try:
            Interpreter(new.env).execute(state.component.frontmatter)
        except (ParseError, EvalError) as exc:
            raise CompileError(
                f"frontmatter of {self.name_get(state)}: {exc}",
                path=str(state.path or ""),
                cause=exc,
            ) from exc

        if new.env.shouldRedirect and state.depth > 0:
            LOG(
                f"Ignoring redirect to {new.env.redirect.url} from nested {self.name_get(state)}",
                level=1,
            )
        return new

    def components_expand(self, state: CompileState) -> CompileState:
        if self.redirect_pending(state):
            return state
        new = state.copy()
        new.styles = list(state.styles)
        new.scripts = list(state.scripts)
        new.fragments = dict(state.fragments)

        resolver = ComponentResolver(
            self.base_dir,
            self.index,
            current_file=state.path,
            imports=state.component.componentImports_get(),
            settings=self.settings,
        )
        refs = componentRefs_extract(state.component.template)
        if refs:
            LOG(f"{self.name_get(state)} references {', '.join(refs)}", level=3)
        new.template = self.tags_expand(state.component.template, new, resolver)
        return new

    def template_render(self, state: CompileState) -> CompileState:
        if self.redirect_pending(state):
            return state
        new = state.copy()
        engine = TemplateEngine(new.env, self.settings)
        # Props are re-bound after the frontmatter, so they win over its bindings
        rendered = engine.render(state.template, props=state.props, slots=state.slots)
        new.html = self.fragments_restore(rendered, state.fragments)
        return new

    # -- nested components --------------------------------------------------

    def tags_expand(self, source: str, state: CompileState, resolver: ComponentResolver) -> str:
        """
        Replace every top-level component tag in source with a placeholder

        The rendered child markup is stored in state.fragments under that
        placeholder. Component tags nested inside another component's
        inline content are expanded as part of that content.
        """
        parts = []
        pos = 0
        while True:
            tag = next(
                (t for t in tags_scan(source, pos) if t.kind == 'open' and t.name[:1].isupper()),
                None,
            )
            if tag is None:
                parts.append(source[pos:])
                return ''.join(parts)

            element = element_match(source, tag)
            content = source[element.bodyStart:element.bodyEnd]
            markup = self.child_render(tag, source, content, state, resolver)
            # Numbered after the child so fragments from its slot content stay distinct
            placeholder = self.settings.placeHolder_make(len(state.fragments))
            state.fragments[placeholder] = markup
            parts.append(source[pos:tag.start])
            parts.append(placeholder)
            pos = element.end

    def child_render(
        self,
        tag: Tag,
        source: str,
        content: str,
        state: CompileState,
        resolver: ComponentResolver,
    ) -> str:
        """Render one nested component tag, containing any failure"""
        name = tag.name
        try:
            if state.depth + 1 > self.settings.max_depth:
                raise CompileError(
                    f"maximum component depth {self.settings.max_depth} exceeded",
                    path=str(state.path or ""),
                )
            path = resolver.resolve(name)
            props = self.props_build(source[tag.attrsStart:tag.attrsEnd], state.env)
            slots = {}
            inner = content.strip()
            if inner:
                slots[self.settings.default_slot] = self.slotContent_render(inner, state, resolver)

            child = self.state_compile(CompileState(
                path=path,
                props=props,
                slots=slots,
                env=state.env.child_make(),
                depth=state.depth + 1,
                verbosity=state.verbosity,
            ))
        except GastroError as exc:
            if self.settings.strict_mode:
                if isinstance(exc, CompileError):
                    raise
                raise CompileError(
                    f"error rendering {name}: {exc}",
                    path=str(state.path or ""),
                    cause=exc,
                ) from exc
            LOG(f"Error rendering {name}: {exc}", level=1)
            return self.settings.errorComment_make(name, str(exc))

        unique_extend(state.styles, child.styles)
        unique_extend(state.scripts, child.scripts)
        return child.html

    def slotContent_render(self, content: str, state: CompileState, resolver: ComponentResolver) -> str:
        """
        Prepare inline component content as slot markup

        Nested components are expanded and {expressions} interpolated in
        the caller's scope before the child ever sees the content.
        """
        fragments_before = set(state.fragments)
        expanded = self.tags_expand(content, state, resolver)
        interpolated = TemplateEngine(state.env, self.settings).expressions_render(expanded)
        local = {k: v for k, v in state.fragments.items() if k not in fragments_before}
        return self.fragments_restore(interpolated, local)

    def props_build(self, attrs: str, env: Environment) -> Dict[str, Any]:
        """
        Build a props map from component tag attributes

        name={expr} is evaluated against env (the raw expression text is
        used when it does not evaluate), quoted values are strings and
        bare attribute names are true.
        """
        props: Dict[str, Any] = {}
        interpreter = Interpreter(env)
        for attribute in attributes_parse(attrs).values():
            if attribute.kind == 'expr':
                try:
                    props[attribute.name] = interpreter.expression_evaluate(attribute.value)
                except (ParseError, EvalError) as exc:
                    LOG(f"Prop {attribute.name}={{{attribute.value}}} passed as text: {exc}", level=2)
                    props[attribute.name] = attribute.value
            elif attribute.kind == 'flag':
                props[attribute.name] = True
            else:
                props[attribute.name] = attribute.value
        return props

    @staticmethod
    def fragments_restore(text: str, fragments: Dict[str, str]) -> str:
        for placeholder, markup in fragments.items():
            text = text.replace(placeholder, markup)
        return text


def render(
    component: Union[Component, str],
    env: Optional[Environment] = None,
    props: Optional[Dict[str, Any]] = None,
    slots: Optional[Dict[str, str]] = None,
    base_dir: Union[str, Path] = ".",
    current_file: Optional[Union[str, Path]] = None,
) -> RenderResult:
    """
    Render a parsed Component (or component source text)

    Args:
        component: Component, or raw source to parse first
        env: Pre-seeded Environment; a fresh one is created when omitted
        props: Invocation props
        slots: Slot name -> markup
        base_dir: Directory nested components are resolved against
        current_file: Path the component was read from, if any

    Returns:
        RenderResult (html, styles, scripts, redirect)

    Example:
        >>> render('---\\nvar title = "Hi"\\n---\\n<h1>{title}</h1>').html
        '<h1>Hi</h1>'
    """
    if isinstance(component, str):
        component = parse(component)
    registry = env.registry if env is not None else None
    compiler = Compiler(base_dir, registry=registry)
    return compiler.component_render(component, props, slots, env, current_file)
