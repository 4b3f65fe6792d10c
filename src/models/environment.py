"""
Environment and function registry models

One Environment is created per component instance: it holds the variables
computed by the frontmatter, the props the component was invoked with,
the pre-rendered slot markup, and the redirect signal.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .host import HostObject


@dataclass(frozen=True)
class Redirect:
    """Redirect requested by the frontmatter (terminal for the page render)"""
    url: str
    status: int


class FunctionRegistry:
    """
    Host functions callable from frontmatter as `package.Function(args)`

    Built by the embedding application and passed to each Environment;
    there is no process-wide registry.

    Example:
        registry = FunctionRegistry()
        registry.register("models", "GetUser", lambda id: {"id": id})

        # frontmatter:
        #   import "models"
        #   var user = models.GetUser("123")
    """

    def __init__(self) -> None:
        self.packages: Dict[str, Dict[str, Callable[..., Any]]] = {}

    def register(self, package: str, name: str, func: Callable[..., Any]) -> None:
        """Register func as package.name"""
        self.packages.setdefault(package, {})[name] = func

    def expose(self, package: str, name: Optional[str] = None) -> Callable:
        """Decorator form of register(); defaults to the function's own name"""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register(package, name or func.__name__, func)
            return func

        return decorator

    def package_has(self, package: str) -> bool:
        return package in self.packages

    def function_get(self, package: str, name: str) -> Optional[Callable[..., Any]]:
        return self.packages.get(package, {}).get(name)


class GalaxyAPI(HostObject):
    """
    Builtin API object bound in every Environment (name set by api_name)

    Exposes the request locals and the redirect call to frontmatter:

        if Galaxy.Locals.user == nil {
            Galaxy.redirect("/login", 302)
        }
    """

    def __init__(self, env: "Environment") -> None:
        self._env = env

    @property
    def Locals(self) -> Dict[str, Any]:
        return self._env.locals

    def redirect(self, url: str, status: int) -> None:
        self._env.redirect_set(url, status)

    Redirect = redirect


@dataclass
class Environment:
    """
    Per-render binding context

    Attributes:
        variables: Name -> value bindings visible to frontmatter and templates
        props: Invocation arguments of this component instance
        slots: Slot name -> pre-rendered markup
        locals: Request-scoped data supplied by the caller (bound as Locals)
        request: Request host object (bound as Request), if any
        registry: Host function registry for package calls
        packages: Import name -> package name, filled by import statements
        redirect: Set once the frontmatter requests a redirect
        apiName: Name the GalaxyAPI object is bound under
    """
    variables: Dict[str, Any] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)
    slots: Dict[str, str] = field(default_factory=dict)
    locals: Dict[str, Any] = field(default_factory=dict)
    request: Optional[Any] = None
    registry: FunctionRegistry = field(default_factory=FunctionRegistry)
    packages: Dict[str, str] = field(default_factory=dict)
    redirect: Optional[Redirect] = None
    apiName: str = "Galaxy"

    def __post_init__(self) -> None:
        # Builtins are bound into a copy; the caller's dict may seed other renders
        self.variables = dict(self.variables)
        self.variables.setdefault(self.apiName, GalaxyAPI(self))
        self.variables.setdefault("Locals", self.locals)
        if self.request is not None:
            self.variables["Request"] = self.request

    @property
    def shouldRedirect(self) -> bool:
        return self.redirect is not None

    def variable_has(self, name: str) -> bool:
        return name in self.variables

    def variable_get(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def variable_set(self, name: str, value: Any) -> None:
        self.variables[name] = value

    def variable_delete(self, name: str) -> None:
        self.variables.pop(name, None)

    def prop_has(self, name: str) -> bool:
        return name in self.props

    def prop_get(self, name: str, default: Any = None) -> Any:
        return self.props.get(name, default)

    def prop_set(self, name: str, value: Any) -> None:
        self.props[name] = value

    def props_merge(self, props: Dict[str, Any]) -> None:
        """Bind every prop both as a prop and as a variable"""
        for key, value in props.items():
            self.prop_set(key, value)
            self.variable_set(key, value)

    def redirect_set(self, url: str, status: int) -> None:
        self.redirect = Redirect(url=url, status=status)

    def child_make(self) -> "Environment":
        """
        Fresh Environment for a nested component instance

        Shares the request, locals and registry of this render but none of
        its variables, props, slots or redirect state.
        """
        return Environment(
            locals=self.locals,
            request=self.request,
            registry=self.registry,
            apiName=self.apiName,
        )

    def __str__(self) -> str:
        lines = ["Environment Variables:"]
        for key, value in self.variables.items():
            lines.append(f"  {key}: {value!r} ({type(value).__name__})")
        return "\n".join(lines)
