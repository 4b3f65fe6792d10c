"""
Host object capability models

Values handed to frontmatter and templates are plain Python data (int,
float, str, bool, None, list, dict with str keys) or HostObjects: opaque
application objects that expose named fields and methods through a small
capability interface instead of arbitrary attribute access.
"""

from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlsplit, parse_qs


class HostObject:
    """
    Opaque host value exposed to frontmatter and templates

    Frontmatter `obj.Name` calls field_get("Name"); `obj.Add(1, 2)` calls
    method_call("Add", [1, 2]). Templates use the same field_get for
    `{obj.Name}` and `{obj.Name()}`.

    The default implementation exposes public attributes: plain attributes
    and properties are returned as-is, zero-argument methods are invoked.
    Subclasses override either method to narrow or widen what is visible.
    """

    def field_get(self, name: str) -> Any:
        """
        Return a named field, or the result of a zero-argument accessor

        Raises:
            AttributeError: Unknown or private name
        """
        if name.startswith("_"):
            raise AttributeError(f"{type(self).__name__} has no field {name}")
        value = getattr(self, name)
        if callable(value):
            return value()
        return value

    def method_call(self, name: str, args: Sequence[Any]) -> Any:
        """
        Invoke a named method with positional arguments

        Raises:
            AttributeError: Unknown or private name
            TypeError: Name is not callable or arguments do not fit
        """
        if name.startswith("_"):
            raise AttributeError(f"{type(self).__name__} has no method {name}")
        method = getattr(self, name)
        if not callable(method):
            raise TypeError(f"{type(self).__name__}.{name} is not a method")
        return method(*args)


class RequestContext(HostObject):
    """
    Incoming request as seen by components

    Bound as `Request` in the Environment. Exposes the request capability
    set used by templates ({Request.Path()}, {Request.Method()},
    {Request.URL()}) plus path/query/header lookups.

    Example:
        >>> req = RequestContext("GET", "/blog/hello?page=2", {"slug": "hello"})
        >>> req.Path(), req.QueryParam("page"), req.Param("slug")
        ('/blog/hello', '2', 'hello')
    """

    def __init__(
        self,
        method: str,
        url: str,
        pathParams: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._method = method.upper()
        self._url = url
        parts = urlsplit(url)
        self._path = parts.path or "/"
        self.pathParams: Dict[str, str] = dict(pathParams or {})
        # First value wins for repeated query keys
        self.query: Dict[str, str] = {
            key: values[0] for key, values in parse_qs(parts.query).items() if values
        }
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

    def Method(self) -> str:
        return self._method

    def URL(self) -> str:
        return self._url

    def Path(self) -> str:
        return self._path

    def Param(self, key: str) -> str:
        return self.pathParams.get(key, "")

    def QueryParam(self, key: str) -> str:
        return self.query.get(key, "")

    def Header(self, key: str) -> str:
        return self.headers.get(key.lower(), "")


REQUEST_CAPABILITIES: List[str] = ["Path", "Method", "URL"]


def requestCapable_is(value: Any) -> bool:
    """True when value exposes every request accessor (Path, Method, URL)"""
    return all(callable(getattr(value, name, None)) for name in REQUEST_CAPABILITIES)
