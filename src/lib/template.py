"""
Template engine

Renders template markup against an Environment in three fixed passes:

1. Directives: elements carrying if={cond} / for={item in list}
   (optionally namespaced: galaxy:if, galaxy:for)
2. Slots: <slot/>, <slot name="x"/>, <slot>fallback</slot>
3. Interpolation: {name}, {prop}, {a.b}, {Request.Path()}

Every pass fails open: a directive that cannot be parsed or whose target
has the wrong type, and an expression that does not resolve, are left in
the output exactly as written.

Example:
    >>> env = Environment(variables={"items": ["a", "b"]})
    >>> TemplateEngine(env).render('<li for={x in items}>{x}</li>')
    '<li>a</li><li>b</li>'
"""

import re
from typing import Any, Dict, Optional, Tuple

from ..config import appsettings, AppSettings
from ..models.environment import Environment
from ..models.host import HostObject, REQUEST_CAPABILITIES, requestCapable_is
from .errors import RenderError
from .log import LOG
from .markup import Attribute, Element, Tag, attributes_parse, element_match, tags_scan
from . import values

expression_regex = re.compile(r'\{([^{}]+)\}')
loop_regex = re.compile(r'^\s*([A-Za-z_]\w*)\s+in\s+([A-Za-z_][\w.]*)\s*$')
path_regex = re.compile(r'^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*(?:\(\))?)*$')
slot_regex = re.compile(
    r'''<slot(?:\s+name\s*=\s*(?:"([^"]*)"|'([^']*)'))?\s*/>'''
    r'''|<slot(?:\s+name\s*=\s*(?:"([^"]*)"|'([^']*)'))?\s*>(.*?)</slot\s*>''',
    re.DOTALL,
)

_MISSING = object()


class TemplateEngine:
    """
    Directive-aware template renderer

    Responsibilities:
    - Evaluate if/for directives over arbitrarily nested markup
    - Substitute slot placeholders with caller-supplied markup
    - Interpolate {expressions} from variables, props and dotted paths
    """

    def __init__(self, env: Environment, settings: AppSettings = appsettings) -> None:
        """
        Args:
            env: Environment supplying variables, props and slots
            settings: Application settings (directive spellings, escaping)
        """
        self.env = env
        self.settings = settings
        self.directiveNames = settings.directiveNames_get()
        self.protected: Dict[str, str] = {}

    def render(
        self,
        template: str,
        props: Optional[Dict[str, Any]] = None,
        slots: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Render template markup

        Args:
            template: Template text
            props: Merged into the Environment's props and variables
            slots: Replaces the Environment's slots when given

        Returns:
            Rendered markup (never raises for template problems)
        """
        if props:
            self.env.props_merge(props)
        if slots is not None:
            self.env.slots = dict(slots)

        self.protected = {}
        result = self.directives_render(template)
        result = self.slots_render(result)
        result = self.expressions_render(result)
        return self.protected_restore(result)

    # -- directives -----------------------------------------------------

    def directive_find(self, source: str, pos: int) -> Optional[Tuple[Tag, Attribute, str]]:
        """
        Find the first open tag at or after pos that carries a directive

        Returns:
            (tag, directive attribute, "if" | "for"), or None
        """
        for tag in tags_scan(source, pos):
            if tag.kind != 'open':
                continue
            attrs = attributes_parse(source[tag.attrsStart:tag.attrsEnd])
            for attribute in attrs.values():
                if attribute.name in self.directiveNames and attribute.kind == 'expr':
                    return tag, attribute, attribute.name.rsplit(':', 1)[-1]
        return None

    def directives_render(self, template: str) -> str:
        """
        Resolve every if/for element, left to right

        After each replacement scanning resumes inside the emitted markup
        for a kept `if` element (so nested directives are processed) and
        after the emitted copies for a `for` element.

        Elements left as-is (unclosed, malformed loop, non-list target) are
        swapped for placeholders until render() restores them, so the
        interpolation pass never rewrites their directive attribute.
        """
        result = template
        pos = 0
        while True:
            found = self.directive_find(result, pos)
            if found is None:
                return result
            tag, attribute, directive = found
            element = element_match(result, tag)
            if element.close is None and not tag.selfClosing:
                LOG(f"Unclosed <{tag.name}> carrying {attribute.name}, left as-is", level=2)
                start, end = tag.start, tag.end
            else:
                try:
                    if directive == 'if':
                        replacement, resume = self.ifDirective_apply(result, element, attribute)
                    else:
                        replacement, resume = self.forDirective_apply(result, element, attribute)
                except RenderError as exc:
                    LOG(f"Directive {attribute.name}={{{attribute.value}}} left as-is: {exc}", level=2)
                    start, end = element.start, element.end
                else:
                    result = result[:element.start] + replacement + result[element.end:]
                    pos = element.start + resume
                    continue

            placeholder = self.element_protect(result[start:end])
            result = result[:start] + placeholder + result[end:]
            pos = start + len(placeholder)

    def element_protect(self, text: str) -> str:
        placeholder = self.settings.placeHolder_make(len(self.protected), kind="DIRECTIVE")
        self.protected[placeholder] = text
        return placeholder

    def protected_restore(self, text: str) -> str:
        for placeholder, original in self.protected.items():
            text = text.replace(placeholder, original)
        return text

    def openTag_rebuild(self, source: str, tag: Tag, attribute: Attribute) -> str:
        """Open tag text with the directive attribute removed"""
        attrs = source[tag.attrsStart:tag.attrsEnd]
        before = attrs[:attribute.start].rstrip()
        after = attrs[attribute.end:]
        remaining = before + after
        if tag.selfClosing:
            remaining = remaining.rstrip()
            return f"<{tag.name}{remaining} />" if remaining else f"<{tag.name} />"
        return f"<{tag.name}{remaining}>"

    def ifDirective_apply(self, source: str, element: Element, attribute: Attribute) -> Tuple[str, int]:
        if not self.condition_evaluate(attribute.value):
            return '', 0
        open_text = self.openTag_rebuild(source, element.open, attribute)
        if element.close is None:
            return open_text, len(open_text)
        body = source[element.bodyStart:element.bodyEnd]
        close_text = source[element.close.start:element.close.end]
        return open_text + body + close_text, len(open_text)

    def forDirective_apply(self, source: str, element: Element, attribute: Attribute) -> Tuple[str, int]:
        match = loop_regex.match(attribute.value)
        if not match:
            raise RenderError(f"expected `item in list`, got {attribute.value!r}")
        item_name, list_name = match.groups()
        found, items = self.value_resolve(list_name)
        if not found or not isinstance(items, list):
            raise RenderError(f"{list_name} is not a list")

        open_text = self.openTag_rebuild(source, element.open, attribute)
        if element.close is not None:
            body = source[element.bodyStart:element.bodyEnd]
            close_text = source[element.close.start:element.close.end]
        else:
            body = close_text = ''

        had_prior = self.env.variable_has(item_name)
        prior = self.env.variable_get(item_name)
        copies = []
        try:
            for item in items:
                self.env.variable_set(item_name, item)
                # Only interpolation runs per iteration; nested directives are not re-evaluated
                copies.append(self.expressions_render(open_text + body + close_text))
        finally:
            if had_prior:
                self.env.variable_set(item_name, prior)
            else:
                self.env.variable_delete(item_name)

        replacement = ''.join(copies)
        LOG(f"Loop over {list_name}: {len(items)} copies of <{element.open.name}>", level=3)
        return replacement, len(replacement)

    def condition_evaluate(self, condition: str) -> bool:
        """
        Truthiness of an if={...} condition

        Bool as-is, numbers non-zero, strings and lists non-empty, Nil false,
        other bound values true; an unbound name is false. A leading `!`
        negates.
        """
        condition = condition.strip()
        negate = False
        while condition.startswith('!'):
            negate = not negate
            condition = condition[1:].strip()
        found, value = self.value_resolve(condition)
        truth = values.value_truthy(value) if found else False
        return truth != negate

    # -- slots ----------------------------------------------------------

    def slots_render(self, template: str) -> str:
        """Replace <slot> placeholders with slot markup or their inline fallback"""

        def replace(match: re.Match) -> str:
            name = next(
                (group for group in match.groups()[:4] if group is not None),
                None,
            ) or self.settings.default_slot
            if name in self.env.slots:
                return self.env.slots[name]
            return match.group(5) or ''

        return slot_regex.sub(replace, template)

    # -- interpolation --------------------------------------------------

    def expressions_render(self, template: str) -> str:
        """Replace each resolvable {expression}; unresolved ones stay literal"""

        def replace(match: re.Match) -> str:
            found, value = self.value_resolve(match.group(1).strip())
            if not found:
                return match.group(0)
            return values.value_format(value, escape=self.settings.escape_html)

        return expression_regex.sub(replace, template)

    def value_resolve(self, expr: str) -> Tuple[bool, Any]:
        """
        Resolve a template expression

        Order: exact variable name, exact prop name, dotted path. In a
        dotted path, `name()` on a request-capable base calls Path/Method/URL,
        a plain segment looks up a Map key or a host object field.

        Returns:
            (True, value) when resolved, (False, None) otherwise
        """
        if self.env.variable_has(expr):
            return True, self.env.variable_get(expr)
        if self.env.prop_has(expr):
            return True, self.env.prop_get(expr)
        if '.' not in expr or not path_regex.match(expr):
            return False, None

        head, *segments = expr.split('.')
        if self.env.variable_has(head):
            current = self.env.variable_get(head)
        elif self.env.prop_has(head):
            current = self.env.prop_get(head)
        else:
            return False, None

        for segment in segments:
            current = self.segment_resolve(current, segment)
            if current is _MISSING:
                return False, None
        return True, current

    @staticmethod
    def segment_resolve(current: Any, segment: str) -> Any:
        """One path step; a failing host accessor leaves the expression unresolved"""
        try:
            if segment.endswith('()'):
                name = segment[:-2]
                if name in REQUEST_CAPABILITIES and requestCapable_is(current):
                    return getattr(current, name)()
                if isinstance(current, HostObject):
                    return current.method_call(name, [])
                return _MISSING
            if isinstance(current, dict):
                return current.get(segment, _MISSING)
            if isinstance(current, HostObject):
                return current.field_get(segment)
        except Exception as exc:
            LOG(f"Accessor {segment} on {values.typeName_get(current)} failed: {exc}", level=2)
        return _MISSING
