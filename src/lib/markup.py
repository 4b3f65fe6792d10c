"""
Markup scanner for templates

Finds element boundaries in template markup without a full HTML parser.
Regular expressions cannot pair an opening tag with its true closing tag
once the same tag name nests inside itself:

    <div for={x in items}><div class="inner">{x}</div></div>
                                                ^ non-greedy regex stops here

The scanner instead emits tag events (open / close) while honouring quoted
and {braced} attribute values and <!-- comments -->, and matches an open
tag to its close tag by counting depth over same-named tags.

Example:
    >>> source = '<div a="1>2"><div></div></div>'
    >>> [(t.kind, t.name) for t in tags_scan(source)]
    [('open', 'div'), ('open', 'div'), ('close', 'div'), ('close', 'div')]
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

tagname_regex = re.compile(r'[A-Za-z][\w:.\-]*')


@dataclass
class Tag:
    """
    One tag event in template markup

    Attributes:
        kind: "open" or "close"
        name: Tag name as written (case preserved)
        start: Offset of '<'
        end: Offset just past '>'
        attrsStart: Offset where the attribute text begins (open tags)
        attrsEnd: Offset where the attribute text ends, before '/>' or '>'
        selfClosing: True for <name ... />
    """
    kind: str
    name: str
    start: int
    end: int
    attrsStart: int = 0
    attrsEnd: int = 0
    selfClosing: bool = False


@dataclass
class Element:
    """
    An open tag paired with its matching close tag

    For self-closing (or unclosed) elements, close is None and the body is
    empty.
    """
    open: Tag
    close: Optional[Tag]

    @property
    def start(self) -> int:
        return self.open.start

    @property
    def end(self) -> int:
        return self.close.end if self.close else self.open.end

    @property
    def bodyStart(self) -> int:
        return self.open.end

    @property
    def bodyEnd(self) -> int:
        return self.close.start if self.close else self.open.end


def tagEnd_find(source: str, pos: int) -> int:
    """
    Find the '>' that ends a tag whose attributes start at pos

    Quoted ("..." / '...') and braced ({...}) attribute values may contain
    '>' without ending the tag.

    Returns:
        Offset of the closing '>', or -1 if the tag never ends
    """
    quote = ''
    depth = 0
    while pos < len(source):
        char = source[pos]
        if quote:
            if char == quote:
                quote = ''
        elif depth:
            if char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
            elif char in '"\'':
                quote = char
        elif char in '"\'':
            quote = char
        elif char == '{':
            depth = 1
        elif char == '>':
            return pos
        pos += 1
    return -1


def tags_scan(source: str, pos: int = 0) -> Iterator[Tag]:
    """
    Yield tag events from pos onward, in source order

    Text, comments, doctypes and stray '<' characters produce no events.
    An unterminated tag ends the scan (the rest is treated as text).
    """
    while True:
        lt = source.find('<', pos)
        if lt == -1 or lt + 1 >= len(source):
            return

        if source.startswith('<!--', lt):
            close = source.find('-->', lt + 4)
            if close == -1:
                return
            pos = close + 3
            continue

        if source[lt + 1] == '!':
            close = source.find('>', lt)
            if close == -1:
                return
            pos = close + 1
            continue

        if source[lt + 1] == '/':
            match = tagname_regex.match(source, lt + 2)
            if not match:
                pos = lt + 1
                continue
            close = source.find('>', match.end())
            if close == -1:
                return
            yield Tag(kind='close', name=match.group(0), start=lt, end=close + 1)
            pos = close + 1
            continue

        match = tagname_regex.match(source, lt + 1)
        if not match:
            pos = lt + 1
            continue
        close = tagEnd_find(source, match.end())
        if close == -1:
            return
        attrs_end = close
        self_closing = source[close - 1] == '/' and close - 1 >= match.end()
        if self_closing:
            attrs_end = close - 1
        yield Tag(
            kind='open',
            name=match.group(0),
            start=lt,
            end=close + 1,
            attrsStart=match.end(),
            attrsEnd=attrs_end,
            selfClosing=self_closing,
        )
        pos = close + 1


def closeTag_find(source: str, open_tag: Tag) -> Optional[Tag]:
    """
    Find the close tag matching open_tag by depth counting

    Depth increases on every later non-self-closing open tag with the same
    name and decreases on every close tag with that name; the close tag
    that brings depth back to zero is the match. Other tag names are
    ignored, so <nameExtra> never counts as <name>.

    Args:
        source: Template markup
        open_tag: Opening tag event (not self-closing)

    Returns:
        Matching close Tag, or None if the element is never closed
    """
    depth = 1
    for tag in tags_scan(source, open_tag.end):
        if tag.name != open_tag.name:
            continue
        if tag.kind == 'open' and not tag.selfClosing:
            depth += 1
        elif tag.kind == 'close':
            depth -= 1
            if depth == 0:
                return tag
    return None


def element_match(source: str, open_tag: Tag) -> Element:
    """Pair an open tag with its close tag (none for self-closing/unclosed tags)"""
    if open_tag.selfClosing:
        return Element(open=open_tag, close=None)
    return Element(open=open_tag, close=closeTag_find(source, open_tag))


attribute_regex = re.compile(
    r'''([^\s=/>"'{}]+)(?:\s*=\s*(?:\{((?:[^{}]|\{[^{}]*\})*)\}|"([^"]*)"|'([^']*)'|([^\s"'{}>]+)))?'''
)


@dataclass
class Attribute:
    """
    One attribute of an open tag

    Attributes:
        name: Attribute name
        kind: "expr" for name={...}, "string" for quoted/bare values, "flag" for bare names
        value: Expression text, string value, or "" for flags
        start: Offset of the attribute within the attribute text
        end: Offset just past the attribute within the attribute text
    """
    name: str
    kind: str
    value: str
    start: int
    end: int


def attributes_parse(attrs: str) -> Dict[str, Attribute]:
    """
    Parse the attribute text of an open tag

    Forms:
        name={expr}     -> kind "expr"
        name="literal"  -> kind "string"
        name='literal'  -> kind "string"
        name=bare       -> kind "string"
        name            -> kind "flag"

    Example:
        >>> attrs = attributes_parse(' title={post.title} id="x" disabled')
        >>> [(a.name, a.kind, a.value) for a in attrs.values()]
        [('title', 'expr', 'post.title'), ('id', 'string', 'x'), ('disabled', 'flag', '')]
    """
    result: Dict[str, Attribute] = {}
    for match in attribute_regex.finditer(attrs):
        name = match.group(1)
        if match.group(2) is not None:
            kind, value = 'expr', match.group(2).strip()
        elif match.group(3) is not None:
            kind, value = 'string', match.group(3)
        elif match.group(4) is not None:
            kind, value = 'string', match.group(4)
        elif match.group(5) is not None:
            kind, value = 'string', match.group(5)
        else:
            kind, value = 'flag', ''
        result[name] = Attribute(name=name, kind=kind, value=value, start=match.start(), end=match.end())
    return result
