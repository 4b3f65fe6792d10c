"""
Parser for component source files

Splits a component into its parts:

    ---
    import Card from "./Card.gxc"     <- frontmatter (code)
    var title = "Hi"
    ---
    <h1>{title}</h1>                  <- template (markup)
    <style scoped>h1 { ... }</style>  <- style blocks
    <script type="module">...</script><- script blocks

The parser operates in three phases:
1. Frontmatter: Cut the leading ---/--- block and read its import lines
2. Extraction: Pull <script> and <style> blocks out of the markup
3. Template: Whatever markup remains, trimmed

Malformed input is tolerated rather than rejected: a missing closing
delimiter means "no frontmatter", and an unclosed <style>/<script> is left
in the template as-is.

Example:
    >>> component = Parser('---\\nvar title = "Hi"\\n---\\n<h1>{title}</h1>').parse()
    >>> component.template
    '<h1>{title}</h1>'
"""

import re
from typing import List, Tuple

from ..models.component import Component, Import, Position, Range, Script, Style
from .log import LOG

frontmatter_regex = re.compile(r'\A\s*---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)
script_regex = re.compile(r'<script(?:\s+([^>]*))?>(.*?)</script\s*>', re.DOTALL | re.IGNORECASE)
style_regex = re.compile(r'<style(?:\s+([^>]*))?>(.*?)</style\s*>', re.DOTALL | re.IGNORECASE)
import_regex = re.compile(
    r'''^import\s+(?:([A-Za-z_]\w*|\.)\s+(?:from\s+)?)?["'`]([^"'`]*)["'`]'''
)
import_spec_regex = re.compile(r'''^(?:([A-Za-z_]\w*|\.)\s+(?:from\s+)?)?["'`]([^"'`]*)["'`]''')
scoped_regex = re.compile(r'(?:^|\s)scoped(?:\s|=|$)')
module_regex = re.compile(r'''type\s*=\s*(["'])module\1''')


def position_fromOffset(source: str, offset: int) -> Position:
    """
    Convert a character offset into a 1-based line/column Position

    Example:
        >>> position_fromOffset("ab\\ncd", 4)
        Position(line=2, column=2)
    """
    offset = max(0, min(offset, len(source)))
    line = source.count('\n', 0, offset) + 1
    line_start = source.rfind('\n', 0, offset) + 1
    return Position(line=line, column=offset - line_start + 1)


def imports_parse(frontmatter: str) -> List[Import]:
    """
    Read import declarations from frontmatter lines starting with `import`

    Recognised forms:
        import "path"
        import alias "path"
        import alias from "path"
        import (
            "path"
            alias "path"
        )

    An alias beginning with an uppercase letter marks a component import.

    Args:
        frontmatter: Frontmatter code

    Returns:
        Imports in declaration order
    """
    imports: List[Import] = []
    in_group = False

    for raw_line in frontmatter.splitlines():
        line = raw_line.strip()
        if in_group:
            if line.startswith(')'):
                in_group = False
                continue
            match = import_spec_regex.match(line)
        elif re.match(r'^import\s*\($', line):
            in_group = True
            continue
        elif line.startswith('import'):
            match = import_regex.match(line)
        else:
            continue

        if match:
            alias = match.group(1) or ''
            imports.append(Import(
                path=match.group(2),
                alias=alias,
                isComponent=alias[:1].isupper(),
            ))

    return imports


class Parser:
    """
    Document parser for component source text

    Handles:
    - Optional ---/--- frontmatter block with source range
    - Import declarations (single, aliased, `from`, grouped)
    - <script> extraction (type="module" detection)
    - <style> extraction (scoped detection)
    """

    def __init__(self, source: str):
        """
        Initialize parser with source text

        Args:
            source: Raw component source text (.gxc file contents)
        """
        self.source = source

    def parse(self) -> Component:
        """
        Parse source text into a Component

        Returns:
            Immutable Component. Never fails: missing or malformed parts
            fall back to empty frontmatter / untouched template text.

        Example:
            >>> component = Parser('<p>hi</p><style scoped>p{}</style>').parse()
            >>> component.template, component.styles[0].scoped
            ('<p>hi</p>', True)
        """
        frontmatter, frontmatter_range, body_offset = self.frontmatter_extract()
        imports = imports_parse(frontmatter)

        content = self.source[body_offset:]
        content, scripts = self.scripts_extract(content)
        content, styles = self.styles_extract(content)
        template = content.strip()

        component = Component(
            frontmatter=frontmatter,
            frontmatterRange=frontmatter_range,
            template=template,
            templateRange=self.templateRange_get(body_offset),
            styles=tuple(styles),
            scripts=tuple(scripts),
            imports=tuple(imports),
        )

        LOG(
            f"Parsed component: {len(frontmatter)} chars frontmatter, "
            f"{len(styles)} styles, {len(scripts)} scripts, {len(imports)} imports",
            level=3,
        )
        return component

    def frontmatter_extract(self) -> Tuple[str, Range, int]:
        """
        Locate the leading frontmatter block

        Returns:
            (frontmatter text, its source range, offset where markup begins).
            Without a complete ---/--- pair the frontmatter is empty and the
            markup starts at offset 0.
        """
        match = frontmatter_regex.match(self.source)
        if not match:
            if self.source.lstrip().startswith('---'):
                LOG("Unterminated frontmatter delimiter, treating source as template", level=2)
            return '', Range(), 0

        frontmatter_range = Range(
            start=position_fromOffset(self.source, match.start()),
            end=position_fromOffset(self.source, match.end()),
        )
        return match.group(1).strip(), frontmatter_range, match.end()

    def scripts_extract(self, content: str) -> Tuple[str, List[Script]]:
        """Remove <script> blocks from content, returning them in source order"""
        scripts = [
            Script(
                content=match.group(2).strip(),
                isModule=bool(module_regex.search(match.group(1) or '')),
            )
            for match in script_regex.finditer(content)
        ]
        return script_regex.sub('', content), scripts

    def styles_extract(self, content: str) -> Tuple[str, List[Style]]:
        """Remove <style> blocks from content, returning them in source order"""
        styles = [
            Style(
                content=match.group(2).strip(),
                scoped=bool(scoped_regex.search(match.group(1) or '')),
            )
            for match in style_regex.finditer(content)
        ]
        return style_regex.sub('', content), styles

    def templateRange_get(self, body_offset: int) -> Range:
        """Range from the first to past the last non-blank character after the frontmatter"""
        body = self.source[body_offset:]
        stripped = body.strip()
        if not stripped:
            position = position_fromOffset(self.source, len(self.source))
            return Range(start=position, end=position)
        start = body_offset + (len(body) - len(body.lstrip()))
        end = body_offset + len(body.rstrip())
        return Range(
            start=position_fromOffset(self.source, start),
            end=position_fromOffset(self.source, end),
        )


def parse(source: str) -> Component:
    """
    Parse component source text

    Args:
        source: Raw component source (UTF-8 text)

    Returns:
        Component with frontmatter, template, styles, scripts and imports
    """
    return Parser(source).parse()
