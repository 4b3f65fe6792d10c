"""
Component data models

Immutable results of the Document Parser: the frontmatter code, the template
markup, extracted <style>/<script> blocks and import declarations, together
with the source ranges editors and error messages point at.
"""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Position:
    """1-based line/column position in component source"""
    line: int = 1
    column: int = 1


@dataclass(frozen=True)
class Range:
    """Span between two source positions (end is exclusive)"""
    start: Position = field(default_factory=Position)
    end: Position = field(default_factory=Position)


@dataclass(frozen=True)
class Style:
    """
    A <style> block extracted from the template

    Attributes:
        content: CSS text, trimmed
        scoped: True when the opening tag carries the `scoped` token
    """
    content: str
    scoped: bool = False


@dataclass(frozen=True)
class Script:
    """
    A <script> block extracted from the template

    Attributes:
        content: Script text, trimmed
        isModule: True for type="module" (or type='module')
    """
    content: str
    isModule: bool = False


@dataclass(frozen=True)
class Import:
    """
    An import declaration from the frontmatter

    Attributes:
        path: Quoted import path (e.g. "./Card.gxc", "models")
        alias: Declared alias, empty for `import "path"`
        isComponent: True when the alias starts with an uppercase letter

    Example:
        import Card from "./Card.gxc"  ->  Import("./Card.gxc", "Card", True)
        import db "database/sql"       ->  Import("database/sql", "db", False)
    """
    path: str
    alias: str = ""
    isComponent: bool = False

    @property
    def name(self) -> str:
        """Name the import is referenced by: alias, else last path segment"""
        if self.alias:
            return self.alias
        return self.path.rstrip("/").rsplit("/", 1)[-1]


@dataclass(frozen=True)
class Component:
    """
    Parse result of one component source file

    Created once per source read and cached by file path; never mutated.

    Attributes:
        frontmatter: Code between the leading `---` delimiters (trimmed)
        frontmatterRange: Source range of the delimited block
        template: Remaining markup after extractions (trimmed)
        templateRange: Source range of the template text
        styles: Extracted style blocks in source order
        scripts: Extracted script blocks in source order
        imports: Import declarations in frontmatter order
    """
    frontmatter: str = ""
    frontmatterRange: Range = field(default_factory=Range)
    template: str = ""
    templateRange: Range = field(default_factory=Range)
    styles: Tuple[Style, ...] = ()
    scripts: Tuple[Script, ...] = ()
    imports: Tuple[Import, ...] = ()

    def componentImports_get(self) -> Tuple[Import, ...]:
        """Imports that name other components"""
        return tuple(imp for imp in self.imports if imp.isComponent)

    def valueImports_get(self) -> Tuple[Import, ...]:
        """Imports that name host packages"""
        return tuple(imp for imp in self.imports if not imp.isComponent)

    def __str__(self) -> str:
        return (
            "=== Component ===\n"
            f"Frontmatter:\n{self.frontmatter}\n\n"
            f"Template:\n{self.template}\n\n"
            f"Scripts: {len(self.scripts)}\n"
            f"Styles: {len(self.styles)}\n"
            f"Imports: {len(self.imports)}\n"
        )
