"""
Frontmatter syntax tree

Nodes produced by FrontmatterParser and walked by Interpreter. Every node
records the source line it starts on for error reporting.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class Node:
    line: int = field(default=0, kw_only=True)


# -- Types (only what composite literals and var declarations need) --------


@dataclass
class TypeRef(Node):
    """
    Type annotation

    kind is one of "name", "slice", "array", "map", "pointer", "interface".
    name holds the identifier for "name" (e.g. "string", "models.User");
    elem is the element type for slice/array/pointer and the value type
    for map; key is the key type for map.
    """
    kind: str
    name: str = ""
    elem: Optional["TypeRef"] = None
    key: Optional["TypeRef"] = None


# -- Expressions ------------------------------------------------------------


@dataclass
class Literal(Node):
    """int, float, str, bool or None value"""
    value: Any


@dataclass
class Identifier(Node):
    name: str


@dataclass
class Selector(Node):
    """target.name"""
    target: Node
    name: str


@dataclass
class Binary(Node):
    op: str
    left: Node
    right: Node


@dataclass
class Unary(Node):
    op: str
    operand: Node


@dataclass
class Call(Node):
    func: Node
    args: List[Node]


@dataclass
class KeyValue(Node):
    """key: value element of a composite literal"""
    key: Node
    value: Node


@dataclass
class Composite(Node):
    """
    Composite literal

    type is None for an elided/untyped brace literal ({"a": 1}).
    """
    type: Optional[TypeRef]
    elements: List[Node]


@dataclass
class Unsupported(Node):
    """Construct that parses but cannot be evaluated (index, &x, x.(T), ...)"""
    construct: str


# -- Statements -------------------------------------------------------------


@dataclass
class VarDecl(Node):
    """var a, b [Type] [= x, y]"""
    names: List[str]
    type: Optional[TypeRef]
    values: List[Node]


@dataclass
class Assign(Node):
    """a, b := x, y  (define=True)   or   a = x  (define=False)"""
    names: List[str]
    values: List[Node]
    define: bool


@dataclass
class ExprStmt(Node):
    expr: Node


@dataclass
class IfStmt(Node):
    """
    if condition { body } else ...

    orelse is None, a list of statements (else block), or a single IfStmt
    (else if chain).
    """
    condition: Node
    body: List[Node]
    orelse: Optional[Any] = None


@dataclass
class ImportStmt(Node):
    """One import spec; grouped imports produce one node per spec"""
    path: str
    alias: str = ""


@dataclass
class UnsupportedStmt(Node):
    """Statement keyword outside the supported subset (for, func, switch, ...)"""
    keyword: str


@dataclass
class Program(Node):
    statements: List[Node] = field(default_factory=list)

    def imports_get(self) -> List[ImportStmt]:
        return [stmt for stmt in self.statements if isinstance(stmt, ImportStmt)]
