"""
Parser for frontmatter code

Transforms frontmatter source into a Program syntax tree.

The parser operates in two phases:
1. Tokenizing: FrontmatterLexer (Pygments) splits the code into tokens
2. Parsing: Recursive descent over statements, precedence climbing over
   binary expressions

Supported statements:
- var a, b [Type] [= x, y]        (also grouped: var ( ... ))
- a, b := x, y    a := call()     a = x
- if cond { ... } else if cond { ... } else { ... }
- import "path" / import alias "path" / import alias from "path" / import ( ... )
- expression statements (calls)

Statements outside that subset (for, func, switch, ...) parse into
UnsupportedStmt nodes so evaluation can report them by name.

Example:
    >>> program = FrontmatterParser('var title = "Hi"').parse()
    >>> program.statements[0].names
    ['title']
"""

import re
from typing import List, Optional

from ..models.syntax import (
    Assign,
    Binary,
    Call,
    Composite,
    ExprStmt,
    Identifier,
    IfStmt,
    ImportStmt,
    KeyValue,
    Literal,
    Node,
    Program,
    Selector,
    TypeRef,
    Unary,
    Unsupported,
    UnsupportedStmt,
    VarDecl,
)
from .errors import ParseError
from .lexer import FmToken, tokens_make

INT64_MAX = 2**63 - 1

# Go operator precedence, higher binds tighter
BINARY_PRECEDENCE = {
    '||': 1,
    '&&': 2,
    '==': 3, '!=': 3, '<': 3, '<=': 3, '>': 3, '>=': 3,
    '+': 4, '-': 4, '|': 4, '^': 4,
    '*': 5, '/': 5, '%': 5, '<<': 5, '>>': 5, '&': 5, '&^': 5,
}

UNARY_OPERATORS = {'-', '+', '!', '^', '&', '*', '<-'}

ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', 'a': '\a', 'b': '\b', 'f': '\f',
    'v': '\v', '\\': '\\', '"': '"', "'": "'",
}

escape_regex = re.compile(r'\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{2}|[0-7]{3}|.)')


def escapes_decode(text: str) -> str:
    r"""
    Decode backslash escapes in a quoted literal body

    Example:
        >>> escapes_decode(r'a\tbé')
        'a\tbé'
    """

    def replace(match: re.Match) -> str:
        seq = match.group(1)
        if seq[0] in 'uUx':
            return chr(int(seq[1:], 16))
        if seq[0].isdigit():
            return chr(int(seq, 8))
        return ESCAPES.get(seq, '\\' + seq)

    return escape_regex.sub(replace, text)


class FrontmatterParser:
    """
    Recursive descent parser for frontmatter code

    Handles:
    - Statement lists separated by newlines or ';'
    - Operator precedence for binary expressions
    - Selectors, calls, composite literals
    - Error reporting with line/column positions
    """

    def __init__(self, code: str) -> None:
        """
        Initialize parser with frontmatter code

        Args:
            code: Frontmatter source text (without the --- delimiters)

        Raises:
            ParseError: If the code cannot be tokenized
        """
        self.code = code
        self.tokens: List[FmToken] = tokens_make(code)
        self.position = 0

    # -- token helpers --------------------------------------------------

    @property
    def current(self) -> FmToken:
        return self.tokens[self.position]

    def peek(self, offset: int = 1) -> FmToken:
        index = min(self.position + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> FmToken:
        token = self.tokens[self.position]
        if token.kind != 'eof':
            self.position += 1
        return token

    def check(self, kind: str, value: Optional[str] = None) -> bool:
        return self.current.is_(kind, value)

    def accept(self, kind: str, value: Optional[str] = None) -> Optional[FmToken]:
        if self.check(kind, value):
            return self.advance()
        return None

    def expect(self, kind: str, value: Optional[str] = None) -> FmToken:
        if self.check(kind, value):
            return self.advance()
        wanted = repr(value) if value is not None else kind
        self.error(f"expected {wanted}, found {self.tokenDescription_get(self.current)}")

    def newlines_skip(self) -> None:
        while self.check('newline'):
            self.advance()

    def separators_skip(self) -> None:
        while self.check('newline') or self.check('punct', ';'):
            self.advance()

    @staticmethod
    def tokenDescription_get(token: FmToken) -> str:
        if token.kind == 'eof':
            return 'end of code'
        if token.kind == 'newline':
            return 'newline'
        return repr(token.value)

    def error(self, message: str, token: Optional[FmToken] = None) -> None:
        """
        Report parser error at a token

        Raises:
            ParseError: Always (this is an error reporting function)
        """
        token = token or self.current
        raise ParseError(message, token.line, token.column)

    # -- statements -----------------------------------------------------

    def parse(self) -> Program:
        """
        Parse the whole frontmatter into a Program

        Returns:
            Program with top-level statements in source order.
            Empty/whitespace-only code yields an empty Program.

        Raises:
            ParseError: If the code is malformed
        """
        program = Program(line=1)
        program.statements = self.statements_parse(closing=None)
        return program

    def expression_parseOnly(self) -> Node:
        """
        Parse code consisting of exactly one expression

        Used for component attribute values (title={count + 1}).

        Raises:
            ParseError: If the code is not a single expression
        """
        self.newlines_skip()
        expr = self.expression_parse()
        self.newlines_skip()
        if not self.check('eof'):
            self.error(f"unexpected {self.tokenDescription_get(self.current)} after expression")
        return expr

    def statements_parse(self, closing: Optional[str]) -> List[Node]:
        """
        Parse statements until eof (closing=None) or a closing '}'

        The closing brace itself is left for the caller to consume.
        """
        statements: List[Node] = []
        self.separators_skip()
        while not self.check('eof'):
            if closing and self.check('punct', closing):
                return statements
            statements.extend(self.statement_parse())
            if self.check('eof') or (closing and self.check('punct', closing)):
                continue
            if not (self.check('newline') or self.check('punct', ';')):
                self.error(f"unexpected {self.tokenDescription_get(self.current)} after statement")
            self.separators_skip()
        if closing:
            self.error(f"expected '{closing}', found end of code")
        return statements

    def statement_parse(self) -> List[Node]:
        """Parse one statement (imports and var groups may yield several nodes)"""
        token = self.current

        if token.is_('keyword', 'var'):
            return self.varDecl_parse()
        if token.is_('keyword', 'if'):
            return [self.ifStmt_parse()]
        if token.is_('keyword', 'import'):
            return self.import_parse()
        if token.is_('keyword', 'else'):
            self.error("'else' without matching 'if'")
        if token.kind == 'reserved':
            return [self.unsupportedStmt_parse()]

        if token.kind == 'name' and self.assignmentAhead_is():
            return [self.assign_parse()]

        expr = self.expression_parse()
        if self.check('op', '++') or self.check('op', '--'):
            op = self.advance()
            return [UnsupportedStmt(keyword=f"{op.value} statement", line=token.line)]
        if self.check('op') and self.current.value.endswith('=') and self.current.value not in ('==', '!=', '<=', '>='):
            self.error(f"unsupported assignment operator {self.current.value!r}")
        return [ExprStmt(expr=expr, line=token.line)]

    def assignmentAhead_is(self) -> bool:
        """True if tokens from here read `name (, name)* (:= | =)`"""
        offset = 0
        while True:
            if not self.peek(offset).is_('name'):
                return False
            following = self.peek(offset + 1)
            if following.is_('punct', ','):
                offset += 2
                continue
            return following.is_('op', ':=') or following.is_('op', '=')

    def names_parse(self) -> List[str]:
        names = [self.expect('name').value]
        while self.accept('punct', ','):
            names.append(self.expect('name').value)
        return names

    def assign_parse(self) -> Assign:
        line = self.current.line
        names = self.names_parse()
        op = self.advance()
        self.newlines_skip()
        values = self.expressionList_parse()
        return Assign(names=names, values=values, define=(op.value == ':='), line=line)

    def varDecl_parse(self) -> List[Node]:
        self.expect('keyword', 'var')
        if self.accept('punct', '('):
            decls: List[Node] = []
            self.separators_skip()
            while not self.accept('punct', ')'):
                if self.check('eof'):
                    self.error("expected ')' to close var group")
                decls.append(self.varSpec_parse())
                self.separators_skip()
            return decls
        return [self.varSpec_parse()]

    def varSpec_parse(self) -> VarDecl:
        line = self.current.line
        names = self.names_parse()
        type_ref = None
        if not self.check('op', '='):
            if self.check('newline') or self.check('eof') or self.check('punct', ';'):
                self.error(f"missing type or value in declaration of {names[0]}")
            type_ref = self.type_parse()
        values: List[Node] = []
        if self.accept('op', '='):
            self.newlines_skip()
            values = self.expressionList_parse()
        return VarDecl(names=names, type=type_ref, values=values, line=line)

    def ifStmt_parse(self) -> IfStmt:
        line = self.expect('keyword', 'if').line
        condition = self.expression_parse()
        if self.check('punct', ';'):
            self.error("if statements with an init clause are not supported")
        body = self.block_parse()

        orelse = None
        # Tolerate `}` and `else` on separate lines
        saved = self.position
        self.newlines_skip()
        if self.accept('keyword', 'else'):
            if self.check('keyword', 'if'):
                orelse = self.ifStmt_parse()
            else:
                orelse = self.block_parse()
        else:
            self.position = saved
        return IfStmt(condition=condition, body=body, orelse=orelse, line=line)

    def block_parse(self) -> List[Node]:
        self.expect('punct', '{')
        statements = self.statements_parse(closing='}')
        self.expect('punct', '}')
        return statements

    def import_parse(self) -> List[Node]:
        self.expect('keyword', 'import')
        if self.accept('punct', '('):
            specs: List[Node] = []
            self.separators_skip()
            while not self.accept('punct', ')'):
                if self.check('eof'):
                    self.error("expected ')' to close import group")
                specs.append(self.importSpec_parse())
                self.separators_skip()
            return specs
        return [self.importSpec_parse()]

    def importSpec_parse(self) -> ImportStmt:
        line = self.current.line
        alias = ''
        if self.check('name') or self.check('punct', '.'):
            alias = self.advance().value
            if self.check('name', 'from'):
                self.advance()
        path_token = self.expect('string')
        path = path_token.value[1:-1]
        return ImportStmt(path=path, alias=alias, line=line)

    def unsupportedStmt_parse(self) -> UnsupportedStmt:
        """
        Consume a statement outside the supported subset

        Skips tokens up to the end of the line, including any balanced
        bracket groups (so a `for ... { ... }` block spanning many lines is
        consumed whole).
        """
        keyword = self.advance()
        depth = 0
        while not self.check('eof'):
            token = self.current
            if depth == 0 and (token.kind == 'newline' or token.is_('punct', '}')):
                break
            if token.kind == 'punct' and token.value in '([{':
                depth += 1
            elif token.kind == 'punct' and token.value in ')]}':
                depth -= 1
            self.advance()
        if depth != 0:
            self.error(f"unbalanced brackets in '{keyword.value}' statement", keyword)
        return UnsupportedStmt(keyword=keyword.value, line=keyword.line)

    # -- types ----------------------------------------------------------

    def type_parse(self) -> TypeRef:
        """
        Parse a type annotation

        Example:
            []map[string]int  ->  TypeRef("slice", elem=TypeRef("map", key=string, elem=int))
        """
        token = self.current
        line = token.line
        if self.accept('punct', '['):
            if self.accept('punct', ']'):
                return TypeRef(kind='slice', elem=self.type_parse(), line=line)
            if not (self.accept('int') or self.accept('op', '...') or self.accept('name')):
                self.error("expected array length")
            self.expect('punct', ']')
            return TypeRef(kind='array', elem=self.type_parse(), line=line)
        if self.accept('keyword', 'map'):
            self.expect('punct', '[')
            key = self.type_parse()
            self.expect('punct', ']')
            return TypeRef(kind='map', key=key, elem=self.type_parse(), line=line)
        if self.accept('op', '*'):
            return TypeRef(kind='pointer', elem=self.type_parse(), line=line)
        if self.accept('keyword', 'interface'):
            self.expect('punct', '{')
            self.expect('punct', '}')
            return TypeRef(kind='interface', line=line)
        if token.kind == 'name':
            name = self.advance().value
            if self.check('punct', '.') and self.peek().is_('name'):
                self.advance()
                name += '.' + self.advance().value
            return TypeRef(kind='name', name=name, line=line)
        self.error(f"expected type, found {self.tokenDescription_get(token)}")

    # -- expressions ----------------------------------------------------

    def expressionList_parse(self) -> List[Node]:
        values = [self.expression_parse()]
        while self.accept('punct', ','):
            self.newlines_skip()
            values.append(self.expression_parse())
        return values

    def expression_parse(self, min_precedence: int = 1) -> Node:
        """
        Parse a binary expression by precedence climbing

        Args:
            min_precedence: Lowest operator precedence accepted at this level

        Returns:
            Expression node; all operators are left-associative
        """
        left = self.unary_parse()
        while self.check('op') and self.current.value in BINARY_PRECEDENCE:
            op = self.current
            precedence = BINARY_PRECEDENCE[op.value]
            if precedence < min_precedence:
                break
            self.advance()
            self.newlines_skip()
            right = self.expression_parse(precedence + 1)
            left = Binary(op=op.value, left=left, right=right, line=op.line)
        return left

    def unary_parse(self) -> Node:
        token = self.current
        if token.kind == 'op' and token.value in UNARY_OPERATORS:
            self.advance()
            operand = self.unary_parse()
            if token.value == '&':
                return Unsupported(construct='address-of operator &', line=token.line)
            if token.value == '*':
                return Unsupported(construct='pointer dereference *', line=token.line)
            if token.value == '<-':
                return Unsupported(construct='channel receive <-', line=token.line)
            return Unary(op=token.value, operand=operand, line=token.line)
        return self.postfix_parse(self.primary_parse())

    def primary_parse(self) -> Node:
        token = self.current
        line = token.line

        if token.kind == 'int':
            self.advance()
            return Literal(value=self.int_decode(token), line=line)
        if token.kind == 'float':
            self.advance()
            return Literal(value=float(token.value.replace('_', '')), line=line)
        if token.kind == 'string':
            self.advance()
            body = token.value[1:-1]
            if token.value.startswith('"'):
                body = escapes_decode(body)
            return Literal(value=body, line=line)
        if token.kind == 'char':
            self.advance()
            body = escapes_decode(token.value[1:-1])
            if len(body) != 1:
                self.error(f"invalid char literal {token.value}", token)
            return Literal(value=ord(body), line=line)
        if token.kind == 'constant':
            self.advance()
            return Literal(value={'nil': None, 'true': True, 'false': False}[token.value], line=line)
        if token.kind == 'name':
            self.advance()
            return Identifier(name=token.value, line=line)
        if self.accept('punct', '('):
            self.newlines_skip()
            expr = self.expression_parse()
            self.newlines_skip()
            self.expect('punct', ')')
            return expr
        if token.is_('punct', '[') or token.is_('keyword', 'map'):
            type_ref = self.type_parse()
            return self.composite_parse(type_ref, line)
        if token.is_('punct', '{'):
            return self.composite_parse(None, line)
        if token.is_('reserved', 'func'):
            self.unsupportedStmt_parse()
            return Unsupported(construct='function literal', line=line)
        self.error(f"unexpected {self.tokenDescription_get(token)}")

    def int_decode(self, token: FmToken) -> int:
        text = token.value.replace('_', '')
        try:
            if re.fullmatch(r'0\d+', text):
                value = int(text, 8)
            else:
                value = int(text, 0)
        except ValueError:
            self.error(f"invalid integer literal {token.value}", token)
        if value > INT64_MAX:
            self.error(f"integer literal {token.value} overflows int64", token)
        return value

    def postfix_parse(self, expr: Node) -> Node:
        """Apply selector, call, index and type-assertion suffixes"""
        while True:
            token = self.current
            if token.is_('punct', '.'):
                self.advance()
                if self.accept('punct', '('):
                    self.type_parse()
                    self.expect('punct', ')')
                    expr = Unsupported(construct='type assertion', line=token.line)
                    continue
                name = self.expect('name')
                expr = Selector(target=expr, name=name.value, line=token.line)
            elif token.is_('punct', '('):
                self.advance()
                args = self.arguments_parse()
                expr = Call(func=expr, args=args, line=token.line)
            elif token.is_('punct', '['):
                self.advance()
                self.newlines_skip()
                construct = 'index expression'
                if not self.check('punct', ':'):
                    self.expression_parse()
                if self.accept('punct', ':'):
                    construct = 'slice expression'
                    if not self.check('punct', ']'):
                        self.expression_parse()
                self.newlines_skip()
                self.expect('punct', ']')
                expr = Unsupported(construct=construct, line=token.line)
            else:
                return expr

    def arguments_parse(self) -> List[Node]:
        args: List[Node] = []
        self.newlines_skip()
        while not self.accept('punct', ')'):
            args.append(self.expression_parse())
            if self.check('op', '...'):
                self.error("variadic call arguments are not supported")
            self.newlines_skip()
            if not self.accept('punct', ','):
                self.newlines_skip()
                self.expect('punct', ')')
                break
            self.newlines_skip()
        return args

    def composite_parse(self, type_ref: Optional[TypeRef], line: int) -> Composite:
        """
        Parse the {...} body of a composite literal

        Elements may be expressions, key: value pairs, or untyped nested
        {...} literals whose type is implied by the enclosing literal.
        """
        self.expect('punct', '{')
        elements: List[Node] = []
        self.newlines_skip()
        while not self.accept('punct', '}'):
            element = self.element_parse()
            if self.accept('punct', ':'):
                self.newlines_skip()
                value = self.element_parse()
                element = KeyValue(key=element, value=value, line=element.line)
            elements.append(element)
            self.newlines_skip()
            if not self.accept('punct', ','):
                self.newlines_skip()
                self.expect('punct', '}')
                break
            self.newlines_skip()
        return Composite(type=type_ref, elements=elements, line=line)

    def element_parse(self) -> Node:
        if self.check('punct', '{'):
            return self.composite_parse(None, self.current.line)
        return self.expression_parse()
