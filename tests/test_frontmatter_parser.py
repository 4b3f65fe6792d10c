"""
Frontmatter parser tests

Tests tokenizing and parsing frontmatter code into syntax tree nodes.
"""

import pytest

from gastro.lib.errors import ParseError
from gastro.lib.frontmatter import FrontmatterParser
from gastro.lib.lexer import tokens_make
from gastro.models.syntax import (
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
    Selector,
    Unary,
    Unsupported,
    UnsupportedStmt,
    VarDecl,
)


def statements(code):
    return FrontmatterParser(code).parse().statements


class TestTokenizer:
    """Test the Pygments-based tokenizer"""

    def test_token_kinds(self):
        tokens = tokens_make('var x := 1.5 // comment\nif')
        kinds = [(t.kind, t.value) for t in tokens]
        assert kinds == [
            ('keyword', 'var'),
            ('name', 'x'),
            ('op', ':='),
            ('float', '1.5'),
            ('newline', '\n'),
            ('keyword', 'if'),
            ('eof', ''),
        ]

    def test_positions(self):
        tokens = tokens_make('a\n  b')
        assert (tokens[2].line, tokens[2].column) == (2, 3)

    def test_unterminated_string(self):
        """Unterminated strings are parse errors with a position"""
        with pytest.raises(ParseError) as excinfo:
            tokens_make('var s = "abc')
        assert excinfo.value.line == 1
        assert excinfo.value.column == 9

    def test_stray_character(self):
        with pytest.raises(ParseError):
            tokens_make('var s = @')


class TestDeclarations:
    """Test var declarations and assignments"""

    def test_var_with_value(self):
        [decl] = statements('var title = "Hi"')
        assert isinstance(decl, VarDecl)
        assert decl.names == ["title"]
        assert decl.type is None
        assert isinstance(decl.values[0], Literal)
        assert decl.values[0].value == "Hi"

    def test_var_with_type_and_no_value(self):
        [decl] = statements('var count int')
        assert decl.type.kind == "name"
        assert decl.type.name == "int"
        assert decl.values == []

    def test_var_group(self):
        decls = statements('var (\n  a = 1\n  b = "x"\n)')
        assert [d.names for d in decls] == [["a"], ["b"]]

    def test_short_declaration(self):
        [assign] = statements('x := 1 + 2 * 3')
        assert isinstance(assign, Assign)
        assert assign.define is True
        expr = assign.values[0]
        assert isinstance(expr, Binary) and expr.op == "+"
        assert isinstance(expr.right, Binary) and expr.right.op == "*"

    def test_multi_name_from_call(self):
        [assign] = statements('user, err := models.GetUser("1")')
        assert assign.names == ["user", "err"]
        assert isinstance(assign.values[0], Call)
        assert isinstance(assign.values[0].func, Selector)

    def test_plain_assignment(self):
        [assign] = statements('x = 2')
        assert assign.define is False

    def test_semicolon_separator(self):
        assert len(statements('a := 1; b := 2')) == 2

    def test_missing_name(self):
        with pytest.raises(ParseError):
            statements('var = 5')

    def test_missing_type_or_value(self):
        with pytest.raises(ParseError):
            statements('var x')

    def test_compound_assignment_rejected(self):
        with pytest.raises(ParseError):
            statements('x += 1')


class TestExpressions:
    """Test expression parsing"""

    def test_precedence(self):
        [stmt] = statements('a || b && c == d')
        expr = stmt.expr
        assert expr.op == "||"
        assert expr.right.op == "&&"
        assert expr.right.right.op == "=="

    def test_parentheses(self):
        [assign] = statements('x := (1 + 2) * 3')
        expr = assign.values[0]
        assert expr.op == "*"
        assert expr.left.op == "+"

    def test_unary(self):
        [assign] = statements('x := !done')
        assert isinstance(assign.values[0], Unary)
        assert assign.values[0].op == "!"

    def test_literals(self):
        [assign] = statements("a, b, c, d, e := 0x1F, 'A', nil, true, `raw\\n`")
        assert [v.value for v in assign.values] == [31, 65, None, True, "raw\\n"]

    def test_string_escapes(self):
        [assign] = statements('s := "a\\tb"')
        assert assign.values[0].value == "a\tb"

    def test_octal_and_invalid_int(self):
        [assign] = statements('x := 017')
        assert assign.values[0].value == 15
        with pytest.raises(ParseError):
            statements('x := 09')

    def test_int_overflow(self):
        with pytest.raises(ParseError):
            statements('x := 9223372036854775808')

    def test_list_literal(self):
        [decl] = statements('var items = []string{"a", "b", "c"}')
        literal = decl.values[0]
        assert isinstance(literal, Composite)
        assert literal.type.kind == "slice"
        assert literal.type.elem.name == "string"
        assert [e.value for e in literal.elements] == ["a", "b", "c"]

    def test_map_literal_multiline(self):
        [decl] = statements('var m = map[string]int{\n  "a": 1,\n  "b": 2,\n}')
        literal = decl.values[0]
        assert literal.type.kind == "map"
        assert all(isinstance(e, KeyValue) for e in literal.elements)

    def test_elided_composite(self):
        [decl] = statements('var posts = []map[string]string{{"title": "First"}}')
        inner = decl.values[0].elements[0]
        assert isinstance(inner, Composite)
        assert inner.type is None

    def test_unsupported_expressions_parse(self):
        """Index, address-of and type assertions parse as Unsupported nodes"""
        [assign] = statements('a, b, c := items[0], &x, v.(string)')
        assert all(isinstance(v, Unsupported) for v in assign.values)
        assert assign.values[0].construct == "index expression"

    def test_expression_only(self):
        expr = FrontmatterParser(' count + 1 ').expression_parseOnly()
        assert isinstance(expr, Binary)
        assert isinstance(expr.left, Identifier)

    def test_expression_only_rejects_trailing_tokens(self):
        with pytest.raises(ParseError):
            FrontmatterParser('a b').expression_parseOnly()


class TestStatements:
    """Test if/else, imports and unsupported statements"""

    def test_if_else_chain(self):
        [stmt] = statements(
            'if a {\n  x := 1\n} else if b {\n  x := 2\n} else {\n  x := 3\n}'
        )
        assert isinstance(stmt, IfStmt)
        assert isinstance(stmt.orelse, IfStmt)
        assert isinstance(stmt.orelse.orelse, list)
        assert len(stmt.orelse.orelse) == 1

    def test_else_on_next_line(self):
        [stmt] = statements('if a {\n  x := 1\n}\nelse {\n  x := 2\n}')
        assert stmt.orelse is not None

    def test_if_init_clause_rejected(self):
        with pytest.raises(ParseError):
            statements('if x := 1; x > 0 {\n}')

    def test_unclosed_block(self):
        with pytest.raises(ParseError):
            statements('if a {\n  x := 1\n')

    def test_redirect_call_statement(self):
        [stmt] = statements('Galaxy.redirect("/login", 302)')
        assert isinstance(stmt, ExprStmt)
        assert isinstance(stmt.expr, Call)

    def test_imports(self):
        stmts = statements('import (\n  "fmt"\n  db "database/sql"\n)\nimport Card from "./Card.gxc"')
        assert all(isinstance(s, ImportStmt) for s in stmts)
        assert [(s.alias, s.path) for s in stmts] == [
            ("", "fmt"),
            ("db", "database/sql"),
            ("Card", "./Card.gxc"),
        ]

    def test_unsupported_statement_consumes_block(self):
        """A for loop parses as one unsupported statement"""
        stmts = statements('for i := 0; i < 3; i++ {\n  x := i\n}\ny := 1')
        assert isinstance(stmts[0], UnsupportedStmt)
        assert stmts[0].keyword == "for"
        assert isinstance(stmts[1], Assign)

    def test_increment_is_unsupported(self):
        [stmt] = statements('x++')
        assert isinstance(stmt, UnsupportedStmt)

    def test_line_numbers(self):
        stmts = statements('a := 1\n\nb := 2')
        assert [s.line for s in stmts] == [1, 3]
