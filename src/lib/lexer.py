"""
Pygments lexer for frontmatter code

Tokenizes the frontmatter sublanguage (var declarations, if/else,
expressions, composite literals, imports) for the FrontmatterParser, and
doubles as a syntax highlighter for component sources.

Token types:
- Keyword: var, if, else, import
- Keyword.Type: map, interface
- Keyword.Reserved: Statement keywords outside the supported subset (for, func, ...)
- Keyword.Constant: nil, true, false
- Name: Identifiers
- Literal.String / Literal.Number: Literals
- Operator / Punctuation: Operators and delimiters
- Newline: Statement-terminating line breaks
- Error: Anything the language does not know (unterminated strings, stray characters)
"""

import bisect
from dataclasses import dataclass
from typing import List

from pygments.lexer import RegexLexer, words
from pygments.token import (
    Token,
    Text,
    Punctuation,
    Name,
    String,
    Keyword,
    Comment,
    Number,
    Operator,
    Error,
)

from .errors import ParseError

Newline = Token.Newline

# Statement keywords that parse but are outside the supported subset
UNSUPPORTED_KEYWORDS = (
    'for', 'func', 'switch', 'select', 'return', 'go', 'defer', 'type',
    'const', 'case', 'default', 'break', 'continue', 'goto', 'fallthrough',
    'range', 'package', 'chan', 'struct',
)


class FrontmatterLexer(RegexLexer):
    """
    Lexer for component frontmatter

    Example:
        var items = []string{"a", "b"}

    Tokens:
        var      → Keyword
        items    → Name
        =        → Operator
        []string → Punctuation, Punctuation, Name
        {        → Punctuation
        "a"      → String.Double
    """

    name = 'Gastro Frontmatter'
    aliases = ['gastro-frontmatter', 'gxfm']
    filenames = []

    tokens = {
        'root': [
            (r'\n', Newline),
            (r'[ \t\r\f]+', Text.Whitespace),
            (r'//[^\n]*', Comment.Single),
            (r'/\*[\s\S]*?\*/', Comment.Multiline),

            # Literals
            (r'"(\\\\|\\"|[^"\\\n]|\\[^\n])*"', String.Double),
            (r'`[^`]*`', String.Backtick),
            (r"'(\\[^\n]+?|[^'\\\n])'", String.Char),
            (r'(\d[\d_]*\.[\d_]*|\.\d[\d_]*)([eE][+-]?\d+)?', Number.Float),
            (r'\d[\d_]*[eE][+-]?\d+', Number.Float),
            (r'0[xX][0-9a-fA-F_]+', Number.Hex),
            (r'0[bB][01_]+', Number.Bin),
            (r'0[oO][0-7_]+', Number.Oct),
            (r'\d[\d_]*', Number.Integer),

            # Keywords
            (words(('nil', 'true', 'false'), suffix=r'\b'), Keyword.Constant),
            (words(('map', 'interface'), suffix=r'\b'), Keyword.Type),
            (words(('var', 'if', 'else', 'import'), suffix=r'\b'), Keyword),
            (words(UNSUPPORTED_KEYWORDS, suffix=r'\b'), Keyword.Reserved),

            # Operators (longest first)
            (r':=|\.\.\.|&&|\|\||==|!=|<=|>=|<<|>>|&\^|\+\+|--|<-|[-+*/%<>!=&|^]', Operator),
            (r'[()\[\]{},.;:]', Punctuation),

            (r'[A-Za-z_]\w*', Name),
        ],
    }


@dataclass
class FmToken:
    """
    Token handed to the FrontmatterParser

    kind is one of: name, keyword, constant, reserved, int, float, string,
    char, op, punct, newline, eof.
    """
    kind: str
    value: str
    line: int
    column: int

    def is_(self, kind: str, value: str = None) -> bool:
        return self.kind == kind and (value is None or self.value == value)


def _kind_get(tokentype) -> str:
    if tokentype is Newline:
        return 'newline'
    if tokentype in Keyword.Constant:
        return 'constant'
    if tokentype in Keyword.Reserved:
        return 'reserved'
    if tokentype in Keyword:
        return 'keyword'
    if tokentype in Number.Float:
        return 'float'
    if tokentype in Number:
        return 'int'
    if tokentype in String.Char:
        return 'char'
    if tokentype in String:
        return 'string'
    if tokentype in Operator:
        return 'op'
    if tokentype in Punctuation:
        return 'punct'
    if tokentype in Name:
        return 'name'
    return 'skip'


def tokens_make(code: str) -> List[FmToken]:
    """
    Tokenize frontmatter code for the parser

    Whitespace and comments are dropped; newlines are kept because they
    terminate statements. A trailing eof token is always appended.

    Args:
        code: Frontmatter source text

    Returns:
        List of FmToken with 1-based line/column positions

    Raises:
        ParseError: On the first character the lexer cannot classify
    """
    line_starts = [0]
    for index, char in enumerate(code):
        if char == '\n':
            line_starts.append(index + 1)

    def position(offset: int):
        line = bisect.bisect_right(line_starts, offset)
        return line, offset - line_starts[line - 1] + 1

    tokens: List[FmToken] = []
    for offset, tokentype, value in FrontmatterLexer().get_tokens_unprocessed(code):
        if tokentype in Error:
            line, column = position(offset)
            raise ParseError(f"unexpected character {value!r}", line, column)
        kind = _kind_get(tokentype)
        if kind == 'skip':
            continue
        line, column = position(offset)
        tokens.append(FmToken(kind, value, line, column))

    line, column = position(len(code))
    tokens.append(FmToken('eof', '', line, column))
    return tokens
