from __future__ import annotations

import re
from typing import Iterator, Union

from .errors import LexError
from .tokens import Language, Token, TokenKind, TokenStream

JS_KEYWORDS = frozenset(
    {
        "await", "break", "case", "catch", "class", "const", "continue",
        "debugger", "default", "delete", "do", "else", "enum", "export",
        "extends", "false", "finally", "for", "function", "if", "import",
        "in", "instanceof", "let", "new", "null", "return", "super",
        "switch", "this", "throw", "true", "try", "typeof", "var", "void",
        "while", "with", "yield",
    }
)

JS_OPERATORS = (
    ">>>=", "...", "===", "!==", "**=", "<<=", ">>=", ">>>", "&&=", "||=",
    "??=", "=>", "==", "!=", "<=", ">=", "&&", "||", "??", "?.", "++", "--",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "**", "<<", ">>",
    "+", "-", "*", "/", "%", "&", "|", "^", "!", "~", "<", ">", "=", "?",
)

CSS_OPERATORS = ("~=", "|=", "^=", "$=", "*=", "||", ">", "+", "~", "*", "/", "=", "|", "!", "%", "&", "-", "<", "$", "^")

PUNCTUATION = frozenset("{}()[];,:.")

_LINE_BREAK = re.compile(r"\r\n|[\n\r\u2028\u2029]")
_WHITESPACE = re.compile(r"[ \t\v\f\u00a0\ufeff\u1680\u2000-\u200a\u202f\u205f\u3000]+")

_JS_IDENT = re.compile(r"#?(?:[^\W\d]|\$)[\w$\u200c\u200d]*")
_JS_NUMBER = re.compile(
    r"""
    0[xX][0-9a-fA-F_]+n?
  | 0[oO][0-7_]+n?
  | 0[bB][01_]+n?
  | (?:\d[\d_]*\.?[\d_]*|\.\d[\d_]*)(?:[eE][+-]?\d[\d_]*)?n?
    """,
    re.X,
)
_JS_OPERATOR = re.compile("|".join(re.escape(op) for op in JS_OPERATORS))
_REGEX_FLAGS = re.compile(r"[\w$]*")

_CSS_IDENT = re.compile(r"(?:--|-?(?:[^\W\d]|\\[^\n\r]))(?:[\w\-]|\\[^\n\r])*")
_CSS_NUMBER = re.compile(r"(?:\d*\.\d+|\d+)(?:[eE][+-]?\d+)?(?:%|[^\W\d][\w\-]*)?")
_CSS_HASH = re.compile(r"#(?:[\w\-]|\\[^\n\r])+")
_CSS_AT = re.compile(r"@-?(?:[^\W\d]|-)[\w\-]*")
_CSS_OPERATOR = re.compile("|".join(re.escape(op) for op in CSS_OPERATORS))

# Previous tokens after which a `/` divides instead of opening a regex
_VALUE_KEYWORDS = frozenset({"this", "super", "null", "true", "false"})
# Keywords whose parenthesised head is followed by a statement, not an operand
_HEAD_KEYWORDS = ("if", "while", "for", "with")
_DIGITS = "0123456789"


def _advance(line: int, column: int, text: str) -> tuple[int, int]:
    breaks = list(_LINE_BREAK.finditer(text))
    if not breaks:
        return line, column + len(text)
    return line + len(breaks), len(text) - breaks[-1].end() + 1


class _Scanner:
    """Shared cursor bookkeeping for the JS and CSS scanners."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.length = len(source)
        self.pos = 0
        self.line = 1
        self.column = 1

    def peek(self, offset: int = 0) -> str:
        p = self.pos + offset
        return self.source[p] if p < self.length else ""

    def startswith(self, prefix: str) -> bool:
        return self.source.startswith(prefix, self.pos)

    def emit(self, kind: TokenKind, end: int) -> Token:
        text = self.source[self.pos:end]
        token = Token(kind, text, self.line, self.column)
        self.line, self.column = _advance(self.line, self.column, text)
        self.pos = end
        return token

    def fail(self, message: str) -> LexError:
        return LexError(message, self.line, self.column)

    def layout(self) -> Token | None:
        m = _WHITESPACE.match(self.source, self.pos)
        if m:
            return self.emit(TokenKind.WHITESPACE, m.end())
        m = _LINE_BREAK.match(self.source, self.pos)
        if m:
            return self.emit(TokenKind.NEWLINE, m.end())
        return None

    def block_comment(self) -> Token:
        end = self.source.find("*/", self.pos + 2)
        if end < 0:
            raise self.fail("unterminated comment")
        return self.emit(TokenKind.COMMENT, end + 2)

    def quoted(self, quote: str, allow_breaks: bool = False) -> int:
        """Return the index just past the closing quote starting at ``pos``."""
        src = self.source
        i = self.pos + 1
        while i < self.length:
            c = src[i]
            if c == quote:
                return i + 1
            if c == "\\":
                i += 3 if src.startswith("\r\n", i + 1) else 2
                continue
            if c in "\n\r" and not allow_breaks:
                break
            i += 1
        raise self.fail("unterminated string literal")


class _JSScanner(_Scanner):
    def __init__(self, source: str) -> None:
        super().__init__(source)
        self.prev: Token | None = None
        # "{" for plain braces, "${" for open template substitutions
        self.braces: list[str] = []
        # one flag per open "(": whether it follows if/while/for/with
        self.parens: list[bool] = []
        self.closed_head = False

    def regex_allowed(self) -> bool:
        prev = self.prev
        if prev is None:
            return True
        if prev.kind is TokenKind.STRING:
            return prev.text.endswith("${")
        if prev.kind in (TokenKind.NUMBER, TokenKind.REGEX, TokenKind.IDENTIFIER):
            return False
        if prev.kind is TokenKind.KEYWORD:
            return prev.text not in _VALUE_KEYWORDS
        if prev.kind is TokenKind.PUNCTUATION:
            if prev.text == ")":
                return self.closed_head
            return prev.text != "]"
        return prev.text not in ("++", "--")

    def template(self) -> Token:
        """Scan a template piece starting at a backtick or a closing ``}``."""
        src = self.source
        i = self.pos + 1
        while i < self.length:
            c = src[i]
            if c == "\\":
                i += 2
                continue
            if c == "`":
                return self.emit(TokenKind.STRING, i + 1)
            if c == "$" and src.startswith("{", i + 1):
                self.braces.append("${")
                return self.emit(TokenKind.STRING, i + 2)
            i += 1
        raise self.fail("unterminated template literal")

    def regex(self) -> Token:
        src = self.source
        i = self.pos + 1
        in_class = False
        while i < self.length:
            c = src[i]
            if c == "\\":
                i += 2
                continue
            if c in "\n\r\u2028\u2029":
                break
            if c == "[":
                in_class = True
            elif c == "]":
                in_class = False
            elif c == "/" and not in_class:
                m = _REGEX_FLAGS.match(src, i + 1)
                return self.emit(TokenKind.REGEX, m.end())
            i += 1
        raise self.fail("unterminated regular expression")

    def next_token(self) -> Token:
        token = self.layout()
        if token is not None:
            return token
        src, pos = self.source, self.pos
        c = src[pos]
        if pos == 0 and src.startswith("#!"):
            m = _LINE_BREAK.search(src)
            return self.emit(TokenKind.COMMENT, m.start() if m else self.length)
        if c == "/" and self.peek(1) == "/":
            m = _LINE_BREAK.search(src, pos)
            return self.emit(TokenKind.COMMENT, m.start() if m else self.length)
        if c == "/" and self.peek(1) == "*":
            return self.block_comment()
        if c in "'\"":
            return self.emit(TokenKind.STRING, self.quoted(c))
        if c == "`":
            return self.template()
        if c == "}" and self.braces and self.braces[-1] == "${":
            self.braces.pop()
            return self.template()
        if c == "/" and self.regex_allowed():
            return self.regex()
        if c in _DIGITS or (c == "." and self.peek(1) in _DIGITS and self.peek(1)):
            m = _JS_NUMBER.match(src, pos)
            return self.emit(TokenKind.NUMBER, m.end())
        m = _JS_IDENT.match(src, pos)
        if m:
            kind = TokenKind.KEYWORD if m.group() in JS_KEYWORDS else TokenKind.IDENTIFIER
            return self.emit(kind, m.end())
        if c in PUNCTUATION:
            if c == "{":
                self.braces.append("{")
            elif c == "}" and self.braces:
                self.braces.pop()
            elif c == "(":
                self.parens.append(self.prev is not None and self.prev.is_(TokenKind.KEYWORD, *_HEAD_KEYWORDS))
            elif c == ")":
                self.closed_head = self.parens.pop() if self.parens else False
            if c == "." and self.startswith("..."):
                return self.emit(TokenKind.OPERATOR, pos + 3)
            return self.emit(TokenKind.PUNCTUATION, pos + 1)
        m = _JS_OPERATOR.match(src, pos)
        if m:
            end = m.end()
            if m.group() == "?." and self.peek(2).isdigit():
                end = pos + 1
            return self.emit(TokenKind.OPERATOR, end)
        return self.emit(TokenKind.PUNCTUATION, pos + 1)

    def __iter__(self) -> Iterator[Token]:
        while self.pos < self.length:
            token = self.next_token()
            if token.significant:
                self.prev = token
            yield token
        if self.braces and "${" in self.braces:
            raise self.fail("unterminated template literal")


class _CSSScanner(_Scanner):
    def url(self) -> Token | None:
        """Scan an unquoted ``url(...)`` as one string token."""
        i = self.pos + 4
        while i < self.length and self.source[i] in " \t\n\r\f":
            i += 1
        if i < self.length and self.source[i] in "'\"":
            return None
        while i < self.length:
            c = self.source[i]
            if c == "\\":
                i += 2
                continue
            if c == ")":
                return self.emit(TokenKind.STRING, i + 1)
            i += 1
        raise self.fail("unterminated url()")

    def next_token(self) -> Token:
        token = self.layout()
        if token is not None:
            return token
        src, pos = self.source, self.pos
        c = src[pos]
        if c == "/" and self.peek(1) == "*":
            return self.block_comment()
        if c in "'\"":
            return self.emit(TokenKind.STRING, self.quoted(c, allow_breaks=False))
        if src.startswith("<!--", pos):
            return self.emit(TokenKind.COMMENT, pos + 4)
        if src.startswith("-->", pos):
            return self.emit(TokenKind.COMMENT, pos + 3)
        if c in _DIGITS or (c == "." and self.peek(1) in _DIGITS and self.peek(1)):
            m = _CSS_NUMBER.match(src, pos)
            return self.emit(TokenKind.NUMBER, m.end())
        m = _CSS_IDENT.match(src, pos)
        if m:
            if m.group().lower() == "url" and src.startswith("(", m.end()):
                token = self.url()
                if token is not None:
                    return token
            return self.emit(TokenKind.IDENTIFIER, m.end())
        if c == "#":
            m = _CSS_HASH.match(src, pos)
            if m:
                return self.emit(TokenKind.IDENTIFIER, m.end())
        if c == "@":
            m = _CSS_AT.match(src, pos)
            if m:
                return self.emit(TokenKind.KEYWORD, m.end())
        if c in PUNCTUATION:
            return self.emit(TokenKind.PUNCTUATION, pos + 1)
        m = _CSS_OPERATOR.match(src, pos)
        if m:
            return self.emit(TokenKind.OPERATOR, m.end())
        return self.emit(TokenKind.PUNCTUATION, pos + 1)

    def __iter__(self) -> Iterator[Token]:
        while self.pos < self.length:
            yield self.next_token()


def iter_tokens(source: str, language: Union[Language, str]) -> Iterator[Token]:
    """Lazily split ``source`` into tokens.

    The concatenated token texts always reproduce ``source`` exactly.
    Raises LexError on an unterminated literal or comment; tokens before
    the error have already been produced by then.
    """
    language = Language.parse(language)
    if language is Language.JS:
        return iter(_JSScanner(source))
    return iter(_CSSScanner(source))


def tokenize(source: str, language: Union[Language, str]) -> TokenStream:
    language = Language.parse(language)
    return TokenStream(language, iter_tokens(source, language))
