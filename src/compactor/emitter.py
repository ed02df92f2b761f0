from __future__ import annotations

from typing import Optional

from .lexer import JS_OPERATORS
from .options import CompressionOptions
from .scope import statement_ends
from .tokens import Language, Token, TokenKind, TokenStream

_JOINABLE = frozenset(JS_OPERATORS) | {"."}
_LAYOUT = (TokenKind.WHITESPACE, TokenKind.NEWLINE)


def _word_char(c: str) -> bool:
    return c.isalnum() or c in "_$\\" or ord(c) > 127


def _css_name_char(c: str) -> bool:
    return c.isalnum() or c in "_-\\" or ord(c) > 127


def _extends_operator(left: str, right: str) -> bool:
    """Whether the lexer would swallow the start of ``right`` into ``left``."""
    joined = left + right[:1]
    return any(op.startswith(joined) for op in _JOINABLE if len(op) > len(left))


def needs_space(left: Token, right: Token, language: Language) -> bool:
    """Whether writing the two tokens back to back would lex differently."""
    a, b = left.text, right.text
    if not a or not b:
        return False
    if language is Language.CSS:
        if left.kind is TokenKind.OPERATOR and a in ("-", "+") and right.kind is TokenKind.NUMBER:
            # a sign never fuses with the number after it
            return False
        if _css_name_char(a[-1]) and _css_name_char(b[0]):
            return True
        if a[-1].isdigit() and right.kind is TokenKind.NUMBER and b[0] == ".":
            return True
        return a[-1] == "/" and b[0] == "*"
    if _word_char(a[-1]) and _word_char(b[0]):
        return True
    if left.kind is TokenKind.REGEX and _word_char(b[0]):
        return True
    if left.kind is TokenKind.NUMBER and b[0] == "." and a.isdigit():
        return True
    if a[-1] == "/" and b[0] in "/*":
        return True
    if a[-1] in "+-" and b[0] == a[-1]:
        return True
    if (a[-1], b[0]) in (("<", "!"), ("-", ">")):
        return True
    if left.kind in (TokenKind.OPERATOR, TokenKind.PUNCTUATION) and right.kind in (TokenKind.OPERATOR, TokenKind.PUNCTUATION):
        return _extends_operator(a, b)
    return False


def _rule_end(token: Token, depth: int) -> bool:
    return token.kind is TokenKind.PUNCTUATION and token.text == "}" and not depth


def emit(stream: TokenStream, options: Optional[CompressionOptions] = None) -> str:
    """Write ``stream`` back out as compact text.

    Layout tokens shrink to a single space or newline; a space is added
    only where two neighbouring tokens would otherwise fuse. With
    ``line_break_column`` set, a newline follows the first statement or
    rule boundary at or past that column. In JavaScript only a ``;`` or
    ``}`` that completes a statement counts as one.
    """
    options = options or CompressionOptions()
    language = stream.language
    limit = options.line_break_column
    out: list[str] = []
    column = 0
    depth = 0
    prev: Optional[Token] = None
    line_ended = False
    ends = statement_ends(stream) if limit is not None and language is Language.JS else set()

    def write(text: str) -> None:
        nonlocal column
        out.append(text)
        nl = text.rfind("\n")
        column = len(text) - nl - 1 if nl >= 0 else column + len(text)

    for i, token in enumerate(stream):
        if token.kind in _LAYOUT:
            text = "\n" if token.kind is TokenKind.NEWLINE or line_ended else " "
            line_ended = False
            write(text)
            prev = token
            continue
        if line_ended:
            write("\n")
            line_ended = False
        elif prev is not None and prev.kind not in _LAYOUT and needs_space(prev, token, language):
            write(" ")
        write(token.text)
        prev = token

        if token.kind is TokenKind.COMMENT and language is Language.JS and not token.text.startswith("/*"):
            line_ended = True
        if token.kind is TokenKind.PUNCTUATION:
            if token.text in ("(", "["):
                depth += 1
            elif token.text in (")", "]") and depth:
                depth -= 1
        if limit is not None and column >= limit and (i in ends if language is Language.JS else _rule_end(token, depth)):
            line_ended = True

    return "".join(out).strip()
