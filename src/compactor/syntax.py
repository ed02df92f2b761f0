from __future__ import annotations

from typing import Optional, Sequence

from .tokens import Token, TokenKind

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = frozenset(OPENERS.values())

# Keywords after which a statement may end on a line break
_ENDING_KEYWORDS = frozenset(
    {"this", "super", "null", "true", "false", "return", "break", "continue", "yield", "debugger"}
)
_STARTING_OPERATORS = frozenset({"+", "-", "++", "--", "!", "~"})


def opens_template(token: Token) -> bool:
    return token.kind is TokenKind.STRING and token.text.endswith("${")


def closes_template(token: Token) -> bool:
    return token.kind is TokenKind.STRING and token.text.startswith("}")


def is_opener(token: Token) -> bool:
    if token.kind is TokenKind.PUNCTUATION:
        return token.text in OPENERS
    return opens_template(token)


def is_closer(token: Token) -> bool:
    if token.kind is TokenKind.PUNCTUATION:
        return token.text in CLOSERS
    return closes_template(token)


def match_brackets(code: Sequence[Token]) -> Optional[dict[int, int]]:
    """
    Map the index of every opening bracket in ``code`` to its closing one.
    Template pieces count as brackets: ``\\`a${`` opens, ``}b\\``` closes and
    ``}c${`` does both. Returns None when the brackets do not balance.
    """
    closing: dict[int, int] = {}
    stack: list[int] = []
    for k, token in enumerate(code):
        if is_closer(token):
            if not stack:
                return None
            opener = code[stack[-1]]
            if token.kind is TokenKind.PUNCTUATION:
                if opener.kind is not TokenKind.PUNCTUATION or OPENERS[opener.text] != token.text:
                    return None
            elif opener.kind is TokenKind.PUNCTUATION:
                return None
            closing[stack.pop()] = k
        if is_opener(token):
            stack.append(k)
    if stack:
        return None
    return closing


def can_end_statement(token: Token) -> bool:
    kind = token.kind
    if kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.REGEX):
        return True
    if kind is TokenKind.STRING:
        return not opens_template(token)
    if kind is TokenKind.KEYWORD:
        return token.text in _ENDING_KEYWORDS
    if kind is TokenKind.PUNCTUATION:
        return token.text in (")", "]", "}")
    if kind is TokenKind.OPERATOR:
        return token.text in ("++", "--")
    return False


def can_start_statement(token: Token) -> bool:
    kind = token.kind
    if kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.REGEX, TokenKind.KEYWORD):
        return True
    if kind is TokenKind.STRING:
        return not closes_template(token)
    if kind is TokenKind.PUNCTUATION:
        return token.text in ("(", "[", "{")
    if kind is TokenKind.OPERATOR:
        return token.text in _STARTING_OPERATORS
    return False


def asi_boundary(prev: Optional[Token], token: Token) -> bool:
    """True when a line break between the two tokens may end a statement."""
    return prev is not None and can_end_statement(prev) and can_start_statement(token)
