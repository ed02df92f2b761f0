from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence

from .errors import RuleConflict
from .options import CompressionOptions
from .scope import plan_renames
from .syntax import asi_boundary
from .tokens import Language, Token, TokenKind, TokenStream

logger = logging.getLogger(__name__)

_SPACE = " "
_NEWLINE = "\n"


@dataclass(frozen=True)
class Edit:
    """Replace tokens[start:end] with ``tokens``. start == end inserts."""

    start: int
    end: int
    tokens: tuple[Token, ...] = ()


def apply_edits(stream: TokenStream, edits: Iterable[Edit], rule: str = "rule") -> TokenStream:
    ordered = sorted(set(edits), key=lambda e: (e.start, e.end))
    if not ordered:
        return stream
    out: list[Token] = []
    cursor = 0
    last_start = -1
    for edit in ordered:
        if edit.start > edit.end or edit.end > len(stream):
            raise ValueError(f"{rule}: edit {edit.start}..{edit.end} outside stream of {len(stream)} tokens")
        if edit.start < cursor or edit.start == last_start:
            raise RuleConflict(rule, edit.start, edit.end)
        out.extend(stream[cursor:edit.start])
        out.extend(edit.tokens)
        cursor = edit.end
        last_start = edit.start
    out.extend(stream[cursor:])
    return stream.replace(out)


class RewriteRule:
    """A single rewrite over a token stream.

    Subclasses yield Edit objects from ``edits``; ``transform`` applies them
    and refuses overlapping ones.
    """

    name = "rule"
    languages = frozenset(Language)

    def enabled(self, options: CompressionOptions) -> bool:
        return True

    def applies_to(self, stream: TokenStream, options: CompressionOptions) -> bool:
        return stream.language in self.languages and self.enabled(options)

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        raise NotImplementedError

    def transform(self, stream: TokenStream, options: CompressionOptions) -> TokenStream:
        return apply_edits(stream, self.edits(stream, options), self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _preserved(token: Token) -> bool:
    return token.text.startswith(("/*!", "#!"))


class StripComments(RewriteRule):
    name = "strip-comments"

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        for i, token in enumerate(stream):
            if token.kind is not TokenKind.COMMENT or _preserved(token):
                continue
            if stream.language is Language.JS and ("\n" in token.text or "\r" in token.text):
                # a multi-line comment counts as a line terminator
                yield Edit(i, i + 1, (Token(TokenKind.NEWLINE, _NEWLINE, token.line, token.column),))
            else:
                yield Edit(i, i + 1)


_LAYOUT = (TokenKind.WHITESPACE, TokenKind.NEWLINE)

# CSS punctuation that never needs surrounding whitespace
_CSS_TIGHT = frozenset({"{", "}", ";", ","})
_CSS_TIGHT_DECLARATION = _CSS_TIGHT | {":", "!"}
_CSS_TIGHT_SELECTOR = _CSS_TIGHT | {">", "+", "~"}
# At-rules whose block holds rules rather than declarations
_CSS_NESTING_AT_RULES = frozenset(
    {"@media", "@supports", "@document", "@-moz-document", "@layer", "@container", "@scope", "@starting-style"}
)
_KEYFRAMES = re.compile(r"@(-\w+-)?keyframes$", re.I)


class CollapseWhitespace(RewriteRule):
    name = "collapse-whitespace"

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        if stream.language is Language.JS:
            return self._js(stream)
        return self._css(stream)

    @staticmethod
    def _runs(stream: TokenStream) -> Iterator[tuple[int, int]]:
        i, n = 0, len(stream)
        while i < n:
            if stream[i].kind not in _LAYOUT:
                i += 1
                continue
            j = i
            while j < n and stream[j].kind in _LAYOUT:
                j += 1
            yield i, j
            i = j

    def _js(self, stream: TokenStream) -> Iterator[Edit]:
        prev: Optional[Token] = None
        cursor = 0
        for start, end in self._runs(stream):
            for token in stream[cursor:start]:
                if token.significant:
                    prev = token
            cursor = end
            j = end
            while j < len(stream) and not stream[j].significant:
                j += 1
            nxt = stream[j] if j < len(stream) else None
            run = stream[start:end]
            newline = next((t for t in run if t.kind is TokenKind.NEWLINE), None)
            if newline is not None and nxt is not None and asi_boundary(prev, nxt):
                if len(run) == 1 and newline.text == _NEWLINE:
                    continue
                yield Edit(start, end, (newline.with_text(_NEWLINE),))
            else:
                yield Edit(start, end)

    def _css(self, stream: TokenStream) -> Iterator[Edit]:
        runs = dict(self._runs(stream))
        contexts = ["rules"]
        prelude: Optional[Token] = None
        prev: Optional[Token] = None
        i = 0
        while i < len(stream):
            token = stream[i]
            if i in runs:
                end = runs[i]
                nxt = stream[end] if end < len(stream) else None
                if self._css_space_needed(prev, nxt, contexts[-1]):
                    if end - i != 1 or token.text != _SPACE:
                        yield Edit(i, end, (Token(TokenKind.WHITESPACE, _SPACE, token.line, token.column),))
                else:
                    yield Edit(i, end)
                i = end
                continue
            if token.kind is TokenKind.STRING and token.text[:4].lower() == "url(":
                trimmed = self._trim_url(token.text)
                if trimmed != token.text:
                    yield Edit(i, i + 1, (token.with_text(trimmed),))
            if token.kind is TokenKind.PUNCTUATION and token.text == "{":
                at_rule = prelude.text.lower() if prelude is not None and prelude.kind is TokenKind.KEYWORD else ""
                nested = at_rule in _CSS_NESTING_AT_RULES or bool(_KEYFRAMES.match(at_rule))
                contexts.append("rules" if nested else "declarations")
                prelude = None
            elif token.kind is TokenKind.PUNCTUATION and token.text in ("}", ";"):
                if token.text == "}" and len(contexts) > 1:
                    contexts.pop()
                prelude = None
            elif prelude is None and token.significant:
                prelude = token
            prev = token
            i += 1

    @staticmethod
    def _trim_url(text: str) -> str:
        body = text[4:-1].strip()
        if not body or body.endswith("\\"):
            return text
        return text[:4] + body + ")"

    @staticmethod
    def _css_space_needed(prev: Optional[Token], nxt: Optional[Token], context: str) -> bool:
        if prev is None or nxt is None:
            return False
        if prev.kind is TokenKind.COMMENT or nxt.kind is TokenKind.COMMENT:
            return False
        tight = _CSS_TIGHT_DECLARATION if context == "declarations" else _CSS_TIGHT_SELECTOR
        if prev.kind in (TokenKind.PUNCTUATION, TokenKind.OPERATOR) and prev.text in tight | {"(", ":"}:
            # a space after ":" only matters before it in a selector
            return False
        if nxt.kind in (TokenKind.PUNCTUATION, TokenKind.OPERATOR) and nxt.text in tight | {")"}:
            return False
        return True


# Operators binding looser than "+", so "a" + "b" next to them groups the same
_LOOSE_OPERATORS = frozenset(
    {
        "=", "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=", "&=", "|=", "^=", "&&=", "||=", "??=",
        "==", "!=", "===", "!==", "<", ">", "<=", ">=", "<<", ">>", ">>>", "&&", "||", "??", "&", "|", "^",
        "?", "=>", "...",
    }
)
_OPEN_CONTEXT = frozenset({"(", "[", "{", "}", ",", ";", ":"})
_CLOSE_CONTEXT = frozenset({")", "]", "}", ",", ";", ":"})
_OPERAND_END = frozenset({")", "]"})
_OCTAL_TAIL = re.compile(r"(?<!\\)(?:\\\\)*\\[0-7]{1,2}$")


def _quoted(token: Token) -> bool:
    return token.kind is TokenKind.STRING and len(token.text) >= 2 and token.text[0] in "'\"" and token.text[-1] == token.text[0]


class JoinStringLiterals(RewriteRule):
    """Fold ``"a" + "b"`` into ``"ab"`` where grouping cannot change."""

    name = "join-strings"
    languages = frozenset({Language.JS})

    def enabled(self, options: CompressionOptions) -> bool:
        return not options.preserve_strings

    @staticmethod
    def _safe_before(code: Sequence[Token], k: int) -> bool:
        if k < 0:
            return True
        token = code[k]
        if token.kind is TokenKind.PUNCTUATION:
            return token.text in _OPEN_CONTEXT
        if token.kind is TokenKind.OPERATOR:
            if token.text == "+":
                # binary plus only: its left side has to be a complete operand
                left = code[k - 1] if k else None
                return left is not None and (
                    left.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER, TokenKind.STRING, TokenKind.REGEX)
                    or (left.kind is TokenKind.PUNCTUATION and left.text in _OPERAND_END)
                )
            return token.text in _LOOSE_OPERATORS
        if token.kind is TokenKind.KEYWORD:
            return token.text in ("return", "case", "throw", "in", "instanceof", "else", "do", "yield")
        return False

    @staticmethod
    def _safe_after(code: Sequence[Token], k: int) -> bool:
        if k >= len(code):
            return True
        token = code[k]
        if token.kind is TokenKind.PUNCTUATION:
            return token.text in _CLOSE_CONTEXT
        if token.kind is TokenKind.OPERATOR:
            return token.text in _LOOSE_OPERATORS or token.text in ("+", "-")
        if token.kind is TokenKind.KEYWORD:
            return token.text in ("in", "instanceof")
        return False

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        index = [i for i, t in enumerate(stream) if t.significant]
        code = [stream[i] for i in index]
        k = 0
        while k < len(code):
            first = code[k]
            if not _quoted(first) or not self._safe_before(code, k - 1):
                k += 1
                continue
            quote = first.text[0]
            parts = [first.text[1:-1]]
            last = k
            while (
                last + 2 < len(code)
                and code[last + 1].is_(TokenKind.OPERATOR, "+")
                and _quoted(code[last + 2])
                and code[last + 2].text[0] == quote
            ):
                body = code[last + 2].text[1:-1]
                if _OCTAL_TAIL.search(parts[-1]) and body[:1].isdigit():
                    break
                parts.append(body)
                last += 2
            # drop trailing pieces until what follows cannot bind tighter
            while last > k and not self._safe_after(code, last + 1):
                parts.pop()
                last -= 2
            if last > k:
                joined = first.with_text(quote + "".join(parts) + quote)
                yield Edit(index[k], index[last] + 1, (joined,))
            k = last + 1


class RenameLocals(RewriteRule):
    name = "rename-locals"
    languages = frozenset({Language.JS})

    def enabled(self, options: CompressionOptions) -> bool:
        return options.munge_identifiers

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        for i, new_name in sorted(plan_renames(stream).items()):
            yield Edit(i, i + 1, (stream[i].with_text(new_name),))


class RemoveRedundantSeparators(RewriteRule):
    name = "remove-separators"

    def edits(self, stream: TokenStream, options: CompressionOptions) -> Iterator[Edit]:
        index = [i for i, t in enumerate(stream) if t.significant]
        code = [stream[i] for i in index]
        js = stream.language is Language.JS

        depth = []
        level = 0
        for token in code:
            if token.kind is TokenKind.PUNCTUATION and token.text == ")":
                level -= 1
            depth.append(level)
            if token.kind is TokenKind.PUNCTUATION and token.text == "(":
                level += 1

        kept_next: Optional[Token] = None
        for k in range(len(code) - 1, -1, -1):
            token = code[k]
            drop = False
            if token.kind is TokenKind.PUNCTUATION and token.text == ";":
                prev = code[k - 1] if k else None
                if not js and kept_next is not None and kept_next.is_(TokenKind.PUNCTUATION, "}"):
                    drop = not options.preserve_semi
                if not drop and not options.preserve_semi and prev is not None and depth[k] == 0 and prev.kind is TokenKind.PUNCTUATION:
                    drop = prev.text == ";" or (not js and prev.text == "{")
            elif js and token.kind is TokenKind.PUNCTUATION and token.text == ",":
                drop = kept_next is not None and kept_next.kind is TokenKind.PUNCTUATION and kept_next.text in ("}", ")")
            if drop:
                yield Edit(index[k], index[k] + 1)
            else:
                kept_next = token


DEFAULT_RULES: tuple[RewriteRule, ...] = (
    StripComments(),
    CollapseWhitespace(),
    JoinStringLiterals(),
    RenameLocals(),
    RemoveRedundantSeparators(),
)


def apply(
    stream: TokenStream,
    rules: Sequence[RewriteRule] = DEFAULT_RULES,
    options: Optional[CompressionOptions] = None,
) -> TokenStream:
    """Run ``rules`` in order, each over the previous one's output."""
    options = options or CompressionOptions()
    for rule in rules:
        if not rule.applies_to(stream, options):
            logger.debug("%s: skipped for %s", rule.name, stream.language.value)
            continue
        before = len(stream)
        stream = rule.transform(stream, options)
        logger.debug("%s: %d -> %d tokens", rule.name, before, len(stream))
    return stream
