"""
Scope analysis behind local identifier renaming.

Works on the significant tokens of a JavaScript stream. There is no syntax
tree: the analysis recognises just enough structure (functions, blocks,
object literals, class bodies and binding patterns) to decide which
identifier occurrences belong to which binding, and which bindings may be
given a shorter name without changing what any occurrence refers to.
"""

from __future__ import annotations

import bisect
import itertools
import logging
import string
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .lexer import JS_KEYWORDS
from .syntax import can_end_statement, closes_template, is_closer, is_opener, match_brackets, opens_template
from .tokens import Language, Token, TokenKind, TokenStream

logger = logging.getLogger(__name__)

# Identifiers that behave like keywords in some positions; never renamed
CONTEXTUAL = frozenset({"of", "async", "get", "set", "static", "from", "as", "arguments", "eval"})

RESERVED = JS_KEYWORDS | CONTEXTUAL | frozenset(
    {"undefined", "NaN", "Infinity", "implements", "interface", "package", "private", "protected", "public"}
)

_BLOCK_KEYWORDS = frozenset({"else", "do", "try", "finally", "this", "super", "null", "true", "false"})
_KEY_MODIFIERS = frozenset({"get", "set", "async", "static"})
_KEY_KINDS = (TokenKind.IDENTIFIER, TokenKind.KEYWORD, TokenKind.STRING, TokenKind.NUMBER)


def short_names() -> Iterator[str]:
    """Yield a, b, ..., z, aa, ab, ... forever."""
    for size in itertools.count(1):
        for letters in itertools.product(string.ascii_lowercase, repeat=size):
            yield "".join(letters)


@dataclass(eq=False)
class Scope:
    kind: str  # "global", "function" or "block"
    start: int
    end: int
    parent: Optional["Scope"] = None
    declared: dict[str, int] = field(default_factory=dict)
    pinned: set[str] = field(default_factory=set)
    tainted: bool = False
    renames: dict[str, str] = field(default_factory=dict)

    def declare(self, name: str, pinned: bool = False) -> None:
        self.declared.setdefault(name, len(self.declared))
        if pinned or name in CONTEXTUAL:
            self.pinned.add(name)

    def lookup(self, name: str) -> Optional["Scope"]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.declared:
                return scope
            scope = scope.parent
        return None

    def ancestors(self) -> Iterator["Scope"]:
        scope = self.parent
        while scope is not None:
            yield scope
            scope = scope.parent

    def taint(self) -> None:
        self.tainted = True
        for scope in self.ancestors():
            scope.tainted = True

    @property
    def munged(self) -> bool:
        """Whether bindings of this scope may be renamed at all."""
        if self.kind == "global" or self.tainted:
            return False
        if self.kind == "function":
            return True
        return any(s.kind == "function" for s in self.ancestors())

    def renamable(self, name: str) -> bool:
        return self.munged and name not in self.pinned

    def final_name(self, name: str) -> str:
        return self.renames.get(name, name)


@dataclass
class _Frame:
    kind: str  # "block", "object", "class", "paren", "bracket" or "template"
    opener: int
    ternary: int = 0
    expect_key: bool = False


class ScopeAnalysis:
    def __init__(self, stream: TokenStream) -> None:
        self.index = [i for i, t in enumerate(stream) if t.significant]
        self.code = [stream[i] for i in self.index]
        self.newline_before = self._newlines(stream)
        self.closing = match_brackets(self.code)
        self.opening = {v: k for k, v in (self.closing or {}).items()}

        self.context: list[str] = []
        self.enclosing_end: list[int] = []
        self.brace_kind: dict[int, str] = {}
        self.keys: set[int] = set()
        self.shorthand: set[int] = set()
        self.ternary_colons: set[int] = set()

        self.root = Scope("global", 0, max(len(self.code) - 1, 0))
        self.scopes: list[Scope] = []
        self.scope_at: list[Scope] = []
        self.loose: set[int] = set()
        self.occurrences: list[tuple[int, Optional[Scope], str]] = []

    def _newlines(self, stream: TokenStream) -> list[bool]:
        flags: list[bool] = []
        prev = -1
        for i in self.index:
            gap = stream[prev + 1:i]
            flags.append(
                any(
                    t.kind is TokenKind.NEWLINE or (t.kind is TokenKind.COMMENT and ("\n" in t.text or "\r" in t.text))
                    for t in gap
                )
            )
            prev = i
        return flags

    @property
    def balanced(self) -> bool:
        return self.closing is not None

    def _is(self, k: int, text: str, kind: TokenKind = TokenKind.PUNCTUATION) -> bool:
        return 0 <= k < len(self.code) and self.code[k].kind is kind and self.code[k].text == text

    # -- pass 1: bracket contexts -------------------------------------------

    def _brace_kind(self, k: int, frame: _Frame) -> str:
        prev = self.code[k - 1] if k else None
        if prev is None:
            return "block"
        text = prev.text
        if prev.kind is TokenKind.PUNCTUATION:
            if text in (")", "]", ";", "{", "}"):
                return "block"
            if text == ":":
                return "object" if k - 1 in self.ternary_colons or frame.kind == "object" else "block"
            return "object"
        if prev.kind is TokenKind.OPERATOR:
            return "block" if text in ("=>", "++", "--") else "object"
        if prev.kind is TokenKind.KEYWORD:
            if text in _BLOCK_KEYWORDS:
                return "block"
            if text in ("return", "yield") and self.newline_before[k]:
                return "block"
            return "object"
        if opens_template(prev):
            return "object"
        return "block"

    def _track_key(self, k: int, frame: _Frame) -> None:
        token = self.code[k]
        nxt = self.code[k + 1] if k + 1 < len(self.code) else None
        nxt_text = nxt.text if nxt is not None and nxt.kind is not TokenKind.STRING else None
        if token.kind in _KEY_KINDS:
            if nxt_text in (":", "("):
                self.keys.add(k)
                frame.expect_key = False
            elif token.kind is TokenKind.IDENTIFIER and nxt_text in (",", "}", "="):
                self.shorthand.add(k)
                frame.expect_key = False
            elif token.text in _KEY_MODIFIERS and nxt is not None and (nxt.kind in _KEY_KINDS or nxt_text in ("[", "*")):
                self.keys.add(k)
            else:
                frame.expect_key = False
        elif token.text != "*":
            frame.expect_key = False

    def _walk(self) -> None:
        code = self.code
        last = len(code) - 1
        stack = [_Frame("block", -1)]
        class_depth: Optional[int] = None
        for k, token in enumerate(code):
            frame = stack[-1]
            self.context.append(frame.kind)
            self.enclosing_end.append(self.closing[frame.opener] if frame.opener >= 0 else last)
            text = token.text
            punct = token.kind is TokenKind.PUNCTUATION

            if frame.kind == "object" and frame.expect_key and not is_closer(token) and not (punct and text == ","):
                self._track_key(k, frame)

            if token.kind is TokenKind.KEYWORD and text == "class":
                class_depth = len(stack)
            elif token.kind is TokenKind.OPERATOR and text == "?":
                frame.ternary += 1
            elif punct and text == ":" and frame.ternary:
                frame.ternary -= 1
                self.ternary_colons.add(k)
            elif punct and text == "," and frame.kind == "object":
                frame.ternary = 0
                frame.expect_key = True

            if is_closer(token) and len(stack) > 1:
                stack.pop()
            if is_opener(token):
                if punct and text == "{":
                    if class_depth == len(stack):
                        kind = "class"
                        class_depth = None
                    else:
                        kind = self._brace_kind(k, frame)
                    self.brace_kind[k] = kind
                    stack.append(_Frame(kind, k, expect_key=kind == "object"))
                elif punct:
                    stack.append(_Frame("paren" if text == "(" else "bracket", k))
                else:
                    stack.append(_Frame("template", k))

    # -- pass 2: scopes and declarations -----------------------------------

    def _chain_end(self, k: int) -> int:
        j = self.closing[k]
        while opens_template(self.code[j]) and j in self.closing:
            j = self.closing[j]
        return j

    def _expression_end(self, m: int) -> int:
        """Index of the first token after the expression starting at ``m``."""
        code = self.code
        start, pending = m, 0
        while m < len(code):
            token = code[m]
            text = token.text
            if m > start and self.newline_before[m] and can_end_statement(code[m - 1]) and self._no_continuation(token):
                return m
            if closes_template(token) or (token.kind is TokenKind.PUNCTUATION and text in (")", "]", "}", ",", ";")):
                return m
            if is_opener(token):
                m = self._chain_end(m) + 1
                continue
            if token.kind is TokenKind.OPERATOR and text == "?":
                pending += 1
            elif token.kind is TokenKind.PUNCTUATION and text == ":":
                if not pending:
                    return m
                pending -= 1
            m += 1
        return m

    @staticmethod
    def _no_continuation(token: Token) -> bool:
        # Tokens that cannot continue an expression across a line break
        if token.kind in (TokenKind.IDENTIFIER, TokenKind.NUMBER):
            return True
        if token.kind is TokenKind.KEYWORD:
            return token.text not in ("in", "instanceof")
        if token.kind is TokenKind.STRING:
            return token.text[:1] in ("'", '"')
        return token.text in ("++", "--", "!", "~", "{")

    def _statement_position(self, k: int) -> bool:
        if k == 0:
            return True
        prev = self.code[k - 1]
        if prev.kind is TokenKind.KEYWORD:
            if prev.text in ("export", "else", "do"):
                return True
            if prev.text == "default":
                return self._is(k - 2, "export", TokenKind.KEYWORD)
        if prev.kind is TokenKind.PUNCTUATION:
            # ")" closes an if/while/for head whose body is the declaration
            if prev.text in (";", "{", "}", ")"):
                return True
            if prev.text == ":":
                return k - 1 not in self.ternary_colons and self.context[k - 1] != "object"
        return self.newline_before[k] and can_end_statement(prev)

    def _function_like(self, k: int) -> Optional[tuple[Scope, int, Optional[int], int]]:
        """Recognise a function, method, arrow, catch or for-let starting at ``k``.

        Returns (scope, params, name, body) where params is the index of the
        parameter list opener (or of a lone arrow parameter), name the index
        of a function name and body the index of the body brace (-1 if none).
        """
        code, closing = self.code, self.closing
        token = code[k]
        head = token.kind, token.text
        if head == (TokenKind.KEYWORD, "function"):
            j = k + 1
            if self._is(j, "*", TokenKind.OPERATOR):
                j += 1
            name = None
            if j < len(code) and code[j].kind is TokenKind.IDENTIFIER:
                name = j
                j += 1
            if self._is(j, "(") and self._is(closing[j] + 1, "{"):
                body = closing[j] + 1
                start = k - 1 if self._is(k - 1, "async", TokenKind.IDENTIFIER) else k
                return Scope("function", start, closing[body]), j, name, body
            return None
        if head == (TokenKind.OPERATOR, "=>") and k:
            if self._is(k - 1, ")"):
                params = start = self.opening[k - 1]
            elif code[k - 1].kind is TokenKind.IDENTIFIER:
                params = start = k - 1
            else:
                return None
            if self._is(k + 1, "{"):
                return Scope("function", start, closing[k + 1]), params, None, k + 1
            return Scope("function", start, self._expression_end(k + 1) - 1), params, None, -1
        if head == (TokenKind.KEYWORD, "catch") and self._is(k + 1, "(") and self._is(closing[k + 1] + 1, "{"):
            body = closing[k + 1] + 1
            return Scope("block", k, closing[body]), k + 1, None, body
        if head == (TokenKind.KEYWORD, "for") and self._is(k + 1, "("):
            if not (self._is(k + 2, "let", TokenKind.KEYWORD) or self._is(k + 2, "const", TokenKind.KEYWORD)):
                return None
            close = closing[k + 1]
            if self._is(close + 1, "{"):
                return Scope("block", k, closing[close + 1]), -1, None, -1
            self.loose.add(k)
            return Scope("block", k, self.enclosing_end[k]), -1, None, -1
        if self.context[k] in ("object", "class") and self._is(k + 1, "(") and self._is(closing[k + 1] + 1, "{"):
            if (token.kind in _KEY_KINDS or self._is(k, "]")) and not self._is(k - 1, "."):
                body = closing[k + 1] + 1
                start = self.opening[k] if self._is(k, "]") else k
                return Scope("function", start, closing[body]), k + 1, None, body
        return None

    def _build_scopes(self) -> None:
        bodies: set[int] = set()
        found: list[tuple[Scope, int, Optional[int], int]] = []
        for k in range(len(self.code)):
            hit = self._function_like(k)
            if hit is not None:
                found.append(hit)
                bodies.add(hit[3])
            elif self.brace_kind.get(k) == "block" and k not in bodies:
                self.scopes.append(Scope("block", k, self.closing[k]))
        self.scopes.extend(hit[0] for hit in found)
        self.scopes.sort(key=lambda s: (s.start, -s.end))

        stack = [self.root]
        for scope in self.scopes:
            while len(stack) > 1 and stack[-1].end < scope.start:
                stack.pop()
            scope.parent = stack[-1]
            stack.append(scope)

        self.scope_at = [self.root] * len(self.code)
        for scope in self.scopes:
            for k in range(scope.start, min(scope.end, len(self.code) - 1) + 1):
                self.scope_at[k] = scope

        for scope, params, name, _ in found:
            if params >= 0:
                if self._is(params, "("):
                    self._pattern(params, scope, False)
                else:
                    scope.declare(self.code[params].text)
            if name is not None:
                if self._statement_position(scope.start):
                    self._var_scope(scope.parent).declare(self.code[name].text)
                else:
                    scope.declare(self.code[name].text)

    @staticmethod
    def _var_scope(scope: Optional[Scope]) -> Scope:
        while scope.kind not in ("function", "global"):
            scope = scope.parent
        return scope

    def _binding(self, m: int, scope: Scope, pin: bool) -> int:
        code = self.code
        if self._is(m, "...", TokenKind.OPERATOR):
            m += 1
        if m >= len(code):
            return m
        token = code[m]
        if token.kind is TokenKind.IDENTIFIER:
            self._declare(scope, token.text, pin)
            m += 1
        elif self._is(m, "{") or self._is(m, "["):
            self._pattern(m, scope, pin)
            m = self.closing[m] + 1
        else:
            return m + 1
        if self._is(m, "=", TokenKind.OPERATOR):
            m = self._expression_end(m + 1)
        return m

    def _pattern(self, opener: int, scope: Scope, pin: bool) -> None:
        close = self.closing[opener]
        is_object = self._is(opener, "{")
        m = opener + 1
        while m < close:
            if self._is(m, ","):
                m += 1
                continue
            if is_object and not self._is(m, "...", TokenKind.OPERATOR):
                if self._is(m, "["):
                    m = self.closing[m] + 1
                    if self._is(m, ":"):
                        m += 1
                elif self._is(m + 1, ":"):
                    m += 2
                else:
                    m = max(self._binding(m, scope, True), m + 1)
                    continue
            m = max(self._binding(m, scope, pin), m + 1)

    def _declare(self, scope: Scope, name: str, pin: bool) -> None:
        scope.declare(name, pin)
        if scope.start in self.loose:
            # The loop body has no braces, so the binding's reach is approximated
            # by the enclosing block; keep every same-named binding above as is.
            for outer in scope.ancestors():
                outer.pinned.add(name)
            scope.pinned.add(name)

    def _collect_declarations(self) -> None:
        code = self.code
        for k, token in enumerate(code):
            if token.kind is not TokenKind.KEYWORD:
                continue
            if token.text in ("var", "let", "const"):
                here = self.scope_at[k]
                target = self._var_scope(here) if token.text == "var" else here
                m = k + 1
                while m < len(code):
                    m = self._binding(m, target, False)
                    if not self._is(m, ","):
                        break
                    m += 1
            elif token.text == "class" and k + 1 < len(code) and code[k + 1].kind is TokenKind.IDENTIFIER:
                if self._statement_position(k):
                    self._declare(self.scope_at[k], code[k + 1].text, False)

    # -- pass 3: references ---------------------------------------------------

    def _resolve(self) -> None:
        code = self.code
        for k, token in enumerate(code):
            if token.kind is TokenKind.KEYWORD and token.text == "with":
                self.scope_at[k].taint()
                continue
            if token.kind is not TokenKind.IDENTIFIER or token.text.startswith("#"):
                continue
            if k and code[k - 1].text in (".", "?.") and code[k - 1].kind is not TokenKind.STRING:
                continue
            if k in self.keys:
                continue
            name = token.text
            here = self.scope_at[k]
            if name == "eval":
                here.taint()
            binding = here.lookup(name)
            if binding is not None and (k in self.shorthand or self.context[k] == "class" or name in CONTEXTUAL):
                binding.pinned.add(name)
            self.occurrences.append((k, binding, name))

    # -- pass 4: new names ----------------------------------------------------

    def _assign(self) -> None:
        positions = [k for k, _, _ in self.occurrences]
        counts: dict[tuple[int, str], int] = {}
        for _, binding, name in self.occurrences:
            if binding is not None:
                key = (id(binding), name)
                counts[key] = counts.get(key, 0) + 1

        for scope in self.scopes:
            if scope.tainted:
                logger.debug("scope at token %d uses eval/with; names kept", scope.start)
                continue
            if not scope.munged:
                continue
            ancestors = set(map(id, scope.ancestors()))
            forbidden = set(RESERVED)
            forbidden.update(n for n in scope.declared if n in scope.pinned)
            lo = bisect.bisect_left(positions, scope.start)
            hi = bisect.bisect_right(positions, scope.end)
            for _, binding, name in self.occurrences[lo:hi]:
                if binding is None:
                    forbidden.add(name)
                elif binding is scope:
                    continue
                elif id(binding) in ancestors:
                    forbidden.add(binding.final_name(name))
                elif not binding.renamable(name):
                    forbidden.add(name)

            local = [n for n in scope.declared if scope.renamable(n)]
            local.sort(key=lambda n: (-counts.get((id(scope), n), 0), scope.declared[n]))
            candidates = (c for c in short_names() if c not in forbidden)
            for name in local:
                scope.renames[name] = next(candidates)

    def run(self) -> dict[int, str]:
        """Return new identifier texts keyed by token index in the stream."""
        if not self.code or not self.balanced:
            return {}
        self._walk()
        self._build_scopes()
        self._collect_declarations()
        self._resolve()
        self._assign()
        renames: dict[int, str] = {}
        for k, binding, name in self.occurrences:
            if binding is None or not binding.renamable(name):
                continue
            new = binding.renames.get(name, name)
            if new != name:
                renames[self.index[k]] = new
        return renames

    def statement_ends(self) -> set[int]:
        if not self.code:
            return set()
        self._walk()
        code = self.code
        ends: set[int] = set()
        for k, token in enumerate(code):
            if token.kind is not TokenKind.PUNCTUATION:
                continue
            if token.text == ";" and self.context[k] in ("block", "class"):
                ends.add(self.index[k])
            elif token.text == "}" and k in self.opening:
                opener = self.opening[k]
                if self.brace_kind.get(opener) not in ("block", "class") or self.context[opener] != "block":
                    continue
                if k + 1 == len(code) or self._no_continuation(code[k + 1]):
                    ends.add(self.index[k])
        return ends


def plan_renames(stream: TokenStream) -> dict[int, str]:
    if stream.language is not Language.JS:
        return {}
    analysis = ScopeAnalysis(stream)
    if not analysis.balanced:
        logger.debug("unbalanced brackets; identifiers left as is")
        return {}
    renames = analysis.run()
    logger.debug("renaming %d identifier occurrences across %d scopes", len(renames), len(analysis.scopes))
    return renames


def statement_ends(stream: TokenStream) -> set[int]:
    """
    Stream indices of the ``;`` and ``}`` tokens that complete a statement,
    so a line break after them cannot land inside an expression. Object
    literal braces, ``for`` heads and template substitutions never qualify.
    Empty when the bracket structure does not balance.
    """
    analysis = ScopeAnalysis(stream)
    return analysis.statement_ends() if analysis.balanced else set()
