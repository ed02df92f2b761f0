from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Union, overload

from .errors import UnsupportedLanguage


class Language(Enum):
    JS = "js"
    CSS = "css"

    @classmethod
    def parse(cls, tag: Union["Language", str]) -> "Language":
        if isinstance(tag, Language):
            return tag
        if not isinstance(tag, str):
            raise UnsupportedLanguage(tag)
        key = tag.strip().lower().lstrip(".")
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnsupportedLanguage(tag) from None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "Language":
        suffix = Path(path).suffix
        if not suffix:
            raise UnsupportedLanguage(str(path))
        return cls.parse(suffix)


_ALIASES = {
    "javascript": "js",
    "mjs": "js",
    "cjs": "js",
}


class TokenKind(Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    STRING = "string"
    REGEX = "regex"
    NUMBER = "number"
    OPERATOR = "operator"
    PUNCTUATION = "punctuation"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    NEWLINE = "newline"


# Kinds that carry no meaning of their own once layout is decided
LAYOUT = frozenset({TokenKind.COMMENT, TokenKind.WHITESPACE, TokenKind.NEWLINE})


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int = 1
    column: int = 1

    @property
    def significant(self) -> bool:
        return self.kind not in LAYOUT

    def is_(self, kind: TokenKind, *texts: str) -> bool:
        return self.kind is kind and (not texts or self.text in texts)

    def with_text(self, text: str) -> "Token":
        return Token(self.kind, text, self.line, self.column)


class TokenStream:
    """Immutable ordered run of tokens in one language."""

    __slots__ = ("language", "_tokens")

    def __init__(self, language: Language, tokens: Iterable[Token] = ()) -> None:
        self.language = language
        self._tokens = tuple(tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    @overload
    def __getitem__(self, index: int) -> Token: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Token, ...]: ...

    def __getitem__(self, index):
        return self._tokens[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenStream):
            return NotImplemented
        return self.language is other.language and self._tokens == other._tokens

    def __repr__(self) -> str:
        return f"TokenStream({self.language.value}, {len(self._tokens)} tokens)"

    @property
    def tokens(self) -> tuple[Token, ...]:
        return self._tokens

    def replace(self, tokens: Iterable[Token]) -> "TokenStream":
        return TokenStream(self.language, tokens)

    def significant(self) -> list[Token]:
        return [t for t in self._tokens if t.significant]
