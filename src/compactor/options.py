from __future__ import annotations

import codecs
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

# Option names accepted by the YUI Compressor command line, mapped onto fields.
# "nomunge" is a negative switch and flips munge_identifiers.
_FLAG_NAMES = {
    "charset": "charset",
    "line_break": "line_break_column",
    "nomunge": "munge_identifiers",
    "preserve_semi": "preserve_semi",
    "preserve_strings": "preserve_strings",
}
_NEGATED = {"nomunge"}


@dataclass(frozen=True)
class CompressionOptions:
    preserve_strings: bool = True
    line_break_column: Optional[int] = None
    charset: str = "utf-8"
    munge_identifiers: bool = True
    preserve_semi: bool = False

    def __post_init__(self) -> None:
        if self.line_break_column is not None:
            if isinstance(self.line_break_column, bool) or not isinstance(self.line_break_column, int):
                raise ValueError(f"line_break_column must be an int, got {self.line_break_column!r}")
            if self.line_break_column < 0:
                raise ValueError("line_break_column must not be negative")
        try:
            codecs.lookup(self.charset)
        except LookupError:
            raise ValueError(f"unknown charset: {self.charset}") from None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "CompressionOptions":
        """
        Build options from a loose mapping such as parsed CLI flags.
        Accepts field names as well as the compressor's flag names
        (``line-break``, ``nomunge``, ``preserve-semi``, ...). ``None`` values
        mean "use the default", mirroring how unset flags were skipped.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for raw_key, value in mapping.items():
            key = raw_key.lstrip("-").replace("-", "_")
            if key in known:
                field_name = key
            elif key in _FLAG_NAMES:
                field_name = _FLAG_NAMES[key]
            else:
                raise ValueError(f"unknown option: {raw_key}")
            if value is None:
                continue
            if key in _NEGATED:
                value = not value
            elif field_name == "line_break_column":
                value = int(value)
            values[field_name] = value
        return cls(**values)
