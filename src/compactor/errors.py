from __future__ import annotations


class CompressorError(Exception):
    """Base class for everything the compressor raises."""


class LexError(CompressorError):
    def __init__(self, message: str, line: int, column: int) -> None:
        super().__init__(f"{message} (line {line}, column {column})")
        self.reason = message
        self.line = line
        self.column = column


class RuleConflict(CompressorError):
    """Two edits of one rewrite pass touch the same token span."""

    def __init__(self, rule: str, start: int, end: int) -> None:
        super().__init__(f"{rule}: conflicting edits over tokens {start}..{end}")
        self.rule = rule
        self.start = start
        self.end = end


class UnsupportedLanguage(CompressorError):
    def __init__(self, tag: object) -> None:
        super().__init__(f"unsupported language: {tag!r}")
        self.tag = tag
