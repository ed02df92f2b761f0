from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from .emitter import emit
from .lexer import tokenize
from .options import CompressionOptions
from .rules import DEFAULT_RULES, RewriteRule, apply
from .tokens import Language

logger = logging.getLogger(__name__)

Source = Union[str, bytes]


class Compressor:
    """Tokenize, rewrite and emit with one fixed set of options and rules."""

    def __init__(
        self,
        options: Optional[CompressionOptions] = None,
        rules: Sequence[RewriteRule] = DEFAULT_RULES,
    ) -> None:
        self.options = options or CompressionOptions()
        self.rules = tuple(rules)

    def compress(self, source: Source, language: Union[Language, str]) -> str:
        language = Language.parse(language)
        if isinstance(source, bytes):
            source = source.decode(self.options.charset)
        stream = tokenize(source, language)
        stream = apply(stream, self.rules, self.options)
        result = emit(stream, self.options)
        if source:
            logger.debug(
                "%s: %d -> %d chars (%.1f%%)",
                language.value,
                len(source),
                len(result),
                100.0 * len(result) / len(source),
            )
        return result

    def compress_file(
        self,
        path: Union[str, Path],
        output: Union[str, Path, None] = None,
        language: Union[Language, str, None] = None,
    ) -> str:
        """Compress the file at ``path``; write to ``output`` when given.

        The language comes from the file suffix unless passed explicitly.
        ``output`` may name the input file itself.
        """
        path = Path(path)
        lang = Language.parse(language) if language is not None else Language.from_path(path)
        result = self.compress(path.read_text(encoding=self.options.charset), lang)
        if output is not None:
            out_path = Path(output)
            out_path.write_text(result, encoding=self.options.charset)
            logger.debug("wrote %s", out_path)
        return result


def compress(
    source: Source,
    language: Union[Language, str],
    options: Optional[CompressionOptions] = None,
) -> str:
    """Minify ``source`` in ``language`` ("js" or "css") and return the text.

    Raises LexError for malformed input and UnsupportedLanguage for an
    unknown tag. Nothing is returned on failure.
    """
    return Compressor(options).compress(source, language)
