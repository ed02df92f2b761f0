from .compressor import Compressor, compress
from .errors import CompressorError, LexError, RuleConflict, UnsupportedLanguage
from .options import CompressionOptions
from .tokens import Language, Token, TokenKind, TokenStream

__all__ = [
    "CompressionOptions",
    "Compressor",
    "CompressorError",
    "Language",
    "LexError",
    "RuleConflict",
    "Token",
    "TokenKind",
    "TokenStream",
    "UnsupportedLanguage",
    "compress",
]

__version__ = "0.1.0"
