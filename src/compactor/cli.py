from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .compressor import Compressor
from .errors import CompressorError
from .options import CompressionOptions


def parse_args(argv: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="compactor",
        description="Minify JavaScript and CSS files",
    )
    parser.add_argument("input", type=Path, help="JavaScript or CSS file to compress")
    parser.add_argument("--output", "-o", type=Path, help="Write the result here instead of stdout")
    parser.add_argument("--type", choices=["js", "css"], help="Input language (default: from the file suffix)")
    parser.add_argument("--charset", default="utf-8", help="Encoding used to read and write files")
    parser.add_argument(
        "--line-break",
        type=int,
        metavar="COLUMN",
        help="Insert a line break after the first statement or rule ending past COLUMN",
    )
    parser.add_argument("--nomunge", action="store_true", help="Minify only, do not rename local identifiers")
    parser.add_argument("--preserve-semi", action="store_true", help="Keep every semicolon")
    parser.add_argument("--concat-strings", action="store_true", help='Join "a" + "b" into "ab" where safe')
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"compactor {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    ns = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        options = CompressionOptions.from_mapping(
            {
                "charset": ns.charset,
                "line-break": ns.line_break,
                "nomunge": ns.nomunge,
                "preserve-semi": ns.preserve_semi,
                "preserve-strings": not ns.concat_strings,
            }
        )
        result = Compressor(options).compress_file(ns.input, ns.output, ns.type)
    except (CompressorError, OSError, ValueError) as exc:
        print(f"[compactor] error: {exc}", file=sys.stderr)
        return 1
    if ns.output is None:
        print(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
