"""CLI command converting books to plain UTF-8 text files."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from booktext.config import ConverterSettings
from booktext.conversion.converter import DocumentConverter


load_dotenv()

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_BAD_PATH = 2
EXIT_INTERRUPTED = 130


def _parse_args(argv: list[str] | None, settings: ConverterSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert EPUB, FB2, DOCX, HTML and RTF books to .txt")
    parser.add_argument("--path", required=True, help="Source file or directory")
    parser.add_argument(
        "-r",
        "--delete-source",
        action="store_true",
        help="Delete each source file after its .txt was written",
    )
    parser.add_argument(
        "--delete-junk",
        action="store_true",
        help="Delete images, archives and other unsupported book files in the directory",
    )
    parser.add_argument(
        "--include-txt",
        action="store_true",
        help="Re-encode existing .txt files to UTF-8 in place",
    )
    parser.add_argument("--workers", type=int, default=settings.workers, help="Parallel conversions")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    settings = ConverterSettings.from_env()
    args = _parse_args(argv, settings)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(message)s")

    source_path = Path(args.path)
    if not source_path.exists():
        LOGGER.error("path must be an existing file or directory: %s", source_path)
        return EXIT_BAD_PATH

    converter = DocumentConverter(sniff_bytes=settings.sniff_bytes, delete_source=args.delete_source)
    report = converter.convert_tree(
        source_path,
        workers=max(1, args.workers),
        include_txt=args.include_txt,
        purge_junk=args.delete_junk,
    )

    payload = {
        "path": str(source_path),
        "processed": len(report.outcomes),
        "results": [outcome.to_dict() for outcome in report.succeeded],
        "errors": [outcome.to_dict() for outcome in report.failed],
        "junk_removed": [str(path) for path in report.junk_removed],
        "cancelled": report.cancelled,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))

    if report.cancelled:
        return EXIT_INTERRUPTED
    return EXIT_OK if report.ok else EXIT_FAILURES


if __name__ == "__main__":
    raise SystemExit(main())
