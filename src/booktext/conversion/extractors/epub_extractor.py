"""EPUB extractor preserving spine reading order."""

from __future__ import annotations

import logging

from booktext.conversion.containers import read_epub_documents
from booktext.conversion.errors import MalformedMarkupError
from booktext.conversion.markup import HTML_PROFILE, collect_text, parse_markup
from booktext.conversion.models import DocumentFormat, ExtractedText, TextSequence

logger = logging.getLogger(__name__)


class EPUBExtractor:
    """Extract text from EPUB content documents in spine order.

    A chapter that fails to parse is skipped; the book fails only when no
    chapter parses.
    """

    format = DocumentFormat.EPUB

    def extract(self, data: bytes) -> ExtractedText:
        sequence = TextSequence()
        parsed = 0
        failures: list[str] = []

        for entry in read_epub_documents(data):
            try:
                soup = parse_markup(entry.data, "xml")
            except MalformedMarkupError as exc:
                logger.warning("Skipping unparsable EPUB chapter %s: %s", entry.name, exc.message)
                failures.append(entry.name)
                continue
            parsed += 1
            sequence.extend(collect_text(soup, HTML_PROFILE))

        if not parsed:
            raise MalformedMarkupError(f"No EPUB chapter could be parsed: {', '.join(failures)}")
        return ExtractedText(format=self.format, blocks=sequence.blocks())
