"""DOCX extractor reading headers, body and footers in that order."""

from __future__ import annotations

import logging

from booktext.conversion.containers import DOCX_BODY, read_docx_parts
from booktext.conversion.errors import MalformedMarkupError
from booktext.conversion.markup import MarkupProfile, collect_text, parse_markup
from booktext.conversion.models import DocumentFormat, ExtractedText, TextSequence

logger = logging.getLogger(__name__)

WORDPROCESSING_PROFILE = MarkupProfile(
    block_tags=frozenset({"p", "br", "cr", "tc"}),
    ignored_tags=frozenset({"ppr", "rpr", "sectpr", "tblpr", "trpr", "tcpr", "instrtext", "deltext", "del"}),
    text_tags=frozenset({"t"}),
    space_tags=frozenset({"tab"}),
)


class DOCXExtractor:
    """Extract paragraph text from WordprocessingML parts."""

    format = DocumentFormat.DOCX

    def extract(self, data: bytes) -> ExtractedText:
        sequence = TextSequence()
        for entry in read_docx_parts(data):
            try:
                soup = parse_markup(entry.data, "xml")
            except MalformedMarkupError:
                if entry.name == DOCX_BODY:
                    raise
                logger.warning("Skipping unparsable DOCX part: %s", entry.name)
                continue
            sequence.extend(collect_text(soup, WORDPROCESSING_PROFILE))
        return ExtractedText(format=self.format, blocks=sequence.blocks())
