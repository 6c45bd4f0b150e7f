"""HTML extractor over the lxml HTML tree."""

from __future__ import annotations

from booktext.conversion.markup import HTML_PROFILE, collect_text, parse_markup
from booktext.conversion.models import DocumentFormat, ExtractedText


class HTMLExtractor:
    """Extract visible text from HTML, dropping head, scripts and styles."""

    format = DocumentFormat.HTML

    def extract(self, data: bytes) -> ExtractedText:
        soup = parse_markup(data, "html")
        return ExtractedText(format=self.format, blocks=collect_text(soup, HTML_PROFILE))
