"""TXT extractor re-encoding legacy charsets to UTF-8."""

from __future__ import annotations

from booktext.conversion.encoding import decode_text
from booktext.conversion.models import DocumentFormat, ExtractedText
from booktext.conversion.normalization import normalize_newlines


class TXTExtractor:
    """Decode plain text with charset detection; lines are kept verbatim."""

    format = DocumentFormat.TXT

    def extract(self, data: bytes) -> ExtractedText:
        text = normalize_newlines(decode_text(data)).strip()
        blocks = [line.rstrip() for line in text.split("\n")] if text else []
        return ExtractedText(format=self.format, blocks=blocks)
