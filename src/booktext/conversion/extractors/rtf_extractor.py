"""RTF extractor backed by the control-word scanner."""

from __future__ import annotations

from booktext.conversion.models import DocumentFormat, ExtractedText
from booktext.conversion.rtf import extract_rtf_text


class RTFExtractor:
    format = DocumentFormat.RTF

    def extract(self, data: bytes) -> ExtractedText:
        return ExtractedText(format=self.format, blocks=extract_rtf_text(data))
