"""Format extractor implementations and the default registry."""

from __future__ import annotations

from booktext.conversion.models import DocumentFormat

from .base import TextExtractor
from .docx_extractor import DOCXExtractor
from .epub_extractor import EPUBExtractor
from .fb2_extractor import FB2Extractor
from .html_extractor import HTMLExtractor
from .rtf_extractor import RTFExtractor
from .txt_extractor import TXTExtractor


def build_default_extractors() -> dict[DocumentFormat, TextExtractor]:
    """Return the extractor for every supported format."""
    extractors: list[TextExtractor] = [
        EPUBExtractor(),
        FB2Extractor(),
        DOCXExtractor(),
        HTMLExtractor(),
        RTFExtractor(),
        TXTExtractor(),
    ]
    return {extractor.format: extractor for extractor in extractors}


__all__ = [
    "TextExtractor",
    "DOCXExtractor",
    "EPUBExtractor",
    "FB2Extractor",
    "HTMLExtractor",
    "RTFExtractor",
    "TXTExtractor",
    "build_default_extractors",
]
