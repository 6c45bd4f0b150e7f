"""Shared contract for per-format text extractors."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from booktext.conversion.models import DocumentFormat, ExtractedText


@runtime_checkable
class TextExtractor(Protocol):
    """Protocol that every format extractor must implement."""

    format: DocumentFormat

    def extract(self, data: bytes) -> ExtractedText:
        """Return the text of a document or raise an ExtractionError subclass."""
