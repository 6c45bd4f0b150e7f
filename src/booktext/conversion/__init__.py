"""Conversion package interfaces."""

from .converter import DocumentConverter
from .errors import ErrorKind, ExtractionError
from .models import BatchReport, ConversionOutcome, DocumentFormat, ExtractedText

__all__ = [
    "BatchReport",
    "ConversionOutcome",
    "DocumentConverter",
    "DocumentFormat",
    "ErrorKind",
    "ExtractedText",
    "ExtractionError",
]
