"""Typed per-file failures raised by sniffing, extraction and file access."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar


class ErrorKind(str, Enum):
    UNKNOWN_FORMAT = "unknown_format"
    CORRUPT_ARCHIVE = "corrupt_archive"
    MALFORMED_MARKUP = "malformed_markup"
    UNSUPPORTED_ENCODING = "unsupported_encoding"
    IO_ERROR = "io_error"


@dataclass(slots=True)
class ExtractionError(Exception):
    """Domain error for one document; never aborts a batch."""

    kind: ClassVar[ErrorKind] = ErrorKind.MALFORMED_MARKUP

    message: str
    path: Path | None = None

    def __str__(self) -> str:
        if self.path is None:
            return self.message
        return f"{self.message} (path={self.path})"


class UnknownFormatError(ExtractionError):
    kind = ErrorKind.UNKNOWN_FORMAT


class CorruptArchiveError(ExtractionError):
    kind = ErrorKind.CORRUPT_ARCHIVE


class MalformedMarkupError(ExtractionError):
    kind = ErrorKind.MALFORMED_MARKUP


class UnsupportedEncodingError(ExtractionError):
    kind = ErrorKind.UNSUPPORTED_ENCODING


class FileAccessError(ExtractionError):
    kind = ErrorKind.IO_ERROR
