"""Format detection from file suffix and leading content."""

from __future__ import annotations

import logging
from pathlib import Path
import re

from booktext.conversion.containers import DOCX_BODY, EPUB_CONTAINER, EPUB_MIMETYPE, ZIP_MAGIC, archive_names
from booktext.conversion.encoding import bom_encoding
from booktext.conversion.errors import CorruptArchiveError, UnknownFormatError
from booktext.conversion.models import DocumentFormat

logger = logging.getLogger(__name__)

DEFAULT_SNIFF_BYTES = 4096

SUFFIX_FORMATS: dict[str, DocumentFormat] = {
    ".epub": DocumentFormat.EPUB,
    ".fb2": DocumentFormat.FB2,
    ".fbz": DocumentFormat.FB2,
    ".docx": DocumentFormat.DOCX,
    ".html": DocumentFormat.HTML,
    ".htm": DocumentFormat.HTML,
    ".xhtml": DocumentFormat.HTML,
    ".rtf": DocumentFormat.RTF,
    ".txt": DocumentFormat.TXT,
}

_RTF_HEADER = b"{\\rtf"
_FB2_ROOT_RE = re.compile(rb"<(?:[\w.-]+:)?fictionbook[\s>]", re.IGNORECASE)
_HTML_RE = re.compile(rb"<!doctype\s+html|<html[\s>]", re.IGNORECASE)


def suffix_format(path: Path) -> DocumentFormat:
    """Map a file suffix (case-insensitive) to a format; ``.fb2.zip`` is FB2."""

    suffixes = [part.lower() for part in path.suffixes]
    if suffixes[-2:] == [".fb2", ".zip"]:
        return DocumentFormat.FB2
    if not suffixes:
        return DocumentFormat.UNKNOWN
    return SUFFIX_FORMATS.get(suffixes[-1], DocumentFormat.UNKNOWN)


def archive_format(data: bytes) -> DocumentFormat:
    """Classify a zip container by the entries it holds."""

    names = archive_names(data)
    if EPUB_MIMETYPE in names or EPUB_CONTAINER in names:
        return DocumentFormat.EPUB
    if DOCX_BODY in names:
        return DocumentFormat.DOCX
    if any(name.lower().endswith(".fb2") for name in names):
        return DocumentFormat.FB2
    return DocumentFormat.UNKNOWN


def _text_head(data: bytes, sniff_bytes: int) -> bytes:
    head = data[:sniff_bytes]
    encoding = bom_encoding(head)
    if encoding is not None and encoding.startswith(("utf-16", "utf-32")):
        head = head.decode(encoding, errors="ignore").encode("utf-8")
    elif encoding is not None:
        head = head[3:]
    return head.lstrip()


def content_format(data: bytes, sniff_bytes: int = DEFAULT_SNIFF_BYTES) -> DocumentFormat:
    """Classify a payload by its leading bytes (and zip entries)."""

    if data.startswith(ZIP_MAGIC):
        return archive_format(data)

    head = _text_head(data, sniff_bytes)
    if head.startswith(_RTF_HEADER):
        return DocumentFormat.RTF
    if _FB2_ROOT_RE.search(head):
        return DocumentFormat.FB2
    if _HTML_RE.search(head):
        return DocumentFormat.HTML
    return DocumentFormat.UNKNOWN


def detect_format(path: Path, data: bytes, sniff_bytes: int = DEFAULT_SNIFF_BYTES) -> DocumentFormat:
    """Pick the format of one document.

    The suffix decides when it is known. For ``.epub``/``.docx`` files
    whose zip entries clearly belong to the other format the content wins.
    Unknown suffixes fall back to content inspection.
    """

    by_suffix = suffix_format(path)
    if by_suffix in (DocumentFormat.EPUB, DocumentFormat.DOCX) and data.startswith(ZIP_MAGIC):
        try:
            by_content = archive_format(data)
        except CorruptArchiveError:
            return by_suffix
        if by_content in (DocumentFormat.EPUB, DocumentFormat.DOCX) and by_content is not by_suffix:
            logger.warning("%s looks like %s despite its suffix", path, by_content.value)
            return by_content
        return by_suffix
    if by_suffix is not DocumentFormat.UNKNOWN:
        return by_suffix
    return content_format(data, sniff_bytes)


def require_format(path: Path, data: bytes, sniff_bytes: int = DEFAULT_SNIFF_BYTES) -> DocumentFormat:
    """Like detect_format, but an unrecognized document is an error."""

    detected = detect_format(path, data, sniff_bytes)
    if detected is DocumentFormat.UNKNOWN:
        if data.startswith(ZIP_MAGIC):
            raise UnknownFormatError("Unrecognized zip archive", path)
        raise UnknownFormatError("Unsupported or unknown document format", path)
    return detected
