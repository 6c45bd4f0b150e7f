"""Zip container access for EPUB, DOCX and zipped FB2 payloads."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
import posixpath
import re
from urllib.parse import unquote
from zipfile import BadZipFile, ZipFile
import zlib

from lxml import etree

from booktext.conversion.errors import CorruptArchiveError

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"

DOCX_BODY = "word/document.xml"
EPUB_CONTAINER = "META-INF/container.xml"
EPUB_MIMETYPE = "mimetype"

_DOCX_PART_RE = re.compile(r"^word/(header|footer)(\d*)\.xml$")
_CONTENT_SUFFIXES = (".xhtml", ".html", ".htm")
_CONTENT_MEDIA_TYPES = frozenset({"application/xhtml+xml", "text/html"})
_ZIP_ERRORS = (BadZipFile, OSError, EOFError, zlib.error, NotImplementedError, RuntimeError)


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """A named member of a zip container and its bytes."""

    name: str
    data: bytes


def open_archive(data: bytes) -> ZipFile:
    try:
        return ZipFile(BytesIO(data), "r")
    except _ZIP_ERRORS as exc:
        raise CorruptArchiveError(f"Archive could not be opened: {exc}") from exc


def archive_names(data: bytes) -> list[str]:
    with open_archive(data) as archive:
        return archive.namelist()


def _read_entry(archive: ZipFile, name: str) -> bytes:
    try:
        return archive.read(name)
    except KeyError as exc:
        raise CorruptArchiveError(f"Archive entry is missing: {name}") from exc
    except _ZIP_ERRORS as exc:
        raise CorruptArchiveError(f"Archive entry {name} could not be read: {exc}") from exc


def _read_optional(archive: ZipFile, name: str) -> ArchiveEntry | None:
    try:
        return ArchiveEntry(name, _read_entry(archive, name))
    except CorruptArchiveError as exc:
        logger.warning("Skipping unreadable archive entry: %s", exc)
        return None


def _part_order(name: str) -> int:
    match = _DOCX_PART_RE.match(name)
    if match is None or not match.group(2):
        return 0
    return int(match.group(2))


def read_docx_parts(data: bytes) -> list[ArchiveEntry]:
    """Return header parts, the document body, then footer parts."""

    with open_archive(data) as archive:
        names = archive.namelist()
        if DOCX_BODY not in names:
            raise CorruptArchiveError(f"DOCX archive has no {DOCX_BODY}")

        headers = sorted((n for n in names if n.startswith("word/header") and _DOCX_PART_RE.match(n)), key=_part_order)
        footers = sorted((n for n in names if n.startswith("word/footer") and _DOCX_PART_RE.match(n)), key=_part_order)

        body = ArchiveEntry(DOCX_BODY, _read_entry(archive, DOCX_BODY))
        header_entries = [_read_optional(archive, name) for name in headers]
        footer_entries = [_read_optional(archive, name) for name in footers]
        return [entry for entry in [*header_entries, body, *footer_entries] if entry is not None]


def _parse_xml(payload: bytes) -> etree._Element | None:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, recover=True)
    try:
        return etree.fromstring(payload, parser=parser)
    except etree.LxmlError:
        return None


def _is_content_document(name: str) -> bool:
    return name.lower().endswith(_CONTENT_SUFFIXES)


def _spine_order(archive: ZipFile, names: list[str]) -> list[str]:
    """Resolve reading order from container.xml and the OPF spine."""

    if EPUB_CONTAINER not in names:
        return []
    container = _parse_xml(_read_entry(archive, EPUB_CONTAINER))
    if container is None:
        return []

    rootfiles = container.xpath("//*[local-name()='rootfile']/@full-path")
    opf_path = next((str(path) for path in rootfiles if str(path) in names), None)
    if opf_path is None:
        return []
    package = _parse_xml(_read_entry(archive, opf_path))
    if package is None:
        return []

    opf_dir = posixpath.dirname(opf_path)
    manifest: dict[str, str] = {}
    for item in package.xpath("//*[local-name()='manifest']/*[local-name()='item']"):
        item_id = item.get("id")
        href = item.get("href")
        if not item_id or not href:
            continue
        if "nav" in (item.get("properties") or "").split():
            continue
        media_type = (item.get("media-type") or "").lower()
        if media_type not in _CONTENT_MEDIA_TYPES and not _is_content_document(href):
            continue
        manifest[item_id] = posixpath.normpath(posixpath.join(opf_dir, unquote(href)))

    ordered: list[str] = []
    for idref in package.xpath("//*[local-name()='spine']/*[local-name()='itemref']/@idref"):
        target = manifest.get(str(idref))
        if target is None:
            continue
        if target not in names:
            logger.warning("EPUB spine references missing entry: %s", target)
            continue
        if target not in ordered:
            ordered.append(target)
    return ordered


def read_epub_documents(data: bytes) -> list[ArchiveEntry]:
    """Return the EPUB content documents in reading order.

    Spine order is used when the package metadata resolves; otherwise
    every XHTML/HTML entry is read in lexical order.
    """

    with open_archive(data) as archive:
        names = archive.namelist()
        try:
            ordered = _spine_order(archive, names)
        except CorruptArchiveError as exc:
            logger.warning("EPUB package metadata unreadable, using entry order: %s", exc)
            ordered = []
        if not ordered:
            ordered = sorted(name for name in names if _is_content_document(name))
        if not ordered:
            raise CorruptArchiveError("EPUB archive has no content documents")

        entries = [entry for entry in (_read_optional(archive, name) for name in ordered) if entry]
        if not entries:
            raise CorruptArchiveError("No EPUB content document could be read")
        return entries


def read_fb2_payload(data: bytes) -> bytes:
    """Return the FictionBook document stored in a zip container."""

    with open_archive(data) as archive:
        candidates = [name for name in archive.namelist() if not name.endswith("/")]
        fb2_name = next((name for name in candidates if name.lower().endswith(".fb2")), None)
        target = fb2_name or (candidates[0] if candidates else None)
        if not target:
            raise CorruptArchiveError("Zipped FB2 container has no readable files")
        return _read_entry(archive, target)
