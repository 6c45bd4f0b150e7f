"""Charset detection for markup and plain-text payloads."""

from __future__ import annotations

import codecs
import re

from charset_normalizer import from_bytes

from booktext.conversion.errors import UnsupportedEncodingError

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)
_DECLARED_ENCODING_RE = re.compile(rb"""^\s*<\?xml[^>]*?encoding\s*=\s*["']([A-Za-z0-9._:-]+)["']""")


def bom_encoding(raw: bytes) -> str | None:
    for bom, name in _BOMS:
        if raw.startswith(bom):
            return name
    return None


def declared_encoding(raw: bytes) -> str | None:
    """Return the encoding named by an XML declaration, if any."""

    match = _DECLARED_ENCODING_RE.match(raw[:1024])
    if match is None:
        return None
    return match.group(1).decode("ascii").lower()


def is_utf8(raw: bytes) -> bool:
    try:
        raw.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def _try_decode(raw: bytes, encoding: str) -> str | None:
    try:
        return raw.decode(encoding)
    except (LookupError, UnicodeDecodeError):
        return None


def detect_encoding(raw: bytes) -> str:
    """Guess the charset of undeclared bytes."""

    bom = bom_encoding(raw)
    if bom is not None:
        return bom
    if is_utf8(raw):
        return "utf-8"

    best = from_bytes(raw).best()
    if best and best.encoding:
        name = best.encoding.lower()
        if name in {"windows-1251", "cp1251"}:
            return "cp1251"
        return best.encoding

    for fallback in ("cp1251",):
        if _try_decode(raw, fallback) is not None:
            return fallback
    raise UnsupportedEncodingError("Could not detect text encoding")


def decode_text(raw: bytes, *, prefer_declared: bool = False) -> str:
    """Decode bytes to text: BOM, declared encoding, UTF-8, then detection."""

    bom = bom_encoding(raw)
    if bom is not None:
        decoded = _try_decode(raw, bom)
        if decoded is not None:
            return decoded.lstrip("\ufeff")

    if prefer_declared:
        declared = declared_encoding(raw)
        if declared is not None:
            decoded = _try_decode(raw, declared)
            if decoded is not None:
                return decoded

    encoding = detect_encoding(raw)
    decoded = _try_decode(raw, encoding)
    if decoded is None:
        raise UnsupportedEncodingError(f"Bytes are not decodable as {encoding}")
    return decoded.lstrip("\ufeff")
