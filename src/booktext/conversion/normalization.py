"""Whitespace and XML cleanup helpers applied before and after parsing."""

from __future__ import annotations

from html.entities import name2codepoint
import re

_WHITESPACE_RE = re.compile(r"\s+")
_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^>]*\?>")
_DOCTYPE_RE = re.compile(r"<!DOCTYPE[^>\[]*(\[.*?\])?\s*>", re.IGNORECASE | re.DOTALL)
_ENTITY_RE = re.compile(r"&(#[0-9]+;|#[xX][0-9a-fA-F]+;|[A-Za-z][A-Za-z0-9]*;)?")
_NAMED_ENTITY_RE = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")
_NAMED_ENTITY_TEXT_RE = re.compile(r"&([A-Za-z][A-Za-z0-9]*);")
_INVALID_XML_CHARS_RE = re.compile("[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_NEWLINES_RE = re.compile(r"\r\n?")

_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_newlines(text: str) -> str:
    return _NEWLINES_RE.sub("\n", text)


def strip_xml_declaration(text: str) -> str:
    return _XML_DECLARATION_RE.sub("", text, count=1)


def remove_doctype(text: str) -> str:
    return _DOCTYPE_RE.sub("", text)


def clean_invalid_xml_chars(text: str) -> str:
    return _INVALID_XML_CHARS_RE.sub("", text)


def _replace_entity(match: re.Match[str]) -> str:
    body = match.group(1)
    if body is None:
        # bare ampersand
        return "&amp;"
    if body.startswith("#"):
        return match.group(0)
    name = body[:-1]
    if name in _XML_ENTITIES:
        return match.group(0)
    codepoint = name2codepoint.get(name)
    if codepoint is None:
        return ""
    return f"&#{codepoint};"


def rewrite_entities(text: str) -> str:
    """Map named HTML entities to numeric references an XML parser accepts.

    Bare ampersands are escaped and unknown named entities are dropped.
    """

    return _ENTITY_RE.sub(_replace_entity, text)


def sanitize_xml(text: str) -> str:
    """Prepare decoded XML text for a namespace-aware recovering parser."""

    cleaned = text.lstrip("\ufeff").strip().rstrip("\x00")
    cleaned = strip_xml_declaration(cleaned)
    cleaned = remove_doctype(cleaned)
    cleaned = clean_invalid_xml_chars(cleaned)
    return rewrite_entities(cleaned)


def _is_known_entity(name: str) -> bool:
    return name in _XML_ENTITIES or name in name2codepoint


def drop_unknown_entities(markup: bytes | str) -> bytes | str:
    """Remove ``&name;`` references that are not HTML 4 entities."""

    if isinstance(markup, str):
        return _NAMED_ENTITY_TEXT_RE.sub(lambda m: m.group(0) if _is_known_entity(m.group(1)) else "", markup)
    return _NAMED_ENTITY_RE.sub(
        lambda m: m.group(0) if _is_known_entity(m.group(1).decode("ascii")) else b"", markup
    )
