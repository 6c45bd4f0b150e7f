"""Block-aware text collection over BeautifulSoup trees."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal
import warnings

from bs4 import (
    BeautifulSoup,
    Comment,
    Declaration,
    Doctype,
    NavigableString,
    ProcessingInstruction,
    Tag,
    XMLParsedAsHTMLWarning,
)
from bs4.builder import ParserRejectedMarkup
from lxml import etree

from booktext.conversion.encoding import decode_text
from booktext.conversion.errors import MalformedMarkupError
from booktext.conversion.models import TextSequence
from booktext.conversion.normalization import drop_unknown_entities, sanitize_xml

MarkupMode = Literal["xml", "html"]

_NON_TEXT_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


@dataclass(frozen=True, slots=True)
class MarkupProfile:
    """Which elements separate blocks, which are dropped, which carry text.

    ``text_tags`` of ``None`` means every text node is text-bearing.
    """

    block_tags: frozenset[str]
    ignored_tags: frozenset[str] = field(default_factory=frozenset)
    text_tags: frozenset[str] | None = None
    space_tags: frozenset[str] = field(default_factory=frozenset)


HTML_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "br", "caption", "dd", "div", "dl",
        "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6", "header",
        "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table", "td", "th",
        "tr", "ul",
    }
)

HTML_PROFILE = MarkupProfile(
    block_tags=HTML_BLOCK_TAGS,
    ignored_tags=frozenset({"head", "script", "style", "noscript", "template", "svg", "object", "iframe"}),
)


def local_name(tag: Tag) -> str:
    """Lowercase element name without its namespace prefix."""

    return (tag.name or "").rsplit(":", 1)[-1].lower()


def find_local(root: Tag, name: str) -> list[Tag]:
    return root.find_all(lambda tag: local_name(tag) == name)


def parse_markup(data: bytes | str, mode: MarkupMode = "xml") -> BeautifulSoup:
    """Parse a document into a recovering lxml-backed soup.

    XML input is decoded and sanitized first; HTML input only loses
    named entities the HTML parser would leave as literal text. Raises MalformedMarkupError
    when the parser rejects the payload or an XML payload has no element.
    """

    if mode == "xml":
        text = data if isinstance(data, str) else decode_text(data, prefer_declared=True)
        markup: bytes | str = sanitize_xml(text)
        features = "xml"
    else:
        markup = drop_unknown_entities(data)
        features = "lxml"

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
            soup = BeautifulSoup(markup, features)
    except (ParserRejectedMarkup, etree.LxmlError, ValueError) as exc:
        raise MalformedMarkupError(f"Markup could not be parsed: {exc}") from exc

    if mode == "xml" and soup.find(True) is None:
        raise MalformedMarkupError("Markup has no root element")
    return soup


def collect_text(root: Tag, profile: MarkupProfile) -> list[str]:
    """Walk ``root`` in document order and return its text blocks."""

    target = TextSequence()
    # (node, closing) pairs; closing entries mark the end of a block element
    stack: list[tuple[object, bool]] = [(root, False)]

    while stack:
        node, closing = stack.pop()
        if closing:
            target.separator()
            continue

        if isinstance(node, Tag):
            name = local_name(node)
            if name in profile.ignored_tags:
                continue
            if name in profile.space_tags:
                target.append(" ")
            if name in profile.block_tags:
                target.separator()
                stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.contents))
            continue

        if not isinstance(node, NavigableString) or isinstance(node, _NON_TEXT_STRINGS):
            continue
        if profile.text_tags is not None:
            parent = node.parent
            if parent is None or local_name(parent) not in profile.text_tags:
                continue
        target.append(str(node))

    return target.blocks()
