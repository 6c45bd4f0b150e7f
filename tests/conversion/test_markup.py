from __future__ import annotations

import pytest

from booktext.conversion.errors import MalformedMarkupError
from booktext.conversion.markup import HTML_PROFILE, MarkupProfile, collect_text, parse_markup
from booktext.conversion.models import TextSequence

_PARAGRAPHS = MarkupProfile(block_tags=frozenset({"p", "div", "br"}), ignored_tags=frozenset({"binary"}))


def test_script_payload_is_excluded_from_html() -> None:
    soup = parse_markup(b"<script>console.log(1)</script><p>Hello</p>", "html")

    assert collect_text(soup, HTML_PROFILE) == ["Hello"]


def test_entities_and_character_references_decode() -> None:
    soup = parse_markup(b"<p>Tom &amp; Jerry &lt;3 &#233;t&eacute;</p>", "html")

    assert collect_text(soup, HTML_PROFILE) == ["Tom & Jerry <3 été"]


def test_named_html_entities_survive_xml_parsing() -> None:
    soup = parse_markup(b"<doc><p>caf&eacute;&nbsp;au lait &amp; more</p></doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["café au lait & more"]


def test_inline_elements_do_not_split_blocks() -> None:
    soup = parse_markup(b"<doc><p>Hel<b>lo</b> <i>world</i></p></doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["Hello world"]


def test_adjacent_separators_collapse() -> None:
    soup = parse_markup(b"<doc><div><p>One</p><p></p><br/><p>  </p><p>Two</p></div></doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["One", "Two"]


def test_ignored_subtrees_and_comments_are_dropped() -> None:
    soup = parse_markup(b"<doc><!-- hidden --><p>keep</p><binary>QUJD</binary></doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["keep"]


def test_text_tags_limit_text_bearing_nodes() -> None:
    profile = MarkupProfile(block_tags=frozenset({"p"}), text_tags=frozenset({"t"}), space_tags=frozenset({"tab"}))
    markup = (
        b'<w:document xmlns:w="urn:test"><w:body><w:p>'
        b"<w:r><w:t>Hi</w:t></w:r><w:r><w:tab/><w:t>there</w:t></w:r>"
        b"<w:r><w:instrText>PAGE</w:instrText></w:r>"
        b"</w:p></w:body></w:document>"
    )

    assert collect_text(parse_markup(markup, "xml"), profile) == ["Hi there"]


def test_unclosed_tags_are_recovered() -> None:
    soup = parse_markup(b"<doc><p>First<p>Second</doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["First", "Second"]


def test_stray_ampersand_does_not_break_xml() -> None:
    soup = parse_markup(b"<doc><p>Salt & pepper &bogus; end</p></doc>", "xml")

    assert collect_text(soup, _PARAGRAPHS) == ["Salt & pepper end"]


def test_declared_legacy_encoding_is_honoured() -> None:
    payload = '<?xml version="1.0" encoding="windows-1251"?><doc><p>Привет</p></doc>'.encode("cp1251")

    assert collect_text(parse_markup(payload, "xml"), _PARAGRAPHS) == ["Привет"]


@pytest.mark.parametrize("payload", [b"", b"   ", b"no markup at all"])
def test_unparsable_xml_is_a_hard_failure(payload: bytes) -> None:
    with pytest.raises(MalformedMarkupError):
        parse_markup(payload, "xml")


def test_text_sequence_collapses_whitespace_and_empty_blocks() -> None:
    sequence = TextSequence()
    sequence.append("  Hello\n")
    sequence.append("\tworld ")
    sequence.separator()
    sequence.separator()
    sequence.append("   ")
    sequence.separator()
    sequence.extend(["next", ""])
    sequence.append("tail")

    assert sequence.blocks() == ["Hello world", "next", "tail"]


def test_unknown_entities_are_dropped_in_both_modes() -> None:
    html = collect_text(parse_markup(b"<p>x &nosuch; y</p>", "html"), HTML_PROFILE)
    xml = collect_text(parse_markup(b"<doc><p>x &nosuch; y</p></doc>", "xml"), HTML_PROFILE)

    assert html == xml == ["x y"]
