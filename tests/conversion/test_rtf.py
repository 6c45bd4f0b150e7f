from __future__ import annotations

import pytest

from booktext.conversion.errors import UnsupportedEncodingError
from booktext.conversion.extractors import RTFExtractor
from booktext.conversion.models import DocumentFormat
from booktext.conversion.rtf import document_codec, extract_rtf_text, font_codecs


def test_document_codec_follows_ansicpg_then_charset_word() -> None:
    assert document_codec(b"{\\rtf1\\ansi\\ansicpg1251 x}") == "cp1251"
    assert document_codec(b"{\\rtf1\\mac x}") == "mac_roman"
    assert document_codec(b"{\\rtf1\\pca x}") == "cp850"
    assert document_codec(b"{\\rtf1 x}") == "cp1252"


def test_font_table_maps_charsets_and_code_pages() -> None:
    table = "{\\fonttbl{\\f0\\fswiss\\fcharset0 Arial;}{\\f1\\froman\\fcharset204 Times;}{\\f2\\cpg1250 Old;}}"

    assert font_codecs(table) == {1: "cp1251", 2: "cp1250"}



def test_paragraphs_and_destinations() -> None:
    rtf = (
        b"{\\rtf1\\ansi\\deff0{\\fonttbl{\\f0 Times New Roman;}}"
        b"{\\colortbl;\\red0\\green0\\blue0;}"
        b"{\\*\\generator Riched20 10.0;}{\\info{\\title Secret}{\\author Nobody}}"
        b"\\f0 Hello\\par World\\par\\par}"
    )

    assert extract_rtf_text(rtf) == ["Hello", "World"]


def test_hex_escape_uses_latin_code_page() -> None:
    assert extract_rtf_text(b"{\\rtf1\\ansi caf\\'e9}") == ["café"]


def test_ansicpg_selects_cyrillic_code_page() -> None:
    rtf = b"{\\rtf1\\ansi\\ansicpg1251 \\'cf\\'f0\\'e8\\'e2\\'e5\\'f2}"

    assert extract_rtf_text(rtf) == ["Привет"]


def test_font_charset_switches_code_page() -> None:
    rtf = (
        b"{\\rtf1\\ansi\\ansicpg1252{\\fonttbl{\\f0\\fcharset0 Arial;}{\\f1\\fcharset204 Times;}}"
        b"\\f1 \\'cf\\'f0\\'e8\\'e2\\'e5\\'f2\\f0  caf\\'e9}"
    )

    assert extract_rtf_text(rtf) == ["Привет café"]


def test_unicode_escapes_skip_fallback_characters() -> None:
    rtf = b"{\\rtf1\\uc1\\u1055?\\u1088?\\u1080\\'3f\\u1074?}"

    assert extract_rtf_text(rtf) == ["Прив"]


def test_escaped_literals_are_emitted() -> None:
    assert extract_rtf_text(rb"{\rtf1 a\\b \{c\}}") == ["a\\b {c}"]


def test_binary_payload_is_not_text() -> None:
    assert extract_rtf_text(b"{\\rtf1 before{\\pict\\bin4 a}{b} after}") == ["before after"]


@pytest.mark.parametrize(
    "rtf",
    [
        b"\\b bold}",
        b"{\\b bold}}",
        b"}}{\\b bold}",
        b"{\\rtf1 {\\b bold}",
        b"{\\rtf1 {\\b bold",
    ],
)
def test_unbalanced_braces_are_tolerated(rtf: bytes) -> None:
    assert extract_rtf_text(rtf) == ["bold"]


def test_raw_utf8_text_is_decoded() -> None:
    assert extract_rtf_text("{\\rtf1 Привет\\par мир}".encode("utf-8")) == ["Привет", "мир"]


def test_symbol_words_map_to_characters() -> None:
    rtf = b"{\\rtf1 a\\emdash b\\tab c\\rquote s\\line next}"

    assert extract_rtf_text(rtf) == ["a—b c’s", "next"]


def test_no_control_words_survive() -> None:
    rtf = b"{\\rtf1{\\stylesheet{\\s0 Normal;}}\\pard\\plain\\fs24\\b Title\\b0\\par\\i body\\i0  text\\unknownword12  end}"

    blocks = extract_rtf_text(rtf)

    assert blocks == ["Title", "body text end"]
    assert not any("\\" in block for block in blocks)


def test_unknown_code_page_is_an_encoding_error() -> None:
    with pytest.raises(UnsupportedEncodingError):
        extract_rtf_text(b"{\\rtf1\\ansi\\ansicpg99999 text}")


def test_empty_document_yields_no_blocks() -> None:
    assert extract_rtf_text(b"{\\rtf1\\ansi{\\fonttbl{\\f0 Arial;}}}") == []


def test_rtf_extractor_joins_paragraphs_with_newlines() -> None:
    result = RTFExtractor().extract(b"{\\rtf1\\ansi Tom \\'26 Jerry\\par\\pard <3 caf\\'e9}")

    assert result.format is DocumentFormat.RTF
    assert result.text == "Tom & Jerry\n<3 café"


@pytest.mark.parametrize("rtf", [b"{\\rtf1 \\bin-7 x}", b"{\\rtf1 \\bin0 x}", b"{\\rtf1 \\bin x}"])
def test_non_positive_binary_length_is_ignored(rtf: bytes) -> None:
    assert extract_rtf_text(rtf) == ["x"]


def test_binary_length_past_end_of_input_drops_the_rest() -> None:
    assert extract_rtf_text(b"{\\rtf1 kept{\\pict\\bin99999 ab}") == ["kept"]


def test_overlong_control_words_are_discarded() -> None:
    rtf = b"{\\rtf1 \\" + b"a" * 40 + b" text \\fs123456789012 more}"

    assert extract_rtf_text(rtf) == ["text more"]


def test_surrogate_pairs_combine() -> None:
    assert extract_rtf_text(b"{\\rtf1\\uc0 \\u-10179\\u-8704 !}") == ["\U0001f600!"]


def test_soft_hyphen_is_dropped() -> None:
    assert extract_rtf_text(b"{\\rtf1 hy\\-phen}") == ["hyphen"]
