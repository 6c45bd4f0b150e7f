from __future__ import annotations

from io import BytesIO
import logging
from zipfile import ZipFile

import pytest

from booktext.conversion.errors import CorruptArchiveError, MalformedMarkupError
from booktext.conversion.extractors import DOCXExtractor
from booktext.conversion.models import DocumentFormat

_W = 'xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main"'

_DOCUMENT = f"""<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document {_W}>
  <w:body>
    <w:p>
      <w:pPr><w:pStyle w:val="Title"/></w:pPr>
      <w:r><w:t>Quarterly</w:t></w:r><w:r><w:t xml:space="preserve"> report</w:t></w:r>
    </w:p>
    <w:p><w:r><w:t>Name</w:t></w:r><w:r><w:tab/></w:r><w:r><w:t>Tom &amp; Jerry &lt;3</w:t></w:r></w:p>
    <w:p>
      <w:r><w:fldChar w:fldCharType="begin"/></w:r><w:r><w:instrText> PAGE </w:instrText></w:r>
      <w:del><w:r><w:delText>removed</w:delText></w:r></w:del>
      <w:r><w:t>kept</w:t></w:r><w:r><w:br/><w:t>after break</w:t></w:r>
    </w:p>
    <w:tbl><w:tr><w:tc><w:p><w:r><w:t>cell one</w:t></w:r></w:p></w:tc><w:tc><w:p><w:r><w:t>cell two</w:t></w:r></w:p></w:tc></w:tr></w:tbl>
    <w:sectPr><w:pgSz w:w="12240" w:h="15840"/></w:sectPr>
  </w:body>
</w:document>
"""


def _part(root: str, text: str) -> str:
    return f'<?xml version="1.0"?><w:{root} {_W}><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:{root}>'


def _build_docx(parts: dict[str, str | bytes]) -> bytes:
    buffer = BytesIO()
    with ZipFile(buffer, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        for name, content in parts.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def test_docx_extractor_reads_headers_body_and_footers_in_order() -> None:
    data = _build_docx(
        {
            "word/document.xml": _DOCUMENT,
            "word/footer1.xml": _part("ftr", "Footer text"),
            "word/header1.xml": _part("hdr", "Header text"),
        }
    )

    result = DOCXExtractor().extract(data)

    assert result.format is DocumentFormat.DOCX
    assert result.blocks == [
        "Header text",
        "Quarterly report",
        "Name Tom & Jerry <3",
        "kept",
        "after break",
        "cell one",
        "cell two",
        "Footer text",
    ]


def test_docx_extractor_skips_broken_header(caplog: pytest.LogCaptureFixture) -> None:
    data = _build_docx({"word/document.xml": _DOCUMENT, "word/header1.xml": b""})

    with caplog.at_level(logging.WARNING):
        result = DOCXExtractor().extract(data)

    assert result.blocks[0] == "Quarterly report"
    assert "word/header1.xml" in caplog.text


def test_docx_extractor_requires_document_part() -> None:
    with pytest.raises(CorruptArchiveError):
        DOCXExtractor().extract(_build_docx({"word/styles.xml": "<w:styles/>"}))


def test_docx_extractor_rejects_truncated_archive() -> None:
    data = _build_docx({"word/document.xml": _DOCUMENT})

    with pytest.raises(CorruptArchiveError):
        DOCXExtractor().extract(data[: len(data) // 2])


def test_docx_extractor_fails_on_unparsable_body() -> None:
    with pytest.raises(MalformedMarkupError):
        DOCXExtractor().extract(_build_docx({"word/document.xml": b""}))


def test_docx_extractor_returns_empty_text_for_empty_body() -> None:
    data = _build_docx({"word/document.xml": f"<w:document {_W}><w:body/></w:document>"})

    assert DOCXExtractor().extract(data).text == ""
