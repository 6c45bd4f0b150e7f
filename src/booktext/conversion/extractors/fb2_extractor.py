"""FB2 extractor with raw and zipped container support."""

from __future__ import annotations

from booktext.conversion.containers import ZIP_MAGIC, read_fb2_payload
from booktext.conversion.errors import MalformedMarkupError
from booktext.conversion.markup import MarkupProfile, collect_text, find_local, local_name, parse_markup
from booktext.conversion.models import DocumentFormat, ExtractedText, TextSequence

FICTIONBOOK_PROFILE = MarkupProfile(
    block_tags=frozenset(
        {
            "p", "title", "subtitle", "section", "v", "stanza", "poem", "epigraph", "cite",
            "text-author", "empty-line", "table", "tr", "annotation",
        }
    ),
    ignored_tags=frozenset({"binary", "image"}),
)

# Bodies holding footnotes or comments rather than the main text
_AUXILIARY_BODIES = frozenset({"notes", "comments"})


class FB2Extractor:
    """Extract text from the FictionBook bodies."""

    format = DocumentFormat.FB2

    def extract(self, data: bytes) -> ExtractedText:
        payload = read_fb2_payload(data) if data.startswith(ZIP_MAGIC) else data
        soup = parse_markup(payload, "xml")

        root = soup.find(True)
        if root is None or local_name(root) != "fictionbook":
            raise MalformedMarkupError("Document root is not <FictionBook>")

        bodies = [body for body in find_local(root, "body") if body.get("name") not in _AUXILIARY_BODIES]
        if not bodies:
            raise MalformedMarkupError("FictionBook document has no <body>")

        sequence = TextSequence()
        for body in bodies:
            sequence.extend(collect_text(body, FICTIONBOOK_PROFILE))
        return ExtractedText(format=self.format, blocks=sequence.blocks())
