"""Convert EPUB, FB2, DOCX, HTML and RTF books into plain UTF-8 text."""

__version__ = "0.1.0"
