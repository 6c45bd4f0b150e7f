"""RTF text extraction on top of striprtf.

``rtf_to_text`` does the group/destination handling. Before it runs, a
light scan rewrites the parts it does not cover: hex escapes are decoded
with the code page of the active font, ``\\binN`` payloads are removed,
unmatched closing braces are dropped and over-long control words are
discarded.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, replace
import re

from striprtf.striprtf import rtf_to_text

from booktext.conversion.encoding import is_utf8
from booktext.conversion.errors import MalformedMarkupError, UnsupportedEncodingError
from booktext.conversion.models import TextSequence
from booktext.conversion.normalization import normalize_newlines


DEFAULT_CODEC = "cp1252"

# Longest control word and parameter that striprtf tokenizes in one piece
MAX_WORD_LENGTH = 32
MAX_PARAM_DIGITS = 10

_SCAN_RE = re.compile(
    r"\\(?P<word>[a-zA-Z]+)(?P<param>-?\d+)? ?"
    r"|\\'(?P<hex>[0-9a-fA-F]{2})"
    r"|(?P<symbol>\\[^a-zA-Z])"
    r"|(?P<brace>[{}])"
    r"|(?P<newline>[\r\n]+)"
    r"|(?P<text>[^\\{}\r\n]+)",
)
_ANSICPG_RE = re.compile(rb"\\ansicpg(-?\d+)")
_CHARSET_WORD_RE = re.compile(rb"\\(ansi|mac|pca|pc)(?![a-zA-Z])")
_FONT_RE = re.compile(r"\\f(\d+)([^;{}]*)")
_FONT_CHARSET_RE = re.compile(r"\\fcharset(\d+)")
_FONT_CODEPAGE_RE = re.compile(r"\\cpg(\d+)")

_CHARSET_DEFAULTS = {b"ansi": "cp1252", b"mac": "mac_roman", b"pc": "cp437", b"pca": "cp850"}

# \fcharsetN values mapped to codecs; charsets absent here use the document code page
_FONT_CHARSETS = {
    77: "mac_roman",
    128: "cp932",
    129: "cp949",
    130: "johab",
    134: "gbk",
    136: "big5",
    161: "cp1253",
    162: "cp1254",
    163: "cp1258",
    177: "cp1255",
    178: "cp1256",
    186: "cp1257",
    204: "cp1251",
    222: "cp874",
    238: "cp1250",
    254: "cp437",
    255: "cp850",
}
_CODEPAGE_ALIASES = {
    10000: "mac_roman",
    10007: "mac_cyrillic",
    20866: "koi8_r",
    21866: "koi8_u",
    28591: "latin_1",
    28595: "iso8859_5",
    65001: "utf-8",
}


def codec_for_codepage(codepage: int) -> str:
    """Return a Python codec name for a Windows code page number."""

    name = _CODEPAGE_ALIASES.get(codepage, f"cp{codepage}")
    try:
        return codecs.lookup(name).name
    except LookupError as exc:
        raise UnsupportedEncodingError(f"Unsupported RTF code page {codepage}") from exc


def document_codec(data: bytes) -> str:
    """Codec named by ``\\ansicpgN``, else by the character set word."""

    match = _ANSICPG_RE.search(data)
    if match is not None:
        return codec_for_codepage(int(match.group(1)))
    match = _CHARSET_WORD_RE.search(data)
    if match is not None:
        return _CHARSET_DEFAULTS[match.group(1)]
    return DEFAULT_CODEC


def font_codecs(text: str) -> dict[int, str]:
    """Map font numbers from the font table to their ``\\fcharset``/``\\cpg`` codecs."""

    fonts: dict[int, str] = {}
    for match in _FONT_RE.finditer(text):
        definition = match.group(2)
        codepage = _FONT_CODEPAGE_RE.search(definition)
        charset = _FONT_CHARSET_RE.search(definition)
        if codepage is not None:
            fonts[int(match.group(1))] = codec_for_codepage(int(codepage.group(1)))
        elif charset is not None and int(charset.group(1)) in _FONT_CHARSETS:
            fonts[int(match.group(1))] = _FONT_CHARSETS[int(charset.group(1))]
    return fonts


def decode_rtf(data: bytes, codec: str) -> str:
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16", errors="replace")
    if data.startswith(codecs.BOM_UTF8):
        data = data[len(codecs.BOM_UTF8) :]
    # Raw 8-bit text is read as UTF-8 when the whole stream is valid UTF-8.
    if is_utf8(data):
        return data.decode("utf-8")
    return data.decode(codec, errors="replace")


@dataclass(slots=True)
class _GroupState:
    font: int | None = None
    unicode_skip: int = 1


class _RtfPreparer:
    """Rewrite an RTF string into the subset striprtf reads correctly."""

    def __init__(self, text: str, codec: str) -> None:
        self._text = text
        self._codec = codec
        self._fonts = font_codecs(text)
        self._state = _GroupState()
        self._stack: list[_GroupState] = []
        # characters striprtf drops after \uN, mirrored so fallback escapes stay untouched
        self._fallback = 0
        self._pending = bytearray()
        self._pending_codec = codec
        self._out: list[str] = []

    def prepare(self) -> str:
        text = self._text
        pos = 0
        end = len(text)
        while pos < end:
            match = _SCAN_RE.match(text, pos)
            if match is None:
                # dangling backslash at end of input
                pos += 1
                continue
            pos = match.end()

            if match.group("hex") is not None:
                self._hex(match)
                continue
            if match.group("text") is not None:
                self._flush()
                self._fallback = max(self._fallback - len(match.group("text")), 0)
                self._out.append(match.group(0))
                continue
            if match.group("newline") is not None:
                self._out.append(match.group(0))
                continue

            self._flush()
            self._fallback = 0
            if match.group("word") is not None:
                pos += self._word(match)
            elif match.group("brace") == "{":
                self._stack.append(self._state)
                self._state = replace(self._state)
                self._out.append("{")
            elif match.group("brace") == "}":
                if not self._stack:
                    continue
                self._state = self._stack.pop()
                self._out.append("}")
            else:
                self._out.append(match.group(0))

        self._flush()
        return "".join(self._out)

    def _hex(self, match: re.Match[str]) -> None:
        if self._fallback:
            self._fallback -= 1
            self._out.append(match.group(0))
            return
        codec = self._active_codec()
        if self._pending and codec != self._pending_codec:
            self._flush()
        self._pending_codec = codec
        self._pending.append(int(match.group("hex"), 16))

    def _word(self, match: re.Match[str]) -> int:
        """Emit a control word; returns the number of payload characters to skip."""

        name = match.group("word")
        raw_param = match.group("param")
        if len(name) > MAX_WORD_LENGTH:
            return 0
        if raw_param is not None and len(raw_param.lstrip("-")) > MAX_PARAM_DIGITS:
            return 0
        param = int(raw_param) if raw_param is not None else None

        if name == "bin":
            return param if param is not None and param > 0 else 0
        if name == "uc":
            self._state.unicode_skip = max(param if param is not None else 1, 0)
            self._out.append(f"\\uc{self._state.unicode_skip} ")
            return 0
        if name == "f" and param is not None:
            self._state.font = param
        elif name == "u":
            self._fallback = self._state.unicode_skip
        self._out.append(match.group(0))
        return 0

    def _active_codec(self) -> str:
        if self._state.font is None:
            return self._codec
        return self._fonts.get(self._state.font, self._codec)

    def _flush(self) -> None:
        # consecutive escapes are decoded together so multi-byte code pages work
        if not self._pending:
            return
        decoded = bytes(self._pending).decode(self._pending_codec, errors="replace")
        self._pending.clear()
        units = decoded.encode("utf-16-le", errors="surrogatepass")
        escapes = "".join(
            f"\\u{int.from_bytes(units[index : index + 2], 'little')}" for index in range(0, len(units), 2)
        )
        self._out.append(f"{{\\uc0 {escapes}}}")


def extract_rtf_text(data: bytes) -> list[str]:
    """Return the text blocks of an RTF document.

    Undecodable bytes become U+FFFD; a code page without a Python codec
    raises UnsupportedEncodingError.
    """

    codec = document_codec(data)
    prepared = _RtfPreparer(decode_rtf(data, codec), codec).prepare()
    try:
        text = rtf_to_text(prepared, encoding=codec, errors="replace")
    except LookupError as exc:
        raise UnsupportedEncodingError(f"RTF code page could not be decoded: {exc}") from exc
    except (IndexError, TypeError, ValueError) as exc:
        raise MalformedMarkupError(f"RTF could not be parsed: {exc}") from exc

    # \uN pairs come back as separate surrogates
    text = text.encode("utf-16-le", errors="surrogatepass").decode("utf-16-le", errors="replace")
    text = normalize_newlines(text).replace("\xad", "")

    sequence = TextSequence()
    for line in text.split("\n"):
        sequence.append(line)
        sequence.separator()
    return sequence.blocks()
