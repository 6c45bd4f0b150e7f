"""Data structures shared by the sniffer, extractors and converter."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from booktext.conversion.errors import ErrorKind
from booktext.conversion.normalization import normalize_whitespace


class DocumentFormat(str, Enum):
    """Closed set of formats the converter knows how to read."""

    EPUB = "epub"
    FB2 = "fb2"
    DOCX = "docx"
    HTML = "html"
    RTF = "rtf"
    TXT = "txt"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class DocumentHandle:
    """A source path and the bytes read from it."""

    path: Path
    data: bytes


class TextSequence:
    """Ordered text fragments split into blocks by separators.

    Fragments are concatenated as given; whitespace inside a block is
    collapsed when the block is closed. Empty blocks are dropped, so
    adjacent separators collapse into one.
    """

    def __init__(self) -> None:
        self._blocks: list[str] = []
        self._current: list[str] = []

    def append(self, fragment: str) -> None:
        if fragment:
            self._current.append(fragment)

    def separator(self) -> None:
        if not self._current:
            return
        text = normalize_whitespace("".join(self._current))
        self._current = []
        if text:
            self._blocks.append(text)

    def extend(self, blocks: list[str]) -> None:
        """Append already-finished blocks as separate units."""

        self.separator()
        self._blocks.extend(block for block in blocks if block)

    def blocks(self) -> list[str]:
        self.separator()
        return list(self._blocks)


@dataclass(slots=True)
class ExtractedText:
    """Extraction output: block-level units in document order."""

    format: DocumentFormat
    blocks: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.blocks)


@dataclass(slots=True)
class ConversionOutcome:
    """Result of converting one source file."""

    source_path: Path
    format: DocumentFormat | None = None
    output_path: Path | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    char_count: int = 0
    source_deleted: bool = False
    deletion_error: str | None = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "source_path": str(self.source_path),
            "format": self.format.value if self.format is not None else None,
        }
        if self.success:
            payload.update(
                {
                    "output_path": str(self.output_path) if self.output_path is not None else None,
                    "char_count": self.char_count,
                    "source_deleted": self.source_deleted,
                    "deletion_error": self.deletion_error,
                }
            )
        else:
            payload.update(
                {
                    "error_kind": self.error_kind.value if self.error_kind is not None else None,
                    "error": self.error,
                }
            )
        return payload


@dataclass(slots=True)
class BatchReport:
    """Aggregated outcomes of a directory run."""

    root: Path
    outcomes: list[ConversionOutcome] = field(default_factory=list)
    junk_removed: list[Path] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> list[ConversionOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[ConversionOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def ok(self) -> bool:
        if self.cancelled or self.failed:
            return False
        return not any(outcome.deletion_error for outcome in self.outcomes)
