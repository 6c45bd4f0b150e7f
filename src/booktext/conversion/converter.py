"""Conversion entrypoint: sniff, extract, write ``<name>.txt``."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
import logging
import os
from pathlib import Path
import tempfile
from typing import Iterable, Mapping

from booktext.conversion.errors import ExtractionError, FileAccessError, MalformedMarkupError, UnknownFormatError
from booktext.conversion.extractors import TextExtractor, build_default_extractors
from booktext.conversion.models import BatchReport, ConversionOutcome, DocumentFormat, DocumentHandle, ExtractedText
from booktext.conversion.sniffing import DEFAULT_SNIFF_BYTES, SUFFIX_FORMATS, require_format

logger = logging.getLogger(__name__)

JUNK_SUFFIXES = frozenset(
    {".djvu", ".djv", ".doc", ".chm", ".xls", ".jpg", ".jpeg", ".gif", ".png", ".zip", ".rar", ".diz"}
)


def _suffixes(path: Path) -> list[str]:
    return [part.lower() for part in path.suffixes]


def is_supported(path: Path, *, include_txt: bool = False) -> bool:
    suffixes = _suffixes(path)
    if not suffixes:
        return False
    if suffixes[-2:] == [".fb2", ".zip"]:
        return True
    if suffixes[-1] == ".txt":
        return include_txt
    return suffixes[-1] in SUFFIX_FORMATS


def is_junk(path: Path) -> bool:
    suffixes = _suffixes(path)
    if not suffixes or is_supported(path):
        return False
    return suffixes[-1] in JUNK_SUFFIXES


def collect_inputs(target: Path, *, include_txt: bool = False) -> list[Path]:
    """A file yields itself; a directory yields its supported files, sorted."""

    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(
            path for path in target.rglob("*") if path.is_file() and is_supported(path, include_txt=include_txt)
        )
    return []


def output_path_for(source: Path) -> Path:
    return source.with_suffix(".txt")


def write_text_atomic(target: Path, text: str) -> None:
    """Write UTF-8 text through a temporary sibling renamed into place."""

    handle, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
    try:
        with os.fdopen(handle, "wb") as stream:
            stream.write(text.encode("utf-8"))
        os.chmod(temp_name, 0o644)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


class DocumentConverter:
    """Convert documents to ``.txt`` files beside their sources."""

    def __init__(
        self,
        extractors: Mapping[DocumentFormat, TextExtractor] | None = None,
        *,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
        delete_source: bool = False,
    ) -> None:
        self._extractors = dict(extractors) if extractors is not None else build_default_extractors()
        self._sniff_bytes = sniff_bytes
        self._delete_source = delete_source

    @property
    def extractors(self) -> dict[DocumentFormat, TextExtractor]:
        return dict(self._extractors)

    def convert(self, path: str | Path) -> ConversionOutcome:
        """Convert one file; every failure is reported on the outcome."""

        source = Path(path)
        outcome = ConversionOutcome(source_path=source)
        try:
            handle = self._read(source)
            outcome.format = require_format(source, handle.data, self._sniff_bytes)
            extracted = self._extract(source, outcome.format, handle.data)
            del handle

            target = output_path_for(source)
            text = extracted.text
            self._write(target, text)
        except ExtractionError as exc:
            return self._failed(outcome, exc)

        outcome.output_path = target
        outcome.char_count = len(text)
        logger.info("Converted %s -> %s (%d chars)", source, target, len(text))

        if self._delete_source and target != source:
            self._remove_source(outcome)
        return outcome

    def convert_many(self, paths: Iterable[Path], *, workers: int = 1) -> tuple[list[ConversionOutcome], bool]:
        """Convert files independently; returns outcomes in input order and a cancelled flag.

        A file whose output path was already claimed by an earlier file fails
        with FileAccessError instead of overwriting that output.
        """

        ordered = list(paths)
        clashes = self._claim_outputs(ordered)
        runnable = [path for path, clash in zip(ordered, clashes) if clash is None]
        if workers <= 1:
            outcomes, cancelled = self._convert_sequential(runnable)
        else:
            outcomes, cancelled = self._convert_pooled(runnable, workers)

        converted = {outcome.source_path: outcome for outcome in outcomes}
        merged = [clash if clash is not None else converted.get(path) for path, clash in zip(ordered, clashes)]
        return [outcome for outcome in merged if outcome is not None], cancelled

    def convert_tree(
        self,
        root: str | Path,
        *,
        workers: int = 1,
        include_txt: bool = False,
        purge_junk: bool = False,
    ) -> BatchReport:
        """Convert a file or every supported file below a directory."""

        target = Path(root)
        report = BatchReport(root=target)
        if purge_junk and target.is_dir():
            report.junk_removed = self.purge_junk(target)

        inputs = collect_inputs(target, include_txt=include_txt)
        report.outcomes, report.cancelled = self.convert_many(inputs, workers=workers)
        logger.info(
            "Finished %s: %d converted, %d failed%s",
            target,
            len(report.succeeded),
            len(report.failed),
            " (cancelled)" if report.cancelled else "",
        )
        return report

    def purge_junk(self, root: Path) -> list[Path]:
        removed: list[Path] = []
        for path in sorted(root.rglob("*")):
            if not path.is_file() or not is_junk(path):
                continue
            try:
                path.unlink()
            except OSError as exc:
                logger.warning("Could not remove %s: %s", path, exc)
                continue
            removed.append(path)
        return removed

    def _claim_outputs(self, paths: list[Path]) -> list[ConversionOutcome | None]:
        """Return a failed outcome for every path whose output is taken, else None."""

        claimed: dict[Path, Path] = {}
        clashes: list[ConversionOutcome | None] = []
        for path in paths:
            target = output_path_for(path)
            owner = claimed.get(target)
            if owner is None:
                claimed[target] = path
                clashes.append(None)
                continue
            error = FileAccessError(f"Output {target.name} is already written for {owner.name}", path)
            clashes.append(self._failed(ConversionOutcome(source_path=path), error))
        return clashes

    def _convert_sequential(self, paths: list[Path]) -> tuple[list[ConversionOutcome], bool]:
        outcomes: list[ConversionOutcome] = []
        try:
            for path in paths:
                outcomes.append(self.convert(path))
        except KeyboardInterrupt:
            logger.warning("Interrupted after %d of %d files", len(outcomes), len(paths))
            return outcomes, True
        return outcomes, False

    def _convert_pooled(self, paths: list[Path], workers: int) -> tuple[list[ConversionOutcome], bool]:
        results: dict[Path, ConversionOutcome] = {}
        futures: dict[Future[ConversionOutcome], Path] = {}
        cancelled = False
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="booktext")
        try:
            for path in paths:
                futures[executor.submit(self.convert, path)] = path
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except KeyboardInterrupt:
            cancelled = True
            logger.warning("Interrupted; cancelling files that have not started")
            executor.shutdown(wait=True, cancel_futures=True)
            for future, path in futures.items():
                if future.done() and not future.cancelled() and path not in results:
                    results[path] = future.result()
        finally:
            executor.shutdown(wait=True)
        return [results[path] for path in paths if path in results], cancelled

    def _extract(self, source: Path, document_format: DocumentFormat, data: bytes) -> ExtractedText:
        extractor = self._extractors.get(document_format)
        if extractor is None:
            raise UnknownFormatError(f"No extractor registered for {document_format.value}", source)
        try:
            return extractor.extract(data)
        except ExtractionError:
            raise
        except Exception as exc:
            raise MalformedMarkupError(f"Extractor failed: {exc}", source) from exc

    def _failed(self, outcome: ConversionOutcome, exc: ExtractionError) -> ConversionOutcome:
        if exc.path is None:
            exc.path = outcome.source_path
        outcome.error_kind = exc.kind
        outcome.error = exc.message
        logger.error("Failed %s [%s]: %s", outcome.source_path, exc.kind.value, exc.message)
        return outcome

    def _read(self, path: Path) -> DocumentHandle:
        try:
            return DocumentHandle(path=path, data=path.read_bytes())
        except OSError as exc:
            raise FileAccessError(f"Failed to read source file: {exc}", path) from exc

    def _write(self, target: Path, text: str) -> None:
        try:
            write_text_atomic(target, text)
        except OSError as exc:
            raise FileAccessError(f"Failed to write {target.name}: {exc}", target) from exc

    def _remove_source(self, outcome: ConversionOutcome) -> None:
        try:
            outcome.source_path.unlink()
        except OSError as exc:
            outcome.deletion_error = str(exc)
            logger.warning("Converted but could not delete %s: %s", outcome.source_path, exc)
            return
        outcome.source_deleted = True
        logger.info("Deleted source %s", outcome.source_path)
