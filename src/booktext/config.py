"""Runtime configuration for conversion runs."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping

from booktext.conversion.sniffing import DEFAULT_SNIFF_BYTES


DEFAULT_LOG_LEVEL = "INFO"


def _positive_int(source: Mapping[str, str], name: str, default: int) -> int:
    raw = source.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1")
    return value


@dataclass(frozen=True, slots=True)
class ConverterSettings:
    """Validated settings used by the conversion CLI."""

    workers: int = 1
    sniff_bytes: int = DEFAULT_SNIFF_BYTES
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ConverterSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        workers = _positive_int(source, "BOOKTEXT_WORKERS", 1)
        sniff_bytes = _positive_int(source, "BOOKTEXT_SNIFF_BYTES", DEFAULT_SNIFF_BYTES)
        log_level = source.get("BOOKTEXT_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"BOOKTEXT_LOG_LEVEL is not a logging level: {log_level}")

        return cls(workers=workers, sniff_bytes=sniff_bytes, log_level=log_level)
