"""Shared adapter contract for per-format decoders."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Protocol, runtime_checkable

from bookimport.config import ImportSettings
from bookimport.ingestion.cancellation import CancellationToken
from bookimport.ingestion.models import DocumentFormat, ExtractedDocument, RawDocument
from bookimport.ingestion.progress import PhaseCallback


@dataclass(slots=True)
class ExtractionContext:
    """Per-run state handed to an adapter; never shared between imports."""

    settings: ImportSettings = field(default_factory=ImportSettings)
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    progress: PhaseCallback | None = None

    def report(self, fraction: float, detail: str | None = None) -> None:
        if self.progress is not None:
            self.progress(fraction, detail)


def declared_suffix(name: str) -> str:
    return PurePath(name).suffix.lower()


def declared_media_type(media_type: str | None) -> str:
    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


@runtime_checkable
class FormatAdapter(Protocol):
    """Protocol that every format adapter must implement."""

    format: DocumentFormat

    def supports(self, name: str, media_type: str | None = None, sniffed_bytes: bytes | None = None) -> bool:
        """Return True when this adapter can decode the given declaration or content."""

    async def extract(self, document: RawDocument, context: ExtractionContext) -> ExtractedDocument:
        """Decode a raw document into flat text or structured sections."""
