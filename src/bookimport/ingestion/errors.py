"""Error taxonomy for the import pipeline."""

from __future__ import annotations

from dataclasses import dataclass


class CancellationError(Exception):
    """Raised when the caller aborted the import; never a data failure."""

    def __init__(self, message: str = "Import cancelled") -> None:
        super().__init__(message)


@dataclass(slots=True)
class IngestionError(Exception):
    """Domain error for format routing and document-level decode failures."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


class UnsupportedFormatError(IngestionError):
    """No adapter accepts the declared type or the sniffed content."""


class DocumentDecodeError(IngestionError):
    """The document as a whole could not be opened or decoded."""


class MalformedContainerError(IngestionError):
    """Package pointer or package document is missing or unparseable."""


class EmptyDocumentError(IngestionError):
    """Structured input produced no chapters after normalization."""


@dataclass(slots=True)
class UnitDecodeSkip(Exception):
    """A single page or content file failed to decode and is omitted."""

    index: int
    reason: str

    def __str__(self) -> str:
        return f"unit {self.index} skipped: {self.reason}"
