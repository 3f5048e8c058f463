"""Ingestion package interfaces."""

from .cancellation import CancellationToken
from .errors import (
    CancellationError,
    DocumentDecodeError,
    EmptyDocumentError,
    IngestionError,
    MalformedContainerError,
    UnitDecodeSkip,
    UnsupportedFormatError,
)
from .ingestor import BookImporter, build_default_importer
from .models import ChapterDraft, DocumentFormat, ImportResult, RawDocument

__all__ = [
    "BookImporter",
    "CancellationError",
    "CancellationToken",
    "ChapterDraft",
    "DocumentDecodeError",
    "DocumentFormat",
    "EmptyDocumentError",
    "ImportResult",
    "IngestionError",
    "MalformedContainerError",
    "RawDocument",
    "UnitDecodeSkip",
    "UnsupportedFormatError",
    "build_default_importer",
]
