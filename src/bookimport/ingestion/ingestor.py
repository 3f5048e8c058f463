"""Pipeline coordinator: route by format, decode, detect chapters, assemble."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from bookimport.config import ImportSettings
from bookimport.ingestion.adapters import build_default_adapters
from bookimport.ingestion.adapters.base import ExtractionContext, FormatAdapter
from bookimport.ingestion.cancellation import CancellationToken
from bookimport.ingestion.chapters import ChapterDetector
from bookimport.ingestion.errors import (
    CancellationError,
    DocumentDecodeError,
    IngestionError,
    UnsupportedFormatError,
)
from bookimport.ingestion.models import ChapterDraft, DocumentFormat, ExtractedDocument, ImportResult, RawDocument
from bookimport.ingestion.normalization import normalize_document_text
from bookimport.ingestion.progress import ProgressCallback, ProgressReporter
from bookimport.ingestion.vocabulary import HeadingVocabulary

logger = logging.getLogger(__name__)

# Share of the 0..100 progress range spent decoding before chapter detection.
_DECODE_SHARE: dict[DocumentFormat, float] = {
    DocumentFormat.TEXT: 0.0,
    DocumentFormat.PAGED: 50.0,
    DocumentFormat.PACKAGE: 95.0,
}
_DECODE_LABELS: dict[DocumentFormat, str] = {
    DocumentFormat.TEXT: "Reading text",
    DocumentFormat.PAGED: "Reading PDF",
    DocumentFormat.PACKAGE: "Reading EPUB",
}
DETECT_PHASE = "Detecting chapters"
COMPLETE_PHASE = "Complete"


class BookImporter:
    """Resolve the right adapter and turn one document into an :class:`ImportResult`."""

    def __init__(
        self,
        settings: ImportSettings | None = None,
        *,
        vocabulary: HeadingVocabulary | None = None,
        sniff_bytes: int = 4096,
    ) -> None:
        self._settings = settings or ImportSettings()
        self._detector = ChapterDetector(vocabulary, self._settings)
        self._sniff_bytes = sniff_bytes
        self._adapter_map: dict[DocumentFormat, FormatAdapter] = {}

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    @property
    def adapter_map(self) -> dict[DocumentFormat, FormatAdapter]:
        """Registered adapters keyed by format branch."""

        return dict(self._adapter_map)

    def register_adapter(self, document_format: DocumentFormat, adapter: FormatAdapter) -> None:
        if not isinstance(adapter, FormatAdapter):
            raise TypeError(f"{type(adapter).__name__} does not implement FormatAdapter")
        self._adapter_map[document_format] = adapter

    def detect_format(self, name: str, media_type: str | None = None, data: bytes = b"") -> DocumentFormat:
        """Pick the format branch: declared media type, then extension, then content sniffing."""

        if media_type:
            for document_format, adapter in self._adapter_map.items():
                if adapter.supports("", media_type):
                    return document_format
        for document_format, adapter in self._adapter_map.items():
            if adapter.supports(name):
                return document_format

        sniffed = data[: self._sniff_bytes]
        if sniffed:
            for document_format, adapter in self._adapter_map.items():
                if adapter.supports("", None, sniffed):
                    return document_format

        raise UnsupportedFormatError(name, "No adapter registered for file content")

    def open_document(self, data: bytes, name: str, media_type: str | None = None) -> RawDocument:
        document_format = self.detect_format(name, media_type, data)
        return RawDocument(name=name, data=data, format=document_format, media_type=media_type)

    async def import_path(
        self,
        path: str | Path,
        *,
        media_type: str | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        source = Path(path)
        data = self._read_bytes(source)
        return await self.import_bytes(
            data,
            source.name,
            media_type=media_type,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    def import_path_sync(
        self,
        path: str | Path,
        *,
        media_type: str | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """Blocking wrapper for callers without a running event loop."""

        return asyncio.run(
            self.import_path(path, media_type=media_type, on_progress=on_progress, cancel_token=cancel_token)
        )

    async def import_bytes(
        self,
        data: bytes,
        name: str,
        *,
        media_type: str | None = None,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        document = self.open_document(data, name, media_type)
        return await self.import_document(document, on_progress=on_progress, cancel_token=cancel_token)

    async def import_document(
        self,
        document: RawDocument,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ImportResult:
        """Run one import; raises :class:`CancellationError` instead of returning partial output."""

        token = cancel_token or CancellationToken()
        reporter = ProgressReporter(on_progress, token)
        try:
            return await self._run(document, token, reporter)
        except CancellationError:
            logger.info("Import of %s cancelled", document.name)
            raise
        finally:
            reporter.close()

    async def _run(
        self,
        document: RawDocument,
        token: CancellationToken,
        reporter: ProgressReporter,
    ) -> ImportResult:
        token.raise_if_cancelled()
        adapter = self._adapter_map.get(document.format)
        if adapter is None:
            raise UnsupportedFormatError(document.name, f"No adapter registered for {document.format.value}")

        decode_end = _DECODE_SHARE[document.format]
        label = _DECODE_LABELS[document.format]
        reporter.report(0, label, "Starting")

        context = ExtractionContext(
            settings=self._settings,
            cancel_token=token,
            progress=reporter.phase(0, decode_end, label),
        )
        extracted = await self._extract(adapter, document, context)
        token.raise_if_cancelled()

        if extracted.is_structured:
            drafts = [ChapterDraft(title=section.title, content=section.text) for section in extracted.sections]
        else:
            text = normalize_document_text(extracted.text)
            reporter.report(decode_end, DETECT_PHASE, "Searching for chapter headings")
            drafts = self._detector.detect(
                text,
                cancel_token=token,
                on_progress=reporter.phase(decode_end, 100, DETECT_PHASE),
            )
        token.raise_if_cancelled()

        for order, draft in enumerate(drafts):
            draft.order = order

        result = ImportResult(
            title=extracted.metadata.title or document.stem,
            chapters=drafts,
            author=extracted.metadata.author,
            format=document.format,
        )
        reporter.report(100, COMPLETE_PHASE, f"{len(drafts)} chapters")
        logger.info("Imported %s: %d chapters", document.name, len(drafts))
        return result

    async def _extract(
        self,
        adapter: FormatAdapter,
        document: RawDocument,
        context: ExtractionContext,
    ) -> ExtractedDocument:
        try:
            extracted = await adapter.extract(document, context)
        except (CancellationError, IngestionError):
            raise
        except Exception as exc:
            raise DocumentDecodeError(document.name, f"Adapter extraction failed: {exc}") from exc

        if not isinstance(extracted, ExtractedDocument):
            raise DocumentDecodeError(document.name, "Adapter returned non-canonical output")
        return extracted

    def _read_bytes(self, path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as exc:
            raise IngestionError(str(path), f"Failed to read source file: {exc}") from exc


def build_default_importer(
    settings: ImportSettings | None = None,
    *,
    vocabulary: HeadingVocabulary | None = None,
) -> BookImporter:
    """Importer with the text, PDF and EPUB adapters registered."""

    importer = BookImporter(settings, vocabulary=vocabulary)
    for document_format, adapter in build_default_adapters().items():
        importer.register_adapter(document_format, adapter)
    return importer
