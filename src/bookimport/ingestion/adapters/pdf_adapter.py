"""PDF adapter rebuilding page text from positioned glyph runs."""

from __future__ import annotations

import logging

import pymupdf

from bookimport.ingestion.adapters.base import ExtractionContext, declared_media_type, declared_suffix
from bookimport.ingestion.batching import run_in_batches
from bookimport.ingestion.errors import DocumentDecodeError, UnitDecodeSkip
from bookimport.ingestion.glyph_runs import page_fragments, reconstruct_page
from bookimport.ingestion.models import DocumentFormat, ExtractedDocument, ExtractedMetadata, RawDocument
from bookimport.ingestion.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF-"
_PDF_MEDIA_TYPES = {"application/pdf", "application/x-pdf"}


def _first_non_empty(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = normalize_whitespace(value)
    return cleaned or None


class PDFAdapter:
    """Decode PDF pages in concurrent batches and join them into one text stream."""

    format = DocumentFormat.PAGED

    def supports(self, name: str, media_type: str | None = None, sniffed_bytes: bytes | None = None) -> bool:
        if declared_suffix(name) == ".pdf" or declared_media_type(media_type) in _PDF_MEDIA_TYPES:
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.lstrip().startswith(_PDF_MAGIC)

    async def extract(self, document: RawDocument, context: ExtractionContext) -> ExtractedDocument:
        context.cancel_token.raise_if_cancelled()
        pdf = self._open(document)

        with pdf:
            page_count = pdf.page_count
            title = _first_non_empty((pdf.metadata or {}).get("title")) or document.stem
            author = _first_non_empty((pdf.metadata or {}).get("author"))

            async def decode_page(index: int, _unit: int) -> str:
                try:
                    page = pdf.load_page(index)
                    return reconstruct_page(page_fragments(page), context.settings)
                except Exception as exc:
                    raise UnitDecodeSkip(index, f"page {index + 1}: {exc}") from exc

            def on_batch(first: int, last: int, total: int) -> None:
                context.report(last / total, f"Processed pages {first}-{last} of {total}")

            pages = await run_in_batches(
                list(range(page_count)),
                decode_page,
                batch_size=context.settings.page_batch_size,
                cancel_token=context.cancel_token,
                on_batch=on_batch,
            )

        text = "\n\n".join(page_text for page_text in pages if page_text.strip())
        logger.debug("Reconstructed %d of %d pages from %s", len(pages), page_count, document.name)

        return ExtractedDocument(
            metadata=ExtractedMetadata(title=title, author=author, format=DocumentFormat.PAGED),
            text=text,
        )

    def _open(self, document: RawDocument) -> pymupdf.Document:
        try:
            pdf = pymupdf.open(stream=document.data, filetype="pdf")
        except Exception as exc:
            raise DocumentDecodeError(document.name, f"Could not open PDF: {exc}") from exc

        if pdf.needs_pass:
            pdf.close()
            raise DocumentDecodeError(document.name, "PDF is password protected")
        return pdf
