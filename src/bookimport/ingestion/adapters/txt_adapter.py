"""Plain-text adapter with encoding detection."""

from __future__ import annotations

import logging

from charset_normalizer import from_bytes

from bookimport.ingestion.adapters.base import ExtractionContext, declared_media_type, declared_suffix
from bookimport.ingestion.errors import DocumentDecodeError
from bookimport.ingestion.models import DocumentFormat, ExtractedDocument, ExtractedMetadata, RawDocument
from bookimport.ingestion.normalization import normalize_newlines

logger = logging.getLogger(__name__)

_BINARY_PREFIXES = (b"%PDF-", b"PK\x03\x04")


class TXTAdapter:
    """Decode plain-text books into one flat text stream."""

    format = DocumentFormat.TEXT

    def supports(self, name: str, media_type: str | None = None, sniffed_bytes: bytes | None = None) -> bool:
        if declared_suffix(name) == ".txt" or declared_media_type(media_type).startswith("text/"):
            return True
        if sniffed_bytes is None:
            return False
        if sniffed_bytes.lstrip().startswith(_BINARY_PREFIXES):
            return False
        return b"\x00" not in sniffed_bytes

    async def extract(self, document: RawDocument, context: ExtractionContext) -> ExtractedDocument:
        context.cancel_token.raise_if_cancelled()
        encoding = self._detect_encoding(document)
        text = normalize_newlines(document.data.decode(encoding, errors="replace"))
        logger.debug("Decoded %s as %s (%d chars)", document.name, encoding, len(text))
        context.report(1.0, f"Read {len(text)} characters")

        return ExtractedDocument(
            metadata=ExtractedMetadata(title=document.stem, format=DocumentFormat.TEXT),
            text=text,
        )

    def _detect_encoding(self, document: RawDocument) -> str:
        raw = document.data
        if raw.startswith(b"\xef\xbb\xbf"):
            return "utf-8-sig"

        best = from_bytes(raw).best()
        if best and best.encoding:
            name = best.encoding.lower()
            if name in {"windows-1251", "cp1251"}:
                return "cp1251"
            return best.encoding

        for fallback in ("utf-8", "cp1252"):
            try:
                raw.decode(fallback)
                return fallback
            except UnicodeDecodeError:
                continue
        raise DocumentDecodeError(document.name, "Could not detect text encoding")
