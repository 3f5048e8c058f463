"""Format adapter implementations and contracts."""

import logging

from bookimport.ingestion.models import DocumentFormat

from .base import ExtractionContext, FormatAdapter

logger = logging.getLogger(__name__)

try:
    from .pdf_adapter import PDFAdapter
except ImportError:
    PDFAdapter = None
    logger.warning("PDF support unavailable: install 'pymupdf'")

try:
    from .epub_adapter import EPUBAdapter
except ImportError:
    EPUBAdapter = None
    logger.warning("EPUB support unavailable: install 'lxml'")

try:
    from .txt_adapter import TXTAdapter
except ImportError:
    TXTAdapter = None
    logger.warning("TXT support unavailable: install 'charset-normalizer'")


def build_default_adapters() -> dict[DocumentFormat, FormatAdapter]:
    """Return the default adapter map keyed by the format branch each one decodes."""
    adapters: dict[DocumentFormat, FormatAdapter] = {}
    if PDFAdapter is not None:
        adapters[DocumentFormat.PAGED] = PDFAdapter()
    if EPUBAdapter is not None:
        adapters[DocumentFormat.PACKAGE] = EPUBAdapter()
    if TXTAdapter is not None:
        adapters[DocumentFormat.TEXT] = TXTAdapter()
    return adapters


__all__ = [
    "ExtractionContext",
    "FormatAdapter",
    "PDFAdapter",
    "EPUBAdapter",
    "TXTAdapter",
    "build_default_adapters",
]
