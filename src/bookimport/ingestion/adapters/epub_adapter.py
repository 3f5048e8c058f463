"""EPUB adapter producing one section per spine entry in reading order."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from bookimport.ingestion.adapters.base import ExtractionContext, declared_media_type, declared_suffix
from bookimport.ingestion.batching import run_in_batches
from bookimport.ingestion.errors import EmptyDocumentError, UnitDecodeSkip
from bookimport.ingestion.markup import extract_first_heading, extract_title_element, is_content, markup_to_text
from bookimport.ingestion.models import (
    DocumentFormat,
    ExtractedDocument,
    ExtractedMetadata,
    ExtractedSection,
    RawDocument,
    SpineEntry,
)
from bookimport.ingestion.package import open_archive, read_member, read_package_structure

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_EPUB_MEDIA_TYPE = "application/epub+zip"
_XML_ENCODING_RE = re.compile(rb"""^\s*<\?xml[^>]*encoding=["']([A-Za-z0-9._\-]+)["']""")


@dataclass(slots=True)
class _SpineText:
    path: str
    text: str
    title_element: str | None
    heading: str | None


def _decode_markup(payload: bytes) -> str:
    if payload.startswith((b"\xff\xfe", b"\xfe\xff")):
        return payload.decode("utf-16", errors="replace")

    match = _XML_ENCODING_RE.match(payload)
    if match:
        try:
            return payload.decode(match.group(1).decode("ascii"), errors="replace")
        except LookupError:
            logger.debug("Unknown declared encoding %r, using utf-8", match.group(1))
    return payload.decode("utf-8-sig", errors="replace")


class EPUBAdapter:
    """Resolve spine entries in batches and title them from navigation or markup."""

    format = DocumentFormat.PACKAGE

    def supports(self, name: str, media_type: str | None = None, sniffed_bytes: bytes | None = None) -> bool:
        if declared_suffix(name) == ".epub" or declared_media_type(media_type) == _EPUB_MEDIA_TYPE:
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.startswith(_ZIP_MAGIC)

    async def extract(self, document: RawDocument, context: ExtractionContext) -> ExtractedDocument:
        context.cancel_token.raise_if_cancelled()
        settings = context.settings

        with open_archive(document.data, document.name) as archive:
            structure = read_package_structure(archive, document.name)
            entries = [entry for entry in structure.spine if entry.linear]
            logger.debug(
                "Package %s declares %d spine entries (%d linear), %d navigation titles",
                document.name,
                len(structure.spine),
                len(entries),
                len(structure.navigation),
            )

            async def resolve_entry(index: int, entry: SpineEntry) -> _SpineText:
                try:
                    payload = read_member(archive, entry.path)
                except KeyError as exc:
                    raise UnitDecodeSkip(index, f"missing content file {entry.path}") from exc
                except Exception as exc:
                    raise UnitDecodeSkip(index, f"unreadable content file {entry.path}: {exc}") from exc

                try:
                    markup = _decode_markup(payload)
                    return _SpineText(
                        path=entry.path,
                        text=markup_to_text(markup),
                        title_element=extract_title_element(markup),
                        heading=extract_first_heading(markup),
                    )
                except Exception as exc:
                    raise UnitDecodeSkip(index, f"undecodable content file {entry.path}: {exc}") from exc

            def on_batch(first: int, last: int, total: int) -> None:
                context.report(last / total, f"Read content files {first}-{last} of {total}")

            resolved = await run_in_batches(
                entries,
                resolve_entry,
                batch_size=settings.spine_batch_size,
                cancel_token=context.cancel_token,
                on_batch=on_batch,
            )

        sections: list[ExtractedSection] = []
        for spine_text in resolved:
            if not is_content(spine_text.text, min_chars=settings.min_content_chars):
                logger.debug("Dropping non-content file %s", spine_text.path)
                continue
            number = len(sections) + 1
            title = (
                structure.navigation.get(spine_text.path)
                or spine_text.title_element
                or spine_text.heading
                or settings.untitled_chapter_template.format(number=number)
            )
            sections.append(ExtractedSection(title=title, text=spine_text.text, path=spine_text.path))

        if not sections:
            raise EmptyDocumentError(document.name, "Package contains no readable chapters")

        return ExtractedDocument(
            metadata=ExtractedMetadata(
                title=structure.title or document.stem,
                author=structure.author,
                format=DocumentFormat.PACKAGE,
            ),
            sections=sections,
        )
