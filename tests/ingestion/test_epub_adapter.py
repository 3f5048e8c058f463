from __future__ import annotations

from ebooklib import epub
import pytest

from bookimport.ingestion import build_default_importer
from bookimport.ingestion.adapters import ExtractionContext
from bookimport.ingestion.adapters.epub_adapter import EPUBAdapter
from bookimport.ingestion.errors import EmptyDocumentError, MalformedContainerError
from bookimport.ingestion.models import DocumentFormat, RawDocument

from package_builder import build_package, opf, xhtml

_XHTML = "application/xhtml+xml"


def _build_epub(tmp_path) -> bytes:
    book = epub.EpubBook()
    book.set_identifier("book-1")
    book.set_title("Tale of Three")
    book.set_language("en")
    book.add_author("A. Writer")

    chapters = []
    for number, body in enumerate(
        (
            "The first chapter opens on a cold morning.",
            "The second chapter follows the river south.",
            "The third chapter ends at the sea.",
        ),
        start=1,
    ):
        chapter = epub.EpubHtml(title=f"Item {number}", file_name=f"c{number}.xhtml", lang="en")
        chapter.content = f"<html><body><h1>Heading {number}</h1><p>{body}</p></body></html>"
        book.add_item(chapter)
        chapters.append(chapter)

    book.toc = (
        epub.Link("c3.xhtml", "Into the Sea", "c3"),
        epub.Link("c1.xhtml", "Cold Morning", "c1"),
        epub.Link("c2.xhtml", "River South", "c2"),
    )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = chapters

    path = tmp_path / "tale.epub"
    epub.write_epub(str(path), book)
    return path.read_bytes()


def _document(name: str, data: bytes) -> RawDocument:
    return RawDocument(name=name, data=data, format=DocumentFormat.PACKAGE)


def test_supports_extension_media_type_and_zip_magic() -> None:
    adapter = EPUBAdapter()

    assert adapter.supports("Tale.EPUB")
    assert adapter.supports("", "application/epub+zip")
    assert adapter.supports("", None, b"PK\x03\x04....")
    assert not adapter.supports("tale.txt")
    assert not adapter.supports("", None, b"%PDF-1.7")


@pytest.mark.asyncio
async def test_sections_follow_spine_order_with_navigation_titles(tmp_path) -> None:
    data = _build_epub(tmp_path)
    reported: list[tuple[float, str | None]] = []
    context = ExtractionContext(progress=lambda fraction, detail: reported.append((fraction, detail)))

    document = await EPUBAdapter().extract(_document("tale.epub", data), context)

    assert document.is_structured
    assert document.metadata.title == "Tale of Three"
    assert document.metadata.author == "A. Writer"
    assert [section.title for section in document.sections] == ["Cold Morning", "River South", "Into the Sea"]
    assert document.sections[0].text == "Heading 1\n\nThe first chapter opens on a cold morning."
    assert reported == [(1.0, "Read content files 1-3 of 3")]


@pytest.mark.asyncio
async def test_titles_fall_back_from_title_element_to_heading_to_numbering() -> None:
    data = build_package(
        {
            "OEBPS/content.opf": opf(
                [
                    ("cover", "cover.xhtml", _XHTML),
                    ("front", "front.xhtml", _XHTML),
                    ("a", "a.xhtml", _XHTML),
                    ("b", "b.xhtml", _XHTML),
                    ("c", "c.xhtml", _XHTML),
                    ("gone", "gone.xhtml", _XHTML),
                ],
                ["cover", "front", "a", "gone", "b", "c"],
                title=None,
                extra_spine_attrs={"front": 'linear="no"'},
            ),
            "OEBPS/cover.xhtml": xhtml('<img src="cover.jpg"/><p>Cover</p>'),
            "OEBPS/front.xhtml": xhtml("<p>Front matter that is outside the reading order.</p>"),
            "OEBPS/a.xhtml": xhtml("<h1>Ignored Heading</h1><p>Text of the first section.</p>", title="Titled"),
            "OEBPS/b.xhtml": xhtml("<h2>Only a Heading</h2><p>Text of the second section.</p>"),
            "OEBPS/c.xhtml": xhtml("<p>Text of the third section with no title at all.</p>"),
        }
    )

    document = await EPUBAdapter().extract(_document("loose-book.epub", data), ExtractionContext())

    assert [section.title for section in document.sections] == ["Titled", "Only a Heading", "Chapter 3"]
    assert [section.path for section in document.sections] == ["OEBPS/a.xhtml", "OEBPS/b.xhtml", "OEBPS/c.xhtml"]
    assert document.metadata.title == "loose-book"
    assert document.metadata.author is None


@pytest.mark.asyncio
async def test_package_without_readable_chapters_is_empty() -> None:
    data = build_package(
        {
            "OEBPS/content.opf": opf([("cover", "cover.xhtml", _XHTML)], ["cover"]),
            "OEBPS/cover.xhtml": xhtml("<p>Cover</p>"),
        }
    )

    with pytest.raises(EmptyDocumentError):
        await EPUBAdapter().extract(_document("cover-only.epub", data), ExtractionContext())


@pytest.mark.asyncio
async def test_missing_package_document_is_malformed() -> None:
    data = build_package({}, opf_path="OEBPS/missing.opf")

    with pytest.raises(MalformedContainerError):
        await EPUBAdapter().extract(_document("broken.epub", data), ExtractionContext())


@pytest.mark.asyncio
async def test_corrupted_content_file_is_skipped_and_other_chapters_survive() -> None:
    data = build_package(
        {
            "OEBPS/content.opf": opf(
                [("a", "a.xhtml", _XHTML), ("b", "b.xhtml", _XHTML)],
                ["a", "b"],
            ),
            "OEBPS/a.xhtml": xhtml("<p>The first chapter reads cleanly.</p>", title="A"),
            "OEBPS/b.xhtml": xhtml("<p>Damaged body marker text.</p>", title="B"),
        },
        stored=frozenset({"OEBPS/b.xhtml"}),
    )
    # Same length so only the CRC check of the stored member fails.
    corrupted = data.replace(b"Damaged body marker", b"Damaged bodz marker")
    assert corrupted != data

    result = await build_default_importer().import_bytes(corrupted, "tale.epub")

    assert [chapter.title for chapter in result.chapters] == ["A"]
