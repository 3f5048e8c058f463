"""Canonical data structures shared by the import pipeline and its adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class DocumentFormat(Enum):
    TEXT = "text"
    PAGED = "paged"
    PACKAGE = "package"


@dataclass(frozen=True, slots=True)
class RawDocument:
    """Immutable source payload tagged with the format branch that decodes it."""

    name: str
    data: bytes
    format: DocumentFormat
    media_type: str | None = None

    @property
    def stem(self) -> str:
        """File name without its extension, used as the fallback book title."""

        return Path(self.name).stem or self.name


@dataclass(frozen=True, slots=True)
class PageTextFragment:
    """One positioned glyph run on a page.

    ``y`` is the baseline and grows downward, so smaller values are closer to
    the top of the page. ``height`` is the font size used as a line-height proxy.
    """

    text: str
    x: float
    y: float
    height: float
    width: float = 0.0

    @property
    def end_x(self) -> float:
        return self.x + self.width


@dataclass(frozen=True, slots=True)
class ManifestItem:
    """Resource declared in a package manifest."""

    id: str
    path: str
    media_type: str | None = None
    properties: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class SpineEntry:
    """Reference into the manifest; spine order is the linear reading order."""

    idref: str
    path: str
    linear: bool = True


@dataclass(frozen=True, slots=True)
class NavigationTitle:
    """Human title for one content path, taken from the navigation document."""

    path: str
    label: str


@dataclass(slots=True)
class PackageStructure:
    """Decoded container pointer, package document and navigation of an e-book."""

    package_path: str
    title: str | None = None
    author: str | None = None
    manifest: dict[str, ManifestItem] = field(default_factory=dict)
    spine: list[SpineEntry] = field(default_factory=list)
    navigation: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ChapterBoundaryMatch:
    """Heading occurrence discovered by the chapter detector."""

    match_start: int
    content_start: int
    title: str


@dataclass(slots=True)
class ChapterDraft:
    """Chapter handed to the caller; ``order`` is the final 0-based index."""

    title: str
    content: str
    order: int = 0


@dataclass(slots=True)
class ExtractedMetadata:
    """Normalized metadata extracted from a source document."""

    title: str | None = None
    author: str | None = None
    format: DocumentFormat | None = None


@dataclass(slots=True)
class ExtractedSection:
    """One content file of a structured package, already normalized to text."""

    title: str
    text: str
    path: str | None = None


@dataclass(slots=True)
class ExtractedDocument:
    """Adapter output: either one flat text stream or pre-split sections."""

    metadata: ExtractedMetadata = field(default_factory=ExtractedMetadata)
    text: str = ""
    sections: list[ExtractedSection] = field(default_factory=list)

    @property
    def is_structured(self) -> bool:
        return self.metadata.format is DocumentFormat.PACKAGE


@dataclass(slots=True)
class ImportResult:
    """Terminal pipeline output; ownership transfers to the caller."""

    title: str
    chapters: list[ChapterDraft] = field(default_factory=list)
    author: str | None = None
    format: DocumentFormat | None = None
