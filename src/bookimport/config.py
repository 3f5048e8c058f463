"""Runtime configuration for the import pipeline.

The layout thresholds are empirical; each can be overridden from the
environment with a ``BOOKIMPORT_`` prefixed variable.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_SAME_LINE_TOLERANCE = 4.0
DEFAULT_PARAGRAPH_GAP_RATIO = 1.4
DEFAULT_LINE_GAP_RATIO = 0.4
DEFAULT_WORD_GAP_RATIO = 0.3
DEFAULT_DECORATION_CHARS = "\u00b7"
DEFAULT_PAGE_BATCH_SIZE = 50
DEFAULT_SPINE_BATCH_SIZE = 10
DEFAULT_MIN_CONTENT_CHARS = 10
DEFAULT_SUBTITLE_MAX_CHARS = 100
DEFAULT_TITLE_SUBTITLE_MAX_CHARS = 80
DEFAULT_SCAN_PROGRESS_INTERVAL = 100
DEFAULT_SLICE_PROGRESS_INTERVAL = 50
DEFAULT_FALLBACK_TITLE = "Content"
DEFAULT_FOREWORD_TITLE = "Foreword"
DEFAULT_UNTITLED_CHAPTER_TEMPLATE = "Chapter {number}"
DEFAULT_HEADING_LANGUAGES = ("en", "vi")


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _required(source: Mapping[str, str], name: str, default: object) -> str:
    raw_value = source.get(name, str(default)).strip()
    if not raw_value:
        raise ValueError(f"{name} cannot be empty")
    return raw_value


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Validated tuning constants and labels used by the import pipeline."""

    same_line_tolerance: float = DEFAULT_SAME_LINE_TOLERANCE
    paragraph_gap_ratio: float = DEFAULT_PARAGRAPH_GAP_RATIO
    line_gap_ratio: float = DEFAULT_LINE_GAP_RATIO
    word_gap_ratio: float = DEFAULT_WORD_GAP_RATIO
    decoration_chars: str = DEFAULT_DECORATION_CHARS
    page_batch_size: int = DEFAULT_PAGE_BATCH_SIZE
    spine_batch_size: int = DEFAULT_SPINE_BATCH_SIZE
    min_content_chars: int = DEFAULT_MIN_CONTENT_CHARS
    subtitle_max_chars: int = DEFAULT_SUBTITLE_MAX_CHARS
    title_subtitle_max_chars: int = DEFAULT_TITLE_SUBTITLE_MAX_CHARS
    scan_progress_interval: int = DEFAULT_SCAN_PROGRESS_INTERVAL
    slice_progress_interval: int = DEFAULT_SLICE_PROGRESS_INTERVAL
    fallback_title: str = DEFAULT_FALLBACK_TITLE
    foreword_title: str = DEFAULT_FOREWORD_TITLE
    untitled_chapter_template: str = DEFAULT_UNTITLED_CHAPTER_TEMPLATE
    heading_languages: tuple[str, ...] = DEFAULT_HEADING_LANGUAGES

    def __post_init__(self) -> None:
        if self.line_gap_ratio >= self.paragraph_gap_ratio:
            raise ValueError("line_gap_ratio must be lower than paragraph_gap_ratio")
        if "{number}" not in self.untitled_chapter_template:
            raise ValueError("untitled_chapter_template must contain '{number}'")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ImportSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        same_line_tolerance = _parse_positive_float(
            name="BOOKIMPORT_SAME_LINE_TOLERANCE",
            raw_value=_required(source, "BOOKIMPORT_SAME_LINE_TOLERANCE", DEFAULT_SAME_LINE_TOLERANCE),
        )
        paragraph_gap_ratio = _parse_positive_float(
            name="BOOKIMPORT_PARAGRAPH_GAP_RATIO",
            raw_value=_required(source, "BOOKIMPORT_PARAGRAPH_GAP_RATIO", DEFAULT_PARAGRAPH_GAP_RATIO),
        )
        line_gap_ratio = _parse_positive_float(
            name="BOOKIMPORT_LINE_GAP_RATIO",
            raw_value=_required(source, "BOOKIMPORT_LINE_GAP_RATIO", DEFAULT_LINE_GAP_RATIO),
        )
        word_gap_ratio = _parse_positive_float(
            name="BOOKIMPORT_WORD_GAP_RATIO",
            raw_value=_required(source, "BOOKIMPORT_WORD_GAP_RATIO", DEFAULT_WORD_GAP_RATIO),
        )
        page_batch_size = _parse_positive_int(
            name="BOOKIMPORT_PAGE_BATCH_SIZE",
            raw_value=_required(source, "BOOKIMPORT_PAGE_BATCH_SIZE", DEFAULT_PAGE_BATCH_SIZE),
        )
        spine_batch_size = _parse_positive_int(
            name="BOOKIMPORT_SPINE_BATCH_SIZE",
            raw_value=_required(source, "BOOKIMPORT_SPINE_BATCH_SIZE", DEFAULT_SPINE_BATCH_SIZE),
        )
        min_content_chars = _parse_positive_int(
            name="BOOKIMPORT_MIN_CONTENT_CHARS",
            raw_value=_required(source, "BOOKIMPORT_MIN_CONTENT_CHARS", DEFAULT_MIN_CONTENT_CHARS),
            minimum=0,
        )
        subtitle_max_chars = _parse_positive_int(
            name="BOOKIMPORT_SUBTITLE_MAX_CHARS",
            raw_value=_required(source, "BOOKIMPORT_SUBTITLE_MAX_CHARS", DEFAULT_SUBTITLE_MAX_CHARS),
        )
        title_subtitle_max_chars = _parse_positive_int(
            name="BOOKIMPORT_TITLE_SUBTITLE_MAX_CHARS",
            raw_value=_required(
                source, "BOOKIMPORT_TITLE_SUBTITLE_MAX_CHARS", DEFAULT_TITLE_SUBTITLE_MAX_CHARS
            ),
        )
        scan_progress_interval = _parse_positive_int(
            name="BOOKIMPORT_SCAN_PROGRESS_INTERVAL",
            raw_value=_required(source, "BOOKIMPORT_SCAN_PROGRESS_INTERVAL", DEFAULT_SCAN_PROGRESS_INTERVAL),
        )
        slice_progress_interval = _parse_positive_int(
            name="BOOKIMPORT_SLICE_PROGRESS_INTERVAL",
            raw_value=_required(source, "BOOKIMPORT_SLICE_PROGRESS_INTERVAL", DEFAULT_SLICE_PROGRESS_INTERVAL),
        )

        decoration_chars = source.get("BOOKIMPORT_DECORATION_CHARS", DEFAULT_DECORATION_CHARS)
        fallback_title = _required(source, "BOOKIMPORT_FALLBACK_TITLE", DEFAULT_FALLBACK_TITLE)
        foreword_title = _required(source, "BOOKIMPORT_FOREWORD_TITLE", DEFAULT_FOREWORD_TITLE)
        untitled_template = _required(
            source, "BOOKIMPORT_UNTITLED_CHAPTER_TEMPLATE", DEFAULT_UNTITLED_CHAPTER_TEMPLATE
        )

        languages_raw = _required(source, "BOOKIMPORT_HEADING_LANGUAGES", ",".join(DEFAULT_HEADING_LANGUAGES))
        heading_languages = tuple(part.strip().lower() for part in languages_raw.split(",") if part.strip())
        if not heading_languages:
            raise ValueError("BOOKIMPORT_HEADING_LANGUAGES must name at least one language")

        return cls(
            same_line_tolerance=same_line_tolerance,
            paragraph_gap_ratio=paragraph_gap_ratio,
            line_gap_ratio=line_gap_ratio,
            word_gap_ratio=word_gap_ratio,
            decoration_chars=decoration_chars,
            page_batch_size=page_batch_size,
            spine_batch_size=spine_batch_size,
            min_content_chars=min_content_chars,
            subtitle_max_chars=subtitle_max_chars,
            title_subtitle_max_chars=title_subtitle_max_chars,
            scan_progress_interval=scan_progress_interval,
            slice_progress_interval=slice_progress_interval,
            fallback_title=fallback_title,
            foreword_title=foreword_title,
            untitled_chapter_template=untitled_template,
            heading_languages=heading_languages,
        )
