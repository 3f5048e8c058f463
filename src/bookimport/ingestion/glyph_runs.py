"""Rebuild reading-order text from positioned glyph runs on a PDF page."""

from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Iterable

import pymupdf

from bookimport.config import ImportSettings
from bookimport.ingestion.models import PageTextFragment

# Fonts reporting a zero size still need a usable gap scale.
_MIN_FONT_HEIGHT = 1.0


def _fragment_order(tolerance: float) -> Callable[[PageTextFragment, PageTextFragment], int]:
    def compare(left: PageTextFragment, right: PageTextFragment) -> int:
        if abs(left.y - right.y) > tolerance:
            return -1 if left.y < right.y else 1
        if left.x == right.x:
            return 0
        return -1 if left.x < right.x else 1

    return compare


def order_fragments(
    fragments: Iterable[PageTextFragment],
    *,
    same_line_tolerance: float,
) -> list[PageTextFragment]:
    """Sort top-to-bottom, treating baselines within tolerance as one line read left-to-right."""

    return sorted(fragments, key=cmp_to_key(_fragment_order(same_line_tolerance)))


def reconstruct_page(fragments: Iterable[PageTextFragment], settings: ImportSettings | None = None) -> str:
    """Join a page's fragments into text with inferred line and paragraph breaks.

    Gaps are measured against the font height of the fragment being placed:
    a vertical jump above ``paragraph_gap_ratio`` starts a paragraph, one above
    ``line_gap_ratio`` starts a line, and on the same line a horizontal gap
    above ``word_gap_ratio`` inserts exactly one space. Smaller gaps are
    kerning inside a word and concatenate directly.
    """

    settings = settings or ImportSettings()
    ordered = order_fragments(fragments, same_line_tolerance=settings.same_line_tolerance)

    parts: list[str] = []
    last_y: float | None = None
    last_end_x = 0.0

    for fragment in ordered:
        if last_y is not None:
            height = fragment.height if fragment.height > 0 else _MIN_FONT_HEIGHT
            y_gap = abs(fragment.y - last_y)
            if y_gap > height * settings.paragraph_gap_ratio:
                parts.append("\n\n")
            elif y_gap > height * settings.line_gap_ratio:
                parts.append("\n")
            elif fragment.x - last_end_x > height * settings.word_gap_ratio:
                parts.append(" ")
        parts.append(fragment.text)
        last_y = fragment.y
        last_end_x = fragment.end_x

    text = "".join(parts)
    for char in settings.decoration_chars:
        text = text.replace(char, "")
    return text


def page_fragments(page: pymupdf.Page) -> list[PageTextFragment]:
    """Collect text spans of one page as fragments anchored at their baseline origin."""

    fragments: list[PageTextFragment] = []
    payload = page.get_text("dict")

    for block in payload.get("blocks", []):
        # type 1 blocks are images
        if block.get("type", 0) != 0:
            continue
        for line in block.get("lines", []):
            for span in line.get("spans", []):
                text = span.get("text", "")
                if not text:
                    continue
                x0, y0, x1, y1 = span["bbox"]
                origin_x, origin_y = span.get("origin", (x0, y1))
                fragments.append(
                    PageTextFragment(
                        text=text,
                        x=float(origin_x),
                        y=float(origin_y),
                        height=float(span.get("size") or (y1 - y0)),
                        width=float(x1 - x0),
                    )
                )

    return fragments
