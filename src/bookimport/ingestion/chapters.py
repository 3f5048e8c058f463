"""Heuristic chapter boundary detection over reconstructed plain text.

A boundary is a line that starts with a heading keyword followed by a
numeral, e.g. ``Chapter 12``, ``Part IV: The Return`` or ``Chương một``.
Bare numbers and Roman numerals on their own are too ambiguous in running
prose, so the keyword is mandatory. Detection is fallible by nature: when
nothing is found the whole text becomes a single chapter.
"""

from __future__ import annotations

import logging
import re

from bookimport.config import ImportSettings
from bookimport.ingestion.cancellation import CancellationToken
from bookimport.ingestion.models import ChapterBoundaryMatch, ChapterDraft
from bookimport.ingestion.progress import PhaseCallback
from bookimport.ingestion.vocabulary import HeadingVocabulary, vocabulary_for_languages

logger = logging.getLogger(__name__)

_LEADING_SEPARATOR_RE = re.compile(r"^[ \t]*[:\-.–—]?[ \t]*")
_NUMERIC_RANGE_RE = re.compile(r"^[ \t]*[-–—][ \t]*\d+[ \t]*$")
_SENTENCE_ENDINGS = (",", ".", "!", "?", ";")


def _alternation(values: tuple[str, ...]) -> str:
    # Longest first so that e.g. "Seventeen" wins over "Seven".
    return "|".join(re.escape(value) for value in sorted(values, key=len, reverse=True))


def compile_heading_pattern(vocabulary: HeadingVocabulary) -> re.Pattern[str]:
    """Build the single combined pattern used for the linear scan."""

    numerals: list[str] = []
    if vocabulary.arabic_numerals:
        numerals.append(r"\d+")
    if vocabulary.roman_numerals:
        numerals.append(r"(?-i:[IVXLCDM]+)")
    if vocabulary.spelled_numerals:
        numerals.append(_alternation(vocabulary.spelled_numerals))
    if not numerals:
        raise ValueError("HeadingVocabulary enables no numeral forms")

    pattern = (
        r"^[ \t]*"
        rf"(?P<keyword>{_alternation(vocabulary.keywords)})"
        r"[ \t]*[:\-.]?[ \t]*"
        rf"(?P<numeral>{'|'.join(numerals)})(?!\w)"
        r"(?P<rest>[^\n]*)"
    )
    return re.compile(pattern, re.IGNORECASE | re.MULTILINE)


class ChapterDetector:
    """Find heading lines and slice text into chapter drafts."""

    def __init__(
        self,
        vocabulary: HeadingVocabulary | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        self._settings = settings or ImportSettings()
        self._vocabulary = vocabulary or vocabulary_for_languages(self._settings.heading_languages)
        self._pattern = compile_heading_pattern(self._vocabulary)
        self._exclusions = tuple(phrase.casefold() for phrase in self._vocabulary.exclusion_phrases)

    @property
    def vocabulary(self) -> HeadingVocabulary:
        return self._vocabulary

    def detect(
        self,
        text: str,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: PhaseCallback | None = None,
    ) -> list[ChapterDraft]:
        token = cancel_token or CancellationToken()
        token.raise_if_cancelled()
        boundaries = self.find_boundaries(text, cancel_token=token, on_progress=on_progress)
        return self.split_into_chapters(text, boundaries, cancel_token=token, on_progress=on_progress)

    def find_boundaries(
        self,
        text: str,
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: PhaseCallback | None = None,
    ) -> list[ChapterBoundaryMatch]:
        """Return accepted heading matches, unique by line offset and sorted."""

        interval = self._settings.scan_progress_interval
        by_start: dict[int, ChapterBoundaryMatch] = {}
        found = 0

        for match in self._pattern.finditer(text):
            candidate = self._accept(text, match)
            if candidate is None:
                continue
            by_start.setdefault(candidate.match_start, candidate)
            found += 1

            if found % interval == 0:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                if on_progress is not None:
                    on_progress(0.0, f"Found {found} chapter headings")

        logger.debug("Heading scan accepted %d candidates", len(by_start))
        return sorted(by_start.values(), key=lambda boundary: boundary.match_start)

    def split_into_chapters(
        self,
        text: str,
        boundaries: list[ChapterBoundaryMatch],
        *,
        cancel_token: CancellationToken | None = None,
        on_progress: PhaseCallback | None = None,
    ) -> list[ChapterDraft]:
        """Cut ``text`` at the boundaries.

        Content spans run from the line after each heading up to the next
        heading line, so the spans never overlap and, together with the
        heading lines and any foreword, cover the text exactly.
        """

        if not boundaries:
            return [ChapterDraft(title=self._settings.fallback_title, content=text, order=0)]

        drafts: list[ChapterDraft] = []
        first_start = boundaries[0].match_start
        if first_start > 0:
            drafts.append(ChapterDraft(title=self._settings.foreword_title, content=text[:first_start]))

        total = len(boundaries)
        interval = self._settings.slice_progress_interval
        for index, boundary in enumerate(boundaries):
            end = boundaries[index + 1].match_start if index + 1 < total else len(text)
            drafts.append(ChapterDraft(title=boundary.title, content=text[boundary.content_start : end]))

            done = index + 1
            if done % interval == 0 or done == total:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                if on_progress is not None:
                    on_progress(done / total, f"Splitting chapter {done} / {total}")

        for order, draft in enumerate(drafts):
            draft.order = order
        return drafts

    def _accept(self, text: str, match: re.Match[str]) -> ChapterBoundaryMatch | None:
        heading = match.group(0).strip()
        if not heading:
            return None

        folded = heading.casefold()
        if any(folded.startswith(phrase) for phrase in self._exclusions):
            return None

        numeral = match.group("numeral")
        rest = match.group("rest")
        if numeral.isdigit() and _NUMERIC_RANGE_RE.match(rest):
            return None

        subtitle = _LEADING_SEPARATOR_RE.sub("", rest, count=1).strip()
        subtitle = subtitle[: self._settings.subtitle_max_chars].rstrip()

        title = f"{match.group('keyword')} {numeral}"
        if (
            subtitle
            and not subtitle.endswith(_SENTENCE_ENDINGS)
            and len(subtitle) <= self._settings.title_subtitle_max_chars
        ):
            title = f"{title}: {subtitle}"

        match_start = match.start()
        line_end = text.find("\n", match_start)
        content_start = line_end + 1 if line_end != -1 else len(text)
        return ChapterBoundaryMatch(match_start=match_start, content_start=content_start, title=title)
