from __future__ import annotations

import pytest

from bookimport.config import ImportSettings
from bookimport.ingestion.cancellation import CancellationToken
from bookimport.ingestion.chapters import ChapterDetector
from bookimport.ingestion.errors import CancellationError
from bookimport.ingestion.models import ChapterDraft
from bookimport.ingestion.vocabulary import ENGLISH_VOCABULARY, HeadingVocabulary


_TWO_CHAPTERS = (
    "Chapter 1: The Beginning\n"
    "\n"
    "It was a quiet morning in the valley.\n"
    "\n"
    "Chapter 2: The Journey\n"
    "\n"
    "They left before dawn."
)


def _rebuild(text: str, detector: ChapterDetector, drafts: list[ChapterDraft]) -> str:
    """Reassemble text from foreword, heading lines and chapter contents."""

    boundaries = detector.find_boundaries(text)
    if not boundaries:
        return "".join(draft.content for draft in drafts)

    pieces: list[str] = []
    body_drafts = drafts
    if boundaries[0].match_start > 0:
        pieces.append(drafts[0].content)
        body_drafts = drafts[1:]
    for boundary, draft in zip(boundaries, body_drafts):
        pieces.append(text[boundary.match_start : boundary.content_start])
        pieces.append(draft.content)
    return "".join(pieces)


def test_two_headings_produce_two_titled_chapters() -> None:
    detector = ChapterDetector()

    drafts = detector.detect(_TWO_CHAPTERS)

    assert [draft.title for draft in drafts] == ["Chapter 1: The Beginning", "Chapter 2: The Journey"]
    first_heading_end = _TWO_CHAPTERS.index("\n") + 1
    second_heading = _TWO_CHAPTERS.index("Chapter 2")
    assert drafts[0].content == _TWO_CHAPTERS[first_heading_end:second_heading]
    assert drafts[1].content == "\nThey left before dawn."


def test_orders_are_contiguous_from_zero() -> None:
    text = "Preface.\nChapter 1\nA\nChapter 2\nB\nChapter 3\nC"

    drafts = ChapterDetector().detect(text)

    assert [draft.order for draft in drafts] == list(range(len(drafts)))


def test_chapter_spans_partition_the_text() -> None:
    text = (
        "A short preface before anything else.\n\n"
        "Part I\nOpening pages.\n\n"
        "Chapter 1. Arrival\nShe came by train.\n"
        "Chapter 2 - Departure\nShe left by boat.\n"
        "Chapter Three\nThe end."
    )
    detector = ChapterDetector()

    drafts = detector.detect(text)

    assert _rebuild(text, detector, drafts) == text
    assert [draft.title for draft in drafts] == [
        "Foreword",
        "Part I",
        "Chapter 1: Arrival",
        "Chapter 2: Departure",
        "Chapter Three",
    ]


def test_no_headings_yields_single_content_chapter() -> None:
    text = "Just some prose.\n\nNo structure here at all."

    drafts = ChapterDetector().detect(text)

    assert len(drafts) == 1
    assert drafts[0].title == "Content"
    assert drafts[0].content == text
    assert drafts[0].order == 0


def test_compound_word_sharing_the_keyword_is_not_a_heading() -> None:
    text = "Chapterhouse rules apply\nto every monk in residence."

    detector = ChapterDetector()

    assert detector.find_boundaries(text) == []
    assert [draft.title for draft in detector.detect(text)] == ["Content"]


def test_exclusion_phrase_with_numeral_is_rejected() -> None:
    text = "Intro.\nChapter 11 bankruptcy filings rose sharply.\nChapter 1\nBody."

    boundaries = ChapterDetector().find_boundaries(text)

    assert [boundary.title for boundary in boundaries] == ["Chapter 1"]


def test_bare_numeric_range_is_rejected() -> None:
    text = "Chapter 12-15\nare covered in the appendix."

    assert ChapterDetector().find_boundaries(text) == []


def test_keyword_must_start_the_line() -> None:
    text = "As shown in Chapter 4, the method works.\nSee also Part 2."

    assert ChapterDetector().find_boundaries(text) == []


def test_lowercase_letters_are_not_roman_numerals() -> None:
    text = "Chapter mix of ideas\nPart dim lights\nPart XIV\nBody"

    titles = [boundary.title for boundary in ChapterDetector().find_boundaries(text)]

    assert titles == ["Part XIV"]


def test_sentence_like_or_long_subtitles_are_left_out_of_the_title() -> None:
    long_subtitle = "x" * 90
    text = f"Chapter 3 was where it all began.\nBody\nChapter 4: {long_subtitle}\nMore"

    titles = [boundary.title for boundary in ChapterDetector().find_boundaries(text)]

    assert titles == ["Chapter 3", "Chapter 4"]


def test_indented_heading_offsets_point_at_line_start() -> None:
    text = "Lead in\n   CHAPTER 7 :  Night Watch  \nBody text"

    boundaries = ChapterDetector().find_boundaries(text)

    assert len(boundaries) == 1
    assert boundaries[0].match_start == text.index("   CHAPTER")
    assert boundaries[0].content_start == text.index("Body")
    assert boundaries[0].title == "CHAPTER 7: Night Watch"


def test_heading_on_last_line_has_empty_content() -> None:
    text = "Lead in\nChapter 9"

    drafts = ChapterDetector().detect(text)

    assert [(draft.title, draft.content) for draft in drafts] == [("Foreword", "Lead in\n"), ("Chapter 9", "")]


def test_vietnamese_keywords_and_spelled_numerals() -> None:
    text = "Chương 1: Trở về\nNội dung.\nChương trình học\nQuyển hai\nNội dung tiếp."

    titles = [draft.title for draft in ChapterDetector().detect(text)]

    assert titles == ["Chương 1: Trở về", "Quyển hai"]


def test_injected_vocabulary_replaces_defaults() -> None:
    vocabulary = HeadingVocabulary(
        keywords=("Kapitel",),
        spelled_numerals=("eins", "zwei"),
        exclusion_phrases=("Kapitel eins des Gesetzes",),
    )
    text = "Kapitel eins des Gesetzes\nKapitel zwei\nText\nChapter 1\nMore"

    titles = [draft.title for draft in ChapterDetector(vocabulary).detect(text)]

    assert titles == ["Foreword", "Kapitel zwei"]


def test_labels_come_from_settings() -> None:
    settings = ImportSettings(fallback_title="Nội dung", foreword_title="Mở đầu")
    detector = ChapterDetector(ENGLISH_VOCABULARY, settings)

    assert detector.detect("plain")[0].title == "Nội dung"
    assert detector.detect("intro\nChapter 1\nx")[0].title == "Mở đầu"


def test_cancelled_token_stops_detection_before_scanning() -> None:
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CancellationError):
        ChapterDetector().detect(_TWO_CHAPTERS, cancel_token=token)


def test_progress_is_reported_every_interval_while_slicing() -> None:
    settings = ImportSettings(slice_progress_interval=2)
    text = "\n".join(f"Chapter {number}\nbody {number}" for number in range(1, 6))
    calls: list[tuple[float, str | None]] = []

    drafts = ChapterDetector(settings=settings).detect(text, on_progress=lambda fraction, detail: calls.append((fraction, detail)))

    assert len(drafts) == 5
    assert [fraction for fraction, _detail in calls] == [0.4, 0.8, 1.0]
    assert calls[-1][1] == "Splitting chapter 5 / 5"


def test_vocabulary_follows_configured_languages() -> None:
    english_only = ChapterDetector(settings=ImportSettings(heading_languages=("en",)))

    assert english_only.vocabulary is ENGLISH_VOCABULARY
    assert english_only.find_boundaries("Chương 1\nNội dung.") == []
    assert "Chương" in ChapterDetector().vocabulary.keywords
