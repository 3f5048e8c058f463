"""Closed heading vocabularies consumed by the chapter detector."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        cleaned = value.strip()
        key = cleaned.casefold()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        ordered.append(cleaned)
    return tuple(ordered)


@dataclass(frozen=True, slots=True)
class HeadingVocabulary:
    """Heading keywords, spelled-out numerals and compound phrases to ignore.

    ``exclusion_phrases`` are matched case-insensitively against the start of
    a candidate heading line.
    """

    keywords: tuple[str, ...]
    spelled_numerals: tuple[str, ...] = ()
    exclusion_phrases: tuple[str, ...] = ()
    arabic_numerals: bool = True
    roman_numerals: bool = True

    def __post_init__(self) -> None:
        if not self.keywords:
            raise ValueError("HeadingVocabulary requires at least one keyword")

    def merge(self, other: "HeadingVocabulary") -> "HeadingVocabulary":
        return HeadingVocabulary(
            keywords=_unique((*self.keywords, *other.keywords)),
            spelled_numerals=_unique((*self.spelled_numerals, *other.spelled_numerals)),
            exclusion_phrases=_unique((*self.exclusion_phrases, *other.exclusion_phrases)),
            arabic_numerals=self.arabic_numerals or other.arabic_numerals,
            roman_numerals=self.roman_numerals or other.roman_numerals,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "HeadingVocabulary":
        """Build a vocabulary from decoded JSON, e.g. ``{"keywords": ["Kapitel"]}``."""

        def _strings(key: str) -> tuple[str, ...]:
            raw = data.get(key, [])
            if not isinstance(raw, (list, tuple)) or not all(isinstance(item, str) for item in raw):
                raise ValueError(f"Vocabulary field '{key}' must be a list of strings")
            return _unique(raw)

        return cls(
            keywords=_strings("keywords"),
            spelled_numerals=_strings("spelled_numerals"),
            exclusion_phrases=_strings("exclusion_phrases"),
            arabic_numerals=bool(data.get("arabic_numerals", True)),
            roman_numerals=bool(data.get("roman_numerals", True)),
        )


ENGLISH_VOCABULARY = HeadingVocabulary(
    keywords=("Chapter", "Part", "Book", "Volume", "Section"),
    spelled_numerals=(
        "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
        "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen",
        "Eighteen", "Nineteen", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy",
        "Eighty", "Ninety", "Hundred",
    ),
    exclusion_phrases=(
        "Chapterhouse",
        "Chapter and verse",
        "Chapter 7 bankruptcy",
        "Chapter 11 bankruptcy",
        "Chapter 13 bankruptcy",
        "Part-time",
        "Part time",
        "Section 8 housing",
    ),
)

VIETNAMESE_VOCABULARY = HeadingVocabulary(
    keywords=("Chương", "Hồi", "Quyển", "Phần", "Tiết", "Mục"),
    spelled_numerals=("một", "hai", "ba", "bốn", "năm", "sáu", "bảy", "tám", "chín", "mười"),
    exclusion_phrases=(
        "Chương trình",
        "Chương mục",
        "Phần lớn",
        "Phần đông",
        "Phần nào",
        "Phần nhiều",
        "Tiết khí",
        "Tiết kiệm",
    ),
)

VOCABULARIES: dict[str, HeadingVocabulary] = {
    "en": ENGLISH_VOCABULARY,
    "vi": VIETNAMESE_VOCABULARY,
}


def vocabulary_for_languages(languages: Iterable[str]) -> HeadingVocabulary:
    """Merge the built-in vocabularies for the given language codes."""

    merged: HeadingVocabulary | None = None
    for language in languages:
        code = language.strip().lower()
        vocabulary = VOCABULARIES.get(code)
        if vocabulary is None:
            known = ", ".join(sorted(VOCABULARIES))
            raise ValueError(f"Unknown heading language '{language}' (known: {known})")
        merged = vocabulary if merged is None else merged.merge(vocabulary)

    if merged is None:
        raise ValueError("At least one heading language is required")
    return merged
