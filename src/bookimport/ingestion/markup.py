"""Strip XHTML content files to paragraph-preserving plain text."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from bookimport.ingestion.normalization import normalize_whitespace, visible_char_count

_NON_CONTENT_RE = re.compile(
    r"<!--.*?-->|<(head|style|script)\b(?:[^>]*[^/>])?>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_BREAK_RE = re.compile(
    r"<(?:br|hr)\b[^>]*/?>"
    r"|</(?:p|div|h[1-6]|li|ul|ol|dl|dt|dd|blockquote|pre|section|article|aside|header|footer"
    r"|figure|figcaption|table|tr|caption)\s*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|[a-zA-Z][a-zA-Z0-9]*);")
_HORIZONTAL_SPACE_RE = re.compile(r"[^\S\n]+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")

NAMED_ENTITIES: dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": " ",
    "ensp": " ",
    "emsp": " ",
    "thinsp": " ",
    "shy": "",
    "ndash": "–",
    "mdash": "—",
    "hellip": "…",
    "lsquo": "‘",
    "rsquo": "’",
    "sbquo": "‚",
    "ldquo": "“",
    "rdquo": "”",
    "bdquo": "„",
    "laquo": "«",
    "raquo": "»",
    "bull": "•",
    "middot": "·",
    "copy": "©",
    "reg": "®",
    "trade": "™",
    "deg": "°",
    "times": "×",
}


def _decode_entity(match: re.Match[str]) -> str:
    body = match.group(1)
    if body.startswith(("#x", "#X")):
        codepoint = int(body[2:], 16)
    elif body.startswith("#"):
        codepoint = int(body[1:])
    else:
        return NAMED_ENTITIES.get(body, match.group(0))

    try:
        return chr(codepoint)
    except (ValueError, OverflowError):
        return match.group(0)


def decode_entities(text: str) -> str:
    """Decode whitelisted named entities and numeric references; leave others untouched."""

    return _ENTITY_RE.sub(_decode_entity, text)


def markup_to_text(markup: str) -> str:
    """Return the readable text of one content file with blank-line paragraphs."""

    text = _NON_CONTENT_RE.sub("", markup)
    text = _BREAK_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    text = decode_entities(text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _HORIZONTAL_SPACE_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def is_content(text: str, *, min_chars: int) -> bool:
    """Cover pages, blank separators and similar files fall below ``min_chars``."""

    return visible_char_count(text) >= min_chars


def _soup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "lxml")


def extract_title_element(markup: str) -> str | None:
    title = _soup(markup).find("title")
    if title is None:
        return None
    return normalize_whitespace(title.get_text(" ", strip=True)) or None


def extract_first_heading(markup: str) -> str | None:
    """Text of the first level-1 or level-2 heading in document order."""

    for heading in _soup(markup).find_all(["h1", "h2"]):
        text = normalize_whitespace(heading.get_text(" ", strip=True))
        if text:
            return text
    return None
