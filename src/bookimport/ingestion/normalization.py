"""Text normalization helpers shared by adapters and the chapter detector."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_VISIBLE_RE = re.compile(r"\S")
_BOM = "\ufeff"


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_newlines(text: str) -> str:
    """Unify line endings to ``\\n`` and drop a leading byte-order mark."""

    if text.startswith(_BOM):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_document_text(text: str) -> str:
    """Produce the text the chapter detector partitions."""

    return normalize_newlines(text).strip()


def visible_char_count(text: str) -> int:
    return len(_VISIBLE_RE.findall(text))
