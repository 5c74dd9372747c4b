"""Caption text normalization helpers."""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[\W_]+")


def normalize_text(text: str | None) -> str:
    """Collapse runs of whitespace (including line breaks) and strip."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def meaningful_length(text: str) -> int:
    """Count letters and digits, ignoring whitespace and punctuation.

    CJK characters count as one each, so a two-character Chinese line
    weighs the same as a two-letter English one.
    """
    return len(_NON_WORD_RE.sub("", text))
