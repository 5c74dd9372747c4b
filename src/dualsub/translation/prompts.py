"""Prompt templates for single-line caption translation."""

from __future__ import annotations

import re

TRANSLATION_SYSTEM = """\
You are a professional subtitle translator. Translate one subtitle line at a time \
accurately while keeping it natural and concise for on-screen reading.

Rules:
- Translate from {source_lang} to {target_lang}
- Keep the translation concise — suitable for subtitle display
- Preserve the tone and register of the original
- Handle idioms and colloquialisms naturally in the target language
- Preserve bracketed text (e.g. [music], (laughs)) and proper names as-is
- Return ONLY the translated line, with no quotes, notes or explanations
"""

TRANSLATION_USER = """\
Translate this subtitle line from {source_lang} to {target_lang}:

{text}
"""

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_QUOTE_PAIRS = (('"', '"'), ("“", "”"), ("「", "」"), ("'", "'"))


def build_messages(text: str, source_lang: str, target_lang: str) -> list[dict[str, str]]:
    """Chat messages in OpenAI format for one caption line."""
    return [
        {
            "role": "system",
            "content": TRANSLATION_SYSTEM.format(source_lang=source_lang, target_lang=target_lang),
        },
        {
            "role": "user",
            "content": TRANSLATION_USER.format(
                source_lang=source_lang, target_lang=target_lang, text=text
            ),
        },
    ]


def clean_response(response: str | None) -> str:
    """Strip reasoning blocks, labels and wrapping quotes from a model reply.

    Multi-line replies are joined with spaces: a caption is a single line.
    """
    if not response:
        return ""
    text = _THINK_RE.sub("", response).strip()
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    text = " ".join(lines)

    # Some models echo a label like "Translation: ..."
    if ":" in text:
        label, rest = text.split(":", 1)
        if label.strip().lower() in ("translation", "translated", "output"):
            text = rest.strip()

    for left, right in _QUOTE_PAIRS:
        if len(text) >= 2 and text.startswith(left) and text.endswith(right):
            text = text[len(left) : -len(right)].strip()
            break
    return text
