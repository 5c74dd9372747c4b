"""Language codes, language-group normalization and a coarse script detector.

Codes follow BCP 47 loosely: "en", "en-US", "pt_BR", "zh-Hant" are all
accepted. Two codes are "equivalent" when they share a language group:
regional variants collapse onto their primary subtag, but Chinese keeps
Simplified, Traditional and Cantonese apart.
"""

from __future__ import annotations

import re

# fmt: off
LANGUAGE_NAMES: dict[str, str] = {
    "af": "afrikaans",   "am": "amharic",        "ar": "arabic",
    "az": "azerbaijani", "be": "belarusian",     "bg": "bulgarian",
    "bn": "bengali",     "bs": "bosnian",        "ca": "catalan",
    "cs": "czech",       "cy": "welsh",          "da": "danish",
    "de": "german",      "el": "greek",          "en": "english",
    "es": "spanish",     "et": "estonian",       "eu": "basque",
    "fa": "persian",     "fi": "finnish",        "fil": "filipino",
    "fr": "french",      "gl": "galician",       "gu": "gujarati",
    "he": "hebrew",      "hi": "hindi",          "hr": "croatian",
    "hu": "hungarian",   "hy": "armenian",       "id": "indonesian",
    "is": "icelandic",   "it": "italian",        "ja": "japanese",
    "jv": "javanese",    "ka": "georgian",       "kk": "kazakh",
    "km": "khmer",       "kn": "kannada",        "ko": "korean",
    "lo": "lao",         "lt": "lithuanian",     "lv": "latvian",
    "mk": "macedonian",  "ml": "malayalam",      "mn": "mongolian",
    "mr": "marathi",     "ms": "malay",          "my": "myanmar",
    "ne": "nepali",      "nl": "dutch",          "no": "norwegian",
    "pa": "punjabi",     "pl": "polish",         "pt": "portuguese",
    "ro": "romanian",    "ru": "russian",        "si": "sinhala",
    "sk": "slovak",      "sl": "slovenian",      "sq": "albanian",
    "sr": "serbian",     "sv": "swedish",        "sw": "swahili",
    "ta": "tamil",       "te": "telugu",         "th": "thai",
    "tr": "turkish",     "uk": "ukrainian",      "ur": "urdu",
    "uz": "uzbek",       "vi": "vietnamese",     "yue": "cantonese",
    "zh-hans": "simplified chinese",
    "zh-hant": "traditional chinese",
}
# fmt: on

# Legacy or alternate primary subtags.
LANGUAGE_ALIASES: dict[str, str] = {
    "iw": "he",
    "in": "id",
    "jw": "jv",
    "nb": "no",
    "nn": "no",
    "tl": "fil",
    "zh": "zh-hans",
}

_TRADITIONAL_REGIONS = {"tw", "hk", "mo", "hant"}
_SIMPLIFIED_REGIONS = {"cn", "sg", "my", "hans"}

AUTO = "auto"


def language_group(code: str | None) -> str:
    """Collapse a language code to the group used for equivalence checks.

    Returns "" for empty or "auto" codes.

    >>> language_group("en-US"), language_group("zh-TW"), language_group("zh-CN")
    ('en', 'zh-hant', 'zh-hans')
    """
    if not code:
        return ""
    parts = [p for p in re.split(r"[-_]", code.strip().lower()) if p]
    if not parts or parts[0] == AUTO:
        return ""

    primary = parts[0]
    if primary == "zh":
        subtags = set(parts[1:])
        if subtags & _TRADITIONAL_REGIONS:
            return "zh-hant"
        if subtags & _SIMPLIFIED_REGIONS:
            return "zh-hans"
    return LANGUAGE_ALIASES.get(primary, primary)


def languages_equivalent(a: str | None, b: str | None) -> bool:
    """True when both codes are known and fall in the same group."""
    group_a = language_group(a)
    return bool(group_a) and group_a == language_group(b)


def is_valid_language(code: str) -> bool:
    """Check if a language code maps onto a known group."""
    return language_group(code) in LANGUAGE_NAMES


def language_name(code: str) -> str:
    """Get the full language name for a code, or the code itself if unknown."""
    return LANGUAGE_NAMES.get(language_group(code), code)


def language_aliases(code: str) -> list[str]:
    """Alternate codes that resolve to ``code``, sorted."""
    return sorted(alias for alias, target in LANGUAGE_ALIASES.items() if target == code)


def validate_language(code: str) -> str:
    """Validate a language code and return it, raising ValueError if invalid."""
    if code.strip().lower() == AUTO:
        return code
    if not is_valid_language(code):
        raise ValueError(
            f"Unsupported language: '{code}'. "
            f"Run 'dualsub languages' to see all {len(LANGUAGE_NAMES)} supported languages."
        )
    return code


# Characters that only occur in one of the two Chinese scripts. A handful of
# very frequent ones is enough for a coarse call.
_SIMPLIFIED_ONLY = set("这个们说来时会国过还没对发样么门书东车马见长话让从动点边头")
_TRADITIONAL_ONLY = set("這個們說來時會國過還沒對發樣麼門書東車馬見長話讓從動點邊頭")

_SCRIPT_RANGES: list[tuple[str, str]] = [
    ("ko", r"[\uAC00-\uD7AF\u1100-\u11FF]"),  # hangul
    ("ja", r"[\u3040-\u30FF]"),  # kana
    ("zh", r"[\u4E00-\u9FFF]"),  # CJK unified ideographs
    ("ru", r"[\u0400-\u04FF]"),
    ("ar", r"[\u0600-\u06FF]"),
    ("he", r"[\u0590-\u05FF]"),
    ("th", r"[\u0E00-\u0E7F]"),
    ("hi", r"[\u0900-\u097F]"),
    ("el", r"[\u0370-\u03FF]"),
]


def detect_language(text: str) -> str:
    """Guess a language from the first non-Latin script found.

    Latin-script text returns "" (unknown): script alone cannot tell
    English from French. Kana is checked before Han so Japanese is not
    mistaken for Chinese.
    """
    if not text:
        return ""
    for code, pattern in _SCRIPT_RANGES:
        if re.search(pattern, text):
            if code != "zh":
                return code
            simplified = sum(ch in _SIMPLIFIED_ONLY for ch in text)
            traditional = sum(ch in _TRADITIONAL_ONLY for ch in text)
            return "zh-Hant" if traditional > simplified else "zh-Hans"
    return ""
