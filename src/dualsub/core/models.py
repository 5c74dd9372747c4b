"""Shared data models for DualSub."""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass
from enum import Enum


@dataclass(frozen=True)
class Cue:
    """One parsed subtitle entry."""

    start: float  # seconds
    end: float  # seconds
    text: str


class CacheTier(str, Enum):
    """Which tier satisfied (or will satisfy) a cached translation."""

    MEMORY = "memory"
    REMOTE = "remote"
    LOCAL = "local"
    SKIP = "skip"


@dataclass(frozen=True)
class CacheKey:
    """Identity of a cached translation. ``text`` is already normalized."""

    video_id: str
    model: str
    source_lang: str
    target_lang: str
    text: str

    def digest(self) -> str:
        """Stable 32-char hex id for persistent stores."""
        parts = "\0".join(
            (self.video_id, self.model, self.source_lang, self.target_lang, self.text)
        )
        return hashlib.sha256(parts.encode("utf-8")).hexdigest()[:32]


@dataclass
class CacheEntry:
    """A resolved translation held in the memory tier."""

    translation: str
    tier: CacheTier
    updated_at: float


@dataclass(frozen=True)
class TranslationRecord:
    """Persistent form of a resolved cache key."""

    video_id: str
    model: str
    source_lang: str
    target_lang: str
    source_text: str
    translation: str
    updated_at: float

    @classmethod
    def from_key(cls, key: CacheKey, translation: str, updated_at: float) -> TranslationRecord:
        return cls(
            video_id=key.video_id,
            model=key.model,
            source_lang=key.source_lang,
            target_lang=key.target_lang,
            source_text=key.text,
            translation=translation,
            updated_at=updated_at,
        )

    @property
    def key(self) -> CacheKey:
        return CacheKey(
            video_id=self.video_id,
            model=self.model,
            source_lang=self.source_lang,
            target_lang=self.target_lang,
            text=self.source_text,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class CaptionInterval:
    """A closed span of displayed caption text, kept for export."""

    video_id: str
    start_time: float
    end_time: float
    source_text: str
    translation: str = ""
    translation_source: str | None = None

    def dedup_key(self, precision: int = 3) -> tuple:
        """Composite identity used when merging local and remote intervals."""
        return (
            self.video_id,
            round(self.start_time, precision),
            round(self.end_time, precision),
            self.source_text,
            self.translation,
        )

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ActiveInterval:
    """The open, still-growing interval for the caption currently on screen."""

    video_id: str
    start_time: float
    end_time: float
    source_text: str
    translation: str = ""
    translation_source: str | None = None

    def close(self, end_time: float | None = None) -> CaptionInterval:
        end = self.end_time if end_time is None else max(self.start_time, end_time)
        return CaptionInterval(
            video_id=self.video_id,
            start_time=self.start_time,
            end_time=end,
            source_text=self.source_text,
            translation=self.translation,
            translation_source=self.translation_source,
        )


@dataclass
class CaptionFrame:
    """What one tick resolved: the lines to show at ``time``."""

    time: float
    primary: str = ""
    secondary: str = ""
    secondary_source: str | None = None
    translated_only: bool = False

    @property
    def lines(self) -> list[str]:
        """Lines to render, honoring translated-only display mode."""
        if self.translated_only and self.secondary:
            return [self.secondary]
        if self.secondary == self.primary:
            return [self.primary] if self.primary else []
        return [line for line in (self.primary, self.secondary) if line]
