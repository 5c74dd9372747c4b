"""Shared test fixtures and in-memory fakes for the store/generator capabilities."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from dualsub.core.config import DualSubConfig
from dualsub.core.context import PlaybackContext
from dualsub.core.errors import NetworkFailure, QuotaExceeded, RateLimited
from dualsub.core.models import CaptionInterval, Cue, TranslationRecord

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_config(**sections) -> DualSubConfig:
    """Config with instant dispatch and an explicit en -> zh-Hant pair."""
    translation = {
        "source_lang": "en",
        "target_lang": "zh-Hant",
        "debounce_ms": 0,
        "min_request_gap_ms": 0,
    }
    translation.update(sections.pop("translation", {}))
    return DualSubConfig(translation=translation, **sections)


class FakeGenerator:
    """Records every call; answers from ``translations`` or a tagged echo."""

    def __init__(self, translations=None, fail: Exception | None = None, delay: float = 0.0):
        self.translations = translations or {}
        self.fail = fail
        self.delay = delay
        self.calls: list[tuple[str, object]] = []
        self.call_times: list[float] = []

    async def generate(self, source_text, context):
        self.calls.append((source_text, context))
        self.call_times.append(asyncio.get_running_loop().time())
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail is not None:
            raise self.fail
        return self.translations.get(source_text, f"[{context.target_lang}] {source_text}")


class MemoryLocalStore:
    def __init__(self, max_entries: int | None = None):
        self.rows: dict[str, TranslationRecord] = {}
        self.max_entries = max_entries
        self.prune_calls: list[int] = []
        self.put_calls = 0
        self.get_calls = 0

    async def get(self, key):
        self.get_calls += 1
        return self.rows.get(key.digest())

    async def put(self, record):
        self.put_calls += 1
        digest = record.key.digest()
        if digest in self.rows:
            return
        if self.max_entries is not None and len(self.rows) >= self.max_entries:
            raise QuotaExceeded("full")
        self.rows[digest] = record

    async def count(self):
        return len(self.rows)

    async def prune_oldest(self, n):
        self.prune_calls.append(n)
        oldest = sorted(self.rows.items(), key=lambda item: item[1].updated_at)[: max(n, 0)]
        for digest, _ in oldest:
            del self.rows[digest]
        return len(oldest)

    async def records(self, video_id=None):
        return [r for r in self.rows.values() if not video_id or r.video_id == video_id]


class MemoryRemoteStore:
    def __init__(self, fail: bool = False):
        self.rows: dict[str, TranslationRecord] = {}
        self.intervals: list[CaptionInterval] = []
        self.fail = fail
        self.find_calls = 0

    async def find(self, key):
        self.find_calls += 1
        if self.fail:
            raise NetworkFailure("remote down")
        return self.rows.get(key.digest())

    async def upsert(self, record):
        if self.fail:
            raise NetworkFailure("remote down")
        self.rows[record.key.digest()] = record

    async def save_interval(self, interval):
        if self.fail:
            raise NetworkFailure("remote down")
        self.intervals.append(interval)

    async def fetch_intervals(self, video_id):
        if self.fail:
            raise NetworkFailure("remote down")
        return [i for i in self.intervals if i.video_id == video_id]


class FakeCueSource:
    """Serves fixed tracks; raises ``RateLimited`` for the first ``rate_limited`` fetches."""

    def __init__(self, tracks: dict[str, list[Cue]], rate_limited: int = 0):
        self.tracks = tracks
        self.rate_limited = rate_limited
        self.fetches: list[tuple[str, str]] = []

    async def fetch_track(self, video_id, language):
        self.fetches.append((video_id, language))
        if self.rate_limited > 0:
            self.rate_limited -= 1
            raise RateLimited("slow down")
        return list(self.tracks.get(language, []))


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_vtt(fixtures_dir: Path) -> Path:
    return fixtures_dir / "sample.vtt"


@pytest.fixture
def config() -> DualSubConfig:
    return make_config()


@pytest.fixture
def context(config) -> PlaybackContext:
    return PlaybackContext(config, video_id="v1")
