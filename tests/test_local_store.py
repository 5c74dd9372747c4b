"""Tests for the SQLite local translation store."""

import asyncio

import pytest

from dualsub.core.errors import QuotaExceeded
from dualsub.core.models import CacheKey, TranslationRecord
from dualsub.stores.local import SqliteTranslationStore


def _record(text: str, updated_at: float, video_id: str = "v1") -> TranslationRecord:
    key = CacheKey(video_id, "m", "en", "ja", text)
    return TranslationRecord.from_key(key, f"ja:{text}", updated_at)


@pytest.fixture
def store(tmp_path):
    store = SqliteTranslationStore(tmp_path / "nested" / "translations.db", max_entries=3)
    yield store
    store.close()


def test_put_and_get(store):
    record = _record("hello", 1.0)

    async def scenario():
        await store.put(record)
        return await store.get(record.key)

    assert asyncio.run(scenario()) == record


def test_get_missing(store):
    assert asyncio.run(store.get(CacheKey("v1", "m", "en", "ja", "nope"))) is None


def test_existing_key_is_not_overwritten(store):
    async def scenario():
        await store.put(_record("hello", 1.0))
        key = CacheKey("v1", "m", "en", "ja", "hello")
        await store.put(TranslationRecord.from_key(key, "changed", 2.0))
        return await store.get(key), await store.count()

    found, count = asyncio.run(scenario())
    assert found.translation == "ja:hello"
    assert count == 1


def test_quota_exceeded_at_capacity(store):
    async def scenario():
        for i in range(3):
            await store.put(_record(f"line {i}", float(i)))
        await store.put(_record("one too many", 9.0))

    with pytest.raises(QuotaExceeded):
        asyncio.run(scenario())


def test_prune_oldest(store):
    async def scenario():
        for i, ts in enumerate((5.0, 1.0, 3.0)):
            await store.put(_record(f"line {i}", ts))
        deleted = await store.prune_oldest(2)
        return deleted, await store.records()

    deleted, remaining = asyncio.run(scenario())
    assert deleted == 2
    assert [r.source_text for r in remaining] == ["line 0"]


def test_prune_nothing(store):
    assert asyncio.run(store.prune_oldest(0)) == 0


def test_records_filtered_by_video(store):
    async def scenario():
        await store.put(_record("a", 2.0, video_id="v1"))
        await store.put(_record("b", 1.0, video_id="v2"))
        await store.put(_record("c", 3.0, video_id="v1"))
        return await store.records("v1"), await store.records()

    only_v1, everything = asyncio.run(scenario())
    assert [r.source_text for r in only_v1] == ["a", "c"]
    assert [r.source_text for r in everything] == ["b", "a", "c"]


def test_in_memory_database():
    store = SqliteTranslationStore(":memory:")
    try:
        asyncio.run(store.put(_record("x", 1.0)))
        assert asyncio.run(store.count()) == 1
    finally:
        store.close()
