"""Storage capabilities the translation cache and recorder depend on.

Any object with these async methods will do; the bundled SQLite and
PocketBase adapters are just defaults.
"""

from __future__ import annotations

from typing import Protocol

from dualsub.core.models import CacheKey, CaptionInterval, TranslationRecord


class LocalStore(Protocol):
    """Persistent translation store on this machine.

    ``put`` raises ``QuotaExceeded`` when the store is full.
    """

    async def get(self, key: CacheKey) -> TranslationRecord | None: ...

    async def put(self, record: TranslationRecord) -> None: ...

    async def count(self) -> int: ...

    async def prune_oldest(self, n: int) -> int: ...

    async def records(self, video_id: str | None = None) -> list[TranslationRecord]: ...


class RemoteStore(Protocol):
    """Shared store reachable over the network.

    Methods raise ``NetworkFailure`` on transport or server errors; callers
    contain them.
    """

    async def find(self, key: CacheKey) -> TranslationRecord | None: ...

    async def upsert(self, record: TranslationRecord) -> None: ...

    async def save_interval(self, interval: CaptionInterval) -> None: ...

    async def fetch_intervals(self, video_id: str) -> list[CaptionInterval]: ...
