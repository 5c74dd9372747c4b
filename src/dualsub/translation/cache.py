"""Three-tier translation cache: memory, remote shared store, local store.

``query`` is called from the tick loop and must return immediately. On a
miss it starts one background lookup per key; every later query for that
key shares the same pending future until the lookup resolves or fails.
Lookups that miss every tier go to the generation queue.

Every async completion checks the playback epoch captured when the lookup
started. If the video or settings changed in between, the result is
thrown away without touching the cache.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Callable

from dualsub.core.config import DualSubConfig
from dualsub.core.context import PlaybackContext
from dualsub.core.errors import QuotaExceeded, StaleCompletion
from dualsub.core.languages import languages_equivalent
from dualsub.core.models import CacheEntry, CacheKey, CacheTier, TranslationRecord
from dualsub.stores.base import LocalStore, RemoteStore
from dualsub.translation.client import GenerationContext, Generator
from dualsub.translation.queue import GenerationQueue, GenerationRequest
from dualsub.utils.console import console
from dualsub.utils.text import meaningful_length, normalize_text


@dataclass(eq=False)
class PendingLookup:
    """Shared in-flight resolution for one key."""

    key: CacheKey
    future: asyncio.Future
    epoch: int
    context: PlaybackContext
    stale: bool = field(default=False)

    def ensure_current(self) -> None:
        if self.stale or not self.context.is_current(self.epoch):
            raise StaleCompletion(f"Context changed while resolving {self.key.text!r}")


class TranslationCache:
    def __init__(
        self,
        generator: Generator,
        local_store: LocalStore | None = None,
        remote_store: RemoteStore | None = None,
        *,
        debounce: float = 0.25,
        min_gap: float = 1.2,
        prune_target: int = 4000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._local = local_store
        self._remote = remote_store
        self._prune_target = prune_target
        self._clock = clock

        self._memory: dict[CacheKey, CacheEntry] = {}
        self._pending: dict[CacheKey, PendingLookup] = {}
        self._tasks: set[asyncio.Task] = set()
        self._queue = GenerationQueue(
            generator,
            on_success=self._on_generated,
            on_failure=self._on_generation_failed,
            on_dropped=self._on_dropped,
            debounce=debounce,
            min_gap=min_gap,
        )

    @classmethod
    def from_config(
        cls,
        config: DualSubConfig,
        generator: Generator,
        local_store: LocalStore | None = None,
        remote_store: RemoteStore | None = None,
    ) -> TranslationCache:
        return cls(
            generator,
            local_store,
            remote_store,
            debounce=config.translation.debounce_ms / 1000.0,
            min_gap=config.translation.min_request_gap_ms / 1000.0,
            prune_target=config.store.local_prune_target,
        )

    @property
    def queue(self) -> GenerationQueue:
        return self._queue

    def is_pending(self, key: CacheKey) -> bool:
        return key in self._pending

    def make_key(self, source_text: str, context: PlaybackContext) -> CacheKey | None:
        """Cache key for a line under the current context, None for blank text."""
        text = normalize_text(source_text)
        if not text:
            return None
        return CacheKey(
            video_id=context.video_id,
            model=context.model,
            source_lang=context.source_lang_for(text),
            target_lang=context.target_lang,
            text=text,
        )

    def entry_for(self, source_text: str, context: PlaybackContext) -> CacheEntry | None:
        """Memory-tier entry for a line, without starting any work."""
        key = self.make_key(source_text, context)
        return self._memory.get(key) if key else None

    def query(self, source_text: str, context: PlaybackContext) -> str:
        """Cached translation for ``source_text`` or "" while it is unresolved.

        Never blocks and never raises. A miss starts (or joins) a background
        resolution that later queries will pick up.
        """
        key = self.make_key(source_text, context)
        if key is None:
            return ""

        if languages_equivalent(key.source_lang, key.target_lang):
            if key not in self._memory:
                self._memory[key] = CacheEntry(key.text, CacheTier.SKIP, self._clock())
            return key.text

        if meaningful_length(key.text) < context.config.translation.min_chars:
            return ""

        entry = self._memory.get(key)
        if entry is not None:
            return entry.translation
        if key in self._pending:
            return ""

        self._start_lookup(key, context)
        return ""

    async def resolve(self, source_text: str, context: PlaybackContext) -> str:
        """Awaitable form of ``query``: wait for the shared lookup if one starts."""
        value = self.query(source_text, context)
        if value:
            return value
        key = self.make_key(source_text, context)
        lookup = self._pending.get(key) if key else None
        if lookup is None:
            return ""
        result = await asyncio.shield(lookup.future)
        return result or ""

    def reset(
        self,
        *,
        clear_memory: bool = False,
        debounce: float | None = None,
        min_gap: float | None = None,
    ) -> None:
        """Cancel queued work and mark every pending lookup stale.

        Called after the context epoch was bumped for a provider, model or
        language change. In-flight calls are left to finish and be ignored.
        """
        self._queue.reset()
        if debounce is not None:
            self._queue.debounce = debounce
        if min_gap is not None:
            self._queue.min_gap = min_gap
        for lookup in list(self._pending.values()):
            lookup.stale = True
            if not lookup.future.done():
                lookup.future.set_result(None)
        self._pending.clear()
        if clear_memory:
            self._memory.clear()

    async def drain(self) -> None:
        """Wait until no lookup, generation or persistence task is outstanding."""
        while True:
            waiters = [lookup.future for lookup in self._pending.values()]
            waiters += list(self._tasks) + list(self._queue.tasks)
            waiters = [w for w in waiters if not w.done()]
            if not waiters:
                return
            await asyncio.wait(waiters)

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _start_lookup(self, key: CacheKey, context: PlaybackContext) -> None:
        loop = asyncio.get_running_loop()
        lookup = PendingLookup(
            key=key, future=loop.create_future(), epoch=context.epoch, context=context
        )
        self._pending[key] = lookup
        self._spawn(self._lookup(lookup))

    def _release(self, lookup: PendingLookup, translation: str | None = None) -> None:
        if self._pending.get(lookup.key) is lookup:
            del self._pending[lookup.key]
        if not lookup.future.done():
            lookup.future.set_result(translation)

    async def _lookup(self, lookup: PendingLookup) -> None:
        key = lookup.key
        record, tier = await self._find_persistent(key)
        try:
            lookup.ensure_current()
        except StaleCompletion:
            self._release(lookup)
            return

        if record is not None:
            self._memory.setdefault(key, CacheEntry(record.translation, tier, record.updated_at))
            self._release(lookup, record.translation)
            return

        generation_context = GenerationContext(
            video_id=key.video_id,
            model=key.model,
            source_lang=key.source_lang,
            target_lang=key.target_lang,
        )
        self._queue.enqueue(
            GenerationRequest(key=key, text=key.text, context=generation_context, lookup=lookup)
        )

    async def _find_persistent(self, key: CacheKey) -> tuple[TranslationRecord | None, CacheTier]:
        if self._remote is not None:
            try:
                record = await self._remote.find(key)
            except Exception as e:
                console.print(f"[yellow]Remote cache lookup failed:[/yellow] {e}")
            else:
                if record is not None and record.translation:
                    return record, CacheTier.REMOTE

        if self._local is not None:
            try:
                record = await self._local.get(key)
            except Exception as e:
                console.print(f"[yellow]Local cache lookup failed:[/yellow] {e}")
            else:
                if record is not None and record.translation:
                    return record, CacheTier.LOCAL

        return None, CacheTier.MEMORY

    def _on_generated(self, request: GenerationRequest, translation: str) -> None:
        lookup = request.lookup
        try:
            lookup.ensure_current()
        except StaleCompletion:
            self._release(lookup)
            return

        now = self._clock()
        self._memory.setdefault(request.key, CacheEntry(translation, CacheTier.MEMORY, now))
        self._release(lookup, translation)
        self._spawn(self._persist(TranslationRecord.from_key(request.key, translation, now)))

    def _on_generation_failed(self, request: GenerationRequest, error: Exception) -> None:
        lookup = request.lookup
        try:
            lookup.ensure_current()
        except StaleCompletion:
            self._release(lookup)
            return
        console.print(f"[yellow]Translation failed, will retry on next query:[/yellow] {error}")
        self._release(lookup)

    def _on_dropped(self, request: GenerationRequest) -> None:
        self._release(request.lookup)

    async def _persist(self, record: TranslationRecord) -> None:
        if self._local is not None:
            await self._write_local(record)
        if self._remote is not None:
            try:
                await self._remote.upsert(record)
            except Exception as e:
                console.print(f"[yellow]Remote cache write failed:[/yellow] {e}")

    async def _write_local(self, record: TranslationRecord) -> None:
        try:
            await self._local.put(record)
            return
        except QuotaExceeded:
            pass
        except Exception as e:
            console.print(f"[yellow]Local cache write failed:[/yellow] {e}")
            return

        # Full: prune oldest down to the target, then retry exactly once.
        try:
            excess = await self._local.count() - self._prune_target
            deleted = await self._local.prune_oldest(excess)
            console.print(f"[dim]Local cache full, pruned {deleted} oldest entries.[/dim]")
            await self._local.put(record)
        except QuotaExceeded as e:
            console.print(f"[yellow]Local cache still full, dropping write:[/yellow] {e}")
        except Exception as e:
            console.print(f"[yellow]Local cache write failed after pruning:[/yellow] {e}")
