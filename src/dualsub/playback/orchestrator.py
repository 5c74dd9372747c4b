"""Per-frame playback driver.

Each tick reads the media clock, looks up the active cue on both language
tracks, asks the translation cache for the secondary line, and feeds the
result to the interval recorder. ``tick`` is synchronous and never waits:
track loading, lookups and remote writes run as tasks on the same loop.

Video and settings changes bump the context epoch. Anything that was in
flight under the old epoch finishes in the background and is ignored.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from dualsub.core.config import TRACK_FIELDS, DualSubConfig, requires_reset
from dualsub.core.context import PlaybackContext
from dualsub.core.errors import NetworkFailure, RateLimited
from dualsub.core.events import FrameCallback, SettingsChangeEvent
from dualsub.core.models import CacheTier, CaptionFrame, CaptionInterval
from dualsub.playback.backoff import Backoff
from dualsub.recorder.intervals import CaptionIntervalRecorder
from dualsub.stores.base import LocalStore, RemoteStore
from dualsub.subtitles.source import CueSource
from dualsub.timeline.cues import CueTrack
from dualsub.translation.cache import TranslationCache
from dualsub.translation.client import Generator
from dualsub.utils.console import console
from dualsub.utils.text import normalize_text

TRACK_SOURCE = "track"


class Orchestrator:
    """Owns the playback context and drives the other components.

    Args:
        config: Settings for this session.
        cue_source: Where whole subtitle tracks are fetched from.
        generator: Machine translation backend.
        local_store: Optional persistent translation store.
        remote_store: Optional shared store for translations and intervals.
        clock: Returns the current media time in seconds.
        poll_text: Optional fallback source line when the primary track has
            no active cue (e.g. captions scraped from a player).
        on_frame: Called with every frame ``tick`` produces.
    """

    def __init__(
        self,
        config: DualSubConfig,
        cue_source: CueSource,
        generator: Generator,
        local_store: LocalStore | None = None,
        remote_store: RemoteStore | None = None,
        *,
        clock: Callable[[], float] | None = None,
        poll_text: Callable[[], str] | None = None,
        on_frame: FrameCallback | None = None,
    ) -> None:
        self.context = PlaybackContext(config)
        self.cue_source = cue_source
        self.remote_store = remote_store
        self.clock = clock
        self.poll_text = poll_text
        self.on_frame = on_frame

        self.primary = CueTrack(config.display.primary_lang)
        self.secondary = CueTrack(config.display.secondary_lang)
        self.cache = TranslationCache.from_config(config, generator, local_store, remote_store)
        self.recorder = CaptionIntervalRecorder(config.recorder, on_commit=self._on_commit)
        self.backoff = Backoff(config.playback.track_retry_base, config.playback.track_retry_cap)

        self._disabled_videos: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._retry_handle: asyncio.TimerHandle | None = None

    @property
    def config(self) -> DualSubConfig:
        return self.context.config

    @property
    def translation_enabled(self) -> bool:
        return self.context.video_id not in self._disabled_videos

    def set_translation_enabled(self, enabled: bool, video_id: str | None = None) -> None:
        """Turn the secondary line on or off for one video (default: current)."""
        video_id = self.context.video_id if video_id is None else video_id
        if enabled:
            self._disabled_videos.discard(video_id)
        else:
            self._disabled_videos.add(video_id)

    # -- tick -------------------------------------------------------------

    def tick(self, time: float | None = None) -> CaptionFrame:
        """Resolve what to show at ``time`` (default: the clock) and record it."""
        if time is None:
            if self.clock is None:
                raise ValueError("No clock configured; pass the media time explicitly")
            time = self.clock()

        source = self._primary_line(time)
        secondary, secondary_source = self._secondary_line(source, time)

        self.recorder.observe(
            time, source, secondary, secondary_source, video_id=self.context.video_id
        )
        frame = CaptionFrame(
            time=time,
            primary=source,
            secondary=secondary,
            secondary_source=secondary_source,
            translated_only=self.config.display.display_mode == "translated-only",
        )
        if self.on_frame is not None:
            self.on_frame(frame)
        return frame

    def _primary_line(self, time: float) -> str:
        cue = self.primary.at(time)
        if cue is not None:
            return normalize_text(cue.text)
        if self.poll_text is None:
            return ""
        try:
            return normalize_text(self.poll_text() or "")
        except Exception as e:
            console.print(f"[yellow]Caption poll failed:[/yellow] {e}")
            return ""

    def _secondary_line(self, source: str, time: float) -> tuple[str, str | None]:
        track_cue = self.secondary.at(time)
        if not self.translation_enabled:
            return "", None
        track_text = normalize_text(track_cue.text) if track_cue is not None else ""

        if self.config.translation.provider == "llm" and source:
            translation = self.cache.query(source, self.context)
            if translation:
                entry = self.cache.entry_for(source, self.context)
                tier = entry.tier if entry is not None else CacheTier.MEMORY
                return translation, tier.value

        if track_text:
            return track_text, TRACK_SOURCE
        return "", None

    # -- video and settings changes ---------------------------------------

    def load_video(self, video_id: str) -> asyncio.Task:
        """Switch to another video and start fetching its tracks.

        Returns the fetch task; awaiting it is optional.
        """
        self.recorder.reset()
        self.context.video_id = video_id
        epoch = self.context.bump()
        self.cache.reset(clear_memory=True)
        self._cancel_retry()
        self.backoff.reset()
        self.primary.clear()
        self.secondary.clear()
        return self._spawn(self._load_tracks(epoch))

    def apply_settings(self, event: SettingsChangeEvent) -> None:
        """Adopt new settings, resetting whatever they invalidate."""
        previous, config = event.previous, event.next
        changed = event.changed
        self.context.config = config
        self.recorder.config = config.recorder

        reload_tracks = bool(changed & TRACK_FIELDS)
        if requires_reset(previous, config) or reload_tracks:
            epoch = self.context.bump()
            self.cache.reset(
                debounce=config.translation.debounce_ms / 1000.0,
                min_gap=config.translation.min_request_gap_ms / 1000.0,
            )
            if reload_tracks and self.context.video_id:
                self._cancel_retry()
                self.backoff.reset()
                self._spawn(self._load_tracks(epoch))
        else:
            self.cache.queue.debounce = config.translation.debounce_ms / 1000.0
            self.cache.queue.min_gap = config.translation.min_request_gap_ms / 1000.0

        if {"playback.track_retry_base", "playback.track_retry_cap"} & changed:
            self.backoff = Backoff(
                config.playback.track_retry_base, config.playback.track_retry_cap
            )

    async def _load_tracks(self, epoch: int) -> None:
        video_id = self.context.video_id
        display = self.config.display
        self.primary.language = display.primary_lang
        self.secondary.language = display.secondary_lang

        try:
            primary_cues = await self.cue_source.fetch_track(video_id, display.primary_lang)
            secondary_cues = []
            if display.secondary_lang:
                secondary_cues = await self.cue_source.fetch_track(
                    video_id, display.secondary_lang
                )
        except RateLimited as e:
            if not self.context.is_current(epoch):
                return
            delay = self.backoff.next_delay(e.retry_after)
            console.print(
                f"[yellow]Subtitle track fetch rate limited, retrying in {delay:.1f}s[/yellow]"
            )
            loop = asyncio.get_running_loop()
            self._retry_handle = loop.call_later(delay, self._retry_tracks, epoch)
            return
        except NetworkFailure as e:
            if self.context.is_current(epoch):
                console.print(f"[yellow]Could not load subtitle tracks:[/yellow] {e}")
            return

        if not self.context.is_current(epoch):
            return
        self.backoff.reset()
        self.primary.replace(primary_cues)
        self.secondary.replace(secondary_cues)
        console.print(
            f"[dim]Loaded {len(self.primary)} {display.primary_lang} and "
            f"{len(self.secondary)} {display.secondary_lang} cues for {video_id}[/dim]"
        )

    def _retry_tracks(self, epoch: int) -> None:
        self._retry_handle = None
        if self.context.is_current(epoch):
            self._spawn(self._load_tracks(epoch))

    def _cancel_retry(self) -> None:
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    # -- intervals and export ---------------------------------------------

    def _on_commit(self, interval: CaptionInterval) -> None:
        if self.remote_store is None or not interval.video_id:
            return
        self._spawn(self._save_interval(interval))

    async def _save_interval(self, interval: CaptionInterval) -> None:
        try:
            await self.remote_store.save_interval(interval)
        except NetworkFailure as e:
            console.print(f"[yellow]Could not upload caption interval:[/yellow] {e}")

    async def export(self) -> list[CaptionInterval]:
        """Recorded intervals merged with the remote ones for the current video."""
        video_id = self.context.video_id
        remote: list[CaptionInterval] = []
        if self.remote_store is not None and video_id:
            try:
                remote = await self.remote_store.fetch_intervals(video_id)
            except NetworkFailure as e:
                console.print(f"[yellow]Could not fetch remote intervals:[/yellow] {e}")
        return self.recorder.export_all(remote, video_id=video_id)

    # -- loop -------------------------------------------------------------

    async def run(self, stop: asyncio.Event) -> None:
        """Tick at ``playback.fps`` until ``stop`` is set, then flush."""
        while not stop.is_set():
            self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=1.0 / self.config.playback.fps)
            except asyncio.TimeoutError:
                pass
        self.recorder.flush()

    async def drain(self) -> None:
        """Wait for outstanding track loads, lookups and remote writes."""
        while True:
            pending = [t for t in self._tasks if not t.done()]
            if pending:
                await asyncio.wait(pending)
            await self.cache.drain()
            if not any(not t.done() for t in self._tasks):
                return

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
