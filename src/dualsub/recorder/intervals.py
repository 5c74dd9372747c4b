"""Turn the per-tick caption stream into closed time intervals for export.

One interval is open at a time. It grows while the same text stays on
screen and closes when the text changes, disappears, or the clock jumps
further than ``seek_gap`` (a seek). Closed intervals shorter than
``min_duration`` are discarded; the rest go to a bounded ring buffer and to
the optional ``on_commit`` callback.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from typing import Callable

from dualsub.core.config import RecorderConfig
from dualsub.core.models import ActiveInterval, CaptionInterval
from dualsub.utils.text import normalize_text

CommitCallback = Callable[[CaptionInterval], None]


class CaptionIntervalRecorder:
    def __init__(
        self,
        config: RecorderConfig | None = None,
        on_commit: CommitCallback | None = None,
    ) -> None:
        self.config = config or RecorderConfig()
        self.on_commit = on_commit
        self._committed: deque[CaptionInterval] = deque(maxlen=self.config.capacity)
        self._active: ActiveInterval | None = None
        self._last_time: float | None = None

    @property
    def active(self) -> ActiveInterval | None:
        return self._active

    @property
    def committed(self) -> list[CaptionInterval]:
        return list(self._committed)

    @property
    def last_time(self) -> float | None:
        return self._last_time

    def observe(
        self,
        time: float,
        source_text: str,
        translation_text: str = "",
        translation_source: str | None = None,
        *,
        video_id: str = "",
    ) -> None:
        """Feed one tick's snapshot of what is on screen."""
        source = normalize_text(source_text)
        translation = normalize_text(translation_text)

        if (
            self._active is not None
            and self._last_time is not None
            and abs(time - self._last_time) > self.config.seek_gap
        ):
            # Seek: close at the last time we actually saw the caption.
            self._close(self._last_time)
        self._last_time = time

        identity = source or translation
        if not identity:
            if self._active is not None:
                self._close(time)
            return

        active = self._active
        if active is not None and active.video_id == video_id and _identity(active) == identity:
            active.end_time = max(active.end_time, time)
            if translation and (not active.translation or translation_source):
                active.translation = translation
                active.translation_source = translation_source
            return

        if active is not None:
            self._close(time)
        self._active = ActiveInterval(
            video_id=video_id,
            start_time=time,
            end_time=time,
            source_text=source,
            translation=translation,
            translation_source=translation_source if translation else None,
        )

    def flush(self) -> CaptionInterval | None:
        """Close the open interval at the last observed time (video change, shutdown)."""
        if self._active is None:
            return None
        return self._close(self._last_time)

    def reset(self) -> None:
        """Flush and forget tick history; committed intervals are kept for export."""
        self.flush()
        self._last_time = None

    def _close(self, time: float | None) -> CaptionInterval | None:
        active = self._active
        self._active = None
        if active is None:
            return None
        end = active.end_time if time is None else max(active.end_time, time)
        interval = active.close(end)
        if interval.duration < self.config.min_duration:
            return None
        self._committed.append(interval)
        if self.on_commit is not None:
            self.on_commit(interval)
        return interval

    def snapshot(self) -> CaptionInterval | None:
        """The open interval as it would close right now, without closing it."""
        if self._active is None:
            return None
        end = self._active.end_time
        if self._last_time is not None:
            end = max(end, self._last_time)
        return self._active.close(end)

    def export_all(
        self,
        remote_intervals: Iterable[CaptionInterval] = (),
        video_id: str | None = None,
    ) -> list[CaptionInterval]:
        """Merge local and remote intervals, dropping exact duplicates.

        Identity is (video, start, end, source, translation) with times
        rounded to ``export_precision`` digits. Remote intervals of other
        videos are ignored when ``video_id`` is given. Result is sorted by
        start, then end.
        """
        precision = self.config.export_precision
        candidates: list[CaptionInterval] = list(self._committed)
        current = self.snapshot()
        if current is not None:
            candidates.append(current)
        candidates.extend(
            interval
            for interval in remote_intervals
            if video_id is None or interval.video_id == video_id
        )

        merged: dict[tuple, CaptionInterval] = {}
        for interval in candidates:
            merged.setdefault(interval.dedup_key(precision), interval)

        return sorted(merged.values(), key=lambda i: (i.start_time, i.end_time))


def _identity(interval: ActiveInterval) -> str:
    return interval.source_text or interval.translation
