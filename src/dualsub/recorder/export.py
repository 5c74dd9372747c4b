"""Export recorded caption intervals and cached translations.

Timed intervals are written as SRT-style blocks (source line, then the
translation when it differs). When nothing was recorded with timing, the
text export falls back to a plain dump of the cached translation records.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path

import pysubs2

from dualsub.core.models import CaptionInterval, TranslationRecord


def format_srt_time(seconds: float) -> str:
    """Format seconds as an SRT timestamp (HH:MM:SS,mmm).

    Negative or non-finite values become 00:00:00,000.
    """
    if not isinstance(seconds, (int, float)) or not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    total_ms = round(seconds * 1000)
    total_s, ms = divmod(total_ms, 1000)
    total_m, s = divmod(total_s, 60)
    h, m = divmod(total_m, 60)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def normalize_interval(row: Mapping) -> CaptionInterval | None:
    """Build an interval from a loosely typed row (remote payload, JSON import).

    Times are clamped to >= 0 and an interval that does not end after it
    starts is given one second. Returns None for rows that are not mappings
    or carry unparseable times.
    """
    if not isinstance(row, Mapping):
        return None
    try:
        start = float(row.get("startTime") or 0.0)
        end = float(row.get("endTime") if row.get("endTime") is not None else start)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(start) and math.isfinite(end)):
        return None

    start = max(0.0, start)
    end = max(0.0, end)
    if end <= start:
        end = start + 1.0

    source = row.get("sourceText")
    translation = row.get("translation")
    video_id = row.get("videoId")
    return CaptionInterval(
        video_id=video_id if isinstance(video_id, str) else "",
        start_time=start,
        end_time=end,
        source_text=source if isinstance(source, str) else "",
        translation=translation if isinstance(translation, str) else "",
        translation_source=row.get("translationSource") or None,
    )


def _interval_lines(interval: CaptionInterval) -> list[str]:
    source = interval.source_text
    translation = interval.translation
    lines = []
    if source:
        lines.append(source)
    if translation and translation != source:
        lines.append(translation)
    return lines


def _sorted(intervals: Iterable[CaptionInterval]) -> list[CaptionInterval]:
    return sorted(intervals, key=lambda i: (i.start_time, i.end_time))


def to_srt(intervals: Iterable[CaptionInterval]) -> str:
    """Render intervals as SRT text, numbered from 1 in time order."""
    blocks = []
    for index, interval in enumerate(_sorted(intervals), 1):
        lines = [
            str(index),
            f"{format_srt_time(interval.start_time)} --> {format_srt_time(interval.end_time)}",
            *_interval_lines(interval),
        ]
        blocks.append("\n".join(lines))
    if not blocks:
        return ""
    return "\n\n".join(blocks) + "\n"


def _format_updated_at(seconds: float) -> str:
    if not seconds or seconds <= 0:
        return ""
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return ""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_txt(
    records: Iterable[TranslationRecord],
    intervals: Iterable[CaptionInterval] = (),
    exported_at: datetime | None = None,
) -> str:
    """Text export: SRT blocks when intervals exist, else a record dump."""
    intervals = list(intervals)
    if intervals:
        return to_srt(intervals)

    records = list(records)
    exported_at = exported_at or datetime.now(timezone.utc)
    lines = [
        "# DualSub Translation Export",
        f"exported_at: {exported_at.isoformat()}",
        f"total_records: {len(records)}",
    ]
    for index, record in enumerate(records, 1):
        lines.append("")
        lines.append(f"## Record {index}")
        if record.video_id:
            lines.append(f"video_id: {record.video_id}")
        if record.model:
            lines.append(f"model: {record.model}")
        if record.source_lang or record.target_lang:
            lines.append(f"lang: {record.source_lang or '?'} -> {record.target_lang or '?'}")
        updated_at = _format_updated_at(record.updated_at)
        if updated_at:
            lines.append(f"updated_at: {updated_at}")
        lines.append("[source]")
        lines.append(record.source_text)
        lines.append("[translation]")
        lines.append(record.translation)

    lines.append("")
    return "\n".join(lines)


def save_intervals(intervals: Iterable[CaptionInterval], path: Path) -> Path:
    """Write intervals to a subtitle file; the format follows the extension.

    ``.txt`` uses ``to_srt`` text directly, anything else goes through pysubs2
    (srt, vtt, ass, ...).

    Returns:
        The path the file was written to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    intervals = _sorted(intervals)

    if path.suffix == ".txt":
        path.write_text(to_srt(intervals), encoding="utf-8")
        return path

    subs = pysubs2.SSAFile()
    for interval in intervals:
        lines = _interval_lines(interval)
        if not lines:
            continue
        subs.events.append(
            pysubs2.SSAEvent(
                start=pysubs2.make_time(s=interval.start_time),
                end=pysubs2.make_time(s=interval.end_time),
                text=r"\N".join(lines),
            )
        )
    subs.save(str(path))
    return path
