"""Active-cue lookup for a continuously advancing media clock.

``locate`` is stateless per call: the caller keeps the returned hint and
passes it back on the next tick. For steady playback the walk is one step
or none; after a seek it costs time proportional to the jump distance.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from dualsub.core.errors import InvalidCueData
from dualsub.core.models import Cue
from dualsub.utils.console import console


@dataclass(frozen=True)
class LocateResult:
    cue: Cue | None
    hint: int


def locate(cues: Sequence[Cue], time: float, hint: int = 0) -> LocateResult:
    """Find the cue containing ``time``, walking from ``hint``.

    Returns ``LocateResult(None, i)`` when ``time`` falls before the first
    cue, after the last, or in a gap; ``i`` is the index the walk stopped
    at and makes a good hint for the next call.

    When ``time`` equals one cue's end and the next cue's start, the cue
    reached first from the hint owns it.
    """
    if not cues:
        return LocateResult(None, 0)

    last = len(cues) - 1
    i = min(max(hint, 0), last)

    while i > 0 and time < cues[i].start:
        i -= 1
    while i < last and time > cues[i].end:
        i += 1

    cue = cues[i]
    if cue.start <= time <= cue.end:
        return LocateResult(cue, i)
    return LocateResult(None, i)


def _parse_cue(raw: Cue | Mapping) -> Cue:
    if isinstance(raw, Cue):
        start, end, text = raw.start, raw.end, raw.text
    elif isinstance(raw, Mapping):
        try:
            start = float(raw["start"])
            end = float(raw["end"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidCueData(f"Bad cue timing: {raw!r}") from e
        text = raw.get("text")
    else:
        raise InvalidCueData(f"Unsupported cue entry: {raw!r}")

    if not isinstance(text, str) or not text.strip():
        raise InvalidCueData("Cue has no text")
    if not (math.isfinite(start) and math.isfinite(end)) or start < 0:
        raise InvalidCueData(f"Cue times out of range: {start}..{end}")
    if end < start:
        raise InvalidCueData(f"Cue ends before it starts: {start}..{end}")
    return Cue(start=start, end=end, text=text.strip())


def normalize_cues(raw_cues: Iterable[Cue | Mapping]) -> list[Cue]:
    """Validate cues from a collaborator, skipping malformed entries.

    Output is sorted by (start, end) so ``locate`` can rely on order even if
    the source was sloppy.
    """
    cues: list[Cue] = []
    skipped = 0
    for raw in raw_cues:
        try:
            cues.append(_parse_cue(raw))
        except InvalidCueData:
            skipped += 1

    if skipped:
        console.print(f"[yellow]Skipped {skipped} malformed cue(s).[/yellow]")
    cues.sort(key=lambda c: (c.start, c.end))
    return cues


class CueTrack:
    """One language's cues plus the lookup hint carried between ticks."""

    def __init__(self, language: str, cues: Iterable[Cue | Mapping] = ()) -> None:
        self.language = language
        self.cues: list[Cue] = normalize_cues(cues)
        self._hint = 0

    def __len__(self) -> int:
        return len(self.cues)

    def at(self, time: float) -> Cue | None:
        result = locate(self.cues, time, self._hint)
        self._hint = result.hint
        return result.cue

    def replace(self, cues: Iterable[Cue | Mapping]) -> None:
        self.cues = normalize_cues(cues)
        self._hint = 0

    def clear(self) -> None:
        self.replace(())
