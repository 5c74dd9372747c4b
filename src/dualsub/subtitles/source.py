"""Cue sources: where whole subtitle tracks come from.

A source returns every cue of one language track for a video. Parsing is
delegated to pysubs2, which handles SRT, WebVTT, ASS and friends.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import httpx
import pysubs2

from dualsub.core.errors import NetworkFailure, RateLimited
from dualsub.core.models import Cue


class CueSource(Protocol):
    async def fetch_track(self, video_id: str, language: str) -> list[Cue]: ...


def cues_from_subs(subs: pysubs2.SSAFile) -> list[Cue]:
    """Convert parsed subtitle events to cues, dropping comments and blank lines."""
    cues = []
    for event in subs.events:
        if event.is_comment:
            continue
        text = event.plaintext.strip()
        if not text:
            continue
        cues.append(Cue(start=event.start / 1000.0, end=event.end / 1000.0, text=text))
    return cues


def load_cues(path: Path) -> list[Cue]:
    """Load a subtitle file into cues."""
    return cues_from_subs(pysubs2.load(str(Path(path))))


class FileCueSource:
    """Serve tracks from local subtitle files, one file per language.

    The video id is ignored: a file source plays a single video.
    """

    def __init__(self, tracks: dict[str, Path]) -> None:
        self.tracks = {lang: Path(p) for lang, p in tracks.items()}

    async def fetch_track(self, video_id: str, language: str) -> list[Cue]:
        path = self.tracks.get(language)
        if path is None:
            return []
        try:
            return load_cues(path)
        except (OSError, UnicodeDecodeError, pysubs2.exceptions.Pysubs2Error) as e:
            raise NetworkFailure(f"Could not read {path}: {e}") from e


class HttpCueSource:
    """Fetch tracks over HTTP from a URL template.

    The template is formatted with ``video_id`` and ``lang``, e.g.
    ``https://example.org/subs/{video_id}.{lang}.vtt``. A 404 means the
    track does not exist and yields an empty list.
    """

    def __init__(
        self,
        url_template: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url_template = url_template
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_track(self, video_id: str, language: str) -> list[Cue]:
        url = self.url_template.format(video_id=video_id, lang=language)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise NetworkFailure(f"GET {url}: {e}") from e

        if response.status_code == 404:
            return []
        if response.status_code == 429:
            retry_after = None
            try:
                retry_after = float(response.headers.get("Retry-After", ""))
            except ValueError:
                pass
            raise RateLimited(f"GET {url}: rate limited", retry_after=retry_after)
        if response.status_code >= 400:
            raise NetworkFailure(f"GET {url}: HTTP {response.status_code}")

        if not response.text.strip():
            return []
        try:
            subs = pysubs2.SSAFile.from_string(response.text)
        except Exception as e:
            raise NetworkFailure(f"GET {url}: unreadable subtitle data ({e})") from e
        return cues_from_subs(subs)
