"""Tests for file and HTTP cue sources."""

import asyncio

import httpx
import pytest

from dualsub.core.errors import NetworkFailure, RateLimited
from dualsub.subtitles.source import FileCueSource, HttpCueSource, load_cues

SRT = "1\n00:00:01,000 --> 00:00:02,500\nHello\n\n2\n00:00:03,000 --> 00:00:04,000\nWorld\n"


def test_load_cues_from_vtt(sample_vtt):
    cues = load_cues(sample_vtt)
    assert [c.text for c in cues] == ["Hello there.", "How are you doing today?", "Fine, thanks."]
    assert cues[1].start == 2.0
    assert cues[1].end == 4.5


def test_file_source_by_language(sample_vtt):
    source = FileCueSource({"en": sample_vtt})
    assert len(asyncio.run(source.fetch_track("any", "en"))) == 3
    assert asyncio.run(source.fetch_track("any", "ja")) == []


def test_file_source_missing_file(tmp_path):
    source = FileCueSource({"en": tmp_path / "gone.srt"})
    with pytest.raises(NetworkFailure):
        asyncio.run(source.fetch_track("any", "en"))


def test_file_source_undecodable_file(tmp_path):
    bad = tmp_path / "bad.srt"
    bad.write_bytes(b"\xff\xfe\x00garbage\x81\x82")
    source = FileCueSource({"en": bad})
    with pytest.raises(NetworkFailure):
        asyncio.run(source.fetch_track("any", "en"))


def test_file_source_unknown_format(tmp_path):
    bad = tmp_path / "notes.srt"
    bad.write_text("just some notes\nnot a subtitle file\n", encoding="utf-8")
    source = FileCueSource({"en": bad})
    with pytest.raises(NetworkFailure):
        asyncio.run(source.fetch_track("any", "en"))


def _http_source(handler) -> HttpCueSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpCueSource("http://subs.test/{video_id}/{lang}.srt", client=client)


class TestHttpCueSource:
    def test_fetch(self):
        urls = []

        def handler(request):
            urls.append(str(request.url))
            return httpx.Response(200, text=SRT)

        cues = asyncio.run(_http_source(handler).fetch_track("abc", "en"))
        assert urls == ["http://subs.test/abc/en.srt"]
        assert [(c.start, c.end, c.text) for c in cues] == [
            (1.0, 2.5, "Hello"),
            (3.0, 4.0, "World"),
        ]

    def test_not_found_is_empty(self):
        source = _http_source(lambda r: httpx.Response(404))
        assert asyncio.run(source.fetch_track("abc", "en")) == []

    def test_rate_limited(self):
        source = _http_source(lambda r: httpx.Response(429, headers={"Retry-After": "5"}))
        with pytest.raises(RateLimited) as exc:
            asyncio.run(source.fetch_track("abc", "en"))
        assert exc.value.retry_after == 5.0

    def test_server_error(self):
        source = _http_source(lambda r: httpx.Response(503))
        with pytest.raises(NetworkFailure):
            asyncio.run(source.fetch_track("abc", "en"))
