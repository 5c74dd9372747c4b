"""Tests for caption interval recording and export merging."""

from dualsub.core.config import RecorderConfig
from dualsub.core.models import CaptionInterval, Cue
from dualsub.recorder.intervals import CaptionIntervalRecorder
from dualsub.timeline.cues import CueTrack


def _recorder(**kwargs) -> CaptionIntervalRecorder:
    return CaptionIntervalRecorder(RecorderConfig(**kwargs))


class TestObserve:
    def test_text_change_commits_previous(self):
        track = CueTrack("en", [Cue(0.0, 2.0, "A"), Cue(2.0, 4.0, "B")])
        recorder = _recorder()
        for t in (1.0, 3.0):
            cue = track.at(t)
            recorder.observe(t, cue.text if cue else "", video_id="v1")

        (committed,) = recorder.committed
        assert committed.source_text == "A"
        assert 0.0 <= committed.start_time <= 1.0
        assert committed.end_time == 3.0
        assert recorder.active.source_text == "B"
        assert 2.0 <= recorder.active.start_time <= 3.0

    def test_same_text_extends(self):
        recorder = _recorder()
        for t in (1.0, 1.5, 2.0, 2.5):
            recorder.observe(t, "Hello", video_id="v1")
        assert recorder.committed == []
        assert recorder.active.start_time == 1.0
        assert recorder.active.end_time == 2.5

    def test_whitespace_differences_are_same_text(self):
        recorder = _recorder()
        recorder.observe(1.0, "Hello  world", video_id="v1")
        recorder.observe(1.5, " Hello world\n", video_id="v1")
        assert recorder.active.end_time == 1.5

    def test_empty_tick_closes(self):
        recorder = _recorder()
        recorder.observe(1.0, "Hello", video_id="v1")
        recorder.observe(1.8, "Hello", video_id="v1")
        recorder.observe(2.0, "", video_id="v1")
        (committed,) = recorder.committed
        assert (committed.start_time, committed.end_time) == (1.0, 2.0)
        assert recorder.active is None

    def test_seek_closes_at_previous_tick(self):
        recorder = _recorder(seek_gap=2.0)
        recorder.observe(1.0, "A", video_id="v1")
        recorder.observe(1.5, "A", video_id="v1")
        recorder.observe(30.0, "A", video_id="v1")

        (committed,) = recorder.committed
        assert committed.end_time == 1.5
        assert recorder.active.start_time == 30.0

    def test_backward_seek_also_closes(self):
        recorder = _recorder(seek_gap=2.0)
        recorder.observe(50.0, "A", video_id="v1")
        recorder.observe(50.5, "A", video_id="v1")
        recorder.observe(10.0, "B", video_id="v1")
        (committed,) = recorder.committed
        assert (committed.start_time, committed.end_time) == (50.0, 50.5)
        assert recorder.active.start_time == 10.0

    def test_short_interval_discarded(self):
        recorder = _recorder(min_duration=0.2)
        recorder.observe(1.0, "blink", video_id="v1")
        recorder.observe(1.1, "next", video_id="v1")
        assert recorder.committed == []

    def test_ring_buffer_capacity(self):
        recorder = _recorder(capacity=3)
        for i in range(6):
            recorder.observe(float(i), f"line {i}", video_id="v1")
        recorder.flush()
        texts = [i.source_text for i in recorder.committed]
        assert texts == ["line 2", "line 3", "line 4"]

    def test_translation_fills_in_later(self):
        recorder = _recorder()
        recorder.observe(0.0, "Hi", video_id="v1")
        recorder.observe(0.5, "Hi", "你好", "memory", video_id="v1")
        recorder.observe(1.0, "Hi", "別的", video_id="v1")
        assert recorder.active.translation == "你好"
        assert recorder.active.translation_source == "memory"

    def test_sourced_translation_overwrites(self):
        recorder = _recorder()
        recorder.observe(0.0, "Hi", "嗨", "track", video_id="v1")
        recorder.observe(0.5, "Hi", "你好", "memory", video_id="v1")
        assert recorder.active.translation == "你好"

    def test_translation_only_caption(self):
        recorder = _recorder()
        recorder.observe(0.0, "", "Bonjour", "track", video_id="v1")
        recorder.observe(1.0, "", "Bonjour", "track", video_id="v1")
        interval = recorder.flush()
        assert interval.source_text == ""
        assert interval.translation == "Bonjour"
        assert interval.duration == 1.0

    def test_on_commit_callback(self):
        seen: list[CaptionInterval] = []
        recorder = CaptionIntervalRecorder(RecorderConfig(), on_commit=seen.append)
        recorder.observe(0.0, "One", video_id="v1")
        recorder.observe(1.0, "Two", video_id="v1")
        assert [i.source_text for i in seen] == ["One"]

    def test_reset_forgets_last_time(self):
        recorder = _recorder()
        recorder.observe(5.0, "A", video_id="v1")
        recorder.observe(6.0, "A", video_id="v1")
        recorder.reset()
        assert recorder.active is None
        assert recorder.last_time is None
        assert len(recorder.committed) == 1


class TestExportAll:
    def test_merges_and_dedups(self):
        recorder = _recorder(export_precision=3)
        recorder.observe(1.0, "A", video_id="v1")
        recorder.observe(3.0, "B", video_id="v1")
        recorder.observe(4.0, "B", video_id="v1")
        recorder.flush()

        remote = [
            CaptionInterval("v1", 1.0001, 3.0, "A"),
            CaptionInterval("v1", 0.2, 0.9, "Intro"),
            CaptionInterval("v2", 0.0, 1.0, "Other video"),
        ]
        exported = recorder.export_all(remote, video_id="v1")
        assert [i.source_text for i in exported] == ["Intro", "A", "B"]

    def test_includes_open_interval(self):
        recorder = _recorder()
        recorder.observe(1.0, "Still showing", video_id="v1")
        recorder.observe(2.5, "Still showing", video_id="v1")
        (current,) = recorder.export_all()
        assert (current.start_time, current.end_time) == (1.0, 2.5)
        assert recorder.active is not None

    def test_different_translation_is_distinct(self):
        recorder = _recorder()
        remote = [
            CaptionInterval("v1", 0.0, 1.0, "Hi", "你好"),
            CaptionInterval("v1", 0.0, 1.0, "Hi", "嗨"),
        ]
        assert len(recorder.export_all(remote)) == 2

    def test_sorted_by_start_then_end(self):
        recorder = _recorder()
        remote = [
            CaptionInterval("v1", 2.0, 3.0, "c"),
            CaptionInterval("v1", 1.0, 4.0, "b"),
            CaptionInterval("v1", 1.0, 2.0, "a"),
        ]
        assert [i.source_text for i in recorder.export_all(remote)] == ["a", "b", "c"]
