"""Tests for active-cue lookup and cue normalization."""

import math

from dualsub.core.models import Cue
from dualsub.timeline.cues import CueTrack, locate, normalize_cues

CUES = [
    Cue(0.0, 2.0, "A"),
    Cue(2.0, 4.0, "B"),
    Cue(5.0, 7.0, "C"),
    Cue(8.0, 9.5, "D"),
]


def _brute_force(cues, time):
    for cue in cues:
        if cue.start <= time <= cue.end:
            return cue
    return None


class TestLocate:
    def test_empty_list(self):
        result = locate([], 3.0, hint=5)
        assert result.cue is None
        assert result.hint == 0

    def test_inside_cue(self):
        assert locate(CUES, 1.0).cue.text == "A"
        assert locate(CUES, 6.0).cue.text == "C"

    def test_gap_returns_none_with_nearby_hint(self):
        result = locate(CUES, 4.7, hint=0)
        assert result.cue is None
        assert result.hint in (1, 2)

    def test_before_first_and_after_last(self):
        assert locate(CUES, -1.0, hint=3).cue is None
        result = locate(CUES, 100.0, hint=0)
        assert result.cue is None
        assert result.hint == len(CUES) - 1

    def test_hint_out_of_range_is_clamped(self):
        assert locate(CUES, 8.5, hint=99).cue.text == "D"
        assert locate(CUES, 0.5, hint=-4).cue.text == "A"

    def test_boundary_owned_by_first_reached(self):
        # 2.0 is A's end and B's start.
        assert locate(CUES, 2.0, hint=0).cue.text == "A"
        assert locate(CUES, 2.0, hint=1).cue.text == "B"

    def test_backward_seek(self):
        result = locate(CUES, 0.5, hint=3)
        assert result.cue.text == "A"
        assert result.hint == 0

    def test_monotone_sequence_matches_brute_force(self):
        hint = 0
        t = 0.0
        while t < 10.0:
            result = locate(CUES, t, hint)
            expected = _brute_force(CUES, t)
            if expected is None:
                assert result.cue is None
            else:
                assert result.cue is not None
                assert result.cue.start <= t <= result.cue.end
            hint = result.hint
            t += 0.05

    def test_random_seeks_are_correct(self):
        hint = 0
        for t in (9.0, 0.1, 6.5, 3.3, 4.8, 8.0, 1.99, 7.5):
            result = locate(CUES, t, hint)
            expected = _brute_force(CUES, t)
            assert (result.cue is None) == (expected is None)
            hint = result.hint


class TestNormalizeCues:
    def test_skips_malformed(self):
        raw = [
            {"start": 1.0, "end": 2.0, "text": "ok"},
            {"start": "x", "end": 2.0, "text": "bad time"},
            {"end": 2.0, "text": "missing start"},
            {"start": 3.0, "end": 2.0, "text": "ends early"},
            {"start": 1.0, "end": 2.0, "text": "   "},
            {"start": -1.0, "end": 2.0, "text": "negative"},
            {"start": math.inf, "end": math.inf, "text": "infinite"},
            "not a cue",
        ]
        cues = normalize_cues(raw)
        assert [c.text for c in cues] == ["ok"]

    def test_sorted_by_start_then_end(self):
        cues = normalize_cues(
            [
                Cue(5.0, 6.0, "late"),
                {"start": 1.0, "end": 3.0, "text": "long"},
                Cue(1.0, 2.0, "short"),
            ]
        )
        assert [c.text for c in cues] == ["short", "long", "late"]

    def test_text_is_stripped(self):
        assert normalize_cues([{"start": 0, "end": 1, "text": "  hi  "}])[0].text == "hi"


class TestCueTrack:
    def test_at_carries_hint(self):
        track = CueTrack("en", CUES)
        assert track.at(0.5).text == "A"
        assert track.at(3.0).text == "B"
        assert track.at(4.5) is None
        assert track.at(8.2).text == "D"

    def test_replace_and_clear(self):
        track = CueTrack("en", CUES)
        track.at(9.0)
        track.replace([Cue(0.0, 1.0, "new")])
        assert len(track) == 1
        assert track.at(0.5).text == "new"
        track.clear()
        assert len(track) == 0
        assert track.at(0.5) is None
