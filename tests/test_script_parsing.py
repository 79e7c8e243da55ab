from __future__ import annotations

import pytest

from karaoke_sync.script.model import LyricKind, TempoContext
from karaoke_sync.script.parse import parse_events, parse_script, parse_script_with_stats


def test_default_tempo_round_trip():
    events = parse_events(": 0 160 0 a\n: 160 0 0 b\n")
    assert events[0].start_ms == 0
    assert events[0].end_ms == 60_000
    assert events[1].start_ms == 60_000


def test_gap_shifts_beat_zero():
    events = parse_events("#GAP:500\n: 0 1 0 a\n")
    assert events[0].start_ms == 500


def test_decimal_comma_in_headers():
    doc = parse_script("#BPM:128,5\n#GAP:12,5\n")
    assert doc.tempo.bpm == 128.5
    assert doc.tempo.gap_ms == 12.5


def test_golden_marker_example():
    events = parse_events("#BPM:120\n#GAP:0\n* 10 5 3 Hello\n")
    assert len(events) == 1
    e = events[0]
    assert e.kind is LyricKind.GOLDEN
    assert (e.start_ms, e.end_ms, e.text) == (5000, 7500, "Hello")


def test_videogap_is_seconds_and_subtracted():
    doc = parse_script("#BPM:120\n#GAP:1000\n#VIDEOGAP:0,5\n: 10 5 3 x\n")
    assert doc.tempo.video_gap_ms == 500
    assert (doc.events[0].start_ms, doc.events[0].end_ms) == (5500, 8000)


def test_negative_times_are_clamped():
    e = parse_events("#VIDEOGAP:10\n: 0 4 0 x\n")[0]
    assert e.start_ms == 0
    assert e.end_ms == 0


def test_headers_apply_even_when_after_notes():
    events = parse_events(": 10 5 3 x\n#BPM:120\n")
    assert events[0].start_ms == 5000


@pytest.mark.parametrize(
    "marker, kind",
    [(":", LyricKind.NORMAL), ("*", LyricKind.GOLDEN), ("~", LyricKind.PROLONGATION), ("-", LyricKind.PAUSE)],
)
def test_marker_classification(marker, kind):
    events = parse_events(f"{marker} 1 2 3 la\n")
    assert events[0].kind is kind


def test_short_and_non_numeric_lines_are_dropped():
    doc, stats = parse_script_with_stats(": 10 5 3\n: x 5 3 word\n- 40\n: 1 2 3 ok\nE\n\n")
    assert [e.text for e in doc.events] == ["ok"]
    assert stats.lines_malformed == 3
    assert stats.lines_ignored == 2
    assert stats.events_total == 1


def test_leading_whitespace_before_marker():
    events = parse_events("   : 1 2 3 hi\n\t* 4 1 0 there\n")
    assert [e.text for e in events] == ["hi", "there"]


def test_text_keeps_inner_spacing_and_marker_chars():
    events = parse_events(": 1 2 3  hi there\n~ 3 1 0 ~\n: 4 1 0 sun*\n")
    assert events[0].text == " hi there"
    assert events[1].text == "~"
    assert events[2].text == "sun*"


def test_header_value_with_trailing_comment():
    doc = parse_script("#BPM:300 ; doubled\n#GAP: 1500 ms\n")
    assert doc.tempo.bpm == 300
    assert doc.tempo.gap_ms == 1500


def test_invalid_bpm_keeps_default():
    assert parse_script("#BPM:0\n").tempo.bpm == 160
    assert parse_script("#BPM:fast\n").tempo.bpm == 160


def test_header_keys_are_case_insensitive():
    assert parse_script("#bpm:120\n").tempo.bpm == 120


def test_tags_are_collected():
    doc = parse_script("#TITLE:Take On Me\n#ARTIST:a-ha\n#VIDEO:take.mp4\n#EMPTY:\n")
    assert doc.tags == {"TITLE": "Take On Me", "ARTIST": "a-ha", "VIDEO": "take.mp4"}


def test_file_order_is_preserved():
    events = parse_events(": 20 1 0 late\n: 10 1 0 early\n")
    assert [e.text for e in events] == ["late", "early"]


@pytest.mark.parametrize("text", ["", "   \n\n\t\n", "garbage\nmore garbage\n"])
def test_empty_or_unparsable_script_yields_no_events(text):
    assert parse_events(text) == ()


def test_byte_order_mark_and_crlf():
    events = parse_events("\ufeff#BPM:120\r\n: 10 5 3 Hello\r\n")
    assert events[0].start_ms == 5000
    assert events[0].text == "Hello"


def test_tempo_context_formula():
    tempo = TempoContext(bpm=240, gap_ms=100, video_gap_ms=50)
    assert tempo.time_ms(4) == 100 + 1000 - 50
