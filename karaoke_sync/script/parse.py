from __future__ import annotations

from dataclasses import dataclass
import logging
import re

from .model import MARKERS, LyricEvent, ScriptDocument, TempoContext

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^#([^:]+):(.*)$")
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")

_TEMPO_KEYS = ("BPM", "GAP", "VIDEOGAP")


@dataclass(frozen=True, slots=True)
class ScriptParseStats:
    lines_total: int
    header_lines: int
    event_lines: int
    lines_malformed: int
    lines_ignored: int
    events_total: int


def _leading_float(value: str) -> float | None:
    # "128,5" -> 128.5, "120 // slow intro" -> 120.0
    m = _FLOAT_PREFIX_RE.match(value.strip().replace(",", ".", 1))
    return float(m.group(0)) if m else None


def _leading_int(token: str) -> int | None:
    m = _INT_PREFIX_RE.match(token)
    return int(m.group(0)) if m else None


def _read_headers(lines: list[str]) -> tuple[TempoContext, dict[str, str], int]:
    bpm, gap_ms, video_gap_ms = 160.0, 0.0, 0.0
    tags: dict[str, str] = {}
    count = 0

    for raw in lines:
        m = _HEADER_RE.match(raw.strip())
        if not m:
            continue
        count += 1
        key = m.group(1).strip().upper()
        rest = m.group(2)

        if key not in _TEMPO_KEYS:
            if rest.strip():
                tags[key] = rest.strip()
            continue

        # numeric headers only look at the text up to the next colon
        value = _leading_float(rest.split(":", 1)[0])
        if value is None:
            logger.debug("Ignoring unparsable #%s header: %r", key, rest)
            continue
        if key == "BPM":
            if value > 0:
                bpm = value
            else:
                logger.debug("Ignoring non-positive BPM %s", value)
        elif key == "GAP":
            gap_ms = value
        else:
            video_gap_ms = value * 1000

    return TempoContext(bpm=bpm, gap_ms=gap_ms, video_gap_ms=video_gap_ms), tags, count


def _parse_event(line: str, tempo: TempoContext) -> LyricEvent | None:
    kind = MARKERS[line[0]]
    parts = line[1:].strip().split(" ")
    if len(parts) < 4:
        return None

    start_beat = _leading_int(parts[0])
    length_beat = _leading_int(parts[1])
    if start_beat is None or length_beat is None:
        return None

    start_ms = max(round(tempo.time_ms(start_beat)), 0)
    end_ms = max(round(tempo.time_ms(start_beat + length_beat)), start_ms)
    return LyricEvent(start_ms=start_ms, end_ms=end_ms, text=" ".join(parts[3:]), kind=kind)


def parse_script_with_stats(text: str) -> tuple[ScriptDocument, ScriptParseStats]:
    """
    Parse a beat-based karaoke script.

    Two passes: headers first (BPM, GAP, VIDEOGAP plus free-form tags),
    then note lines. Best effort: a malformed line is dropped and counted,
    never raised. Events keep file order; times are absolute ms.
    """
    lines = text.lstrip("\ufeff").splitlines()
    tempo, tags, header_lines = _read_headers(lines)

    events: list[LyricEvent] = []
    malformed = 0
    ignored = 0

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line[0] not in MARKERS:
            if not _HEADER_RE.match(line):
                ignored += 1
            continue

        ev = _parse_event(line, tempo)
        if ev is None:
            malformed += 1
            logger.debug("Dropping malformed note line %d: %r", lineno, raw)
            continue
        events.append(ev)

    doc = ScriptDocument(events=tuple(events), tempo=tempo, tags=tags)
    stats = ScriptParseStats(
        lines_total=len(lines),
        header_lines=header_lines,
        event_lines=len(events),
        lines_malformed=malformed,
        lines_ignored=ignored,
        events_total=len(doc.events),
    )
    return doc, stats


def parse_script(text: str) -> ScriptDocument:
    doc, _stats = parse_script_with_stats(text)
    return doc


def parse_events(text: str) -> tuple[LyricEvent, ...]:
    return parse_script(text).events
