from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class LyricKind(Enum):
    NORMAL = "normal"
    PAUSE = "pause"
    PROLONGATION = "prolongation"
    GOLDEN = "golden"


# first non-space character of a note line
MARKERS: dict[str, LyricKind] = {
    ":": LyricKind.NORMAL,
    "*": LyricKind.GOLDEN,
    "~": LyricKind.PROLONGATION,
    "-": LyricKind.PAUSE,
}


@dataclass(frozen=True, slots=True)
class LyricEvent:
    start_ms: int
    end_ms: int
    text: str
    kind: LyricKind = LyricKind.NORMAL


@dataclass(frozen=True, slots=True)
class TempoContext:
    bpm: float = 160.0
    gap_ms: float = 0.0
    video_gap_ms: float = 0.0

    def time_ms(self, beat: int) -> float:
        return self.gap_ms + beat * 60_000 / self.bpm - self.video_gap_ms


@dataclass(frozen=True, slots=True)
class ScriptDocument:
    events: tuple[LyricEvent, ...]
    tempo: TempoContext = TempoContext()
    tags: dict[str, str] = field(default_factory=dict)
