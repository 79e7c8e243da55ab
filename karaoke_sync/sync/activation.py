from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from karaoke_sync.script.model import LyricEvent, LyricKind

DEFAULT_BUFFER_MS = 100

_FORMAT_CHARS = str.maketrans("", "", "*~")


def active_events(
    events: Iterable[LyricEvent],
    now_ms: int,
    buffer_ms: int = DEFAULT_BUFFER_MS,
) -> tuple[LyricEvent, ...]:
    """
    Events visible at `now_ms`, ordered by start time.

    The buffer only extends the end boundary: it covers the gap between
    timeupdate ticks so a line does not blink off before its successor shows.
    Pause events are never active. sorted() is stable, so simultaneous lines
    keep their authoring order.
    """
    hits = [
        e
        for e in events
        if e.kind is not LyricKind.PAUSE and e.start_ms <= now_ms <= e.end_ms + buffer_ms
    ]
    return tuple(sorted(hits, key=lambda e: e.start_ms))


def display_text(event: LyricEvent) -> str:
    return event.text.translate(_FORMAT_CHARS)


@dataclass(slots=True)
class ActiveSetTracker:
    """
    Wraps active_events() for renderers: report only when the set changes.
    """

    events: tuple[LyricEvent, ...]
    buffer_ms: int = DEFAULT_BUFFER_MS
    last: tuple[LyricEvent, ...] | None = None

    def current(self, now_ms: int) -> tuple[LyricEvent, ...]:
        return active_events(self.events, now_ms, self.buffer_ms)

    def changed(self, now_ms: int) -> tuple[LyricEvent, ...] | None:
        cur = self.current(now_ms)
        if cur != self.last:
            self.last = cur
            return cur
        return None

    def reset(self) -> None:
        self.last = None
