from __future__ import annotations

import shutil
import signal
import sys
from dataclasses import dataclass
from typing import Callable, Sequence

from karaoke_sync.script.model import LyricEvent, LyricKind
from karaoke_sync.sync.activation import display_text
from karaoke_sync.sync.transport import PlaybackClock


CSI = "\x1b["


def _sgr(*codes: int) -> str:
    return CSI + ";".join(str(c) for c in codes) + "m"


@dataclass(frozen=True, slots=True)
class Theme:
    title: str = _sgr(36, 1)  # cyan bold
    normal: str = _sgr(32, 1)  # green bold
    golden: str = _sgr(33, 1)  # yellow bold
    prolongation: str = _sgr(32)  # green
    dim: str = _sgr(90)  # bright black
    reset: str = _sgr(0)


def format_clock(clock: PlaybackClock) -> str:
    m, rem = divmod(max(clock.current_time_ms, 0), 60_000)
    s, ms = divmod(rem, 1_000)
    state = "▶" if clock.is_playing else "⏸"
    return f"{state} {m:02d}:{s:02d}.{ms // 100}"


class AnsiRenderer:
    def __init__(self, use_alt_screen: bool = True, theme: Theme | None = None):
        self.use_alt_screen = use_alt_screen
        self.theme = theme or Theme()
        self._entered = False
        self._resize_handler: Callable[[], None] | None = None
        self._last_frame: tuple[str, tuple[LyricEvent, ...], PlaybackClock] | None = None

    def __enter__(self):
        self.enter()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.exit()

    def enter(self) -> None:
        if self._entered:
            return
        if self.use_alt_screen:
            sys.stdout.write(CSI + "?1049h")  # alt screen
        sys.stdout.write(CSI + "?25l")  # hide cursor
        sys.stdout.write(CSI + "H" + CSI + "2J")
        sys.stdout.flush()
        self._entered = True

        def _redraw() -> None:
            if self._last_frame:
                self.render(*self._last_frame)

        self._resize_handler = _redraw
        signal.signal(signal.SIGWINCH, lambda signum, frame: _redraw())

    def exit(self) -> None:
        if not self._entered:
            return
        if self._resize_handler:
            signal.signal(signal.SIGWINCH, signal.SIG_DFL)
            self._resize_handler = None
        sys.stdout.write(self.theme.reset)
        sys.stdout.write(CSI + "?25h")  # show cursor
        if self.use_alt_screen:
            sys.stdout.write(CSI + "?1049l")
        sys.stdout.flush()
        self._entered = False
        self._last_frame = None

    def _style(self, event: LyricEvent) -> str:
        if event.kind is LyricKind.GOLDEN:
            return self.theme.golden
        if event.kind is LyricKind.PROLONGATION:
            return self.theme.prolongation
        return self.theme.normal

    def frame_lines(self, title: str, active: Sequence[LyricEvent], clock: PlaybackClock) -> list[str]:
        th = self.theme
        out = [f"{th.title}♫ {title} ♫{th.reset}", f"{th.dim}{format_clock(clock)}{th.reset}", ""]
        if not active:
            out.append(f"{th.dim}…{th.reset}")
            return out
        # simultaneous notes share a row, left to right in start order
        out.append("".join(f"{self._style(e)}{display_text(e)}{th.reset}" for e in active))
        return out

    def render(self, title: str, active: Sequence[LyricEvent], clock: PlaybackClock) -> None:
        self._last_frame = (title, tuple(active), clock)

        cols, rows = shutil.get_terminal_size(fallback=(80, 24))
        lines = self.frame_lines(title, active, clock)[: max(rows, 1)]

        sys.stdout.write(CSI + "H" + CSI + "2J")
        sys.stdout.write("\n".join(lines))
        sys.stdout.write(self.theme.reset)
        sys.stdout.flush()
