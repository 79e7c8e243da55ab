from __future__ import annotations

import logging
import signal
import time
from typing import Sequence

from karaoke_sync.catalog.song import Song
from karaoke_sync.config import AppConfig
from karaoke_sync.mpris.client import MprisClient
from karaoke_sync.mpris.errors import NoPlayersFound, PlayerUnavailable
from karaoke_sync.mpris.surface import MprisFollowerSurface, MprisMasterSurface
from karaoke_sync.render.ansi import AnsiRenderer
from karaoke_sync.script.model import LyricEvent
from karaoke_sync.sync.activation import ActiveSetTracker
from karaoke_sync.sync.transport import FollowerSurface, MasterSurface, PlaybackClock, TransportSynchronizer

logger = logging.getLogger(__name__)


class KaraokeSession:
    """
    One song on screen: synchronizer clock -> active lyrics -> renderer.

    Redraws only when the active set or the play state changes.
    """

    def __init__(self, renderer: AnsiRenderer, *, buffer_ms: int = 100):
        self.renderer = renderer
        self.buffer_ms = buffer_ms
        self.sync = TransportSynchronizer()
        self.song: Song | None = None
        self._tracker: ActiveSetTracker | None = None
        self._last_playing: bool | None = None
        self._unsubscribe = self.sync.subscribe(self._on_clock)

    def load(self, song: Song, master: MasterSurface, followers: Sequence[FollowerSurface] = ()) -> None:
        # listeners of the previous master go away before the new song is bound
        self.sync.detach()
        self.song = song
        self._tracker = ActiveSetTracker(song.lyrics, buffer_ms=self.buffer_ms)
        self._last_playing = None
        self.sync.attach(master, followers)
        self._draw(self._tracker.changed(self.sync.clock.current_time_ms) or (), self.sync.clock)

    def close(self) -> None:
        self.sync.detach()
        self._unsubscribe()
        self.song = None
        self._tracker = None

    def _on_clock(self, clock: PlaybackClock) -> None:
        if self._tracker is None or self.song is None:
            return
        active = self._tracker.changed(clock.current_time_ms)
        if active is None and clock.is_playing == self._last_playing:
            return
        if active is None:
            active = self._tracker.last or ()
        self._draw(active, clock)

    def _draw(self, active: Sequence[LyricEvent], clock: PlaybackClock) -> None:
        assert self.song is not None
        self._last_playing = clock.is_playing
        self.renderer.render(self.song.display, active, clock)


def play(cfg: AppConfig, song: Song, *, master_name: str, follower_names: Sequence[str]) -> int:
    """
    Main loop:
    poll MPRIS master -> synchronizer (mirror followers) -> active lyrics -> render.
    """
    try:
        master = MprisMasterSurface(MprisClient.resolve(master_name), seek_threshold_ms=cfg.seek_threshold_ms)
        followers = [MprisFollowerSurface(MprisClient.resolve(name)) for name in follower_names]
    except NoPlayersFound as e:
        logger.error("%s", e)
        return 1

    renderer = AnsiRenderer(use_alt_screen=cfg.use_alt_screen)
    session = KaraokeSession(renderer, buffer_ms=cfg.buffer_ms)

    def _on_sigint(signum, frame):
        raise KeyboardInterrupt

    signal.signal(signal.SIGINT, _on_sigint)

    tick_s = 1.0 / max(cfg.refresh_hz, 1.0)
    renderer.enter()
    try:
        session.load(song, master, followers)
        while True:
            try:
                master.poll()
            except PlayerUnavailable as e:
                # keep the last frame while the player is briefly gone
                logger.debug("Master unavailable: %s", e)
            time.sleep(tick_s)
    except KeyboardInterrupt:
        return 0
    finally:
        session.close()
        renderer.exit()
