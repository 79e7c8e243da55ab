from __future__ import annotations

import logging
import time
from typing import Protocol

from karaoke_sync.sync.errors import PlaybackRejected
from karaoke_sync.sync.events import Callback, Emitter, Unsubscribe

from .errors import PlayerUnavailable

logger = logging.getLogger(__name__)


class PlayerControl(Protocol):
    # the subset of MprisClient the surfaces rely on
    service_name: str

    def playback_status(self) -> str: ...

    def position_ms(self) -> int: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def set_position_ms(self, ms: int) -> None: ...


class MprisMasterSurface:
    """
    Turns a polled MPRIS player into play/pause/seeked/timeupdate events.

    MPRIS has no timeupdate signal, so poll() is called from the app loop.
    A seek is inferred when the reported position strays from the expected
    advance by more than `seek_threshold_ms`, and the first poll always
    reports one.
    """

    def __init__(self, client: PlayerControl, *, seek_threshold_ms: int = 1000):
        self.client = client
        self.seek_threshold_ms = seek_threshold_ms
        self._events = Emitter()
        self._position_ms = 0
        self._playing: bool | None = None
        self._last_poll_s: float | None = None

    @property
    def current_time_ms(self) -> int:
        return self._position_ms

    def on_time_update(self, cb: Callback) -> Unsubscribe:
        return self._events.subscribe("timeupdate", cb)

    def on_play(self, cb: Callback) -> Unsubscribe:
        return self._events.subscribe("play", cb)

    def on_pause(self, cb: Callback) -> Unsubscribe:
        return self._events.subscribe("pause", cb)

    def on_seeked(self, cb: Callback) -> Unsubscribe:
        return self._events.subscribe("seeked", cb)

    def poll(self, now_s: float | None = None) -> None:
        now_s = time.monotonic() if now_s is None else now_s
        playing = self.client.playback_status().lower() == "playing"
        pos = self.client.position_ms()

        was_playing = self._playing
        prev_pos = self._position_ms
        prev_poll = self._last_poll_s
        self._playing = playing
        self._position_ms = pos
        self._last_poll_s = now_s

        if prev_poll is None:
            # first reading: followers must be moved to wherever the master already is
            self._events.emit("seeked")

        if playing != bool(was_playing):
            self._events.emit("play" if playing else "pause")

        if prev_poll is not None:
            expected = prev_pos
            if was_playing:
                expected += int((now_s - prev_poll) * 1000)
            if abs(pos - expected) > self.seek_threshold_ms:
                logger.debug("Seek detected on %s: %d -> %d ms", self.client.service_name, prev_pos, pos)
                self._events.emit("seeked")

        if pos != prev_pos:
            self._events.emit("timeupdate")


class MprisFollowerSurface:
    def __init__(self, client: PlayerControl):
        self.client = client

    def play(self) -> None:
        try:
            self.client.play()
        except PlayerUnavailable as e:
            raise PlaybackRejected(f"{self.client.service_name}: {e}") from e

    def pause(self) -> None:
        try:
            self.client.pause()
        except PlayerUnavailable as e:
            logger.warning("Could not pause %s: %s", self.client.service_name, e)

    def set_time(self, ms: int) -> None:
        try:
            self.client.set_position_ms(ms)
        except PlayerUnavailable as e:
            logger.warning("Could not reposition %s: %s", self.client.service_name, e)
