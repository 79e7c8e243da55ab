from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
from typing import Callable, Protocol, Sequence

from .errors import PlaybackRejected, SyncError
from .events import Callback, Unsubscribe

logger = logging.getLogger(__name__)


class MasterSurface(Protocol):
    """The timing-authoritative element (usually the video)."""

    @property
    def current_time_ms(self) -> int: ...

    def on_time_update(self, cb: Callback) -> Unsubscribe: ...

    def on_play(self, cb: Callback) -> Unsubscribe: ...

    def on_pause(self, cb: Callback) -> Unsubscribe: ...

    def on_seeked(self, cb: Callback) -> Unsubscribe: ...


class FollowerSurface(Protocol):
    """An audio-only track mirroring the master. play() may raise PlaybackRejected."""

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def set_time(self, ms: int) -> None: ...


class SyncState(Enum):
    IDLE = "idle"
    SYNCING = "syncing"


@dataclass(frozen=True, slots=True)
class PlaybackClock:
    current_time_ms: int = 0
    is_playing: bool = False


ClockListener = Callable[[PlaybackClock], None]


class TransportSynchronizer:
    """
    Locks follower tracks to a master surface.

    Play/pause are mirrored once per transition; positions are copied only on
    discrete seeks, never on plain time updates. The clock is written here and
    nowhere else.
    """

    def __init__(self) -> None:
        self.state = SyncState.IDLE
        self.clock = PlaybackClock()
        self._master: MasterSurface | None = None
        self._followers: tuple[FollowerSurface, ...] = ()
        self._unsubscribers: list[Unsubscribe] = []
        self._listeners: list[ClockListener] = []
        self._session = 0

    @property
    def master(self) -> MasterSurface | None:
        return self._master

    @property
    def followers(self) -> tuple[FollowerSurface, ...]:
        return self._followers

    def subscribe(self, listener: ClockListener) -> Unsubscribe:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def attach(self, master: MasterSurface, followers: Sequence[FollowerSurface] = ()) -> None:
        # the old master must be fully silenced before the new one can speak
        if self._master is not None:
            self.detach()

        self._session += 1
        session = self._session

        def _guard(handler: Callable[[], None]) -> Callback:
            def _cb() -> None:
                if session == self._session and self._master is master:
                    handler()
                else:
                    logger.debug("Dropping callback from stale session %d", session)

            return _cb

        self._master = master
        self._followers = tuple(followers)
        self._unsubscribers = [
            master.on_time_update(_guard(self._on_time_update)),
            master.on_play(_guard(self._on_play)),
            master.on_pause(_guard(self._on_pause)),
            master.on_seeked(_guard(self._on_seeked)),
        ]
        self.state = SyncState.SYNCING
        self._set_clock(PlaybackClock(current_time_ms=int(master.current_time_ms), is_playing=False))
        logger.debug("Attached master with %d follower(s)", len(self._followers))

    def detach(self) -> None:
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        failed = 0
        for unsubscribe in unsubscribers:
            try:
                unsubscribe()
            except Exception:
                failed += 1
                logger.exception("Failed to remove a master listener")
        if failed:
            logger.error("%d master listener(s) could not be removed; resetting session", failed)

        self._session += 1
        self._master = None
        self._followers = ()
        self.state = SyncState.IDLE
        self.clock = PlaybackClock()

    def _set_clock(self, clock: PlaybackClock) -> None:
        if clock == self.clock:
            return
        self.clock = clock
        for listener in list(self._listeners):
            listener(clock)

    def _master_time(self) -> int:
        if self._master is None:
            raise SyncError("no master attached")
        return int(self._master.current_time_ms)

    def _on_time_update(self) -> None:
        self._set_clock(replace(self.clock, current_time_ms=self._master_time()))

    def _on_play(self) -> None:
        if self.clock.is_playing:
            return
        for follower in self._followers:
            try:
                follower.play()
            except PlaybackRejected as e:
                logger.warning("Follower refused to play: %s", e)
        self._set_clock(PlaybackClock(current_time_ms=self._master_time(), is_playing=True))

    def _on_pause(self) -> None:
        if not self.clock.is_playing:
            return
        for follower in self._followers:
            follower.pause()
        self._set_clock(PlaybackClock(current_time_ms=self._master_time(), is_playing=False))

    def _on_seeked(self) -> None:
        pos = self._master_time()
        for follower in self._followers:
            follower.set_time(pos)
        self._set_clock(replace(self.clock, current_time_ms=pos))
