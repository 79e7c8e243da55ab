from __future__ import annotations

import logging

import pytest

from karaoke_sync.sync.errors import SyncError
from karaoke_sync.sync.transport import PlaybackClock, SyncState, TransportSynchronizer
from tests.mocks.surfaces import FakeFollower, FakeMaster


def _attached(n_followers: int = 2, **follower_kwargs):
    sync = TransportSynchronizer()
    master = FakeMaster()
    followers = [FakeFollower(**follower_kwargs) for _ in range(n_followers)]
    sync.attach(master, followers)
    return sync, master, followers


def test_starts_idle_and_syncs_after_attach():
    sync = TransportSynchronizer()
    assert sync.state is SyncState.IDLE
    sync.attach(FakeMaster(), [FakeFollower()])
    assert sync.state is SyncState.SYNCING


def test_play_starts_followers_and_reports_playing():
    sync, master, followers = _attached()
    master.play()
    assert sync.clock.is_playing is True
    assert all(f.count("play") == 1 for f in followers)


def test_repeated_play_does_not_restart_followers():
    sync, master, followers = _attached()
    master.play()
    master.play()
    assert all(f.count("play") == 1 for f in followers)


def test_pause_is_idempotent():
    sync, master, followers = _attached()
    master.play()
    master.pause()
    master.pause()
    master.pause()
    assert sync.clock.is_playing is False
    assert all(f.count("pause") == 1 for f in followers)


def test_pause_while_never_played_is_noop():
    sync, master, followers = _attached()
    master.pause()
    assert all(f.calls == [] for f in followers)


def test_seek_repositions_followers():
    sync, master, followers = _attached()
    master.seek(42_000)
    assert all(f.calls == [("set_time", 42_000)] for f in followers)
    assert sync.clock.current_time_ms == 42_000


def test_time_update_does_not_touch_followers():
    sync, master, followers = _attached()
    master.play()
    for t in range(0, 1000, 250):
        master.tick(t)
    assert sync.clock == PlaybackClock(current_time_ms=750, is_playing=True)
    assert all(f.count("set_time") == 0 for f in followers)


def test_rejected_follower_play_is_logged_not_raised(caplog):
    sync = TransportSynchronizer()
    master = FakeMaster()
    blocked, ok = FakeFollower(reject_play=True), FakeFollower()
    sync.attach(master, [blocked, ok])

    with caplog.at_level(logging.WARNING, logger="karaoke_sync.sync.transport"):
        master.play()

    assert sync.clock.is_playing is True
    assert blocked.count("play") == 1
    assert ok.count("play") == 1
    assert "autoplay blocked" in caplog.text
    # no retry on later time updates
    master.tick(500)
    assert blocked.count("play") == 1


def test_listeners_receive_clock_changes():
    sync, master, _ = _attached()
    seen: list[PlaybackClock] = []
    unsubscribe = sync.subscribe(seen.append)
    master.play()
    master.tick(100)
    master.tick(100)  # unchanged, not re-reported
    unsubscribe()
    master.tick(200)
    assert seen == [PlaybackClock(0, True), PlaybackClock(100, True)]


def test_detach_removes_all_master_listeners():
    sync, master, followers = _attached()
    assert master.events.listener_count() == 4
    sync.detach()
    assert master.events.listener_count() == 0
    assert sync.state is SyncState.IDLE
    master.play()
    assert all(f.calls == [] for f in followers)


def test_switching_master_never_delivers_stale_updates():
    sync = TransportSynchronizer()
    a, b = FakeMaster(), FakeMaster()
    seen: list[int] = []
    sync.subscribe(lambda clock: seen.append(clock.current_time_ms))

    sync.attach(a)
    a.tick(1000)
    sync.attach(b)
    a.tick(5000)
    b.tick(200)

    assert 5000 not in seen
    assert seen[-1] == 200
    assert a.events.listener_count() == 0


def test_stale_callback_held_by_old_master_is_ignored():
    sync = TransportSynchronizer()
    a, b = FakeMaster(), FakeMaster()
    captured = []
    original = a.on_time_update

    def _capture(cb):
        captured.append(cb)
        return original(cb)

    a.on_time_update = _capture
    sync.attach(a)
    sync.attach(b)
    a.position_ms = 9999
    captured[0]()  # emitter kept a reference past unsubscribe
    assert sync.clock.current_time_ms == 0


def test_detach_failure_still_resets_session(caplog):
    sync, master, _ = _attached()

    def _boom():
        raise RuntimeError("listener table corrupted")

    sync._unsubscribers.insert(0, _boom)
    with caplog.at_level(logging.ERROR, logger="karaoke_sync.sync.transport"):
        sync.detach()

    assert sync.state is SyncState.IDLE
    assert sync.master is None
    assert "resetting session" in caplog.text
    # only the failing unsubscribe is left behind; the others still ran
    assert master.events.listener_count() == 0
    master.play()
    assert sync.clock.is_playing is False


def test_each_listener_is_removed_even_if_one_fails(caplog):
    sync, master, _ = _attached()
    unsubscribers = list(sync._unsubscribers)

    def _boom():
        raise RuntimeError("listener table corrupted")

    sync._unsubscribers = [unsubscribers[0], _boom, *unsubscribers[2:]]
    with caplog.at_level(logging.ERROR, logger="karaoke_sync.sync.transport"):
        sync.detach()

    # the play listener was never unsubscribed, everything else was
    assert master.events.listener_count() == 1
    assert master.events.listener_count("play") == 1
    assert sync.state is SyncState.IDLE
    assert "1 master listener(s) could not be removed" in caplog.text


def test_master_time_without_master_raises():
    sync = TransportSynchronizer()
    with pytest.raises(SyncError):
        sync._master_time()
