from __future__ import annotations

from unittest.mock import Mock

from karaoke_sync.app import KaraokeSession
from karaoke_sync.catalog.song import Song
from karaoke_sync.render.ansi import AnsiRenderer
from karaoke_sync.script.parse import parse_events
from karaoke_sync.sync.transport import SyncState
from tests.mocks.surfaces import FakeFollower, FakeMaster

FIRST = Song(id="1", title="First", artist="A", lyrics=parse_events("#BPM:120\n: 0 2 0 one\n: 4 2 0 two\n"))
SECOND = Song(id="2", title="Second", artist="B", lyrics=parse_events("#BPM:120\n: 0 20 0 other\n"))


def _rendered_texts(renderer: Mock) -> list[tuple[str, tuple[str, ...]]]:
    return [(c.args[0], tuple(e.text for e in c.args[1])) for c in renderer.render.call_args_list]


def test_renders_only_on_change():
    renderer = Mock(spec=AnsiRenderer)
    session = KaraokeSession(renderer, buffer_ms=100)
    master, follower = FakeMaster(), FakeFollower()
    session.load(FIRST, master, [follower])

    master.play()
    for t in (100, 200, 500, 900, 1100, 2000, 2050):
        master.tick(t)

    assert _rendered_texts(renderer) == [
        ("A - First", ("one",)),  # initial frame
        ("A - First", ("one",)),  # play state changed
        ("A - First", ()),  # 1100 > 1000 + 100
        ("A - First", ("two",)),
    ]
    assert follower.count("play") == 1


def test_song_change_detaches_previous_master():
    renderer = Mock(spec=AnsiRenderer)
    session = KaraokeSession(renderer)
    old, new = FakeMaster(), FakeMaster()

    session.load(FIRST, old)
    session.load(SECOND, new)
    renderer.render.reset_mock()

    old.tick(2000)  # would show "two" from the first song
    new.tick(500)

    assert old.events.listener_count() == 0
    assert _rendered_texts(renderer) == []  # "other" already shown at load
    new.tick(20_000)
    assert _rendered_texts(renderer) == [("B - Second", ())]


def test_close_resets():
    renderer = Mock(spec=AnsiRenderer)
    session = KaraokeSession(renderer)
    master = FakeMaster()
    session.load(FIRST, master)
    session.close()
    assert session.sync.state is SyncState.IDLE
    assert master.events.listener_count() == 0
    master.tick(2000)
    assert renderer.render.call_count == 1
