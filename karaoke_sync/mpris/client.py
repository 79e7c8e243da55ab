from __future__ import annotations

import logging
from typing import Any

import dbus

from .errors import NoPlayersFound, PlayerUnavailable

logger = logging.getLogger(__name__)

_BUS_PREFIX = "org.mpris.MediaPlayer2."
_OBJECT_PATH = "/org/mpris/MediaPlayer2"
_PLAYER_IFACE = "org.mpris.MediaPlayer2.Player"


class MprisClient:
    """
    Thin D-Bus wrapper around one MPRIS player.

    Every D-Bus failure surfaces as PlayerUnavailable.
    """

    def __init__(self, service_name: str):
        self.service_name = service_name
        self._bus = dbus.SessionBus()
        self._obj = self._bus.get_object(service_name, _OBJECT_PATH)
        self._props = dbus.Interface(self._obj, "org.freedesktop.DBus.Properties")
        self._player = dbus.Interface(self._obj, _PLAYER_IFACE)

    @staticmethod
    def list_players() -> list[str]:
        try:
            bus = dbus.SessionBus()
            return [str(s) for s in bus.list_names() if str(s).startswith(_BUS_PREFIX)]
        except dbus.DBusException as e:
            # sandboxes and CI often deny the session bus
            logger.debug("Unable to connect to D-Bus session bus: %s", e)
            return []

    @staticmethod
    def resolve(name: str) -> "MprisClient":
        """Accepts a full bus name or a short one like "vlc" or "mpv.instance42"."""
        players = MprisClient.list_players()
        for s in players:
            if s == name or s == _BUS_PREFIX + name:
                return MprisClient(s)
        for s in players:
            if s.startswith(_BUS_PREFIX + name + "."):
                return MprisClient(s)
        raise NoPlayersFound(f"MPRIS player '{name}' not found")

    def _get(self, prop: str) -> Any:
        try:
            return self._props.Get(_PLAYER_IFACE, prop)
        except dbus.DBusException as e:
            raise PlayerUnavailable(str(e)) from e

    def playback_status(self) -> str:
        return str(self._get("PlaybackStatus"))

    def metadata(self) -> dict[str, Any]:
        return dict(self._get("Metadata"))

    def track_id(self) -> str:
        return str(self.metadata().get("mpris:trackid", ""))

    def position_ms(self) -> int:
        """
        MPRIS Position is microseconds.
        """
        return int(self._get("Position")) // 1000

    def play(self) -> None:
        try:
            self._player.Play()
        except dbus.DBusException as e:
            raise PlayerUnavailable(str(e)) from e

    def pause(self) -> None:
        try:
            self._player.Pause()
        except dbus.DBusException as e:
            raise PlayerUnavailable(str(e)) from e

    def set_position_ms(self, ms: int) -> None:
        # SetPosition is ignored by players unless the track id matches
        track_id = self.track_id()
        if not track_id:
            raise PlayerUnavailable(f"{self.service_name} exposes no mpris:trackid")
        try:
            self._player.SetPosition(dbus.ObjectPath(track_id), dbus.Int64(max(ms, 0) * 1000))
        except dbus.DBusException as e:
            raise PlayerUnavailable(str(e)) from e
