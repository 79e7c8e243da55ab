class MprisError(RuntimeError):
    pass


class NoPlayersFound(MprisError):
    """No MPRIS bus name matched the requested player."""


class PlayerUnavailable(MprisError):
    """The player vanished from the bus or rejected a call."""
