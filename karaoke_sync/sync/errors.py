class SyncError(RuntimeError):
    pass


class PlaybackRejected(SyncError):
    """A follower refused to start (autoplay policy, device gone, ...)."""
