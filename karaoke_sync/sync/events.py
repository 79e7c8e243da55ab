from __future__ import annotations

from typing import Callable

Callback = Callable[[], None]
Unsubscribe = Callable[[], None]


class Emitter:
    """
    Minimal named-event hub used by concrete playback surfaces.

    subscribe() hands back a callable that removes exactly that registration.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Callback]] = {}

    def subscribe(self, event: str, cb: Callback) -> Unsubscribe:
        self._handlers.setdefault(event, []).append(cb)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if cb in handlers:
                handlers.remove(cb)

        return _unsubscribe

    def emit(self, event: str) -> None:
        # copy: a handler may unsubscribe while we iterate
        for cb in list(self._handlers.get(event, ())):
            cb()

    def listener_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, ()))
        return sum(len(h) for h in self._handlers.values())
