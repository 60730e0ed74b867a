"""Named signal registration and dispatch."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

EVENT_NAMES = ("error", "match", "notFound", "end", "update")

Listener = Callable[..., object]


@dataclass(slots=True)
class EventRegistry:
    """Listener registry preserving registration order per event."""

    _listeners: dict[str, list[Listener]] = field(
        default_factory=lambda: {name: [] for name in EVENT_NAMES}
    )
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def register(self, event: str, listener: Listener) -> None:
        """Register ``listener`` for ``event``."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        with self._lock:
            self._listeners[event].append(listener)

    def unregister(self, event: str, listener: Listener) -> None:
        """Remove one registration of ``listener``; unknown listeners are ignored."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        with self._lock:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

    def emit(self, event: str, *args: object) -> None:
        """Call every listener of ``event`` with ``args`` in registration order."""
        with self._lock:
            listeners = tuple(self._listeners[event])
        for listener in listeners:
            listener(*args)
