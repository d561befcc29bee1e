"""In-process telemetry for document operations.

Events are plain dictionaries carrying an ``event`` key plus the emitter's
payload. Nothing leaves the process; callers subscribe with
:func:`register_event_listener` or temporarily with :func:`listening`.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from contextlib import contextmanager
from threading import Lock, RLock
from typing import Any, Callable, Iterable, Iterator, Mapping

LOGGER = logging.getLogger(__name__)

Listener = Callable[[dict[str, Any]], None]

_REGISTRY_LOCK = RLock()
_LISTENERS: defaultdict[str, list[Listener]] = defaultdict(list)


class EventRecorder:
    """Listener that keeps the most recent events in memory."""

    def __init__(self, capacity: int = 200) -> None:
        self._events: deque[dict[str, Any]] = deque(maxlen=max(10, capacity))
        self._lock = Lock()

    def __call__(self, payload: dict[str, Any]) -> None:
        with self._lock:
            self._events.append(payload)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def tail(self, limit: int | None = None) -> list[dict[str, Any]]:
        with self._lock:
            snapshot = list(self._events)
        if limit is None:
            return snapshot
        return snapshot[-limit:] if limit > 0 else []

    def names(self) -> list[str]:
        return [event.get("event", "") for event in self.tail()]


def register_event_listener(event_name: str, callback: Listener) -> None:
    """Call ``callback`` for every future :func:`emit` of ``event_name``."""

    if not event_name or callback is None:
        return
    with _REGISTRY_LOCK:
        listeners = _LISTENERS[event_name]
        if callback not in listeners:
            listeners.append(callback)


def unregister_event_listener(event_name: str, callback: Listener) -> None:
    with _REGISTRY_LOCK:
        listeners = _LISTENERS.get(event_name)
        if not listeners:
            return
        if callback in listeners:
            listeners.remove(callback)
        if not listeners:
            del _LISTENERS[event_name]


@contextmanager
def listening(event_names: Iterable[str], callback: Listener) -> Iterator[Listener]:
    """Subscribe ``callback`` to ``event_names`` for the duration of the block."""

    names = list(event_names)
    for name in names:
        register_event_listener(name, callback)
    try:
        yield callback
    finally:
        for name in names:
            unregister_event_listener(name, callback)


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Deliver ``payload`` tagged with ``event_name`` to each subscribed listener."""

    if not event_name:
        return
    event = {"event": event_name, **(payload or {})}
    with _REGISTRY_LOCK:
        listeners = tuple(_LISTENERS.get(event_name, ()))
    LOGGER.debug("Telemetry %s: %s", event_name, event)
    for callback in listeners:
        try:
            callback(dict(event))
        except Exception:  # pragma: no cover - listeners must not break emitters
            LOGGER.debug("Telemetry listener %r failed for %s", callback, event_name, exc_info=True)


__all__ = [
    "EventRecorder",
    "emit",
    "listening",
    "register_event_listener",
    "unregister_event_listener",
]
