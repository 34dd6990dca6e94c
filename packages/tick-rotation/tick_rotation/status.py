"""Status tracking by polling with diff, and an event bus over the diff.

Polling is the single source of truth: each tick the tracker compares the
new readings with the previous tick's and produces a list of changes. The
event bus only republishes those changes, so subscribers see exactly what
a poller would.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from tick_rotation.types import StatusReading

GAINED = "gained"
LOST = "lost"
REFRESHED = "refreshed"
STACKS_CHANGED = "stacks_changed"
ANY = "*"

_EMPTY = StatusReading()


@dataclass(frozen=True)
class StatusChange:
    """One status transition between two consecutive polls."""

    status_id: str
    kind: str
    previous: StatusReading
    current: StatusReading


class StatusTracker:
    """Keeps the previous reading of each tracked status."""

    def __init__(self, status_ids: Iterable[str] | None = None) -> None:
        self._tracked: set[str] | None = set(status_ids) if status_ids is not None else None
        self._previous: dict[str, StatusReading] = {}

    def previous(self, status_id: str) -> StatusReading:
        return self._previous.get(status_id, _EMPTY)

    def update(self, readings: Mapping[str, StatusReading]) -> list[StatusChange]:
        """Diff ``readings`` against the last poll and remember them."""
        ids = self._tracked if self._tracked is not None else set(readings) | set(self._previous)
        changes: list[StatusChange] = []
        for sid in sorted(ids):
            prev = self._previous.get(sid, _EMPTY)
            cur = readings.get(sid, _EMPTY)
            kind = _classify(prev, cur)
            if kind is not None:
                changes.append(StatusChange(sid, kind, prev, cur))
            self._previous[sid] = cur
        return changes

    def clear(self) -> list[StatusChange]:
        """Forget all readings, reporting every active status as lost."""
        changes = [
            StatusChange(sid, LOST, prev, _EMPTY)
            for sid, prev in sorted(self._previous.items())
            if prev.active
        ]
        self._previous.clear()
        return changes


def _classify(prev: StatusReading, cur: StatusReading) -> str | None:
    if cur.active and not prev.active:
        return GAINED
    if prev.active and not cur.active:
        return LOST
    if not cur.active:
        return None
    if cur.stacks != prev.stacks:
        return STACKS_CHANGED
    if cur.remaining > prev.remaining:
        return REFRESHED
    return None


_Handler = Callable[[str, StatusChange], None]


class StatusEventBus:
    """Queues status changes and delivers them on :meth:`flush`."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[_Handler]] = {}
        self._queue: list[StatusChange] = []

    def subscribe(self, kind: str, handler: _Handler) -> None:
        """Subscribe to one change kind, or to every kind with ``ANY``."""
        self._subscribers.setdefault(kind, []).append(handler)

    def unsubscribe(self, kind: str, handler: _Handler) -> None:
        handlers = self._subscribers.get(kind)
        if handlers is None:
            return
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, change: StatusChange) -> None:
        self._queue.append(change)

    def publish_all(self, changes: Iterable[StatusChange]) -> None:
        self._queue.extend(changes)

    def flush(self) -> None:
        snapshot = self._queue
        self._queue = []
        for change in snapshot:
            for handler in list(self._subscribers.get(change.kind, [])):
                handler(change.kind, change)
            for handler in list(self._subscribers.get(ANY, [])):
                handler(change.kind, change)

    def clear(self) -> None:
        self._queue.clear()
