"""Cross-tick trackers: minimum use interval and once-per-window uses."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tick_rotation.status import StatusChange


class UseThrottle:
    """Refuses a sensitive action until ``min_interval`` has passed."""

    def __init__(self, min_interval: float) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self._min_interval = min_interval
        self._last_use: float | None = None

    @property
    def min_interval(self) -> float:
        return self._min_interval

    @property
    def last_use(self) -> float | None:
        return self._last_use

    def ready(self, now: float) -> bool:
        if self._last_use is None:
            return True
        return now - self._last_use >= self._min_interval

    def record(self, now: float) -> None:
        self._last_use = now

    def reset(self) -> None:
        self._last_use = None


class WindowTracker:
    """Allows one use per activation of a status window.

    A window opens on the inactive -> active transition of the status and
    closes when it goes inactive again. Feed it either by polling
    :meth:`update` each tick or by subscribing :meth:`handle` to status
    events; both paths go through the same transition logic.
    """

    def __init__(self, status_id: str) -> None:
        self._status_id = status_id
        self._open = False
        self._used = False
        self._opened_count = 0

    @property
    def status_id(self) -> str:
        return self._status_id

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def opened_count(self) -> int:
        return self._opened_count

    def update(self, active: bool) -> None:
        if active and not self._open:
            self._open = True
            self._used = False
            self._opened_count += 1
        elif not active and self._open:
            self._open = False
            self._used = False

    def handle(self, kind: str, change: StatusChange) -> None:
        """Status event handler."""
        if change.status_id != self._status_id:
            return
        self.update(change.current.active)

    def available(self) -> bool:
        return self._open and not self._used

    def mark_used(self) -> None:
        if self._open:
            self._used = True
