"""Clock for the fixed-cadence tick callback."""
from __future__ import annotations

from typing import Callable


class Clock:
    """Tick counter with a monotonic time reading.

    Without a ``time_source`` the time is derived from the tick count
    (``tick_number * dt``), which keeps simulations deterministic. A host
    that owns a real clock passes its own monotonic source instead.
    """

    def __init__(
        self, tps: int, time_source: Callable[[], float] | None = None
    ) -> None:
        if tps <= 0:
            raise ValueError("tps must be positive")
        self._tps = tps
        self._dt = 1.0 / tps
        self._tick_number = 0
        self._time_source = time_source
        self._last_now = 0.0

    @property
    def tps(self) -> int:
        return self._tps

    @property
    def dt(self) -> float:
        return self._dt

    @property
    def tick_number(self) -> int:
        return self._tick_number

    def advance(self) -> int:
        self._tick_number += 1
        return self._tick_number

    def now(self) -> float:
        """Current time in seconds. Never decreases."""
        if self._time_source is None:
            value = self._tick_number * self._dt
        else:
            value = self._time_source()
        if value < self._last_now:
            value = self._last_now
        self._last_now = value
        return value

    def reset(self, tick_number: int = 0) -> None:
        self._tick_number = tick_number
        self._last_now = 0.0
