"""ResourceForecaster: near-future availability of the discrete pool."""
from __future__ import annotations

from tick_rotation.collaborators import DiscretePool, safe_query
from tick_rotation.types import UNREACHABLE, ForecastResult


def empty_forecast(horizon: int) -> ForecastResult:
    """Forecast for an absent or invalid pool: nothing is affordable."""
    return ForecastResult(current=0, time_to=(UNREACHABLE,) * horizon)


def should_reserve(forecast: ForecastResult, needed: int, window: float) -> bool:
    """True when ``needed`` slots are missing now but arrive within ``window``."""
    if forecast.current >= needed:
        return False
    t = forecast.time_until(needed)
    return 0 < t <= window


def can_afford_soon(
    forecast: ForecastResult, needed: int, window: float, tick_duration: float
) -> bool:
    """True when ``needed`` slots are available now or within the window.

    ``tick_duration`` covers the one-tick lag between deciding and spending.
    """
    if forecast.current >= needed:
        return True
    t = forecast.time_until(needed)
    return 0 < t <= window + tick_duration


class ResourceForecaster:
    """Projects discrete pool availability over a fixed horizon.

    Attributes:
        window: Default forecast window in seconds.
        horizon: Number of slot counts forecast (``time_to[1..horizon]``).
    """

    def __init__(self, window: float = 3.0, horizon: int = 6) -> None:
        if window < 0:
            raise ValueError(f"window must be >= 0, got {window}")
        if horizon <= 0:
            raise ValueError(f"horizon must be > 0, got {horizon}")
        self.window = window
        self.horizon = horizon

    def forecast(self, pool: DiscretePool | None) -> ForecastResult:
        """Read the pool once. Never raises; degrades to nothing affordable."""
        if pool is None:
            return empty_forecast(self.horizon)
        current = safe_query(pool.slots_available, -1)
        if current < 0:
            return empty_forecast(self.horizon)
        times = []
        for n in range(1, self.horizon + 1):
            t = safe_query(lambda n=n: pool.time_until(n), UNREACHABLE)
            if current >= n:
                t = 0.0
            elif t <= 0:
                # A pool short of n slots cannot report them as ready now.
                t = UNREACHABLE
            times.append(t)
        return ForecastResult(current=current, time_to=tuple(times))

    def should_reserve(
        self, forecast: ForecastResult, needed: int, window: float | None = None
    ) -> bool:
        return should_reserve(
            forecast, needed, self.window if window is None else window
        )

    def can_afford_soon(
        self,
        forecast: ForecastResult,
        needed: int,
        tick_duration: float,
        window: float | None = None,
    ) -> bool:
        return can_afford_soon(
            forecast,
            needed,
            self.window if window is None else window,
            tick_duration,
        )

    def next_slot_within(self, forecast: ForecastResult, seconds: float) -> bool:
        """True when a slot is available now or one arrives within ``seconds``."""
        if forecast.current >= 1:
            return True
        t = forecast.time_until(1)
        return 0 < t <= seconds
