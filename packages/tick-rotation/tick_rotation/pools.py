"""Reference resource pools: slot-based discrete and capped continuous."""
from __future__ import annotations

from tick_rotation.types import UNREACHABLE


class SlotPool:
    """Discrete pool of ``capacity`` slots recharging independently.

    Each consumed slot becomes ready ``recharge`` seconds after it was
    spent. Time moves forward only through :meth:`advance`.
    """

    def __init__(self, capacity: int, recharge: float, available: int | None = None) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        if recharge <= 0:
            raise ValueError(f"recharge must be > 0, got {recharge}")
        self._capacity = capacity
        self._recharge = recharge
        self._now = 0.0
        # Ready-at timestamps of slots currently recharging, sorted.
        self._pending: list[float] = []
        if available is not None:
            if not 0 <= available <= capacity:
                raise ValueError(
                    f"available must be in [0, {capacity}], got {available}"
                )
            self._pending = [recharge] * (capacity - available)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def recharge(self) -> float:
        return self._recharge

    @property
    def now(self) -> float:
        return self._now

    def advance(self, dt: float) -> None:
        """Move the pool clock forward, completing finished recharges."""
        if dt < 0:
            raise ValueError(f"dt must be >= 0, got {dt}")
        self._now += dt
        self._pending = [t for t in self._pending if t > self._now]

    def slots_available(self) -> int:
        return self._capacity - len(self._pending)

    def time_until(self, n: int) -> float:
        """Seconds until at least ``n`` slots are available at once."""
        if n > self._capacity:
            return UNREACHABLE
        missing = n - self.slots_available()
        if missing <= 0:
            return 0.0
        return self._pending[missing - 1] - self._now

    def spend(self, n: int) -> bool:
        """Consume ``n`` slots. Returns False (and spends nothing) if short."""
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        if n > self.slots_available():
            return False
        self._pending.extend([self._now + self._recharge] * n)
        self._pending.sort()
        return True

    def set_ready_times(self, remaining: list[float]) -> None:
        """Force the recharging slots to finish after the given delays."""
        if len(remaining) > self._capacity:
            raise ValueError("more recharging slots than capacity")
        self._pending = sorted(self._now + r for r in remaining if r > 0)


class CappedPool:
    """Continuous resource clamped to ``[0, maximum]``."""

    def __init__(self, maximum: float, amount: float = 0.0, regen_per_second: float = 0.0) -> None:
        if maximum <= 0:
            raise ValueError(f"maximum must be > 0, got {maximum}")
        if regen_per_second < 0:
            raise ValueError(f"regen_per_second must be >= 0, got {regen_per_second}")
        self._maximum = maximum
        self._amount = min(max(0.0, amount), maximum)
        self._regen = regen_per_second

    @property
    def maximum(self) -> float:
        return self._maximum

    def amount(self) -> float:
        return self._amount

    def deficit(self) -> float:
        return self._maximum - self._amount

    def gain(self, value: float) -> float:
        """Add resource, respecting the cap. Returns amount actually added."""
        if value < 0:
            raise ValueError(f"value must be >= 0, got {value}")
        actual = min(value, self.deficit())
        self._amount += actual
        return actual

    def spend(self, value: float) -> bool:
        """Remove resource. Returns False (and spends nothing) if short."""
        if value < 0:
            raise ValueError(f"value must be >= 0, got {value}")
        if value > self._amount:
            return False
        self._amount -= value
        return True

    def advance(self, dt: float) -> None:
        """Apply passive generation for ``dt`` seconds."""
        if self._regen > 0 and dt > 0:
            self.gain(min(self._regen * dt, self.deficit()))
