"""Core value types shared across the rotation core."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

# Returned by time_until() when the pool can never reach the requested count.
UNREACHABLE = 999.0

EntityRef = Any


class InvalidEntityError(KeyError):
    """Raised by collaborators when a queried actor no longer exists."""

    def __init__(self, entity: EntityRef, message: str = "") -> None:
        self.entity = entity
        super().__init__(message or f"entity {entity!r} is not valid")


@dataclass(frozen=True)
class ActionCost:
    """Two-resource cost of an action."""

    discrete: int = 0
    continuous: float = 0.0

    def __post_init__(self) -> None:
        if self.discrete < 0:
            raise ValueError(f"discrete cost must be >= 0, got {self.discrete}")
        if self.continuous < 0:
            raise ValueError(
                f"continuous cost must be >= 0, got {self.continuous}"
            )


@dataclass(frozen=True)
class CriticalBuffer:
    """Mirror of the stacking protective status the agent must keep up.

    Attributes:
        stacks: Current stack count (0 when the status is absent).
        remaining: Seconds left on the status (0 when absent).
        refresh_cost: Discrete slots needed by the refresh action.
    """

    stacks: int = 0
    remaining: float = 0.0
    refresh_cost: int = 2

    @property
    def active(self) -> bool:
        return self.stacks > 0 and self.remaining > 0


@dataclass(frozen=True)
class ForecastResult:
    """Discrete pool forecast for one tick.

    ``time_to[i]`` is the time until ``i + 1`` slots are available.
    """

    current: int
    time_to: tuple[float, ...]

    def time_until(self, n: int) -> float:
        """Seconds until ``n`` slots are available. 0 when affordable now."""
        if n <= 0 or self.current >= n:
            return 0.0
        if n > len(self.time_to):
            return UNREACHABLE
        return self.time_to[n - 1]

    @property
    def horizon(self) -> int:
        return len(self.time_to)


@dataclass(frozen=True)
class StatusReading:
    """Polled state of one status effect on the agent."""

    active: bool = False
    remaining: float = 0.0
    stacks: int = 0


@dataclass(frozen=True)
class HostileActor:
    """Read-only view of one nearby hostile entity.

    Attributes:
        entity: Opaque handle understood by the action primitive.
        distance: Distance from the agent.
        casting: Currently performing a blockable activity.
        cast_remaining: Seconds until the activity completes.
        interruptible: Activity can be stopped by a direct interrupt.
        incapacitated: Already stunned or otherwise disabled.
        magical: Activity is magical in nature.
        targeting_agent: Activity is aimed at the agent.
        threat_pct: Agent's share of this actor's threat (0-100).
        is_boss: Actor must never be taunted.
        health_pct: Actor health percentage.
        time_to_die: Estimated seconds until the actor dies.
        debuffs: Remaining seconds of the agent's debuffs on this actor.
    """

    entity: EntityRef
    distance: float
    attackable: bool = True
    casting: bool = False
    cast_remaining: float = 0.0
    interruptible: bool = True
    incapacitated: bool = False
    magical: bool = False
    targeting_agent: bool = False
    threat_pct: float = 100.0
    is_boss: bool = False
    health_pct: float = 100.0
    time_to_die: float = UNREACHABLE
    debuffs: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "debuffs", MappingProxyType(dict(self.debuffs)))

    def debuff_remaining(self, status_id: str) -> float:
        return self.debuffs.get(status_id, 0.0)


@dataclass(frozen=True)
class AbilityView:
    """Per-tick view of one ability descriptor."""

    ability_id: str
    cost: ActionCost = field(default_factory=ActionCost)
    learned: bool = False
    available: bool = False
    charges: int = 0
    cooldown_remaining: float = 0.0

    @property
    def usable(self) -> bool:
        return self.learned and self.available
