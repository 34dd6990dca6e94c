"""Protocols for the external collaborators the core consumes.

Every call must return synchronously within the tick. Queries about an
entity that no longer exists raise :class:`InvalidEntityError`; the core
wraps such queries with :func:`safe_query` and substitutes a conservative
default, so a vanished agent or target never triggers emergency behavior.
"""
from __future__ import annotations

from typing import Callable, Protocol, Sequence, TypeVar, runtime_checkable

from tick_rotation.types import EntityRef, HostileActor, InvalidEntityError

T = TypeVar("T")


@runtime_checkable
class ActionPrimitive(Protocol):
    """Performs an action against the simulated world."""

    def cast(self, ability_id: str, target: EntityRef | None = None) -> bool:
        """Attempt the action. False means the world rejected it."""
        ...


@runtime_checkable
class AbilityQueries(Protocol):
    def is_learned(self, ability_id: str) -> bool: ...

    def is_available(self, ability_id: str) -> bool: ...

    def charges(self, ability_id: str) -> int: ...

    def cooldown_remaining(self, ability_id: str) -> float: ...


@runtime_checkable
class WorldQueries(Protocol):
    def agent_valid(self) -> bool: ...

    def health_pct(self) -> float: ...

    def predicted_health_pct(self, horizon: float) -> float: ...

    def magic_damage_pct(self, window: float) -> float: ...

    def is_stunned(self) -> bool: ...

    def in_combat(self) -> bool: ...

    def has_companion(self) -> bool: ...

    def allies_taking_magic_damage(self) -> int: ...

    def nearby_hostiles(self, radius: float) -> Sequence[HostileActor]: ...

    def distance_to(self, entity: EntityRef) -> float: ...

    def is_attackable(self, entity: EntityRef) -> bool: ...

    def current_target(self) -> EntityRef | None: ...

    def status_active(self, status_id: str) -> bool: ...

    def status_remaining(self, status_id: str) -> float: ...

    def status_stack_count(self, status_id: str) -> int: ...


@runtime_checkable
class DiscretePool(Protocol):
    def slots_available(self) -> int: ...

    def time_until(self, n: int) -> float: ...


@runtime_checkable
class ContinuousPool(Protocol):
    def amount(self) -> float: ...

    def deficit(self) -> float: ...


@runtime_checkable
class ConfigSource(Protocol):
    """Numeric thresholds and toggles. Missing keys return ``default``."""

    def get_bool(self, key: str, default: bool) -> bool: ...

    def get_int(self, key: str, default: int) -> int: ...

    def get_float(self, key: str, default: float) -> float: ...


@runtime_checkable
class TickDriver(Protocol):
    """Host loop that invokes registered callbacks once per frame."""

    def register(self, callback: Callable[[], object]) -> None: ...


@runtime_checkable
class Host(ActionPrimitive, AbilityQueries, WorldQueries, Protocol):
    """Everything the orchestrator needs from one collaborator object."""

    @property
    def discrete_pool(self) -> DiscretePool | None: ...

    @property
    def continuous_pool(self) -> ContinuousPool | None: ...


def safe_query(fn: Callable[[], T], default: T) -> T:
    """Call ``fn``; return ``default`` if the queried entity is gone."""
    try:
        return fn()
    except InvalidEntityError:
        return default
