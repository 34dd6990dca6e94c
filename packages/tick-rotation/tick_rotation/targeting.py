"""Target selection for melee and ranged actions."""
from __future__ import annotations

from typing import TYPE_CHECKING

from tick_rotation.types import HostileActor

if TYPE_CHECKING:
    from tick_rotation.snapshot import TickSnapshot


def _nearest(hostiles: list[HostileActor]) -> HostileActor | None:
    if not hostiles:
        return None
    return min(hostiles, key=lambda h: h.distance)


def best_in_range(snapshot: TickSnapshot, max_range: float) -> HostileActor | None:
    """The current target if in range, else the nearest attackable hostile."""
    target = snapshot.target
    if target is not None and target.attackable and target.distance <= max_range:
        return target
    return _nearest(snapshot.enemies_within(max_range))


def best_melee_target(snapshot: TickSnapshot, melee_range: float = 5.0) -> HostileActor | None:
    return best_in_range(snapshot, melee_range)


def best_ranged_target(snapshot: TickSnapshot, ranged_range: float = 30.0) -> HostileActor | None:
    return best_in_range(snapshot, ranged_range)


def lowest_health(hostiles: list[HostileActor]) -> HostileActor | None:
    if not hostiles:
        return None
    return min(hostiles, key=lambda h: h.health_pct)
