"""TickSnapshot: immutable per-tick view of everything rules may read."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

from tick_rotation.catalogue import AbilityCatalogue, Role, StatusRole
from tick_rotation.collaborators import safe_query
from tick_rotation.forecast import ResourceForecaster, empty_forecast
from tick_rotation.types import (
    UNREACHABLE,
    AbilityView,
    CriticalBuffer,
    ForecastResult,
    HostileActor,
    StatusReading,
)

if TYPE_CHECKING:
    from tick_rotation.collaborators import Host
    from tick_rotation.modes import ModeProfile

logger = logging.getLogger(__name__)

_EMPTY_STATUS = StatusReading()


@dataclass(frozen=True)
class TickSnapshot:
    """State captured once at tick start. Rules read nothing else.

    Derived fields (``spending_blocked``, ``mode``) are filled in by the
    orchestrator with :func:`dataclasses.replace` before rules run.
    """

    now: float
    tick_duration: float
    forecast: ForecastResult
    agent_valid: bool = True
    in_combat: bool = False
    health: float = 100.0
    predicted_health: float = 100.0
    magic_damage_pct: float = 0.0
    stunned: bool = False
    has_companion: bool = True
    allies_magic_damage: int = 0
    continuous: float = 0.0
    continuous_max: float = 0.0
    buffer: CriticalBuffer = field(default_factory=CriticalBuffer)
    statuses: Mapping[str, StatusReading] = field(
        default_factory=lambda: MappingProxyType({})
    )
    hostiles: tuple[HostileActor, ...] = ()
    target: HostileActor | None = None
    abilities: Mapping[str, AbilityView] = field(
        default_factory=lambda: MappingProxyType({})
    )
    spending_blocked: bool = False
    mode: ModeProfile | None = None

    @classmethod
    def absent(cls, now: float, tick_duration: float, horizon: int) -> TickSnapshot:
        """Snapshot for a missing agent: safe, conservative values only."""
        return cls(
            now=now,
            tick_duration=tick_duration,
            forecast=empty_forecast(horizon),
            agent_valid=False,
        )

    # --- Resources ---

    @property
    def continuous_deficit(self) -> float:
        return max(0.0, self.continuous_max - self.continuous)

    # --- Statuses ---

    def status(self, status_id: str | None) -> StatusReading:
        if status_id is None:
            return _EMPTY_STATUS
        return self.statuses.get(status_id, _EMPTY_STATUS)

    def has_status(self, status_id: str | None) -> bool:
        return self.status(status_id).active

    # --- Abilities ---

    def ability(self, ability_id: str | None) -> AbilityView:
        if ability_id is None:
            return AbilityView(ability_id="")
        view = self.abilities.get(ability_id)
        if view is None:
            return AbilityView(ability_id=ability_id)
        return view

    # --- Hostiles ---

    def enemies_within(self, radius: float) -> list[HostileActor]:
        return [h for h in self.hostiles if h.attackable and h.distance <= radius]

    def target_time_to_die(self) -> float:
        if self.target is None:
            return UNREACHABLE
        return self.target.time_to_die


def capture_snapshot(
    host: Host,
    catalogue: AbilityCatalogue,
    forecaster: ResourceForecaster,
    now: float,
    tick_duration: float,
    scan_radius: float = 40.0,
    prediction_horizon: float = 2.0,
    magic_damage_window: float = 3.0,
) -> TickSnapshot:
    """Read every collaborator once and freeze the result."""
    if not safe_query(host.agent_valid, False):
        logger.debug("agent not valid at t=%.3f; capturing absent snapshot", now)
        return TickSnapshot.absent(now, tick_duration, forecaster.horizon)

    statuses: dict[str, StatusReading] = {}
    for sid in catalogue.agent_statuses():
        active = safe_query(lambda sid=sid: host.status_active(sid), False)
        if active:
            statuses[sid] = StatusReading(
                active=True,
                remaining=safe_query(lambda sid=sid: host.status_remaining(sid), 0.0),
                stacks=safe_query(lambda sid=sid: host.status_stack_count(sid), 0),
            )
        else:
            statuses[sid] = StatusReading()

    buffer_id = catalogue.status(StatusRole.BUFFER)
    refresh = catalogue.descriptor(Role.BUFFER_REFRESH)
    buffer_reading = statuses.get(buffer_id, _EMPTY_STATUS) if buffer_id else _EMPTY_STATUS
    buffer = CriticalBuffer(
        stacks=buffer_reading.stacks if buffer_reading.active else 0,
        remaining=buffer_reading.remaining if buffer_reading.active else 0.0,
        refresh_cost=refresh.cost.discrete if refresh is not None else 0,
    )

    abilities: dict[str, AbilityView] = {}
    for desc in catalogue.descriptors():
        aid = desc.ability_id
        learned = safe_query(lambda aid=aid: host.is_learned(aid), False)
        abilities[aid] = AbilityView(
            ability_id=aid,
            cost=desc.cost,
            learned=learned,
            available=learned and safe_query(lambda aid=aid: host.is_available(aid), False),
            charges=safe_query(lambda aid=aid: host.charges(aid), 0),
            cooldown_remaining=safe_query(
                lambda aid=aid: host.cooldown_remaining(aid), 0.0
            ),
        )

    hostiles = tuple(safe_query(lambda: host.nearby_hostiles(scan_radius), ()))
    target = _resolve_target(host, hostiles)

    continuous = 0.0
    continuous_max = 0.0
    pool = host.continuous_pool
    if pool is not None:
        continuous = safe_query(pool.amount, 0.0)
        continuous_max = continuous + safe_query(pool.deficit, 0.0)

    return TickSnapshot(
        now=now,
        tick_duration=tick_duration,
        forecast=forecaster.forecast(host.discrete_pool),
        agent_valid=True,
        in_combat=safe_query(host.in_combat, False),
        health=safe_query(host.health_pct, 100.0),
        predicted_health=safe_query(
            lambda: host.predicted_health_pct(prediction_horizon), 100.0
        ),
        magic_damage_pct=safe_query(
            lambda: host.magic_damage_pct(magic_damage_window), 0.0
        ),
        stunned=safe_query(host.is_stunned, False),
        has_companion=safe_query(host.has_companion, True),
        allies_magic_damage=safe_query(host.allies_taking_magic_damage, 0),
        continuous=continuous,
        continuous_max=continuous_max,
        buffer=buffer,
        statuses=MappingProxyType(statuses),
        hostiles=hostiles,
        target=target,
        abilities=MappingProxyType(abilities),
    )


def _resolve_target(host: Host, hostiles: tuple[HostileActor, ...]) -> HostileActor | None:
    entity = safe_query(host.current_target, None)
    if entity is None:
        return None
    for h in hostiles:
        if h.entity == entity:
            return h if h.attackable else None
    # Target outside the scan radius: build a minimal view.
    if not safe_query(lambda: host.is_attackable(entity), False):
        return None
    distance = safe_query(lambda: host.distance_to(entity), UNREACHABLE)
    if distance >= UNREACHABLE:
        return None
    return HostileActor(entity=entity, distance=distance)
