"""SimulatedHost: deterministic in-memory collaborator for tests and demos."""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from tick_rotation.catalogue import AbilityCatalogue
from tick_rotation.pools import CappedPool, SlotPool
from tick_rotation.types import (
    ActionCost,
    EntityRef,
    HostileActor,
    InvalidEntityError,
)

logger = logging.getLogger(__name__)

AGENT = "agent"


@dataclass
class SimAbility:
    """Runtime state of one simulated ability.

    ``cooldown`` of 0 means the ability never goes on cooldown. Charges
    recharge one at a time, ``cooldown`` seconds each.
    """

    ability_id: str
    cost: ActionCost = field(default_factory=ActionCost)
    learned: bool = True
    cooldown: float = 0.0
    max_charges: int = 1
    charges: int = 1
    recharge_remaining: float = 0.0

    @property
    def available(self) -> bool:
        return self.learned and self.charges > 0

    def use(self) -> None:
        if self.cooldown <= 0:
            return
        self.charges -= 1
        if self.recharge_remaining <= 0:
            self.recharge_remaining = self.cooldown

    def advance(self, dt: float) -> None:
        if self.recharge_remaining <= 0:
            return
        self.recharge_remaining -= dt
        while self.recharge_remaining <= 0 and self.charges < self.max_charges:
            self.charges += 1
            if self.charges < self.max_charges:
                self.recharge_remaining += self.cooldown
        if self.charges >= self.max_charges:
            self.recharge_remaining = 0.0


@dataclass
class SimStatus:
    remaining: float
    stacks: int = 1


@dataclass(frozen=True)
class CastRecord:
    """One accepted cast."""

    time: float
    ability_id: str
    target: EntityRef | None


Effect = Callable[["SimulatedHost", "EntityRef | None"], None]


class SimulatedHost:
    """Plays every collaborator the orchestrator needs.

    Abilities are created from the catalogue's descriptors, learned and
    always ready unless configured otherwise. Time moves only through
    :meth:`advance`. Once the agent is removed every world query raises
    :class:`InvalidEntityError`, as a real host would for a vanished actor.

    Args:
        catalogue: Source of ability ids and costs.
        slots: Discrete pool capacity.
        slot_recharge: Seconds for one discrete slot to recharge.
        continuous_max: Continuous pool cap.
        continuous: Starting continuous amount.
        continuous_regen: Passive continuous generation per second.
        unlearned: Ability ids that start unlearned.
    """

    def __init__(
        self,
        catalogue: AbilityCatalogue | None = None,
        slots: int = 6,
        slot_recharge: float = 10.0,
        continuous_max: float = 125.0,
        continuous: float = 0.0,
        continuous_regen: float = 0.0,
        unlearned: Iterable[str] = (),
    ) -> None:
        self._catalogue = catalogue if catalogue is not None else AbilityCatalogue.generic()
        self._slots = SlotPool(slots, slot_recharge)
        self._power = CappedPool(continuous_max, continuous, continuous_regen)
        self._now = 0.0
        skip = set(unlearned)
        self._abilities: dict[str, SimAbility] = {
            d.ability_id: SimAbility(d.ability_id, d.cost, learned=d.ability_id not in skip)
            for d in self._catalogue.descriptors()
        }
        self._statuses: dict[str, SimStatus] = {}
        self._hostiles: dict[EntityRef, HostileActor] = {}
        self._target: EntityRef | None = None
        self._effects: dict[str, Effect] = {}
        self._rejected: set[str] = set()
        self.casts: list[CastRecord] = []

        self._agent_present = True
        self.health = 100.0
        self.predicted_health: float | None = None
        self.magic_damage = 0.0
        self.stunned = False
        self.combat = False
        self.companion = True
        self.allies_magic = 0

    @property
    def now(self) -> float:
        return self._now

    # --- Pools ---

    @property
    def discrete_pool(self) -> SlotPool:
        return self._slots

    @property
    def continuous_pool(self) -> CappedPool:
        return self._power

    # --- Setup ---

    def ability(self, ability_id: str) -> SimAbility:
        return self._abilities[ability_id]

    def configure(self, ability_id: str, **changes: Any) -> SimAbility:
        """Set fields of an ability, e.g. ``learned=False`` or ``cooldown=30``."""
        ab = self._abilities[ability_id]
        for name, value in changes.items():
            if not hasattr(ab, name):
                raise ValueError(f"unknown ability field {name!r}")
            setattr(ab, name, value)
        return ab

    def set_cooldown(self, ability_id: str, remaining: float) -> None:
        """Put an ability on cooldown with no charges left."""
        ab = self._abilities[ability_id]
        ab.charges = 0
        ab.recharge_remaining = remaining
        if ab.cooldown <= 0:
            ab.cooldown = remaining

    def on_cast(self, ability_id: str, effect: Effect) -> None:
        """Run ``effect(host, target)`` after every accepted cast of the id."""
        self._effects[ability_id] = effect

    def reject(self, ability_id: str, rejected: bool = True) -> None:
        """Make the world refuse every cast of ``ability_id``."""
        if rejected:
            self._rejected.add(ability_id)
        else:
            self._rejected.discard(ability_id)

    def apply_status(self, status_id: str, duration: float, stacks: int = 1) -> None:
        self._statuses[status_id] = SimStatus(duration, stacks)

    def remove_status(self, status_id: str) -> None:
        self._statuses.pop(status_id, None)

    def add_hostile(self, actor: HostileActor) -> None:
        self._hostiles[actor.entity] = actor

    def update_hostile(self, entity: EntityRef, **changes: Any) -> HostileActor:
        actor = dataclasses.replace(self._hostiles[entity], **changes)
        self._hostiles[entity] = actor
        return actor

    def remove_hostile(self, entity: EntityRef) -> None:
        self._hostiles.pop(entity, None)

    def set_target(self, entity: EntityRef | None) -> None:
        self._target = entity

    def remove_agent(self) -> None:
        self._agent_present = False

    def restore_agent(self) -> None:
        self._agent_present = True

    # --- Time ---

    def advance(self, dt: float) -> None:
        """Move every timer forward by ``dt`` seconds."""
        self._now += dt
        self._slots.advance(dt)
        self._power.advance(dt)
        for ab in self._abilities.values():
            ab.advance(dt)
        for sid in list(self._statuses):
            status = self._statuses[sid]
            status.remaining -= dt
            if status.remaining <= 0:
                del self._statuses[sid]
        for entity, actor in list(self._hostiles.items()):
            if actor.casting:
                left = actor.cast_remaining - dt
                self._hostiles[entity] = dataclasses.replace(
                    actor, casting=left > 0, cast_remaining=max(0.0, left)
                )

    # --- ActionPrimitive ---

    def cast(self, ability_id: str, target: EntityRef | None = None) -> bool:
        self._require_agent()
        ab = self._abilities.get(ability_id)
        if ab is None or not ab.available or ability_id in self._rejected:
            return False
        if target is not None and target not in self._hostiles:
            raise InvalidEntityError(target)
        if (
            self._slots.slots_available() < ab.cost.discrete
            or self._power.amount() < ab.cost.continuous
        ):
            return False
        self._slots.spend(ab.cost.discrete)
        self._power.spend(ab.cost.continuous)
        ab.use()
        self.casts.append(CastRecord(self._now, ability_id, target))
        effect = self._effects.get(ability_id)
        if effect is not None:
            effect(self, target)
        return True

    def cast_ids(self) -> list[str]:
        return [c.ability_id for c in self.casts]

    # --- AbilityQueries ---

    def is_learned(self, ability_id: str) -> bool:
        ab = self._abilities.get(ability_id)
        return ab is not None and ab.learned

    def is_available(self, ability_id: str) -> bool:
        ab = self._abilities.get(ability_id)
        return ab is not None and ab.available

    def charges(self, ability_id: str) -> int:
        ab = self._abilities.get(ability_id)
        return ab.charges if ab is not None else 0

    def cooldown_remaining(self, ability_id: str) -> float:
        ab = self._abilities.get(ability_id)
        if ab is None or ab.charges > 0:
            return 0.0
        return ab.recharge_remaining

    # --- WorldQueries ---

    def _require_agent(self) -> None:
        if not self._agent_present:
            raise InvalidEntityError(AGENT)

    def agent_valid(self) -> bool:
        return self._agent_present

    def health_pct(self) -> float:
        self._require_agent()
        return self.health

    def predicted_health_pct(self, horizon: float) -> float:
        self._require_agent()
        if self.predicted_health is None:
            return self.health
        return self.predicted_health

    def magic_damage_pct(self, window: float) -> float:
        self._require_agent()
        return self.magic_damage

    def is_stunned(self) -> bool:
        self._require_agent()
        return self.stunned

    def in_combat(self) -> bool:
        self._require_agent()
        return self.combat

    def has_companion(self) -> bool:
        self._require_agent()
        return self.companion

    def allies_taking_magic_damage(self) -> int:
        self._require_agent()
        return self.allies_magic

    def nearby_hostiles(self, radius: float) -> list[HostileActor]:
        self._require_agent()
        return [h for h in self._hostiles.values() if h.distance <= radius]

    def _hostile(self, entity: EntityRef) -> HostileActor:
        actor = self._hostiles.get(entity)
        if actor is None:
            raise InvalidEntityError(entity)
        return actor

    def distance_to(self, entity: EntityRef) -> float:
        return self._hostile(entity).distance

    def is_attackable(self, entity: EntityRef) -> bool:
        return self._hostile(entity).attackable

    def current_target(self) -> EntityRef | None:
        self._require_agent()
        return self._target

    def status_active(self, status_id: str) -> bool:
        self._require_agent()
        return status_id in self._statuses

    def status_remaining(self, status_id: str) -> float:
        self._require_agent()
        status = self._statuses.get(status_id)
        return status.remaining if status is not None else 0.0

    def status_stack_count(self, status_id: str) -> int:
        self._require_agent()
        status = self._statuses.get(status_id)
        return status.stacks if status is not None else 0


class DictConfig:
    """ConfigSource backed by a plain mapping."""

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values = dict(values or {})

    def get_bool(self, key: str, default: bool) -> bool:
        return bool(self._values.get(key, default))

    def get_int(self, key: str, default: int) -> int:
        return int(self._values.get(key, default))

    def get_float(self, key: str, default: float) -> float:
        return float(self._values.get(key, default))
