"""Caster: dispatches catalogue roles to the action primitive."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tick_rotation.catalogue import AbilityCatalogue
from tick_rotation.collaborators import ActionPrimitive, safe_query
from tick_rotation.forecast import can_afford_soon
from tick_rotation.trackers import UseThrottle
from tick_rotation.types import AbilityView, HostileActor

if TYPE_CHECKING:
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)


class Caster:
    """Resolves roles to ability ids and reads their per-tick views.

    Args:
        primitive: Action primitive used for every dispatch.
        catalogue: Role to ability mapping.
        forecast_window: Window used by :meth:`affordable`.
    """

    def __init__(
        self,
        primitive: ActionPrimitive,
        catalogue: AbilityCatalogue,
        forecast_window: float = 3.0,
    ) -> None:
        self._primitive = primitive
        self._catalogue = catalogue
        self._window = forecast_window

    @property
    def catalogue(self) -> AbilityCatalogue:
        return self._catalogue

    def view(self, snapshot: TickSnapshot, role: str) -> AbilityView:
        return snapshot.ability(self._catalogue.ability_id(role))

    def usable(self, snapshot: TickSnapshot, role: str) -> bool:
        return self._catalogue.has(role) and self.view(snapshot, role).usable

    def learned(self, snapshot: TickSnapshot, role: str) -> bool:
        return self._catalogue.has(role) and self.view(snapshot, role).learned

    def affordable(self, snapshot: TickSnapshot, role: str) -> bool:
        """Both costs are covered now, or the discrete one arrives soon."""
        cost = self.view(snapshot, role).cost
        if snapshot.continuous < cost.continuous:
            return False
        if cost.discrete == 0:
            return True
        return can_afford_soon(
            snapshot.forecast, cost.discrete, self._window, snapshot.tick_duration
        )

    def cast(self, role: str, target: HostileActor | None = None) -> bool:
        desc = self._catalogue.descriptor(role)
        if desc is None:
            return False
        entity = None if desc.self_cast or target is None else target.entity
        accepted = safe_query(
            lambda: self._primitive.cast(desc.ability_id, entity), False
        )
        logger.debug(
            "cast %s (%s) on %r: %s",
            role, desc.ability_id, entity, "accepted" if accepted else "rejected",
        )
        return bool(accepted)


class ThrottledAction:
    """A role cast guarded by a :class:`UseThrottle`.

    Every path that casts the role must go through the same instance so
    two uses inside the minimum interval can never both succeed.
    """

    def __init__(self, caster: Caster, role: str, throttle: UseThrottle) -> None:
        self._caster = caster
        self._role = role
        self._throttle = throttle

    @property
    def role(self) -> str:
        return self._role

    @property
    def throttle(self) -> UseThrottle:
        return self._throttle

    def ready(self, snapshot: TickSnapshot) -> bool:
        return self._throttle.ready(snapshot.now) and self._caster.usable(
            snapshot, self._role
        )

    def attempt(self, snapshot: TickSnapshot, target: HostileActor | None) -> bool:
        if not self._throttle.ready(snapshot.now):
            return False
        if not self._caster.cast(self._role, target):
            return False
        self._throttle.record(snapshot.now)
        return True
