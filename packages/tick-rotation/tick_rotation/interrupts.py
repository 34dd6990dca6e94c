"""InterruptTriage: picks which hostile activity to stop, and how."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from tick_rotation.catalogue import Role
from tick_rotation.rules import Category, Rule, RuleSet
from tick_rotation.types import HostileActor

if TYPE_CHECKING:
    from tick_rotation.casting import Caster
    from tick_rotation.config import RotationConfig
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)


class InterruptKind(Enum):
    """Interrupt methods in decreasing reliability."""

    DIRECT = "direct"
    INCAPACITATE = "incapacitate"
    AREA = "area"
    DISPLACE = "displace"


_ROLE_FOR_KIND = {
    InterruptKind.DIRECT: Role.DIRECT_INTERRUPT,
    InterruptKind.INCAPACITATE: Role.INCAPACITATE,
    InterruptKind.AREA: Role.AREA_INTERRUPT,
    InterruptKind.DISPLACE: Role.DISPLACE,
}


@dataclass(frozen=True)
class InterruptKit:
    """Which interrupt methods are ready this tick."""

    direct: bool = False
    incapacitate: bool = False
    area: bool = False
    displace: bool = False
    displace_charges: int = 0

    def ready(self, kind: InterruptKind) -> bool:
        return getattr(self, kind.value)


@dataclass(frozen=True)
class InterruptPlan:
    """One interrupt attempt. ``target`` is None for area interrupts."""

    kind: InterruptKind
    target: HostileActor | None
    remaining: float

    @property
    def role(self) -> str:
        return _ROLE_FOR_KIND[self.kind]


class InterruptTriage:
    """Filters and orders hostile activities worth interrupting.

    An activity qualifies when its remaining time lies strictly inside
    ``(min_remaining, max_remaining)``: earlier casts may still be aborted
    by the caster, later ones finish before the interrupt lands.
    """

    def __init__(
        self,
        min_remaining: float = 0.5,
        max_remaining: float = 3.0,
        melee_range: float = 5.0,
        ranged_range: float = 30.0,
        area_min_casters: int = 2,
        displace_fallback_charges: int = 2,
    ) -> None:
        if not 0 <= min_remaining < max_remaining:
            raise ValueError(
                "interrupt window must satisfy 0 <= min < max, got "
                f"({min_remaining}, {max_remaining})"
            )
        if melee_range > ranged_range:
            raise ValueError("melee_range must not exceed ranged_range")
        self.min_remaining = min_remaining
        self.max_remaining = max_remaining
        self.melee_range = melee_range
        self.ranged_range = ranged_range
        self.area_min_casters = area_min_casters
        self.displace_fallback_charges = displace_fallback_charges

    @classmethod
    def from_config(cls, config: RotationConfig) -> InterruptTriage:
        return cls(
            min_remaining=config.interrupt_min_remaining,
            max_remaining=config.interrupt_max_remaining,
            melee_range=config.melee_range,
            ranged_range=config.ranged_range,
        )

    # --- Filtering ---

    def in_window(self, actor: HostileActor) -> bool:
        return self.min_remaining < actor.cast_remaining < self.max_remaining

    def is_melee(self, actor: HostileActor) -> bool:
        return actor.distance <= self.melee_range

    def is_ranged(self, actor: HostileActor) -> bool:
        return self.melee_range < actor.distance <= self.ranged_range

    def candidates(self, hostiles: Iterable[HostileActor]) -> list[HostileActor]:
        """Casting, attackable actors in the window, longest remaining first."""
        active = [
            h for h in hostiles
            if h.attackable and h.casting and self.in_window(h)
        ]
        active.sort(key=lambda h: h.cast_remaining, reverse=True)
        return active

    # --- Planning ---

    def plan(
        self, hostiles: Iterable[HostileActor], kit: InterruptKit
    ) -> list[InterruptPlan]:
        """Ordered attempts; the caller tries each until one is accepted."""
        active = self.candidates(hostiles)
        if not active:
            return []
        plans: list[InterruptPlan] = []

        if kit.direct:
            plans.extend(
                InterruptPlan(InterruptKind.DIRECT, h, h.cast_remaining)
                for h in active
                if h.interruptible and self.is_melee(h)
            )

        if kit.incapacitate:
            plans.extend(
                InterruptPlan(InterruptKind.INCAPACITATE, h, h.cast_remaining)
                for h in active
                if not h.interruptible and self.is_melee(h) and not h.incapacitated
            )

        if kit.area and len(active) >= self.area_min_casters:
            plans.append(
                InterruptPlan(InterruptKind.AREA, None, active[0].cast_remaining)
            )

        if kit.displace:
            ranged = [h for h in active if self.is_ranged(h)]
            preferred = [h for h in ranged if h.magical]
            if kit.displace_charges >= self.displace_fallback_charges:
                preferred += [h for h in ranged if not h.magical]
            plans.extend(
                InterruptPlan(InterruptKind.DISPLACE, h, h.cast_remaining)
                for h in preferred
            )
        return plans

    def first(
        self, hostiles: Iterable[HostileActor], kit: InterruptKit
    ) -> InterruptPlan | None:
        plans = self.plan(hostiles, kit)
        return plans[0] if plans else None


def interrupt_kit(
    snapshot: TickSnapshot, caster: Caster, config: RotationConfig
) -> InterruptKit:
    """Read interrupt readiness from the snapshot, honoring the toggles."""
    displace = caster.view(snapshot, Role.DISPLACE)
    return InterruptKit(
        direct=caster.usable(snapshot, Role.DIRECT_INTERRUPT),
        incapacitate=config.incapacitate_enabled
        and caster.usable(snapshot, Role.INCAPACITATE),
        area=caster.usable(snapshot, Role.AREA_INTERRUPT),
        displace=config.displace_enabled and caster.usable(snapshot, Role.DISPLACE),
        displace_charges=displace.charges,
    )


def make_interrupt_rules(
    triage: InterruptTriage, caster: Caster, config: RotationConfig
) -> RuleSet:
    """One rule per interrupt kind, in triage order."""

    def make_rule(kind: InterruptKind) -> Rule:
        def plans(snapshot: TickSnapshot) -> list[InterruptPlan]:
            kit = interrupt_kit(snapshot, caster, config)
            return [p for p in triage.plan(snapshot.hostiles, kit) if p.kind is kind]

        def guard(snapshot: TickSnapshot) -> bool:
            return config.interrupts_enabled and bool(plans(snapshot))

        def action(snapshot: TickSnapshot) -> bool:
            for p in plans(snapshot):
                if caster.cast(p.role, p.target):
                    logger.info(
                        "interrupt %s on %r (%.1fs left)",
                        kind.value,
                        p.target.entity if p.target is not None else "area",
                        p.remaining,
                    )
                    return True
            return False

        return Rule(f"interrupt.{kind.value}", guard, action)

    return RuleSet(Category.INTERRUPT, tuple(make_rule(k) for k in InterruptKind))
