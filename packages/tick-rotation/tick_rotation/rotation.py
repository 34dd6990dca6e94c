"""Combat rule fragments and rulebook assembly.

Fragments shared by every mode are built once and reused; only the rules
that differ between modes live in the mode-specific fragments. Routes are
assembled from the fragments in priority order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping

from tick_rotation.buffer import CriticalBufferGuard
from tick_rotation.casting import Caster, ThrottledAction
from tick_rotation.catalogue import Role, StatusRole
from tick_rotation.defensives import DefensiveEscalation, make_defensive_rules
from tick_rotation.interrupts import InterruptTriage, make_interrupt_rules
from tick_rotation.modes import CombatRoute, ModeProfile
from tick_rotation.rules import Category, Rule, RuleSet
from tick_rotation.spending import SpendingPolicy
from tick_rotation.targeting import best_melee_target, best_ranged_target, lowest_health
from tick_rotation.trackers import UseThrottle, WindowTracker
from tick_rotation.types import UNREACHABLE, HostileActor, StatusReading
from tick_rotation.utilities import make_utility_rules

if TYPE_CHECKING:
    from tick_rotation.catalogue import AbilityCatalogue
    from tick_rotation.config import RotationConfig
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)

# Execute targets must outlive their mark by this many seconds.
_EXECUTE_TTD_MARGIN = 5.0
# Windowed capping ignores pending generation below this deficit.
_WINDOW_CAP_DEFICIT = 10.0


@dataclass
class RotationKit:
    """Shared collaborators for every rule builder."""

    caster: Caster
    config: RotationConfig
    guard: CriticalBufferGuard
    spending: SpendingPolicy
    survival: ThrottledAction
    burst_window: WindowTracker

    @classmethod
    def build(cls, caster: Caster, config: RotationConfig) -> RotationKit:
        catalogue = caster.catalogue
        return cls(
            caster=caster,
            config=config,
            guard=CriticalBufferGuard.from_config(config),
            spending=SpendingPolicy.from_config(config),
            survival=ThrottledAction(
                caster, Role.SURVIVAL_STRIKE, UseThrottle(config.survival_min_interval)
            ),
            burst_window=WindowTracker(
                catalogue.status(StatusRole.BURST) or StatusRole.BURST
            ),
        )

    @property
    def catalogue(self) -> AbilityCatalogue:
        return self.caster.catalogue

    # --- Snapshot helpers ---

    def melee(self, s: TickSnapshot) -> HostileActor | None:
        return best_melee_target(s, self.config.melee_range)

    def ranged(self, s: TickSnapshot) -> HostileActor | None:
        return best_ranged_target(s, self.config.ranged_range)

    def status(self, s: TickSnapshot, status_role: str) -> StatusReading:
        return s.status(self.catalogue.status(status_role))

    def ready(self, s: TickSnapshot, role: str) -> bool:
        return self.caster.usable(s, role) and self.caster.affordable(s, role)

    def can_refresh(self, s: TickSnapshot) -> bool:
        """Either buffer refresh is learned; otherwise the buffer is not tracked."""
        return self.caster.learned(s, Role.BUFFER_REFRESH) or self.caster.learned(
            s, Role.BUFFER_REFRESH_RANGED
        )

    def burst_state(self, s: TickSnapshot) -> tuple[bool, bool, float]:
        """``(learned, active, cooldown_remaining)`` of the burst cooldown."""
        view = self.caster.view(s, Role.BURST)
        active = self.status(s, StatusRole.BURST).active
        return view.learned, active, view.cooldown_remaining

    def capping_threshold(self, s: TickSnapshot) -> float:
        learned, active, cooldown = self.burst_state(s)
        return self.spending.capping_threshold(active, learned, cooldown)

    def strike(self, s: TickSnapshot, reason: str) -> bool:
        """Survival strike on the melee target, through the shared throttle."""
        target = self.melee(s)
        if target is None:
            return False
        if self.survival.attempt(s, target):
            logger.debug(
                "survival strike [%s] continuous=%.0f health=%.0f",
                reason, s.continuous, s.health,
            )
            return True
        return False

    def strike_ready(self, s: TickSnapshot) -> bool:
        return (
            self.survival.ready(s)
            and self.caster.affordable(s, Role.SURVIVAL_STRIKE)
            and self.melee(s) is not None
        )


# --- Shared fragments ---


def buffer_emergency(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.can_refresh(s) and kit.guard.needs_refresh(s.buffer) and (
            kit.melee(s) is not None or kit.ranged(s) is not None
        )

    def action(s: TickSnapshot) -> bool:
        melee, ranged = kit.melee(s), kit.ranged(s)
        attempts = []
        if melee is not None and kit.caster.usable(s, Role.BUFFER_REFRESH):
            attempts.append(
                (Role.BUFFER_REFRESH, lambda: kit.caster.cast(Role.BUFFER_REFRESH, melee))
            )
        if ranged is not None and kit.caster.usable(s, Role.BUFFER_REFRESH_RANGED):
            attempts.append(
                (
                    Role.BUFFER_REFRESH_RANGED,
                    lambda: kit.caster.cast(Role.BUFFER_REFRESH_RANGED, ranged),
                )
            )
        cost = kit.caster.view(s, Role.SURVIVAL_STRIKE).cost.continuous
        outcome = kit.guard.emergency_action(
            s,
            attempts,
            survival=(Role.SURVIVAL_STRIKE, lambda: kit.strike(s, "pre-buffer heal")),
            survival_cost=cost,
        )
        return outcome.acted

    return Rule("combat.buffer_emergency", guard, action)


def survival_strike(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return s.health < kit.config.survival_health and kit.strike_ready(s)

    return Rule(
        "combat.survival_strike", guard, lambda s: kit.strike(s, "low health")
    )


def buffer_maintenance(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return (
            kit.guard.is_low(s.buffer)
            and kit.melee(s) is not None
            and kit.ready(s, Role.BUFFER_REFRESH)
        )

    return Rule(
        "combat.buffer_maintenance",
        guard,
        lambda s: kit.caster.cast(Role.BUFFER_REFRESH, kit.melee(s)),
        discretionary=True,
    )


def dot_upkeep(kit: RotationKit) -> Rule:
    cfg = kit.config

    def needs_dot(s: TickSnapshot, h: HostileActor) -> bool:
        dot_id = kit.catalogue.status(StatusRole.DOT)
        return h.debuff_remaining(dot_id) <= cfg.dot_pandemic

    def guard(s: TickSnapshot) -> bool:
        if kit.catalogue.status(StatusRole.DOT) is None:
            return False
        if not kit.ready(s, Role.AREA_GENERATOR):
            return False
        in_range = s.enemies_within(cfg.area_range)
        if not any(needs_dot(s, h) for h in in_range):
            return False
        if kit.caster.view(s, Role.AREA_GENERATOR).charges <= 1:
            # Last charge only for a primary target that needs the dot.
            target = s.target
            return (
                target is not None
                and target.distance <= cfg.area_range
                and needs_dot(s, target)
            )
        return True

    return Rule(
        "combat.dot_upkeep",
        guard,
        lambda s: kit.caster.cast(Role.AREA_GENERATOR),
        discretionary=True,
    )


def capping(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.spending.is_capping(
            s.continuous, kit.capping_threshold(s)
        ) and kit.strike_ready(s)

    return Rule("combat.capping", guard, lambda s: kit.strike(s, "capping"))


def stack_maintenance(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        suppressed = kit.status(s, StatusRole.CHANNEL).active
        return (
            kit.guard.should_stack(
                s.buffer.stacks, kit.config.buffer_stack_target, suppressed
            )
            and kit.melee(s) is not None
            and kit.ready(s, Role.BUFFER_REFRESH)
        )

    return Rule(
        "combat.stack_maintenance",
        guard,
        lambda s: kit.caster.cast(Role.BUFFER_REFRESH, kit.melee(s)),
        discretionary=True,
    )


def ground_effect(kit: RotationKit) -> Rule:
    cfg = kit.config

    def guard(s: TickSnapshot) -> bool:
        if not s.enemies_within(cfg.area_range):
            return False
        if not kit.ready(s, Role.GROUND_EFFECT):
            return False
        reading = kit.status(s, StatusRole.GROUND_EFFECT)
        if not reading.active:
            return True
        charges = kit.caster.view(s, Role.GROUND_EFFECT).charges
        if charges <= 0 or reading.remaining > s.tick_duration + cfg.ground_effect_lead:
            return False
        # Keep the last charge while nothing is in melee range.
        return charges > 1 or bool(s.enemies_within(cfg.melee_range))

    return Rule(
        "combat.ground_effect",
        guard,
        lambda s: kit.caster.cast(Role.GROUND_EFFECT),
        discretionary=True,
    )


def channel(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return (
            kit.ready(s, Role.CHANNEL)
            and s.buffer.stacks >= kit.config.channel_min_stacks
            and kit.status(s, StatusRole.GROUND_EFFECT).active
            and not kit.status(s, StatusRole.BURST).active
        )

    return Rule("combat.channel", guard, lambda s: kit.caster.cast(Role.CHANNEL))


def window_area_once(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return (
            kit.burst_window.available()
            and kit.ready(s, Role.AREA_GENERATOR)
            and bool(s.enemies_within(kit.config.area_range))
        )

    def action(s: TickSnapshot) -> bool:
        if kit.caster.cast(Role.AREA_GENERATOR):
            kit.burst_window.mark_used()
            return True
        return False

    return Rule("combat.window_area_once", guard, action, discretionary=True)


def generator_pair(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return (
            s.forecast.current >= 2
            and kit.melee(s) is not None
            and kit.caster.usable(s, Role.GENERATOR)
        )

    return Rule(
        "combat.generator_pair",
        guard,
        lambda s: kit.caster.cast(Role.GENERATOR, kit.melee(s)),
        discretionary=True,
    )


def area_spender(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.melee(s) is not None and kit.ready(s, Role.AREA_SPENDER)

    return Rule(
        "combat.area_spender",
        guard,
        lambda s: kit.caster.cast(Role.AREA_SPENDER),
        discretionary=True,
    )


def area_filler(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return (
            kit.ready(s, Role.AREA_GENERATOR)
            and kit.caster.view(s, Role.AREA_GENERATOR).charges >= 2
            and bool(s.enemies_within(kit.config.area_range))
        )

    return Rule(
        "combat.area_filler",
        guard,
        lambda s: kit.caster.cast(Role.AREA_GENERATOR),
        discretionary=True,
    )


def generator(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.melee(s) is not None and kit.ready(s, Role.GENERATOR)

    return Rule(
        "combat.generator",
        guard,
        lambda s: kit.caster.cast(Role.GENERATOR, kit.melee(s)),
        discretionary=True,
    )


def ranged_filler(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.ranged(s) is not None and kit.ready(s, Role.BUFFER_REFRESH_RANGED)

    return Rule(
        "combat.ranged_filler",
        guard,
        lambda s: kit.caster.cast(Role.BUFFER_REFRESH_RANGED, kit.ranged(s)),
        discretionary=True,
    )


# --- Mode-specific fragments ---


def burst_offensive(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        if not kit.caster.usable(s, Role.BURST):
            return False
        if kit.status(s, StatusRole.BURST).active:
            return False
        target = s.target or kit.melee(s) or kit.ranged(s)
        return target is not None and target.time_to_die >= kit.config.burst_min_ttd

    return Rule("combat.burst", guard, lambda s: kit.caster.cast(Role.BURST))


def mark(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        return kit.ranged(s) is not None and kit.ready(s, Role.MARK)

    return Rule(
        "combat.mark",
        guard,
        lambda s: kit.caster.cast(Role.MARK, kit.ranged(s)),
        discretionary=True,
    )


def execute(kit: RotationKit) -> Rule:
    cfg = kit.config

    def eligible(s: TickSnapshot) -> list[HostileActor]:
        mark_id = kit.catalogue.status(StatusRole.EXECUTE_MARK)
        return [
            h for h in s.enemies_within(cfg.ranged_range)
            if h.health_pct < cfg.execute_health
            and h.time_to_die > h.debuff_remaining(mark_id) + _EXECUTE_TTD_MARGIN
        ]

    def guard(s: TickSnapshot) -> bool:
        if len(s.enemies_within(cfg.scan_radius)) > cfg.execute_max_enemies:
            return False
        return kit.ready(s, Role.EXECUTE) and bool(eligible(s))

    return Rule(
        "combat.execute",
        guard,
        lambda s: kit.caster.cast(Role.EXECUTE, lowest_health(eligible(s))),
        discretionary=True,
    )


def ground_effect_proc(kit: RotationKit) -> Rule:
    """Ground effect only on large packs or a free proc."""
    cfg = kit.config

    def guard(s: TickSnapshot) -> bool:
        if kit.status(s, StatusRole.GROUND_EFFECT).active:
            return False
        if not kit.ready(s, Role.GROUND_EFFECT):
            return False
        many = len(s.enemies_within(cfg.area_range)) >= cfg.ground_effect_min_enemies
        proc = (
            kit.status(s, StatusRole.AREA_PROC).active
            and not kit.status(s, StatusRole.AREA_PROC_BLOCKER).active
        )
        return many or proc

    return Rule(
        "combat.ground_effect_proc",
        guard,
        lambda s: kit.caster.cast(Role.GROUND_EFFECT),
        discretionary=True,
    )


def window_snipe(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        empower = kit.status(s, StatusRole.WINDOW_EMPOWER)
        return (
            empower.active
            and 0 < empower.remaining < kit.config.window_snipe_remaining
            and kit.melee(s) is not None
            and kit.ready(s, Role.GENERATOR)
        )

    return Rule(
        "combat.window_snipe",
        guard,
        lambda s: kit.caster.cast(Role.GENERATOR, kit.melee(s)),
        discretionary=True,
    )


def window_capping(kit: RotationKit) -> Rule:
    def guard(s: TickSnapshot) -> bool:
        if not kit.spending.is_capping(s.continuous, kit.capping_threshold(s)):
            return False
        if kit.spending.should_pool_for_emergency(
            s.continuous, s.health, s.predicted_health
        ):
            return False
        waiting = kit.spending.should_wait_for_generation(s.forecast, s.tick_duration)
        if waiting and s.continuous_deficit >= _WINDOW_CAP_DEFICIT:
            return False
        return kit.strike_ready(s)

    return Rule("combat.window_capping", guard, lambda s: kit.strike(s, "window capping"))


def window_ground_effect(kit: RotationKit) -> Rule:
    cfg = kit.config

    def guard(s: TickSnapshot) -> bool:
        if not kit.ready(s, Role.GROUND_EFFECT):
            return False
        enemies = len(s.enemies_within(cfg.area_range))
        if enemies == 0:
            return False
        if enemies < cfg.ground_effect_min_enemies:
            return kit.status(s, StatusRole.AREA_PROC).active
        return not kit.status(s, StatusRole.GROUND_EFFECT).active

    return Rule(
        "combat.window_ground_effect",
        guard,
        lambda s: kit.caster.cast(Role.GROUND_EFFECT),
        discretionary=True,
    )


def continuous_filler(kit: RotationKit) -> Rule:
    cfg = kit.config

    def guard(s: TickSnapshot) -> bool:
        if s.continuous < cfg.continuous_filler_amount or s.forecast.current > 0:
            return False
        t = s.forecast.time_until(1)
        if 0 < t <= s.tick_duration + cfg.forecast_window and t < UNREACHABLE:
            return False
        if kit.spending.should_pool_for_emergency(
            s.continuous, s.health, s.predicted_health
        ):
            return False
        return kit.strike_ready(s)

    return Rule(
        "combat.continuous_filler", guard, lambda s: kit.strike(s, "filler")
    )


# --- Assembly ---


def build_routes(kit: RotationKit) -> dict[ModeProfile, CombatRoute]:
    opening = (buffer_emergency(kit), survival_strike(kit))
    upkeep = (buffer_maintenance(kit), dot_upkeep(kit))
    cap = capping(kit)
    chan = channel(kit)
    window_once = window_area_once(kit)
    fillers = (
        generator_pair(kit),
        area_spender(kit),
        area_filler(kit),
        generator(kit),
        ranged_filler(kit),
    )
    stacks = stack_maintenance(kit)
    execute_rule = execute(kit)

    default = opening + upkeep + (cap, stacks, ground_effect(kit), chan, window_once) + fillers
    capability_a = (
        opening
        + upkeep
        + (burst_offensive(kit), cap, mark(kit), execute_rule, stacks)
        + (ground_effect(kit), chan, window_once)
        + fillers
    )
    capability_b = (
        opening
        + upkeep
        + (cap, execute_rule, stacks, ground_effect_proc(kit), chan)
        + fillers
    )
    capability_b_window = opening + (
        window_snipe(kit),
        chan,
        window_capping(kit),
        window_once,
        window_ground_effect(kit),
        generator(kit),
        continuous_filler(kit),
        area_spender(kit),
        area_filler(kit),
    )

    burst_status = kit.catalogue.status(StatusRole.BURST)
    routes = {
        ModeProfile.DEFAULT: CombatRoute(RuleSet(Category.COMBAT, default)),
        ModeProfile.CAPABILITY_A: CombatRoute(RuleSet(Category.COMBAT, capability_a)),
    }
    if burst_status is not None:
        routes[ModeProfile.CAPABILITY_B] = CombatRoute(
            RuleSet(Category.COMBAT, capability_b),
            windowed=RuleSet(Category.COMBAT, capability_b_window),
            window_status=burst_status,
        )
    else:
        routes[ModeProfile.CAPABILITY_B] = CombatRoute(
            RuleSet(Category.COMBAT, capability_b)
        )
    return routes


@dataclass(frozen=True)
class Rulebook:
    """Every rule set the orchestrator evaluates, built once at startup."""

    utility: RuleSet
    defensive: RuleSet
    interrupt: RuleSet
    routes: Mapping[ModeProfile, CombatRoute]

    def rulesets(self, snapshot: TickSnapshot) -> list[RuleSet]:
        """Rule sets for this tick; combat rules only while in combat."""
        sets = [self.utility, self.defensive, self.interrupt]
        if snapshot.in_combat and snapshot.mode is not None:
            route = self.routes.get(snapshot.mode)
            if route is not None:
                sets.append(route.active_rules(snapshot))
        return sets


def build_rulebook(kit: RotationKit) -> Rulebook:
    cfg = kit.config
    return Rulebook(
        utility=make_utility_rules(kit.caster, cfg),
        defensive=make_defensive_rules(
            DefensiveEscalation(kit.caster, cfg), kit.caster, kit.survival, cfg
        ),
        interrupt=make_interrupt_rules(
            InterruptTriage.from_config(cfg), kit.caster, cfg
        ),
        routes=build_routes(kit),
    )
