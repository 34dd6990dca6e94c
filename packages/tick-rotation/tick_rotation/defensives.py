"""DefensiveEscalation: mitigation gating and the defensive rule set."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tick_rotation.catalogue import STRONG_MITIGATIONS, Role, StatusRole
from tick_rotation.rules import Category, Rule, RuleSet
from tick_rotation.targeting import best_melee_target

if TYPE_CHECKING:
    from tick_rotation.casting import Caster, ThrottledAction
    from tick_rotation.config import RotationConfig
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)

_INTERRUPT_ROLES = (
    Role.DIRECT_INTERRUPT,
    Role.INCAPACITATE,
    Role.AREA_INTERRUPT,
    Role.DISPLACE,
)

MAGIC = "magic"
LAST_RESORT = "last_resort"


class DefensiveEscalation:
    """Decides which mitigation, if any, the agent should activate.

    No new strong mitigation is started while two or more are already
    running; the emergency heal is the only exemption.
    """

    def __init__(self, caster: Caster, config: RotationConfig) -> None:
        self._caster = caster
        self._config = config

    # --- Anti-stacking ---

    def strong_active(self, snapshot: TickSnapshot) -> int:
        catalogue = self._caster.catalogue
        return sum(
            1 for role in STRONG_MITIGATIONS
            if snapshot.has_status(catalogue.status(role))
        )

    def stacked(self, snapshot: TickSnapshot) -> bool:
        return self.strong_active(snapshot) >= 2

    # --- Health gates ---

    @staticmethod
    def health_gate(
        snapshot: TickSnapshot, health_threshold: float, predicted_threshold: float
    ) -> bool:
        return (
            snapshot.health <= health_threshold
            or snapshot.predicted_health <= predicted_threshold
        )

    # --- Last resort ---

    def interrupts_exhausted(self, snapshot: TickSnapshot) -> bool:
        """Every learned interrupt is unavailable, and at least one is learned."""
        learned = [r for r in _INTERRUPT_ROLES if self._caster.learned(snapshot, r)]
        if not learned:
            return False
        for role in learned:
            view = self._caster.view(snapshot, role)
            if role == Role.DISPLACE:
                if view.available and view.charges > 0:
                    return False
            elif view.available:
                return False
        return True

    @staticmethod
    def incoming_cast(snapshot: TickSnapshot) -> bool:
        return any(
            h.attackable and h.casting and h.targeting_agent
            for h in snapshot.hostiles
        )

    @staticmethod
    def target_lives(snapshot: TickSnapshot, min_ttd: float) -> bool:
        """No engaged target counts as valid."""
        if snapshot.target is None:
            return True
        return snapshot.target.time_to_die >= min_ttd

    def magic_shield_reason(self, snapshot: TickSnapshot) -> str | None:
        cfg = self._config
        if not cfg.magic_shield_enabled:
            return None
        if not self._caster.usable(snapshot, Role.MAGIC_SHIELD):
            return None
        if snapshot.has_status(self._caster.catalogue.status(StatusRole.MAGIC_SHIELD)):
            return None
        if self.stacked(snapshot):
            return None
        reason = None
        if (
            snapshot.magic_damage_pct > cfg.magic_damage_threshold
            and snapshot.health <= cfg.magic_shield_health
        ):
            reason = MAGIC
        elif self.interrupts_exhausted(snapshot) and (
            self.incoming_cast(snapshot) or snapshot.health < cfg.last_resort_health
        ):
            reason = LAST_RESORT
        if reason is None or not self.target_lives(snapshot, cfg.shield_min_ttd):
            return None
        return reason

    # --- Candidates ---

    def _fresh(self, snapshot: TickSnapshot, role: str, status_role: str) -> bool:
        """Usable, not already running, and not over the stacking limit."""
        return (
            self._caster.usable(snapshot, role)
            and not snapshot.has_status(self._caster.catalogue.status(status_role))
            and not self.stacked(snapshot)
        )

    def wants_stun_break(self, snapshot: TickSnapshot) -> bool:
        return snapshot.stunned and self._fresh(
            snapshot, Role.STUN_BREAK, StatusRole.MAJOR_MITIGATION
        )

    def wants_group_shield(self, snapshot: TickSnapshot) -> bool:
        return (
            self._caster.usable(snapshot, Role.GROUP_SHIELD)
            and snapshot.magic_damage_pct > self._config.magic_damage_threshold
            and snapshot.allies_magic_damage >= 1
        )

    def wants_health_boost(self, snapshot: TickSnapshot) -> bool:
        cfg = self._config
        return self._fresh(
            snapshot, Role.HEALTH_BOOST, StatusRole.HEALTH_BOOST
        ) and self.health_gate(
            snapshot, cfg.health_boost_health, cfg.health_boost_predicted
        )

    def wants_burst(self, snapshot: TickSnapshot) -> bool:
        cfg = self._config
        return (
            cfg.burst_defensive_enabled
            and self._fresh(snapshot, Role.BURST, StatusRole.BURST)
            and snapshot.continuous < cfg.burst_defensive_resource
            and snapshot.health <= cfg.burst_defensive_health
            and self.target_lives(snapshot, cfg.burst_min_ttd)
        )

    def wants_major_mitigation(self, snapshot: TickSnapshot) -> bool:
        cfg = self._config
        return self._fresh(
            snapshot, Role.MAJOR_MITIGATION, StatusRole.MAJOR_MITIGATION
        ) and self.health_gate(
            snapshot, cfg.major_mitigation_health, cfg.major_mitigation_predicted
        )

    def wants_minor_mitigation(self, snapshot: TickSnapshot) -> bool:
        return (
            self._caster.usable(snapshot, Role.MINOR_MITIGATION)
            and self._caster.affordable(snapshot, Role.MINOR_MITIGATION)
            and snapshot.health <= self._config.minor_mitigation_health
        )

    def wants_emergency_heal(self, snapshot: TickSnapshot) -> bool:
        return (
            snapshot.health <= self._config.emergency_heal_health
            and self._caster.affordable(snapshot, Role.SURVIVAL_STRIKE)
        )


def make_defensive_rules(
    escalation: DefensiveEscalation,
    caster: Caster,
    survival: ThrottledAction,
    config: RotationConfig,
) -> RuleSet:
    """Defensive rules from most to least urgent."""

    def self_cast(role: str, label: str):
        def action(snapshot: TickSnapshot) -> bool:
            if caster.cast(role):
                logger.info(
                    "defensive %s at %.0f%% health (predicted %.0f%%)",
                    label, snapshot.health, snapshot.predicted_health,
                )
                return True
            return False

        return action

    def magic_shield(snapshot: TickSnapshot) -> bool:
        reason = escalation.magic_shield_reason(snapshot)
        if reason is None or not caster.cast(Role.MAGIC_SHIELD):
            return False
        logger.info("defensive magic_shield (%s)", reason)
        return True

    def emergency_heal(snapshot: TickSnapshot) -> bool:
        target = best_melee_target(snapshot, config.melee_range)
        if target is None:
            return False
        return survival.attempt(snapshot, target)

    def heal_guard(snapshot: TickSnapshot) -> bool:
        return (
            escalation.wants_emergency_heal(snapshot)
            and survival.ready(snapshot)
            and best_melee_target(snapshot, config.melee_range) is not None
        )

    return RuleSet(
        Category.DEFENSIVE,
        (
            Rule(
                "defensive.stun_break",
                escalation.wants_stun_break,
                self_cast(Role.STUN_BREAK, "stun_break"),
            ),
            Rule(
                "defensive.magic_shield",
                lambda s: escalation.magic_shield_reason(s) is not None,
                magic_shield,
            ),
            Rule(
                "defensive.group_shield",
                escalation.wants_group_shield,
                self_cast(Role.GROUP_SHIELD, "group_shield"),
            ),
            Rule(
                "defensive.health_boost",
                escalation.wants_health_boost,
                self_cast(Role.HEALTH_BOOST, "health_boost"),
            ),
            Rule(
                "defensive.burst",
                escalation.wants_burst,
                self_cast(Role.BURST, "burst"),
            ),
            Rule(
                "defensive.major_mitigation",
                escalation.wants_major_mitigation,
                self_cast(Role.MAJOR_MITIGATION, "major_mitigation"),
            ),
            Rule(
                "defensive.minor_mitigation",
                escalation.wants_minor_mitigation,
                self_cast(Role.MINOR_MITIGATION, "minor_mitigation"),
            ),
            Rule("defensive.emergency_heal", heal_guard, emergency_heal),
        ),
    )
