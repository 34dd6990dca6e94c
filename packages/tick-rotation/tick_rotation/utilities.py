"""Utility rules: health consumable, companion upkeep, taunts and the cooldown reset."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tick_rotation.casting import ThrottledAction
from tick_rotation.catalogue import Role, StatusRole
from tick_rotation.rules import Category, Rule, RuleSet
from tick_rotation.trackers import UseThrottle
from tick_rotation.types import HostileActor

if TYPE_CHECKING:
    from tick_rotation.casting import Caster
    from tick_rotation.config import RotationConfig
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)

# Status that shows a reset-tracked ability is currently running.
_ACTIVE_STATUS = {
    Role.BURST: StatusRole.BURST,
    Role.MAJOR_MITIGATION: StatusRole.MAJOR_MITIGATION,
    Role.HEALTH_BOOST: StatusRole.HEALTH_BOOST,
    Role.CHANNEL: StatusRole.CHANNEL,
    Role.MAGIC_SHIELD: StatusRole.MAGIC_SHIELD,
}


def taunt_candidates(
    snapshot: TickSnapshot, config: RotationConfig
) -> list[HostileActor]:
    """Non-boss hostiles on which the agent holds (almost) no threat."""
    return [
        h for h in snapshot.enemies_within(config.scan_radius)
        if not h.is_boss and h.threat_pct < config.taunt_threat_pct
    ]


def reset_worthwhile(
    snapshot: TickSnapshot, caster: Caster, config: RotationConfig
) -> bool:
    """Every tracked cooldown is learned, idle and far from ready."""
    roles = caster.catalogue.reset_roles()
    if not roles:
        return False
    for role in roles:
        if not caster.learned(snapshot, role):
            return False
        status_role = _ACTIVE_STATUS.get(role)
        if status_role is not None and snapshot.has_status(
            caster.catalogue.status(status_role)
        ):
            return False
        if caster.view(snapshot, role).cooldown_remaining < config.reset_min_cooldown:
            return False
    return True


def make_utility_rules(caster: Caster, config: RotationConfig) -> RuleSet:
    consumable = ThrottledAction(
        caster, Role.HEALTH_CONSUMABLE, UseThrottle(config.consumable_interval)
    )

    def wants_consumable(snapshot: TickSnapshot) -> bool:
        return (
            config.consumable_enabled
            and snapshot.health <= config.consumable_health
            and consumable.ready(snapshot)
        )

    def drink(snapshot: TickSnapshot) -> bool:
        if consumable.attempt(snapshot, None):
            logger.info("health consumable at %.0f%% health", snapshot.health)
            return True
        return False

    def wants_companion(snapshot: TickSnapshot) -> bool:
        return (
            config.companion_enabled
            and snapshot.in_combat
            and not snapshot.has_companion
            and caster.usable(snapshot, Role.SUMMON_COMPANION)
        )

    def summon(snapshot: TickSnapshot) -> bool:
        if caster.cast(Role.SUMMON_COMPANION):
            logger.info("summoned companion")
            return True
        return False

    def wants_taunt(snapshot: TickSnapshot) -> bool:
        if not snapshot.in_combat or not taunt_candidates(snapshot, config):
            return False
        primary = config.taunt_enabled and caster.usable(snapshot, Role.TAUNT)
        fallback = config.taunt_fallback_enabled and caster.usable(
            snapshot, Role.DISPLACE
        )
        return primary or fallback

    def taunt(snapshot: TickSnapshot) -> bool:
        primary = config.taunt_enabled and caster.usable(snapshot, Role.TAUNT)
        # The displacement fallback only stands in for an unavailable taunt.
        fallback = (
            config.taunt_fallback_enabled
            and not primary
            and caster.usable(snapshot, Role.DISPLACE)
        )
        for hostile in taunt_candidates(snapshot, config):
            if primary and caster.cast(Role.TAUNT, hostile):
                logger.info("taunted %r", hostile.entity)
                return True
            if fallback and caster.cast(Role.DISPLACE, hostile):
                logger.info("displaced %r as taunt", hostile.entity)
                return True
        return False

    def wants_reset(snapshot: TickSnapshot) -> bool:
        return (
            config.cooldown_reset_enabled
            and caster.usable(snapshot, Role.COOLDOWN_RESET)
            and reset_worthwhile(snapshot, caster, config)
        )

    def reset(snapshot: TickSnapshot) -> bool:
        if caster.cast(Role.COOLDOWN_RESET):
            logger.info("cooldown reset used")
            return True
        return False

    return RuleSet(
        Category.UTILITY,
        (
            Rule("utility.health_consumable", wants_consumable, drink),
            Rule("utility.companion", wants_companion, summon),
            Rule("utility.taunt", wants_taunt, taunt),
            Rule("utility.cooldown_reset", wants_reset, reset),
        ),
    )
