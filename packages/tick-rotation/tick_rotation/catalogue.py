"""AbilityCatalogue: maps rule roles to host ability and status ids.

Rules never name world content directly. They ask the catalogue for the
ability that fills a role (``Role.GENERATOR``) or the status that tracks an
effect (``StatusRole.BUFFER``), and a role without an entry simply disables
the rules that need it.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from tick_rotation.types import ActionCost


class Role:
    """Ability roles."""

    # Combat
    BUFFER_REFRESH = "buffer_refresh"
    BUFFER_REFRESH_RANGED = "buffer_refresh_ranged"
    SURVIVAL_STRIKE = "survival_strike"
    GENERATOR = "generator"
    AREA_GENERATOR = "area_generator"
    GROUND_EFFECT = "ground_effect"
    AREA_SPENDER = "area_spender"
    CHANNEL = "channel"
    BURST = "burst"
    MARK = "mark"
    EXECUTE = "execute"
    # Defensive
    STUN_BREAK = "stun_break"
    MAGIC_SHIELD = "magic_shield"
    GROUP_SHIELD = "group_shield"
    HEALTH_BOOST = "health_boost"
    MAJOR_MITIGATION = "major_mitigation"
    MINOR_MITIGATION = "minor_mitigation"
    # Interrupt
    DIRECT_INTERRUPT = "direct_interrupt"
    INCAPACITATE = "incapacitate"
    AREA_INTERRUPT = "area_interrupt"
    DISPLACE = "displace"
    # Utility
    SUMMON_COMPANION = "summon_companion"
    TAUNT = "taunt"
    COOLDOWN_RESET = "cooldown_reset"
    HEALTH_CONSUMABLE = "health_consumable"
    # Capability probes (learned-only markers)
    CAPABILITY_A = "capability_a"
    CAPABILITY_B = "capability_b"


class StatusRole:
    """Status roles. Agent statuses unless noted."""

    BUFFER = "buffer"
    BURST = "burst"
    GROUND_EFFECT = "ground_effect"
    AREA_PROC = "area_proc"
    AREA_PROC_BLOCKER = "area_proc_blocker"
    CHANNEL = "channel"
    WINDOW_EMPOWER = "window_empower"
    HEALTH_BOOST = "health_boost"
    MAJOR_MITIGATION = "major_mitigation"
    MAGIC_SHIELD = "magic_shield"
    # Debuffs the agent applies to hostiles
    DOT = "dot"
    EXECUTE_MARK = "execute_mark"


# Statuses counted by the defensive anti-stacking rule.
STRONG_MITIGATIONS = (
    StatusRole.HEALTH_BOOST,
    StatusRole.BURST,
    StatusRole.MAJOR_MITIGATION,
    StatusRole.MAGIC_SHIELD,
)

_DEBUFF_ROLES = (StatusRole.DOT, StatusRole.EXECUTE_MARK)


@dataclass(frozen=True)
class AbilityDescriptor:
    """Identity and cost of one host ability.

    Attributes:
        ability_id: Identifier passed to the action primitive.
        cost: Discrete and continuous cost.
        self_cast: Cast without a target (self, ground or cone effects).
    """

    ability_id: str
    cost: ActionCost = field(default_factory=ActionCost)
    self_cast: bool = False

    def __post_init__(self) -> None:
        if not self.ability_id:
            raise ValueError("AbilityDescriptor ability_id must be non-empty")


class AbilityCatalogue:
    """Registry of role -> ability descriptor and role -> status id."""

    def __init__(self) -> None:
        self._abilities: dict[str, AbilityDescriptor] = {}
        self._statuses: dict[str, str] = {}
        self._reset_roles: list[str] = []

    # --- Abilities ---

    def define(self, role: str, descriptor: AbilityDescriptor) -> None:
        """Bind a role to an ability. Overwrites if the role exists."""
        self._abilities[role] = descriptor

    def descriptor(self, role: str) -> AbilityDescriptor | None:
        return self._abilities.get(role)

    def ability_id(self, role: str) -> str | None:
        desc = self._abilities.get(role)
        return desc.ability_id if desc is not None else None

    def has(self, role: str) -> bool:
        return role in self._abilities

    def roles(self) -> list[str]:
        return list(self._abilities)

    def descriptors(self) -> list[AbilityDescriptor]:
        """Unique descriptors in definition order."""
        seen: dict[str, AbilityDescriptor] = {}
        for desc in self._abilities.values():
            seen.setdefault(desc.ability_id, desc)
        return list(seen.values())

    # --- Statuses ---

    def define_status(self, role: str, status_id: str) -> None:
        if not status_id:
            raise ValueError("status_id must be non-empty")
        self._statuses[role] = status_id

    def status(self, role: str) -> str | None:
        return self._statuses.get(role)

    def agent_statuses(self) -> list[str]:
        """Status ids polled on the agent each tick."""
        return [
            sid for role, sid in self._statuses.items() if role not in _DEBUFF_ROLES
        ]

    # --- Cooldown reset set ---

    def set_reset_roles(self, roles: list[str]) -> None:
        """Roles whose cooldowns the cooldown-reset utility refreshes."""
        self._reset_roles = list(roles)

    def reset_roles(self) -> list[str]:
        return list(self._reset_roles)

    @classmethod
    def generic(cls) -> AbilityCatalogue:
        """Catalogue using role names as ids, with typical costs.

        Suitable for the simulated host and tests; real hosts define their
        own ids.
        """
        cat = cls()
        costs = {
            Role.BUFFER_REFRESH: ActionCost(discrete=2),
            Role.BUFFER_REFRESH_RANGED: ActionCost(discrete=1),
            Role.SURVIVAL_STRIKE: ActionCost(continuous=45.0),
            Role.GENERATOR: ActionCost(discrete=1),
            Role.AREA_GENERATOR: ActionCost(),
            Role.GROUND_EFFECT: ActionCost(discrete=1),
            Role.AREA_SPENDER: ActionCost(discrete=1),
            Role.CHANNEL: ActionCost(continuous=10.0),
            Role.EXECUTE: ActionCost(discrete=1),
            Role.MARK: ActionCost(discrete=2),
            Role.MINOR_MITIGATION: ActionCost(continuous=25.0),
        }
        self_cast = {
            Role.AREA_GENERATOR,
            Role.GROUND_EFFECT,
            Role.AREA_SPENDER,
            Role.CHANNEL,
            Role.BURST,
            Role.STUN_BREAK,
            Role.MAGIC_SHIELD,
            Role.GROUP_SHIELD,
            Role.HEALTH_BOOST,
            Role.MAJOR_MITIGATION,
            Role.MINOR_MITIGATION,
            Role.AREA_INTERRUPT,
            Role.SUMMON_COMPANION,
            Role.COOLDOWN_RESET,
            Role.HEALTH_CONSUMABLE,
        }
        for name, value in vars(Role).items():
            if name.startswith("_"):
                continue
            cat.define(
                value,
                AbilityDescriptor(
                    ability_id=value,
                    cost=costs.get(value, ActionCost()),
                    self_cast=value in self_cast,
                ),
            )
        # Stun break and major mitigation share one ability.
        cat.define(Role.STUN_BREAK, cat._abilities[Role.MAJOR_MITIGATION])
        for name, value in vars(StatusRole).items():
            if not name.startswith("_"):
                cat.define_status(value, value)
        cat.set_reset_roles([Role.BURST, Role.MAJOR_MITIGATION, Role.HEALTH_BOOST])
        return cat
