"""ModeRouter: picks the combat rule variant for the detected capability."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Collection, Sequence

from tick_rotation.config import MODE_FORCE_A, MODE_FORCE_B
from tick_rotation.rules import Category, RuleSet

if TYPE_CHECKING:
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)


class ModeProfile(Enum):
    """Capability-selected rotation variant.

    DEFAULT means no capability was detected. It is a valid outcome: only
    the shared rules run.
    """

    CAPABILITY_A = "capability_a"
    CAPABILITY_B = "capability_b"
    DEFAULT = "default"


def mode_from_override(value: int) -> ModeProfile | None:
    """Map the configured override to a concrete mode, or None for auto."""
    if value == MODE_FORCE_A:
        return ModeProfile.CAPABILITY_A
    if value == MODE_FORCE_B:
        return ModeProfile.CAPABILITY_B
    return None


@dataclass(frozen=True)
class CapabilityProbe:
    """Detects a mode from a learned marker ability role."""

    mode: ModeProfile
    role: str

    def __post_init__(self) -> None:
        if self.mode is ModeProfile.DEFAULT:
            raise ValueError("CapabilityProbe cannot target the DEFAULT mode")

    def matches(self, detected: Collection[str]) -> bool:
        return self.role in detected


class ModeRouter:
    """Selects a ModeProfile from an override and a fixed probe order.

    A concrete detection is cached across ticks; while the result is
    DEFAULT the probes run again every tick.
    """

    def __init__(self, probes: Sequence[CapabilityProbe]) -> None:
        self._probes = tuple(probes)
        self._cached: ModeProfile | None = None

    @property
    def probes(self) -> tuple[CapabilityProbe, ...]:
        return self._probes

    @property
    def cached(self) -> ModeProfile | None:
        return self._cached

    def probe_roles(self) -> list[str]:
        return [p.role for p in self._probes]

    def select(
        self, override: ModeProfile | None, detected: Collection[str]
    ) -> ModeProfile:
        """Pure selection. Same inputs always yield the same mode."""
        if override is not None and override is not ModeProfile.DEFAULT:
            return override
        for probe in self._probes:
            if probe.matches(detected):
                return probe.mode
        return ModeProfile.DEFAULT

    def current(
        self, override: ModeProfile | None, detected: Collection[str]
    ) -> ModeProfile:
        """Cached selection for this tick."""
        if override is not None and override is not ModeProfile.DEFAULT:
            return override
        if self._cached is not None:
            return self._cached
        mode = self.select(None, detected)
        if mode is not ModeProfile.DEFAULT:
            logger.info("detected mode %s", mode.value)
            self._cached = mode
        return mode

    def reset(self) -> None:
        """Forget the cached mode, e.g. after the agent's capabilities change."""
        if self._cached is not None:
            logger.info("mode cache cleared (was %s)", self._cached.value)
        self._cached = None


@dataclass(frozen=True)
class CombatRoute:
    """Combat rules for one mode.

    Attributes:
        primary: Rules used normally.
        windowed: Rules used instead while ``window_status`` is active.
        window_status: Status id that opens the window.
    """

    primary: RuleSet
    windowed: RuleSet | None = None
    window_status: str | None = None

    def __post_init__(self) -> None:
        if self.primary.category is not Category.COMBAT:
            raise ValueError("CombatRoute primary must be a COMBAT rule set")
        if self.windowed is not None:
            if self.windowed.category is not Category.COMBAT:
                raise ValueError("CombatRoute windowed must be a COMBAT rule set")
            if self.window_status is None:
                raise ValueError("CombatRoute windowed rules need a window_status")

    def active_rules(self, snapshot: TickSnapshot) -> RuleSet:
        if self.windowed is not None and snapshot.has_status(self.window_status):
            return self.windowed
        return self.primary
