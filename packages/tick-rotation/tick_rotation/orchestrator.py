"""TickOrchestrator: one decision per host tick."""
from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING, Callable, Sequence

from tick_rotation.buffer import BufferVerdict
from tick_rotation.casting import Caster
from tick_rotation.catalogue import AbilityCatalogue, Role
from tick_rotation.clock import Clock
from tick_rotation.config import RotationConfig
from tick_rotation.engine import FiredRule, PriorityEngine
from tick_rotation.forecast import ResourceForecaster
from tick_rotation.modes import CapabilityProbe, ModeProfile, ModeRouter, mode_from_override
from tick_rotation.rotation import RotationKit, Rulebook, build_rulebook
from tick_rotation.snapshot import TickSnapshot, capture_snapshot
from tick_rotation.status import ANY, StatusEventBus, StatusTracker

if TYPE_CHECKING:
    from tick_rotation.collaborators import Host, TickDriver
    from tick_rotation.rules import Category

logger = logging.getLogger(__name__)

DEFAULT_PROBES = (
    CapabilityProbe(ModeProfile.CAPABILITY_A, Role.CAPABILITY_A),
    CapabilityProbe(ModeProfile.CAPABILITY_B, Role.CAPABILITY_B),
)


class TickOrchestrator:
    """Captures a snapshot, derives the tick's policy flags and fires at most
    one rule.

    Args:
        host: Collaborator object implementing every query and the action
            primitive.
        catalogue: Role mapping. Defaults to :meth:`AbilityCatalogue.generic`.
        config: Thresholds and toggles. Defaults to ``RotationConfig()``.
        clock: Tick clock. Defaults to a 10 tps deterministic clock.
        probes: Capability probes in detection order.
        on_fire: Called with each fired rule record and its snapshot.
        on_reject: Called when a rule's guard held but the world refused.
    """

    def __init__(
        self,
        host: Host,
        catalogue: AbilityCatalogue | None = None,
        config: RotationConfig | None = None,
        clock: Clock | None = None,
        probes: Sequence[CapabilityProbe] = DEFAULT_PROBES,
        on_fire: Callable[[FiredRule, TickSnapshot], None] | None = None,
        on_reject: Callable[[Category, str, TickSnapshot], None] | None = None,
    ) -> None:
        self._host = host
        self._catalogue = catalogue if catalogue is not None else AbilityCatalogue.generic()
        self._config = config if config is not None else RotationConfig()
        self._clock = clock if clock is not None else Clock(tps=10)
        cfg = self._config

        self._forecaster = ResourceForecaster(cfg.forecast_window, cfg.forecast_horizon)
        self._caster = Caster(host, self._catalogue, cfg.forecast_window)
        self._kit = RotationKit.build(self._caster, cfg)
        self._rulebook = build_rulebook(self._kit)
        self._router = ModeRouter(probes)
        self._engine = PriorityEngine(on_fire=on_fire, on_reject=on_reject)

        self._status_tracker = StatusTracker()
        self._bus = StatusEventBus()
        self._bus.subscribe(ANY, self._kit.burst_window.handle)

        self._last_fired: FiredRule | None = None
        self._last_snapshot: TickSnapshot | None = None

    # --- Accessors ---

    @property
    def config(self) -> RotationConfig:
        return self._config

    @property
    def catalogue(self) -> AbilityCatalogue:
        return self._catalogue

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def router(self) -> ModeRouter:
        return self._router

    @property
    def bus(self) -> StatusEventBus:
        """Status events; subscribers are flushed once per tick."""
        return self._bus

    @property
    def kit(self) -> RotationKit:
        return self._kit

    @property
    def rulebook(self) -> Rulebook:
        return self._rulebook

    @property
    def last_fired(self) -> FiredRule | None:
        return self._last_fired

    @property
    def last_snapshot(self) -> TickSnapshot | None:
        return self._last_snapshot

    # --- Lifecycle ---

    def register(self, driver: TickDriver) -> None:
        driver.register(self.tick)

    def reset(self) -> None:
        """Forget cross-tick state: mode cache, status history, throttles."""
        self._router.reset()
        self._bus.publish_all(self._status_tracker.clear())
        self._bus.flush()
        self._kit.survival.throttle.reset()
        self._last_fired = None
        self._last_snapshot = None

    # --- Tick ---

    def tick(self) -> FiredRule | None:
        """Run one decision cycle. Returns the fired rule, if any."""
        try:
            if not self._config.enabled:
                self._last_fired = None
                return None
            self._last_fired = self._decide(self._clock.now(), self._clock.dt)
            return self._last_fired
        finally:
            self._clock.advance()

    def _decide(self, now: float, dt: float) -> FiredRule | None:
        cfg = self._config
        snapshot = capture_snapshot(
            self._host,
            self._catalogue,
            self._forecaster,
            now,
            dt,
            scan_radius=cfg.scan_radius,
            prediction_horizon=cfg.prediction_horizon,
            magic_damage_window=cfg.magic_damage_window,
        )
        if not snapshot.agent_valid:
            self._last_snapshot = snapshot
            return None

        self._bus.publish_all(self._status_tracker.update(snapshot.statuses))
        self._bus.flush()

        snapshot = dataclasses.replace(
            snapshot,
            spending_blocked=self._spending_blocked(snapshot),
            mode=self._select_mode(snapshot),
        )
        self._last_snapshot = snapshot
        return self._engine.evaluate_categories(
            self._rulebook.rulesets(snapshot), snapshot
        )

    def _spending_blocked(self, snapshot: TickSnapshot) -> bool:
        if not self._kit.can_refresh(snapshot):
            return False
        guard = self._kit.guard
        if guard.should_block_spending(snapshot.buffer, snapshot.forecast):
            return True
        return guard.assess_snapshot(snapshot) is BufferVerdict.BLOCK

    def _select_mode(self, snapshot: TickSnapshot) -> ModeProfile:
        detected = [
            role for role in self._router.probe_roles()
            if self._caster.learned(snapshot, role)
        ]
        return self._router.current(
            mode_from_override(self._config.mode_override), detected
        )
