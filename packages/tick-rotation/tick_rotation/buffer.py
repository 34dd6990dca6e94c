"""CriticalBufferGuard: keeps the protective buffer from lapsing."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Sequence

from tick_rotation.forecast import should_reserve
from tick_rotation.types import CriticalBuffer, ForecastResult

if TYPE_CHECKING:
    from tick_rotation.config import RotationConfig
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)

Attempt = Callable[[], bool]


class BufferVerdict(Enum):
    """Branch of the emergency policy that applies to the current state."""

    NOT_NEEDED = "not_needed"
    REFRESH_NOW = "refresh_now"
    SURVIVAL_FIRST = "survival_first"
    DEFER = "defer"
    BLOCK = "block"


@dataclass(frozen=True)
class EmergencyOutcome:
    """Result of :meth:`CriticalBufferGuard.emergency_action`.

    Attributes:
        verdict: Branch taken.
        acted: An action was dispatched and accepted.
        action: Name of the accepted attempt, if any.
    """

    verdict: BufferVerdict
    acted: bool = False
    action: str | None = None

    @property
    def blocks_spending(self) -> bool:
        return self.verdict is BufferVerdict.BLOCK


class CriticalBufferGuard:
    """Decides when discrete spending must wait for a buffer refresh.

    Args:
        min_stacks: Fewer stacks than this means the buffer needs a refresh.
        refresh_threshold: Remaining seconds at or below which it needs one.
        window: Forecast window for reserving the refresh cost.
        critical_health: Current health below which the survival action
            goes first while the refresh is pending.
        critical_predicted_health: Same, for predicted health.
        low_remaining: Proactive maintenance threshold on remaining time.
        low_stacks: Proactive maintenance threshold on stacks.
    """

    def __init__(
        self,
        min_stacks: int = 5,
        refresh_threshold: float = 5.0,
        window: float = 3.0,
        critical_health: float = 60.0,
        critical_predicted_health: float = 50.0,
        low_remaining: float = 5.0,
        low_stacks: int = 3,
    ) -> None:
        if min_stacks < 0:
            raise ValueError(f"min_stacks must be >= 0, got {min_stacks}")
        if refresh_threshold < 0:
            raise ValueError(
                f"refresh_threshold must be >= 0, got {refresh_threshold}"
            )
        if window < 0:
            raise ValueError(f"window must be >= 0, got {window}")
        self.min_stacks = min_stacks
        self.refresh_threshold = refresh_threshold
        self.window = window
        self.critical_health = critical_health
        self.critical_predicted_health = critical_predicted_health
        self.low_remaining = low_remaining
        self.low_stacks = low_stacks

    @classmethod
    def from_config(cls, config: RotationConfig) -> CriticalBufferGuard:
        return cls(
            min_stacks=config.buffer_min_stacks,
            refresh_threshold=config.buffer_refresh_threshold,
            window=config.forecast_window,
            critical_health=config.critical_health,
            critical_predicted_health=config.critical_predicted_health,
            low_remaining=config.buffer_low_remaining,
            low_stacks=config.buffer_low_stacks,
        )

    # --- Predicates ---

    def needs_refresh(self, buffer: CriticalBuffer) -> bool:
        return (
            buffer.stacks < self.min_stacks
            or buffer.remaining <= self.refresh_threshold
        )

    def should_block_spending(
        self, buffer: CriticalBuffer, forecast: ForecastResult
    ) -> bool:
        if not self.needs_refresh(buffer):
            return False
        return should_reserve(forecast, buffer.refresh_cost, self.window)

    def is_health_critical(self, health: float, predicted_health: float) -> bool:
        return (
            health < self.critical_health
            or predicted_health < self.critical_predicted_health
        )

    def is_low(self, buffer: CriticalBuffer) -> bool:
        """Looser than :meth:`needs_refresh`; drives proactive upkeep."""
        return (
            not buffer.active
            or buffer.remaining < self.low_remaining
            or buffer.stacks < self.low_stacks
        )

    @staticmethod
    def should_stack(stacks: int, target: int, suppressed: bool = False) -> bool:
        """Build toward ``target`` unless another effect is already adding stacks."""
        if suppressed:
            return False
        return stacks < target

    @staticmethod
    def is_optimal(stacks: int, optimal: int) -> bool:
        return stacks >= optimal

    # --- Emergency policy ---

    def assess(
        self,
        buffer: CriticalBuffer,
        forecast: ForecastResult,
        health: float = 100.0,
        predicted_health: float = 100.0,
        continuous: float = 0.0,
        survival_cost: float = 0.0,
    ) -> BufferVerdict:
        """Pick the emergency branch without acting."""
        if not self.needs_refresh(buffer):
            return BufferVerdict.NOT_NEEDED
        if forecast.current >= buffer.refresh_cost:
            return BufferVerdict.REFRESH_NOW
        if should_reserve(forecast, buffer.refresh_cost, self.window):
            if (
                self.is_health_critical(health, predicted_health)
                and continuous >= survival_cost
            ):
                return BufferVerdict.SURVIVAL_FIRST
            return BufferVerdict.DEFER
        return BufferVerdict.BLOCK

    def assess_snapshot(
        self, snapshot: TickSnapshot, survival_cost: float = 0.0
    ) -> BufferVerdict:
        return self.assess(
            snapshot.buffer,
            snapshot.forecast,
            health=snapshot.health,
            predicted_health=snapshot.predicted_health,
            continuous=snapshot.continuous,
            survival_cost=survival_cost,
        )

    def emergency_action(
        self,
        snapshot: TickSnapshot,
        refresh: Sequence[tuple[str, Attempt]],
        survival: tuple[str, Attempt] | None = None,
        survival_cost: float = 0.0,
    ) -> EmergencyOutcome:
        """Run the four-branch policy.

        ``refresh`` attempts are tried in order (primary first, then any
        alternates) until one is accepted. ``survival`` is tried only when
        the refresh is pending and health is critical.
        """
        verdict = self.assess_snapshot(snapshot, survival_cost)

        if verdict is BufferVerdict.REFRESH_NOW:
            for name, attempt in refresh:
                if attempt():
                    logger.info(
                        "buffer refresh via %s (stacks=%d, remaining=%.1f)",
                        name, snapshot.buffer.stacks, snapshot.buffer.remaining,
                    )
                    return EmergencyOutcome(verdict, acted=True, action=name)
            return EmergencyOutcome(verdict)

        if verdict is BufferVerdict.SURVIVAL_FIRST and survival is not None:
            name, attempt = survival
            if attempt():
                logger.info(
                    "survival action %s before buffer refresh (refresh in %.2fs)",
                    name,
                    snapshot.forecast.time_until(snapshot.buffer.refresh_cost),
                )
                return EmergencyOutcome(verdict, acted=True, action=name)
            return EmergencyOutcome(verdict)

        if verdict is BufferVerdict.BLOCK:
            logger.info(
                "buffer refresh unaffordable (have %d, need %d); blocking spending",
                snapshot.forecast.current, snapshot.buffer.refresh_cost,
            )
        return EmergencyOutcome(verdict)
