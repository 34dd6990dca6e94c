"""Continuous-resource spending policy: capping avoidance and pooling."""
from __future__ import annotations

from typing import TYPE_CHECKING

from tick_rotation.types import ForecastResult

if TYPE_CHECKING:
    from tick_rotation.config import RotationConfig

# Health-critical pooling keeps this much extra in reserve.
_EMERGENCY_POOL_BONUS = 30.0


class SpendingPolicy:
    """Decides when the continuous resource should be spent or held.

    All thresholds are absolute resource amounts. The capping threshold
    drops to ``burst_capping_threshold`` while the burst window is active
    (generation is faster), drops further with aggressive spending, and
    rises by ``burst_pool_margin`` while pooling for an upcoming burst.
    """

    def __init__(
        self,
        capping_threshold: float = 105.0,
        burst_capping_threshold: float = 99.0,
        aggressive: bool = False,
        pooling_threshold: float = 20.0,
        burst_pool_lead: float = 15.0,
        burst_pool_margin: float = 10.0,
        critical_health: float = 60.0,
        critical_predicted_health: float = 50.0,
        emergency_spend_health: float = 40.0,
    ) -> None:
        self.base_capping_threshold = capping_threshold
        self.burst_capping_threshold = burst_capping_threshold
        self.aggressive = aggressive
        self.pooling_threshold = pooling_threshold
        self.burst_pool_lead = burst_pool_lead
        self.burst_pool_margin = burst_pool_margin
        self.critical_health = critical_health
        self.critical_predicted_health = critical_predicted_health
        self.emergency_spend_health = emergency_spend_health

    @classmethod
    def from_config(cls, config: RotationConfig) -> SpendingPolicy:
        return cls(
            capping_threshold=config.capping_threshold,
            burst_capping_threshold=config.burst_capping_threshold,
            aggressive=config.aggressive_spending,
            pooling_threshold=config.pooling_threshold,
            burst_pool_lead=config.burst_pool_lead,
            burst_pool_margin=config.burst_pool_margin,
            critical_health=config.critical_health,
            critical_predicted_health=config.critical_predicted_health,
            emergency_spend_health=config.emergency_spend_health,
        )

    # --- Capping ---

    def should_pool_for_burst(
        self, burst_learned: bool, burst_active: bool, burst_cooldown: float
    ) -> bool:
        """Burst is coming off cooldown soon: hold the resource for it."""
        if not burst_learned or burst_active:
            return False
        return 0 < burst_cooldown <= self.burst_pool_lead

    def capping_threshold(
        self,
        burst_active: bool = False,
        burst_learned: bool = False,
        burst_cooldown: float = 0.0,
    ) -> float:
        threshold = (
            self.burst_capping_threshold if burst_active else self.base_capping_threshold
        )
        if self.aggressive:
            threshold -= 5
        if self.should_pool_for_burst(burst_learned, burst_active, burst_cooldown):
            threshold += self.burst_pool_margin
        return threshold

    @staticmethod
    def is_capping(amount: float, threshold: float) -> bool:
        return amount > threshold

    # --- Pooling ---

    def should_pool_for_emergency(
        self, amount: float, health: float, predicted_health: float
    ) -> bool:
        if amount < self.pooling_threshold:
            return True
        if (
            health < self.critical_health
            or predicted_health < self.critical_predicted_health
        ):
            return amount < self.pooling_threshold + _EMERGENCY_POOL_BONUS
        return False

    @staticmethod
    def should_wait_for_generation(
        forecast: ForecastResult, tick_duration: float
    ) -> bool:
        """Discrete spenders will generate continuous resource imminently."""
        if forecast.current >= 1:
            return True
        t = forecast.time_until(1)
        return 0 < t <= tick_duration

    def should_spend(
        self,
        amount: float,
        cost: float,
        health: float = 100.0,
        predicted_health: float = 100.0,
        burst_learned: bool = False,
        burst_active: bool = False,
        burst_cooldown: float = 0.0,
    ) -> tuple[bool, str]:
        """Return ``(spend, reason)`` for a continuous-resource action."""
        if amount < cost:
            return False, "insufficient"
        if self.should_pool_for_burst(burst_learned, burst_active, burst_cooldown):
            threshold = self.capping_threshold(
                burst_active, burst_learned, burst_cooldown
            )
            if not self.is_capping(amount, threshold):
                return False, "pooling for burst"
        if self.should_pool_for_emergency(amount, health, predicted_health):
            if health >= self.emergency_spend_health:
                return False, "pooling for emergency"
        return True, "ok"
