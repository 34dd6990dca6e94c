"""Rotation configuration dataclass."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from tick_rotation.collaborators import ConfigSource

MODE_AUTO = 0
MODE_FORCE_A = 1
MODE_FORCE_B = 2


@dataclass(frozen=True)
class RotationConfig:
    """Immutable thresholds and toggles for one rotation instance.

    Field names double as configuration keys for :meth:`from_source`.
    Health values are percentages, durations are seconds.
    """

    enabled: bool = True
    mode_override: int = MODE_AUTO

    # Discrete resource forecasting
    forecast_window: float = 3.0
    forecast_horizon: int = 6

    # Critical buffer
    buffer_min_stacks: int = 5
    buffer_refresh_threshold: float = 5.0
    buffer_stack_target: int = 7
    buffer_low_remaining: float = 5.0
    buffer_low_stacks: int = 3
    critical_health: float = 60.0
    critical_predicted_health: float = 50.0
    prediction_horizon: float = 2.0

    # Continuous resource
    capping_threshold: float = 105.0
    burst_capping_threshold: float = 99.0
    aggressive_spending: bool = False
    pooling_threshold: float = 20.0
    burst_pool_lead: float = 15.0
    burst_pool_margin: float = 10.0
    continuous_filler_amount: float = 80.0
    emergency_spend_health: float = 40.0

    # Combat
    survival_health: float = 70.0
    survival_min_interval: float = 1.0
    execute_health: float = 35.0
    execute_max_enemies: int = 2
    dot_pandemic: float = 7.2
    area_range: float = 10.0
    ground_effect_min_enemies: int = 4
    ground_effect_lead: float = 0.5
    channel_min_stacks: int = 6
    window_snipe_remaining: float = 1.5
    burst_min_ttd: float = 20.0

    # Targeting
    melee_range: float = 5.0
    ranged_range: float = 30.0
    scan_radius: float = 40.0

    # Interrupts
    interrupts_enabled: bool = True
    incapacitate_enabled: bool = True
    displace_enabled: bool = True
    interrupt_min_remaining: float = 0.5
    interrupt_max_remaining: float = 3.0

    # Defensives
    magic_shield_enabled: bool = True
    magic_shield_health: float = 75.0
    magic_damage_threshold: float = 3.5
    magic_damage_window: float = 3.0
    shield_min_ttd: float = 10.0
    last_resort_health: float = 80.0
    health_boost_health: float = 65.0
    health_boost_predicted: float = 55.0
    major_mitigation_health: float = 45.0
    major_mitigation_predicted: float = 35.0
    minor_mitigation_health: float = 70.0
    emergency_heal_health: float = 50.0
    burst_defensive_enabled: bool = True
    burst_defensive_health: float = 50.0
    burst_defensive_resource: float = 40.0

    # Utilities
    companion_enabled: bool = True
    taunt_enabled: bool = True
    taunt_fallback_enabled: bool = True
    taunt_threat_pct: float = 1.0
    cooldown_reset_enabled: bool = False
    reset_min_cooldown: float = 30.0
    consumable_enabled: bool = True
    consumable_health: float = 40.0
    consumable_interval: float = 60.0

    def __post_init__(self) -> None:
        if self.mode_override not in (MODE_AUTO, MODE_FORCE_A, MODE_FORCE_B):
            raise ValueError(
                f"mode_override must be 0, 1 or 2, got {self.mode_override}"
            )
        if self.forecast_window < 0:
            raise ValueError(
                f"forecast_window must be >= 0, got {self.forecast_window}"
            )
        if self.forecast_horizon <= 0:
            raise ValueError(
                f"forecast_horizon must be > 0, got {self.forecast_horizon}"
            )
        if self.buffer_min_stacks < 0:
            raise ValueError(
                f"buffer_min_stacks must be >= 0, got {self.buffer_min_stacks}"
            )
        if self.survival_min_interval < 0:
            raise ValueError(
                "survival_min_interval must be >= 0, "
                f"got {self.survival_min_interval}"
            )
        if not 0 <= self.interrupt_min_remaining < self.interrupt_max_remaining:
            raise ValueError(
                "interrupt window must satisfy 0 <= min < max, got "
                f"({self.interrupt_min_remaining}, {self.interrupt_max_remaining})"
            )
        if self.melee_range > self.ranged_range:
            raise ValueError("melee_range must not exceed ranged_range")

    @classmethod
    def from_source(cls, source: ConfigSource) -> RotationConfig:
        """Build a config by reading every field from ``source``."""
        values: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            default = f.default
            if isinstance(default, bool):
                values[f.name] = source.get_bool(f.name, default)
            elif isinstance(default, int):
                values[f.name] = source.get_int(f.name, default)
            else:
                values[f.name] = source.get_float(f.name, default)
        return cls(**values)
