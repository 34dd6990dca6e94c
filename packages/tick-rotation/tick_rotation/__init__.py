"""Reactive per-tick decision core for a single agent."""
from tick_rotation.buffer import BufferVerdict, CriticalBufferGuard, EmergencyOutcome
from tick_rotation.casting import Caster, ThrottledAction
from tick_rotation.catalogue import AbilityCatalogue, AbilityDescriptor, Role, StatusRole
from tick_rotation.clock import Clock
from tick_rotation.config import MODE_AUTO, MODE_FORCE_A, MODE_FORCE_B, RotationConfig
from tick_rotation.driver import FixedRateDriver
from tick_rotation.engine import FiredRule, PriorityEngine
from tick_rotation.forecast import ResourceForecaster
from tick_rotation.interrupts import InterruptKind, InterruptPlan, InterruptTriage
from tick_rotation.defensives import DefensiveEscalation
from tick_rotation.modes import CapabilityProbe, CombatRoute, ModeProfile, ModeRouter
from tick_rotation.orchestrator import TickOrchestrator
from tick_rotation.pools import CappedPool, SlotPool
from tick_rotation.rotation import RotationKit, Rulebook, build_rulebook
from tick_rotation.rules import Category, Rule, RuleSet
from tick_rotation.sim import DictConfig, SimulatedHost
from tick_rotation.snapshot import TickSnapshot, capture_snapshot
from tick_rotation.spending import SpendingPolicy
from tick_rotation.status import StatusChange, StatusEventBus, StatusTracker
from tick_rotation.trackers import UseThrottle, WindowTracker
from tick_rotation.types import (
    UNREACHABLE,
    AbilityView,
    ActionCost,
    CriticalBuffer,
    ForecastResult,
    HostileActor,
    InvalidEntityError,
    StatusReading,
)

__all__ = [
    "UNREACHABLE",
    "AbilityCatalogue",
    "AbilityDescriptor",
    "AbilityView",
    "ActionCost",
    "BufferVerdict",
    "CapabilityProbe",
    "CappedPool",
    "Caster",
    "Category",
    "Clock",
    "CombatRoute",
    "CriticalBuffer",
    "CriticalBufferGuard",
    "DefensiveEscalation",
    "DictConfig",
    "EmergencyOutcome",
    "FiredRule",
    "FixedRateDriver",
    "ForecastResult",
    "HostileActor",
    "InterruptKind",
    "InterruptPlan",
    "InterruptTriage",
    "InvalidEntityError",
    "MODE_AUTO",
    "MODE_FORCE_A",
    "MODE_FORCE_B",
    "ModeProfile",
    "ModeRouter",
    "PriorityEngine",
    "ResourceForecaster",
    "Role",
    "RotationConfig",
    "RotationKit",
    "Rule",
    "RuleSet",
    "Rulebook",
    "SimulatedHost",
    "SlotPool",
    "SpendingPolicy",
    "StatusChange",
    "StatusEventBus",
    "StatusReading",
    "StatusRole",
    "StatusTracker",
    "ThrottledAction",
    "TickOrchestrator",
    "TickSnapshot",
    "UseThrottle",
    "WindowTracker",
    "build_rulebook",
    "capture_snapshot",
]
