"""Tests for ModeRouter and CombatRoute."""
import pytest

from tick_rotation.config import MODE_AUTO, MODE_FORCE_A, MODE_FORCE_B
from tick_rotation.forecast import empty_forecast
from tick_rotation.modes import (
    CapabilityProbe,
    CombatRoute,
    ModeProfile,
    ModeRouter,
    mode_from_override,
)
from tick_rotation.rules import Category, Rule, RuleSet, always
from tick_rotation.snapshot import TickSnapshot
from tick_rotation.types import StatusReading

A = ModeProfile.CAPABILITY_A
B = ModeProfile.CAPABILITY_B


def _router():
    return ModeRouter([CapabilityProbe(A, "marker_a"), CapabilityProbe(B, "marker_b")])


class TestOverride:
    def test_mapping(self):
        assert mode_from_override(MODE_AUTO) is None
        assert mode_from_override(MODE_FORCE_A) is A
        assert mode_from_override(MODE_FORCE_B) is B

    def test_probe_cannot_target_default(self):
        with pytest.raises(ValueError):
            CapabilityProbe(ModeProfile.DEFAULT, "marker")


class TestSelect:
    def test_override_wins(self):
        assert _router().select(B, ["marker_a"]) is B

    def test_first_matching_probe(self):
        router = _router()
        assert router.select(None, ["marker_b", "marker_a"]) is A
        assert router.select(None, ["marker_b"]) is B

    def test_default_when_nothing_detected(self):
        assert _router().select(None, []) is ModeProfile.DEFAULT

    def test_default_override_means_auto(self):
        assert _router().select(ModeProfile.DEFAULT, ["marker_b"]) is B

    def test_deterministic(self):
        router = _router()
        inputs = [(None, ["marker_a"]), (B, []), (None, []), (None, ["marker_b"])]
        first = [router.select(o, d) for o, d in inputs]
        for _ in range(5):
            assert [router.select(o, d) for o, d in inputs] == first
        assert router.cached is None


class TestCurrent:
    def test_caches_detection(self):
        router = _router()
        assert router.current(None, ["marker_a"]) is A
        assert router.current(None, []) is A
        assert router.cached is A

    def test_default_is_not_cached(self):
        router = _router()
        assert router.current(None, []) is ModeProfile.DEFAULT
        assert router.cached is None
        assert router.current(None, ["marker_b"]) is B

    def test_override_bypasses_cache(self):
        router = _router()
        router.current(None, ["marker_a"])
        assert router.current(B, ["marker_a"]) is B
        assert router.cached is A

    def test_reset(self):
        router = _router()
        router.current(None, ["marker_a"])
        router.reset()
        assert router.cached is None
        assert router.current(None, ["marker_b"]) is B

    def test_probe_roles(self):
        assert _router().probe_roles() == ["marker_a", "marker_b"]


class TestCombatRoute:
    def _sets(self):
        primary = RuleSet(Category.COMBAT, (Rule("primary", always, always),))
        windowed = RuleSet(Category.COMBAT, (Rule("windowed", always, always),))
        return primary, windowed

    def test_requires_combat_sets(self):
        with pytest.raises(ValueError):
            CombatRoute(RuleSet(Category.UTILITY))

    def test_windowed_requires_status(self):
        primary, windowed = self._sets()
        with pytest.raises(ValueError):
            CombatRoute(primary, windowed=windowed)

    def test_active_rules(self):
        primary, windowed = self._sets()
        route = CombatRoute(primary, windowed=windowed, window_status="burst")
        snap = TickSnapshot(now=0.0, tick_duration=0.1, forecast=empty_forecast(6))
        assert route.active_rules(snap) is primary
        active = TickSnapshot(
            now=0.0,
            tick_duration=0.1,
            forecast=empty_forecast(6),
            statuses={"burst": StatusReading(active=True, remaining=8.0)},
        )
        assert route.active_rules(active) is windowed
