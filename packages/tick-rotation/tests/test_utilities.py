"""Tests for the utility rule set."""
from tick_rotation.casting import Caster
from tick_rotation.catalogue import AbilityCatalogue, Role, StatusRole
from tick_rotation.config import RotationConfig
from tick_rotation.engine import PriorityEngine
from tick_rotation.forecast import ResourceForecaster
from tick_rotation.sim import SimulatedHost
from tick_rotation.snapshot import capture_snapshot
from tick_rotation.types import HostileActor
from tick_rotation.utilities import make_utility_rules, reset_worthwhile, taunt_candidates


def _setup(config=None):
    catalogue = AbilityCatalogue.generic()
    host = SimulatedHost(catalogue)
    host.combat = True
    config = config or RotationConfig()
    caster = Caster(host, catalogue)
    return host, catalogue, caster, config, make_utility_rules(caster, config)


def _snap(host, catalogue):
    return capture_snapshot(host, catalogue, ResourceForecaster(), 0.0, 0.1)


class TestCompanion:
    def test_summon_when_missing(self):
        host, catalogue, caster, config, rules = _setup()
        host.companion = False
        fired = PriorityEngine().select(rules, _snap(host, catalogue))
        assert fired.name == "utility.companion"
        assert host.cast_ids() == [Role.SUMMON_COMPANION]

    def test_not_out_of_combat(self):
        host, catalogue, caster, config, rules = _setup()
        host.companion = False
        host.combat = False
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None

    def test_disabled(self):
        host, catalogue, caster, config, rules = _setup(RotationConfig(companion_enabled=False))
        host.companion = False
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None


class TestTaunt:
    def test_taunts_loose_hostile(self):
        host, catalogue, caster, config, rules = _setup()
        host.add_hostile(HostileActor("held", distance=3.0))
        host.add_hostile(HostileActor("loose", distance=8.0, threat_pct=0.0))
        fired = PriorityEngine().select(rules, _snap(host, catalogue))
        assert fired.name == "utility.taunt"
        assert host.casts[-1].ability_id == Role.TAUNT
        assert host.casts[-1].target == "loose"

    def test_never_taunts_boss(self):
        host, catalogue, caster, config, rules = _setup()
        host.add_hostile(HostileActor("boss", distance=3.0, threat_pct=0.0, is_boss=True))
        snap = _snap(host, catalogue)
        assert taunt_candidates(snap, config) == []
        assert PriorityEngine().select(rules, snap) is None

    def test_displace_fallback_when_taunt_unavailable(self):
        host, catalogue, caster, config, rules = _setup()
        host.set_cooldown(Role.TAUNT, 8.0)
        host.add_hostile(HostileActor("loose", distance=8.0, threat_pct=0.0))
        PriorityEngine().select(rules, _snap(host, catalogue))
        assert host.casts[-1].ability_id == Role.DISPLACE

    def test_no_fallback_when_taunt_ready(self):
        host, catalogue, caster, config, rules = _setup()
        host.reject(Role.TAUNT)
        host.add_hostile(HostileActor("loose", distance=8.0, threat_pct=0.0))
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None
        assert host.casts == []


class TestCooldownReset:
    def _config(self):
        return RotationConfig(cooldown_reset_enabled=True)

    def test_resets_when_everything_is_far_from_ready(self):
        host, catalogue, caster, config, rules = _setup(self._config())
        for role in catalogue.reset_roles():
            host.set_cooldown(role, 60.0)
        snap = _snap(host, catalogue)
        assert reset_worthwhile(snap, caster, config)
        assert PriorityEngine().select(rules, snap).name == "utility.cooldown_reset"

    def test_not_when_one_is_nearly_ready(self):
        host, catalogue, caster, config, rules = _setup(self._config())
        for role in catalogue.reset_roles():
            host.set_cooldown(role, 60.0)
        host.set_cooldown(Role.HEALTH_BOOST, 10.0)
        assert not reset_worthwhile(_snap(host, catalogue), caster, config)

    def test_not_while_one_is_running(self):
        host, catalogue, caster, config, rules = _setup(self._config())
        for role in catalogue.reset_roles():
            host.set_cooldown(role, 60.0)
        host.apply_status(StatusRole.BURST, 10.0)
        assert not reset_worthwhile(_snap(host, catalogue), caster, config)

    def test_disabled_by_default(self):
        host, catalogue, caster, config, rules = _setup()
        for role in catalogue.reset_roles():
            host.set_cooldown(role, 60.0)
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None


class TestHealthConsumable:
    def test_used_at_low_health(self):
        host, catalogue, caster, config, rules = _setup()
        host.health = 35.0
        fired = PriorityEngine().select(rules, _snap(host, catalogue))
        assert fired.name == "utility.health_consumable"
        assert host.cast_ids() == [Role.HEALTH_CONSUMABLE]

    def test_not_above_threshold(self):
        host, catalogue, caster, config, rules = _setup()
        host.health = 60.0
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None

    def test_once_per_interval(self):
        host, catalogue, caster, config, rules = _setup()
        host.health = 20.0
        engine = PriorityEngine()
        engine.select(rules, capture_snapshot(host, catalogue, ResourceForecaster(), 0.0, 0.1))
        again = capture_snapshot(host, catalogue, ResourceForecaster(), 30.0, 0.1)
        assert engine.select(rules, again) is None
        later = capture_snapshot(host, catalogue, ResourceForecaster(), 60.0, 0.1)
        assert engine.select(rules, later).name == "utility.health_consumable"
        assert host.cast_ids().count(Role.HEALTH_CONSUMABLE) == 2

    def test_disabled(self):
        host, catalogue, caster, config, rules = _setup(RotationConfig(consumable_enabled=False))
        host.health = 20.0
        assert PriorityEngine().select(rules, _snap(host, catalogue)) is None
