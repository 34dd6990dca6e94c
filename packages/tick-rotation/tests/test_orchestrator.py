"""Tests for TickOrchestrator: end-to-end ticks against the simulated host."""
import pytest

from tick_rotation.buffer import BufferVerdict
from tick_rotation.catalogue import AbilityCatalogue, Role, StatusRole
from tick_rotation.config import MODE_FORCE_B, RotationConfig
from tick_rotation.driver import FixedRateDriver
from tick_rotation.modes import ModeProfile
from tick_rotation.orchestrator import TickOrchestrator
from tick_rotation.rules import Category
from tick_rotation.sim import SimulatedHost
from tick_rotation.types import HostileActor

NO_CAPABILITY = (Role.CAPABILITY_A, Role.CAPABILITY_B)


def _setup(continuous=0.0, continuous_max=120.0, config=None, unlearned=NO_CAPABILITY, **kw):
    catalogue = AbilityCatalogue.generic()
    host = SimulatedHost(
        catalogue,
        continuous=continuous,
        continuous_max=continuous_max,
        unlearned=unlearned,
    )
    host.combat = True
    host.apply_status(StatusRole.BUFFER, 60.0, stacks=7)
    host.add_hostile(HostileActor("m1", distance=3.0, debuffs={StatusRole.DOT: 60.0}))
    orch = TickOrchestrator(host, catalogue, config=config, **kw)
    return host, orch


def _run(host, orch, n):
    fired = []
    for _ in range(n):
        fired.append(orch.tick())
        host.advance(orch.clock.dt)
    return fired


class TestCapping:
    def test_fires_above_threshold(self):
        host, orch = _setup(continuous=110.0)
        record = orch.tick()
        assert record.category is Category.COMBAT
        assert record.rule == "combat.capping"
        assert host.casts[-1].ability_id == Role.SURVIVAL_STRIKE
        assert host.casts[-1].target == "m1"

    def test_quiet_below_threshold(self):
        host, orch = _setup(continuous=90.0)
        record = orch.tick()
        assert record is None or record.rule != "combat.capping"
        assert Role.SURVIVAL_STRIKE not in host.cast_ids()


class TestInterrupt:
    def test_longer_melee_activity_is_blocked(self):
        host, orch = _setup()
        host.add_hostile(HostileActor("long", distance=3.0, casting=True, cast_remaining=1.2))
        host.add_hostile(HostileActor("short", distance=3.0, casting=True, cast_remaining=0.4))
        record = orch.tick()
        assert record.category is Category.INTERRUPT
        assert record.rule == "interrupt.direct"
        assert len(host.casts) == 1
        assert host.casts[0].ability_id == Role.DIRECT_INTERRUPT
        assert host.casts[0].target == "long"

    def test_interrupts_outrank_capping(self):
        host, orch = _setup(continuous=120.0)
        host.add_hostile(HostileActor("long", distance=3.0, casting=True, cast_remaining=1.2))
        assert orch.tick().category is Category.INTERRUPT
        assert Role.SURVIVAL_STRIKE not in host.cast_ids()

    def test_disabled_interrupts(self):
        host, orch = _setup(config=RotationConfig(interrupts_enabled=False))
        host.add_hostile(HostileActor("long", distance=3.0, casting=True, cast_remaining=1.2))
        orch.tick()
        assert Role.DIRECT_INTERRUPT not in host.cast_ids()


class TestNoOpTicks:
    def test_disabled(self):
        host, orch = _setup(continuous=120.0, config=RotationConfig(enabled=False))
        assert orch.tick() is None
        assert host.casts == []
        assert orch.clock.tick_number == 1

    def test_removed_agent(self):
        host, orch = _setup(continuous=120.0)
        host.remove_agent()
        assert orch.tick() is None
        assert host.casts == []
        assert not orch.last_snapshot.agent_valid
        assert orch.clock.tick_number == 1

    def test_agent_returns(self):
        host, orch = _setup(continuous=120.0)
        host.remove_agent()
        orch.tick()
        host.restore_agent()
        assert orch.tick().rule == "combat.capping"

    def test_out_of_combat(self):
        host, orch = _setup(continuous=120.0)
        host.combat = False
        assert orch.tick() is None
        assert host.casts == []


class TestOneActionPerTick:
    def test_never_more_than_one_cast(self):
        host, orch = _setup(continuous=120.0)
        host.add_hostile(HostileActor("m2", distance=4.0))
        for _ in range(30):
            before = len(host.casts)
            orch.tick()
            assert len(host.casts) - before <= 1
            host.advance(orch.clock.dt)

    def test_time_moves_forward(self):
        host, orch = _setup()
        _run(host, orch, 3)
        assert orch.clock.tick_number == 3
        assert orch.last_snapshot.now == pytest.approx(0.2)


class TestCriticalBuffer:
    def test_refresh_now(self):
        host, orch = _setup()
        host.apply_status(StatusRole.BUFFER, 60.0, stacks=2)
        record = orch.tick()
        assert record.rule == "combat.buffer_emergency"
        assert host.casts[-1].ability_id == Role.BUFFER_REFRESH

    def test_pending_refresh_blocks_spending(self):
        host, orch = _setup()
        host.apply_status(StatusRole.BUFFER, 60.0, stacks=2)
        host.discrete_pool.set_ready_times([2.0, 10.0, 10.0, 10.0, 10.0])
        assert orch.tick() is None
        assert host.casts == []
        assert orch.last_snapshot.spending_blocked

    def test_healthy_buffer_does_not_block(self):
        host, orch = _setup()
        orch.tick()
        assert not orch.last_snapshot.spending_blocked

    def test_unaffordable_refresh_blocks_spending(self):
        host, orch = _setup()
        host.apply_status(StatusRole.BUFFER, 60.0, stacks=2)
        host.discrete_pool.set_ready_times([8.0] * 5)
        assert orch.tick() is None
        assert host.casts == []
        assert orch.last_snapshot.spending_blocked
        assert orch.last_snapshot.forecast.current == 1
        assert orch.kit.guard.assess_snapshot(orch.last_snapshot) is BufferVerdict.BLOCK

    def test_unlearned_refresh_never_blocks(self):
        host, orch = _setup(
            unlearned=NO_CAPABILITY + (Role.BUFFER_REFRESH, Role.BUFFER_REFRESH_RANGED)
        )
        host.remove_status(StatusRole.BUFFER)
        host.discrete_pool.set_ready_times([8.0] * 5)
        record = orch.tick()
        assert not orch.last_snapshot.spending_blocked
        assert record.rule == "combat.ground_effect"
        assert host.cast_ids() == [Role.GROUND_EFFECT]

    def test_unlearned_refresh_keeps_spending_over_time(self):
        host, orch = _setup(
            unlearned=NO_CAPABILITY + (Role.BUFFER_REFRESH, Role.BUFFER_REFRESH_RANGED)
        )
        host.remove_status(StatusRole.BUFFER)
        fired = _run(host, orch, 50)
        rules = {record.rule for record in fired if record is not None}
        assert "combat.buffer_emergency" not in rules
        assert Role.BUFFER_REFRESH not in host.cast_ids()
        assert host.discrete_pool.slots_available() < 6


class TestModes:
    def test_default_without_capabilities(self):
        host, orch = _setup()
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.DEFAULT
        assert orch.router.cached is None

    def test_detects_learned_capability(self):
        host, orch = _setup(unlearned=(Role.CAPABILITY_A,))
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.CAPABILITY_B

    def test_probe_order(self):
        host, orch = _setup(unlearned=())
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.CAPABILITY_A

    def test_override(self):
        host, orch = _setup(config=RotationConfig(mode_override=MODE_FORCE_B))
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.CAPABILITY_B

    def test_detection_is_cached_until_reset(self):
        host, orch = _setup(unlearned=())
        orch.tick()
        host.configure(Role.CAPABILITY_A, learned=False)
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.CAPABILITY_A
        orch.reset()
        orch.tick()
        assert orch.last_snapshot.mode is ModeProfile.CAPABILITY_B


class TestBurstWindow:
    def test_area_action_once_per_window(self):
        host, orch = _setup(unlearned=(Role.CAPABILITY_A,))
        host.apply_status(StatusRole.BURST, 12.0)
        record = orch.tick()
        assert record.rule == "combat.window_area_once"
        host.advance(orch.clock.dt)
        _run(host, orch, 4)
        assert host.cast_ids().count(Role.AREA_GENERATOR) == 1

        host.remove_status(StatusRole.BURST)
        _run(host, orch, 1)
        host.apply_status(StatusRole.BURST, 12.0)
        assert orch.tick().rule == "combat.window_area_once"
        assert host.cast_ids().count(Role.AREA_GENERATOR) == 2


class TestSurvivalThrottle:
    def test_one_strike_per_interval_across_ticks(self):
        host, orch = _setup(continuous=200.0, continuous_max=200.0)
        _run(host, orch, 10)
        assert host.cast_ids().count(Role.SURVIVAL_STRIKE) == 1
        _run(host, orch, 1)
        assert host.cast_ids().count(Role.SURVIVAL_STRIKE) == 2

    def test_reset_clears_throttle(self):
        host, orch = _setup(continuous=200.0, continuous_max=200.0)
        orch.tick()
        orch.reset()
        assert orch.kit.survival.throttle.last_use is None
        assert orch.last_fired is None
        assert orch.last_snapshot is None


class TestCallbacks:
    def test_on_fire(self):
        seen = []
        host, orch = _setup(
            continuous=110.0, on_fire=lambda record, snap: seen.append((record, snap))
        )
        record = orch.tick()
        assert seen == [(record, orch.last_snapshot)]
        assert orch.last_fired == record

    def test_on_reject(self):
        rejected = []
        host, orch = _setup(
            continuous=110.0,
            on_reject=lambda category, name, snap: rejected.append(name),
        )
        host.reject(Role.SURVIVAL_STRIKE)
        record = orch.tick()
        assert "combat.capping" in rejected
        assert record is None or record.rule != "combat.capping"


class TestDriver:
    def test_registered_tick_runs_each_frame(self):
        host, orch = _setup(continuous=110.0)
        driver = FixedRateDriver(tps=10, advance=host.advance)
        orch.register(driver)
        driver.run(5)
        assert orch.clock.tick_number == 5
        assert host.now == pytest.approx(0.5)
        assert host.cast_ids()[0] == Role.SURVIVAL_STRIKE
