"""Tests for CriticalBufferGuard."""
import pytest

from tick_rotation.buffer import BufferVerdict, CriticalBufferGuard
from tick_rotation.config import RotationConfig
from tick_rotation.snapshot import TickSnapshot
from tick_rotation.types import UNREACHABLE, CriticalBuffer, ForecastResult


def _forecast(current, *times):
    padded = tuple(times) + (UNREACHABLE,) * (6 - len(times))
    return ForecastResult(current=current, time_to=padded)


def _snapshot(buffer, forecast, health=100.0, predicted=100.0, continuous=0.0):
    return TickSnapshot(
        now=0.0,
        tick_duration=0.1,
        forecast=forecast,
        health=health,
        predicted_health=predicted,
        continuous=continuous,
        buffer=buffer,
    )


HEALTHY = CriticalBuffer(stacks=7, remaining=20.0)
LOW_STACKS = CriticalBuffer(stacks=2, remaining=8.0)
SOON = _forecast(1, 0.0, 2.0)
NEVER = _forecast(1, 0.0, 10.0)


class TestNeedsRefresh:
    def test_low_stacks_with_time_left(self):
        guard = CriticalBufferGuard(min_stacks=5, refresh_threshold=5.0)
        assert guard.needs_refresh(LOW_STACKS)

    def test_healthy(self):
        assert not CriticalBufferGuard().needs_refresh(HEALTHY)

    def test_threshold_is_inclusive(self):
        guard = CriticalBufferGuard()
        assert guard.needs_refresh(CriticalBuffer(stacks=7, remaining=5.0))
        assert not guard.needs_refresh(CriticalBuffer(stacks=5, remaining=5.1))

    def test_absent_buffer(self):
        assert CriticalBufferGuard().needs_refresh(CriticalBuffer())


class TestShouldBlockSpending:
    @pytest.mark.parametrize("forecast", [SOON, NEVER, _forecast(0), _forecast(6)])
    def test_never_blocks_without_refresh_need(self, forecast):
        guard = CriticalBufferGuard()
        for stacks in (5, 7, 10):
            for remaining in (5.5, 10.0, 30.0):
                buffer = CriticalBuffer(stacks=stacks, remaining=remaining)
                assert not guard.should_block_spending(buffer, forecast)

    def test_blocks_while_refresh_arrives(self):
        assert CriticalBufferGuard().should_block_spending(LOW_STACKS, SOON)

    def test_no_block_when_refresh_affordable(self):
        guard = CriticalBufferGuard()
        assert not guard.should_block_spending(LOW_STACKS, _forecast(2, 0.0, 0.0))


class TestAssess:
    def test_not_needed(self):
        assert CriticalBufferGuard().assess(HEALTHY, NEVER) is BufferVerdict.NOT_NEEDED

    def test_refresh_now(self):
        verdict = CriticalBufferGuard().assess(LOW_STACKS, _forecast(3, 0.0, 0.0, 0.0))
        assert verdict is BufferVerdict.REFRESH_NOW

    def test_survival_first_when_health_critical(self):
        verdict = CriticalBufferGuard().assess(
            LOW_STACKS, SOON, health=55.0, continuous=60.0, survival_cost=45.0
        )
        assert verdict is BufferVerdict.SURVIVAL_FIRST

    def test_predicted_health_counts_as_critical(self):
        verdict = CriticalBufferGuard().assess(
            LOW_STACKS, SOON, health=90.0, predicted_health=40.0,
            continuous=60.0, survival_cost=45.0,
        )
        assert verdict is BufferVerdict.SURVIVAL_FIRST

    def test_defer_when_healthy(self):
        verdict = CriticalBufferGuard().assess(LOW_STACKS, SOON, continuous=60.0)
        assert verdict is BufferVerdict.DEFER

    def test_defer_when_survival_unaffordable(self):
        verdict = CriticalBufferGuard().assess(
            LOW_STACKS, SOON, health=30.0, continuous=10.0, survival_cost=45.0
        )
        assert verdict is BufferVerdict.DEFER

    def test_block_when_not_soon(self):
        assert CriticalBufferGuard().assess(LOW_STACKS, NEVER) is BufferVerdict.BLOCK


class TestEmergencyAction:
    def test_refresh_attempts_in_order(self):
        calls = []

        def primary():
            calls.append("primary")
            return False

        def ranged():
            calls.append("ranged")
            return True

        outcome = CriticalBufferGuard().emergency_action(
            _snapshot(LOW_STACKS, _forecast(2, 0.0, 0.0)),
            [("primary", primary), ("ranged", ranged)],
        )
        assert calls == ["primary", "ranged"]
        assert outcome.acted
        assert outcome.action == "ranged"
        assert outcome.verdict is BufferVerdict.REFRESH_NOW

    def test_all_refresh_attempts_rejected(self):
        outcome = CriticalBufferGuard().emergency_action(
            _snapshot(LOW_STACKS, _forecast(2, 0.0, 0.0)),
            [("primary", lambda: False)],
        )
        assert not outcome.acted
        assert outcome.action is None

    def test_survival_before_refresh(self):
        calls = []
        outcome = CriticalBufferGuard().emergency_action(
            _snapshot(LOW_STACKS, SOON, health=50.0, continuous=60.0),
            [("refresh", lambda: calls.append("refresh") or True)],
            survival=("strike", lambda: calls.append("strike") or True),
            survival_cost=45.0,
        )
        assert calls == ["strike"]
        assert outcome.action == "strike"
        assert not outcome.blocks_spending

    def test_defer_takes_no_action(self):
        calls = []
        outcome = CriticalBufferGuard().emergency_action(
            _snapshot(LOW_STACKS, SOON),
            [("refresh", lambda: calls.append("refresh") or True)],
            survival=("strike", lambda: calls.append("strike") or True),
        )
        assert calls == []
        assert outcome.verdict is BufferVerdict.DEFER
        assert not outcome.acted

    def test_block_outcome(self):
        outcome = CriticalBufferGuard().emergency_action(
            _snapshot(LOW_STACKS, NEVER), [("refresh", lambda: True)]
        )
        assert outcome.blocks_spending
        assert not outcome.acted


class TestMaintenancePredicates:
    def test_is_low(self):
        guard = CriticalBufferGuard()
        assert guard.is_low(CriticalBuffer())
        assert guard.is_low(CriticalBuffer(stacks=2, remaining=10.0))
        assert guard.is_low(CriticalBuffer(stacks=5, remaining=4.0))
        assert not guard.is_low(CriticalBuffer(stacks=5, remaining=10.0))

    def test_should_stack(self):
        assert CriticalBufferGuard.should_stack(5, 7)
        assert not CriticalBufferGuard.should_stack(7, 7)
        assert not CriticalBufferGuard.should_stack(5, 7, suppressed=True)

    def test_is_optimal(self):
        assert CriticalBufferGuard.is_optimal(7, 7)
        assert not CriticalBufferGuard.is_optimal(6, 7)


class TestConstruction:
    def test_from_config(self):
        config = RotationConfig(buffer_min_stacks=3, buffer_refresh_threshold=2.0)
        guard = CriticalBufferGuard.from_config(config)
        assert guard.min_stacks == 3
        assert guard.refresh_threshold == 2.0
        assert guard.window == config.forecast_window

    def test_invalid(self):
        with pytest.raises(ValueError):
            CriticalBufferGuard(min_stacks=-1)
        with pytest.raises(ValueError):
            CriticalBufferGuard(window=-0.5)
