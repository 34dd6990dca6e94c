"""Tests for Rule, RuleSet, guard combinators and PriorityEngine."""
import dataclasses

import pytest

from tick_rotation.engine import FiredRule, PriorityEngine
from tick_rotation.forecast import empty_forecast
from tick_rotation.rules import (
    CATEGORY_ORDER,
    Category,
    Rule,
    RuleSet,
    all_of,
    always,
    any_of,
    negate,
)
from tick_rotation.snapshot import TickSnapshot
from tick_rotation.types import InvalidEntityError


def _snapshot(**changes):
    snap = TickSnapshot(now=1.5, tick_duration=0.1, forecast=empty_forecast(6))
    return dataclasses.replace(snap, **changes)


def _setup():
    """Rules that record guard and action calls into ``log``."""
    log = []

    def rule(name, guard_result, action_result, discretionary=False):
        def guard(snap):
            log.append(("guard", name))
            return guard_result

        def action(snap):
            log.append(("action", name))
            return action_result

        return Rule(name, guard, action, discretionary)

    return log, rule


class TestRuleTypes:
    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            Rule("", always, always)

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            RuleSet(Category.COMBAT, (Rule("a", always, always), Rule("a", always, always)))

    def test_names_and_len(self):
        rs = RuleSet(Category.UTILITY, (Rule("a", always, always), Rule("b", always, always)))
        assert rs.names() == ["a", "b"]
        assert len(rs) == 2

    def test_extend_returns_new_set(self):
        rs = RuleSet(Category.UTILITY, (Rule("a", always, always),))
        extended = rs.extend(Rule("b", always, always))
        assert rs.names() == ["a"]
        assert extended.names() == ["a", "b"]
        assert extended.category is Category.UTILITY

    def test_category_order(self):
        assert CATEGORY_ORDER == (
            Category.UTILITY,
            Category.DEFENSIVE,
            Category.INTERRUPT,
            Category.COMBAT,
        )


class TestCombinators:
    def test_all_of(self):
        snap = _snapshot()
        assert all_of(always, always)(snap)
        assert not all_of(always, negate(always))(snap)

    def test_any_of(self):
        snap = _snapshot()
        assert any_of(negate(always), always)(snap)
        assert not any_of(negate(always))(snap)


class TestSelect:
    def test_first_success_stops_evaluation(self):
        log, rule = _setup()
        rs = RuleSet(
            Category.COMBAT,
            (
                rule("a", False, True),
                rule("b", True, False),
                rule("c", True, True),
                rule("d", True, True),
            ),
        )
        fired = PriorityEngine().select(rs, _snapshot())
        assert fired.name == "c"
        assert ("action", "b") in log
        assert ("action", "a") not in log
        assert ("guard", "d") not in log
        assert [e for e in log if e[0] == "action"] == [("action", "b"), ("action", "c")]

    def test_nothing_fires(self):
        log, rule = _setup()
        rs = RuleSet(Category.COMBAT, (rule("a", False, True), rule("b", True, False)))
        assert not PriorityEngine().evaluate(rs, _snapshot())

    def test_discretionary_skipped_while_blocked(self):
        log, rule = _setup()
        rs = RuleSet(
            Category.COMBAT,
            (rule("spend", True, True, discretionary=True), rule("free", True, True)),
        )
        fired = PriorityEngine().select(rs, _snapshot(spending_blocked=True))
        assert fired.name == "free"
        assert ("guard", "spend") not in log

    def test_discretionary_runs_when_not_blocked(self):
        log, rule = _setup()
        rs = RuleSet(Category.COMBAT, (rule("spend", True, True, discretionary=True),))
        assert PriorityEngine().select(rs, _snapshot()).name == "spend"

    def test_on_reject(self):
        rejected = []
        log, rule = _setup()
        rs = RuleSet(Category.DEFENSIVE, (rule("b", True, False), rule("c", True, True)))
        engine = PriorityEngine(on_reject=lambda cat, name, snap: rejected.append((cat, name)))
        engine.select(rs, _snapshot())
        assert rejected == [(Category.DEFENSIVE, "b")]

    def test_vanished_entity_is_a_rejection(self):
        def boom(snap):
            raise InvalidEntityError("hostile-1")

        rs = RuleSet(
            Category.COMBAT,
            (Rule("vanished", always, boom), Rule("next", always, always)),
        )
        assert PriorityEngine().select(rs, _snapshot()).name == "next"


class TestEvaluateCategories:
    def test_category_order_wins_over_argument_order(self):
        log, rule = _setup()
        combat = RuleSet(Category.COMBAT, (rule("combat.a", True, True),))
        utility = RuleSet(Category.UTILITY, (rule("utility.a", True, True),))
        record = PriorityEngine().evaluate_categories([combat, utility], _snapshot())
        assert record == FiredRule(Category.UTILITY, "utility.a", 1.5)
        assert ("guard", "combat.a") not in log

    def test_falls_through_categories(self):
        log, rule = _setup()
        defensive = RuleSet(Category.DEFENSIVE, (rule("defensive.a", True, False),))
        interrupt = RuleSet(Category.INTERRUPT, (rule("interrupt.a", True, True),))
        record = PriorityEngine().evaluate_categories([interrupt, defensive], _snapshot())
        assert record.category is Category.INTERRUPT
        assert record.rule == "interrupt.a"

    def test_at_most_one_action(self):
        accepted = []

        def accept(snap):
            accepted.append(1)
            return True

        sets = [
            RuleSet(cat, tuple(Rule(f"{cat.value}.{i}", always, accept) for i in range(3)))
            for cat in Category
        ]
        fired = []
        engine = PriorityEngine(on_fire=lambda record, snap: fired.append(record))
        engine.evaluate_categories(sets, _snapshot())
        assert len(accepted) == 1
        assert len(fired) == 1

    def test_none_when_nothing_fires(self):
        sets = [RuleSet(Category.COMBAT, (Rule("x", negate(always), always),))]
        assert PriorityEngine().evaluate_categories(sets, _snapshot()) is None
