"""PriorityEngine: first-success evaluation of ordered rule sets."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from tick_rotation.rules import CATEGORY_ORDER, Category, Rule, RuleSet
from tick_rotation.types import InvalidEntityError

if TYPE_CHECKING:
    from tick_rotation.snapshot import TickSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FiredRule:
    """Record of the single action taken in a tick."""

    category: Category
    rule: str
    time: float


class PriorityEngine:
    """Evaluates rules strictly in order; at most one action per call.

    Args:
        on_fire: Called with the record and snapshot when a rule's action
            is accepted.
        on_reject: Called with the category, rule name and snapshot when a
            rule's guard held but its action was rejected.
    """

    def __init__(
        self,
        on_fire: Callable[[FiredRule, TickSnapshot], None] | None = None,
        on_reject: Callable[[Category, str, TickSnapshot], None] | None = None,
    ) -> None:
        self._on_fire = on_fire
        self._on_reject = on_reject

    def select(self, ruleset: RuleSet, snapshot: TickSnapshot) -> Rule | None:
        """Run guards and actions in order; return the rule that fired."""
        for rule in ruleset:
            if rule.discretionary and snapshot.spending_blocked:
                continue
            if not rule.guard(snapshot):
                continue
            if self._dispatch(rule, snapshot):
                return rule
            logger.debug(
                "%s rule %s rejected at t=%.3f",
                ruleset.category.value, rule.name, snapshot.now,
            )
            if self._on_reject is not None:
                self._on_reject(ruleset.category, rule.name, snapshot)
        return None

    def evaluate(self, ruleset: RuleSet, snapshot: TickSnapshot) -> bool:
        """True when a rule fired and the tick is consumed."""
        return self.select(ruleset, snapshot) is not None

    def evaluate_categories(
        self, rulesets: Iterable[RuleSet], snapshot: TickSnapshot
    ) -> FiredRule | None:
        """Evaluate rule sets in category order; stop at the first success.

        Rule sets sharing a category keep their given relative order.
        """
        ordered = sorted(rulesets, key=lambda rs: CATEGORY_ORDER.index(rs.category))
        for ruleset in ordered:
            rule = self.select(ruleset, snapshot)
            if rule is None:
                continue
            record = FiredRule(ruleset.category, rule.name, snapshot.now)
            logger.debug(
                "fired %s rule %s at t=%.3f",
                record.category.value, record.rule, record.time,
            )
            if self._on_fire is not None:
                self._on_fire(record, snapshot)
            return record
        return None

    @staticmethod
    def _dispatch(rule: Rule, snapshot: TickSnapshot) -> bool:
        try:
            return bool(rule.action(snapshot))
        except InvalidEntityError as exc:
            # Target vanished between snapshot and dispatch.
            logger.debug("rule %s: %s", rule.name, exc)
            return False
