"""Rule and RuleSet types plus guard combinators."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator

if TYPE_CHECKING:
    from tick_rotation.snapshot import TickSnapshot

Guard = Callable[["TickSnapshot"], bool]
RuleAction = Callable[["TickSnapshot"], bool]


class Category(Enum):
    """Rule categories, declared in evaluation order."""

    UTILITY = "utility"
    DEFENSIVE = "defensive"
    INTERRUPT = "interrupt"
    COMBAT = "combat"


CATEGORY_ORDER: tuple[Category, ...] = tuple(Category)


@dataclass(frozen=True)
class Rule:
    """A guarded action. Priority is the rule's position in its RuleSet.

    Attributes:
        name: Unique name within the rule set, used in logs and records.
        guard: Pure predicate over the tick snapshot.
        action: Dispatches to the action primitive; True when accepted.
        discretionary: Spends the discrete resource and is skipped while
            spending is blocked for a buffer refresh.
    """

    name: str
    guard: Guard
    action: RuleAction
    discretionary: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Rule name must be non-empty")


@dataclass(frozen=True)
class RuleSet:
    """Ordered, immutable rules of one category."""

    category: Category
    rules: tuple[Rule, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.name in seen:
                raise ValueError(
                    f"Duplicate rule name {rule.name!r} in {self.category.value} rule set"
                )
            seen.add(rule.name)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)

    def names(self) -> list[str]:
        return [r.name for r in self.rules]

    def extend(self, *rules: Rule) -> RuleSet:
        """Return a new rule set with ``rules`` appended."""
        return RuleSet(self.category, self.rules + tuple(rules))


def always(snapshot: TickSnapshot) -> bool:
    return True


def all_of(*guards: Guard) -> Guard:
    def guard(snapshot: TickSnapshot) -> bool:
        return all(g(snapshot) for g in guards)

    return guard


def any_of(*guards: Guard) -> Guard:
    def guard(snapshot: TickSnapshot) -> bool:
        return any(g(snapshot) for g in guards)

    return guard


def negate(guard: Guard) -> Guard:
    def inverted(snapshot: TickSnapshot) -> bool:
        return not guard(snapshot)

    return inverted
