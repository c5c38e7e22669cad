"""
Outcome collection.

An OutcomeCollector is an engine listener that keeps the top-level outcomes
of a session (suites and standalone tests, not their children) and answers
summary questions about them.
"""

from dataclasses import dataclass, field
from typing import Any

from ordeal.models import Outcome, Status, TestOutcome


@dataclass
class OutcomeCollector:
    """Collects top-level outcomes in the order they finished."""

    outcomes: list[Outcome] = field(default_factory=list)

    def __call__(self, outcome: Outcome, top_level: bool) -> None:
        if top_level:
            self.outcomes.append(outcome)

    def tests(self) -> list[TestOutcome]:
        """Every test outcome, flattened depth first."""
        return [t for outcome in self.outcomes for t in outcome.iter_tests()]

    def count(self, status: Status) -> int:
        return sum(1 for t in self.tests() if t.status == status)

    @property
    def total(self) -> int:
        return len(self.tests())

    @property
    def successful(self) -> bool:
        """True when no outcome failed, errored, or did not run."""
        bad = (Status.FAIL, Status.ERROR, Status.NOT_RUN)
        return all(o.status not in bad for o in self.outcomes) and not any(
            t.status in bad for t in self.tests()
        )

    def summary(self) -> dict[str, int]:
        return {status.value: self.count(status) for status in Status}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total": self.total,
            "successful": self.successful,
            "summary": self.summary(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

    def clear(self) -> None:
        self.outcomes.clear()
