"""
Ordeal Execution Engine.

Suite composition, fixture resolution, and test execution.
"""

from ordeal.engine.composer import SuiteComposer
from ordeal.engine.resolver import (
    ContextKind,
    FixtureLayer,
    FixturePlan,
    FixtureResolver,
    InvocationContext,
)
from ordeal.engine.runner import ExecutionEngine, OutcomeListener, call_around

__all__ = [
    "ContextKind",
    "ExecutionEngine",
    "FixtureLayer",
    "FixturePlan",
    "FixtureResolver",
    "InvocationContext",
    "OutcomeListener",
    "SuiteComposer",
    "call_around",
]
