"""
Ordeal - Unit tests with composable fixtures and scoped mocks.

Tests and suites are registered by name, grouped into suites that may nest,
and run with layered setup/teardown fixtures. Stubs and mocks installed by a
test are undone when that test finishes.

Usage:
    ordeal run <target> [names...]   # Run tests and suites
    ordeal list <target>             # Show the suite tree
    ordeal init [path]               # Write ordeal.yaml
"""

__version__ = "0.1.0"

from ordeal.api import (
    add_to_suite,
    assertion_group,
    case,
    define_suite,
    define_test,
    fail,
    mock,
    run,
    stub,
    suite,
)
from ordeal.errors import (
    AssertionFailure,
    ConfigError,
    DefinitionNotFoundError,
    FixtureError,
    FixtureNeverInvoked,
    MisuseError,
    OrdealError,
)
from ordeal.mocking import MockRecord, mockable
from ordeal.models import (
    FixtureSet,
    Status,
    SuiteDefinition,
    SuiteOutcome,
    TestDefinition,
    TestOutcome,
)
from ordeal.reporting import OutcomeCollector
from ordeal.runtime import Runtime, get_runtime, reset_runtime, set_runtime

__all__ = [
    "AssertionFailure",
    "ConfigError",
    "DefinitionNotFoundError",
    "FixtureError",
    "FixtureNeverInvoked",
    "FixtureSet",
    "MisuseError",
    "MockRecord",
    "OrdealError",
    "OutcomeCollector",
    "Runtime",
    "Status",
    "SuiteDefinition",
    "SuiteOutcome",
    "TestDefinition",
    "TestOutcome",
    "add_to_suite",
    "assertion_group",
    "case",
    "define_suite",
    "define_test",
    "fail",
    "get_runtime",
    "mock",
    "mockable",
    "reset_runtime",
    "run",
    "set_runtime",
    "stub",
    "suite",
]
