"""
Process-wide runtime.

A Runtime bundles the registry, suite composer, fixture resolver, execution
engine, and mock manager, and tracks which suite is being defined so that
inline definitions nest. The module keeps one default Runtime that the
definition API and callable definitions use.
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from ordeal.config import OrdealConfig
from ordeal.engine.composer import SuiteComposer
from ordeal.engine.resolver import FixtureResolver
from ordeal.engine.runner import ExecutionEngine, OutcomeListener
from ordeal.mocking import MockManager, MockRecord
from ordeal.models import (
    Definition,
    FixtureSet,
    Outcome,
    SuiteDefinition,
    TestDefinition,
    Thunk,
)
from ordeal.registry import Registry

logger = logging.getLogger(__name__)


class Runtime:
    """Definitions, execution state, and mocks for one process.

    Example:
        >>> runtime = Runtime()
        >>> runtime.define_suite("arithmetic", fixtures=FixtureSet(setup=reset))
        >>> runtime.define_test("adds", check_addition, suite="arithmetic")
        >>> runtime.invoke("arithmetic").status
        <Status.PASS: 'pass'>
    """

    def __init__(self, config: OrdealConfig | None = None) -> None:
        self.config = config or OrdealConfig()
        self.registry = Registry()
        self.composer = SuiteComposer(self.registry)
        self.resolver = FixtureResolver(self.registry)
        self.mocks = MockManager()
        self.engine = ExecutionEngine(
            self.registry,
            self.resolver,
            self.mocks,
            capture_tracebacks=self.config.capture_tracebacks,
        )
        # Suites whose inline definition block is open, outermost first
        self._defining: list[str] = []

    @property
    def current_suite(self) -> str | None:
        """Innermost suite whose definition block is open."""
        return self._defining[-1] if self._defining else None

    def _run_flag(self, run: bool | None) -> bool:
        return self.config.run_on_define if run is None else run

    # -------------------------------------------------------------------------
    # Definition
    # -------------------------------------------------------------------------

    def define_test(
        self,
        name: str,
        body: Thunk,
        *,
        annotation: str = "",
        fixtures: FixtureSet | None = None,
        suite: str | None = None,
        run: bool | None = None,
    ) -> TestDefinition:
        """Define (or redefine) a test.

        The owner is the explicit ``suite``, else the suite whose definition
        block is open, else the owner of the definition being replaced. The
        test is appended to its owner (when that suite exists) and to the
        open definition block.

        Args:
            name: Unique test name.
            body: Zero-argument procedure.
            annotation: Opaque annotation passed through to outcomes.
            fixtures: The test's own fixtures.
            suite: Owning suite name.
            run: Run immediately; None uses the configured default.

        Returns:
            The stored TestDefinition.
        """
        inline = self.current_suite
        owner = suite or inline
        previous = self.registry.get(name)
        if owner is None and isinstance(previous, TestDefinition):
            owner = previous.suite

        definition = TestDefinition(
            name=name,
            body=body,
            annotation=annotation,
            fixtures=fixtures or FixtureSet(),
            suite=owner,
            run_on_define=self._run_flag(run),
        )
        self.registry.define(definition)

        if self.registry.get_suite(owner) is not None:
            self.composer.add_child(owner, name)  # type: ignore[arg-type]
        if inline is not None and inline != owner:
            self.composer.add_child(inline, name)

        if definition.run_on_define:
            self.engine.run(definition)
        return definition

    def define_suite(
        self,
        name: str,
        *,
        annotation: str = "",
        children: Sequence[str] = (),
        fixtures: FixtureSet | None = None,
        run: bool | None = None,
    ) -> SuiteDefinition:
        """Define (or wholesale redefine) a suite.

        Children that are already defined are added through the composer, so
        unowned tests become owned by this suite; undefined names are kept as
        forward references and resolved when the suite runs.
        """
        definition = SuiteDefinition(
            name=name,
            annotation=annotation,
            fixtures=fixtures or FixtureSet(),
            run_on_define=self._run_flag(run),
        )
        self.registry.define(definition)

        parent = self.current_suite
        if parent is not None and parent != name:
            self.composer.add_child(parent, name)

        for child in children:
            if self.registry.has(child):
                self.composer.add_child(name, child)
            elif child not in definition.children:
                logger.debug("Suite '%s' lists '%s' before it is defined", name, child)
                definition.children.append(child)

        if definition.run_on_define:
            self.engine.run(definition)
        return definition

    @contextmanager
    def defining(
        self,
        name: str,
        *,
        annotation: str = "",
        children: Sequence[str] = (),
        fixtures: FixtureSet | None = None,
        run: bool | None = None,
    ) -> Iterator[SuiteDefinition]:
        """Define a suite whose block collects the tests and suites defined in it.

        The suite exists as soon as the block opens. If its run flag is set
        it runs once the block closes normally.
        """
        definition = self.define_suite(
            name,
            annotation=annotation,
            children=children,
            fixtures=fixtures,
            run=False,
        )
        definition.run_on_define = self._run_flag(run)
        self._defining.append(name)
        try:
            yield definition
        finally:
            self._defining.pop()
        if definition.run_on_define:
            self.engine.run(definition)

    def add_child(self, suite: str, child: str, reassign: bool = False) -> bool:
        return self.composer.add_child(suite, child, reassign=reassign)

    # -------------------------------------------------------------------------
    # Invocation
    # -------------------------------------------------------------------------

    def invoke(self, target: str | Definition, suite: str | None = None) -> Outcome:
        """Run a test or suite, given by name or definition.

        Args:
            target: Name or definition to run.
            suite: Explicit call-site suite whose fixtures a test should use.

        Raises:
            DefinitionNotFoundError: If a name is not defined.
        """
        if isinstance(target, str):
            return self.engine.invoke(target, suite=suite)
        return self.engine.run(target, suite=suite)

    def add_listener(self, listener: OutcomeListener) -> None:
        self.engine.listeners.append(listener)

    # -------------------------------------------------------------------------
    # Mocks
    # -------------------------------------------------------------------------

    def stub(self, target: str, return_value: Any = None, owner: Any = None) -> MockRecord:
        return self.mocks.stub(target, return_value, owner=owner)

    def mock(
        self, target: str, replacement: Callable[..., Any], owner: Any = None
    ) -> MockRecord:
        return self.mocks.mock(target, replacement, owner=owner)

    def __repr__(self) -> str:
        return f"Runtime({self.registry!r}, depth={self.engine.depth})"


_runtime: Runtime | None = None


def get_runtime() -> Runtime:
    """Return the process-wide runtime, creating it on first use."""
    global _runtime
    if _runtime is None:
        _runtime = Runtime()
    return _runtime


def set_runtime(runtime: Runtime) -> Runtime | None:
    """Install ``runtime`` as the process-wide runtime; return the previous one."""
    global _runtime
    previous, _runtime = _runtime, runtime
    return previous


def reset_runtime(config: OrdealConfig | None = None) -> Runtime:
    """Replace the process-wide runtime with a fresh one."""
    runtime = Runtime(config)
    set_runtime(runtime)
    return runtime
