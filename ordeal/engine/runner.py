"""
Execution engine.

Runs tests and suites. A test's body is threaded through the fixture layers
planned by the resolver, inside a mock scope, and the result is turned into
a TestOutcome. A suite runs its children in declared order, under its wrap,
guarded against revisiting suites so cyclic membership terminates.
"""

import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ordeal.engine.resolver import FixtureLayer, FixturePlan, FixtureResolver, InvocationContext
from ordeal.errors import (
    DefinitionNotFoundError,
    FixtureError,
    FixtureNeverInvoked,
    MisuseError,
)
from ordeal.mocking import MockManager
from ordeal.models import (
    Around,
    Definition,
    ErrorDetail,
    FailureDetail,
    Outcome,
    Status,
    SuiteDefinition,
    SuiteOutcome,
    TestDefinition,
    TestOutcome,
    Thunk,
)
from ordeal.registry import Registry

logger = logging.getLogger(__name__)

# Called with each recorded outcome and whether it is a top-level result
# (not a child of a suite currently running)
OutcomeListener = Callable[[Outcome, bool], None]


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 3)


class _Continuation:
    """Continuation handed to a fixture or wrap; callable exactly once."""

    def __init__(self, inner: Thunk, origin: str, slot: str) -> None:
        self._inner = inner
        self.origin = origin
        self.slot = slot
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        if self.calls > 1:
            raise FixtureError(self.origin, self.slot)
        return self._inner()


def call_around(around: Around, inner: Thunk, origin: str, slot: str) -> None:
    """Call ``around`` with a guarded continuation for ``inner``.

    Raises:
        FixtureNeverInvoked: If ``around`` returned without calling it.
        FixtureError: If ``around`` called it more than once.
    """
    continuation = _Continuation(inner, origin, slot)
    around(continuation)
    if continuation.calls == 0:
        raise FixtureNeverInvoked(origin, slot)


class ExecutionEngine:
    """Runs tests and suites and records their outcomes.

    Per-test boundary: assertion failures become FAIL, a fixture that never
    called its continuation becomes NOT_RUN, anything else becomes ERROR.
    MisuseError is a framework defect and is never turned into an outcome.

    Example:
        >>> engine = ExecutionEngine(registry, FixtureResolver(registry), MockManager())
        >>> engine.run(registry.lookup("arithmetic")).status
        <Status.PASS: 'pass'>
    """

    def __init__(
        self,
        registry: Registry,
        resolver: FixtureResolver,
        mocks: MockManager,
        capture_tracebacks: bool = True,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._mocks = mocks
        self.capture_tracebacks = capture_tracebacks
        self.listeners: list[OutcomeListener] = []

        # Tests currently executing (0 = none); > 0 means nested invocation
        self._depth = 0
        # Suites on the active call stack, outermost first
        self._suite_stack: list[str] = []
        # Suites already entered during the current traversal, and the test
        # depth that traversal started at; a suite invoked from a test body
        # starts a traversal of its own
        self._visited: set[str] | None = None
        self._visited_depth = 0

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def suite_stack(self) -> list[str]:
        return list(self._suite_stack)

    def invoke(self, name: str, suite: str | None = None) -> Outcome:
        """Look up a test or suite by name and run it.

        Raises:
            DefinitionNotFoundError: If ``name`` is not defined.
        """
        return self.run(self._registry.lookup(name), suite=suite)

    def run(self, definition: Definition, suite: str | None = None) -> Outcome:
        """Run a test or suite; ``suite`` is an explicit call-site suite for tests."""
        if isinstance(definition, SuiteDefinition):
            return self.run_suite(definition)
        return self.run_test(definition, InvocationContext.standalone(suite))

    # -------------------------------------------------------------------------
    # Tests
    # -------------------------------------------------------------------------

    def run_test(self, test: TestDefinition, context: InvocationContext) -> TestOutcome:
        """Run one test in ``context`` and record its outcome."""
        if self._depth > 0:
            return self._run_nested(test)

        plan = self._resolver.resolve(test, context)
        executed_at = datetime.now(UTC)
        started = time.perf_counter()
        failure: FailureDetail | None = None
        error: ErrorDetail | None = None

        self._depth += 1
        try:
            with self._mocks.scope(test.name):
                self.compose(plan, test.body)()
        except MisuseError:
            raise
        except FixtureNeverInvoked as e:
            logger.warning("Test '%s' did not run: %s", test.name, e)
            status = Status.NOT_RUN
            error = ErrorDetail.from_exception(e, capture_traceback=False)
        except AssertionError as e:
            status = Status.FAIL
            failure = FailureDetail.from_exception(e)
        except Exception as e:  # noqa: BLE001
            status = Status.ERROR
            error = ErrorDetail.from_exception(e, self.capture_tracebacks)
        else:
            status = Status.PASS
        finally:
            self._depth -= 1

        outcome = TestOutcome(
            name=test.name,
            status=status,
            annotation=test.annotation,
            suite=plan.suite,
            failure=failure,
            error=error,
            executed_at=executed_at,
            duration_ms=_elapsed_ms(started),
        )
        self._emit(outcome)
        return outcome

    def _run_nested(self, test: TestDefinition) -> TestOutcome:
        """Run a test from inside another test: the bare body, no scope.

        Exceptions propagate into the enclosing test.
        """
        logger.debug("Running '%s' nested at depth %d without fixtures", test.name, self._depth)
        started = time.perf_counter()
        test.body()
        return TestOutcome(
            name=test.name,
            status=Status.PASS,
            annotation=test.annotation,
            nested=True,
            duration_ms=_elapsed_ms(started),
        )

    def compose(self, plan: FixturePlan, body: Thunk) -> Thunk:
        """Thread ``body`` through the plan's layers, innermost first.

        A plan with no layers returns the body itself.
        """
        call = body
        for layer in reversed(plan.layers):
            call = self._layered(layer, call)
        return call

    def _layered(self, layer: FixtureLayer, inner: Thunk) -> Thunk:
        fixtures = layer.fixtures

        def run_layer() -> None:
            if fixtures.setup is not None:
                fixtures.setup()
            try:
                if fixtures.fixture is not None:
                    call_around(fixtures.fixture, inner, layer.origin, "fixture")
                else:
                    inner()
            finally:
                if fixtures.teardown is not None:
                    fixtures.teardown()

        if fixtures.wrap is None:
            return run_layer

        def wrapped() -> None:
            call_around(fixtures.wrap, run_layer, layer.origin, "wrap")  # type: ignore[arg-type]

        return wrapped

    # -------------------------------------------------------------------------
    # Suites
    # -------------------------------------------------------------------------

    def run_suite(self, suite: SuiteDefinition) -> SuiteOutcome:
        """Run a suite's children in order under the suite's wrap.

        A suite already entered during the current traversal, or still on
        the call stack, is skipped, which bounds cyclic membership.
        """
        fresh = self._visited is None or self._visited_depth != self._depth
        saved = (self._visited, self._visited_depth)
        if fresh:
            self._visited, self._visited_depth = set(), self._depth
        visited = self._visited
        assert visited is not None
        try:
            if suite.name in visited or suite.name in self._suite_stack:
                logger.debug("Skipping suite '%s': already entered in this pass", suite.name)
                return SuiteOutcome(
                    name=suite.name, status=Status.SKIPPED, annotation=suite.annotation
                )
            visited.add(suite.name)
            self._suite_stack.append(suite.name)
            try:
                outcome = self._run_suite_children(suite)
            finally:
                self._suite_stack.pop()
            self._emit(outcome)
            return outcome
        finally:
            if fresh:
                self._visited, self._visited_depth = saved

    def _run_suite_children(self, suite: SuiteDefinition) -> SuiteOutcome:
        executed_at = datetime.now(UTC)
        started = time.perf_counter()
        children: list[Outcome] = []
        error: ErrorDetail | None = None
        chain = list(self._suite_stack)
        # Inside a running test, failures belong to the enclosing test
        nested = self._depth > 0

        def iterate() -> None:
            for name in suite.children:
                children.append(self._run_child(name, chain))

        try:
            if suite.fixtures.wrap is not None and not nested:
                call_around(suite.fixtures.wrap, iterate, suite.name, "wrap")
            else:
                iterate()
        except MisuseError:
            raise
        except FixtureNeverInvoked as e:
            if nested:
                raise
            logger.warning("Suite '%s' did not run: %s", suite.name, e)
            status = Status.NOT_RUN
            error = ErrorDetail.from_exception(e, capture_traceback=False)
        except Exception as e:  # noqa: BLE001
            if nested:
                raise
            status = Status.ERROR
            error = ErrorDetail.from_exception(e, self.capture_tracebacks)
        else:
            failed = any(child.status.is_failure for child in children)
            status = Status.FAIL if failed else Status.PASS

        outcome = SuiteOutcome(
            name=suite.name,
            status=status,
            annotation=suite.annotation,
            children=children,
            error=error,
            executed_at=executed_at,
            duration_ms=_elapsed_ms(started),
        )
        return outcome

    def _run_child(self, name: str, chain: list[str]) -> Outcome:
        definition = self._registry.get(name)
        if definition is None:
            missing = DefinitionNotFoundError(name)
            if self._depth > 0:
                raise missing
            logger.error("Suite '%s' lists undefined child '%s'", chain[-1], name)
            return TestOutcome(
                name=name,
                status=Status.ERROR,
                suite=chain[-1],
                error=ErrorDetail.from_exception(missing, capture_traceback=False),
            )
        if isinstance(definition, SuiteDefinition):
            return self.run_suite(definition)
        return self.run_test(definition, InvocationContext.member(chain))

    def _emit(self, outcome: Outcome) -> None:
        level = logging.INFO if outcome.status in (Status.PASS, Status.SKIPPED) else logging.WARNING
        logger.log(level, "%s '%s': %s", outcome.kind, outcome.name, outcome.status.value)
        top_level = not self._suite_stack and self._depth == 0
        for listener in self.listeners:
            listener(outcome, top_level)
