"""
Definition and invocation API.

Module-level functions operating on the process-wide runtime::

    from ordeal import case, fail, run, stub, suite

    with suite("arithmetic", setup=reset_counter):

        @case
        def adds():
            \"\"\"Addition of small integers.\"\"\"
            if 1 + 1 != 2:
                fail("sum is wrong", left=1 + 1, right=2)

    run("arithmetic")
"""

import inspect
from collections.abc import Callable, Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from typing import Any, NoReturn

from ordeal.errors import AssertionFailure
from ordeal.mocking import MockRecord
from ordeal.models import (
    Around,
    Definition,
    FixtureSet,
    Outcome,
    SuiteDefinition,
    TestDefinition,
    Thunk,
)
from ordeal.runtime import get_runtime


def _fixture_set(
    fixtures: FixtureSet | None,
    setup: Thunk | None,
    teardown: Thunk | None,
    fixture: Around | None,
    wrap: Around | None,
) -> FixtureSet | None:
    slots = {"setup": setup, "teardown": teardown, "fixture": fixture, "wrap": wrap}
    given = {slot: fn for slot, fn in slots.items() if fn is not None}
    if fixtures is not None:
        if given:
            raise ValueError("Pass either fixtures= or individual fixture slots, not both")
        return fixtures
    return FixtureSet(**given) if given else None


# =============================================================================
# Definition
# =============================================================================


def define_test(
    name: str,
    body: Thunk,
    *,
    annotation: str = "",
    fixtures: FixtureSet | None = None,
    setup: Thunk | None = None,
    teardown: Thunk | None = None,
    fixture: Around | None = None,
    wrap: Around | None = None,
    suite: str | None = None,
    run: bool | None = None,
) -> TestDefinition:
    """Define (or redefine) a test.

    Args:
        name: Unique test name.
        body: Zero-argument procedure; raise AssertionError/AssertionFailure to fail.
        annotation: Opaque annotation passed through to outcomes.
        fixtures: A complete FixtureSet, or use the individual slot arguments.
        suite: Owning suite; its fixtures apply when no suite is given at the call site.
        run: Run immediately after definition; None uses the configured default.

    Returns:
        The TestDefinition. Calling it runs the test.
    """
    return get_runtime().define_test(
        name,
        body,
        annotation=annotation,
        fixtures=_fixture_set(fixtures, setup, teardown, fixture, wrap),
        suite=suite,
        run=run,
    )


def case(
    name: str | Callable[[], Any] | None = None,
    *,
    annotation: str | None = None,
    fixtures: FixtureSet | None = None,
    setup: Thunk | None = None,
    teardown: Thunk | None = None,
    fixture: Around | None = None,
    wrap: Around | None = None,
    suite: str | None = None,
    run: bool | None = None,
) -> Any:
    """Decorator defining a test from a function.

    Usable bare (``@case``) or with arguments (``@case("name", run=True)``).
    The name defaults to the function name and the annotation to its
    docstring.
    """
    test_name = None if callable(name) else name

    def decorator(func: Callable[[], Any]) -> TestDefinition:
        text = annotation if annotation is not None else inspect.getdoc(func) or ""
        return define_test(
            test_name or func.__name__,
            func,
            annotation=text,
            fixtures=fixtures,
            setup=setup,
            teardown=teardown,
            fixture=fixture,
            wrap=wrap,
            suite=suite,
            run=run,
        )

    if callable(name):
        return decorator(name)
    return decorator


def define_suite(
    name: str,
    *,
    annotation: str = "",
    children: Sequence[str] = (),
    fixtures: FixtureSet | None = None,
    setup: Thunk | None = None,
    teardown: Thunk | None = None,
    fixture: Around | None = None,
    wrap: Around | None = None,
    run: bool | None = None,
) -> SuiteDefinition:
    """Define (or redefine) a suite with an ordered list of child names."""
    return get_runtime().define_suite(
        name,
        annotation=annotation,
        children=children,
        fixtures=_fixture_set(fixtures, setup, teardown, fixture, wrap),
        run=run,
    )


def suite(
    name: str,
    *,
    annotation: str = "",
    children: Sequence[str] = (),
    fixtures: FixtureSet | None = None,
    setup: Thunk | None = None,
    teardown: Thunk | None = None,
    fixture: Around | None = None,
    wrap: Around | None = None,
    run: bool | None = None,
) -> AbstractContextManager[SuiteDefinition]:
    """Context manager defining a suite inline.

    Tests and suites defined inside the block become its children, in
    definition order. With ``run=True`` the suite runs when the block closes.
    """
    return get_runtime().defining(
        name,
        annotation=annotation,
        children=children,
        fixtures=_fixture_set(fixtures, setup, teardown, fixture, wrap),
        run=run,
    )


def add_to_suite(suite: str, child: str, *, reassign: bool = False) -> bool:
    """Append an existing test or suite to a suite; False if already a member."""
    return get_runtime().add_child(suite, child, reassign=reassign)


# =============================================================================
# Invocation
# =============================================================================


def run(target: str | Definition, *, suite: str | None = None) -> Outcome:
    """Run a test or suite by name (or definition) and return its outcome."""
    return get_runtime().invoke(target, suite=suite)


# =============================================================================
# Mocks
# =============================================================================


def stub(target: str, return_value: Any = None, *, owner: Any = None) -> MockRecord:
    """Make ``target`` return ``return_value`` for the rest of the running test."""
    return get_runtime().stub(target, return_value, owner=owner)


def mock(target: str, replacement: Callable[..., Any], *, owner: Any = None) -> MockRecord:
    """Replace ``target`` with ``replacement`` for the rest of the running test."""
    return get_runtime().mock(target, replacement, owner=owner)


# =============================================================================
# Failure Signal
# =============================================================================


def fail(description: str, /, **values: Any) -> NoReturn:
    """Fail the running test with a description and the values involved."""
    raise AssertionFailure(description, values=values)


@contextmanager
def assertion_group(annotation: str) -> Iterator[None]:
    """Attach ``annotation`` to assertion failures raised inside the block.

    Plain AssertionError is converted into an AssertionFailure. Failures
    that already carry an annotation keep it.
    """
    try:
        yield
    except AssertionFailure as e:
        if e.annotation is None:
            e.annotation = annotation
        raise
    except AssertionError as e:
        raise AssertionFailure(str(e) or "assertion failed", annotation=annotation) from e
