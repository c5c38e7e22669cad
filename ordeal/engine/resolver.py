"""
Fixture resolution.

Given a test and the context it is invoked from, decide which fixture layers
apply and in which order. The resolver only plans; the engine executes the
plan.

Layers are ordered outer to inner. The suite layer (if any) encloses the
test's own layer, and within each layer the order is::

    wrap( setup; fixture( <inner> ); teardown )

so suite environment is outermost, test environment innermost, and teardowns
mirror setups in reverse.
"""

import logging
from enum import Enum

from pydantic import BaseModel, Field

from ordeal.models import FixtureSet, SuiteDefinition, TestDefinition
from ordeal.registry import Registry

logger = logging.getLogger(__name__)


class ContextKind(str, Enum):
    """Where an invocation comes from.

    - STANDALONE: invoked by name from outside any running test
    - MEMBER: invoked by a suite run as one of its children
    - NESTED: invoked from inside another test's body
    """

    STANDALONE = "standalone"
    MEMBER = "member"
    NESTED = "nested"


class InvocationContext(BaseModel):
    """The call site of a test invocation.

    ``suite`` is an explicit suite given at the call site. ``chain`` lists the
    suites currently being run, outermost first; for MEMBER invocations its
    last entry is the suite whose child is running.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    kind: ContextKind = ContextKind.STANDALONE
    suite: str | None = None
    chain: tuple[str, ...] = ()

    @classmethod
    def standalone(cls, suite: str | None = None) -> "InvocationContext":
        return cls(kind=ContextKind.STANDALONE, suite=suite)

    @classmethod
    def member(cls, chain: list[str] | tuple[str, ...]) -> "InvocationContext":
        return cls(kind=ContextKind.MEMBER, suite=chain[-1] if chain else None, chain=tuple(chain))

    @classmethod
    def nested(cls) -> "InvocationContext":
        return cls(kind=ContextKind.NESTED)


class FixtureLayer(BaseModel):
    """One level of fixtures, named after the test or suite it came from."""

    model_config = {"frozen": True, "extra": "forbid"}

    origin: str = Field(..., description="Test or suite that defined the fixtures")
    fixtures: FixtureSet


class FixturePlan(BaseModel):
    """Ordered fixture layers (outer to inner) for one test invocation."""

    model_config = {"frozen": True, "extra": "forbid"}

    test: str
    suite: str | None = Field(default=None, description="Suite whose fixtures apply")
    layers: list[FixtureLayer] = Field(default_factory=list)

    @property
    def is_bare(self) -> bool:
        """True when the body runs with no fixture at all."""
        return not self.layers


class FixtureResolver:
    """Computes the fixture plan for a test in a given invocation context.

    Rules, in order:

    1. NESTED invocations get no fixtures at all; the enclosing test already
       set up the environment.
    2. The effective suite is the explicit call-site suite if there is one,
       otherwise the test's owning suite, otherwise none.
    3. When running a child suite whose fixtures are all empty, a test with
       no fixtures of its own falls back to the nearest enclosing suite on
       the chain that has fixtures.
    4. The suite's wrap is part of the plan only outside a suite run; during
       a suite run the engine applies it once around the whole run.

    Example:
        >>> resolver = FixtureResolver(registry)
        >>> plan = resolver.resolve(test, InvocationContext.standalone())
        >>> [layer.origin for layer in plan.layers]
        ['arithmetic', 'adds']
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def resolve(self, test: TestDefinition, context: InvocationContext) -> FixturePlan:
        """Resolve the ordered fixture layers for ``test``.

        Args:
            test: The test about to run.
            context: Where the invocation comes from.

        Returns:
            FixturePlan with layers ordered outer to inner.
        """
        if context.kind == ContextKind.NESTED:
            return FixturePlan(test=test.name)

        layers: list[FixtureLayer] = []
        suite = self.effective_suite(test, context)
        if suite is not None:
            fixtures = suite.fixtures
            if context.kind == ContextKind.MEMBER:
                fixtures = fixtures.without_wrap()
            if not fixtures.is_empty:
                layers.append(FixtureLayer(origin=suite.name, fixtures=fixtures))

        if not test.fixtures.is_empty:
            layers.append(FixtureLayer(origin=test.name, fixtures=test.fixtures))

        plan = FixturePlan(test=test.name, suite=suite.name if suite else None, layers=layers)
        logger.debug(
            "Resolved fixtures for '%s' (%s): %s",
            test.name,
            context.kind.value,
            [layer.origin for layer in plan.layers] or "none",
        )
        return plan

    def effective_suite(
        self, test: TestDefinition, context: InvocationContext
    ) -> SuiteDefinition | None:
        """Pick the suite whose fixtures apply to ``test`` in ``context``."""
        if context.kind == ContextKind.NESTED:
            return None

        name = context.suite if context.suite is not None else test.suite
        suite = self._registry.get_suite(name)
        if suite is None:
            if name is not None:
                logger.debug("Suite '%s' for test '%s' is not defined", name, test.name)
            return None

        if (
            context.kind == ContextKind.MEMBER
            and suite.fixtures.is_empty
            and test.fixtures.is_empty
        ):
            for outer_name in reversed(context.chain[:-1]):
                outer = self._registry.get_suite(outer_name)
                if outer is not None and not outer.fixtures.without_wrap().is_empty:
                    return outer
        return suite
