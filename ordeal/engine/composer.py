"""
Suite membership graph.

Suites hold ordered child names. The graph may contain cycles (a suite can be
added beneath itself); traversal here and in the engine is guarded by a
visited set so it always terminates.
"""

import logging
from collections.abc import Iterator

from ordeal.errors import DefinitionNotFoundError
from ordeal.models import Definition, SuiteDefinition, TestDefinition
from ordeal.registry import Registry

logger = logging.getLogger(__name__)


class SuiteComposer:
    """Builds and queries suite membership.

    Example:
        >>> composer = SuiteComposer(registry)
        >>> composer.add_child("arithmetic", "adds")
        True
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def _suite(self, name: str) -> SuiteDefinition:
        suite = self._registry.get_suite(name)
        if suite is None:
            raise DefinitionNotFoundError(name)
        return suite

    def add_child(self, suite: str, child: str, reassign: bool = False) -> bool:
        """Append ``child`` to ``suite``'s children unless already present.

        When the child is a test without an owner it becomes owned by the
        suite. An existing owner is kept unless ``reassign`` is set.

        Args:
            suite: Name of the parent suite.
            child: Name of the test or suite to append.
            reassign: Make ``suite`` the owner even if the test has one.

        Returns:
            True if the child was appended, False if it was already a member.

        Raises:
            DefinitionNotFoundError: If either name is not defined.
        """
        parent = self._suite(suite)
        definition = self._registry.lookup(child)

        if isinstance(definition, TestDefinition) and (reassign or definition.suite is None):
            definition.suite = parent.name

        if child in parent.children:
            return False
        parent.children.append(child)
        logger.debug("Added %s '%s' to suite '%s'", definition.kind, child, suite)
        return True

    def children(self, suite: str) -> list[Definition]:
        """Resolve a suite's defined children in order, skipping missing names."""
        parent = self._suite(suite)
        resolved = []
        for name in parent.children:
            definition = self._registry.get(name)
            if definition is None:
                logger.warning("Suite '%s' lists undefined child '%s'", suite, name)
                continue
            resolved.append(definition)
        return resolved

    def contains(self, suite: str, child: str) -> bool:
        """True if ``child`` is reachable from ``suite``."""
        return any(depth > 0 and d.name == child for depth, d in self.walk(suite))

    def walk(self, suite: str) -> Iterator[tuple[int, Definition]]:
        """Depth-first traversal yielding ``(depth, definition)`` pairs.

        Each suite is expanded at most once; later occurrences are yielded
        but not descended into.
        """
        visited: set[str] = set()
        yield from self._walk(self._suite(suite), 0, visited)

    def _walk(
        self, definition: Definition, depth: int, visited: set[str]
    ) -> Iterator[tuple[int, Definition]]:
        yield depth, definition
        if not isinstance(definition, SuiteDefinition) or definition.name in visited:
            return
        visited.add(definition.name)
        for name in definition.children:
            child = self._registry.get(name)
            if child is not None:
                yield from self._walk(child, depth + 1, visited)

    def roots(self) -> list[Definition]:
        """Definitions not listed as a child of any suite, in definition order."""
        members: set[str] = set()
        for suite in self._registry.suites():
            members.update(name for name in suite.children if name != suite.name)
        return [d for d in self._registry.list_all() if d.name not in members]
