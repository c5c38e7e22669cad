"""
Process-wide registry of test and suite definitions.

Tests and suites share one namespace. Defining a name that already exists
replaces the previous definition, so a developer can redefine a test while
iterating on it without restarting the process.
"""

import logging
from collections.abc import Iterator

from ordeal.errors import DefinitionNotFoundError
from ordeal.models import Definition, SuiteDefinition, TestDefinition

logger = logging.getLogger(__name__)


class Registry:
    """Central registry mapping names to TestDefinition/SuiteDefinition.

    Entries are only ever added or overwritten. Nothing is removed except by
    an explicit ``clear()``, which exists for test isolation.

    Example:
        >>> registry = Registry()
        >>> registry.define(TestDefinition(name="adds", body=lambda: None))
        >>> registry.lookup("adds").name
        'adds'
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._definitions: dict[str, Definition] = {}

    def define(self, definition: Definition) -> Definition | None:
        """Store a definition, replacing any previous one with the same name.

        Args:
            definition: The test or suite definition to store.

        Returns:
            The definition that was replaced, or None for a new name.
        """
        previous = self._definitions.get(definition.name)
        if previous is not None:
            logger.debug(
                "Redefining %s '%s' (was %s)", definition.kind, definition.name, previous.kind
            )
        self._definitions[definition.name] = definition
        return previous

    def lookup(self, name: str) -> Definition:
        """Retrieve a definition by name.

        Raises:
            DefinitionNotFoundError: If nothing is defined under ``name``.
        """
        if name not in self._definitions:
            raise DefinitionNotFoundError(name)
        return self._definitions[name]

    def get(self, name: str) -> Definition | None:
        """Retrieve a definition by name, or None."""
        return self._definitions.get(name)

    def get_suite(self, name: str | None) -> SuiteDefinition | None:
        """Retrieve a suite by name; None if missing or if the name is a test."""
        if name is None:
            return None
        definition = self._definitions.get(name)
        return definition if isinstance(definition, SuiteDefinition) else None

    def has(self, name: str) -> bool:
        return name in self._definitions

    def list_all(self) -> list[Definition]:
        """List all definitions in definition order (a copy)."""
        return list(self._definitions.values())

    def tests(self) -> list[TestDefinition]:
        return [d for d in self._definitions.values() if isinstance(d, TestDefinition)]

    def suites(self) -> list[SuiteDefinition]:
        return [d for d in self._definitions.values() if isinstance(d, SuiteDefinition)]

    def clear(self) -> None:
        """Remove every definition. Intended for test isolation."""
        self._definitions.clear()

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __iter__(self) -> Iterator[str]:
        """Iterate over defined names."""
        return iter(self._definitions)

    def __repr__(self) -> str:
        return f"Registry({len(self.tests())} tests, {len(self.suites())} suites)"
