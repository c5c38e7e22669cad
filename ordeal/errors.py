"""
Exception taxonomy for Ordeal.

Assertion failures are the normal negative result of a test. Everything else
raised while a test runs is an unexpected error. Fixture and misuse errors
describe defects in how the framework itself is being driven.
"""

from typing import Any


class OrdealError(Exception):
    """Base class for framework errors."""


# =============================================================================
# Failure Signal
# =============================================================================


class AssertionFailure(AssertionError):
    """Signal raised by assertions when a check does not hold.

    Carries a human-readable description plus the evaluated sub-expressions
    of the failing check. The engine stores both in the outcome record
    without interpreting them.

    Example:
        >>> raise AssertionFailure("totals differ", values={"left": 3, "right": 4})
    """

    def __init__(
        self,
        description: str,
        values: dict[str, Any] | None = None,
        annotation: str | None = None,
    ) -> None:
        self.description = description
        self.values = dict(values or {})
        self.annotation = annotation
        super().__init__(description)


# =============================================================================
# Registry Errors
# =============================================================================


class DefinitionNotFoundError(KeyError):
    """Raised when a test or suite name is not in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No test or suite named '{name}' is defined")


# =============================================================================
# Fixture Errors
# =============================================================================


class FixtureNeverInvoked(OrdealError):
    """Raised when a fixture or wrap returns without calling its continuation."""

    def __init__(self, origin: str, slot: str = "fixture") -> None:
        self.origin = origin
        self.slot = slot
        super().__init__(f"{slot} of '{origin}' never invoked its continuation")


class FixtureError(OrdealError):
    """Raised when a fixture or wrap calls its continuation more than once."""

    def __init__(self, origin: str, slot: str = "fixture") -> None:
        self.origin = origin
        self.slot = slot
        super().__init__(f"{slot} of '{origin}' invoked its continuation more than once")


# =============================================================================
# Misuse and Configuration
# =============================================================================


class MisuseError(OrdealError):
    """Raised when the framework is driven outside its contract.

    Typical case: installing a stub or mock while no test is running, so
    nothing would own its restoration. Not a test outcome.
    """


class ConfigError(OrdealError):
    """Raised when configuration content cannot be loaded or validated."""
