"""
Pydantic models for tests, suites, fixtures, and outcomes.

Definitions (TestDefinition, SuiteDefinition) describe what to run and carry
the user's callables. Outcomes (TestOutcome, SuiteOutcome) describe what
happened and serialize to plain dictionaries and YAML for reporters.
"""

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, Field, field_validator

from ordeal.errors import AssertionFailure

# Zero-argument procedure: bodies, setups, teardowns, continuations
Thunk = Callable[[], Any]

# Procedure receiving the continuation it must call exactly once
Around = Callable[[Thunk], Any]


def _validate_name(v: str) -> str:
    if not v.strip():
        raise ValueError("Name must not be empty or whitespace-only")
    return v


def _jsonable(value: Any) -> Any:
    """Render a diagnostic value as plain JSON data, falling back to repr."""
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, list | tuple | set | frozenset):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, Enum):
        return value.value
    return repr(value)


def _dump_yaml(data: dict[str, Any]) -> str:
    result: str = yaml.dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    return result


# =============================================================================
# Fixtures
# =============================================================================


class FixtureSet(BaseModel):
    """The four optional fixture slots of a test or suite.

    - setup: called with no argument before the body
    - teardown: called with no argument after the body, on every exit path
    - fixture: called with the continuation, must call it exactly once
    - wrap: like fixture, but encloses a whole suite run rather than one test

    Example:
        >>> FixtureSet(setup=connect, teardown=disconnect)
    """

    model_config = {"frozen": True, "extra": "forbid"}

    setup: Thunk | None = Field(default=None, description="Runs before the body")
    teardown: Thunk | None = Field(default=None, description="Runs after the body, always")
    fixture: Around | None = Field(default=None, description="Wraps the body per test")
    wrap: Around | None = Field(default=None, description="Wraps a whole run")

    @property
    def is_empty(self) -> bool:
        """True when no slot is filled."""
        return self.setup is None and self.teardown is None and not self.has_around

    @property
    def has_around(self) -> bool:
        return self.fixture is not None or self.wrap is not None

    def without_wrap(self) -> "FixtureSet":
        """Copy of this set with the wrap slot cleared."""
        return FixtureSet(setup=self.setup, teardown=self.teardown, fixture=self.fixture)


# =============================================================================
# Definitions
# =============================================================================


class TestDefinition(BaseModel):
    """A named test: its body plus annotation, fixtures, and owning suite.

    The owning suite is a weak back-reference by name: it is used only to
    look up fallback fixtures and never keeps the suite alive or requires it
    to exist.

    Calling the definition invokes the test by name through the active
    runtime, so a test body can call another test like a function.
    """

    __test__ = False

    model_config = {"extra": "forbid"}

    name: str = Field(..., min_length=1, description="Unique name of the test")
    body: Thunk = Field(..., description="Zero-argument procedure under test")
    annotation: str = Field(default="", description="Opaque annotation for reporting")
    fixtures: FixtureSet = Field(default_factory=FixtureSet)
    suite: str | None = Field(default=None, description="Name of the owning suite")
    run_on_define: bool = Field(default=False, description="Run right after definition")

    @field_validator("name")
    @classmethod
    def name_is_valid(cls, v: str) -> str:
        """Validate that name is not empty or whitespace-only."""
        return _validate_name(v)

    @property
    def kind(self) -> str:
        return "test"

    def __call__(self) -> "Outcome":
        from ordeal.runtime import get_runtime

        return get_runtime().invoke(self.name)


class SuiteDefinition(BaseModel):
    """A named, ordered group of tests and nested suites sharing fixtures.

    Children are stored by name in insertion order and resolved against the
    registry at run time, so redefining a child takes effect in every suite
    that lists it.
    """

    model_config = {"extra": "forbid"}

    name: str = Field(..., min_length=1, description="Unique name of the suite")
    annotation: str = Field(default="", description="Opaque annotation for reporting")
    children: list[str] = Field(default_factory=list, description="Ordered child names")
    fixtures: FixtureSet = Field(default_factory=FixtureSet)
    run_on_define: bool = Field(default=False, description="Run right after definition")

    @field_validator("name")
    @classmethod
    def name_is_valid(cls, v: str) -> str:
        """Validate that name is not empty or whitespace-only."""
        return _validate_name(v)

    @field_validator("children")
    @classmethod
    def children_unique(cls, v: list[str]) -> list[str]:
        """Drop repeated child names, keeping the first occurrence."""
        return list(dict.fromkeys(v))

    @property
    def kind(self) -> str:
        return "suite"

    def __call__(self) -> "Outcome":
        from ordeal.runtime import get_runtime

        return get_runtime().invoke(self.name)


Definition = TestDefinition | SuiteDefinition


# =============================================================================
# Outcomes
# =============================================================================


class Status(str, Enum):
    """Result of running a test or suite."""

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"
    NOT_RUN = "not_run"
    SKIPPED = "skipped"

    @property
    def is_failure(self) -> bool:
        """FAIL and ERROR make an enclosing suite fail."""
        return self in (Status.FAIL, Status.ERROR)


class FailureDetail(BaseModel):
    """Payload of an assertion failure, stored as raised."""

    description: str = Field(..., description="Human-readable failure description")
    values: dict[str, Any] = Field(
        default_factory=dict, description="Evaluated sub-expressions of the check"
    )
    annotation: str | None = Field(default=None, description="Assertion group annotation")

    @classmethod
    def from_exception(cls, exc: AssertionError) -> "FailureDetail":
        if isinstance(exc, AssertionFailure):
            return cls(
                description=exc.description,
                values=exc.values,
                annotation=exc.annotation,
            )
        return cls(description=str(exc) or "assertion failed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "values": _jsonable(self.values),
            "annotation": self.annotation,
        }


class ErrorDetail(BaseModel):
    """An unexpected exception captured at a test or suite boundary."""

    type: str = Field(..., description="Qualified exception class name")
    message: str = Field(default="", description="str() of the exception")
    traceback: str | None = Field(default=None, description="Formatted traceback")

    @classmethod
    def from_exception(cls, exc: BaseException, capture_traceback: bool = True) -> "ErrorDetail":
        import traceback

        exc_type = type(exc)
        formatted = None
        if capture_traceback:
            formatted = "".join(traceback.format_exception(exc_type, exc, exc.__traceback__))
        return cls(
            type=f"{exc_type.__module__}.{exc_type.__qualname__}",
            message=str(exc),
            traceback=formatted,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message, "traceback": self.traceback}


class TestOutcome(BaseModel):
    """Outcome of one test invocation."""

    __test__ = False

    kind: Literal["test"] = "test"
    name: str
    status: Status
    annotation: str = ""
    suite: str | None = Field(default=None, description="Suite whose fixtures applied")
    failure: FailureDetail | None = None
    error: ErrorDetail | None = None
    nested: bool = Field(default=False, description="Ran inside another test's body")
    executed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: float | None = None

    @property
    def passed(self) -> bool:
        return self.status == Status.PASS

    def iter_tests(self) -> Iterator["TestOutcome"]:
        yield self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind,
            "name": self.name,
            "status": self.status.value,
            "annotation": self.annotation,
            "suite": self.suite,
            "failure": self.failure.to_dict() if self.failure else None,
            "error": self.error.to_dict() if self.error else None,
            "nested": self.nested,
            "executed_at": self.executed_at.isoformat(),
            "duration_ms": self.duration_ms,
        }

    def to_yaml(self) -> str:
        """Serialize to YAML format."""
        return _dump_yaml(self.to_dict())


class SuiteOutcome(BaseModel):
    """Outcome of one suite run: ordered child outcomes plus an aggregate."""

    kind: Literal["suite"] = "suite"
    name: str
    status: Status
    annotation: str = ""
    children: list[
        Annotated[Union[TestOutcome, "SuiteOutcome"], Field(discriminator="kind")]
    ] = Field(default_factory=list)
    error: ErrorDetail | None = None
    executed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: float | None = None

    @property
    def passed(self) -> bool:
        return self.status == Status.PASS

    def iter_tests(self) -> Iterator[TestOutcome]:
        """Yield every test outcome beneath this suite, depth first."""
        for child in self.children:
            yield from child.iter_tests()

    def count(self, status: Status) -> int:
        return sum(1 for t in self.iter_tests() if t.status == status)

    @property
    def passed_count(self) -> int:
        return self.count(Status.PASS)

    @property
    def failed_count(self) -> int:
        return self.count(Status.FAIL)

    @property
    def errored_count(self) -> int:
        return self.count(Status.ERROR)

    @property
    def not_run_count(self) -> int:
        return self.count(Status.NOT_RUN)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind,
            "name": self.name,
            "status": self.status.value,
            "annotation": self.annotation,
            "passed": self.passed_count,
            "failed": self.failed_count,
            "errored": self.errored_count,
            "not_run": self.not_run_count,
            "error": self.error.to_dict() if self.error else None,
            "executed_at": self.executed_at.isoformat(),
            "duration_ms": self.duration_ms,
            "children": [child.to_dict() for child in self.children],
        }

    def to_yaml(self) -> str:
        """Serialize to YAML format."""
        return _dump_yaml(self.to_dict())


SuiteOutcome.model_rebuild()

Outcome = TestOutcome | SuiteOutcome
