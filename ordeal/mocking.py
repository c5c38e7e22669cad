"""
Scoped stubs and mocks.

A stub replaces a callable with one that ignores its arguments and returns a
fixed value. A mock replaces it with an arbitrary substitute that receives
the original arguments. Both are recorded on the scope of the running test
and undone, most recent first, when that test's execution frame unwinds.

Two kinds of target are supported:

- names registered with :func:`mockable`: calls go through an indirection
  table, so every call site sees the replacement, including code holding a
  direct reference to the decorated function;
- any attribute reachable by dotted import path (or an attribute name with
  an explicit ``owner``): the attribute is rebound with ``setattr`` and put
  back afterwards.
"""

import functools
import importlib
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from ordeal.errors import MisuseError

logger = logging.getLogger(__name__)

_MISSING = object()


# =============================================================================
# Indirection Table
# =============================================================================


class BindingTable:
    """Maps mockable names to their current implementation."""

    def __init__(self) -> None:
        self._bindings: dict[str, Callable[..., Any]] = {}

    def bind(self, name: str, implementation: Callable[..., Any]) -> None:
        self._bindings[name] = implementation

    def resolve(self, name: str) -> Callable[..., Any]:
        return self._bindings[name]

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)


BINDINGS = BindingTable()


def mockable(
    func: Callable[..., Any] | None = None, *, name: str | None = None
) -> Any:
    """Register a function in the indirection table.

    The returned wrapper dispatches every call through the table, so a stub
    or mock installed for ``name`` is seen everywhere. The name defaults to
    the function's ``module.qualname``.

    Example:
        >>> @mockable
        ... def fetch_rate(currency):
        ...     ...
        >>> stub("billing.fetch_rate", 1.25)  # inside a running test
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        key = name or f"{fn.__module__}.{fn.__qualname__}"
        BINDINGS.bind(key, fn)

        @functools.wraps(fn)
        def dispatch(*args: Any, **kwargs: Any) -> Any:
            return BINDINGS.resolve(key)(*args, **kwargs)

        dispatch.__mockable_name__ = key  # type: ignore[attr-defined]
        return dispatch

    if func is not None:
        return decorator(func)
    return decorator


# =============================================================================
# Records
# =============================================================================


@dataclass
class MockRecord:
    """One installed replacement and how to undo it."""

    name: str
    kind: str
    original: Any
    replacement: Callable[..., Any]
    restore: Callable[[], None] = field(repr=False)
    calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = field(default_factory=list)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def _resolve_path(path: str) -> tuple[Any, str]:
    """Split a dotted path into (owner object, attribute name).

    Imports the longest importable module prefix and walks the remaining
    attributes.
    """
    parts = path.split(".")
    if len(parts) < 2:
        raise ValueError(f"Cannot resolve '{path}': expected a dotted path or a mockable name")

    for index in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:index])
        try:
            owner: Any = importlib.import_module(module_name)
        except ModuleNotFoundError as e:
            # A module missing from this path falls back to a shorter prefix;
            # errors raised while importing an existing module propagate
            if e.name is None or not (module_name + ".").startswith(e.name + "."):
                raise
            continue
        for attr in parts[index:-1]:
            owner = getattr(owner, attr)
        return owner, parts[-1]

    raise ValueError(f"Cannot resolve '{path}': no importable module prefix")


# =============================================================================
# Manager
# =============================================================================


class MockManager:
    """Installs replacements and restores them when the test scope closes.

    Only one scope is ever open: the engine opens it around a top-level test
    and never for tests invoked from inside a running test.

    Example:
        >>> manager = MockManager()
        >>> with manager.scope("adds"):
        ...     manager.stub("os.getcwd", "/tmp")
        ...     os.getcwd()
        '/tmp'
    """

    def __init__(self, table: BindingTable | None = None) -> None:
        self._table = table if table is not None else BINDINGS
        self._scope: list[MockRecord] | None = None
        self._owner: str | None = None

    @property
    def active(self) -> bool:
        """True while a test scope is open."""
        return self._scope is not None

    @property
    def records(self) -> list[MockRecord]:
        """Replacements installed in the open scope (a copy)."""
        return list(self._scope or [])

    @contextmanager
    def scope(self, owner: str) -> Iterator[None]:
        """Open the mock scope for one test; restore everything on exit.

        Raises:
            MisuseError: If a scope is already open.
        """
        if self._scope is not None:
            raise MisuseError(
                f"Mock scope for '{owner}' opened while '{self._owner}' is still running"
            )
        self._scope = []
        self._owner = owner
        try:
            yield
        finally:
            records, self._scope, self._owner = self._scope, None, None
            self._restore(records, owner)

    def stub(self, target: str, return_value: Any = None, owner: Any = None) -> MockRecord:
        """Replace ``target`` with a callable that always returns ``return_value``."""
        record_calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

        def replacement(*args: Any, **kwargs: Any) -> Any:
            record_calls.append((args, kwargs))
            return return_value

        return self._install(target, "stub", replacement, owner, record_calls)

    def mock(
        self, target: str, replacement: Callable[..., Any], owner: Any = None
    ) -> MockRecord:
        """Replace ``target`` with ``replacement``, which receives the call's arguments."""
        if not callable(replacement):
            raise TypeError(f"Mock replacement for '{target}' must be callable")
        record_calls: list[tuple[tuple[Any, ...], dict[str, Any]]] = []

        def recording(*args: Any, **kwargs: Any) -> Any:
            record_calls.append((args, kwargs))
            return replacement(*args, **kwargs)

        return self._install(target, "mock", recording, owner, record_calls)

    def _install(
        self,
        target: str,
        kind: str,
        replacement: Callable[..., Any],
        owner: Any,
        calls: list[tuple[tuple[Any, ...], dict[str, Any]]],
    ) -> MockRecord:
        if self._scope is None:
            logger.error("%s of '%s' attempted with no running test", kind, target)
            raise MisuseError(
                f"Cannot {kind} '{target}' outside a running test: nothing would restore it"
            )

        if owner is None and target in self._table:
            original = self._table.resolve(target)
            self._table.bind(target, replacement)

            def restore() -> None:
                self._table.bind(target, original)

        else:
            if owner is None:
                owner, attr = _resolve_path(target)
            else:
                attr = target
            # Only the owner's own binding is saved; inherited attributes are
            # restored by deleting the override.
            if hasattr(owner, "__dict__"):
                original = vars(owner).get(attr, _MISSING)
            else:
                original = getattr(owner, attr, _MISSING)
            if original is _MISSING and not hasattr(owner, attr):
                raise AttributeError(f"Cannot {kind} '{target}': attribute does not exist")
            setattr(owner, attr, replacement)

            def restore() -> None:
                if original is _MISSING:
                    delattr(owner, attr)
                else:
                    setattr(owner, attr, original)

        record = MockRecord(
            name=target,
            kind=kind,
            original=original,
            replacement=replacement,
            restore=restore,
            calls=calls,
        )
        self._scope.append(record)
        logger.debug("Installed %s for '%s' in '%s'", kind, target, self._owner)
        return record

    def _restore(self, records: list[MockRecord], owner: str) -> None:
        """Undo records most recent first; every record is attempted."""
        first_error: Exception | None = None
        for record in reversed(records):
            try:
                record.restore()
                logger.debug("Restored '%s' after '%s'", record.name, owner)
            except Exception as e:  # noqa: BLE001
                logger.error("Restoring '%s' after '%s' failed: %s", record.name, owner, e)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error
