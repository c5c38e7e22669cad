"""
Tests for ordeal.mocking module.

Covers stubs and mocks on dotted paths, owner attributes and mockable
names, scope restoration, and misuse outside a running test.
"""

import json
import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from ordeal.errors import MisuseError
from ordeal.mocking import BindingTable, MockManager, mockable
from ordeal.models import Status
from ordeal.runtime import Runtime


@mockable
def exchange_rate(currency: str) -> float:
    return {"EUR": 1.1, "GBP": 1.3}[currency]


@mockable(name="pricing.discount")
def discount(amount: float) -> float:
    return amount * 0.9


def convert(amount: float, currency: str) -> float:
    return amount * exchange_rate(currency)


class Greeter:
    def greet(self, who: str) -> str:
        return f"hello {who}"


# =============================================================================
# Indirection Table
# =============================================================================


class TestMockable:
    """Tests for the mockable decorator."""

    def test_default_name_is_module_and_qualname(self) -> None:
        """The registered name defaults to module.qualname."""
        assert exchange_rate.__mockable_name__ == f"{__name__}.exchange_rate"

    def test_explicit_name(self) -> None:
        """An explicit name overrides the default."""
        assert discount.__mockable_name__ == "pricing.discount"

    def test_dispatch_calls_original(self) -> None:
        """Without a replacement the original implementation runs."""
        assert convert(10, "EUR") == pytest.approx(11.0)
        assert exchange_rate.__name__ == "exchange_rate"

    def test_binding_table(self) -> None:
        """BindingTable should bind and resolve by name."""
        table = BindingTable()
        table.bind("x", len)
        assert "x" in table
        assert table.resolve("x") is len
        assert len(table) == 1


# =============================================================================
# MockManager
# =============================================================================


class TestMockManager:
    """Tests for MockManager scopes."""

    def test_stub_returns_value_regardless_of_arguments(self) -> None:
        """A stubbed mockable returns the fixed value for any arguments."""
        manager = MockManager()
        with manager.scope("t"):
            record = manager.stub(exchange_rate.__mockable_name__, 42)
            assert exchange_rate("EUR") == 42
            assert convert(1, "anything") == 42
            assert record.call_count == 2
        assert exchange_rate("EUR") == pytest.approx(1.1)

    def test_mock_receives_arguments(self) -> None:
        """A mock is called with the original arguments."""
        manager = MockManager()
        with manager.scope("t"):
            record = manager.mock("pricing.discount", lambda amount: amount - 1)
            assert discount(10) == 9
            assert record.calls == [((10,), {})]
        assert discount(10) == pytest.approx(9.0)

    def test_dotted_path_is_restored(self) -> None:
        """Module attributes are rebound and put back."""
        original = os.getcwd
        manager = MockManager()
        with manager.scope("t"):
            manager.stub("os.getcwd", "/nowhere")
            assert os.getcwd() == "/nowhere"
        assert os.getcwd is original

    def test_owner_attribute(self) -> None:
        """An attribute name with an explicit owner is replaced on that object."""
        target = SimpleNamespace(fetch=lambda: "real")
        manager = MockManager()
        with manager.scope("t"):
            manager.stub("fetch", "fake", owner=target)
            assert target.fetch() == "fake"
        assert target.fetch() == "real"

    def test_inherited_method_override_is_removed(self) -> None:
        """Stubbing an inherited attribute on an instance deletes the override after."""
        greeter = Greeter()
        manager = MockManager()
        with manager.scope("t"):
            manager.stub("greet", "hi", owner=greeter)
            assert greeter.greet("x") == "hi"
        assert "greet" not in vars(greeter)
        assert greeter.greet("bob") == "hello bob"

    def test_restoration_is_most_recent_first(self) -> None:
        """Stubbing the same target twice restores the true original."""
        original = json.dumps
        manager = MockManager()
        with manager.scope("t"):
            manager.stub("json.dumps", "first")
            manager.stub("json.dumps", "second")
            assert json.dumps({}) == "second"
        assert json.dumps is original

    def test_restores_after_exception(self) -> None:
        """Replacements are undone when the scope exits with an error."""
        manager = MockManager()
        with pytest.raises(RuntimeError):
            with manager.scope("t"):
                manager.stub("pricing.discount", 0)
                raise RuntimeError("boom")
        assert discount(10) == pytest.approx(9.0)
        assert not manager.active

    def test_stub_outside_scope_is_misuse(self) -> None:
        """Installing without an open scope raises MisuseError and installs nothing."""
        manager = MockManager()
        with pytest.raises(MisuseError):
            manager.stub("pricing.discount", 0)
        assert discount(10) == pytest.approx(9.0)

    def test_second_scope_is_misuse(self) -> None:
        """Only one scope may be open."""
        manager = MockManager()
        with manager.scope("outer"):
            with pytest.raises(MisuseError):
                with manager.scope("inner"):
                    pass
            assert manager.active

    def test_unresolvable_targets(self) -> None:
        """Bad targets raise ordinary errors inside a scope."""
        manager = MockManager()
        with manager.scope("t"):
            with pytest.raises(ValueError):
                manager.stub("undotted")
            with pytest.raises(AttributeError):
                manager.stub("os.no_such_function")
            with pytest.raises(TypeError):
                manager.mock("os.getcwd", "not callable")  # type: ignore[arg-type]
            assert manager.records == []

    def test_import_errors_inside_target_module_propagate(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A module that exists but fails to import raises its own error."""
        (tmp_path / "half_configured_mod.py").write_text(
            'raise ImportError("half configured")\n\ndef func():\n    return 1\n'
        )
        (tmp_path / "missing_dep_mod.py").write_text(
            "import ordeal_absent_dependency\n\ndef func():\n    return 1\n"
        )
        monkeypatch.syspath_prepend(str(tmp_path))
        manager = MockManager()
        with manager.scope("t"):
            with pytest.raises(ImportError, match="half configured"):
                manager.stub("half_configured_mod.func", 2)
            with pytest.raises(ModuleNotFoundError, match="ordeal_absent_dependency"):
                manager.stub("missing_dep_mod.func", 2)
            assert manager.records == []

    def test_failing_restore_still_restores_others(self) -> None:
        """Every record is restored; the first restore error is re-raised."""
        target = SimpleNamespace(a=lambda: "a", b=lambda: "b")
        manager = MockManager()
        with pytest.raises(RuntimeError, match="cannot restore"):
            with manager.scope("t"):
                manager.stub("a", 1, owner=target)
                record = manager.stub("b", 2, owner=target)

                def broken() -> None:
                    raise RuntimeError("cannot restore")

                record.restore = broken
        assert target.a() == "a"


# =============================================================================
# Through the Engine
# =============================================================================


class TestMocksInTests:
    """Tests for mocks installed by running tests."""

    def test_stub_inside_test_then_restored(self, runtime: Runtime) -> None:
        """A stub lasts for the test and is gone afterwards."""
        seen = []

        def body() -> None:
            runtime.stub(exchange_rate.__mockable_name__, 42)
            seen.append(convert(1, "EUR"))

        runtime.define_test("t", body)
        outcome = runtime.invoke("t")
        assert outcome.status == Status.PASS
        assert seen == [42]
        assert convert(1, "EUR") == pytest.approx(1.1)

    def test_restored_after_failure(self, runtime: Runtime) -> None:
        """Replacements are undone when the test fails."""

        def body() -> None:
            runtime.stub("pricing.discount", 0)
            assert discount(10) == 1

        runtime.define_test("t", body)
        assert runtime.invoke("t").status == Status.FAIL
        assert discount(10) == pytest.approx(9.0)

    def test_nested_stub_lives_until_outer_ends(self, runtime: Runtime) -> None:
        """A stub from a nested test joins the enclosing test's scope."""
        seen = []
        inner = runtime.define_test("inner", lambda: runtime.stub("pricing.discount", 5))

        def outer() -> None:
            inner()
            seen.append(discount(100))

        runtime.define_test("outer", outer)
        runtime.invoke("outer")
        assert seen == [5]
        assert discount(100) == pytest.approx(90.0)

    def test_stub_outside_test_raises(self, runtime: Runtime) -> None:
        """Stubbing while no test runs is misuse."""
        with pytest.raises(MisuseError):
            runtime.stub("pricing.discount", 0)

    def test_bad_target_is_error_outcome(self, runtime: Runtime) -> None:
        """Resolution errors inside a test become ERROR, not misuse."""
        runtime.define_test("t", lambda: runtime.stub("os.no_such_function"))
        assert runtime.invoke("t").status == Status.ERROR
