"""Shared pytest fixtures."""

from collections.abc import Iterator

import pytest

from ordeal.runtime import Runtime, reset_runtime


@pytest.fixture(autouse=True)
def runtime() -> Iterator[Runtime]:
    """Give every test a fresh process-wide runtime."""
    yield reset_runtime()
    reset_runtime()
