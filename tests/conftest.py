"""Global pytest fixtures for FOLIO."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

pytest_plugins = [
    "tests.fixtures.sqlite",
    "tests.fixtures.content_root",
]


@pytest.fixture(autouse=True)
def _restore_root_handlers() -> Iterator[None]:
    """Drop root handlers that hosts or the CLI attach during a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
