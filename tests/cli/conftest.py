"""Shared fixtures for CLI tests.

Commands build their reconciler through ``build_reconciler``; these
fixtures patch it to return a reconciler wired to the fake registry,
integrity resolver and package manager from the root conftest.
"""

from __future__ import annotations

from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from nekocli.core.reconciler import DependencyReconciler


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def wired(reconciler: DependencyReconciler) -> Iterator[MagicMock]:
    """Patch the command factories to hand out the fake-backed reconciler.

    Yields the mock so tests can inspect the arguments commands passed.
    """
    factory = MagicMock(return_value=reconciler)
    with patch("nekocli.cli.context.build_reconciler", factory), \
            patch("nekocli.cli.verify.build_reconciler", factory):
        yield factory


@pytest.fixture
def wired_failing(failing_reconciler: DependencyReconciler) -> Iterator[MagicMock]:
    """Like ``wired`` but the package manager always fails."""
    factory = MagicMock(return_value=failing_reconciler)
    with patch("nekocli.cli.context.build_reconciler", factory), \
            patch("nekocli.cli.verify.build_reconciler", factory):
        yield factory
