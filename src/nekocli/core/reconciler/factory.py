"""Wiring a ``DependencyReconciler`` from settings.

The CLI calls ``build_reconciler``; tests construct
``DependencyReconciler`` directly with fakes.
"""

from __future__ import annotations

from pathlib import Path

from nekocli.adapters.managers import adapter_for
from nekocli.config import Settings
from nekocli.core.reconciler.engine import DependencyReconciler
from nekocli.progress import ProgressReporter
from nekocli.registry.integrity import IntegrityResolver
from nekocli.registry.npm_registry import NpmRegistry


def build_reconciler(
    project_dir: Path,
    settings: Settings,
    progress: ProgressReporter | None = None,
) -> DependencyReconciler:
    """Create a reconciler backed by the real registry and package manager.

    Args:
        project_dir: Project root.
        settings: Registry, timeout and package-manager choice.
        progress: Progress sink for the command.

    Returns:
        A ready-to-use reconciler.
    """
    return DependencyReconciler(
        project_dir,
        registry=NpmRegistry(settings),
        integrity=IntegrityResolver(settings),
        adapter=adapter_for(project_dir, settings.package_manager),
        settings=settings,
        progress=progress,
    )
