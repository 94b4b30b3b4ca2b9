"""Lockfile reconciliation for add, remove, install-all and verify.

Public API::

    from nekocli.core.reconciler import DependencyReconciler, build_reconciler
"""

from __future__ import annotations

from nekocli.core.reconciler.engine import DependencyReconciler
from nekocli.core.reconciler.factory import build_reconciler
from nekocli.core.reconciler.models import (
    IntegrityCheck,
    PackageOutcome,
    ReconcileReport,
    ReconcileState,
    VerifyReport,
)

__all__ = [
    "DependencyReconciler",
    "IntegrityCheck",
    "PackageOutcome",
    "ReconcileReport",
    "ReconcileState",
    "VerifyReport",
    "build_reconciler",
]
