"""Reconciliation result models.

``PackageOutcome`` tracks one package through the reconciliation state
machine; ``ReconcileReport`` collects the outcomes of one command along
with what happened to the lock document and the package manager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from nekocli.core.lockfile import LockEntry
from nekocli.exceptions import NekoError, SubprocessError


class ReconcileState(Enum):
    """Where a package is in the reconciliation state machine.

    ``IDLE -> RESOLVING -> VERIFYING -> PERSISTING -> DONE``, with
    ``FAILED`` reachable from ``RESOLVING`` and ``VERIFYING``. Removals
    and pinned installs skip straight to ``PERSISTING``.
    """

    IDLE = "idle"
    RESOLVING = "resolving"
    VERIFYING = "verifying"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PackageOutcome:
    """The result of reconciling one package.

    Attributes:
        name: Package name.
        is_dev: Whether the package targets devDependencies.
        state: Current (after the command: final) state.
        entry: Lock entry, once resolved and digested.
        error: Failure message when ``state`` is FAILED.
        detail: Extra note for the user (e.g., "not in deps.neko").
        exception: The error that failed the package, if any.
    """

    name: str
    is_dev: bool = False
    state: ReconcileState = ReconcileState.IDLE
    entry: LockEntry | None = None
    error: str | None = None
    detail: str = ""
    exception: NekoError | None = field(default=None, repr=False, compare=False)

    @property
    def ok(self) -> bool:
        """True unless the package failed."""
        return self.state is not ReconcileState.FAILED

    @property
    def token(self) -> str:
        """``name@version`` when resolved, else the bare name."""
        if self.entry is None:
            return self.name
        return f"{self.name}@{self.entry.version}"

    def fail(self, exc: Exception) -> None:
        """Move to FAILED, keeping the error for the report."""
        self.state = ReconcileState.FAILED
        self.error = str(exc)
        if isinstance(exc, NekoError):
            self.exception = exc


@dataclass
class ReconcileReport:
    """Summary of one add / remove / install command.

    Attributes:
        operation: "add", "remove" or "install".
        lock_path: Location of the lock document.
        outcomes: Per-package outcomes, in request order.
        source: For installs, where the package list came from:
            "lock", "manifest" or "none".
        lock_changed: Whether the lock document was rewritten.
        changes: ``LockDocument.diff`` of the rewrite (empty if unchanged).
        subprocess_errors: Package-manager failures. The lock document
            keeps its changes even when this is non-empty.
        output: Captured package-manager output.
    """

    operation: str
    lock_path: Path
    outcomes: list[PackageOutcome] = field(default_factory=list)
    source: str = ""
    lock_changed: bool = False
    changes: dict[str, Any] = field(default_factory=dict)
    subprocess_errors: list[SubprocessError] = field(default_factory=list)
    output: str = ""

    @property
    def succeeded(self) -> list[str]:
        """Names of packages that did not fail."""
        return [o.name for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[str]:
        """Names of packages that failed resolution or verification."""
        return [o.name for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        """True when no package failed and the package manager succeeded."""
        return not self.failed and not self.subprocess_errors


@dataclass
class IntegrityCheck:
    """Re-download result for one locked package.

    Attributes:
        name: Package name.
        version: Locked version.
        is_dev: Whether the entry is in devDependencies.
        status: "ok", "mismatch", "error" or "skipped".
        detail: Error message for "error", empty otherwise.
    """

    name: str
    version: str
    is_dev: bool = False
    status: str = "skipped"
    detail: str = ""


@dataclass
class VerifyReport:
    """Result of checking a lock document.

    Attributes:
        lock_path: Location of the lock document.
        problems: Format problems from ``LockDocument.validate``.
        checks: Integrity checks, one per entry ("skipped" when offline).
    """

    lock_path: Path
    problems: list[str] = field(default_factory=list)
    checks: list[IntegrityCheck] = field(default_factory=list)

    @property
    def mismatched(self) -> list[str]:
        """Names whose tarball no longer matches the locked digest."""
        return [c.name for c in self.checks if c.status == "mismatch"]

    @property
    def ok(self) -> bool:
        """True when the document is well formed and every check passed."""
        return not self.problems and all(c.status in ("ok", "skipped") for c in self.checks)
