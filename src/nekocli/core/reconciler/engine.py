"""The dependency reconciler: add, remove and install-all over ``deps.neko``.

Every command follows the same shape:

1. **Resolve** each requested package (registry lookup) and **verify** it
   (integrity digest of its tarball). Packages are independent, so this
   runs concurrently with ``asyncio.gather``; a failure marks only that
   package as FAILED. All outcomes are awaited before moving on.
2. **Persist**: apply the successful outcomes to the lock document one at
   a time, in request order, then write the file once.
3. **Delegate** the real install/uninstall to the package manager. A
   failure here is reported but the lock document change is kept.

Only environment problems (no manifest, lock file not writable) abort a
command; everything else ends up in the ``ReconcileReport``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Sequence

from nekocli.adapters.base import PackageManagerAdapter, RunFlags
from nekocli.config import Settings
from nekocli.core.lockfile import LockDocument, LockEntry
from nekocli.core.manifest import Manifest
from nekocli.core.reconciler.models import (
    IntegrityCheck,
    PackageOutcome,
    ReconcileReport,
    ReconcileState,
    VerifyReport,
)
from nekocli.exceptions import CorruptLockDocument, NekoError, SubprocessError
from nekocli.progress import NullProgress, ProgressReporter
from nekocli.registry.integrity import IntegrityResolver
from nekocli.registry.npm_registry import NpmRegistry, PackageRequest, parse_request

logger = logging.getLogger(__name__)


class DependencyReconciler:
    """Keeps ``deps.neko`` consistent with add / remove / install commands.

    Args:
        project_dir: Project root holding ``package.json`` and ``deps.neko``.
        registry: Registry metadata client.
        integrity: Tarball digest calculator.
        adapter: Package manager that performs the actual install.
        settings: File names and network settings.
        progress: Receives progress events; silent by default.
    """

    def __init__(
        self,
        project_dir: Path,
        *,
        registry: NpmRegistry,
        integrity: IntegrityResolver,
        adapter: PackageManagerAdapter,
        settings: Settings | None = None,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.registry = registry
        self.integrity = integrity
        self.adapter = adapter
        self.settings = settings or Settings()
        self.progress: ProgressReporter = progress or NullProgress()

    @property
    def lock_path(self) -> Path:
        """Location of the project's lock document."""
        return self.project_dir / self.settings.lockfile_name

    # -- Commands -------------------------------------------------------------

    async def add(
        self,
        tokens: Sequence[str],
        *,
        dev: bool = False,
        global_: bool = False,
    ) -> ReconcileReport:
        """Resolve, lock and install ``tokens``.

        Args:
            tokens: ``name`` or ``name@range`` strings, in command-line order.
            dev: Lock and install as devDependencies.
            global_: Install globally; the project lock document is not touched.

        Returns:
            The command report.

        Raises:
            ValueError: If no tokens are given or ``dev`` and ``global_``
                are combined.
            ManifestMissing: For a project install without ``package.json``.
            LockWriteError: If ``deps.neko`` cannot be written.
        """
        self._check_request(tokens, dev=dev, global_=global_)
        report = ReconcileReport(operation="add", lock_path=self.lock_path)

        doc: LockDocument | None = None
        if not global_:
            self._require_manifest()
            doc = LockDocument.load(self.lock_path, self.progress)

        self.progress.step(f"Resolving {len(tokens)} package(s)...")
        report.outcomes = await self._resolve_all(
            [(token, dev) for token in tokens]
        )
        resolved = [o for o in report.outcomes if o.ok]

        if doc is not None and resolved:
            self._persist(doc, resolved, report)

        if resolved:
            await self._delegate(
                report, "install", [o.token for o in resolved],
                RunFlags(global_=global_, dev=dev),
            )
        return self._finish(report)

    async def remove(
        self,
        names: Sequence[str],
        *,
        dev: bool = False,
        global_: bool = False,
    ) -> ReconcileReport:
        """Unlock and uninstall ``names``.

        A name that is not in the lock document is not an error; the
        document is simply left unchanged for it.

        Args:
            names: Package names (a trailing ``@version`` is ignored).
            dev: Remove from devDependencies instead of dependencies.
            global_: Uninstall globally; the project lock document is not touched.

        Returns:
            The command report.

        Raises:
            ValueError: If no names are given or ``dev`` and ``global_``
                are combined.
            ManifestMissing: For a project removal without ``package.json``.
            LockWriteError: If ``deps.neko`` cannot be written.
        """
        self._check_request(names, dev=dev, global_=global_)
        report = ReconcileReport(operation="remove", lock_path=self.lock_path)

        doc: LockDocument | None = None
        before: LockDocument | None = None
        if not global_:
            self._require_manifest()
            doc = LockDocument.load(self.lock_path, self.progress)
            before = doc.copy()

        for raw in names:
            try:
                name = parse_request(raw).name
            except ValueError as exc:
                outcome = PackageOutcome(name=raw, is_dev=dev)
                outcome.fail(exc)
                report.outcomes.append(outcome)
                continue
            outcome = PackageOutcome(name=name, is_dev=dev, state=ReconcileState.PERSISTING)
            if doc is not None and not doc.remove(name, dev):
                outcome.detail = f"not in {self.lock_path.name}"
                logger.info("%s not found in %s; nothing to unlock", name, self.lock_path.name)
            report.outcomes.append(outcome)

        if doc is not None and before is not None and doc != before:
            self._save(doc, before, report)

        targets = [o.name for o in report.outcomes if o.ok]
        if targets:
            await self._delegate(
                report, "uninstall", targets, RunFlags(global_=global_, dev=dev)
            )
        return self._finish(report)

    async def install_all(self) -> ReconcileReport:
        """Install every locked package, locking the manifest first if needed.

        The lock document is authoritative: when it has entries, those
        exact versions are installed and nothing is re-resolved. Only
        when it is empty are the manifest's ranges resolved, digested and
        locked. With neither, the package manager's own install runs.

        Returns:
            The command report.

        Raises:
            ManifestMissing: If the project has no ``package.json``.
            LockWriteError: If ``deps.neko`` cannot be written.
        """
        manifest = self._require_manifest()
        report = ReconcileReport(operation="install", lock_path=self.lock_path)
        doc = LockDocument.load(self.lock_path, self.progress)

        if not doc.is_empty:
            report.source = "lock"
            self.progress.step(f"Installing {len(doc)} locked package(s)...")
            report.outcomes = [
                PackageOutcome(
                    name=name, is_dev=is_dev,
                    state=ReconcileState.PERSISTING, entry=entry,
                )
                for name, entry, is_dev in doc.entries()
            ]
        else:
            specs = manifest.specs()
            if specs:
                report.source = "manifest"
                self.progress.step(
                    f"No packages in {self.lock_path.name}; "
                    f"locking {len(specs)} from {manifest.path.name}..."
                )
                report.outcomes = await self._resolve_all(
                    [(PackageRequest(s.name, s.version_range), s.is_dev) for s in specs]
                )
                resolved = [o for o in report.outcomes if o.ok]
                if resolved:
                    self._persist(doc, resolved, report)
            else:
                report.source = "none"

        if report.source == "none":
            self.progress.step("Nothing to lock; running a plain install...")
            await self._delegate(report, "install", [], RunFlags())
            return self._finish(report)

        ready = [o for o in report.outcomes if o.ok]
        # A name declared in both manifest sections is locked (and installed) as dev only.
        dev_names = {o.name for o in ready if o.is_dev}
        runtime = [o.token for o in ready if not o.is_dev and o.name not in dev_names]
        dev = [o.token for o in ready if o.is_dev]
        if runtime:
            await self._delegate(report, "install", runtime, RunFlags())
        if dev:
            await self._delegate(report, "install", dev, RunFlags(dev=True))
        return self._finish(report)

    async def verify(self, offline: bool = False) -> VerifyReport:
        """Check the lock document's format and, online, its digests.

        Unlike the other commands this reads ``deps.neko`` strictly: a
        corrupt document is an error here, not an empty lock.

        Args:
            offline: Only check the format; do not download tarballs.

        Returns:
            The verification report.

        Raises:
            FileNotFoundError: If the project has no lock document.
            CorruptLockDocument: If the document cannot be parsed.
        """
        if not self.lock_path.is_file():
            raise FileNotFoundError(f"No {self.lock_path.name} found in {self.project_dir}")
        try:
            text = self.lock_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise CorruptLockDocument(f"Cannot read {self.lock_path}: {exc}") from exc
        doc = LockDocument.parse(text)

        report = VerifyReport(lock_path=self.lock_path, problems=doc.validate())
        entries = list(doc.entries())
        if offline or not entries:
            report.checks = [
                IntegrityCheck(name=name, version=entry.version, is_dev=is_dev)
                for name, entry, is_dev in entries
            ]
            return report

        self.progress.step(f"Verifying {len(entries)} locked package(s)...")
        report.checks = list(
            await asyncio.gather(
                *(self._check_one(name, entry, is_dev) for name, entry, is_dev in entries)
            )
        )
        return report

    async def _check_one(self, name: str, entry: LockEntry, is_dev: bool) -> IntegrityCheck:
        check = IntegrityCheck(name=name, version=entry.version, is_dev=is_dev)
        try:
            matches = await self.integrity.verify(entry.resolved, entry.integrity)
        except (NekoError, ValueError) as exc:
            logger.warning("Could not verify %s: %s", name, exc)
            check.status = "error"
            check.detail = str(exc)
            return check
        check.status = "ok" if matches else "mismatch"
        if not matches:
            self.progress.warn(f"{name}@{entry.version} does not match its locked integrity")
        return check

    # -- Resolution -----------------------------------------------------------

    async def _resolve_one(
        self, request: PackageRequest | str, is_dev: bool
    ) -> PackageOutcome:
        """Resolve and digest one package; failures stay inside the outcome."""
        outcome = PackageOutcome(name=str(request), is_dev=is_dev)
        try:
            if isinstance(request, str):
                request = parse_request(request)
            outcome.name = request.name
            outcome.state = ReconcileState.RESOLVING
            resolved = await self.registry.resolve(request)

            outcome.state = ReconcileState.VERIFYING
            digest = await self.integrity.compute_integrity(resolved.tarball)
        except (NekoError, ValueError) as exc:
            logger.warning("Failed to reconcile %s: %s", request, exc)
            outcome.fail(exc)
            return outcome

        outcome.entry = LockEntry(
            version=resolved.version,
            resolved=resolved.tarball,
            integrity=digest,
        )
        return outcome

    async def _resolve_all(
        self, requests: Iterable[tuple[PackageRequest | str, bool]]
    ) -> list[PackageOutcome]:
        """Resolve every request concurrently; outcomes keep request order."""
        return list(
            await asyncio.gather(
                *(self._resolve_one(request, is_dev) for request, is_dev in requests)
            )
        )

    # -- Persistence and delegation --------------------------------------------

    def _persist(
        self,
        doc: LockDocument,
        resolved: list[PackageOutcome],
        report: ReconcileReport,
    ) -> None:
        """Apply resolved outcomes in order, then write the document once."""
        before = doc.copy()
        for outcome in resolved:
            if outcome.entry is None:
                continue
            outcome.state = ReconcileState.PERSISTING
            doc.upsert(outcome.name, outcome.entry, outcome.is_dev)
        self._save(doc, before, report)

    def _save(self, doc: LockDocument, before: LockDocument, report: ReconcileReport) -> None:
        self.progress.step(f"Writing {self.lock_path.name}...")
        doc.save(self.lock_path)
        report.lock_changed = True
        report.changes = before.diff(doc)

    async def _delegate(
        self,
        report: ReconcileReport,
        verb: str,
        packages: list[str],
        flags: RunFlags,
    ) -> None:
        """Run the package manager, recording rather than raising failures."""
        self.progress.step(
            f"Running {self.adapter.name} {verb} {' '.join(packages)}".rstrip()
        )
        try:
            result = await self.adapter.run(verb, packages, flags)
        except SubprocessError as exc:
            logger.warning("%s %s failed: %s", self.adapter.name, verb, exc)
            report.subprocess_errors.append(exc)
            if report.lock_changed:
                self.progress.warn(
                    f"{self.adapter.name} {verb} failed; "
                    f"{self.lock_path.name} keeps the changes already written"
                )
            else:
                self.progress.warn(f"{self.adapter.name} {verb} failed: {exc}")
            return
        report.output += result.stdout

    def _finish(self, report: ReconcileReport) -> ReconcileReport:
        for outcome in report.outcomes:
            if outcome.ok:
                outcome.state = ReconcileState.DONE
            self.progress.package_done(outcome)
        return report

    # -- Preconditions --------------------------------------------------------

    def _require_manifest(self) -> Manifest:
        return Manifest.load(self.project_dir, self.settings.manifest_name)

    @staticmethod
    def _check_request(items: Sequence[str], *, dev: bool, global_: bool) -> None:
        if not items:
            raise ValueError("You must specify at least one package name.")
        if dev and global_:
            raise ValueError("Cannot use --global and --dev together.")
