"""Shared fixtures for nekocli tests.

Provides a temporary project directory and in-memory stand-ins for the
three collaborators of ``DependencyReconciler`` (registry, integrity
resolver and package-manager adapter), so reconciler and CLI tests never
touch the network or spawn processes.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest

from nekocli.adapters.base import RunFlags, RunResult
from nekocli.core.lockfile import LockEntry
from nekocli.core.reconciler import DependencyReconciler
from nekocli.core.versions import max_satisfying
from nekocli.exceptions import FetchError, MetadataError, SubprocessError
from nekocli.registry.integrity import integrity_of
from nekocli.registry.npm_registry import PackageRequest, ResolvedPackage, parse_request

REGISTRY = "https://registry.example.test"

# name -> published versions, oldest first; the last one is "latest".
DEFAULT_PACKAGES: dict[str, list[str]] = {
    "left-pad": ["1.0.0", "1.1.0", "1.3.0"],
    "chalk": ["4.1.2", "5.0.0", "5.2.0", "5.3.0"],
    "lodash": ["4.17.20", "4.17.21"],
    "typescript": ["5.3.3", "5.4.5"],
    "@types/node": ["20.11.0", "20.12.7"],
}


def tarball_url(name: str, version: str) -> str:
    """Registry-style tarball URL for a fake package."""
    short = name.rsplit("/", 1)[-1]
    return f"{REGISTRY}/{name}/-/{short}-{version}.tgz"


def tarball_bytes(url: str) -> bytes:
    """Deterministic fake tarball content for ``url``."""
    return f"tarball:{url}".encode()


class FakeRegistry:
    """Resolves against an in-memory package table."""

    def __init__(self, packages: dict[str, list[str]] | None = None) -> None:
        self.packages = dict(DEFAULT_PACKAGES if packages is None else packages)
        self.requests: list[str] = []

    async def resolve(self, request: PackageRequest | str) -> ResolvedPackage:
        if isinstance(request, str):
            request = parse_request(request)
        self.requests.append(str(request))
        versions = self.packages.get(request.name)
        if not versions:
            raise MetadataError(f"Package '{request.name}' not found in registry.")
        if request.version_range in (None, "latest"):
            version = versions[-1]
        else:
            try:
                version = max_satisfying(versions, request.version_range)
            except ValueError as exc:
                raise MetadataError(str(exc)) from exc
        if version is None:
            raise MetadataError(f"No version of {request.name} satisfies {request.version_range!r}")
        return ResolvedPackage(request.name, version, tarball_url(request.name, version))


class FakeIntegrity:
    """Digests ``tarball_bytes(url)``; URLs in ``broken`` fail with HTTP 500."""

    def __init__(self) -> None:
        self.broken: set[str] = set()
        self.tampered: set[str] = set()
        self.urls: list[str] = []

    async def compute_integrity(self, url: str, algorithm: str = "sha512") -> str:
        self.urls.append(url)
        if url in self.broken:
            raise FetchError(
                f"Failed to download tarball: HTTP 500 for {url}", url=url, status_code=500
            )
        return integrity_of(tarball_bytes(url), algorithm)

    async def verify(self, url: str, expected: str) -> bool:
        actual = await self.compute_integrity(url)
        return url not in self.tampered and actual == expected


class FakeAdapter:
    """Records invocations instead of running a package manager."""

    name = "npm"

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, list[str], RunFlags]] = []

    async def run(
        self, verb: str, packages: Sequence[str], flags: RunFlags = RunFlags()
    ) -> RunResult:
        argv = ["npm", verb, *packages]
        self.calls.append((verb, list(packages), flags))
        if self.fail:
            raise SubprocessError(
                f"{' '.join(argv)} exited with status 1",
                command=argv,
                returncode=1,
                output="npm ERR! code E404",
            )
        return RunResult(command=argv, returncode=0, stdout="added 1 package\n")


def make_entry(name: str = "left-pad", version: str = "1.3.0") -> LockEntry:
    """Build a lock entry consistent with the fake registry and integrity."""
    url = tarball_url(name, version)
    return LockEntry(version=version, resolved=url, integrity=integrity_of(tarball_bytes(url)))


def write_manifest(
    project_dir: Path,
    dependencies: dict[str, Any] | None = None,
    dev_dependencies: dict[str, Any] | None = None,
) -> Path:
    """Write a package.json into ``project_dir``."""
    data: dict[str, Any] = {"name": "demo-app", "version": "1.0.0"}
    if dependencies is not None:
        data["dependencies"] = dependencies
    if dev_dependencies is not None:
        data["devDependencies"] = dev_dependencies
    path = project_dir / "package.json"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory holding a package.json with no dependencies."""
    project = tmp_path / "demo-app"
    project.mkdir()
    write_manifest(project)
    return project


@pytest.fixture
def lock_path(project_dir: Path) -> Path:
    """Where the project's deps.neko lives (not created)."""
    return project_dir / "deps.neko"


@pytest.fixture
def entry_factory() -> Callable[..., LockEntry]:
    """``make_entry`` as a fixture."""
    return make_entry


@pytest.fixture
def manifest_writer() -> Callable[..., Path]:
    """``write_manifest`` as a fixture."""
    return write_manifest


@pytest.fixture
def registry() -> FakeRegistry:
    """Fake registry with the default package table."""
    return FakeRegistry()


@pytest.fixture
def integrity() -> FakeIntegrity:
    """Fake integrity resolver."""
    return FakeIntegrity()


@pytest.fixture
def adapter() -> FakeAdapter:
    """Fake package manager that always succeeds."""
    return FakeAdapter()


@pytest.fixture
def reconciler(
    project_dir: Path,
    registry: FakeRegistry,
    integrity: FakeIntegrity,
    adapter: FakeAdapter,
) -> DependencyReconciler:
    """Reconciler for ``project_dir`` wired to the fake collaborators."""
    return DependencyReconciler(
        project_dir, registry=registry, integrity=integrity, adapter=adapter
    )


@pytest.fixture
def failing_adapter() -> FakeAdapter:
    """Fake package manager whose every run exits non-zero."""
    return FakeAdapter(fail=True)


@pytest.fixture
def failing_reconciler(
    project_dir: Path,
    registry: FakeRegistry,
    integrity: FakeIntegrity,
    failing_adapter: FakeAdapter,
) -> DependencyReconciler:
    """Reconciler whose package manager always fails."""
    return DependencyReconciler(
        project_dir, registry=registry, integrity=integrity, adapter=failing_adapter
    )
