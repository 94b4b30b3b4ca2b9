"""npm registry metadata client.

Resolves a package request (``name`` or ``name@range``) to an exact
version and tarball URL using the registry's packument, the JSON
document listing every published version of a package.

Usage::

    registry = NpmRegistry()
    pkg = await registry.resolve(parse_request("chalk@^5.0.0"))
    pkg.version   # "5.3.0"
    pkg.tarball   # "https://registry.npmjs.org/chalk/-/chalk-5.3.0.tgz"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from nekocli.config import Settings
from nekocli.core.versions import max_satisfying
from nekocli.exceptions import FetchError, MetadataError
from nekocli.registry.http_client import build_client, fetch_json

logger = logging.getLogger(__name__)

LATEST_TAG: str = "latest"


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageRequest:
    """A package named on the command line.

    Attributes:
        name: Package name, possibly scoped ("@scope/pkg").
        version_range: Range, exact version or dist-tag; None means latest.
    """

    name: str
    version_range: str | None = None

    def __str__(self) -> str:
        if self.version_range is None:
            return self.name
        return f"{self.name}@{self.version_range}"


@dataclass(frozen=True)
class ResolvedPackage:
    """A request resolved against registry metadata.

    Attributes:
        name: Package name.
        version: Exact published version.
        tarball: URL of that version's tarball (``dist.tarball``).
    """

    name: str
    version: str
    tarball: str


def parse_request(token: str) -> PackageRequest:
    """Split ``name[@range]`` into a ``PackageRequest``.

    The leading ``@`` of a scoped name is not a separator:
    ``@scope/pkg@^1.0.0`` is ``@scope/pkg`` at ``^1.0.0``.

    Raises:
        ValueError: If the token has no package name.
    """
    token = token.strip()
    split_at = token.find("@", 1)
    if split_at == -1:
        name, version_range = token, None
    else:
        name, version_range = token[:split_at], token[split_at + 1:].strip() or None
    if not name or name == "@" or (name.startswith("@") and "/" not in name):
        raise ValueError(f"Invalid package name in {token!r}")
    return PackageRequest(name=name, version_range=version_range)


# ---------------------------------------------------------------------------
# Version selection
# ---------------------------------------------------------------------------


def select_version(packument: dict[str, Any], version_range: str | None) -> str:
    """Choose the version a request resolves to.

    - No range: the ``latest`` dist-tag.
    - A dist-tag name (e.g., "next"): that tag's version.
    - Anything else: the highest published version satisfying the range.

    Args:
        packument: Registry document for one package.
        version_range: Requested range, or None.

    Returns:
        An exact version string present in ``packument["versions"]``.

    Raises:
        MetadataError: If nothing matches or the metadata is incomplete.
    """
    name = packument.get("name", "<unknown>")
    versions = packument.get("versions")
    if not isinstance(versions, dict) or not versions:
        raise MetadataError(f"Package {name} has no published versions")

    tags = packument.get("dist-tags")
    tags = tags if isinstance(tags, dict) else {}
    wanted = version_range if version_range is not None else LATEST_TAG

    if wanted in tags:
        version = tags[wanted]
        if not isinstance(version, str) or version not in versions:
            raise MetadataError(f"Dist-tag {wanted!r} of {name} points at an unknown version")
        return version

    if version_range is None:
        raise MetadataError(f"Package {name} has no 'latest' dist-tag")

    try:
        version = max_satisfying(versions.keys(), version_range)
    except ValueError as exc:
        raise MetadataError(f"Unsupported version range {version_range!r} for {name}") from exc
    if version is None:
        raise MetadataError(f"No version of {name} satisfies {version_range!r}")
    return version


def tarball_for(packument: dict[str, Any], version: str) -> str:
    """Return ``versions[version].dist.tarball``.

    Raises:
        MetadataError: If the manifest for ``version`` has no tarball URL,
            or the URL is not an absolute http(s) URL.
    """
    name = packument.get("name", "<unknown>")
    manifest = packument.get("versions", {}).get(version)
    dist = manifest.get("dist") if isinstance(manifest, dict) else None
    tarball = dist.get("tarball") if isinstance(dist, dict) else None
    if not isinstance(tarball, str) or not tarball:
        raise MetadataError(
            f"Package {name}@{version} does not have complete metadata (tarball URL)"
        )
    try:
        url = httpx.URL(tarball)
    except httpx.InvalidURL as exc:
        raise MetadataError(f"Package {name}@{version} has an invalid tarball URL: {exc}") from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise MetadataError(f"Package {name}@{version} has an invalid tarball URL: {tarball!r}")
    return tarball


# ---------------------------------------------------------------------------
# Registry client
# ---------------------------------------------------------------------------


class NpmRegistry:
    """Client for an npm-compatible registry.

    Args:
        settings: Registry URL, timeout and User-Agent.
        transport: Optional ``httpx`` transport override (tests).
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._transport = transport

    def packument_url(self, name: str) -> str:
        """URL of the packument; the slash of a scoped name is escaped."""
        return f"{self.settings.registry_url}/{quote(name, safe='@')}"

    async def fetch_packument(self, name: str) -> dict[str, Any]:
        """Fetch the registry document for ``name``.

        Raises:
            MetadataError: If the package does not exist or the payload
                is not a JSON object.
            TransportError: On network failure.
        """
        url = self.packument_url(name)
        async with build_client(self.settings, transport=self._transport) as client:
            try:
                data = await fetch_json(client, url)
            except FetchError as exc:
                if exc.status_code == 404:
                    raise MetadataError(f"Package '{name}' not found in registry.") from exc
                raise MetadataError(f"Failed to fetch package details for {name}: {exc}") from exc
        if not isinstance(data, dict):
            raise MetadataError(f"Registry returned malformed metadata for {name}")
        return data

    async def resolve(self, request: PackageRequest | str) -> ResolvedPackage:
        """Resolve a request to an exact version and tarball URL.

        Args:
            request: A ``PackageRequest`` or a raw ``name[@range]`` token.

        Returns:
            The resolved package.

        Raises:
            MetadataError: Not found, incomplete metadata, or no matching
                version.
            TransportError: On network failure.
        """
        if isinstance(request, str):
            try:
                request = parse_request(request)
            except ValueError as exc:
                raise MetadataError(str(exc)) from exc

        packument = await self.fetch_packument(request.name)
        version = select_version(packument, request.version_range)
        tarball = tarball_for(packument, version)
        logger.debug("Resolved %s to %s (%s)", request, version, tarball)
        return ResolvedPackage(name=request.name, version=version, tarball=tarball)
