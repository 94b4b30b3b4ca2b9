"""Tests for NpmRegistry: all HTTP calls go through MockTransport.

Validates request parsing, packument URLs for scoped names, latest /
range / dist-tag selection, and error mapping for missing packages and
incomplete metadata.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from nekocli.config import Settings
from nekocli.exceptions import MetadataError, TransportError
from nekocli.registry.http_client import fetch_json
from nekocli.registry.npm_registry import (
    NpmRegistry,
    PackageRequest,
    ResolvedPackage,
    parse_request,
    select_version,
    tarball_for,
)

REGISTRY = "https://registry.example.test"


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


def _packument(
    name: str = "chalk",
    versions: tuple[str, ...] = ("4.1.2", "5.0.0", "5.2.0", "5.3.0", "6.0.0-beta.1"),
    tags: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build a minimal registry document for ``name``."""
    short = name.rsplit("/", 1)[-1]
    return {
        "name": name,
        "dist-tags": tags if tags is not None else {"latest": "5.3.0", "next": "6.0.0-beta.1"},
        "versions": {
            v: {"name": name, "version": v, "dist": {"tarball": f"{REGISTRY}/{name}/-/{short}-{v}.tgz"}}
            for v in versions
        },
    }


def _registry(documents: dict[str, Any], seen: list[str] | None = None) -> NpmRegistry:
    """NpmRegistry whose transport serves ``documents`` keyed by raw path."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.raw_path.decode()
        if seen is not None:
            seen.append(path)
        doc = documents.get(path)
        if doc is None:
            return httpx.Response(404, json={"error": "Not found"})
        if isinstance(doc, httpx.Response):
            return doc
        return httpx.Response(200, json=doc)

    return NpmRegistry(Settings(registry_url=REGISTRY), transport=httpx.MockTransport(handler))


def _resolve(registry: NpmRegistry, request: PackageRequest | str) -> ResolvedPackage:
    return asyncio.run(registry.resolve(request))


# ---------------------------------------------------------------------------
# parse_request
# ---------------------------------------------------------------------------


class TestParseRequest:
    """Tests for splitting ``name[@range]`` tokens."""

    @pytest.mark.parametrize("token,name,version_range", [
        ("left-pad", "left-pad", None),
        ("chalk@^5.0.0", "chalk", "^5.0.0"),
        ("chalk@latest", "chalk", "latest"),
        ("chalk@", "chalk", None),
        ("@types/node", "@types/node", None),
        ("@types/node@20.x", "@types/node", "20.x"),
        ("  lodash@4.17.21  ", "lodash", "4.17.21"),
    ])
    def test_valid(self, token: str, name: str, version_range: str | None) -> None:
        """Names and ranges are split at the first ``@`` after position 0."""
        assert parse_request(token) == PackageRequest(name, version_range)

    @pytest.mark.parametrize("token", ["", "@", "@^1.0.0", "@scope", "@scope@1.0.0"])
    def test_invalid(self, token: str) -> None:
        """Tokens without a usable package name are rejected."""
        with pytest.raises(ValueError):
            parse_request(token)

    def test_str(self) -> None:
        """str() reproduces the token."""
        assert str(PackageRequest("chalk", "^5.0.0")) == "chalk@^5.0.0"
        assert str(PackageRequest("chalk")) == "chalk"


# ---------------------------------------------------------------------------
# Version selection
# ---------------------------------------------------------------------------


class TestSelectVersion:
    """Tests for select_version and tarball_for."""

    def test_latest_by_default(self) -> None:
        """No range means the latest dist-tag."""
        assert select_version(_packument(), None) == "5.3.0"

    def test_dist_tag(self) -> None:
        """A range naming a dist-tag resolves through the tag."""
        assert select_version(_packument(), "next") == "6.0.0-beta.1"

    def test_range(self) -> None:
        """A range picks the highest satisfying release."""
        assert select_version(_packument(), "^5.0.0") == "5.3.0"
        assert select_version(_packument(), "~5.0.0") == "5.0.0"
        assert select_version(_packument(), "4") == "4.1.2"

    def test_exact(self) -> None:
        """An exact version resolves to itself."""
        assert select_version(_packument(), "5.2.0") == "5.2.0"

    def test_no_match(self) -> None:
        """A range nothing satisfies is a MetadataError."""
        with pytest.raises(MetadataError, match="satisfies"):
            select_version(_packument(), "^9.0.0")

    def test_unsupported_range(self) -> None:
        """Non-registry specs are a MetadataError."""
        with pytest.raises(MetadataError, match="Unsupported"):
            select_version(_packument(), "github:chalk/chalk")

    def test_no_versions(self) -> None:
        """A packument without versions is a MetadataError."""
        with pytest.raises(MetadataError):
            select_version({"name": "ghost", "versions": {}}, None)

    def test_missing_latest(self) -> None:
        """Without a latest tag, a bare request cannot be resolved."""
        with pytest.raises(MetadataError, match="latest"):
            select_version(_packument(tags={}), None)

    def test_dangling_tag(self) -> None:
        """A tag pointing at an unpublished version is a MetadataError."""
        with pytest.raises(MetadataError):
            select_version(_packument(tags={"latest": "9.9.9"}), None)

    def test_tarball(self) -> None:
        """tarball_for reads dist.tarball."""
        assert tarball_for(_packument(), "5.3.0") == f"{REGISTRY}/chalk/-/chalk-5.3.0.tgz"

    def test_missing_tarball(self) -> None:
        """A version without dist.tarball is incomplete metadata."""
        doc = _packument()
        del doc["versions"]["5.3.0"]["dist"]
        with pytest.raises(MetadataError, match="complete metadata"):
            tarball_for(doc, "5.3.0")

    @pytest.mark.parametrize(
        "url",
        [
            "https://registry.example.test:abc/chalk.tgz",
            "chalk-5.3.0.tgz",
            "ftp://registry.example.test/chalk.tgz",
        ],
    )
    def test_invalid_tarball_url(self, url: str) -> None:
        """An unparsable or non-http(s) dist.tarball is malformed metadata."""
        doc = _packument()
        doc["versions"]["5.3.0"]["dist"]["tarball"] = url
        with pytest.raises(MetadataError, match="invalid tarball URL"):
            tarball_for(doc, "5.3.0")


# ---------------------------------------------------------------------------
# NpmRegistry
# ---------------------------------------------------------------------------


class TestNpmRegistry:
    """Tests for NpmRegistry.resolve against a mocked registry."""

    def test_resolve_latest(self) -> None:
        """A bare name resolves to the latest version and its tarball."""
        registry = _registry({"/chalk": _packument()})
        assert _resolve(registry, "chalk") == ResolvedPackage(
            "chalk", "5.3.0", f"{REGISTRY}/chalk/-/chalk-5.3.0.tgz"
        )

    def test_resolve_range(self) -> None:
        """``chalk@^5.0.0`` resolves to the highest 5.x."""
        registry = _registry({"/chalk": _packument()})
        assert _resolve(registry, PackageRequest("chalk", "^5.0.0")).version == "5.3.0"

    def test_scoped_name_url(self) -> None:
        """The slash of a scoped name is percent-encoded in the URL."""
        seen: list[str] = []
        registry = _registry({"/@types%2Fnode": _packument("@types/node", ("20.12.7",), {"latest": "20.12.7"})}, seen)
        resolved = _resolve(registry, "@types/node")
        assert seen == ["/@types%2Fnode"]
        assert resolved.name == "@types/node"
        assert resolved.tarball.endswith("/node-20.12.7.tgz")

    def test_packument_url(self) -> None:
        """packument_url joins the registry base and the escaped name."""
        registry = NpmRegistry(Settings(registry_url=REGISTRY + "/"))
        assert registry.packument_url("@scope/pkg") == f"{REGISTRY}/@scope%2Fpkg"

    def test_not_found(self) -> None:
        """A 404 becomes a 'not found' MetadataError."""
        registry = _registry({})
        with pytest.raises(MetadataError, match="'does-not-exist-xyz' not found in registry"):
            _resolve(registry, "does-not-exist-xyz")

    def test_server_error(self) -> None:
        """Other HTTP failures are MetadataError too."""
        registry = _registry({"/chalk": httpx.Response(500, text="oops")})
        with pytest.raises(MetadataError, match="Failed to fetch"):
            _resolve(registry, "chalk")

    def test_malformed_payload(self) -> None:
        """A JSON array is not a packument."""
        registry = _registry({"/chalk": ["not", "a", "packument"]})
        with pytest.raises(MetadataError, match="malformed"):
            _resolve(registry, "chalk")

    def test_non_json(self) -> None:
        """A body that is not JSON is a MetadataError."""
        registry = _registry({"/chalk": httpx.Response(200, text="<html>")})
        with pytest.raises(MetadataError, match="not valid JSON"):
            _resolve(registry, "chalk")

    def test_invalid_token(self) -> None:
        """An unparseable token is a MetadataError."""
        with pytest.raises(MetadataError):
            _resolve(_registry({}), "@")

    def test_network_failure(self) -> None:
        """Connection failures surface as TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        registry = NpmRegistry(Settings(registry_url=REGISTRY), transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError):
            _resolve(registry, "chalk")


class TestFetchJson:
    """Tests for the shared JSON helper."""

    def test_sends_accept_header(self) -> None:
        """JSON requests ask for application/json."""
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["accept"] = request.headers.get("Accept", "")
            return httpx.Response(200, json={"ok": True})

        async def run() -> Any:
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await fetch_json(client, f"{REGISTRY}/x")

        assert asyncio.run(run()) == {"ok": True}
        assert seen["accept"] == "application/json"
