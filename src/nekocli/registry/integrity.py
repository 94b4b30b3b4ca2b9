"""Integrity digests for package tarballs.

Computes Subresource-Integrity style digests (``sha512-<base64>``) over
the exact bytes served at a tarball URL. The response body is streamed
through the hash chunk by chunk, so large tarballs are never held in
memory.

The format is the one npm writes to ``package-lock.json``, so a digest
can be re-derived from a downloaded tarball with any standard tool::

    openssl dgst -sha512 -binary pkg.tgz | base64

No retries happen here; a failed download is reported to the caller as
``FetchError`` (HTTP status) or ``TransportError`` (network).

References
----------
.. [SRI] W3C (2016). "Subresource Integrity."
   https://www.w3.org/TR/SRI/
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging

import httpx

from nekocli.config import Settings
from nekocli.exceptions import FetchError, TransportError
from nekocli.registry.http_client import build_client

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM: str = "sha512"
SUPPORTED_ALGORITHMS: frozenset[str] = frozenset({"sha1", "sha256", "sha384", "sha512"})

# Read size for streamed downloads (bytes).
CHUNK_SIZE: int = 64 * 1024


def format_integrity(algorithm: str, digest: bytes) -> str:
    """Render a raw digest as ``<algorithm>-<standard base64>``."""
    return f"{algorithm}-{base64.b64encode(digest).decode('ascii')}"


def integrity_of(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> str:
    """Compute the integrity string for in-memory bytes.

    Args:
        data: Artifact content.
        algorithm: Hash algorithm name.

    Returns:
        Integrity string; ``integrity_of(b"")`` is
        "sha512-z4PhNX7vuL3xVChQ1m2AB9Yg5AULVxXcg/SpIdNs6c5H0NE8XYXysP+DGNKHfuwvY7kxvUdBeoGlODJ6+SfaPg==".
    """
    return format_integrity(algorithm, hashlib.new(algorithm, data).digest())


def parse_integrity(integrity: str) -> tuple[str, bytes]:
    """Split an integrity string into algorithm and raw digest.

    Raises:
        ValueError: If the string is malformed or the algorithm unsupported.
    """
    algorithm, sep, encoded = integrity.partition("-")
    if not sep or algorithm not in SUPPORTED_ALGORITHMS:
        raise ValueError(f"Unsupported integrity string: {integrity!r}")
    try:
        return algorithm, base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 in integrity string: {integrity!r}") from exc


class IntegrityResolver:
    """Computes integrity digests for remote artifacts.

    Args:
        settings: Timeout and User-Agent source.
        transport: Optional ``httpx`` transport override (tests).
        chunk_size: Streaming read size in bytes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self.settings = settings or Settings()
        self._transport = transport
        self.chunk_size = chunk_size

    async def compute_integrity(self, url: str, algorithm: str = DEFAULT_ALGORITHM) -> str:
        """Download ``url`` and digest its body.

        Args:
            url: Tarball URL.
            algorithm: Hash algorithm; sha512 unless verifying an older entry.

        Returns:
            Integrity string for the response body. An empty 2xx body
            yields the digest of zero bytes.

        Raises:
            FetchError: If the server answers with a non-2xx status or
                ``url`` cannot be parsed.
            TransportError: On DNS, connection, reset, or timeout failures.
        """
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported integrity algorithm: {algorithm!r}")
        digest = hashlib.new(algorithm)
        size = 0
        async with build_client(self.settings, transport=self._transport) as client:
            try:
                async with client.stream("GET", url) as resp:
                    if not resp.is_success:
                        raise FetchError(
                            f"Failed to download tarball: HTTP {resp.status_code} for {url}",
                            url=url,
                            status_code=resp.status_code,
                        )
                    async for chunk in resp.aiter_bytes(self.chunk_size):
                        digest.update(chunk)
                        size += len(chunk)
            except httpx.InvalidURL as exc:
                raise FetchError(f"Invalid tarball URL {url!r}: {exc}", url=url) from exc
            except httpx.RequestError as exc:
                raise TransportError(f"Error downloading {url}: {exc}", url=url) from exc

        logger.debug("Digested %d bytes from %s", size, url)
        return format_integrity(algorithm, digest.digest())

    async def verify(self, url: str, expected: str) -> bool:
        """Re-download ``url`` and compare against ``expected``.

        The algorithm is taken from ``expected`` so entries written with
        an older algorithm can still be checked.

        Returns:
            True if the digests match.

        Raises:
            ValueError: If ``expected`` is not a valid integrity string.
            FetchError: See ``compute_integrity``.
            TransportError: See ``compute_integrity``.
        """
        algorithm, expected_digest = parse_integrity(expected)
        actual = await self.compute_integrity(url, algorithm)
        _, actual_digest = parse_integrity(actual)
        return hmac.compare_digest(actual_digest, expected_digest)
