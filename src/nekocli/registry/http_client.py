"""Shared async HTTP client utilities for registry and tarball access.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error mapping. The registry client and
the integrity resolver both go through this module so that HTTP
behaviour is consistent and testable (tests pass an
``httpx.MockTransport``).

Error mapping:
    network-level failure   -> ``TransportError``
    non-2xx status          -> ``FetchError``
    unparsable URL          -> ``FetchError``
    body that is not JSON   -> ``MetadataError``
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from nekocli.config import Settings
from nekocli.exceptions import FetchError, MetadataError, TransportError

logger = logging.getLogger(__name__)


def build_client(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``AsyncClient`` configured from ``settings``.

    Args:
        settings: Timeout and User-Agent source. Defaults to ``Settings()``.
        transport: Optional transport override, used by tests.

    Returns:
        An unopened client; use it as an async context manager.
    """
    settings = settings or Settings()
    return httpx.AsyncClient(
        timeout=settings.timeout,
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
        transport=transport,
    )


async def fetch_json(client: httpx.AsyncClient, url: str) -> Any:
    """GET ``url`` and decode the body as JSON.

    Args:
        client: An open client from ``build_client``.
        url: The URL to fetch.

    Returns:
        The decoded JSON value.

    Raises:
        TransportError: On DNS, connection, or timeout failures.
        FetchError: On a non-success HTTP status or an unparsable URL.
        MetadataError: If the body is not valid JSON.
    """
    try:
        resp = await client.get(url, headers={"Accept": "application/json"})
    except httpx.InvalidURL as exc:
        raise FetchError(f"Invalid URL {url!r}: {exc}", url=url) from exc
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise TransportError(f"Request to {url} failed: {exc}", url=url) from exc

    if not resp.is_success:
        logger.debug("HTTP %d from %s", resp.status_code, url)
        raise FetchError(
            f"HTTP {resp.status_code} from {url}",
            url=url,
            status_code=resp.status_code,
        )

    try:
        return resp.json()
    except ValueError as exc:
        raise MetadataError(f"Response from {url} is not valid JSON") from exc
