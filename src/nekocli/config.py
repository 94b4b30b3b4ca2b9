"""Runtime settings for neko-cli.

Defaults live as module constants. ``Settings.from_env`` layers the
environment on top of them, and the CLI layers its options on top of
that with ``Settings.merged``.

Environment variables:
    NEKO_REGISTRY         Registry base URL (falls back to npm_config_registry).
    NEKO_TIMEOUT          HTTP timeout in seconds.
    NEKO_PACKAGE_MANAGER  Force "npm", "yarn" or "pnpm" instead of detection.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping

from nekocli import LOCKFILE_NAME, MANIFEST_NAME, __version__

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY: str = "https://registry.npmjs.org"

# Timeout for all registry and tarball requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = f"neko-cli/{__version__}"

PACKAGE_MANAGERS: tuple[str, ...] = ("npm", "yarn", "pnpm")


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one CLI invocation.

    Attributes:
        registry_url: Base URL of the npm-compatible registry, no trailing slash.
        timeout: HTTP timeout in seconds for metadata and tarball requests.
        package_manager: Forced package manager name, or None to detect
            from the project's lockfiles.
        lockfile_name: File name of the lock document inside the project.
        manifest_name: File name of the project manifest.
        user_agent: User-Agent header for HTTP requests.
    """

    registry_url: str = DEFAULT_REGISTRY
    timeout: float = DEFAULT_TIMEOUT
    package_manager: str | None = None
    lockfile_name: str = LOCKFILE_NAME
    manifest_name: str = MANIFEST_NAME
    user_agent: str = USER_AGENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "registry_url", self.registry_url.rstrip("/"))
        if self.package_manager is not None and self.package_manager not in PACKAGE_MANAGERS:
            raise ValueError(
                f"Unknown package manager {self.package_manager!r}; "
                f"expected one of {', '.join(PACKAGE_MANAGERS)}"
            )
        if self.timeout <= 0:
            raise ValueError(f"Timeout must be positive, got {self.timeout!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (for tests).

        Returns:
            Settings with every recognised variable applied.
        """
        env = os.environ if environ is None else environ
        registry = env.get("NEKO_REGISTRY") or env.get("npm_config_registry") or DEFAULT_REGISTRY

        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get("NEKO_TIMEOUT")
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                timeout = -1.0
            if timeout <= 0:
                logger.warning("Ignoring invalid NEKO_TIMEOUT=%r", raw_timeout)
                timeout = DEFAULT_TIMEOUT

        manager = env.get("NEKO_PACKAGE_MANAGER") or None
        if manager is not None and manager not in PACKAGE_MANAGERS:
            logger.warning("Ignoring unknown NEKO_PACKAGE_MANAGER=%r", manager)
            manager = None

        return cls(registry_url=registry, timeout=timeout, package_manager=manager)

    def merged(self, **overrides: object) -> Settings:
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self
