"""neko-cli exception hierarchy.

All public exceptions inherit from NekoError, giving callers a single
base class to catch when they want to handle any neko-specific failure
without swallowing unrelated errors.

Errors fall in two groups. Per-package errors (``MetadataError``,
``FetchError``, ``TransportError``) are recovered by the reconciler and
reported against the package that raised them. Environment errors
(``ManifestMissing``, ``LockWriteError``) abort the whole command.
"""

from __future__ import annotations


class NekoError(Exception):
    """Base exception for all neko-cli errors."""


class CorruptLockDocument(NekoError):
    """Raised when ``deps.neko`` exists but is not a valid lock document.

    Covers YAML syntax errors, a top-level value that is not a mapping,
    sections that are not mappings, and entries missing required keys.
    ``LockDocument.load`` recovers from this by returning an empty
    document.
    """


class LockWriteError(NekoError):
    """Raised when the lock document cannot be written to disk."""


class ManifestMissing(NekoError):
    """Raised when no usable ``package.json`` exists where one is required."""


class MetadataError(NekoError):
    """Raised when registry metadata for a package is missing or malformed.

    Covers "not found" responses, payloads without a resolvable version
    or tarball URL, and version ranges that cannot be evaluated.
    """


class NetworkError(NekoError):
    """Base class for failures retrieving a remote artifact."""

    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


class FetchError(NetworkError):
    """Raised when the server answered with a non-success HTTP status."""

    def __init__(self, message: str, *, url: str = "", status_code: int = 0) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class TransportError(NetworkError):
    """Raised on network-level failures: DNS, refused connections, resets, timeouts."""


class SubprocessError(NekoError):
    """Raised when a package-manager invocation exits non-zero or cannot start.

    Attributes:
        command: The argv that was executed.
        returncode: Process exit status (-1 when the executable is missing).
        output: Captured stderr, falling back to stdout.
    """

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int = -1,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.output = output
