"""Remote collaborators: registry metadata and tarball integrity.

Public API::

    from nekocli.registry import IntegrityResolver, NpmRegistry, parse_request
"""

from __future__ import annotations

from nekocli.registry.integrity import IntegrityResolver, integrity_of
from nekocli.registry.npm_registry import (
    NpmRegistry,
    PackageRequest,
    ResolvedPackage,
    parse_request,
)

__all__ = [
    "IntegrityResolver",
    "NpmRegistry",
    "PackageRequest",
    "ResolvedPackage",
    "integrity_of",
    "parse_request",
]
