"""Lock document data models and format constants.

Defines ``LockEntry``, the value stored per package in ``deps.neko``,
and the constants that fix the on-disk format. These are pure data
holders with no I/O, safe to import from anywhere without
circular-dependency concerns.

.. [SRI] W3C (2016). "Subresource Integrity." The ``<algo>-<base64>``
   digest format used for the ``integrity`` field.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Format constants
# ---------------------------------------------------------------------------

LOCK_HEADER: str = (
    "# Neko-CLI package lock file\n"
    "# This file tracks installed package versions and integrity.\n"
)

RUNTIME_SECTION: str = "dependencies"
DEV_SECTION: str = "devDependencies"
SECTIONS: tuple[str, str] = (RUNTIME_SECTION, DEV_SECTION)

ENTRY_KEYS: tuple[str, ...] = ("version", "resolved", "integrity")

# Integrity format: "<algorithm>-<standard base64>"
_INTEGRITY_RE = re.compile(r"^(?:sha512|sha384|sha256|sha1)-[A-Za-z0-9+/]+={0,2}$")


def section_for(is_dev: bool) -> str:
    """Return the section name for a runtime or dev dependency."""
    return DEV_SECTION if is_dev else RUNTIME_SECTION


# ---------------------------------------------------------------------------
# LockEntry: A single package in the lock document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LockEntry:
    """The resolved state of one package.

    Frozen so that ``resolved`` and ``integrity`` can only change
    together: updating a package means replacing its entry.

    Attributes:
        version: Resolved semantic version (e.g., "5.3.0").
        resolved: Exact tarball URL the version was fetched from.
        integrity: Digest of the tarball bytes in "sha512-<base64>" form.
    """

    version: str
    resolved: str
    integrity: str

    def to_dict(self) -> dict[str, str]:
        """Serialize to the mapping stored under the package name."""
        return {
            "version": self.version,
            "resolved": self.resolved,
            "integrity": self.integrity,
        }

    @classmethod
    def from_dict(cls, data: Any) -> LockEntry:
        """Build an entry from a parsed mapping.

        Raises:
            ValueError: If ``data`` is not a mapping of the three string keys.
        """
        if not isinstance(data, dict):
            raise ValueError(f"entry must be a mapping, got {type(data).__name__}")
        values: dict[str, str] = {}
        for key in ENTRY_KEYS:
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"entry key {key!r} must be a string, got {value!r}")
            values[key] = value
        return cls(**values)

