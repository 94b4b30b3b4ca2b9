"""The ``deps.neko`` lock document.

The lock document records, for every package a project depends on, the
exact version installed, the tarball URL it came from and an integrity
digest of that tarball. It mirrors the ``dependencies`` and
``devDependencies`` sections of ``package.json``.

The package is split into focused submodules:

- ``models``: ``LockEntry`` and the on-disk format constants.
- ``lockfile``: The ``LockDocument`` class with entry management and
  serialization.
- ``operations``: Parsing (``from_dict``, ``parse``), lenient loading
  (``load``), validation and diffing.

All public names are re-exported here so callers can write
``from nekocli.core.lockfile import LockDocument``.
"""

# Re-export data models
from nekocli.core.lockfile.models import (
    DEV_SECTION,
    LOCK_HEADER,
    RUNTIME_SECTION,
    LockEntry,
    section_for,
)

# Re-export the LockDocument class
from nekocli.core.lockfile.lockfile import LockDocument

# Attach operations to LockDocument as methods/classmethods
from nekocli.core.lockfile import operations as _ops

LockDocument.from_dict = classmethod(_ops._from_dict)
LockDocument.parse = classmethod(_ops._parse)
LockDocument.load = classmethod(_ops._load)
LockDocument.validate = _ops._validate
LockDocument.diff = _ops._diff

__all__ = [
    "DEV_SECTION",
    "LOCK_HEADER",
    "LockDocument",
    "LockEntry",
    "RUNTIME_SECTION",
    "section_for",
]
