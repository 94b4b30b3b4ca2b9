"""neko-cli: a lockfile-keeping front-end over npm, yarn and pnpm."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

LOCKFILE_NAME = "deps.neko"
MANIFEST_NAME = "package.json"
