"""Package-manager adapters (npm, yarn, pnpm).

Public API::

    from nekocli.adapters import RunFlags, adapter_for
"""

from __future__ import annotations

from nekocli.adapters.base import (
    CommandTable,
    PackageManagerAdapter,
    RunFlags,
    RunResult,
    SubprocessAdapter,
)
from nekocli.adapters.managers import NPM, PNPM, YARN, adapter_for, detect_package_manager

__all__ = [
    "CommandTable",
    "NPM",
    "PNPM",
    "PackageManagerAdapter",
    "RunFlags",
    "RunResult",
    "SubprocessAdapter",
    "YARN",
    "adapter_for",
    "detect_package_manager",
]
