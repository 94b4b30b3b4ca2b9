"""Command tables for npm, yarn and pnpm, and package-manager detection."""

from __future__ import annotations

import logging
from pathlib import Path

from nekocli.adapters.base import CommandTable, SubprocessAdapter

logger = logging.getLogger(__name__)

NPM = CommandTable(
    name="npm",
    add="install",
    install_all="install",
    remove="uninstall",
    dev_flag="--save-dev",
    save_flag="--save",
)

YARN = CommandTable(
    name="yarn",
    add="add",
    install_all="install",
    remove="remove",
    dev_flag="--dev",
    global_prefix=True,
    dev_flag_on_remove=False,
)

PNPM = CommandTable(
    name="pnpm",
    add="add",
    install_all="install",
    remove="remove",
    dev_flag="--save-dev",
)

TABLES: dict[str, CommandTable] = {t.name: t for t in (NPM, YARN, PNPM)}

# Checked in order; the first lockfile found picks the tool.
_LOCKFILE_MARKERS: tuple[tuple[str, str], ...] = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
)


def detect_package_manager(project_dir: Path) -> str:
    """Pick the package manager a project uses from its lockfiles.

    Returns:
        "pnpm" if ``pnpm-lock.yaml`` exists, "yarn" if ``yarn.lock``
        exists, otherwise "npm".
    """
    for marker, manager in _LOCKFILE_MARKERS:
        if (Path(project_dir) / marker).exists():
            logger.debug("Found %s; using %s", marker, manager)
            return manager
    return "npm"


def adapter_for(project_dir: Path, package_manager: str | None = None) -> SubprocessAdapter:
    """Build the adapter for a project.

    Args:
        project_dir: Project root; also the child process working directory.
        package_manager: Forced tool name, or None to detect.

    Raises:
        ValueError: If ``package_manager`` is not a known tool.
    """
    name = package_manager or detect_package_manager(project_dir)
    try:
        table = TABLES[name]
    except KeyError:
        raise ValueError(f"Unknown package manager: {name!r}") from None
    return SubprocessAdapter(table, project_dir)
