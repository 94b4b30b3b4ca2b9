"""Package-manager adapter interface and the subprocess implementation.

The reconciler only needs one capability from npm, yarn or pnpm: run an
install or uninstall for a list of ``name@version`` tokens and report
whether it worked. ``PackageManagerAdapter`` is that capability.
``SubprocessAdapter`` implements it for any tool described by a
``CommandTable``; the per-tool differences live in data, not subclasses.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from nekocli.exceptions import SubprocessError

logger = logging.getLogger(__name__)

VERBS: tuple[str, ...] = ("install", "uninstall")


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunFlags:
    """Modifiers for a package-manager invocation.

    Attributes:
        global_: Operate on the global install instead of the project.
        dev: Record the change under devDependencies.
        silent: Ask the tool for minimal output.
    """

    global_: bool = False
    dev: bool = False
    silent: bool = True


@dataclass(frozen=True)
class RunResult:
    """Outcome of a successful invocation.

    Attributes:
        command: The argv that was executed.
        returncode: Process exit status (always 0 here).
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""


@dataclass(frozen=True)
class CommandTable:
    """How one package manager spells install and uninstall.

    Attributes:
        name: Tool name, also the executable looked up on PATH.
        add: Subcommand that adds packages ("install" or "add").
        install_all: Subcommand that installs everything in the manifest.
        remove: Subcommand that removes packages ("uninstall" or "remove").
        dev_flag: Flag that targets devDependencies.
        save_flag: Flag that targets dependencies, if the tool needs one.
        global_prefix: Use ``<tool> global <subcommand>`` instead of a flag.
        dev_flag_on_remove: Whether ``remove`` accepts ``dev_flag``.
        silent_flag: Flag that suppresses progress output.
    """

    name: str
    add: str
    install_all: str
    remove: str
    dev_flag: str
    save_flag: str | None = None
    global_prefix: bool = False
    dev_flag_on_remove: bool = True
    silent_flag: str = "--silent"

    def argv(self, verb: str, packages: Sequence[str], flags: RunFlags) -> list[str]:
        """Build the command line for ``verb``.

        An ``install`` with no packages installs the whole manifest.

        Raises:
            ValueError: For an unknown verb or an uninstall with no packages.
        """
        if verb not in VERBS:
            raise ValueError(f"Unknown verb {verb!r}; expected one of {VERBS}")
        silent = [self.silent_flag] if flags.silent else []

        if verb == "install" and not packages:
            return [self.name, self.install_all, *silent]
        if verb == "uninstall" and not packages:
            raise ValueError("uninstall needs at least one package")

        action = self.add if verb == "install" else self.remove
        head = [self.name, action]
        scope: list[str] = []
        if flags.global_:
            if self.global_prefix:
                head = [self.name, "global", action]
            else:
                scope = ["--global"]
        elif flags.dev:
            if verb == "install" or self.dev_flag_on_remove:
                scope = [self.dev_flag]
        elif self.save_flag:
            scope = [self.save_flag]

        return [*head, *packages, *scope, *silent]


# ---------------------------------------------------------------------------
# Adapter protocol and implementation
# ---------------------------------------------------------------------------


class PackageManagerAdapter(Protocol):
    """Runs install/uninstall through an external package manager."""

    name: str

    async def run(
        self,
        verb: str,
        packages: Sequence[str],
        flags: RunFlags = RunFlags(),
    ) -> RunResult:
        """Run ``verb`` for ``packages``.

        Raises:
            SubprocessError: If the tool exits non-zero or cannot start.
        """
        ...


class SubprocessAdapter:
    """``PackageManagerAdapter`` backed by a child process.

    Args:
        table: Command spelling for the tool.
        cwd: Project directory the tool runs in.
    """

    def __init__(self, table: CommandTable, cwd: Path) -> None:
        self.table = table
        self.cwd = Path(cwd)

    @property
    def name(self) -> str:
        return self.table.name

    def command(self, verb: str, packages: Sequence[str], flags: RunFlags) -> list[str]:
        """Return the argv ``run`` would execute."""
        return self.table.argv(verb, packages, flags)

    async def run(
        self,
        verb: str,
        packages: Sequence[str],
        flags: RunFlags = RunFlags(),
    ) -> RunResult:
        """Execute the tool and capture its output.

        Raises:
            SubprocessError: If the executable is missing or exits non-zero.
        """
        argv = self.command(verb, packages, flags)
        executable = shutil.which(argv[0])
        if executable is None:
            raise SubprocessError(
                f"{argv[0]} executable not found on PATH",
                command=argv,
            )

        logger.debug("Running %s in %s", " ".join(argv), self.cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                executable,
                *argv[1:],
                cwd=str(self.cwd),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            raw_out, raw_err = await proc.communicate()
        except OSError as exc:
            raise SubprocessError(f"Cannot start {argv[0]}: {exc}", command=argv) from exc

        stdout = raw_out.decode("utf-8", errors="replace")
        stderr = raw_err.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            raise SubprocessError(
                f"{' '.join(argv)} exited with status {proc.returncode}",
                command=argv,
                returncode=proc.returncode if proc.returncode is not None else -1,
                output=(stderr or stdout).strip(),
            )
        return RunResult(command=argv, returncode=0, stdout=stdout, stderr=stderr)
