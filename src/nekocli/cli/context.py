"""Shared plumbing for CLI commands.

Holds the per-invocation ``CliContext`` (project directory + settings),
logging setup, and ``execute``, which runs a reconciler operation and
turns environment errors into exit codes.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler

from nekocli.config import Settings
from nekocli.core.reconciler import DependencyReconciler, ReconcileReport, build_reconciler
from nekocli.exceptions import LockWriteError, ManifestMissing
from nekocli.progress import ConsoleProgress, NullProgress, ProgressReporter

T = TypeVar("T")

err_console = Console(stderr=True)


@dataclass
class CliContext:
    """State shared by all subcommands of one invocation.

    Attributes:
        project_dir: Project root (``--project``, default cwd).
        settings: Settings from the environment and global options.
    """

    project_dir: Path = field(default_factory=Path.cwd)
    settings: Settings = field(default_factory=Settings)


def configure_logging(verbose: bool) -> None:
    """Route ``nekocli`` log records to stderr through rich.

    Per-package problems already show up in the command report, so only
    errors are logged unless ``--verbose`` is given.
    """
    logger = logging.getLogger("nekocli")
    handler = RichHandler(console=err_console, show_path=False, show_time=verbose)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.ERROR)


def run_async(coro: Awaitable[T]) -> T:
    """Run an async coroutine in a synchronous context.

    Args:
        coro: Awaitable coroutine to execute.

    Returns:
        The coroutine's return value.
    """
    return asyncio.run(coro)  # type: ignore[arg-type]


def progress_for(output_format: str) -> ProgressReporter:
    """Console progress for text output, silence for machine-readable output."""
    return ConsoleProgress(err_console) if output_format == "text" else NullProgress()


def execute(
    ctx: CliContext,
    operation: Callable[[DependencyReconciler], Awaitable[ReconcileReport]],
    output_format: str,
) -> None:
    """Run ``operation`` on a fresh reconciler and print its report.

    Exits 0 once the command completes, even when individual packages
    failed; exits 1 when the project has no manifest or the lock file
    cannot be written.
    """
    from nekocli.cli.output import print_json, print_report, report_to_dict

    reconciler = build_reconciler(ctx.project_dir, ctx.settings, progress_for(output_format))
    try:
        report = run_async(operation(reconciler))
    except (ManifestMissing, LockWriteError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc

    if output_format == "json":
        print_json(report_to_dict(report))
    else:
        print_report(report)
    sys.exit(0)
