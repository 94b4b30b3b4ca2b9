"""neko CLI - Lockfile-backed dependency commands for JavaScript projects.

Entry point for the ``neko`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    add      - Resolve packages, lock them in deps.neko, install them.
    remove   - Unlock and uninstall packages.
    install  - Install everything in deps.neko (alias: all).
    verify   - Check deps.neko for format errors and tampering.

Usage::

    neko add left-pad chalk@^5.0.0
    neko add -D typescript
    neko remove left-pad
    neko install
    neko --project ./web verify --offline
"""

from __future__ import annotations

from pathlib import Path

import click

from nekocli import __version__
from nekocli.cli.add import add_command
from nekocli.cli.context import CliContext, configure_logging
from nekocli.cli.install import install_command
from nekocli.cli.remove import remove_command
from nekocli.cli.verify import verify_command
from nekocli.config import PACKAGE_MANAGERS, Settings


@click.group()
@click.version_option(version=__version__, prog_name="neko")
@click.option(
    "--project", "-C", "project",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Project directory (default: current directory).",
)
@click.option("--registry", default=None, help="Registry base URL.")
@click.option(
    "--package-manager", "package_manager",
    type=click.Choice(PACKAGE_MANAGERS),
    default=None,
    help="Package manager to run (default: detected from lockfiles).",
)
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def cli(
    click_ctx: click.Context,
    project: Path | None,
    registry: str | None,
    package_manager: str | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """neko: reproducible installs through a deps.neko lock document.

    Wraps npm, yarn or pnpm. Every package added is pinned in deps.neko
    with its exact version, tarball URL and sha512 integrity digest.
    """
    configure_logging(verbose)
    try:
        settings = Settings.from_env().merged(
            registry_url=registry,
            package_manager=package_manager,
            timeout=timeout,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    click_ctx.obj = CliContext(
        project_dir=(project or Path.cwd()).resolve(),
        settings=settings,
    )


# Register all subcommands
cli.add_command(add_command)
cli.add_command(remove_command)
cli.add_command(install_command)
cli.add_command(install_command, name="all")
cli.add_command(verify_command)


def main() -> None:
    """Console script entry point."""
    cli()
