"""``neko add <package>...`` - Resolve, lock and install packages.

Each package is resolved against the registry and its tarball digested
concurrently. Packages that resolve are written to ``deps.neko`` in the
order given, then installed with the project's package manager.

Exit Codes:
    0 - Command completed (individual packages may still have failed).
    1 - No package.json in the project, or deps.neko could not be written.
    2 - Usage error.
"""

from __future__ import annotations

import click

from nekocli.cli.context import CliContext, execute


@click.command("add")
@click.argument("packages", nargs=-1, required=True)
@click.option("--dev", "-D", is_flag=True, help="Add to devDependencies.")
@click.option("--global", "-g", "global_", is_flag=True, help="Install globally (deps.neko is not touched).")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def add_command(
    ctx: CliContext,
    packages: tuple[str, ...],
    dev: bool,
    global_: bool,
    output_format: str,
) -> None:
    """Add PACKAGES (name or name@range) and lock their exact versions."""
    if dev and global_:
        raise click.UsageError("Cannot use --global and --dev together.")
    execute(
        ctx,
        lambda reconciler: reconciler.add(list(packages), dev=dev, global_=global_),
        output_format,
    )
