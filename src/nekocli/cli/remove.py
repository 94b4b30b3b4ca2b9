"""``neko remove <package>...`` - Unlock and uninstall packages.

Packages not present in ``deps.neko`` are reported and skipped for the
lock document; they are still passed to the package manager.

Exit Codes:
    0 - Command completed.
    1 - No package.json in the project, or deps.neko could not be written.
    2 - Usage error.
"""

from __future__ import annotations

import click

from nekocli.cli.context import CliContext, execute


@click.command("remove")
@click.argument("packages", nargs=-1, required=True)
@click.option("--dev", "-D", is_flag=True, help="Remove from devDependencies.")
@click.option("--global", "-g", "global_", is_flag=True, help="Uninstall globally (deps.neko is not touched).")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def remove_command(
    ctx: CliContext,
    packages: tuple[str, ...],
    dev: bool,
    global_: bool,
    output_format: str,
) -> None:
    """Remove PACKAGES from deps.neko and uninstall them."""
    if dev and global_:
        raise click.UsageError("Cannot use --global and --dev together.")
    execute(
        ctx,
        lambda reconciler: reconciler.remove(list(packages), dev=dev, global_=global_),
        output_format,
    )
