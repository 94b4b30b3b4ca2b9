"""``neko install`` (alias ``neko all``) - Install everything in deps.neko.

The lock document is authoritative. When it is empty, the ranges in
package.json are resolved and locked first.
"""

from __future__ import annotations

import click

from nekocli.cli.context import CliContext, execute


@click.command("install")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def install_command(ctx: CliContext, output_format: str) -> None:
    """Install every locked package, locking package.json first if needed.

    Exit code 0 once the install ran, 1 if package.json is missing.
    """
    execute(ctx, lambda reconciler: reconciler.install_all(), output_format)
