"""``neko verify`` - Check deps.neko for format errors and tampering.

Every entry is checked for a version, an http(s) tarball URL and a
well-formed integrity string. Unless ``--offline`` is given, each
tarball is downloaded again and its digest compared with the locked one.

Exit Codes:
    0 - The lock document is valid and every digest matches.
    1 - Format problems, digest mismatches, or failed downloads.
    2 - No deps.neko in the project.
"""

from __future__ import annotations

import json
import sys
from typing import NoReturn

import click

from nekocli.cli.context import CliContext, progress_for, run_async
from nekocli.core.reconciler import build_reconciler
from nekocli.exceptions import CorruptLockDocument


@click.command("verify")
@click.option("--offline", is_flag=True, help="Only check the format; do not download tarballs.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.pass_obj
def verify_command(ctx: CliContext, offline: bool, output_format: str) -> None:
    """Verify the project's deps.neko.

    Exit code 0 if the document is valid and untampered, 1 otherwise.
    """
    from nekocli.cli.output import print_json, print_verify_report, verify_report_to_dict

    reconciler = build_reconciler(ctx.project_dir, ctx.settings, progress_for(output_format))
    try:
        report = run_async(reconciler.verify(offline=offline))
    except FileNotFoundError as exc:
        _fail(output_format, str(exc), 2)
    except CorruptLockDocument as exc:
        _fail(output_format, f"{ctx.settings.lockfile_name} is corrupt: {exc}", 1)

    if output_format == "json":
        print_json(verify_report_to_dict(report))
    else:
        print_verify_report(report)
    sys.exit(0 if report.ok else 1)


def _fail(output_format: str, message: str, code: int) -> NoReturn:
    if output_format == "json":
        click.echo(json.dumps({"error": message}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(code)
