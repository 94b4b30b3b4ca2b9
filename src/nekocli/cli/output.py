"""Rich output formatting helpers for the neko CLI.

Provides consistent terminal output for reconciliation reports and lock
verification results, plus JSON renderings of both.

Status colours:
    ok = green, failed / mismatch = bold red, warnings = yellow
"""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nekocli.core.lockfile import section_for
from nekocli.core.reconciler import ReconcileReport
from nekocli.core.reconciler.models import IntegrityCheck, VerifyReport

_CHECK_STYLES: dict[str, str] = {
    "ok": "bold green",
    "mismatch": "bold red",
    "error": "yellow",
    "skipped": "dim",
}

console = Console()


def print_report(report: ReconcileReport) -> None:
    """Print the per-package table and summary for one command.

    Args:
        report: Result of add, remove or install.
    """
    if report.outcomes:
        table = Table(
            title=f"neko {report.operation}", show_header=True, header_style="bold"
        )
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Section", style="dim")
        table.add_column("Status", justify="center")
        table.add_column("Detail", style="dim")

        for outcome in report.outcomes:
            status = Text("OK", style="bold green") if outcome.ok else Text("FAILED", style="bold red")
            version = outcome.entry.version if outcome.entry else "-"
            section = section_for(outcome.is_dev)
            detail = outcome.error or outcome.detail
            table.add_row(escape(outcome.name), escape(version), section, status, escape(detail))
        console.print(table)
    elif report.source == "none":
        console.print("[dim]No dependencies to lock; ran the package manager's install.[/dim]")

    _print_lock_changes(report)

    for error in report.subprocess_errors:
        body = escape(str(error))
        if error.output:
            body += "\n\n" + escape(error.output[-2000:])
        if report.lock_changed:
            body += f"\n\n[yellow]{escape(report.lock_path.name)} keeps the changes already written.[/yellow]"
        console.print(Panel(body, title="Package manager failed", border_style="yellow"))

    _print_summary(report)


def _print_lock_changes(report: ReconcileReport) -> None:
    """Print one line per added, removed or changed lock entry."""
    if not report.lock_changed:
        return
    name = escape(report.lock_path.name)
    changes = report.changes
    for pkg in changes.get("added", []):
        console.print(f"  [green]+[/green] {escape(pkg)}")
    for pkg in changes.get("removed", []):
        console.print(f"  [red]-[/red] {escape(pkg)}")
    for change in changes.get("changed", []):
        console.print(
            f"  [cyan]~[/cyan] {escape(change['name'])} {change['field']}: "
            f"{escape(str(change['old']))} -> {escape(str(change['new']))}"
        )
    console.print(f"[dim]Updated {name}[/dim]")


def _print_summary(report: ReconcileReport) -> None:
    """Print a one-line summary after the outcomes table."""
    parts = [f"[bold]{len(report.outcomes)}[/bold] packages"]
    if report.succeeded:
        parts.append(f"[green]{len(report.succeeded)} succeeded[/green]")
    if report.failed:
        parts.append(f"[red]{len(report.failed)} failed: {escape(', '.join(report.failed))}[/red]")
    if report.subprocess_errors:
        parts.append("[yellow]package manager reported errors[/yellow]")
    console.print(" | ".join(parts))


def report_to_dict(report: ReconcileReport) -> dict[str, Any]:
    """Convert a report to a JSON-serializable dict."""
    return {
        "operation": report.operation,
        "lockfile": str(report.lock_path),
        "source": report.source or None,
        "lock_changed": report.lock_changed,
        "changes": report.changes,
        "succeeded": report.succeeded,
        "failed": report.failed,
        "packages": [
            {
                "name": o.name,
                "section": section_for(o.is_dev),
                "state": o.state.value,
                "version": o.entry.version if o.entry else None,
                "resolved": o.entry.resolved if o.entry else None,
                "integrity": o.entry.integrity if o.entry else None,
                "error": o.error,
                "detail": o.detail or None,
            }
            for o in report.outcomes
        ],
        "package_manager_errors": [
            {"message": str(e), "returncode": e.returncode, "output": e.output}
            for e in report.subprocess_errors
        ],
    }


def print_verify_report(report: VerifyReport) -> None:
    """Print format problems and per-entry integrity checks.

    Args:
        report: Result of ``DependencyReconciler.verify``.
    """
    for problem in report.problems:
        console.print(f"  [red]- {escape(problem)}[/red]")

    if report.checks:
        table = Table(title="Integrity", show_header=True, header_style="bold")
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Result", justify="center")
        table.add_column("Detail", style="dim")
        for check in report.checks:
            table.add_row(
                escape(check.name), escape(check.version),
                Text(check.status.upper(), style=_check_style(check)),
                escape(check.detail),
            )
        console.print(table)

    if report.ok:
        console.print(Panel("[bold green]Lock document verified[/bold green]", title="neko verify"))
    else:
        console.print(Panel("[bold red]Lock document has problems[/bold red]", title="neko verify"))


def _check_style(check: IntegrityCheck) -> str:
    return _CHECK_STYLES.get(check.status, "white")


def verify_report_to_dict(report: VerifyReport) -> dict[str, Any]:
    """Convert a verify report to a JSON-serializable dict."""
    return {
        "ok": report.ok,
        "problems": report.problems,
        "checks": [
            {
                "name": c.name,
                "version": c.version,
                "section": section_for(c.is_dev),
                "status": c.status,
                "detail": c.detail or None,
            }
            for c in report.checks
        ],
    }


def print_json(data: Any) -> None:
    """Print data as formatted JSON to stdout.

    Args:
        data: Any JSON-serializable data structure.
    """
    click.echo(json.dumps(data, indent=2, default=str))
