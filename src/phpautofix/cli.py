from __future__ import annotations

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.table import Table

from phpautofix import __version__
from phpautofix.autofix import AutoFixResult, FixOutcome, IssueFixer
from phpautofix.config import ConfigError, load_config
from phpautofix.fixers.registry import fixable_kinds
from phpautofix.logging_utils import configure_logging
from phpautofix.reports import IssueReportError, load_issue_report, parse_issue_report

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="phpautofix: apply automatic fixes for PHP static analysis issues.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Reduce non-essential output."),
    ] = False,
    debug_fix: Annotated[
        bool,
        typer.Option("--debug-fix", help="Trace every fixing decision (implies --verbose)."),
    ] = False,
) -> None:
    """phpautofix CLI."""

    if (verbose or debug_fix) and quiet:
        raise typer.BadParameter("Choose at most one: --verbose/--debug-fix or --quiet.")
    configure_logging(verbose=verbose or debug_fix, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "debug_fix": debug_fix}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "debug_fix": False}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "debug_fix": bool(ctx.obj.get("debug_fix", False)),
    }


@app.command()
def fix(
    report: Annotated[
        str,
        typer.Argument(help="Issue report (JSON) path, or '-' to read from stdin."),
    ],
    project_root: Annotated[
        Path,
        typer.Option(
            "--project-root",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
            help="Directory that file paths in the report are relative to (default: current directory).",
        ),
    ] = Path("."),
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Don't write changes; only print a unified diff."),
    ] = False,
    backup: Annotated[
        bool | None,
        typer.Option("--backup/--no-backup", help="Keep a .phpautofix.bak copy of each file before writing.", show_default=False),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, max=32, help="Number of files to fix in parallel (default: use config)."),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Exit non-zero when any file could not be fixed (conflict, unreadable, missing, unwritable)."),
    ] = False,
) -> None:
    """
    Remove code flagged by the analyzer where a safe, byte-exact fix exists.
    """

    settings = _cli_settings()
    try:
        config = load_config(project_root)
    except ConfigError as exc:
        err_console.print(f"Invalid configuration: {exc}")
        raise typer.Exit(code=2) from exc

    config = replace(
        config,
        dry_run=dry_run,
        debug=config.debug or settings["debug_fix"],
        backup=config.backup if backup is None else backup,
        workers=config.workers if workers is None else workers,
    )
    if config.debug and not settings["quiet"]:
        configure_logging(verbose=True, quiet=False)

    try:
        if report.strip() == "-":
            issues = parse_issue_report(sys.stdin.read())
        else:
            issues = load_issue_report(Path(report))
    except IssueReportError as exc:
        err_console.print(f"Invalid issue report: {exc}")
        raise typer.Exit(code=2) from exc

    logger.debug("loaded %d issue(s) from %s", len(issues), report)
    result = IssueFixer(config).apply_fixes(issues)

    if dry_run:
        if result.diff:
            typer.echo(result.diff, nl=False)
    if not settings["quiet"]:
        _print_summary(result, dry_run=dry_run)

    if strict and result.has_failures:
        raise typer.Exit(code=1)


def _print_summary(result: AutoFixResult, *, dry_run: bool) -> None:
    if not result.file_results:
        console.print("No fixable issues.")
        return
    if not result.changed_files and not result.has_failures:
        console.print("No changes needed.")
        return

    table = Table(title="phpautofix")
    table.add_column("File", style="bold")
    table.add_column("Outcome")
    table.add_column("Edits", justify="right")
    for fr in result.file_results:
        outcome = fr.outcome.value
        if fr.outcome is FixOutcome.APPLIED and dry_run:
            outcome = "would apply"
        table.add_row(fr.path, outcome, str(len(fr.edits)))
    console.print(table)


@app.command()
def kinds(
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: terminal, json.", show_default=True),
    ] = "terminal",
) -> None:
    """
    List the issue kinds that can be fixed automatically.
    """

    available = list(fixable_kinds())
    normalized = output_format.strip().lower()
    if normalized == "json":
        typer.echo(json.dumps(available, indent=2))
        return
    if normalized != "terminal":
        raise typer.BadParameter("Unsupported format. Use: terminal, json.")

    table = Table(title="Fixable issue kinds")
    table.add_column("Kind", style="bold")
    for kind in available:
        table.add_row(kind)
    console.print(table)
