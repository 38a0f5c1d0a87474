"""Typer CLI application for testimpact."""

import json
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from testimpact import __version__
from testimpact.cli.exit_codes import ExitCode, exit_code_for, get_exit_code_description
from testimpact.cli.formatters import (
    build_runnable_plan,
    format_impact_table,
    format_runnable,
    format_test_listing,
    listing_to_dict,
)
from testimpact.lib.config import get_settings
from testimpact.lib.git import GitRevisionSource
from testimpact.lib.logging import configure_logging, get_logger
from testimpact.workflows.impact_analysis import TestImpactAnalyzer

logger = get_logger(__name__)
console = Console()
err_console = Console(stderr=True)

ANALYZE_FORMATS = ("table", "json", "runnable")
LIST_FORMATS = ("table", "json")

app = typer.Typer(
    name="testimpact",
    help="Find the Playwright tests impacted by changes between two git revisions",
    no_args_is_help=True,
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"testimpact version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """testimpact CLI - run only the tests your change touches."""
    configure_logging()


def _check_format(output_format: str, allowed: tuple[str, ...]) -> None:
    if output_format not in allowed:
        err_console.print(
            f"[red]Error:[/red] Invalid format '{output_format}'. "
            f"Choose one of: {', '.join(allowed)}"
        )
        raise typer.Exit(ExitCode.INVALID_ARGS)


def _write_output(text: str, output: str | None, message: str) -> None:
    """Write text to a file, or to stdout when no file is given."""
    if output:
        Path(output).write_text(text, encoding="utf-8")
        err_console.print(f"[green]{message} {output}[/green]")
    else:
        print(text)


def _fail(error: Exception, event: str) -> NoReturn:
    exit_code = exit_code_for(error)
    err_console.print(f"[red]Error:[/red] {error}")
    err_console.print(f"[dim]{get_exit_code_description(exit_code)}[/dim]")
    logger.error(event, error=str(error), error_type=type(error).__name__, exit_code=exit_code)
    raise typer.Exit(exit_code) from None


@app.command()
def analyze(
    base: str = typer.Option(
        ...,
        "--base",
        "-b",
        help="Base commit hash or reference",
    ),
    head: str = typer.Option(
        ...,
        "--head",
        "-h",
        help="Head commit hash or reference",
    ),
    repo: str = typer.Option(
        ".",
        "--repo",
        "-r",
        help="Path to the git repository",
    ),
    output_format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json, runnable)",
    ),
    output: str = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file path",
    ),
) -> None:
    """Analyze test impact between two git revisions."""
    _check_format(output_format, ANALYZE_FORMATS)
    logger.info("analyze_command", repo=repo, base=base, head=head, format=output_format)

    err_console.print(f"[blue]Analyzing impact between {base} and {head}...[/blue]")

    try:
        analyzer = TestImpactAnalyzer(GitRevisionSource(repo))
        result = analyzer.analyze(base, head)
    except Exception as e:
        _fail(e, "analyze_failed")

    if output_format == "json":
        _write_output(json.dumps(result.to_dict(), indent=2), output, "Results written to")
    elif output_format == "runnable":
        plan = build_runnable_plan(result, get_settings().runner_command)
        if output:
            _write_output(json.dumps(plan, indent=2), output, "Runnable test list written to")
        else:
            format_runnable(plan, console)
    else:
        format_impact_table(result, console)


@app.command("list-tests")
def list_tests(
    commit: str = typer.Option(
        ...,
        "--commit",
        "-c",
        help="Commit hash or reference",
    ),
    repo: str = typer.Option(
        ".",
        "--repo",
        "-r",
        help="Path to the git repository",
    ),
    output_format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
) -> None:
    """List all Playwright tests at a revision."""
    _check_format(output_format, LIST_FORMATS)
    logger.info("list_tests_command", repo=repo, commit=commit, format=output_format)

    err_console.print(f"[blue]Listing tests in commit {commit}...[/blue]")

    try:
        analyzer = TestImpactAnalyzer(GitRevisionSource(repo))
        listing = analyzer.list_tests(commit)
    except Exception as e:
        _fail(e, "list_tests_failed")

    if output_format == "json":
        print(json.dumps(listing_to_dict(listing), indent=2))
    else:
        format_test_listing(listing, console)


if __name__ == "__main__":
    app()
