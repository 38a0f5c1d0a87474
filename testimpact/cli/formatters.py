"""Rich formatters for CLI output."""

import re
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from testimpact.models.impact import (
    FileChangeType,
    ImpactOrigin,
    TestChangeRecord,
    TestChangeType,
    TestDeclaration,
    TestKind,
)
from testimpact.models.impact_report import ImpactAnalysisResult

RULE = "=" * 80

CHANGE_MARKERS: dict[TestChangeType, str] = {
    TestChangeType.ADDED: "[green]+[/green]",
    TestChangeType.REMOVED: "[red]-[/red]",
    TestChangeType.MODIFIED: "[yellow]~[/yellow]",
}

RUNNABLE_MARKERS: dict[TestChangeType, str] = {
    TestChangeType.ADDED: "[green]+ADD[/green]",
    TestChangeType.REMOVED: "[red]-DEL[/red]",
    TestChangeType.MODIFIED: "[yellow]~MOD[/yellow]",
}

FILE_CHANGE_STYLES: dict[FileChangeType, str] = {
    FileChangeType.ADDED: "green",
    FileChangeType.DELETED: "red",
    FileChangeType.RENAMED: "blue",
    FileChangeType.MODIFIED: "yellow",
}


def _kind_label(kind: TestKind) -> str:
    return "\\[SUITE]" if kind == TestKind.DESCRIBE else "\\[TEST]"


def _group_by_file(tests: list[TestChangeRecord]) -> dict[str, list[TestChangeRecord]]:
    """Group records by file path, preserving first-seen order."""
    grouped: dict[str, list[TestChangeRecord]] = {}
    for test in tests:
        grouped.setdefault(test.file_path, []).append(test)
    return grouped


def escape_regex(text: str) -> str:
    """Escape regex metacharacters so a test title can be used with --grep."""
    return re.sub(r"[.*+?^${}()|\[\]\\]", r"\\\g<0>", text)


def format_impact_table(result: ImpactAnalysisResult, console: Console) -> None:
    """Display an analysis result as a report.

    Args:
        result: Analysis result
        console: Rich console instance
    """
    summary = result.summary

    console.print(f"\n[bold]{RULE}[/bold]")
    console.print("[bold]PLAYWRIGHT TEST IMPACT ANALYSIS[/bold]")
    console.print(f"[bold]{RULE}[/bold]")

    console.print("\n[bold]Commits:[/bold]")
    console.print(f"  Base: [cyan]{escape(result.base_revision)}[/cyan]")
    console.print(f"  Head: [cyan]{escape(result.head_revision)}[/cyan]")

    table = Table(title="Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Total files changed", str(summary.total_files_changed))
    table.add_row("Test files changed", str(summary.test_files_changed))
    table.add_row("Tests added", str(summary.tests_added))
    table.add_row("Tests removed", str(summary.tests_removed))
    table.add_row("Tests modified", str(summary.tests_modified))
    table.add_row("Tests indirectly impacted", str(summary.tests_indirectly_impacted))
    console.print(table)

    if result.changed_files:
        console.print("\n[bold]Changed Files:[/bold]")
        for file_change in result.changed_files:
            icon = "\\[TEST]" if file_change.is_test_file else "\\[FILE]"
            style = FILE_CHANGE_STYLES.get(file_change.change_type, "yellow")
            change = file_change.change_type.value.ljust(8)
            console.print(f"  {icon} [{style}]{change}[/{style}] {escape(file_change.file_path)}")

    if result.directly_impacted_tests:
        console.print("\n[bold]Directly Impacted Tests:[/bold]")
        for file_path, tests in _group_by_file(result.directly_impacted_tests).items():
            console.print(f"\n  [cyan]{escape(file_path)}[/cyan]:")
            for test in tests:
                console.print(
                    f"    {CHANGE_MARKERS[test.change_type]} {_kind_label(test.kind)} "
                    f"{escape(test.test_name)}[dim]:{test.line_number}[/dim]"
                )
    else:
        console.print("\n[dim]No directly impacted tests found.[/dim]")

    if result.indirectly_impacted_tests:
        console.print("\n[bold]Indirectly Impacted Tests:[/bold]")
        for file_path, tests in _group_by_file(result.indirectly_impacted_tests).items():
            console.print(
                f"\n  [cyan]{escape(file_path)}[/cyan] "
                f"[dim](impacted by {escape(tests[0].impacted_by or '')})[/dim]:"
            )
            for test in tests:
                console.print(
                    f"    {CHANGE_MARKERS[test.change_type]} {_kind_label(test.kind)} "
                    f"{escape(test.test_name)}[dim]:{test.line_number}[/dim]"
                )

    console.print(f"\n[bold]{RULE}[/bold]")


def _grep_command(runner_command: str, tests: list[TestChangeRecord], empty: str) -> str:
    if not tests:
        return empty
    pattern = "|".join(escape_regex(t.test_name) for t in tests)
    return f'{runner_command} --grep "{pattern}"'


def build_runnable_plan(
    result: ImpactAnalysisResult,
    runner_command: str = "npx playwright test",
) -> dict[str, Any]:
    """
    Build the list of tests and commands needed to run the impacted subset.

    Removed tests are listed but never runnable.

    Args:
        result: Analysis result
        runner_command: Test runner invocation used as command prefix

    Returns:
        Dictionary with summary, impacted tests, file list, grep pattern
        and runner commands
    """
    impacted = result.all_impacted_tests
    runnable = [t for t in impacted if t.change_type != TestChangeType.REMOVED]

    file_list = list(dict.fromkeys(t.file_path for t in runnable))
    leaf_tests = [t for t in runnable if t.kind == TestKind.TEST]
    grep_pattern = "|".join(escape_regex(t.test_name) for t in leaf_tests)

    no_files = "# No runnable tests found"
    commands = {
        "run_by_file": f"{runner_command} {' '.join(file_list)}" if file_list else no_files,
        "run_by_grep": (
            f'{runner_command} --grep "{grep_pattern}"'
            if grep_pattern
            else "# No test grep pattern available"
        ),
        "run_added_only": _grep_command(
            runner_command,
            [t for t in runnable if t.change_type == TestChangeType.ADDED],
            "# No added tests",
        ),
        "run_modified_only": _grep_command(
            runner_command,
            [t for t in runnable if t.change_type == TestChangeType.MODIFIED],
            "# No modified tests",
        ),
    }

    return {
        "summary": {
            "total_impacted_tests": len(impacted),
            "directly_impacted": len(result.directly_impacted_tests),
            "indirectly_impacted": len(result.indirectly_impacted_tests),
            "tests_added": sum(1 for t in impacted if t.change_type == TestChangeType.ADDED),
            "tests_modified": sum(1 for t in impacted if t.change_type == TestChangeType.MODIFIED),
            "tests_removed": sum(1 for t in impacted if t.change_type == TestChangeType.REMOVED),
        },
        "impacted_tests": [t.to_dict() for t in impacted],
        "commands": commands,
        "file_list": file_list,
        "grep_pattern": grep_pattern,
    }


def format_runnable(plan: dict[str, Any], console: Console) -> None:
    """Display a runnable plan built by build_runnable_plan.

    Args:
        plan: Runnable plan dictionary
        console: Rich console instance
    """
    summary = plan["summary"]
    commands = plan["commands"]

    console.print(f"\n[bold]{RULE}[/bold]")
    console.print("[bold]IMPACTED TESTS - RUNNABLE FORMAT[/bold]")
    console.print(f"[bold]{RULE}[/bold]")

    console.print("\n[bold]Summary:[/bold]")
    console.print(f"  Total impacted tests: [cyan]{summary['total_impacted_tests']}[/cyan]")
    console.print(f"  Directly impacted: [yellow]{summary['directly_impacted']}[/yellow]")
    console.print(f"  Indirectly impacted: [blue]{summary['indirectly_impacted']}[/blue]")
    console.print(f"  Tests added: [green]{summary['tests_added']}[/green]")
    console.print(f"  Tests modified: [yellow]{summary['tests_modified']}[/yellow]")
    console.print(f"  Tests removed: [red]{summary['tests_removed']}[/red]")

    console.print("\n[bold]Impacted Test Files:[/bold]")
    for file_path in plan["file_list"]:
        console.print(f"  [cyan]{escape(file_path)}[/cyan]")

    console.print("\n[bold]Impacted Tests List:[/bold]")
    for test in plan["impacted_tests"]:
        marker = RUNNABLE_MARKERS[TestChangeType(test["type"])]
        kind = _kind_label(TestKind(test["change_kind"]))
        source_tag = (
            " [blue]\\[indirect][/blue]"
            if test["impact_type"] == ImpactOrigin.INDIRECT.value
            else ""
        )
        console.print(
            f"  {marker} {kind} [cyan]{escape(test['file_path'])}[/cyan]"
            f"[dim]:{test['line_number']}[/dim] - \"{escape(test['test_name'])}\"{source_tag}"
        )
        if test.get("impacted_by"):
            console.print(f"       [dim]impacted by: {escape(test['impacted_by'])}[/dim]")

    console.print("\n[bold]Commands:[/bold]")
    console.print("\n  [dim]# Run all impacted test files:[/dim]")
    console.print(f"  [green]{escape(commands['run_by_file'])}[/green]")

    if plan["grep_pattern"]:
        console.print("\n  [dim]# Run specific tests by name (grep):[/dim]")
        console.print(f"  [green]{escape(commands['run_by_grep'])}[/green]")

    if not commands["run_added_only"].startswith("#"):
        console.print("\n  [dim]# Run only newly added tests:[/dim]")
        console.print(f"  [green]{escape(commands['run_added_only'])}[/green]")

    if not commands["run_modified_only"].startswith("#"):
        console.print("\n  [dim]# Run only modified tests:[/dim]")
        console.print(f"  [green]{escape(commands['run_modified_only'])}[/green]")

    console.print(f"\n[bold]{RULE}[/bold]")


def listing_to_dict(listing: dict[str, list[TestDeclaration]]) -> dict[str, Any]:
    """Convert a test listing to a JSON-serializable dictionary."""
    return {
        "files": [
            {
                "file_path": file_path,
                "tests": [
                    {
                        "test_name": declaration.name,
                        "change_kind": declaration.kind.value,
                        "line_number": declaration.start_line,
                    }
                    for declaration in declarations
                ],
            }
            for file_path, declarations in listing.items()
        ],
        "total_files": len(listing),
        "total_tests": sum(len(declarations) for declarations in listing.values()),
    }


def format_test_listing(listing: dict[str, list[TestDeclaration]], console: Console) -> None:
    """Display the tests found at a revision in a Rich table.

    Args:
        listing: Mapping of test file to declarations
        console: Rich console instance
    """
    if not listing:
        console.print("[yellow]No test files found.[/yellow]")
        return

    table = Table(title="Tests")
    table.add_column("File", style="cyan")
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Kind", style="magenta")
    table.add_column("Name")

    for file_path, declarations in listing.items():
        for declaration in declarations:
            table.add_row(
                file_path,
                str(declaration.start_line),
                declaration.kind.value,
                escape(declaration.name),
            )

    console.print(table)
