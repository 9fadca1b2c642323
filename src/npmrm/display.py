"""Rich terminal display for npmrm."""

import os

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.status import Status
from rich.table import Table

from npmrm.models import DeletionSummary, ScanReport, SizeResult

console = Console()
err_console = Console(stderr=True)

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def format_bytes(size_bytes: int | None) -> str:
    """Format bytes to a human-readable string (binary units)."""
    if size_bytes is None:
        return "unknown"
    if size_bytes <= 0:
        return "0 B"

    exponent = 0
    value = float(size_bytes)
    while value >= 1024 and exponent < len(SIZE_UNITS) - 1:
        value /= 1024
        exponent += 1

    if exponent == 0 or value >= 10:
        return f"{value:.0f} {SIZE_UNITS[exponent]}"
    return f"{value:.1f} {SIZE_UNITS[exponent]}"


def show_scanning_status(root: str) -> Status:
    """Create a spinner for the search phase."""
    return console.status(
        f"[cyan]Scanning for node_modules under: {escape(root)}[/cyan]", spinner="dots"
    )


def scanning_message(dirs_scanned: int, found: int) -> str:
    """Spinner text after a level of the search finishes."""
    return (
        f"[cyan]Scanning...[/cyan] {dirs_scanned:,} dirs [dim]|[/dim] "
        f"[green]{found} node_modules found[/green]"
    )


def show_sizing_progress() -> Progress:
    """Create progress bar for size calculation."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[cyan]Calculating sizes[/cyan]"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )


def show_deletion_progress() -> Progress:
    """Create progress bar for removal."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[red]Deleting[/red]"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TextColumn("[yellow]{task.fields[current]}[/yellow]"),
        console=console,
    )


def project_name(node_modules_path: str) -> str:
    """Name of the project directory holding a node_modules directory."""
    return os.path.basename(os.path.dirname(node_modules_path))


def _size_cell(row: SizeResult) -> str:
    if row.measured:
        return format_bytes(row.size_bytes)
    return "[red]unknown[/red]"


def show_report(report: ScanReport) -> None:
    """Display found node_modules as a table, largest first."""
    width = console.size.width
    table = Table(show_header=True, header_style="bold")
    table.add_column("node_modules path", overflow="fold", max_width=min(120, max(40, width - 20)))
    table.add_column("size", justify="right", width=14)

    for row in report.rows:
        table.add_row(escape(row.path), _size_cell(row))

    console.print(table)
    console.print(f"[yellow]Found: {report.count} node_modules[/yellow]")
    console.print(f"[yellow]Total: {format_bytes(report.total_bytes)}[/yellow]")


def report_payload(report: ScanReport) -> dict:
    """Build the machine-readable form of a report."""
    rows = []
    for row in report.rows:
        item = {
            "path": row.path,
            "bytes": row.size_bytes,
            "human": format_bytes(row.size_bytes),
        }
        if row.error:
            item["error"] = row.error
        rows.append(item)

    return {
        "root": report.root,
        "count": report.count,
        "totalBytes": report.total_bytes,
        "totalHuman": format_bytes(report.total_bytes),
        "nodeModules": rows,
    }


def show_json_report(report: ScanReport) -> None:
    """Print the report as JSON on stdout."""
    console.print_json(data=report_payload(report))


def show_deletion_summary(summary: DeletionSummary, out: Console = console) -> None:
    """Display failed removals and final counts."""
    for failure in summary.failures:
        err_console.print(
            f"[red]Failed to remove: {escape(failure.path)}[/red] {escape(failure.error_message)}"
        )

    message = f"[green]Done. Removed: {summary.removed_count}[/green]"
    if summary.failed_count > 0:
        message += f"[red], Failed: {summary.failed_count}[/red]"
    out.print(message)


def confirm_action(message: str, out: Console = console) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message, console=out)
