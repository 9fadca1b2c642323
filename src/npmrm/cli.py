"""CLI interface for npmrm."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler
from rich.markup import escape

from npmrm import __version__
from npmrm.config import Settings, load_settings
from npmrm.display import (
    confirm_action,
    console,
    err_console,
    project_name,
    scanning_message,
    show_deletion_progress,
    show_deletion_summary,
    show_json_report,
    show_report,
    show_scanning_status,
    show_sizing_progress,
)
from npmrm.locator import RootNotFoundError, find_node_modules, resolve_root
from npmrm.models import DeletionSummary, ScanOptions, ScanReport, SizeResult
from npmrm.remover import remove_all
from npmrm.sizer import measure_all

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="npmrm",
    help="Recursively find node_modules directories, report sizes, and optionally remove them.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"npmrm version {__version__}")
        raise typer.Exit()


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )


def _scan(root: str, options: ScanOptions, settings: Settings) -> list[str]:
    search = dict(
        follow_symlinks=options.follow_symlinks,
        max_depth=options.max_depth,
        concurrency=settings.dir_concurrency,
        ignore_names=settings.ignore_names,
    )

    if not options.interactive:
        err_console.print(f"[cyan]Scanning for node_modules under:[/cyan] {escape(root)}")
        return find_node_modules(root, **search)

    with show_scanning_status(root) as status:

        def update_progress(dirs_scanned: int, found: int) -> None:
            status.update(scanning_message(dirs_scanned, found))

        found = find_node_modules(root, on_progress=update_progress, **search)

    console.print(f"[green]✓ Scan complete: {len(found)} node_modules found[/green]")
    return found


def _measure(found: list[str], options: ScanOptions, settings: Settings) -> list[SizeResult]:
    sizing = dict(
        follow_symlinks=options.follow_symlinks,
        concurrency=settings.size_concurrency,
        dir_concurrency=settings.dir_concurrency,
        stat_concurrency=settings.stat_concurrency,
    )

    if not options.interactive:
        return measure_all(found, **sizing)

    with show_sizing_progress() as progress:
        task = progress.add_task("Calculating sizes", total=len(found))

        def update_progress(path: str, completed: int) -> None:
            progress.update(task, completed=completed)

        return measure_all(found, on_progress=update_progress, **sizing)


def _delete(paths: list[str], options: ScanOptions, settings: Settings) -> DeletionSummary:
    removal = dict(
        concurrency=settings.delete_concurrency,
        retries=settings.delete_retries,
        retry_delay=settings.retry_delay,
    )

    if not options.interactive:
        err_console.print("[red]Deleting...[/red]")
        return remove_all(paths, **removal)

    with show_deletion_progress() as progress:
        task = progress.add_task("Deleting", total=len(paths), current="")

        def update_progress(path: str, completed: int) -> None:
            progress.update(task, completed=completed, current=escape(project_name(path)))

        return remove_all(paths, on_progress=update_progress, **removal)


@app.command()
def main(
    path: Path = typer.Option(..., "--path", "-p", help="Root path to scan"),
    follow_symlinks: bool = typer.Option(
        False, "--follow-symlinks", help="Follow symlinks (default: off)"
    ),
    max_depth: Optional[int] = typer.Option(
        None, "--max-depth", min=0, help="Maximum traversal depth (default: unlimited)"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output results as JSON (still prompts unless --yes)"
    ),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip prompt and delete immediately"),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", help="Settings file (default: ~/.npmrm/config.json)"
    ),
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Find node_modules directories, report their sizes, and optionally remove them."""
    _setup_logging(verbose)
    settings = load_settings(config_file)
    options = ScanOptions(
        root=path,
        follow_symlinks=follow_symlinks,
        max_depth=max_depth,
        skip_confirmation=yes,
        json_output=json_output,
    )
    # Keep stdout clean for the JSON report
    out = console if options.interactive else err_console

    try:
        root = resolve_root(options.root)
    except RootNotFoundError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    found = _scan(root, options, settings)
    logger.info("Found %d node_modules under %s", len(found), root)

    if not found:
        if options.json_output:
            show_json_report(ScanReport(root=root))
        else:
            console.print("[green]No node_modules directories found.[/green]")
        raise typer.Exit(0)

    report = ScanReport.from_results(root, _measure(found, options, settings))

    if options.json_output:
        show_json_report(report)
    else:
        show_report(report)

    if not options.skip_confirmation:
        if not confirm_action("[red]Remove ALL listed node_modules?[/red]", out=out):
            out.print("[dim]Aborted. Nothing removed.[/dim]")
            raise typer.Exit(0)

    summary = _delete(report.paths, options, settings)
    show_deletion_summary(summary, out=out)


if __name__ == "__main__":
    app()
