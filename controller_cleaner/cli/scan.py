"""Scan and clean commands."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table

from controller_cleaner.cli.logging import configure_cli_logging
from controller_cleaner.cli.rich_output import should_use_rich
from controller_cleaner.exceptions import ControllerCleanerError
from controller_cleaner.scan.models import CleanupSummary, ScanReport
from controller_cleaner.scan.registry import ScanRegistry
from controller_cleaner.scan.result import ScanResult, ScanState

logger = logging.getLogger(__name__)

console = Console()


def controllers_argument(func):
    func = click.argument(
        "controllers",
        nargs=-1,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
    )(func)
    func = click.option(
        "--all",
        "scan_root",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=None,
        help="Scan every controller found under this directory.",
    )(func)
    func = click.option(
        "--timeout",
        type=float,
        default=None,
        help="Cancel scans still running after this many seconds.",
    )(func)
    func = click.option(
        "--verbose", "-v", is_flag=True, help="Show info-level log messages."
    )(func)
    return func


def log_print(message: str, use_rich: bool) -> None:
    """Print message, stripping rich markup when rich is disabled."""
    if use_rich:
        console.print(message)
    else:
        click.echo(re.sub(r"\[/?[^\]]+\]", "", message))


def format_status(result: ScanResult) -> str:
    """Rich-markup status cell for a result."""
    state = result.state
    if state is ScanState.failed:
        return f"[red]✖ failed[/red] [dim]{result.fail_message}[/dim]"
    if state is ScanState.cancelled:
        return "[dim]⏭ skipped[/dim]"
    if not state.is_terminal:
        return f"[cyan]{state.value}…[/cyan]"
    if result.is_clean:
        return "[green]✔ clean[/green]"
    return f"[yellow]⚠ {result.obsolete_count} obsolete[/yellow]"


def print_results(results: list[ScanResult], use_rich: bool) -> None:
    if use_rich:
        table = Table(title="Controller Scan")
        table.add_column("Controller", style="cyan")
        table.add_column("Status")
        table.add_column("Obsolete", justify="right")
        table.add_column("Time", justify="right", style="dim")
        for r in results:
            table.add_row(
                r.name, format_status(r), str(r.obsolete_count), f"{r.elapsed:0.1f}s"
            )
        console.print(table)
        return
    for r in results:
        status = re.sub(r"\[/?[^\]]+\]", "", format_status(r))
        click.echo(f"{r.name}\t{status}\t{r.obsolete_count}\t{r.elapsed:0.1f}s")


def _start_scans(
    controllers: tuple[Path, ...], scan_root: Path | None
) -> ScanRegistry:
    if not controllers and scan_root is None:
        raise click.UsageError("Pass controller files or --all DIR.")
    registry = ScanRegistry()
    try:
        if scan_root is not None:
            registry.scan_all(scan_root)
        registry.scan_many(controllers)
    except (OSError, ControllerCleanerError) as e:
        raise click.ClickException(str(e)) from e
    if len(registry) == 0:
        raise click.ClickException(f"No controllers found under {scan_root}")
    return registry


def _wait(registry: ScanRegistry, timeout: float | None, use_rich: bool) -> None:
    """Wait for every scan, cancelling those that exceed the timeout."""
    if use_rich:
        with console.status(f"Scanning {len(registry)} controller(s)..."):
            registry.wait_all(timeout)
    else:
        registry.wait_all(timeout)
    for result in registry:
        if not result.is_finished:
            logger.warning(f"Scan of {result.name} timed out, cancelling")
            result.cancel_scan()
            result.wait()


# =============================================================================
# Scan Command
# =============================================================================


@click.command("scan")
@controllers_argument
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--yaml", "as_yaml", is_flag=True, help="Output as YAML")
@click.option(
    "--check",
    is_flag=True,
    help=(
        "Exit with status 1 if any controller has obsolete sub-assets "
        "or was not fully scanned."
    ),
)
def scan(
    controllers: tuple[Path, ...],
    scan_root: Path | None,
    timeout: float | None,
    verbose: bool,
    as_json: bool,
    as_yaml: bool,
    check: bool,
) -> None:
    """Scan controllers for unused sub-assets.

    \b
    Examples:
      controller-cleaner scan Assets/Player.controller
      controller-cleaner scan --all Assets --json
      controller-cleaner scan --all . --check        # CI gate
    """
    configure_cli_logging("scan", verbose=verbose)
    use_rich = should_use_rich() and not (as_json or as_yaml)

    registry = _start_scans(controllers, scan_root)
    _wait(registry, timeout, use_rich)
    results = list(registry)

    if as_json or as_yaml:
        reports = [ScanReport.from_result(r).model_dump(mode="json") for r in results]
        if as_json:
            click.echo(json.dumps(reports, indent=2))
        else:
            click.echo(yaml.safe_dump(reports, sort_keys=False), nl=False)
    else:
        print_results(results, use_rich)

    if any(r.state is ScanState.failed for r in results):
        raise SystemExit(1)
    if check and not all(
        r.state is ScanState.completed and r.is_clean for r in results
    ):
        raise SystemExit(1)


# =============================================================================
# Clean Command
# =============================================================================


@click.command("clean")
@controllers_argument
@click.option("--dry-run", is_flag=True, help="List what would be removed.")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts.")
def clean(
    controllers: tuple[Path, ...],
    scan_root: Path | None,
    timeout: float | None,
    verbose: bool,
    dry_run: bool,
    yes: bool,
) -> None:
    """Scan controllers, then remove their unused sub-assets.

    Removed objects are deleted from the controller file and every transition
    list is repaired. Each cleaned controller is rescanned afterwards.

    \b
    Examples:
      controller-cleaner clean Assets/Player.controller
      controller-cleaner clean --all Assets --dry-run
      controller-cleaner clean --all Assets -y
    """
    configure_cli_logging("clean", verbose=verbose)
    use_rich = should_use_rich()

    registry = _start_scans(controllers, scan_root)
    _wait(registry, timeout, use_rich)

    failed = False
    for result in registry:
        if result.state is ScanState.failed:
            failed = True
            log_print(
                f"[red]{result.name}: scan failed: {result.fail_message}[/red]",
                use_rich,
            )
            continue
        if not result.can_clean:
            continue

        if dry_run:
            log_print(
                f"[yellow]{result.name}[/yellow]: {result.obsolete_count} "
                "obsolete sub-assets",
                use_rich,
            )
            for obj in sorted(result.obsolete, key=lambda o: o.file_id):
                log_print(f"  &{obj.file_id} {obj.display_name}", use_rich)
            continue

        if not yes and not click.confirm(
            f"Remove {result.obsolete_count} obsolete sub-assets from {result.name}?",
            default=True,
        ):
            continue

        try:
            report = result.clean_up()
        except ControllerCleanerError as e:
            failed = True
            log_print(f"[red]{result.name}: cleanup failed: {e}[/red]", use_rich)
            continue
        if report is None:
            continue
        result.wait()
        summary = CleanupSummary.from_report(report)
        log_print(
            f"[green]{summary.controller}[/green]: removed "
            f"{len(summary.removed)} sub-assets, dropped {summary.repaired} "
            "transition references",
            use_rich,
        )
        for failure in summary.failures:
            failed = True
            log_print(f"  [red]✖ {failure}[/red]", use_rich)

    print_results(list(registry), use_rich)
    if failed:
        raise SystemExit(1)
