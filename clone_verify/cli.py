"""CLI entry point for the visual verification engine."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from clone_verify.comparison.evaluator import compare_frames
from clone_verify.comparison.loader import load_frame, save_frame
from clone_verify.errors import ConfigurationError, VerificationError
from clone_verify.models.config import ComparisonPolicy, LocalServerConfig, PageSpec, VerifyConfig
from clone_verify.models.result import SuiteReport
from clone_verify.orchestrator import SuiteOrchestrator
from clone_verify.reporter.json_report import load_json_report
from clone_verify.reporter.reporter import Reporter

console = Console()

_STATUS_STYLE = {"pass": "green", "fail": "red", "error": "yellow"}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def print_report(report: SuiteReport) -> None:
    table = Table(title=f"Cases: {report.run_id}")
    table.add_column("Page", style="bold")
    table.add_column("Viewport")
    table.add_column("Status")
    table.add_column("Diff %", justify="right")
    table.add_column("Height Δ %", justify="right")
    table.add_column("Detail")
    for o in report.outcomes:
        style = _STATUS_STYLE[o.status]
        if o.is_error:
            table.add_row(o.page_name, o.viewport_name, f"[{style}]ERROR[/{style}]",
                          "-", "-", o.error.message[:80])
        else:
            r = o.result
            detail = "" if r.dimensions_match else f"{r.reference_dimensions} vs {r.candidate_dimensions}"
            table.add_row(o.page_name, o.viewport_name, f"[{style}]{o.status.upper()}[/{style}]",
                          f"{r.diff_percentage:.2f}", f"{r.height_delta_percentage:.2f}", detail)
    console.print(table)

    summary = Table(title="Results Summary")
    summary.add_column("Metric", style="bold")
    summary.add_column("Value")
    summary.add_row("Run ID", report.run_id)
    summary.add_row("Duration", f"{report.duration_seconds}s")
    summary.add_row("Total Tests", str(report.total_tests))
    summary.add_row("Passed", f"[green]{report.passed}[/green]")
    summary.add_row("Failed", f"[red]{report.failed}[/red]")
    summary.add_row("Errors", f"[yellow]{report.errored}[/yellow]")
    summary.add_row("Accuracy", f"{report.accuracy_percentage:.1f}%")
    console.print(summary)
    if report.no_tests_ran:
        console.print("[red]No tests ran[/red]")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual regression verification for cloned websites"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default="verify-config.json", help="Config file path")
@click.option("--pixel-perfect", is_flag=True, help="Use the strict 1% / 0% policy")
def run(config: str, pixel_perfect: bool) -> None:
    """Capture and compare every page at every viewport."""
    try:
        cfg = VerifyConfig.load(config)
    except ConfigurationError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run 'clone-verify init' to create a default config.")
        sys.exit(1)

    if pixel_perfect:
        cfg = cfg.model_copy(update={"policy": ComparisonPolicy.pixel_perfect()})

    reporter = Reporter(Path(cfg.report_output_dir), cfg.report_formats)
    orchestrator = SuiteOrchestrator(cfg, reporter=reporter)
    try:
        report = orchestrator.run_sync()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)

    console.print("\n[bold green]Verification Complete[/bold green]")
    print_report(report)
    for fmt, path in orchestrator.report_paths.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if not report.all_passed:
        sys.exit(1)


@cli.command()
@click.argument("reference", type=click.Path(exists=True, dir_okay=False))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False))
@click.option("--tolerance", "-t", default=0.1, show_default=True, type=click.FloatRange(0, 1),
              help="Per-pixel color distance tolerance")
@click.option("--max-diff", default=5.0, show_default=True, type=click.FloatRange(0, 100),
              help="Maximum differing pixels, percent")
@click.option("--max-height-delta", default=10.0, show_default=True, type=click.FloatRange(0, 100),
              help="Maximum height difference, percent")
@click.option("--diff-out", "-o", default=None, help="Write the diff image to this path")
def compare(reference: str, candidate: str, tolerance: float, max_diff: float,
            max_height_delta: float, diff_out: str | None) -> None:
    """Compare two image files directly."""
    policy = ComparisonPolicy(max_diff_percent=max_diff, max_height_delta_percent=max_height_delta)
    try:
        result = compare_frames(load_frame(reference), load_frame(candidate), policy, tolerance)
    except VerificationError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        sys.exit(2)

    if diff_out and result.diff_image is not None:
        save_frame(result.diff_image, diff_out)
        console.print(f"Diff image: [blue]{diff_out}[/blue]")

    verdict = "[green]PASS[/green]" if result.passed else "[red]FAIL[/red]"
    console.print(
        f"{verdict} {result.pixel_difference_count:,}/{result.total_compared_pixels:,} pixels differ "
        f"({result.diff_percentage:.2f}%), height delta {result.height_delta_percentage:.2f}% "
        f"[{result.reference_dimensions} vs {result.candidate_dimensions}]"
    )
    if not result.passed:
        sys.exit(1)


@cli.command()
@click.argument("report_file", type=click.Path(exists=True, dir_okay=False))
def report(report_file: str) -> None:
    """Print the summary of a saved JSON report."""
    try:
        suite = load_json_report(Path(report_file))
    except (ValueError, OSError) as e:
        console.print(f"[red]Could not read report {report_file}: {e}[/red]")
        sys.exit(2)
    print_report(suite)


@cli.command()
@click.option("--reference", "-r", prompt="Reference site URL", help="Live site to compare against")
@click.option("--clone-dir", "-d", default="./docs", show_default=True, help="Directory of the static clone")
@click.option("--output", "-o", default="verify-config.json", show_default=True, help="Config file to write")
def init(reference: str, clone_dir: str, output: str) -> None:
    """Create a default configuration file."""
    config_path = Path(output)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = VerifyConfig(
        pages=[PageSpec(name="home", reference=reference, candidate="index.html")],
        serve=LocalServerConfig(directory=clone_dir),
    )
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nAdd one entry per page under \"pages\", then run:")
    console.print(f"  [blue]clone-verify run -c {config_path}[/blue]")


if __name__ == "__main__":
    cli()
