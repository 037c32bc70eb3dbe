"""CLI entry point for the UI validation engine."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from src.errors import PhaseError
from src.models.config import ValidationConfig
from src.orchestrator import Orchestrator
from src.storage.local import LocalRunStore

console = Console()

DEFAULT_CONFIG_FILE = "ui-validate.json"

STATUS_STYLES = {
    "pass": "green",
    "partial": "yellow",
    "fail": "red",
    "not_tested": "dim",
    "completed": "green",
    "running": "yellow",
    "failed": "red",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def build_config(
    spec: Optional[str], url: Optional[str], output: Optional[str],
    config: Optional[str], no_probes: bool,
) -> ValidationConfig:
    """Config file values first, then environment defaults; command-line options win."""
    if config:
        cfg = ValidationConfig.load(config)
        updates = {k: v for k, v in (("spec_file", spec), ("url", url), ("output_dir", output)) if v}
        cfg = cfg.model_copy(update=updates)
    else:
        if not spec or not url:
            raise click.UsageError("--spec and --url are required without --config")
        cfg = ValidationConfig.from_env(spec, url, output or "./validation-reports")
    if no_probes:
        cfg = cfg.model_copy(update={"enable_probes": False})
    return cfg


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """LLM-driven web UI validation against a written specification"""
    setup_logging(verbose)


@cli.command()
@click.option("--spec", "-s", help="Specification document (.md, .markdown, .txt)")
@click.option("--url", "-u", help="URL of the site under test")
@click.option("--output", "-o", help="Directory for the traceability reports")
@click.option("--config", "-c", help="Config file path")
@click.option("--no-probes", is_flag=True, help="Skip the deterministic validation probes")
def validate(spec: Optional[str], url: Optional[str], output: Optional[str],
             config: Optional[str], no_probes: bool) -> None:
    """Validate a site against its specification and write a traceability report."""
    try:
        cfg = build_config(spec, url, output, config, no_probes)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run 'ui-validate init' to create a default config.")
        sys.exit(1)

    if not Path(cfg.spec_file).exists():
        console.print(f"[red]Specification file not found: {cfg.spec_file}[/red]")
        sys.exit(1)

    try:
        result = Orchestrator(cfg).run()
    except EnvironmentError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    except PhaseError as e:
        console.print(f"[red]Validation failed during {e.phase}:[/red] {e.message}")
        sys.exit(1)

    report = result.report
    console.print("\n[bold green]Validation Complete[/bold green]")

    table = Table(title="Requirement Results")
    table.add_column("Requirement", style="bold")
    table.add_column("Summary")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    results_by_id = {r.requirement_id: r for r in report.results}
    for req in report.requirements:
        r = results_by_id.get(req.id)
        if r is None:
            continue
        table.add_row(req.id, req.summary, _styled(r.status), f"{r.score:g}")
    console.print(table)

    summary = Table(title="Summary")
    summary.add_column("Metric", style="bold")
    summary.add_column("Value")
    summary.add_row("Overall Score", f"{report.overall_score}/100")
    summary.add_row("Coverage", f"{report.coverage_score}%")
    if report.probe_summary:
        summary.add_row(
            "Probes",
            f"{report.probe_summary.passed}/{report.probe_summary.total} passed",
        )
    console.print(summary)
    console.print(report.summary)

    console.print(f"  JSON report: [blue]{result.report_path}[/blue]")
    console.print(f"  MARKDOWN report: [blue]{result.markdown_path}[/blue]")


@cli.command()
@click.option("--spec", "-s", prompt="Specification file", help="Specification document")
@click.option("--url", "-u", prompt="Target URL", help="URL of the site under test")
@click.option("--path", "config_path", default=DEFAULT_CONFIG_FILE, help="Where to write the config")
def init(spec: str, url: str, config_path: str) -> None:
    """Create a default configuration file."""
    path = Path(config_path)
    if path.exists():
        if not click.confirm(f"{path} already exists. Overwrite?"):
            return

    cfg = ValidationConfig(spec_file=spec, url=url)
    cfg.save(path)
    console.print(f"[green]Created {path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print(f"  [blue]ui-validate validate --config {path}[/blue]")


@cli.command()
@click.option("--runs-dir", default=".ui-qa-runs", help="Local run store directory")
@click.option("--limit", "-n", default=20, show_default=True, help="Number of runs to show")
def runs(runs_dir: str, limit: int) -> None:
    """List local validation runs, newest first."""
    records = LocalRunStore(runs_dir).list_runs()
    if not records:
        console.print("[yellow]No local runs found[/yellow]")
        return

    table = Table(title=f"Local Runs ({runs_dir})")
    table.add_column("Run ID", style="bold")
    table.add_column("Started")
    table.add_column("Status")
    table.add_column("Score", justify="right")
    table.add_column("URL")
    for run in records[:limit]:
        started = datetime.fromtimestamp(run.started_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
        score = "" if run.score is None else str(run.score)
        table.add_row(run.run_id, started, _styled(run.status), score, run.url)
    console.print(table)


if __name__ == "__main__":
    cli()
