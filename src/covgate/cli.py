"""covgate CLI: top-level command group."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from covgate import __version__
from covgate.adapters.java import decode_method_name
from covgate.adapters.registry import available_parsers
from covgate.config import (
    AdapterConfig,
    CovgateConfig,
    ThresholdConfig,
    build_thresholds,
    load_config,
    parse_threshold_spec,
    validate_config,
)
from covgate.errors import CoverageError, MalformedReportError
from covgate.model.elements import ELEMENTS
from covgate.processor import CoverageProcessor, sources_from_config
from covgate.reporters.json_reporter import JSONReporter
from covgate.reporters.terminal import reporter

logger = logging.getLogger(__name__)
console = Console()


def _setup_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=Console(stderr=True),
                show_time=verbose,
                show_path=False,
                rich_tracebacks=True,
            )
        ],
        force=True,
    )


def _merge_thresholds(
    configured: list[ThresholdConfig],
    overrides: list[ThresholdConfig],
) -> list[ThresholdConfig]:
    """Return *configured* with entries of the same target replaced by *overrides*."""
    override_targets = {entry.target.strip().lower() for entry in overrides}
    kept = [entry for entry in configured if entry.target.strip().lower() not in override_targets]
    return kept + overrides


def _load_run_config(
    config_path: str | None,
    reports: tuple[str, ...],
    adapter_type: str,
    threshold_specs: tuple[str, ...],
) -> CovgateConfig:
    try:
        config = load_config(config_path or ".")
    except Exception as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e

    cwd = Path.cwd()
    config.adapters.extend(
        AdapterConfig(type=adapter_type, path=str(cwd / report)) for report in reports
    )

    try:
        overrides = [parse_threshold_spec(spec) for spec in threshold_specs]
    except ValueError as e:
        reporter.print_error(str(e))
        raise click.Abort from e
    config.thresholds = _merge_thresholds(config.thresholds, overrides)

    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s):")
        console.print()
        for idx, error in enumerate(errors, start=1):
            console.print(f"  {idx}. [red]{error}[/red]")
        raise click.Abort
    return config


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="covgate")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """covgate: merge XML coverage reports and gate builds on health thresholds."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose=verbose)


@cli.command("check")
@click.argument("reports", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True),
    help="Project root or .covgate.yml file (default: current directory).",
)
@click.option(
    "--adapter",
    "adapter_type",
    default="java",
    show_default=True,
    type=click.Choice(available_parsers(), case_sensitive=False),
    help="Report dialect of the REPORT arguments.",
)
@click.option(
    "--threshold",
    "threshold_specs",
    multiple=True,
    metavar="KIND:UNHEALTHY:UNSTABLE",
    help="Health threshold, e.g. line:40:60. Repeatable; overrides config entries.",
)
@click.option("--fail-unhealthy", is_flag=True, help="Exit 1 when a threshold is unhealthy.")
@click.option("--fail-unstable", is_flag=True, help="Exit 1 when a threshold is unstable.")
@click.option("--fail-no-reports", is_flag=True, help="Exit 1 when there is no coverage data.")
@click.option("--skip-failed", is_flag=True, help="Skip unreadable reports instead of aborting.")
@click.option(
    "--json-output",
    "json_output",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write a JSON report to this path.",
)
@click.option("--tree", "show_tree", is_flag=True, help="Print the full coverage tree.")
def check(
    reports: tuple[str, ...],
    config_path: str | None,
    adapter_type: str,
    threshold_specs: tuple[str, ...],
    json_output: str | None,
    *,
    fail_unhealthy: bool,
    fail_unstable: bool,
    fail_no_reports: bool,
    skip_failed: bool,
    show_tree: bool,
) -> None:
    """Parse coverage reports, merge them and check health thresholds.

    Reports come from the REPORT arguments and the ``adapters`` section of
    ``.covgate.yml``.

    Example:
      covgate check build/coverage.xml --threshold line:40:60 --fail-unhealthy
    """
    config = _load_run_config(config_path, reports, adapter_type, threshold_specs)
    config.fail_unhealthy = config.fail_unhealthy or fail_unhealthy
    config.fail_unstable = config.fail_unstable or fail_unstable
    config.fail_no_reports = config.fail_no_reports or fail_no_reports
    config.skip_failed_adapters = config.skip_failed_adapters or skip_failed

    try:
        thresholds = build_thresholds(config)
        sources = sources_from_config(config)
    except (CoverageError, KeyError, ValueError) as e:
        reporter.print_error(str(e))
        raise click.Abort from e

    if not sources:
        reporter.print_warning("No coverage reports configured")

    processor = CoverageProcessor.from_config(config)
    try:
        processed = processor.perform_coverage_report(sources, thresholds)
    except (MalformedReportError, OSError) as e:
        reporter.print_error(f"Failed to read coverage report: {e}")
        raise click.Abort from e

    reporter.print_process_result(processed, show_tree=show_tree)

    if json_output:
        path = JSONReporter().generate(Path(json_output), processed)
        reporter.print_info(f"JSON report written to {path}")

    if processed.verdict.failed:
        sys.exit(1)


@cli.command("decode")
@click.argument("name")
@click.argument("signature")
def decode(name: str, signature: str) -> None:
    """Decode a JVM method descriptor into a readable signature.

    Example:
      covgate decode foo "(ILjava/lang/String;)Z"
    """
    click.echo(decode_method_name(name, signature))


@cli.command("elements")
def elements() -> None:
    """List the registered coverage element kinds."""
    table = Table(title="Coverage Elements", title_style="bold cyan")
    table.add_column("Order", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Kind")

    for element in ELEMENTS:
        table.add_row(str(element.order), element.name, "counter" if element.counter else "node")

    console.print(table)
