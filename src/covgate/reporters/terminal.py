"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from covgate.model.elements import LINE
from covgate.threshold import HealthStatus

if TYPE_CHECKING:
    from covgate.model.result import CoverageResult, Ratio
    from covgate.processor import ProcessResult
    from covgate.threshold import Verdict

console = Console()


_HIGH_COVERAGE = 80.0
_MEDIUM_COVERAGE = 50.0

_STATUS_STYLE = {
    HealthStatus.HEALTHY: ("green", "✓"),
    HealthStatus.UNSTABLE: ("yellow", "⚠"),
    HealthStatus.UNHEALTHY: ("red", "✗"),
}


def _coverage_color(percentage: float) -> str:
    """Return a Rich color name for a given coverage percentage."""
    if percentage >= _HIGH_COVERAGE:
        return "green"
    if percentage >= _MEDIUM_COVERAGE:
        return "yellow"
    return "red"


def _format_ratio(ratio: Ratio | None) -> str:
    if ratio is None or ratio.is_empty:
        return "[dim]n/a[/dim]"
    color = _coverage_color(ratio.percentage)
    return f"[{color}]{ratio.percentage:.1f}%[/{color}] [dim]({ratio})[/dim]"


class CLIReporter:
    """Rich terminal output for coverage runs."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    # ── Coverage ───────────────────────────────────────────────────────

    def print_coverage_summary(self, result: CoverageResult) -> None:
        """Print one row per element kind of the combined tree."""
        table = Table(title="Coverage Summary", title_style="bold cyan")
        table.add_column("Element", style="bold")
        table.add_column("Covered", justify="right")
        table.add_column("Missed", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Coverage", justify="right")

        for element, ratio in sorted(result.counts.items()):
            color = _coverage_color(ratio.percentage)
            table.add_row(
                element.name,
                str(ratio.covered),
                str(ratio.total - ratio.covered),
                str(ratio.total),
                f"[{color}]{ratio.percentage:.1f}%[/{color}]",
            )

        if not result.counts:
            table.add_row("[dim]No coverage data[/dim]", "-", "-", "-", "-")

        self.console.print(table)

    def print_tree(self, result: CoverageResult) -> None:
        """Print the coverage tree with line coverage for every node."""
        tree = Tree(self._node_label(result))
        self._add_branches(tree, result)
        self.console.print(tree)

    def _node_label(self, node: CoverageResult) -> str:
        kind = node.element.name
        name = escape(node.name) if node.name else "[dim]<unnamed>[/dim]"
        return f"[bold]{kind}[/bold] {name}  {_format_ratio(node.get_coverage(LINE))}"

    def _add_branches(self, tree: Tree, node: CoverageResult) -> None:
        for child in node.children:
            branch = tree.add(self._node_label(child))
            self._add_branches(branch, child)

    # ── Verdict ────────────────────────────────────────────────────────

    def print_verdict(self, verdict: Verdict) -> None:
        """Print threshold results and the overall health status."""
        if verdict.results:
            table = Table(title="Thresholds", title_style="bold cyan")
            table.add_column("Element", style="bold")
            table.add_column("Coverage", justify="right")
            table.add_column("Unhealthy <", justify="right")
            table.add_column("Unstable <", justify="right")
            table.add_column("Status", justify="center")
            table.add_column("Node")

            for item in verdict.results:
                color, icon = _STATUS_STYLE[item.status]
                table.add_row(
                    item.threshold.applies_to.name,
                    _format_ratio(item.ratio),
                    f"{item.threshold.unhealthy_min:.1f}%",
                    f"{item.threshold.unstable_min:.1f}%",
                    f"[{color}]{icon} {item.status.value}[/{color}]",
                    escape(item.node),
                )
            self.console.print(table)

        color, icon = _STATUS_STYLE[verdict.status]
        outcome = "FAILED" if verdict.failed else "PASSED"
        body = f"[bold {color}]{icon} {verdict.status.value.upper()}[/bold {color}]  {outcome}"
        if verdict.reasons:
            body += "\n" + "\n".join(f"[dim]- {escape(reason)}[/dim]" for reason in verdict.reasons)
        self.console.print(Panel(body, border_style=color, padding=(0, 2)))

    def print_process_result(self, processed: ProcessResult, *, show_tree: bool = False) -> None:
        """Print everything known about a finished run."""
        self.print_header(f"Coverage: {processed.report_count} report(s)")
        for failure in processed.failures:
            self.print_warning(
                f"Skipped {failure.source.parser.name} report {failure.source.document}: "
                f"{failure.error}"
            )
        self.print_coverage_summary(processed.result)
        if show_tree:
            self.print_tree(processed.result)
        self.print_verdict(processed.verdict)


# Singleton instance for easy import
reporter = CLIReporter()
