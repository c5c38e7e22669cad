"""
Console, JSON, and YAML rendering of outcomes.
"""

import json
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from ordeal.models import Outcome, Status, SuiteOutcome, TestOutcome
from ordeal.reporting.collector import OutcomeCollector

STATUS_STYLE = {
    Status.PASS: ("✓", "green"),
    Status.FAIL: ("✗", "red"),
    Status.ERROR: ("!", "red bold"),
    Status.NOT_RUN: ("○", "yellow"),
    Status.SKIPPED: ("↷", "dim"),
}


def _label(outcome: Outcome) -> str:
    icon, color = STATUS_STYLE[outcome.status]
    label = f"[{color}]{icon} {escape(outcome.name)}[/{color}]"
    if outcome.annotation:
        first_line = outcome.annotation.splitlines()[0]
        label += f" [dim]{escape(first_line)}[/dim]"
    if isinstance(outcome, TestOutcome) and outcome.suite:
        label += f" [dim]({escape(outcome.suite)})[/dim]"
    return label


def _add_details(node: Tree, outcome: Outcome, show_values: bool) -> None:
    if isinstance(outcome, TestOutcome) and outcome.failure:
        failure = outcome.failure
        text = f"[red]{escape(failure.description)}[/red]"
        if failure.annotation:
            text += f" [dim]{escape(failure.annotation)}[/dim]"
        detail = node.add(text)
        if show_values:
            for key, value in failure.values.items():
                detail.add(f"[cyan]{escape(key)}[/cyan] = {escape(repr(value))}")
    if outcome.error:
        node.add(f"[red]{outcome.error.type}:[/red] {escape(outcome.error.message)}")


def build_tree(outcome: Outcome, show_values: bool = True, tree: Tree | None = None) -> Tree:
    """Build a rich Tree for an outcome and its children."""
    node = tree.add(_label(outcome)) if tree is not None else Tree(_label(outcome))
    _add_details(node, outcome, show_values)
    if isinstance(outcome, SuiteOutcome):
        for child in outcome.children:
            build_tree(child, show_values, node)
    return node


def summary_table(collector: OutcomeCollector) -> Table:
    """Counts per status across every collected test."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Status", style="cyan")
    table.add_column("Tests", justify="right")
    for status in Status:
        count = collector.count(status)
        if count or status in (Status.PASS, Status.FAIL):
            icon, color = STATUS_STYLE[status]
            table.add_row(f"[{color}]{icon} {status.value}[/{color}]", str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{collector.total}[/bold]")
    return table


def render_console(
    collector: OutcomeCollector, console: Console, show_values: bool = True
) -> None:
    """Print every collected outcome as a tree, then the summary table."""
    for outcome in collector.outcomes:
        console.print(build_tree(outcome, show_values))
    console.print(summary_table(collector))


def render_data(collector: OutcomeCollector, format_: str) -> str:
    """Serialize collected outcomes as ``json`` or ``yaml``."""
    data: dict[str, Any] = collector.to_dict()
    if format_ == "json":
        return json.dumps(data, indent=2)
    if format_ == "yaml":
        result: str = yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
        return result
    raise ValueError(f"Unknown report format: {format_}")
