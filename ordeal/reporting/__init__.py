"""
Ordeal Reporting.

Collect outcomes and render them for the console, JSON, or YAML.
"""

from ordeal.reporting.collector import OutcomeCollector
from ordeal.reporting.console import build_tree, render_console, render_data, summary_table

__all__ = [
    "OutcomeCollector",
    "build_tree",
    "render_console",
    "render_data",
    "summary_table",
]
