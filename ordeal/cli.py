"""
Ordeal CLI - Command-line interface for running tests and suites.

Loads a module that defines tests and suites, runs them, and reports the
outcomes.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.tree import Tree

from ordeal.config import CONFIG_FILENAME, DEFAULT_CONFIG, ConfigLoader, OrdealConfig
from ordeal.errors import ConfigError, DefinitionNotFoundError, MisuseError
from ordeal.logging import configure_logging
from ordeal.models import SuiteDefinition
from ordeal.reporting import OutcomeCollector, render_console, render_data
from ordeal.runtime import Runtime, reset_runtime

app = typer.Typer(
    name="ordeal",
    help="Unit tests with composable fixtures and scoped mocks",
    add_completion=False,
)

console = Console()


def version_callback(value: bool) -> None:
    """Display version information."""
    if value:
        from ordeal import __version__

        console.print(f"[bold blue]Ordeal[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Ordeal - unit tests with composable fixtures and scoped mocks."""
    pass


@app.command("run")
def run_command(
    target: str = typer.Argument(..., help="Python file or dotted module defining tests"),
    names: list[str] = typer.Argument(None, help="Tests or suites to run"),
    config: str = typer.Option(None, "--config", "-c", help="Path to ordeal.yaml"),
    format_: str = typer.Option(
        None, "--format", "-f", help="Output format: console, json, yaml"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Verbose output"),
) -> None:
    """
    Run tests and suites defined by TARGET.

    Without NAMES, runs every suite that is not nested in another suite and
    every test that belongs to no suite, in definition order.
    """
    cfg = _load_config(config, target)
    report_format = format_ or cfg.report_format
    if report_format not in ("console", "json", "yaml"):
        console.print(f"[red]Error:[/red] Unknown format: {report_format}")
        raise typer.Exit(1)

    configure_logging("DEBUG" if verbose else cfg.log_level, color=cfg.color)
    runtime = reset_runtime(cfg)
    collector = OutcomeCollector()
    runtime.add_listener(collector)

    if report_format == "console":
        console.print(
            Panel(
                f"[bold]Running:[/bold] {escape(target)}",
                title="Ordeal",
                border_style="green",
            )
        )

    try:
        _load_target(target)
        if not names:
            # Units that already ran while loading are not run twice
            ran = {outcome.name for outcome in collector.outcomes}
            names = [d.name for d in runtime.composer.roots() if d.name not in ran]
        for name in names:
            runtime.invoke(name)
    except DefinitionNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e.args[0]))}")
        raise typer.Exit(1) from e
    except MisuseError as e:
        console.print(f"[red]Framework misuse:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e

    if report_format == "console":
        render_console(collector, console, show_values=cfg.show_values)
    else:
        typer.echo(render_data(collector, report_format))

    if not collector.successful:
        raise typer.Exit(1)


@app.command("list")
def list_command(
    target: str = typer.Argument(..., help="Python file or dotted module defining tests"),
) -> None:
    """
    Show the tests and suites defined by TARGET as a tree.
    """
    cfg = _load_config(None, target)
    runtime = reset_runtime(cfg.model_copy(update={"run_on_define": False}))
    try:
        _load_target(target)
    except MisuseError as e:
        console.print(f"[red]Framework misuse:[/red] {escape(str(e))}")
        raise typer.Exit(2) from e

    roots = runtime.composer.roots()
    if not roots:
        console.print(f"[yellow]No tests or suites defined in {escape(target)}[/yellow]")
        return

    tree = Tree(f"[bold]{escape(target)}[/bold]")
    for root in roots:
        _add_definition(tree, runtime, root.name, set())
    console.print(tree)


@app.command()
def init(
    path: str = typer.Argument(".", help="Directory for ordeal.yaml"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config"),
) -> None:
    """
    Write a default ordeal.yaml.
    """
    target_path = Path(path)
    config_file = target_path / CONFIG_FILENAME

    if config_file.exists() and not force:
        console.print(f"[yellow]Config file already exists:[/yellow] {config_file}")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    target_path.mkdir(parents=True, exist_ok=True)
    config_file.write_text(DEFAULT_CONFIG)
    console.print(f"[green]✓[/green] Created configuration: {config_file}")


# =============================================================================
# Helper Functions
# =============================================================================


def _config_start(target: str) -> Path:
    path = Path(target)
    return path.parent if path.exists() else Path.cwd()


def _load_config(config: str | None, target: str) -> OrdealConfig:
    try:
        if config:
            return ConfigLoader.from_yaml(config)
        return ConfigLoader.discover(_config_start(target))
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Config file not found: {config}")
        raise typer.Exit(1) from None
    except ConfigError as e:
        console.print(f"[red]Error:[/red] Invalid configuration: {escape(str(e))}")
        raise typer.Exit(1) from e


def _load_target(target: str) -> None:
    """Import a file path or dotted module so its definitions register."""
    path = Path(target)
    if path.suffix == ".py" or path.exists():
        if not path.is_file():
            console.print(f"[red]Error:[/red] Path not found: {escape(target)}")
            raise typer.Exit(1)
        module_dir = str(path.resolve().parent)
        if module_dir not in sys.path:
            sys.path.insert(0, module_dir)
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            console.print(f"[red]Error:[/red] Cannot load: {escape(target)}")
            raise typer.Exit(1)
        module = importlib.util.module_from_spec(spec)
        sys.modules[path.stem] = module
        spec.loader.exec_module(module)
        return

    try:
        importlib.import_module(target)
    except ModuleNotFoundError as e:
        console.print(f"[red]Error:[/red] Module not found: {escape(target)}")
        raise typer.Exit(1) from e


def _add_definition(tree: Tree, runtime: Runtime, name: str, seen: set[str]) -> None:
    definition = runtime.registry.get(name)
    if definition is None:
        tree.add(f"[red]? {escape(name)}[/red] [dim](undefined)[/dim]")
        return
    note = ""
    if definition.annotation:
        note = f" [dim]{escape(definition.annotation.splitlines()[0])}[/dim]"
    if not isinstance(definition, SuiteDefinition):
        tree.add(f"[cyan]{escape(name)}[/cyan]{note}")
        return
    if name in seen:
        tree.add(f"[magenta]{escape(name)}[/magenta] [dim](cycle)[/dim]")
        return
    node = tree.add(f"[bold magenta]{escape(name)}[/bold magenta]{note}")
    for child in definition.children:
        _add_definition(node, runtime, child, seen | {name})


if __name__ == "__main__":
    app()
