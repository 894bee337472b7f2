"""
liveload CLI main entry point.

Usage:
    liveload load modplayer plugins/ModPlayer.py    # Load one plugin
    liveload batch plugins.yaml                     # Load a list of configs
    liveload discover ~/.config/liveload/plugins    # Load a local directory
    liveload config                                 # Show effective settings
"""

import asyncio
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from liveload import __version__
from liveload.config.schema import LiveloadSettings
from liveload.config.xdg import get_config_file_path
from liveload.logging_config import setup_logging
from liveload.plugins import ConfigurationError, LoadResult, PluginLoader, PluginManager

app = typer.Typer(
    name="liveload",
    help="Fetch plugin code at runtime and register it with the plugin manager",
    add_completion=False,
)

console = Console()


def load_config(custom_path: str | None = None) -> LiveloadSettings:
    """
    Load liveload configuration from YAML + env vars.

    Args:
        custom_path: Optional config file whose values override the XDG lookup

    Returns:
        LiveloadSettings instance
    """
    if not custom_path:
        return LiveloadSettings()

    config_file = Path(custom_path)
    if not config_file.exists():
        console.print(f"[red]Config file not found:[/red] {config_file}\n")
        raise typer.Exit(2)

    data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    return LiveloadSettings(**data)


def run_loader(loader: PluginLoader) -> LoadResult:
    """Run the loader and print a results table."""
    result = asyncio.run(loader.start())

    table = Table(title="Plugins")
    table.add_column("Key", style="cyan")
    table.add_column("Status")
    table.add_column("Detail", style="dim")

    for key in result.complete:
        table.add_row(key, "[green]complete[/green]", str(loader.complete[key].src or "in-process"))

    for key, error in result.failed.items():
        table.add_row(key, "[red]failed[/red]", str(error))

    console.print(table)

    if not result.ok:
        raise typer.Exit(1)

    return result


def _build_loader(config_file: str, extension: str = "") -> PluginLoader:
    settings = load_config(config_file or None)
    setup_logging(settings.general.log_level, console=Console(stderr=True))

    overrides: dict[str, Any] = {}
    if extension:
        overrides["extension"] = extension

    return PluginLoader.from_settings(settings, manager=PluginManager(), **overrides)


def _queue(loader: PluginLoader, key: Any, url: Any = None) -> None:
    try:
        loader.plugin(key, url)
    except ConfigurationError as e:
        console.print(f"[red]Invalid plugin configuration:[/red] {e}")
        raise typer.Exit(2) from e


@app.command()
def load(
    key: Annotated[str, typer.Argument(help="Plugin key")],
    url: Annotated[str, typer.Argument(help="Plugin URL or path; defaults to <key>.<extension>")] = "",
    extension: Annotated[str, typer.Option("--extension", "-e", help="Extension for derived URLs")] = "",
    config_file: Annotated[str, typer.Option("--config", "-c", help="Custom config file path")] = "",
) -> None:
    """Load a single plugin."""
    loader = _build_loader(config_file, extension)
    _queue(loader, key, url or None)
    run_loader(loader)


@app.command()
def batch(
    file: Annotated[Path, typer.Argument(help="YAML file with a list of plugin configs")],
    config_file: Annotated[str, typer.Option("--config", "-c", help="Custom config file path")] = "",
) -> None:
    """Load a list of plugin configs (key, url, extension, xhrSettings)."""
    if not file.exists():
        console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(2)

    configs = yaml.safe_load(file.read_text(encoding="utf-8")) or []
    if not isinstance(configs, list):
        configs = [configs]

    loader = _build_loader(config_file)
    _queue(loader, configs)
    run_loader(loader)


@app.command()
def discover(
    plugin_dir: Annotated[str, typer.Argument(help="Plugin directory (defaults to the configured one)")] = "",
    config_file: Annotated[str, typer.Option("--config", "-c", help="Custom config file path")] = "",
) -> None:
    """Load every plugin found in a local directory."""
    settings = load_config(config_file or None)
    directory = Path(plugin_dir).expanduser() if plugin_dir else settings.plugin_dir

    loader = _build_loader(config_file)
    configs = loader.discover_plugins(directory)

    if not configs:
        console.print(f"[yellow]No plugins found in {directory}[/yellow]")
        return

    _queue(loader, configs)
    run_loader(loader)


@app.command()
def config(
    config_file: Annotated[str, typer.Option("--config", "-c", help="Custom config file path")] = "",
) -> None:
    """Show effective configuration."""
    settings = load_config(config_file or None)

    console.print(f"[dim]User config: {get_config_file_path()}[/dim]")
    console.print(yaml.safe_dump(settings.model_dump(mode="json"), sort_keys=False))


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"liveload {__version__}")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
