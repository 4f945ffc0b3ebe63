"""Config command group for unrepl-client.

Provides commands to inspect the effective configuration:
- `unrepl-client config show`: Print the loaded configuration
- `unrepl-client config classpath`: Print the classpath of a project directory

Example:
    $ unrepl-client config show --config ~/.config/unrepl-client/config.yaml
    $ unrepl-client config classpath . --extra lib/extra.jar
"""

import logging
from pathlib import Path

import typer
import yaml
from rich.markup import escape

from unrepl_client.cli_utils import EXIT_CONFIG_ERROR, EXIT_ERROR, console, setup_logging
from unrepl_client.core.config import ClientConfig, load_config_file
from unrepl_client.core.exceptions import ConfigError
from unrepl_client.manager.classpath import classpath
from unrepl_client.manager.connection_pool import ConnectionIdentity
from unrepl_client.manager.project import Project

logger = logging.getLogger(__name__)

config_app = typer.Typer(
    name="config",
    help="Configuration inspection commands",
    no_args_is_help=True,
)


def _load(config: Path | None, verbose: bool) -> ClientConfig:
    try:
        loaded = load_config_file(config)
    except ConfigError as e:
        console.print(f"[red][ERR][/red] {escape(str(e))}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    setup_logging("DEBUG" if verbose else loaded.log_level)
    return loaded


class _NullTranscript:
    """Transcript for offline projects; discards everything."""

    def append(self, text: str) -> None:
        pass

    def mark(self) -> int:
        return 0

    def dispose(self) -> None:
        pass


@config_app.command(name="show")
def show_command(
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.config/unrepl-client/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Print the effective configuration as YAML."""
    loaded = _load(config, verbose)
    dumped = yaml.safe_dump(loaded.model_dump(mode="json"), default_flow_style=False)
    console.print(dumped, markup=False, highlight=False, soft_wrap=True, end="")


@config_app.command(name="classpath")
def classpath_command(
    directory: Path = typer.Argument(..., help="Project directory"),
    extra: list[Path] = typer.Option(
        [],
        "--extra",
        "-e",
        help="Project specific classpath entry (repeatable)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to config file (default: ~/.config/unrepl-client/config.yaml)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Print the classpath a project rooted at DIRECTORY would use.

    Missing entries are skipped; one resolved path is printed per line.
    """
    loaded = _load(config, verbose)

    if not directory.is_dir():
        console.print(f"[red]Error:[/red] Not a directory: {escape(str(directory))}")
        raise typer.Exit(code=EXIT_ERROR)

    project = Project(
        identity=ConnectionIdentity("localhost", 0),
        transcript=_NullTranscript(),
        directory=directory,
        extra_classpath=list(extra),
    )
    entries = classpath(project, loaded.global_classpath)
    logger.debug("Resolved %d classpath entries for %s", len(entries), directory)
    for entry in entries:
        console.print(str(entry), markup=False, highlight=False, soft_wrap=True)
