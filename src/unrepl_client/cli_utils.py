"""Shared CLI helpers: exit codes and logging setup."""

import logging

from rich.console import Console
from rich.logging import RichHandler

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()


def setup_logging(level: str) -> None:
    """Route library logging through rich at the given level."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
