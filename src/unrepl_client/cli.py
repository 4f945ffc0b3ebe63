"""Command line entry point for unrepl-client.

Example:
    $ unrepl-client config show
    $ unrepl-client config classpath ~/src/my-project
"""

import typer

from unrepl_client.commands.config import config_app

app = typer.Typer(
    name="unrepl-client",
    help="Inspect unrepl-client configuration",
    no_args_is_help=True,
)
app.add_typer(config_app)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
