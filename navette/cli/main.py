"""Main CLI entry point for navette."""

import logging

import typer
from typing_extensions import Annotated

from navette import __version__
from navette.cli import commands

app = typer.Typer(
    name="navette",
    help="Sync Codex credentials and configuration through WebDAV",
    no_args_is_help=True,
)

# Register command groups
app.add_typer(commands.sync.app, name="sync")
app.add_typer(commands.accounts.app, name="accounts")
app.add_typer(commands.config.app, name="config")


@app.callback()
def root(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show debug logging")
    ] = False,
):
    """Sync Codex credentials and configuration through WebDAV."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version():
    """Show version information."""
    typer.echo(f"navette version {__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
