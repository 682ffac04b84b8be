"""Config command implementation.

Manages navette configuration.
"""

import typer
from typing_extensions import Annotated

from navette.config import (
    CONFIG_FILE,
    init_config,
    load_config,
    set_config_value,
)
from navette.config.paths import CONFIG_DIR

app = typer.Typer(help="Manage configuration")

# Keys whose values are never printed
SECRET_KEYS = {"password"}


@app.command()
def init(
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Overwrite existing config")
    ] = False,
):
    """Initialize configuration directory and template config file."""
    created = init_config(overwrite=force)

    if created:
        typer.echo(f"Created config directory: {CONFIG_DIR}")
        typer.echo(f"Created config file: {CONFIG_FILE}")
        typer.echo()
        typer.echo("Edit the config file to add your WebDAV server settings.")
    else:
        typer.echo(f"Config already exists at {CONFIG_FILE}")
        typer.echo("Use --force to overwrite.")


@app.command()
def show():
    """Display current configuration.

    Secrets (like the WebDAV password) are redacted in output.
    """
    config = load_config()

    if not config:
        typer.echo("No configuration found.")
        typer.echo(f"Run 'navette config init' to create {CONFIG_FILE}")
        return

    for section, values in config.items():
        if not isinstance(values, dict):
            typer.echo(f"{section} = {values}")
            continue

        typer.echo(f"[{section}]")
        for key, value in values.items():
            if key in SECRET_KEYS:
                # Redact secret but indicate it's set
                display_value = "***REDACTED***" if value else "(not set)"
            else:
                display_value = value
            typer.echo(f"  {key} = {display_value}")
        typer.echo()


@app.command("set")
def set_value(
    key: Annotated[
        str,
        typer.Argument(
            help="Configuration key (dot notation, e.g., 'webdav.remote_path')"
        ),
    ],
    value: Annotated[str, typer.Argument(help="Configuration value")],
):
    """Set a configuration value using dot notation.

    Examples:
        navette config set webdav.url https://dav.example.com/dav
        navette config set sync.mcp_servers true
    """
    try:
        set_config_value(key, value)
    except ValueError as e:
        typer.echo(f"Invalid value: {e}", err=True)
        raise typer.Exit(1)

    if key.rsplit(".", 1)[-1] in SECRET_KEYS:
        typer.echo(f"Set {key}")
    else:
        typer.echo(f"Set {key} = {value}")
