"""Sync command implementation.

Uploads (push) or downloads (pull) credential files and Codex
configuration through the configured WebDAV server.
"""

import asyncio

import typer
from typing_extensions import Annotated

from navette.config import (
    get_accounts_dir,
    get_codex_dir,
    get_endpoint,
    get_sync_policy,
    load_config,
)
from navette.errors import NavetteError
from navette.sync import SyncEngine, SyncPolicy, SyncResult
from navette.webdav import RemoteEndpoint, WebDavClient

app = typer.Typer(help="Synchronize accounts and Codex configuration with WebDAV")


def _require_endpoint() -> RemoteEndpoint:
    """Load the configured endpoint or exit with a hint."""
    endpoint = get_endpoint(load_config())
    if endpoint is None:
        typer.echo("No WebDAV server configured.", err=True)
        typer.echo()
        typer.echo("Run 'navette config init' and set [webdav] url in config.toml")
        raise typer.Exit(1)
    return endpoint


def _check_parts(accounts: bool, codex: bool) -> None:
    if not accounts and not codex:
        typer.echo("Nothing to sync: both --no-accounts and --no-codex given.", err=True)
        raise typer.Exit(1)


def _report(result: SyncResult) -> None:
    """Print a sync result; exit 1 if any item failed."""
    for item in result.uploaded:
        typer.echo(f"  uploaded    {item}")
    for item in result.downloaded:
        typer.echo(f"  downloaded  {item}")
    for error in result.errors:
        typer.echo(f"  error       {error}", err=True)

    typer.echo()
    typer.echo(
        f"{len(result.uploaded)} uploaded, {len(result.downloaded)} downloaded, "
        f"{len(result.errors)} errors"
    )

    if result.errors:
        raise typer.Exit(1)


def _require_policy() -> SyncPolicy:
    """Read the [sync] flags or exit on an invalid value."""
    try:
        return get_sync_policy(load_config())
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1)


async def _run(
    direction: str,
    endpoint: RemoteEndpoint,
    policy: SyncPolicy,
    accounts: bool,
    codex: bool,
) -> SyncResult:
    config = load_config()

    async with WebDavClient() as client:
        engine = SyncEngine(client)
        run = engine.push if direction == "push" else engine.pull
        return await run(
            endpoint,
            policy,
            get_accounts_dir(config),
            get_codex_dir(config),
            accounts=accounts,
            codex=codex,
        )


def _sync(direction: str, accounts: bool, codex: bool) -> None:
    _check_parts(accounts, codex)
    endpoint = _require_endpoint()
    policy = _require_policy()
    try:
        result = asyncio.run(_run(direction, endpoint, policy, accounts, codex))
    except NavetteError as e:
        typer.echo(f"Sync failed: {e}", err=True)
        raise typer.Exit(1)
    _report(result)


@app.command()
def push(
    accounts: Annotated[
        bool, typer.Option("--accounts/--no-accounts", help="Upload credential files")
    ] = True,
    codex: Annotated[
        bool, typer.Option("--codex/--no-codex", help="Upload Codex configuration")
    ] = True,
):
    """Upload local files to the WebDAV server."""
    _sync("push", accounts, codex)


@app.command()
def pull(
    accounts: Annotated[
        bool, typer.Option("--accounts/--no-accounts", help="Download credential files")
    ] = True,
    codex: Annotated[
        bool, typer.Option("--codex/--no-codex", help="Download Codex configuration")
    ] = True,
):
    """Download files from the WebDAV server, overwriting local copies."""
    _sync("pull", accounts, codex)


@app.command("test")
def test_connection():
    """Check the WebDAV server is reachable and the credentials work."""
    endpoint = _require_endpoint()

    async def _probe() -> str:
        async with WebDavClient() as client:
            return await SyncEngine(client).test_connection(endpoint)

    try:
        message = asyncio.run(_probe())
    except NavetteError as e:
        typer.echo(f"{e}", err=True)
        raise typer.Exit(1)

    typer.echo(message)
