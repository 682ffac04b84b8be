"""Accounts command implementation.

Lists the credential files in the accounts directory and refreshes
their OAuth tokens.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

import typer
from typing_extensions import Annotated

from navette.auth import refresh_credential_file, scan_accounts
from navette.config import (
    get_accounts_dir,
    get_active_auth_file,
    get_oauth_settings,
    load_config,
)

app = typer.Typer(help="List accounts and refresh their tokens")


def _format_expiry(expires_at: int | None) -> str:
    if expires_at is None:
        return "unknown"
    return datetime.fromtimestamp(expires_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _resolve_account(name_or_path: str, accounts_dir: Path) -> Path:
    """Accept a file path, or an account name inside the accounts directory."""
    candidate = Path(name_or_path).expanduser()
    if candidate.is_file():
        return candidate
    return accounts_dir / f"{name_or_path}.json"


@app.command("list")
def list_accounts():
    """List credential files with the identity found in their id token."""
    config = load_config()
    accounts_dir = get_accounts_dir(config)

    accounts = scan_accounts(accounts_dir, get_active_auth_file(config))

    if not accounts:
        typer.echo(f"No accounts found in {accounts_dir}")
        return

    for account in accounts:
        marker = "*" if account.is_active else " "
        identity = account.identity
        typer.echo(f"{marker} {account.name}")
        typer.echo(f"    email:   {identity.email}")
        typer.echo(f"    plan:    {identity.plan_type}")
        typer.echo(f"    expires: {_format_expiry(identity.expires_at)}")
        if identity.subscription_end:
            typer.echo(f"    subscription until: {identity.subscription_end}")
        typer.echo(f"    last refresh: {account.last_refresh or 'never'}")


@app.command()
def refresh(
    account: Annotated[
        str, typer.Argument(help="Account name (file stem) or path to a credential file")
    ],
):
    """Refresh the OAuth tokens of a credential file.

    The file is rewritten with the rotated tokens. If the refresh token
    has expired or been revoked, sign in again with the Codex CLI.
    """
    config = load_config()
    path = _resolve_account(account, get_accounts_dir(config))

    if not path.exists():
        typer.echo(f"Credential file not found: {path}", err=True)
        raise typer.Exit(1)

    result = asyncio.run(refresh_credential_file(path, get_oauth_settings(config)))

    if "access_token" in result:
        typer.echo(f"Refreshed {path.name}")
        typer.echo(f"Logged in as: {result.get('email', 'unknown')}")
        typer.echo(f"Access token expires: {_format_expiry(result.get('expires_at'))}")
    else:
        error_msg = result.get("error_description", result.get("error", "Unknown error"))
        typer.echo(f"Token refresh failed: {error_msg}", err=True)
        raise typer.Exit(1)
