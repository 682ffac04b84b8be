"""OAuth refresh-token grant for Codex credential files.

Exchanges the refresh token stored in a credential file for new tokens
and rewrites the file. The identity provider rotates refresh tokens:
each one can be used exactly once, so the rewritten file must be the
only copy used afterwards.

No retries happen here. A rejected refresh token cannot be fixed by
retrying; the user has to sign in again with the Codex CLI.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import httpx

from navette.errors import (
    InvalidCredentialFormat,
    LocalIOError,
    RemoteStatusError,
    TokenRefreshRejected,
    TransportError,
)

from .credentials import CredentialRecord, load_credentials, save_credentials

logger = logging.getLogger(__name__)

# Public client settings of the Codex CLI. Overridable in config.toml
# ([oauth] section), e.g. to point at a test identity provider.
DEFAULT_TOKEN_URL = "https://auth.openai.com/oauth/token"
DEFAULT_CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
DEFAULT_SCOPE = "openid profile email"

REFRESH_TIMEOUT = httpx.Timeout(60.0, connect=15.0)

# Provider error codes that mean the refresh token is dead for good
REJECTION_MESSAGES = {
    "refresh_token_expired": (
        "Refresh token has expired. Sign in again with the Codex CLI."
    ),
    "refresh_token_reused": (
        "Refresh token was already used (another copy of this credential "
        "refreshed it). Sign in again with the Codex CLI."
    ),
    "refresh_token_invalidated": (
        "Refresh token was revoked. Sign in again with the Codex CLI."
    ),
}

# Token fields copied from the provider response into the record
REFRESHED_FIELDS = ("access_token", "id_token", "refresh_token")


@dataclass(frozen=True)
class OAuthSettings:
    """Identity provider settings for the refresh grant."""

    token_url: str = DEFAULT_TOKEN_URL
    client_id: str = DEFAULT_CLIENT_ID
    scope: str = DEFAULT_SCOPE


def _error_code(body: str) -> str | None:
    """Find the error code in a provider error response.

    Seen shapes: {"error": {"code": ...}}, {"error": "..."}, {"code": ...}.
    """
    try:
        data = json.loads(body)
    except ValueError:
        return None

    if not isinstance(data, dict):
        return None

    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("code"), str):
        return error["code"]
    if isinstance(error, str):
        return error
    if isinstance(data.get("code"), str):
        return data["code"]
    return None


def _now_rfc3339() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


async def request_token_refresh(
    client: httpx.AsyncClient,
    settings: OAuthSettings,
    refresh_token: str,
) -> dict:
    """Send the refresh-token grant to the identity provider.

    Args:
        client: HTTP client to send the request with.
        settings: Token endpoint, client id and scope.
        refresh_token: Current refresh token.

    Returns:
        Parsed success response (may contain access_token, id_token,
        refresh_token).

    Raises:
        TokenRefreshRejected: For the known terminal error codes.
        RemoteStatusError: For any other non-success response.
        TransportError: If the provider cannot be reached.
    """
    payload = {
        "client_id": settings.client_id,
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "scope": settings.scope,
    }

    logger.debug("POST %s (refresh_token grant)", settings.token_url)
    try:
        response = await client.post(settings.token_url, json=payload)
    except httpx.HTTPError as e:
        raise TransportError(f"token refresh request failed: {e}") from e

    status = response.status_code
    logger.debug("POST %s -> %d", settings.token_url, status)

    if not 200 <= status < 300:
        code = _error_code(response.text)
        if code in REJECTION_MESSAGES:
            raise TokenRefreshRejected(REJECTION_MESSAGES[code], code)
        raise RemoteStatusError(
            f"token refresh failed: HTTP {status}: {response.text}",
            status,
            response.text,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise RemoteStatusError(
            f"token refresh returned invalid JSON: {response.text}", status, response.text
        ) from e

    if not isinstance(data, dict):
        raise RemoteStatusError(
            f"token refresh returned unexpected body: {response.text}", status, response.text
        )

    return data


def apply_refresh(record: CredentialRecord, response: dict) -> CredentialRecord:
    """Copy refreshed tokens into a record and stamp ``last_refresh``.

    Fields missing from the response keep their previous value.
    """
    changes = {
        name: response[name]
        for name in REFRESHED_FIELDS
        if isinstance(response.get(name), str) and response[name]
    }
    return record.with_tokens(**changes, last_refresh=_now_rfc3339())


async def refresh_credential_file(
    path: Path,
    settings: OAuthSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """Refresh the tokens of a credential file and rewrite it.

    The file is only written after a successful refresh; on any failure
    it is left exactly as it was.

    Args:
        path: Credential file to refresh.
        settings: Identity provider settings (defaults to the Codex CLI's).
        transport: Optional httpx transport (tests pass a MockTransport).

    Returns:
        Refresh result dict:
        - On success: 'access_token', 'email', 'plan_type', 'expires_at',
          'last_refresh'
        - On failure: 'error' and 'error_description'
    """
    settings = settings or OAuthSettings()

    try:
        record = load_credentials(path)
    except InvalidCredentialFormat as e:
        return {"error": "invalid_credential_format", "error_description": str(e)}
    except LocalIOError as e:
        return {"error": "read_failed", "error_description": str(e)}

    if not record.refresh_token:
        return {
            "error": "missing_refresh_token",
            "error_description": f"{path} has no refresh token.",
        }

    try:
        async with httpx.AsyncClient(timeout=REFRESH_TIMEOUT, transport=transport) as client:
            response = await request_token_refresh(client, settings, record.refresh_token)
    except TokenRefreshRejected as e:
        logger.info("refresh rejected for %s: %s", path, e.code)
        return {"error": e.code, "error_description": str(e)}
    except RemoteStatusError as e:
        return {"error": "refresh_failed", "error_description": str(e)}
    except TransportError as e:
        return {"error": "network_error", "error_description": str(e)}

    updated = apply_refresh(record, response)

    try:
        save_credentials(path, updated)
    except LocalIOError as e:
        return {"error": "write_failed", "error_description": str(e)}

    identity = updated.identity()
    logger.info("refreshed %s (%s)", path, identity.email)

    return {
        "access_token": updated.access_token,
        "email": identity.email,
        "plan_type": identity.plan_type,
        "expires_at": identity.expires_at,
        "last_refresh": updated.last_refresh,
    }
