"""Credential file model.

A credential file is the Codex CLI ``auth.json`` format:

    {
        "OPENAI_API_KEY": null,
        "last_refresh": "2025-01-15T10:30:00.000000Z",
        "tokens": {
            "access_token": "...",
            "account_id": "...",
            "id_token": "...",
            "refresh_token": "..."
        }
    }

navette keeps one such file per account in the accounts directory.
Files are only ever rewritten wholesale, never deleted.
"""

import json
import os
import tempfile
from dataclasses import dataclass, field, replace
from pathlib import Path

from navette.errors import InvalidCredentialFormat, LocalIOError

from .jwt import AccountIdentity, extract_identity

API_KEY_FIELD = "OPENAI_API_KEY"
TOKEN_FIELDS = ("access_token", "account_id", "id_token", "refresh_token")


@dataclass
class CredentialRecord:
    """OAuth token bundle for one account.

    Identity (email, plan, expiry) is derived from ``id_token`` on demand
    and never stored. Unknown top-level keys found in the file are kept
    in ``extra`` so a rewrite does not drop them.
    """

    access_token: str
    refresh_token: str
    id_token: str
    account_id: str
    api_key: str | None = None
    last_refresh: str = ""
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: object) -> "CredentialRecord":
        """Build a record from parsed auth.json content.

        Raises:
            InvalidCredentialFormat: If required fields are missing or
                have the wrong type.
        """
        if not isinstance(data, dict):
            raise InvalidCredentialFormat("credential file must be a JSON object")

        tokens = data.get("tokens")
        if not isinstance(tokens, dict):
            raise InvalidCredentialFormat("missing 'tokens' object")

        for name in TOKEN_FIELDS:
            if not isinstance(tokens.get(name), str):
                raise InvalidCredentialFormat(f"missing or invalid 'tokens.{name}'")

        api_key = data.get(API_KEY_FIELD)
        if api_key is not None and not isinstance(api_key, str):
            raise InvalidCredentialFormat(f"'{API_KEY_FIELD}' must be a string or null")

        last_refresh = data.get("last_refresh", "")
        if not isinstance(last_refresh, str):
            raise InvalidCredentialFormat("'last_refresh' must be a string")

        extra = {
            key: value
            for key, value in data.items()
            if key not in ("tokens", "last_refresh", API_KEY_FIELD)
        }

        return cls(
            access_token=tokens["access_token"],
            refresh_token=tokens["refresh_token"],
            id_token=tokens["id_token"],
            account_id=tokens["account_id"],
            api_key=api_key,
            last_refresh=last_refresh,
            extra=extra,
        )

    def to_dict(self) -> dict:
        """Serialize to the auth.json structure."""
        data = {
            API_KEY_FIELD: self.api_key,
            "last_refresh": self.last_refresh,
            "tokens": {
                "access_token": self.access_token,
                "account_id": self.account_id,
                "id_token": self.id_token,
                "refresh_token": self.refresh_token,
            },
        }
        data.update(self.extra)
        return data

    def identity(self) -> AccountIdentity:
        """Derive account identity from the id token."""
        return extract_identity(self.id_token)

    def with_tokens(self, **changes: str) -> "CredentialRecord":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)


@dataclass
class AccountInfo:
    """A credential file in the accounts directory, with derived identity."""

    name: str
    account_id: str
    identity: AccountIdentity
    file_path: Path
    last_refresh: str
    is_active: bool = False


def load_credentials(path: Path) -> CredentialRecord:
    """Read and validate a credential file.

    Raises:
        LocalIOError: If the file cannot be read.
        InvalidCredentialFormat: If the content is not a valid auth.json.
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise LocalIOError(f"cannot read {path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidCredentialFormat(f"{path} is not valid JSON: {e}") from e

    return CredentialRecord.from_dict(data)


def write_credential_bytes(path: Path, data: bytes) -> None:
    """Replace a credential file atomically with the given content.

    The content goes to a temporary file in the same directory first and
    is then renamed over the target, so readers never see a half-written
    file. Permissions are set to 600.

    Raises:
        LocalIOError: If the file cannot be written.
    """
    path = Path(path)

    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise LocalIOError(f"cannot write {path}: {e}") from e


def save_credentials(path: Path, record: CredentialRecord) -> None:
    """Write a credential file as pretty JSON (see write_credential_bytes).

    Raises:
        LocalIOError: If the file cannot be written.
    """
    content = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
    write_credential_bytes(path, content.encode("utf-8"))


def list_credential_files(accounts_dir: Path) -> list[Path]:
    """List credential files (``*.json``, dotfiles excluded) in a directory.

    Returns an empty list if the directory does not exist.
    """
    accounts_dir = Path(accounts_dir)
    if not accounts_dir.is_dir():
        return []

    return sorted(
        path
        for path in accounts_dir.iterdir()
        if path.is_file() and path.suffix == ".json" and not path.name.startswith(".")
    )


def scan_accounts(accounts_dir: Path, active_file: Path | None = None) -> list[AccountInfo]:
    """Load every valid credential file in the accounts directory.

    Files that fail to parse are skipped. An account is marked active when
    its account id matches the one in ``active_file`` (the credential file
    Codex is currently using).

    Args:
        accounts_dir: Directory holding one credential file per account.
        active_file: Path of the currently active credential file.

    Returns:
        Accounts sorted by file name.
    """
    active_account_id = None
    if active_file is not None and Path(active_file).exists():
        try:
            active_account_id = load_credentials(active_file).account_id
        except (LocalIOError, InvalidCredentialFormat):
            active_account_id = None

    accounts = []
    for path in list_credential_files(accounts_dir):
        try:
            record = load_credentials(path)
        except (LocalIOError, InvalidCredentialFormat):
            continue

        accounts.append(
            AccountInfo(
                name=path.stem,
                account_id=record.account_id,
                identity=record.identity(),
                file_path=path,
                last_refresh=record.last_refresh,
                is_active=active_account_id is not None
                and active_account_id == record.account_id,
            )
        )

    return accounts
