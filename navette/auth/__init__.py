"""Credential files and OAuth token refresh.

Usage:
    from navette.auth import load_credentials, refresh_credential_file

    record = load_credentials(path)
    print(record.identity().email)

    # Rotate tokens and rewrite the file
    result = await refresh_credential_file(path)
"""

from .credentials import (
    AccountInfo,
    CredentialRecord,
    list_credential_files,
    load_credentials,
    save_credentials,
    scan_accounts,
)
from .jwt import AccountIdentity, decode_jwt_payload, extract_identity
from .refresh import OAuthSettings, refresh_credential_file

__all__ = [
    "AccountIdentity",
    "AccountInfo",
    "CredentialRecord",
    "OAuthSettings",
    "decode_jwt_payload",
    "extract_identity",
    "list_credential_files",
    "load_credentials",
    "refresh_credential_file",
    "save_credentials",
    "scan_accounts",
]
