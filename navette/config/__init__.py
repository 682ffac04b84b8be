"""Configuration management module.

Handles loading, saving, and accessing the navette configuration.
Config is stored at ~/.config/navette/config.toml

Usage:
    from navette.config import load_config, get_endpoint, get_sync_policy

    config = load_config()
    endpoint = get_endpoint(config)
    policy = get_sync_policy(config)
"""

import os
import tomllib
from pathlib import Path

import tomli_w

from navette.auth.refresh import OAuthSettings
from navette.sync.models import SyncPolicy
from navette.webdav.models import RemoteEndpoint

from .paths import (
    CODEX_AUTH_FILE_NAME,
    CONFIG_FILE,
    DEFAULT_ACCOUNTS_DIR,
    DEFAULT_CODEX_DIR,
    ensure_config_dir,
)
from .schema import NavetteConfig
from .template import CONFIG_TEMPLATE

# Re-export for convenience
__all__ = [
    "load_config",
    "save_config",
    "init_config",
    "set_config_value",
    "get_endpoint",
    "get_sync_policy",
    "get_oauth_settings",
    "get_accounts_dir",
    "get_codex_dir",
    "get_active_auth_file",
    "CONFIG_FILE",
    "PASSWORD_ENV",
]

# Environment variable for the WebDAV password.
# Using env var is preferred over storing in config.toml for security.
PASSWORD_ENV = "NAVETTE_WEBDAV_PASSWORD"

# [sync] keys and the SyncPolicy fields they map to
SYNC_FLAGS = {
    "prompts": "sync_prompts",
    "skills": "sync_skills",
    "agents_doc": "sync_agents_doc",
    "model_config": "sync_model_config",
    "mcp_servers": "sync_mcp_servers",
    "other_config": "sync_other_config",
}

_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}

# Module-level cache for loaded config.
# Avoids repeated disk reads during a single CLI invocation.
_cached_config: NavetteConfig | None = None


def load_config(*, force_reload: bool = False) -> NavetteConfig:
    """Load configuration from disk.

    Returns empty dict if config file doesn't exist.
    Uses module-level caching to avoid repeated disk reads.

    Args:
        force_reload: Bypass cache and read from disk (useful after saving).

    Returns:
        The configuration dictionary.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    if not CONFIG_FILE.exists():
        _cached_config = {}
        return _cached_config

    with open(CONFIG_FILE, "rb") as f:
        _cached_config = tomllib.load(f)

    return _cached_config


def save_config(config: NavetteConfig) -> None:
    """Save configuration to disk.

    Creates config directory if needed. Updates the module cache.
    The file may hold the WebDAV password, so it is made owner-only.

    Args:
        config: The configuration dictionary to save.
    """
    global _cached_config

    ensure_config_dir()

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(config, f)
    CONFIG_FILE.chmod(0o600)

    # Keep cache in sync with disk
    _cached_config = config


def init_config(*, overwrite: bool = False) -> bool:
    """Initialize config directory and create template config file.

    Args:
        overwrite: If True, overwrite existing config file.

    Returns:
        True if config was created, False if it already existed.
    """
    ensure_config_dir()

    if CONFIG_FILE.exists() and not overwrite:
        return False

    CONFIG_FILE.write_text(CONFIG_TEMPLATE)
    CONFIG_FILE.chmod(0o600)
    return True


def set_config_value(key: str, value: str) -> None:
    """Set a configuration value using dot notation.

    Examples:
        set_config_value("webdav.username", "me@example.com")
        set_config_value("sync.mcp_servers", "true")

    Args:
        key: Dot-separated key path (e.g., "webdav.remote_path").
        value: Value to set (will be type-converted for known fields).

    Raises:
        ValueError: If value cannot be converted to expected type.
    """
    config = load_config(force_reload=True)

    parts = key.split(".")

    # Navigate to parent dict, creating intermediate dicts as needed
    current: dict = config
    for part in parts[:-1]:
        if part not in current:
            current[part] = {}
        current = current[part]

    # Set the final value with type conversion
    final_key = parts[-1]
    is_sync_flag = len(parts) == 2 and parts[0] == "sync" and final_key in SYNC_FLAGS
    current[final_key] = _convert_bool(value) if is_sync_flag else value

    save_config(config)


def _convert_bool(value: str) -> bool:
    """Convert a CLI string to bool.

    Raises:
        ValueError: If the string is not a recognised boolean.
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"expected true or false, got {value!r}")


def get_endpoint(config: NavetteConfig) -> RemoteEndpoint | None:
    """Build the WebDAV endpoint from the [webdav] section.

    The password is read from NAVETTE_WEBDAV_PASSWORD first, then from
    the config file.

    Returns:
        The endpoint, or None if no server URL is configured.
    """
    webdav = config.get("webdav", {})
    url = webdav.get("url")

    if not url:
        return None

    return RemoteEndpoint(
        base_url=url,
        username=webdav.get("username", ""),
        password=os.environ.get(PASSWORD_ENV) or webdav.get("password", ""),
        remote_path=webdav.get("remote_path", "/"),
    )


def get_sync_policy(config: NavetteConfig) -> SyncPolicy:
    """Build the SyncPolicy from the [sync] section.

    Keys that are not set keep the SyncPolicy defaults. Hand-edited
    string values such as "false" are converted like `config set` does.

    Raises:
        ValueError: If a flag is neither a boolean nor a boolean string.
    """
    sync = config.get("sync", {})
    flags = {}
    for key, field in SYNC_FLAGS.items():
        if key not in sync:
            continue
        value = sync[key]
        if isinstance(value, bool):
            flags[field] = value
            continue
        try:
            flags[field] = _convert_bool(str(value))
        except ValueError as e:
            raise ValueError(f"sync.{key}: {e}") from e
    return SyncPolicy(**flags)


def get_oauth_settings(config: NavetteConfig) -> OAuthSettings:
    """Build identity provider settings from the [oauth] section."""
    oauth = config.get("oauth", {})
    defaults = OAuthSettings()
    return OAuthSettings(
        token_url=oauth.get("token_url", defaults.token_url),
        client_id=oauth.get("client_id", defaults.client_id),
        scope=oauth.get("scope", defaults.scope),
    )


def get_accounts_dir(config: NavetteConfig) -> Path:
    """Directory holding the per-account credential files."""
    configured = config.get("paths", {}).get("accounts_dir")
    return Path(configured).expanduser() if configured else DEFAULT_ACCOUNTS_DIR


def get_codex_dir(config: NavetteConfig) -> Path:
    """Codex home directory."""
    configured = config.get("paths", {}).get("codex_dir")
    return Path(configured).expanduser() if configured else DEFAULT_CODEX_DIR


def get_active_auth_file(config: NavetteConfig) -> Path:
    """Credential file Codex is currently using."""
    return get_codex_dir(config) / CODEX_AUTH_FILE_NAME
