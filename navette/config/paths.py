"""Path constants and directory utilities for navette config.

Follows the XDG Base Directory specification for navette's own config:
- Config: ~/.config/navette/config.toml

Synced data lives where the tools using it expect it:
- Credential files: ~/.navette/accounts/ (one auth.json per account)
- Codex directory: ~/.codex/ (auth.json, config.toml, prompts/, skills/)
"""

from pathlib import Path


# XDG-compliant config directory
CONFIG_DIR = Path.home() / ".config" / "navette"
CONFIG_FILE = CONFIG_DIR / "config.toml"

DEFAULT_ACCOUNTS_DIR = Path.home() / ".navette" / "accounts"
DEFAULT_CODEX_DIR = Path.home() / ".codex"

# Credential file Codex is currently using
CODEX_AUTH_FILE_NAME = "auth.json"


def ensure_config_dir() -> Path:
    """Create config directory if it doesn't exist.

    Returns the config directory path.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR
