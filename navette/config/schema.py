"""Configuration schema definitions.

Uses TypedDict for type safety without runtime overhead.
These types match the structure of config.toml.
"""

from typing import TypedDict


class WebDavConfig(TypedDict, total=False):
    """WebDAV server settings.

    Attributes:
        url: Server base URL (e.g., "https://dav.jianguoyun.com/dav").
        username: Basic auth user name.
        password: Basic auth password or app password (prefer env var).
        remote_path: Directory on the server holding navette's files.
    """

    url: str
    username: str
    password: str
    remote_path: str


class SyncConfig(TypedDict, total=False):
    """Which Codex configuration categories are synced.

    Attributes:
        prompts: ~/.codex/prompts/
        skills: ~/.codex/skills/
        agents_doc: ~/.codex/AGENTS.MD
        model_config: Top-level model* keys of config.toml.
        mcp_servers: [mcp_servers.*] sections of config.toml.
        other_config: Every other setting in config.toml.
    """

    prompts: bool
    skills: bool
    agents_doc: bool
    model_config: bool
    mcp_servers: bool
    other_config: bool


class PathsConfig(TypedDict, total=False):
    """Local directories.

    Attributes:
        accounts_dir: Directory with one credential file per account.
        codex_dir: Codex home directory.
    """

    accounts_dir: str
    codex_dir: str


class OAuthConfig(TypedDict, total=False):
    """Identity provider used for token refresh.

    Attributes:
        token_url: OAuth token endpoint.
        client_id: Public OAuth client id.
        scope: Scope requested with the refresh grant.
    """

    token_url: str
    client_id: str
    scope: str


class NavetteConfig(TypedDict, total=False):
    """Root configuration structure."""

    webdav: WebDavConfig
    sync: SyncConfig
    paths: PathsConfig
    oauth: OAuthConfig
