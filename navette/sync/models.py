"""Sync result and sync policy types."""

from dataclasses import dataclass, field


@dataclass
class SyncResult:
    """Result of a sync run.

    Failures are recorded per item; a run with errors is a partial
    success, not a failed run.
    """

    uploaded: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def add_error(self, item: str, error: object) -> None:
        """Record an error for a specific item.

        Args:
            item: File or directory the error relates to.
            error: Error description or exception.
        """
        self.errors.append(f"{item}: {error}")

    def merge(self, other: "SyncResult") -> None:
        """Append another result's items to this one."""
        self.uploaded.extend(other.uploaded)
        self.downloaded.extend(other.downloaded)
        self.errors.extend(other.errors)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class SyncPolicy:
    """Which Codex configuration categories take part in a sync.

    Attributes:
        sync_prompts: The prompts/ directory.
        sync_skills: The skills/ directory.
        sync_agents_doc: The AGENTS.MD file.
        sync_model_config: Top-level model* keys of config.toml.
        sync_mcp_servers: [mcp_servers.*] sections of config.toml.
        sync_other_config: Every other key and section of config.toml.
    """

    sync_prompts: bool = True
    sync_skills: bool = True
    sync_agents_doc: bool = True
    sync_model_config: bool = True
    sync_mcp_servers: bool = False
    sync_other_config: bool = False

    @property
    def touches_config(self) -> bool:
        """True if any part of config.toml takes part in the sync."""
        return self.sync_model_config or self.sync_mcp_servers or self.sync_other_config
