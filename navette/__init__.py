"""navette: WebDAV sync for Codex credentials and configuration."""

__version__ = "0.1.0"
