"""CLI commands module."""

from . import accounts, config, sync

__all__ = ["sync", "accounts", "config"]
