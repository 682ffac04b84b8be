"""WebDAV synchronization of accounts and Codex configuration."""

from .engine import SyncEngine
from .models import SyncPolicy, SyncResult

__all__ = ["SyncEngine", "SyncPolicy", "SyncResult"]
