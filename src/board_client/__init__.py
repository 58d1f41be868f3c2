"""Board Client: optimistic, offline-tolerant client for a kanban board backend."""

from board_client.service import BoardService
from board_client.store import EntityStore
from board_client.sync import ErrorBanner, SyncAdapter

__version__ = "0.1.0"

__all__ = ["BoardService", "EntityStore", "ErrorBanner", "SyncAdapter"]
