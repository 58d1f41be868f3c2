"""Process-wide board client state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from board_client.store import EntityStore

if TYPE_CHECKING:
    from board_client.clients.board_api import BoardApiClient
    from board_client.ownership import OwnershipRegistry
    from board_client.service import BoardService
    from board_client.sync import SyncAdapter


@dataclass
class BoardState:
    """Runtime state shared by the entry point and long-lived callers."""

    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    store: EntityStore = field(default_factory=EntityStore)
    service: BoardService | None = None
    sync: SyncAdapter | None = None
    api_client: BoardApiClient | None = None
    ownership: OwnershipRegistry | None = None

    @property
    def uptime_seconds(self) -> float:
        """Calculate uptime in seconds."""
        return (datetime.now(UTC) - self.start_time).total_seconds()


# Global board state container
_state_container: dict[str, BoardState | None] = {"board_state": None}


def get_board_state() -> BoardState:
    """Get the current board state."""
    board_state = _state_container["board_state"]
    if board_state is None:
        msg = "Board state not initialized"
        raise RuntimeError(msg)
    return board_state


def init_board_state() -> BoardState:
    """Initialize board state. Called during startup."""
    board_state = BoardState()
    _state_container["board_state"] = board_state
    return board_state


def reset_board_state() -> None:
    """Reset board state. Used in testing."""
    _state_container["board_state"] = None
