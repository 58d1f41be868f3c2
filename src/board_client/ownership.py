"""Local record of which user owns which board."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from board_client.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from board_client.models import Board


class OwnershipRegistry:
    """
    JSON file mapping board id to the owner's email.

    The backend has no notion of users, so ownership is advisory and only
    filters what a user sees locally. A missing or unreadable file reads as
    an empty registry; the next write replaces it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._logger = get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning(
                "Ignoring unreadable ownership file",
                extra={"path": str(self._path), "error": str(exc)},
            )
            return {}
        if not isinstance(data, dict):
            self._logger.warning("Ignoring malformed ownership file", extra={"path": str(self._path)})
            return {}
        return {str(k): str(v) for k, v in data.items() if isinstance(v, str)}

    def _save(self, owners: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(owners, f, indent=2, sort_keys=True)

    def assign(self, board_id: str, email: str) -> None:
        owners = self._load()
        owners[board_id] = email.strip().lower()
        self._save(owners)

    def owner_of(self, board_id: str) -> str | None:
        return self._load().get(board_id)

    def forget(self, board_id: str) -> None:
        owners = self._load()
        if owners.pop(board_id, None) is not None:
            self._save(owners)

    def rekey(self, old_id: str, new_id: str) -> None:
        """Move an owner entry from a placeholder id to the server id."""
        owners = self._load()
        owner = owners.pop(old_id, None)
        if owner is not None:
            owners[new_id] = owner
            self._save(owners)

    def visible_boards(self, boards: Iterable[Board], email: str) -> list[Board]:
        """Boards owned by ``email`` plus every board without a recorded owner."""
        owners = self._load()
        email = email.strip().lower()
        return [board for board in boards if owners.get(board.id, email) == email]
