"""Tracks the single card open for detail editing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from board_client.models import Card
    from board_client.store import EntityStore


class SelectionController:
    """
    Open/close the card detail view.

    The open card id lives in the store's cursor state, so deleting the card
    (directly or via its list or board) clears the selection and a
    placeholder rekey carries it to the server id.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    @property
    def selected_card_id(self) -> str | None:
        return self._store.selected_card_id

    def open(self, card_id: str) -> None:
        """Open ``card_id``; unknown ids are ignored."""
        self._store.set_selected_card(card_id)

    def close(self) -> None:
        self._store.set_selected_card(None)

    def selected_card(self) -> Card | None:
        card_id = self._store.selected_card_id
        if card_id is None:
            return None
        return self._store.get_card(card_id)
