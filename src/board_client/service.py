"""User-facing board operations.

Every operation mutates the store inside one batch, so subscribers observe a
single committed change, and then hands the recorded ChangeSet to the sync
adapter. Card detail (comments, checklist, labels, assignees, attachments)
has no backend counterpart and stays local.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from board_client import ordering
from board_client.exceptions import ValidationFailed
from board_client.logging import get_logger
from board_client.models import (
    ATTACHMENT_KINDS,
    PLACEHOLDER_PREFIX,
    Attachment,
    Board,
    BoardList,
    Card,
    ChecklistItem,
    Comment,
    Label,
)
from board_client.selection import SelectionController

if TYPE_CHECKING:
    from collections.abc import Sequence

    from board_client.ownership import OwnershipRegistry
    from board_client.store import EntityStore
    from board_client.sync import SyncAdapter

DEFAULT_BOARD_TITLE = "Untitled Board"
DEFAULT_CARD_TITLE = "New Card"

_BOARD_FIELDS = frozenset({"title", "color", "description"})
_LIST_FIELDS = frozenset({"title"})
_CARD_FIELDS = frozenset(
    {"title", "description", "color", "due_date", "start_date", "reminder"}
)
_POSITION_FIELDS = frozenset({"order", "list_id", "board_id"})

# Fields the backend stores; changes to anything else stay local.
_SYNCED_BOARD_FIELDS = frozenset({"title", "description"})
_SYNCED_CARD_FIELDS = frozenset({"title", "description"})


def _placeholder_id() -> str:
    return f"{PLACEHOLDER_PREFIX}{uuid.uuid4()}"


def _check_fields(kind: str, changes: dict[str, Any], allowed: frozenset[str]) -> None:
    positional = sorted(set(changes) & _POSITION_FIELDS)
    if positional:
        raise ValidationFailed(
            f"Cannot change {', '.join(positional)} of a {kind} with an update; move or reorder it",
            {"fields": positional},
        )
    unknown = sorted(set(changes) - allowed)
    if unknown:
        raise ValidationFailed(
            f"Unknown {kind} fields: {', '.join(unknown)}",
            {"fields": unknown},
        )


class BoardService:
    """
    Boards, lists, and cards as the user edits them.

    ``sync`` may be None, in which case every change stays local. When it is
    set, operations must run inside an asyncio event loop because each one
    schedules its backend write as a task.

    With an ``ownership`` registry and an ``owner_email``, boards created here
    are recorded as owned by that user and ``visible_boards`` filters by it.
    """

    def __init__(
        self,
        store: EntityStore,
        sync: SyncAdapter | None = None,
        ownership: OwnershipRegistry | None = None,
        owner_email: str | None = None,
    ) -> None:
        self._store = store
        self._sync = sync
        self._ownership = ownership
        self._owner_email = owner_email
        self._selection = SelectionController(store)
        self._logger = get_logger(__name__)

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def selection(self) -> SelectionController:
        return self._selection

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def add_board(self, title: str, description: str = "") -> Board:
        """Create a board; a blank title becomes "Untitled Board"."""
        board = Board(
            id=_placeholder_id(),
            title=title.strip() or DEFAULT_BOARD_TITLE,
            description=description,
        )
        with self._store.batch() as change:
            self._store.upsert_board(board)
            if self._store.current_board_id is None:
                self._store.set_current_board(board.id)
        if self._ownership is not None and self._owner_email:
            self._ownership.assign(board.id, self._owner_email)
        if self._sync is not None:
            self._sync.create_board(board, change)
        return board

    def visible_boards(self) -> list[Board]:
        """Boards the configured owner may see; every board when no owner is set."""
        boards = self._store.boards()
        if self._ownership is None or not self._owner_email:
            return boards
        return self._ownership.visible_boards(boards, self._owner_email)

    def update_board(self, board_id: str, **changes: Any) -> Board | None:
        """Apply field changes; a blank title becomes "Untitled Board"."""
        _check_fields("board", changes, _BOARD_FIELDS)
        if "title" in changes:
            changes["title"] = str(changes["title"]).strip() or DEFAULT_BOARD_TITLE
        board = self._store.get_board(board_id)
        if board is None:
            self._logger.debug("Ignoring update of unknown board", extra={"board_id": board_id})
            return None
        updated = replace(board, **changes)
        with self._store.batch() as change:
            self._store.upsert_board(updated)
        if self._sync is not None and changes.keys() & _SYNCED_BOARD_FIELDS:
            self._sync.update_board(board_id, change)
        return updated

    def delete_board(self, board_id: str) -> None:
        if self._store.get_board(board_id) is None:
            self._logger.debug("Ignoring delete of unknown board", extra={"board_id": board_id})
            return
        with self._store.batch() as change:
            self._store.remove_board(board_id)
        if self._ownership is not None:
            self._ownership.forget(board_id)
        if self._sync is not None:
            self._sync.delete_board(board_id, change)

    def set_current_board(self, board_id: str | None) -> None:
        self._store.set_current_board(board_id)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def add_list(self, board_id: str, title: str) -> BoardList:
        """Append a list to ``board_id``.

        Raises:
            ValidationFailed: If the title is blank or the board is unknown.
        """
        if not title.strip():
            raise ValidationFailed("List title must not be empty")
        if self._store.get_board(board_id) is None:
            raise ValidationFailed("Board does not exist", {"board_id": board_id})
        lst = BoardList(
            id=_placeholder_id(),
            title=title.strip(),
            board_id=board_id,
            order=len(self._store.lists_for_board(board_id)),
        )
        with self._store.batch() as change:
            self._store.upsert_list(lst)
        if self._sync is not None:
            self._sync.create_list(lst, change)
        return lst

    def update_list(self, list_id: str, **changes: Any) -> BoardList | None:
        _check_fields("list", changes, _LIST_FIELDS)
        lst = self._store.get_list(list_id)
        if lst is None:
            self._logger.debug("Ignoring update of unknown list", extra={"list_id": list_id})
            return None
        if "title" in changes and not str(changes["title"]).strip():
            raise ValidationFailed("List title must not be empty")
        updated = replace(lst, **changes)
        with self._store.batch() as change:
            self._store.upsert_list(updated)
        if self._sync is not None:
            self._sync.update_list(list_id, change)
        return updated

    def delete_list(self, list_id: str) -> None:
        """Delete a list with its cards and close the gap it leaves."""
        lst = self._store.get_list(list_id)
        if lst is None:
            self._logger.debug("Ignoring delete of unknown list", extra={"list_id": list_id})
            return
        before = {sibling.id: sibling for sibling in self._store.lists_for_board(lst.board_id)}
        with self._store.batch() as change:
            self._store.remove_list(list_id)
            repacked = ordering.repack(self._store.lists_for_board(lst.board_id))
            self._store.upsert_lists(repacked)
        if self._sync is not None:
            shifted = ordering.changed_positions(before, repacked)
            self._sync.delete_list(list_id, change, shifted)

    def reorder_lists(self, board_id: str, ordered_list_ids: Sequence[str]) -> list[BoardList]:
        before = {lst.id: lst for lst in self._store.lists_for_board(board_id)}
        if not before:
            return []
        reordered = ordering.reorder_lists(before.values(), board_id, ordered_list_ids)
        moved = ordering.changed_positions(before, reordered)
        if not moved:
            return reordered
        with self._store.batch() as change:
            self._store.upsert_lists(moved)
        if self._sync is not None:
            self._sync.push_list_positions(moved, change)
        return reordered

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def get_card(self, card_id: str) -> Card | None:
        return self._store.get_card(card_id)

    def add_card(self, list_id: str, title: str, description: str | None = None) -> Card:
        """Append a card to ``list_id``; a blank title becomes "New Card".

        Raises:
            ValidationFailed: If the list is unknown.
        """
        if self._store.get_list(list_id) is None:
            raise ValidationFailed("List does not exist", {"list_id": list_id})
        card = Card(
            id=_placeholder_id(),
            title=title.strip() or DEFAULT_CARD_TITLE,
            list_id=list_id,
            order=len(self._store.cards_for_list(list_id)),
            description=description,
        )
        with self._store.batch() as change:
            self._store.upsert_card(card)
        if self._sync is not None:
            self._sync.create_card(card, change)
        return card

    def update_card(self, card_id: str, **changes: Any) -> Card | None:
        """Edit card fields in place. Position changes go through ``move_card``.

        Raises:
            ValidationFailed: If ``changes`` names ``order``, ``list_id``, or
                a field cards do not have.

        A blank title becomes "New Card", as on creation.
        """
        _check_fields("card", changes, _CARD_FIELDS)
        if "title" in changes:
            changes["title"] = str(changes["title"]).strip() or DEFAULT_CARD_TITLE
        card = self._store.get_card(card_id)
        if card is None:
            self._logger.debug("Ignoring update of unknown card", extra={"card_id": card_id})
            return None
        updated = replace(card, **changes)
        with self._store.batch() as change:
            self._store.upsert_card(updated)
        if self._sync is not None and changes.keys() & _SYNCED_CARD_FIELDS:
            self._sync.update_card(card_id, change)
        return updated

    def delete_card(self, card_id: str) -> None:
        card = self._store.get_card(card_id)
        if card is None:
            self._logger.debug("Ignoring delete of unknown card", extra={"card_id": card_id})
            return
        before = {sibling.id: sibling for sibling in self._store.cards_for_list(card.list_id)}
        with self._store.batch() as change:
            self._store.remove_card(card_id)
            repacked = ordering.repack(self._store.cards_for_list(card.list_id))
            self._store.upsert_cards(repacked)
        if self._sync is not None:
            shifted = ordering.changed_positions(before, repacked)
            self._sync.delete_card(card_id, change, shifted)

    def move_card(self, card_id: str, target_list_id: str, target_index: int) -> Card | None:
        """
        Move a card within its list or to another list.

        Both lists are re-packed in one transaction. Unknown cards or target
        lists leave the store untouched and return None.
        """
        if self._store.get_list(target_list_id) is None:
            self._logger.debug(
                "Ignoring move to unknown list",
                extra={"card_id": card_id, "list_id": target_list_id},
            )
            return None
        card = self._store.get_card(card_id)
        if card is None:
            self._logger.debug("Ignoring move of unknown card", extra={"card_id": card_id})
            return None

        scope = self._store.cards_for_list(card.list_id)
        if target_list_id != card.list_id:
            scope += self._store.cards_for_list(target_list_id)
        result = ordering.move_card(scope, card_id, target_list_id, target_index)
        if result is None:
            return None

        before = {item.id: item for item in scope}
        moved = ordering.changed_positions(before, result.cards)
        if not moved:
            return result.card
        with self._store.batch() as change:
            self._store.upsert_cards(moved)
        if self._sync is not None:
            self._sync.push_card_positions(
                moved,
                change,
                moved_card_id=card_id if result.is_cross_list else None,
            )
        return result.card

    def reorder_cards_in_list(self, list_id: str, ordered_card_ids: Sequence[str]) -> list[Card]:
        before = {card.id: card for card in self._store.cards_for_list(list_id)}
        if not before:
            return []
        reordered = ordering.reorder_cards_in_list(before.values(), list_id, ordered_card_ids)
        moved = ordering.changed_positions(before, reordered)
        if not moved:
            return reordered
        with self._store.batch() as change:
            self._store.upsert_cards(moved)
        if self._sync is not None:
            self._sync.push_card_positions(moved, change)
        return reordered

    # ------------------------------------------------------------------
    # Card detail
    # ------------------------------------------------------------------

    def _edit_card(self, card_id: str, **changes: Any) -> Card | None:
        card = self._store.get_card(card_id)
        if card is None:
            self._logger.debug("Ignoring edit of unknown card", extra={"card_id": card_id})
            return None
        updated = replace(card, **changes)
        self._store.upsert_card(updated)
        return updated

    def add_comment(self, card_id: str, author: str, text: str) -> Comment | None:
        card = self._store.get_card(card_id)
        if card is None:
            return None
        if not text.strip():
            raise ValidationFailed("Comment text must not be empty")
        comment = Comment(
            id=f"cm-{uuid.uuid4()}",
            card_id=card_id,
            author=author,
            text=text.strip(),
            created_at=datetime.now(UTC),
        )
        self._edit_card(card_id, comments=(*card.comments, comment))
        return comment

    def delete_comment(self, card_id: str, comment_id: str) -> None:
        card = self._store.get_card(card_id)
        if card is None:
            return
        remaining = tuple(c for c in card.comments if c.id != comment_id)
        if len(remaining) != len(card.comments):
            self._edit_card(card_id, comments=remaining)

    def add_checklist_item(self, card_id: str, title: str) -> ChecklistItem | None:
        card = self._store.get_card(card_id)
        if card is None:
            return None
        if not title.strip():
            raise ValidationFailed("Checklist item title must not be empty")
        item = ChecklistItem(
            id=f"ch-{uuid.uuid4()}",
            card_id=card_id,
            title=title.strip(),
            completed=False,
            order=len(card.checklist),
        )
        self._edit_card(card_id, checklist=(*ordering.repack(card.checklist), item))
        return item

    def toggle_checklist_item(self, card_id: str, item_id: str) -> ChecklistItem | None:
        card = self._store.get_card(card_id)
        if card is None:
            return None
        toggled: ChecklistItem | None = None
        items: list[ChecklistItem] = []
        for item in card.checklist:
            if item.id == item_id:
                item = replace(item, completed=not item.completed)
                toggled = item
            items.append(item)
        if toggled is not None:
            self._edit_card(card_id, checklist=tuple(items))
        return toggled

    def delete_checklist_item(self, card_id: str, item_id: str) -> None:
        """Remove a checklist item and close the gap in the remaining order."""
        card = self._store.get_card(card_id)
        if card is None:
            return
        remaining = [item for item in card.checklist if item.id != item_id]
        if len(remaining) != len(card.checklist):
            self._edit_card(card_id, checklist=tuple(ordering.repack(remaining)))

    def reorder_checklist(self, card_id: str, ordered_item_ids: Sequence[str]) -> list[ChecklistItem]:
        card = self._store.get_card(card_id)
        if card is None:
            return []
        reordered = ordering.reorder_checklist(card.checklist, ordered_item_ids)
        self._edit_card(card_id, checklist=tuple(reordered))
        return reordered

    def add_label(self, card_id: str, label: Label) -> None:
        card = self._store.get_card(card_id)
        if card is None or any(existing.id == label.id for existing in card.labels):
            return
        self._edit_card(card_id, labels=(*card.labels, label))

    def remove_label(self, card_id: str, label_id: str) -> None:
        card = self._store.get_card(card_id)
        if card is None:
            return
        remaining = tuple(label for label in card.labels if label.id != label_id)
        if len(remaining) != len(card.labels):
            self._edit_card(card_id, labels=remaining)

    def add_assignee(self, card_id: str, name: str) -> None:
        card = self._store.get_card(card_id)
        name = name.strip()
        if card is None or not name or name in card.assignees:
            return
        self._edit_card(card_id, assignees=(*card.assignees, name))

    def remove_assignee(self, card_id: str, name: str) -> None:
        card = self._store.get_card(card_id)
        if card is None or name not in card.assignees:
            return
        self._edit_card(card_id, assignees=tuple(a for a in card.assignees if a != name))

    def add_attachment(self, card_id: str, name: str, url: str, kind: str = "link") -> Attachment | None:
        """Attach a link or file reference to a card.

        Raises:
            ValidationFailed: If ``kind`` is not a known attachment kind or
                ``url`` is blank.
        """
        card = self._store.get_card(card_id)
        if card is None:
            return None
        if kind not in ATTACHMENT_KINDS:
            raise ValidationFailed(f"Unknown attachment kind: {kind}", {"kind": kind})
        if not url.strip():
            raise ValidationFailed("Attachment url must not be empty")
        attachment = Attachment(
            id=f"at-{uuid.uuid4()}",
            card_id=card_id,
            name=name.strip() or url.strip(),
            url=url.strip(),
            kind=kind,  # type: ignore[arg-type]
        )
        self._edit_card(card_id, attachments=(*card.attachments, attachment))
        return attachment

    def remove_attachment(self, card_id: str, attachment_id: str) -> None:
        card = self._store.get_card(card_id)
        if card is None:
            return
        remaining = tuple(a for a in card.attachments if a.id != attachment_id)
        if len(remaining) != len(card.attachments):
            self._edit_card(card_id, attachments=remaining)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def open_card_detail(self, card_id: str) -> Card | None:
        self._selection.open(card_id)
        return self._selection.selected_card()

    def close_card_detail(self) -> None:
        self._selection.close()
