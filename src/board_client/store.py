"""In-memory entity store for boards, lists, and cards."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from board_client.logging import get_logger
from board_client.models import Board, BoardList, Card
from board_client.ordering import repack, sort_by_order

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

EntityKind = Literal["board", "list", "card"]


@dataclass
class ChangeSet:
    """Before-images of every entity touched in one transaction.

    ``None`` means the entity did not exist before the transaction.
    """

    boards: dict[str, Board | None] = field(default_factory=dict)
    lists: dict[str, BoardList | None] = field(default_factory=dict)
    cards: dict[str, Card | None] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.boards or self.lists or self.cards)


@dataclass(frozen=True)
class StoreSnapshot:
    """Point-in-time copy of the primary collections and cursors."""

    boards: dict[str, Board]
    lists: dict[str, BoardList]
    cards: dict[str, Card]
    current_board_id: str | None
    selected_card_id: str | None


class EntityStore:
    """
    Owns every Board, BoardList, and Card instance.

    Derived views (lists for a board, cards for a list) are computed on read
    from the primary dictionaries. The upsert/remove/rekey primitives are the
    only mutation points; callers group them with ``batch()`` so readers and
    subscribers only ever see committed states.
    """

    def __init__(self) -> None:
        self._boards: dict[str, Board] = {}
        self._lists: dict[str, BoardList] = {}
        self._cards: dict[str, Card] = {}
        self._current_board_id: str | None = None
        self._selected_card_id: str | None = None
        self._unsynced: set[tuple[EntityKind, str]] = set()
        self._renamed: dict[tuple[EntityKind, str], str] = {}
        self._subscribers: list[Callable[[EntityStore], None]] = []
        self._batch_depth = 0
        self._change: ChangeSet | None = None
        self._cursor_moved = False
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def current_board_id(self) -> str | None:
        return self._current_board_id

    @property
    def selected_card_id(self) -> str | None:
        return self._selected_card_id

    def boards(self) -> list[Board]:
        return list(self._boards.values())

    def all_lists(self) -> list[BoardList]:
        return list(self._lists.values())

    def all_cards(self) -> list[Card]:
        return list(self._cards.values())

    def get_board(self, board_id: str) -> Board | None:
        return self._boards.get(board_id)

    def get_list(self, list_id: str) -> BoardList | None:
        return self._lists.get(list_id)

    def get_card(self, card_id: str) -> Card | None:
        return self._cards.get(card_id)

    def lists_for_board(self, board_id: str) -> list[BoardList]:
        """Lists of ``board_id`` sorted ascending by order."""
        return sort_by_order(lst for lst in self._lists.values() if lst.board_id == board_id)

    def cards_for_list(self, list_id: str) -> list[Card]:
        """Cards of ``list_id`` sorted ascending by order."""
        return sort_by_order(card for card in self._cards.values() if card.list_id == list_id)

    def current_lists(self) -> list[BoardList]:
        if self._current_board_id is None:
            return []
        return self.lists_for_board(self._current_board_id)

    def current_board_cards(self) -> list[Card]:
        """Cards of the current board, list by list, each list in card order."""
        cards: list[Card] = []
        for lst in self.current_lists():
            cards.extend(self.cards_for_list(lst.id))
        return cards

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            boards=dict(self._boards),
            lists=dict(self._lists),
            cards=dict(self._cards),
            current_board_id=self._current_board_id,
            selected_card_id=self._selected_card_id,
        )

    # ------------------------------------------------------------------
    # Subscriptions and transactions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[EntityStore], None]) -> Callable[[], None]:
        """Call ``callback`` after every committed change. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    @contextmanager
    def batch(self) -> Iterator[ChangeSet]:
        """
        Group mutations into one logical transaction.

        Subscribers are notified once, when the outermost batch exits. Nested
        batches share the outer ChangeSet.
        """
        outermost = self._batch_depth == 0
        if outermost:
            self._change = ChangeSet()
            self._cursor_moved = False
        self._batch_depth += 1
        change = self._change
        assert change is not None
        try:
            yield change
        finally:
            self._batch_depth -= 1
            if outermost:
                self._change = None
                if not change.is_empty() or self._cursor_moved:
                    self._notify()

    def _notify(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def _touch_board(self, board_id: str) -> None:
        assert self._change is not None
        self._change.boards.setdefault(board_id, self._boards.get(board_id))

    def _touch_list(self, list_id: str) -> None:
        assert self._change is not None
        self._change.lists.setdefault(list_id, self._lists.get(list_id))

    def _touch_card(self, card_id: str) -> None:
        assert self._change is not None
        self._change.cards.setdefault(card_id, self._cards.get(card_id))

    # ------------------------------------------------------------------
    # Cursor state
    # ------------------------------------------------------------------

    def set_current_board(self, board_id: str | None) -> None:
        if board_id is not None and board_id not in self._boards:
            self._logger.debug("Ignoring unknown board selection", extra={"board_id": board_id})
            return
        with self.batch():
            self._current_board_id = board_id
            self._cursor_moved = True

    def set_selected_card(self, card_id: str | None) -> None:
        if card_id is not None and card_id not in self._cards:
            self._logger.debug("Ignoring unknown card selection", extra={"card_id": card_id})
            return
        with self.batch():
            self._selected_card_id = card_id
            self._cursor_moved = True

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def upsert_board(self, board: Board) -> None:
        with self.batch():
            self._touch_board(board.id)
            self._boards[board.id] = board

    def upsert_list(self, lst: BoardList) -> None:
        with self.batch():
            self._touch_list(lst.id)
            self._lists[lst.id] = lst

    def upsert_lists(self, lists: Iterable[BoardList]) -> None:
        with self.batch():
            for lst in lists:
                self.upsert_list(lst)

    def upsert_card(self, card: Card) -> None:
        with self.batch():
            self._touch_card(card.id)
            self._cards[card.id] = card

    def upsert_cards(self, cards: Iterable[Card]) -> None:
        with self.batch():
            for card in cards:
                self.upsert_card(card)

    def remove_card(self, card_id: str) -> Card | None:
        """Remove one card. Does not re-pack its siblings."""
        if card_id not in self._cards:
            return None
        with self.batch():
            self._touch_card(card_id)
            card = self._cards.pop(card_id)
            self._unsynced.discard(("card", card_id))
            if self._selected_card_id == card_id:
                self._selected_card_id = None
                self._cursor_moved = True
        return card

    def remove_list(self, list_id: str) -> BoardList | None:
        """Remove a list and every card it holds. Does not re-pack sibling lists."""
        if list_id not in self._lists:
            return None
        with self.batch():
            for card in self.cards_for_list(list_id):
                self.remove_card(card.id)
            self._touch_list(list_id)
            lst = self._lists.pop(list_id)
            self._unsynced.discard(("list", list_id))
        return lst

    def remove_board(self, board_id: str) -> Board | None:
        """Remove a board with all of its lists and cards."""
        if board_id not in self._boards:
            return None
        with self.batch():
            for lst in self.lists_for_board(board_id):
                self.remove_list(lst.id)
            self._touch_board(board_id)
            board = self._boards.pop(board_id)
            self._unsynced.discard(("board", board_id))
            if self._current_board_id == board_id:
                self._current_board_id = None
                self._cursor_moved = True
        return board

    def rekey_board(self, old_id: str, new_id: str) -> Board | None:
        """Swap a board's id, carrying its lists and the current-board cursor."""
        board = self._boards.get(old_id)
        if board is None or old_id == new_id:
            return board
        with self.batch():
            self._touch_board(old_id)
            self._touch_board(new_id)
            del self._boards[old_id]
            rekeyed = replace(board, id=new_id)
            self._boards[new_id] = rekeyed
            for lst in self.lists_for_board(old_id):
                self.upsert_list(replace(lst, board_id=new_id))
            if self._current_board_id == old_id:
                self._current_board_id = new_id
            self._carry_unsynced("board", old_id, new_id)
            self._renamed[("board", old_id)] = new_id
        return rekeyed

    def rekey_list(self, old_id: str, new_id: str) -> BoardList | None:
        """Swap a list's id, carrying its cards."""
        lst = self._lists.get(old_id)
        if lst is None or old_id == new_id:
            return lst
        with self.batch():
            self._touch_list(old_id)
            self._touch_list(new_id)
            del self._lists[old_id]
            rekeyed = replace(lst, id=new_id)
            self._lists[new_id] = rekeyed
            for card in self.cards_for_list(old_id):
                self.upsert_card(replace(card, list_id=new_id))
            self._carry_unsynced("list", old_id, new_id)
            self._renamed[("list", old_id)] = new_id
        return rekeyed

    def rekey_card(self, old_id: str, new_id: str) -> Card | None:
        """Swap a card's id, rewriting its children and the open-card cursor."""
        card = self._cards.get(old_id)
        if card is None or old_id == new_id:
            return card
        with self.batch():
            self._touch_card(old_id)
            self._touch_card(new_id)
            del self._cards[old_id]
            rekeyed = _with_card_id(card, new_id)
            self._cards[new_id] = rekeyed
            if self._selected_card_id == old_id:
                self._selected_card_id = new_id
            self._carry_unsynced("card", old_id, new_id)
            self._renamed[("card", old_id)] = new_id
        return rekeyed

    def resolve_id(self, kind: EntityKind, entity_id: str) -> str:
        """Follow placeholder renames to the id an entity is stored under now."""
        seen: set[str] = set()
        while (kind, entity_id) in self._renamed and entity_id not in seen:
            seen.add(entity_id)
            entity_id = self._renamed[(kind, entity_id)]
        return entity_id

    def replace_all(
        self,
        boards: Iterable[Board],
        lists: Iterable[BoardList],
        cards: Iterable[Card],
    ) -> None:
        """Swap in a complete dataset, e.g. after the initial load."""
        with self.batch() as change:
            for board_id in list(self._boards):
                change.boards.setdefault(board_id, self._boards[board_id])
            for list_id in list(self._lists):
                change.lists.setdefault(list_id, self._lists[list_id])
            for card_id in list(self._cards):
                change.cards.setdefault(card_id, self._cards[card_id])
            self._boards.clear()
            self._lists.clear()
            self._cards.clear()
            self._unsynced.clear()
            for board in boards:
                self.upsert_board(board)
            self.upsert_lists(lists)
            self.upsert_cards(cards)
            if self._current_board_id not in self._boards:
                self._current_board_id = next(iter(self._boards), None)
                self._cursor_moved = True
            if self._selected_card_id not in self._cards:
                self._selected_card_id = None
                self._cursor_moved = True

    def replace_board_contents(
        self,
        board_id: str,
        lists: Iterable[BoardList],
        cards: Iterable[Card],
    ) -> None:
        """Swap one board's lists and cards for freshly loaded ones."""
        if board_id not in self._boards:
            return
        selected = self._selected_card_id
        with self.batch():
            for lst in self.lists_for_board(board_id):
                self.remove_list(lst.id)
            self.upsert_lists(lists)
            self.upsert_cards(cards)
            if selected is not None and selected in self._cards:
                self._selected_card_id = selected

    def revert(self, change: ChangeSet) -> None:
        """
        Restore the before-images recorded in ``change``.

        Containers touched by the restore are re-packed afterwards, and
        entities left without a parent are dropped. Placeholders renamed to
        server ids since ``change`` was recorded are restored under their
        current id.
        """
        with self.batch():
            board_ids: set[str] = set()
            list_ids: set[str] = set()
            for recorded_id, board in change.boards.items():
                board_id = self.resolve_id("board", recorded_id)
                self._touch_board(board_id)
                if board is None:
                    self._boards.pop(board_id, None)
                else:
                    self._boards[board_id] = replace(board, id=board_id)
            for recorded_id, lst in change.lists.items():
                list_id = self.resolve_id("list", recorded_id)
                current = self._lists.get(list_id)
                if current is not None:
                    board_ids.add(current.board_id)
                self._touch_list(list_id)
                if lst is None:
                    self._lists.pop(list_id, None)
                else:
                    restored = replace(lst, id=list_id, board_id=self.resolve_id("board", lst.board_id))
                    self._lists[list_id] = restored
                    board_ids.add(restored.board_id)
            for recorded_id, card in change.cards.items():
                card_id = self.resolve_id("card", recorded_id)
                current_card = self._cards.get(card_id)
                if current_card is not None:
                    list_ids.add(current_card.list_id)
                self._touch_card(card_id)
                if card is None:
                    self._cards.pop(card_id, None)
                else:
                    restored_card = replace(
                        _with_card_id(card, card_id),
                        list_id=self.resolve_id("list", card.list_id),
                    )
                    self._cards[card_id] = restored_card
                    list_ids.add(restored_card.list_id)

            self._drop_orphans()
            for board_id in board_ids:
                self.upsert_lists(repack(self.lists_for_board(board_id)))
            for list_id in list_ids:
                self.upsert_cards(repack(self.cards_for_list(list_id)))

            if self._current_board_id is not None and self._current_board_id not in self._boards:
                self._current_board_id = None
                self._cursor_moved = True
            if self._selected_card_id is not None and self._selected_card_id not in self._cards:
                self._selected_card_id = None
                self._cursor_moved = True

    def _drop_orphans(self) -> None:
        for lst in list(self._lists.values()):
            if lst.board_id not in self._boards:
                self.remove_list(lst.id)
        for card in list(self._cards.values()):
            if card.list_id not in self._lists:
                self.remove_card(card.id)

    # ------------------------------------------------------------------
    # Sync bookkeeping
    # ------------------------------------------------------------------

    @property
    def unsynced(self) -> frozenset[tuple[EntityKind, str]]:
        """Entities whose last backend write failed and was kept locally."""
        return frozenset(self._unsynced)

    def is_unsynced(self, kind: EntityKind, entity_id: str) -> bool:
        return (kind, entity_id) in self._unsynced

    def mark_unsynced(self, kind: EntityKind, entity_id: str) -> None:
        self._unsynced.add((kind, entity_id))

    def clear_unsynced(self, kind: EntityKind, entity_id: str) -> None:
        self._unsynced.discard((kind, entity_id))

    def _carry_unsynced(self, kind: EntityKind, old_id: str, new_id: str) -> None:
        if (kind, old_id) in self._unsynced:
            self._unsynced.discard((kind, old_id))
            self._unsynced.add((kind, new_id))

    def __repr__(self) -> str:
        return (
            f"EntityStore(boards={len(self._boards)}, lists={len(self._lists)}, "
            f"cards={len(self._cards)})"
        )


def _with_card_id(card: Card, card_id: str) -> Card:
    return replace(
        card,
        id=card_id,
        comments=tuple(replace(c, card_id=card_id) for c in card.comments),
        checklist=tuple(replace(i, card_id=card_id) for i in card.checklist),
        attachments=tuple(replace(a, card_id=card_id) for a in card.attachments),
    )
