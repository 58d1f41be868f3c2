"""
Position arithmetic for lists, cards, and checklist items.

Every function here is pure: it takes the current entities and returns new
instances carrying dense ``order`` values ``0..n-1``. The store applies the
results; nothing in this module touches it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, TypeVar

from board_client.models import BoardList, Card, ChecklistItem

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

T = TypeVar("T", BoardList, Card, ChecklistItem)


def sort_by_order(items: Iterable[T]) -> list[T]:
    """Sort ascending by ``order``; ties keep their incoming sequence."""
    return sorted(items, key=lambda item: item.order)


def is_contiguous(items: Iterable[T]) -> bool:
    """True when the orders are exactly ``0..n-1`` with no duplicates."""
    orders = sorted(item.order for item in items)
    return orders == list(range(len(orders)))


def container_id(item: BoardList | Card | ChecklistItem) -> str:
    """Id of the parent whose ordering ``item`` belongs to."""
    if isinstance(item, Card):
        return item.list_id
    if isinstance(item, BoardList):
        return item.board_id
    return item.card_id


def clamp_index(index: int, length: int) -> int:
    """Clamp an insertion index into ``[0, length]``."""
    return max(0, min(index, length))


def _renumber(items: Sequence[T]) -> list[T]:
    return [item if item.order == index else replace(item, order=index) for index, item in enumerate(items)]


def repack(items: Iterable[T]) -> list[T]:
    """Re-index surviving siblings to ``0..n-1`` keeping their relative order."""
    return _renumber(sort_by_order(items))


def reorder(items: Iterable[T], ordered_ids: Sequence[str]) -> list[T]:
    """
    Apply a desired ordering to one container's items.

    Ids in ``ordered_ids`` take positions in the sequence given. Items of the
    container missing from ``ordered_ids`` are appended afterwards in their
    prior relative order. Unknown and repeated ids are ignored.
    """
    current = sort_by_order(items)
    by_id = {item.id: item for item in current}

    picked: list[T] = []
    seen: set[str] = set()
    for item_id in ordered_ids:
        item = by_id.get(item_id)
        if item is None or item_id in seen:
            continue
        seen.add(item_id)
        picked.append(item)

    rest = [item for item in current if item.id not in seen]
    return _renumber(picked + rest)


def reorder_cards_in_list(
    cards: Iterable[Card],
    list_id: str,
    ordered_card_ids: Sequence[str],
) -> list[Card]:
    """Return every card of ``list_id`` re-indexed to follow ``ordered_card_ids``."""
    return reorder([card for card in cards if card.list_id == list_id], ordered_card_ids)


def reorder_lists(
    lists: Iterable[BoardList],
    board_id: str,
    ordered_list_ids: Sequence[str],
) -> list[BoardList]:
    """Return every list of ``board_id`` re-indexed to follow ``ordered_list_ids``."""
    return reorder([lst for lst in lists if lst.board_id == board_id], ordered_list_ids)


def reorder_checklist(
    items: Iterable[ChecklistItem],
    ordered_item_ids: Sequence[str],
) -> list[ChecklistItem]:
    """Re-index one card's checklist to follow ``ordered_item_ids``."""
    return reorder(items, ordered_item_ids)


def place(items: Iterable[T], item_id: str, index: int) -> list[T]:
    """Re-index one container so ``item_id`` sits at ``index`` (clamped)."""
    current = sort_by_order(items)
    ids = [item.id for item in current if item.id != item_id]
    if len(ids) == len(current):
        return _renumber(current)
    ids.insert(clamp_index(index, len(ids)), item_id)
    return reorder(current, ids)


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a card move.

    ``cards`` holds every card of the source and target lists after the move,
    so both containers can be written in the same transaction.
    """

    card: Card
    source_list_id: str
    target_list_id: str
    index: int
    cards: tuple[Card, ...]

    @property
    def is_cross_list(self) -> bool:
        return self.source_list_id != self.target_list_id


def move_card(
    cards: Iterable[Card],
    card_id: str,
    target_list_id: str,
    target_index: int,
) -> MoveResult | None:
    """
    Move a card to ``target_index`` of ``target_list_id``.

    The source list is re-packed without the card; the target index is
    clamped to ``[0, len(target)]``. Returns None when ``card_id`` is unknown.
    """
    all_cards = list(cards)
    moving = next((card for card in all_cards if card.id == card_id), None)
    if moving is None:
        return None

    source_list_id = moving.list_id
    target = sort_by_order(
        card for card in all_cards if card.list_id == target_list_id and card.id != card_id
    )
    index = clamp_index(target_index, len(target))
    target.insert(index, replace(moving, list_id=target_list_id))
    affected = _renumber(target)

    if source_list_id != target_list_id:
        source = sort_by_order(
            card for card in all_cards if card.list_id == source_list_id and card.id != card_id
        )
        affected = _renumber(source) + affected

    moved = affected[len(affected) - len(target) + index]
    return MoveResult(
        card=moved,
        source_list_id=source_list_id,
        target_list_id=target_list_id,
        index=index,
        cards=tuple(affected),
    )


def changed_positions(before: Mapping[str, T], after: Iterable[T]) -> list[T]:
    """Items from ``after`` whose order or parent differs from ``before``."""
    changed: list[T] = []
    for item in after:
        prior = before.get(item.id)
        if prior is None or prior.order != item.order or container_id(prior) != container_id(item):
            changed.append(item)
    return changed
