"""Dashboard figures for one board."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from board_client.store import EntityStore

DUE_SOON_DAYS = 7


@dataclass(frozen=True)
class ListShare:
    list_id: str
    title: str
    count: int
    percent: int


@dataclass(frozen=True)
class BoardSummary:
    """Card counts, due-date pressure, and checklist progress of a board."""

    board_id: str
    total_cards: int
    total_lists: int
    cards_with_due_date: int
    overdue: int
    due_soon: int
    checklist_percent: int
    lists: tuple[ListShare, ...]


def _percent(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 when ``whole`` is 0."""
    if whole == 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def summarize_board(store: EntityStore, board_id: str, today: date | None = None) -> BoardSummary:
    """
    Summarize ``board_id`` as of ``today``.

    A card is overdue when its due date is strictly before ``today`` and due
    soon when it falls within ``today`` and the following seven days.
    Unknown boards summarize as empty.
    """
    if today is None:
        today = date.today()
    horizon = today + timedelta(days=DUE_SOON_DAYS)

    lists = store.lists_for_board(board_id)
    per_list = [(lst, store.cards_for_list(lst.id)) for lst in lists]
    cards = [card for _, list_cards in per_list for card in list_cards]

    due_dates = [card.due_date for card in cards if card.due_date is not None]
    checklist = [item for card in cards for item in card.checklist]
    completed = sum(1 for item in checklist if item.completed)

    return BoardSummary(
        board_id=board_id,
        total_cards=len(cards),
        total_lists=len(lists),
        cards_with_due_date=len(due_dates),
        overdue=sum(1 for due in due_dates if due < today),
        due_soon=sum(1 for due in due_dates if today <= due <= horizon),
        checklist_percent=_percent(completed, len(checklist)),
        lists=tuple(
            ListShare(
                list_id=lst.id,
                title=lst.title,
                count=len(list_cards),
                percent=_percent(len(list_cards), len(cards)),
            )
            for lst, list_cards in per_list
        ),
    )
