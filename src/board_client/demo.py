"""Fixed demo dataset used when the backend cannot be read."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from board_client.models import Board, BoardList, Card, ChecklistItem, Label

DEMO_BOARD_ID = "demo-board"

_DEFAULT_LIST_TITLES: tuple[str, ...] = ("To Do", "In Progress", "Done")

_DEV_LABEL = Label(id="l1", name="Dev", color="#61bd4f")
_DESIGN_LABEL = Label(id="l2", name="Design", color="#f2d600")


@dataclass(frozen=True)
class DemoDataset:
    boards: tuple[Board, ...]
    lists: tuple[BoardList, ...]
    cards: tuple[Card, ...]


def demo_lists(board_id: str) -> list[BoardList]:
    """Three empty workflow columns for a board whose lists could not be read."""
    return [
        BoardList(id=f"demo-{board_id}-{index}", title=title, board_id=board_id, order=index)
        for index, title in enumerate(_DEFAULT_LIST_TITLES)
    ]


def demo_dataset(today: date | None = None) -> DemoDataset:
    """Build the demo board; card dates are relative to ``today``."""
    if today is None:
        today = date.today()

    board = Board(id=DEMO_BOARD_ID, title="Demo Board")
    todo, in_progress, done = demo_lists(board.id)

    cards = (
        Card(
            id="demo-card-1",
            title="Setup project",
            list_id=todo.id,
            order=0,
            description="Initialize repo and dependencies.",
            due_date=today + timedelta(days=7),
            start_date=today,
            labels=(_DEV_LABEL,),
            assignees=("Alex",),
            checklist=(
                ChecklistItem(
                    id="demo-ch-1", card_id="demo-card-1", title="Create repo", completed=True, order=0
                ),
                ChecklistItem(
                    id="demo-ch-2", card_id="demo-card-1", title="Install deps", completed=False, order=1
                ),
            ),
        ),
        Card(
            id="demo-card-2",
            title="Design UI",
            list_id=todo.id,
            order=1,
            due_date=today + timedelta(days=14),
            start_date=today + timedelta(days=7),
            labels=(_DESIGN_LABEL,),
        ),
        Card(
            id="demo-card-3",
            title="Implement drag & drop",
            list_id=in_progress.id,
            order=0,
            due_date=today + timedelta(days=5),
            start_date=today - timedelta(days=2),
            labels=(_DEV_LABEL,),
            assignees=("Sam",),
        ),
        Card(id="demo-card-4", title="Add new list", list_id=done.id, order=0),
    )
    return DemoDataset(boards=(board,), lists=(todo, in_progress, done), cards=cards)
