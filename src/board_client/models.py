"""Board, list, and card entities held by the entity store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal

AttachmentKind = Literal["drive", "dropbox", "link", "file"]
ATTACHMENT_KINDS: frozenset[str] = frozenset({"drive", "dropbox", "link", "file"})

DEFAULT_BOARD_COLOR = "#0079bf"
PLACEHOLDER_PREFIX = "tmp-"


def is_placeholder(entity_id: str) -> bool:
    """True for ids assigned locally that the backend has not confirmed yet."""
    return entity_id.startswith(PLACEHOLDER_PREFIX)


@dataclass(frozen=True)
class Board:
    """Top-level container of lists (a "project" on the backend)."""

    id: str
    title: str
    color: str = DEFAULT_BOARD_COLOR
    description: str = ""


@dataclass(frozen=True)
class BoardList:
    """Ordered column of cards within a board (a "stage" on the backend)."""

    id: str
    title: str
    board_id: str
    order: int


@dataclass(frozen=True)
class Label:
    id: str
    name: str
    color: str


@dataclass(frozen=True)
class Comment:
    id: str
    card_id: str
    author: str
    text: str
    created_at: datetime


@dataclass(frozen=True)
class ChecklistItem:
    """One checklist entry; ``order`` is contiguous within its card."""

    id: str
    card_id: str
    title: str
    completed: bool
    order: int


@dataclass(frozen=True)
class Attachment:
    id: str
    card_id: str
    name: str
    url: str
    kind: AttachmentKind


@dataclass(frozen=True)
class Card:
    """Unit of work within a list (a "task" on the backend).

    Collection fields are tuples so a Card can be shared between the store
    and any derived view without copying.
    """

    id: str
    title: str
    list_id: str
    order: int
    description: str | None = None
    color: str | None = None
    due_date: date | None = None
    start_date: date | None = None
    reminder: datetime | None = None
    labels: tuple[Label, ...] = ()
    assignees: tuple[str, ...] = ()
    comments: tuple[Comment, ...] = ()
    checklist: tuple[ChecklistItem, ...] = ()
    attachments: tuple[Attachment, ...] = ()
