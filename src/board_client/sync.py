"""
Mirrors local store mutations to the board REST backend.

Writes are optimistic: the store is already updated when a write is handed
over here. Each write runs as a background asyncio task; success reconciles
placeholder ids, failure is logged, published as an ErrorBanner, and handled
according to the configured write-failure policy.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from board_client.demo import demo_dataset, demo_lists
from board_client.exceptions import ServiceError
from board_client.logging import get_logger
from board_client.models import is_placeholder
from board_client.ordering import place, repack
from board_client.store import ChangeSet

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from board_client.clients.board_api import BoardApiClient
    from board_client.config import WriteFailurePolicy
    from board_client.models import Board, BoardList, Card
    from board_client.ownership import OwnershipRegistry
    from board_client.schemas import ProjectPayload, StagePayload, TaskPayload
    from board_client.store import EntityKind, EntityStore


@dataclass(frozen=True)
class ErrorBanner:
    """Transient, user-facing notice about a failed backend call."""

    title: str
    message: str
    hint: str = ""
    can_retry: bool = False


@dataclass
class PendingWrite:
    """One optimistic action waiting for its backend confirmation."""

    action: str
    targets: tuple[tuple[EntityKind, str], ...]
    change: ChangeSet
    operation: Callable[[], Awaitable[None]]
    task: asyncio.Task[None] | None = field(default=None, repr=False)


class SyncAdapter:
    """
    Translate store mutations into backend requests and reconcile results.

    Loading fans out one task request per list and populates the store only
    after every request has settled. Writes are fire-and-forget relative to
    the caller; ``drain()`` awaits everything still in flight.
    """

    def __init__(
        self,
        store: EntityStore,
        api: BoardApiClient,
        on_write_failure: WriteFailurePolicy = "keep",
        demo_fallback: bool = True,
        ownership: OwnershipRegistry | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._ownership = ownership
        self._on_write_failure = on_write_failure
        self._demo_fallback = demo_fallback
        self._offline = False
        self._pending: set[asyncio.Task[None]] = set()
        self._creating: dict[tuple[EntityKind, str], asyncio.Future[int | None]] = {}
        self._banner_listeners: list[Callable[[ErrorBanner], None]] = []
        self._logger = get_logger(__name__)

    @property
    def offline(self) -> bool:
        """True once a read fell back to the demo dataset."""
        return self._offline

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_banner_listener(self, listener: Callable[[ErrorBanner], None]) -> Callable[[], None]:
        """Receive an ErrorBanner for every failed backend call. Returns an unsubscribe function."""
        self._banner_listeners.append(listener)

        def _remove() -> None:
            if listener in self._banner_listeners:
                self._banner_listeners.remove(listener)

        return _remove

    def _publish(self, banner: ErrorBanner) -> None:
        for listener in list(self._banner_listeners):
            listener(banner)

    # ------------------------------------------------------------------
    # Initial load
    # ------------------------------------------------------------------

    async def load_boards(self) -> bool:
        """
        Fetch every board with its lists and cards and replace the store contents.

        Returns True when the data came from the backend, False when the demo
        dataset was used instead.

        Raises:
            ServiceError: If the board fetch fails and demo fallback is disabled.
        """
        try:
            projects = await self._api.list_projects()
        except ServiceError as exc:
            return self._fall_back_to_demo(exc)

        boards = [project.to_board() for project in projects]
        contents = await asyncio.gather(*(self._fetch_board_contents(board.id) for board in boards))

        lists: list[BoardList] = []
        cards: list[Card] = []
        for board_lists, board_cards in contents:
            lists.extend(board_lists)
            cards.extend(board_cards)

        self._store.replace_all(boards, lists, cards)
        self._offline = False
        self._logger.info(
            "Boards loaded",
            extra={"boards": len(boards), "lists": len(lists), "cards": len(cards)},
        )
        return True

    async def load_board(self, board_id: str) -> None:
        """Refresh the lists and cards of one board already in the store."""
        if self._store.get_board(board_id) is None:
            self._logger.debug("Ignoring load for unknown board", extra={"board_id": board_id})
            return
        lists, cards = await self._fetch_board_contents(board_id)
        self._store.replace_board_contents(board_id, lists, cards)

    async def _fetch_board_contents(self, board_id: str) -> tuple[list[BoardList], list[Card]]:
        project_id = _backend_id(board_id)
        if project_id is None:
            return [], []

        try:
            stages = await self._api.list_stages(project_id)
        except ServiceError as exc:
            if not self._demo_fallback:
                raise
            self._logger.warning(
                "Failed to load lists, using demo lists",
                extra={"board_id": board_id, "error": exc.error},
            )
            self._publish(
                ErrorBanner(
                    title="Could not load lists",
                    message=exc.message,
                    hint="Showing default lists until the board API is reachable.",
                    can_retry=True,
                )
            )
            return demo_lists(board_id), []

        outcomes = await asyncio.gather(
            *(self._api.list_tasks(stage.id) for stage in stages),
            return_exceptions=True,
        )

        cards: list[Card] = []
        for stage, outcome in zip(stages, outcomes, strict=True):
            if isinstance(outcome, ServiceError):
                self._logger.warning(
                    "Failed to load cards for list",
                    extra={"board_id": board_id, "list_id": str(stage.id), "error": outcome.error},
                )
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            cards.extend(repack(task.to_card(str(stage.id)) for task in outcome))

        lists = repack(stage.to_list(board_id) for stage in stages)
        return lists, cards

    def _fall_back_to_demo(self, exc: ServiceError) -> bool:
        if not self._demo_fallback:
            raise exc
        self._logger.warning("Failed to load boards, using demo data", extra={"error": exc.error})
        self._publish(
            ErrorBanner(
                title="Working offline",
                message=exc.message,
                hint="Changes stay on this device until the board API is reachable.",
                can_retry=True,
            )
        )
        dataset = demo_dataset()
        self._store.replace_all(dataset.boards, dataset.lists, dataset.cards)
        self._offline = True
        return False

    # ------------------------------------------------------------------
    # Boards
    # ------------------------------------------------------------------

    def create_board(self, board: Board, change: ChangeSet) -> asyncio.Task[None] | None:
        key: tuple[EntityKind, str] = ("board", board.id)

        async def _create() -> None:
            try:
                payload = await self._api.create_project(board.title, board.description)
                self._confirm_board(board, payload)
            finally:
                self._settle_creation(key)

        return self._schedule("create_board", (key,), change, _create, creates=key)

    def _confirm_board(self, sent: Board, payload: ProjectPayload) -> None:
        server_id = str(payload.id)
        self._resolve_creation(("board", sent.id), payload.id)
        if self._store.get_board(sent.id) is None:
            self._discard_stale("board", sent.id, payload.id)
            return
        local = self._store.rekey_board(sent.id, server_id)
        if self._ownership is not None:
            self._ownership.rekey(sent.id, server_id)
        if local is not None and (local.title, local.description) != (payload.name, payload.description):
            self.update_board(server_id, ChangeSet())

    def update_board(self, board_id: str, change: ChangeSet) -> asyncio.Task[None] | None:
        if is_placeholder(board_id):
            return None

        async def _update() -> None:
            board = self._store.get_board(board_id)
            project_id = _backend_id(board_id)
            if board is None or project_id is None:
                return
            await self._api.update_project(project_id, board.title, board.description)

        return self._schedule("update_board", (("board", board_id),), change, _update)

    def delete_board(self, board_id: str, change: ChangeSet) -> asyncio.Task[None] | None:
        if is_placeholder(board_id):
            return None

        async def _delete() -> None:
            project_id = _backend_id(board_id)
            if project_id is not None:
                await self._api.delete_project(project_id)

        return self._schedule("delete_board", (("board", board_id),), change, _delete)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def create_list(self, lst: BoardList, change: ChangeSet) -> asyncio.Task[None] | None:
        key: tuple[EntityKind, str] = ("list", lst.id)

        async def _create() -> None:
            try:
                current = self._store.get_list(lst.id)
                if current is None:
                    return
                project_id = await self._resolve_id("board", current.board_id)
                current = self._store.get_list(lst.id)
                if current is None:
                    return
                if project_id is None:
                    raise _parent_not_synced("list", lst.id, current.board_id)
                payload = await self._api.create_stage(project_id, current.title, current.order)
                self._confirm_list(current, payload)
            finally:
                self._settle_creation(key)

        return self._schedule("create_list", (key,), change, _create, creates=key)

    def _confirm_list(self, sent: BoardList, payload: StagePayload) -> None:
        server_id = str(payload.id)
        self._resolve_creation(("list", sent.id), payload.id)
        current = self._store.get_list(sent.id)
        if current is None:
            self._discard_stale("list", sent.id, payload.id)
            return
        repositioned = current.order != sent.order
        local = self._store.rekey_list(sent.id, server_id)
        if local is None:
            return
        if not repositioned and payload.position != local.order:
            self._store.upsert_lists(
                place(self._store.lists_for_board(local.board_id), server_id, payload.position)
            )
            local = self._store.get_list(server_id)
        if local is not None and (local.title, local.order) != (payload.name, payload.position):
            self.update_list(server_id, ChangeSet())

    def update_list(self, list_id: str, change: ChangeSet) -> asyncio.Task[None] | None:
        if is_placeholder(list_id):
            return None

        async def _update() -> None:
            await self._put_list(list_id)

        return self._schedule("update_list", (("list", list_id),), change, _update)

    def delete_list(
        self,
        list_id: str,
        change: ChangeSet,
        shifted: Sequence[BoardList] = (),
    ) -> asyncio.Task[None] | None:
        """Delete a list remotely and push the new positions of the lists after it."""
        targets = (("list", list_id), *(("list", lst.id) for lst in shifted))

        async def _delete() -> None:
            stage_id = _backend_id(list_id)
            if stage_id is not None and not is_placeholder(list_id):
                await self._api.delete_stage(stage_id)
            for lst in shifted:
                await self._put_list(lst.id)

        return self._schedule("delete_list", targets, change, _delete)

    def push_list_positions(
        self, lists: Sequence[BoardList], change: ChangeSet
    ) -> asyncio.Task[None] | None:
        """Send the current position of every list in ``lists``."""
        if not lists:
            return None
        targets = tuple(("list", lst.id) for lst in lists)

        async def _push() -> None:
            for lst in lists:
                await self._put_list(lst.id)

        return self._schedule("reorder_lists", targets, change, _push)

    async def _put_list(self, list_id: str) -> None:
        if is_placeholder(list_id):
            return
        lst = self._store.get_list(list_id)
        stage_id = _backend_id(list_id)
        if lst is None or stage_id is None:
            return
        await self._api.update_stage(stage_id, lst.title, lst.order)

    # ------------------------------------------------------------------
    # Cards
    # ------------------------------------------------------------------

    def create_card(self, card: Card, change: ChangeSet) -> asyncio.Task[None] | None:
        key: tuple[EntityKind, str] = ("card", card.id)

        async def _create() -> None:
            try:
                current = self._store.get_card(card.id)
                if current is None:
                    return
                stage_id = await self._resolve_id("list", current.list_id)
                current = self._store.get_card(card.id)
                if current is None:
                    return
                if stage_id is None:
                    raise _parent_not_synced("card", card.id, current.list_id)
                payload = await self._api.create_task(
                    stage_id, current.title, current.description or "", current.order
                )
                self._confirm_card(current, payload)
            finally:
                self._settle_creation(key)

        return self._schedule("create_card", (key,), change, _create, creates=key)

    def _confirm_card(self, sent: Card, payload: TaskPayload) -> None:
        server_id = str(payload.id)
        self._resolve_creation(("card", sent.id), payload.id)
        current = self._store.get_card(sent.id)
        if current is None:
            self._discard_stale("card", sent.id, payload.id)
            return
        repositioned = (current.list_id, current.order) != (sent.list_id, sent.order)
        local = self._store.rekey_card(sent.id, server_id)
        if local is None:
            return
        if not repositioned and payload.position != local.order:
            self._store.upsert_cards(
                place(self._store.cards_for_list(local.list_id), server_id, payload.position)
            )
            local = self._store.get_card(server_id)
        if local is None:
            return
        if repositioned and local.list_id != sent.list_id:
            self.push_card_positions([local], ChangeSet(), moved_card_id=server_id)
        elif (local.title, local.description or "", local.order) != (
            payload.title,
            payload.description,
            payload.position,
        ):
            self.update_card(server_id, ChangeSet())

    def update_card(self, card_id: str, change: ChangeSet) -> asyncio.Task[None] | None:
        if is_placeholder(card_id):
            return None

        async def _update() -> None:
            await self._put_card(card_id)

        return self._schedule("update_card", (("card", card_id),), change, _update)

    def delete_card(
        self,
        card_id: str,
        change: ChangeSet,
        shifted: Sequence[Card] = (),
    ) -> asyncio.Task[None] | None:
        """Delete a card remotely and push the new positions of the cards after it."""
        targets = (("card", card_id), *(("card", card.id) for card in shifted))

        async def _delete() -> None:
            task_id = _backend_id(card_id)
            if task_id is not None and not is_placeholder(card_id):
                await self._api.delete_task(task_id)
            for card in shifted:
                await self._put_card(card.id)

        return self._schedule("delete_card", targets, change, _delete)

    def push_card_positions(
        self,
        cards: Sequence[Card],
        change: ChangeSet,
        moved_card_id: str | None = None,
    ) -> asyncio.Task[None] | None:
        """
        Send the current position of every card in ``cards``.

        ``moved_card_id`` goes through the move endpoint so the backend
        also learns its new list.
        """
        if not cards:
            return None
        targets = tuple(("card", card.id) for card in cards)

        async def _push() -> None:
            for card in cards:
                if card.id == moved_card_id:
                    await self._move_card(card.id)
                else:
                    await self._put_card(card.id)

        action = "move_card" if moved_card_id is not None else "reorder_cards"
        return self._schedule(action, targets, change, _push)

    async def _put_card(self, card_id: str) -> None:
        if is_placeholder(card_id):
            return
        card = self._store.get_card(card_id)
        task_id = _backend_id(card_id)
        if card is None or task_id is None:
            return
        await self._api.update_task(task_id, card.title, card.description or "", card.order)

    async def _move_card(self, card_id: str) -> None:
        if is_placeholder(card_id):
            return
        card = self._store.get_card(card_id)
        task_id = _backend_id(card_id)
        if card is None or task_id is None:
            return
        stage_id = await self._resolve_id("list", card.list_id)
        if stage_id is None:
            raise _parent_not_synced("card", card_id, card.list_id)
        card = self._store.get_card(card_id)
        if card is None:
            return
        await self._api.move_task(task_id, stage_id, card.order)

    # ------------------------------------------------------------------
    # Scheduling and failure handling
    # ------------------------------------------------------------------

    def _schedule(
        self,
        action: str,
        targets: tuple[tuple[EntityKind, str], ...],
        change: ChangeSet,
        operation: Callable[[], Awaitable[None]],
        creates: tuple[EntityKind, str] | None = None,
    ) -> asyncio.Task[None] | None:
        if self._offline:
            for kind, entity_id in targets:
                self._store.mark_unsynced(kind, entity_id)
            self._logger.debug("Offline, keeping write local", extra={"action": action})
            return None

        loop = asyncio.get_running_loop()
        if creates is not None:
            self._creating[creates] = loop.create_future()

        write = PendingWrite(action=action, targets=targets, change=change, operation=operation)
        task = loop.create_task(self._run(write))
        write.task = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, write: PendingWrite) -> None:
        try:
            await write.operation()
        except ServiceError as exc:
            self._handle_failure(write, exc)
        except Exception:
            self._logger.exception("Unhandled error in board write", extra={"action": write.action})
            raise
        else:
            for kind, entity_id in write.targets:
                self._store.clear_unsynced(kind, self._store.resolve_id(kind, entity_id))

    def _handle_failure(self, write: PendingWrite, exc: ServiceError) -> None:
        self._logger.warning(
            "Board write failed",
            extra={
                "action": write.action,
                "targets": [f"{kind}:{entity_id}" for kind, entity_id in write.targets],
                "error": exc.error,
                "status_code": exc.status_code,
                "policy": self._on_write_failure,
            },
        )

        if self._on_write_failure == "rollback":
            self._store.revert(write.change)
            if self._ownership is not None:
                for kind, entity_id in write.targets:
                    if kind == "board" and self._store.get_board(entity_id) is None:
                        self._ownership.forget(entity_id)
            hint = "Your change was undone."
        else:
            for kind, entity_id in write.targets:
                current_id = self._store.resolve_id(kind, entity_id)
                if _exists(self._store, kind, current_id):
                    self._store.mark_unsynced(kind, current_id)
            hint = "Your change is kept on this device but was not saved."

        self._publish(
            ErrorBanner(
                title="Could not save changes",
                message=exc.message,
                hint=hint,
                can_retry=exc.error == "BOARD_API_UNAVAILABLE",
            )
        )

    def _discard_stale(self, kind: EntityKind, placeholder_id: str, server_id: int) -> None:
        """Handle a create confirmation for an entity deleted locally in the meantime."""
        self._logger.info(
            "Create confirmed for deleted entity, removing it remotely",
            extra={"kind": kind, "placeholder_id": placeholder_id, "server_id": server_id},
        )
        delete = {
            "board": self._api.delete_project,
            "list": self._api.delete_stage,
            "card": self._api.delete_task,
        }[kind]

        async def _cleanup() -> None:
            await delete(server_id)

        self._schedule(f"delete_stale_{kind}", (), ChangeSet(), _cleanup)

    async def _resolve_id(self, kind: EntityKind, entity_id: str) -> int | None:
        """Backend id for ``entity_id``, waiting for its create when it is a placeholder."""
        if not is_placeholder(entity_id):
            return _backend_id(entity_id)
        creation = self._creating.get((kind, entity_id))
        if creation is None:
            return None
        return await asyncio.shield(creation)

    def _resolve_creation(self, key: tuple[EntityKind, str], server_id: int) -> None:
        creation = self._creating.get(key)
        if creation is not None and not creation.done():
            creation.set_result(server_id)

    def _settle_creation(self, key: tuple[EntityKind, str]) -> None:
        creation = self._creating.pop(key, None)
        if creation is not None and not creation.done():
            creation.set_result(None)

    async def drain(self) -> None:
        """Wait until every write in flight, including follow-ups, has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def _backend_id(entity_id: str) -> int | None:
    """Integer id the backend knows ``entity_id`` by, or None for local-only ids."""
    if is_placeholder(entity_id) or not entity_id.isdigit():
        return None
    return int(entity_id)


def _exists(store: EntityStore, kind: EntityKind, entity_id: str) -> bool:
    if kind == "board":
        return store.get_board(entity_id) is not None
    if kind == "list":
        return store.get_list(entity_id) is not None
    return store.get_card(entity_id) is not None


def _parent_not_synced(kind: str, entity_id: str, parent_id: str) -> ServiceError:
    return ServiceError(
        error="PARENT_NOT_SYNCED",
        message=f"Cannot save {kind} before its parent is saved",
        status_code=409,
        details={"id": entity_id, "parent_id": parent_id},
    )
