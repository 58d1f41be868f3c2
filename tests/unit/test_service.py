"""Unit tests for BoardService without a backend."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from board_client.exceptions import ValidationFailed
from board_client.models import Label, is_placeholder
from board_client.ordering import is_contiguous
from board_client.ownership import OwnershipRegistry
from board_client.service import BoardService
from board_client.store import EntityStore


@pytest.fixture()
def service(store: EntityStore) -> BoardService:
    return BoardService(store)


def _positions(store: EntityStore, list_id: str) -> list[tuple[str, int]]:
    return [(c.id, c.order) for c in store.cards_for_list(list_id)]


@pytest.mark.unit
class TestBoards:
    """Tests for board operations."""

    def test_add_board_uses_placeholder_and_default_title(self) -> None:
        service = BoardService(EntityStore())
        board = service.add_board("   ")
        assert board.title == "Untitled Board"
        assert is_placeholder(board.id)
        assert service.store.current_board_id == board.id

    def test_add_board_keeps_existing_current_board(self, service: BoardService) -> None:
        service.add_board("Second")
        assert service.store.current_board_id == "1"

    def test_update_board(self, service: BoardService) -> None:
        updated = service.update_board("1", title="Renamed", color="#ff0000")
        assert updated is not None
        assert service.store.get_board("1").title == "Renamed"
        assert service.store.get_board("1").color == "#ff0000"

    def test_update_board_blank_title_falls_back(self, service: BoardService) -> None:
        updated = service.update_board("1", title="   ")
        assert updated is not None
        assert updated.title == "Untitled Board"
        assert service.store.get_board("1").title == "Untitled Board"

    def test_update_unknown_board_is_noop(self, service: BoardService) -> None:
        assert service.update_board("missing", title="x") is None

    def test_update_board_rejects_unknown_fields(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.update_board("1", owner="someone")

    def test_delete_board_cascades(self, service: BoardService) -> None:
        service.delete_board("1")
        assert service.store.boards() == []
        assert service.store.all_cards() == []

    def test_set_current_board(self, service: BoardService) -> None:
        other = service.add_board("Other")
        service.set_current_board(other.id)
        assert service.store.current_board_id == other.id


@pytest.mark.unit
class TestLists:
    """Tests for list operations."""

    def test_add_list_appends(self, service: BoardService) -> None:
        lst = service.add_list("1", " Done ")
        assert lst.title == "Done"
        assert lst.order == 2

    def test_add_list_rejects_blank_title(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            service.add_list("1", "  ")
        assert exc_info.value.error == "VALIDATION_ERROR"
        assert exc_info.value.status_code == 400

    def test_add_list_rejects_unknown_board(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.add_list("missing", "Done")

    def test_update_list_rejects_order(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.update_list("10", order=3)

    def test_delete_list_repacks_siblings(self, service: BoardService) -> None:
        service.add_list("1", "C")
        service.delete_list("10")
        lists = service.store.lists_for_board("1")
        assert [(lst.title, lst.order) for lst in lists] == [("B", 0), ("C", 1)]
        assert service.store.cards_for_list("10") == []

    def test_reorder_lists(self, service: BoardService) -> None:
        service.reorder_lists("1", ["11", "10"])
        assert [lst.id for lst in service.store.lists_for_board("1")] == ["11", "10"]

    def test_reorder_lists_keeps_omitted(self, service: BoardService) -> None:
        third = service.add_list("1", "C")
        service.reorder_lists("1", [third.id])
        assert [lst.title for lst in service.store.lists_for_board("1")] == ["C", "A", "B"]


@pytest.mark.unit
class TestOwnership:
    """Tests for recording and filtering board owners."""

    @pytest.fixture()
    def registry(self, tmp_path: Path) -> OwnershipRegistry:
        return OwnershipRegistry(tmp_path / "owners.json")

    def test_add_board_records_owner(self, store: EntityStore, registry: OwnershipRegistry) -> None:
        service = BoardService(store, ownership=registry, owner_email="Alex@Example.com")
        board = service.add_board("Plans")
        assert registry.owner_of(board.id) == "alex@example.com"

    def test_delete_board_forgets_owner(self, store: EntityStore, registry: OwnershipRegistry) -> None:
        service = BoardService(store, ownership=registry, owner_email="alex@example.com")
        board = service.add_board("Plans")
        service.delete_board(board.id)
        assert registry.owner_of(board.id) is None

    def test_visible_boards_filters_by_owner(
        self, store: EntityStore, registry: OwnershipRegistry
    ) -> None:
        registry.assign("1", "sam@example.com")
        service = BoardService(store, ownership=registry, owner_email="alex@example.com")
        mine = service.add_board("Plans")
        shared = service.add_board("Shared")
        registry.forget(shared.id)

        assert [b.id for b in service.visible_boards()] == [mine.id, shared.id]

    def test_visible_boards_without_owner_shows_all(
        self, store: EntityStore, registry: OwnershipRegistry
    ) -> None:
        registry.assign("1", "sam@example.com")
        service = BoardService(store, ownership=registry)
        board = service.add_board("Plans")

        assert [b.id for b in service.visible_boards()] == ["1", board.id]
        assert registry.owner_of(board.id) is None


@pytest.mark.unit
class TestCards:
    """Tests for card operations."""

    def test_add_card_to_empty_list_gets_order_zero(self, service: BoardService) -> None:
        lst = service.add_list("1", "Empty")
        card = service.add_card(lst.id, "")
        assert card.order == 0
        assert card.title == "New Card"

    def test_add_card_appends(self, service: BoardService) -> None:
        card = service.add_card("10", "Fourth")
        assert card.order == 3

    def test_add_card_to_unknown_list_fails(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.add_card("missing", "x")

    def test_update_card_rejects_position_fields(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            service.update_card("100", list_id="11", order=0)
        assert exc_info.value.details == {"fields": ["list_id", "order"]}

    def test_update_card_blank_title_falls_back(self, service: BoardService) -> None:
        updated = service.update_card("100", title="  ")
        assert updated is not None
        assert service.get_card("100").title == "New Card"

    def test_update_card_fields(self, service: BoardService) -> None:
        service.update_card("100", description="Ship it", due_date=date(2026, 1, 2))
        card = service.get_card("100")
        assert card.description == "Ship it"
        assert card.due_date == date(2026, 1, 2)

    def test_delete_card_repacks_list(self, service: BoardService) -> None:
        service.delete_card("100")
        assert _positions(service.store, "10") == [("101", 0), ("102", 1)]

    def test_move_card_across_lists(self, service: BoardService) -> None:
        calls: list[EntityStore] = []
        service.store.subscribe(calls.append)

        moved = service.move_card("101", "11", 0)

        assert moved is not None
        assert _positions(service.store, "10") == [("100", 0), ("102", 1)]
        assert _positions(service.store, "11") == [("101", 0), ("200", 1)]
        assert len(calls) == 1

    def test_move_to_current_position_leaves_store_unchanged(self, service: BoardService) -> None:
        before = service.store.snapshot()
        calls: list[EntityStore] = []
        service.store.subscribe(calls.append)

        service.move_card("101", "10", 1)

        assert service.store.snapshot() == before
        assert calls == []

    def test_move_to_unknown_list_is_noop(self, service: BoardService) -> None:
        assert service.move_card("101", "missing", 0) is None
        assert _positions(service.store, "10") == [("100", 0), ("101", 1), ("102", 2)]

    def test_reorder_cards_in_list(self, service: BoardService) -> None:
        service.reorder_cards_in_list("10", ["102", "100", "101"])
        assert _positions(service.store, "10") == [("102", 0), ("100", 1), ("101", 2)]

    def test_many_moves_keep_lists_contiguous(self, service: BoardService) -> None:
        for card_id, target, index in [("100", "11", 5), ("200", "10", 0), ("102", "11", 0), ("101", "10", 9)]:
            service.move_card(card_id, target, index)
        for list_id in ("10", "11"):
            assert is_contiguous(service.store.cards_for_list(list_id))


@pytest.mark.unit
class TestCardDetail:
    """Tests for the local-only card detail operations."""

    def test_comments(self, service: BoardService) -> None:
        comment = service.add_comment("100", "Alex", " Looks good ")
        assert comment is not None
        assert comment.text == "Looks good"
        assert service.get_card("100").comments == (comment,)
        service.delete_comment("100", comment.id)
        assert service.get_card("100").comments == ()

    def test_blank_comment_rejected(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.add_comment("100", "Alex", " ")

    def test_checklist_lifecycle(self, service: BoardService) -> None:
        first = service.add_checklist_item("100", "One")
        second = service.add_checklist_item("100", "Two")
        third = service.add_checklist_item("100", "Three")
        assert [i.order for i in (first, second, third)] == [0, 1, 2]

        toggled = service.toggle_checklist_item("100", second.id)
        assert toggled is not None
        assert toggled.completed

        service.delete_checklist_item("100", first.id)
        checklist = service.get_card("100").checklist
        assert [(i.title, i.order) for i in checklist] == [("Two", 0), ("Three", 1)]

        service.reorder_checklist("100", [third.id])
        checklist = sorted(service.get_card("100").checklist, key=lambda i: i.order)
        assert [i.title for i in checklist] == ["Three", "Two"]

    def test_labels_dedupe_by_id(self, service: BoardService) -> None:
        label = Label(id="l1", name="Dev", color="#61bd4f")
        service.add_label("100", label)
        service.add_label("100", label)
        assert service.get_card("100").labels == (label,)
        service.remove_label("100", "l1")
        assert service.get_card("100").labels == ()

    def test_assignees_dedupe(self, service: BoardService) -> None:
        service.add_assignee("100", "Sam")
        service.add_assignee("100", "Sam")
        assert service.get_card("100").assignees == ("Sam",)
        service.remove_assignee("100", "Sam")
        assert service.get_card("100").assignees == ()

    def test_attachments(self, service: BoardService) -> None:
        attachment = service.add_attachment("100", "Roadmap", "https://example.com/roadmap", kind="drive")
        assert attachment is not None
        assert service.get_card("100").attachments == (attachment,)
        service.remove_attachment("100", attachment.id)
        assert service.get_card("100").attachments == ()

    def test_unknown_attachment_kind_rejected(self, service: BoardService) -> None:
        with pytest.raises(ValidationFailed):
            service.add_attachment("100", "x", "https://example.com", kind="ftp")

    def test_detail_ops_on_unknown_card_are_noops(self, service: BoardService) -> None:
        assert service.add_comment("missing", "Alex", "hi") is None
        assert service.add_checklist_item("missing", "x") is None
        assert service.toggle_checklist_item("missing", "x") is None
        service.add_label("missing", Label(id="l1", name="Dev", color="#000"))


@pytest.mark.unit
class TestSelection:
    """Tests for the card detail cursor through the service."""

    def test_open_and_close(self, service: BoardService) -> None:
        card = service.open_card_detail("101")
        assert card is not None
        assert card.id == "101"
        service.close_card_detail()
        assert service.selection.selected_card_id is None

    def test_deleting_open_card_clears_selection(self, service: BoardService) -> None:
        service.open_card_detail("101")
        service.delete_card("101")
        assert service.selection.selected_card_id is None

    def test_deleting_list_of_open_card_clears_selection(self, service: BoardService) -> None:
        service.open_card_detail("200")
        service.delete_list("11")
        assert service.selection.selected_card_id is None
