"""Unit tests for OwnershipRegistry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from board_client.models import Board
from board_client.ownership import OwnershipRegistry


@pytest.fixture()
def registry(tmp_path: Path) -> OwnershipRegistry:
    return OwnershipRegistry(tmp_path / "data" / "owners.json")


@pytest.mark.unit
class TestOwnershipRegistry:
    """Tests for the JSON-backed ownership file."""

    def test_assign_lowercases_and_persists(self, registry: OwnershipRegistry) -> None:
        registry.assign("1", " Alex@Example.com ")
        assert registry.owner_of("1") == "alex@example.com"
        assert json.loads(registry.path.read_text()) == {"1": "alex@example.com"}

    def test_missing_file_reads_empty(self, registry: OwnershipRegistry) -> None:
        assert registry.owner_of("1") is None

    def test_corrupt_file_reads_empty(self, registry: OwnershipRegistry) -> None:
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("{not json")
        assert registry.owner_of("1") is None
        registry.assign("1", "sam@example.com")
        assert registry.owner_of("1") == "sam@example.com"

    def test_non_mapping_file_reads_empty(self, registry: OwnershipRegistry) -> None:
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("[1, 2]")
        assert registry.owner_of("1") is None

    def test_forget(self, registry: OwnershipRegistry) -> None:
        registry.assign("1", "alex@example.com")
        registry.forget("1")
        assert registry.owner_of("1") is None

    def test_visible_boards(self, registry: OwnershipRegistry) -> None:
        boards = [Board(id="1", title="Mine"), Board(id="2", title="Theirs"), Board(id="3", title="Shared")]
        registry.assign("1", "alex@example.com")
        registry.assign("2", "sam@example.com")

        visible = registry.visible_boards(boards, "ALEX@example.com")

        assert [b.id for b in visible] == ["1", "3"]

    def test_rekey_moves_owner(self, registry: OwnershipRegistry) -> None:
        registry.assign("tmp-b", "alex@example.com")
        registry.rekey("tmp-b", "7")
        assert registry.owner_of("tmp-b") is None
        assert registry.owner_of("7") == "alex@example.com"

    def test_rekey_without_owner_writes_nothing(self, registry: OwnershipRegistry) -> None:
        registry.rekey("tmp-b", "7")
        assert not registry.path.exists()
