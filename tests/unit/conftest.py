"""Unit test fixtures. Caches and board state are cleared between tests."""

from __future__ import annotations

import pytest

from board_client.config import clear_settings_cache
from board_client.models import Board, BoardList
from board_client.state import reset_board_state
from board_client.store import EntityStore

from tests.helpers import make_cards


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear settings cache and board state between tests."""
    clear_settings_cache()
    reset_board_state()
    yield
    clear_settings_cache()
    reset_board_state()


@pytest.fixture()
def store() -> EntityStore:
    """
    One board with two lists, backed by numeric (server-style) ids.

    Board 1: list 10 (A) holds cards 100, 101, 102; list 11 (B) holds card 200.
    """
    entity_store = EntityStore()
    entity_store.replace_all(
        boards=[Board(id="1", title="Roadmap")],
        lists=[
            BoardList(id="10", title="A", board_id="1", order=0),
            BoardList(id="11", title="B", board_id="1", order=1),
        ],
        cards=[*make_cards("10", "100", "101", "102"), *make_cards("11", "200")],
    )
    return entity_store
