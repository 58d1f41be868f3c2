"""Unit tests for BoardState lifecycle helpers."""

from __future__ import annotations

import time

import pytest

from board_client.state import BoardState, get_board_state, init_board_state, reset_board_state
from board_client.store import EntityStore


@pytest.mark.unit
def test_board_state_init() -> None:
    """BoardState starts with an empty store and no wired components."""
    state = BoardState()
    assert isinstance(state.store, EntityStore)
    assert state.store.boards() == []
    assert state.service is None
    assert state.sync is None
    assert state.api_client is None
    assert state.ownership is None


@pytest.mark.unit
def test_board_state_uptime() -> None:
    state = BoardState()
    time.sleep(0.001)
    assert state.uptime_seconds > 0


@pytest.mark.unit
def test_get_board_state_uninitialized() -> None:
    """get_board_state raises RuntimeError before initialization."""
    reset_board_state()
    with pytest.raises(RuntimeError):
        _state = get_board_state()


@pytest.mark.unit
def test_init_board_state() -> None:
    state = init_board_state()
    assert get_board_state() is state


@pytest.mark.unit
def test_reset_board_state() -> None:
    init_board_state()
    reset_board_state()
    with pytest.raises(RuntimeError):
        get_board_state()
