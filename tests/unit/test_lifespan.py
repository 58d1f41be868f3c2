"""Unit tests for the client lifecycle."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from board_client import lifespan as lifespan_module
from board_client.clients.board_api import BoardApiClient
from board_client.config import Settings
from board_client.exceptions import ServiceError
from board_client.logging import ROOT_LOGGER_NAME
from board_client.schemas import ProjectPayload
from board_client.state import get_board_state


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        service={"name": "board-client", "version": "0.1.0"},
        logging={"level": "INFO"},
        api={"base_url": "http://mock-board:8080/api", "timeout_seconds": 5},
        sync={"on_write_failure": "keep", "demo_fallback": True},
        data={"ownership_path": str(tmp_path / "owners.json")},
    )


@pytest.fixture()
def api(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    mock_api = AsyncMock(spec=BoardApiClient)
    monkeypatch.setattr(lifespan_module, "BoardApiClient", lambda **_kwargs: mock_api)
    yield mock_api
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True


@pytest.mark.unit
async def test_lifespan_wires_and_loads(settings: Settings, api: AsyncMock) -> None:
    api.list_projects.return_value = [ProjectPayload(id=1, name="Roadmap")]
    api.list_stages.return_value = []

    async with lifespan_module.lifespan(settings) as state:
        assert get_board_state() is state
        assert state.service is not None
        assert state.ownership is not None
        assert [b.title for b in state.store.boards()] == ["Roadmap"]

    api.close.assert_awaited_once()
    with pytest.raises(RuntimeError):
        get_board_state()


@pytest.mark.unit
async def test_lifespan_falls_back_to_demo(settings: Settings, api: AsyncMock) -> None:
    api.list_projects.side_effect = ServiceError("BOARD_API_UNAVAILABLE", "down", 502, {})

    async with lifespan_module.lifespan(settings) as state:
        assert state.sync is not None
        assert state.sync.offline
        assert state.store.current_board_id == "demo-board"
