"""Board client lifecycle management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from board_client.clients.board_api import BoardApiClient
from board_client.config import get_settings
from board_client.logging import get_logger, setup_logging
from board_client.ownership import OwnershipRegistry
from board_client.service import BoardService
from board_client.state import init_board_state, reset_board_state
from board_client.sync import SyncAdapter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from board_client.config import Settings
    from board_client.state import BoardState


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[BoardState]:
    """Build the client, load the boards, and tear everything down on exit."""
    # === STARTUP ===
    if settings is None:
        settings = get_settings()

    setup_logging(settings.logging.level, settings.service.name, settings.logging.directory)
    logger = get_logger(__name__)

    state = init_board_state()

    api_client = BoardApiClient(
        base_url=settings.api.base_url,
        timeout_seconds=settings.api.timeout_seconds,
    )
    state.api_client = api_client

    ownership = OwnershipRegistry(Path(settings.data.ownership_path))
    state.ownership = ownership

    sync = SyncAdapter(
        store=state.store,
        api=api_client,
        on_write_failure=settings.sync.on_write_failure,
        demo_fallback=settings.sync.demo_fallback,
        ownership=ownership,
    )
    state.sync = sync
    state.service = BoardService(
        state.store,
        sync,
        ownership=ownership,
        owner_email=settings.data.owner_email,
    )

    logger.info(
        "Board client starting",
        extra={
            "service_name": settings.service.name,
            "version": settings.service.version,
            "api_base_url": settings.api.base_url,
            "on_write_failure": settings.sync.on_write_failure,
        },
    )

    try:
        await sync.load_boards()
        yield state
    finally:
        # === SHUTDOWN ===
        await sync.drain()
        await api_client.close()
        reset_board_state()
        logger.info("Board client shutting down")
