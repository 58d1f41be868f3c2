"""Entry point for the board client.

Usage::

    BOARD_CLIENT_CONFIG_PATH=config.yaml python -m board_client
"""

from __future__ import annotations

import asyncio
import sys

from board_client.lifespan import lifespan
from board_client.summary import summarize_board


async def _main() -> None:
    async with lifespan() as state:
        store = state.store
        sync = state.sync
        service = state.service
        if sync is not None and sync.offline:
            print("Board API unreachable, showing demo data", file=sys.stderr)

        boards = service.visible_boards() if service is not None else store.boards()
        for board in boards:
            summary = summarize_board(store, board.id)
            print(f"{board.title} [{board.id}]")
            for share in summary.lists:
                print(f"  {share.title} ({share.count})")
                for card in store.cards_for_list(share.list_id):
                    due = f"  due {card.due_date.isoformat()}" if card.due_date else ""
                    print(f"    {card.order}. {card.title}{due}")


def main() -> None:
    """Sync entry point."""
    asyncio.run(_main())


if __name__ == "__main__":
    main()
