"""HTTP clients for external services."""

from board_client.clients.board_api import BoardApiClient

__all__ = ["BoardApiClient"]
