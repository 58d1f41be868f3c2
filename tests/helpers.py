"""Shared test helpers for building entities and mocking the board API."""

from __future__ import annotations

from typing import Any

import httpx

from board_client.models import Card

MOCK_BASE_URL = "http://mock-board:8080/api"


def make_cards(list_id: str, *ids: str) -> list[Card]:
    """Cards in ``list_id`` with orders following argument position."""
    return [
        Card(id=card_id, title=card_id.upper(), list_id=list_id, order=i)
        for i, card_id in enumerate(ids)
    ]


def mock_response(
    status_code: int,
    json_body: Any = None,
    method: str = "GET",
    path: str = "/projects",
    text: str | None = None,
) -> httpx.Response:
    """Create an httpx.Response bound to a request, as the client would see it."""
    request = httpx.Request(method, f"{MOCK_BASE_URL}{path}")
    if text is not None:
        return httpx.Response(status_code=status_code, text=text, request=request)
    if json_body is None:
        return httpx.Response(status_code=status_code, request=request)
    return httpx.Response(status_code=status_code, json=json_body, request=request)
