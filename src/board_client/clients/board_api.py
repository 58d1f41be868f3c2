"""Async HTTP client for the board REST backend."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from board_client.exceptions import ServiceError
from board_client.logging import get_logger
from board_client.schemas import (
    MoveTaskRequest,
    ProjectPayload,
    ProjectRequest,
    StagePayload,
    StageRequest,
    TaskPayload,
    TaskRequest,
)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class BoardApiClient:
    """
    Client for project (board), stage (list), and task (card) endpoints.

    Every method either returns parsed payloads or raises ServiceError:

    - NOT_FOUND (404) when the backend does not know the id
    - VALIDATION_ERROR (400) when the backend rejects the body
    - BOARD_API_UNAVAILABLE (502) on connection/timeout errors, unexpected
      statuses, or bodies that do not parse
    """

    def __init__(self, base_url: str, timeout_seconds: int) -> None:
        self._base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def list_projects(self) -> list[ProjectPayload]:
        response = await self._send("GET", "/projects", expected_status=200)
        return self._parse_list(response, ProjectPayload)

    async def get_project(self, project_id: int) -> ProjectPayload:
        response = await self._send("GET", f"/projects/{project_id}", expected_status=200)
        return self._parse(response, ProjectPayload)

    async def create_project(self, name: str, description: str) -> ProjectPayload:
        body = ProjectRequest(name=name, description=description)
        response = await self._send("POST", "/projects", expected_status=201, body=body)
        return self._parse(response, ProjectPayload)

    async def update_project(self, project_id: int, name: str, description: str) -> ProjectPayload:
        body = ProjectRequest(name=name, description=description)
        response = await self._send(
            "PUT", f"/projects/{project_id}", expected_status=200, body=body
        )
        return self._parse(response, ProjectPayload)

    async def delete_project(self, project_id: int) -> None:
        await self._send("DELETE", f"/projects/{project_id}", expected_status=204)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def list_stages(self, project_id: int) -> list[StagePayload]:
        response = await self._send("GET", f"/projects/{project_id}/stages", expected_status=200)
        return self._parse_list(response, StagePayload)

    async def create_stage(self, project_id: int, name: str, position: int) -> StagePayload:
        body = StageRequest(name=name, position=position)
        response = await self._send(
            "POST", f"/projects/{project_id}/stages", expected_status=201, body=body
        )
        return self._parse(response, StagePayload)

    async def update_stage(self, stage_id: int, name: str, position: int) -> StagePayload:
        body = StageRequest(name=name, position=position)
        response = await self._send("PUT", f"/stages/{stage_id}", expected_status=200, body=body)
        return self._parse(response, StagePayload)

    async def delete_stage(self, stage_id: int) -> None:
        await self._send("DELETE", f"/stages/{stage_id}", expected_status=204)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def list_tasks(self, stage_id: int) -> list[TaskPayload]:
        response = await self._send("GET", f"/stages/{stage_id}/tasks", expected_status=200)
        return self._parse_list(response, TaskPayload)

    async def create_task(
        self, stage_id: int, title: str, description: str, position: int
    ) -> TaskPayload:
        body = TaskRequest(title=title, description=description, position=position)
        response = await self._send(
            "POST", f"/stages/{stage_id}/tasks", expected_status=201, body=body
        )
        return self._parse(response, TaskPayload)

    async def update_task(
        self, task_id: int, title: str, description: str, position: int
    ) -> TaskPayload:
        body = TaskRequest(title=title, description=description, position=position)
        response = await self._send("PUT", f"/tasks/{task_id}", expected_status=200, body=body)
        return self._parse(response, TaskPayload)

    async def move_task(self, task_id: int, new_stage_id: int, new_pos: int) -> TaskPayload:
        body = MoveTaskRequest(new_stage_id=new_stage_id, new_pos=new_pos)
        response = await self._send(
            "PUT", f"/tasks/{task_id}/move", expected_status=200, body=body
        )
        return self._parse(response, TaskPayload)

    async def delete_task(self, task_id: int) -> None:
        await self._send("DELETE", f"/tasks/{task_id}", expected_status=204)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        expected_status: int,
        body: BaseModel | None = None,
    ) -> httpx.Response:
        """Issue one request and map transport and status failures to ServiceError."""
        logger = get_logger(__name__)
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body.model_dump(by_alias=True)

        try:
            response = await self._client.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning(
                "Board API connection failed",
                extra={"error": str(exc), "method": method, "path": path, "base_url": self._base_url},
            )
            raise ServiceError(
                error="BOARD_API_UNAVAILABLE",
                message="Cannot connect to board API",
                status_code=502,
                details={"method": method, "path": path},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Board API HTTP error",
                extra={"error": str(exc), "method": method, "path": path, "base_url": self._base_url},
            )
            raise ServiceError(
                error="BOARD_API_UNAVAILABLE",
                message="Board API request failed",
                status_code=502,
                details={"method": method, "path": path},
            ) from exc

        if response.status_code == expected_status:
            return response

        if response.status_code == 404:
            raise ServiceError(
                error="NOT_FOUND",
                message=_error_message(response, "Resource not found"),
                status_code=404,
                details={"method": method, "path": path},
            )

        if response.status_code == 400:
            raise ServiceError(
                error="VALIDATION_ERROR",
                message=_error_message(response, "Request rejected by board API"),
                status_code=400,
                details={"method": method, "path": path},
            )

        logger.warning(
            "Board API unexpected status",
            extra={
                "status_code": response.status_code,
                "method": method,
                "path": path,
                "base_url": self._base_url,
            },
        )
        raise ServiceError(
            error="BOARD_API_UNAVAILABLE",
            message="Board API returned unexpected status",
            status_code=502,
            details={"status_code": response.status_code, "method": method, "path": path},
        )

    @staticmethod
    def _parse(response: httpx.Response, model: type[PayloadT]) -> PayloadT:
        try:
            return model.model_validate(response.json())
        except ValueError as exc:
            raise ServiceError(
                error="BOARD_API_UNAVAILABLE",
                message="Board API returned an unreadable body",
                status_code=502,
                details={"path": str(response.request.url.path)},
            ) from exc

    @staticmethod
    def _parse_list(response: httpx.Response, model: type[PayloadT]) -> list[PayloadT]:
        try:
            # The backend encodes an empty collection as null
            items = response.json() or []
            if not isinstance(items, list):
                msg = "expected a JSON array"
                raise ValueError(msg)
            return [model.model_validate(item) for item in items]
        except ValueError as exc:
            raise ServiceError(
                error="BOARD_API_UNAVAILABLE",
                message="Board API returned an unreadable body",
                status_code=502,
                details={"path": str(response.request.url.path)},
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _error_message(response: httpx.Response, fallback: str) -> str:
    """Pull a message out of an error body, which may be JSON or plain text."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or fallback
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or fallback)
    return fallback
