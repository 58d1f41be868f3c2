"""Pydantic models for the board REST backend's request and response bodies."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from board_client.models import Board, BoardList, Card


class ProjectPayload(BaseModel):
    """A project as returned by ``/projects``."""

    model_config = ConfigDict(extra="ignore")
    id: int
    name: str
    description: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    def to_board(self) -> Board:
        return Board(id=str(self.id), title=self.name, description=self.description)


class StagePayload(BaseModel):
    """A stage as returned by ``/projects/{id}/stages`` and ``/stages/{id}``."""

    model_config = ConfigDict(extra="ignore")
    id: int
    project_id: int
    name: str
    position: int
    created_at: str | None = None
    updated_at: str | None = None

    def to_list(self, board_id: str) -> BoardList:
        return BoardList(id=str(self.id), title=self.name, board_id=board_id, order=self.position)


class TaskPayload(BaseModel):
    """A task as returned by ``/stages/{id}/tasks`` and ``/tasks/{id}``."""

    model_config = ConfigDict(extra="ignore")
    id: int
    stage_id: int
    title: str
    description: str = ""
    position: int
    created_at: str | None = None
    updated_at: str | None = None

    def to_card(self, list_id: str) -> Card:
        return Card(
            id=str(self.id),
            title=self.title,
            list_id=list_id,
            order=self.position,
            description=self.description or None,
        )


class ProjectRequest(BaseModel):
    """Body for POST /projects and PUT /projects/{id}."""

    model_config = ConfigDict(extra="forbid")
    name: str
    description: str


class StageRequest(BaseModel):
    """Body for POST /projects/{id}/stages and PUT /stages/{id}."""

    model_config = ConfigDict(extra="forbid")
    name: str
    position: int


class TaskRequest(BaseModel):
    """Body for POST /stages/{id}/tasks and PUT /tasks/{id}."""

    model_config = ConfigDict(extra="forbid")
    title: str
    description: str
    position: int


class MoveTaskRequest(BaseModel):
    """Body for PUT /tasks/{id}/move."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    new_stage_id: int = Field(alias="newStageId")
    new_pos: int = Field(alias="newPos")
