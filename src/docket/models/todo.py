"""Pydantic models for to-do API payloads."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from docket.models.enums import ResolvedBy, TodoAction, TodoState


class TodoResponse(BaseModel):
    model_config = {"from_attributes": True}

    todo_id: str
    user_id: str
    author_id: str
    project_id: str
    target_type: str
    target_id: str | None = None
    commit_id: str | None = None
    note_id: str | None = None
    action: TodoAction
    state: TodoState
    resolved_by_action: ResolvedBy | None = None
    created_at: datetime
    updated_at: datetime


class TodoCounts(BaseModel):
    pending: int
    done: int


class BulkTodoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    todo_ids: list[str] = Field(..., min_length=1)
    operation: Literal["resolve", "restore"] = "resolve"


class BulkTodoResponse(BaseModel):
    operation: Literal["resolve", "restore"]
    updated_ids: list[str]
    counts: TodoCounts
