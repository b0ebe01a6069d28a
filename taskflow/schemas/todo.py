"""Pydantic schemas for todo endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field, field_validator

from taskflow.schemas.base import CamelModel

Priority = Literal["low", "medium", "high"]
Status = Literal["todo", "in-progress", "done"]


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TodoCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=200)
    deadline: datetime | None = None
    priority: Priority
    status: Status = "todo"

    @field_validator("deadline", mode="before")
    @classmethod
    def blank_deadline_is_none(cls, value):
        return _blank_to_none(value)


class TodoUpdate(CamelModel):
    """Partial update; only fields present in the request body are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, min_length=1, max_length=200)
    deadline: datetime | None = None
    priority: Priority | None = None
    status: Status | None = None

    @field_validator("deadline", mode="before")
    @classmethod
    def blank_deadline_is_none(cls, value):
        return _blank_to_none(value)


class TodoResponse(CamelModel):
    id: int
    title: str
    description: str
    priority: str
    status: str
    deadline: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TodoEnvelope(CamelModel):
    message: str
    todo: TodoResponse


class TodoListResponse(CamelModel):
    success: bool = True
    count: int
    todos: list[TodoResponse]
