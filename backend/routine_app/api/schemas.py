from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from routine_app.scheduler.schema import RunStatus


class TemplateTaskPayload(BaseModel):
    id: str | None = None
    title: str
    offset_minutes: int | None = Field(default=None, ge=0)


class TemplateCreateRequest(BaseModel):
    id: str | None = None
    name: str
    default_end_time: str
    tasks: list[TemplateTaskPayload] = Field(default_factory=list)


class TemplateTaskResponse(BaseModel):
    id: str
    title: str
    offset_minutes: int | None
    is_timed: bool


class TemplateResponse(BaseModel):
    id: str
    name: str
    default_end_time: str
    tasks: list[TemplateTaskResponse]


class RunCreateRequest(BaseModel):
    template_id: str
    end_time: str | None = None


class RunResetRequest(BaseModel):
    end_time: str | None = None


class TaskCompletionPatchRequest(BaseModel):
    completed: bool = Field(...)


class RunTaskResponse(BaseModel):
    id: str
    template_task_id: str | None
    title: str
    target_time: datetime | None
    completed: bool
    completed_at: datetime | None
    can_toggle: bool
    minutes_until_due: int | None


class RunResponse(BaseModel):
    id: str
    template_id: str | None
    name: str
    end_time: datetime
    started_at: datetime
    status: RunStatus
    completed_at: datetime | None
    canceled_at: datetime | None
    tasks: list[RunTaskResponse]
    next_task_id: str | None
    progress_percent: int
    available_operations: list[str]
