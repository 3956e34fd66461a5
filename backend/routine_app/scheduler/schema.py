from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from routine_app.scheduler.errors import ValidationError


@dataclass(frozen=True)
class Minutes:
    """Non-negative whole minutes before a run's end time."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValidationError("offset minutes must be an int")
        if self.value < 0:
            raise ValidationError("offset minutes must not be negative")

    @classmethod
    def from_raw(cls, raw: Any) -> Minutes | None:
        if raw is None:
            return None
        return cls(raw)


Offset = Minutes | None


class RunStatus(str, Enum):
    planned = "planned"
    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.completed, RunStatus.abandoned)


@dataclass(frozen=True)
class TemplateTask:
    id: str
    title: str
    offset: Offset = None

    @property
    def is_timed(self) -> bool:
        return self.offset is not None


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    default_end_time: str
    tasks: tuple[TemplateTask, ...] = ()


@dataclass(frozen=True)
class RunTask:
    id: str
    template_task_id: str | None
    title: str
    target_time: datetime | None = None
    completed: bool = False
    completed_at: datetime | None = None

    @property
    def is_timed(self) -> bool:
        return self.target_time is not None


@dataclass(frozen=True)
class Run:
    id: str
    template_id: str | None
    name: str
    end_time: datetime
    started_at: datetime
    status: RunStatus
    tasks: tuple[RunTask, ...] = field(default_factory=tuple)
    completed_at: datetime | None = None
    canceled_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def task_index(self, task_id: str) -> int | None:
        for idx, task in enumerate(self.tasks):
            if task.id == task_id:
                return idx
        return None

    def task_by_id(self, task_id: str) -> RunTask | None:
        idx = self.task_index(task_id)
        return None if idx is None else self.tasks[idx]
