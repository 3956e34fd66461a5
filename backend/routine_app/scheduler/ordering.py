from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TypeVar

from routine_app.scheduler.schema import RunTask, TemplateTask

TaskT = TypeVar("TaskT", TemplateTask, RunTask)


def canonical_order(tasks: Iterable[TaskT]) -> list[TaskT]:
    """Timed tasks first, earliest target first; flexible tasks trail in input order.

    For template tasks "earliest" means the largest offset before the end time.
    ``sorted`` is stable, so ties and flexible tasks keep their relative order.
    """
    return sorted(tasks, key=_order_key)


def _order_key(task: TemplateTask | RunTask) -> tuple[int, float]:
    if isinstance(task, TemplateTask):
        if task.offset is None:
            return (1, 0.0)
        return (0, float(-task.offset.value))

    target: datetime | None = task.target_time
    if target is None:
        return (1, 0.0)
    return (0, target.timestamp())
