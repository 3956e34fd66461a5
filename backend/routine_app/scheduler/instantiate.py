from __future__ import annotations

import uuid
from datetime import datetime
from zoneinfo import ZoneInfo

from routine_app.scheduler.errors import ValidationError
from routine_app.scheduler.ordering import canonical_order
from routine_app.scheduler.schema import Run, RunStatus, RunTask, Template, TemplateTask
from routine_app.scheduler.timing import end_instant_for, project_target_time


def build_run(
    template: Template,
    end_time: str,
    *,
    now: datetime,
    tz: ZoneInfo,
    run_id: str | None = None,
    status: RunStatus = RunStatus.in_progress,
) -> Run:
    validate_template(template)
    end_instant = end_instant_for(end_time, now=now, tz=tz)

    tasks = tuple(
        build_run_task(task, end_instant) for task in canonical_order(template.tasks)
    )
    return Run(
        id=run_id or _new_id(),
        template_id=template.id,
        name=template.name,
        end_time=end_instant,
        started_at=now,
        status=status,
        tasks=tasks,
    )


def build_run_task(task: TemplateTask, end_instant: datetime) -> RunTask:
    return RunTask(
        id=_new_id(),
        template_task_id=task.id,
        title=task.title,
        target_time=project_target_time(end_instant, task.offset),
        completed=False,
        completed_at=None,
    )


def validate_template(template: Template) -> None:
    if not isinstance(template.name, str) or not template.name.strip():
        raise ValidationError("template name must be a non-empty string")

    seen: set[str] = set()
    for idx, task in enumerate(template.tasks):
        if not isinstance(task.title, str) or not task.title.strip():
            raise ValidationError(f"template.tasks[{idx}].title must be a non-empty string")
        if task.id in seen:
            raise ValidationError(f"template task id '{task.id}' is duplicated")
        seen.add(task.id)


def _new_id() -> str:
    return str(uuid.uuid4())
