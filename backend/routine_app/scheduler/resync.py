from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from zoneinfo import ZoneInfo

from routine_app.scheduler.instantiate import build_run_task, validate_template
from routine_app.scheduler.lifecycle import RunOperation, target_status
from routine_app.scheduler.ordering import canonical_order
from routine_app.scheduler.schema import Run, RunTask, Template
from routine_app.scheduler.timing import end_instant_for, project_target_time


def resync_run(
    run: Run,
    template: Template,
    end_time: str,
    *,
    now: datetime,
    tz: ZoneInfo,
) -> Run:
    """Rebuild ``run`` against the current ``template`` and a new end time.

    Run tasks are matched to template tasks by ``template_task_id``. Matched
    tasks keep their id and are reset to incomplete with a recomputed target;
    template tasks without a match get a fresh run task. Run tasks whose
    template task no longer exists are carried over untouched after the
    template-defined tasks. Nothing is ever pruned.
    """
    status = target_status(run, RunOperation.reset)
    validate_template(template)
    end_instant = end_instant_for(end_time, now=now, tz=tz)

    existing_by_template_task_id: dict[str, RunTask] = {}
    for task in run.tasks:
        if task.template_task_id is not None:
            existing_by_template_task_id.setdefault(task.template_task_id, task)

    synced: list[RunTask] = []
    for template_task in canonical_order(template.tasks):
        existing = existing_by_template_task_id.get(template_task.id)
        if existing is None:
            synced.append(build_run_task(template_task, end_instant))
            continue
        synced.append(
            replace(
                existing,
                title=template_task.title,
                target_time=project_target_time(end_instant, template_task.offset),
                completed=False,
                completed_at=None,
            )
        )

    synced_ids = {task.id for task in synced}
    leftovers = [task for task in run.tasks if task.id not in synced_ids]

    return replace(
        run,
        end_time=end_instant,
        started_at=now,
        status=status,
        completed_at=None,
        tasks=tuple(synced + leftovers),
    )
