from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from routine_app.db.models import (
    RoutineRun,
    RoutineRunTask,
    RoutineTemplate,
    RoutineTemplateTask,
)
from routine_app.scheduler.errors import PersistenceError
from routine_app.scheduler.ordering import canonical_order
from routine_app.scheduler.schema import (
    Minutes,
    Run,
    RunStatus,
    RunTask,
    Template,
    TemplateTask,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (RunStatus.planned.value, RunStatus.in_progress.value)


class RunStore(Protocol):
    async def read_templates(self) -> list[Template]: ...

    async def read_template(self, template_id: str) -> Template | None: ...

    async def save_template(self, template: Template) -> Template: ...

    async def delete_template(self, template_id: str) -> None: ...

    async def read_run(self, run_id: str) -> Run | None: ...

    async def read_active_run(self) -> Run | None: ...

    async def read_completed_runs(self, limit: int) -> list[Run]: ...

    async def write_run(self, run: Run) -> Run: ...

    async def update_run_task(
        self, task_id: str, *, completed: bool, completed_at: datetime | None
    ) -> RunTask: ...

    async def update_run_status(
        self, run_id: str, *, status: RunStatus, timestamp: datetime
    ) -> None: ...


class SqlRunStore:
    """RunStore backed by SQLAlchemy; every call runs in its own transaction."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    async def read_templates(self) -> list[Template]:
        with self._transaction("load routine templates") as session:
            stmt = (
                select(RoutineTemplate)
                .options(selectinload(RoutineTemplate.tasks))
                .order_by(RoutineTemplate.created_at.asc(), RoutineTemplate.id.asc())
            )
            return [_template_from_row(row) for row in session.scalars(stmt).all()]

    async def read_template(self, template_id: str) -> Template | None:
        with self._transaction("load routine template") as session:
            row = session.get(RoutineTemplate, template_id)
            return None if row is None else _template_from_row(row)

    async def save_template(self, template: Template) -> Template:
        with self._transaction("save routine template") as session:
            row = session.get(RoutineTemplate, template.id)
            if row is None:
                row = RoutineTemplate(id=template.id)
                session.add(row)
            row.name = template.name
            row.default_end_time = template.default_end_time

            existing = {task.id: task for task in row.tasks}
            task_rows: list[RoutineTemplateTask] = []
            for idx, task in enumerate(template.tasks):
                task_row = existing.get(task.id) or RoutineTemplateTask(
                    template_id=template.id, id=task.id
                )
                task_row.title = task.title
                task_row.target_offset_minutes = (
                    None if task.offset is None else task.offset.value
                )
                task_row.sort_key = idx
                task_rows.append(task_row)
            row.tasks = task_rows
            session.flush()
            return _template_from_row(row)

    async def delete_template(self, template_id: str) -> None:
        with self._transaction("delete routine template") as session:
            row = session.get(RoutineTemplate, template_id)
            if row is not None:
                session.delete(row)

    async def read_run(self, run_id: str) -> Run | None:
        with self._transaction("load routine run") as session:
            row = session.get(RoutineRun, run_id)
            return None if row is None else _run_from_row(row)

    async def read_active_run(self) -> Run | None:
        with self._transaction("load active routine run") as session:
            stmt = (
                select(RoutineRun)
                .options(selectinload(RoutineRun.tasks))
                .where(RoutineRun.status.in_(ACTIVE_STATUSES))
                .order_by(RoutineRun.started_at.desc())
                .limit(1)
            )
            row = session.scalars(stmt).first()
            return None if row is None else _run_from_row(row)

    async def read_completed_runs(self, limit: int) -> list[Run]:
        with self._transaction("load completed routine runs") as session:
            stmt = (
                select(RoutineRun)
                .options(selectinload(RoutineRun.tasks))
                .where(RoutineRun.status == RunStatus.completed.value)
                .order_by(RoutineRun.completed_at.desc())
                .limit(limit)
            )
            return [_run_from_row(row) for row in session.scalars(stmt).all()]

    async def write_run(self, run: Run) -> Run:
        with self._transaction("persist routine run") as session:
            now = datetime.now(UTC)
            row = session.get(RoutineRun, run.id)
            if row is None:
                row = RoutineRun(id=run.id)
                session.add(row)
            row.template_id = run.template_id
            row.name = run.name
            row.target_end_time = _to_db(run.end_time)
            row.started_at = _to_db(run.started_at)
            row.completed_at = _to_db(run.completed_at)
            row.canceled_at = _to_db(run.canceled_at)
            row.status = run.status.value
            row.updated_at = now

            existing = {task.id: task for task in row.tasks}
            task_rows: list[RoutineRunTask] = []
            for idx, task in enumerate(run.tasks):
                task_row = existing.get(task.id) or RoutineRunTask(id=task.id)
                task_row.template_task_id = task.template_task_id
                task_row.title = task.title
                task_row.target_time = _to_db(task.target_time)
                task_row.completed = task.completed
                task_row.completed_at = _to_db(task.completed_at)
                task_row.sort_key = idx
                task_row.updated_at = now
                task_rows.append(task_row)
            row.tasks = task_rows
            session.flush()

            if len(row.tasks) != len(run.tasks):
                raise PersistenceError(
                    f"Run '{run.id}' was written with {len(row.tasks)} of "
                    f"{len(run.tasks)} tasks"
                )
            return _run_from_row(row)

    async def update_run_task(
        self, task_id: str, *, completed: bool, completed_at: datetime | None
    ) -> RunTask:
        with self._transaction("update routine task") as session:
            row = session.get(RoutineRunTask, task_id)
            if row is None:
                raise PersistenceError(f"Run task '{task_id}' does not exist")
            row.completed = completed
            row.completed_at = _to_db(completed_at) if completed else None
            row.updated_at = datetime.now(UTC)
            session.flush()
            return _run_task_from_row(row)

    async def update_run_status(
        self, run_id: str, *, status: RunStatus, timestamp: datetime
    ) -> None:
        with self._transaction("update routine run status") as session:
            row = session.get(RoutineRun, run_id)
            if row is None:
                raise PersistenceError(f"Run '{run_id}' does not exist")
            row.status = status.value
            if status == RunStatus.completed:
                row.completed_at = _to_db(timestamp)
            elif status == RunStatus.abandoned:
                row.canceled_at = _to_db(timestamp)
            elif status == RunStatus.in_progress:
                row.started_at = _to_db(timestamp)
            row.updated_at = datetime.now(UTC)

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        try:
            with self.session_factory() as session, session.begin():
                yield session
        except PersistenceError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Routine store failed to %s", action)
            raise PersistenceError(f"Could not {action}") from exc


def _template_from_row(row: RoutineTemplate) -> Template:
    tasks = [
        TemplateTask(
            id=task.id,
            title=task.title,
            offset=Minutes.from_raw(task.target_offset_minutes),
        )
        for task in row.tasks
    ]
    return Template(
        id=row.id,
        name=row.name,
        default_end_time=row.default_end_time,
        tasks=tuple(canonical_order(tasks)),
    )


def _run_from_row(row: RoutineRun) -> Run:
    return Run(
        id=row.id,
        template_id=row.template_id,
        name=row.name,
        end_time=_from_db(row.target_end_time),
        started_at=_from_db(row.started_at),
        status=RunStatus(row.status),
        tasks=tuple(_run_task_from_row(task) for task in row.tasks),
        completed_at=_from_db(row.completed_at),
        canceled_at=_from_db(row.canceled_at),
    )


def _run_task_from_row(row: RoutineRunTask) -> RunTask:
    return RunTask(
        id=row.id,
        template_task_id=row.template_task_id,
        title=row.title,
        target_time=_from_db(row.target_time),
        completed=row.completed,
        completed_at=_from_db(row.completed_at),
    )


def _to_db(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.astimezone(UTC)


def _from_db(value: datetime | None) -> datetime | None:
    # SQLite hands back naive values; everything is written as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
