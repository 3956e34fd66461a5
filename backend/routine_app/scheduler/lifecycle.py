from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime
from enum import Enum

from routine_app.scheduler.errors import InvalidTransition
from routine_app.scheduler.schema import Run, RunStatus


class RunOperation(str, Enum):
    start = "start"
    complete = "complete"
    abandon = "abandon"
    reset = "reset"


ALLOWED_TRANSITIONS: dict[RunOperation, tuple[frozenset[RunStatus], RunStatus]] = {
    RunOperation.start: (frozenset({RunStatus.planned}), RunStatus.in_progress),
    RunOperation.complete: (frozenset({RunStatus.in_progress}), RunStatus.completed),
    RunOperation.abandon: (
        frozenset({RunStatus.planned, RunStatus.in_progress}),
        RunStatus.abandoned,
    ),
    RunOperation.reset: (
        frozenset({RunStatus.planned, RunStatus.in_progress}),
        RunStatus.in_progress,
    ),
}


def target_status(run: Run, operation: RunOperation) -> RunStatus:
    allowed_from, target = ALLOWED_TRANSITIONS[operation]
    if run.status not in allowed_from:
        raise InvalidTransition(
            f"Cannot {operation.value} run '{run.id}' while it is {run.status.value}"
        )
    return target


def can_transition(run: Run, operation: RunOperation) -> bool:
    allowed_from, _ = ALLOWED_TRANSITIONS[operation]
    return run.status in allowed_from


def start(run: Run, *, now: datetime) -> Run:
    status = target_status(run, RunOperation.start)
    return replace(run, status=status, started_at=now)


def complete(run: Run, *, now: datetime) -> Run:
    # Unfinished tasks do not block completion; see all_tasks_completed.
    status = target_status(run, RunOperation.complete)
    return replace(run, status=status, completed_at=now)


def abandon(run: Run, *, now: datetime) -> Run:
    status = target_status(run, RunOperation.abandon)
    return replace(run, status=status, canceled_at=now)


def all_tasks_completed(run: Run) -> bool:
    return all(task.completed for task in run.tasks)


def progress_percent(run: Run) -> int:
    if not run.tasks:
        return 0
    done = sum(1 for task in run.tasks if task.completed)
    return math.floor(done * 100 / len(run.tasks) + 0.5)
