from __future__ import annotations

from dataclasses import dataclass

from routine_app.scheduler.errors import ERRORS_BY_KIND, ErrorKind
from routine_app.scheduler.schema import Run, RunTask


@dataclass(frozen=True)
class CompletionDecision:
    allowed: bool
    kind: ErrorKind | None = None
    detail: str = ""
    noop: bool = False


def evaluate_completion(run: Run, task_id: str, desired: bool) -> CompletionDecision:
    """Decide whether ``task_id`` may be set to ``desired`` without touching state.

    Predecessors are the tasks before ``task_id`` in ``run.tasks``, which is the
    canonical sequence written by instantiation and reset.
    """
    if run.is_terminal:
        return CompletionDecision(
            allowed=False,
            kind=ErrorKind.invalid_transition,
            detail=f"Run '{run.id}' is {run.status.value}; tasks can no longer change",
        )

    index = run.task_index(task_id)
    if index is None:
        return CompletionDecision(
            allowed=False,
            kind=ErrorKind.validation,
            detail=f"Task '{task_id}' not found in run '{run.id}'",
        )

    task = run.tasks[index]
    if task.completed == desired:
        return CompletionDecision(allowed=True, noop=True)
    if not desired or not task.is_timed:
        return CompletionDecision(allowed=True)

    for candidate in run.tasks[:index]:
        if candidate.is_timed and not candidate.completed:
            return CompletionDecision(
                allowed=False,
                kind=ErrorKind.ordering_violation,
                detail=(
                    f"Finish '{candidate.title}' before completing '{task.title}'"
                ),
            )
    return CompletionDecision(allowed=True)


def can_complete(run: Run, task_id: str, desired: bool) -> bool:
    return evaluate_completion(run, task_id, desired).allowed


def check_completion(run: Run, task_id: str, desired: bool) -> CompletionDecision:
    decision = evaluate_completion(run, task_id, desired)
    if not decision.allowed:
        assert decision.kind is not None
        raise ERRORS_BY_KIND[decision.kind](decision.detail)
    return decision


def next_required_task(run: Run) -> RunTask | None:
    for task in run.tasks:
        if task.is_timed and not task.completed:
            return task
    return None
