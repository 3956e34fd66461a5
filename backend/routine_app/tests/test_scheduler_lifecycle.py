from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from routine_helpers import BERLIN, FIXED_NOW, make_template
from routine_app.scheduler import lifecycle
from routine_app.scheduler.errors import InvalidTransition
from routine_app.scheduler.instantiate import build_run
from routine_app.scheduler.lifecycle import RunOperation
from routine_app.scheduler.schema import Run, RunStatus


def _run(status: RunStatus = RunStatus.in_progress) -> Run:
    template = make_template([("a", 15), ("b", 30), ("c", None)])
    return build_run(template, "20:30", now=FIXED_NOW, tz=BERLIN, status=status)


def test_complete_stamps_completion_without_requiring_finished_tasks() -> None:
    run = _run()
    later = FIXED_NOW + timedelta(minutes=40)

    completed = lifecycle.complete(run, now=later)

    assert completed.status == RunStatus.completed
    assert completed.completed_at == later
    assert not lifecycle.all_tasks_completed(completed)
    assert completed.tasks == run.tasks


def test_abandon_stamps_cancellation_and_leaves_tasks_alone() -> None:
    run = _run()
    run = replace(run, tasks=(replace(run.tasks[0], completed=True),) + run.tasks[1:])

    abandoned = lifecycle.abandon(run, now=FIXED_NOW)

    assert abandoned.status == RunStatus.abandoned
    assert abandoned.canceled_at == FIXED_NOW
    assert abandoned.tasks == run.tasks


def test_planned_run_can_start_or_be_abandoned_but_not_completed() -> None:
    planned = _run(RunStatus.planned)
    later = FIXED_NOW + timedelta(minutes=1)

    started = lifecycle.start(planned, now=later)
    assert started.status == RunStatus.in_progress
    assert started.started_at == later

    assert lifecycle.abandon(planned, now=later).status == RunStatus.abandoned
    with pytest.raises(InvalidTransition, match="Cannot complete"):
        lifecycle.complete(planned, now=later)


def test_in_progress_run_cannot_start_again() -> None:
    with pytest.raises(InvalidTransition, match="Cannot start"):
        lifecycle.start(_run(), now=FIXED_NOW)


@pytest.mark.parametrize("status", [RunStatus.completed, RunStatus.abandoned])
@pytest.mark.parametrize("operation", list(RunOperation))
def test_terminal_states_reject_every_operation(
    status: RunStatus, operation: RunOperation
) -> None:
    run = _run(status)

    assert not lifecycle.can_transition(run, operation)
    with pytest.raises(InvalidTransition, match=status.value):
        lifecycle.target_status(run, operation)


def test_progress_percent_rounds_half_up() -> None:
    run = _run()
    assert lifecycle.progress_percent(run) == 0

    one_done = replace(run, tasks=(replace(run.tasks[0], completed=True),) + run.tasks[1:])
    assert lifecycle.progress_percent(one_done) == 33

    empty = replace(run, tasks=())
    assert lifecycle.progress_percent(empty) == 0
    assert lifecycle.all_tasks_completed(empty)
