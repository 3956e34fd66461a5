from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from routine_app.api.deps import get_routine_engine, get_settings
from routine_app.api.schemas import (
    RunCreateRequest,
    RunResetRequest,
    RunResponse,
    RunTaskResponse,
    TaskCompletionPatchRequest,
)
from routine_app.config import Settings
from routine_app.scheduler.gate import can_complete, next_required_task
from routine_app.scheduler.lifecycle import RunOperation, can_transition, progress_percent
from routine_app.scheduler.schema import Run
from routine_app.scheduler.timing import minutes_until_due
from routine_app.services.errors import ApiError
from routine_app.services.routine_engine import RoutineEngine

router = APIRouter(tags=["runs"])


@router.post("/runs", response_model=RunResponse, status_code=201)
async def start_run(
    payload: RunCreateRequest,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    template = await engine.store.read_template(payload.template_id)
    run = await engine.start_run(template, payload.end_time)
    if run is None:
        raise ApiError(
            status_code=404,
            code="TEMPLATE_NOT_FOUND",
            message=f"Template '{payload.template_id}' not found",
        )
    return serialize_run(run, now=engine.clock())


@router.get("/runs/active", response_model=RunResponse | None)
async def get_active_run(
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse | None:
    run = await engine.store.read_active_run()
    return None if run is None else serialize_run(run, now=engine.clock())


@router.get("/runs/history", response_model=list[RunResponse])
async def list_completed_runs(
    limit: int | None = Query(None, ge=1, le=200),
    engine: RoutineEngine = Depends(get_routine_engine),
    settings: Settings = Depends(get_settings),
) -> list[RunResponse]:
    state = await engine.load_state(history_limit=limit or settings.history_limit)
    now = engine.clock()
    return [serialize_run(run, now=now) for run in state.completed_runs]


@router.get("/runs/{run_id}", response_model=RunResponse)
async def get_run(
    run_id: str,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    return serialize_run(await engine.get_run(run_id), now=engine.clock())


@router.patch("/runs/{run_id}/tasks/{task_id}", response_model=RunResponse)
async def set_task_completed(
    run_id: str,
    task_id: str,
    payload: TaskCompletionPatchRequest,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    run = await engine.set_task_completed(run_id, task_id, payload.completed)
    return serialize_run(run, now=engine.clock())


@router.post("/runs/{run_id}/start", response_model=RunResponse)
async def begin_run(
    run_id: str,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    return serialize_run(await engine.begin_run(run_id), now=engine.clock())


@router.post("/runs/{run_id}/complete", response_model=RunResponse)
async def complete_run(
    run_id: str,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    return serialize_run(await engine.complete_run(run_id), now=engine.clock())


@router.post("/runs/{run_id}/abandon", response_model=RunResponse)
async def abandon_run(
    run_id: str,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    return serialize_run(await engine.abandon_run(run_id), now=engine.clock())


@router.post("/runs/{run_id}/reset", response_model=RunResponse)
async def reset_run(
    run_id: str,
    payload: RunResetRequest | None = None,
    engine: RoutineEngine = Depends(get_routine_engine),
) -> RunResponse:
    end_time = payload.end_time if payload is not None else None
    run = await engine.reset_run(run_id, end_time)
    return serialize_run(run, now=engine.clock())


def serialize_run(run: Run, *, now: datetime) -> RunResponse:
    next_task = next_required_task(run)
    return RunResponse(
        id=run.id,
        template_id=run.template_id,
        name=run.name,
        end_time=run.end_time,
        started_at=run.started_at,
        status=run.status,
        completed_at=run.completed_at,
        canceled_at=run.canceled_at,
        tasks=[
            RunTaskResponse(
                id=task.id,
                template_task_id=task.template_task_id,
                title=task.title,
                target_time=task.target_time,
                completed=task.completed,
                completed_at=task.completed_at,
                can_toggle=can_complete(run, task.id, not task.completed),
                minutes_until_due=minutes_until_due(task, now),
            )
            for task in run.tasks
        ],
        next_task_id=None if next_task is None else next_task.id,
        progress_percent=progress_percent(run),
        available_operations=[
            operation.value
            for operation in RunOperation
            if can_transition(run, operation)
        ],
    )
