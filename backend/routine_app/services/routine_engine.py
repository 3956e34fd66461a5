from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from routine_app.scheduler import lifecycle
from routine_app.scheduler.errors import InvalidTransition, RoutineError, ValidationError
from routine_app.scheduler.gate import check_completion
from routine_app.scheduler.instantiate import build_run
from routine_app.scheduler.resync import resync_run
from routine_app.scheduler.schema import Run, Template
from routine_app.scheduler.timing import format_end_time
from routine_app.services.run_store import RunStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RoutineState:
    active_run: Run | None
    completed_runs: list[Run]


class RunNotFound(LookupError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"Run '{run_id}' not found")
        self.run_id = run_id


class RoutineEngine:
    """Async entry point for starting, toggling, resetting and ending runs.

    The engine re-reads runs from the store before every mutation and
    re-validates each request, so callers never need to trust a cached copy.
    """

    def __init__(
        self,
        store: RunStore,
        *,
        tz: ZoneInfo,
        clock: Callable[[], datetime] = utc_now,
        enforce_single_active_run: bool = True,
    ) -> None:
        self.store = store
        self.tz = tz
        self.clock = clock
        self.enforce_single_active_run = enforce_single_active_run

    async def load_state(self, *, history_limit: int) -> RoutineState:
        active_run = await self.store.read_active_run()
        completed_runs = await self.store.read_completed_runs(history_limit)
        return RoutineState(active_run=active_run, completed_runs=completed_runs)

    async def get_run(self, run_id: str) -> Run:
        run = await self.store.read_run(run_id)
        if run is None:
            raise RunNotFound(run_id)
        return run

    async def start_run(
        self, template: Template | None, end_time: str | None = None
    ) -> Run | None:
        if template is None:
            return None

        if self.enforce_single_active_run:
            active = await self.store.read_active_run()
            if active is not None:
                raise InvalidTransition(
                    f"Run '{active.id}' is still {active.status.value}; "
                    "finish or abandon it first"
                )

        run = build_run(
            template,
            end_time or template.default_end_time,
            now=self.clock(),
            tz=self.tz,
        )
        persisted = await self.store.write_run(run)
        logger.info(
            "Started run %s from template %s with %d tasks",
            persisted.id,
            template.id,
            len(persisted.tasks),
        )
        return persisted

    async def set_task_completed(self, run_id: str, task_id: str, completed: bool) -> Run:
        run = await self.get_run(run_id)
        try:
            decision = check_completion(run, task_id, completed)
        except RoutineError as exc:
            logger.info("Rejected toggle of task %s on run %s: %s", task_id, run_id, exc)
            raise
        if decision.noop:
            return run

        await self.store.update_run_task(
            task_id,
            completed=completed,
            completed_at=self.clock() if completed else None,
        )
        return await self.get_run(run_id)

    async def begin_run(self, run_id: str) -> Run:
        run = await self.get_run(run_id)
        now = self.clock()
        started = lifecycle.start(run, now=now)
        await self.store.update_run_status(
            run_id, status=started.status, timestamp=now
        )
        return await self.get_run(run_id)

    async def complete_run(self, run_id: str) -> Run:
        run = await self.get_run(run_id)
        now = self.clock()
        completed = lifecycle.complete(run, now=now)
        await self.store.update_run_status(
            run_id, status=completed.status, timestamp=now
        )
        logger.info(
            "Completed run %s (%d%% of tasks done)",
            run_id,
            lifecycle.progress_percent(run),
        )
        return await self.get_run(run_id)

    async def abandon_run(self, run_id: str) -> Run:
        run = await self.get_run(run_id)
        now = self.clock()
        abandoned = lifecycle.abandon(run, now=now)
        await self.store.update_run_status(
            run_id, status=abandoned.status, timestamp=now
        )
        logger.info("Abandoned run %s", run_id)
        return await self.get_run(run_id)

    async def reset_run(self, run_id: str, end_time: str | None = None) -> Run:
        run = await self.get_run(run_id)
        lifecycle.target_status(run, lifecycle.RunOperation.reset)

        template = (
            await self.store.read_template(run.template_id)
            if run.template_id is not None
            else None
        )
        if template is None:
            raise ValidationError(
                f"Template for run '{run_id}' no longer exists; cannot reset"
            )

        resynced = resync_run(
            run,
            template,
            end_time or format_end_time(run.end_time, self.tz),
            now=self.clock(),
            tz=self.tz,
        )
        persisted = await self.store.write_run(resynced)
        logger.info(
            "Reset run %s against template %s (%d tasks)",
            run_id,
            template.id,
            len(persisted.tasks),
        )
        return persisted

