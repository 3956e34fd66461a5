from __future__ import annotations

import math
import re
from datetime import datetime, time, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from routine_app.scheduler.errors import ValidationError
from routine_app.scheduler.schema import Offset, RunTask

_END_TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_end_time(value: Any) -> time:
    if not isinstance(value, str):
        raise ValidationError("end time must be a wall-clock string (HH:MM)")
    match = _END_TIME_PATTERN.fullmatch(value.strip())
    if match is None:
        raise ValidationError(f"end time '{value}' must be a wall-clock string (HH:MM)")
    return time(hour=int(match.group(1)), minute=int(match.group(2)))


def format_end_time(instant: datetime, tz: ZoneInfo) -> str:
    local = instant.astimezone(tz)
    return f"{local.hour:02d}:{local.minute:02d}"


def end_instant_for(end_time: str, *, now: datetime, tz: ZoneInfo) -> datetime:
    # Always today's date in tz, even when the wall-clock time has passed.
    wall_clock = parse_end_time(end_time)
    today = now.astimezone(tz).date()
    return datetime.combine(today, wall_clock, tzinfo=tz)


def project_target_time(end_instant: datetime, offset: Offset) -> datetime | None:
    if offset is None:
        return None
    return end_instant - timedelta(minutes=offset.value)


def minutes_until_due(task: RunTask, now: datetime) -> int | None:
    """Whole minutes until ``task`` is due, rounded up; negative once overdue.

    ``None`` for flexible or already completed tasks.
    """
    if task.target_time is None or task.completed:
        return None
    return math.ceil((task.target_time - now).total_seconds() / 60)
