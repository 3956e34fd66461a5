from __future__ import annotations

from dataclasses import replace
from datetime import datetime, time, timedelta

import pytest

from routine_helpers import BERLIN, FIXED_NOW, make_template
from routine_app.scheduler.errors import ValidationError
from routine_app.scheduler.instantiate import build_run
from routine_app.scheduler.schema import Minutes
from routine_app.scheduler.timing import (
    end_instant_for,
    format_end_time,
    minutes_until_due,
    parse_end_time,
    project_target_time,
)


def test_parse_end_time_accepts_wall_clock_strings() -> None:
    assert parse_end_time("20:30") == time(20, 30)
    assert parse_end_time("7:05") == time(7, 5)
    assert parse_end_time("00:00") == time(0, 0)


@pytest.mark.parametrize("value", ["24:00", "20:60", "8pm", "20:3", "", None, 2030])
def test_parse_end_time_rejects_malformed_values(value: object) -> None:
    with pytest.raises(ValidationError, match="HH:MM"):
        parse_end_time(value)


def test_end_instant_uses_today_in_the_given_zone() -> None:
    end = end_instant_for("20:30", now=FIXED_NOW, tz=BERLIN)

    assert end == datetime(2026, 3, 10, 20, 30, tzinfo=BERLIN)
    assert format_end_time(end, BERLIN) == "20:30"


def test_end_instant_does_not_roll_over_when_time_already_passed() -> None:
    # Known limitation: a past end time still schedules against today.
    late_evening = datetime(2026, 3, 10, 22, 15, tzinfo=BERLIN)

    end = end_instant_for("20:30", now=late_evening, tz=BERLIN)

    assert end == datetime(2026, 3, 10, 20, 30, tzinfo=BERLIN)
    assert end < late_evening


def test_project_target_time_subtracts_offset_minutes() -> None:
    end = datetime(2026, 3, 10, 20, 30, tzinfo=BERLIN)

    assert project_target_time(end, Minutes(30)) == datetime(
        2026, 3, 10, 20, 0, tzinfo=BERLIN
    )
    assert project_target_time(end, Minutes(0)) == end
    assert project_target_time(end, None) is None


def test_minutes_rejects_negative_and_non_int_values() -> None:
    assert Minutes.from_raw(None) is None
    assert Minutes.from_raw(15) == Minutes(15)

    with pytest.raises(ValidationError, match="must not be negative"):
        Minutes(-5)
    with pytest.raises(ValidationError, match="must be an int"):
        Minutes.from_raw("15")
    with pytest.raises(ValidationError, match="must be an int"):
        Minutes.from_raw(True)


def test_minutes_until_due_counts_down_then_goes_negative() -> None:
    template = make_template([("a", 15), ("c", None)])
    run = build_run(template, "20:30", now=FIXED_NOW, tz=BERLIN)
    timed, flexible = run.tasks
    due = timed.target_time

    assert minutes_until_due(timed, FIXED_NOW) == 135
    assert minutes_until_due(timed, due - timedelta(seconds=30)) == 1
    assert minutes_until_due(timed, due) == 0
    assert minutes_until_due(timed, due + timedelta(seconds=30)) == 0
    assert minutes_until_due(timed, due + timedelta(minutes=2)) == -2
    assert minutes_until_due(flexible, FIXED_NOW) is None
    assert minutes_until_due(replace(timed, completed=True), FIXED_NOW) is None
