from __future__ import annotations

from datetime import datetime, timedelta

from routine_helpers import BERLIN, make_template
from routine_app.scheduler.ordering import canonical_order
from routine_app.scheduler.schema import RunTask


def test_canonical_order_puts_largest_offset_first_and_flexible_last() -> None:
    template = make_template(
        [("flex_1", None), ("a", 15), ("flex_2", None), ("b", 30), ("zero", 0)]
    )

    ordered = canonical_order(template.tasks)

    assert [task.id for task in ordered] == ["b", "a", "zero", "flex_1", "flex_2"]


def test_canonical_order_is_stable_for_equal_offsets() -> None:
    template = make_template([("x", 10), ("y", 10), ("z", 10)])

    assert [task.id for task in canonical_order(template.tasks)] == ["x", "y", "z"]


def test_canonical_order_is_idempotent() -> None:
    template = make_template([("c", None), ("a", 15), ("b", 30), ("d", None)])

    once = canonical_order(template.tasks)
    twice = canonical_order(once)

    assert once == twice
    assert canonical_order(list(template.tasks)) != list(template.tasks)


def test_canonical_order_sorts_run_tasks_by_target_time() -> None:
    end = datetime(2026, 3, 10, 20, 30, tzinfo=BERLIN)
    tasks = [
        RunTask(id="flex", template_task_id="flex", title="Flex"),
        RunTask(
            id="late",
            template_task_id="late",
            title="Late",
            target_time=end - timedelta(minutes=5),
        ),
        RunTask(
            id="early",
            template_task_id="early",
            title="Early",
            target_time=end - timedelta(minutes=45),
        ),
    ]

    ordered = canonical_order(tasks)

    assert [task.id for task in ordered] == ["early", "late", "flex"]
    assert all(task.is_timed for task in ordered[:2])


def test_canonical_order_of_empty_input_is_empty() -> None:
    assert canonical_order([]) == []
