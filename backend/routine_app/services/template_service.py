from __future__ import annotations

import uuid
from typing import Any

from routine_app.scheduler.errors import ValidationError
from routine_app.scheduler.instantiate import validate_template
from routine_app.scheduler.schema import Minutes, Template, TemplateTask
from routine_app.scheduler.timing import parse_end_time
from routine_app.services.run_store import RunStore

DEFAULT_TEMPLATE_NAME = "Evening Routine"
DEFAULT_TEMPLATE_END_TIME = "20:30"
DEFAULT_TEMPLATE_TASKS: list[dict[str, Any]] = [
    {"title": "Play Game", "offset_minutes": 10},
    {"title": "Brush Teeth", "offset_minutes": 15},
    {"title": "Desert", "offset_minutes": 30},
    {"title": "Dry Fruits"},
]


class TemplateService:
    def __init__(self, store: RunStore) -> None:
        self.store = store

    async def list_templates(self) -> list[Template]:
        return await self.store.read_templates()

    async def get_template(self, template_id: str) -> Template | None:
        return await self.store.read_template(template_id)

    async def save_template(self, payload: dict[str, Any]) -> Template:
        return await self.store.save_template(parse_template(payload))

    async def delete_template(self, template_id: str) -> None:
        await self.store.delete_template(template_id)

    async def create_default_template(self) -> Template:
        return await self.save_template(
            {
                "name": DEFAULT_TEMPLATE_NAME,
                "default_end_time": DEFAULT_TEMPLATE_END_TIME,
                "tasks": DEFAULT_TEMPLATE_TASKS,
            }
        )


def parse_template(payload: dict[str, Any]) -> Template:
    raw_tasks = payload.get("tasks", [])
    if not isinstance(raw_tasks, list):
        raise ValidationError("template.tasks must be a list")

    tasks: list[TemplateTask] = []
    for idx, raw in enumerate(raw_tasks):
        if not isinstance(raw, dict):
            raise ValidationError(f"template.tasks[{idx}] must be an object")
        tasks.append(
            TemplateTask(
                id=_read_id(raw),
                title=_read_title(raw, f"template.tasks[{idx}]"),
                offset=Minutes.from_raw(raw.get("offset_minutes")),
            )
        )

    default_end_time = normalise_time(payload.get("default_end_time"))
    template = Template(
        id=_read_id(payload),
        name=_read_title(payload, "template", key="name"),
        default_end_time=default_end_time,
        tasks=tuple(tasks),
    )
    validate_template(template)
    return template


def normalise_time(value: Any) -> str:
    parsed = parse_end_time(value)
    return f"{parsed.hour:02d}:{parsed.minute:02d}"


def _read_id(payload: dict[str, Any]) -> str:
    value = payload.get("id")
    if value is None:
        return str(uuid.uuid4())
    if not isinstance(value, str) or not value:
        raise ValidationError("id must be a non-empty string")
    return value


def _read_title(payload: dict[str, Any], context: str, *, key: str = "title") -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{context}.{key} must be a non-empty string")
    return value.strip()
