from __future__ import annotations

from fastapi import Depends

from routine_app.config import Settings, load_settings
from routine_app.db.session import get_session_factory
from routine_app.services.routine_engine import RoutineEngine
from routine_app.services.run_store import SqlRunStore
from routine_app.services.template_service import TemplateService


def get_settings() -> Settings:
    return load_settings()


def get_run_store() -> SqlRunStore:
    return SqlRunStore(get_session_factory())


def get_routine_engine(
    store: SqlRunStore = Depends(get_run_store),
    settings: Settings = Depends(get_settings),
) -> RoutineEngine:
    return RoutineEngine(
        store,
        tz=settings.timezone,
        enforce_single_active_run=settings.enforce_single_active_run,
    )


def get_template_service(
    store: SqlRunStore = Depends(get_run_store),
) -> TemplateService:
    return TemplateService(store)
