from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Settings:
    database_url: str
    timezone: ZoneInfo
    history_limit: int
    cors_origins: list[str]
    auto_create_schema: bool | None
    log_level: str
    enforce_single_active_run: bool


def load_settings() -> Settings:
    cors_origins_raw = os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    )
    auto_create_raw = os.getenv("AUTO_CREATE_SCHEMA")

    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./routine_runner.db"),
        timezone=ZoneInfo(os.getenv("ROUTINE_TIMEZONE", "Europe/Berlin")),
        history_limit=int(os.getenv("ROUTINE_HISTORY_LIMIT", "20")),
        cors_origins=[
            origin.strip() for origin in cors_origins_raw.split(",") if origin.strip()
        ],
        auto_create_schema=(
            None if auto_create_raw is None else auto_create_raw == "1"
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        enforce_single_active_run=(
            os.getenv("ENFORCE_SINGLE_ACTIVE_RUN", "true").lower() == "true"
        ),
    )
