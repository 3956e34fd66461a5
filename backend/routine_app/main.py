from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from routine_app.api.runs import router as runs_router
from routine_app.api.templates import router as templates_router
from routine_app.config import load_settings
from routine_app.db.base import Base
from routine_app.db.session import get_engine
from routine_app.scheduler.errors import RoutineError
from routine_app.services.errors import ApiError
from routine_app.services.routine_engine import RunNotFound


def _error_response(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


def create_app() -> FastAPI:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="Routine Runner API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ApiError)
    async def handle_api_error(_: Request, exc: ApiError) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(RoutineError)
    async def handle_routine_error(_: Request, exc: RoutineError) -> JSONResponse:
        return _error_response(ApiError.from_routine_error(exc))

    @app.exception_handler(RunNotFound)
    async def handle_run_not_found(_: Request, exc: RunNotFound) -> JSONResponse:
        return _error_response(
            ApiError(status_code=404, code="RUN_NOT_FOUND", message=str(exc))
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        _: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "REQUEST_VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "details": exc.errors(),
                }
            },
        )

    @app.on_event("startup")
    def init_schema() -> None:
        current = load_settings()
        should_create = current.auto_create_schema or (
            current.auto_create_schema is None
            and current.database_url.startswith("sqlite")
        )
        if should_create:
            Base.metadata.create_all(bind=get_engine())

    @app.get("/health", tags=["system"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(templates_router)
    app.include_router(runs_router)
    return app


app = create_app()
