# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
On-Call Schedule Service
========================
Teams register on-call schedules (members, weekdays, daily window) and ask
who is on call at a given instant.

Two schedule stores exist, chosen once at startup by ONCALL_USE_DATABASE:
    memory    volatile, always answers with a schedule's first member
    database  durable, answers with the persisted rotation pointer

Port: 1373
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oncall_schedule import __version__
from oncall_schedule.controllers import schedule_controller, system_controller
from oncall_schedule.core.config import settings
from oncall_schedule.core.dependencies import build_store, wire
from oncall_schedule.core.errors import StoreError
from oncall_schedule.core.logging import get_logger
from oncall_schedule.middleware import (
    MetricsMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
)
from oncall_schedule.repositories.base import ScheduleStore
from oncall_schedule.repositories.database_repository import DatabaseScheduleStore

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    store = application.state.store
    if isinstance(store, DatabaseScheduleStore):
        try:
            if settings.CREATE_SCHEMA:
                store.init_schema()
            store.ping()
        except StoreError:
            logger.exception("Database not reachable at startup")
    logger.info("Service started: store=%s", store.kind)
    yield
    if isinstance(store, DatabaseScheduleStore):
        store.dispose()
    logger.info("Service stopped")


def create_app(store: ScheduleStore | None = None) -> FastAPI:
    """Build the application around ``store`` (or the configured one)."""
    application = FastAPI(
        title="On-Call Schedule Service",
        description="Register team on-call schedules and resolve who is on call.",
        version=__version__,
        lifespan=lifespan,
    )
    wire(application, store if store is not None else build_store(settings))

    # Starlette runs the last added middleware first.
    application.add_middleware(MetricsMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"detail": "internal server error"})

    application.include_router(system_controller.router)
    application.include_router(schedule_controller.router)
    return application


app = create_app()
