# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection, wire the store and services.

The store variant is chosen once, when the application is built. The store
and the services built on it live on ``app.state`` of that application, so
two applications never share a store.
"""

from fastapi import FastAPI, Request

from oncall_schedule.core.config import Settings
from oncall_schedule.core.database import create_db_engine
from oncall_schedule.core.logging import get_logger
from oncall_schedule.repositories.base import ScheduleStore
from oncall_schedule.repositories.database_repository import DatabaseScheduleStore
from oncall_schedule.repositories.memory_repository import MemoryScheduleStore
from oncall_schedule.services.oncall_service import OnCallService
from oncall_schedule.services.schedule_service import ScheduleService

logger = get_logger(__name__)


def build_store(settings: Settings) -> ScheduleStore:
    """Volatile store unless the durable one is switched on."""
    if not settings.USE_DATABASE:
        logger.info("Using in-memory schedule store")
        return MemoryScheduleStore()

    logger.info("Using database schedule store")
    return DatabaseScheduleStore(create_db_engine(settings))


def wire(application: FastAPI, store: ScheduleStore) -> None:
    """Install ``store`` and the services built on top of it on ``application``."""
    application.state.store = store
    application.state.schedule_service = ScheduleService(store)
    application.state.oncall_service = OnCallService(store)


# ── FastAPI dependency functions ──
def get_store(request: Request) -> ScheduleStore:
    return request.app.state.store


def get_schedule_service(request: Request) -> ScheduleService:
    return request.app.state.schedule_service


def get_oncall_service(request: Request) -> OnCallService:
    return request.app.state.oncall_service
