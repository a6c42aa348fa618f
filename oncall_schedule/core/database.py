# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine factory for the durable store."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from oncall_schedule.core.config import Settings, settings as default_settings


def create_db_engine(settings: Settings = default_settings) -> Engine:
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )
