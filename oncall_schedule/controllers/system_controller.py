# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints, health, readiness, metrics.
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from oncall_schedule.core.config import settings
from oncall_schedule.core.dependencies import get_store
from oncall_schedule.core.errors import StoreError
from oncall_schedule.repositories.base import ScheduleStore

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check(store: ScheduleStore = Depends(get_store)):
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "store": store.kind,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/ready")
def readiness_check(store: ScheduleStore = Depends(get_store)):
    """Readiness probe, verifies the store can serve traffic."""
    try:
        store.ping()
    except StoreError:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "service": settings.SERVICE_NAME, "store": store.kind},
        )
    return {"status": "ready", "service": settings.SERVICE_NAME, "store": store.kind}


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
