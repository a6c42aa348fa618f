# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Schedule registration, team listing and on-call lookup.
Thin HTTP layer; parsing happens here, ALL logic lives in the services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from oncall_schedule.core.dependencies import get_oncall_service, get_schedule_service
from oncall_schedule.core.errors import (
    DuplicateScheduleError,
    OnCallNotFoundError,
    ScheduleValidationError,
    StoreError,
)
from oncall_schedule.schemas.schedule import (
    OnCallResponse,
    ScheduleCreateRequest,
    ScheduleCreatedResponse,
    ScheduleResponse,
    TeamSchedulesResponse,
    parse_instant,
)
from oncall_schedule.services.oncall_service import OnCallService
from oncall_schedule.services.schedule_service import ScheduleService

router = APIRouter(tags=["Schedules"])

INTERNAL_ERROR = "internal server error"


@router.post("/schedule", status_code=201, response_model=ScheduleCreatedResponse)
def create_schedule(
    payload: ScheduleCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
):
    """Register an on-call schedule for a team."""
    try:
        schedule = service.add_schedule(payload.team, payload.to_schedule())
    except ScheduleValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateScheduleError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
    return ScheduleCreatedResponse(
        team=payload.team, **ScheduleResponse.from_domain(schedule).model_dump()
    )


@router.get("/schedule", response_model=OnCallResponse)
def get_current_oncall(
    team: Optional[str] = Query(default=None, description="Team name to query"),
    time: Optional[str] = Query(default=None, description="RFC 3339 instant"),
    service: OnCallService = Depends(get_oncall_service),
):
    """Who is on call for a team at the given instant."""
    if not team:
        raise HTTPException(status_code=400, detail="team query parameter is required")
    if not time:
        raise HTTPException(status_code=400, detail="time query parameter is required")
    try:
        at = parse_instant(time)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="invalid time format, use RFC3339 format"
        )

    try:
        member = service.resolve(team, at)
    except OnCallNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
    return OnCallResponse(team=team, oncall=member, time=at.isoformat())


@router.get("/teams/{team}/schedules", response_model=TeamSchedulesResponse)
def get_team_schedules(
    team: str,
    service: ScheduleService = Depends(get_schedule_service),
):
    """All schedules registered for a team."""
    try:
        schedules, found = service.get_team(team)
    except StoreError:
        raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
    if not found:
        raise HTTPException(status_code=404, detail="team not found")
    return TeamSchedulesResponse(
        team=team,
        schedules=[ScheduleResponse.from_domain(s) for s in schedules],
    )
