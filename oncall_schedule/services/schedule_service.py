# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Schedule management, business logic for registering schedules.
Validates every rule before the store is touched, then delegates the write.
"""

from oncall_schedule.core.errors import ScheduleValidationError
from oncall_schedule.core.logging import get_logger
from oncall_schedule.metrics.prometheus import SCHEDULES_CREATED
from oncall_schedule.models.domain import Schedule
from oncall_schedule.repositories.base import ScheduleStore

logger = get_logger(__name__)


def validate_schedule(team: str, schedule: Schedule) -> None:
    """Raise ScheduleValidationError naming the first rule ``schedule`` breaks."""
    if not team:
        raise ScheduleValidationError("team is required")
    if not schedule.name:
        raise ScheduleValidationError("name is required")
    if not schedule.members:
        raise ScheduleValidationError("at least one member is required")
    if not schedule.days:
        raise ScheduleValidationError("at least one day is required")
    if schedule.start >= schedule.end:
        raise ScheduleValidationError("start time must be before end time")
    seen: set[str] = set()
    for member in schedule.members:
        if member in seen:
            raise ScheduleValidationError(f"duplicate member: {member}")
        seen.add(member)


class ScheduleService:
    """Business logic for on-call schedule management."""

    def __init__(self, store: ScheduleStore) -> None:
        self._store = store

    # ── Commands ──

    def add_schedule(self, team: str, schedule: Schedule) -> Schedule:
        """Validate and store a schedule. Raises ScheduleValidationError,
        DuplicateScheduleError or StoreError."""
        try:
            validate_schedule(team, schedule)
        except ScheduleValidationError as e:
            logger.warning("Schedule rejected: %s", e, extra={"team": team})
            raise

        self._store.add_schedule(team, schedule)

        SCHEDULES_CREATED.labels(store=self._store.kind).inc()
        logger.info(
            "Schedule created: team=%s, schedule=%s, members=%d",
            team, schedule.name, len(schedule.members),
            extra={"team": team, "schedule": schedule.name},
        )
        return schedule

    # ── Queries ──

    def get_team(self, team: str) -> tuple[list[Schedule], bool]:
        return self._store.get_team(team)
