# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: On-call resolution.
Maps (team, instant) to the single identity on duty. Every call reads
current state; nothing is cached and nothing is retried.
"""

from datetime import datetime

from oncall_schedule.core.errors import OnCallNotFoundError, StoreError
from oncall_schedule.core.logging import get_logger
from oncall_schedule.metrics.prometheus import ONCALL_LOOKUPS
from oncall_schedule.repositories.base import ScheduleStore

logger = get_logger(__name__)


class OnCallService:
    """Business logic for on-call lookups."""

    def __init__(self, store: ScheduleStore) -> None:
        self._store = store

    def resolve(self, team: str, at: datetime) -> str:
        """
        Return who is on call for ``team`` at ``at``.
        Raises OnCallNotFoundError when nobody is, StoreError on store faults.
        """
        try:
            member, found = self._store.get_current_oncall(team, at)
        except StoreError:
            ONCALL_LOOKUPS.labels(outcome="error").inc()
            raise

        if not found:
            ONCALL_LOOKUPS.labels(outcome="not_found").inc()
            logger.info(
                "No on-call found: team=%s, at=%s", team, at.isoformat(),
                extra={"team": team},
            )
            raise OnCallNotFoundError(team)

        ONCALL_LOOKUPS.labels(outcome="found").inc()
        logger.info(
            "On-call resolved: team=%s, at=%s, member=%s", team, at.isoformat(), member,
            extra={"team": team},
        )
        return member
