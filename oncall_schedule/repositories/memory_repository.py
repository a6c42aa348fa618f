# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Volatile schedule store.
In-process map of team -> schedules guarded by a lock. No rotation
pointer is kept: resolution always yields a schedule's first member.
"""

import threading
from datetime import datetime
from typing import Optional

from oncall_schedule.core.errors import DuplicateScheduleError
from oncall_schedule.models.domain import Schedule
from oncall_schedule.services.matcher import matches
from oncall_schedule.services.rotation import first_member


class MemoryScheduleStore:
    """In-memory schedule storage."""

    kind = "memory"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._teams: dict[str, list[Schedule]] = {}

    # ── Read ──

    def get_team(self, team: str) -> tuple[list[Schedule], bool]:
        with self._lock:
            schedules = self._teams.get(team)
            if schedules is None:
                return [], False
            return [s.model_copy(deep=True) for s in schedules], True

    def get_current_oncall(self, team: str, at: datetime) -> tuple[Optional[str], bool]:
        with self._lock:
            schedules = list(self._teams.get(team, ()))
        for schedule in schedules:
            if matches(schedule, at):
                member = first_member(schedule)
                return member, member is not None
        return None, False

    def ping(self) -> None:
        return None

    # ── Write ──

    def add_schedule(self, team: str, schedule: Schedule) -> None:
        stored = schedule.model_copy(deep=True)
        with self._lock:
            schedules = self._teams.setdefault(team, [])
            if any(s.name == stored.name for s in schedules):
                raise DuplicateScheduleError(team, stored.name)
            schedules.append(stored)
