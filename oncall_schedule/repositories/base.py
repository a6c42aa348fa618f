# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository contract: the capability set every schedule store offers.
"""

from datetime import datetime
from typing import Optional, Protocol

from oncall_schedule.models.domain import Schedule


class ScheduleStore(Protocol):
    """Add schedules, list a team's schedules, resolve who is on call."""

    kind: str

    def add_schedule(self, team: str, schedule: Schedule) -> None:
        """Store ``schedule`` under ``team``, creating the team if absent."""

    def get_team(self, team: str) -> tuple[list[Schedule], bool]:
        """All schedules for ``team`` and whether the team exists."""

    def get_current_oncall(self, team: str, at: datetime) -> tuple[Optional[str], bool]:
        """Identity on call for ``team`` at ``at`` and whether one was found."""

    def ping(self) -> None:
        """Raise StoreError when the store cannot serve traffic."""
