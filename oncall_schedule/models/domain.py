# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models, pure data structures, NO FastAPI dependency.
"""

from datetime import datetime, time
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, Field


class Weekday(IntEnum):
    """Day of week, numbered as persisted: Sunday=0 .. Saturday=6."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, at: datetime) -> "Weekday":
        """Weekday of ``at`` as observed in its own offset."""
        # datetime.weekday() counts Monday=0
        return cls((at.weekday() + 1) % 7)

    @property
    def label(self) -> str:
        return self.name.capitalize()


class Schedule(BaseModel):
    """A named rotation for a team: who, which days, which daily window.

    No rules are enforced here; requests are validated before a
    Schedule is built, and stores accept whatever they are given.
    """

    name: str
    members: list[str] = Field(default_factory=list)
    days: list[Weekday] = Field(default_factory=list)
    start: time
    end: time


class RotationState(BaseModel):
    """Per-schedule pointer to the member currently on duty."""

    current_position: int = 0
    current_member: Optional[str] = None
    last_rotation_at: Optional[datetime] = None
    next_rotation_at: Optional[datetime] = None

    def advanced(self, members: list[str], at: datetime) -> "RotationState":
        """Return the state after handing over to the next member."""
        if not members:
            raise ValueError("cannot advance a rotation without members")
        position = (self.current_position + 1) % len(members)
        return RotationState(
            current_position=position,
            current_member=members[position],
            last_rotation_at=at,
            next_rotation_at=self.next_rotation_at,
        )
