# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas, API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary,
together with the parsers that turn wire strings into domain values.
"""

import re
from datetime import datetime, time

from pydantic import AwareDatetime, BaseModel, Field, TypeAdapter, ValidationError

from oncall_schedule.core.errors import ScheduleValidationError
from oncall_schedule.models.domain import Schedule, Weekday

KITCHEN_FORMAT = "%I:%M%p"

RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(\.\d{1,9})?([Zz]|[+-]\d{2}:\d{2})"
)

_INSTANT = TypeAdapter(AwareDatetime)


# ── Parsers ──

def parse_kitchen_time(value: str) -> time:
    """Parse a 12-hour clock string such as '9:00AM' or '5:30pm'."""
    return datetime.strptime(value.strip().upper(), KITCHEN_FORMAT).time()


def format_kitchen_time(value: time) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d}{suffix}"


def parse_weekday(value: str) -> Weekday:
    """Parse a full English weekday name, case-insensitively."""
    try:
        return Weekday[value.strip().upper()]
    except KeyError:
        raise ValueError(f"invalid weekday: {value}") from None


def parse_instant(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; the UTC offset is mandatory."""
    raw = value.strip()
    if not RFC3339_PATTERN.fullmatch(raw):
        raise ValueError(f"not an RFC 3339 timestamp: {value}")
    try:
        return _INSTANT.validate_python(raw.upper())
    except ValidationError as exc:
        raise ValueError(f"not an RFC 3339 timestamp: {value}") from exc


# ── Schedule Schemas ──

class ScheduleCreateRequest(BaseModel):
    name: str = Field(default="", max_length=255, description="Schedule name, unique per team")
    team: str = Field(default="", max_length=255, description="Team name")
    members: list[str] = Field(default_factory=list, description="Rotation order")
    days: list[str] = Field(default_factory=list, description="Weekday names")
    start: str = Field(default="", description="Window start, e.g. 9:00AM")
    end: str = Field(default="", description="Window end, e.g. 5:00PM")

    def to_schedule(self) -> Schedule:
        """Build the domain schedule. Raises ScheduleValidationError."""
        if not self.team:
            raise ScheduleValidationError("team is required")
        if not self.name:
            raise ScheduleValidationError("name is required")
        if not self.members:
            raise ScheduleValidationError("at least one member is required")
        if not self.days:
            raise ScheduleValidationError("at least one day is required")
        if not self.start:
            raise ScheduleValidationError("start time is required")
        if not self.end:
            raise ScheduleValidationError("end time is required")

        days: list[Weekday] = []
        for raw in self.days:
            try:
                day = parse_weekday(raw)
            except ValueError:
                raise ScheduleValidationError(f"invalid day: {raw}") from None
            if day not in days:
                days.append(day)

        try:
            start = parse_kitchen_time(self.start)
        except ValueError:
            raise ScheduleValidationError(
                "invalid start time format, use '3:04PM' format"
            ) from None
        try:
            end = parse_kitchen_time(self.end)
        except ValueError:
            raise ScheduleValidationError(
                "invalid end time format, use '3:04PM' format"
            ) from None

        return Schedule(
            name=self.name,
            members=list(self.members),
            days=days,
            start=start,
            end=end,
        )


class ScheduleResponse(BaseModel):
    name: str
    members: list[str]
    days: list[str]
    start: str
    end: str

    @classmethod
    def from_domain(cls, schedule: Schedule) -> "ScheduleResponse":
        return cls(
            name=schedule.name,
            members=list(schedule.members),
            days=[day.label for day in schedule.days],
            start=format_kitchen_time(schedule.start),
            end=format_kitchen_time(schedule.end),
        )


class ScheduleCreatedResponse(ScheduleResponse):
    team: str


class TeamSchedulesResponse(BaseModel):
    team: str
    schedules: list[ScheduleResponse]


# ── On-Call Schemas ──

class OnCallResponse(BaseModel):
    team: str
    oncall: str
    time: str
