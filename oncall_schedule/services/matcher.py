# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Time-window matching, pure computation, no side effects.
"""

from datetime import datetime

from oncall_schedule.models.domain import Schedule, Weekday


def matches(schedule: Schedule, at: datetime) -> bool:
    """
    True when ``at`` falls inside the schedule's window on its own day.

    The weekday and the window are both read in ``at``'s own offset; the
    schedule's start/end are offset-naive clock times. Both ends of the
    window are inclusive.
    """
    if Weekday.of(at) not in schedule.days:
        return False

    window_start = at.replace(
        hour=schedule.start.hour, minute=schedule.start.minute, second=0, microsecond=0
    )
    window_end = at.replace(
        hour=schedule.end.hour, minute=schedule.end.minute, second=0, microsecond=0
    )
    return window_start <= at <= window_end
