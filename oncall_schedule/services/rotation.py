# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation policies, pure computation, no side effects.

The volatile store always answers with the first member, the durable
store answers with whoever its persisted pointer designates.
"""

from typing import Optional

from oncall_schedule.models.domain import RotationState, Schedule


def first_member(schedule: Schedule) -> Optional[str]:
    """Stateless policy: the head of the member list, if any."""
    if not schedule.members:
        return None
    return schedule.members[0]


def member_at(schedule: Schedule, state: Optional[RotationState]) -> Optional[str]:
    """Stateful policy: the member at the persisted rotation position."""
    if state is None or not schedule.members:
        return None
    if not 0 <= state.current_position < len(schedule.members):
        return None
    return schedule.members[state.current_position]
