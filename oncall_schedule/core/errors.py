# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy shared by stores, services and controllers.
"""


class OnCallError(Exception):
    """Base class for every error raised by this service."""


class ScheduleValidationError(OnCallError):
    """A schedule request breaks a rule; the message names the rule."""


class DuplicateScheduleError(OnCallError):
    """The team already holds a schedule with the same name."""

    def __init__(self, team: str, name: str) -> None:
        super().__init__(f"schedule '{name}' already exists for team '{team}'")
        self.team = team
        self.name = name


class OnCallNotFoundError(OnCallError):
    """Nobody is on call: unknown team, no matching window or no members."""

    def __init__(self, team: str, message: str | None = None) -> None:
        super().__init__(message or f"no oncall member found for team '{team}'")
        self.team = team


class ScheduleNotFoundError(OnCallError):
    """The team or the named schedule does not exist."""


class StoreError(OnCallError):
    """The backing store failed; the triggering operation had no effect."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
