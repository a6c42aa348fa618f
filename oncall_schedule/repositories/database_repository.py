# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Durable schedule store backed by a relational database.

Every write is one transaction (engine.begin) committed only after all of
its rows succeed. Rotation state is persisted per schedule and resolution
answers with whoever the persisted pointer designates.
"""
from datetime import datetime, time, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Time, bindparam, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from oncall_schedule.core.errors import (
    DuplicateScheduleError,
    ScheduleNotFoundError,
    StoreError,
)
from oncall_schedule.core.logging import get_logger
from oncall_schedule.core.schema import create_schema
from oncall_schedule.metrics.prometheus import ROTATION_ADVANCES, STORE_ERRORS
from oncall_schedule.models.domain import RotationState, Schedule, Weekday
from oncall_schedule.services.matcher import matches
from oncall_schedule.services.rotation import member_at

logger = get_logger(__name__)

_UPSERT_TEAM = text("""
    INSERT INTO teams (name) VALUES (:name)
    ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
    RETURNING id
""")

_UPSERT_USER = text("""
    INSERT INTO users (username, email) VALUES (:username, :email)
    ON CONFLICT (username) DO UPDATE SET username = EXCLUDED.username
    RETURNING id
""")

_INSERT_SCHEDULE = text("""
    INSERT INTO schedules (team_id, name, start_time, end_time, timezone)
    VALUES (:team_id, :name, :start_time, :end_time, 'UTC')
    RETURNING id
""").bindparams(bindparam("start_time", type_=Time), bindparam("end_time", type_=Time))

_ADVANCE_ROTATION = text("""
    UPDATE rotations
    SET current_position = :new_position, current_user_id = :user_id,
        last_rotation_at = :at, updated_at = :at
    WHERE schedule_id = :schedule_id AND current_position = :old_position
""").bindparams(bindparam("at", type_=DateTime(timezone=True)))


def _as_time(value: Any) -> time:
    # PostgreSQL hands back datetime.time, SQLite the stored string.
    if isinstance(value, time):
        return value.replace(tzinfo=None)
    return time.fromisoformat(str(value))


def _as_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(str(value))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class DatabaseScheduleStore:
    """Relational schedule storage with persisted rotation state."""

    kind = "database"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    # ── Write ──────────────────────────────────────────────────────────

    def add_schedule(self, team: str, schedule: Schedule) -> None:
        try:
            with self._engine.begin() as conn:
                team_id = conn.execute(_UPSERT_TEAM, {"name": team}).scalar_one()

                exists = conn.execute(
                    text("SELECT 1 FROM schedules WHERE team_id = :tid AND name = :name"),
                    {"tid": team_id, "name": schedule.name},
                ).first()
                if exists:
                    raise DuplicateScheduleError(team, schedule.name)

                user_ids: dict[str, int] = {}
                for member in schedule.members:
                    user_ids[member] = conn.execute(
                        _UPSERT_USER,
                        {"username": member, "email": f"{member}@example.com"},
                    ).scalar_one()
                    conn.execute(
                        text("""
                            INSERT INTO team_members (team_id, user_id, role)
                            VALUES (:tid, :uid, 'member')
                            ON CONFLICT (team_id, user_id) DO NOTHING
                        """),
                        {"tid": team_id, "uid": user_ids[member]},
                    )

                schedule_id = conn.execute(
                    _INSERT_SCHEDULE,
                    {
                        "team_id": team_id,
                        "name": schedule.name,
                        "start_time": schedule.start,
                        "end_time": schedule.end,
                    },
                ).scalar_one()

                for day in schedule.days:
                    conn.execute(
                        text("INSERT INTO schedule_days (schedule_id, day_of_week) VALUES (:sid, :day)"),
                        {"sid": schedule_id, "day": int(day)},
                    )

                for position, member in enumerate(schedule.members):
                    conn.execute(
                        text("""
                            INSERT INTO schedule_members (schedule_id, user_id, position)
                            VALUES (:sid, :uid, :position)
                        """),
                        {"sid": schedule_id, "uid": user_ids[member], "position": position},
                    )

                if schedule.members:
                    conn.execute(
                        text("""
                            INSERT INTO rotations
                                (schedule_id, current_user_id, current_position, last_rotation_at)
                            VALUES (:sid, :uid, 0, CURRENT_TIMESTAMP)
                        """),
                        {"sid": schedule_id, "uid": user_ids[schedule.members[0]]},
                    )
        except SQLAlchemyError as exc:
            raise self._fault("add_schedule", exc, team) from exc

        logger.info(
            "Schedule stored: team=%s, schedule=%s, id=%d",
            team, schedule.name, schedule_id,
            extra={"team": team, "schedule": schedule.name},
        )

    def advance_rotation(
        self, team: str, schedule_name: str, at: Optional[datetime] = None
    ) -> RotationState:
        """Hand the schedule over to its next member and return the new state."""
        at = at or datetime.now(timezone.utc)
        try:
            with self._engine.begin() as conn:
                row = conn.execute(
                    text("""
                        SELECT s.id, r.current_position, r.next_rotation_at
                        FROM schedules s
                        JOIN teams t ON t.id = s.team_id
                        LEFT JOIN rotations r ON r.schedule_id = s.id
                        WHERE t.name = :team AND s.name = :name
                    """),
                    {"team": team, "name": schedule_name},
                ).first()
                if row is None:
                    raise ScheduleNotFoundError(
                        f"no schedule '{schedule_name}' for team '{team}'"
                    )
                if row[1] is None:
                    raise ScheduleNotFoundError(
                        f"schedule '{schedule_name}' of team '{team}' has no rotation"
                    )
                schedule_id = row[0]

                slots = conn.execute(
                    text("""
                        SELECT sm.user_id, u.username
                        FROM schedule_members sm
                        JOIN users u ON u.id = sm.user_id
                        WHERE sm.schedule_id = :sid
                        ORDER BY sm.position
                    """),
                    {"sid": schedule_id},
                ).fetchall()

                state = RotationState(
                    current_position=row[1],
                    next_rotation_at=_as_datetime(row[2]),
                )
                new_state = state.advanced([s[1] for s in slots], at)

                result = conn.execute(
                    _ADVANCE_ROTATION,
                    {
                        "new_position": new_state.current_position,
                        "user_id": slots[new_state.current_position][0],
                        "at": at,
                        "schedule_id": schedule_id,
                        "old_position": state.current_position,
                    },
                )
                if result.rowcount != 1:
                    raise StoreError("advance_rotation", "rotation changed concurrently")
        except SQLAlchemyError as exc:
            raise self._fault("advance_rotation", exc, team) from exc

        ROTATION_ADVANCES.inc()
        logger.info(
            "Rotation advanced: team=%s, schedule=%s, position=%d, member=%s",
            team, schedule_name, new_state.current_position, new_state.current_member,
            extra={"team": team, "schedule": schedule_name},
        )
        return new_state

    # ── Read ───────────────────────────────────────────────────────────

    def get_team(self, team: str) -> tuple[list[Schedule], bool]:
        try:
            with self._engine.connect() as conn:
                team_id = self._find_team_id(conn, team)
                if team_id is None:
                    return [], False
                loaded = self._load_schedules(conn, team_id)
        except SQLAlchemyError as exc:
            raise self._fault("get_team", exc, team) from exc
        return [schedule for schedule, _ in loaded], True

    def get_current_oncall(self, team: str, at: datetime) -> tuple[Optional[str], bool]:
        try:
            with self._engine.connect() as conn:
                team_id = self._find_team_id(conn, team)
                if team_id is None:
                    return None, False
                loaded = self._load_schedules(conn, team_id)
        except SQLAlchemyError as exc:
            raise self._fault("get_current_oncall", exc, team) from exc

        for schedule, state in loaded:
            if matches(schedule, at):
                member = member_at(schedule, state)
                return member, member is not None
        return None, False

    def get_rotation(self, team: str, schedule_name: str) -> Optional[RotationState]:
        """Persisted rotation state of one schedule, None when it has none."""
        try:
            with self._engine.connect() as conn:
                team_id = self._find_team_id(conn, team)
                if team_id is None:
                    return None
                loaded = self._load_schedules(conn, team_id)
        except SQLAlchemyError as exc:
            raise self._fault("get_rotation", exc, team) from exc
        for schedule, state in loaded:
            if schedule.name == schedule_name:
                return state
        return None

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise self._fault("ping", exc) from exc

    def init_schema(self) -> None:
        """Create missing tables; used when the schema bootstrap is enabled."""
        try:
            create_schema(self._engine)
        except SQLAlchemyError as exc:
            raise self._fault("init_schema", exc) from exc

    def dispose(self) -> None:
        self._engine.dispose()

    # ── Private ────────────────────────────────────────────────────────

    @staticmethod
    def _find_team_id(conn: Connection, team: str) -> Optional[int]:
        return conn.execute(
            text("SELECT id FROM teams WHERE name = :name"), {"name": team}
        ).scalar()

    @staticmethod
    def _load_schedules(
        conn: Connection, team_id: int
    ) -> list[tuple[Schedule, Optional[RotationState]]]:
        """Schedules of a team in insertion order, each with its rotation state."""
        rows = conn.execute(
            text("""
                SELECT s.id, s.name, s.start_time, s.end_time,
                       r.id, r.current_position, u.username,
                       r.last_rotation_at, r.next_rotation_at
                FROM schedules s
                LEFT JOIN rotations r ON r.schedule_id = s.id
                LEFT JOIN users u ON u.id = r.current_user_id
                WHERE s.team_id = :tid
                ORDER BY s.id
            """),
            {"tid": team_id},
        ).fetchall()

        days: dict[int, list[Weekday]] = {}
        for schedule_id, day in conn.execute(
            text("""
                SELECT sd.schedule_id, sd.day_of_week
                FROM schedule_days sd
                JOIN schedules s ON s.id = sd.schedule_id
                WHERE s.team_id = :tid
                ORDER BY sd.schedule_id, sd.day_of_week
            """),
            {"tid": team_id},
        ):
            days.setdefault(schedule_id, []).append(Weekday(day))

        members: dict[int, list[str]] = {}
        for schedule_id, username in conn.execute(
            text("""
                SELECT sm.schedule_id, u.username
                FROM schedule_members sm
                JOIN schedules s ON s.id = sm.schedule_id
                JOIN users u ON u.id = sm.user_id
                WHERE s.team_id = :tid
                ORDER BY sm.schedule_id, sm.position
            """),
            {"tid": team_id},
        ):
            members.setdefault(schedule_id, []).append(username)

        loaded: list[tuple[Schedule, Optional[RotationState]]] = []
        for row in rows:
            schedule = Schedule(
                name=row[1],
                members=members.get(row[0], []),
                days=days.get(row[0], []),
                start=_as_time(row[2]),
                end=_as_time(row[3]),
            )
            state = None
            if row[4] is not None:
                state = RotationState(
                    current_position=row[5] or 0,
                    current_member=row[6],
                    last_rotation_at=_as_datetime(row[7]),
                    next_rotation_at=_as_datetime(row[8]),
                )
            loaded.append((schedule, state))
        return loaded

    def _fault(self, operation: str, exc: SQLAlchemyError, team: Optional[str] = None) -> StoreError:
        STORE_ERRORS.labels(operation=operation).inc()
        logger.error(
            "Store failure during %s: %s", operation, exc,
            extra={"team": team} if team else None,
        )
        return StoreError(operation, str(exc.__class__.__name__))
