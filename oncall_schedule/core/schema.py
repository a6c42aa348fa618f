# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Persisted layout of the durable store.

Identities, teams, team membership, schedules, applicable days, ordered
rotation slots and one rotation-state row per schedule.
"""
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.engine import Engine

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("username", String(255), unique=True, nullable=False),
    Column("email", String(255), unique=True, nullable=False),
    Column("phone", String(50)),
    Column("slack_user_id", String(100)),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

teams = Table(
    "teams",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(255), unique=True, nullable=False),
    Column("description", Text),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)

team_members = Table(
    "team_members",
    metadata,
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE")),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE")),
    Column("role", String(50), server_default="member"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    PrimaryKeyConstraint("team_id", "user_id"),
)

schedules = Table(
    "schedules",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("team_id", Integer, ForeignKey("teams.id", ondelete="CASCADE"), index=True),
    Column("name", String(255), nullable=False),
    Column("start_time", Time, nullable=False),
    Column("end_time", Time, nullable=False),
    Column("timezone", String(100), server_default="UTC"),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("team_id", "name"),
)

schedule_days = Table(
    "schedule_days",
    metadata,
    Column("schedule_id", Integer, ForeignKey("schedules.id", ondelete="CASCADE")),
    Column("day_of_week", Integer, nullable=False),  # 0=Sunday, 6=Saturday
    PrimaryKeyConstraint("schedule_id", "day_of_week"),
    CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_day_of_week"),
)

schedule_members = Table(
    "schedule_members",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("schedule_id", Integer, ForeignKey("schedules.id", ondelete="CASCADE"), index=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True),
    Column("position", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    UniqueConstraint("schedule_id", "user_id"),
    UniqueConstraint("schedule_id", "position"),
)

rotations = Table(
    "rotations",
    metadata,
    Column("id", Integer, primary_key=True),
    Column(
        "schedule_id",
        Integer,
        ForeignKey("schedules.id", ondelete="CASCADE"),
        unique=True,
    ),
    Column("current_user_id", Integer, ForeignKey("users.id", ondelete="SET NULL")),
    Column("current_position", Integer, server_default="0"),
    Column("last_rotation_at", DateTime(timezone=True), server_default=func.now()),
    Column("next_rotation_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now()),
)


def create_schema(engine: Engine) -> None:
    """Create any missing table. Existing tables are left untouched."""
    metadata.create_all(engine, checkfirst=True)
