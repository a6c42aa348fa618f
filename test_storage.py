# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the resolution engine: window matching, rotation policies,
both schedule stores and the services built on them.
"""

import threading
from datetime import datetime, time, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from oncall_schedule.core.errors import (
    DuplicateScheduleError,
    OnCallNotFoundError,
    ScheduleNotFoundError,
    ScheduleValidationError,
    StoreError,
)
from oncall_schedule.core.schema import create_schema
from oncall_schedule.models.domain import RotationState, Schedule, Weekday
from oncall_schedule.repositories.database_repository import DatabaseScheduleStore
from oncall_schedule.repositories.memory_repository import MemoryScheduleStore
from oncall_schedule.services.matcher import matches
from oncall_schedule.services.oncall_service import OnCallService
from oncall_schedule.services.rotation import first_member, member_at
from oncall_schedule.services.schedule_service import ScheduleService, validate_schedule

UTC = timezone.utc
WEEKDAYS = [
    Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY, Weekday.FRIDAY,
]

# 2025-04-28 is a Monday, 2025-04-26 a Saturday, 2025-05-02 a Friday.
MONDAY_10AM = datetime(2025, 4, 28, 10, 0, tzinfo=UTC)
SATURDAY_10AM = datetime(2025, 4, 26, 10, 0, tzinfo=UTC)


def make_schedule(
    name="Weekday",
    members=("Alice", "Bob"),
    days=WEEKDAYS,
    start=time(9, 0),
    end=time(17, 0),
):
    return Schedule(name=name, members=list(members), days=list(days), start=start, end=end)


# ============================================
# Fixtures
# ============================================
@pytest.fixture
def engine():
    """In-memory SQLite database shared by every connection of the pool."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db_store(engine):
    return DatabaseScheduleStore(engine)


@pytest.fixture
def memory_store():
    return MemoryScheduleStore()


# ============================================
# Weekday
# ============================================
class TestWeekday:
    def test_numbering_matches_persisted_layout(self):
        assert Weekday.SUNDAY == 0
        assert Weekday.SATURDAY == 6

    def test_of_monday(self):
        assert Weekday.of(MONDAY_10AM) is Weekday.MONDAY

    def test_of_sunday(self):
        assert Weekday.of(datetime(2025, 4, 27, 12, 0, tzinfo=UTC)) is Weekday.SUNDAY

    def test_of_uses_instant_offset(self):
        # Monday 01:00 at +02:00 is still Sunday in UTC
        at = datetime(2025, 4, 28, 1, 0, tzinfo=timezone(timedelta(hours=2)))
        assert Weekday.of(at) is Weekday.MONDAY

    def test_label(self):
        assert Weekday.WEDNESDAY.label == "Wednesday"


# ============================================
# Time-Window Matcher
# ============================================
class TestMatcher:
    def test_inside_window(self):
        assert matches(make_schedule(), MONDAY_10AM) is True

    def test_day_not_in_schedule(self):
        assert matches(make_schedule(), SATURDAY_10AM) is False

    @pytest.mark.parametrize("hour,minute", [(0, 0), (9, 0), (12, 30), (17, 0), (23, 59)])
    def test_day_gating_ignores_time_of_day(self, hour, minute):
        schedule = make_schedule(start=time(0, 0), end=time(23, 59))
        at = SATURDAY_10AM.replace(hour=hour, minute=minute)
        assert matches(schedule, at) is False

    def test_start_boundary_inclusive(self):
        assert matches(make_schedule(), MONDAY_10AM.replace(hour=9, minute=0)) is True

    def test_end_boundary_inclusive(self):
        assert matches(make_schedule(), MONDAY_10AM.replace(hour=17, minute=0)) is True

    def test_one_minute_before_start(self):
        assert matches(make_schedule(), MONDAY_10AM.replace(hour=8, minute=59)) is False

    def test_one_minute_after_end(self):
        assert matches(make_schedule(), MONDAY_10AM.replace(hour=17, minute=1)) is False

    def test_seconds_past_end(self):
        assert matches(make_schedule(), MONDAY_10AM.replace(hour=17, second=30)) is False

    def test_window_read_in_instant_offset(self):
        plus_two = timezone(timedelta(hours=2))
        # 09:30 local at +02:00 is 07:30 UTC; the window is local clock time
        at = datetime(2025, 4, 28, 9, 30, tzinfo=plus_two)
        assert matches(make_schedule(), at) is True

    def test_weekday_read_in_instant_offset(self):
        minus_five = timezone(timedelta(hours=-5))
        # Friday 20:00 at -05:00 is Saturday 01:00 UTC
        at = datetime(2025, 5, 2, 20, 0, tzinfo=minus_five)
        late = make_schedule(start=time(18, 0), end=time(23, 0))
        assert matches(late, at) is True

    def test_same_instant_other_offset_can_differ(self):
        sunday_only = make_schedule(days=[Weekday.SUNDAY], start=time(22, 0), end=time(23, 59))
        utc = datetime(2025, 4, 27, 23, 0, tzinfo=UTC)
        local = utc.astimezone(timezone(timedelta(hours=2)))  # Monday 01:00
        assert matches(sunday_only, utc) is True
        assert matches(sunday_only, local) is False

    def test_deterministic(self):
        schedule = make_schedule()
        assert all(matches(schedule, MONDAY_10AM) for _ in range(5))


# ============================================
# Rotation policies
# ============================================
class TestRotation:
    def test_first_member(self):
        assert first_member(make_schedule(members=["Alice", "Bob"])) == "Alice"

    def test_first_member_empty(self):
        assert first_member(make_schedule(members=[])) is None

    def test_member_at_position(self):
        schedule = make_schedule(members=["Alice", "Bob", "Carol"])
        assert member_at(schedule, RotationState(current_position=2)) == "Carol"

    def test_member_at_missing_state(self):
        assert member_at(make_schedule(), None) is None

    def test_member_at_empty_members(self):
        assert member_at(make_schedule(members=[]), RotationState()) is None

    def test_member_at_out_of_range(self):
        assert member_at(make_schedule(), RotationState(current_position=5)) is None

    def test_advanced_moves_to_next(self):
        at = datetime(2025, 5, 1, tzinfo=UTC)
        state = RotationState(current_position=0, current_member="Alice").advanced(
            ["Alice", "Bob"], at
        )
        assert state.current_position == 1
        assert state.current_member == "Bob"
        assert state.last_rotation_at == at

    def test_advanced_wraps_around(self):
        state = RotationState(current_position=1).advanced(
            ["Alice", "Bob"], datetime.now(UTC)
        )
        assert state.current_position == 0
        assert state.current_member == "Alice"

    def test_advanced_without_members(self):
        with pytest.raises(ValueError):
            RotationState().advanced([], datetime.now(UTC))


# ============================================
# Volatile store
# ============================================
class TestMemoryStore:
    def test_add_and_get_team(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        schedules, found = memory_store.get_team("ops")
        assert found is True
        assert [s.name for s in schedules] == ["Weekday"]
        assert schedules[0].members == ["Alice", "Bob"]

    def test_multiple_schedules(self, memory_store):
        memory_store.add_schedule("ops", make_schedule(name="Morning"))
        memory_store.add_schedule("ops", make_schedule(name="Evening", start=time(17, 0), end=time(23, 0)))
        schedules, found = memory_store.get_team("ops")
        assert found is True
        assert len(schedules) == 2

    def test_get_team_unknown(self, memory_store):
        assert memory_store.get_team("nobody") == ([], False)

    def test_oncall_unknown_team(self, memory_store):
        assert memory_store.get_current_oncall("nobody", MONDAY_10AM) == (None, False)

    def test_oncall_first_member(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_oncall_always_first_member(self, memory_store):
        memory_store.add_schedule("ops", make_schedule(members=["Alice", "Bob", "Carol"]))
        results = {memory_store.get_current_oncall("ops", MONDAY_10AM) for _ in range(10)}
        assert results == {("Alice", True)}

    def test_oncall_outside_window(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        assert memory_store.get_current_oncall("ops", SATURDAY_10AM) == (None, False)
        assert memory_store.get_current_oncall(
            "ops", MONDAY_10AM.replace(hour=18)
        ) == (None, False)

    def test_oncall_empty_members(self, memory_store):
        memory_store.add_schedule("ops", make_schedule(members=[]))
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == (None, False)

    def test_first_matching_schedule_wins(self, memory_store):
        memory_store.add_schedule("ops", make_schedule(name="A", members=["Alice"]))
        memory_store.add_schedule("ops", make_schedule(name="B", members=["Bob"]))
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_later_schedule_matches_when_first_does_not(self, memory_store):
        memory_store.add_schedule("ops", make_schedule(name="Weekend", members=["Zed"],
                                                       days=[Weekday.SATURDAY, Weekday.SUNDAY]))
        memory_store.add_schedule("ops", make_schedule(name="Weekday", members=["Bob"]))
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == ("Bob", True)
        assert memory_store.get_current_oncall("ops", SATURDAY_10AM) == ("Zed", True)

    def test_duplicate_name_rejected(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        with pytest.raises(DuplicateScheduleError):
            memory_store.add_schedule("ops", make_schedule(members=["Carol"]))
        schedules, _ = memory_store.get_team("ops")
        assert len(schedules) == 1

    def test_same_name_in_other_team(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        memory_store.add_schedule("dev", make_schedule())
        assert len(memory_store.get_team("ops")[0]) == 1
        assert len(memory_store.get_team("dev")[0]) == 1

    def test_returned_schedules_are_copies(self, memory_store):
        memory_store.add_schedule("ops", make_schedule())
        schedules, _ = memory_store.get_team("ops")
        schedules[0].members.clear()
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_caller_mutation_after_add_is_not_visible(self, memory_store):
        schedule = make_schedule()
        memory_store.add_schedule("ops", schedule)
        schedule.members.insert(0, "Mallory")
        assert memory_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_concurrent_writers(self, memory_store):
        def writer(worker):
            for i in range(50):
                memory_store.add_schedule("ops", make_schedule(name=f"s-{worker}-{i}"))

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        schedules, found = memory_store.get_team("ops")
        assert found is True
        assert len(schedules) == 400
        assert len({s.name for s in schedules}) == 400

    def test_ping(self, memory_store):
        assert memory_store.ping() is None


# ============================================
# Durable store (SQLite in-memory)
# ============================================
class TestDatabaseStore:
    def test_add_and_get_team(self, db_store):
        db_store.add_schedule("ops", make_schedule(members=["Alice", "Bob", "Carol"]))
        schedules, found = db_store.get_team("ops")
        assert found is True
        assert len(schedules) == 1
        stored = schedules[0]
        assert stored.name == "Weekday"
        assert stored.members == ["Alice", "Bob", "Carol"]
        assert stored.days == WEEKDAYS
        assert stored.start == time(9, 0)
        assert stored.end == time(17, 0)

    def test_get_team_unknown(self, db_store):
        assert db_store.get_team("nobody") == ([], False)

    def test_oncall_unknown_team(self, db_store):
        assert db_store.get_current_oncall("nobody", MONDAY_10AM) == (None, False)

    def test_fresh_schedule_resolves_first_member(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        assert db_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_closed_boundaries(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        assert db_store.get_current_oncall("ops", MONDAY_10AM.replace(hour=9)) == ("Alice", True)
        assert db_store.get_current_oncall("ops", MONDAY_10AM.replace(hour=17)) == ("Alice", True)
        assert db_store.get_current_oncall(
            "ops", MONDAY_10AM.replace(hour=17, minute=1)
        ) == (None, False)

    def test_day_mismatch(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        assert db_store.get_current_oncall("ops", SATURDAY_10AM) == (None, False)

    def test_rotation_initialized_at_zero(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        state = db_store.get_rotation("ops", "Weekday")
        assert state.current_position == 0
        assert state.current_member == "Alice"
        assert state.last_rotation_at is not None

    def test_advance_changes_resolution(self, db_store):
        db_store.add_schedule("ops", make_schedule(members=["Alice", "Bob", "Carol"]))
        at = datetime(2025, 4, 28, 8, 0, tzinfo=UTC)

        state = db_store.advance_rotation("ops", "Weekday", at=at)

        assert state.current_position == 1
        assert state.current_member == "Bob"
        assert db_store.get_current_oncall("ops", MONDAY_10AM) == ("Bob", True)
        persisted = db_store.get_rotation("ops", "Weekday")
        assert persisted.current_position == 1
        assert persisted.current_member == "Bob"
        assert persisted.last_rotation_at.replace(tzinfo=None) == at.replace(tzinfo=None)

    def test_advance_wraps_around(self, db_store):
        db_store.add_schedule("ops", make_schedule(members=["Alice", "Bob"]))
        db_store.advance_rotation("ops", "Weekday")
        db_store.advance_rotation("ops", "Weekday")
        assert db_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_advance_unknown_schedule(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        with pytest.raises(ScheduleNotFoundError):
            db_store.advance_rotation("ops", "Nightly")
        with pytest.raises(ScheduleNotFoundError):
            db_store.advance_rotation("nobody", "Weekday")

    def test_empty_members_never_resolve(self, db_store):
        db_store.add_schedule("ops", make_schedule(members=[]))
        assert db_store.get_rotation("ops", "Weekday") is None
        assert db_store.get_current_oncall("ops", MONDAY_10AM) == (None, False)
        with pytest.raises(ScheduleNotFoundError):
            db_store.advance_rotation("ops", "Weekday")

    def test_first_matching_schedule_wins(self, db_store):
        db_store.add_schedule("ops", make_schedule(name="A", members=["Alice"]))
        db_store.add_schedule("ops", make_schedule(name="B", members=["Bob"]))
        assert db_store.get_current_oncall("ops", MONDAY_10AM) == ("Alice", True)

    def test_members_shared_across_schedules(self, db_store, engine):
        db_store.add_schedule("ops", make_schedule(name="Day", members=["Alice", "Bob"]))
        db_store.add_schedule(
            "ops", make_schedule(name="Night", members=["Bob", "Alice"],
                                 start=time(18, 0), end=time(23, 0)),
        )
        with engine.connect() as conn:
            users = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
            memberships = conn.execute(text("SELECT COUNT(*) FROM team_members")).scalar()
            email = conn.execute(
                text("SELECT email FROM users WHERE username = 'Alice'")
            ).scalar()
        assert users == 2
        assert memberships == 2
        assert email == "Alice@example.com"
        assert db_store.get_current_oncall("ops", MONDAY_10AM.replace(hour=20)) == ("Bob", True)

    def test_duplicate_name_rejected_without_writes(self, db_store, engine):
        db_store.add_schedule("ops", make_schedule())
        with pytest.raises(DuplicateScheduleError):
            db_store.add_schedule("ops", make_schedule(members=["Carol"]))
        with engine.connect() as conn:
            carol = conn.execute(
                text("SELECT COUNT(*) FROM users WHERE username = 'Carol'")
            ).scalar()
        assert carol == 0
        schedules, _ = db_store.get_team("ops")
        assert len(schedules) == 1

    def test_partial_failure_rolls_back(self, db_store, engine):
        # the second slot for Alice violates UNIQUE (schedule_id, user_id)
        with pytest.raises(StoreError) as exc_info:
            db_store.add_schedule("fresh", make_schedule(members=["Alice", "Alice"]))
        assert exc_info.value.operation == "add_schedule"

        assert db_store.get_team("fresh") == ([], False)
        with engine.connect() as conn:
            for table in ("teams", "users", "team_members", "schedules",
                          "schedule_days", "schedule_members", "rotations"):
                assert conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar() == 0

    def test_ping(self, db_store):
        db_store.ping()

    def test_init_schema_is_idempotent(self, db_store):
        db_store.add_schedule("ops", make_schedule())
        db_store.init_schema()
        assert db_store.get_team("ops")[1] is True

    def test_read_fault_wrapped(self):
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
        store = DatabaseScheduleStore(engine)
        with pytest.raises(StoreError) as exc_info:
            store.get_current_oncall("ops", MONDAY_10AM)
        assert exc_info.value.operation == "get_current_oncall"
        with pytest.raises(StoreError):
            store.get_team("ops")
        with pytest.raises(StoreError):
            store.ping()

    def test_write_fault_wrapped(self):
        engine = MagicMock()
        engine.begin.side_effect = OperationalError("BEGIN", {}, Exception("down"))
        store = DatabaseScheduleStore(engine)
        with pytest.raises(StoreError) as exc_info:
            store.add_schedule("ops", make_schedule())
        assert exc_info.value.operation == "add_schedule"


# ============================================
# Services
# ============================================
class TestValidation:
    def test_valid(self):
        validate_schedule("ops", make_schedule())

    @pytest.mark.parametrize(
        "team,schedule,message",
        [
            ("", make_schedule(), "team is required"),
            ("ops", make_schedule(name=""), "name is required"),
            ("ops", make_schedule(members=[]), "at least one member is required"),
            ("ops", make_schedule(days=[]), "at least one day is required"),
            ("ops", make_schedule(start=time(17, 0), end=time(9, 0)),
             "start time must be before end time"),
            ("ops", make_schedule(start=time(9, 0), end=time(9, 0)),
             "start time must be before end time"),
            ("ops", make_schedule(members=["Alice", "Bob", "Alice"]), "duplicate member: Alice"),
        ],
    )
    def test_rules(self, team, schedule, message):
        with pytest.raises(ScheduleValidationError) as exc_info:
            validate_schedule(team, schedule)
        assert str(exc_info.value) == message


class TestScheduleService:
    def test_add_then_read(self, memory_store):
        service = ScheduleService(memory_store)
        service.add_schedule("ops", make_schedule())
        schedules, found = service.get_team("ops")
        assert found is True
        assert schedules[0].name == "Weekday"

    def test_invalid_schedule_never_reaches_store(self):
        store = MagicMock()
        service = ScheduleService(store)
        with pytest.raises(ScheduleValidationError):
            service.add_schedule("ops", make_schedule(members=[]))
        store.add_schedule.assert_not_called()

    def test_store_error_propagates(self):
        store = MagicMock()
        store.add_schedule.side_effect = StoreError("add_schedule", "boom")
        with pytest.raises(StoreError):
            ScheduleService(store).add_schedule("ops", make_schedule())


class TestOnCallService:
    def test_resolve_weekday_scenario(self, memory_store):
        ScheduleService(memory_store).add_schedule("ops", make_schedule())
        service = OnCallService(memory_store)
        assert service.resolve("ops", MONDAY_10AM) == "Alice"
        assert service.resolve("ops", MONDAY_10AM.replace(hour=17)) == "Alice"
        with pytest.raises(OnCallNotFoundError):
            service.resolve("ops", SATURDAY_10AM)

    def test_resolve_unknown_team(self, memory_store):
        with pytest.raises(OnCallNotFoundError) as exc_info:
            OnCallService(memory_store).resolve("nobody", MONDAY_10AM)
        assert exc_info.value.team == "nobody"

    def test_resolve_with_durable_store(self, db_store):
        ScheduleService(db_store).add_schedule("ops", make_schedule())
        service = OnCallService(db_store)
        assert service.resolve("ops", MONDAY_10AM) == "Alice"
        db_store.advance_rotation("ops", "Weekday")
        assert service.resolve("ops", MONDAY_10AM) == "Bob"

    def test_store_error_is_not_not_found(self):
        store = MagicMock()
        store.get_current_oncall.side_effect = StoreError("get_current_oncall", "down")
        with pytest.raises(StoreError):
            OnCallService(store).resolve("ops", MONDAY_10AM)

    def test_no_caching(self):
        store = MagicMock()
        store.get_current_oncall.side_effect = [("Alice", True), ("Bob", True)]
        service = OnCallService(store)
        assert service.resolve("ops", MONDAY_10AM) == "Alice"
        assert service.resolve("ops", MONDAY_10AM) == "Bob"
        assert store.get_current_oncall.call_count == 2
