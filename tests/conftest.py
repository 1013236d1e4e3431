import pytest
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crewplan.db.models import (
    Base,
    Branches,
    Employees,
    EmploymentStatus,
    PartnerSettings as PartnerSettingsRow,
    Positions,
)
from crewplan.services.scheduling.types import (
    Employee,
    PartnerSettings,
    ReminderSettings,
    Shift,
)
from crewplan.services.telegram.client import BaseNotificationSink, SendResult


PARTNER_ID = 1
TIMEZONE = "Europe/Kiev"


def get_test_monday() -> date:
    # returns a fixed Monday for deterministic tests
    return date(2024, 7, 1)


def local_dt(day: date, hour: int, minute: int = 0) -> datetime:
    """Partner-local wall clock time (Kyiv is UTC+3 in July) as an aware UTC datetime."""
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc) - timedelta(hours=3)


def make_shift(
    staff_member_id: Optional[int],
    branch_id: int,
    day: date,
    start: time,
    end: time,
    **kwargs,
) -> Shift:
    kwargs.setdefault("partner_id", PARTNER_ID)
    kwargs.setdefault("position_id", 1)
    return Shift(
        branch_id=branch_id,
        staff_member_id=staff_member_id,
        date=day,
        start_time=start,
        end_time=end,
        **kwargs,
    )


class FixedClock:
    """Callable clock for sessions; move it with .set()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingSink(BaseNotificationSink):
    """In-memory notification sink that tracks which messages are still visible per chat."""

    def __init__(self, fail_sends: bool = False):
        self.fail_sends = fail_sends
        self.sent: list[tuple[str, int, str]] = []
        self.deleted: list[tuple[str, int]] = []
        self._next_id = 100

    def send_message(self, bot_token: str, chat_id: str, text: str) -> SendResult:
        if self.fail_sends:
            return SendResult(success=False, chat_id=chat_id, error="Forbidden: bot was blocked by the user")
        self._next_id += 1
        self.sent.append((chat_id, self._next_id, text))
        return SendResult(success=True, message_id=self._next_id, chat_id=chat_id)

    def delete_message(self, bot_token: str, chat_id: str, message_id: int) -> bool:
        self.deleted.append((chat_id, message_id))
        return True

    def live_messages(self, chat_id: str) -> list[str]:
        deleted = set(self.deleted)
        return [text for cid, mid, text in self.sent if cid == chat_id and (cid, mid) not in deleted]


# ---- pure engine fixtures ----

@pytest.fixture
def partner_settings() -> PartnerSettings:
    return PartnerSettings(
        partner_id=PARTNER_ID,
        timezone=TIMEZONE,
        planning_horizon_days=14,
        no_show_threshold_minutes=30,
        grace_minutes=5,
        early_leave_threshold_minutes=5,
        late_cancel_deadline_hours=24,
        reminders=ReminderSettings(
            enabled=True,
            offset_minutes=15,
            close_reminder_enabled=True,
            auto_close_offset_minutes=30,
        ),
        bot_token="123:abc",
    )


@pytest.fixture
def anna() -> Employee:
    return Employee(id=1, first_name="Anna", last_name="Koval", position_id=1, telegram_user_id="5001")


@pytest.fixture
def branch_names() -> dict[int, str]:
    return {1: "Branch A", 2: "Branch B", 3: "Branch C"}


# ---- database fixtures ----

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@dataclass
class SeedData:
    branch_a: int
    branch_b: int
    position_id: int
    hidden_position_id: int
    anna: int
    boris: int
    dismissed: int
    fired: int
    manager: int
    other_branch: int
    other_position: int
    extra: dict = field(default_factory=dict)


@pytest.fixture
def seed(db) -> SeedData:
    """Two branches, a handful of employees and partner settings with a bot token."""
    branch_a = Branches(partner_id=PARTNER_ID, name="Branch A")
    branch_b = Branches(partner_id=PARTNER_ID, name="Branch B")
    other_partner_branch = Branches(partner_id=2, name="Elsewhere")
    cook = Positions(partner_id=PARTNER_ID, name="Cook")
    hidden = Positions(partner_id=PARTNER_ID, name="Owner", is_visible=False)
    other_partner_position = Positions(partner_id=2, name="Cook")
    db.add_all([branch_a, branch_b, other_partner_branch, cook, hidden, other_partner_position])
    db.flush()

    anna = Employees(partner_id=PARTNER_ID, first_name="Anna", last_name="Koval",
                     position_id=cook.id, telegram_user_id="5001")
    boris = Employees(partner_id=PARTNER_ID, first_name="Boris", position_id=cook.id,
                      telegram_user_id="5002")
    dismissed = Employees(partner_id=PARTNER_ID, first_name="Dana", position_id=cook.id,
                          current_status=EmploymentStatus.PENDING_DISMISSAL,
                          dismissal_date=date(2024, 6, 1))
    fired = Employees(partner_id=PARTNER_ID, first_name="Fedir", position_id=cook.id,
                      current_status=EmploymentStatus.FIRED)
    manager = Employees(partner_id=PARTNER_ID, first_name="Maria", last_name="Boss", position_id=hidden.id)
    db.add_all([anna, boris, dismissed, fired, manager])

    db.add(PartnerSettingsRow(
        partner_id=PARTNER_ID,
        timezone=TIMEZONE,
        planning_horizon_days=14,
        no_show_threshold_minutes=30,
        shift_grace_minutes=5,
        early_leave_threshold_minutes=5,
        late_cancel_deadline_hours=24,
        shift_reminders_enabled=True,
        shift_reminder_offset_minutes=15,
        shift_close_reminder_enabled=True,
        shift_auto_close_offset_minutes=30,
        employee_bot_token="123:abc",
    ))
    db.commit()

    return SeedData(
        branch_a=branch_a.id,
        branch_b=branch_b.id,
        position_id=cook.id,
        hidden_position_id=hidden.id,
        anna=anna.id,
        boris=boris.id,
        dismissed=dismissed.id,
        fired=fired.id,
        manager=manager.id,
        other_branch=other_partner_branch.id,
        other_position=other_partner_position.id,
    )


@pytest.fixture
def clock() -> FixedClock:
    # Monday 2024-07-01, 09:00 in Kyiv
    return FixedClock(local_dt(get_test_monday(), 9, 0))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
