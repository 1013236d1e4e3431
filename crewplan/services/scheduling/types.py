"""
Internal data types for the schedule engine.
decoupled from SQLAlchemy models for cleaner logic.
"""

from dataclasses import dataclass, field
from datetime import date, time, datetime
from enum import Enum
from typing import Optional

from crewplan.db.models.employees import EmploymentStatus
from crewplan.db.models.schedule_periods import ViewMode
from crewplan.db.models.shifts import (
    ShiftStatus,
    AttendanceStatus,
    ConfirmationStatus,
    NoShowReasonStatus,
    ResponsibleDecision,
    ReplacementStatus,
)


class ReplacementKind(str, Enum):
    # a no-show that gave a reason keeps its row; one that did not is handed over
    WITH_REASON = "with_reason"
    WITHOUT_REASON = "without_reason"


@dataclass
class DayColumn:
    date: date
    weekday: int  # 0 = Monday
    week_index: int
    is_weekend: bool
    day_of_month: int
    month_name: str


@dataclass
class Branch:
    id: int
    name: str


@dataclass
class BranchSettings:
    branch_id: int
    min_staff_per_day: int = 1
    display_order: Optional[int] = None


@dataclass
class Position:
    id: int
    name: str
    is_visible: bool = True


@dataclass
class Employee:
    id: int
    first_name: str
    last_name: Optional[str] = None
    position_id: Optional[int] = None
    branch_id: Optional[int] = None
    current_status: EmploymentStatus = EmploymentStatus.WORKING
    dismissal_date: Optional[date] = None
    is_active: bool = True
    photo_url: Optional[str] = None
    telegram_user_id: Optional[str] = None

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def is_dismissed_on(self, target: date) -> bool:
        """True when the employee cannot take a shift on ``target``."""
        if self.current_status == EmploymentStatus.FIRED:
            return True
        return self.dismissal_date is not None and target >= self.dismissal_date


@dataclass
class Shift:
    """A persisted shift row. Field names match the schedule_shifts columns."""
    partner_id: int
    branch_id: int
    staff_member_id: Optional[int]
    position_id: Optional[int]
    date: date
    start_time: time
    end_time: time
    total_minutes: int = 0
    id: Optional[int] = None
    period_id: Optional[int] = None

    status: ShiftStatus = ShiftStatus.SCHEDULED
    attendance_status: Optional[AttendanceStatus] = None
    confirmation_status: Optional[ConfirmationStatus] = None

    actual_start_at: Optional[datetime] = None
    actual_end_at: Optional[datetime] = None
    late_minutes: int = 0
    auto_closed: bool = False
    closed_by: Optional[str] = None

    no_show_at: Optional[datetime] = None
    no_show_notified_at: Optional[datetime] = None
    no_show_reason_text: Optional[str] = None
    no_show_reason_status: Optional[NoShowReasonStatus] = None
    no_show_reason_selected_at: Optional[datetime] = None
    no_show_approved_by: Optional[int] = None
    no_show_approved_at: Optional[datetime] = None
    no_show_rejected_by: Optional[int] = None
    no_show_rejected_at: Optional[datetime] = None

    reminder_before_sent_at: Optional[datetime] = None
    reminder_late_sent_at: Optional[datetime] = None
    close_reminder_sent_at: Optional[datetime] = None

    is_replacement: bool = False
    replacement_status: Optional[ReplacementStatus] = None
    replacement_employee_id: Optional[int] = None
    replacement_accepted_at: Optional[datetime] = None
    original_shift_id: Optional[int] = None

    confirmed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    decline_is_late: bool = False
    decided_by_responsible_id: Optional[int] = None
    decided_at: Optional[datetime] = None
    responsible_decision: Optional[ResponsibleDecision] = None

    early_leave_minutes: int = 0
    early_leave_at: Optional[datetime] = None
    early_leave_reset: bool = False

    @property
    def has_early_leave(self) -> bool:
        return self.early_leave_minutes > 0 and not self.early_leave_reset


@dataclass
class ShiftDraft:
    """A shift about to be inserted (period copy batch)."""
    partner_id: int
    period_id: int
    branch_id: int
    staff_member_id: int
    position_id: Optional[int]
    date: date
    start_time: time
    end_time: time
    total_minutes: int
    confirmation_status: ConfirmationStatus = ConfirmationStatus.PENDING


@dataclass
class ShiftConflict:
    branch_name: str
    start_time: time
    end_time: time
    free_from: time

    @property
    def message(self) -> str:
        return (
            f'Employee already works at "{self.branch_name}" '
            f"from {self.start_time:%H:%M} to {self.end_time:%H:%M}. "
            f"Free from {self.free_from:%H:%M}"
        )


@dataclass
class RosterEntry:
    employee_id: int
    position_id: Optional[int]


@dataclass
class ReminderSettings:
    enabled: bool = False
    offset_minutes: int = 15
    comment: Optional[str] = None
    close_reminder_enabled: bool = False
    auto_close_offset_minutes: int = 30


@dataclass
class PartnerSettings:
    partner_id: int
    timezone: str = "Europe/Kiev"
    planning_horizon_days: int = 14
    no_show_threshold_minutes: int = 30
    grace_minutes: int = 0
    early_leave_threshold_minutes: int = 5
    late_cancel_deadline_hours: int = 24
    reminders: ReminderSettings = field(default_factory=ReminderSettings)
    bot_token: Optional[str] = None


@dataclass
class HorizonCoverage:
    is_covered: bool
    required_date: date
    unfilled_days: list[date] = field(default_factory=list)


@dataclass
class OperationResult:
    """Outcome of a session operation. Failures carry a user-facing message."""
    success: bool
    message: Optional[str] = None
    conflict: Optional[ShiftConflict] = None
    shift_id: Optional[int] = None
    error: Optional[str] = None  # conflict | exists | not_found | invalid | store


@dataclass
class CopyResult:
    success: bool
    copied: int = 0
    employee_count: int = 0
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass
class TimeEditPlan:
    """Field updates for a time-window edit and whether stale no-show messages must go."""
    updates: dict
    purge_no_show_notifications: bool = False
