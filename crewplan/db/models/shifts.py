from sqlalchemy import (
    Integer, String, Text, Boolean, Date, Time, DateTime, ForeignKey, Enum as SQLEnum, Index, UniqueConstraint, func,
)
from datetime import date, time, datetime
from sqlalchemy.orm import Mapped, mapped_column
from enum import Enum
from typing import Optional
from crewplan.db.database import Base


UNIQUE_SHIFT_CONSTRAINT = "idx_unique_shift_per_employee_branch_date"


class ShiftStatus(str, Enum):
    SCHEDULED = "scheduled"
    OPENED = "opened"
    CLOSED = "closed"
    REPLACED = "replaced"


class AttendanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    OPENED = "opened"
    CLOSED = "closed"
    LATE = "late"
    NO_SHOW = "no_show"
    REPLACED = "replaced"


class ConfirmationStatus(str, Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    LATE_DECLINE_PENDING = "late_decline_pending"
    PARTIALLY_CONFIRMED = "partially_confirmed"


class NoShowReasonStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ResponsibleDecision(str, Enum):
    APPROVED_CANCEL = "approved_cancel"
    REJECTED_CANCEL = "rejected_cancel"


class ReplacementStatus(str, Enum):
    NONE = "none"
    OFFERED = "offered"
    ACCEPTED = "accepted"


class ScheduleShifts(Base):
    __tablename__ = "schedule_shifts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("schedule_periods.id"), nullable=True)
    branch_id: Mapped[int] = mapped_column(Integer, ForeignKey("branches.id"), nullable=False)
    staff_member_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("employees.id"), nullable=True)
    position_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("positions.id"), nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    total_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[ShiftStatus] = mapped_column(SQLEnum(ShiftStatus, name="shift_status_enum"), nullable=False, default=ShiftStatus.SCHEDULED)
    attendance_status: Mapped[Optional[AttendanceStatus]] = mapped_column(SQLEnum(AttendanceStatus, name="attendance_status_enum"), nullable=True)
    confirmation_status: Mapped[Optional[ConfirmationStatus]] = mapped_column(SQLEnum(ConfirmationStatus, name="confirmation_status_enum"), nullable=True)

    actual_start_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    auto_closed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    closed_by: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    no_show_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_reason_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    no_show_reason_status: Mapped[Optional[NoShowReasonStatus]] = mapped_column(SQLEnum(NoShowReasonStatus, name="no_show_reason_status_enum"), nullable=True)
    no_show_reason_selected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    no_show_approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_rejected_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    no_show_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    reminder_before_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reminder_late_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    close_reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    is_replacement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    replacement_status: Mapped[Optional[ReplacementStatus]] = mapped_column(SQLEnum(ReplacementStatus, name="replacement_status_enum"), nullable=True)
    replacement_employee_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("employees.id"), nullable=True)
    replacement_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    original_shift_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("schedule_shifts.id", ondelete="SET NULL"), nullable=True)

    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    decline_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    decline_is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    decided_by_responsible_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    responsible_decision: Mapped[Optional[ResponsibleDecision]] = mapped_column(SQLEnum(ResponsibleDecision, name="responsible_decision_enum"), nullable=True)

    early_leave_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    early_leave_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    early_leave_reset: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("staff_member_id", "branch_id", "date", name=UNIQUE_SHIFT_CONSTRAINT),
        Index("ix_schedule_shifts_partner_date", "partner_id", "date"),
        Index("ix_schedule_shifts_employee_date", "staff_member_id", "date"),
    )
