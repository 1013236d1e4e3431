from pydantic import BaseModel, Field
from datetime import date, datetime, time
from typing import Optional
from crewplan.db.models.shifts import (
    ShiftStatus,
    AttendanceStatus,
    ConfirmationStatus,
    NoShowReasonStatus,
    ResponsibleDecision,
    ReplacementStatus,
)


class ShiftBase(BaseModel):
    branch_id: int
    staff_member_id: Optional[int]
    position_id: Optional[int]
    date: date
    start_time: time
    end_time: time


class ShiftResponse(ShiftBase):
    id: int
    partner_id: int
    period_id: Optional[int]
    total_minutes: int
    status: ShiftStatus
    attendance_status: Optional[AttendanceStatus]
    confirmation_status: Optional[ConfirmationStatus]
    actual_start_at: Optional[datetime]
    actual_end_at: Optional[datetime]
    late_minutes: int
    auto_closed: bool
    no_show_at: Optional[datetime]
    no_show_reason_text: Optional[str]
    no_show_reason_status: Optional[NoShowReasonStatus]
    no_show_approved_by: Optional[int]
    no_show_approved_at: Optional[datetime]
    no_show_rejected_by: Optional[int]
    no_show_rejected_at: Optional[datetime]
    is_replacement: bool
    replacement_status: Optional[ReplacementStatus]
    replacement_employee_id: Optional[int]
    replacement_accepted_at: Optional[datetime]
    original_shift_id: Optional[int]
    confirmed_at: Optional[datetime]
    declined_at: Optional[datetime]
    decline_reason: Optional[str]
    decline_is_late: bool
    decided_by_responsible_id: Optional[int]
    decided_at: Optional[datetime]
    responsible_decision: Optional[ResponsibleDecision]
    early_leave_minutes: int
    early_leave_at: Optional[datetime]
    early_leave_reset: bool

    class Config:
        from_attributes = True


class ShiftDeclineRequest(BaseModel):
    reason: str = Field(min_length=1)


class NoShowReasonRequest(BaseModel):
    reason: str = Field(min_length=1)


class NoShowDecisionRequest(BaseModel):
    decision: NoShowReasonStatus


class ShiftCloseRequest(BaseModel):
    closed_by: str = "employee"


class ReplacementRequest(BaseModel):
    employee_id: int
    start_time: Optional[time] = None
    end_time: Optional[time] = None
