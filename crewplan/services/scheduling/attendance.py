"""
Confirmation and attendance state machine for shifts.

Every transition is a pure function that validates the current state of a Shift
and returns the column updates to apply. Persisting the updates and any
notification side effects are the caller's job.

Confirmation:
    not_required -> pending -> confirmed | declined | late_decline_pending
    late_decline_pending -> declined (accept cancel) | confirmed (reject cancel)

Attendance:
    scheduled -> late -> no_show     (deadline passed without opening)
    scheduled | late | no_show -> opened -> closed (optionally with early leave)
    no_show -> replaced               (replacement assigned after a reason was given)
"""

from datetime import datetime, time, timedelta
from typing import Optional, Union

from .errors import InvalidTransitionError
from .periods import (
    calculate_total_minutes,
    shift_end_at,
    shift_start_at,
    to_partner_time,
)
from .types import (
    AttendanceStatus,
    ConfirmationStatus,
    Employee,
    NoShowReasonStatus,
    PartnerSettings,
    ReplacementKind,
    ReplacementStatus,
    ResponsibleDecision,
    Shift,
    ShiftStatus,
    TimeEditPlan,
)


CONFIRMATION_TRANSITIONS: dict[ConfirmationStatus, set[ConfirmationStatus]] = {
    ConfirmationStatus.NOT_REQUIRED: {ConfirmationStatus.PENDING},
    ConfirmationStatus.PENDING: {
        ConfirmationStatus.CONFIRMED,
        ConfirmationStatus.DECLINED,
        ConfirmationStatus.LATE_DECLINE_PENDING,
        ConfirmationStatus.PARTIALLY_CONFIRMED,
    },
    ConfirmationStatus.PARTIALLY_CONFIRMED: {
        ConfirmationStatus.CONFIRMED,
        ConfirmationStatus.DECLINED,
        ConfirmationStatus.LATE_DECLINE_PENDING,
    },
    # an employee may still cancel a confirmed shift
    ConfirmationStatus.CONFIRMED: {
        ConfirmationStatus.DECLINED,
        ConfirmationStatus.LATE_DECLINE_PENDING,
    },
    ConfirmationStatus.LATE_DECLINE_PENDING: {
        ConfirmationStatus.DECLINED,
        ConfirmationStatus.CONFIRMED,
    },
    ConfirmationStatus.DECLINED: set(),
}


def current_confirmation(shift: Shift) -> ConfirmationStatus:
    """Rows created before confirmations existed have no status and behave as pending."""
    return shift.confirmation_status or ConfirmationStatus.PENDING


def can_transition(current: ConfirmationStatus, target: ConfirmationStatus) -> bool:
    return target in CONFIRMATION_TRANSITIONS.get(current, set())


def ensure_confirmation_transition(shift: Shift, target: ConfirmationStatus) -> None:
    current = current_confirmation(shift)
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Shift {shift.id}: cannot change confirmation from {current.value} to {target.value}"
        )


def _minutes_between(later: datetime, earlier: datetime) -> int:
    return int((later - earlier).total_seconds() // 60)


# ---- time edits ----

def time_edit_updates(
    shift: Shift,
    start: time,
    end: time,
    now: datetime,
    tz_name: str,
) -> TimeEditPlan:
    """
    Updates for changing a shift's time window.

    When the window actually changes before the (new) start, and the shift is
    still plain scheduled with no recorded start, stale attendance markers and
    reminder stamps are cleared so reminders fire again for the new window.
    """
    updates: dict = {
        "start_time": start,
        "end_time": end,
        "total_minutes": calculate_total_minutes(start, end),
    }

    time_changed = shift.start_time != start or shift.end_time != end
    not_started_yet = shift_start_at(shift.date, start, tz_name) > to_partner_time(now, tz_name)

    purge = False
    if time_changed and not_started_yet and shift.status == ShiftStatus.SCHEDULED and not shift.actual_start_at:
        purge = shift.attendance_status == AttendanceStatus.NO_SHOW
        updates.update({
            "attendance_status": None,
            "no_show_at": None,
            "late_minutes": 0,
            "reminder_before_sent_at": None,
            "reminder_late_sent_at": None,
        })

    return TimeEditPlan(updates=updates, purge_no_show_notifications=purge)


# ---- confirmation ----

def confirm_shift(shift: Shift, now: datetime) -> dict:
    ensure_confirmation_transition(shift, ConfirmationStatus.CONFIRMED)
    return {
        "confirmation_status": ConfirmationStatus.CONFIRMED,
        "confirmed_at": now,
    }


def is_late_decline(shift: Shift, now: datetime, settings: PartnerSettings) -> bool:
    """Declining within late_cancel_deadline_hours of the start needs a responsible's decision."""
    start_at = shift_start_at(shift.date, shift.start_time, settings.timezone)
    hours_until_start = (start_at - to_partner_time(now, settings.timezone)).total_seconds() / 3600
    return hours_until_start < settings.late_cancel_deadline_hours


def decline_shift(shift: Shift, reason: str, now: datetime, settings: PartnerSettings) -> dict:
    """
    Employee declines a shift. Early declines release the shift right away;
    late ones wait for a responsible decision.
    """
    if not reason or not reason.strip():
        raise InvalidTransitionError("A decline reason is required")

    if is_late_decline(shift, now, settings):
        ensure_confirmation_transition(shift, ConfirmationStatus.LATE_DECLINE_PENDING)
        return {
            "confirmation_status": ConfirmationStatus.LATE_DECLINE_PENDING,
            "declined_at": now,
            "decline_reason": reason,
            "decline_is_late": True,
        }

    ensure_confirmation_transition(shift, ConfirmationStatus.DECLINED)
    return {
        "confirmation_status": ConfirmationStatus.DECLINED,
        "declined_at": now,
        "decline_reason": reason,
        "decline_is_late": False,
        "staff_member_id": None,
    }


def accept_late_cancel(shift: Shift, responsible_id: Optional[int], now: datetime) -> dict:
    """Responsible accepts a late decline: the shift is released."""
    if current_confirmation(shift) != ConfirmationStatus.LATE_DECLINE_PENDING:
        raise InvalidTransitionError(f"Shift {shift.id} has no late decline awaiting a decision")
    return {
        "confirmation_status": ConfirmationStatus.DECLINED,
        "responsible_decision": ResponsibleDecision.APPROVED_CANCEL,
        "decided_at": now,
        "decided_by_responsible_id": responsible_id,
        "staff_member_id": None,
    }


def reject_late_cancel(shift: Shift, responsible_id: Optional[int], now: datetime) -> dict:
    """Responsible rejects a late decline: the employee keeps the shift."""
    if current_confirmation(shift) != ConfirmationStatus.LATE_DECLINE_PENDING:
        raise InvalidTransitionError(f"Shift {shift.id} has no late decline awaiting a decision")
    return {
        "confirmation_status": ConfirmationStatus.CONFIRMED,
        "responsible_decision": ResponsibleDecision.REJECTED_CANCEL,
        "decided_at": now,
        "decided_by_responsible_id": responsible_id,
        "decline_reason": None,
        "decline_is_late": False,
        "declined_at": None,
    }


# ---- no-show reasons ----

def decide_no_show_reason(
    shift: Shift,
    decision: Union[NoShowReasonStatus, str],
    responsible_id: Optional[int],
    now: datetime,
) -> dict:
    """
    Approve or reject the reason an employee gave for a no-show.
    Can be changed later; approver and rejecter fields never coexist.
    """
    decision = NoShowReasonStatus(decision)
    if decision == NoShowReasonStatus.PENDING:
        raise InvalidTransitionError("Decision must be approved or rejected")
    if shift.attendance_status not in (AttendanceStatus.NO_SHOW, AttendanceStatus.REPLACED):
        raise InvalidTransitionError(f"Shift {shift.id} is not a no-show")
    if not shift.no_show_reason_text or shift.staff_member_id is None:
        raise InvalidTransitionError(f"Shift {shift.id} has no submitted no-show reason")

    if decision == NoShowReasonStatus.APPROVED:
        return {
            "no_show_reason_status": NoShowReasonStatus.APPROVED,
            "no_show_approved_by": responsible_id,
            "no_show_approved_at": now,
            "no_show_rejected_by": None,
            "no_show_rejected_at": None,
        }
    return {
        "no_show_reason_status": NoShowReasonStatus.REJECTED,
        "no_show_rejected_by": responsible_id,
        "no_show_rejected_at": now,
        "no_show_approved_by": None,
        "no_show_approved_at": None,
    }


def submit_no_show_reason(shift: Shift, reason: str, now: datetime) -> dict:
    """Employee explains a no-show; puts the reason up for a decision."""
    if shift.attendance_status != AttendanceStatus.NO_SHOW:
        raise InvalidTransitionError(f"Shift {shift.id} is not a no-show")
    if not reason or not reason.strip():
        raise InvalidTransitionError("A no-show reason is required")
    return {
        "no_show_reason_text": reason,
        "no_show_reason_status": NoShowReasonStatus.PENDING,
        "no_show_reason_selected_at": now,
    }


# ---- replacement ----

def replacement_kind(shift: Shift) -> ReplacementKind:
    if shift.no_show_reason_text:
        return ReplacementKind.WITH_REASON
    return ReplacementKind.WITHOUT_REASON


def ensure_replaceable(shift: Shift, employee_id: int) -> ReplacementKind:
    """A no-show (or an already replaced shift, to change the replacement) can be handed to someone else."""
    if shift.attendance_status not in (AttendanceStatus.NO_SHOW, AttendanceStatus.REPLACED):
        raise InvalidTransitionError(f"Shift {shift.id} is not a no-show")
    if shift.staff_member_id == employee_id:
        raise InvalidTransitionError("Choose a different employee as the replacement")
    return replacement_kind(shift)


def replacement_shift_values(
    shift: Shift,
    employee: Employee,
    start: time,
    end: time,
    kind: ReplacementKind,
) -> dict:
    """
    Column values of the shift that takes over a no-show.

    Without a reason the new shift simply replaces the old one. With a reason
    it is flagged as a replacement and linked back to the original shift.
    """
    linked = kind == ReplacementKind.WITH_REASON
    return {
        "partner_id": shift.partner_id,
        "period_id": shift.period_id,
        "branch_id": shift.branch_id,
        "staff_member_id": employee.id,
        "position_id": employee.position_id,
        "date": shift.date,
        "start_time": start,
        "end_time": end,
        "total_minutes": calculate_total_minutes(start, end),
        "status": ShiftStatus.SCHEDULED,
        "confirmation_status": ConfirmationStatus.PENDING,
        "is_replacement": linked,
        "original_shift_id": shift.id if linked else None,
    }


def mark_replaced(shift: Shift, employee_id: int, now: datetime) -> dict:
    if replacement_kind(shift) != ReplacementKind.WITH_REASON:
        raise InvalidTransitionError(f"Shift {shift.id} has no no-show reason to keep it")
    return {
        "status": ShiftStatus.REPLACED,
        "attendance_status": AttendanceStatus.REPLACED,
        "replacement_status": ReplacementStatus.ACCEPTED,
        "replacement_employee_id": employee_id,
        "replacement_accepted_at": now,
    }


# ---- shift day ----

def late_minutes_at(shift: Shift, now: datetime, settings: PartnerSettings) -> int:
    start_at = shift_start_at(shift.date, shift.start_time, settings.timezone)
    late = _minutes_between(to_partner_time(now, settings.timezone), start_at) - settings.grace_minutes
    return max(0, late)


def open_shift(shift: Shift, now: datetime, settings: PartnerSettings) -> dict:
    """Employee starts (or resumes) work. The first opening fixes actual start and lateness."""
    if shift.staff_member_id is None:
        raise InvalidTransitionError(f"Shift {shift.id} has no assigned employee")
    if shift.status == ShiftStatus.OPENED:
        raise InvalidTransitionError(f"Shift {shift.id} is already opened")
    if shift.status == ShiftStatus.REPLACED:
        raise InvalidTransitionError(f"Shift {shift.id} was handed to a replacement")
    if current_confirmation(shift) in (ConfirmationStatus.DECLINED, ConfirmationStatus.LATE_DECLINE_PENDING):
        raise InvalidTransitionError(f"Shift {shift.id} was declined")

    return {
        "status": ShiftStatus.OPENED,
        "attendance_status": AttendanceStatus.OPENED,
        "actual_start_at": shift.actual_start_at or now,
        "late_minutes": shift.late_minutes or late_minutes_at(shift, now, settings),
    }


def close_shift(shift: Shift, now: datetime, settings: PartnerSettings, closed_by: str = "employee") -> dict:
    """Employee ends work. Leaving more than the threshold before the scheduled end is an early leave."""
    if shift.status != ShiftStatus.OPENED:
        raise InvalidTransitionError(f"Shift {shift.id} is not opened")

    scheduled_end = shift_end_at(shift.date, shift.start_time, shift.end_time, settings.timezone)
    minutes_early = _minutes_between(scheduled_end, to_partner_time(now, settings.timezone))

    updates = {
        "status": ShiftStatus.CLOSED,
        "attendance_status": AttendanceStatus.CLOSED,
        "actual_end_at": now,
        "closed_by": closed_by,
    }
    if minutes_early > settings.early_leave_threshold_minutes:
        updates.update({
            "early_leave_minutes": minutes_early,
            "early_leave_at": now,
            "early_leave_reset": False,
        })
    else:
        updates["early_leave_minutes"] = 0
    return updates


def reset_early_leave(shift: Shift) -> dict:
    if shift.early_leave_minutes <= 0:
        raise InvalidTransitionError(f"Shift {shift.id} has no early leave to reset")
    return {"early_leave_reset": True}


def evaluate_attendance(shift: Shift, now: datetime, settings: PartnerSettings) -> dict:
    """
    Lateness check for a scheduled shift on its own day.

    Past start + grace it is late; past start + grace + no-show threshold
    without opening it becomes a no-show. Returns {} when nothing changes.
    """
    local_now = to_partner_time(now, settings.timezone)
    if shift.status != ShiftStatus.SCHEDULED or shift.actual_start_at or shift.staff_member_id is None:
        return {}
    if shift.date != local_now.date():
        return {}

    start_at = shift_start_at(shift.date, shift.start_time, settings.timezone)
    grace_deadline = start_at + timedelta(minutes=settings.grace_minutes)
    no_show_deadline = grace_deadline + timedelta(minutes=settings.no_show_threshold_minutes)
    late = late_minutes_at(shift, now, settings)

    if local_now >= no_show_deadline:
        if shift.no_show_at:
            return {}
        return {
            "attendance_status": AttendanceStatus.NO_SHOW,
            "no_show_at": now,
            "late_minutes": late,
        }

    if local_now >= grace_deadline and shift.attendance_status != AttendanceStatus.LATE:
        return {
            "attendance_status": AttendanceStatus.LATE,
            "late_minutes": late,
        }

    return {}


def auto_close_updates(shift: Shift, now: datetime, settings: PartnerSettings) -> dict:
    """Close a shift left open past its end + auto-close offset. Returns {} when not due."""
    if not settings.reminders.close_reminder_enabled:
        return {}
    if shift.status != ShiftStatus.OPENED or shift.auto_closed:
        return {}

    scheduled_end = shift_end_at(shift.date, shift.start_time, shift.end_time, settings.timezone)
    close_at = scheduled_end + timedelta(minutes=settings.reminders.auto_close_offset_minutes)
    if to_partner_time(now, settings.timezone) < close_at:
        return {}

    return {
        "status": ShiftStatus.CLOSED,
        "attendance_status": AttendanceStatus.CLOSED,
        "actual_end_at": now,
        "auto_closed": True,
        "closed_by": "auto",
    }
