"""
Data loader for the schedule engine.
Fetches rows from the database and converts them to internal types.
"""

import dataclasses
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from crewplan.core.config import settings as app_settings
from crewplan.db.models.branches import Branches, BranchStatus
from crewplan.db.models.branch_schedule_settings import BranchScheduleSettings
from crewplan.db.models.positions import Positions
from crewplan.db.models.employees import Employees
from crewplan.db.models.schedule_periods import SchedulePeriods
from crewplan.db.models.shifts import ScheduleShifts
from crewplan.db.models.work_segments import WorkSegments
from crewplan.db.models.partner_settings import PartnerSettings as PartnerSettingsRow

from .periods import format_period_label
from .types import (
    Branch,
    BranchSettings,
    Employee,
    PartnerSettings,
    Position,
    ReminderSettings,
    Shift,
    ViewMode,
)


_SHIFT_FIELDS = [f.name for f in dataclasses.fields(Shift)]


def shift_from_row(row: ScheduleShifts) -> Shift:
    return Shift(**{name: getattr(row, name) for name in _SHIFT_FIELDS})


def apply_to_row(row, updates: dict) -> None:
    for name, value in updates.items():
        setattr(row, name, value)


def load_branches(db: Session, partner_id: int) -> list[Branch]:
    """Active branches of a partner, in id order (display order is applied later)."""
    stmt = (
        select(Branches)
        .where(and_(Branches.partner_id == partner_id, Branches.status == BranchStatus.ACTIVE))
        .order_by(Branches.id)
    )
    rows = db.execute(stmt).scalars().all()
    return [Branch(id=r.id, name=r.name) for r in rows]


def load_branch_settings(db: Session, partner_id: int) -> list[BranchSettings]:
    stmt = select(BranchScheduleSettings).where(BranchScheduleSettings.partner_id == partner_id)
    rows = db.execute(stmt).scalars().all()
    return [
        BranchSettings(
            branch_id=r.branch_id,
            min_staff_per_day=r.min_staff_per_day,
            display_order=r.display_order,
        )
        for r in rows
    ]


def load_positions(db: Session, partner_id: int) -> list[Position]:
    stmt = select(Positions).where(Positions.partner_id == partner_id).order_by(Positions.name)
    rows = db.execute(stmt).scalars().all()
    return [Position(id=r.id, name=r.name, is_visible=r.is_visible) for r in rows]


def load_employees(db: Session, partner_id: int) -> list[Employee]:
    """All employees of a partner, fired ones included so their old shifts still render."""
    stmt = select(Employees).where(Employees.partner_id == partner_id).order_by(Employees.first_name)
    rows = db.execute(stmt).scalars().all()
    return [
        Employee(
            id=r.id,
            first_name=r.first_name,
            last_name=r.last_name,
            position_id=r.position_id,
            branch_id=r.branch_id,
            current_status=r.current_status,
            dismissal_date=r.dismissal_date,
            is_active=r.is_active,
            photo_url=r.photo_url,
            telegram_user_id=r.telegram_user_id,
        )
        for r in rows
    ]


def load_partner_settings(db: Session, partner_id: int) -> PartnerSettings:
    """Partner knobs; falls back to defaults when the partner has no settings row yet."""
    row = db.execute(
        select(PartnerSettingsRow).where(PartnerSettingsRow.partner_id == partner_id)
    ).scalar_one_or_none()

    if row is None:
        return PartnerSettings(
            partner_id=partner_id,
            timezone=app_settings.DEFAULT_TIMEZONE,
            planning_horizon_days=app_settings.DEFAULT_PLANNING_HORIZON_DAYS,
        )

    return PartnerSettings(
        partner_id=partner_id,
        timezone=row.timezone or app_settings.DEFAULT_TIMEZONE,
        planning_horizon_days=row.planning_horizon_days,
        no_show_threshold_minutes=row.no_show_threshold_minutes,
        grace_minutes=row.shift_grace_minutes,
        early_leave_threshold_minutes=row.early_leave_threshold_minutes,
        late_cancel_deadline_hours=row.late_cancel_deadline_hours,
        reminders=ReminderSettings(
            enabled=row.shift_reminders_enabled,
            offset_minutes=row.shift_reminder_offset_minutes,
            comment=row.shift_reminder_comment,
            close_reminder_enabled=row.shift_close_reminder_enabled,
            auto_close_offset_minutes=row.shift_auto_close_offset_minutes,
        ),
        bot_token=row.employee_bot_token,
    )


def load_shifts(
    db: Session,
    partner_id: int,
    start: date,
    end: date,
    branch_id: Optional[int] = None,
) -> list[Shift]:
    """Shifts of a partner with date in [start, end], optionally for one branch."""
    conditions = [
        ScheduleShifts.partner_id == partner_id,
        ScheduleShifts.date >= start,
        ScheduleShifts.date <= end,
    ]
    if branch_id is not None:
        conditions.append(ScheduleShifts.branch_id == branch_id)

    stmt = select(ScheduleShifts).where(and_(*conditions)).order_by(ScheduleShifts.date, ScheduleShifts.start_time)
    rows = db.execute(stmt).scalars().all()
    return [shift_from_row(r) for r in rows]


def get_shift_row(
    db: Session,
    partner_id: int,
    employee_id: int,
    branch_id: int,
    shift_date: date,
) -> Optional[ScheduleShifts]:
    stmt = select(ScheduleShifts).where(
        and_(
            ScheduleShifts.partner_id == partner_id,
            ScheduleShifts.staff_member_id == employee_id,
            ScheduleShifts.branch_id == branch_id,
            ScheduleShifts.date == shift_date,
        )
    )
    return db.execute(stmt).scalar_one_or_none()


def ensure_period_exists(
    db: Session,
    partner_id: int,
    view_mode: Union[ViewMode, str],
    date_start: date,
    date_end: date,
    anchor_date: date,
) -> int:
    """Id of the period for this exact range, creating it on first view."""
    view_mode = ViewMode(view_mode)
    stmt = select(SchedulePeriods).where(
        and_(
            SchedulePeriods.partner_id == partner_id,
            SchedulePeriods.type == view_mode,
            SchedulePeriods.date_start == date_start,
            SchedulePeriods.date_end == date_end,
        )
    )
    period = db.execute(stmt).scalar_one_or_none()
    if period:
        return period.id

    period = SchedulePeriods(
        partner_id=partner_id,
        type=view_mode,
        date_start=date_start,
        date_end=date_end,
        name=format_period_label(view_mode, anchor_date),
    )
    db.add(period)
    db.commit()
    return period.id


def close_open_segments(db: Session, shift_id: int, now: datetime) -> int:
    """Set the end of every still-open work segment of a shift. Does not commit."""
    stmt = select(WorkSegments).where(
        and_(WorkSegments.shift_id == shift_id, WorkSegments.segment_end_at.is_(None))
    )
    segments = db.execute(stmt).scalars().all()
    for segment in segments:
        segment.segment_end_at = now
    return len(segments)


def open_segment(db: Session, shift_id: int, now: datetime) -> WorkSegments:
    segment = WorkSegments(shift_id=shift_id, segment_start_at=now)
    db.add(segment)
    return segment
