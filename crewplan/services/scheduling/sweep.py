"""
Periodic attendance sweep for one partner.

Run every few minutes by a scheduler. For today's and tomorrow's scheduled or
opened shifts it marks lateness and no-shows, sends start/late/close reminders
and auto-closes shifts left open past end + offset.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewplan.db.models.shifts import ScheduleShifts
from crewplan.services.telegram.client import BaseNotificationSink
from crewplan.services.telegram import messages

from .attendance import auto_close_updates, evaluate_attendance
from .data_loader import (
    apply_to_row,
    close_open_segments,
    load_branches,
    load_employees,
    load_partner_settings,
    shift_from_row,
)
from .notifications import NO_SHOW_EVENT, NoShowDecisionNotifier
from .periods import _utc_now, shift_end_at, shift_start_at, to_partner_time
from .types import AttendanceStatus, Employee, PartnerSettings, Shift, ShiftStatus


logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    partner_id: int
    checked: int = 0
    marked_late: int = 0
    marked_no_show: int = 0
    reminders_sent: int = 0
    auto_closed: int = 0
    errors: int = 0


def reminder_before_due(shift: Shift, now: datetime, settings: PartnerSettings) -> bool:
    if not settings.reminders.enabled or shift.status != ShiftStatus.SCHEDULED or shift.reminder_before_sent_at:
        return False
    start_at = shift_start_at(shift.date, shift.start_time, settings.timezone)
    remind_at = start_at - timedelta(minutes=settings.reminders.offset_minutes)
    local_now = to_partner_time(now, settings.timezone)
    return remind_at <= local_now < start_at


def reminder_late_due(shift: Shift, now: datetime, settings: PartnerSettings) -> bool:
    if not settings.reminders.enabled or shift.status != ShiftStatus.SCHEDULED or shift.reminder_late_sent_at:
        return False
    if shift.attendance_status == AttendanceStatus.NO_SHOW:
        return False
    local_now = to_partner_time(now, settings.timezone)
    start_at = shift_start_at(shift.date, shift.start_time, settings.timezone)
    return shift.date == local_now.date() and local_now >= start_at


def close_reminder_due(shift: Shift, now: datetime, settings: PartnerSettings) -> bool:
    if not settings.reminders.close_reminder_enabled or shift.status != ShiftStatus.OPENED:
        return False
    if shift.close_reminder_sent_at:
        return False
    local_now = to_partner_time(now, settings.timezone)
    end_at = shift_end_at(shift.date, shift.start_time, shift.end_time, settings.timezone)
    return local_now >= end_at


class AttendanceSweep:
    def __init__(self, db: Session, partner_id: int, sink: Optional[BaseNotificationSink], now: datetime):
        self.db = db
        self.partner_id = partner_id
        self.sink = sink
        self.now = now
        self.settings = load_partner_settings(db, partner_id)
        self.employees = {e.id: e for e in load_employees(db, partner_id)}
        self.branch_names = {b.id: b.name for b in load_branches(db, partner_id)}
        self.notifier = NoShowDecisionNotifier(db, sink, partner_id, self.settings.bot_token)
        self.report = SweepReport(partner_id=partner_id)

    def _rows(self) -> list[ScheduleShifts]:
        today = to_partner_time(self.now, self.settings.timezone).date()
        # yesterday is included so overnight shifts can still be auto-closed
        stmt = select(ScheduleShifts).where(
            and_(
                ScheduleShifts.partner_id == self.partner_id,
                ScheduleShifts.date >= today - timedelta(days=1),
                ScheduleShifts.date <= today + timedelta(days=1),
                ScheduleShifts.status.in_([ShiftStatus.SCHEDULED, ShiftStatus.OPENED]),
            )
        )
        return self.db.execute(stmt).scalars().all()

    def _send(self, employee: Optional[Employee], text: str) -> bool:
        if self.sink is None or not self.settings.bot_token or employee is None or not employee.telegram_user_id:
            return False
        result = self.sink.send_message(self.settings.bot_token, employee.telegram_user_id, text)
        if not result.success:
            logger.error(f"Failed to send reminder to employee {employee.id}: {result.error}")
            return False
        self.report.reminders_sent += 1
        return True

    def run(self) -> SweepReport:
        for row in self._rows():
            self.report.checked += 1
            try:
                self._process(row)
                self.db.commit()
            except SQLAlchemyError as e:
                self.db.rollback()
                self.report.errors += 1
                logger.error(f"Attendance sweep failed for shift {row.id}: {e}")

        logger.info(
            f"Attendance sweep for partner {self.partner_id}: checked {self.report.checked}, "
            f"late {self.report.marked_late}, no-show {self.report.marked_no_show}, "
            f"reminders {self.report.reminders_sent}, auto-closed {self.report.auto_closed}"
        )
        return self.report

    def _process(self, row: ScheduleShifts) -> None:
        shift = shift_from_row(row)
        employee = self.employees.get(shift.staff_member_id) if shift.staff_member_id is not None else None
        branch_name = self.branch_names.get(shift.branch_id)

        updates = evaluate_attendance(shift, self.now, self.settings)
        if updates:
            apply_to_row(row, updates)
            if updates.get("attendance_status") == AttendanceStatus.NO_SHOW:
                self.report.marked_no_show += 1
                if not row.no_show_notified_at:
                    self.notifier.send_notice(
                        shift.staff_member_id,
                        NO_SHOW_EVENT,
                        "Missed shift",
                        messages.no_show_notice(branch_name, shift.start_time),
                        shift_id=shift.id,
                        related_employee_id=shift.staff_member_id,
                    )
                    row.no_show_notified_at = self.now
            else:
                self.report.marked_late += 1
            shift = shift_from_row(row)

        if reminder_before_due(shift, self.now, self.settings):
            text = messages.reminder_before_message(branch_name, shift.start_time, self.settings.reminders.comment)
            if self._send(employee, text):
                row.reminder_before_sent_at = self.now

        if reminder_late_due(shift, self.now, self.settings):
            if self._send(employee, messages.reminder_late_message(branch_name, shift.start_time)):
                row.reminder_late_sent_at = self.now

        if close_reminder_due(shift, self.now, self.settings):
            if self._send(employee, messages.close_reminder_message(branch_name, shift.end_time)):
                row.close_reminder_sent_at = self.now

        closing = auto_close_updates(shift, self.now, self.settings)
        if closing:
            close_open_segments(self.db, shift.id, self.now)
            apply_to_row(row, closing)
            self.report.auto_closed += 1


def run_attendance_sweep(
    db: Session,
    partner_id: int,
    sink: Optional[BaseNotificationSink] = None,
    now: Optional[datetime] = None,
) -> SweepReport:
    return AttendanceSweep(db, partner_id, sink, now or _utc_now()).run()
