from datetime import time, timedelta

from sqlalchemy import select

from crewplan.db.models import EmployeeEvents, ScheduleShifts, ShiftStatus, WorkSegments
from crewplan.services.scheduling.sweep import (
    close_reminder_due,
    reminder_before_due,
    reminder_late_due,
    run_attendance_sweep,
)
from crewplan.services.scheduling.types import AttendanceStatus

from conftest import PARTNER_ID, RecordingSink, get_test_monday, local_dt, make_shift


MONDAY = get_test_monday()


def add_shift(db, seed, employee_id=None, day=MONDAY, start=time(9, 0), end=time(18, 0), **kwargs):
    row = ScheduleShifts(
        partner_id=PARTNER_ID, branch_id=seed.branch_a,
        staff_member_id=seed.anna if employee_id is None else employee_id,
        position_id=seed.position_id, date=day, start_time=start, end_time=end, **kwargs,
    )
    db.add(row)
    db.commit()
    return row


class TestReminderChecks:

    def test_before_reminder_window(self, partner_settings):
        shift = make_shift(1, 1, MONDAY, time(9, 0), time(18, 0))
        assert not reminder_before_due(shift, local_dt(MONDAY, 8, 44), partner_settings)
        assert reminder_before_due(shift, local_dt(MONDAY, 8, 45), partner_settings)
        assert not reminder_before_due(shift, local_dt(MONDAY, 9, 0), partner_settings)

    def test_before_reminder_sent_once(self, partner_settings):
        shift = make_shift(1, 1, MONDAY, time(9, 0), time(18, 0), reminder_before_sent_at=local_dt(MONDAY, 8, 45))
        assert not reminder_before_due(shift, local_dt(MONDAY, 8, 50), partner_settings)

    def test_disabled_reminders(self, partner_settings):
        partner_settings.reminders.enabled = False
        shift = make_shift(1, 1, MONDAY, time(9, 0), time(18, 0))
        assert not reminder_before_due(shift, local_dt(MONDAY, 8, 50), partner_settings)
        assert not reminder_late_due(shift, local_dt(MONDAY, 9, 10), partner_settings)

    def test_late_reminder_skips_no_shows(self, partner_settings):
        shift = make_shift(1, 1, MONDAY, time(9, 0), time(18, 0), attendance_status=AttendanceStatus.NO_SHOW)
        assert not reminder_late_due(shift, local_dt(MONDAY, 9, 40), partner_settings)

    def test_close_reminder_after_end(self, partner_settings):
        shift = make_shift(1, 1, MONDAY, time(9, 0), time(18, 0), status=ShiftStatus.OPENED)
        assert not close_reminder_due(shift, local_dt(MONDAY, 17, 59), partner_settings)
        assert close_reminder_due(shift, local_dt(MONDAY, 18, 0), partner_settings)


class TestAttendanceSweep:

    def test_reminder_before_start(self, db, seed, sink):
        row = add_shift(db, seed)

        report = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 8, 50))
        assert report.checked == 1
        assert report.reminders_sent == 1
        assert "Reminder: you have a shift" in sink.sent[0][2]
        assert row.reminder_before_sent_at is not None

        again = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 8, 55))
        assert again.reminders_sent == 0

    def test_failed_send_is_retried(self, db, seed):
        row = add_shift(db, seed)
        report = run_attendance_sweep(db, PARTNER_ID, RecordingSink(fail_sends=True), now=local_dt(MONDAY, 8, 50))

        assert report.reminders_sent == 0
        assert row.reminder_before_sent_at is None

    def test_late_then_no_show(self, db, seed, sink):
        row = add_shift(db, seed)

        late = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 9, 10))
        assert late.marked_late == 1
        assert row.attendance_status == AttendanceStatus.LATE
        assert row.late_minutes == 5
        assert "Shift not opened" in sink.sent[-1][2]

        no_show = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 9, 40))
        assert no_show.marked_no_show == 1
        assert row.attendance_status == AttendanceStatus.NO_SHOW
        assert row.no_show_notified_at is not None
        assert "You did not start your shift" in sink.sent[-1][2]

        run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 9, 50))
        notices = db.execute(
            select(EmployeeEvents).where(EmployeeEvents.event_type == "no_show")
        ).scalars().all()
        assert len(notices) == 1
        assert notices[0].telegram_message_id is not None

    def test_auto_close_after_offset(self, db, seed, sink):
        row = add_shift(db, seed, status=ShiftStatus.OPENED, actual_start_at=local_dt(MONDAY, 9, 0))
        db.add(WorkSegments(shift_id=row.id, segment_start_at=local_dt(MONDAY, 9, 0)))
        db.commit()

        early = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 18, 10))
        assert early.auto_closed == 0
        assert early.reminders_sent == 1
        assert "Please don't forget to close the shift" in sink.sent[-1][2]

        report = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 18, 30))
        assert report.auto_closed == 1
        assert row.status == ShiftStatus.CLOSED
        assert row.closed_by == "auto"
        segment = db.execute(select(WorkSegments).where(WorkSegments.shift_id == row.id)).scalar_one()
        assert segment.segment_end_at is not None

    def test_overnight_shift_from_yesterday_is_closed(self, db, seed, sink):
        yesterday = MONDAY - timedelta(days=1)
        row = add_shift(db, seed, day=yesterday, start=time(22, 0), end=time(6, 0), status=ShiftStatus.OPENED)

        report = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 7, 0))

        assert report.auto_closed == 1
        assert row.auto_closed is True

    def test_other_days_and_unassigned_shifts(self, db, seed, sink):
        db.add(ScheduleShifts(
            partner_id=PARTNER_ID, branch_id=seed.branch_a, staff_member_id=None,
            date=MONDAY, start_time=time(9, 0), end_time=time(18, 0),
        ))
        db.commit()
        add_shift(db, seed, day=MONDAY + timedelta(days=5))

        report = run_attendance_sweep(db, PARTNER_ID, sink, now=local_dt(MONDAY, 10, 0))

        assert report.checked == 1
        assert report.marked_late == 0
        assert report.marked_no_show == 0
        assert sink.sent == []
