import dataclasses
import pytest
from datetime import time, timedelta

from crewplan.services.scheduling.attendance import (
    accept_late_cancel,
    auto_close_updates,
    can_transition,
    close_shift,
    confirm_shift,
    current_confirmation,
    decide_no_show_reason,
    decline_shift,
    ensure_replaceable,
    evaluate_attendance,
    is_late_decline,
    mark_replaced,
    open_shift,
    reject_late_cancel,
    replacement_kind,
    replacement_shift_values,
    reset_early_leave,
    submit_no_show_reason,
    time_edit_updates,
)
from crewplan.services.scheduling.errors import InvalidTransitionError
from crewplan.services.scheduling.types import (
    AttendanceStatus,
    ConfirmationStatus,
    Employee,
    NoShowReasonStatus,
    ReplacementKind,
    ReplacementStatus,
    ResponsibleDecision,
    ShiftStatus,
)

from conftest import TIMEZONE, get_test_monday, local_dt, make_shift


MONDAY = get_test_monday()


def day_shift(**kwargs):
    kwargs.setdefault("id", 10)
    return make_shift(1, 1, MONDAY, time(9, 0), time(18, 0), **kwargs)


def applied(shift, updates):
    return dataclasses.replace(shift, **updates)


class TestConfirmationTransitions:

    def test_missing_status_behaves_as_pending(self):
        assert current_confirmation(day_shift()) == ConfirmationStatus.PENDING

    def test_declined_is_terminal(self):
        for target in ConfirmationStatus:
            assert not can_transition(ConfirmationStatus.DECLINED, target)

    def test_confirm_pending_shift(self):
        now = local_dt(MONDAY, 7, 0)
        updates = confirm_shift(day_shift(confirmation_status=ConfirmationStatus.PENDING), now)
        assert updates["confirmation_status"] == ConfirmationStatus.CONFIRMED
        assert updates["confirmed_at"] == now

    def test_confirming_twice_is_rejected(self):
        with pytest.raises(InvalidTransitionError):
            confirm_shift(day_shift(confirmation_status=ConfirmationStatus.CONFIRMED), local_dt(MONDAY, 7, 0))


class TestDecline:

    def test_decline_within_deadline_is_late(self, partner_settings):
        now = local_dt(MONDAY, 7, 0)
        shift = day_shift(confirmation_status=ConfirmationStatus.CONFIRMED)

        assert is_late_decline(shift, now, partner_settings)
        updates = decline_shift(shift, "sick", now, partner_settings)

        assert updates["confirmation_status"] == ConfirmationStatus.LATE_DECLINE_PENDING
        assert updates["decline_is_late"] is True
        # the employee keeps the shift until a responsible decides
        assert "staff_member_id" not in updates

    def test_early_decline_releases_the_shift(self, partner_settings):
        now = local_dt(MONDAY - timedelta(days=2), 9, 0)
        updates = decline_shift(day_shift(), "vacation", now, partner_settings)

        assert updates["confirmation_status"] == ConfirmationStatus.DECLINED
        assert updates["decline_is_late"] is False
        assert updates["staff_member_id"] is None

    def test_reason_is_required(self, partner_settings):
        with pytest.raises(InvalidTransitionError):
            decline_shift(day_shift(), "   ", local_dt(MONDAY, 7, 0), partner_settings)

    def test_accept_late_cancel(self):
        shift = day_shift(confirmation_status=ConfirmationStatus.LATE_DECLINE_PENDING)
        updates = accept_late_cancel(shift, 7, local_dt(MONDAY, 7, 30))

        assert updates["confirmation_status"] == ConfirmationStatus.DECLINED
        assert updates["responsible_decision"] == ResponsibleDecision.APPROVED_CANCEL
        assert updates["decided_by_responsible_id"] == 7
        assert updates["staff_member_id"] is None

    def test_reject_late_cancel_keeps_employee(self):
        shift = day_shift(
            confirmation_status=ConfirmationStatus.LATE_DECLINE_PENDING,
            decline_reason="sick",
            decline_is_late=True,
        )
        result = applied(shift, reject_late_cancel(shift, 7, local_dt(MONDAY, 7, 30)))

        assert result.confirmation_status == ConfirmationStatus.CONFIRMED
        assert result.responsible_decision == ResponsibleDecision.REJECTED_CANCEL
        assert result.staff_member_id == 1
        assert result.decline_reason is None
        assert result.decline_is_late is False

    def test_late_cancel_decision_needs_pending_request(self):
        with pytest.raises(InvalidTransitionError):
            accept_late_cancel(day_shift(confirmation_status=ConfirmationStatus.CONFIRMED), 7, local_dt(MONDAY, 7, 0))


class TestNoShowReason:

    def no_show(self, **kwargs):
        kwargs.setdefault("attendance_status", AttendanceStatus.NO_SHOW)
        kwargs.setdefault("no_show_reason_text", "Bus broke down")
        return day_shift(**kwargs)

    def test_submit_requires_no_show(self):
        with pytest.raises(InvalidTransitionError):
            submit_no_show_reason(day_shift(), "Bus broke down", local_dt(MONDAY, 10, 0))

    def test_submit_sets_pending(self):
        updates = submit_no_show_reason(self.no_show(no_show_reason_text=None), "Bus", local_dt(MONDAY, 10, 0))
        assert updates["no_show_reason_status"] == NoShowReasonStatus.PENDING
        assert updates["no_show_reason_text"] == "Bus"

    def test_decision_is_reversible(self):
        shift = self.no_show()
        t1, t2, t3 = (local_dt(MONDAY, 11, m) for m in (0, 10, 20))

        shift = applied(shift, decide_no_show_reason(shift, "approved", 7, t1))
        assert shift.no_show_reason_status == NoShowReasonStatus.APPROVED
        assert (shift.no_show_approved_by, shift.no_show_approved_at) == (7, t1)
        assert shift.no_show_rejected_by is None and shift.no_show_rejected_at is None

        shift = applied(shift, decide_no_show_reason(shift, NoShowReasonStatus.REJECTED, 8, t2))
        assert shift.no_show_reason_status == NoShowReasonStatus.REJECTED
        assert (shift.no_show_rejected_by, shift.no_show_rejected_at) == (8, t2)
        assert shift.no_show_approved_by is None and shift.no_show_approved_at is None

        shift = applied(shift, decide_no_show_reason(shift, "approved", 7, t3))
        assert shift.no_show_reason_status == NoShowReasonStatus.APPROVED
        assert shift.no_show_approved_at == t3
        assert shift.no_show_rejected_by is None

    def test_decision_needs_a_reason(self):
        with pytest.raises(InvalidTransitionError):
            decide_no_show_reason(self.no_show(no_show_reason_text=None), "approved", 7, local_dt(MONDAY, 11, 0))

    def test_pending_is_not_a_decision(self):
        with pytest.raises(InvalidTransitionError):
            decide_no_show_reason(self.no_show(), "pending", 7, local_dt(MONDAY, 11, 0))


class TestOpenClose:

    def test_open_records_lateness_after_grace(self, partner_settings):
        now = local_dt(MONDAY, 9, 20)
        updates = open_shift(day_shift(), now, partner_settings)

        assert updates["status"] == ShiftStatus.OPENED
        assert updates["attendance_status"] == AttendanceStatus.OPENED
        assert updates["actual_start_at"] == now
        assert updates["late_minutes"] == 15

    def test_reopening_keeps_first_start(self, partner_settings):
        first = local_dt(MONDAY, 8, 55)
        shift = day_shift(status=ShiftStatus.CLOSED, actual_start_at=first)
        updates = open_shift(shift, local_dt(MONDAY, 12, 0), partner_settings)
        assert updates["actual_start_at"] == first

    def test_open_unassigned_or_declined_fails(self, partner_settings):
        now = local_dt(MONDAY, 9, 0)
        with pytest.raises(InvalidTransitionError):
            open_shift(make_shift(None, 1, MONDAY, time(9, 0), time(18, 0)), now, partner_settings)
        with pytest.raises(InvalidTransitionError):
            open_shift(day_shift(confirmation_status=ConfirmationStatus.DECLINED), now, partner_settings)
        with pytest.raises(InvalidTransitionError):
            open_shift(day_shift(status=ShiftStatus.OPENED), now, partner_settings)

    def test_close_early_records_early_leave(self, partner_settings):
        shift = day_shift(status=ShiftStatus.OPENED)
        updates = close_shift(shift, local_dt(MONDAY, 17, 30), partner_settings)

        assert updates["status"] == ShiftStatus.CLOSED
        assert updates["early_leave_minutes"] == 30
        assert updates["early_leave_reset"] is False
        assert applied(shift, updates).has_early_leave

    def test_close_within_threshold_is_not_early(self, partner_settings):
        updates = close_shift(day_shift(status=ShiftStatus.OPENED), local_dt(MONDAY, 17, 57), partner_settings)
        assert updates["early_leave_minutes"] == 0

    def test_close_requires_opened(self, partner_settings):
        with pytest.raises(InvalidTransitionError):
            close_shift(day_shift(), local_dt(MONDAY, 18, 0), partner_settings)

    def test_reset_early_leave(self):
        shift = day_shift(early_leave_minutes=30)
        assert not applied(shift, reset_early_leave(shift)).has_early_leave
        with pytest.raises(InvalidTransitionError):
            reset_early_leave(day_shift())


class TestEvaluateAttendance:

    def test_within_grace_nothing_changes(self, partner_settings):
        assert evaluate_attendance(day_shift(), local_dt(MONDAY, 9, 3), partner_settings) == {}

    def test_late_after_grace(self, partner_settings):
        updates = evaluate_attendance(day_shift(), local_dt(MONDAY, 9, 10), partner_settings)
        assert updates == {"attendance_status": AttendanceStatus.LATE, "late_minutes": 5}

    def test_no_show_after_threshold(self, partner_settings):
        now = local_dt(MONDAY, 9, 35)
        updates = evaluate_attendance(day_shift(), now, partner_settings)
        assert updates["attendance_status"] == AttendanceStatus.NO_SHOW
        assert updates["no_show_at"] == now
        assert updates["late_minutes"] == 30

    def test_no_show_is_marked_once(self, partner_settings):
        shift = day_shift(attendance_status=AttendanceStatus.NO_SHOW, no_show_at=local_dt(MONDAY, 9, 35))
        assert evaluate_attendance(shift, local_dt(MONDAY, 10, 0), partner_settings) == {}

    def test_other_days_and_started_shifts_are_skipped(self, partner_settings):
        now = local_dt(MONDAY, 12, 0)
        tomorrow = make_shift(1, 1, MONDAY + timedelta(days=1), time(9, 0), time(18, 0))
        started = day_shift(actual_start_at=local_dt(MONDAY, 9, 0))
        unassigned = make_shift(None, 1, MONDAY, time(9, 0), time(18, 0))

        for shift in (tomorrow, started, unassigned):
            assert evaluate_attendance(shift, now, partner_settings) == {}


class TestAutoClose:

    def test_closes_after_offset(self, partner_settings):
        shift = day_shift(status=ShiftStatus.OPENED)
        assert auto_close_updates(shift, local_dt(MONDAY, 18, 29), partner_settings) == {}

        updates = auto_close_updates(shift, local_dt(MONDAY, 18, 30), partner_settings)
        assert updates["status"] == ShiftStatus.CLOSED
        assert updates["auto_closed"] is True
        assert updates["closed_by"] == "auto"

    def test_disabled_close_reminders_skip_auto_close(self, partner_settings):
        partner_settings.reminders.close_reminder_enabled = False
        shift = day_shift(status=ShiftStatus.OPENED)
        assert auto_close_updates(shift, local_dt(MONDAY, 20, 0), partner_settings) == {}


class TestTimeEdit:

    def test_edit_before_start_resets_markers(self):
        tomorrow = MONDAY + timedelta(days=1)
        shift = make_shift(
            1, 1, tomorrow, time(9, 0), time(18, 0),
            attendance_status=AttendanceStatus.NO_SHOW,
            reminder_before_sent_at=local_dt(MONDAY, 8, 45),
            late_minutes=40,
        )
        plan = time_edit_updates(shift, time(10, 0), time(18, 0), local_dt(MONDAY, 9, 0), TIMEZONE)

        assert plan.purge_no_show_notifications
        assert plan.updates["attendance_status"] is None
        assert plan.updates["reminder_before_sent_at"] is None
        assert plan.updates["late_minutes"] == 0
        assert plan.updates["total_minutes"] == 480

    def test_unchanged_window_keeps_markers(self):
        shift = make_shift(1, 1, MONDAY + timedelta(days=1), time(9, 0), time(18, 0),
                           reminder_before_sent_at=local_dt(MONDAY, 8, 45))
        plan = time_edit_updates(shift, time(9, 0), time(18, 0), local_dt(MONDAY, 9, 0), TIMEZONE)

        assert not plan.purge_no_show_notifications
        assert "reminder_before_sent_at" not in plan.updates

    def test_started_shift_keeps_markers(self):
        shift = day_shift(attendance_status=AttendanceStatus.LATE, late_minutes=10)
        plan = time_edit_updates(shift, time(8, 0), time(17, 0), local_dt(MONDAY, 9, 20), TIMEZONE)
        assert "attendance_status" not in plan.updates
        assert plan.updates["start_time"] == time(8, 0)


class TestReplacement:

    boris = Employee(id=2, first_name="Boris", position_id=4)

    def no_show(self, **kwargs):
        kwargs.setdefault("attendance_status", AttendanceStatus.NO_SHOW)
        return day_shift(**kwargs)

    def test_kind_follows_submitted_reason(self):
        assert replacement_kind(self.no_show()) == ReplacementKind.WITHOUT_REASON
        assert replacement_kind(self.no_show(no_show_reason_text="Flu")) == ReplacementKind.WITH_REASON

    def test_only_no_shows_are_replaceable(self):
        with pytest.raises(InvalidTransitionError):
            ensure_replaceable(day_shift(), 2)
        with pytest.raises(InvalidTransitionError):
            ensure_replaceable(self.no_show(), 1)
        replaced = self.no_show(attendance_status=AttendanceStatus.REPLACED, no_show_reason_text="Flu")
        assert ensure_replaceable(replaced, 2) == ReplacementKind.WITH_REASON

    def test_values_without_reason_are_a_plain_shift(self):
        values = replacement_shift_values(self.no_show(), self.boris, time(10, 0), time(18, 0), ReplacementKind.WITHOUT_REASON)

        assert values["staff_member_id"] == 2
        assert values["position_id"] == 4
        assert values["total_minutes"] == 480
        assert values["status"] == ShiftStatus.SCHEDULED
        assert values["is_replacement"] is False
        assert values["original_shift_id"] is None

    def test_values_with_reason_link_to_original(self):
        shift = self.no_show(no_show_reason_text="Flu")
        values = replacement_shift_values(shift, self.boris, time(9, 0), time(18, 0), ReplacementKind.WITH_REASON)

        assert values["is_replacement"] is True
        assert values["original_shift_id"] == shift.id
        assert values["date"] == MONDAY

    def test_mark_replaced(self):
        now = local_dt(MONDAY, 10, 0)
        updates = mark_replaced(self.no_show(no_show_reason_text="Flu"), 2, now)

        assert updates["status"] == ShiftStatus.REPLACED
        assert updates["attendance_status"] == AttendanceStatus.REPLACED
        assert updates["replacement_status"] == ReplacementStatus.ACCEPTED
        assert updates["replacement_employee_id"] == 2
        assert updates["replacement_accepted_at"] == now

    def test_mark_replaced_needs_a_reason(self):
        with pytest.raises(InvalidTransitionError):
            mark_replaced(self.no_show(), 2, local_dt(MONDAY, 10, 0))

    def test_replaced_shift_cannot_be_opened(self, partner_settings):
        shift = self.no_show(no_show_reason_text="Flu")
        shift = applied(shift, mark_replaced(shift, 2, local_dt(MONDAY, 10, 0)))
        with pytest.raises(InvalidTransitionError):
            open_shift(shift, local_dt(MONDAY, 10, 5), partner_settings)
