"""
Schedule session: the in-memory state of one partner's schedule grid and every
operation that mutates it.

Each mutating operation validates, writes, and then reloads the full shift set
for the effective range, whatever the outcome. Failures are reported as
OperationResult / CopyResult values rather than raised.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Union

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crewplan.db.models.branch_schedule_settings import BranchScheduleSettings
from crewplan.db.models.employee_events import EmployeeEvents
from crewplan.db.models.shifts import ScheduleShifts, UNIQUE_SHIFT_CONSTRAINT
from crewplan.services.telegram.client import BaseNotificationSink

from . import attendance
from .change_feed import ChangeFeed
from .conflicts import check_shift_conflict
from .coverage import (
    calculate_branch_day_minutes,
    calculate_branch_total_minutes,
    calculate_employee_total_minutes,
    check_branch_problems,
    check_horizon_coverage,
)
from .data_loader import (
    apply_to_row,
    close_open_segments,
    ensure_period_exists,
    get_shift_row,
    load_branch_settings,
    load_branches,
    load_employees,
    load_partner_settings,
    load_positions,
    load_shifts,
    open_segment,
    shift_from_row,
)
from .errors import (
    BranchNotFoundError,
    EmployeeDismissedError,
    PeriodNotInitializedError,
    ScheduleError,
    ShiftAlreadyExistsError,
    ShiftConflictError,
    ShiftNotFoundError,
)
from .notifications import NoShowDecisionNotifier, REASON_SELECTED_EVENT
from .ordering import (
    available_employees,
    group_branch_employees,
    order_branches,
    reorder_branch_ids,
)
from .period_copy import copy_summary, plan_period_copy
from .periods import (
    _utc_now,
    build_days_range,
    calculate_total_minutes,
    effective_load_range,
    parse_time,
    previous_period_bounds,
    shift_anchor,
    today_in_timezone,
)
from .types import (
    Branch,
    BranchSettings,
    ConfirmationStatus,
    CopyResult,
    DayColumn,
    Employee,
    HorizonCoverage,
    NoShowReasonStatus,
    OperationResult,
    PartnerSettings,
    Position,
    ReplacementKind,
    RosterEntry,
    Shift,
    ShiftStatus,
    ViewMode,
)


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Failed to save changes. Please try again"

WATCHED_TABLES = {"schedule_shifts", "work_segments", "branch_schedule_settings", "partner_settings"}


def is_unique_shift_violation(error: IntegrityError) -> bool:
    """True when the (employee, branch, date) key was violated."""
    text = str(error.orig) if error.orig is not None else str(error)
    if UNIQUE_SHIFT_CONSTRAINT in text:
        return True
    # sqlite reports the columns instead of the constraint name
    return "UNIQUE constraint failed: schedule_shifts." in text


class ScheduleSession:
    """
    One partner's schedule as seen by one editor.

    Usage:
        session = ScheduleSession(db, partner_id=1, sink=TelegramBotSink())
        session.load()
        result = session.save_shift(employee_id, branch_id, position_id, day, "09:00", "18:00")
    """

    def __init__(
        self,
        db: Session,
        partner_id: int,
        sink: Optional[BaseNotificationSink] = None,
        feed: Optional[ChangeFeed] = None,
        clock: Optional[Callable[[], datetime]] = None,
        actor_id: Optional[int] = None,
        view_mode: Union[ViewMode, str] = ViewMode.WEEK,
        anchor_date: Optional[date] = None,
    ):
        self.db = db
        self.partner_id = partner_id
        self.sink = sink
        self.clock = clock or _utc_now
        self.actor_id = actor_id

        self.settings = PartnerSettings(partner_id=partner_id)
        self.view_mode = ViewMode(view_mode)
        self.anchor_date = anchor_date
        self.days: list[DayColumn] = []
        self.period_id: Optional[int] = None

        self.branches: list[Branch] = []
        self.branch_settings: list[BranchSettings] = []
        self.positions: list[Position] = []
        self.employees: list[Employee] = []
        self.shifts: list[Shift] = []
        self.loaded_on: Optional[date] = None

        # employees added to a branch row before they have any shift there
        self.pending_roster: dict[int, list[RosterEntry]] = {}

        self.subscription = feed.subscribe(WATCHED_TABLES, partner_id) if feed is not None else None

    # ---- clock / view ----

    def now(self) -> datetime:
        return self.clock()

    @property
    def today(self) -> date:
        return today_in_timezone(self.settings.timezone, self.now())

    @property
    def view_start(self) -> date:
        return self.days[0].date

    @property
    def view_end(self) -> date:
        return self.days[-1].date

    @property
    def branch_names(self) -> dict[int, str]:
        return {b.id: b.name for b in self.branches}

    @property
    def view_shifts(self) -> list[Shift]:
        return [s for s in self.shifts if self.view_start <= s.date <= self.view_end]

    def _notifier(self) -> NoShowDecisionNotifier:
        return NoShowDecisionNotifier(self.db, self.sink, self.partner_id, self.settings.bot_token)

    # ---- loading ----

    def load(self) -> bool:
        """Initial load: settings, reference data, period, shifts."""
        self.refresh_settings()
        try:
            self.branches = load_branches(self.db, self.partner_id)
            self.positions = load_positions(self.db, self.partner_id)
            self.employees = load_employees(self.db, self.partner_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load reference data for partner {self.partner_id}: {e}")
            return False
        if self.anchor_date is None:
            self.anchor_date = self.today
        self.set_view(self.view_mode, self.anchor_date)
        return True

    def set_view(self, view_mode: Union[ViewMode, str], anchor_date: date) -> None:
        self.view_mode = ViewMode(view_mode)
        self.anchor_date = anchor_date
        self.days = build_days_range(self.view_mode, anchor_date)
        self.pending_roster = {}
        self.ensure_period()
        self.reload()

    def navigate(self, step: int) -> None:
        """Move the view by whole weeks or months."""
        self.set_view(self.view_mode, shift_anchor(self.view_mode, self.anchor_date, step))

    def go_to_today(self) -> None:
        self.set_view(self.view_mode, self.today)

    def ensure_period(self) -> Optional[int]:
        try:
            self.period_id = ensure_period_exists(
                self.db, self.partner_id, self.view_mode, self.view_start, self.view_end, self.anchor_date,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            self.period_id = None
            logger.error(f"Failed to initialize schedule period {self.view_start}..{self.view_end}: {e}")
        return self.period_id

    def reload(self) -> bool:
        """Replace the shift set with the store's, over the view plus the planning horizon."""
        today = self.today
        start, end = effective_load_range(self.view_start, self.view_end, today, self.settings.planning_horizon_days)
        try:
            # other editors may have changed rows this session already holds
            self.db.expire_all()
            self.shifts = load_shifts(self.db, self.partner_id, start, end)
            self.branch_settings = load_branch_settings(self.db, self.partner_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to reload shifts for partner {self.partner_id}: {e}")
            return False
        self.loaded_on = today
        return True

    def refresh_settings(self) -> PartnerSettings:
        try:
            self.db.expire_all()
            self.settings = load_partner_settings(self.db, self.partner_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load partner settings for partner {self.partner_id}: {e}")
        return self.settings

    def check_day_rollover(self) -> bool:
        """Reload when the partner-local date moved on since the last load."""
        if self.loaded_on is not None and self.today != self.loaded_on:
            logger.info(f"Day changed to {self.today} for partner {self.partner_id}, reloading")
            self.reload()
            return True
        return False

    def process_changes(self) -> bool:
        """Drain change notifications; refresh settings and/or reload shifts as needed."""
        if self.subscription is None:
            return False
        changes = self.subscription.drain()
        if not changes:
            return False

        tables = {c.table for c in changes}
        if "partner_settings" in tables:
            self.refresh_settings()
        if self.days:
            self.reload()
        return True

    def close(self) -> None:
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None

    # ---- lookups ----

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        return next((e for e in self.employees if e.id == employee_id), None)

    def get_shift(self, shift_id: int) -> Optional[Shift]:
        return next((s for s in self.shifts if s.id == shift_id), None)

    def ordered_branches(self) -> list[Branch]:
        return order_branches(self.branches, self.branch_settings)

    def min_staff_for(self, branch_id: int) -> int:
        setting = next((s for s in self.branch_settings if s.branch_id == branch_id), None)
        return setting.min_staff_per_day if setting else 1

    def roster(self, branch_id: int) -> list[RosterEntry]:
        """Employee rows of a branch for the current view."""
        rows = list(group_branch_employees(self.view_shifts).get(branch_id, []))
        seen = {r.employee_id for r in rows}
        for entry in self.pending_roster.get(branch_id, []):
            if entry.employee_id not in seen:
                rows.append(entry)
                seen.add(entry.employee_id)
        return rows

    def _patch_local(self, row: ScheduleShifts) -> None:
        fresh = shift_from_row(row)
        self.shifts = [s for s in self.shifts if s.id != fresh.id] + [fresh]

    def _shift_row(self, shift_id: int) -> ScheduleShifts:
        row = self.db.get(ScheduleShifts, shift_id)
        if row is None or row.partner_id != self.partner_id:
            raise ShiftNotFoundError(shift_id)
        return row

    def _ensure_branch(self, branch_id: int) -> None:
        # only the partner's own active branches can be written to
        if branch_id not in self.branch_names:
            raise BranchNotFoundError(branch_id)

    def _ensure_position(self, position_id: Optional[int]) -> None:
        if position_id is not None and all(p.id != position_id for p in self.positions):
            raise ScheduleError(f"Position {position_id} not found")

    def _responsible_name(self) -> Optional[str]:
        if self.actor_id is None:
            return None
        actor = self.get_employee(self.actor_id)
        return actor.full_name if actor else None

    # ---- error boundary ----

    def _run(self, action: str, operation: Callable[[], OperationResult]) -> OperationResult:
        try:
            return operation()
        except ShiftConflictError as e:
            self.db.rollback()
            return OperationResult(success=False, message=str(e), conflict=e.conflict, error="conflict")
        except ShiftAlreadyExistsError as e:
            self.db.rollback()
            return OperationResult(success=False, message=str(e), error="exists")
        except (ShiftNotFoundError, BranchNotFoundError) as e:
            self.db.rollback()
            return OperationResult(success=False, message=str(e), error="not_found")
        except ScheduleError as e:
            self.db.rollback()
            return OperationResult(success=False, message=str(e), error="invalid")
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"{action} failed for partner {self.partner_id}: {e}")
            if is_unique_shift_violation(e):
                return OperationResult(success=False, message=str(ShiftAlreadyExistsError()), error="exists")
            return OperationResult(success=False, message=GENERIC_ERROR_MESSAGE, error="store")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"{action} failed for partner {self.partner_id}: {e}")
            return OperationResult(success=False, message=GENERIC_ERROR_MESSAGE, error="store")
        finally:
            self.reload()

    # ---- shift placement ----

    def save_shift(
        self,
        employee_id: int,
        branch_id: int,
        position_id: Optional[int],
        shift_date: date,
        start: Union[time, str],
        end: Union[time, str],
    ) -> OperationResult:
        """Create or update the shift of an employee at a branch on a date."""
        start, end = parse_time(start), parse_time(end)
        return self._run(
            "Save shift",
            lambda: self._save_shift(employee_id, branch_id, position_id, shift_date, start, end),
        )

    def _save_shift(
        self,
        employee_id: int,
        branch_id: int,
        position_id: Optional[int],
        shift_date: date,
        start: time,
        end: time,
    ) -> OperationResult:
        if self.period_id is None:
            raise PeriodNotInitializedError()
        self._ensure_branch(branch_id)
        self._ensure_position(position_id)

        employee = self.get_employee(employee_id)
        if employee is None:
            raise ScheduleError(f"Employee {employee_id} not found")
        if employee.is_dismissed_on(shift_date):
            raise EmployeeDismissedError(employee_id)

        same_day = load_shifts(self.db, self.partner_id, shift_date, shift_date)
        conflict = check_shift_conflict(
            employee_id, shift_date, start, end, branch_id, same_day, self.branch_names,
        )
        if conflict:
            raise ShiftConflictError(conflict)

        row = get_shift_row(self.db, self.partner_id, employee_id, branch_id, shift_date)
        if row is not None:
            plan = attendance.time_edit_updates(shift_from_row(row), start, end, self.now(), self.settings.timezone)
            if plan.purge_no_show_notifications:
                self._notifier().purge_no_show_notifications(row.id)
            apply_to_row(row, plan.updates)
        else:
            row = ScheduleShifts(
                partner_id=self.partner_id,
                period_id=self.period_id,
                branch_id=branch_id,
                staff_member_id=employee_id,
                position_id=position_id,
                date=shift_date,
                start_time=start,
                end_time=end,
                total_minutes=calculate_total_minutes(start, end),
                status=ShiftStatus.SCHEDULED,
                confirmation_status=ConfirmationStatus.PENDING,
            )
            self.db.add(row)

        self.db.commit()
        self._patch_local(row)
        return OperationResult(success=True, shift_id=row.id)

    def duplicate_to_next_day(
        self,
        employee_id: int,
        branch_id: int,
        position_id: Optional[int],
        shift_date: date,
        start: Union[time, str],
        end: Union[time, str],
    ) -> OperationResult:
        """Save the shift for its day and the same window for the following day."""
        first = self.save_shift(employee_id, branch_id, position_id, shift_date, start, end)
        if not first.success:
            return first
        return self.save_shift(employee_id, branch_id, position_id, shift_date + timedelta(days=1), start, end)

    def clear_shift(self, employee_id: int, branch_id: int, shift_date: date) -> OperationResult:
        return self._run("Clear shift", lambda: self._clear_shift(employee_id, branch_id, shift_date))

    def _clear_shift(self, employee_id: int, branch_id: int, shift_date: date) -> OperationResult:
        row = get_shift_row(self.db, self.partner_id, employee_id, branch_id, shift_date)
        if row is None:
            raise ShiftNotFoundError()
        self._delete_shift_row(row)
        self.db.commit()
        return OperationResult(success=True, shift_id=row.id)

    def _delete_shift_row(self, row: ScheduleShifts) -> None:
        # never drop an active work session without closing its time accounting
        if row.status == ShiftStatus.OPENED:
            close_open_segments(self.db, row.id, self.now())
            self.db.flush()
        self.db.delete(row)

    def _branch_rows_in_view(self, branch_id: int, employee_id: Optional[int] = None) -> list[ScheduleShifts]:
        conditions = [
            ScheduleShifts.partner_id == self.partner_id,
            ScheduleShifts.branch_id == branch_id,
            ScheduleShifts.date >= self.view_start,
            ScheduleShifts.date <= self.view_end,
        ]
        if employee_id is not None:
            conditions.append(ScheduleShifts.staff_member_id == employee_id)
        return self.db.execute(select(ScheduleShifts).where(and_(*conditions))).scalars().all()

    def clear_branch_schedule(self, branch_id: int) -> OperationResult:
        """Delete every shift of a branch in the visible range."""
        def operation():
            self._ensure_branch(branch_id)
            rows = self._branch_rows_in_view(branch_id)
            for row in rows:
                self._delete_shift_row(row)
            self.db.commit()
            self.pending_roster.pop(branch_id, None)
            logger.info(f"Cleared {len(rows)} shifts of branch {branch_id} for {self.view_start}..{self.view_end}")
            return OperationResult(success=True, message=f"Deleted {len(rows)} shifts")

        return self._run("Clear branch schedule", operation)

    def remove_employee_from_branch(self, branch_id: int, employee_id: int) -> OperationResult:
        """Delete the employee's shifts at the branch in the visible range and drop the row."""
        def operation():
            self._ensure_branch(branch_id)
            rows = self._branch_rows_in_view(branch_id, employee_id)
            for row in rows:
                self._delete_shift_row(row)
            self.db.commit()
            entries = self.pending_roster.get(branch_id, [])
            self.pending_roster[branch_id] = [e for e in entries if e.employee_id != employee_id]
            return OperationResult(success=True, message=f"Deleted {len(rows)} shifts")

        return self._run("Remove employee from branch", operation)

    def add_employee_to_branch(self, branch_id: int, employee_id: int, position_id: Optional[int] = None) -> OperationResult:
        """Show an employee row at a branch before any shift exists there. Not persisted."""
        if branch_id not in self.branch_names:
            return OperationResult(success=False, message=str(BranchNotFoundError(branch_id)), error="not_found")
        employee = self.get_employee(employee_id)
        if employee is None:
            return OperationResult(success=False, message=f"Employee {employee_id} not found", error="not_found")
        if employee not in available_employees(self.employees, self.positions, self.view_start):
            return OperationResult(success=False, message=str(EmployeeDismissedError(employee_id)), error="invalid")
        if any(r.employee_id == employee_id for r in self.roster(branch_id)):
            return OperationResult(success=True)

        entry = RosterEntry(employee_id=employee_id, position_id=position_id or employee.position_id)
        self.pending_roster.setdefault(branch_id, []).append(entry)
        return OperationResult(success=True)

    # ---- period copy ----

    def copy_from_previous_period(self, branch_id: int) -> CopyResult:
        """Copy a branch's shifts from the previous week/month into the current view."""
        period_name = "week" if self.view_mode == ViewMode.WEEK else "month"
        try:
            if self.period_id is None:
                return CopyResult(success=False, message=str(PeriodNotInitializedError()))
            if branch_id not in self.branch_names:
                return CopyResult(success=False, message=str(BranchNotFoundError(branch_id)), error="not_found")

            prev_start, prev_end = previous_period_bounds(self.view_mode, self.anchor_date)
            previous = load_shifts(self.db, self.partner_id, prev_start, prev_end, branch_id)
            if not previous:
                return CopyResult(success=True, message=f"No shifts in the previous {period_name} to copy")

            existing = load_shifts(self.db, self.partner_id, self.view_start, self.view_end, branch_id)
            drafts = plan_period_copy(
                self.view_mode,
                self.anchor_date,
                branch_id,
                self.period_id,
                previous,
                existing,
                self.view_start,
                self.view_end,
            )
            if not drafts:
                return CopyResult(success=True, message="All shifts from the previous period already exist")

            for draft in drafts:
                self.db.add(ScheduleShifts(
                    partner_id=self.partner_id,
                    period_id=draft.period_id,
                    branch_id=draft.branch_id,
                    staff_member_id=draft.staff_member_id,
                    position_id=draft.position_id,
                    date=draft.date,
                    start_time=draft.start_time,
                    end_time=draft.end_time,
                    total_minutes=draft.total_minutes,
                    status=ShiftStatus.SCHEDULED,
                    confirmation_status=draft.confirmation_status,
                ))
            self.db.commit()

            employee_count = len({d.staff_member_id for d in drafts})
            logger.info(f"Copied {len(drafts)} shifts into branch {branch_id} for {self.view_start}..{self.view_end}")
            return CopyResult(
                success=True,
                copied=len(drafts),
                employee_count=employee_count,
                message=copy_summary(drafts, self.view_mode),
            )
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Copy from previous {period_name} failed for branch {branch_id}: {e}")
            return CopyResult(success=False, message="Some shifts already exist. Reload the schedule and try again")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Copy from previous {period_name} failed for branch {branch_id}: {e}")
            return CopyResult(success=False, message=GENERIC_ERROR_MESSAGE)
        finally:
            self.reload()

    # ---- branch settings ----

    def _settings_row(self, branch_id: int) -> BranchScheduleSettings:
        row = self.db.execute(
            select(BranchScheduleSettings).where(
                and_(
                    BranchScheduleSettings.partner_id == self.partner_id,
                    BranchScheduleSettings.branch_id == branch_id,
                )
            )
        ).scalar_one_or_none()
        if row is None:
            row = BranchScheduleSettings(partner_id=self.partner_id, branch_id=branch_id, min_staff_per_day=1)
            self.db.add(row)
        return row

    def reorder_branches(self, dragged_id: int, target_id: int) -> OperationResult:
        """Drop dragged_id onto target_id's slot and persist the full order."""
        def operation():
            self._ensure_branch(dragged_id)
            self._ensure_branch(target_id)
            current = [b.id for b in self.ordered_branches()]
            new_order = reorder_branch_ids(current, dragged_id, target_id)
            if new_order == current:
                return OperationResult(success=True)
            for index, branch_id in enumerate(new_order):
                self._settings_row(branch_id).display_order = index
            self.db.commit()
            return OperationResult(success=True)

        return self._run("Reorder branches", operation)

    def set_min_staff(self, branch_id: int, min_staff: int) -> OperationResult:
        def operation():
            self._ensure_branch(branch_id)
            if min_staff < 0:
                raise ScheduleError("Minimum staff per day cannot be negative")
            self._settings_row(branch_id).min_staff_per_day = min_staff
            self.db.commit()
            return OperationResult(success=True)

        return self._run("Set minimum staff", operation)

    # ---- confirmation / attendance ----

    def _transition(self, action: str, shift_id: int, build_updates: Callable[[Shift], dict]) -> OperationResult:
        def operation():
            row = self._shift_row(shift_id)
            updates = build_updates(shift_from_row(row))
            apply_to_row(row, updates)
            self.db.commit()
            self._patch_local(row)
            return OperationResult(success=True, shift_id=row.id)

        return self._run(action, operation)

    def accept_late_cancel(self, shift_id: int) -> OperationResult:
        return self._transition(
            "Accept late cancel", shift_id,
            lambda s: attendance.accept_late_cancel(s, self.actor_id, self.now()),
        )

    def reject_late_cancel(self, shift_id: int) -> OperationResult:
        return self._transition(
            "Reject late cancel", shift_id,
            lambda s: attendance.reject_late_cancel(s, self.actor_id, self.now()),
        )

    def confirm_shift(self, shift_id: int) -> OperationResult:
        return self._transition("Confirm shift", shift_id, lambda s: attendance.confirm_shift(s, self.now()))

    def decline_shift(self, shift_id: int, reason: str) -> OperationResult:
        return self._transition(
            "Decline shift", shift_id,
            lambda s: attendance.decline_shift(s, reason, self.now(), self.settings),
        )

    def reset_early_leave(self, shift_id: int) -> OperationResult:
        return self._transition("Reset early leave", shift_id, attendance.reset_early_leave)

    def open_shift(self, shift_id: int) -> OperationResult:
        """Start work: status opened plus a new open work segment."""
        def updates(shift: Shift) -> dict:
            result = attendance.open_shift(shift, self.now(), self.settings)
            open_segment(self.db, shift.id, self.now())
            return result

        return self._transition("Open shift", shift_id, updates)

    def close_shift(self, shift_id: int, closed_by: str = "employee") -> OperationResult:
        def updates(shift: Shift) -> dict:
            result = attendance.close_shift(shift, self.now(), self.settings, closed_by)
            close_open_segments(self.db, shift.id, self.now())
            return result

        return self._transition("Close shift", shift_id, updates)

    def submit_no_show_reason(self, shift_id: int, reason: str) -> OperationResult:
        def updates(shift: Shift) -> dict:
            result = attendance.submit_no_show_reason(shift, reason, self.now())
            self.db.add(EmployeeEvents(
                partner_id=self.partner_id,
                employee_id=shift.staff_member_id,
                event_type=REASON_SELECTED_EVENT,
                title="No-show reason submitted",
                message=reason,
                related_shift_id=shift.id,
                related_employee_id=shift.staff_member_id,
                no_show_reason_text=reason,
                action_status=NoShowReasonStatus.PENDING.value,
            ))
            return result

        return self._transition("Submit no-show reason", shift_id, updates)

    def decide_no_show_reason(self, shift_id: int, decision: Union[NoShowReasonStatus, str]) -> OperationResult:
        """
        Approve or reject a no-show reason. The decision is saved first; the
        employee notification is best effort and cannot undo it.
        """
        def operation():
            row = self._shift_row(shift_id)
            updates = attendance.decide_no_show_reason(shift_from_row(row), decision, self.actor_id, self.now())
            apply_to_row(row, updates)
            self.db.commit()
            self._notifier().publish_decision(shift_from_row(row), self._responsible_name(), self.now())
            return OperationResult(success=True, shift_id=row.id)

        return self._run("Decide no-show reason", operation)

    def assign_replacement(
        self,
        shift_id: int,
        employee_id: int,
        start: Union[time, str, None] = None,
        end: Union[time, str, None] = None,
    ) -> OperationResult:
        """
        Hand a no-show shift to another employee.

        When the employee gave no reason the shift is deleted and a plain shift
        is created for the replacement. When a reason was given the original row
        stays for the record, marked replaced, and the new shift links back to
        it; an earlier replacement of the same shift is removed first.
        Times default to the original window.
        """
        start = parse_time(start) if start is not None else None
        end = parse_time(end) if end is not None else None
        return self._run(
            "Assign replacement",
            lambda: self._assign_replacement(shift_id, employee_id, start, end),
        )

    def _assign_replacement(
        self,
        shift_id: int,
        employee_id: int,
        start: Optional[time],
        end: Optional[time],
    ) -> OperationResult:
        row = self._shift_row(shift_id)
        original = shift_from_row(row)
        kind = attendance.ensure_replaceable(original, employee_id)

        employee = self.get_employee(employee_id)
        if employee is None:
            raise ScheduleError(f"Employee {employee_id} not found")
        if employee.is_dismissed_on(original.date):
            raise EmployeeDismissedError(employee_id)
        start = start or original.start_time
        end = end or original.end_time

        if kind == ReplacementKind.WITH_REASON:
            previous = self.db.execute(
                select(ScheduleShifts).where(
                    and_(
                        ScheduleShifts.original_shift_id == row.id,
                        ScheduleShifts.is_replacement.is_(True),
                    )
                )
            ).scalars().all()
            for prev in previous:
                self._delete_shift_row(prev)
        else:
            self._delete_shift_row(row)
        self.db.flush()

        same_day = load_shifts(self.db, self.partner_id, original.date, original.date)
        if any(s.staff_member_id == employee_id and s.branch_id == original.branch_id for s in same_day):
            raise ShiftAlreadyExistsError("Selected employee is already scheduled at this branch on this date")
        conflict = check_shift_conflict(
            employee_id, original.date, start, end, original.branch_id, same_day, self.branch_names,
        )
        if conflict:
            raise ShiftConflictError(conflict)

        replacement = ScheduleShifts(**attendance.replacement_shift_values(original, employee, start, end, kind))
        self.db.add(replacement)
        if kind == ReplacementKind.WITH_REASON:
            apply_to_row(row, attendance.mark_replaced(original, employee_id, self.now()))
        self.db.commit()

        logger.info(
            f"Shift {original.id} of employee {original.staff_member_id} handed to employee {employee_id} "
            f"({kind.value}), new shift {replacement.id}"
        )
        return OperationResult(success=True, shift_id=replacement.id)

    # ---- derived views ----

    def horizon_coverage(self, branch_id: int) -> HorizonCoverage:
        return check_horizon_coverage(
            branch_id,
            self.shifts,
            self.min_staff_for(branch_id),
            self.today,
            self.settings.planning_horizon_days,
        )

    def branch_problems(self, branch_id: int) -> list[date]:
        return check_branch_problems(branch_id, self.days, self.view_shifts, self.min_staff_for(branch_id))

    def available_employees(self, for_date: Optional[date] = None) -> list[Employee]:
        return available_employees(self.employees, self.positions, for_date or self.view_start)

    def employee_total_minutes(self, employee_id: int, branch_id: int) -> int:
        return calculate_employee_total_minutes(self.view_shifts, employee_id, branch_id)

    def branch_day_minutes(self, branch_id: int, day: date) -> int:
        return calculate_branch_day_minutes(self.view_shifts, branch_id, day)

    def branch_total_minutes(self, branch_id: int) -> int:
        return calculate_branch_total_minutes(self.view_shifts, branch_id)
