"""
Schedule engine package.

Usage:
    from datetime import date
    from crewplan.services.scheduling import ScheduleSession

    # Load a partner's week and place a shift
    session = ScheduleSession(db, partner_id=1, anchor_date=date(2024, 7, 1))
    session.load()
    result = session.save_shift(employee_id=5, branch_id=2, position_id=1,
                                shift_date=date(2024, 7, 1), start="09:00", end="18:00")
    if not result.success:
        print(result.message)

    # Pure helpers work on plain dataclasses, without a database
    from crewplan.services.scheduling import build_days_range, check_shift_conflict

    days = build_days_range("month", date(2024, 7, 1))

    # Background job: lateness, no-shows, reminders, auto-close
    from crewplan.services.scheduling import run_attendance_sweep

    report = run_attendance_sweep(db, partner_id=1, sink=TelegramBotSink())
"""

from .types import (
    DayColumn,
    Branch,
    BranchSettings,
    Position,
    Employee,
    Shift,
    ShiftDraft,
    ShiftConflict,
    RosterEntry,
    ReminderSettings,
    PartnerSettings,
    HorizonCoverage,
    OperationResult,
    CopyResult,
    TimeEditPlan,
    ViewMode,
    ShiftStatus,
    AttendanceStatus,
    ConfirmationStatus,
    NoShowReasonStatus,
    ResponsibleDecision,
    ReplacementStatus,
    ReplacementKind,
)
from .errors import (
    ScheduleError,
    BranchNotFoundError,
    EmployeeDismissedError,
    ShiftConflictError,
    ShiftAlreadyExistsError,
    PeriodNotInitializedError,
    InvalidTransitionError,
    ShiftNotFoundError,
)
from .periods import build_days_range, format_period_label, calculate_total_minutes
from .conflicts import check_shift_conflict
from .coverage import check_horizon_coverage, check_branch_problems
from .period_copy import plan_period_copy
from .change_feed import ChangeEvent, ChangeFeed, install_change_listeners
from .session import ScheduleSession
from .sweep import SweepReport, run_attendance_sweep

__all__ = [
    # Types
    "DayColumn",
    "Branch",
    "BranchSettings",
    "Position",
    "Employee",
    "Shift",
    "ShiftDraft",
    "ShiftConflict",
    "RosterEntry",
    "ReminderSettings",
    "PartnerSettings",
    "HorizonCoverage",
    "OperationResult",
    "CopyResult",
    "TimeEditPlan",
    "ViewMode",
    "ShiftStatus",
    "AttendanceStatus",
    "ConfirmationStatus",
    "NoShowReasonStatus",
    "ResponsibleDecision",
    "ReplacementStatus",
    "ReplacementKind",
    # Errors
    "ScheduleError",
    "BranchNotFoundError",
    "EmployeeDismissedError",
    "ShiftConflictError",
    "ShiftAlreadyExistsError",
    "PeriodNotInitializedError",
    "InvalidTransitionError",
    "ShiftNotFoundError",
    # Main entry points
    "ScheduleSession",
    "run_attendance_sweep",
    "SweepReport",
    # Lower-level functions
    "build_days_range",
    "format_period_label",
    "calculate_total_minutes",
    "check_shift_conflict",
    "check_horizon_coverage",
    "check_branch_problems",
    "plan_period_copy",
    "ChangeEvent",
    "ChangeFeed",
    "install_change_listeners",
]
