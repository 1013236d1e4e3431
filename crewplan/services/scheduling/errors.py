"""
Errors raised by the schedule engine.
Session operations catch these at the boundary and report them as OperationResult.
"""

from typing import Optional

from .types import ShiftConflict


class ScheduleError(Exception):
    pass


class EmployeeDismissedError(ScheduleError):
    def __init__(self, employee_id: int):
        super().__init__("Cannot assign shift: employee is dismissed or will be dismissed by this date")
        self.employee_id = employee_id


class ShiftConflictError(ScheduleError):
    def __init__(self, conflict: ShiftConflict):
        super().__init__(f"Shift conflict. {conflict.message}")
        self.conflict = conflict


class ShiftAlreadyExistsError(ScheduleError):
    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "Shift already exists for this date. Edit the existing shift instead")


class PeriodNotInitializedError(ScheduleError):
    def __init__(self):
        super().__init__("Schedule period is not initialized. Reload the schedule and try again")


class InvalidTransitionError(ScheduleError):
    pass


class ShiftNotFoundError(ScheduleError):
    def __init__(self, shift_id=None):
        super().__init__("Shift not found" if shift_id is None else f"Shift {shift_id} not found")
        self.shift_id = shift_id


class BranchNotFoundError(ScheduleError):
    def __init__(self, branch_id: int):
        super().__init__(f"Branch {branch_id} not found")
        self.branch_id = branch_id
