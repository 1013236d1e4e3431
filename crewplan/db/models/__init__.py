from crewplan.db.database import Base

# Import models
from crewplan.db.models.branches import Branches, BranchStatus
from crewplan.db.models.branch_schedule_settings import BranchScheduleSettings
from crewplan.db.models.positions import Positions
from crewplan.db.models.employees import Employees, EmploymentStatus
from crewplan.db.models.schedule_periods import SchedulePeriods, ViewMode
from crewplan.db.models.shifts import (
    ScheduleShifts,
    ShiftStatus,
    AttendanceStatus,
    ConfirmationStatus,
    NoShowReasonStatus,
    ResponsibleDecision,
    ReplacementStatus,
)
from crewplan.db.models.work_segments import WorkSegments
from crewplan.db.models.employee_events import EmployeeEvents
from crewplan.db.models.partner_settings import PartnerSettings

__all__ = [
    "Base",
    # Models
    "Branches",
    "BranchScheduleSettings",
    "Positions",
    "Employees",
    "SchedulePeriods",
    "ScheduleShifts",
    "WorkSegments",
    "EmployeeEvents",
    "PartnerSettings",
    # Enums
    "BranchStatus",
    "EmploymentStatus",
    "ViewMode",
    "ShiftStatus",
    "AttendanceStatus",
    "ConfirmationStatus",
    "NoShowReasonStatus",
    "ResponsibleDecision",
    "ReplacementStatus",
]
