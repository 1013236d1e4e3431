from pydantic import BaseModel, Field
from datetime import date, time
from typing import List, Optional
from crewplan.db.models.schedule_periods import ViewMode
from crewplan.schemas.shifts import ShiftResponse


class DayColumnResponse(BaseModel):
    date: date
    weekday: int
    week_index: int
    is_weekend: bool
    day_of_month: int
    month_name: str

    class Config:
        from_attributes = True


class HorizonCoverageResponse(BaseModel):
    is_covered: bool
    required_date: date
    unfilled_days: List[date]

    class Config:
        from_attributes = True


class RosterRowResponse(BaseModel):
    employee_id: int
    position_id: Optional[int]
    name: str
    total_minutes: int


class BranchScheduleResponse(BaseModel):
    id: int
    name: str
    min_staff_per_day: int
    problem_days: List[date]
    horizon: HorizonCoverageResponse
    total_minutes: int
    rows: List[RosterRowResponse]


class ScheduleViewResponse(BaseModel):
    mode: ViewMode
    anchor: date
    label: str
    period_id: Optional[int]
    today: date
    days: List[DayColumnResponse]
    branches: List[BranchScheduleResponse]
    shifts: List[ShiftResponse]


class ShiftSaveRequest(BaseModel):
    employee_id: int
    branch_id: int
    position_id: Optional[int] = None
    date: date
    start_time: time
    end_time: time


class ShiftClearRequest(BaseModel):
    employee_id: int
    branch_id: int
    date: date


class BranchReorderRequest(BaseModel):
    dragged_id: int
    target_id: int


class MinStaffRequest(BaseModel):
    min_staff_per_day: int = Field(ge=0)


class ConflictResponse(BaseModel):
    branch_name: str
    start_time: str
    end_time: str
    free_from: str


class OperationResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    shift_id: Optional[int] = None


class CopyResponse(BaseModel):
    success: bool
    copied: int
    employee_count: int
    message: Optional[str] = None

    class Config:
        from_attributes = True


class SweepResponse(BaseModel):
    partner_id: int
    checked: int
    marked_late: int
    marked_no_show: int
    reminders_sent: int
    auto_closed: int
    errors: int

    class Config:
        from_attributes = True
