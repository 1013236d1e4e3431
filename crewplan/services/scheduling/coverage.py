"""
Staffing checks for branches.
Visible-range problem days, planning horizon coverage, and minute totals.
"""

from datetime import date, timedelta

from .types import DayColumn, HorizonCoverage, Shift


def count_assigned_shifts(shifts: list[Shift], branch_id: int, day: date) -> int:
    return sum(1 for s in shifts if s.branch_id == branch_id and s.date == day and s.staff_member_id is not None)


def check_branch_problems(
    branch_id: int,
    days: list[DayColumn],
    shifts: list[Shift],
    min_staff: int,
) -> list[date]:
    """Days of the visible range where the branch has fewer shifts than min_staff."""
    problem_days = []
    for day in days:
        day_count = sum(1 for s in shifts if s.branch_id == branch_id and s.date == day.date)
        if day_count < min_staff:
            problem_days.append(day.date)
    return problem_days


def check_horizon_coverage(
    branch_id: int,
    shifts: list[Shift],
    min_staff: int,
    today: date,
    horizon_days: int,
) -> HorizonCoverage:
    """
    Check that every day in [today, today + horizon_days] has at least
    min_staff assigned shifts at the branch.

    Independent of the viewed range; always looks forward from today.
    """
    required_date = today + timedelta(days=horizon_days)
    unfilled = []

    current = today
    while current <= required_date:
        if count_assigned_shifts(shifts, branch_id, current) < min_staff:
            unfilled.append(current)
        current += timedelta(days=1)

    return HorizonCoverage(
        is_covered=len(unfilled) == 0,
        required_date=required_date,
        unfilled_days=unfilled,
    )


def calculate_employee_total_minutes(shifts: list[Shift], employee_id: int, branch_id: int) -> int:
    return sum(s.total_minutes for s in shifts if s.staff_member_id == employee_id and s.branch_id == branch_id)


def calculate_branch_day_minutes(shifts: list[Shift], branch_id: int, day: date) -> int:
    return sum(s.total_minutes for s in shifts if s.branch_id == branch_id and s.date == day)


def calculate_branch_total_minutes(shifts: list[Shift], branch_id: int) -> int:
    return sum(s.total_minutes for s in shifts if s.branch_id == branch_id)
