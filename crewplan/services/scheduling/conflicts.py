"""
Conflict checking for shift placement.
An employee may not work overlapping windows at two branches on the same day.
"""

from datetime import date, time
from typing import Optional

from .types import Shift, ShiftConflict
from .periods import time_to_minutes


DEFAULT_BRANCH_NAME = "Other branch"


def minute_ranges_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Half-open same-day overlap; windows that only touch do not overlap."""
    return not (end1 <= start2 or start1 >= end2)


def get_employee_shifts_on_date(
    shifts: list[Shift],
    employee_id: int,
    shift_date: date,
    exclude_branch_id: Optional[int] = None,
) -> list[Shift]:
    return [
        s for s in shifts
        if s.staff_member_id == employee_id
        and s.date == shift_date
        and (exclude_branch_id is None or s.branch_id != exclude_branch_id)
    ]


def check_shift_conflict(
    employee_id: int,
    shift_date: date,
    start_time: time,
    end_time: time,
    excluding_branch_id: int,
    shifts: list[Shift],
    branch_names: dict[int, str],
) -> Optional[ShiftConflict]:
    """
    Find the first shift of the employee at another branch on the same date that
    overlaps the candidate window.

    Both windows are compared as same-day minute ranges, overnight wrap is not considered.
    """
    other_shifts = get_employee_shifts_on_date(shifts, employee_id, shift_date, excluding_branch_id)
    if not other_shifts:
        return None

    new_start = time_to_minutes(start_time)
    new_end = time_to_minutes(end_time)

    for existing in other_shifts:
        existing_start = time_to_minutes(existing.start_time)
        existing_end = time_to_minutes(existing.end_time)
        if minute_ranges_overlap(new_start, new_end, existing_start, existing_end):
            return ShiftConflict(
                branch_name=branch_names.get(existing.branch_id, DEFAULT_BRANCH_NAME),
                start_time=existing.start_time,
                end_time=existing.end_time,
                free_from=existing.end_time,
            )

    return None
