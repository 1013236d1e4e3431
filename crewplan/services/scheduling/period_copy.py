"""
Copy a branch's shifts from the previous week or month into the current one.
"""

from datetime import date, timedelta
from typing import Optional, Union

from .types import Shift, ShiftDraft, ViewMode
from .periods import last_day_of_month


def remap_copied_date(mode: Union[ViewMode, str], source_date: date, anchor_date: date) -> date:
    """
    Target date for a copied shift.

    week: exactly 7 days later.
    month: same day of month inside anchor_date's month, clamped to its last day.
    """
    mode = ViewMode(mode)
    if mode == ViewMode.WEEK:
        return source_date + timedelta(days=7)

    max_day = last_day_of_month(anchor_date.year, anchor_date.month)
    return date(anchor_date.year, anchor_date.month, min(source_date.day, max_day))


def plan_period_copy(
    mode: Union[ViewMode, str],
    anchor_date: date,
    branch_id: int,
    period_id: int,
    previous_shifts: list[Shift],
    existing_shifts: list[Shift],
    view_start: date,
    view_end: date,
) -> list[ShiftDraft]:
    """
    Build the drafts to insert for a period copy.

    Skips unassigned source shifts, targets outside [view_start, view_end], and
    (employee, branch, date) slots that are already taken, including slots taken
    earlier in the same batch.
    """
    taken = {
        (s.staff_member_id, s.date)
        for s in existing_shifts
        if s.branch_id == branch_id and s.staff_member_id is not None
    }

    drafts = []
    for shift in previous_shifts:
        if shift.branch_id != branch_id or shift.staff_member_id is None:
            continue

        new_date = remap_copied_date(mode, shift.date, anchor_date)
        if new_date < view_start or new_date > view_end:
            continue

        key = (shift.staff_member_id, new_date)
        if key in taken:
            continue
        taken.add(key)

        drafts.append(ShiftDraft(
            partner_id=shift.partner_id,
            period_id=period_id,
            branch_id=branch_id,
            staff_member_id=shift.staff_member_id,
            position_id=shift.position_id,
            date=new_date,
            start_time=shift.start_time,
            end_time=shift.end_time,
            total_minutes=shift.total_minutes,
        ))

    return drafts


def copy_summary(drafts: list[ShiftDraft], mode: Union[ViewMode, str]) -> Optional[str]:
    if not drafts:
        return None
    period_name = "week" if ViewMode(mode) == ViewMode.WEEK else "month"
    employees = len({d.staff_member_id for d in drafts})
    return f"Copied {len(drafts)} shifts for {employees} employees from the previous {period_name}"
