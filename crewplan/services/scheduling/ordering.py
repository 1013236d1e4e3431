"""
Branch ordering and per-branch employee grouping for the schedule grid.
"""

from datetime import date

from .types import (
    Branch,
    BranchSettings,
    Employee,
    EmploymentStatus,
    Position,
    RosterEntry,
    Shift,
)


UNSET_DISPLAY_ORDER = 999


def order_branches(branches: list[Branch], settings: list[BranchSettings]) -> list[Branch]:
    """Sort by display_order; branches without one go last, keeping their relative order."""
    order_by_branch = {s.branch_id: s.display_order for s in settings}

    def sort_key(branch: Branch) -> int:
        order = order_by_branch.get(branch.id)
        return UNSET_DISPLAY_ORDER if order is None else order

    return sorted(branches, key=sort_key)


def reorder_branch_ids(ordered_ids: list[int], dragged_id: int, target_id: int) -> list[int]:
    """Move dragged_id to target_id's slot (drag-and-drop). Unknown ids leave the order untouched."""
    if dragged_id == target_id or dragged_id not in ordered_ids or target_id not in ordered_ids:
        return list(ordered_ids)

    result = list(ordered_ids)
    drop_index = result.index(target_id)
    result.remove(dragged_id)
    result.insert(drop_index, dragged_id)
    return result


def group_branch_employees(shifts: list[Shift]) -> dict[int, list[RosterEntry]]:
    """
    Employee rows per branch, derived from loaded shifts.
    First (employee, position) seen wins; unassigned shifts are ignored.
    """
    rows: dict[int, list[RosterEntry]] = {}
    for shift in shifts:
        if shift.staff_member_id is None:
            continue
        branch_rows = rows.setdefault(shift.branch_id, [])
        if any(r.employee_id == shift.staff_member_id for r in branch_rows):
            continue
        branch_rows.append(RosterEntry(employee_id=shift.staff_member_id, position_id=shift.position_id))
    return rows


def available_employees(
    employees: list[Employee],
    positions: list[Position],
    for_date: date,
) -> list[Employee]:
    """Employees that may be picked for a new shift on for_date."""
    hidden_positions = {p.id for p in positions if not p.is_visible}
    result = []
    for emp in employees:
        if emp.current_status == EmploymentStatus.FIRED or not emp.is_active:
            continue
        if emp.is_dismissed_on(for_date):
            continue
        if emp.position_id is not None and emp.position_id in hidden_positions:
            continue
        result.append(emp)
    return result
