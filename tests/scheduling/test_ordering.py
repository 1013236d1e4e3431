from datetime import date, time

from crewplan.db.models.employees import EmploymentStatus
from crewplan.services.scheduling.ordering import (
    available_employees,
    group_branch_employees,
    order_branches,
    reorder_branch_ids,
)
from crewplan.services.scheduling.types import Branch, BranchSettings, Employee, Position

from conftest import get_test_monday, make_shift


class TestOrderBranches:

    def test_unordered_branches_go_last(self):
        branches = [Branch(1, "A"), Branch(2, "B"), Branch(3, "C"), Branch(4, "D")]
        settings = [BranchSettings(3, display_order=0), BranchSettings(1, display_order=1)]

        assert [b.id for b in order_branches(branches, settings)] == [3, 1, 2, 4]

    def test_no_settings_keeps_input_order(self):
        branches = [Branch(5, "E"), Branch(2, "B")]
        assert [b.id for b in order_branches(branches, [])] == [5, 2]


class TestReorderBranchIds:

    def test_drag_forward(self):
        assert reorder_branch_ids([1, 2, 3, 4], 1, 3) == [2, 3, 1, 4]

    def test_drag_backward(self):
        assert reorder_branch_ids([1, 2, 3, 4], 4, 2) == [1, 4, 2, 3]

    def test_noop_cases(self):
        assert reorder_branch_ids([1, 2, 3], 2, 2) == [1, 2, 3]
        assert reorder_branch_ids([1, 2, 3], 9, 2) == [1, 2, 3]


class TestGroupBranchEmployees:

    def test_first_position_wins_and_unassigned_ignored(self):
        monday = get_test_monday()
        shifts = [
            make_shift(1, 1, monday, time(9, 0), time(18, 0), position_id=10),
            make_shift(1, 1, monday.replace(day=2), time(9, 0), time(18, 0), position_id=11),
            make_shift(None, 1, monday, time(9, 0), time(18, 0)),
            make_shift(2, 2, monday, time(9, 0), time(18, 0)),
        ]
        rows = group_branch_employees(shifts)

        assert [(r.employee_id, r.position_id) for r in rows[1]] == [(1, 10)]
        assert [r.employee_id for r in rows[2]] == [2]


class TestAvailableEmployees:

    def test_filters_fired_dismissed_inactive_and_hidden(self):
        positions = [Position(1, "Cook"), Position(2, "Owner", is_visible=False)]
        employees = [
            Employee(1, "Anna", position_id=1),
            Employee(2, "Dana", position_id=1, current_status=EmploymentStatus.PENDING_DISMISSAL,
                     dismissal_date=date(2024, 7, 3)),
            Employee(3, "Fedir", position_id=1, current_status=EmploymentStatus.FIRED),
            Employee(4, "Maria", position_id=2),
            Employee(5, "Olha", position_id=1, is_active=False),
        ]

        assert [e.id for e in available_employees(employees, positions, date(2024, 7, 2))] == [1, 2]
        assert [e.id for e in available_employees(employees, positions, date(2024, 7, 3))] == [1]
