"""
Seed script for a CrewPlan development database.

One partner (id 1) with two branches, a handful of employees and the current
week partly scheduled, so horizon warnings and problem days show up right away.
Prints a bearer token for the manager since login lives in the admin service.

Run with: python -m scripts.seed_demo
"""

import sys
from datetime import date, time, timedelta
from sqlalchemy import delete, select
from crewplan.db.database import Base, SessionLocal, engine
from crewplan.core.security import create_access_token
from crewplan.db.models import (
    Branches,
    BranchScheduleSettings,
    ConfirmationStatus,
    EmployeeEvents,
    Employees,
    EmploymentStatus,
    PartnerSettings,
    Positions,
    SchedulePeriods,
    ScheduleShifts,
    ViewMode,
    WorkSegments,
)
from crewplan.services.scheduling.periods import calculate_total_minutes, format_period_label, get_week_start


PARTNER_ID = 1

# children first
TABLES_TO_CLEAR = [
    WorkSegments,
    EmployeeEvents,
    ScheduleShifts,
    SchedulePeriods,
    BranchScheduleSettings,
    Employees,
    Positions,
    Branches,
    PartnerSettings,
]


def clear_partner(db):
    print("Clearing partner data...")
    partner_shifts = select(ScheduleShifts.id).where(ScheduleShifts.partner_id == PARTNER_ID)
    db.execute(delete(WorkSegments).where(WorkSegments.shift_id.in_(partner_shifts)))
    for model in TABLES_TO_CLEAR[1:]:
        db.execute(delete(model).where(model.partner_id == PARTNER_ID))
    db.commit()


def seed_settings(db):
    print("Seeding partner settings...")
    db.add(PartnerSettings(
        partner_id=PARTNER_ID,
        timezone="Europe/Kiev",
        planning_horizon_days=14,
        no_show_threshold_minutes=30,
        shift_grace_minutes=5,
        early_leave_threshold_minutes=5,
        late_cancel_deadline_hours=24,
        shift_reminders_enabled=True,
        shift_reminder_offset_minutes=15,
        shift_reminder_comment="Don't forget your uniform",
        shift_close_reminder_enabled=True,
        shift_auto_close_offset_minutes=30,
    ))
    db.commit()


def seed_branches(db):
    print("Seeding branches...")
    branches = [
        Branches(partner_id=PARTNER_ID, name="Podil"),
        Branches(partner_id=PARTNER_ID, name="Obolon"),
    ]
    db.add_all(branches)
    db.flush()
    for order, branch in enumerate(branches):
        db.add(BranchScheduleSettings(
            partner_id=PARTNER_ID, branch_id=branch.id, min_staff_per_day=2, display_order=order,
        ))
    db.commit()
    return branches


def seed_people(db):
    print("Seeding positions and employees...")
    barista = Positions(partner_id=PARTNER_ID, name="Barista")
    cook = Positions(partner_id=PARTNER_ID, name="Cook")
    owner = Positions(partner_id=PARTNER_ID, name="Owner", is_visible=False)
    db.add_all([barista, cook, owner])
    db.flush()

    employees = [
        Employees(partner_id=PARTNER_ID, first_name="Maria", last_name="Shevchenko", position_id=owner.id),
        Employees(partner_id=PARTNER_ID, first_name="Anna", last_name="Koval", position_id=barista.id),
        Employees(partner_id=PARTNER_ID, first_name="Boris", last_name="Melnyk", position_id=barista.id),
        Employees(partner_id=PARTNER_ID, first_name="Olha", last_name="Bondar", position_id=cook.id),
        Employees(partner_id=PARTNER_ID, first_name="Taras", last_name="Lysenko", position_id=cook.id,
                  current_status=EmploymentStatus.PENDING_DISMISSAL,
                  dismissal_date=date.today() + timedelta(days=10)),
    ]
    db.add_all(employees)
    db.commit()
    return employees


def seed_shifts(db, branches, employees):
    print("Seeding shifts for the current week...")
    monday = get_week_start(date.today())
    sunday = monday + timedelta(days=6)
    period = SchedulePeriods(
        partner_id=PARTNER_ID, type=ViewMode.WEEK, date_start=monday, date_end=sunday,
        name=format_period_label(ViewMode.WEEK, monday),
    )
    db.add(period)
    db.flush()

    podil, obolon = branches
    _, anna, boris, olha, _ = employees
    plan = [
        # (employee, branch, weekdays, start, end)
        (anna, podil, range(0, 5), time(8, 0), time(16, 0)),
        (boris, podil, range(2, 7), time(14, 0), time(22, 0)),
        (olha, obolon, range(0, 4), time(9, 0), time(18, 0)),
        (anna, obolon, [5], time(10, 0), time(16, 0)),
    ]

    count = 0
    for employee, branch, weekdays, start, end in plan:
        for weekday in weekdays:
            db.add(ScheduleShifts(
                partner_id=PARTNER_ID,
                period_id=period.id,
                branch_id=branch.id,
                staff_member_id=employee.id,
                position_id=employee.position_id,
                date=monday + timedelta(days=weekday),
                start_time=start,
                end_time=end,
                total_minutes=calculate_total_minutes(start, end),
                confirmation_status=ConfirmationStatus.PENDING,
            ))
            count += 1
    db.commit()
    print(f"Seeded {count} shifts.")


def main():
    print("\n" + "=" * 50)
    print("CrewPlan Database Seeder")
    print("=" * 50 + "\n")

    response = input(f"This will DELETE ALL DATA of partner {PARTNER_ID}. Continue? (yes/no): ")
    if response.lower() != "yes":
        print("Aborted.")
        sys.exit(0)

    Base.metadata.create_all(engine)
    db = SessionLocal()

    try:
        clear_partner(db)
        seed_settings(db)
        branches = seed_branches(db)
        employees = seed_people(db)
        seed_shifts(db, branches, employees)

        manager = employees[0]
        token = create_access_token({"sub": manager.id, "partner_id": PARTNER_ID})

        print("\n" + "=" * 50)
        print("Seeding complete!")
        print("=" * 50)
        print(f"\nManager: {manager.first_name} {manager.last_name} (employee {manager.id})")
        print(f"Bearer token: {token}")
        print("=" * 50 + "\n")

    except Exception as e:
        db.rollback()
        print(f"\nError during seeding: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
