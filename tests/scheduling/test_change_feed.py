from datetime import time

from crewplan.db.models import BranchScheduleSettings, EmployeeEvents, ScheduleShifts
from crewplan.services.scheduling.change_feed import ChangeEvent, ChangeFeed, install_change_listeners

from conftest import PARTNER_ID, get_test_monday


def shift_row(seed, employee_id):
    return ScheduleShifts(
        partner_id=PARTNER_ID, branch_id=seed.branch_a, staff_member_id=employee_id,
        date=get_test_monday(), start_time=time(9, 0), end_time=time(18, 0),
    )


class TestChangeFeed:

    def test_subscription_filters_tables_and_partner(self):
        feed = ChangeFeed()
        shifts_only = feed.subscribe({"schedule_shifts"}, partner_id=1)
        everything = feed.subscribe()

        feed.publish(ChangeEvent("schedule_shifts", "insert", 1, 1))
        feed.publish(ChangeEvent("schedule_shifts", "insert", 2, 2))
        feed.publish(ChangeEvent("partner_settings", "update", 3, 1))
        feed.publish(ChangeEvent("work_segments", "insert", 4, None))

        assert [c.row_id for c in shifts_only.drain()] == [1]
        assert [c.row_id for c in everything.drain()] == [1, 2, 3, 4]
        assert shifts_only.drain() == []

    def test_rows_without_partner_reach_partner_subscribers(self):
        feed = ChangeFeed()
        subscription = feed.subscribe({"work_segments"}, partner_id=1)
        feed.publish(ChangeEvent("work_segments", "update", 9, None))
        assert len(subscription.drain()) == 1

    def test_closed_subscription_stops_receiving(self):
        feed = ChangeFeed()
        subscription = feed.subscribe()
        subscription.close()
        feed.publish(ChangeEvent("schedule_shifts", "insert", 1, 1))
        assert subscription.drain() == []


class TestSessionListeners:

    def test_committed_changes_are_published(self, session_factory, seed):
        feed = ChangeFeed()
        install_change_listeners(feed, session_factory)
        subscription = feed.subscribe()

        db = session_factory()
        row = shift_row(seed, seed.anna)
        db.add(row)
        db.flush()
        assert subscription.drain() == []

        db.commit()
        assert subscription.drain() == [ChangeEvent("schedule_shifts", "insert", row.id, PARTNER_ID)]

        row.end_time = time(17, 0)
        db.commit()
        db.delete(row)
        db.commit()
        assert [c.operation for c in subscription.drain()] == ["update", "delete"]
        db.close()

    def test_rollback_discards_changes(self, session_factory, seed):
        feed = ChangeFeed()
        install_change_listeners(feed, session_factory)
        subscription = feed.subscribe()

        db = session_factory()
        db.add(shift_row(seed, seed.boris))
        db.flush()
        db.rollback()
        db.close()

        assert subscription.drain() == []

    def test_unwatched_tables_are_ignored(self, session_factory, seed):
        feed = ChangeFeed()
        install_change_listeners(feed, session_factory)
        subscription = feed.subscribe()

        db = session_factory()
        db.add(EmployeeEvents(partner_id=PARTNER_ID, event_type="no_show"))
        db.add(BranchScheduleSettings(partner_id=PARTNER_ID, branch_id=seed.branch_a, min_staff_per_day=2))
        db.commit()
        db.close()

        assert [c.table for c in subscription.drain()] == ["branch_schedule_settings"]
