"""
Row-level change notifications for the schedule tables.

Rows flushed by a SQLAlchemy session are buffered on it and published to a
ChangeFeed once the transaction commits; a rollback discards them. Schedule
sessions subscribe to the tables they care about and drain their queue to
decide whether to reload.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import event

from crewplan.db.models.branch_schedule_settings import BranchScheduleSettings
from crewplan.db.models.partner_settings import PartnerSettings
from crewplan.db.models.shifts import ScheduleShifts
from crewplan.db.models.work_segments import WorkSegments


logger = logging.getLogger(__name__)

WATCHED_MODELS = (ScheduleShifts, BranchScheduleSettings, PartnerSettings, WorkSegments)

_PENDING_KEY = "crewplan_pending_changes"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    operation: str  # insert | update | delete
    row_id: Optional[int]
    partner_id: Optional[int]


class Subscription:
    def __init__(self, feed: "ChangeFeed", tables: Optional[set[str]], partner_id: Optional[int]):
        self._feed = feed
        self.tables = tables
        self.partner_id = partner_id
        self._queue: queue.Queue = queue.Queue()

    def matches(self, change: ChangeEvent) -> bool:
        if self.tables is not None and change.table not in self.tables:
            return False
        # rows without a partner column (work segments) reach every subscriber
        if self.partner_id is not None and change.partner_id is not None:
            return change.partner_id == self.partner_id
        return True

    def put(self, change: ChangeEvent) -> None:
        self._queue.put(change)

    def drain(self) -> list[ChangeEvent]:
        """All events received since the last drain, oldest first. Never blocks."""
        changes = []
        while True:
            try:
                changes.append(self._queue.get_nowait())
            except queue.Empty:
                return changes

    def close(self) -> None:
        self._feed.unsubscribe(self)


class ChangeFeed:
    """Fan-out of committed row changes to subscribers."""

    def __init__(self):
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, tables: Optional[Iterable[str]] = None, partner_id: Optional[int] = None) -> Subscription:
        subscription = Subscription(self, set(tables) if tables is not None else None, partner_id)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            if subscription.matches(change):
                subscription.put(change)


def _collect(session) -> list[ChangeEvent]:
    """Watched rows touched by the flush that is finishing (state is still pre-flush here)."""
    changes = []
    groups = (
        ("insert", session.new),
        ("update", [obj for obj in session.dirty if session.is_modified(obj)]),
        ("delete", session.deleted),
    )
    for operation, objects in groups:
        for obj in objects:
            if not isinstance(obj, WATCHED_MODELS):
                continue
            changes.append(ChangeEvent(
                table=obj.__tablename__,
                operation=operation,
                row_id=getattr(obj, "id", None),
                partner_id=getattr(obj, "partner_id", None),
            ))
    return changes


def install_change_listeners(feed: ChangeFeed, session_target) -> None:
    """
    Publish committed changes of ``session_target`` (a sessionmaker or a
    session instance) to ``feed``.
    """

    @event.listens_for(session_target, "after_flush")
    def _buffer_changes(session, flush_context):
        session.info.setdefault(_PENDING_KEY, []).extend(_collect(session))

    @event.listens_for(session_target, "after_commit")
    def _publish_pending(session):
        for change in session.info.pop(_PENDING_KEY, []):
            feed.publish(change)

    @event.listens_for(session_target, "after_rollback")
    def _discard_pending(session):
        dropped = session.info.pop(_PENDING_KEY, [])
        if dropped:
            logger.debug(f"Discarded {len(dropped)} uncommitted change events")
