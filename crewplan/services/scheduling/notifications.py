"""
Outbound employee notifications tied to shift decisions.

The employee sees at most one live no-show decision message per shift: a new
decision deletes the previous message (when its reference was recorded) before
sending the replacement. Every send is logged in employee_events so the next
edit can find it. Delivery failures are logged and never undo the decision.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crewplan.db.models.employee_events import EmployeeEvents
from crewplan.db.models.employees import Employees
from crewplan.services.telegram.client import BaseNotificationSink
from crewplan.services.telegram import messages

from .types import NoShowReasonStatus, Shift


logger = logging.getLogger(__name__)

REASON_SELECTED_EVENT = "no_show_reason_selected"
APPROVED_EVENT = "no_show_approved"
REJECTED_EVENT = "no_show_rejected"
DECISION_EVENTS = (APPROVED_EVENT, REJECTED_EVENT)

NO_SHOW_EVENT = "no_show"
URGENT_SHIFT_EVENT = "urgent_shift"
PURGEABLE_NO_SHOW_EVENTS = (NO_SHOW_EVENT, URGENT_SHIFT_EVENT)


class NoShowDecisionNotifier:
    """Keeps the employee's Telegram chat and the event log in step with no-show decisions."""

    def __init__(self, db: Session, sink: Optional[BaseNotificationSink], partner_id: int, bot_token: Optional[str]):
        self.db = db
        self.sink = sink
        self.partner_id = partner_id
        self.bot_token = bot_token

    @property
    def can_send(self) -> bool:
        return self.sink is not None and bool(self.bot_token)

    def _delete_telegram_message(self, chat_id: Optional[str], message_id: Optional[int]) -> None:
        if not self.can_send or not chat_id or not message_id:
            return
        if not self.sink.delete_message(self.bot_token, chat_id, message_id):
            logger.warning(f"Could not delete Telegram message {message_id} in chat {chat_id}")

    def purge_no_show_notifications(self, shift_id: int) -> int:
        """
        Remove no-show and urgent-shift notices for a shift: the Telegram
        messages first, then their log rows. Returns the number of rows removed.
        """
        try:
            stmt = select(EmployeeEvents).where(
                and_(
                    EmployeeEvents.related_shift_id == shift_id,
                    EmployeeEvents.event_type.in_(PURGEABLE_NO_SHOW_EVENTS),
                )
            )
            events = self.db.execute(stmt).scalars().all()
            for ev in events:
                self._delete_telegram_message(ev.telegram_chat_id, ev.telegram_message_id)
            for ev in events:
                self.db.delete(ev)
            self.db.commit()
            return len(events)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to purge no-show notifications for shift {shift_id}: {e}")
            return 0

    def publish_decision(self, shift: Shift, responsible_name: Optional[str], now: datetime) -> Optional[EmployeeEvents]:
        """
        Record and deliver a no-show reason decision that is already saved on the shift.
        """
        approved = shift.no_show_reason_status == NoShowReasonStatus.APPROVED
        status_value = shift.no_show_reason_status.value if shift.no_show_reason_status else None

        try:
            self._mark_reason_events(shift, status_value, now)
            previous = self._latest_decision_event(shift.id)
            chat_id, message_id = self._send_decision(shift, approved, responsible_name, previous)

            log_entry = EmployeeEvents(
                partner_id=self.partner_id,
                employee_id=shift.staff_member_id,
                event_type=APPROVED_EVENT if approved else REJECTED_EVENT,
                title=messages.no_show_decision_title(approved),
                message=messages.no_show_decision_log_message(approved, responsible_name),
                related_shift_id=shift.id,
                no_show_reason_text=shift.no_show_reason_text,
                telegram_chat_id=chat_id,
                telegram_message_id=message_id,
            )
            self.db.add(log_entry)
            self.db.commit()
            return log_entry
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record no-show decision notification for shift {shift.id}: {e}")
            return None

    def _mark_reason_events(self, shift: Shift, status_value: Optional[str], now: datetime) -> None:
        stmt = select(EmployeeEvents).where(
            and_(
                EmployeeEvents.related_shift_id == shift.id,
                EmployeeEvents.related_employee_id == shift.staff_member_id,
                EmployeeEvents.event_type == REASON_SELECTED_EVENT,
            )
        )
        for ev in self.db.execute(stmt).scalars().all():
            ev.action_status = status_value
            ev.action_taken_at = now

    def _latest_decision_event(self, shift_id: int) -> Optional[EmployeeEvents]:
        stmt = (
            select(EmployeeEvents)
            .where(
                and_(
                    EmployeeEvents.related_shift_id == shift_id,
                    EmployeeEvents.event_type.in_(DECISION_EVENTS),
                )
            )
            .order_by(EmployeeEvents.created_at.desc(), EmployeeEvents.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _send_decision(
        self,
        shift: Shift,
        approved: bool,
        responsible_name: Optional[str],
        previous: Optional[EmployeeEvents],
    ) -> tuple[Optional[str], Optional[int]]:
        if not self.can_send or shift.staff_member_id is None:
            return None, None

        employee = self.db.get(Employees, shift.staff_member_id)
        if employee is None or not employee.telegram_user_id:
            return None, None

        if previous is not None:
            self._delete_telegram_message(previous.telegram_chat_id, previous.telegram_message_id)
            # the old message is gone; keep the row as history but drop its reference
            previous.telegram_message_id = None

        text = messages.no_show_decision_message(
            approved,
            shift.date,
            shift.start_time,
            shift.end_time,
            shift.no_show_reason_text,
            responsible_name,
        )
        result = self.sink.send_message(self.bot_token, employee.telegram_user_id, text)
        if not result.success:
            logger.error(f"Failed to send no-show decision to employee {employee.id}: {result.error}")
            return None, None
        return employee.telegram_user_id, result.message_id

    def send_notice(
        self,
        employee_id: int,
        event_type: str,
        title: str,
        text: str,
        shift_id: Optional[int] = None,
        related_employee_id: Optional[int] = None,
    ) -> Optional[EmployeeEvents]:
        """Send a one-off notice to an employee and log it. Does not commit."""
        employee = self.db.get(Employees, employee_id)
        chat_id, message_id = None, None
        if self.can_send and employee is not None and employee.telegram_user_id:
            result = self.sink.send_message(self.bot_token, employee.telegram_user_id, text)
            if result.success:
                chat_id, message_id = employee.telegram_user_id, result.message_id
            else:
                logger.error(f"Failed to send {event_type} notice to employee {employee_id}: {result.error}")

        log_entry = EmployeeEvents(
            partner_id=self.partner_id,
            employee_id=employee_id,
            event_type=event_type,
            title=title,
            message=text,
            related_shift_id=shift_id,
            related_employee_id=related_employee_id,
            telegram_chat_id=chat_id,
            telegram_message_id=message_id,
        )
        self.db.add(log_entry)
        return log_entry
