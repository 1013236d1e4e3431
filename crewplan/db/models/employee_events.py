from typing import Optional
from datetime import datetime
from sqlalchemy import Integer, String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from crewplan.db.database import Base


class EmployeeEvents(Base):
    """Outbound notification log, one row per message shown to an employee."""
    __tablename__ = "employee_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    employee_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    related_shift_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    related_employee_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    no_show_reason_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action_status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    action_taken_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    telegram_chat_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    telegram_message_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
