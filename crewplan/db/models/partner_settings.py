from typing import Optional
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from crewplan.db.database import Base


class PartnerSettings(Base):
    __tablename__ = "partner_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False, index=True)
    timezone: Mapped[str] = mapped_column(String(50), nullable=False, default="Europe/Kiev")
    planning_horizon_days: Mapped[int] = mapped_column(Integer, nullable=False, default=14)
    no_show_threshold_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    shift_grace_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    early_leave_threshold_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    late_cancel_deadline_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=24)
    shift_reminders_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shift_reminder_offset_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    shift_reminder_comment: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    shift_close_reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    shift_auto_close_offset_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    employee_bot_token: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
