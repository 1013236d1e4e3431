from sqlalchemy import Integer, String, Date, DateTime, UniqueConstraint, func, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime
from enum import Enum
from crewplan.db.database import Base


class ViewMode(str, Enum):
    WEEK = "week"
    MONTH = "month"


class SchedulePeriods(Base):
    __tablename__ = "schedule_periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    type: Mapped[ViewMode] = mapped_column(SQLEnum(ViewMode, name="schedule_period_type_enum"), nullable=False)
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("partner_id", "type", "date_start", "date_end", name="uix_schedule_periods_partner_range"),
    )
