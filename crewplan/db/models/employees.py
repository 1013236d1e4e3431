from sqlalchemy import Integer, String, Date, DateTime, Boolean, func, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime
from enum import Enum
from typing import Optional
from crewplan.db.database import Base

class EmploymentStatus(str, Enum):
    WORKING = "working"
    ON_VACATION = "on_vacation"
    PENDING_DISMISSAL = "pending_dismissal"
    FIRED = "fired"

class Employees(Base):
    __tablename__ = "employees"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    position_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("positions.id"), nullable=True)
    branch_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("branches.id"), nullable=True)
    current_status: Mapped[EmploymentStatus] = mapped_column(SQLEnum(EmploymentStatus, name="employment_status_enum"), nullable=False, default=EmploymentStatus.WORKING)
    dismissal_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    telegram_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
