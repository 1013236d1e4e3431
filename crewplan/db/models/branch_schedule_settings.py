from typing import Optional
from datetime import datetime
from sqlalchemy import Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from crewplan.db.database import Base


class BranchScheduleSettings(Base):
    __tablename__ = "branch_schedule_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    branch_id: Mapped[int] = mapped_column(Integer, ForeignKey("branches.id"), nullable=False)
    min_staff_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    display_order: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # unset sorts last
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("partner_id", "branch_id", name="uix_branch_schedule_settings_partner_branch"),
    )
