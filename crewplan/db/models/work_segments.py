from typing import Optional
from datetime import datetime
from sqlalchemy import Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from crewplan.db.database import Base


class WorkSegments(Base):
    __tablename__ = "work_segments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    shift_id: Mapped[int] = mapped_column(Integer, ForeignKey("schedule_shifts.id", ondelete="CASCADE"), nullable=False, index=True)
    segment_start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    segment_end_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)  # null while open
