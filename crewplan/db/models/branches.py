from sqlalchemy import Integer, String, DateTime, func, Enum as SQLEnum
from datetime import datetime
from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column
from crewplan.db.database import Base


class BranchStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Branches(Base):
    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    partner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[BranchStatus] = mapped_column(SQLEnum(BranchStatus, name="branch_status_enum"), nullable=False, default=BranchStatus.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
