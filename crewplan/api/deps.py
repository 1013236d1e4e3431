from datetime import date
from typing import Generator, Optional
from fastapi import Depends, HTTPException, Query, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from crewplan.db.database import SessionLocal
from crewplan.core.security import TokenData, decode_access_token
from crewplan.db.models.employees import Employees
from crewplan.db.models.schedule_periods import ViewMode
from crewplan.services.scheduling import ScheduleSession
from crewplan.services.telegram import BaseNotificationSink, get_notification_sink

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_sink() -> BaseNotificationSink:
    return get_notification_sink()


def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> TokenData:
    """The responsible employee making the request, taken from the bearer token."""
    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    employee = db.get(Employees, token_data.employee_id)
    if not employee or employee.partner_id != token_data.partner_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Employee not found")

    if not employee.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

    return token_data


def get_schedule_session(
    mode: ViewMode = Query(ViewMode.WEEK),
    anchor: Optional[date] = Query(None, description="Any date inside the period; defaults to today"),
    db: Session = Depends(get_db),
    actor: TokenData = Depends(get_current_actor),
    sink: BaseNotificationSink = Depends(get_sink),
) -> ScheduleSession:
    """A loaded schedule session for the caller's partner and the requested view."""
    session = ScheduleSession(
        db,
        partner_id=actor.partner_id,
        sink=sink,
        actor_id=actor.employee_id,
        view_mode=mode,
        anchor_date=anchor,
    )
    if not session.load():
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Failed to load schedule")
    return session
