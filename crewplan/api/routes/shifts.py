from fastapi import APIRouter, Depends, HTTPException

from crewplan.api.deps import get_schedule_session
from crewplan.api.routes.schedule import raise_for_result
from crewplan.schemas.schedule import OperationResponse
from crewplan.schemas.shifts import (
    NoShowDecisionRequest,
    NoShowReasonRequest,
    ReplacementRequest,
    ShiftCloseRequest,
    ShiftDeclineRequest,
    ShiftResponse,
)
from crewplan.services.scheduling import ScheduleSession
from crewplan.services.scheduling.data_loader import shift_from_row
from crewplan.db.models.shifts import ScheduleShifts

router = APIRouter(prefix="/schedule/shifts", tags=["shifts"])


@router.get("/{shift_id}", response_model=ShiftResponse)
def get_shift(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    row = session.db.get(ScheduleShifts, shift_id)
    if not row or row.partner_id != session.partner_id:
        raise HTTPException(status_code=404, detail="Shift not found")
    return shift_from_row(row)


@router.post("/{shift_id}/confirm", response_model=OperationResponse)
def confirm_shift(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.confirm_shift(shift_id))


@router.post("/{shift_id}/decline", response_model=OperationResponse)
def decline_shift(shift_id: int, payload: ShiftDeclineRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.decline_shift(shift_id, payload.reason))


@router.post("/{shift_id}/late-cancel/accept", response_model=OperationResponse)
def accept_late_cancel(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.accept_late_cancel(shift_id))


@router.post("/{shift_id}/late-cancel/reject", response_model=OperationResponse)
def reject_late_cancel(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.reject_late_cancel(shift_id))


@router.post("/{shift_id}/open", response_model=OperationResponse)
def open_shift(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.open_shift(shift_id))


@router.post("/{shift_id}/close", response_model=OperationResponse)
def close_shift(shift_id: int, payload: ShiftCloseRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.close_shift(shift_id, payload.closed_by))


@router.post("/{shift_id}/early-leave/reset", response_model=OperationResponse)
def reset_early_leave(shift_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.reset_early_leave(shift_id))


@router.post("/{shift_id}/no-show/reason", response_model=OperationResponse)
def submit_no_show_reason(shift_id: int, payload: NoShowReasonRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.submit_no_show_reason(shift_id, payload.reason))


@router.post("/{shift_id}/no-show/decision", response_model=OperationResponse)
def decide_no_show_reason(shift_id: int, payload: NoShowDecisionRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.decide_no_show_reason(shift_id, payload.decision))


@router.post("/{shift_id}/replacement", response_model=OperationResponse)
def assign_replacement(shift_id: int, payload: ReplacementRequest, session: ScheduleSession = Depends(get_schedule_session)):
    """Hand a no-show shift to another employee; returns the new shift's id."""
    return raise_for_result(
        session.assign_replacement(shift_id, payload.employee_id, payload.start_time, payload.end_time)
    )
