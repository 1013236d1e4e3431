from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from crewplan.api.deps import get_current_actor, get_db, get_schedule_session, get_sink
from crewplan.core.security import TokenData
from crewplan.schemas.schedule import (
    BranchReorderRequest,
    BranchScheduleResponse,
    ConflictResponse,
    CopyResponse,
    DayColumnResponse,
    HorizonCoverageResponse,
    MinStaffRequest,
    OperationResponse,
    RosterRowResponse,
    ScheduleViewResponse,
    ShiftClearRequest,
    ShiftSaveRequest,
    SweepResponse,
)
from crewplan.schemas.shifts import ShiftResponse
from crewplan.services.scheduling import OperationResult, ScheduleSession, format_period_label, run_attendance_sweep
from crewplan.services.telegram import BaseNotificationSink

router = APIRouter(prefix="/schedule", tags=["schedule"])

ERROR_STATUS = {
    "conflict": status.HTTP_409_CONFLICT,
    "exists": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid": status.HTTP_400_BAD_REQUEST,
    "store": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_result(result: OperationResult) -> OperationResponse:
    """Turn a failed session result into an HTTP error; pass successes through."""
    if result.success:
        return OperationResponse(success=True, message=result.message, shift_id=result.shift_id)

    status_code = ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST)
    if result.conflict is not None:
        conflict = ConflictResponse(
            branch_name=result.conflict.branch_name,
            start_time=result.conflict.start_time.strftime("%H:%M"),
            end_time=result.conflict.end_time.strftime("%H:%M"),
            free_from=result.conflict.free_from.strftime("%H:%M"),
        )
        detail = {"message": result.message, "conflict": conflict.model_dump()}
        raise HTTPException(status_code=status_code, detail=detail)
    raise HTTPException(status_code=status_code, detail=result.message)


def build_view(session: ScheduleSession) -> ScheduleViewResponse:
    employees = {e.id: e for e in session.employees}
    branches = []
    for branch in session.ordered_branches():
        rows = []
        for entry in session.roster(branch.id):
            employee = employees.get(entry.employee_id)
            rows.append(RosterRowResponse(
                employee_id=entry.employee_id,
                position_id=entry.position_id,
                name=employee.full_name if employee else f"#{entry.employee_id}",
                total_minutes=session.employee_total_minutes(entry.employee_id, branch.id),
            ))
        branches.append(BranchScheduleResponse(
            id=branch.id,
            name=branch.name,
            min_staff_per_day=session.min_staff_for(branch.id),
            problem_days=session.branch_problems(branch.id),
            horizon=HorizonCoverageResponse.model_validate(session.horizon_coverage(branch.id)),
            total_minutes=session.branch_total_minutes(branch.id),
            rows=rows,
        ))

    return ScheduleViewResponse(
        mode=session.view_mode,
        anchor=session.anchor_date,
        label=format_period_label(session.view_mode, session.anchor_date),
        period_id=session.period_id,
        today=session.today,
        days=[DayColumnResponse.model_validate(d) for d in session.days],
        branches=branches,
        shifts=[ShiftResponse.model_validate(s) for s in session.view_shifts if s.id is not None],
    )


@router.get("", response_model=ScheduleViewResponse)
def get_schedule(session: ScheduleSession = Depends(get_schedule_session)):
    return build_view(session)


@router.put("/shifts", response_model=OperationResponse)
def save_shift(payload: ShiftSaveRequest, session: ScheduleSession = Depends(get_schedule_session)):
    result = session.save_shift(
        payload.employee_id, payload.branch_id, payload.position_id,
        payload.date, payload.start_time, payload.end_time,
    )
    return raise_for_result(result)


@router.post("/shifts/duplicate", response_model=OperationResponse)
def duplicate_shift(payload: ShiftSaveRequest, session: ScheduleSession = Depends(get_schedule_session)):
    """Save the shift and copy its window to the next day."""
    result = session.duplicate_to_next_day(
        payload.employee_id, payload.branch_id, payload.position_id,
        payload.date, payload.start_time, payload.end_time,
    )
    return raise_for_result(result)


@router.post("/shifts/clear", response_model=OperationResponse)
def clear_shift(payload: ShiftClearRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.clear_shift(payload.employee_id, payload.branch_id, payload.date))


@router.post("/branches/{branch_id}/copy-previous", response_model=CopyResponse)
def copy_previous_period(branch_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    result = session.copy_from_previous_period(branch_id)
    if not result.success:
        status_code = ERROR_STATUS.get(result.error, status.HTTP_409_CONFLICT)
        raise HTTPException(status_code=status_code, detail=result.message)
    return result


@router.delete("/branches/{branch_id}/shifts", response_model=OperationResponse)
def clear_branch(branch_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.clear_branch_schedule(branch_id))


@router.delete("/branches/{branch_id}/employees/{employee_id}", response_model=OperationResponse)
def remove_employee(branch_id: int, employee_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.remove_employee_from_branch(branch_id, employee_id))


@router.get("/branches/{branch_id}/coverage", response_model=HorizonCoverageResponse)
def horizon_coverage(branch_id: int, session: ScheduleSession = Depends(get_schedule_session)):
    if branch_id not in session.branch_names:
        raise HTTPException(status_code=404, detail="Branch not found")
    return session.horizon_coverage(branch_id)


@router.post("/branches/reorder", response_model=OperationResponse)
def reorder_branches(payload: BranchReorderRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.reorder_branches(payload.dragged_id, payload.target_id))


@router.put("/branches/{branch_id}/min-staff", response_model=OperationResponse)
def set_min_staff(branch_id: int, payload: MinStaffRequest, session: ScheduleSession = Depends(get_schedule_session)):
    return raise_for_result(session.set_min_staff(branch_id, payload.min_staff_per_day))


@router.post("/attendance-sweep", response_model=SweepResponse)
def attendance_sweep(
    db: Session = Depends(get_db),
    actor: TokenData = Depends(get_current_actor),
    sink: BaseNotificationSink = Depends(get_sink),
):
    """Run the lateness / no-show / reminder pass for the caller's partner now."""
    return run_attendance_sweep(db, actor.partner_id, sink)
