from datetime import date, datetime

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from greythr.api.deps import ensure_self_or_privileged, get_current_user
from greythr.core.schemas import Page, RequestModel, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.attendance import service
from greythr.domains.employees import service as employee_service
from greythr.models import User

router = APIRouter(prefix="/api/attendance", tags=["attendance"])


class PunchRequest(RequestModel):
    notes: str | None = None


class AttendanceOut(ResponseModel):
    id: int
    employee_id: int
    date: date
    punch_in: datetime | None = None
    punch_out: datetime | None = None
    break_minutes: int
    total_hours: float
    status: str
    notes: str | None = None


class AttendanceResult(ResponseModel):
    success: bool = True
    message: str | None = None
    data: AttendanceOut | None = None


class AttendanceList(ResponseModel):
    data: list[AttendanceOut]
    pagination: Page


def _employee_for(db: Session, caller: User, user_id: int):
    ensure_self_or_privileged(caller, user_id)
    return employee_service.get_by_user_id(db, user_id)


@router.post("/{user_id}/clock-in", response_model=AttendanceResult, status_code=201)
def clock_in(
    user_id: int,
    payload: PunchRequest | None = Body(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = _employee_for(db, user, user_id)
    record, created = service.clock_in(db, employee, notes=payload.notes if payload else None)
    if not created:
        result = AttendanceResult(message="Already clocked in today", data=AttendanceOut.model_validate(record))
        return JSONResponse(status_code=200, content=result.model_dump(mode="json", by_alias=True))
    return AttendanceResult(message="Clocked in successfully", data=record)


@router.post("/{user_id}/clock-out", response_model=AttendanceResult)
def clock_out(
    user_id: int,
    payload: PunchRequest | None = Body(default=None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = _employee_for(db, user, user_id)
    record = service.clock_out(db, employee, notes=payload.notes if payload else None)
    return AttendanceResult(message="Clocked out successfully", data=record)


@router.get("/{user_id}/today", response_model=AttendanceResult)
def today(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    employee = _employee_for(db, user, user_id)
    return AttendanceResult(data=service.today_record(db, employee))


@router.get("/{user_id}", response_model=AttendanceList)
def history(
    user_id: int,
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=31, ge=1, le=366),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = _employee_for(db, user, user_id)
    rows, total = service.history(db, employee, month=month, year=year, page=page, limit=limit)
    return AttendanceList(data=rows, pagination=page_meta(page, limit, total))
