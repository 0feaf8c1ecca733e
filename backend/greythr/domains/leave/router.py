from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool
from pydantic import Field, model_validator
from sqlalchemy.orm import Session

from greythr.api.deps import ensure_self_or_privileged, get_current_user, get_hub, is_privileged, require_roles
from greythr.core.schemas import Page, RequestModel, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.employees import service as employee_service
from greythr.domains.leave import service
from greythr.models import User
from greythr.realtime.hub import ChannelHub
from greythr.realtime.publish import notification_events, push_events

router = APIRouter(prefix="/api/leave", tags=["leave"])

LeaveType = Literal["casual", "sick", "earned", "maternity", "paternity", "unpaid"]


class LeaveRequest(RequestModel):
    type: LeaveType
    start_date: date
    end_date: date
    reason: str = Field(default="", max_length=1000)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class LeaveDecision(RequestModel):
    status: Literal["approved", "rejected"]
    rejection_reason: str | None = None


class LeaveOut(ResponseModel):
    id: int
    employee_id: int
    type: str
    start_date: date
    end_date: date
    days: int
    reason: str
    status: str
    applied_on: datetime | None = None
    approved_by: int | None = None
    approved_on: datetime | None = None
    rejection_reason: str | None = None


class LeaveList(ResponseModel):
    data: list[LeaveOut]
    pagination: Page


class LeaveResult(ResponseModel):
    success: bool = True
    message: str
    data: LeaveOut | None = None


@router.get("", response_model=LeaveList)
def list_leaves(
    status: str | None = None,
    type: str | None = None,
    department: str | None = None,
    employee_id: int | None = Query(default=None, alias="employeeId"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    """HR and admins see every request; everyone else sees their own."""
    if not is_privileged(user):
        employee_id = employee_service.get_by_user_id(db, user.id).id
        department = None
    rows, total = service.list_leaves(
        db, employee_id=employee_id, status=status, type=type, department=department, page=page, limit=limit
    )
    return LeaveList(data=rows, pagination=page_meta(page, limit, total))


@router.post("", response_model=LeaveResult, status_code=201)
async def apply_leave(
    payload: LeaveRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        employee = employee_service.get_by_user_id(db, user.id)
        leave, staged = service.apply(
            db, employee, payload.type, payload.start_date, payload.end_date, reason=payload.reason
        )
        return LeaveResult(message="Leave application submitted successfully", data=leave), notification_events(staged)

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result


@router.get("/balance")
def leave_balance(
    year: int | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> dict:
    employee = employee_service.get_by_user_id(db, user.id)
    return {"success": True, "data": service.balance(db, employee, year=year)}


@router.get("/stats")
def leave_stats(
    year: int | None = None,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
) -> dict:
    return {"success": True, "data": service.stats(db, year=year)}


@router.get("/{user_id}", response_model=LeaveList)
def leaves_for_user(
    user_id: int,
    status: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    ensure_self_or_privileged(user, user_id)
    employee = employee_service.get_by_user_id(db, user_id)
    rows, total = service.list_leaves(db, employee_id=employee.id, status=status, page=page, limit=limit)
    return LeaveList(data=rows, pagination=page_meta(page, limit, total))


@router.put("/{leave_id}/status", response_model=LeaveResult)
async def decide_leave(
    leave_id: int,
    payload: LeaveDecision,
    user: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        leave, notification = service.update_status(
            db, service.get_leave(db, leave_id), payload.status, user, rejection_reason=payload.rejection_reason
        )
        result = LeaveResult(message=f"Leave request {payload.status} successfully", data=leave)
        return result, notification_events([notification])

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result


@router.delete("/{leave_id}", response_model=LeaveResult)
def cancel_leave(leave_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    employee = employee_service.get_by_user_id(db, user.id)
    service.cancel(db, service.get_leave(db, leave_id), employee)
    return LeaveResult(message="Leave request cancelled successfully")
