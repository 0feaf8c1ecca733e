from datetime import date, datetime
from typing import Annotated, Union

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool
from pydantic import AliasChoices, Field, model_validator
from sqlalchemy.orm import Session

from greythr.api.deps import ensure_self_or_privileged, get_current_user, get_hub, is_privileged, require_roles
from greythr.core.schemas import Page, PartialUpdate, RequestModel, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.employees import service as employee_service
from greythr.domains.payroll import service
from greythr.models import User
from greythr.realtime.hub import ChannelHub
from greythr.realtime.publish import notification_events, push_events

router = APIRouter(prefix="/api/payroll", tags=["payroll"])

Amount = Annotated[float, Field(ge=0)]
ComponentsIn = Union[dict[str, Amount], Amount, None]
Period = Annotated[str, Field(pattern=r"^\d{4}-(0[1-9]|1[0-2])$")]


class PayrollCreate(RequestModel):
    user_id: int | None = None
    employee_id: int | None = None
    period: Period | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=1970)
    basic_salary: Amount = Field(validation_alias=AliasChoices("basicSalary", "baseSalary", "basic_salary"))
    allowances: ComponentsIn = None
    deductions: ComponentsIn = None
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_target(self):
        if self.user_id is None and self.employee_id is None:
            raise ValueError("userId or employeeId is required")
        if self.period is None and (self.month is None or self.year is None):
            raise ValueError("period or month and year are required")
        return self

    def month_year(self) -> tuple[int, int]:
        if self.period is not None:
            return service.parse_period(self.period)
        return self.month, self.year


class BulkEntry(RequestModel):
    employee_id: int
    basic_salary: Amount


class BulkGenerate(RequestModel):
    period: Period | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=1970)
    basic_salaries: list[BulkEntry] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_period(self):
        if self.period is None and (self.month is None or self.year is None):
            raise ValueError("period or month and year are required")
        return self


class PayrollUpdate(PartialUpdate):
    """Status moves only through the process and mark-paid endpoints."""

    not_null = ("basic_salary",)

    basic_salary: Amount | None = None
    allowances: ComponentsIn = None
    deductions: ComponentsIn = None
    notes: str | None = Field(default=None, max_length=500)


class PayrollOut(ResponseModel):
    id: int
    employee_id: int
    period: str
    month: int
    year: int
    basic_salary: float
    allowances: dict[str, float]
    deductions: dict[str, float]
    gross_salary: float
    net_salary: float
    net_pay: float
    status: str
    pay_date: date | None = None
    notes: str | None = None
    created_at: datetime | None = None


class PayrollResult(ResponseModel):
    success: bool = True
    message: str | None = None
    data: PayrollOut


class PayrollList(ResponseModel):
    data: list[PayrollOut]
    pagination: Page


@router.get("", response_model=PayrollList)
def list_payrolls(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = None,
    status: str | None = None,
    department: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee_id = None
    if not is_privileged(user):
        employee_id = employee_service.get_by_user_id(db, user.id).id
        department = None
    rows, total = service.list_payrolls(
        db, employee_id=employee_id, month=month, year=year, status=status,
        department=department, page=page, limit=limit,
    )
    return PayrollList(data=rows, pagination=page_meta(page, limit, total))


@router.post("", response_model=PayrollResult, status_code=201)
def generate_payroll(
    payload: PayrollCreate,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    employee = service.resolve_employee(db, user_id=payload.user_id, employee_id=payload.employee_id)
    month, year = payload.month_year()
    payroll = service.generate(
        db,
        employee,
        month,
        year,
        payload.basic_salary,
        allowances=payload.allowances,
        deductions=payload.deductions,
        notes=payload.notes,
    )
    return PayrollResult(message="Payroll generated successfully", data=payroll)


@router.post("/bulk")
def bulk_generate(
    payload: BulkGenerate,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
) -> dict:
    month, year = service.parse_period(payload.period) if payload.period else (payload.month, payload.year)
    created, errors = service.bulk_generate(
        db, month, year, [entry.model_dump() for entry in payload.basic_salaries]
    )
    results = [PayrollOut.model_validate(p).model_dump(mode="json", by_alias=True) for p in created]
    return {
        "success": True,
        "message": f"Generated {len(created)} payrolls successfully",
        "data": {"generated": len(created), "errors": len(errors), "details": {"results": results, "errors": errors}},
    }


@router.get("/stats")
def payroll_stats(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = None,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
) -> dict:
    return {"success": True, "data": service.stats(db, month=month, year=year)}


@router.get("/{user_id}", response_model=PayrollList)
def payrolls_for_user(
    user_id: int,
    year: int | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=12, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    ensure_self_or_privileged(user, user_id)
    employee = employee_service.get_by_user_id(db, user_id)
    rows, total = service.list_payrolls(db, employee_id=employee.id, year=year, page=page, limit=limit)
    return PayrollList(data=rows, pagination=page_meta(page, limit, total))


@router.put("/{payroll_id}", response_model=PayrollResult)
def update_payroll(
    payroll_id: int,
    payload: PayrollUpdate,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    payroll = service.update(db, service.get_payroll(db, payroll_id), payload.changes())
    return PayrollResult(message="Payroll updated successfully", data=payroll)


@router.put("/{payroll_id}/process", response_model=PayrollResult)
async def process_payroll(
    payroll_id: int,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        payroll, notification = service.process(db, service.get_payroll(db, payroll_id))
        result = PayrollResult(message="Payroll processed successfully", data=payroll)
        return result, notification_events([notification])

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result


@router.put("/{payroll_id}/mark-paid", response_model=PayrollResult)
async def mark_payroll_paid(
    payroll_id: int,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        payroll, notification = service.mark_paid(db, service.get_payroll(db, payroll_id))
        result = PayrollResult(message="Payroll marked as paid successfully", data=payroll)
        return result, notification_events([notification])

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result
