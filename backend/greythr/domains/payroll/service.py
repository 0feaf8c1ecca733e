"""Payroll generation and the draft -> processed -> paid lifecycle.

Gross and net pay are derived by the model on every save, so the service only
ever sets the inputs (basic salary and the component breakdowns).
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from greythr.core import clock
from greythr.core.errors import DuplicateKey, NotFound, ValidationError
from greythr.core.logging import get_logger
from greythr.domains.employees import service as employee_service
from greythr.domains.notifications import service as notifications
from greythr.models import Employee, Notification, Payroll
from greythr.models.payroll import PAYROLL_STATUSES

logger = get_logger(__name__)

Components = Mapping[str, float] | float | int | None


def format_period(month: int, year: int) -> str:
    return f"{year:04d}-{month:02d}"


def parse_period(period: str) -> tuple[int, int]:
    """``"2025-01"`` -> ``(1, 2025)``."""
    try:
        year, month = (int(part) for part in period.split("-"))
    except ValueError as exc:
        raise ValidationError(f"Invalid period {period}, expected YYYY-MM") from exc
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid period {period}, expected YYYY-MM")
    return month, year


def default_allowances(basic: float) -> dict[str, float]:
    return {
        "hra": round(basic * 0.4, 2),
        "da": round(basic * 0.1, 2),
        "transport": 2000.0,
        "medical": 1500.0,
        "other": 0.0,
    }


def default_deductions(basic: float) -> dict[str, float]:
    return {
        "pf": round(basic * 0.12, 2),
        "esi": round(basic * 0.0175, 2),
        "tax": round(basic * 0.1, 2),
        "other": 0.0,
    }


def as_components(value: Components) -> dict[str, float] | None:
    """A flat amount is stored as a single ``other`` component."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return {str(k): round(float(v), 2) for k, v in value.items()}
    return {"other": round(float(value), 2)}


def resolve_employee(db: Session, user_id: int | None = None, employee_id: int | None = None) -> Employee:
    if employee_id is not None:
        return employee_service.get_employee(db, employee_id)
    if user_id is not None:
        return employee_service.get_by_user_id(db, user_id)
    raise ValidationError("userId or employeeId is required")


def get_payroll(db: Session, payroll_id: int) -> Payroll:
    payroll = db.get(Payroll, payroll_id)
    if not payroll:
        raise NotFound("Payroll not found")
    return payroll


def _exists(db: Session, employee_id: int, period: str) -> bool:
    return (
        db.query(Payroll.id).filter(Payroll.employee_id == employee_id, Payroll.period == period).first()
        is not None
    )


def _build(
    employee_id: int,
    month: int,
    year: int,
    basic_salary: float,
    allowances: Components = None,
    deductions: Components = None,
    notes: str | None = None,
) -> Payroll:
    allowances = as_components(allowances)
    deductions = as_components(deductions)
    return Payroll(
        employee_id=employee_id,
        period=format_period(month, year),
        month=month,
        year=year,
        basic_salary=basic_salary,
        allowances=default_allowances(basic_salary) if allowances is None else allowances,
        deductions=default_deductions(basic_salary) if deductions is None else deductions,
        notes=notes,
    )


def generate(
    db: Session,
    employee: Employee,
    month: int,
    year: int,
    basic_salary: float,
    allowances: Components = None,
    deductions: Components = None,
    notes: str | None = None,
) -> Payroll:
    period = format_period(month, year)
    if _exists(db, employee.id, period):
        raise DuplicateKey("Payroll already exists for this period")

    payroll = _build(employee.id, month, year, basic_salary, allowances, deductions, notes)
    db.add(payroll)
    db.commit()
    db.refresh(payroll)
    logger.info(
        "payroll_generated",
        payroll_id=payroll.id,
        employee_id=employee.id,
        period=period,
        net_salary=payroll.net_salary,
    )
    return payroll


def bulk_generate(db: Session, month: int, year: int, entries: list[dict[str, Any]]) -> tuple[list[Payroll], list[dict]]:
    """Generate one draft per ``{employeeId, basicSalary}`` entry with default components.

    Entries that fail are reported back instead of aborting the batch.
    """
    period = format_period(month, year)
    created: list[Payroll] = []
    errors: list[dict] = []
    seen: set[int] = set()
    for entry in entries:
        employee_id = entry["employee_id"]
        if db.get(Employee, employee_id) is None:
            errors.append({"employeeId": employee_id, "error": "Employee not found"})
            continue
        if employee_id in seen or _exists(db, employee_id, period):
            errors.append({"employeeId": employee_id, "error": "Payroll already exists for this period"})
            continue
        seen.add(employee_id)
        payroll = _build(employee_id, month, year, entry["basic_salary"])
        db.add(payroll)
        created.append(payroll)
    db.commit()
    for payroll in created:
        db.refresh(payroll)
    logger.info("payroll_bulk_generated", period=period, generated=len(created), failed=len(errors))
    return created, errors


def update(db: Session, payroll: Payroll, changes: dict[str, Any]) -> Payroll:
    if payroll.status == "paid":
        raise ValidationError("Paid payroll cannot be modified")
    for field in ("allowances", "deductions"):
        if field in changes:
            # assign a fresh dict so the JSON column is flagged dirty
            changes[field] = as_components(changes[field]) or {}
    for field, value in changes.items():
        setattr(payroll, field, value)
    db.commit()
    db.refresh(payroll)
    logger.info("payroll_updated", payroll_id=payroll.id, fields=sorted(changes))
    return payroll


def process(db: Session, payroll: Payroll) -> tuple[Payroll, Notification]:
    if payroll.status == "paid":
        raise ValidationError("Payroll already processed and paid")
    if payroll.status == "processed":
        raise ValidationError("Payroll already processed")
    payroll.status = "processed"
    payroll.pay_date = clock.today()
    notification = notifications.notify(
        db,
        payroll.employee.user_id,
        title="Payroll Processed",
        message=f"Your payroll for {payroll.period} has been processed",
        type="info",
        data={"payrollId": payroll.id},
    )
    db.commit()
    db.refresh(payroll)
    logger.info("payroll_processed", payroll_id=payroll.id)
    return payroll, notification


def mark_paid(db: Session, payroll: Payroll) -> tuple[Payroll, Notification]:
    if payroll.status == "paid":
        raise ValidationError("Payroll already paid")
    payroll.status = "paid"
    if not payroll.pay_date:
        payroll.pay_date = clock.today()
    notification = notifications.notify(
        db,
        payroll.employee.user_id,
        title="Salary Paid",
        message=f"Your salary for {payroll.period} has been paid",
        type="success",
        data={"payrollId": payroll.id},
    )
    db.commit()
    db.refresh(payroll)
    logger.info("payroll_paid", payroll_id=payroll.id)
    return payroll, notification


def list_payrolls(
    db: Session,
    employee_id: int | None = None,
    month: int | None = None,
    year: int | None = None,
    status: str | None = None,
    department: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Payroll], int]:
    query = db.query(Payroll)
    if employee_id is not None:
        query = query.filter(Payroll.employee_id == employee_id)
    if month:
        query = query.filter(Payroll.month == month)
    if year:
        query = query.filter(Payroll.year == year)
    if status:
        query = query.filter(Payroll.status == status)
    if department:
        query = query.join(Employee, Payroll.employee_id == Employee.id).filter(Employee.department == department)
    total = query.count()
    rows = (
        query.order_by(Payroll.year.desc(), Payroll.month.desc(), Payroll.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def stats(db: Session, month: int | None = None, year: int | None = None) -> dict[str, Any]:
    filters = []
    if month:
        filters.append(Payroll.month == month)
    if year:
        filters.append(Payroll.year == year)

    totals = (
        db.query(Payroll.status, func.count(Payroll.id), func.sum(Payroll.gross_salary), func.sum(Payroll.net_salary))
        .filter(*filters)
        .group_by(Payroll.status)
        .all()
    )
    departments = (
        db.query(Employee.department, func.count(Payroll.id), func.sum(Payroll.gross_salary), func.sum(Payroll.net_salary))
        .join(Employee, Payroll.employee_id == Employee.id)
        .filter(*filters)
        .group_by(Employee.department)
        .all()
    )

    def bucket(count, gross, net) -> dict[str, float]:
        return {"count": count, "totalGross": round(float(gross or 0), 2), "totalNet": round(float(net or 0), 2)}

    by_status = {status: bucket(0, 0, 0) for status in PAYROLL_STATUSES}
    result: dict[str, Any] = {
        "byStatus": by_status,
        "byDepartment": {},
        "totalEmployees": 0,
        "totalGrossSalary": 0.0,
        "totalNetSalary": 0.0,
    }
    for status, count, gross, net in totals:
        by_status[status] = bucket(count, gross, net)
        result["totalEmployees"] += count
        result["totalGrossSalary"] = round(result["totalGrossSalary"] + float(gross or 0), 2)
        result["totalNetSalary"] = round(result["totalNetSalary"] + float(net or 0), 2)
    for department, count, gross, net in departments:
        result["byDepartment"][department or "Unassigned"] = bucket(count, gross, net)
    return result
