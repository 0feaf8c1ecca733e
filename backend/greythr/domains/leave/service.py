from __future__ import annotations

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from greythr.core import clock
from greythr.core.errors import NotFound, ValidationError
from greythr.core.logging import get_logger
from greythr.domains.notifications import service as notifications
from greythr.models import Employee, Leave, Notification, User
from greythr.models.leave import LEAVE_TYPES

logger = get_logger(__name__)

# yearly allocation per leave type; unpaid leave is not capped
ALLOCATIONS = {"casual": 12, "sick": 10, "earned": 15, "maternity": 180, "paternity": 15}
DECISIONS = ("approved", "rejected")


def get_leave(db: Session, leave_id: int) -> Leave:
    leave = db.get(Leave, leave_id)
    if not leave:
        raise NotFound("Leave request not found")
    return leave


def _overlapping(db: Session, employee: Employee, start: date, end: date) -> Leave | None:
    return (
        db.query(Leave)
        .filter(
            Leave.employee_id == employee.id,
            Leave.status.in_(("pending", "approved")),
            Leave.start_date <= end,
            Leave.end_date >= start,
        )
        .first()
    )


def apply(
    db: Session,
    employee: Employee,
    type: str,
    start_date: date,
    end_date: date,
    reason: str = "",
) -> tuple[Leave, list[Notification]]:
    """File a pending leave request and stage a notification for every HR/admin user."""
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")
    if type not in LEAVE_TYPES:
        raise ValidationError(f"Unknown leave type {type}")
    if _overlapping(db, employee, start_date, end_date):
        raise ValidationError("You have overlapping leave requests")

    leave = Leave(employee_id=employee.id, type=type, start_date=start_date, end_date=end_date, reason=reason)
    db.add(leave)
    db.flush()
    reviewers = [uid for uid in notifications.privileged_user_ids(db) if uid != employee.user_id]
    staged = notifications.notify_many(
        db,
        reviewers,
        title="New Leave Application",
        message=f"{employee.full_name} has applied for {type} leave from {start_date} to {end_date}",
        data={"leaveId": leave.id, "employeeId": employee.id},
    )
    db.commit()
    db.refresh(leave)
    logger.info("leave_applied", leave_id=leave.id, employee_id=employee.id, days=leave.days)
    return leave, staged


def update_status(
    db: Session,
    leave: Leave,
    status: str,
    approver: User,
    rejection_reason: str | None = None,
) -> tuple[Leave, Notification]:
    if status not in DECISIONS:
        raise ValidationError("Invalid status. Must be approved or rejected")
    if leave.status != "pending":
        raise ValidationError("Leave request has already been processed")

    leave.status = status
    leave.approved_by = approver.id
    leave.approved_on = clock.utcnow()
    if status == "rejected" and rejection_reason:
        leave.rejection_reason = rejection_reason

    suffix = f": {rejection_reason}" if status == "rejected" and rejection_reason else ""
    notification = notifications.notify(
        db,
        leave.employee.user_id,
        title=f"Leave Request {status.capitalize()}",
        message=f"Your {leave.type} leave request has been {status}{suffix}",
        type="success" if status == "approved" else "error",
        data={"leaveId": leave.id},
    )
    db.commit()
    db.refresh(leave)
    logger.info("leave_decided", leave_id=leave.id, status=status, approver_id=approver.id)
    return leave, notification


def cancel(db: Session, leave: Leave, employee: Employee) -> None:
    if leave.employee_id != employee.id:
        raise NotFound("Leave request not found")
    if leave.status != "pending":
        raise ValidationError("Can only cancel pending leave requests")
    db.delete(leave)
    db.commit()
    logger.info("leave_cancelled", leave_id=leave.id, employee_id=employee.id)


def list_leaves(
    db: Session,
    employee_id: int | None = None,
    status: str | None = None,
    type: str | None = None,
    department: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Leave], int]:
    query = db.query(Leave)
    if employee_id is not None:
        query = query.filter(Leave.employee_id == employee_id)
    if status:
        query = query.filter(Leave.status == status)
    if type:
        query = query.filter(Leave.type == type)
    if department:
        query = query.join(Employee, Leave.employee_id == Employee.id).filter(Employee.department == department)
    total = query.count()
    rows = (
        query.order_by(Leave.applied_on.desc(), Leave.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def _year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


def balance(db: Session, employee: Employee, year: int | None = None) -> dict[str, dict[str, int]]:
    start, end = _year_bounds(year or clock.today().year)
    used = dict(
        db.query(Leave.type, func.sum(Leave.days))
        .filter(
            Leave.employee_id == employee.id,
            Leave.status == "approved",
            Leave.start_date.between(start, end),
        )
        .group_by(Leave.type)
        .all()
    )
    result = {}
    for type, allocated in ALLOCATIONS.items():
        taken = int(used.get(type) or 0)
        result[type] = {"allocated": allocated, "used": taken, "remaining": max(0, allocated - taken)}
    return result


def stats(db: Session, year: int | None = None) -> dict:
    start, end = _year_bounds(year or clock.today().year)
    rows = (
        db.query(Leave.status, Leave.type, func.count(Leave.id), func.sum(Leave.days))
        .filter(Leave.start_date.between(start, end))
        .group_by(Leave.status, Leave.type)
        .all()
    )
    by_status = {"pending": 0, "approved": 0, "rejected": 0}
    by_type = {type: 0 for type in LEAVE_TYPES}
    total_leaves = total_days = 0
    for status, type, count, days in rows:
        by_status[status] = by_status.get(status, 0) + count
        by_type[type] = by_type.get(type, 0) + count
        total_leaves += count
        total_days += int(days or 0)
    return {"byStatus": by_status, "byType": by_type, "totalLeaves": total_leaves, "totalDays": total_days}
