from __future__ import annotations

import calendar
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from greythr.core import clock
from greythr.core.errors import NotFound, ValidationError
from greythr.core.logging import get_logger
from greythr.models import Attendance, Employee

logger = get_logger(__name__)


def record_for(db: Session, employee: Employee, day: date) -> Attendance | None:
    return (
        db.query(Attendance)
        .filter(Attendance.employee_id == employee.id, Attendance.date == day)
        .one_or_none()
    )


def clock_in(db: Session, employee: Employee, notes: str | None = None) -> tuple[Attendance, bool]:
    """Punch in for today. Returns ``(record, created)``.

    A second punch-in on the same day returns the existing record untouched.
    """
    now = clock.utcnow()
    existing = record_for(db, employee, now.date())
    if existing:
        return existing, False

    record = Attendance(employee_id=employee.id, date=now.date(), punch_in=now, status="present", notes=notes)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        # lost the race against a concurrent punch-in for the same day
        db.rollback()
        existing = record_for(db, employee, now.date())
        if existing is None:
            raise
        return existing, False
    db.refresh(record)
    logger.info("clock_in", employee_id=employee.id, date=str(record.date))
    return record, True


def clock_out(db: Session, employee: Employee, notes: str | None = None) -> Attendance:
    now = clock.utcnow()
    record = record_for(db, employee, now.date())
    if not record or not record.punch_in:
        raise NotFound("No clock-in found for today")
    if record.punch_out:
        raise ValidationError("Already punched out today")

    record.punch_out = now
    if notes:
        record.notes = notes
    db.commit()
    db.refresh(record)
    logger.info("clock_out", employee_id=employee.id, date=str(record.date), total_hours=record.total_hours)
    return record


def today_record(db: Session, employee: Employee) -> Attendance | None:
    return record_for(db, employee, clock.today())


def history(
    db: Session,
    employee: Employee,
    month: int | None = None,
    year: int | None = None,
    page: int = 1,
    limit: int = 31,
) -> tuple[list[Attendance], int]:
    query = db.query(Attendance).filter(Attendance.employee_id == employee.id)
    if month and year:
        last_day = calendar.monthrange(year, month)[1]
        query = query.filter(Attendance.date.between(date(year, month, 1), date(year, month, last_day)))
    elif year:
        query = query.filter(Attendance.date.between(date(year, 1, 1), date(year, 12, 31)))
    total = query.count()
    rows = query.order_by(Attendance.date.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total
