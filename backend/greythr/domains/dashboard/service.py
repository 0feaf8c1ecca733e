from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from greythr.core import clock
from greythr.models import Attendance, Employee, Leave, Notification, Payroll, Task
from greythr.models.payroll import PAYROLL_STATUSES
from greythr.models.task import TASK_STATUSES

ATTENDANCE_STATUSES = ("present", "absent", "late", "half-day")


def _counts(rows, keys) -> dict[str, int]:
    counts = {key: 0 for key in keys}
    for key, count in rows:
        counts[key] = counts.get(key, 0) + count
    return counts


def organisation_stats(db: Session) -> dict[str, Any]:
    now = clock.utcnow()
    today = now.date()
    month_start = datetime.combine(today.replace(day=1), datetime.min.time())
    week_ago = now - timedelta(days=7)

    active = db.query(Employee).filter(Employee.status == "active")
    attendance = _counts(
        db.query(Attendance.status, func.count(Attendance.id))
        .filter(Attendance.date == today)
        .group_by(Attendance.status)
        .all(),
        ATTENDANCE_STATUSES,
    )
    tasks = _counts(db.query(Task.status, func.count(Task.id)).group_by(Task.status).all(), TASK_STATUSES)

    payroll = {status: {"count": 0, "amount": 0.0} for status in PAYROLL_STATUSES}
    for status, count, amount in (
        db.query(Payroll.status, func.count(Payroll.id), func.sum(Payroll.net_salary))
        .filter(Payroll.month == today.month, Payroll.year == today.year)
        .group_by(Payroll.status)
        .all()
    ):
        payroll[status] = {"count": count, "amount": round(float(amount or 0), 2)}

    return {
        "employees": {
            "total": active.count(),
            "newThisMonth": active.filter(Employee.created_at >= month_start).count(),
        },
        "attendance": {
            "today": attendance,
            "presentToday": attendance["present"],
            "totalToday": sum(attendance.values()),
        },
        "leaves": {
            "pending": db.query(Leave).filter(Leave.status == "pending").count(),
            "onLeaveToday": _on_leave(db, today).count(),
        },
        "tasks": tasks,
        "payroll": {
            "thisMonth": payroll,
            "totalPayroll": round(sum(bucket["amount"] for bucket in payroll.values()), 2),
        },
        "recentActivities": {
            "newEmployees": active.filter(Employee.created_at >= week_ago).count(),
            "completedTasks": db.query(Task)
            .filter(Task.status == "completed", Task.updated_at >= week_ago)
            .count(),
            "approvedLeaves": db.query(Leave)
            .filter(Leave.status == "approved", Leave.approved_on >= week_ago)
            .count(),
        },
    }


def _on_leave(db: Session, day: date):
    return db.query(Leave).filter(Leave.status == "approved", Leave.start_date <= day, Leave.end_date >= day)


def personal_stats(db: Session, employee: Employee) -> dict[str, Any]:
    today = clock.today()
    record = (
        db.query(Attendance)
        .filter(Attendance.employee_id == employee.id, Attendance.date == today)
        .one_or_none()
    )
    month_start = today.replace(day=1)
    days_present = (
        db.query(Attendance)
        .filter(
            Attendance.employee_id == employee.id,
            Attendance.date >= month_start,
            Attendance.status.in_(("present", "late", "half-day")),
        )
        .count()
    )
    tasks = _counts(
        db.query(Task.status, func.count(Task.id))
        .filter(Task.assigned_to == employee.id)
        .group_by(Task.status)
        .all(),
        TASK_STATUSES,
    )
    latest = (
        db.query(Payroll)
        .filter(Payroll.employee_id == employee.id)
        .order_by(Payroll.year.desc(), Payroll.month.desc())
        .first()
    )
    return {
        "attendance": {
            "clockedIn": bool(record and record.punch_in),
            "clockedOut": bool(record and record.punch_out),
            "daysPresentThisMonth": days_present,
        },
        "leaves": {
            "pending": db.query(Leave)
            .filter(Leave.employee_id == employee.id, Leave.status == "pending")
            .count(),
            "onLeaveToday": _on_leave(db, today).filter(Leave.employee_id == employee.id).count() > 0,
        },
        "tasks": tasks,
        "payroll": {
            "latestPeriod": latest.period if latest else None,
            "latestNetSalary": float(latest.net_salary) if latest else None,
            "latestStatus": latest.status if latest else None,
        },
        "unreadNotifications": db.query(Notification)
        .filter(Notification.user_id == employee.user_id, Notification.is_read.is_(False))
        .count(),
    }
