from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from greythr.core.errors import DuplicateKey, NotFound
from greythr.core.logging import get_logger
from greythr.core.security import hash_password
from greythr.models import Employee, User

logger = get_logger(__name__)


def email_taken(db: Session, email: str) -> bool:
    lowered = email.strip().lower()
    return (
        db.query(User.id).filter(func.lower(User.email) == lowered).first() is not None
        or db.query(Employee.id).filter(func.lower(Employee.email) == lowered).first() is not None
    )


def create_user_with_employee(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str = "employee",
    department: str | None = None,
    **profile: Any,
) -> tuple[User, Employee]:
    """Create a login account and its employee record in one commit."""
    email = email.strip()
    if email_taken(db, email):
        raise DuplicateKey("User already exists with this email")

    user = User(
        name=name.strip(),
        email=email,
        hashed_password=hash_password(password),
        role=role,
        department=department,
    )
    db.add(user)
    db.flush()

    employee = Employee(
        user_id=user.id,
        full_name=user.name,
        email=email,
        role=role,
        department=department,
        **profile,
    )
    db.add(employee)
    db.commit()
    db.refresh(user)
    db.refresh(employee)
    logger.info("employee_created", user_id=user.id, employee_id=employee.id, role=role)
    return user, employee


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee:
        raise NotFound("Employee not found")
    return employee


def get_by_user_id(db: Session, user_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.user_id == user_id).one_or_none()
    if not employee:
        raise NotFound("Employee record not found")
    return employee


def list_employees(
    db: Session,
    department: str | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Employee], int]:
    query = db.query(Employee)
    if department:
        query = query.filter(Employee.department == department)
    if status:
        query = query.filter(Employee.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Employee.full_name.ilike(pattern),
                Employee.email.ilike(pattern),
                Employee.designation.ilike(pattern),
            )
        )
    total = query.count()
    rows = (
        query.order_by(Employee.full_name.asc(), Employee.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def update_employee(db: Session, employee: Employee, changes: dict[str, Any]) -> Employee:
    for field, value in changes.items():
        setattr(employee, field, value)
    if "full_name" in changes or "department" in changes:
        user = employee.user
        if "full_name" in changes:
            user.name = changes["full_name"]
        if "department" in changes:
            user.department = changes["department"]
    db.commit()
    db.refresh(employee)
    return employee


def update_profile(db: Session, user: User, changes: dict[str, Any]) -> User:
    """Profile edits mirror name and department onto the employee record."""
    for field, value in changes.items():
        setattr(user, field, value)
    employee = db.query(Employee).filter(Employee.user_id == user.id).one_or_none()
    if employee is not None:
        if "name" in changes:
            employee.full_name = changes["name"]
        if "department" in changes:
            employee.department = changes["department"]
    db.commit()
    db.refresh(user)
    logger.info("profile_updated", user_id=user.id, fields=sorted(changes))
    return user


def deactivate_employee(db: Session, employee: Employee) -> Employee:
    """Employees are never hard-deleted; the login is disabled alongside."""
    employee.status = "inactive"
    employee.user.is_active = False
    db.commit()
    db.refresh(employee)
    logger.info("employee_deactivated", employee_id=employee.id, user_id=employee.user_id)
    return employee


def list_departments(db: Session) -> list[str]:
    rows = (
        db.query(Employee.department)
        .filter(Employee.department.isnot(None))
        .distinct()
        .order_by(Employee.department.asc())
        .all()
    )
    return [row.department for row in rows]
