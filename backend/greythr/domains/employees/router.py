from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greythr.api.deps import ensure_self_or_privileged, get_current_user, is_privileged, require_roles
from greythr.core.errors import Forbidden
from greythr.core.schemas import page_meta
from greythr.db.session import get_session
from greythr.domains.employees import service
from greythr.domains.employees.schemas import (
    SELF_EDITABLE,
    EmployeeCreate,
    EmployeeList,
    EmployeeOut,
    EmployeeUpdate,
    update_changes,
)
from greythr.models import User

router = APIRouter(prefix="/api/employee", tags=["employees"])


@router.get("", response_model=EmployeeList)
def list_employees(
    department: str | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    rows, total = service.list_employees(
        db, department=department, status=status, search=search, page=page, limit=limit
    )
    return EmployeeList(data=rows, pagination=page_meta(page, limit, total))


@router.get("/departments", response_model=list[str])
def list_departments(_: User = Depends(get_current_user), db: Session = Depends(get_session)):
    return service.list_departments(db)


@router.get("/user/{user_id}", response_model=EmployeeOut)
def get_employee_by_user(user_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    ensure_self_or_privileged(user, user_id)
    return service.get_by_user_id(db, user_id)


@router.get("/{employee_id}", response_model=EmployeeOut)
def get_employee(employee_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    employee = service.get_employee(db, employee_id)
    ensure_self_or_privileged(user, employee.user_id)
    return employee


@router.post("", response_model=EmployeeOut, status_code=201)
def create_employee(
    payload: EmployeeCreate,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    profile = payload.model_dump(
        exclude={"name", "email", "password", "role", "department", "bank_details", "emergency_contact"},
        exclude_none=True,
    )
    if payload.bank_details:
        profile["bank_details"] = payload.bank_details.model_dump(by_alias=True, exclude_none=True)
    if payload.emergency_contact:
        profile["emergency_contact"] = payload.emergency_contact.model_dump(by_alias=True, exclude_none=True)
    _, employee = service.create_user_with_employee(
        db,
        name=payload.name,
        email=str(payload.email),
        password=payload.password,
        role=payload.role,
        department=payload.department,
        **profile,
    )
    return employee


@router.put("/{employee_id}", response_model=EmployeeOut)
def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = service.get_employee(db, employee_id)
    changes = update_changes(payload)
    if not is_privileged(user):
        if employee.user_id != user.id:
            raise Forbidden("Not authorized to update this employee")
        restricted = sorted(set(changes) - SELF_EDITABLE)
        if restricted:
            raise Forbidden(f"Not authorized to update {', '.join(restricted)}")
    return service.update_employee(db, employee, changes)


@router.delete("/{employee_id}", response_model=EmployeeOut)
def delete_employee(
    employee_id: int,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    return service.deactivate_employee(db, service.get_employee(db, employee_id))
