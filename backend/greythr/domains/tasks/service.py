from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from greythr.api.deps import is_privileged
from greythr.core import clock
from greythr.core.errors import Forbidden, NotFound
from greythr.core.logging import get_logger
from greythr.domains.employees import service as employee_service
from greythr.domains.notifications import service as notifications
from greythr.models import Employee, Notification, Task, TaskComment, User
from greythr.models.task import TASK_PRIORITIES, TASK_STATUSES

logger = get_logger(__name__)


def get_task(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


def create(
    db: Session,
    assigner: Employee,
    assigned_to: int,
    title: str,
    due_date: date,
    description: str = "",
    priority: str = "medium",
    tags: list[str] | None = None,
) -> tuple[Task, Notification]:
    assignee = db.get(Employee, assigned_to)
    if not assignee:
        raise NotFound("Assigned employee not found")

    task = Task(
        title=title,
        description=description,
        assigned_to=assignee.id,
        assigned_by=assigner.id,
        priority=priority,
        due_date=due_date,
        tags=list(tags or []),
    )
    db.add(task)
    db.flush()
    notification = notifications.notify(
        db,
        assignee.user_id,
        title="New Task Assigned",
        message=f"You have been assigned a new task: {title}",
        data={"taskId": task.id},
    )
    db.commit()
    db.refresh(task)
    logger.info("task_created", task_id=task.id, assigned_to=assignee.id, assigned_by=assigner.id)
    return task, notification


def list_tasks(
    db: Session,
    assigned_to: int | None = None,
    assigned_by: int | None = None,
    status: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Task], int]:
    query = db.query(Task)
    if assigned_to is not None:
        query = query.filter(Task.assigned_to == assigned_to)
    if assigned_by is not None:
        query = query.filter(Task.assigned_by == assigned_by)
    if status:
        query = query.filter(Task.status == status)
    if priority:
        query = query.filter(Task.priority == priority)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
    total = query.count()
    rows = query.order_by(Task.created_at.desc(), Task.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, total


def _involved(task: Task, employee: Employee | None) -> bool:
    return employee is not None and employee.id in (task.assigned_to, task.assigned_by)


def _caller_employee(db: Session, user: User) -> Employee | None:
    if is_privileged(user):
        return db.query(Employee).filter(Employee.user_id == user.id).one_or_none()
    return employee_service.get_by_user_id(db, user.id)


def ensure_can_view(db: Session, task: Task, user: User) -> None:
    if not is_privileged(user) and not _involved(task, _caller_employee(db, user)):
        raise Forbidden("Not authorized to view this task")


def update(db: Session, task: Task, user: User, changes: dict[str, Any]) -> tuple[Task, Notification | None]:
    """Merge the given fields; a status change notifies the other side of the assignment."""
    employee = _caller_employee(db, user)
    if not is_privileged(user) and not _involved(task, employee):
        raise Forbidden("Not authorized to update this task")

    previous_status = task.status
    for field, value in changes.items():
        setattr(task, field, value)

    notification = None
    if "status" in changes and changes["status"] != previous_status:
        if employee is not None and employee.id == task.assigned_by:
            target = task.assignee
        else:
            target = task.assigner
        notification = notifications.notify(
            db,
            target.user_id,
            title="Task Status Updated",
            message=f'Task "{task.title}" status changed to {task.status}',
            data={"taskId": task.id},
        )
    db.commit()
    db.refresh(task)
    logger.info("task_updated", task_id=task.id, fields=sorted(changes), user_id=user.id)
    return task, notification


def delete(db: Session, task: Task, user: User) -> None:
    employee = _caller_employee(db, user)
    if not is_privileged(user) and (employee is None or employee.id != task.assigned_by):
        raise Forbidden("Not authorized to delete this task")
    db.delete(task)
    db.commit()
    logger.info("task_deleted", task_id=task.id, user_id=user.id)


def add_comment(db: Session, task: Task, user: User, comment: str) -> Task:
    ensure_can_view(db, task, user)
    task.comments.append(TaskComment(user_id=user.id, comment=comment, timestamp=clock.utcnow()))
    db.commit()
    db.refresh(task)
    return task


def stats(db: Session) -> dict[str, Any]:
    rows = db.query(Task.status, Task.priority, func.count(Task.id)).group_by(Task.status, Task.priority).all()
    by_status = {status: 0 for status in TASK_STATUSES}
    by_priority = {priority: 0 for priority in TASK_PRIORITIES}
    total = 0
    for status, priority, count in rows:
        by_status[status] = by_status.get(status, 0) + count
        by_priority[priority] = by_priority.get(priority, 0) + count
        total += count
    overdue = db.query(Task).filter(Task.due_date < clock.today(), Task.status != "completed").count()
    return {"byStatus": by_status, "byPriority": by_priority, "totalTasks": total, "overdue": overdue}
