from datetime import date, datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool
from pydantic import Field
from sqlalchemy.orm import Session

from greythr.api.deps import get_current_user, get_hub, require_roles
from greythr.core.schemas import Page, PartialUpdate, RequestModel, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.employees import service as employee_service
from greythr.domains.tasks import service
from greythr.models import User
from greythr.realtime.hub import ChannelHub
from greythr.realtime.publish import notification_events, push_events

router = APIRouter(prefix="/api/task", tags=["tasks"])

Priority = Literal["low", "medium", "high", "urgent"]
Status = Literal["todo", "in-progress", "review", "completed"]


class TaskCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    assigned_to: int
    priority: Priority = "medium"
    due_date: date
    tags: list[str] = []


class TaskUpdate(PartialUpdate):
    not_null = ("title", "description", "priority", "status", "due_date", "tags")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    priority: Priority | None = None
    status: Status | None = None
    due_date: date | None = None
    tags: list[str] | None = None


class CommentCreate(RequestModel):
    comment: str = Field(..., min_length=1)


class EmployeeBrief(ResponseModel):
    id: int
    full_name: str
    email: str
    department: str | None = None


class CommentOut(ResponseModel):
    id: int
    user_id: int
    comment: str
    timestamp: datetime | None = None


class TaskOut(ResponseModel):
    id: int
    title: str
    description: str
    assigned_to: int
    assigned_by: int
    assignee: EmployeeBrief | None = None
    assigner: EmployeeBrief | None = None
    priority: str
    status: str
    due_date: date
    tags: list[str]
    comments: list[CommentOut] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TaskResult(ResponseModel):
    success: bool = True
    message: str | None = None
    data: TaskOut | None = None


class TaskList(ResponseModel):
    data: list[TaskOut]
    pagination: Page


class ListFilters:
    def __init__(
        self,
        status: str | None = None,
        priority: str | None = None,
        search: str | None = None,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=100),
    ) -> None:
        self.status = status
        self.priority = priority
        self.search = search
        self.page = page
        self.limit = limit

    def query(self) -> dict:
        return {
            "status": self.status,
            "priority": self.priority,
            "search": self.search,
            "page": self.page,
            "limit": self.limit,
        }


def _page(rows, total, filters: ListFilters) -> TaskList:
    return TaskList(data=rows, pagination=page_meta(filters.page, filters.limit, total))


@router.get("", response_model=TaskList)
def all_tasks(
    filters: ListFilters = Depends(),
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    rows, total = service.list_tasks(db, **filters.query())
    return _page(rows, total, filters)


@router.get("/my-tasks", response_model=TaskList)
def my_tasks(
    filters: ListFilters = Depends(),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = employee_service.get_by_user_id(db, user.id)
    rows, total = service.list_tasks(db, assigned_to=employee.id, **filters.query())
    return _page(rows, total, filters)


@router.get("/assigned-tasks", response_model=TaskList)
def assigned_tasks(
    filters: ListFilters = Depends(),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    employee = employee_service.get_by_user_id(db, user.id)
    rows, total = service.list_tasks(db, assigned_by=employee.id, **filters.query())
    return _page(rows, total, filters)


@router.get("/stats")
def task_stats(_: User = Depends(require_roles("admin", "hr")), db: Session = Depends(get_session)) -> dict:
    return {"success": True, "data": service.stats(db)}


@router.post("", response_model=TaskResult, status_code=201)
async def create_task(
    payload: TaskCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        assigner = employee_service.get_by_user_id(db, user.id)
        task, notification = service.create(
            db,
            assigner,
            payload.assigned_to,
            payload.title,
            payload.due_date,
            description=payload.description,
            priority=payload.priority,
            tags=payload.tags,
        )
        return TaskResult(message="Task created successfully", data=task), notification_events([notification])

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result


@router.get("/{task_id}", response_model=TaskResult)
def get_task(task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    task = service.get_task(db, task_id)
    service.ensure_can_view(db, task, user)
    return TaskResult(data=task)


@router.put("/{task_id}", response_model=TaskResult)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        task, notification = service.update(db, service.get_task(db, task_id), user, payload.changes())
        return TaskResult(message="Task updated successfully", data=task), notification_events([notification])

    result, events = await run_in_threadpool(work)
    await push_events(hub, events)
    return result


@router.delete("/{task_id}", response_model=TaskResult)
def delete_task(task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    service.delete(db, service.get_task(db, task_id), user)
    return TaskResult(message="Task deleted successfully")


@router.post("/{task_id}/comments", response_model=TaskResult, status_code=201)
def add_comment(
    task_id: int,
    payload: CommentCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    task = service.add_comment(db, service.get_task(db, task_id), user, payload.comment)
    return TaskResult(message="Comment added successfully", data=task)
