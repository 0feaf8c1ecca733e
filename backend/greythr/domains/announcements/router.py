from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool
from pydantic import Field
from sqlalchemy.orm import Session

from greythr.api.deps import get_current_user, get_hub, is_privileged, require_roles
from greythr.core.errors import NotFound
from greythr.core.schemas import Page, PartialUpdate, RequestModel, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.announcements import service
from greythr.models import User
from greythr.realtime.hub import ChannelHub
from greythr.realtime.publish import notification_events, push_events

router = APIRouter(prefix="/api/announcement", tags=["announcements"])

Priority = Literal["low", "medium", "high"]
Audience = Literal["all", "department", "role"]


class AnnouncementCreate(RequestModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    priority: Priority = "medium"
    target_audience: Audience = "all"
    target_value: str | None = None
    expires_at: datetime | None = None
    attachments: list[str] = []


class AnnouncementUpdate(PartialUpdate):
    not_null = ("title", "content", "priority", "target_audience", "is_active", "attachments")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    priority: Priority | None = None
    target_audience: Audience | None = None
    target_value: str | None = None
    expires_at: datetime | None = None
    is_active: bool | None = None
    attachments: list[str] | None = None


class AnnouncementOut(ResponseModel):
    id: int
    title: str
    content: str
    author_id: int
    priority: str
    target_audience: str
    target_value: str | None = None
    is_active: bool
    expires_at: datetime | None = None
    attachments: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AnnouncementResult(ResponseModel):
    success: bool = True
    message: str | None = None
    data: AnnouncementOut | None = None


class AnnouncementList(ResponseModel):
    data: list[AnnouncementOut]
    pagination: Page


@router.get("", response_model=AnnouncementList)
def my_announcements(
    priority: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    rows, total = service.list_for_user(db, user, priority=priority, page=page, limit=limit)
    return AnnouncementList(data=rows, pagination=page_meta(page, limit, total))


@router.get("/all", response_model=AnnouncementList)
def all_announcements(
    priority: str | None = None,
    target_audience: str | None = Query(default=None, alias="targetAudience"),
    search: str | None = None,
    include_expired: bool = Query(default=False, alias="includeExpired"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    rows, total = service.list_all(
        db,
        priority=priority,
        target_audience=target_audience,
        search=search,
        include_expired=include_expired,
        page=page,
        limit=limit,
    )
    return AnnouncementList(data=rows, pagination=page_meta(page, limit, total))


@router.post("", response_model=AnnouncementResult, status_code=201)
async def create_announcement(
    payload: AnnouncementCreate,
    user: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def work():
        announcement, staged = service.create(db, user, **payload.model_dump())
        return AnnouncementOut.model_validate(announcement), notification_events(staged)

    out, events = await run_in_threadpool(work)
    await push_events(hub, events)
    await hub.announce(out.model_dump(mode="json", by_alias=True))
    return AnnouncementResult(message="Announcement created successfully", data=out)


@router.get("/{announcement_id}", response_model=AnnouncementResult)
def get_announcement(
    announcement_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)
):
    announcement = service.get_announcement(db, announcement_id)
    if not announcement.is_active and not is_privileged(user):
        raise NotFound("Announcement not found")
    return AnnouncementResult(data=announcement)


@router.put("/{announcement_id}", response_model=AnnouncementResult)
def update_announcement(
    announcement_id: int,
    payload: AnnouncementUpdate,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    announcement = service.update(
        db, service.get_announcement(db, announcement_id), payload.changes()
    )
    return AnnouncementResult(message="Announcement updated successfully", data=announcement)


@router.delete("/{announcement_id}", response_model=AnnouncementResult)
def delete_announcement(
    announcement_id: int,
    _: User = Depends(require_roles("admin", "hr")),
    db: Session = Depends(get_session),
):
    service.deactivate(db, service.get_announcement(db, announcement_id))
    return AnnouncementResult(message="Announcement deleted successfully")
