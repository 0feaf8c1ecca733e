from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greythr.api.deps import get_current_user
from greythr.core.schemas import Page, ResponseModel, page_meta
from greythr.db.session import get_session
from greythr.domains.notifications import service
from greythr.domains.notifications.schemas import NotificationOut
from greythr.models import User

router = APIRouter(prefix="/api/notification", tags=["notifications"])


class NotificationList(ResponseModel):
    data: list[NotificationOut]
    unread_count: int
    pagination: Page


class UnreadCount(ResponseModel):
    unread_count: int


class MarkAllResult(ResponseModel):
    updated: int


@router.get("", response_model=NotificationList)
def list_notifications(
    is_read: bool | None = Query(default=None, alias="isRead"),
    type: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    rows, total = service.list_for_user(db, user.id, is_read=is_read, type=type, page=page, limit=limit)
    return NotificationList(
        data=rows,
        unread_count=service.unread_count(db, user.id),
        pagination=page_meta(page, limit, total),
    )


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    return UnreadCount(unread_count=service.unread_count(db, user.id))


@router.put("/read-all", response_model=MarkAllResult)
def mark_all_read(user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    return MarkAllResult(updated=service.mark_all_read(db, user.id))


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    return service.mark_read(db, notification_id, user.id)


@router.delete("/{notification_id}", status_code=204)
def delete_notification(
    notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)
):
    service.delete(db, notification_id, user.id)
    return None
