from __future__ import annotations

from typing import Any, Iterable

from sqlalchemy.orm import Session

from greythr.core.errors import NotFound
from greythr.core.logging import get_logger
from greythr.models import Notification, User

logger = get_logger(__name__)


def build_notification(
    user_id: int,
    title: str,
    message: str,
    type: str = "info",
    data: dict[str, Any] | None = None,
) -> Notification:
    return Notification(user_id=user_id, title=title, message=message, type=type, data=data)


def notify(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    type: str = "info",
    data: dict[str, Any] | None = None,
) -> Notification:
    """Stage a notification on the session; the caller commits."""
    notification = build_notification(user_id, title, message, type, data)
    db.add(notification)
    return notification


def notify_many(
    db: Session,
    user_ids: Iterable[int],
    title: str,
    message: str,
    type: str = "info",
    data: dict[str, Any] | None = None,
) -> list[Notification]:
    notifications = [build_notification(uid, title, message, type, data) for uid in user_ids]
    db.add_all(notifications)
    return notifications


def privileged_user_ids(db: Session) -> list[int]:
    rows = db.query(User.id).filter(User.role.in_(("admin", "hr")), User.is_active.is_(True)).all()
    return [row.id for row in rows]


def list_for_user(
    db: Session,
    user_id: int,
    is_read: bool | None = None,
    type: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Notification], int]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if is_read is not None:
        query = query.filter(Notification.is_read.is_(is_read))
    if type:
        query = query.filter(Notification.type == type)
    total = query.count()
    rows = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def unread_count(db: Session, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def _owned(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .one_or_none()
    )
    if not notification:
        raise NotFound("Notification not found")
    return notification


def mark_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = _owned(db, notification_id, user_id)
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: int) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete(db: Session, notification_id: int, user_id: int) -> None:
    notification = _owned(db, notification_id, user_id)
    db.delete(notification)
    db.commit()
    logger.info("notification_deleted", notification_id=notification_id, user_id=user_id)
