from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from greythr.core import clock
from greythr.core.errors import NotFound, ValidationError
from greythr.core.logging import get_logger
from greythr.domains.notifications import service as notifications
from greythr.models import Announcement, Notification, User

logger = get_logger(__name__)

PREVIEW_LENGTH = 100


def get_announcement(db: Session, announcement_id: int) -> Announcement:
    announcement = db.get(Announcement, announcement_id)
    if not announcement:
        raise NotFound("Announcement not found")
    return announcement


def audience_user_ids(db: Session, target_audience: str, target_value: str | None) -> list[int]:
    query = db.query(User.id).filter(User.is_active.is_(True))
    if target_audience == "department":
        query = query.filter(User.department == target_value)
    elif target_audience == "role":
        query = query.filter(User.role == target_value)
    return [row.id for row in query.all()]


def preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "..."


def create(
    db: Session,
    author: User,
    title: str,
    content: str,
    priority: str = "medium",
    target_audience: str = "all",
    target_value: str | None = None,
    expires_at: datetime | None = None,
    attachments: list[str] | None = None,
) -> tuple[Announcement, list[Notification]]:
    """Publish an announcement and stage a notification for everyone it targets."""
    if target_audience != "all" and not target_value:
        raise ValidationError(f"targetValue is required for {target_audience} announcements")

    announcement = Announcement(
        title=title,
        content=content,
        author_id=author.id,
        priority=priority,
        target_audience=target_audience,
        target_value=target_value if target_audience != "all" else None,
        expires_at=expires_at,
        attachments=list(attachments or []),
    )
    db.add(announcement)
    db.flush()
    staged = notifications.notify_many(
        db,
        audience_user_ids(db, target_audience, target_value),
        title=f"New Announcement: {title}",
        message=preview(content),
        type="warning" if priority == "high" else "info",
        data={"announcementId": announcement.id},
    )
    db.commit()
    db.refresh(announcement)
    logger.info(
        "announcement_created",
        announcement_id=announcement.id,
        audience=target_audience,
        recipients=len(staged),
    )
    return announcement, staged


def _live(query):
    now = clock.utcnow()
    return query.filter(
        Announcement.is_active.is_(True),
        or_(Announcement.expires_at.is_(None), Announcement.expires_at > now),
    )


def list_for_user(
    db: Session, user: User, priority: str | None = None, page: int = 1, limit: int = 10
) -> tuple[list[Announcement], int]:
    query = _live(db.query(Announcement)).filter(
        or_(
            Announcement.target_audience == "all",
            and_(Announcement.target_audience == "department", Announcement.target_value == user.department),
            and_(Announcement.target_audience == "role", Announcement.target_value == user.role),
        )
    )
    if priority:
        query = query.filter(Announcement.priority == priority)
    return _paginate(query, page, limit)


def list_all(
    db: Session,
    priority: str | None = None,
    target_audience: str | None = None,
    search: str | None = None,
    include_expired: bool = False,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Announcement], int]:
    if include_expired:
        query = db.query(Announcement).filter(Announcement.is_active.is_(True))
    else:
        query = _live(db.query(Announcement))
    if priority:
        query = query.filter(Announcement.priority == priority)
    if target_audience:
        query = query.filter(Announcement.target_audience == target_audience)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Announcement.title.ilike(pattern), Announcement.content.ilike(pattern)))
    return _paginate(query, page, limit)


def _paginate(query, page: int, limit: int) -> tuple[list[Announcement], int]:
    total = query.count()
    rows = (
        query.order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def update(db: Session, announcement: Announcement, changes: dict[str, Any]) -> Announcement:
    for field, value in changes.items():
        setattr(announcement, field, value)
    db.commit()
    db.refresh(announcement)
    logger.info("announcement_updated", announcement_id=announcement.id, fields=sorted(changes))
    return announcement


def deactivate(db: Session, announcement: Announcement) -> None:
    announcement.is_active = False
    db.commit()
    logger.info("announcement_deactivated", announcement_id=announcement.id)
