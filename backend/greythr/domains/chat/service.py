from __future__ import annotations

from sqlalchemy.orm import Session

from greythr.core.clock import utcnow
from greythr.core.errors import Forbidden, NotFound, ValidationError
from greythr.core.logging import get_logger
from greythr.models import Chat, Message, User
from greythr.models.chat import chat_participants

logger = get_logger(__name__)

PLACEHOLDERS = {"file": "File", "image": "Image"}


def get_chat(db: Session, chat_id: int) -> Chat:
    chat = db.get(Chat, chat_id)
    if not chat:
        raise NotFound("Chat not found")
    return chat


def get_chat_for_participant(db: Session, chat_id: int, user_id: int) -> Chat:
    chat = get_chat(db, chat_id)
    if not chat.has_participant(user_id):
        raise Forbidden("Access denied to this chat")
    return chat


def is_participant(db: Session, chat_id: int, user_id: int) -> bool:
    chat = db.get(Chat, chat_id)
    return chat is not None and chat.has_participant(user_id)


def _chats_of(db: Session, user_id: int):
    return db.query(Chat).join(chat_participants).filter(chat_participants.c.user_id == user_id)


def list_chats(db: Session, user_id: int, page: int = 1, limit: int = 20) -> tuple[list[Chat], int]:
    query = _chats_of(db, user_id)
    total = query.count()
    rows = (
        query.order_by(Chat.last_message_at.is_(None), Chat.last_message_at.desc(), Chat.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def _find_direct_chat(db: Session, user_ids: set[int]) -> Chat | None:
    owner = min(user_ids)
    for chat in _chats_of(db, owner).filter(Chat.is_group.is_(False)).all():
        if set(chat.participant_ids) == user_ids:
            return chat
    return None


def create_chat(
    db: Session,
    creator: User,
    participant_ids: list[int],
    is_group: bool = False,
    group_name: str | None = None,
) -> tuple[Chat, bool]:
    """Return ``(chat, created)``; one-to-one chats are reused when they exist."""
    member_ids = {creator.id, *participant_ids}
    users = db.query(User).filter(User.id.in_(member_ids)).all()
    if len(users) != len(member_ids):
        raise NotFound("Participant not found")
    if len(member_ids) < 2:
        raise ValidationError("A chat needs at least one other participant")

    if not is_group and len(member_ids) == 2:
        existing = _find_direct_chat(db, member_ids)
        if existing:
            return existing, False
    if is_group and not group_name:
        raise ValidationError("Group chats need a name")

    chat = Chat(
        is_group=is_group,
        group_name=group_name if is_group else None,
        group_admin_id=creator.id if is_group else None,
        participants=sorted(users, key=lambda u: u.id),
    )
    db.add(chat)
    db.commit()
    db.refresh(chat)
    logger.info("chat_created", chat_id=chat.id, participants=chat.participant_ids, is_group=is_group)
    return chat, True


def list_messages(
    db: Session, chat: Chat, page: int = 1, limit: int = 50
) -> tuple[list[Message], int]:
    """Newest ``limit`` messages of the requested page, returned oldest first."""
    query = db.query(Message).filter(Message.chat_id == chat.id)
    total = query.count()
    rows = (
        query.order_by(Message.created_at.desc(), Message.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    rows.reverse()
    return rows, total


def send_message(
    db: Session,
    chat_id: int,
    sender_id: int,
    content: str = "",
    message_type: str = "text",
    file_url: str | None = None,
) -> tuple[Message, Chat]:
    chat = get_chat_for_participant(db, chat_id, sender_id)
    if message_type not in PLACEHOLDERS and message_type != "text":
        raise ValidationError(f"Unknown message type {message_type}")

    now = utcnow()
    message = Message(
        chat_id=chat.id,
        sender_id=sender_id,
        content=content or "",
        message_type=message_type,
        file_url=file_url,
        created_at=now,
    )
    db.add(message)
    chat.last_message_sender_id = sender_id
    chat.last_message_content = content or PLACEHOLDERS.get(message_type, "Image")
    chat.last_message_at = now
    db.commit()
    db.refresh(message)
    db.refresh(chat)
    logger.info("chat_message_sent", chat_id=chat.id, sender_id=sender_id, message_id=message.id)
    return message, chat


def mark_read(db: Session, chat_id: int, reader_id: int) -> int:
    """Flip ``is_read`` on every message in the chat not authored by the reader."""
    get_chat_for_participant(db, chat_id, reader_id)
    updated = (
        db.query(Message)
        .filter(
            Message.chat_id == chat_id,
            Message.sender_id != reader_id,
            Message.is_read.is_(False),
        )
        .update({Message.is_read: True}, synchronize_session=False)
    )
    db.commit()
    return updated
