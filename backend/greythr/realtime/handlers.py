"""Client event handlers for the real-time channel.

Every handler receives the calling connection and the event payload. Each
event opens its own database session on a worker thread, so nothing read
here outlives the event and the event loop never waits on the database.
Failures are reported to the calling connection only.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from greythr.core.errors import AppError, Forbidden, ValidationError
from greythr.core.logging import get_logger
from greythr.core.observability import chat_messages, tracer
from greythr.domains.chat import service as chat_service
from greythr.domains.chat.schemas import message_event
from greythr.realtime.hub import ChannelHub, Connection, chat_room

logger = get_logger(__name__)

PRESENCE_STATUSES = ("online", "away", "busy")

Handler = Callable[["EventContext", Any], Awaitable[None]]
T = TypeVar("T")


class EventContext:
    def __init__(self, hub: ChannelHub, connection: Connection, session_factory: sessionmaker) -> None:
        self.hub = hub
        self.connection = connection
        self.session_factory = session_factory

    async def run_db(self, work: Callable[[Session], T]) -> T:
        """Run ``work`` with a fresh session on a worker thread."""

        def call() -> T:
            with self.session_factory() as db:
                return work(db)

        return await run_in_threadpool(call)


def _chat_id(data: Any) -> int:
    value = data.get("chatId") if isinstance(data, dict) else data
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError("chatId is required") from exc


async def join_chat(ctx: EventContext, data: Any) -> None:
    chat_id = _chat_id(data)
    user_id = ctx.connection.user_id
    allowed = await ctx.run_db(lambda db: chat_service.is_participant(db, chat_id, user_id))
    if not allowed:
        raise Forbidden("Access denied to this chat")
    ctx.hub.join(ctx.connection, chat_room(chat_id))
    await ctx.connection.emit("chat_joined", {"chatId": chat_id})
    logger.info("ws_chat_joined", user_id=ctx.connection.user_id, chat_id=chat_id)


async def leave_chat(ctx: EventContext, data: Any) -> None:
    chat_id = _chat_id(data)
    ctx.hub.leave(ctx.connection, chat_room(chat_id))
    await ctx.connection.emit("chat_left", {"chatId": chat_id})


async def send_message(ctx: EventContext, data: Any) -> None:
    if not isinstance(data, dict):
        raise ValidationError("Message payload must be an object")
    chat_id = _chat_id(data)
    sender_id = ctx.connection.user_id

    def persist(db: Session) -> dict[str, Any]:
        message, chat = chat_service.send_message(
            db,
            chat_id,
            sender_id,
            content=str(data.get("content") or ""),
            message_type=data.get("messageType") or "text",
            file_url=data.get("fileUrl"),
        )
        return message_event(message, chat)

    room = chat_room(chat_id)
    async with ctx.hub.room_lock(room):
        payload = await ctx.run_db(persist)
        chat_messages.add(1, {"transport": "ws"})
        await ctx.hub.emit_to_room(room, "new_message", payload)


async def typing_start(ctx: EventContext, data: Any) -> None:
    chat_id = _chat_id(data)
    await ctx.hub.emit_to_room(
        chat_room(chat_id),
        "user_typing",
        {"userId": ctx.connection.user_id, "userName": ctx.connection.user_name, "chatId": chat_id},
        exclude=ctx.connection,
    )


async def typing_stop(ctx: EventContext, data: Any) -> None:
    chat_id = _chat_id(data)
    await ctx.hub.emit_to_room(
        chat_room(chat_id),
        "user_stop_typing",
        {"userId": ctx.connection.user_id, "chatId": chat_id},
        exclude=ctx.connection,
    )


async def mark_messages_read(ctx: EventContext, data: Any) -> None:
    chat_id = _chat_id(data)
    user_id = ctx.connection.user_id
    await ctx.run_db(lambda db: chat_service.mark_read(db, chat_id, user_id))
    await ctx.hub.emit_to_room(
        chat_room(chat_id),
        "messages_read",
        {"userId": ctx.connection.user_id, "chatId": chat_id},
        exclude=ctx.connection,
    )


async def update_status(ctx: EventContext, data: Any) -> None:
    status = data.get("status") if isinstance(data, dict) else data
    if status not in PRESENCE_STATUSES:
        raise ValidationError(f"Unknown status {status}")
    await ctx.hub.broadcast(
        "user_status_update",
        {"userId": ctx.connection.user_id, "status": status},
        exclude=ctx.connection,
    )


HANDLERS: dict[str, Handler] = {
    "join_chat": join_chat,
    "leave_chat": leave_chat,
    "send_message": send_message,
    "typing_start": typing_start,
    "typing_stop": typing_stop,
    "mark_messages_read": mark_messages_read,
    "update_status": update_status,
}


async def dispatch(ctx: EventContext, frame: Any) -> None:
    """Route one client frame; errors go back to the sender as an ``error`` event."""
    event = frame.get("event") if isinstance(frame, dict) else None
    try:
        handler = HANDLERS.get(event)
        if handler is None:
            raise ValidationError(f"Unknown event {event}")
        with tracer.start_as_current_span(f"ws.{event}", attributes={"greythr.user_id": ctx.connection.user_id}):
            await handler(ctx, frame.get("data"))
    except AppError as exc:
        logger.info("ws_event_rejected", user_id=ctx.connection.user_id, event_name=event, detail=exc.message)
        await ctx.connection.emit("error", {"event": event, "message": exc.message})
    except Exception:
        logger.exception("ws_event_failed", user_id=ctx.connection.user_id, event_name=event)
        await ctx.connection.emit("error", {"event": event, "message": "Failed to handle event"})
