from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from greythr.api.deps import get_current_user, get_hub
from greythr.core.observability import chat_messages
from greythr.core.schemas import page_meta
from greythr.db.session import get_session
from greythr.domains.chat import service
from greythr.domains.chat.schemas import (
    ChatCreate,
    ChatList,
    ChatOut,
    MessageCreate,
    MessageList,
    MessageOut,
    message_event,
)
from greythr.models import User
from greythr.realtime.hub import ChannelHub, chat_room

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.get("", response_model=ChatList)
def list_chats(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    rows, total = service.list_chats(db, user.id, page=page, limit=limit)
    return ChatList(data=[ChatOut.from_chat(c) for c in rows], pagination=page_meta(page, limit, total))


@router.post("", response_model=ChatOut, status_code=201)
def create_chat(payload: ChatCreate, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    chat, created = service.create_chat(
        db, user, payload.participant_ids, is_group=payload.is_group, group_name=payload.group_name
    )
    out = ChatOut.from_chat(chat)
    if not created:
        return JSONResponse(status_code=200, content=out.model_dump(mode="json", by_alias=True))
    return out


@router.get("/{chat_id}", response_model=ChatOut)
def get_chat(chat_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_session)):
    return ChatOut.from_chat(service.get_chat_for_participant(db, chat_id, user.id))


@router.get("/{chat_id}/messages", response_model=MessageList)
def list_messages(
    chat_id: int,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
):
    chat = service.get_chat_for_participant(db, chat_id, user.id)
    rows, total = service.list_messages(db, chat, page=page, limit=limit)
    return MessageList(data=[MessageOut.from_message(m) for m in rows], pagination=page_meta(page, limit, total))


@router.post("/{chat_id}/messages", response_model=MessageOut, status_code=201)
async def send_message(
    chat_id: int,
    payload: MessageCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
):
    def persist():
        message, chat = service.send_message(
            db,
            chat_id,
            user.id,
            content=payload.content,
            message_type=payload.message_type,
            file_url=payload.file_url,
        )
        return MessageOut.from_message(message), message_event(message, chat)

    room = chat_room(chat_id)
    async with hub.room_lock(room):
        out, event = await run_in_threadpool(persist)
        chat_messages.add(1, {"transport": "rest"})
        await hub.emit_to_room(room, "new_message", event)
    return out


@router.put("/{chat_id}/messages/read")
async def mark_messages_read(
    chat_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    hub: ChannelHub = Depends(get_hub),
) -> dict[str, int | bool]:
    user_id = user.id
    updated = await run_in_threadpool(service.mark_read, db, chat_id, user_id)
    await hub.emit_to_room(chat_room(chat_id), "messages_read", {"userId": user_id, "chatId": chat_id})
    return {"success": True, "updated": updated}
