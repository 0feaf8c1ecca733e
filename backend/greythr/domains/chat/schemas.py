from datetime import datetime
from typing import Any, Literal

from pydantic import Field, model_validator

from greythr.core.schemas import Page, RequestModel, ResponseModel


class Participant(ResponseModel):
    id: int
    name: str
    email: str
    avatar: str | None = None


class LastMessage(ResponseModel):
    sender: int | None = None
    content: str | None = None
    timestamp: datetime | None = None


class ChatOut(ResponseModel):
    id: int
    participants: list[Participant]
    is_group: bool
    group_name: str | None = None
    group_admin_id: int | None = None
    last_message: LastMessage | None = None
    created_at: datetime | None = None

    @classmethod
    def from_chat(cls, chat) -> "ChatOut":
        last = None
        if chat.last_message_at is not None:
            last = LastMessage(
                sender=chat.last_message_sender_id,
                content=chat.last_message_content,
                timestamp=chat.last_message_at,
            )
        return cls(
            id=chat.id,
            participants=chat.participants,
            is_group=chat.is_group,
            group_name=chat.group_name,
            group_admin_id=chat.group_admin_id,
            last_message=last,
            created_at=chat.created_at,
        )


class MessageOut(ResponseModel):
    id: int
    chat_id: int
    sender: int = Field(validation_alias="sender_id")
    sender_name: str | None = None
    content: str
    message_type: Literal["text", "file", "image"]
    file_url: str | None = None
    is_read: bool
    created_at: datetime | None = None

    @classmethod
    def from_message(cls, message) -> "MessageOut":
        out = cls.model_validate(message)
        if message.sender is not None:
            out.sender_name = message.sender.name
        return out


class ChatCreate(RequestModel):
    participant_ids: list[int] = Field(min_length=1)
    is_group: bool = False
    group_name: str | None = Field(default=None, max_length=200)


class MessageCreate(RequestModel):
    content: str = ""
    message_type: Literal["text", "file", "image"] = "text"
    file_url: str | None = None

    @model_validator(mode="after")
    def require_content_or_file(self) -> "MessageCreate":
        if not self.content and not self.file_url:
            raise ValueError("Message content or file URL is required")
        return self


class ChatList(ResponseModel):
    data: list[ChatOut]
    pagination: Page


class MessageList(ResponseModel):
    data: list[MessageOut]
    pagination: Page


def message_event(message, chat) -> dict[str, Any]:
    """Payload relayed to a chat room when a message is persisted."""
    return {
        "message": MessageOut.from_message(message).model_dump(mode="json", by_alias=True),
        "chat": {
            "id": chat.id,
            "lastMessage": LastMessage(
                sender=chat.last_message_sender_id,
                content=chat.last_message_content,
                timestamp=chat.last_message_at,
            ).model_dump(mode="json", by_alias=True),
        },
    }
