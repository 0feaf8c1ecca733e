from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import relationship

from greythr.db.session import Base

MESSAGE_TYPES = ("text", "file", "image")

chat_participants = Table(
    "chat_participants",
    Base.metadata,
    Column("chat_id", Integer, ForeignKey("chats.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)


class Chat(Base):
    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    is_group = Column(Boolean, nullable=False, default=False)
    group_name = Column(String(200), nullable=True)
    group_admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # snapshot of the most recent message
    last_message_sender_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    last_message_content = Column(Text, nullable=True)
    last_message_at = Column(DateTime, nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    participants = relationship("User", secondary=chat_participants, order_by="User.id")

    @property
    def participant_ids(self) -> list[int]:
        return [user.id for user in self.participants]

    def has_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    message_type = Column(String(10), nullable=False, default="text")
    file_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    sender = relationship("User")
