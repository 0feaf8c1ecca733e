from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from greythr.db.session import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(10), nullable=False, default="info")  # info|success|warning|error
    is_read = Column(Boolean, nullable=False, default=False)
    data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
