from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from greythr.db.session import Base

TASK_STATUSES = ("todo", "in-progress", "review", "completed")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    assigned_to = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    priority = Column(String(10), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="todo", index=True)
    due_date = Column(Date, nullable=False)
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    assignee = relationship("Employee", foreign_keys=[assigned_to])
    assigner = relationship("Employee", foreign_keys=[assigned_by])
    comments = relationship(
        "TaskComment",
        order_by="TaskComment.id",
        cascade="all, delete-orphan",
        back_populates="task",
    )


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    comment = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow)

    task = relationship("Task", back_populates="comments")
