"""Todo model."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from taskflow.database import Base

PRIORITIES = ("low", "medium", "high")
STATUSES = ("todo", "in-progress", "done")


class Todo(Base):
    """A task owned by exactly one user."""

    __tablename__ = "todo"
    __table_args__ = (Index("ix_todo_user_status_completed", "user_id", "status", "completed_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(200), nullable=False)
    priority = Column(String(16), nullable=False, default="medium")  # low, medium, high
    status = Column(String(16), nullable=False, default="todo")  # todo, in-progress, done
    deadline = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
