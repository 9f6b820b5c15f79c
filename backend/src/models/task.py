"""Task and TaskWorkLog models (owned by the Kanban service, read by reporting)."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, String, TIMESTAMP, ForeignKey, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from src.database import Base


class Task(Base):
    """Kanban task assigned to a user."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    title: Mapped[str] = mapped_column(String(500))
    status: Mapped[str] = mapped_column(String(20), server_default="TODO")
    priority: Mapped[str] = mapped_column(String(20), server_default="MEDIUM")
    is_deleted: Mapped[bool] = mapped_column(Boolean, server_default="false")
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), index=True
    )

    def __repr__(self):
        return f"<Task(title='{self.title}', status='{self.status}')>"


class TaskWorkLog(Base):
    """A tracked work interval. ``end_time`` is null while the timer runs."""

    __tablename__ = "task_work_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    task_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tasks.id"), index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), index=True)
    end_time: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None

    def __repr__(self):
        return f"<TaskWorkLog(user_id='{self.user_id}', start='{self.start_time}')>"
