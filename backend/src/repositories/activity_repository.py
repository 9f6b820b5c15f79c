"""Read-only queries over tasks and work logs used by reporting."""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import TaskStatus
from src.models.task import Task, TaskWorkLog
from src.models.user import User


class ActivityRepository:
    """Repository for Task and TaskWorkLog reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def tasks_for_user(
        self,
        user_id: UUID,
        tenant_id: UUID,
        from_date: datetime,
        to_date: datetime,
    ) -> list[Task]:
        """Non-deleted tasks assigned to the user and created inside the window."""
        result = await self.session.execute(
            select(Task).where(
                Task.assignee_id == user_id,
                Task.tenant_id == tenant_id,
                Task.is_deleted.is_(False),
                Task.created_at >= from_date,
                Task.created_at <= to_date,
            )
        )
        return list(result.scalars().all())

    async def closed_work_logs(
        self, user_id: UUID, from_date: datetime, to_date: datetime
    ) -> list[TaskWorkLog]:
        """Work logs fully inside the window. Running logs never match."""
        result = await self.session.execute(
            select(TaskWorkLog).where(
                TaskWorkLog.user_id == user_id,
                TaskWorkLog.start_time >= from_date,
                TaskWorkLog.end_time <= to_date,
            )
        )
        return list(result.scalars().all())

    async def work_logs_started_between(
        self,
        user_id: UUID,
        tenant_id: UUID,
        from_date: datetime,
        to_date: datetime,
    ) -> list[TaskWorkLog]:
        """Closed logs that started inside the window (for per-day hour charts)."""
        result = await self.session.execute(
            select(TaskWorkLog)
            .join(User, User.id == TaskWorkLog.user_id)
            .where(
                TaskWorkLog.user_id == user_id,
                User.tenant_id == tenant_id,
                TaskWorkLog.start_time >= from_date,
                TaskWorkLog.start_time <= to_date,
                TaskWorkLog.end_time.is_not(None),
            )
            .order_by(TaskWorkLog.start_time)
        )
        return list(result.scalars().all())

    async def completion_times(
        self,
        user_ids: Sequence[UUID],
        tenant_id: UUID,
        from_date: datetime,
        to_date: datetime,
    ) -> list[datetime]:
        """``completed_at`` of the tenant's DONE tasks completed inside the window."""
        if not user_ids:
            return []
        result = await self.session.execute(
            select(Task.completed_at).where(
                Task.assignee_id.in_(list(user_ids)),
                Task.tenant_id == tenant_id,
                Task.is_deleted.is_(False),
                Task.status == TaskStatus.DONE.value,
                Task.completed_at >= from_date,
                Task.completed_at <= to_date,
            )
        )
        return [row[0] for row in result.fetchall()]

    async def tenant_closed_hours(self, tenant_id: UUID) -> int:
        """Rounded hours across every closed work log of the tenant."""
        seconds = func.extract("epoch", TaskWorkLog.end_time - TaskWorkLog.start_time)
        result = await self.session.execute(
            select(func.coalesce(func.sum(seconds), 0))
            .select_from(TaskWorkLog)
            .join(User, User.id == TaskWorkLog.user_id)
            .where(User.tenant_id == tenant_id, TaskWorkLog.end_time.is_not(None))
        )
        total_seconds = float(result.scalar_one() or 0)
        return int(total_seconds / 3600 + 0.5)

    async def tenant_task_counts(self, tenant_id: UUID) -> tuple[int, int]:
        """(total, completed) non-deleted tasks of the tenant."""
        base = select(func.count()).select_from(Task).where(
            Task.tenant_id == tenant_id, Task.is_deleted.is_(False)
        )
        total = (await self.session.execute(base)).scalar_one()
        completed = (
            await self.session.execute(base.where(Task.status == TaskStatus.DONE.value))
        ).scalar_one()
        return total, completed
