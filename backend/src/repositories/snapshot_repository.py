"""Repository for EmployeeReportSnapshot operations."""

import enum
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.report import EmployeeReportSnapshot, Report
from src.models.user import Employee, User
from src.services.report_metrics import SnapshotMetrics
from src.utils.logger import get_logger

log = get_logger(__name__)


class SnapshotConflictPolicy(str, enum.Enum):
    """What an upsert does when a (report_id, user_id) row already exists.

    OVERWRITE replaces the metric columns with the freshly computed values
    (a retried job reflects current data). KEEP_FIRST leaves the existing row
    untouched. Neither policy ever clears ``pdf_url``.
    """

    OVERWRITE = "overwrite"
    KEEP_FIRST = "keep_first"


_METRIC_COLUMNS = (
    "total_tasks",
    "completed_tasks",
    "todo_tasks",
    "working_tasks",
    "done_tasks",
    "completion_rate",
    "total_hours",
    "avg_daily_hours",
    "productivity_score",
)


def build_upsert_statement(
    report: Report,
    user_id: UUID,
    metrics: SnapshotMetrics,
    policy: SnapshotConflictPolicy = SnapshotConflictPolicy.OVERWRITE,
):
    """Build the INSERT ... ON CONFLICT statement for one snapshot row."""
    values = {
        "report_id": report.id,
        "user_id": user_id,
        "tenant_id": report.tenant_id,
        "from_date": report.from_date,
        "to_date": report.to_date,
        **metrics.to_dict(),
    }
    stmt = insert(EmployeeReportSnapshot).values(**values)
    conflict_target = [EmployeeReportSnapshot.report_id, EmployeeReportSnapshot.user_id]

    if policy is SnapshotConflictPolicy.KEEP_FIRST:
        return stmt.on_conflict_do_nothing(index_elements=conflict_target)

    return stmt.on_conflict_do_update(
        index_elements=conflict_target,
        set_={
            **{col: stmt.excluded[col] for col in _METRIC_COLUMNS},
            "from_date": stmt.excluded.from_date,
            "to_date": stmt.excluded.to_date,
            "updated_at": func.now(),
        },
    )


class SnapshotRepository:
    """Repository for per-employee report snapshots."""

    def __init__(
        self,
        session: AsyncSession,
        policy: SnapshotConflictPolicy = SnapshotConflictPolicy.OVERWRITE,
    ):
        self.session = session
        self.policy = policy

    async def upsert(self, report: Report, user_id: UUID, metrics: SnapshotMetrics) -> None:
        """Insert or update the snapshot for (report, user) per the conflict policy."""
        await self.session.execute(build_upsert_statement(report, user_id, metrics, self.policy))
        log.debug(
            "snapshot_upserted",
            report_id=str(report.id),
            user_id=str(user_id),
            policy=self.policy.value,
        )

    async def get(self, report_id: UUID, user_id: UUID) -> Optional[EmployeeReportSnapshot]:
        result = await self.session.execute(
            select(EmployeeReportSnapshot).where(
                EmployeeReportSnapshot.report_id == report_id,
                EmployeeReportSnapshot.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_report(
        self, report_id: UUID, manager_id: Optional[UUID] = None
    ) -> list[tuple[EmployeeReportSnapshot, User]]:
        """Snapshots of a report with their users, optionally limited to a manager's team."""
        stmt = (
            select(EmployeeReportSnapshot, User)
            .join(User, User.id == EmployeeReportSnapshot.user_id)
            .where(EmployeeReportSnapshot.report_id == report_id)
            .order_by(User.email)
        )
        if manager_id is not None:
            stmt = stmt.join(Employee, Employee.user_id == User.id).where(
                Employee.manager_id == manager_id
            )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def list_by_user_ids(
        self, report_id: UUID, user_ids: list[UUID]
    ) -> list[EmployeeReportSnapshot]:
        if not user_ids:
            return []
        result = await self.session.execute(
            select(EmployeeReportSnapshot).where(
                EmployeeReportSnapshot.report_id == report_id,
                EmployeeReportSnapshot.user_id.in_(user_ids),
            )
        )
        return list(result.scalars().all())

    async def count_for_report(self, report_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(EmployeeReportSnapshot)
            .where(EmployeeReportSnapshot.report_id == report_id)
        )
        return result.scalar_one()

    async def set_pdf_url(self, report_id: UUID, user_id: UUID, pdf_url: str) -> None:
        await self.session.execute(
            update(EmployeeReportSnapshot)
            .where(
                EmployeeReportSnapshot.report_id == report_id,
                EmployeeReportSnapshot.user_id == user_id,
            )
            .values(pdf_url=pdf_url, updated_at=func.now())
        )
