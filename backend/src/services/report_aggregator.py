"""Database-facing side of snapshot aggregation."""

from uuid import UUID

from src.models.report import Report
from src.repositories.activity_repository import ActivityRepository
from src.repositories.snapshot_repository import SnapshotRepository
from src.services.report_metrics import (
    SnapshotMetrics,
    TrendPoint,
    build_daily_trend,
    compute_snapshot_metrics,
)
from src.utils.logger import get_logger

log = get_logger(__name__)


class ReportAggregator:
    """Computes and persists one employee's snapshot for a report window."""

    def __init__(
        self,
        activity_repository: ActivityRepository,
        snapshot_repository: SnapshotRepository,
    ):
        self.activity_repository = activity_repository
        self.snapshot_repository = snapshot_repository

    async def compute(self, report: Report, user_id: UUID) -> SnapshotMetrics:
        tasks = await self.activity_repository.tasks_for_user(
            user_id, report.tenant_id, report.from_date, report.to_date
        )
        work_logs = await self.activity_repository.closed_work_logs(
            user_id, report.from_date, report.to_date
        )
        return compute_snapshot_metrics(tasks, work_logs)

    async def aggregate(self, report: Report, user_id: UUID) -> SnapshotMetrics:
        """
        Compute the user's metrics and upsert the snapshot row.

        The caller owns the transaction; nothing is committed here.
        """
        metrics = await self.compute(report, user_id)
        await self.snapshot_repository.upsert(report, user_id, metrics)
        log.info(
            "snapshot aggregated",
            report_id=str(report.id),
            user_id=str(user_id),
            total_tasks=metrics.total_tasks,
            total_hours=metrics.total_hours,
        )
        return metrics

    async def completion_trend(self, report: Report, user_ids: list[UUID]) -> list[TrendPoint]:
        """Day-by-day completed tasks of ``user_ids`` across the report window."""
        completed = await self.activity_repository.completion_times(
            user_ids, report.tenant_id, report.from_date, report.to_date
        )
        return build_daily_trend(completed, report.from_date, report.to_date)
