"""Report generation pipeline run by the report worker."""

from dataclasses import dataclass, field
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ReportNotFoundError, ReportPipelineError
from src.models.enums import ReportScope, ReportStatus
from src.models.report import Report
from src.models.user import User
from src.repositories.activity_repository import ActivityRepository
from src.repositories.report_repository import ReportRepository
from src.repositories.snapshot_repository import SnapshotConflictPolicy, SnapshotRepository
from src.repositories.user_repository import UserRepository
from src.services.report_artifacts import ReportArtifactService
from src.services.report_aggregator import ReportAggregator
from src.services.report_metrics import aggregate_team
from src.utils.logger import get_logger

log = get_logger(__name__)


def is_connection_loss(exc: BaseException) -> bool:
    """Whether a database error means the connection itself is gone."""
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


def is_user_scoped(exc: BaseException) -> bool:
    """Whether an error raised for one user should leave the rest of the batch running."""
    if isinstance(exc, ReportPipelineError):
        return exc.user_scoped
    return not is_connection_loss(exc)


@dataclass
class UserOutcome:
    """What happened to one user of the batch."""

    user_id: UUID
    snapshot_saved: bool = False
    pdf_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class BatchResult:
    """Per-user record of one job run."""

    report_id: UUID
    outcomes: list[UserOutcome] = field(default_factory=list)
    artifact_errors: list[str] = field(default_factory=list)
    skipped: bool = False
    status: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> list[UserOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[UserOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def all_failed(self) -> bool:
        return self.total > 0 and not self.succeeded

    def failed_users(self) -> list[dict]:
        return [{"user_id": str(o.user_id), "error": o.error} for o in self.failed]

    def to_dict(self) -> dict:
        return {
            "report_id": str(self.report_id),
            "status": self.status,
            "skipped": self.skipped,
            "users_total": self.total,
            "users_succeeded": len(self.succeeded),
            "failed_users": self.failed_users(),
            "artifact_errors": self.artifact_errors,
        }


class ReportGenerationService:
    """
    Runs one report job end to end.

    Per user: aggregate and upsert the snapshot (committed on its own), then
    render, upload and record the user's PDF. Errors that concern a single
    user are recorded in the BatchResult and the loop moves on; anything else
    propagates to the caller, which owns the FAILED transition and retries.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        artifacts: ReportArtifactService,
        conflict_policy: SnapshotConflictPolicy = SnapshotConflictPolicy.OVERWRITE,
    ):
        self.session_factory = session_factory
        self.artifacts = artifacts
        self.conflict_policy = conflict_policy

    async def generate(self, report_id: UUID, job_id: Optional[str] = None) -> BatchResult:
        """
        Generate every artifact of a report and set its final status.

        Raises:
            ReportNotFoundError: If the report does not exist
            ReportPipelineError: For errors that abort the whole job
        """
        async with self.session_factory() as session:
            reports = ReportRepository(session)
            report = await reports.get_by_id(report_id)
            if report is None:
                raise ReportNotFoundError(str(report_id))

            result = BatchResult(report_id=report.id)
            if report.status == ReportStatus.READY.value:
                log.info("report already ready, skipping", report_id=str(report.id))
                result.skipped = True
                result.status = report.status
                return result

            await reports.mark_generating(report.id, job_id=job_id)
            await session.commit()

            users = await self._resolve_users(session, report)
            log.info(
                "report job started",
                report_id=str(report.id),
                scope=report.scope,
                users=len(users),
                job_id=job_id,
            )

            snapshots = SnapshotRepository(session, self.conflict_policy)
            aggregator = ReportAggregator(ActivityRepository(session), snapshots)

            for user in users:
                outcome = await self._process_user(session, report, user, aggregator, snapshots)
                result.outcomes.append(outcome)

            saved = {o.user_id for o in result.outcomes if o.snapshot_saved}
            if saved:
                await self._build_report_artifacts(
                    session, report, saved, aggregator, snapshots, result
                )

            if result.all_failed:
                reason = f"all {result.total} users failed"
                await reports.mark_failed(report.id, reason, failed_users=result.failed_users())
                result.status = ReportStatus.FAILED.value
            else:
                await reports.mark_ready(report.id, failed_users=result.failed_users())
                result.status = ReportStatus.READY.value
            await session.commit()

        log.info(
            "report job finished",
            report_id=str(report_id),
            status=result.status,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    async def _resolve_users(self, session: AsyncSession, report: Report) -> list[User]:
        users = UserRepository(session)
        requester = await users.get_by_id(report.generated_by)
        if requester is None:
            log.warning("report requester missing", report_id=str(report.id))
            return []
        return await users.resolve_scope(
            requester, report.tenant_id, report.scope, report.employee_ids
        )

    async def _process_user(
        self,
        session: AsyncSession,
        report: Report,
        user: User,
        aggregator: ReportAggregator,
        snapshots: SnapshotRepository,
    ) -> UserOutcome:
        # A failed user rolls back to its savepoint only, so the report and the
        # rest of the batch stay loaded.
        outcome = UserOutcome(user_id=user.id)
        try:
            async with session.begin_nested():
                await aggregator.aggregate(report, user.id)
            await session.commit()
            outcome.snapshot_saved = True

            async with session.begin_nested():
                snapshot = await snapshots.get(report.id, user.id)
                trend = await aggregator.completion_trend(report, [user.id])
                url = await self.artifacts.publish_employee_pdf(report, user, snapshot, trend)
                await snapshots.set_pdf_url(report.id, user.id, url)
            await session.commit()
            outcome.pdf_url = url
        except Exception as e:
            if not is_user_scoped(e):
                raise
            outcome.error = str(e)
            log.warning(
                "report user failed",
                report_id=str(report.id),
                user_id=str(user.id),
                snapshot_saved=outcome.snapshot_saved,
                error=str(e),
                error_type=type(e).__name__,
            )
        return outcome

    async def _build_report_artifacts(
        self,
        session: AsyncSession,
        report: Report,
        user_ids: set[UUID],
        aggregator: ReportAggregator,
        snapshots: SnapshotRepository,
        result: BatchResult,
    ) -> None:
        """Workbook for every scope, team PDF for TEAM scope."""
        members = [
            (snapshot, user)
            for snapshot, user in await snapshots.list_for_report(report.id)
            if user.id in user_ids
        ]
        is_team = report.scope == ReportScope.TEAM.value
        team = aggregate_team([s for s, _ in members]) if is_team else None

        if is_team:
            try:
                trend = await aggregator.completion_trend(report, [u.id for _, u in members])
                url = await self.artifacts.publish_team_pdf(report, team, members, trend)
                await ReportRepository(session).set_artifact_urls(report.id, pdf_url=url)
                await session.commit()
            except ReportPipelineError as e:
                result.artifact_errors.append(f"team pdf: {e}")
                log.warning("team pdf failed", report_id=str(report.id), error=str(e))

        try:
            url = await self.artifacts.publish_workbook(report, members, team=team)
            await ReportRepository(session).set_artifact_urls(report.id, excel_url=url)
            await session.commit()
        except ReportPipelineError as e:
            result.artifact_errors.append(f"workbook: {e}")
            log.warning("workbook failed", report_id=str(report.id), error=str(e))


async def mark_report_failed(
    session_factory: Callable[[], AsyncSession], report_id: UUID, reason: str
) -> None:
    """Move a report to FAILED outside the pipeline (aborted or exhausted jobs)."""
    async with session_factory() as session:
        await ReportRepository(session).mark_failed(report_id, reason)
        await session.commit()
