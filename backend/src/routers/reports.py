"""Report generation and listing router."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.dependencies import (
    ActivityRepoDep,
    ArtifactServiceDep,
    DbSession,
    ReportManager,
    ReportRepoDep,
    SnapshotRepoDep,
    UserRepoDep,
)
from src.exceptions import (
    ConflictError,
    QueueUnavailableError,
    ResourceNotFoundError,
    ValidationError,
)
from src.models.enums import ReportScope, ReportStatus, ReportType, UserRole
from src.models.report import Report
from src.models.user import User
from src.schemas.reports import (
    ArtifactUrlResponse,
    EmployeeSearchResult,
    GenerateReportRequest,
    GenerateReportResponse,
    ReportDetailResponse,
    ReportListResponse,
    ReportResponse,
    ReportSummaryResponse,
    TeamMetricsResponse,
    TrendPointResponse,
)
from src.repositories.report_repository import ReportRepository
from src.repositories.snapshot_repository import SnapshotRepository
from src.services.report_metrics import aggregate_team, build_daily_trend, completion_rate
from src.tasks.report_tasks import enqueue_report
from src.utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


async def _get_tenant_report(report_repo: ReportRepository, report_id: UUID, user: User) -> Report:
    report = await report_repo.get_for_tenant(report_id, user.tenant_id)
    if report is None:
        raise ResourceNotFoundError("Report", str(report_id))
    return report


async def _enqueue(
    db: DbSession, report_repo: ReportRepository, report: Report
) -> str:
    """Queue the report job and record its id. Marks the report FAILED if the queue is down."""
    try:
        job_id = enqueue_report(report.id, report.scope, report.employee_ids)
    except Exception as e:
        log.error("report_enqueue_failed", report_id=str(report.id), error=str(e))
        await report_repo.mark_failed(report.id, f"Enqueue failed: {e}")
        await db.commit()
        raise QueueUnavailableError()

    await report_repo.set_job_id(report.id, job_id)
    await db.commit()
    return job_id


@router.post(
    "/generate",
    response_model=GenerateReportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_report(
    request: GenerateReportRequest,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    db: DbSession,
) -> GenerateReportResponse:
    """Create a report in GENERATING state and queue its generation job.

    Poll GET /reports/{report_id} until the status is READY or FAILED.
    """
    if request.from_date > request.to_date:
        raise ValidationError("from_date must not be after to_date")

    employee_ids = [str(i) for i in request.employee_ids or []]
    if request.scope == ReportScope.EMPLOYEE and not employee_ids:
        raise ValidationError("Employee IDs required for EMPLOYEE scope")

    report = await report_repo.create(
        tenant_id=current_user.tenant_id,
        report_type=request.type.value,
        scope=request.scope.value,
        generated_by=current_user.id,
        from_date=request.from_date,
        to_date=request.to_date,
        employee_ids=employee_ids or None,
    )
    # the worker must be able to see the row before the job is picked up
    await db.commit()

    job_id = await _enqueue(db, report_repo, report)

    log.info(
        "report_generation_queued",
        report_id=str(report.id),
        job_id=job_id,
        scope=report.scope,
        user_id=str(current_user.id),
    )

    return GenerateReportResponse(
        report_id=report.id, status=ReportStatus.GENERATING.value, job_id=job_id
    )


@router.get("", response_model=ReportListResponse)
async def list_reports(
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    type: Optional[ReportType] = Query(None, description="Filter by report type"),
    created_from: Optional[datetime] = Query(None, description="Created at or after"),
    created_to: Optional[datetime] = Query(None, description="Created at or before"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ReportListResponse:
    """List the requester's own reports in their tenant, newest first."""
    reports, total = await report_repo.list_reports(
        tenant_id=current_user.tenant_id,
        generated_by=current_user.id,
        report_type=type.value if type else None,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        offset=offset,
    )

    return ReportListResponse(
        reports=[ReportResponse.model_validate(r, from_attributes=True) for r in reports],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/summary", response_model=ReportSummaryResponse)
async def get_summary(
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    activity_repo: ActivityRepoDep,
) -> ReportSummaryResponse:
    """Tenant-wide dashboard figures."""
    tenant_id = current_user.tenant_id
    total_reports = await report_repo.count_for_tenant(tenant_id)

    team_members = 0
    if current_user.role == UserRole.MANAGER.value:
        team_members = await user_repo.count_for_tenant(tenant_id)

    total_hours = await activity_repo.tenant_closed_hours(tenant_id)
    total_tasks, completed_tasks = await activity_repo.tenant_task_counts(tenant_id)

    return ReportSummaryResponse(
        total_reports=total_reports,
        team_members=team_members,
        total_hours=total_hours,
        completion_rate=completion_rate(completed_tasks, total_tasks),
    )


@router.get("/employees/search", response_model=list[EmployeeSearchResult])
async def search_employees(
    current_user: ReportManager,
    user_repo: UserRepoDep,
    q: str = Query("", max_length=255, description="Case-insensitive email fragment"),
    limit: int = Query(50, ge=1, le=200),
) -> list[EmployeeSearchResult]:
    """Users the requester may include in an EMPLOYEE-scope report."""
    users = await user_repo.search_visible(current_user, q, limit=limit)
    return [EmployeeSearchResult.model_validate(u, from_attributes=True) for u in users]


@router.get("/{report_id}", response_model=ReportDetailResponse)
async def get_report(
    report_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    snapshot_repo: SnapshotRepoDep,
) -> ReportDetailResponse:
    """Get a report's status, artifact URLs and failure data."""
    report = await _get_tenant_report(report_repo, report_id, current_user)
    snapshot_count = await snapshot_repo.count_for_report(report.id)

    response = ReportDetailResponse.model_validate(report, from_attributes=True)
    response.snapshot_count = snapshot_count
    return response


@router.post("/{report_id}/retry", response_model=GenerateReportResponse)
async def retry_report(
    report_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    db: DbSession,
) -> GenerateReportResponse:
    """Re-queue a FAILED report."""
    report = await _get_tenant_report(report_repo, report_id, current_user)
    if report.status != ReportStatus.FAILED.value:
        raise ConflictError(
            f"Only FAILED reports can be retried (status is {report.status})",
            details={"status": report.status},
        )

    await report_repo.mark_generating(report.id, count_attempt=False)
    await db.commit()

    job_id = await _enqueue(db, report_repo, report)
    log.info("report_retry_queued", report_id=str(report.id), job_id=job_id)

    return GenerateReportResponse(
        report_id=report.id, status=ReportStatus.GENERATING.value, job_id=job_id
    )


async def _visible_team(report: Report, current_user: User, snapshot_repo: SnapshotRepository):
    manager_id = current_user.id if current_user.role == UserRole.MANAGER.value else None
    return await snapshot_repo.list_for_report(report.id, manager_id=manager_id)


@router.get("/{report_id}/team", response_model=TeamMetricsResponse)
async def get_team_metrics(
    report_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    snapshot_repo: SnapshotRepoDep,
    activity_repo: ActivityRepoDep,
) -> TeamMetricsResponse:
    """Aggregated metrics over the report members visible to the requester."""
    report = await _get_tenant_report(report_repo, report_id, current_user)
    members = await _visible_team(report, current_user, snapshot_repo)

    team = aggregate_team([s for s, _ in members])
    completed = await activity_repo.completion_times(
        [u.id for _, u in members], report.tenant_id, report.from_date, report.to_date
    )
    trend = build_daily_trend(completed, report.from_date, report.to_date)

    return TeamMetricsResponse(
        **team.to_dict(),
        trend=[TrendPointResponse(date=p.date, count=p.count) for p in trend],
    )


@router.get("/{report_id}/team/pdf", response_model=ArtifactUrlResponse)
async def get_team_pdf(
    report_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    snapshot_repo: SnapshotRepoDep,
    activity_repo: ActivityRepoDep,
    artifacts: ArtifactServiceDep,
    db: DbSession,
    regenerate: bool = Query(False, description="Render again even if a PDF exists"),
) -> ArtifactUrlResponse:
    """URL of the team PDF, rendering it on demand when missing.

    Only a requester who sees every member of the report reads or replaces
    the report's own PDF. A manager seeing part of the team gets a PDF of
    that part, stored under their own path.
    """
    report = await _get_tenant_report(report_repo, report_id, current_user)
    members = await _visible_team(report, current_user, snapshot_repo)
    shared = current_user.role != UserRole.MANAGER.value
    if not shared:
        shared = len(members) == await snapshot_repo.count_for_report(report.id)

    if shared and report.pdf_url and not regenerate:
        return ArtifactUrlResponse(url=report.pdf_url)
    if not members:
        raise ResourceNotFoundError("Team report data", str(report_id))

    team = aggregate_team([s for s, _ in members])
    completed = await activity_repo.completion_times(
        [u.id for _, u in members], report.tenant_id, report.from_date, report.to_date
    )
    trend = build_daily_trend(completed, report.from_date, report.to_date)

    if not shared:
        url = await artifacts.publish_team_pdf(
            report, team, members, trend, viewer_id=current_user.id
        )
        log.info(
            "team_pdf_rendered_for_viewer",
            report_id=str(report.id),
            viewer_id=str(current_user.id),
            members=len(members),
        )
        return ArtifactUrlResponse(url=url)

    url = await artifacts.publish_team_pdf(report, team, members, trend)
    await report_repo.set_artifact_urls(report.id, pdf_url=url)
    await db.commit()

    log.info("team_pdf_rendered", report_id=str(report.id), members=len(members))
    return ArtifactUrlResponse(url=url)
