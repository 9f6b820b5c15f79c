"""Per-employee report analytics and downloads."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.config import get_settings
from src.dependencies import (
    ActivityRepoDep,
    ArtifactServiceDep,
    DbSession,
    RedisDep,
    ReportManager,
    ReportRepoDep,
    SnapshotRepoDep,
    UserRepoDep,
)
from src.exceptions import ForbiddenError, ResourceNotFoundError
from src.models.report import EmployeeReportSnapshot, Report
from src.models.user import User
from src.repositories.report_repository import ReportRepository
from src.repositories.snapshot_repository import SnapshotRepository
from src.repositories.user_repository import UserRepository
from src.schemas.reports import (
    ArtifactUrlResponse,
    EfficiencyResponse,
    EmployeeSummaryResponse,
    HoursEntry,
    PriorityDistributionResponse,
    ProductivityTrendPoint,
    TaskDistributionResponse,
)
from src.services.report_metrics import (
    build_daily_trend,
    efficiency_profile,
    generate_insights,
    hours_by_day,
    priority_distribution,
    productivity_trend,
)
from src.utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/reports/{report_id}/employees/{user_id}", tags=["Report Analytics"])


def summary_cache_key(report_id: UUID, user_id: UUID) -> str:
    return f"report:{report_id}:user:{user_id}:summary"


async def _authorize(
    report_id: UUID,
    user_id: UUID,
    current_user: User,
    report_repo: ReportRepository,
    user_repo: UserRepository,
) -> Report:
    """Load the tenant's report and check the requester may see the employee."""
    report = await report_repo.get_for_tenant(report_id, current_user.tenant_id)
    if report is None:
        raise ResourceNotFoundError("Report", str(report_id))

    if not await user_repo.can_access_employee(current_user, user_id, report.tenant_id):
        raise ForbiddenError("Not allowed to view this employee's report")
    return report


async def _get_snapshot(
    snapshot_repo: SnapshotRepository, report_id: UUID, user_id: UUID
) -> EmployeeReportSnapshot:
    snapshot = await snapshot_repo.get(report_id, user_id)
    if snapshot is None:
        raise ResourceNotFoundError("Snapshot", f"{report_id}/{user_id}")
    return snapshot


@router.get("/summary", response_model=EmployeeSummaryResponse)
async def get_employee_summary(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
    redis: RedisDep,
) -> EmployeeSummaryResponse:
    """Snapshot figures, cached in Redis."""
    await _authorize(report_id, user_id, current_user, report_repo, user_repo)

    cache_key = summary_cache_key(report_id, user_id)
    cached = await redis.get(cache_key)
    if cached:
        return EmployeeSummaryResponse.model_validate_json(cached)

    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    response = EmployeeSummaryResponse(
        total_tasks=snapshot.total_tasks,
        completed_tasks=snapshot.completed_tasks,
        pending_tasks=snapshot.total_tasks - snapshot.completed_tasks,
        completion_rate=snapshot.completion_rate,
        total_hours=snapshot.total_hours,
        avg_daily_hours=snapshot.avg_daily_hours,
        productivity_score=snapshot.productivity_score,
    )
    await redis.setex(
        cache_key, get_settings().summary_cache_ttl_seconds, response.model_dump_json()
    )
    return response


@router.get("/hours", response_model=list[HoursEntry])
async def get_employee_hours(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    activity_repo: ActivityRepoDep,
) -> list[HoursEntry]:
    """Closed work-log hours per day of the report window."""
    report = await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    logs = await activity_repo.work_logs_started_between(
        user_id, report.tenant_id, report.from_date, report.to_date
    )
    return [HoursEntry(**entry) for entry in hours_by_day(logs)]


@router.get("/tasks-distribution", response_model=TaskDistributionResponse)
async def get_tasks_distribution(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
) -> TaskDistributionResponse:
    await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    return TaskDistributionResponse(
        todo=snapshot.todo_tasks, working=snapshot.working_tasks, done=snapshot.done_tasks
    )


@router.get("/priority-distribution", response_model=PriorityDistributionResponse)
async def get_priority_distribution(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    activity_repo: ActivityRepoDep,
) -> PriorityDistributionResponse:
    """Task counts per priority, computed live over the report window."""
    report = await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    tasks = await activity_repo.tasks_for_user(
        user_id, report.tenant_id, report.from_date, report.to_date
    )
    return PriorityDistributionResponse(**priority_distribution(tasks))


@router.get("/efficiency", response_model=EfficiencyResponse)
async def get_efficiency(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
) -> EfficiencyResponse:
    await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    return EfficiencyResponse(**efficiency_profile(snapshot))


@router.get("/insights", response_model=list[str])
async def get_insights(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
) -> list[str]:
    await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    return generate_insights(snapshot)


@router.get("/productivity-trend", response_model=list[ProductivityTrendPoint])
async def get_productivity_trend(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
) -> list[ProductivityTrendPoint]:
    await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    return [ProductivityTrendPoint(**p) for p in productivity_trend(snapshot.productivity_score)]


@router.get("/pdf", response_model=ArtifactUrlResponse)
async def get_employee_pdf(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
    activity_repo: ActivityRepoDep,
    artifacts: ArtifactServiceDep,
    db: DbSession,
    regenerate: bool = Query(False, description="Render again even if a PDF exists"),
) -> ArtifactUrlResponse:
    """URL of the employee's PDF, rendering it on demand when missing."""
    report = await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    if snapshot.pdf_url and not regenerate:
        return ArtifactUrlResponse(url=snapshot.pdf_url)

    employee = await user_repo.get_by_id(user_id)
    if employee is None:
        raise ResourceNotFoundError("User", str(user_id))

    completed = await activity_repo.completion_times(
        [user_id], report.tenant_id, report.from_date, report.to_date
    )
    trend = build_daily_trend(completed, report.from_date, report.to_date)

    url = await artifacts.publish_employee_pdf(report, employee, snapshot, trend)
    await snapshot_repo.set_pdf_url(report_id, user_id, url)
    await db.commit()

    log.info("employee_pdf_rendered", report_id=str(report_id), user_id=str(user_id))
    return ArtifactUrlResponse(url=url)


@router.get("/excel", response_model=ArtifactUrlResponse)
async def get_employee_excel(
    report_id: UUID,
    user_id: UUID,
    current_user: ReportManager,
    report_repo: ReportRepoDep,
    user_repo: UserRepoDep,
    snapshot_repo: SnapshotRepoDep,
    artifacts: ArtifactServiceDep,
    regenerate: bool = Query(False, description="Build a single-employee workbook"),
) -> ArtifactUrlResponse:
    """URL of the report workbook, or a single-employee workbook built on demand."""
    report = await _authorize(report_id, user_id, current_user, report_repo, user_repo)
    if report.excel_url and not regenerate:
        return ArtifactUrlResponse(url=report.excel_url)

    snapshot = await _get_snapshot(snapshot_repo, report_id, user_id)
    employee = await user_repo.get_by_id(user_id)
    if employee is None:
        raise ResourceNotFoundError("User", str(user_id))

    url = await artifacts.publish_employee_workbook(report, employee, snapshot)
    log.info("employee_workbook_built", report_id=str(report_id), user_id=str(user_id))
    return ArtifactUrlResponse(url=url)
