"""Background task for report generation."""

from typing import Any, Optional
from uuid import UUID

from src.celery_app import celery_app
from src.config import get_settings
from src.database import AsyncSessionLocal
from src.exceptions import ReportPipelineError
from src.factories.service_factories import get_report_generation_service
from src.services.report_pipeline import is_connection_loss, mark_report_failed
from src.tasks.utils import run_async
from src.utils.logger import get_logger

log = get_logger(__name__)

settings = get_settings()


def is_transient(exc: BaseException) -> bool:
    """Infrastructure errors worth another attempt."""
    if isinstance(exc, ReportPipelineError):
        return False
    return is_connection_loss(exc) or isinstance(exc, (ConnectionError, TimeoutError))


def _mark_failed(report_id: str, reason: str) -> None:
    """Best-effort FAILED transition; the original error is what gets re-raised."""
    try:
        run_async(mark_report_failed(AsyncSessionLocal, UUID(report_id), reason))
    except Exception as exc:
        log.error("report_mark_failed_error", report_id=report_id, error=str(exc))


@celery_app.task(
    bind=True,
    name="src.tasks.report_tasks.generate_report_task",
    max_retries=settings.report_max_retries,
)
def generate_report_task(
    self,
    report_id: str,
    scope: Optional[str] = None,
    employee_ids: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Generate snapshots, PDFs and the workbook for one report.

    Transient infrastructure errors are retried with a linear backoff up to
    ``report_max_retries``. Any other error, or the last transient one, marks
    the report FAILED before propagating so the failure alert fires.

    Args:
        self: Celery task instance (bound)
        report_id: Report to generate
        scope: EMPLOYEE or TEAM (informational; the stored report is authoritative)
        employee_ids: Explicit user ids for EMPLOYEE scope (informational)

    Returns:
        BatchResult as a dictionary
    """
    task_id = self.request.id
    attempt = self.request.retries + 1

    log.info(
        "report_task_started",
        task_id=task_id,
        report_id=report_id,
        scope=scope,
        employee_count=len(employee_ids or []),
        attempt=attempt,
    )

    async def _run() -> dict[str, Any]:
        service = get_report_generation_service()
        result = await service.generate(UUID(report_id), job_id=task_id)
        return result.to_dict()

    try:
        result = run_async(_run())
    except Exception as exc:
        if is_transient(exc) and self.request.retries < self.max_retries:
            countdown = settings.report_retry_backoff_seconds * attempt
            log.warning(
                "report_task_retrying",
                task_id=task_id,
                report_id=report_id,
                attempt=attempt,
                countdown=countdown,
                error=str(exc),
            )
            raise self.retry(exc=exc, countdown=countdown)

        log.error(
            "report_task_failed",
            task_id=task_id,
            report_id=report_id,
            attempt=attempt,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        _mark_failed(report_id, f"{type(exc).__name__}: {exc}")
        raise

    log.info(
        "report_task_completed",
        task_id=task_id,
        report_id=report_id,
        status=result.get("status"),
        users_succeeded=result.get("users_succeeded"),
    )
    return result


def enqueue_report(report_id: UUID, scope: str, employee_ids: Optional[list[str]] = None) -> str:
    """Put a report job on the queue and return its task id."""
    async_result = generate_report_task.apply_async(
        kwargs={
            "report_id": str(report_id),
            "scope": scope,
            "employee_ids": employee_ids or [],
        },
        queue=settings.report_queue_name,
    )
    return async_result.id
