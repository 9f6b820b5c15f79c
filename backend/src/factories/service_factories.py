"""Factory functions for business logic services."""

from functools import lru_cache

from src.config import get_settings
from src.database import AsyncSessionLocal
from src.factories.client_factories import get_storage_client
from src.repositories.snapshot_repository import SnapshotConflictPolicy
from src.services.document_renderer import PdfRenderer
from src.services.notifier import EmailTransport, FailureNotifier
from src.services.report_artifacts import ReportArtifactService
from src.services.report_pipeline import ReportGenerationService


@lru_cache(maxsize=1)
def get_pdf_renderer() -> PdfRenderer:
    """
    Create the process-wide PDF renderer.

    A single instance means a single render semaphore per worker process.

    Returns:
        PdfRenderer instance
    """
    settings = get_settings()
    return PdfRenderer(
        timeout_ms=settings.pdf_render_timeout_ms,
        browser_args=settings.get_browser_args(),
        max_concurrent=settings.max_concurrent_renders,
    )


def get_artifact_service() -> ReportArtifactService:
    """Create ReportArtifactService over the shared storage client and renderer."""
    return ReportArtifactService(
        storage_client=get_storage_client(),
        pdf_renderer=get_pdf_renderer(),
    )


def get_report_generation_service() -> ReportGenerationService:
    """
    Create ReportGenerationService with dependencies.

    Note: Not cached because the conflict policy is read from settings per job.

    Returns:
        ReportGenerationService instance
    """
    settings = get_settings()
    return ReportGenerationService(
        session_factory=AsyncSessionLocal,
        artifacts=get_artifact_service(),
        conflict_policy=SnapshotConflictPolicy(settings.snapshot_conflict_policy),
    )


@lru_cache(maxsize=1)
def get_failure_notifier() -> FailureNotifier:
    """
    Create singleton failure notifier.

    Returns:
        FailureNotifier instance
    """
    settings = get_settings()
    transport = EmailTransport(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_from or settings.smtp_user,
        use_tls=settings.smtp_use_tls,
        timeout=settings.smtp_timeout_seconds,
    )
    return FailureNotifier(
        transport=transport,
        recipient=settings.get_alert_recipient(),
        worker_name=settings.worker_name,
    )
