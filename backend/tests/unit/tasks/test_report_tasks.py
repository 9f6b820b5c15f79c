"""Unit tests for the report generation task."""

import uuid
import pytest
from unittest.mock import AsyncMock, Mock, patch

from celery.exceptions import Retry
from sqlalchemy.exc import OperationalError

from src.exceptions import RendererUnavailableError, ReportNotFoundError
from src.services.report_pipeline import BatchResult


@pytest.fixture
def report_id():
    return str(uuid.uuid4())


@pytest.fixture
def mock_service(report_id):
    service = AsyncMock()
    service.generate = AsyncMock(
        return_value=BatchResult(report_id=uuid.UUID(report_id), status="READY")
    )
    with patch("src.tasks.report_tasks.get_report_generation_service", return_value=service):
        yield service


class TestIsTransient:
    def test_connection_loss_is_transient(self):
        from src.tasks.report_tasks import is_transient

        assert is_transient(OperationalError("SELECT 1", {}, Exception("closed")))
        assert is_transient(ConnectionError("reset by peer"))

    def test_pipeline_errors_are_not_transient(self):
        from src.tasks.report_tasks import is_transient

        assert not is_transient(RendererUnavailableError("no browser"))
        assert not is_transient(ReportNotFoundError("r1"))
        assert not is_transient(ValueError("bad"))


class TestGenerateReportTask:
    """Tests for generate_report_task."""

    def test_runs_pipeline_with_job_id(self, task_context, mock_service, report_id):
        from src.tasks.report_tasks import generate_report_task

        with task_context(generate_report_task, task_id="celery-123"):
            result = generate_report_task._orig_run(report_id=report_id, scope="TEAM")

        mock_service.generate.assert_called_once_with(uuid.UUID(report_id), job_id="celery-123")
        assert result["status"] == "READY"
        assert result["report_id"] == report_id

    def test_non_transient_error_marks_failed_and_reraises(
        self, task_context, mock_service, report_id
    ):
        """A browser launch failure fails the job and moves the report to FAILED."""
        from src.tasks.report_tasks import generate_report_task

        mock_service.generate.side_effect = RendererUnavailableError(
            "Failed to launch browser: chromium missing"
        )

        with patch("src.tasks.report_tasks._mark_failed") as mock_mark_failed:
            with patch.object(generate_report_task, "retry") as mock_retry:
                with task_context(generate_report_task):
                    with pytest.raises(RendererUnavailableError):
                        generate_report_task._orig_run(report_id=report_id)

        mock_retry.assert_not_called()
        mock_mark_failed.assert_called_once_with(
            report_id,
            "RendererUnavailableError: Failed to launch browser: chromium missing",
        )

    def test_transient_error_retries_with_backoff(self, task_context, mock_service, report_id):
        from src.tasks.report_tasks import generate_report_task, settings

        error = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        mock_service.generate.side_effect = error

        with patch("src.tasks.report_tasks._mark_failed") as mock_mark_failed:
            with patch.object(
                generate_report_task, "retry", side_effect=Retry("retrying")
            ) as mock_retry:
                with task_context(generate_report_task, retries=1):
                    with pytest.raises(Retry):
                        generate_report_task._orig_run(report_id=report_id)

        mock_retry.assert_called_once_with(
            exc=error, countdown=settings.report_retry_backoff_seconds * 2
        )
        mock_mark_failed.assert_not_called()

    def test_transient_error_on_last_attempt_marks_failed(
        self, task_context, mock_service, report_id
    ):
        from src.tasks.report_tasks import generate_report_task

        mock_service.generate.side_effect = ConnectionError("reset by peer")

        with patch("src.tasks.report_tasks._mark_failed") as mock_mark_failed:
            with patch.object(generate_report_task, "retry") as mock_retry:
                with task_context(
                    generate_report_task, retries=generate_report_task.max_retries
                ):
                    with pytest.raises(ConnectionError):
                        generate_report_task._orig_run(report_id=report_id)

        mock_retry.assert_not_called()
        mock_mark_failed.assert_called_once()

    def test_task_configuration(self):
        from src.tasks.report_tasks import generate_report_task, settings

        assert generate_report_task.name == "src.tasks.report_tasks.generate_report_task"
        assert generate_report_task.max_retries == settings.report_max_retries


class TestMarkFailed:
    def test_mark_failed_swallows_errors(self, report_id):
        from src.tasks.report_tasks import _mark_failed

        with patch(
            "src.tasks.report_tasks.mark_report_failed",
            new=AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("down"))),
        ):
            _mark_failed(report_id, "boom")

    def test_mark_failed_runs_update(self, report_id):
        from src.tasks.report_tasks import _mark_failed

        with patch("src.tasks.report_tasks.mark_report_failed", new=AsyncMock()) as mock_mark:
            _mark_failed(report_id, "RendererUnavailableError: x")

        args = mock_mark.call_args.args
        assert args[1] == uuid.UUID(report_id)
        assert args[2] == "RendererUnavailableError: x"


class TestEnqueueReport:
    def test_enqueue_uses_report_queue(self):
        from src.tasks.report_tasks import enqueue_report, generate_report_task, settings

        report_id = uuid.uuid4()
        async_result = Mock(id="job-42")

        with patch.object(generate_report_task, "apply_async", return_value=async_result) as mock_apply:
            job_id = enqueue_report(report_id, "EMPLOYEE", ["u1"])

        assert job_id == "job-42"
        mock_apply.assert_called_once_with(
            kwargs={"report_id": str(report_id), "scope": "EMPLOYEE", "employee_ids": ["u1"]},
            queue=settings.report_queue_name,
        )
