"""Shared pytest fixtures."""

# Clear settings cache before any imports to prevent stale values with coverage
from src.config import get_settings

get_settings.cache_clear()

import pytest
import uuid
from unittest.mock import AsyncMock, Mock
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from src.models.enums import ReportScope, ReportStatus, ReportType, UserRole


@pytest.fixture
def mock_async_session():
    """Create a mock AsyncSession."""
    session = AsyncMock()

    mock_result = Mock()
    mock_result.scalar_one_or_none = Mock(return_value=None)
    mock_result.scalar_one = Mock(return_value=0)
    mock_result.scalars = Mock(return_value=Mock(all=Mock(return_value=[])))
    mock_result.fetchall = Mock(return_value=[])
    mock_result.all = Mock(return_value=[])

    session.execute = AsyncMock(return_value=mock_result)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = Mock()

    @asynccontextmanager
    async def begin_nested():
        yield

    session.begin_nested = begin_nested

    return session


@pytest.fixture
def sample_uuid():
    """Generate a sample UUID."""
    return uuid.uuid4()


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def make_user(tenant_id):
    """Factory fixture for mock User objects."""

    def _make(role=UserRole.OPERATOR.value, email=None, first_name="Test", last_name="User"):
        user = Mock()
        user.id = uuid.uuid4()
        user.tenant_id = tenant_id
        user.role = role
        user.email = email or f"{user.id.hex[:8]}@example.com"
        user.first_name = first_name
        user.last_name = last_name
        user.full_name = " ".join(p for p in (first_name, last_name) if p)
        user.display_name = user.full_name or user.email
        return user

    return _make


@pytest.fixture
def make_report(tenant_id):
    """Factory fixture for mock Report objects."""

    def _make(
        scope=ReportScope.TEAM.value,
        status=ReportStatus.GENERATING.value,
        generated_by=None,
        employee_ids=None,
        report_type=ReportType.WEEKLY.value,
    ):
        report = Mock()
        report.id = uuid.uuid4()
        report.tenant_id = tenant_id
        report.type = report_type
        report.title = f"{report_type} Report"
        report.scope = scope
        report.status = status
        report.generated_by = generated_by or uuid.uuid4()
        report.employee_ids = employee_ids
        report.from_date = datetime(2026, 3, 2, tzinfo=timezone.utc)
        report.to_date = datetime(2026, 3, 6, 23, 59, 59, tzinfo=timezone.utc)
        report.failure_reason = None
        report.failed_users = None
        report.job_id = None
        report.attempts = 0
        report.pdf_url = None
        report.excel_url = None
        report.created_at = datetime(2026, 3, 7, tzinfo=timezone.utc)
        report.completed_at = None
        return report

    return _make


@pytest.fixture
def make_snapshot():
    """Factory fixture for mock EmployeeReportSnapshot objects."""

    def _make(report_id=None, user_id=None, **overrides):
        snapshot = Mock()
        snapshot.id = uuid.uuid4()
        snapshot.report_id = report_id or uuid.uuid4()
        snapshot.user_id = user_id or uuid.uuid4()
        values = {
            "total_tasks": 10,
            "completed_tasks": 8,
            "todo_tasks": 1,
            "working_tasks": 1,
            "done_tasks": 8,
            "completion_rate": 80,
            "total_hours": 12,
            "avg_daily_hours": 2.4,
            "productivity_score": 92.0,
            "pdf_url": None,
        }
        values.update(overrides)
        for key, value in values.items():
            setattr(snapshot, key, value)
        return snapshot

    return _make
