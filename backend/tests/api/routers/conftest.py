"""Shared pytest fixtures for router integration tests."""

import pytest
from contextlib import ExitStack
from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock, patch

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import UserRole


# Mock database before importing app to avoid connection issues
@pytest.fixture(autouse=True)
def mock_database_init():
    """Mock database initialization and the Redis cache for all router tests."""
    with ExitStack() as stack:
        stack.enter_context(patch("src.database.init_db", new_callable=AsyncMock))
        mock_engine = stack.enter_context(patch("src.database.engine"))
        mock_engine.dispose = AsyncMock()
        stack.enter_context(patch("src.main.init_db", new_callable=AsyncMock))
        mock_main_engine = stack.enter_context(patch("src.main.engine"))
        mock_main_engine.dispose = AsyncMock()
        mock_redis_factory = stack.enter_context(patch("redis.asyncio.from_url"))
        mock_redis_factory.return_value = AsyncMock()
        yield


@pytest.fixture
def mock_db_session():
    """Create a mock AsyncSession for router tests."""
    session = AsyncMock(spec=AsyncSession)

    mock_result = Mock()
    mock_result.scalar_one_or_none = Mock(return_value=None)
    mock_result.scalar_one = Mock(return_value=0)
    mock_result.scalars = Mock(return_value=Mock(all=Mock(return_value=[])))
    mock_result.fetchall = Mock(return_value=[])

    session.execute = AsyncMock(return_value=mock_result)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.add = Mock()
    session.close = AsyncMock()

    return session


@pytest.fixture
def mock_report_repo():
    """Create a mock ReportRepository."""
    repo = AsyncMock()
    repo.get_for_tenant = AsyncMock(return_value=None)
    repo.list_reports = AsyncMock(return_value=([], 0))
    repo.count_for_tenant = AsyncMock(return_value=0)
    repo.set_job_id = AsyncMock()
    repo.mark_failed = AsyncMock()
    repo.mark_generating = AsyncMock()
    repo.set_artifact_urls = AsyncMock()
    return repo


@pytest.fixture
def mock_snapshot_repo():
    """Create a mock SnapshotRepository."""
    repo = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.list_for_report = AsyncMock(return_value=[])
    repo.count_for_report = AsyncMock(return_value=0)
    repo.set_pdf_url = AsyncMock()
    return repo


@pytest.fixture
def mock_user_repo():
    """Create a mock UserRepository."""
    repo = AsyncMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.can_access_employee = AsyncMock(return_value=True)
    repo.search_visible = AsyncMock(return_value=[])
    repo.count_for_tenant = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def mock_activity_repo():
    """Create a mock ActivityRepository."""
    repo = AsyncMock()
    repo.completion_times = AsyncMock(return_value=[])
    repo.work_logs_started_between = AsyncMock(return_value=[])
    repo.tasks_for_user = AsyncMock(return_value=[])
    repo.tenant_closed_hours = AsyncMock(return_value=0)
    repo.tenant_task_counts = AsyncMock(return_value=(0, 0))
    return repo


@pytest.fixture
def mock_artifacts():
    """Create a mock ReportArtifactService."""
    service = AsyncMock()
    service.publish_team_pdf = AsyncMock(return_value="https://cdn.test/team.pdf")
    service.publish_employee_pdf = AsyncMock(return_value="https://cdn.test/employee.pdf")
    service.publish_employee_workbook = AsyncMock(return_value="https://cdn.test/employee.xlsx")
    return service


@pytest.fixture
def mock_redis():
    """Create a mock async Redis client with an empty cache."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock()
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_user(make_user):
    """The authenticated requester: a manager unless a test says otherwise."""
    return make_user(role=UserRole.MANAGER.value, email="manager@example.com")


@pytest.fixture
def router_mocks(
    mock_db_session,
    mock_report_repo,
    mock_snapshot_repo,
    mock_user_repo,
    mock_activity_repo,
    mock_artifacts,
    mock_redis,
):
    return {
        "db": mock_db_session,
        "report_repo": mock_report_repo,
        "snapshot_repo": mock_snapshot_repo,
        "user_repo": mock_user_repo,
        "activity_repo": mock_activity_repo,
        "artifacts": mock_artifacts,
        "redis": mock_redis,
    }


def _create_test_client(mocks, *, mock_user=None):
    """Build a TestClient with all infra dependencies overridden.

    When mock_user is provided, token verification is bypassed (fully
    authenticated client). When omitted, auth dependencies run normally
    so tests can assert 401 behaviour.
    """
    from src.main import app
    from src.database import get_db
    from src.dependencies import (
        get_activity_repository,
        get_current_user_required,
        get_redis,
        get_report_repository,
        get_snapshot_repository,
        get_user_repository,
    )
    from src.factories.service_factories import get_artifact_service

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield mocks["db"]

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_report_repository] = lambda: mocks["report_repo"]
    app.dependency_overrides[get_snapshot_repository] = lambda: mocks["snapshot_repo"]
    app.dependency_overrides[get_user_repository] = lambda: mocks["user_repo"]
    app.dependency_overrides[get_activity_repository] = lambda: mocks["activity_repo"]
    app.dependency_overrides[get_artifact_service] = lambda: mocks["artifacts"]
    app.dependency_overrides[get_redis] = lambda: mocks["redis"]

    if mock_user is not None:
        app.dependency_overrides[get_current_user_required] = lambda: mock_user

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def client(router_mocks, mock_user):
    """Create TestClient with all dependencies overridden including auth."""
    yield from _create_test_client(router_mocks, mock_user=mock_user)


@pytest.fixture
def unauthenticated_client(router_mocks):
    """Create TestClient WITHOUT auth override to test 401 responses."""
    yield from _create_test_client(router_mocks)
