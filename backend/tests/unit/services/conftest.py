"""Shared pytest fixtures for service tests."""

import pytest
from unittest.mock import AsyncMock, Mock
from contextlib import asynccontextmanager


@pytest.fixture
def mock_activity_repository():
    """Create a mock ActivityRepository with no activity."""
    repo = AsyncMock()
    repo.tasks_for_user = AsyncMock(return_value=[])
    repo.closed_work_logs = AsyncMock(return_value=[])
    repo.completion_times = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_snapshot_repository():
    """Create a mock SnapshotRepository."""
    repo = AsyncMock()
    repo.upsert = AsyncMock()
    repo.get = AsyncMock(return_value=None)
    repo.set_pdf_url = AsyncMock()
    repo.list_for_report = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_artifact_service():
    """Create a mock ReportArtifactService returning predictable URLs."""
    service = AsyncMock()
    service.publish_employee_pdf = AsyncMock(
        side_effect=lambda report, user, snapshot, trend: f"https://cdn.test/{user.id}.pdf"
    )
    service.publish_team_pdf = AsyncMock(return_value="https://cdn.test/team.pdf")
    service.publish_workbook = AsyncMock(return_value="https://cdn.test/report.xlsx")
    service.publish_employee_workbook = AsyncMock(return_value="https://cdn.test/user.xlsx")
    return service


@pytest.fixture
def mock_storage_client():
    """Create a mock StorageClient that echoes the upload path."""
    client = AsyncMock()
    client.upload = AsyncMock(
        side_effect=lambda path, data, content_type="application/pdf": f"https://cdn.test/{path}"
    )
    return client


@pytest.fixture
def mock_pdf_renderer():
    renderer = AsyncMock()
    renderer.render = AsyncMock(return_value=b"%PDF-1.7 test")
    return renderer


@pytest.fixture
def session_factory(mock_async_session):
    """Callable yielding the shared mock session as an async context manager."""

    @asynccontextmanager
    async def factory():
        yield mock_async_session

    return factory


@pytest.fixture
def mock_transport():
    """Create a configured mock EmailTransport."""
    transport = Mock()
    transport.configured = True
    transport.send = Mock()
    return transport
