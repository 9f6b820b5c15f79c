"""Shared pytest fixtures for task unit tests."""

import pytest
from contextlib import contextmanager
from unittest.mock import Mock


@pytest.fixture
def task_context():
    """Context manager that pushes a Celery request onto a task's stack."""

    @contextmanager
    def _ctx(task, task_id="test-task-id", retries=0):
        task.push_request(id=task_id, retries=retries)
        try:
            yield
        finally:
            task.pop_request()

    return _ctx


@pytest.fixture
def mock_notifier():
    """Patch the failure notifier used by the worker signals."""
    from unittest.mock import patch

    notifier = Mock()
    with patch("src.tasks.signals._get_notifier", return_value=notifier):
        yield notifier
