"""Celery tasks for background processing."""

from src.tasks import report_tasks, signals

__all__ = [
    "report_tasks",
    "signals",
]
