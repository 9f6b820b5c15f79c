"""Celery application configuration for report generation."""

from celery import Celery
from kombu import Queue

from src.config import get_settings

settings = get_settings()

celery_app = Celery(
    "workwise_reports",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=settings.celery_task_timeout,
    worker_prefetch_multiplier=1,  # One report job at a time per process
    task_acks_late=True,  # Re-queue on worker crash
    task_reject_on_worker_lost=True,
    result_expires=86400,  # Results expire after 24 hours
    task_default_queue=settings.report_queue_name,
    task_queues=[Queue(settings.report_queue_name)],
    task_routes={
        "src.tasks.report_tasks.*": {"queue": settings.report_queue_name},
    },
)

# Auto-discover tasks from src.tasks module
celery_app.autodiscover_tasks(["src.tasks"])
