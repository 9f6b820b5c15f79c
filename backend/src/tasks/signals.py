"""Celery signals for the worker event loop, failure alerts and process hooks."""

import asyncio
import functools
import os
import sys
import threading
import traceback

from celery.signals import (
    worker_process_init,
    worker_process_shutdown,
    worker_ready,
    worker_shutdown,
    task_failure,
)

from src.utils.logger import get_logger

log = get_logger(__name__)

# Module-level persistent event loop for the worker process
_worker_loop: asyncio.AbstractEventLoop | None = None
_worker_loop_thread: threading.Thread | None = None

# Broker connection watcher, one per worker node
_connection_watcher = None


def get_worker_loop() -> asyncio.AbstractEventLoop | None:
    """Get the persistent worker event loop, if available and not closed."""
    if _worker_loop is not None and not _worker_loop.is_closed():
        return _worker_loop
    return None


def _get_notifier():
    from src.factories.service_factories import get_failure_notifier

    return get_failure_notifier()


# ---------------------------------------------------------------------------
# 1. Worker event loop lifecycle
# ---------------------------------------------------------------------------


def _loop_exception_handler(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    """Alert on exceptions nobody awaited. The worker keeps running.

    Runs on the loop thread, so the SMTP send goes to the default executor.
    """
    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    log.error("unhandled_loop_exception", message=message, error=str(exc) if exc else None)
    loop.run_in_executor(
        None,
        functools.partial(
            _get_notifier().notify_worker_error,
            exc if exc is not None else message,
            job_data={"context": message},
        ),
    )


@worker_process_init.connect
def _on_worker_process_init(**kwargs) -> None:
    """Create a persistent event loop for the worker process."""
    global _worker_loop, _worker_loop_thread

    _worker_loop = asyncio.new_event_loop()
    _worker_loop.set_exception_handler(_loop_exception_handler)

    def _run_loop():
        asyncio.set_event_loop(_worker_loop)
        _worker_loop.run_forever()

    _worker_loop_thread = threading.Thread(target=_run_loop, daemon=True)
    _worker_loop_thread.start()

    install_excepthooks()
    log.info("worker_event_loop_created")


@worker_process_shutdown.connect
def _on_worker_process_shutdown(**kwargs) -> None:
    """Close the persistent event loop on worker shutdown."""
    global _worker_loop, _worker_loop_thread

    if _worker_loop is not None and not _worker_loop.is_closed():
        _worker_loop.call_soon_threadsafe(_worker_loop.stop)
        if _worker_loop_thread is not None:
            _worker_loop_thread.join(timeout=5)
        _worker_loop.close()
        log.info("worker_event_loop_closed")

    _worker_loop = None
    _worker_loop_thread = None


# ---------------------------------------------------------------------------
# 2. Uncaught exceptions
# ---------------------------------------------------------------------------


def _handle_uncaught(exc_type, exc, tb) -> None:
    """Alert, then terminate the process with status 1."""
    text = "".join(traceback.format_exception(exc_type, exc, tb))
    log.critical("uncaught_exception", error=str(exc), error_type=exc_type.__name__)
    try:
        _get_notifier().notify_worker_error(exc, traceback_text=text)
    finally:
        os._exit(1)


def _sys_excepthook(exc_type, exc, tb) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    _handle_uncaught(exc_type, exc, tb)


def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
    if args.exc_type is SystemExit:
        return
    _handle_uncaught(args.exc_type, args.exc_value, args.exc_traceback)


def install_excepthooks() -> None:
    """Route uncaught exceptions (main and background threads) to the alert path."""
    sys.excepthook = _sys_excepthook
    threading.excepthook = _thread_excepthook


# ---------------------------------------------------------------------------
# 3. Broker connection supervision
# ---------------------------------------------------------------------------


def start_connection_watcher():
    """Start the broker watcher thread if it is not already running."""
    global _connection_watcher
    from src.config import get_settings
    from src.services.connection_supervisor import ConnectionSupervisor, RedisConnectionWatcher

    if _connection_watcher is not None and _connection_watcher.is_alive():
        return _connection_watcher

    settings = get_settings()
    notifier = _get_notifier()
    supervisor = ConnectionSupervisor(
        name="Redis",
        on_lost=notifier.notify_connection_lost,
        on_restored=notifier.notify_connection_restored,
    )
    _connection_watcher = RedisConnectionWatcher(
        settings.celery_broker_url,
        supervisor,
        interval=settings.connection_watch_interval_seconds,
    )
    _connection_watcher.start()
    return _connection_watcher


def stop_connection_watcher() -> None:
    global _connection_watcher
    if _connection_watcher is not None:
        _connection_watcher.stop(timeout=5)
    _connection_watcher = None


@worker_ready.connect
def _on_worker_ready(**kwargs) -> None:
    install_excepthooks()
    start_connection_watcher()


@worker_shutdown.connect
def _on_worker_shutdown(**kwargs) -> None:
    stop_connection_watcher()
    log.info("connection_watcher_shutdown_on_worker_exit")


# ---------------------------------------------------------------------------
# 4. Job failure alerts
# ---------------------------------------------------------------------------


def _report_is_ready(report_id) -> bool:
    """Best-effort READY check used to spot jobs finished by another attempt."""
    try:
        from uuid import UUID

        from src.database import AsyncSessionLocal
        from src.models.enums import ReportStatus
        from src.repositories.report_repository import ReportRepository
        from src.tasks.utils import run_async

        async def _status():
            async with AsyncSessionLocal() as session:
                return await ReportRepository(session).get_status(UUID(str(report_id)))

        return run_async(_status()) == ReportStatus.READY.value
    except Exception:
        log.warning("report_status_lookup_failed", report_id=str(report_id), exc_info=True)
        return False


@task_failure.connect
def _on_task_failure(
    sender=None, task_id=None, exception=None, args=None, kwargs=None, einfo=None, **extra
) -> None:
    """Send one alert per finally failed job."""
    job_data = dict(kwargs or {})
    if args:
        job_data["args"] = list(args)
    job_data["task_id"] = task_id

    report_id = job_data.get("report_id") or (args[0] if args else None)
    report_ready = _report_is_ready(report_id) if report_id else False

    log.error(
        "report_job_failed",
        task_id=task_id,
        report_id=str(report_id) if report_id else None,
        error=str(exception),
    )
    _get_notifier().notify_worker_error(
        exception,
        job_data=job_data,
        traceback_text=str(einfo) if einfo is not None else None,
        report_ready=report_ready,
    )
