"""
Admin alert emails for the report worker.

Every send is best-effort: a missing recipient or an SMTP failure is logged
and swallowed so alerting can never take the worker down with it.
"""

import json
import smtplib
import traceback as tb
from email.message import EmailMessage
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.utils.logger import get_logger

log = get_logger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

# Error text the queue produces when a job's lock expired while it was running.
MISSING_LOCK_MARKER = "Missing lock"


class EmailTransport:
    """SMTP sender with STARTTLS and optional login."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: Optional[str] = None,
        use_tls: bool = True,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.use_tls = use_tls
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send(self, to: str, subject: str, html: str) -> None:
        """Send one HTML email. Raises on SMTP errors."""
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)


def is_ownership_loss(message: str, report_ready: bool = False) -> bool:
    """Whether a failure looks like a lost job lock rather than a real error."""
    return MISSING_LOCK_MARKER in message or report_ready


class FailureNotifier:
    """Builds and sends the worker's alert emails."""

    def __init__(
        self,
        transport: EmailTransport,
        recipient: Optional[str],
        worker_name: str = "report-generation",
    ):
        self.transport = transport
        self.recipient = recipient
        self.worker_name = worker_name

    def send_email(self, subject: str, html: str) -> bool:
        """Send to the admin recipient. Returns whether a message went out."""
        if not self.recipient:
            log.warning("alert skipped, no recipient configured", subject=subject)
            return False
        if not self.transport.configured:
            log.warning("alert skipped, smtp not configured", subject=subject)
            return False
        try:
            self.transport.send(self.recipient, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            log.error("alert email failed", subject=subject, error=str(e))
            return False
        log.info("alert email sent", subject=subject, to=self.recipient)
        return True

    def notify_worker_error(
        self,
        error: Any,
        job_data: Optional[dict] = None,
        traceback_text: Optional[str] = None,
        worker_name: Optional[str] = None,
        report_ready: bool = False,
    ) -> bool:
        """
        Alert that a worker (or one of its jobs) failed.

        Args:
            error: Exception or message
            job_data: Job payload, included as JSON
            traceback_text: Formatted traceback; derived from ``error`` if omitted
            worker_name: Overrides the configured worker name in the subject
            report_ready: The job's report was already READY when the failure
                was observed, i.e. another attempt finished it
        """
        name = worker_name or self.worker_name
        message = str(error)
        if traceback_text is None and isinstance(error, BaseException) and error.__traceback__:
            traceback_text = "".join(tb.format_exception(type(error), error, error.__traceback__))

        ownership_lost = is_ownership_loss(message, report_ready)
        if ownership_lost:
            subject = f"⚠️ WARNING: Worker [{name}] Lost Job Lock (job may have completed)"
        else:
            subject = f"🚨 CRITICAL: Worker [{name}] Failed/Error"

        html = _env.get_template("worker_error.html").render(
            worker_name=name,
            message=message,
            traceback=traceback_text,
            job_data=json.dumps(job_data, indent=2, default=str) if job_data else None,
            ownership_lost=ownership_lost,
        )
        return self.send_email(subject, html)

    def notify_connection_lost(self, error: Any, connection_name: str = "Redis Connection") -> bool:
        return self.notify_worker_error(
            error,
            job_data={"context": "Global Redis Connection Failed. Will notify when back up."},
            worker_name=connection_name,
        )

    def notify_connection_restored(self, connection_name: str = "Redis") -> bool:
        html = _env.get_template("connection_restored.html").render(connection_name=connection_name)
        return self.send_email(f"✅ RECOVERED: {connection_name} Connection Restored", html)
