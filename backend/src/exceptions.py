"""Application exceptions.

API exceptions carry an error code and HTTP status and are rendered by the
handlers in ``src.middleware.error_handler``. Pipeline exceptions are raised
inside the report worker and never reach an HTTP response.
"""

from typing import Any, Optional


class BaseAPIException(Exception):
    """Base class for exceptions that map to an HTTP error response."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class ValidationError(BaseAPIException):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class MissingTokenError(BaseAPIException):
    status_code = 401
    error_code = "MISSING_TOKEN"

    def __init__(self, message: str = "Authorization token is required"):
        super().__init__(message)


class InvalidTokenError(BaseAPIException):
    status_code = 401
    error_code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid authorization token"):
        super().__init__(message)


class ForbiddenError(BaseAPIException):
    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ResourceNotFoundError(BaseAPIException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found",
            details={"resource": resource, "id": identifier},
        )


class ConflictError(BaseAPIException):
    status_code = 409
    error_code = "CONFLICT"


class DatabaseError(BaseAPIException):
    status_code = 500
    error_code = "DATABASE_ERROR"


class QueueUnavailableError(BaseAPIException):
    status_code = 503
    error_code = "QUEUE_UNAVAILABLE"

    def __init__(self, message: str = "Report queue is unavailable"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Report pipeline
# ---------------------------------------------------------------------------


class ReportPipelineError(Exception):
    """Base class for errors raised while generating a report."""

    #: Whether the error concerns a single user of the batch. User-scoped
    #: errors are recorded and the batch continues; anything else aborts it.
    user_scoped: bool = False


class ReportNotFoundError(ReportPipelineError):
    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id


class RendererUnavailableError(ReportPipelineError):
    """The headless browser could not be launched."""


class RenderError(ReportPipelineError):
    """A single document failed to render (page timeout, print failure)."""

    user_scoped = True


class StorageUploadError(ReportPipelineError):
    """An artifact could not be uploaded to object storage."""

    user_scoped = True
