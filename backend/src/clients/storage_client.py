"""Supabase object storage client for report artifacts."""

import asyncio
import logging
from typing import Optional
from uuid import UUID

from supabase import Client, create_client
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.exceptions import StorageUploadError
from src.utils.logger import get_logger

log = get_logger(__name__)
_tenacity_logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def employee_pdf_path(tenant_id: UUID, report_id: UUID, user_id: UUID) -> str:
    """Object path of a single employee's PDF."""
    return f"{tenant_id}/reports/{report_id}-{user_id}.pdf"


def team_pdf_path(tenant_id: UUID, report_id: UUID, viewer_id: Optional[UUID] = None) -> str:
    """Object path of the team PDF; a viewer id scopes it to that viewer's part of the team."""
    if viewer_id is not None:
        return f"{tenant_id}/reports/{report_id}-team-{viewer_id}.pdf"
    return f"{tenant_id}/reports/{report_id}-team.pdf"


def workbook_path(tenant_id: UUID, report_id: UUID) -> str:
    return f"{tenant_id}/reports/{report_id}.xlsx"


def employee_workbook_path(tenant_id: UUID, report_id: UUID, user_id: UUID) -> str:
    return f"{tenant_id}/reports/{report_id}-{user_id}.xlsx"


class StorageClient:
    """
    Thin async wrapper around the synchronous supabase storage API.

    Uploads always overwrite an existing object at the same path, so a
    retried job replaces its earlier artifacts instead of failing.
    """

    def __init__(self, url: str, key: str, bucket: str = "reports", client: Optional[Client] = None):
        self.bucket = bucket
        self._url = url
        self._key = key
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = create_client(self._url, self._key)
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((ConnectionError, TimeoutError)),
        before_sleep=before_sleep_log(_tenacity_logger, logging.WARNING),
        reraise=True,
    )
    def _upload_sync(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        return bucket.get_public_url(path)

    async def upload(self, path: str, data: bytes, content_type: str = PDF_CONTENT_TYPE) -> str:
        """
        Upload bytes to ``path`` and return the object's public URL.

        Raises:
            StorageUploadError: If the upload fails after retries
        """
        loop = asyncio.get_running_loop()
        try:
            url = await loop.run_in_executor(None, self._upload_sync, path, data, content_type)
        except Exception as e:
            log.warning(
                "storage upload failed",
                path=path,
                bucket=self.bucket,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StorageUploadError(f"Upload failed for {path}: {e}") from e

        log.debug("storage upload complete", path=path, size=len(data))
        return url
