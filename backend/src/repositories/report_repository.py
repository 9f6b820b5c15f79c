"""Repository for Report model operations."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import ReportStatus
from src.models.report import Report
from src.utils.logger import get_logger

log = get_logger(__name__)


class ReportRepository:
    """Repository for Report CRUD operations and status transitions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        tenant_id: UUID,
        report_type: str,
        scope: str,
        generated_by: UUID,
        from_date: datetime,
        to_date: datetime,
        employee_ids: Optional[list[str]] = None,
    ) -> Report:
        """Create a new report record in GENERATING state."""
        report = Report(
            tenant_id=tenant_id,
            type=report_type,
            scope=scope,
            generated_by=generated_by,
            from_date=from_date,
            to_date=to_date,
            employee_ids=employee_ids,
            status=ReportStatus.GENERATING.value,
        )
        self.session.add(report)
        await self.session.flush()
        await self.session.refresh(report)
        log.debug("report_created", report_id=str(report.id), tenant_id=str(tenant_id))
        return report

    async def get_by_id(self, report_id: UUID) -> Optional[Report]:
        """Get report by ID without tenant scoping (worker use only)."""
        result = await self.session.execute(select(Report).where(Report.id == report_id))
        return result.scalar_one_or_none()

    async def get_for_tenant(self, report_id: UUID, tenant_id: UUID) -> Optional[Report]:
        """Get report by ID if it belongs to the tenant."""
        result = await self.session.execute(
            select(Report).where(Report.id == report_id, Report.tenant_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_status(self, report_id: UUID) -> Optional[str]:
        result = await self.session.execute(select(Report.status).where(Report.id == report_id))
        return result.scalar_one_or_none()

    async def list_reports(
        self,
        tenant_id: UUID,
        generated_by: Optional[UUID] = None,
        report_type: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Report], int]:
        """List tenant reports with optional filters, newest first."""
        conditions = [Report.tenant_id == tenant_id]
        if generated_by is not None:
            conditions.append(Report.generated_by == generated_by)
        if report_type is not None:
            conditions.append(Report.type == report_type)
        if created_from is not None:
            conditions.append(Report.created_at >= created_from)
        if created_to is not None:
            conditions.append(Report.created_at <= created_to)

        count_result = await self.session.execute(
            select(func.count()).select_from(Report).where(*conditions)
        )
        total = count_result.scalar_one()

        result = await self.session.execute(
            select(Report)
            .where(*conditions)
            .order_by(Report.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def count_for_tenant(self, tenant_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Report).where(Report.tenant_id == tenant_id)
        )
        return result.scalar_one()

    async def set_job_id(self, report_id: UUID, job_id: str) -> None:
        await self.session.execute(
            update(Report).where(Report.id == report_id).values(job_id=job_id)
        )

    async def mark_generating(
        self,
        report_id: UUID,
        job_id: Optional[str] = None,
        count_attempt: bool = True,
    ) -> None:
        """Start (or restart) an attempt: clear failure data, optionally bump attempts."""
        values: dict = {
            "status": ReportStatus.GENERATING.value,
            "failure_reason": None,
            "failed_users": None,
            "completed_at": None,
            "updated_at": func.now(),
        }
        if count_attempt:
            values["attempts"] = Report.attempts + 1
        if job_id is not None:
            values["job_id"] = job_id
        await self.session.execute(update(Report).where(Report.id == report_id).values(**values))

    async def mark_ready(self, report_id: UUID, failed_users: Optional[list[dict]] = None) -> None:
        await self.session.execute(
            update(Report)
            .where(Report.id == report_id)
            .values(
                status=ReportStatus.READY.value,
                failure_reason=None,
                failed_users=failed_users or None,
                completed_at=func.now(),
                updated_at=func.now(),
            )
        )
        log.info("report_marked_ready", report_id=str(report_id))

    async def mark_failed(
        self,
        report_id: UUID,
        reason: str,
        failed_users: Optional[list[dict]] = None,
    ) -> None:
        """Move to FAILED unless another attempt already finished the report."""
        values: dict = {
            "status": ReportStatus.FAILED.value,
            "failure_reason": reason,
            "completed_at": func.now(),
            "updated_at": func.now(),
        }
        if failed_users is not None:
            values["failed_users"] = failed_users
        await self.session.execute(
            update(Report)
            .where(Report.id == report_id)
            .where(Report.status != ReportStatus.READY.value)
            .values(**values)
        )
        log.info("report_marked_failed", report_id=str(report_id), reason=reason)

    async def set_artifact_urls(
        self,
        report_id: UUID,
        pdf_url: Optional[str] = None,
        excel_url: Optional[str] = None,
    ) -> None:
        """Persist uploaded artifact URLs. Unset arguments leave columns untouched."""
        values: dict = {}
        if pdf_url is not None:
            values["pdf_url"] = pdf_url
        if excel_url is not None:
            values["excel_url"] = excel_url
        if not values:
            return
        await self.session.execute(update(Report).where(Report.id == report_id).values(**values))
