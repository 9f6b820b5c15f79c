"""Render-and-upload steps shared by the worker and the download endpoints."""

from typing import Optional, Sequence
from uuid import UUID

from src.clients.storage_client import (
    XLSX_CONTENT_TYPE,
    StorageClient,
    employee_pdf_path,
    employee_workbook_path,
    team_pdf_path,
    workbook_path,
)
from src.models.report import Report
from src.models.user import User
from src.services.document_renderer import (
    PdfRenderer,
    build_workbook,
    render_employee_html,
    render_team_html,
)
from src.services.report_metrics import TeamMetrics, TrendPoint


class ReportArtifactService:
    """Produces report documents and returns their public URLs."""

    def __init__(self, storage_client: StorageClient, pdf_renderer: PdfRenderer):
        self.storage_client = storage_client
        self.pdf_renderer = pdf_renderer

    async def publish_employee_pdf(
        self, report: Report, user: User, snapshot, trend: Sequence[TrendPoint]
    ) -> str:
        html = render_employee_html(report, user, snapshot, trend)
        pdf = await self.pdf_renderer.render(html, name=f"{report.id}-{user.id}")
        return await self.storage_client.upload(
            employee_pdf_path(report.tenant_id, report.id, user.id), pdf
        )

    async def publish_team_pdf(
        self,
        report: Report,
        team: TeamMetrics,
        members: Sequence[tuple],
        trend: Sequence[TrendPoint],
        viewer_id: Optional[UUID] = None,
    ) -> str:
        """Team PDF of ``members``. With ``viewer_id`` it goes to that viewer's own path."""
        html = render_team_html(report, team, members, trend)
        pdf = await self.pdf_renderer.render(html, name=f"{report.id}-team")
        return await self.storage_client.upload(
            team_pdf_path(report.tenant_id, report.id, viewer_id), pdf
        )

    async def publish_workbook(
        self,
        report: Report,
        members: Sequence[tuple],
        team: Optional[TeamMetrics] = None,
    ) -> str:
        """Report-level workbook: one sheet per member, plus Team when given."""
        data = build_workbook(members, team=team)
        return await self.storage_client.upload(
            workbook_path(report.tenant_id, report.id), data, content_type=XLSX_CONTENT_TYPE
        )

    async def publish_employee_workbook(self, report: Report, user: User, snapshot) -> str:
        data = build_workbook([(snapshot, user)])
        return await self.storage_client.upload(
            employee_workbook_path(report.tenant_id, report.id, user.id),
            data,
            content_type=XLSX_CONTENT_TYPE,
        )
