"""Tests for ReportArtifactService."""

import pytest
from io import BytesIO

from openpyxl import load_workbook

from src.clients.storage_client import XLSX_CONTENT_TYPE
from src.services.report_artifacts import ReportArtifactService
from src.services.report_metrics import TeamMetrics, TrendPoint


@pytest.fixture
def artifacts(mock_storage_client, mock_pdf_renderer):
    return ReportArtifactService(mock_storage_client, mock_pdf_renderer)


@pytest.fixture
def trend():
    return [TrendPoint("2026-03-02", 1), TrendPoint("2026-03-03", 0)]


class TestPdfArtifacts:
    @pytest.mark.asyncio
    async def test_employee_pdf_rendered_and_uploaded(
        self, artifacts, mock_storage_client, mock_pdf_renderer, make_report, make_user,
        make_snapshot, trend,
    ):
        report = make_report()
        user = make_user(first_name="Ada", last_name="Lovelace")

        url = await artifacts.publish_employee_pdf(report, user, make_snapshot(report.id), trend)

        expected_path = f"{report.tenant_id}/reports/{report.id}-{user.id}.pdf"
        assert url == f"https://cdn.test/{expected_path}"
        html = mock_pdf_renderer.render.call_args.args[0]
        assert "Ada Lovelace" in html
        assert mock_pdf_renderer.render.call_args.kwargs["name"] == f"{report.id}-{user.id}"
        mock_storage_client.upload.assert_called_once_with(expected_path, b"%PDF-1.7 test")

    @pytest.mark.asyncio
    async def test_team_pdf_path(
        self, artifacts, mock_storage_client, make_report, make_user, make_snapshot, trend
    ):
        report = make_report()
        members = [(make_snapshot(report.id), make_user())]

        url = await artifacts.publish_team_pdf(report, TeamMetrics(1, 10, 8, 12, 92), members, trend)

        assert url.endswith(f"{report.id}-team.pdf")

    @pytest.mark.asyncio
    async def test_viewer_team_pdf_uses_own_path(
        self, artifacts, mock_storage_client, make_report, make_user, make_snapshot, trend
    ):
        report = make_report()
        viewer = make_user()
        members = [(make_snapshot(report.id), make_user())]

        url = await artifacts.publish_team_pdf(
            report, TeamMetrics(1, 10, 8, 12, 92), members, trend, viewer_id=viewer.id
        )

        assert url.endswith(f"{report.id}-team-{viewer.id}.pdf")


class TestWorkbookArtifacts:
    @pytest.mark.asyncio
    async def test_report_workbook_uploaded_as_xlsx(
        self, artifacts, mock_storage_client, make_report, make_user, make_snapshot
    ):
        report = make_report()
        members = [(make_snapshot(report.id), make_user(first_name="Ada", last_name="Lovelace"))]

        url = await artifacts.publish_workbook(report, members, team=TeamMetrics(1, 10, 8, 12, 92))

        assert url.endswith(f"{report.id}.xlsx")
        path, data = mock_storage_client.upload.call_args.args
        assert mock_storage_client.upload.call_args.kwargs["content_type"] == XLSX_CONTENT_TYPE
        workbook = load_workbook(BytesIO(data))
        assert workbook.sheetnames == ["Ada Lovelace", "Team"]

    @pytest.mark.asyncio
    async def test_employee_workbook_has_one_sheet(
        self, artifacts, mock_storage_client, make_report, make_user, make_snapshot
    ):
        report = make_report()
        user = make_user(first_name="Grace", last_name="Hopper")

        url = await artifacts.publish_employee_workbook(report, user, make_snapshot(report.id))

        assert url.endswith(f"{report.id}-{user.id}.xlsx")
        data = mock_storage_client.upload.call_args.args[1]
        assert load_workbook(BytesIO(data)).sheetnames == ["Grace Hopper"]
