"""Unit tests for HTML/PDF rendering and workbook building."""

import asyncio
import os
import pytest
from io import BytesIO
from unittest.mock import AsyncMock, Mock, patch

from openpyxl import load_workbook

from src.exceptions import RenderError, RendererUnavailableError
from src.services.document_renderer import (
    PdfRenderer,
    _sheet_title,
    build_workbook,
    render_employee_html,
    render_team_html,
)
from src.services.report_metrics import TeamMetrics, TrendPoint


def _write_pdf(path, **kwargs):
    with open(path, "wb") as f:
        f.write(b"%PDF-1.7 rendered")


@pytest.fixture
def mock_page():
    page = AsyncMock()
    page.set_content = AsyncMock()
    page.pdf = AsyncMock(side_effect=_write_pdf)
    return page


@pytest.fixture
def mock_context(mock_page):
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock()
    return context


@pytest.fixture
def mock_playwright(mock_context):
    """Patch async_playwright so start() yields a mock with a Chromium launcher."""
    playwright = AsyncMock()
    playwright.chromium.launch_persistent_context = AsyncMock(return_value=mock_context)
    playwright.stop = AsyncMock()

    starter = Mock()
    starter.start = AsyncMock(return_value=playwright)

    with patch("src.services.document_renderer.async_playwright", return_value=starter):
        yield playwright


class TestPdfRenderer:
    """Tests for PdfRenderer.render."""

    @pytest.mark.asyncio
    async def test_render_returns_pdf_bytes(self, mock_playwright, mock_page):
        renderer = PdfRenderer(timeout_ms=5000, browser_args=["--no-sandbox"])

        data = await renderer.render("<h1>Report</h1>", name="r1-u1")

        assert data == b"%PDF-1.7 rendered"
        mock_page.set_content.assert_called_once_with(
            "<h1>Report</h1>", wait_until="domcontentloaded", timeout=5000
        )
        pdf_kwargs = mock_page.pdf.call_args.kwargs
        assert pdf_kwargs["format"] == "A4"
        assert pdf_kwargs["print_background"] is True
        assert pdf_kwargs["path"].endswith("r1-u1.pdf")

    @pytest.mark.asyncio
    async def test_launches_headless_with_private_profile(self, mock_playwright):
        renderer = PdfRenderer(browser_args=["--no-sandbox", "--disable-setuid-sandbox"])

        await renderer.render("<p>x</p>")

        kwargs = mock_playwright.chromium.launch_persistent_context.call_args.kwargs
        assert kwargs["headless"] is True
        assert kwargs["args"] == ["--no-sandbox", "--disable-setuid-sandbox"]
        assert os.path.basename(kwargs["user_data_dir"]) == "profile"

    @pytest.mark.asyncio
    async def test_temp_directory_removed_after_success(self, mock_playwright, mock_context):
        await PdfRenderer().render("<p>x</p>")

        user_data_dir = mock_playwright.chromium.launch_persistent_context.call_args.kwargs[
            "user_data_dir"
        ]
        assert not os.path.exists(os.path.dirname(user_data_dir))
        mock_context.close.assert_called_once()
        mock_playwright.stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_launch_failure_raises_renderer_unavailable(self, mock_playwright):
        mock_playwright.chromium.launch_persistent_context.side_effect = Exception(
            "Executable doesn't exist"
        )

        with pytest.raises(RendererUnavailableError, match="Executable doesn't exist"):
            await PdfRenderer().render("<p>x</p>")

        user_data_dir = mock_playwright.chromium.launch_persistent_context.call_args.kwargs[
            "user_data_dir"
        ]
        assert not os.path.exists(os.path.dirname(user_data_dir))
        mock_playwright.stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_playwright_start_failure_raises_renderer_unavailable(self):
        starter = Mock()
        starter.start = AsyncMock(side_effect=Exception("driver crashed"))

        with patch("src.services.document_renderer.async_playwright", return_value=starter):
            with pytest.raises(RendererUnavailableError):
                await PdfRenderer().render("<p>x</p>")

    @pytest.mark.asyncio
    async def test_page_timeout_raises_render_error(
        self, mock_playwright, mock_page, mock_context
    ):
        mock_page.set_content.side_effect = TimeoutError("Timeout 120000ms exceeded")

        with pytest.raises(RenderError, match="Timeout"):
            await PdfRenderer().render("<p>x</p>", name="slow")

        mock_context.close.assert_called_once()
        mock_playwright.stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_concurrent_renders_are_bounded(self, mock_playwright, mock_page):
        active = 0
        peak = 0

        async def slow_set_content(*args, **kwargs):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        mock_page.set_content.side_effect = slow_set_content
        renderer = PdfRenderer(max_concurrent=1)

        await asyncio.gather(*(renderer.render("<p>x</p>", name=f"r{i}") for i in range(3)))

        assert peak == 1


class TestHtmlTemplates:
    """Tests for the report HTML templates."""

    def test_employee_html_contains_figures_and_trend(self, make_report, make_user, make_snapshot):
        report = make_report()
        user = make_user(first_name="Ada", last_name="Lovelace")
        snapshot = make_snapshot(report.id, user.id)
        trend = [TrendPoint("2026-03-02", 0), TrendPoint("2026-03-03", 2)]

        html = render_employee_html(report, user, snapshot, trend)

        assert "Ada Lovelace" in html
        assert "2026-03-02 to 2026-03-06" in html
        assert "Productivity Score" in html
        assert "2026-03-03" in html

    def test_team_html_lists_members(self, make_report, make_user, make_snapshot):
        report = make_report()
        members = [
            (make_snapshot(report.id), make_user(first_name="Grace", last_name="Hopper")),
            (make_snapshot(report.id), make_user(first_name="Alan", last_name="Turing")),
        ]
        team = TeamMetrics(members=2, total_tasks=20, completed_tasks=16, total_hours=24, avg_productivity=92)

        html = render_team_html(report, team, members, [])

        assert "Grace Hopper" in html
        assert "Alan Turing" in html
        assert "Avg Productivity" in html

    def test_names_are_escaped(self, make_report, make_user, make_snapshot):
        report = make_report()
        user = make_user(first_name="<script>", last_name="x")

        html = render_employee_html(report, user, make_snapshot(), [])

        assert "<script> x" not in html
        assert "&lt;script&gt;" in html


class TestBuildWorkbook:
    """Tests for the openpyxl workbook builder."""

    def test_one_sheet_per_member_plus_team(self, make_user, make_snapshot):
        members = [
            (make_snapshot(), make_user(first_name="Ada", last_name="Lovelace")),
            (make_snapshot(total_tasks=3), make_user(first_name="Alan", last_name="Turing")),
        ]
        team = TeamMetrics(members=2, total_tasks=13, completed_tasks=16, total_hours=24, avg_productivity=92)

        wb = load_workbook(BytesIO(build_workbook(members, team=team)))

        assert wb.sheetnames == ["Ada Lovelace", "Alan Turing", "Team"]
        ada = wb["Ada Lovelace"]
        assert [c.value for c in ada[1]] == ["Metric", "Value"]
        assert [row[0] for row in ada.iter_rows(min_row=2, values_only=True)] == [
            "Total Tasks",
            "Completed Tasks",
            "Completion Rate",
            "Total Hours",
            "Avg Daily Hours",
            "Productivity Score",
        ]
        assert wb["Alan Turing"]["B2"].value == 3
        assert wb["Team"]["B2"].value == 2

    def test_no_members_still_valid(self):
        wb = load_workbook(BytesIO(build_workbook([])))

        assert wb.sheetnames == ["Report"]

    def test_sheet_titles_sanitised_and_unique(self):
        taken = set()

        assert _sheet_title("a/b:c", taken) == "a_b_c"
        assert _sheet_title("A/B:C", taken) == "A_B_C (2)"
        assert len(_sheet_title("x" * 40, taken)) == 31

    def test_member_named_team_gets_suffix(self, make_user, make_snapshot):
        team = TeamMetrics(1, 10, 8, 12, 92)
        user = make_user(first_name="Team", last_name=None)

        wb = load_workbook(BytesIO(build_workbook([(make_snapshot(), user)], team=team)))

        assert wb.sheetnames == ["Team (2)", "Team"]
