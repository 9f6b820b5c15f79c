"""
Report documents: Jinja2 HTML rendered to PDF by headless Chromium, and
openpyxl workbooks.

Every PDF render launches its own browser with a throwaway profile inside a
fresh temporary directory; the directory (profile and PDF file) is removed
whatever the outcome. Concurrent renders are bounded by a semaphore shared
by the renderer instance.
"""

import asyncio
import os
import re
import shutil
import tempfile
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape
from openpyxl import Workbook
from openpyxl.styles import Font
from playwright.async_api import async_playwright

from src.exceptions import RenderError, RendererUnavailableError
from src.services.report_metrics import METRIC_LABELS, TeamMetrics, TrendPoint
from src.utils.logger import get_logger

log = get_logger(__name__)

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)

# Characters Excel refuses in worksheet titles.
_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_MAX_SHEET_TITLE = 31


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(value)


_env.filters["isodate"] = _format_date


def _generated_at() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def render_employee_html(report, user, snapshot, trend: Sequence[TrendPoint]) -> str:
    """HTML for a single employee's report."""
    template = _env.get_template("employee_report.html")
    return template.render(
        report=report,
        user=user,
        snapshot=snapshot,
        metrics=[(label, getattr(snapshot, attr)) for label, attr in METRIC_LABELS],
        trend=trend,
        max_count=max((p.count for p in trend), default=0),
        generated_at=_generated_at(),
    )


def render_team_html(
    report,
    team: TeamMetrics,
    members: Sequence[tuple],
    trend: Sequence[TrendPoint],
) -> str:
    """HTML for the team summary; ``members`` holds (snapshot, user) pairs."""
    template = _env.get_template("team_report.html")
    return template.render(
        report=report,
        team=team,
        members=members,
        trend=trend,
        max_count=max((p.count for p in trend), default=0),
        generated_at=_generated_at(),
    )


class PdfRenderer:
    """HTML to PDF through Playwright Chromium."""

    def __init__(
        self,
        timeout_ms: int = 120_000,
        browser_args: Optional[list[str]] = None,
        max_concurrent: int = 2,
    ):
        self.timeout_ms = timeout_ms
        self.browser_args = browser_args or []
        self.max_concurrent = max(1, max_concurrent)
        self._semaphore: Optional[asyncio.Semaphore] = None

    @property
    def semaphore(self) -> asyncio.Semaphore:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    async def render(self, html: str, name: str = "report") -> bytes:
        """
        Render ``html`` to an A4 PDF with background graphics.

        Raises:
            RendererUnavailableError: If the browser cannot be started
            RenderError: If loading the content or printing fails
        """
        async with self.semaphore:
            work_dir = tempfile.mkdtemp(prefix="report-render-")
            try:
                return await self._render_in(work_dir, html, name)
            finally:
                shutil.rmtree(work_dir, ignore_errors=True)

    async def _render_in(self, work_dir: str, html: str, name: str) -> bytes:
        pdf_path = os.path.join(work_dir, f"{name}.pdf")

        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise RendererUnavailableError(f"Failed to start Playwright: {e}") from e

        try:
            try:
                context = await playwright.chromium.launch_persistent_context(
                    user_data_dir=os.path.join(work_dir, "profile"),
                    headless=True,
                    args=self.browser_args,
                )
            except Exception as e:
                raise RendererUnavailableError(f"Failed to launch browser: {e}") from e

            try:
                page = await context.new_page()
                await page.set_content(
                    html, wait_until="domcontentloaded", timeout=self.timeout_ms
                )
                await page.pdf(
                    path=pdf_path,
                    format="A4",
                    print_background=True,
                    prefer_css_page_size=True,
                )
            except Exception as e:
                raise RenderError(f"Failed to render {name}: {e}") from e
            finally:
                await context.close()
        finally:
            await playwright.stop()

        with open(pdf_path, "rb") as f:
            data = f.read()
        log.debug("pdf rendered", name=name, size=len(data))
        return data


def _sheet_title(name: str, taken: set[str]) -> str:
    base = _INVALID_SHEET_CHARS.sub("_", name).strip() or "Sheet"
    base = base[:_MAX_SHEET_TITLE]
    title = base
    n = 2
    while title.lower() in taken:
        suffix = f" ({n})"
        title = base[: _MAX_SHEET_TITLE - len(suffix)] + suffix
        n += 1
    taken.add(title.lower())
    return title


def _write_key_values(ws, rows: Sequence[tuple[str, object]]) -> None:
    ws.append(["Metric", "Value"])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for label, value in rows:
        ws.append([label, value])
    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 14


def build_workbook(
    members: Sequence[tuple],
    team: Optional[TeamMetrics] = None,
) -> bytes:
    """
    Build the report workbook.

    One key/value sheet per (snapshot, user) pair, named after the user,
    followed by a "Team" sheet when ``team`` is given.
    """
    wb = Workbook()
    wb.remove(wb.active)
    taken: set[str] = set()

    if team is not None:
        # reserve the name so a user called "Team" gets a suffix
        taken.add("team")

    for snapshot, user in members:
        ws = wb.create_sheet(_sheet_title(user.display_name, taken))
        _write_key_values(
            ws, [(label, getattr(snapshot, attr)) for label, attr in METRIC_LABELS]
        )

    if team is not None:
        ws = wb.create_sheet("Team")
        _write_key_values(
            ws,
            [
                ("Members", team.members),
                ("Total Tasks", team.total_tasks),
                ("Completed Tasks", team.completed_tasks),
                ("Total Hours", team.total_hours),
                ("Avg Productivity", team.avg_productivity),
            ],
        )

    if not wb.sheetnames:
        wb.create_sheet("Report")

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
