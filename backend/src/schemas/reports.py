"""Schemas for report operations."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import ReportScope, ReportType


class GenerateReportRequest(BaseModel):
    """Request to generate a report asynchronously."""

    type: ReportType = Field(..., description="WEEKLY, MONTHLY or CUSTOM")
    scope: ReportScope = Field(..., description="EMPLOYEE (explicit users) or TEAM")
    from_date: datetime = Field(..., description="Window start (inclusive)")
    to_date: datetime = Field(..., description="Window end (inclusive)")
    employee_ids: Optional[list[UUID]] = Field(
        None, description="Users to include; required for EMPLOYEE scope"
    )


class GenerateReportResponse(BaseModel):
    """Response when a report job is queued."""

    report_id: UUID = Field(..., description="Created report ID")
    status: str = Field(..., description="Report status (GENERATING)")
    job_id: str = Field(..., description="Queue job ID")


class ReportResponse(BaseModel):
    """Response for a single report."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Report ID")
    title: str = Field(..., description="Display title")
    type: str = Field(..., description="Type of report")
    scope: str = Field(..., description="EMPLOYEE or TEAM")
    status: str = Field(..., description="GENERATING, READY or FAILED")
    from_date: datetime = Field(..., description="Report window start")
    to_date: datetime = Field(..., description="Report window end")
    pdf_url: Optional[str] = Field(None, description="Team PDF URL")
    excel_url: Optional[str] = Field(None, description="Workbook URL")
    failure_reason: Optional[str] = Field(None, description="Set when status is FAILED")
    failed_users: Optional[list[dict[str, Any]]] = Field(
        None, description="Users that failed in the last run"
    )
    created_at: datetime = Field(..., description="When the report was requested")
    completed_at: Optional[datetime] = Field(None, description="When the last run finished")


class ReportDetailResponse(ReportResponse):
    """Single report with job bookkeeping."""

    job_id: Optional[str] = Field(None, description="Queue job ID of the latest run")
    attempts: int = Field(0, description="Number of runs started")
    snapshot_count: int = Field(0, description="Employee snapshots stored")


class ReportListResponse(BaseModel):
    """Response for listing reports."""

    reports: list[ReportResponse]
    total: int = Field(..., description="Total number of reports")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Page offset")


class ReportSummaryResponse(BaseModel):
    """Dashboard figures for the requester's tenant."""

    total_reports: int
    team_members: int
    total_hours: int
    completion_rate: int


class EmployeeSearchResult(BaseModel):
    """A user the requester may include in a report."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: str
    display_name: str


class EmployeeSummaryResponse(BaseModel):
    """Snapshot figures for one employee."""

    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    completion_rate: int
    total_hours: int
    avg_daily_hours: float
    productivity_score: float


class HoursEntry(BaseModel):
    date: str
    hours: float


class TaskDistributionResponse(BaseModel):
    todo: int
    working: int
    done: int


class PriorityDistributionResponse(BaseModel):
    HIGH: int = 0
    MEDIUM: int = 0
    LOW: int = 0


class EfficiencyResponse(BaseModel):
    """Radar-chart dimensions, each on a 0-100 scale."""

    speed: float
    quality: float
    consistency: float
    time_management: float
    activity: float


class ProductivityTrendPoint(BaseModel):
    week: str
    score: float


class TrendPointResponse(BaseModel):
    date: str
    count: int


class TeamMetricsResponse(BaseModel):
    """Aggregated figures for the members of a report visible to the requester."""

    members: int
    total_tasks: int
    completed_tasks: int
    total_hours: int
    avg_productivity: int
    trend: list[TrendPointResponse] = Field(default_factory=list)


class ArtifactUrlResponse(BaseModel):
    """Public URL of a stored report document."""

    url: str
