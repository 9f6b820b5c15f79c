"""Report and per-employee snapshot models for the report pipeline."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    Float,
    Integer,
    String,
    Text,
    TIMESTAMP,
    ForeignKey,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from src.database import Base
from src.models.enums import ReportStatus


class Report(Base):
    """One report run requested by a manager for a date range."""

    __tablename__ = "reports"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)
    type: Mapped[str] = mapped_column(String(20))
    scope: Mapped[str] = mapped_column(String(20))
    generated_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    from_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    to_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    employee_ids: Mapped[list | None] = mapped_column(JSONB)

    # Lifecycle: GENERATING -> READY | FAILED (failure_reason set)
    status: Mapped[str] = mapped_column(
        String(20), server_default=ReportStatus.GENERATING.value, index=True
    )
    failure_reason: Mapped[str | None] = mapped_column(Text)
    failed_users: Mapped[list | None] = mapped_column(JSONB)
    job_id: Mapped[str | None] = mapped_column(String(255), index=True)
    attempts: Mapped[int] = mapped_column(Integer, server_default="0")

    pdf_url: Mapped[str | None] = mapped_column(Text)
    excel_url: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True))

    snapshots: Mapped[list[EmployeeReportSnapshot]] = relationship(
        "EmployeeReportSnapshot", back_populates="report"
    )

    def __repr__(self):
        return f"<Report(type='{self.type}', scope='{self.scope}', status='{self.status}')>"

    @property
    def title(self) -> str:
        return f"{self.type} Report"


class EmployeeReportSnapshot(Base):
    """Materialized statistics for one user within one report run."""

    __tablename__ = "employee_report_snapshots"
    __table_args__ = (
        UniqueConstraint("report_id", "user_id", name="uq_snapshots_report_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    report_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("reports.id"), index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), index=True
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)

    total_tasks: Mapped[int] = mapped_column(Integer, server_default="0")
    completed_tasks: Mapped[int] = mapped_column(Integer, server_default="0")
    todo_tasks: Mapped[int] = mapped_column(Integer, server_default="0")
    working_tasks: Mapped[int] = mapped_column(Integer, server_default="0")
    done_tasks: Mapped[int] = mapped_column(Integer, server_default="0")
    completion_rate: Mapped[int] = mapped_column(Integer, server_default="0")
    total_hours: Mapped[int] = mapped_column(Integer, server_default="0")
    avg_daily_hours: Mapped[float] = mapped_column(Float, server_default="0")
    productivity_score: Mapped[float] = mapped_column(Float, server_default="0")

    pdf_url: Mapped[str | None] = mapped_column(Text)
    from_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    to_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    report: Mapped[Report] = relationship("Report", back_populates="snapshots")

    def __repr__(self):
        return f"<EmployeeReportSnapshot(report_id='{self.report_id}', user_id='{self.user_id}')>"
