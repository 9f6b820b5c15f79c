"""Add reports and employee_report_snapshots.

Revision ID: 002_add_reports
Revises: 001_hr_reference_tables
Create Date: 2026-10-02

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002_add_reports"
down_revision: Union[str, None] = "001_hr_reference_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create reports and employee_report_snapshots."""

    op.create_table(
        "reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("scope", sa.String(20), nullable=False),
        sa.Column(
            "generated_by",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("from_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("to_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("employee_ids", postgresql.JSONB, nullable=True),
        sa.Column("status", sa.String(20), server_default="GENERATING", nullable=False),
        sa.Column("failure_reason", sa.Text, nullable=True),
        sa.Column("failed_users", postgresql.JSONB, nullable=True),
        sa.Column("job_id", sa.String(255), nullable=True),
        sa.Column("attempts", sa.Integer, server_default="0", nullable=False),
        sa.Column("pdf_url", sa.Text, nullable=True),
        sa.Column("excel_url", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('GENERATING', 'READY', 'FAILED')", name="ck_reports_status"
        ),
        sa.CheckConstraint(
            "status = 'FAILED' OR failure_reason IS NULL", name="ck_reports_failure_reason"
        ),
    )
    op.create_index("ix_reports_tenant_id", "reports", ["tenant_id"])
    op.create_index("ix_reports_generated_by", "reports", ["generated_by"])
    op.create_index("ix_reports_status", "reports", ["status"])
    op.create_index("ix_reports_job_id", "reports", ["job_id"])
    op.create_index("ix_reports_tenant_created", "reports", ["tenant_id", "created_at"])

    op.create_table(
        "employee_report_snapshots",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "report_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("reports.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("total_tasks", sa.Integer, server_default="0", nullable=False),
        sa.Column("completed_tasks", sa.Integer, server_default="0", nullable=False),
        sa.Column("todo_tasks", sa.Integer, server_default="0", nullable=False),
        sa.Column("working_tasks", sa.Integer, server_default="0", nullable=False),
        sa.Column("done_tasks", sa.Integer, server_default="0", nullable=False),
        sa.Column("completion_rate", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_hours", sa.Integer, server_default="0", nullable=False),
        sa.Column("avg_daily_hours", sa.Float, server_default="0", nullable=False),
        sa.Column("productivity_score", sa.Float, server_default="0", nullable=False),
        sa.Column("pdf_url", sa.Text, nullable=True),
        sa.Column("from_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("to_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("report_id", "user_id", name="uq_snapshots_report_user"),
        sa.CheckConstraint(
            "completed_tasks <= total_tasks", name="ck_snapshots_completed_le_total"
        ),
    )
    op.create_index("ix_employee_report_snapshots_report_id", "employee_report_snapshots", ["report_id"])
    op.create_index("ix_employee_report_snapshots_user_id", "employee_report_snapshots", ["user_id"])
    op.create_index("ix_employee_report_snapshots_tenant_id", "employee_report_snapshots", ["tenant_id"])


def downgrade() -> None:
    """Drop reports and employee_report_snapshots."""

    op.drop_table("employee_report_snapshots")
    op.drop_table("reports")
