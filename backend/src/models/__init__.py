"""Database models."""

from src.models.enums import (
    ReportScope,
    ReportStatus,
    ReportType,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from src.models.user import User, Employee
from src.models.task import Task, TaskWorkLog
from src.models.report import Report, EmployeeReportSnapshot

__all__ = [
    "ReportScope",
    "ReportStatus",
    "ReportType",
    "TaskPriority",
    "TaskStatus",
    "UserRole",
    "User",
    "Employee",
    "Task",
    "TaskWorkLog",
    "Report",
    "EmployeeReportSnapshot",
]
