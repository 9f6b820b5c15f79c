"""Enumerations shared by models, schemas and services."""

import enum


class UserRole(str, enum.Enum):
    PROJECT_MANAGER = "PROJECT_MANAGER"
    MANAGER = "MANAGER"
    OPERATOR = "OPERATOR"


class TaskStatus(str, enum.Enum):
    TODO = "TODO"
    WORKING = "WORKING"
    DONE = "DONE"


class TaskPriority(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ReportType(str, enum.Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    CUSTOM = "CUSTOM"


class ReportScope(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    TEAM = "TEAM"


class ReportStatus(str, enum.Enum):
    GENERATING = "GENERATING"
    READY = "READY"
    FAILED = "FAILED"
