"""Repository layer for data access."""

from src.repositories.report_repository import ReportRepository
from src.repositories.snapshot_repository import SnapshotConflictPolicy, SnapshotRepository
from src.repositories.user_repository import UserRepository
from src.repositories.activity_repository import ActivityRepository

__all__ = [
    "ReportRepository",
    "SnapshotConflictPolicy",
    "SnapshotRepository",
    "UserRepository",
    "ActivityRepository",
]
