"""API routers."""

from src.routers import health, reports, report_analytics

__all__ = ["health", "reports", "report_analytics"]
