"""Health check router."""

import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import APIRouter
from sqlalchemy import text

from src.schemas.health import HealthResponse, ServiceStatus
from src.dependencies import DbSession, RedisDep
from src.utils.logger import get_logger

router = APIRouter()
log = get_logger(__name__)

API_VERSION = "0.1.0"


async def _probe(name: str, check: Callable[[], Awaitable[object]]) -> ServiceStatus:
    started = time.perf_counter()
    try:
        await check()
    except Exception as e:
        log.error("health check failed", service=name, error=str(e))
        return ServiceStatus(status="unhealthy", message="Service unavailable")
    latency = round((time.perf_counter() - started) * 1000, 2)
    return ServiceStatus(status="healthy", message="Connected", latency_ms=latency)


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, redis: RedisDep) -> HealthResponse:
    """
    Health check for the API's backing services.

    Checks:
    - Database connectivity
    - Redis (summary cache) connectivity

    The endpoint itself always answers 200; ``status`` is "degraded" when any
    probe fails.
    """
    services = {
        "database": await _probe("database", lambda: db.execute(text("SELECT 1"))),
        "redis": await _probe("redis", redis.ping),
    }
    overall_status = (
        "ok" if all(s.status == "healthy" for s in services.values()) else "degraded"
    )

    return HealthResponse(
        status=overall_status,
        version=API_VERSION,
        services=services,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )
