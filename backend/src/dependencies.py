"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Header, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, get_settings
from src.database import get_db
from src.exceptions import ForbiddenError, InvalidTokenError, MissingTokenError
from src.factories.service_factories import get_artifact_service
from src.models.enums import UserRole
from src.models.user import User
from src.repositories.activity_repository import ActivityRepository
from src.repositories.report_repository import ReportRepository
from src.repositories.snapshot_repository import SnapshotConflictPolicy, SnapshotRepository
from src.repositories.user_repository import UserRepository
from src.services.auth_service import get_auth_service
from src.services.report_artifacts import ReportArtifactService
from src.utils.logger import get_logger

log = get_logger(__name__)


# Type aliases for cleaner router signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Service dependencies
ArtifactServiceDep = Annotated[ReportArtifactService, Depends(get_artifact_service)]


# Repository dependencies (request-scoped)
def get_report_repository(db: DbSession) -> ReportRepository:
    """Get ReportRepository with database session."""
    return ReportRepository(db)


def get_snapshot_repository(db: DbSession, settings: SettingsDep) -> SnapshotRepository:
    """Get SnapshotRepository with database session."""
    return SnapshotRepository(db, SnapshotConflictPolicy(settings.snapshot_conflict_policy))


def get_user_repository(db: DbSession) -> UserRepository:
    """Get UserRepository with database session."""
    return UserRepository(db)


def get_activity_repository(db: DbSession) -> ActivityRepository:
    """Get ActivityRepository with database session."""
    return ActivityRepository(db)


ReportRepoDep = Annotated[ReportRepository, Depends(get_report_repository)]
SnapshotRepoDep = Annotated[SnapshotRepository, Depends(get_snapshot_repository)]
UserRepoDep = Annotated[UserRepository, Depends(get_user_repository)]
ActivityRepoDep = Annotated[ActivityRepository, Depends(get_activity_repository)]


# ============================================================================
# Authentication Dependencies
# ============================================================================


async def get_current_user_required(
    db: DbSession,
    authorization: Annotated[str | None, Header(alias="Authorization")] = None,
) -> User:
    """Verify the bearer token and load its user, raise 401 otherwise."""
    if not authorization:
        raise MissingTokenError()

    auth_service = get_auth_service()
    auth_user = await auth_service.verify_token(authorization)

    user = await UserRepository(db).get_by_id(auth_user.user_id)
    if user is None:
        log.warning("token user not found", user_id=str(auth_user.user_id))
        raise InvalidTokenError("Unknown user")
    if auth_user.tenant_id and auth_user.tenant_id != str(user.tenant_id):
        log.warning("token tenant mismatch", user_id=str(user.id))
        raise InvalidTokenError("Token tenant does not match user")
    return user


CurrentUserRequired = Annotated[User, Depends(get_current_user_required)]


async def require_report_manager(user: CurrentUserRequired) -> User:
    """Only managers and project managers work with reports."""
    if user.role not in (UserRole.PROJECT_MANAGER.value, UserRole.MANAGER.value):
        raise ForbiddenError("Only managers can access reports")
    return user


ReportManager = Annotated[User, Depends(require_report_manager)]


# ============================================================================
# Redis Dependency
# ============================================================================


async def get_redis(request: Request) -> Redis:
    """Get async Redis client from app state."""
    return request.app.state.redis


RedisDep = Annotated[Redis, Depends(get_redis)]
