"""Repository for User lookups and role-based visibility rules."""

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import ReportScope, UserRole
from src.models.user import Employee, User
from src.utils.logger import get_logger

log = get_logger(__name__)


class UserRepository:
    """Repository for User queries.

    Visibility rules used throughout reporting:
    - PROJECT_MANAGER sees every MANAGER and OPERATOR in the tenant.
    - MANAGER sees the OPERATORs whose employee record names them as manager.
    - Everyone else sees nobody.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    def _visible_users_stmt(self, requester: User, tenant_id: UUID):
        """SELECT of users visible to the requester, or None if nobody is."""
        stmt = select(User).where(User.tenant_id == tenant_id)

        if requester.role == UserRole.PROJECT_MANAGER.value:
            return stmt.where(
                User.role.in_([UserRole.MANAGER.value, UserRole.OPERATOR.value])
            )

        if requester.role == UserRole.MANAGER.value:
            return (
                stmt.join(Employee, Employee.user_id == User.id)
                .where(User.role == UserRole.OPERATOR.value)
                .where(Employee.manager_id == requester.id)
            )

        return None

    async def resolve_scope(
        self,
        requester: User,
        tenant_id: UUID,
        scope: str,
        employee_ids: Optional[Sequence[str]] = None,
    ) -> list[User]:
        """Users a report covers, given its scope and the requester's role.

        EMPLOYEE scope keeps only the requested ids the requester may see;
        TEAM scope returns everyone the requester may see.
        """
        stmt = self._visible_users_stmt(requester, tenant_id)
        if stmt is None:
            log.warning(
                "report_scope_empty_for_role",
                requester_id=str(requester.id),
                role=requester.role,
            )
            return []

        if scope == ReportScope.EMPLOYEE.value:
            ids = [UUID(str(i)) for i in (employee_ids or [])]
            if not ids:
                return []
            if requester.role == UserRole.PROJECT_MANAGER.value:
                # explicit selection may include any tenant user
                stmt = select(User).where(User.tenant_id == tenant_id)
            stmt = stmt.where(User.id.in_(ids))

        result = await self.session.execute(stmt.order_by(User.email))
        return list(result.scalars().all())

    async def can_access_employee(
        self, requester: User, target_user_id: UUID, tenant_id: UUID
    ) -> bool:
        """Whether the requester may view the target user's report data."""
        if requester.role == UserRole.PROJECT_MANAGER.value:
            return True

        if requester.role == UserRole.MANAGER.value:
            result = await self.session.execute(
                select(Employee.id).where(
                    Employee.user_id == target_user_id,
                    Employee.tenant_id == tenant_id,
                    Employee.manager_id == requester.id,
                )
            )
            return result.scalar_one_or_none() is not None

        return False

    async def search_visible(self, requester: User, query: str = "", limit: int = 50) -> list[User]:
        """Users visible to the requester whose email contains ``query``."""
        stmt = self._visible_users_stmt(requester, requester.tenant_id)
        if stmt is None:
            return []
        if query:
            stmt = stmt.where(User.email.ilike(f"%{query}%"))
        result = await self.session.execute(stmt.order_by(User.email).limit(limit))
        return list(result.scalars().all())

    async def count_for_tenant(self, tenant_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(User).where(User.tenant_id == tenant_id)
        )
        return result.scalar_one()
