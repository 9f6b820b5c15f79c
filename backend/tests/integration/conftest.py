"""Integration test configuration with a real AsyncSession on in-memory SQLite."""

import uuid
import pytest
import pytest_asyncio
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles

from src.database import Base
from src.models.enums import ReportScope, ReportType, UserRole
from src.models.report import Report
from src.models.user import Employee, User


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@compiles(JSONB, "sqlite")
def _jsonb_on_sqlite(type_, compiler, **kw):
    return "JSON"


def pytest_collection_modifyitems(items):
    """Apply integration marker to all tests in this directory."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine with SQLAlchemy-emitted BEGIN so SAVEPOINTs behave as on PostgreSQL."""
    engine = create_async_engine(TEST_DATABASE_URL)

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(
            Base.metadata.create_all,
            tables=[User.__table__, Employee.__table__, Report.__table__],
        )
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def team_report(session_maker):
    """A TEAM report requested by a manager with three operators.

    Returns (report_id, operator_ids) with operators in email order.
    """
    async with session_maker() as session:
        tenant_id = uuid.uuid4()
        manager = User(
            tenant_id=tenant_id,
            email="manager@example.com",
            first_name="Mara",
            last_name="Stone",
            role=UserRole.MANAGER.value,
        )
        session.add(manager)
        await session.flush()

        operators = []
        for name in ("ada", "grace", "linus"):
            operator = User(
                tenant_id=tenant_id,
                email=f"{name}@example.com",
                first_name=name.title(),
                role=UserRole.OPERATOR.value,
            )
            session.add(operator)
            await session.flush()
            session.add(
                Employee(user_id=operator.id, tenant_id=tenant_id, manager_id=manager.id)
            )
            operators.append(operator.id)

        report = Report(
            tenant_id=tenant_id,
            type=ReportType.WEEKLY.value,
            scope=ReportScope.TEAM.value,
            generated_by=manager.id,
            from_date=datetime(2026, 3, 2, tzinfo=timezone.utc),
            to_date=datetime(2026, 3, 6, 23, 59, tzinfo=timezone.utc),
        )
        session.add(report)
        await session.commit()
        return report.id, operators
