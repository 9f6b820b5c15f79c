"""Shared pytest fixtures for repository tests."""

import pytest
from sqlalchemy.dialects import postgresql


@pytest.fixture
def compile_pg():
    """Compile a statement with the PostgreSQL dialect."""

    def _compile(stmt) -> str:
        return str(stmt.compile(dialect=postgresql.dialect()))

    return _compile


@pytest.fixture
def executed_sql(compile_pg):
    """SQL text of every statement passed to a mock session's execute."""

    def _collect(session) -> list[str]:
        return [compile_pg(call.args[0]) for call in session.execute.call_args_list]

    return _collect
