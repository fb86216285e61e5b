"""Tests for applying change trees and inspecting through the database layer."""

from unittest.mock import AsyncMock, Mock

import pytest

from pgql.core.schema import Column, Table
from pgql.database import DatabaseInterface, DatabaseOperationError
from pgql.migrations import InspectionError, MigrationApplyError, MigrationExecutor
from pgql.migrations.changes import AddColumn, ModifyTable
from pgql.migrations.inspector import inspect_database


@pytest.fixture
def mock_database():
    database = Mock(spec=DatabaseInterface)
    database.run_sync = AsyncMock()
    return database


def _add_email() -> list:
    users = Table("users", "public", columns=[Column("id", "UUID")])
    return [ModifyTable(table=users, changes=[AddColumn(column=Column("email", "TEXT"))])]


class TestMigrationExecutor:
    """Test MigrationExecutor.apply_changes."""

    @pytest.mark.asyncio
    async def test_no_changes(self, mock_database):
        result = await MigrationExecutor(mock_database).apply_changes([])

        assert result.success
        mock_database.run_sync.assert_not_called()

    @pytest.mark.asyncio
    async def test_operation_failure_wrapped(self, mock_database):
        """Test a rejected operation surfaces as MigrationApplyError."""
        failure = DatabaseOperationError("Operation failed: permission denied")
        mock_database.run_sync.side_effect = failure

        with pytest.raises(MigrationApplyError) as exc_info:
            await MigrationExecutor(mock_database).apply_changes(_add_email())

        assert exc_info.value.cause is failure
        assert "permission denied" in str(exc_info.value)


class TestInspectDatabase:
    """Test the async inspection wrapper."""

    @pytest.mark.asyncio
    async def test_operation_failure_wrapped(self, mock_database):
        mock_database.run_sync.side_effect = DatabaseOperationError("Operation failed: boom")

        with pytest.raises(InspectionError):
            await inspect_database(mock_database, ["public"])
