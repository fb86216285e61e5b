"""Integration tests for application startup and shutdown.

The database and the schema synchronizer are mocked; the schema file, the
GraphQL engine and the routers are real.
"""

from unittest.mock import AsyncMock, Mock, patch

from fastapi.testclient import TestClient
import pytest

from pgql.api import dependencies
from pgql.api.main import config, create_app
from pgql.database import DatabaseConnectionError, DatabaseInterface
from pgql.migrations import DestructivePolicy, MigrationPlan, SyncResult


@pytest.fixture
def schema_file(tmp_path, realm_yaml):
    path = tmp_path / "realm.yaml"
    path.write_text(realm_yaml)
    return str(path)


@pytest.fixture
def mock_database():
    database = Mock(spec=DatabaseInterface)
    database.connect = AsyncMock()
    database.disconnect = AsyncMock()
    database.fetch_all = AsyncMock(return_value=[])
    return database


@pytest.fixture
def startup_environment(schema_file, mock_database, monkeypatch):
    monkeypatch.setattr(config, "schema_file", schema_file)
    monkeypatch.setattr(config, "migrate_on_startup", True)
    monkeypatch.setattr(config, "destructive_changes", DestructivePolicy.SKIP)

    with (
        patch("pgql.api.main.validate_database_config"),
        patch("pgql.api.main.create_database", return_value=mock_database),
        patch("pgql.api.main.SchemaSynchronizer") as mock_synchronizer,
    ):
        mock_synchronizer.return_value.sync = AsyncMock(
            return_value=SyncResult(changes=[], planned_changes=[], plan=MigrationPlan("sync"))
        )
        yield {"database": mock_database, "synchronizer": mock_synchronizer}


class TestLifespan:
    """Test the startup sequence."""

    def test_startup_serves_graphql(self, startup_environment):
        with TestClient(create_app()) as client:
            response = client.post(config.graphql_path, json={"query": "{ users { id } }"})
            root = client.get("/").json()

        assert response.status_code == 200
        assert response.json() == {"data": {"users": []}}
        assert root["graphql"] == config.graphql_path

        startup_environment["database"].connect.assert_awaited_once()
        startup_environment["database"].disconnect.assert_awaited_once()

    def test_schema_synchronized_with_policy(self, startup_environment):
        with TestClient(create_app()):
            pass

        sync = startup_environment["synchronizer"].return_value.sync
        realm = sync.await_args.args[0]
        assert realm.schema_names == ["public"]
        assert sync.await_args.kwargs == {"policy": DestructivePolicy.SKIP}

    def test_synchronization_disabled(self, startup_environment, monkeypatch):
        monkeypatch.setattr(config, "migrate_on_startup", False)

        with TestClient(create_app()):
            pass

        startup_environment["synchronizer"].assert_not_called()

    def test_globals_cleared_on_shutdown(self, startup_environment):
        with TestClient(create_app()):
            assert dependencies.get_realm_unsafe() is not None

        assert dependencies.get_realm_unsafe() is None
        assert dependencies.get_database_unsafe() is None

    def test_connection_failure_aborts_startup(self, startup_environment):
        startup_environment["database"].connect.side_effect = DatabaseConnectionError(
            "Failed to connect to PostgreSQL"
        )

        with pytest.raises(DatabaseConnectionError):
            with TestClient(create_app()):
                pass

        startup_environment["synchronizer"].assert_not_called()

    def test_invalid_schema_disconnects(self, startup_environment, tmp_path, monkeypatch):
        path = tmp_path / "broken.yaml"
        path.write_text("schemas: [not, a, mapping]\n")
        monkeypatch.setattr(config, "schema_file", str(path))

        with pytest.raises(Exception, match="schemas"):
            with TestClient(create_app()):
                pass

        startup_environment["database"].disconnect.assert_awaited_once()
        assert dependencies.get_database_unsafe() is None
