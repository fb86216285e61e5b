"""Tests for GraphQL schema generation and request execution."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

from graphql import GraphQLInt, GraphQLNonNull, GraphQLString
import pytest
from sqlalchemy.dialects import postgresql

from pgql.core import load_realm_from_string
from pgql.database import DatabaseInterface, DatabaseQueryError
from pgql.graphql import GraphQLEngine, graphql_scalar, type_name
from pgql.graphql.schema_builder import serialize_row

USER_ROW = {
    "id": "6c1f1c1e-0000-4000-8000-000000000001",
    "created_at": datetime(2024, 5, 1, 12, 30),
    "name": "alice",
    "age": 30,
}


@pytest.fixture
def mock_database():
    database = Mock(spec=DatabaseInterface)
    database.fetch_all = AsyncMock(return_value=[])
    database.execute_many = AsyncMock(return_value=[])
    return database


@pytest.fixture
def engine(realm, mock_database):
    return GraphQLEngine(realm, mock_database, max_limit=50)


def _sql(mock_call) -> str:
    statement = mock_call.args[0]
    return str(statement.compile(dialect=postgresql.dialect()))


class TestSchemaGeneration:
    """Test the generated GraphQL schema."""

    def test_query_and_mutation_fields(self, engine):
        query_fields = engine.schema.query_type.fields
        mutation_fields = engine.schema.mutation_type.fields

        assert {"users", "users_by_pk", "groups", "group_has_user"} <= set(query_fields)
        assert {"insert_users", "insert_users_one", "update_users", "delete_users"} <= set(
            mutation_fields
        )

    def test_column_nullability(self, engine):
        users = engine.schema.get_type("users")

        assert users.fields["name"].type == GraphQLNonNull(GraphQLString)
        assert users.fields["age"].type is GraphQLInt
        assert users.description == "application users"

    def test_relationship_fields(self, engine):
        """Test foreign keys are exposed in both directions."""
        join = engine.schema.get_type("group_has_user")
        users = engine.schema.get_type("users")

        assert join.fields["user"].type is engine.schema.get_type("users")
        assert join.fields["group"].type is engine.schema.get_type("groups")
        assert "group_has_user" in users.fields

    def test_non_public_schema_prefix(self, mock_database):
        realm = load_realm_from_string(
            "schemas: {audit: {tables: {events: {columns: {id: bigint}}}}}"
        )

        engine = GraphQLEngine(realm, mock_database)

        assert type_name(realm.table("audit", "events")) == "audit_events"
        assert "audit_events" in engine.schema.query_type.fields
        assert "audit_events_by_pk" not in engine.schema.query_type.fields

    def test_pattern_operators_only_on_text_columns(self, engine):
        """Test _like and _ilike are offered for text columns only."""
        users_where = engine.schema.get_type("users_bool_exp").fields

        name_ops = users_where["name"].type.fields
        id_ops = users_where["id"].type.fields
        created_at_ops = users_where["created_at"].type.fields

        assert {"_like", "_ilike"} <= set(name_ops)
        assert not {"_like", "_ilike"} & set(id_ops)
        assert not {"_like", "_ilike"} & set(created_at_ops)
        assert users_where["name"].type.name == "String_comparison_exp"
        assert users_where["id"].type.name == "uuid_comparison_exp"
        assert {"_eq", "_in", "_gt"} <= set(id_ops)

    @pytest.mark.asyncio
    async def test_like_on_uuid_column_rejected(self, engine, mock_database):
        result = await engine.execute('{ users(where: {id: {_like: "a%"}}) { id } }')

        assert result.data is None
        assert result.errors
        mock_database.fetch_all.assert_not_called()

    @pytest.mark.parametrize(
        ("canonical", "scalar"),
        [("INTEGER", "Int"), ("BIGINT", "String"), ("NUMERIC(10, 2)", "Float"),
         ("BOOLEAN", "Boolean"), ("JSONB", "JSON"), ("UUID", "String")],
    )
    def test_scalar_mapping(self, canonical, scalar):
        assert graphql_scalar(canonical).name == scalar

    def test_serialize_row(self):
        row = serialize_row({"at": datetime(2024, 1, 2, 3, 4), "amount": Decimal("1.50")})

        assert row == {"at": "2024-01-02T03:04:00", "amount": 1.5}


class TestQueries:
    """Test query execution."""

    @pytest.mark.asyncio
    async def test_list_query(self, engine, mock_database):
        mock_database.fetch_all.return_value = [USER_ROW]

        result = await engine.execute(
            '{ users(where: {name: {_eq: "alice"}}, limit: 500) { id name age created_at } }'
        )

        assert result.errors is None
        assert result.data == {
            "users": [
                {
                    "id": USER_ROW["id"],
                    "name": "alice",
                    "age": 30,
                    "created_at": "2024-05-01T12:30:00",
                }
            ]
        }
        mock_database.fetch_all.assert_awaited_once()
        sql = _sql(mock_database.fetch_all.await_args)
        assert "WHERE public.users.name = " in sql
        assert "LIMIT" in sql

    @pytest.mark.asyncio
    async def test_variables_and_operation_name(self, engine, mock_database):
        mock_database.fetch_all.return_value = [USER_ROW]

        result = await engine.execute(
            "query One($id: String!) { users_by_pk(id: $id) { name } } "
            "query Other { groups { id } }",
            variables={"id": USER_ROW["id"]},
            operation_name="One",
        )

        assert result.data == {"users_by_pk": {"name": "alice"}}

    @pytest.mark.asyncio
    async def test_by_pk_not_found(self, engine, mock_database):
        result = await engine.execute('{ users_by_pk(id: "missing") { name } }')

        assert result.errors is None
        assert result.data == {"users_by_pk": None}

    @pytest.mark.asyncio
    async def test_object_relationship(self, engine, mock_database):
        mock_database.fetch_all.side_effect = [
            [{"id": "j1", "user_id": USER_ROW["id"], "group_id": "g1"}],
            [USER_ROW],
        ]

        result = await engine.execute("{ group_has_user { id user { name } } }")

        assert result.data == {"group_has_user": [{"id": "j1", "user": {"name": "alice"}}]}
        sql = _sql(mock_database.fetch_all.await_args_list[1])
        assert "WHERE public.users.id = " in sql

    @pytest.mark.asyncio
    async def test_array_relationship(self, engine, mock_database):
        mock_database.fetch_all.side_effect = [
            [USER_ROW],
            [{"id": "j1", "user_id": USER_ROW["id"], "group_id": "g1"}],
        ]

        result = await engine.execute("{ users { name group_has_user(limit: 1) { id } } }")

        assert result.data == {"users": [{"name": "alice", "group_has_user": [{"id": "j1"}]}]}

    @pytest.mark.asyncio
    async def test_null_in_list(self, engine, mock_database):
        """Test a null _in list is answered instead of failing."""
        result = await engine.execute("{ users(where: {age: {_in: null}}) { id } }")

        assert result.errors is None
        assert result.data == {"users": []}
        assert " IN " in _sql(mock_database.fetch_all.await_args)

    @pytest.mark.asyncio
    async def test_invalid_query_has_no_data(self, engine, mock_database):
        result = await engine.execute("{ users { nickname } }")

        assert result.data is None
        assert "nickname" in result.errors[0].message
        mock_database.fetch_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_database_error_reported(self, engine, mock_database):
        mock_database.fetch_all.side_effect = DatabaseQueryError("Query failed: boom")

        result = await engine.execute("{ users { id } }")

        assert result.data is None
        assert result.errors[0].message == "Query failed: boom"
        assert result.errors[0].path == ["users"]


class TestMutations:
    """Test mutation execution."""

    @pytest.mark.asyncio
    async def test_insert(self, engine, mock_database):
        mock_database.execute_many.return_value = [USER_ROW]

        result = await engine.execute(
            'mutation { insert_users(objects: [{name: "alice", age: 30}]) '
            "{ affected_rows returning { id } } }"
        )

        assert result.data == {
            "insert_users": {"affected_rows": 1, "returning": [{"id": USER_ROW["id"]}]}
        }
        statements = mock_database.execute_many.await_args.args[0]
        assert len(statements) == 1

    @pytest.mark.asyncio
    async def test_insert_one(self, engine, mock_database):
        mock_database.execute_many.return_value = [USER_ROW]

        result = await engine.execute(
            'mutation { insert_users_one(object: {name: "alice"}) { name } }'
        )

        assert result.data == {"insert_users_one": {"name": "alice"}}

    @pytest.mark.asyncio
    async def test_update_and_delete(self, engine, mock_database):
        mock_database.execute_many.return_value = [USER_ROW, USER_ROW]

        result = await engine.execute(
            'mutation { update_users(where: {age: {_lt: 40}}, _set: {name: "bob"}) '
            "{ affected_rows } delete_groups(where: {}) { affected_rows } }"
        )

        assert result.data == {
            "update_users": {"affected_rows": 2},
            "delete_groups": {"affected_rows": 2},
        }
        assert mock_database.execute_many.await_count == 2
