"""Tests for schema change detection between the live and the desired realm."""

from copy import deepcopy

import pytest

from pgql.core.schema import Check, Column, ForeignKey, Index, Realm, Schema, Table
from pgql.migrations.changes import (
    AddAttr,
    AddCheck,
    AddColumn,
    AddForeignKey,
    AddIndex,
    AddSchema,
    AddTable,
    DropColumn,
    DropForeignKey,
    DropIndex,
    DropSchema,
    DropTable,
    ModifyCheck,
    ModifyColumn,
    ModifyForeignKey,
    ModifySchema,
    ModifyTable,
)
from pgql.migrations.detector import SchemaChangeDetector
from pgql.migrations.filter import filter_destructive


@pytest.fixture
def detector():
    return SchemaChangeDetector()


def _users(**overrides) -> Table:
    table = Table(
        name="users",
        schema="public",
        columns=[
            Column("id", "UUID", default="gen_random_uuid()"),
            Column("name", "TEXT"),
        ],
    )
    for key, value in overrides.items():
        setattr(table, key, value)
    return table


def _realm(*tables: Table) -> Realm:
    return Realm(schemas=[Schema("public", list(tables))])


class TestRealmLevelChanges:
    """Test schema and table level changes."""

    def test_identical_realms_have_no_changes(self, detector, realm):
        """Test diffing a realm against itself yields nothing."""
        assert detector.detect_changes(realm, deepcopy(realm)) == []

    def test_fresh_database_adds_schema_and_tables(self, detector, realm, empty_realm):
        """Test a missing schema produces AddSchema followed by AddTable per table."""
        changes = detector.detect_changes(empty_realm, realm)

        assert isinstance(changes[0], AddSchema)
        assert changes[0].schema.name == "public"
        assert [type(c) for c in changes[1:]] == [AddTable, AddTable, AddTable]
        assert [c.table.name for c in changes[1:]] == ["users", "groups", "group_has_user"]

    def test_new_table_in_existing_schema(self, detector):
        """Test a new table is nested in ModifySchema."""
        groups = Table(name="groups", schema="public", columns=[Column("id", "UUID")])

        changes = detector.detect_changes(_realm(_users()), _realm(_users(), groups))

        assert changes == [ModifySchema(schema="public", changes=[AddTable(table=groups)])]

    def test_removed_table_is_dropped(self, detector):
        """Test a table missing from the desired realm is dropped."""
        legacy = Table(name="legacy", schema="public", columns=[Column("id", "UUID")])

        changes = detector.detect_changes(_realm(_users(), legacy), _realm(_users()))

        assert changes == [ModifySchema(schema="public", changes=[DropTable(table=legacy)])]

    def test_removed_schema_drops_its_tables(self, detector):
        """Test a removed schema lists cascaded table drops as children."""
        audit_table = Table(name="events", schema="audit", columns=[Column("id", "UUID")])
        current = Realm(schemas=[Schema("public", [_users()]), Schema("audit", [audit_table])])

        changes = detector.detect_changes(current, _realm(_users()))

        assert len(changes) == 1
        assert isinstance(changes[0], DropSchema)
        assert changes[0].changes == [DropTable(table=audit_table)]


class TestTableChanges:
    """Test changes scoped to a single table."""

    def test_added_and_dropped_columns(self, detector):
        """Test column differences are nested as ModifySchema{ModifyTable{...}}."""
        current = _users()
        desired = _users(
            columns=[Column("id", "UUID", default="gen_random_uuid()"), Column("email", "TEXT")]
        )

        changes = detector.detect_changes(_realm(current), _realm(desired))

        assert len(changes) == 1
        schema_change = changes[0]
        assert isinstance(schema_change, ModifySchema)
        table_change = schema_change.changes[0]
        assert isinstance(table_change, ModifyTable)
        assert table_change.changes == [
            AddColumn(column=Column("email", "TEXT")),
            DropColumn(column=Column("name", "TEXT")),
        ]

    def test_modified_column_attributes(self, detector):
        """Test type and nullability differences are reported in one ModifyColumn."""
        desired = _users(
            columns=[
                Column("id", "UUID", default="gen_random_uuid()"),
                Column("name", "VARCHAR(64)", nullable=True),
            ]
        )

        changes = detector.diff_table(_users(), desired)

        assert len(changes) == 1
        assert isinstance(changes[0], ModifyColumn)
        assert changes[0].attributes == ("type", "nullable")

    def test_default_casts_are_ignored(self, detector):
        """Test reflected defaults with casts compare equal to declared ones."""
        current = _users(
            columns=[Column("id", "UUID", default="gen_random_uuid()"), Column("name", "TEXT", default="'x'::text")]
        )
        desired = _users(
            columns=[Column("id", "UUID", default="gen_random_uuid()"), Column("name", "TEXT", default="'x'")]
        )

        assert detector.diff_table(current, desired) == []

    def test_change_order_within_table(self, detector):
        """Test ModifyTable children are ordered attrs, columns, indexes, fks, checks."""
        desired = _users(
            attrs={"comment": "people"},
            columns=[
                Column("id", "UUID", default="gen_random_uuid()"),
                Column("name", "TEXT"),
                Column("group_id", "UUID"),
            ],
            indexes=[Index("users_name_idx", ["name"])],
            foreign_keys=[ForeignKey("users_group_fk", ["group_id"], "groups", ["id"])],
            checks=[Check("name_not_blank", "name <> ''")],
        )

        changes = detector.diff_table(_users(), desired)

        assert [type(c) for c in changes] == [
            AddAttr,
            AddColumn,
            AddIndex,
            AddForeignKey,
            AddCheck,
        ]

    def test_index_drop_and_modify(self, detector):
        """Test index removal and uniqueness changes."""
        current = _users(indexes=[Index("a_idx", ["name"]), Index("b_idx", ["name"])])
        desired = _users(indexes=[Index("a_idx", ["name"], unique=True)])

        changes = detector.diff_table(current, desired)

        assert [type(c).__name__ for c in changes] == ["ModifyIndex", "DropIndex"]
        assert isinstance(changes[1], DropIndex)

    def test_foreign_key_default_actions_compare_equal(self, detector):
        """Test NO ACTION reflected from the database equals an unset action."""
        current = _users(
            foreign_keys=[
                ForeignKey("fk", ["id"], "groups", ["id"], ref_schema="public", on_delete="NO ACTION")
            ]
        )
        desired = _users(foreign_keys=[ForeignKey("fk", ["id"], "groups", ["id"])])

        assert detector.diff_table(current, desired) == []

    def test_foreign_key_action_change(self, detector):
        """Test a changed ON DELETE action modifies the foreign key."""
        current = _users(foreign_keys=[ForeignKey("fk", ["id"], "groups", ["id"])])
        desired = _users(
            foreign_keys=[ForeignKey("fk", ["id"], "groups", ["id"], on_delete="CASCADE")]
        )

        changes = detector.diff_table(current, desired)

        assert len(changes) == 1
        assert isinstance(changes[0], ModifyForeignKey)

    def test_removed_foreign_key(self, detector):
        """Test a foreign key missing from the desired table is dropped."""
        fk = ForeignKey("fk", ["id"], "groups", ["id"])

        changes = detector.diff_table(_users(foreign_keys=[fk]), _users())

        assert changes == [DropForeignKey(foreign_key=fk)]

    def test_check_parentheses_are_ignored(self, detector):
        """Test reflected check expressions wrapped in parentheses compare equal."""
        current = _users(checks=[Check("c", "((name <> ''::text))")])
        desired = _users(checks=[Check("c", "name <> ''")])

        assert detector.diff_table(current, desired) == []

    def test_check_modified(self, detector):
        """Test a changed check expression is a ModifyCheck."""
        current = _users(checks=[Check("c", "length(name) > 0")])
        desired = _users(checks=[Check("c", "length(name) > 1")])

        changes = detector.diff_table(current, desired)

        assert [type(c) for c in changes] == [ModifyCheck]


class TestDetectThenFilter:
    """Test the detector output combined with the destructive filter."""

    def test_filtered_diff_keeps_additions_only(self, detector):
        """Test removing a column and adding another only keeps the addition."""
        desired = _users(
            columns=[Column("id", "UUID", default="gen_random_uuid()"), Column("email", "TEXT")]
        )

        changes = filter_destructive(detector.detect_changes(_realm(_users()), _realm(desired)))

        assert changes == [
            ModifySchema(
                schema="public",
                changes=[
                    ModifyTable(
                        table=desired, changes=[AddColumn(column=Column("email", "TEXT"))]
                    )
                ],
            )
        ]
