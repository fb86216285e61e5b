"""Type definitions for the schema migration system."""

from enum import Enum


class ChangeKind(str, Enum):
    """Every kind of schema change the detector can produce."""

    ADD_SCHEMA = "add_schema"
    DROP_SCHEMA = "drop_schema"
    MODIFY_SCHEMA = "modify_schema"

    ADD_TABLE = "add_table"
    DROP_TABLE = "drop_table"
    MODIFY_TABLE = "modify_table"

    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    MODIFY_COLUMN = "modify_column"

    ADD_PRIMARY_KEY = "add_primary_key"
    DROP_PRIMARY_KEY = "drop_primary_key"
    MODIFY_PRIMARY_KEY = "modify_primary_key"

    ADD_INDEX = "add_index"
    DROP_INDEX = "drop_index"
    MODIFY_INDEX = "modify_index"

    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"
    MODIFY_FOREIGN_KEY = "modify_foreign_key"

    ADD_CHECK = "add_check"
    DROP_CHECK = "drop_check"
    MODIFY_CHECK = "modify_check"

    ADD_ATTR = "add_attr"
    DROP_ATTR = "drop_attr"
    MODIFY_ATTR = "modify_attr"


# Changes that can lose data when applied. Anything not listed here is
# treated as safe, including kinds added to the catalog later.
DESTRUCTIVE_KINDS: frozenset[str] = frozenset(
    {
        ChangeKind.DROP_SCHEMA,
        ChangeKind.DROP_TABLE,
        ChangeKind.DROP_INDEX,
        ChangeKind.DROP_CHECK,
        ChangeKind.DROP_ATTR,
        ChangeKind.DROP_FOREIGN_KEY,
        ChangeKind.DROP_COLUMN,
    }
)

# Changes whose children are changes scoped to the same object.
COMPOSITE_KINDS: frozenset[str] = frozenset(
    {
        ChangeKind.MODIFY_SCHEMA,
        ChangeKind.MODIFY_TABLE,
    }
)


class DestructivePolicy(str, Enum):
    """What the synchronizer does with destructive changes."""

    SKIP = "skip"
    ALLOW = "allow"
    FAIL = "fail"
