"""Shared fixtures: a small declared realm used across unit and integration tests."""

import pytest

from pgql.core import Realm, load_realm_from_string

REALM_YAML = """
schemas:
  public:
    tables:
      users:
        comment: application users
        columns:
          id: {type: uuid, default: gen_random_uuid(), unique: true}
          created_at: {type: timestamp, default: now()}
          name: text
          age: {type: int, nullable: true}
        primary_key: [id]
        checks:
          age_positive: "age > 0"
      groups:
        columns:
          id: {type: uuid, default: gen_random_uuid()}
          name: text
        primary_key: [id]
      group_has_user:
        columns:
          id: {type: uuid, default: gen_random_uuid()}
          user_id: uuid
          group_id: uuid
        primary_key: [id]
        foreign_keys:
          users_kf: {columns: [user_id], references: users.id, on_delete: cascade}
          groups_kf: {columns: [group_id], references: groups.id}
"""


@pytest.fixture
def realm_yaml() -> str:
    """YAML document declaring users, groups and their join table."""
    return REALM_YAML


@pytest.fixture
def realm() -> Realm:
    """Realm parsed from ``REALM_YAML``."""
    return load_realm_from_string(REALM_YAML)


@pytest.fixture
def empty_realm() -> Realm:
    """Realm with no schemas, as seen in a fresh database."""
    return Realm(schemas=[])
