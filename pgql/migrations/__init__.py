"""Schema migration: introspection, diffing, destructive filtering and DDL."""

from .changes import Change, change_to_dict, iter_changes
from .detector import SchemaChangeDetector
from .exceptions import (
    DestructiveChangeError,
    InspectionError,
    MigrationApplyError,
    MigrationError,
    MigrationPlanError,
)
from .executor import MigrationExecutor, MigrationResult
from .filter import filter_destructive, find_destructive_changes, is_destructive
from .inspector import RealmInspector, inspect_database
from .integration import SchemaSynchronizer, SyncResult
from .planner import MigrationPlan, MigrationPlanner, PlannedStatement
from .types import COMPOSITE_KINDS, DESTRUCTIVE_KINDS, ChangeKind, DestructivePolicy

__all__ = [
    # Change tree
    "Change",
    "ChangeKind",
    "COMPOSITE_KINDS",
    "DESTRUCTIVE_KINDS",
    "change_to_dict",
    "iter_changes",
    # Filtering
    "DestructivePolicy",
    "filter_destructive",
    "find_destructive_changes",
    "is_destructive",
    # Pipeline
    "MigrationExecutor",
    "MigrationPlan",
    "MigrationPlanner",
    "MigrationResult",
    "PlannedStatement",
    "RealmInspector",
    "SchemaChangeDetector",
    "SchemaSynchronizer",
    "SyncResult",
    "inspect_database",
    # Exceptions
    "DestructiveChangeError",
    "InspectionError",
    "MigrationApplyError",
    "MigrationError",
    "MigrationPlanError",
]
