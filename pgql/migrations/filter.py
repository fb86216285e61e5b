"""Destructive change filtering.

Schema changes are applied automatically, but changes that can lose data
(dropping a schema, table, column, index, check, attribute or foreign key)
are removed from the tree so they can go through a separate, reviewed path.
"""

from dataclasses import replace

from .changes import Change
from .types import COMPOSITE_KINDS, DESTRUCTIVE_KINDS


def is_destructive(change: Change) -> bool:
    """Return True if applying the change can cause data loss.

    Classification is by kind only; whether the dropped object holds data
    is not inspected.
    """
    return change.kind in DESTRUCTIVE_KINDS


def filter_destructive(changes: list[Change]) -> list[Change]:
    """Return the changes with every destructive change removed.

    A destructive change is dropped together with its children. Composite
    changes that survive are rebuilt with their children filtered; the input
    tree is left untouched. Relative order is preserved.
    """
    keep: list[Change] = []
    for change in changes:
        if is_destructive(change):
            continue
        if change.kind in COMPOSITE_KINDS:
            change = replace(change, changes=filter_destructive(change.changes))  # type: ignore[attr-defined]
        keep.append(change)
    return keep


def find_destructive_changes(changes: list[Change]) -> list[Change]:
    """Return the destructive changes ``filter_destructive`` would remove.

    Only the top-most destructive node of each removed subtree is listed.
    """
    found: list[Change] = []
    for change in changes:
        if is_destructive(change):
            found.append(change)
        elif change.kind in COMPOSITE_KINDS:
            found.extend(find_destructive_changes(change.changes))  # type: ignore[attr-defined]
    return found
