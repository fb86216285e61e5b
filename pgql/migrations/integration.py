"""Schema synchronization: inspect, diff, apply the destructive policy, migrate."""

from dataclasses import dataclass, field

from ..core.logging import get_logger
from ..core.schema import Realm
from ..database.interface import DatabaseInterface
from .changes import Change
from .detector import SchemaChangeDetector
from .exceptions import DestructiveChangeError
from .executor import MigrationExecutor, MigrationResult
from .filter import filter_destructive, find_destructive_changes
from .inspector import inspect_database
from .planner import MigrationPlan, MigrationPlanner
from .types import DestructivePolicy

logger = get_logger(__name__)


@dataclass
class SyncResult:
    """Outcome of one synchronization run."""

    changes: list[Change]
    planned_changes: list[Change]
    plan: MigrationPlan
    skipped_changes: list[Change] = field(default_factory=list)
    migration: MigrationResult | None = None
    dry_run: bool = False

    @property
    def is_up_to_date(self) -> bool:
        return not self.changes

    @property
    def applied(self) -> bool:
        return self.migration is not None and self.migration.success


class SchemaSynchronizer:
    """Brings the live database in line with the desired realm."""

    def __init__(
        self,
        database: DatabaseInterface,
        detector: SchemaChangeDetector | None = None,
        planner: MigrationPlanner | None = None,
        executor: MigrationExecutor | None = None,
    ):
        self.database = database
        self.detector = detector or SchemaChangeDetector()
        self.planner = planner or MigrationPlanner()
        self.executor = executor or MigrationExecutor(database)

    async def diff(self, desired: Realm) -> list[Change]:
        """Compute the change tree between the database and ``desired``.

        Only the schemas named by ``desired`` are inspected, so unrelated
        schemas in the same database are never proposed for dropping.
        """
        current = await inspect_database(self.database, desired.schema_names)
        return self.detector.detect_changes(current, desired)

    def apply_policy(
        self, changes: list[Change], policy: DestructivePolicy
    ) -> tuple[list[Change], list[Change]]:
        """Split changes into those to apply and destructive ones to skip.

        Raises:
            DestructiveChangeError: If ``policy`` is FAIL and destructive
                changes are present
        """
        policy = DestructivePolicy(policy)
        if policy == DestructivePolicy.ALLOW:
            return changes, []

        destructive = find_destructive_changes(changes)
        if destructive and policy == DestructivePolicy.FAIL:
            raise DestructiveChangeError(
                f"{len(destructive)} destructive changes require manual migration: "
                + "; ".join(change.describe() for change in destructive),
                destructive,
            )

        return filter_destructive(changes), destructive

    async def sync(
        self,
        desired: Realm,
        policy: DestructivePolicy = DestructivePolicy.SKIP,
        dry_run: bool = False,
    ) -> SyncResult:
        """Diff, filter, plan and (unless ``dry_run``) apply.

        Args:
            desired: Realm loaded from the schema file
            policy: What to do with destructive changes
            dry_run: Plan only; nothing is executed

        Returns:
            SyncResult with the full diff, the applied subset and the plan
        """
        changes = await self.diff(desired)
        planned, skipped = self.apply_policy(changes, policy)

        for change in skipped:
            logger.warning(
                "Skipping destructive schema change",
                change=change.describe(),
                kind=change.kind.value,
            )

        plan = self.planner.plan_changes(planned, name="sync")
        result = SyncResult(
            changes=changes,
            planned_changes=planned,
            plan=plan,
            skipped_changes=skipped,
            dry_run=dry_run,
        )

        if plan.is_empty:
            logger.info("Database schema is up to date", skipped=len(skipped))
            return result

        if dry_run:
            logger.info("Dry run: schema changes not applied", statements=len(plan.statements))
            return result

        result.migration = await self.executor.apply_changes(planned)
        logger.info(
            "Database schema synchronized",
            applied=len(result.migration.applied_changes),
            skipped=len(skipped),
        )
        return result
