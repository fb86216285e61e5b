"""CLI migrate command implementation.

This module implements the `pgql migrate` command: load the declared schema,
diff it against the live database, apply the destructive-change policy and
apply (or, with --dry-run, only print) the resulting DDL.
"""

import asyncio
import json
import sys
import time
from typing import Any, NoReturn

from rich.console import Console
from rich.table import Table
from rich.tree import Tree
import rich_click as click

from ..api.config import config
from ..core import FileSchemaLoader, SchemaLoadError, SchemaValidationError
from ..core.logging import configure_logging
from ..database import DatabaseError, create_database, validate_database_config
from ..migrations import (
    Change,
    DestructiveChangeError,
    DestructivePolicy,
    MigrationError,
    SchemaSynchronizer,
    SyncResult,
    change_to_dict,
)

# Create console for rich formatting
console = Console()

EXIT_OK = 0
EXIT_MIGRATION_FAILED = 1
EXIT_SCHEMA_INVALID = 2
EXIT_DATABASE_UNREACHABLE = 3


def _output_json_format(data: dict[str, Any]) -> None:
    """Output data in JSON format."""
    click.echo(json.dumps(data, indent=2, default=str))


def _add_changes(tree: Tree, changes: list[Change], skipped: set[int]) -> None:
    for change in changes:
        if id(change) in skipped:
            label = f"[red]✗ {change.describe()}[/red] [dim](skipped)[/dim]"
        else:
            label = f"[green]{change.describe()}[/green]"
        branch = tree.add(label)
        _add_changes(branch, list(getattr(change, "changes", [])), skipped)


def _output_table_format(result: SyncResult, schema_file: str, elapsed_s: float) -> None:
    """Output synchronization results with rich formatting."""
    if result.dry_run:
        console.print("🔍 [bold blue]Migration plan[/bold blue] [yellow](dry-run)[/yellow]")
    else:
        console.print("🚀 [bold blue]Schema migration[/bold blue]")
    console.print()

    info_table = Table(show_header=False, box=None, padding=(0, 1))
    info_table.add_row("[bold]Schema file:[/bold]", f"[cyan]{schema_file}[/cyan]")
    info_table.add_row("[bold]Database:[/bold]", f"[cyan]{config.database.display_endpoint}[/cyan]")
    info_table.add_row("[bold]Time:[/bold]", f"[dim]{elapsed_s * 1000:.0f}ms[/dim]")
    console.print(info_table)
    console.print()

    if result.is_up_to_date:
        console.print("✅ [green]Database schema is up to date[/green]")
        return

    tree = Tree("[bold]Changes[/bold]")
    _add_changes(tree, result.changes, {id(c) for c in result.skipped_changes})
    console.print(tree)
    console.print()

    if result.plan.statements:
        statements = Table(title="DDL", show_lines=False)
        statements.add_column("#", style="dim", justify="right")
        statements.add_column("Operation", style="cyan")
        statements.add_column("SQL", style="white")
        for number, statement in enumerate(result.plan.statements, start=1):
            statements.add_row(str(number), statement.description, statement.sql)
        console.print(statements)
        console.print()

    if result.skipped_changes:
        console.print(
            f"⚠️  [yellow]{len(result.skipped_changes)} destructive change(s) skipped; "
            "drop them manually or rerun with --destructive allow[/yellow]"
        )

    if result.dry_run:
        console.print("[yellow]Dry-run: no changes made[/yellow]")
    elif result.applied:
        console.print(
            f"✅ [green]Applied {len(result.migration.applied_changes)} operation(s)[/green]"  # type: ignore[union-attr]
        )


def _result_to_dict(result: SyncResult, schema_file: str) -> dict[str, Any]:
    if result.is_up_to_date:
        status = "up_to_date"
    elif result.dry_run:
        status = "dry_run"
    else:
        status = "applied"

    return {
        "status": status,
        "schema_file": schema_file,
        "changes": [change_to_dict(change) for change in result.changes],
        "skipped": [change.describe() for change in result.skipped_changes],
        "statements": [
            {"description": s.description, "sql": s.sql} for s in result.plan.statements
        ],
        "applied": result.migration.applied_changes if result.migration else [],
    }


def _fail(
    format: str, error_type: str, message: str, code: int, **extra: Any
) -> NoReturn:
    if format == "json":
        _output_json_format(
            {"status": "error", "error_type": error_type, "message": message, **extra}
        )
    else:
        console.print(f"❌ [bold red]{message}[/bold red]")
        for detail in extra.get("details", []):
            console.print(f"   • {detail}")
    sys.exit(code)


async def _migrate_implementation(  # noqa: PLR0912
    schema_file: str,
    dry_run: bool,
    destructive: str,
    format: str,
) -> None:
    """Run the migration and exit with the matching status code."""
    start = time.time()

    try:
        realm = await FileSchemaLoader(schema_file).load_realm()
    except SchemaValidationError as e:
        _fail(format, "schema_invalid", str(e), EXIT_SCHEMA_INVALID, details=e.errors)
    except SchemaLoadError as e:
        _fail(format, "schema_unreadable", str(e), EXIT_SCHEMA_INVALID)

    try:
        validate_database_config(config.database)
        database = create_database(config.database)
        await database.connect()
    except DatabaseError as e:
        _fail(format, "database_unreachable", str(e), EXIT_DATABASE_UNREACHABLE)

    try:
        result = await SchemaSynchronizer(database).sync(
            realm, policy=DestructivePolicy(destructive), dry_run=dry_run
        )
    except DestructiveChangeError as e:
        _fail(
            format,
            "destructive_changes",
            "Destructive changes refused (--destructive fail)",
            EXIT_MIGRATION_FAILED,
            details=[change.describe() for change in e.changes],
        )
    except (MigrationError, DatabaseError) as e:
        _fail(format, "migration_failed", str(e), EXIT_MIGRATION_FAILED)
    finally:
        await database.disconnect()

    if format == "json":
        _output_json_format(_result_to_dict(result, schema_file))
    elif format == "sql":
        click.echo(result.plan.to_sql())
    else:
        _output_table_format(result, schema_file, time.time() - start)

    sys.exit(EXIT_OK)


@click.command("migrate")
@click.option(
    "--schema-file",
    type=click.Path(),
    default=None,
    help="📄 **Declarative schema file** (default: SCHEMA_FILE or schemas/realm.yaml)",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="🔍 **Plan only** - print the DDL without executing it",
)
@click.option(
    "--destructive",
    type=click.Choice([policy.value for policy in DestructivePolicy]),
    default=None,
    help="🛡️ **Destructive change policy** - skip (default), allow or fail",
)
@click.option(
    "--format",
    type=click.Choice(["table", "json", "sql"]),
    default="table",
    help="📋 **Output format** for migration results",
    show_default=True,
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="🔍 **Show log output** from inspection, planning and apply",
)
def migrate_command(
    schema_file: str | None,
    dry_run: bool,
    destructive: str | None,
    format: str,
    verbose: bool,
) -> None:
    """🚀 **Synchronize the database with the declared schema**

    Diffs the schema file against the live database and applies the changes.
    Destructive changes (drops of schemas, tables, columns, indexes, checks,
    foreign keys and attributes) are skipped unless allowed.

    **Examples:**

    ```bash
    pgql migrate                           # Apply schemas/realm.yaml
    pgql migrate --dry-run --format sql    # Print the DDL only
    pgql migrate --destructive fail        # Refuse to run if anything would be dropped
    ```

    **Exit Codes:**
    - `0`: Database is in sync ✅
    - `1`: Destructive changes refused or migration failed ❌
    - `2`: Schema file missing or invalid 📁
    - `3`: Database unreachable 💾
    """
    configure_logging(
        environment=config.environment,
        log_level="DEBUG" if verbose else "WARNING",
        json_logs=config.json_logs,
        stream=sys.stderr,
    )
    asyncio.run(
        _migrate_implementation(
            schema_file or config.schema_file,
            dry_run,
            destructive or DestructivePolicy(config.destructive_changes).value,
            format,
        )
    )
