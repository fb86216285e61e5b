"""CLI schema command implementation.

This module implements the `pgql schema` command group for inspecting the
declarative schema file without touching the database.
"""

import asyncio
from dataclasses import asdict
import json
import sys

from rich.console import Console
from rich.table import Table
import rich_click as click

from ..api.config import config
from ..core import FileSchemaLoader, Realm, SchemaLoadError, SchemaValidationError
from ..graphql import type_name

# Create console for rich formatting
console = Console()


@click.group(name="schema")
def schema_command() -> None:
    """📋 **Schema operations** - Inspect the declared schema.

    Commands for working with the YAML schema file that describes the
    desired tables.
    """
    pass


def _print_realm(realm: Realm, schema_file: str) -> None:
    console.print(f"📄 [bold blue]Declared schema[/bold blue] [cyan]{schema_file}[/cyan]")
    console.print()

    for schema in realm.schemas:
        table = Table(title=f"schema [bold]{schema.name}[/bold]", title_justify="left")
        table.add_column("Table", style="cyan")
        table.add_column("GraphQL type", style="magenta")
        table.add_column("Columns", style="white")
        table.add_column("Primary key", style="green")
        table.add_column("Foreign keys", style="yellow")

        for declared in schema.tables:
            table.add_row(
                declared.name,
                type_name(declared),
                ", ".join(f"{c.name} {c.type.lower()}" for c in declared.columns),
                ", ".join(declared.primary_key.columns) if declared.primary_key else "-",
                ", ".join(
                    f"{fk.name} → {fk.ref_table}({', '.join(fk.ref_columns)})"
                    for fk in declared.foreign_keys
                )
                or "-",
            )

        console.print(table)
        console.print()

    console.print(
        f"📊 {len(realm.schemas)} schema(s), {len(realm.iter_tables())} table(s)"
    )


@schema_command.command(name="show")
@click.option(
    "--schema-file",
    type=click.Path(),
    default=None,
    help="📄 **Declarative schema file** (default: SCHEMA_FILE or schemas/realm.yaml)",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="📋 **Output format**",
    show_default=True,
)
def show_command(schema_file: str | None, output_format: str) -> None:
    """🔍 **Show the declared schemas and tables.**

    Loads and validates the schema file, then prints its tables.

    \b
    Examples:
        pgql schema show
        pgql schema show --schema-file schemas/realm.yaml --format json
    """
    path = schema_file or config.schema_file

    try:
        realm = asyncio.run(FileSchemaLoader(path).load_realm())
    except SchemaValidationError as e:
        console.print(f"❌ [bold red]Invalid schema:[/bold red] {e}")
        for error in e.errors:
            console.print(f"   • {error}")
        sys.exit(2)
    except SchemaLoadError as e:
        console.print(f"❌ [bold red]Cannot load schema:[/bold red] {e}")
        sys.exit(2)

    if output_format == "json":
        click.echo(json.dumps({"schemas": [asdict(s) for s in realm.schemas]}, indent=2))
    else:
        _print_realm(realm, path)


__all__ = ["schema_command", "show_command"]
