"""Command-line interface for pgql."""

import rich_click as click

from .. import __version__
from .migrate import migrate_command
from .schema import schema_command
from .serve import serve_command

# Configure rich-click styling
click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.STYLE_OPTION = "bold cyan"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_COMMAND = "bold green"
click.rich_click.STYLE_SWITCH = "bold blue"


@click.group(name="pgql")
@click.version_option(version=__version__, prog_name="pgql")
def main() -> None:
    """🐘 **pgql** - GraphQL over a declaratively managed PostgreSQL schema.

    Keep the database in sync with a YAML schema file and serve the tables
    over GraphQL. Destructive changes are never applied unless allowed.
    """
    pass


# Add commands to the group
main.add_command(migrate_command)
main.add_command(schema_command)
main.add_command(serve_command)


if __name__ == "__main__":
    main()


__all__ = ["main"]
