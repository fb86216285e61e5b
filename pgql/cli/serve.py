"""CLI serve command implementation."""

import rich_click as click
import uvicorn

from ..api.config import config


@click.command("serve")
@click.option("--host", type=str, default=None, help="🌐 **Host to bind to**")
@click.option("--port", type=int, default=None, help="🔌 **Port to bind to**")
@click.option(
    "--reload/--no-reload",
    default=None,
    help="♻️ **Auto-reload** on code changes (development)",
)
def serve_command(host: str | None, port: int | None, reload: bool | None) -> None:
    """🌍 **Serve the GraphQL API**

    Starts the HTTP server. At startup the database schema is synchronized
    with the schema file (unless MIGRATE_ON_STARTUP=false).
    """
    uvicorn.run(
        "pgql.api.main:app",
        host=host or config.host,
        port=port or config.port,
        reload=config.reload if reload is None else reload,
        log_level=config.log_level.lower(),
    )
