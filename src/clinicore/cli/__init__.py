"""CLI commands for clinicore.

Provides command-line interface using Typer:
- clinicore serve: Run the API server
- clinicore init-db: Create the tables

Usage:
    clinicore --help
    clinicore serve --port 8080
"""

import asyncio

import typer

from clinicore.cli.serve import app as serve_app

app = typer.Typer(
    name="clinicore",
    help="clinicore: appointment cache, status changes and presence with live events",
    no_args_is_help=True,
)

app.add_typer(serve_app, name="serve")


@app.callback()
def callback() -> None:
    """clinicore: appointment cache, status changes and presence with live events."""
    pass


@app.command("init-db")
def init_db() -> None:
    """Create the doctors, patients and appointments tables if missing."""
    from clinicore.config import settings
    from clinicore.persistence.db import Database

    async def run() -> None:
        database = Database.from_settings(settings)
        try:
            await database.init_schema()
        finally:
            await database.close()

    asyncio.run(run())
    typer.echo("Database schema is up to date")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
