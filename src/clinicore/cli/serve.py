"""CLI command for running the API server.

Usage:
    clinicore serve
    clinicore serve --port 8080 --host 0.0.0.0
    clinicore serve --reload --log-level debug
"""

from __future__ import annotations

import typer

app = typer.Typer(help="Run the clinicore API server")


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(
        "0.0.0.0",  # nosec B104 - intentional for container deployments
        "--host",
        "-h",
        help="Host to bind to",
    ),
    port: int = typer.Option(8080, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of worker processes"),
    log_level: str = typer.Option(
        "info", "--log-level", "-l", help="Log level: debug, info, warning, error"
    ),
) -> None:
    """Run the clinicore API server."""
    import uvicorn

    workers_effective = workers if not reload else 1

    typer.echo("Starting clinicore server...")
    typer.echo(f"  Host: {host}")
    typer.echo(f"  Port: {port}")
    typer.echo(f"  Workers: {workers_effective}")
    typer.echo(f"  Log level: {log_level}")
    if reload:
        typer.echo("  Reload: enabled")
    typer.echo()

    uvicorn.run(
        app="clinicore.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers_effective,
        log_level=log_level.lower(),
    )
