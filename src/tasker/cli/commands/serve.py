"""Server command for running the scheduler and its HTTP API."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from tasker.cli.console import error

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (overrides config)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (overrides config)",
            ),
        ] = None,
        database_url: Annotated[
            str | None,
            typer.Option(
                "--database-url",
                help="SQLite URL of the task database (overrides config)",
            ),
        ] = None,
    ) -> None:
        """Start the scheduler and serve the task API."""
        from pydantic import ValidationError

        from tasker.config import ConfigError, load_config

        try:
            tasker_config = load_config(config)
        except FileNotFoundError as e:
            error(str(e))
            raise typer.Exit(1) from None
        except (ValidationError, ConfigError) as e:
            error(f"Invalid configuration: {e}")
            raise typer.Exit(1) from None

        if host is not None:
            tasker_config.server.host = host
        if port is not None:
            tasker_config.server.port = port
        if database_url is not None:
            tasker_config.database.url = database_url

        try:
            tasker_config.database_url  # noqa: B018
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        try:
            asyncio.run(_run_server(tasker_config))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")


async def _run_server(config) -> None:
    """Run the server asynchronously."""
    from tasker.logging import configure_logging
    from tasker.scheduler.runtime import SchedulerRuntime
    from tasker.server.app import create_app
    from tasker.server.runner import ServerRunner

    # Configure logging with Rich for colorful server output and file logging
    configure_logging(use_rich=True, log_to_file=True)

    logger.info(
        "config_loaded",
        extra={"server.host": config.server.host, "server.port": config.server.port},
    )

    runtime = SchedulerRuntime(config)
    app = create_app(runtime)

    runner = ServerRunner(app, host=config.server.host, port=config.server.port)
    await runner.run()
