"""Main CLI application."""

import typer

from tasker.cli.commands import serve, tasks

app = typer.Typer(
    name="tasker",
    help="tasker - durable time-triggered task scheduler",
    no_args_is_help=True,
)

serve.register(app)
tasks.register(app)


def main() -> None:
    app()
