"""CLI command modules."""

from tasker.cli.commands import serve, tasks

__all__ = [
    "serve",
    "tasks",
]
