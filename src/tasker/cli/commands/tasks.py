"""Task inspection commands.

These talk to the task database directly; no server needs to be running.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import click
import typer

from tasker.cli.console import (
    confirm_or_cancel,
    console,
    create_table,
    dim,
    error,
    success,
    warning,
)

_STATE_STYLES = {
    "todo": "cyan",
    "in_progress": "yellow",
    "done": "green",
    "failed": "red",
}


def register(app: typer.Typer) -> None:
    """Register the tasks command."""

    @app.command()
    def tasks(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: list, show, delete"),
        ] = None,
        task_id: Annotated[
            str | None,
            typer.Argument(help="Task ID for show/delete"),
        ] = None,
        state: Annotated[
            str | None,
            typer.Option("--state", "-s", help="Filter list by state"),
        ] = None,
        task_type: Annotated[
            str | None,
            typer.Option("--type", "-t", help="Filter list by type (webhook, hash)"),
        ] = None,
        config: Annotated[
            Path | None,
            typer.Option("--config", "-c", help="Path to configuration file"),
        ] = None,
        force: Annotated[
            bool,
            typer.Option("--force", "-f", help="Delete without confirmation"),
        ] = False,
    ) -> None:
        """Inspect and manage stored tasks.

        Examples:
            tasker tasks list                     # List every task
            tasker tasks list --state todo        # Only pending tasks
            tasker tasks list --type hash         # Only hash tasks
            tasker tasks show <id>                # Show one task
            tasker tasks delete <id>              # Delete a task
        """
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        if action == "list":
            asyncio.run(_tasks_list(config, state, task_type))

        elif action in ("show", "delete"):
            if task_id is None:
                error(f"A task ID is required for {action}")
                raise typer.Exit(1)
            if action == "show":
                asyncio.run(_tasks_show(config, task_id))
            else:
                if not confirm_or_cancel(f"Delete task {task_id}?", force):
                    return
                asyncio.run(_tasks_delete(config, task_id))

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: list, show, delete")
            raise typer.Exit(1)


def _open_store(config_path: Path | None):
    from tasker.config import load_config
    from tasker.db import Database
    from tasker.tasks.store import TaskStore

    tasker_config = load_config(config_path)
    database = Database(
        database_url=tasker_config.database_url,
        busy_timeout_s=tasker_config.database.busy_timeout_s,
    )
    return database, TaskStore(database)


def _styled_state(value: str) -> str:
    style = _STATE_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


async def _tasks_list(
    config_path: Path | None, state: str | None, task_type: str | None
) -> None:
    """List tasks, optionally filtered by state and type."""
    from tasker.tasks.types import TaskKind, TaskState

    try:
        task_state = TaskState(state.lower()) if state else None
    except ValueError:
        error(f"Unknown state: {state}")
        dim(f"Valid states: {', '.join(s.value for s in TaskState)}")
        raise typer.Exit(1) from None
    try:
        kinds = [TaskKind(task_type.lower())] if task_type else list(TaskKind)
    except ValueError:
        error(f"Unknown type: {task_type}")
        dim("Valid types: webhook, hash")
        raise typer.Exit(1) from None

    database, store = _open_store(config_path)
    await database.connect()
    try:
        await database.create_schema()
        tasks = []
        for kind in kinds:
            tasks.extend(await store.list_by_kind(kind, task_state))
    finally:
        await database.disconnect()

    if not tasks:
        warning("No tasks found")
        return

    table = create_table(
        "Tasks",
        [
            ("ID", "dim"),
            ("Type", ""),
            ("State", ""),
            ("Execution Time", ""),
            ("Target", {"max_width": 50}),
        ],
    )
    for task in tasks:
        target = getattr(task, "url", "") or "[dim]-[/dim]"
        table.add_row(
            task.id,
            task.kind.value,
            _styled_state(task.state.value),
            task.execution_time,
            target,
        )

    console.print(table)
    dim(f"Total: {len(tasks)} task(s)")


async def _tasks_show(config_path: Path | None, task_id: str) -> None:
    """Show a single task."""
    database, store = _open_store(config_path)
    await database.connect()
    try:
        await database.create_schema()
        task = await store.get(task_id)
    finally:
        await database.disconnect()

    if task is None:
        error(f"Task '{task_id}' does not exist")
        raise typer.Exit(1)

    table = create_table(f"Task {task.id}", [("Field", "bold"), ("Value", "")])
    for key, value in task.to_dict().items():
        if key == "secret":
            value = "***"
        elif key == "state":
            value = _styled_state(value)
        table.add_row(key, str(value))
    table.add_row("type", task.kind.value)
    console.print(table)


async def _tasks_delete(config_path: Path | None, task_id: str) -> None:
    """Delete a task unless it is in progress."""
    database, store = _open_store(config_path)
    await database.connect()
    try:
        await database.create_schema()
        deleted = await store.delete(task_id)
        existing = None if deleted else await store.get(task_id)
    finally:
        await database.disconnect()

    if deleted:
        success(f"Deleted task {task_id}")
    elif existing is None:
        error(f"Task '{task_id}' does not exist")
        raise typer.Exit(1)
    else:
        error(f"Task '{task_id}' is {existing.state.value} and cannot be deleted")
        raise typer.Exit(1)
