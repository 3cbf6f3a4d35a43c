"""Task routes: create, inspect, list and delete."""

import logging
from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from tasker.server.schemas import (
    CreateTaskRequest,
    ErrorResponse,
    TaskCreatedResponse,
    tagged,
)
from tasker.tasks.errors import (
    TaskHandoffError,
    TaskInProgressError,
    TaskNotFoundError,
    TaskPersistenceError,
    TaskValidationError,
)
from tasker.tasks.service import TaskService
from tasker.tasks.types import TaskKind, TaskState

router = APIRouter()
logger = logging.getLogger(__name__)


def _service(request: Request) -> TaskService:
    return request.app.state.service


def _error(status_code: int, msg: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"msg": msg})


def _errors(*codes: int) -> dict[int | str, dict[str, Any]]:
    """OpenAPI entries for the `{"msg": ...}` error body."""
    return {code: {"model": ErrorResponse} for code in codes}


@router.post(
    "/new",
    status_code=201,
    response_model=TaskCreatedResponse,
    responses=_errors(400, 500),
)
async def create_task(body: CreateTaskRequest, request: Request) -> Any:
    """Create a webhook or hash task."""
    service = _service(request)
    try:
        if body.webhook is not None:
            task = await service.create_webhook(
                body.webhook.execution_time, body.webhook.url, body.webhook.body
            )
        else:
            assert body.hash is not None
            task = await service.create_hash(body.hash.execution_time, body.hash.secret)
    except TaskValidationError as e:
        return _error(400, str(e))
    except (TaskPersistenceError, TaskHandoffError) as e:
        return _error(500, str(e))
    return TaskCreatedResponse(id=task.id)


@router.get("/state/{state}", responses=_errors(400, 500))
async def list_tasks_by_state(state: str, request: Request) -> Any:
    """List webhook then hash tasks in a state, each ordered by execution time."""
    try:
        task_state = TaskState(state.lower())
    except ValueError:
        return _error(
            400,
            "Field 'state' needs to be one of: 'todo', 'in_progress', 'failed', 'done'",
        )
    try:
        tasks = await _service(request).list_by_state(task_state)
    except TaskPersistenceError as e:
        return _error(500, str(e))
    return [tagged(task) for task in tasks]


@router.get("/type/{task_type}", responses=_errors(400, 500))
async def list_tasks_by_type(task_type: str, request: Request) -> Any:
    """List all tasks of one kind ordered by execution time."""
    try:
        kind = TaskKind(task_type.lower())
    except ValueError:
        return _error(400, "Unsupported task type, use either 'webhook' or 'hash'")
    try:
        tasks = await _service(request).list_by_kind(kind)
    except TaskPersistenceError as e:
        return _error(500, str(e))
    return [task.to_dict() for task in tasks]


@router.get("/{task_id}", responses=_errors(404, 500))
async def get_task(task_id: str, request: Request) -> Any:
    try:
        task = await _service(request).get_task(task_id)
    except TaskNotFoundError as e:
        return _error(404, str(e))
    except TaskPersistenceError as e:
        return _error(500, str(e))
    return tagged(task)


@router.delete("/{task_id}", status_code=204, responses=_errors(404, 409, 500))
async def delete_task(task_id: str, request: Request) -> Response:
    """Delete a task unless it is in progress."""
    try:
        await _service(request).delete_task(task_id)
    except TaskNotFoundError as e:
        return _error(404, str(e))
    except TaskInProgressError as e:
        return _error(409, str(e))
    except TaskPersistenceError as e:
        return _error(500, str(e))
    return Response(status_code=204)
