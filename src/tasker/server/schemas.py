"""Request and response bodies for the task API.

Tasks travel externally tagged: ``{"webhook": {...}}`` or ``{"hash": {...}}``.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from tasker.tasks.types import Task


class WebhookFields(BaseModel):
    execution_time: str
    url: str
    body: str


class HashFields(BaseModel):
    execution_time: str
    secret: str


class CreateTaskRequest(BaseModel):
    """Body of ``POST /tasks/new``. Exactly one variant must be present."""

    model_config = ConfigDict(extra="forbid")

    webhook: WebhookFields | None = Field(
        default=None, validation_alias=AliasChoices("webhook", "Webhook", "WebHook")
    )
    hash: HashFields | None = Field(
        default=None, validation_alias=AliasChoices("hash", "Hash")
    )

    @model_validator(mode="after")
    def _exactly_one_variant(self) -> "CreateTaskRequest":
        if (self.webhook is None) == (self.hash is None):
            raise ValueError("body must contain exactly one of 'webhook' or 'hash'")
        return self


class TaskCreatedResponse(BaseModel):
    id: str


class ErrorResponse(BaseModel):
    msg: str


def tagged(task: Task) -> dict[str, Any]:
    """Serialize a task wrapped in its kind, e.g. ``{"hash": {...}}``."""
    return {task.kind.value: task.to_dict()}
