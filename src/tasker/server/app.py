"""FastAPI application for the tasker server."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from tasker.server.routes import health, tasks

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tasker.scheduler.runtime import SchedulerRuntime

logger = logging.getLogger(__name__)


class TaskerServer:
    """Main server application.

    Ties the FastAPI app to the scheduler runtime: the runtime starts (and
    finishes recovery) before the first request is served and stops after
    the last one.
    """

    def __init__(self, runtime: "SchedulerRuntime"):
        self._runtime = runtime
        self._app = self._create_app()

    @property
    def app(self) -> FastAPI:
        """Get the FastAPI application."""
        return self._app

    @property
    def runtime(self) -> "SchedulerRuntime":
        return self._runtime

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI app."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> "AsyncIterator[None]":
            logger.info("server_starting")
            # RecoveryError propagates and aborts startup
            report = await self._runtime.start()
            logger.info(
                "server_ready", extra={"recovery.submitted": report.total_submitted}
            )

            yield

            logger.info("server_stopping")
            await self._runtime.stop()

        app = FastAPI(
            title="tasker",
            description="Durable time-triggered task scheduler",
            version="0.1.0",
            lifespan=lifespan,
        )

        app.state.server = self
        app.state.runtime = self._runtime
        app.state.service = self._runtime.service

        app.include_router(health.router, tags=["health"])
        app.include_router(tasks.router, prefix="/tasks", tags=["tasks"])

        return app


def create_app(runtime: "SchedulerRuntime") -> FastAPI:
    """Create the FastAPI application."""
    return TaskerServer(runtime).app
