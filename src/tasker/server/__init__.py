"""HTTP server for tasker."""

from tasker.server.app import TaskerServer, create_app
from tasker.server.runner import ServerRunner

__all__ = [
    "ServerRunner",
    "TaskerServer",
    "create_app",
]
