"""Database layer."""

from tasker.db.engine import Database
from tasker.db.models import Base, HashRow, WebhookRow

__all__ = [
    # Engine
    "Database",
    # Models
    "Base",
    "HashRow",
    "WebhookRow",
]
