"""SQLAlchemy ORM models.

One table per task kind. Both share the ``(state, execution_time)`` index used
for listing by state in deadline order and for recovery.
"""

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""


class WebhookRow(Base):
    """Persisted webhook task."""

    __tablename__ = "webhooks"
    __table_args__ = (
        Index("webhooks_id", "id", unique=True),
        Index("webhooks_state_time", "state", "execution_time"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    state: Mapped[str] = mapped_column(String, nullable=False)
    # Canonical RFC 3339 text, normalized to UTC
    execution_time: Mapped[str] = mapped_column(String, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)


class HashRow(Base):
    """Persisted hash task."""

    __tablename__ = "hashes"
    __table_args__ = (
        Index("hashes_id", "id", unique=True),
        Index("hashes_state_time", "state", "execution_time"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    state: Mapped[str] = mapped_column(String, nullable=False)
    execution_time: Mapped[str] = mapped_column(String, nullable=False)
    secret: Mapped[str] = mapped_column(Text, nullable=False)
