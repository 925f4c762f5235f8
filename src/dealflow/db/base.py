"""
Declarative Base

Shared base class, timestamp mixins and the portable JSON column type for the
contract tables.
"""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON on SQLite
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for every contract table."""

    id: Any


class CreatedAtMixin:
    """Insert time, set by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )


class TimestampMixin(CreatedAtMixin):
    """Insert and last-update times; used by rows that are upserted or triaged."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


def import_all_models() -> None:
    """Register every model on ``Base.metadata`` (alembic and create_all)."""
    from src.dealflow.db import models  # noqa: F401
