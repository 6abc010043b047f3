"""
db/base.py

Declarative base and timestamp columns shared by the governance tables.

Column types are chosen so the same models run on PostgreSQL in production
and on SQLite in the test suite.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware current time; every stored timestamp is UTC."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    # Row payloads, rule configs and validation reports are JSON documents.
    type_annotation_map: dict[type, Any] = {
        dict[str, Any]: JSONDocument,
        list[dict[str, Any]]: JSONDocument,
    }


class CreatedAtMixin:
    """For records that are written once, such as staging rows."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )


class TimestampMixin(CreatedAtMixin):
    """Adds ``updated_at``, refreshed by the ORM on every flush that updates the row."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
