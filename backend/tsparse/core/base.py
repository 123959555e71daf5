"""SQLAlchemy declarative base and shared mixins.

Timestamps are UTC. SQLite stores them naive, so values are always written
from Python in UTC and compared against UTC cutoffs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class UpdatedAtMixin:
    """Updated-at timestamp mixin for the mutable counter table."""

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
