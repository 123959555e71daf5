from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tsparse.core.base import Base, UpdatedAtMixin


class FormatUsage(UpdatedAtMixin, Base):
    """Confirmed-format counter, one row per format code (case-sensitive)."""

    __tablename__ = "format_usage"

    code: Mapped[str] = mapped_column(String(1), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
