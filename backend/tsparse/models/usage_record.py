from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tsparse.core.base import Base, utcnow


class UsageRecord(Base):
    """One resolved `/parse` request (append-only analytics log).

    `format` is the suggested catalog index; `conf` the reported confidence.
    """

    __tablename__ = "usage"
    __table_args__ = (
        Index("idx_usage_ts", "ts"),
        Index("idx_usage_format", "format"),
        Index("idx_usage_ip", "ip"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    tz: Mapped[str] = mapped_column(String(64), nullable=False)
    epoch: Mapped[int] = mapped_column(Integer, nullable=False)
    format: Mapped[int] = mapped_column(Integer, nullable=False)
    conf: Mapped[float] = mapped_column(Float, nullable=False)
    method: Mapped[str] = mapped_column(String(32), nullable=False)
    ip: Mapped[str] = mapped_column(String(64), nullable=False)
    ts: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
