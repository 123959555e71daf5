"""Usage log repository (append + aggregate reads for /health and /stats)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import Select, func, inspect, select, text
from sqlalchemy.exc import SQLAlchemyError

from tsparse.core.errors import StorageError
from tsparse.models.usage_record import UsageRecord
from tsparse.repositories.base import BaseRepository


UTC = timezone.utc


@dataclass(frozen=True, slots=True)
class UsageStatsDTO:
    total: int
    last24h: int
    by_format: dict[int, int]


@dataclass(frozen=True, slots=True)
class UsageRecordDTO:
    id: int
    text: str
    tz: str
    epoch: int
    format: int
    conf: float
    method: str
    ts: datetime


@dataclass(frozen=True, slots=True)
class DatabaseInfoDTO:
    connected: bool
    size_bytes: Optional[int]
    tables: list[str]


class UsageRepository(BaseRepository[UsageRecord]):
    def log_usage(
        self,
        *,
        text: str,
        tz: str,
        epoch: int,
        format_index: int,
        confidence: float,
        method: str,
        ip: str,
    ) -> UsageRecord:
        row = UsageRecord(
            text=text,
            tz=tz,
            epoch=int(epoch),
            format=format_index,
            conf=float(confidence),
            method=method,
            ip=ip or "unknown",
        )
        return self._add(row)

    def usage_stats(self, *, now: Optional[datetime] = None) -> UsageStatsDTO:
        since = (now or datetime.now(UTC)) - timedelta(hours=24)
        total = int(self._execute(select(func.count(UsageRecord.id))).scalar_one())
        last24h = int(
            self._execute(select(func.count(UsageRecord.id)).where(UsageRecord.ts >= since)).scalar_one()
        )
        stmt: Select = (
            select(UsageRecord.format, func.count(UsageRecord.id))
            .group_by(UsageRecord.format)
            .order_by(UsageRecord.format)
        )
        by_format = {int(fmt): int(count) for fmt, count in self._execute(stmt).all()}
        return UsageStatsDTO(total=total, last24h=last24h, by_format=by_format)

    def recent_usage(self, *, limit: int = 5) -> Sequence[UsageRecordDTO]:
        """Newest first. Client addresses are not exposed."""
        stmt: Select = select(UsageRecord).order_by(UsageRecord.ts.desc(), UsageRecord.id.desc()).limit(limit)
        rows = self._execute(stmt).scalars().all()
        return [
            UsageRecordDTO(
                id=r.id,
                text=r.text,
                tz=r.tz,
                epoch=r.epoch,
                format=r.format,
                conf=r.conf,
                method=r.method,
                ts=r.ts,
            )
            for r in rows
        ]

    def ping(self) -> bool:
        try:
            self._execute(text("SELECT 1"))
        except StorageError:
            return False
        return True

    def database_info(self) -> DatabaseInfoDTO:
        if not self.ping():
            return DatabaseInfoDTO(connected=False, size_bytes=None, tables=[])
        bind = self._session.get_bind()
        try:
            tables = sorted(inspect(bind).get_table_names())
        except SQLAlchemyError as e:
            raise StorageError(f"Inspect failed: {e.__class__.__name__}") from e

        size: Optional[int] = None
        if bind.dialect.name == "sqlite":
            page_count = self._execute(text("PRAGMA page_count")).scalar_one()
            page_size = self._execute(text("PRAGMA page_size")).scalar_one()
            size = int(page_count) * int(page_size)
        return DatabaseInfoDTO(connected=True, size_bytes=size, tables=tables)
