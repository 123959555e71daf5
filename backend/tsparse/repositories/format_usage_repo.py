"""Confirmed-format counters (desktop preference store)."""

from __future__ import annotations

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, sessionmaker

from tsparse.models.format_usage import FormatUsage
from tsparse.repositories.base import BaseRepository
from tsparse.resolution.formats import CODES


class FormatUsageRepository(BaseRepository[FormatUsage]):
    def load_counts(self) -> dict[str, int]:
        stmt: Select = select(FormatUsage.code, FormatUsage.count)
        counts = {code: 0 for code in CODES}
        for code, count in self._execute(stmt).all():
            if code in counts:
                counts[code] = int(count or 0)
        return counts

    def increment(self, code: str) -> int:
        if code not in CODES:
            raise ValueError(f"Unknown format code: {code!r}")
        row = self._execute(select(FormatUsage).where(FormatUsage.code == code)).scalar_one_or_none()
        if row is None:
            row = FormatUsage(code=code, count=0)
        row.count = (row.count or 0) + 1
        self._add(row)
        return row.count


class SqlFormatUsageStore:
    """FormatUsageStore backed by the `format_usage` table; one short session per call."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load_counts(self) -> dict[str, int]:
        with self._session_factory() as session:
            return FormatUsageRepository(session).load_counts()

    def increment(self, code: str) -> None:
        with self._session_factory() as session:
            FormatUsageRepository(session).increment(code)
