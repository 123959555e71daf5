"""Repository base.

Repositories are the only layer that queries the database. Driver errors are
re-raised as StorageError so callers can absorb them at a stage boundary
without knowing about SQLAlchemy.
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable

from tsparse.core.errors import StorageError


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Base repository providing a guarded execute helper."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _execute(self, stmt: Executable, *, params: Optional[dict[str, Any]] = None) -> Result[Any]:
        try:
            return self._session.execute(stmt, params or {})
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StorageError(f"Query failed: {e.__class__.__name__}") from e

    def _add(self, row: T) -> T:
        try:
            self._session.add(row)
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise StorageError(f"Write failed: {e.__class__.__name__}") from e
        return row
