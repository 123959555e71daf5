"""Database engine and session factory.

One engine per database URL. SQLite is the default backend for both the
service usage log and the desktop counter table; any SQLAlchemy URL works.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tsparse.core.base import Base


_ENGINES: dict[str, Engine] = {}


def create_db_engine(url: str) -> Engine:
    kwargs: dict[str, Any] = {"pool_pre_ping": True, "future": True}
    if url.startswith("sqlite"):
        # Request handlers run on worker threads; the connection is never shared concurrently.
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


def get_engine(url: str) -> Engine:
    engine = _ENGINES.get(url)
    if engine is None:
        engine = create_db_engine(url)
        _ENGINES[url] = engine
    return engine


def create_session_factory(url: str) -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(url), class_=Session, autoflush=False, autocommit=False)


def ensure_schema(engine: Engine) -> None:
    """Create missing tables in place (local desktop databases only; the service uses Alembic)."""
    import tsparse.models  # noqa: F401  (register mapped classes)

    Base.metadata.create_all(engine, checkfirst=True)


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
