"""API dependencies.

Centralize access control, rate limiting and per-request database sessions.
Application-wide objects live on `app.state` so tests can build isolated apps.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from tsparse.repositories.usage_repo import UsageRepository
from tsparse.security.auth import Principal, get_current_principal
from tsparse.services.parse_service import ParseService


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Provide a database session for request scope."""
    session: Session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_usage_repository(db: Session = Depends(get_db_session)) -> UsageRepository:
    return UsageRepository(db)


def get_parse_service(request: Request) -> ParseService:
    return request.app.state.parse_service


def enforce_rate_limit(request: Request, principal: Principal = Depends(get_current_principal)) -> Principal:
    """Per-client fixed-window budget; runs after authentication."""
    request.app.state.limiter.check(principal.client_ip)
    return principal
