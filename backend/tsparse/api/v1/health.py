"""Health endpoint (unauthenticated, secret-free)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from tsparse import __version__
from tsparse.api.deps import get_usage_repository
from tsparse.core.errors import StorageError
from tsparse.repositories.usage_repo import UsageRepository
from tsparse.resolution.formats import CODES
from tsparse.resolution.preferences import as_percentages
from tsparse.schemas.health import DatabaseHealth, HealthResponse


UTC = timezone.utc

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, response_model_by_alias=True)
async def health(request: Request, usage: UsageRepository = Depends(get_usage_repository)) -> HealthResponse:
    try:
        info = usage.database_info()
        stats = usage.usage_stats() if info.connected else None
    except StorageError as e:
        logger.warning("Health check database probe failed: %s", e)
        info, stats = None, None

    if info is None or stats is None:
        database = DatabaseHealth(connected=False, total_requests=0, last24h=0)
    else:
        by_code = {CODES[i]: n for i, n in stats.by_format.items() if 0 <= i < len(CODES)}
        database = DatabaseHealth(
            connected=True,
            size_bytes=info.size_bytes,
            tables=info.tables,
            total_requests=stats.total,
            last24h=stats.last24h,
            by_format=by_code,
            format_percentages=as_percentages(by_code),
        )

    return HealthResponse(
        status="healthy" if database.connected else "degraded",
        timestamp=datetime.now(tz=UTC),
        version=__version__,
        database=database,
        config=request.app.state.settings.sanitized(),
    )
